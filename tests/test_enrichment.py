import httpx
import pytest

from mindreader.services.enrichment import WikipediaClient, describe, image_from_summary

BASE = "https://wiki.test/page/summary/"


def make_client(handler) -> WikipediaClient:
    transport = httpx.MockTransport(handler)
    return WikipediaClient(httpx.AsyncClient(transport=transport), base_url=BASE)


@pytest.mark.asyncio
async def test_first_success_wins_even_without_image():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"title": "Mononymous", "description": "Fictional plumber"})

    client = make_client(handler)
    info = await client.lookup("Mononymous")
    assert info.image_url is None
    assert info.description == "Fictional plumber"
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_falls_through_variants_until_success():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path.endswith("(person)"):
            return httpx.Response(200, json={
                "description": "American singer-songwriter",
                "original": {"source": "https://upload.test/a/ab/Adele.jpg"},
            })
        return httpx.Response(404, json={"title": "Not found."})

    client = make_client(handler)
    info = await client.lookup("Adele")
    assert info.image_url == "https://upload.test/a/ab/Adele.jpg"
    assert info.description == "American singer-songwriter"
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_all_failures_degrade_to_nulls():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    client = make_client(handler)
    info = await client.lookup("Nobody")
    assert info.image_url is None
    assert info.description is None
    assert info.model_dump(by_alias=True) == {"imageUrl": None, "description": None}


@pytest.mark.asyncio
async def test_blank_name_makes_no_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = make_client(handler)
    info = await client.lookup("   ")
    assert info.image_url is None and info.description is None


@pytest.mark.asyncio
async def test_user_agent_is_sent():
    agents = []

    def handler(request: httpx.Request) -> httpx.Response:
        agents.append(request.headers.get("user-agent"))
        return httpx.Response(200, json={"description": "x"})

    await make_client(handler).lookup("Someone")
    assert agents[0] and agents[0].startswith("mindreader")


def test_image_from_thumbnail():
    data = {"thumbnail": {"source": "https://upload.test/thumb/a/ab/File.jpg/320px-File.jpg"}}
    assert image_from_summary(data) == "https://upload.test/a/ab/File.jpg"


def test_describe_president():
    data = {"extract": "Barack Obama is an American politician who served as the 44th President of the United States from 2009 to 2017."}
    assert describe(data, "Barack Obama") == "44th President of the United States from 2009 to 2017"


def test_describe_occupations():
    data = {"description": "x" * 120, "extract": "Jane Roe (born 1970) was a Politician. She is also a Writer"}
    assert describe(data, "Jane Roe") == "Politician, Writer"


def test_describe_first_sentence_fallback():
    data = {"extract": "Gandalf, a wizard in Middle-earth. He appears in several novels."}
    assert describe(data, "Gandalf") == "a wizard in Middle-earth"


def test_image_ignores_malformed_fields():
    assert image_from_summary({"original": "Adele.jpg", "thumbnail": ["x"]}) is None
    assert image_from_summary({"original": {"source": None}, "thumbnail": {"source": 3}}) is None


@pytest.mark.asyncio
async def test_malformed_image_payload_still_describes():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"description": "English singer", "original": "broken", "thumbnail": 7})

    info = await make_client(handler).lookup("Adele")
    assert info.image_url is None
    assert info.description == "English singer"

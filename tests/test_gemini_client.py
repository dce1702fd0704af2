import asyncio
from types import SimpleNamespace

import pytest

from mindreader.errors import UpstreamError, UpstreamTimeoutError
from mindreader.models import Message
from mindreader.services import gemini_client
from mindreader.services.gemini_client import GeminiChatClient, to_contents


class FakeModel:
    instances = []
    behaviour = "ok"

    def __init__(self, model_name, system_instruction=None, generation_config=None):
        self.model_name = model_name
        self.system_instruction = system_instruction
        self.generation_config = generation_config
        FakeModel.instances.append(self)

    async def generate_content_async(self, contents):
        self.contents = contents
        if FakeModel.behaviour == "slow":
            await asyncio.sleep(1)
        if FakeModel.behaviour == "boom":
            raise RuntimeError("quota exceeded")
        if FakeModel.behaviour == "parts":
            part = SimpleNamespace(text="Is your character real?")
            return SimpleNamespace(text="", candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])
        return SimpleNamespace(text="  Is your character a woman?  ", usage_metadata=SimpleNamespace(candidates_token_count=7))


@pytest.fixture
def fake_genai(monkeypatch):
    FakeModel.instances = []
    FakeModel.behaviour = "ok"
    monkeypatch.setattr(gemini_client.genai, "GenerativeModel", FakeModel)
    return FakeModel


def make_client(timeout: float = 1.0) -> GeminiChatClient:
    return GeminiChatClient(api_key=None, model_name="gemini-test", timeout=timeout, max_output_tokens=32)


HISTORY = [Message(role="user", content="Ask your first question."), Message(role="assistant", content="Is your character real?"), Message(role="user", content="Yes")]


def test_to_contents_maps_roles_and_skips_empty():
    contents = to_contents(HISTORY + [Message(role="assistant", content="")])
    assert [c["role"] for c in contents] == ["user", "model", "user"]
    assert contents[1]["parts"] == ["Is your character real?"]


@pytest.mark.asyncio
async def test_generate_sends_instruction_and_config(fake_genai):
    text = await make_client().generate("rules", HISTORY, temperature=0.7)
    assert text == "Is your character a woman?"
    model = fake_genai.instances[-1]
    assert model.model_name == "gemini-test"
    assert model.system_instruction == "rules"
    assert model.generation_config == {"temperature": 0.7, "max_output_tokens": 32}
    assert len(model.contents) == 3


@pytest.mark.asyncio
async def test_falls_back_to_candidate_parts(fake_genai):
    fake_genai.behaviour = "parts"
    assert await make_client().generate("rules", HISTORY, temperature=0.7) == "Is your character real?"


@pytest.mark.asyncio
async def test_timeout_is_retryable_error(fake_genai):
    fake_genai.behaviour = "slow"
    with pytest.raises(UpstreamTimeoutError) as excinfo:
        await make_client(timeout=0.01).generate("rules", HISTORY, temperature=0.7)
    assert excinfo.value.status_code == 503
    assert excinfo.value.to_payload()["retryable"] is True


@pytest.mark.asyncio
async def test_provider_failure_is_upstream_error(fake_genai):
    fake_genai.behaviour = "boom"
    with pytest.raises(UpstreamError) as excinfo:
        await make_client().generate("rules", HISTORY, temperature=0.7)
    assert not isinstance(excinfo.value, UpstreamTimeoutError)
    assert "quota exceeded" in excinfo.value.details


@pytest.mark.asyncio
async def test_empty_history_is_rejected(fake_genai):
    with pytest.raises(UpstreamError):
        await make_client().generate("rules", [], temperature=0.7)

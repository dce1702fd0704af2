import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..config import settings
from ..models import GuessInfo

logger = logging.getLogger("mindreader")

_PRESIDENT = re.compile(
    r"(\d+(?:st|nd|rd|th)?(?:\s+and\s+\d+(?:st|nd|rd|th)?)?\s+(?:U\.?S\.?|United States)?\s*President(?:,?\s+[^,.]+)?)",
    re.IGNORECASE,
)
_OCCUPATIONS = tuple(
    re.compile(rf"({word}[^,.]*)", re.IGNORECASE)
    for word in ("Businessman", "Actor", "Singer", "Politician", "Writer", "Athlete", "Artist")
)
_SPACES = re.compile(r"\s+")


def name_variants(name: str) -> List[str]:
    return [name, f"{name} (person)", f"{name} (character)"]


def image_from_summary(data: Dict[str, Any]) -> Optional[str]:
    original = data.get("original")
    if isinstance(original, dict) and isinstance(original.get("source"), str) and original["source"]:
        return original["source"]
    thumbnail = data.get("thumbnail")
    thumbnail = thumbnail.get("source") if isinstance(thumbnail, dict) else None
    if isinstance(thumbnail, str) and thumbnail:
        # .../thumb/a/ab/File.jpg/320px-File.jpg -> .../a/ab/File.jpg
        return "/".join(thumbnail.replace("/thumb/", "/", 1).split("/")[:-1])
    return None


def describe(data: Dict[str, Any], title: str) -> Optional[str]:
    """Short occupation-style blurb from a summary payload."""
    short = data.get("description") or ""
    if short and len(short) <= 100:
        return short
    extract = data.get("extract") or ""
    match = _PRESIDENT.search(extract)
    if match:
        return _SPACES.sub(" ", match.group(1).strip())
    occupations: List[str] = []
    for pattern in _OCCUPATIONS:
        found = pattern.search(extract)
        if found and len(occupations) < 2:
            occupations.append(found.group(1).strip())
    if occupations:
        return ", ".join(occupations)
    first_sentence = extract.split(".")[0]
    fallback = re.sub(rf"^{re.escape(title)}\s*[,\-–—]?\s*", "", first_sentence, flags=re.IGNORECASE).strip()
    comma_at = fallback.find(",")
    if 0 < comma_at < 60:
        fallback = fallback[:comma_at]
    elif len(fallback) > 60:
        fallback = fallback[:57] + "..."
    return fallback or None


class WikipediaClient:
    """Looks up a picture and a one-line description for a guessed name.

    Lookups never raise: every failure degrades to an empty ``GuessInfo``.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, *, base_url: Optional[str] = None) -> None:
        self.base_url = base_url or settings.wikipedia_summary_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=settings.enrichment_timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": settings.http_user_agent},
        )

    async def _fetch(self, title: str) -> Optional[Dict[str, Any]]:
        url = self.base_url + quote(title, safe="")
        try:
            response = await self.client.get(url, headers={"User-Agent": settings.http_user_agent})
            if not response.is_success:
                logger.debug({"event": "enrichment_miss", "title": title, "status_code": response.status_code})
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("enrichment_variant_failed")
            return None
        return data if isinstance(data, dict) else None

    async def lookup(self, name: Optional[str]) -> GuessInfo:
        name = (name or "").strip()
        if not name:
            return GuessInfo()
        for title in name_variants(name):
            data = await self._fetch(title)
            if data is None:
                continue
            info = GuessInfo(image_url=image_from_summary(data), description=describe(data, title))
            logger.debug({"event": "enrichment_hit", "title": title, "has_image": info.image_url is not None})
            return info
        return GuessInfo()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

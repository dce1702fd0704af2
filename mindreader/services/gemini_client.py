import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, List, Optional, Protocol, Sequence

import google.generativeai as genai

from ..config import settings
from ..errors import UpstreamError, UpstreamTimeoutError
from ..models import Message

logger = logging.getLogger("mindreader")


class ChatModel(Protocol):
    async def generate(self, instruction: str, history: Sequence[Message], *, temperature: float) -> str:
        ...


def to_contents(history: Sequence[Message]) -> List[Dict[str, Any]]:
    """Gemini expects "model" rather than "assistant" and rejects empty parts."""
    contents: List[Dict[str, Any]] = []
    for message in history:
        if not message.content:
            continue
        role = "model" if message.role == "assistant" else "user"
        contents.append({"role": role, "parts": [message.content]})
    return contents


def _response_text(response: Any) -> str:
    try:
        raw_text = (response.text or "").strip()
    except ValueError:
        # .text raises when the candidate was blocked or has no parts
        raw_text = ""
    if not raw_text and getattr(response, "candidates", None):
        try:
            parts = response.candidates[0].content.parts
            raw_text = "".join(getattr(p, "text", "") for p in parts).strip()
        except (AttributeError, IndexError):
            raw_text = ""
    return raw_text


class GeminiChatClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> None:
        api_key = api_key or settings.gemini_api_key
        if api_key:
            genai.configure(api_key=api_key)
        self.model_name = model_name or settings.gemini_model
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.max_output_tokens = max_output_tokens or settings.llm_max_output_tokens

    async def generate(self, instruction: str, history: Sequence[Message], *, temperature: float) -> str:
        contents = to_contents(history)
        if not contents:
            raise UpstreamError("Nothing to send to the model")
        model = genai.GenerativeModel(
            self.model_name,
            system_instruction=instruction,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": self.max_output_tokens,
            },
        )
        logger.debug({"event": "gemini_request", "model": self.model_name, "messages": len(contents), "temperature": temperature})
        t0 = perf_counter()
        try:
            response = await asyncio.wait_for(model.generate_content_async(contents), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning({"event": "gemini_timeout", "model": self.model_name, "timeout_s": self.timeout})
            raise UpstreamTimeoutError("The model did not answer in time", details=f"timeout after {self.timeout}s") from exc
        except Exception as exc:
            logger.exception("gemini_call_failed")
            raise UpstreamError("The model request failed", details=str(exc)) from exc
        latency_ms = int((perf_counter() - t0) * 1000)
        raw_text = _response_text(response)
        output_tokens = None
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            output_tokens = getattr(usage, "candidates_token_count", None)
        logger.debug({"event": "gemini_response", "preview": raw_text[:200], "latency_ms": latency_ms, "output_tokens": output_tokens})
        return raw_text

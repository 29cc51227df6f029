from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any, Protocol

import httpx

from nerlude_extract.core.config import settings
from nerlude_extract.core.errors import ExtractionTransportError
from nerlude_extract.core.logging import get_logger, log_event, monotonic_ms
from nerlude_extract.modules.extraction.prompt import Part

logger = get_logger(__name__)


class ExtractionClient(Protocol):
    def generate(self, parts: Sequence[Part]) -> str: ...


class GeminiExtractionClient:
    """
    Calls Gemini ``generateContent`` with text and inline binary parts.

    Returns whatever text the model produced (possibly empty). Transport problems raise
    ``ExtractionTransportError``; nothing is retried.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        timeout_seconds: float,
        temperature: float = 0.1,
        max_output_tokens: int = 8192,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_settings(cls) -> GeminiExtractionClient:
        return cls(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            model=settings.gemini_model,
            timeout_seconds=float(settings.extraction_timeout_seconds or 60.0),
            temperature=settings.extraction_temperature,
            max_output_tokens=settings.extraction_max_output_tokens,
        )

    def generate(self, parts: Sequence[Part]) -> str:
        if not self.api_key:
            raise ExtractionTransportError("GEMINI_API_KEY is not configured")

        payload: dict[str, Any] = {
            "contents": [{"parts": list(parts)}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"
        start = time.monotonic()
        try:
            resp = httpx.post(
                url,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout_seconds,
                follow_redirects=True,
            )
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise ExtractionTransportError(
                f"Extraction service timed out after {self.timeout_seconds:g}s"
            ) from e
        except httpx.HTTPStatusError as e:
            raise ExtractionTransportError(
                f"Extraction service returned {e.response.status_code}: {e.response.text[:300]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ExtractionTransportError(f"Extraction service unreachable: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        text = _candidate_text(body)
        log_event(
            logger,
            "extraction.call.finish",
            model=self.model,
            part_count=len(parts),
            status_code=resp.status_code,
            output_chars=len(text),
            duration_ms=monotonic_ms(start),
        )
        return text


def _candidate_text(body: Any) -> str:
    """Concatenate the text parts of the first candidate; anything malformed yields ''."""
    if not isinstance(body, dict):
        return ""
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return "".join(texts)

"""Text-generation backends for the prompt route.

Provides a small protocol so the orchestrator does not care which provider
it talks to (tests inject a fake), and the Gemini REST implementation.

The Gemini backend follows a cursor-based continuation protocol: each
response may carry a `cursor` on its first candidate; while one is present
the request is re-issued with that cursor and the returned fragment is
appended. The documented generateContent endpoint never returns a cursor,
so in practice this is a single call. The cursor is only sent when we have
one, and a page cap stops a provider that keeps returning cursors.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from studio_bridge.config import DEFAULT_API_BASE, DEFAULT_MODEL, GENERATION_CONFIG, Settings
from studio_bridge.errors import ExternalApiError

logger = logging.getLogger(__name__)


@dataclass
class LLMCallResult:
    """Normalized response from any text-generation backend."""

    content: str
    model_id: str
    duration_ms: int
    pages: int = 1


@runtime_checkable
class TextBackend(Protocol):
    """Protocol for text-generation backend implementations."""

    @property
    def model_id(self) -> str: ...

    async def generate(self, prompt: str, *, api_key: str, label: str = "") -> LLMCallResult: ...


class GeminiBackend:
    """Google Gemini backend over the generateContent REST endpoint.

    Handles:
    - Request body construction (contents + generationConfig)
    - Cursor continuation with a page cap
    - Text extraction from candidate parts (thought parts are skipped)
    - Mapping transport, HTTP status and JSON failures to ExternalApiError
    """

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        *,
        api_base: str = DEFAULT_API_BASE,
        generation_config: Optional[dict] = None,
        timeout: float = 120.0,
        max_continuations: int = 32,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._model_id = model_id
        self.api_base = api_base.rstrip("/")
        self.generation_config = dict(generation_config or GENERATION_CONFIG)
        self.timeout = timeout
        self.max_continuations = max(1, max_continuations)
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiBackend":
        return cls(
            model_id=settings.model_id,
            api_base=settings.api_base,
            generation_config=settings.generation_config,
            timeout=settings.request_timeout,
            max_continuations=settings.max_continuations,
        )

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self._model_id}:generateContent"

    def build_request(self, prompt: str, cursor: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": self.generation_config,
        }
        if cursor:
            body["cursor"] = cursor
        return body

    async def generate(self, prompt: str, *, api_key: str, label: str = "") -> LLMCallResult:
        """Generate text for a prompt, following continuation cursors.

        Args:
            prompt: The user prompt
            api_key: Gemini API key
            label: Log prefix for this call

        Returns:
            LLMCallResult with the concatenated text of every page

        Raises:
            ExternalApiError: On transport failure, non-2xx status, malformed
                JSON, or more pages than max_continuations
        """
        start_time = time.time()
        full_text = ""
        cursor: Optional[str] = None
        pages = 0

        logger.info(f"[{label}] Gemini request: model={self._model_id}, {len(prompt):,} prompt chars")

        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"x-goog-api-key": api_key},
            transport=self._transport,
        ) as client:
            while True:
                if pages >= self.max_continuations:
                    raise ExternalApiError(
                        f"Gemini kept returning continuation cursors after {pages} pages"
                    )
                pages += 1

                payload = await self._post(client, self.build_request(prompt, cursor))
                fragment, cursor = parse_page(payload)
                full_text += fragment

                if cursor is None:
                    break
                logger.debug(f"[{label}] Continuing with cursor (page {pages}, {len(full_text):,} chars)")

        duration_ms = int((time.time() - start_time) * 1000)

        if not full_text.strip():
            logger.warning(f"[{label}] Empty response from {self._model_id}")

        logger.info(
            f"[{label}] Gemini completed: {pages} page(s), {duration_ms}ms, "
            f"{len(full_text):,} chars"
        )

        return LLMCallResult(
            content=full_text,
            model_id=self._model_id,
            duration_ms=duration_ms,
            pages=pages,
        )

    async def _post(self, client: httpx.AsyncClient, body: dict) -> dict:
        try:
            response = await client.post(self.endpoint, json=body)
        except httpx.HTTPError as e:
            raise ExternalApiError(f"HTTP error: {e}") from e

        if response.is_error:
            raise ExternalApiError(
                f"HTTP {response.status_code} from Gemini: {response.text[:500]}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ExternalApiError(f"JSON parse error: {e}") from e

        if not isinstance(payload, dict):
            raise ExternalApiError(f"Unexpected response type: {type(payload).__name__}")
        return payload


def parse_page(payload: dict) -> tuple[str, Optional[str]]:
    """Extract (text, cursor) from one generateContent response.

    Missing candidates or parts yield empty text; a missing cursor ends
    the continuation loop. Fields of the wrong shape raise ExternalApiError.
    """
    if "error" in payload:
        error = payload["error"]
        message = error.get("message", error) if isinstance(error, dict) else error
        raise ExternalApiError(f"Gemini error: {message}")

    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list):
        raise ExternalApiError(
            f"Malformed Gemini response: candidates is {type(candidates).__name__}, expected list"
        )
    if not candidates:
        return "", None
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise ExternalApiError(
            f"Malformed Gemini response: candidate is {type(candidate).__name__}, expected object"
        )

    content = candidate.get("content") or {}
    if not isinstance(content, dict):
        raise ExternalApiError(
            f"Malformed Gemini response: content is {type(content).__name__}, expected object"
        )
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise ExternalApiError(
            f"Malformed Gemini response: parts is {type(parts).__name__}, expected list"
        )

    text = ""
    for part in parts:
        if not isinstance(part, dict) or part.get("thought"):
            continue
        value = part.get("text")
        if isinstance(value, str):
            text += value

    cursor = candidate.get("cursor")
    if not isinstance(cursor, str) or not cursor:
        cursor = None
    return text, cursor

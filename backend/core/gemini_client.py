"""
Gemini API client wrapper.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

import httpx

from core.config import (
    GEMINI_API_KEY,
    GEMINI_BASE_URL,
    HTTP_TIMEOUT_SEC,
    LLM_TEMPERATURE,
)

logger = logging.getLogger(__name__)


class ReasoningServiceError(Exception):
    """Raised when the reasoning service call fails; message carries the service text."""
    pass


@dataclass
class ReasoningRequest:
    """One structured-output request to the reasoning service."""
    model: str
    contents: str
    system_instruction: str
    response_schema: Dict[str, Any] = field(default_factory=dict)
    temperature: float = LLM_TEMPERATURE


class GeminiClient:
    """Client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = GEMINI_API_KEY,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SEC,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _build_payload(self, request: ReasoningRequest) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": request.contents}]}],
            "systemInstruction": {"parts": [{"text": request.system_instruction}]},
            "generationConfig": {
                "temperature": request.temperature,
                "responseMimeType": "application/json",
                "responseSchema": request.response_schema,
            },
        }

    async def generate_content(self, request: ReasoningRequest) -> str:
        """
        Send a structured-output request and return the raw response text.

        Args:
            request: Model, instruction body, system instruction and schema

        Returns:
            Text of the first candidate (expected to be JSON)

        Raises:
            ReasoningServiceError: on transport errors and non-2xx responses.
                The message embeds the HTTP status and the service error body
                so callers can recognise quota rejections.
        """
        if not self.api_key:
            raise ReasoningServiceError("Gemini API error: GEMINI_API_KEY is not configured")

        url = f"{self.base_url}/models/{request.model}:generateContent"
        try:
            response = await self.client.post(
                url,
                params={"key": self.api_key},
                json=self._build_payload(request),
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            raise ReasoningServiceError(
                f"Gemini API error: {e.response.status_code} {e.response.text}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ReasoningServiceError(f"Gemini API error: {str(e)}") from e

        return self._extract_text(result)

    @staticmethod
    def _extract_text(result: Any) -> str:
        """Concatenate text parts of the first candidate."""
        if not isinstance(result, dict):
            raise ReasoningServiceError(
                f"Gemini API error: unexpected response body of type {type(result).__name__}"
            )
        candidates = result.get("candidates") or []
        if not candidates:
            feedback = result.get("promptFeedback", {})
            logger.warning(f"Gemini returned no candidates: {feedback}")
            return ""
        candidate = candidates[0] if isinstance(candidates, list) else None
        if not isinstance(candidate, dict):
            raise ReasoningServiceError(f"Gemini API error: malformed candidate {candidate!r}")
        content = candidate.get("content")
        parts = (content.get("parts") or []) if isinstance(content, dict) else []
        return "".join(part.get("text") or "" for part in parts if isinstance(part, dict))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Global Gemini client instance
gemini = GeminiClient()

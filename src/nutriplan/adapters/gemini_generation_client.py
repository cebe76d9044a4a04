"""Gemini generateContent client for meal generation."""

from dataclasses import dataclass

import httpx

from nutriplan.services.generation import (
    FailureKind,
    GenerationClient,
    GenerationResult,
    classify_status,
)
from nutriplan.services.prompts import SYSTEM_PROMPT


@dataclass
class HttpxGeminiClient(GenerationClient):
    """HTTPX-backed Gemini client."""

    api_key: str
    model: str
    base_url: str
    http_client: httpx.AsyncClient
    name: str = "gemini"

    @classmethod
    def create(cls, api_key: str, model: str, base_url: str) -> "HttpxGeminiClient":
        """Create a Gemini client with a managed httpx session."""
        return cls(
            api_key=api_key,
            model=model,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    async def generate(
        self,
        prompt: str,
        *,
        schema: dict[str, object] | None,
        timeout_seconds: float,
    ) -> GenerationResult:
        """Request JSON output from Gemini.

        Gemini does not accept the full JSON schema dialect, so only the JSON
        response MIME type is requested and the schema is enforced locally.
        """
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.3,
                "responseMimeType": "application/json",
            },
        }
        try:
            response = await self.http_client.post(
                url,
                headers={"x-goog-api-key": self.api_key},
                json=payload,
                timeout=timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            return GenerationResult.failed(
                self.name, FailureKind.TIMEOUT, detail=str(exc) or "timed out"
            )
        except httpx.HTTPError as exc:
            return GenerationResult.failed(
                self.name, FailureKind.NETWORK, detail=str(exc) or type(exc).__name__
            )

        if response.status_code >= 400:
            return GenerationResult.failed(
                self.name,
                classify_status(response.status_code),
                status_code=response.status_code,
                detail=_error_message(response),
            )

        text = _candidate_text(response)
        if not text:
            return GenerationResult.failed(
                self.name,
                FailureKind.INVALID_JSON,
                status_code=response.status_code,
                detail="Gemini response has no candidate text",
            )
        return GenerationResult.success(self.name, text)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _candidate_text(response: httpx.Response) -> str | None:
    """Join the text parts of the first candidate, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    if not isinstance(candidates[0], dict):
        return None
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list):
        return None
    texts = [
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ]
    return "".join(texts).strip() or None


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return str(data["error"].get("message", ""))
    return response.text[:200]

"""OpenAI Responses API client for meal generation."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from nutriplan.services.generation import (
    FailureKind,
    GenerationClient,
    GenerationResult,
    classify_status,
)
from nutriplan.services.prompts import SYSTEM_PROMPT


@dataclass
class OpenAIGenerationClient(GenerationClient):
    """Generation client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    name: str = "openai"

    @classmethod
    def create(cls, api_key: str, model: str) -> "OpenAIGenerationClient":
        """Create an OpenAI generation client."""
        return cls(client=AsyncOpenAI(api_key=api_key, max_retries=0), model=model)

    async def generate(
        self,
        prompt: str,
        *,
        schema: dict[str, object] | None,
        timeout_seconds: float,
    ) -> GenerationResult:
        """Call OpenAI Responses API in JSON mode."""
        if schema is not None:
            text_format: dict[str, object] = {
                "type": "json_schema",
                "name": "meal_plan_response",
                "strict": False,
                "schema": schema,
            }
        else:
            text_format = {"type": "json_object"}
        request_payload: dict[str, object] = {
            "model": self.model,
            "instructions": SYSTEM_PROMPT,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            "text": {"format": text_format},
            "temperature": 0.3,
            "store": False,
            "timeout": timeout_seconds,
        }

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.APITimeoutError as exc:
            return GenerationResult.failed(
                self.name, FailureKind.TIMEOUT, detail=str(exc)
            )
        except openai.APIConnectionError as exc:
            return GenerationResult.failed(
                self.name, FailureKind.NETWORK, detail=str(exc)
            )
        except openai.APIStatusError as exc:
            return GenerationResult.failed(
                self.name,
                classify_status(exc.status_code),
                status_code=exc.status_code,
                detail=exc.message,
            )
        except openai.APIError as exc:
            return GenerationResult.failed(
                self.name, FailureKind.NETWORK, detail=exc.message
            )

        output_text = response.output_text
        if not output_text:
            return GenerationResult.failed(
                self.name,
                FailureKind.INVALID_JSON,
                detail="OpenAI returned an empty response",
            )
        return GenerationResult.success(self.name, output_text)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()

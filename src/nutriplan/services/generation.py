"""Provider chain for generative meal planning requests."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Generic, Protocol, TypeVar

from nutriplan.errors import MalformedResponseError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailureKind(StrEnum):
    """Typed classification of a failed provider call."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    BAD_REQUEST = "bad_request"
    SERVER_ERROR = "server_error"
    INVALID_JSON = "invalid_json"


# Failures after which the next provider in the chain is tried.
NEXT_PROVIDER_FAILURES = frozenset(
    {
        FailureKind.NETWORK,
        FailureKind.TIMEOUT,
        FailureKind.FORBIDDEN,
        FailureKind.SERVER_ERROR,
        FailureKind.INVALID_JSON,
    }
)


def classify_status(status_code: int) -> FailureKind:
    """Map an HTTP status code returned by a provider to a failure kind."""
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if status_code in (401, 403):
        return FailureKind.FORBIDDEN
    if status_code == 408:
        return FailureKind.TIMEOUT
    if 400 <= status_code < 500:
        return FailureKind.BAD_REQUEST
    return FailureKind.SERVER_ERROR


@dataclass(frozen=True)
class GenerationResult:
    """Result of one provider call: response text or a typed failure."""

    provider: str
    text: str | None = None
    failure: FailureKind | None = None
    status_code: int | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.text is not None

    @classmethod
    def success(cls, provider: str, text: str) -> "GenerationResult":
        return cls(provider=provider, text=text)

    @classmethod
    def failed(
        cls,
        provider: str,
        failure: FailureKind,
        *,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> "GenerationResult":
        return cls(
            provider=provider, failure=failure, status_code=status_code, detail=detail
        )

    def describe(self) -> str:
        """Short human-readable failure description."""
        if self.failure is None:
            return f"{self.provider}: ok"
        status = f" ({self.status_code})" if self.status_code is not None else ""
        return f"{self.provider}: {self.failure}{status}"


class GenerationClient(Protocol):
    """Interface for a generative text provider."""

    name: str

    async def generate(
        self,
        prompt: str,
        *,
        schema: dict[str, object] | None,
        timeout_seconds: float,
    ) -> GenerationResult:
        """Return the provider's response text or a classified failure."""


@dataclass(frozen=True)
class GenerationOutcome(Generic[T]):
    """Final result of running a prompt through the provider chain."""

    value: T | None
    provider: str | None
    attempts: tuple[GenerationResult, ...] = ()
    failure_reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None


@dataclass
class GenerationService:
    """Runs a prompt against providers in order, one call at a time."""

    clients: list[GenerationClient]
    rate_limit_retries: int = 2
    rate_limit_backoff_seconds: float = 2.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    async def generate(
        self,
        prompt: str,
        parse: Callable[[str], T],
        *,
        schema: dict[str, object] | None = None,
        timeout_seconds: float,
    ) -> GenerationOutcome[T]:
        """Return the first parsed provider response, or a failure outcome.

        ``parse`` raises ``MalformedResponseError`` for unusable text, which
        is recorded as an invalid-JSON failure of that provider.
        """
        attempts: list[GenerationResult] = []
        for client in self.clients:
            retries = 0
            while True:
                result = await self._call(client, prompt, schema, timeout_seconds)
                if result.ok:
                    try:
                        value = parse(result.text or "")
                    except MalformedResponseError as exc:
                        result = replace(
                            result,
                            text=None,
                            failure=FailureKind.INVALID_JSON,
                            detail=str(exc),
                        )
                    else:
                        attempts.append(result)
                        return GenerationOutcome(
                            value=value,
                            provider=client.name,
                            attempts=tuple(attempts),
                        )
                attempts.append(result)
                _logger.warning(
                    "Provider %s failed: %s (status=%s, detail=%s)",
                    client.name,
                    result.failure,
                    result.status_code,
                    result.detail,
                )
                if (
                    result.failure == FailureKind.RATE_LIMITED
                    and retries < self.rate_limit_retries
                ):
                    retries += 1
                    await self.sleep(self.rate_limit_backoff_seconds * retries)
                    continue
                break
            if result.failure not in NEXT_PROVIDER_FAILURES:
                return GenerationOutcome(
                    value=None,
                    provider=None,
                    attempts=tuple(attempts),
                    failure_reason=result.describe(),
                )
        reason = attempts[-1].describe() if attempts else "no providers configured"
        return GenerationOutcome(
            value=None, provider=None, attempts=tuple(attempts), failure_reason=reason
        )

    async def _call(
        self,
        client: GenerationClient,
        prompt: str,
        schema: dict[str, object] | None,
        timeout_seconds: float,
    ) -> GenerationResult:
        try:
            async with asyncio.timeout(timeout_seconds):
                return await client.generate(
                    prompt, schema=schema, timeout_seconds=timeout_seconds
                )
        except TimeoutError:
            return GenerationResult.failed(
                client.name,
                FailureKind.TIMEOUT,
                detail=f"no response within {timeout_seconds:g}s",
            )

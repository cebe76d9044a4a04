"""Tests for container wiring."""

import asyncio

import pytest

from nutriplan import containers
from nutriplan.adapters.gemini_generation_client import HttpxGeminiClient
from nutriplan.adapters.openai_generation_client import OpenAIGenerationClient
from nutriplan.config import parse_provider_order


class _FakeSupabase:
    def __init__(self, url: str, key: str) -> None:
        self.url = url
        self.key = key


def test_build_container_creates_services(settings, monkeypatch) -> None:
    monkeypatch.setattr(containers, "create_client", _FakeSupabase)

    container = containers.build_container(settings)

    assert container.planner_service is not None
    assert container.plan_store_service is not None
    clients = container.planner_service.generation.clients
    assert isinstance(clients[0], HttpxGeminiClient)
    assert isinstance(clients[1], OpenAIGenerationClient)
    asyncio.run(container.close_resources())


def test_primary_provider_comes_first(settings, monkeypatch) -> None:
    monkeypatch.setattr(containers, "create_client", _FakeSupabase)
    settings.primary_provider = "openai"

    container = containers.build_container(settings)

    names = [client.name for client in container.planner_service.generation.clients]
    assert names == ["openai", "gemini"]
    asyncio.run(container.close_resources())


@pytest.mark.parametrize(
    ("primary", "expected"),
    [
        ("openai", ["openai", "gemini"]),
        (" Gemini ", ["gemini", "openai"]),
        ("claude", ["gemini", "openai"]),
        (None, ["gemini", "openai"]),
    ],
)
def test_parse_provider_order(primary: str | None, expected: list[str]) -> None:
    assert parse_provider_order(primary) == expected

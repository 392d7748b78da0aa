"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from grounded_chat.errors import EmptyResponseError, GatewayError
from grounded_chat.runtime import Runtime, build_runtime
from grounded_chat.store.sql_store import SQLChatStore


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


class FakeGateway:
    """Deterministic stand-in for :class:`~grounded_chat.llm.gateway.LLMGateway`.

    Attributes are plain knobs that tests flip to script the next calls.
    """

    def __init__(self) -> None:
        self.vectors: dict[str, list[float]] = {}
        self.default_vector: list[float] = [1.0, 0.0]
        self.failing_embeds: set[str] = set()
        self.reply: str = "Paris is the capital of France."
        self.complete_error: Exception | None = None
        self.titles: list[str] = ["Capital Cities"]
        self.title_error: Exception | None = None

        self.embed_calls: list[str] = []
        self.prompts: list[list[Any]] = []
        self.title_seeds: list[str] = []
        self._lock = threading.Lock()

    def embed(self, text: str) -> list[float]:
        self.embed_calls.append(text)
        if text in self.failing_embeds:
            raise GatewayError("quota exceeded")
        return list(self.vectors.get(text, self.default_vector))

    def complete(self, messages: list[Any]) -> str:
        self.prompts.append(list(messages))
        if self.complete_error is not None:
            raise self.complete_error
        if not self.reply:
            raise EmptyResponseError("chat completion returned no text")
        return self.reply

    def summarize_title(self, seed: str) -> str:
        with self._lock:
            self.title_seeds.append(seed)
            if self.title_error is not None:
                raise self.title_error
            # Cycle so concurrent callers get distinct titles
            return self.titles[(len(self.title_seeds) - 1) % len(self.titles)]


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[SQLChatStore]:
    s = SQLChatStore(f"sqlite:///{tmp_path / 'chat.db'}")
    yield s
    s.close()


@pytest.fixture()
def runtime(store: SQLChatStore, gateway: FakeGateway) -> Iterator[Runtime]:
    rt = build_runtime(store=store, gateway=gateway)  # type: ignore[arg-type]
    yield rt
    rt.titles.shutdown(wait=True)

"""Unit tests for model client construction.

Clients are only built, never called, so a dummy API key is enough.
"""

from __future__ import annotations

import pytest
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from grounded_chat.config import settings
from grounded_chat.llm.client import _connection_kwargs, get_chat_model, get_embeddings, get_title_model


@pytest.fixture(autouse=True)
def _dummy_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "llm_base_url", "")


class TestChatModel:
    def test_timeout_and_retries(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "generation_timeout", 12.5)
        model = get_chat_model()

        assert isinstance(model, ChatOpenAI)
        assert model.request_timeout == 12.5
        # A retried timeout would double the wait before the fallback reply
        assert model.max_retries == 0

    def test_explicit_overrides(self) -> None:
        model = get_chat_model(model="gpt-test", temperature=0.9, max_tokens=7, timeout=3.0)

        assert model.model_name == "gpt-test"
        assert model.temperature == 0.9
        assert model.max_tokens == 7
        assert model.request_timeout == 3.0

    def test_title_model(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "title_model_name", "")
        model = get_title_model()

        assert model.model_name == settings.llm_model_name
        assert model.temperature == 0.3
        assert model.max_tokens == 20
        assert model.max_retries == 0


class TestConnection:
    def test_cloud_uses_api_key(self) -> None:
        assert _connection_kwargs() == {"api_key": "sk-test"}

    def test_local_endpoint_without_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "llm_base_url", "http://localhost:8000/v1")
        monkeypatch.setattr(settings, "openai_api_key", "")

        assert _connection_kwargs() == {"base_url": "http://localhost:8000/v1", "api_key": "EMPTY"}

    def test_default_embeddings(self) -> None:
        embeddings = get_embeddings()
        assert isinstance(embeddings, OpenAIEmbeddings)
        assert embeddings.model == settings.embedding_model

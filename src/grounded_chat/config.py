"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for a local gateway)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible API. Leave empty to use OpenAI cloud, "
            "e.g. 'http://localhost:8000/v1' for a local vLLM server."
        ),
    )
    llm_temperature: float = 0.0
    generation_timeout: float = Field(default=30.0, description="Seconds before a completion call is abandoned")

    # Title derivation
    title_model_name: str = ""
    title_temperature: float = 0.3
    title_max_tokens: int = 20
    title_workers: int = 4

    # Embedding
    embedding_provider: Literal["openai", "huggingface"] = "openai"
    embedding_model: str = "text-embedding-3-small"
    embed_interval_seconds: float = Field(
        default=0.04,
        description="Minimum pause between embedding calls during ingestion (~1500 calls/min)",
    )

    # Retrieval
    similarity_threshold: float = 0.7
    top_k: int = 3
    history_size: int = 5

    # Persistence / ingestion
    database_url: str = "sqlite:///grounded_chat.db"
    data_file: str = "data.md"

    # Chat
    max_message_chars: int = 4000

    # Serving
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import `settings` wherever needed.
settings = Settings()

"""
Application configuration loaded from environment variables.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "DASHSCOPE_API_KEY"),
    )
    embedding_model_name: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL_NAME")
    embedding_base_url: str | None = Field(default=None, alias="EMBEDDING_BASE_URL")

    chroma_port: int = Field(default=8000, alias="CHROMA_PORT")
    chroma_server_url: str | None = Field(default=None, alias="CHROMA_SERVER_URL")
    chroma_data_path: str = Field(default="./chroma_data", alias="CHROMA_DATA_PATH")
    chroma_collection: str = Field(default="documents", alias="CHROMA_COLLECTION")
    chroma_container_name: str = Field(default="chromadb", alias="CHROMA_CONTAINER_NAME")
    chroma_image: str = Field(default="chromadb/chroma", alias="CHROMA_IMAGE")
    chroma_distance: str = Field(default="cosine", alias="CHROMA_DISTANCE")
    chroma_container_data_path: str = Field(default="/data", alias="CHROMA_CONTAINER_DATA_PATH")
    chroma_heartbeat_path: str = Field(default="/api/v2/heartbeat", alias="CHROMA_HEARTBEAT_PATH")

    engine_health_retries: int = Field(default=10, ge=1, alias="ENGINE_HEALTH_RETRIES")
    engine_health_interval: float = Field(default=1.0, ge=0, alias="ENGINE_HEALTH_INTERVAL")
    engine_autostart: bool = Field(default=True, alias="ENGINE_AUTOSTART")
    engine_stop_on_shutdown: bool = Field(default=False, alias="ENGINE_STOP_ON_SHUTDOWN")

    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=3000, alias="APP_PORT")

    @property
    def engine_url(self) -> str:
        if self.chroma_server_url:
            return self.chroma_server_url.rstrip("/")
        return f"http://localhost:{self.chroma_port}"

    @property
    def data_dir(self) -> Path:
        return Path(self.chroma_data_path).expanduser().resolve()


settings = Settings()


def setup_logging() -> logging.Logger:
    """
    Configure base logging for the app.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    return logging.getLogger("docstore")


def public_settings() -> Dict[str, Any]:
    """
    Return settings without secrets for safe logging/inspection.
    """
    return settings.model_dump(
        exclude={"openai_api_key"},
        exclude_none=True,
    )


__all__ = ["Settings", "settings", "setup_logging", "public_settings"]

"""Runtime configuration for the docrag services."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="docrag_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"
    data_dir: Path = Path("./data")

    # Raw upload storage
    object_store_backend: Literal["local", "s3"] = "local"
    object_store_dir: Path | None = None  # defaults to <data_dir>/uploads
    public_base_url: str | None = None  # when set, local file URLs are served from here
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_prefix: str = ""

    chroma_persist_dir: Path = Path("./.chroma")
    chroma_collection: str = "docrag-documents"
    chroma_host: str | None = None
    chroma_port: int | None = None
    chroma_ssl: bool = False

    embedding_model: str = "BAAI/bge-small-en-v1.5"
    embedding_dim: int = 384
    embedding_max_input_chars: int | None = 8000
    use_model_embeddings: bool = False

    generator_model: str = "Qwen/Qwen2.5-1.8B-Instruct"
    generator_max_new_tokens: int = 512
    generator_temperature: float = 0.3
    use_model_generator: bool = False

    chunk_size: int = 800
    chunk_overlap: int = 100
    retrieval_top_k: int = 5
    retrieval_max_top_k: int = 20
    context_delimiter: str = "\n---\n"

    # Boundary timeouts (seconds); None disables the timeout for that service
    object_store_timeout_seconds: float | None = 30.0
    embedding_timeout_seconds: float | None = 60.0
    generation_timeout_seconds: float | None = 120.0

    # Upload safety
    max_upload_size_mb: int = 25

    # CORS
    cors_allow_origins: tuple[str, ...] = ()  # e.g., ("*") to allow all
    cors_allow_credentials: bool = False
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "DELETE", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("*",)

    @property
    def resolved_object_store_dir(self) -> Path:
        return self.object_store_dir or self.data_dir / "uploads"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()

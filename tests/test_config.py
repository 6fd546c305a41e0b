from __future__ import annotations

from pathlib import Path

from docrag.config import Settings, get_settings


def test_pipeline_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.chunk_size == 800
    assert settings.chunk_overlap == 100
    assert settings.retrieval_top_k == 5
    assert settings.context_delimiter == "\n---\n"
    assert settings.object_store_backend == "local"


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("DOCRAG_CHUNK_SIZE", "400")
    monkeypatch.setenv("DOCRAG_EMBEDDING_TIMEOUT_SECONDS", "5")
    settings = Settings(_env_file=None)
    assert settings.chunk_size == 400
    assert settings.embedding_timeout_seconds == 5.0


def test_upload_dir_defaults_under_data_dir(tmp_path: Path) -> None:
    settings = Settings(_env_file=None, data_dir=tmp_path)
    assert settings.resolved_object_store_dir == tmp_path / "uploads"
    assert settings.max_upload_bytes == 25 * 1024 * 1024


def test_get_settings_override_does_not_touch_cache() -> None:
    cached = get_settings()
    overridden = get_settings({"retrieval_top_k": 9})
    assert overridden.retrieval_top_k == 9
    assert get_settings() is cached

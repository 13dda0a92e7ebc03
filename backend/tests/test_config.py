"""Tests for settings loading and path resolution."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from sharehub.config import load_config


def test_missing_settings_file_uses_defaults(tmp_path):
    cfg = load_config(settings_path=tmp_path / "absent.yaml")

    assert cfg.server.port == 3000
    assert cfg.presence.default_name == "Anonymous"
    assert cfg.presence.max_name_length == 64
    assert cfg.delivery.outbox_size == 256
    assert cfg.uploads.max_file_size_bytes == 50 * 1024 * 1024
    assert cfg.logging.level == "info"


def test_yaml_overrides_defaults(tmp_path):
    settings_file = tmp_path / "sharehub.settings.yaml"
    settings_file.write_text(
        "server:\n"
        "  port: 8080\n"
        "  allowed_origins: [\"http://localhost:5173\"]\n"
        "presence:\n"
        "  default_name: Guest\n"
        "uploads:\n"
        "  max_file_size_mb: 2\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding="utf-8",
    )

    cfg = load_config(settings_path=settings_file)

    assert cfg.server.port == 8080
    assert cfg.server.allowed_origins == ["http://localhost:5173"]
    assert cfg.presence.default_name == "Guest"
    assert cfg.uploads.max_file_size_bytes == 2 * 1024 * 1024
    assert cfg.logging.level == "debug"


def test_env_var_selects_settings_file(tmp_path, monkeypatch):
    settings_file = tmp_path / "custom.yaml"
    settings_file.write_text("server:\n  port: 4000\n", encoding="utf-8")
    monkeypatch.setenv("SHAREHUB_SETTINGS", str(settings_file))

    assert load_config().server.port == 4000


def test_relative_upload_paths_resolve_from_settings_dir(tmp_path):
    settings_file = tmp_path / "sharehub.settings.yaml"
    settings_file.write_text(
        "uploads:\n"
        "  upload_dir: data/uploads\n"
        "  db_path: data/files.duckdb\n",
        encoding="utf-8",
    )

    cfg = load_config(settings_path=settings_file)

    base = tmp_path.resolve()
    assert Path(cfg.uploads.upload_dir) == base / "data" / "uploads"
    assert Path(cfg.uploads.db_path) == base / "data" / "files.duckdb"


def test_absolute_and_in_memory_paths_are_preserved(tmp_path):
    absolute_dir = tmp_path / "absolute" / "uploads"
    settings_file = tmp_path / "sharehub.settings.yaml"
    settings_file.write_text(
        "uploads:\n"
        f"  upload_dir: {absolute_dir}\n"
        "  db_path: \":memory:\"\n",
        encoding="utf-8",
    )

    cfg = load_config(settings_path=settings_file)

    assert Path(cfg.uploads.upload_dir) == absolute_dir
    assert cfg.uploads.db_path == ":memory:"


@pytest.mark.parametrize("section", [
    "logging:\n  level: verbose\n",
    "presence:\n  max_name_length: 0\n",
    "delivery:\n  outbox_size: 0\n",
])
def test_invalid_values_are_rejected(tmp_path, section):
    settings_file = tmp_path / "sharehub.settings.yaml"
    settings_file.write_text(section, encoding="utf-8")

    with pytest.raises(ValidationError):
        load_config(settings_path=settings_file)

"""Tests for configuration loading."""

import json
import os
from pathlib import Path

import pytest

from chunkcord.config import Config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate from CHUNKCORD_* variables and any .env in the working directory."""
    for key in list(os.environ):
        if key.startswith("CHUNKCORD_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


class TestConfig:

    def test_defaults(self) -> None:
        config = Config()
        assert config.chunk_size == 10 * 1024 * 1024
        assert config.api_port == 1234
        assert config.backend == "discord"
        assert config.verify_hash is True

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHUNKCORD_CHUNK_SIZE", "1024")
        monkeypatch.setenv("CHUNKCORD_BACKEND", "memory")
        monkeypatch.setenv("CHUNKCORD_VERIFY_HASH", "false")
        monkeypatch.setenv("CHUNKCORD_CORS_ORIGINS", "http://a, http://b")

        config = Config.from_env()

        assert config.chunk_size == 1024
        assert config.backend == "memory"
        assert config.verify_hash is False
        assert config.cors_origins == ["http://a", "http://b"]

    def test_file_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        original = Config(chunk_size=2048, history_limit=500, data_dir=tmp_path / "d")
        original.save(path)

        loaded = Config.from_file(path)
        assert loaded.to_dict() == original.to_dict()

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert Config.from_file(tmp_path / "absent.json").to_dict() == Config().to_dict()

    def test_env_overrides_file(self, tmp_path: Path,
                                monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"chunk_size": 2048, "api_port": 9000}))
        monkeypatch.setenv("CHUNKCORD_CHUNK_SIZE", "4096")

        config = load_config(path)

        assert config.chunk_size == 4096
        assert config.api_port == 9000

    def test_env_equal_to_default_still_overrides_file(
            self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"chunk_size": 4, "verify_hash": False}))
        monkeypatch.setenv("CHUNKCORD_CHUNK_SIZE", str(10 * 1024 * 1024))
        monkeypatch.setenv("CHUNKCORD_VERIFY_HASH", "true")

        config = load_config(path)

        assert config.chunk_size == 10 * 1024 * 1024
        assert config.verify_hash is True

    def test_unset_env_keeps_file_value(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"chunk_size": 4}))
        assert load_config(path).chunk_size == 4

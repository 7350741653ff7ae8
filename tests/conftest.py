import json
from pathlib import Path

import pytest

from keysmith.models import KeysmithConfig, SyncConfig


@pytest.fixture
def write_file(tmp_path: Path):
    """Write a text file below tmp_path, creating parent directories."""

    def _write(relative: str, text: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_locale(tmp_path: Path):
    """Write locales/<locale>.json below tmp_path."""

    def _write(locale: str, data: dict) -> Path:
        path = tmp_path / "locales" / f"{locale}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def read_locale(tmp_path: Path):
    def _read(locale: str) -> dict:
        path = tmp_path / "locales" / f"{locale}.json"
        return json.loads(path.read_text(encoding="utf-8"))

    return _read


@pytest.fixture
def make_config():
    """Config scanning src/**/*.py with English source and Finnish target."""

    def _make(**overrides) -> KeysmithConfig:
        sync = overrides.pop("sync", None) or SyncConfig()
        values = {
            "include": ["src/**/*.py"],
            "exclude": [],
            "target_languages": ["fi"],
        }
        values.update(overrides)
        return KeysmithConfig(sync=sync, **values)

    return _make

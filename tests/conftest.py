"""Shared fixtures for remote_config tests."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable

import pytest

from remote_config.core import dependencies

DB_YAML = """\
connection:
  host: "localhost"
  port: 5432
  options: null
replicas:
  - host: replica-1
    port: 5433
  - host: replica-2
    port: 5434
features:
  caching: true
  ratio: "0.75"
"""


class FakeClock:
    """Manually advanced clock returning seconds as a float."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, *, seconds: float = 0, minutes: float = 0, hours: float = 0) -> None:
        self.now += seconds + minutes * 60 + hours * 3600


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_zip() -> Callable[[dict[str, str]], bytes]:
    """Build an in-memory zip archive from a {name: text} mapping."""

    def _make_zip(files: dict[str, str]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            for name, content in files.items():
                zf.writestr(name, content)
        return buffer.getvalue()

    return _make_zip


@pytest.fixture
def bundle_dir(tmp_path: Path) -> Path:
    """An extracted bundle holding db.yaml and a nested services/api.yaml."""
    root = tmp_path / "bundle"
    (root / "services").mkdir(parents=True)
    (root / "db.yaml").write_text(DB_YAML, encoding="utf-8")
    (root / "services" / "api.yaml").write_text("server:\n  port: 8080\n", encoding="utf-8")
    return root


@pytest.fixture
def clean_dependencies():
    """Reset process-wide settings and services around a test."""
    dependencies.reset_dependencies()
    yield
    dependencies.reset_dependencies()

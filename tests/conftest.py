from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a fake upstream host rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def clone_dir(tmp_path: Path) -> Path:
    """Parent directory for temporary checkouts so tests can assert cleanup."""
    path = tmp_path / "clones"
    path.mkdir()
    return path


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write a configuration document and return its path."""

    def _write(data: Dict[str, Any] | str, name: str = "config.json") -> Path:
        path = tmp_path / name
        text = data if isinstance(data, str) else json.dumps(data)
        path.write_text(text, encoding="utf-8")
        return path

    return _write

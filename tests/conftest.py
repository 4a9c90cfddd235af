from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from techdocs.config import ExclusionConfig
from techdocs.settings import Settings

TreeFactory = Callable[[dict[str, str | bytes]], Path]


@pytest.fixture
def make_tree(tmp_path: Path) -> TreeFactory:
    """Return a helper creating files (and parent directories) under a fresh root."""
    root = tmp_path / "repo"
    root.mkdir()

    def _make(files: dict[str, str | bytes]) -> Path:
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def exclusion_config() -> ExclusionConfig:
    # the developer's global git ignore must not leak into tests
    return ExclusionConfig(git_global=False)


@pytest.fixture
def settings(exclusion_config: ExclusionConfig) -> Settings:
    return Settings(exclusion=exclusion_config, api_key="test-key")


@pytest.fixture(autouse=True)
def isolated_git_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global git ignore lookup at an empty directory."""
    xdg = tmp_path / "xdg"
    xdg.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    return xdg

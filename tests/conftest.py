"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import shutil
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from modvault.core.config import ModvaultConfig
from modvault.mods.models import ModCategory, ModRecord
from modvault.mods.store import ModStore


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config and state lookups inside the test's temp directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))


def write_mod(path: Path, content: bytes | str = b"mod") -> Path:
    """Create a mod file (and its parent directories)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        content = content.encode()
    path.write_bytes(content)
    return path


def make_record(**overrides: Any) -> ModRecord:
    """Build a ModRecord with sensible defaults for tests."""
    values: dict[str, Any] = {
        "id": "abc123def456",
        "display_name": "Better Build",
        "file_name": "BetterBuild.package",
        "absolute_path": "/mods/BetterBuild.package",
        "category": ModCategory.BUILD,
        "enabled": True,
        "file_size_bytes": 3,
        "content_hash": "deadbeef",
        "modified_at": datetime(2026, 1, 10, 12, 0, tzinfo=UTC),
        "installed_at": datetime(2026, 1, 10, 12, 5, tzinfo=UTC),
    }
    values.update(overrides)
    return ModRecord(**values)


@pytest.fixture
def mod_file() -> Any:
    """Factory fixture wrapping write_mod."""
    return write_mod


@pytest.fixture
def record_factory() -> Any:
    """Factory fixture wrapping make_record."""
    return make_record


@pytest.fixture
def git_required() -> None:
    """Skip the test when git is not installed."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")


@pytest.fixture
def mods_dir(tmp_path: Path) -> Path:
    """A mods directory with a handful of enabled, disabled and ignored files."""
    root = tmp_path / "Mods"
    write_mod(root / "[Zerbu] Build_Mode_Tweaks_v1.2.package", b"build tweaks")
    write_mod(root / "Hair" / "LongHair_CC.package", b"long hair")
    write_mod(root / "Scripts" / "mc_cmd_center.ts4script", b"mccc script")
    write_mod(root / "Career_Overhaul.package.disabled", b"careers")
    write_mod(root / "readme.txt", b"not a mod")
    return root


@pytest.fixture
def config(tmp_path: Path, mods_dir: Path) -> ModvaultConfig:
    """Configuration pointing at the test mods directory."""
    return ModvaultConfig(
        mods_path=mods_dir,
        database_path=tmp_path / "state" / "mods.db",
        debounce_seconds=0.05,
    )


@pytest.fixture
def store() -> Iterator[ModStore]:
    """An in-memory record store."""
    mod_store = ModStore.in_memory()
    yield mod_store
    mod_store.close()

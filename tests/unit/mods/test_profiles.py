"""Unit tests for ProfileManager."""

from pathlib import Path

import pytest
from modvault.core.config import ModvaultConfig
from modvault.core.errors import (
    AlreadyExistsError,
    FilesystemOperationError,
    InvalidNameError,
    NotFoundError,
)
from modvault.mods.activation import ActivationManager
from modvault.mods.models import ModRecord
from modvault.mods.profiles import ProfileManager
from modvault.mods.scanner import ModScanner
from modvault.mods.store import ModStore


@pytest.fixture
def root(config: ModvaultConfig, mods_dir: Path, store: ModStore) -> Path:
    """The scanned mods directory."""
    ModScanner(config).scan(mods_dir, store)
    return mods_dir.resolve()


@pytest.fixture
def profiles(config: ModvaultConfig, store: ModStore, root: Path) -> ProfileManager:
    return ProfileManager(store, ActivationManager(store, ModScanner(config)))


def _record(store: ModStore, prefix: str) -> ModRecord:
    for record in store.list_mods():
        if record.file_name.startswith(prefix):
            return record
    msg = f"no record for {prefix}"
    raise AssertionError(msg)


def _enabled(store: ModStore) -> set[str]:
    return {r.id for r in store.list_mods(enabled=True)}


class TestCreate:
    """Tests for creating profiles."""

    def test_defaults_to_enabled_mods(
        self, profiles: ProfileManager, store: ModStore, root: Path
    ) -> None:
        profile = profiles.create("current", root)

        assert set(profile.mod_ids) == _enabled(store)
        assert profile.active is False
        assert profiles.get("current") == profile

    def test_explicit_ids_deduplicated(
        self, profiles: ProfileManager, store: ModStore, root: Path
    ) -> None:
        hair = _record(store, "LongHair_CC")

        profile = profiles.create("hair", root, mod_ids=[hair.id, hair.id], branch="")

        assert profile.mod_ids == (hair.id,)
        assert profile.branch is None

    def test_name_is_trimmed(self, profiles: ProfileManager, root: Path) -> None:
        assert profiles.create("  builds ", root).name == "builds"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name(self, profiles: ProfileManager, root: Path, name: str) -> None:
        with pytest.raises(InvalidNameError):
            profiles.create(name, root)

    def test_duplicate_name(self, profiles: ProfileManager, root: Path) -> None:
        profiles.create("current", root)

        with pytest.raises(AlreadyExistsError, match="current"):
            profiles.create("current", root, mod_ids=[])

    def test_unknown_mod_id(self, profiles: ProfileManager, root: Path) -> None:
        """Every listed id must belong to a known mod."""
        with pytest.raises(NotFoundError, match="0123456789ab"):
            profiles.create("broken", root, mod_ids=["0123456789ab"])

        assert profiles.list_profiles() == []


class TestApply:
    """Tests for applying profiles."""

    def test_enables_listed_and_disables_rest(
        self, profiles: ProfileManager, store: ModStore, root: Path
    ) -> None:
        career = _record(store, "Career_Overhaul")
        hair = _record(store, "LongHair_CC")
        profiles.create("careers", root, mod_ids=[career.id, hair.id])

        result = profiles.apply("careers", root)

        assert result.enabled == (career.id,)
        assert len(result.disabled) == 2
        assert result.missing == ()
        assert result.changed is True
        assert _enabled(store) == {career.id, hair.id}
        assert (root / "Career_Overhaul.package").exists()
        assert (root / "Scripts" / "mc_cmd_center.ts4script.disabled").exists()

    def test_marks_profile_active(self, profiles: ProfileManager, root: Path) -> None:
        first = profiles.create("first", root)
        profiles.create("second", root)

        profiles.apply("second", root)
        result = profiles.apply("first", root)

        assert result.profile.id == first.id
        assert result.profile.active is True
        assert result.profile.last_used_at is not None
        assert profiles.active() == result.profile

    def test_without_activation(self, profiles: ProfileManager, root: Path) -> None:
        profiles.create("current", root)

        result = profiles.apply("current", root, activate=False)

        assert result.changed is False
        assert profiles.active() is None

    def test_reports_missing_mods(
        self, profiles: ProfileManager, store: ModStore, root: Path
    ) -> None:
        """Mods that were removed since the profile was saved are listed."""
        hair = _record(store, "LongHair_CC")
        profiles.create("hair", root, mod_ids=[hair.id])
        store.delete(hair.id)

        result = profiles.apply("hair", root)

        assert result.missing == (hair.id,)
        assert _enabled(store) == set()

    def test_unknown_profile(self, profiles: ProfileManager, root: Path) -> None:
        with pytest.raises(NotFoundError, match="Profile not found"):
            profiles.apply("nope", root)

    def test_failure_undoes_earlier_changes(
        self, profiles: ProfileManager, store: ModStore, root: Path
    ) -> None:
        """A rename that fails halfway leaves every mod as it was."""
        before = {r.id: (r.enabled, r.absolute_path) for r in store.list_mods()}
        profiles.create("empty", root, mod_ids=[])
        (root / "Scripts" / "mc_cmd_center.ts4script.disabled").write_bytes(b"in the way")

        with pytest.raises(FilesystemOperationError, match="target already exists"):
            profiles.apply("empty", root)

        assert {r.id: (r.enabled, r.absolute_path) for r in store.list_mods()} == before
        assert (root / "Hair" / "LongHair_CC.package").exists()
        assert profiles.active() is None

    def test_revert(self, profiles: ProfileManager, store: ModStore, root: Path) -> None:
        before = _enabled(store)
        profiles.create("empty", root, mod_ids=[])
        result = profiles.apply("empty", root, activate=False)

        profiles.revert(result)

        assert _enabled(store) == before


class TestCaptureAndDelete:
    """Tests for capture and delete."""

    def test_capture_replaces_mod_set(
        self, profiles: ProfileManager, store: ModStore, root: Path
    ) -> None:
        created = profiles.create("snap", root, mod_ids=[])

        captured = profiles.capture("snap", root)

        assert captured.id == created.id
        assert set(captured.mod_ids) == _enabled(store)
        assert profiles.get("snap").mod_ids == captured.mod_ids

    def test_delete_leaves_mods(
        self, profiles: ProfileManager, store: ModStore, root: Path
    ) -> None:
        before = _enabled(store)
        profiles.create("current", root)

        profiles.delete("current")

        assert profiles.list_profiles() == []
        assert _enabled(store) == before

    def test_delete_unknown(self, profiles: ProfileManager) -> None:
        with pytest.raises(NotFoundError):
            profiles.delete("nope")

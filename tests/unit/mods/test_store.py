"""Unit tests for the mod record store."""

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest
from modvault.core.errors import NotFoundError, RecordStoreError
from modvault.mods.models import ModCategory, ModRecord, Profile
from modvault.mods.store import ModStore
from sqlalchemy import text

RecordFactory = Callable[..., ModRecord]


def _insert_raw(store: ModStore, **overrides: object) -> None:
    """Write a row with plain SQL, bypassing every model-level check."""
    values: dict[str, object] = {
        "id": "raw000000001",
        "display_name": "Raw",
        "file_name": "Raw.package",
        "absolute_path": "/mods/Raw.package",
        "category": "other",
        "enabled": True,
        "file_size_bytes": 1,
        "content_hash": "abc",
        "modified_at": "2026-01-01 00:00:00.000000",
        "installed_at": "2026-01-01 00:00:00.000000",
        "conflicts": "[]",
        "dependencies": "[]",
    }
    values.update(overrides)
    columns = ", ".join(values)
    params = ", ".join(f":{name}" for name in values)
    with store._engine.begin() as conn:
        conn.execute(text(f"INSERT INTO mods ({columns}) VALUES ({params})"), values)


class TestModStoreBasics:
    """Tests for reading and writing records."""

    def test_upsert_and_get(self, store: ModStore, record_factory: RecordFactory) -> None:
        """A stored record reads back equal, with UTC timestamps."""
        record = record_factory(
            last_enabled_at=datetime(2026, 1, 11, 8, 30, 15, 123456, tzinfo=UTC),
            author="Zerbu",
            version="1.2",
            conflicts=("x", "y"),
            dependencies=("xml injector",),
        )
        store.upsert(record)

        loaded = store.get(record.id)

        assert loaded == record
        assert loaded is not None
        assert loaded.modified_at.tzinfo is not None

    def test_get_missing_returns_none(self, store: ModStore) -> None:
        """get returns None for unknown ids."""
        assert store.get("nope") is None

    def test_require_missing_raises(self, store: ModStore) -> None:
        """require raises NotFoundError for unknown ids."""
        with pytest.raises(NotFoundError):
            store.require("nope")

    def test_upsert_replaces(self, store: ModStore, record_factory: RecordFactory) -> None:
        """Upserting the same id replaces the record."""
        store.upsert(record_factory())
        store.upsert(record_factory(display_name="Renamed", file_size_bytes=99))

        loaded = store.require("abc123def456")
        assert loaded.display_name == "Renamed"
        assert loaded.file_size_bytes == 99
        assert store.count() == 1

    def test_path_is_unique(self, store: ModStore, record_factory: RecordFactory) -> None:
        """Two ids cannot share one path."""
        store.upsert(record_factory())
        with pytest.raises(RecordStoreError, match="already belongs"):
            store.upsert(record_factory(id="other0000001"))

    def test_get_by_path(self, store: ModStore, record_factory: RecordFactory) -> None:
        """Records can be looked up by absolute path."""
        store.upsert(record_factory())
        assert store.get_by_path("/mods/BetterBuild.package") is not None
        assert store.get_by_path("/mods/missing.package") is None

    def test_find_by_hash(self, store: ModStore, record_factory: RecordFactory) -> None:
        """Records sharing a hash are returned in id order."""
        store.upsert(record_factory(id="bbb", absolute_path="/mods/b.package"))
        store.upsert(record_factory(id="aaa", absolute_path="/mods/a.package"))
        store.upsert(record_factory(id="ccc", absolute_path="/mods/c.package", content_hash="x"))

        assert [r.id for r in store.find_by_hash("deadbeef")] == ["aaa", "bbb"]
        assert store.find_by_hash("") == []

    def test_delete(self, store: ModStore, record_factory: RecordFactory) -> None:
        """delete reports whether a record existed."""
        store.upsert(record_factory())
        assert store.delete("abc123def456") is True
        assert store.delete("abc123def456") is False
        assert store.count() == 0


class TestListMods:
    """Tests for list_mods filtering and ordering."""

    @pytest.fixture
    def populated(self, store: ModStore, record_factory: RecordFactory) -> ModStore:
        store.upsert(record_factory(id="1", display_name="zeta", absolute_path="/mods/z.package"))
        store.upsert(
            record_factory(
                id="2",
                display_name="Alpha",
                absolute_path="/mods/a.package.disabled",
                enabled=False,
            )
        )
        store.upsert(record_factory(id="3", display_name="beta", absolute_path="/other/b.package"))
        return store

    def test_sorted_by_display_name(self, populated: ModStore) -> None:
        """Records are ordered case-insensitively by display name."""
        assert [r.id for r in populated.list_mods()] == ["2", "3", "1"]

    def test_filter_enabled(self, populated: ModStore) -> None:
        """The enabled filter selects one state."""
        assert [r.id for r in populated.list_mods(enabled=False)] == ["2"]
        assert [r.id for r in populated.list_mods(enabled=True)] == ["3", "1"]

    def test_filter_under(self, populated: ModStore) -> None:
        """The under filter keeps records below a directory."""
        assert [r.id for r in populated.list_mods(under=Path("/mods"))] == ["2", "1"]


class TestUpdateLocation:
    """Tests for update_location."""

    def test_moves_record(self, store: ModStore, record_factory: RecordFactory) -> None:
        """Path and enabled flag change together."""
        store.upsert(record_factory())

        updated = store.update_location(
            "abc123def456",
            path="/mods/BetterBuild.package.disabled",
            enabled=False,
            last_enabled_at=None,
        )

        assert updated.enabled is False
        assert store.require("abc123def456") == updated

    def test_sets_last_enabled_at(self, store: ModStore, record_factory: RecordFactory) -> None:
        """Enabling records the timestamp."""
        store.upsert(record_factory(enabled=False, absolute_path="/mods/x.package.disabled"))
        now = datetime(2026, 2, 1, 9, 0, tzinfo=UTC)

        updated = store.update_location(
            "abc123def456", path="/mods/x.package", enabled=True, last_enabled_at=now
        )

        assert updated.last_enabled_at == now

    def test_inconsistent_update_rejected(
        self, store: ModStore, record_factory: RecordFactory
    ) -> None:
        """An update that would break the path/flag invariant is not stored."""
        record = record_factory()
        store.upsert(record)

        with pytest.raises(RecordStoreError):
            store.update_location(
                record.id, path="/mods/x.package", enabled=False, last_enabled_at=None
            )

        assert store.require(record.id) == record

    def test_missing_record(self, store: ModStore) -> None:
        """Updating an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.update_location("nope", path="/x.package", enabled=True, last_enabled_at=None)

    def test_drops_stale_record_at_target(
        self, store: ModStore, record_factory: RecordFactory
    ) -> None:
        """A different record registered at the target path is removed."""
        store.upsert(record_factory())
        store.upsert(
            record_factory(
                id="stale0000001",
                absolute_path="/mods/BetterBuild.package.disabled",
                enabled=False,
            )
        )

        store.update_location(
            "abc123def456",
            path="/mods/BetterBuild.package.disabled",
            enabled=False,
            last_enabled_at=None,
        )

        assert store.get("stale0000001") is None
        assert store.count() == 1


class TestMalformedRows:
    """Persisted data that does not form a valid record fails at load."""

    def test_unknown_category(self, store: ModStore) -> None:
        """An unknown category raises RecordStoreError."""
        _insert_raw(store, category="weapons")
        with pytest.raises(RecordStoreError, match="unknown category"):
            store.get("raw000000001")

    def test_bad_conflicts_json(self, store: ModStore) -> None:
        """A conflicts column that is not a JSON string array is rejected."""
        _insert_raw(store, conflicts='{"a": 1}')
        with pytest.raises(RecordStoreError, match="conflicts"):
            store.list_mods()

    def test_invalid_json(self, store: ModStore) -> None:
        """A dependencies column that is not JSON is rejected."""
        _insert_raw(store, dependencies="not json")
        with pytest.raises(RecordStoreError, match="dependencies"):
            store.get("raw000000001")

    def test_inconsistent_state(self, store: ModStore) -> None:
        """A row whose enabled flag contradicts its path is rejected."""
        _insert_raw(store, enabled=False)
        with pytest.raises(RecordStoreError, match="Inconsistent"):
            store.get("raw000000001")

    def test_naive_timestamps_are_utc(self, store: ModStore) -> None:
        """Timestamps stored without timezone are read as UTC."""
        _insert_raw(store)
        record = store.require("raw000000001")
        assert record.modified_at == datetime(2026, 1, 1, tzinfo=UTC)
        assert record.category == ModCategory.OTHER
        assert record.conflicts == ()


class TestFileBackedStore:
    """Tests for the SQLite file store."""

    def test_persists_across_instances(
        self, tmp_path: Path, record_factory: RecordFactory
    ) -> None:
        """Records survive reopening the database."""
        db = tmp_path / "nested" / "mods.db"
        first = ModStore(db)
        first.upsert(record_factory())
        first.close()

        second = ModStore(db)
        try:
            assert second.require("abc123def456").file_name == "BetterBuild.package"
        finally:
            second.close()

    def test_requires_path_or_engine(self) -> None:
        """A store needs somewhere to keep its data."""
        with pytest.raises(ValueError):
            ModStore()


def _profile(name: str, **overrides: object) -> Profile:
    values: dict[str, object] = {
        "id": f"p-{name}",
        "name": name,
        "mod_ids": ("abc123def456",),
        "created_at": datetime(2026, 2, 1, 12, 0, tzinfo=UTC),
    }
    values.update(overrides)
    return Profile(**values)  # type: ignore[arg-type]


class TestProfiles:
    """Tests for profile persistence."""

    def test_save_and_list_by_name(self, store: ModStore) -> None:
        """Profiles read back equal and are listed alphabetically."""
        store.save_profile(_profile("vanilla", description="No CC", branch="vanilla"))
        store.save_profile(_profile("builds"))

        profiles = store.list_profiles()

        assert [p.name for p in profiles] == ["builds", "vanilla"]
        assert profiles[1] == _profile("vanilla", description="No CC", branch="vanilla")

    def test_name_is_unique(self, store: ModStore) -> None:
        store.save_profile(_profile("builds"))
        with pytest.raises(RecordStoreError, match="already taken"):
            store.save_profile(_profile("builds", id="p-other"))

    def test_save_replaces_same_id(self, store: ModStore) -> None:
        store.save_profile(_profile("builds"))
        store.save_profile(_profile("builds", mod_ids=("a", "b")))

        assert store.require_profile("builds").mod_ids == ("a", "b")

    def test_require_missing(self, store: ModStore) -> None:
        with pytest.raises(NotFoundError, match="Profile not found"):
            store.require_profile("nope")

    def test_set_active_is_exclusive(self, store: ModStore) -> None:
        """Activating one profile deactivates the previous one."""
        store.save_profile(_profile("builds"))
        store.save_profile(_profile("vanilla"))
        used = datetime(2026, 2, 2, 9, 0, tzinfo=UTC)

        store.set_active_profile("p-builds", used)
        active = store.set_active_profile("p-vanilla", used)

        assert active.active is True
        assert active.last_used_at == used
        assert store.active_profile() == active
        assert store.require_profile("builds").active is False

    def test_set_active_unknown(self, store: ModStore) -> None:
        with pytest.raises(NotFoundError):
            store.set_active_profile("p-missing", datetime.now(UTC))

    def test_delete(self, store: ModStore) -> None:
        store.save_profile(_profile("builds"))
        assert store.delete_profile("builds") is True
        assert store.delete_profile("builds") is False
        assert store.list_profiles() == []

    def test_malformed_mod_ids(self, store: ModStore) -> None:
        """A profile whose mod list is not a JSON string array fails at load."""
        with store._engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO profiles (id, name, mod_ids, created_at, active) "
                    "VALUES ('p1', 'broken', '[1, 2]', '2026-01-01 00:00:00.000000', 0)"
                )
            )
        with pytest.raises(RecordStoreError, match="mod_ids"):
            store.list_profiles()

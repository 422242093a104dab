"""Durable mod record store.

Mod records and profiles are persisted in SQLite tables through SQLModel. Rows
never leave this module: every read goes through an explicit per-field
mapping to a frozen ModRecord, so malformed persisted data fails at load
time with a RecordStoreError instead of leaking loosely-typed values.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Column, Field, Session, SQLModel, Text, create_engine, select
from sqlmodel.pool import StaticPool

from modvault.core.errors import NotFoundError, RecordStoreError
from modvault.mods.models import ModCategory, ModRecord, Profile

logger = logging.getLogger(__name__)


class ModRow(SQLModel, table=True):
    """Persisted form of a ModRecord."""

    __tablename__ = "mods"

    id: str = Field(primary_key=True)
    display_name: str
    file_name: str = Field(index=True)
    absolute_path: str = Field(index=True, unique=True)
    category: str
    enabled: bool = True
    file_size_bytes: int = 0
    content_hash: str = Field(default="", index=True)
    modified_at: datetime
    installed_at: datetime
    last_enabled_at: datetime | None = None
    author: str | None = None
    version: str | None = None
    conflicts: str = Field(default="[]", sa_column=Column(Text))
    dependencies: str = Field(default="[]", sa_column=Column(Text))


class ProfileRow(SQLModel, table=True):
    """Persisted form of a Profile."""

    __tablename__ = "profiles"

    id: str = Field(primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str | None = None
    mod_ids: str = Field(default="[]", sa_column=Column(Text))
    branch: str | None = None
    created_at: datetime
    last_used_at: datetime | None = None
    active: bool = False


def _to_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _require_datetime(value: object, field_name: str, row_id: str) -> datetime:
    if not isinstance(value, datetime):
        raise RecordStoreError(f"Mod {row_id}: {field_name} is not a timestamp: {value!r}")
    return _to_utc(value)


def _decode_string_list(raw: object, field_name: str, row_id: str) -> tuple[str, ...]:
    if raw is None or raw == "":
        return ()
    try:
        data = json.loads(str(raw))
    except json.JSONDecodeError as e:
        raise RecordStoreError(f"Mod {row_id}: {field_name} is not valid JSON: {e}") from e
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise RecordStoreError(f"Mod {row_id}: {field_name} must be a JSON array of strings")
    return tuple(data)


def _row_to_record(row: ModRow) -> ModRecord:
    """Map a persisted row to a ModRecord, validating every field.

    Raises:
        RecordStoreError: If any field is missing, mistyped or inconsistent.
    """
    row_id = str(row.id)
    try:
        category = ModCategory(row.category)
    except ValueError as e:
        raise RecordStoreError(f"Mod {row_id}: unknown category {row.category!r}") from e

    if not isinstance(row.enabled, bool):
        raise RecordStoreError(f"Mod {row_id}: enabled is not a boolean: {row.enabled!r}")
    if not isinstance(row.file_size_bytes, int):
        raise RecordStoreError(f"Mod {row_id}: file size is not an integer")

    last_enabled_at = (
        _require_datetime(row.last_enabled_at, "last_enabled_at", row_id)
        if row.last_enabled_at is not None
        else None
    )

    try:
        return ModRecord(
            id=row_id,
            display_name=row.display_name,
            file_name=row.file_name,
            absolute_path=row.absolute_path,
            category=category,
            enabled=row.enabled,
            file_size_bytes=row.file_size_bytes,
            content_hash=row.content_hash,
            modified_at=_require_datetime(row.modified_at, "modified_at", row_id),
            installed_at=_require_datetime(row.installed_at, "installed_at", row_id),
            last_enabled_at=last_enabled_at,
            author=row.author,
            version=row.version,
            conflicts=_decode_string_list(row.conflicts, "conflicts", row_id),
            dependencies=_decode_string_list(row.dependencies, "dependencies", row_id),
        )
    except ValueError as e:
        raise RecordStoreError(f"Mod {row_id}: {e}") from e


def _row_to_profile(row: ProfileRow) -> Profile:
    row_id = str(row.id)
    if not isinstance(row.active, bool):
        raise RecordStoreError(f"Profile {row_id}: active is not a boolean: {row.active!r}")
    last_used_at = (
        _require_datetime(row.last_used_at, "last_used_at", row_id)
        if row.last_used_at is not None
        else None
    )
    try:
        return Profile(
            id=row_id,
            name=row.name,
            description=row.description,
            mod_ids=_decode_string_list(row.mod_ids, "mod_ids", row_id),
            branch=row.branch,
            created_at=_require_datetime(row.created_at, "created_at", row_id),
            last_used_at=last_used_at,
            active=row.active,
        )
    except ValueError as e:
        raise RecordStoreError(f"Profile {row_id}: {e}") from e


def _profile_to_row(profile: Profile) -> ProfileRow:
    return ProfileRow(
        id=profile.id,
        name=profile.name,
        description=profile.description,
        mod_ids=json.dumps(list(profile.mod_ids)),
        branch=profile.branch,
        created_at=_to_utc(profile.created_at),
        last_used_at=_to_utc(profile.last_used_at) if profile.last_used_at else None,
        active=profile.active,
    )


def _record_to_row(record: ModRecord) -> ModRow:
    return ModRow(
        id=record.id,
        display_name=record.display_name,
        file_name=record.file_name,
        absolute_path=record.absolute_path,
        category=record.category.value,
        enabled=record.enabled,
        file_size_bytes=record.file_size_bytes,
        content_hash=record.content_hash,
        modified_at=_to_utc(record.modified_at),
        installed_at=_to_utc(record.installed_at),
        last_enabled_at=_to_utc(record.last_enabled_at) if record.last_enabled_at else None,
        author=record.author,
        version=record.version,
        conflicts=json.dumps(list(record.conflicts)),
        dependencies=json.dumps(list(record.dependencies)),
    )


class ModStore:
    """Table of known mods keyed by id, with a unique path per record.

    Every method opens its own session, so one store can be shared by the
    scanner, the activation manager and the watcher thread.

    Args:
        database_path: SQLite file to use. Parent directories are created.
        engine: Pre-built engine (used for in-memory stores).
    """

    def __init__(self, database_path: Path | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            if database_path is None:
                msg = "Either database_path or engine is required"
                raise ValueError(msg)
            database_path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                f"sqlite:///{database_path}",
                connect_args={"check_same_thread": False},
            )
        self._engine = engine
        try:
            SQLModel.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Cannot open mod database: {e}") from e

    @classmethod
    def in_memory(cls) -> "ModStore":
        """Create a store backed by a private in-memory SQLite database."""
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        return cls(engine=engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self._engine) as session:
                yield session
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Mod database error: {e}") from e

    def get(self, mod_id: str) -> ModRecord | None:
        """Return the record with the given id, or None."""
        with self._session() as session:
            row = session.get(ModRow, mod_id)
            return _row_to_record(row) if row is not None else None

    def require(self, mod_id: str) -> ModRecord:
        """Return the record with the given id.

        Raises:
            NotFoundError: If no record has this id.
        """
        record = self.get(mod_id)
        if record is None:
            raise NotFoundError(f"Mod not found: {mod_id}")
        return record

    def get_by_path(self, path: str) -> ModRecord | None:
        """Return the record stored at an absolute path, or None."""
        with self._session() as session:
            row = session.exec(select(ModRow).where(ModRow.absolute_path == path)).first()
            return _row_to_record(row) if row is not None else None

    def find_by_hash(self, content_hash: str) -> list[ModRecord]:
        """Return all records with the given content hash, ordered by id."""
        if not content_hash:
            return []
        with self._session() as session:
            rows = session.exec(
                select(ModRow).where(ModRow.content_hash == content_hash).order_by(ModRow.id)
            ).all()
            return [_row_to_record(row) for row in rows]

    def list_mods(
        self, *, enabled: bool | None = None, under: Path | None = None
    ) -> list[ModRecord]:
        """List records, sorted by display name then path.

        Args:
            enabled: If given, only return records in this state.
            under: If given, only return records located below this directory.

        Returns:
            List of ModRecord.
        """
        with self._session() as session:
            statement = select(ModRow)
            if enabled is not None:
                statement = statement.where(ModRow.enabled == enabled)
            rows = session.exec(statement).all()
            records = [_row_to_record(row) for row in rows]

        if under is not None:
            records = [r for r in records if Path(r.absolute_path).is_relative_to(under)]

        records.sort(key=lambda r: (r.display_name.lower(), r.absolute_path))
        return records

    def upsert(self, record: ModRecord) -> None:
        """Insert a record or replace the one with the same id.

        Raises:
            RecordStoreError: If another record already owns the path.
        """
        with self._session() as session:
            existing = session.exec(
                select(ModRow).where(ModRow.absolute_path == record.absolute_path)
            ).first()
            if existing is not None and existing.id != record.id:
                raise RecordStoreError(
                    f"Path {record.absolute_path} already belongs to mod {existing.id}"
                )
            session.merge(_record_to_row(record))
            session.commit()

    def update_location(
        self,
        mod_id: str,
        *,
        path: str,
        enabled: bool,
        last_enabled_at: datetime | None,
    ) -> ModRecord:
        """Move a record to a new path and enabled state in one transaction.

        A stale record already registered at the target path (its file is
        gone, or the rename could not have succeeded) is dropped.

        Returns:
            The updated record.

        Raises:
            NotFoundError: If no record has this id.
            RecordStoreError: If the resulting record is inconsistent.
        """
        with self._session() as session:
            row = session.get(ModRow, mod_id)
            if row is None:
                raise NotFoundError(f"Mod not found: {mod_id}")

            stale = session.exec(
                select(ModRow).where(ModRow.absolute_path == path, ModRow.id != mod_id)
            ).first()
            if stale is not None:
                logger.warning("Dropping stale record %s registered at %s", stale.id, path)
                session.delete(stale)
                session.flush()

            row.absolute_path = path
            row.enabled = enabled
            if last_enabled_at is not None:
                row.last_enabled_at = _to_utc(last_enabled_at)
            record = _row_to_record(row)
            session.add(row)
            session.commit()
            return record

    def delete(self, mod_id: str) -> bool:
        """Delete a record.

        Returns:
            True if a record was deleted, False if it did not exist.
        """
        with self._session() as session:
            row = session.get(ModRow, mod_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    # profiles

    def list_profiles(self) -> list[Profile]:
        """List profiles ordered by name."""
        with self._session() as session:
            rows = session.exec(select(ProfileRow).order_by(ProfileRow.name)).all()
            return [_row_to_profile(row) for row in rows]

    def get_profile(self, name: str) -> Profile | None:
        """Return the profile with the given name, or None."""
        with self._session() as session:
            row = session.exec(select(ProfileRow).where(ProfileRow.name == name)).first()
            return _row_to_profile(row) if row is not None else None

    def require_profile(self, name: str) -> Profile:
        """Return the profile with the given name.

        Raises:
            NotFoundError: If no profile has this name.
        """
        profile = self.get_profile(name)
        if profile is None:
            raise NotFoundError(f"Profile not found: {name}")
        return profile

    def save_profile(self, profile: Profile) -> None:
        """Insert a profile or replace the one with the same id.

        Raises:
            RecordStoreError: If another profile already has the name.
        """
        with self._session() as session:
            existing = session.exec(
                select(ProfileRow).where(ProfileRow.name == profile.name)
            ).first()
            if existing is not None and existing.id != profile.id:
                raise RecordStoreError(f"Profile name {profile.name!r} is already taken")
            session.merge(_profile_to_row(profile))
            session.commit()

    def delete_profile(self, name: str) -> bool:
        with self._session() as session:
            row = session.exec(select(ProfileRow).where(ProfileRow.name == name)).first()
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def set_active_profile(self, profile_id: str, used_at: datetime) -> Profile:
        """Mark one profile active and every other one inactive.

        Returns:
            The activated profile.

        Raises:
            NotFoundError: If no profile has this id.
        """
        with self._session() as session:
            target = session.get(ProfileRow, profile_id)
            if target is None:
                raise NotFoundError(f"Profile not found: {profile_id}")
            active = select(ProfileRow).where(ProfileRow.active == True)  # noqa: E712
            for row in session.exec(active).all():
                row.active = False
                session.add(row)
            target.active = True
            target.last_used_at = _to_utc(used_at)
            session.add(target)
            session.commit()
            session.refresh(target)
            return _row_to_profile(target)

    def active_profile(self) -> Profile | None:
        """Return the profile applied most recently, if any."""
        with self._session() as session:
            statement = select(ProfileRow).where(ProfileRow.active == True)  # noqa: E712
            row = session.exec(statement).first()
            return _row_to_profile(row) if row is not None else None

    def count(self) -> int:
        """Return the number of stored records."""
        with self._session() as session:
            return len(session.exec(select(ModRow.id)).all())

    def close(self) -> None:
        """Release database connections."""
        self._engine.dispose()

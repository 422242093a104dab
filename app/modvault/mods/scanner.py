"""Filesystem scanner for mod files.

Walks a mods directory recursively, classifies recognized mod files,
derives their metadata from filesystem facts and reconciles the result
into the mod record store.
"""

import logging
import os
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path

from modvault.core.config import ModvaultConfig
from modvault.core.errors import NotFoundError, UnsupportedModError
from modvault.mods import naming
from modvault.mods.models import ModRecord, ScanReport
from modvault.mods.store import ModStore

logger = logging.getLogger(__name__)


def new_mod_id() -> str:
    """Generate a new synthetic mod identifier."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True, slots=True)
class DiscoveredFile:
    """Filesystem facts about one mod candidate.

    Attributes:
        path: Absolute path of the file as found on disk.
        file_name: Canonical file name (disabled suffix stripped).
        enabled: False if the file carries the disabled suffix.
        size_bytes: File size in bytes.
        modified_at: Modification time (UTC).
    """

    path: Path
    file_name: str
    enabled: bool
    size_bytes: int
    modified_at: datetime


class ModScanner:
    """Discovers mod files and keeps the record store in line with disk.

    Identity policy: a record is keyed by its absolute path. When a file
    shows up at a path the store does not know, and the configured policy
    is "content", it is matched by content hash against records whose
    files have vanished; a match keeps the old id, so an externally renamed
    mod is the same mod at a new location. Under the "path" policy every
    unknown path becomes a new record and the old one is removed.

    Args:
        config: Engine configuration (recognized extensions, categories,
            identity policy).
    """

    def __init__(self, config: ModvaultConfig) -> None:
        self._extensions = frozenset(config.mod_extensions)
        self._extension_categories = dict(config.extension_categories)
        self._follow_content = config.identity_policy == "content"

    def is_mod_file(self, name: str) -> bool:
        """Check if a file name (possibly disabled) has a recognized extension."""
        _, ext = naming.split_extension(naming.strip_disabled_suffix(name))
        return ext in self._extensions

    def discover(self, root: Path) -> Iterator[DiscoveredFile]:
        """Yield every mod candidate below a root directory.

        Dot-directories (the repository metadata and the tool's own staging
        area) are not entered. Unreadable directories and files are skipped
        with a warning.

        Args:
            root: Directory to walk.

        Yields:
            DiscoveredFile for each recognized mod file, in sorted order.
        """
        yield from self._walk(root)

    def _walk(self, directory: Path) -> Iterator[DiscoveredFile]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning("Skipping unreadable directory %s: %s", directory, e)
            return

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name.startswith("."):
                        continue
                    yield from self._walk(Path(entry.path))
                    continue
                if not entry.is_file() or not self.is_mod_file(entry.name):
                    continue
                stat = entry.stat()
            except OSError as e:
                logger.warning("Cannot stat %s: %s", entry.path, e)
                continue

            yield DiscoveredFile(
                path=Path(entry.path),
                file_name=naming.strip_disabled_suffix(entry.name),
                enabled=not naming.is_disabled(entry.name),
                size_bytes=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
            )

    def inspect(self, path: Path) -> ModRecord:
        """Build a fresh record for a single file.

        Args:
            path: Mod file to inspect.

        Returns:
            New ModRecord with a freshly generated id.

        Raises:
            NotFoundError: If the file does not exist.
            UnsupportedModError: If the file name is not valid UTF-8.
            OSError: If the file cannot be read.
        """
        path = path.resolve()
        if not path.is_file():
            raise NotFoundError(f"Mod file not found: {naming.display_path(path)}")
        if not naming.has_valid_encoding(path):
            raise UnsupportedModError(
                f"File name is not valid UTF-8: {naming.display_path(path)}"
            )
        stat = path.stat()
        found = DiscoveredFile(
            path=path,
            file_name=naming.strip_disabled_suffix(path.name),
            enabled=not naming.is_disabled(path.name),
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
        )
        return self._build_record(found, naming.content_hash(path), existing=None)

    def scan(self, root: Path, store: ModStore) -> ScanReport:
        """Scan a directory and reconcile the findings into the store.

        Args:
            root: Managed mods directory.
            store: Record store to update.

        Returns:
            ScanReport describing the observable records and what changed.

        Raises:
            NotFoundError: If the root directory does not exist.
        """
        root = root.resolve()
        if not root.is_dir():
            raise NotFoundError(f"Mods directory does not exist: {root}")

        known = {r.absolute_path: r for r in store.list_mods(under=root)}
        seen: set[str] = set()
        records: list[ModRecord] = []
        added: list[str] = []
        updated: list[str] = []
        moved: list[str] = []
        errors: list[str] = []
        pending_new: list[tuple[DiscoveredFile, str]] = []

        for found in self.discover(root):
            if not naming.has_valid_encoding(found.path):
                shown = naming.display_path(found.path)
                logger.warning("Skipping mod with a non-UTF-8 file name: %s", shown)
                errors.append(f"{shown}: file name is not valid UTF-8")
                continue

            key = str(found.path)
            seen.add(key)
            existing = known.get(key)

            try:
                digest = self._hash_if_needed(found, existing)
            except OSError as e:
                logger.warning("Cannot read mod file %s: %s", found.path, e)
                errors.append(f"{found.path}: {e}")
                continue

            if existing is None:
                pending_new.append((found, digest))
                continue

            record = self._build_record(found, digest, existing=existing)
            if record != existing:
                store.upsert(record)
                updated.append(record.id)
            records.append(record)

        # Records whose files vanished are candidates for a rename match.
        vanished = {path: r for path, r in known.items() if path not in seen}

        for found, digest in pending_new:
            origin = self._match_moved(digest, vanished) if self._follow_content else None
            if origin is not None:
                del vanished[origin.absolute_path]
                record = self._build_record(found, digest, existing=origin)
                store.upsert(record)
                moved.append(record.id)
                logger.info("Mod %s moved: %s -> %s", record.id, origin.absolute_path, found.path)
            else:
                record = self._build_record(found, digest, existing=None)
                store.upsert(record)
                added.append(record.id)
                logger.debug("New mod %s at %s", record.id, found.path)
            records.append(record)

        removed: list[str] = []
        for path, record in vanished.items():
            if os.path.lexists(path):
                # Present but unreadable this time; keep the record.
                continue
            store.delete(record.id)
            removed.append(record.id)
            logger.info("Mod %s removed: %s", record.id, path)

        records.sort(key=lambda r: r.absolute_path)
        logger.info(
            "Scanned %s: %d mods (%d added, %d updated, %d moved, %d removed)",
            root,
            len(records),
            len(added),
            len(updated),
            len(moved),
            len(removed),
        )
        return ScanReport(
            root=str(root),
            records=tuple(records),
            added=tuple(added),
            updated=tuple(updated),
            moved=tuple(moved),
            removed=tuple(removed),
            errors=tuple(errors),
        )

    @staticmethod
    def _hash_if_needed(found: DiscoveredFile, existing: ModRecord | None) -> str:
        """Reuse the stored hash unless size or mtime changed."""
        if (
            existing is not None
            and existing.content_hash
            and existing.file_size_bytes == found.size_bytes
            and existing.modified_at == found.modified_at
        ):
            return existing.content_hash
        return naming.content_hash(found.path)

    @staticmethod
    def _match_moved(digest: str, vanished: dict[str, ModRecord]) -> ModRecord | None:
        candidates = sorted(
            (r for r in vanished.values() if r.content_hash == digest),
            key=lambda r: r.id,
        )
        return candidates[0] if candidates else None

    def _build_record(
        self,
        found: DiscoveredFile,
        digest: str,
        *,
        existing: ModRecord | None,
    ) -> ModRecord:
        """Combine filesystem facts with preserved identity fields."""
        fresh = ModRecord(
            id=existing.id if existing else new_mod_id(),
            display_name=naming.derive_display_name(found.file_name),
            file_name=found.file_name,
            absolute_path=str(found.path),
            category=naming.categorize(found.file_name, self._extension_categories),
            enabled=found.enabled,
            file_size_bytes=found.size_bytes,
            content_hash=digest,
            modified_at=found.modified_at,
            installed_at=existing.installed_at if existing else datetime.now(UTC),
            author=naming.extract_author(found.file_name),
            version=naming.extract_version(found.file_name),
        )
        if existing is None:
            return fresh
        return replace(
            fresh,
            last_enabled_at=existing.last_enabled_at,
            conflicts=existing.conflicts,
            dependencies=existing.dependencies,
        )

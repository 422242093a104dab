"""Activation manager for mod files.

The only safe entry point for changing a mod's state. Enabling and
disabling is a single rename between ``name`` and ``name.disabled``; the
record store is updated only after the rename has succeeded, so the store
never leads the filesystem.
"""

import logging
import os
import shutil
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from modvault.core.errors import FilesystemOperationError, NotFoundError, UnsupportedModError
from modvault.core.paths import ensure_trash_dir
from modvault.mods import naming
from modvault.mods.models import ModRecord, ToggleResult
from modvault.mods.scanner import ModScanner
from modvault.mods.store import ModStore

logger = logging.getLogger(__name__)


@dataclass
class PendingDeletion:
    """A deletion whose file has been moved aside but not yet discarded.

    ``commit()`` removes the staged file and the record; ``abort()`` moves
    the file back. Exactly one of them takes effect.

    Attributes:
        record: Record of the mod being deleted.
        staged_path: Where the file currently sits, or None if it was
            already gone when the deletion was staged.
    """

    record: ModRecord
    staged_path: Path | None
    _store: ModStore = field(repr=False)
    _done: bool = field(default=False, repr=False)
    _forget: Callable[[str], None] | None = field(default=None, repr=False)

    def commit(self) -> None:
        """Discard the staged file and delete the record."""
        if self._done:
            return
        if self.staged_path is not None:
            try:
                self.staged_path.unlink(missing_ok=True)
            except OSError as e:
                raise FilesystemOperationError("delete", str(self.staged_path), str(e)) from e
        self._store.delete(self.record.id)
        self._done = True
        if self._forget is not None:
            self._forget(self.record.id)
        self._remove_empty_trash()
        logger.info("Deleted mod %s (%s)", self.record.id, self.record.file_name)

    def abort(self) -> None:
        """Move the staged file back to its original location."""
        if self._done:
            return
        if self.staged_path is not None:
            try:
                os.rename(self.staged_path, self.record.absolute_path)
            except OSError as e:
                raise FilesystemOperationError("restore", self.record.absolute_path, str(e)) from e
        self._done = True
        self._remove_empty_trash()
        logger.info("Restored mod %s to %s", self.record.id, self.record.absolute_path)

    def _remove_empty_trash(self) -> None:
        """Remove the trash directory and the staging area once they are empty."""
        if self.staged_path is None:
            return
        trash = self.staged_path.parent
        for directory in (trash, trash.parent):
            try:
                directory.rmdir()
            except OSError:
                # not empty (another deletion in flight) or already gone
                return


class ActivationManager:
    """Enables, disables, installs and deletes mods.

    Toggles of the same mod are serialized by a per-mod lock; different mods
    can be toggled concurrently. This class does not snapshot anything:
    callers that want an audit trail snapshot after a successful change.

    Args:
        store: Record store holding the mods.
        scanner: Scanner used to build records for installed files.
    """

    def __init__(self, store: ModStore, scanner: ModScanner) -> None:
        self._store = store
        self._scanner = scanner
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, mod_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[mod_id]

    def _forget_lock(self, mod_id: str) -> None:
        with self._locks_guard:
            self._locks.pop(mod_id, None)

    def toggle(self, mod_id: str) -> ToggleResult:
        """Flip a mod's enabled state.

        Args:
            mod_id: Id of the mod to toggle.

        Returns:
            ToggleResult with the new state.

        Raises:
            NotFoundError: If the mod or its file does not exist.
            FilesystemOperationError: If the rename fails or the target exists.
        """
        with self._lock_for(mod_id):
            record = self._require_on_disk(mod_id)
            return self._move(record, not record.enabled)

    def set_enabled(self, mod_id: str, enabled: bool) -> ToggleResult:
        """Bring a mod into the requested state.

        Requesting the state the mod is already in is not an error: the
        result reports ``changed=False`` and nothing is touched.

        Raises:
            NotFoundError: If the mod or its file does not exist.
            FilesystemOperationError: If the rename fails or the target exists.
        """
        with self._lock_for(mod_id):
            record = self._require_on_disk(mod_id)
            if record.enabled == enabled:
                return ToggleResult(
                    mod_id=record.id,
                    enabled=record.enabled,
                    changed=False,
                    path=record.absolute_path,
                    previous_path=record.absolute_path,
                )
            return self._move(record, enabled)

    def _require_on_disk(self, mod_id: str) -> ModRecord:
        record = self._store.require(mod_id)
        if not os.path.lexists(record.absolute_path):
            raise NotFoundError(f"Mod file for {mod_id} is missing: {record.absolute_path}")
        return record

    def _move(self, record: ModRecord, enabled: bool) -> ToggleResult:
        source = Path(record.absolute_path)
        target = naming.enabled_path(source) if enabled else naming.disabled_path(source)

        if os.path.lexists(target):
            raise FilesystemOperationError(
                "rename", str(source), f"target already exists: {target}"
            )

        try:
            os.rename(source, target)
        except OSError as e:
            raise FilesystemOperationError("rename", str(source), str(e)) from e

        try:
            updated = self._store.update_location(
                record.id,
                path=str(target),
                enabled=enabled,
                last_enabled_at=datetime.now(UTC) if enabled else None,
            )
        except Exception as e:
            logger.error("Store update failed for %s, reverting rename", record.id)
            try:
                os.rename(target, source)
            except OSError as revert_error:
                raise FilesystemOperationError(
                    "rename",
                    str(target),
                    f"store update failed ({e}); moving back to {source} failed: {revert_error}",
                ) from e
            raise

        logger.info("%s mod %s: %s", "Enabled" if enabled else "Disabled", record.id, target.name)
        return ToggleResult(
            mod_id=updated.id,
            enabled=updated.enabled,
            changed=True,
            path=updated.absolute_path,
            previous_path=record.absolute_path,
        )

    def delete(self, mod_id: str) -> ModRecord:
        """Delete a mod's file (if still present) and then its record.

        Returns:
            The record that was deleted.

        Raises:
            NotFoundError: If no record has this id.
            FilesystemOperationError: If the file cannot be removed.
        """
        with self._lock_for(mod_id):
            record = self._store.require(mod_id)
            try:
                Path(record.absolute_path).unlink(missing_ok=True)
            except OSError as e:
                raise FilesystemOperationError("delete", record.absolute_path, str(e)) from e
            self._store.delete(mod_id)
            logger.info("Deleted mod %s (%s)", record.id, record.file_name)
        self._forget_lock(mod_id)
        return record

    def stage_delete(self, mod_id: str, root: Path) -> PendingDeletion:
        """Move a mod's file into the root's trash area.

        The record stays in the store until the returned deletion is
        committed.

        Args:
            mod_id: Id of the mod to delete.
            root: Managed mods directory owning the trash area.

        Raises:
            NotFoundError: If no record has this id.
            FilesystemOperationError: If the file cannot be moved.
        """
        with self._lock_for(mod_id):
            record = self._store.require(mod_id)
            source = Path(record.absolute_path)
            if not os.path.lexists(source):
                return PendingDeletion(
                    record=record, staged_path=None, _store=self._store, _forget=self._forget_lock
                )

            try:
                staged = ensure_trash_dir(root) / f"{record.id}-{source.name}"
                os.rename(source, staged)
            except (OSError, RuntimeError) as e:
                raise FilesystemOperationError("delete", str(source), str(e)) from e

            logger.debug("Staged %s for deletion at %s", record.id, staged)
            return PendingDeletion(
                record=record, staged_path=staged, _store=self._store, _forget=self._forget_lock
            )

    def install(self, source: Path, root: Path) -> ModRecord:
        """Copy a mod file into the mods directory and register it.

        Args:
            source: File to install.
            root: Managed mods directory.

        Returns:
            Record of the installed copy.

        Raises:
            NotFoundError: If the source file does not exist.
            UnsupportedModError: If the file extension is not recognized.
            FilesystemOperationError: If the target exists or the copy fails.
        """
        if not source.is_file():
            raise NotFoundError(f"File not found: {source}")
        if not naming.has_valid_encoding(source):
            shown = naming.display_path(source)
            raise UnsupportedModError(f"File name is not valid UTF-8: {shown}")
        if not self._scanner.is_mod_file(source.name):
            raise UnsupportedModError(f"Not a recognized mod file: {source.name}")

        target = root.resolve() / source.name
        if os.path.lexists(target):
            raise FilesystemOperationError(
                "copy", str(target), "a file with this name already exists"
            )

        try:
            shutil.copy2(source, target)
        except OSError as e:
            raise FilesystemOperationError("copy", str(target), str(e)) from e

        try:
            record = self._scanner.inspect(target)
            self._store.upsert(record)
        except Exception:
            target.unlink(missing_ok=True)
            raise

        logger.info("Installed mod %s from %s", record.id, source)
        return record

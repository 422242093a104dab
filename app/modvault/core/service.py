"""Command facade for the mod state and versioning engine.

ModvaultService wires the scanner, record store, activation manager,
conflict detector and version control orchestrator together for one
configured mods directory. Every mutating command either fully succeeds,
including its snapshot when auto-snapshots are on, or is undone before
the error reaches the caller.
"""

import dataclasses
import logging
from collections.abc import Callable
from pathlib import Path

from modvault.core.config import ModvaultConfig
from modvault.core.errors import ModvaultError
from modvault.mods.activation import ActivationManager
from modvault.mods.conflicts import ConflictReport, build_report
from modvault.mods.models import (
    ModRecord,
    Profile,
    ProfileApplyResult,
    ScanReport,
    ToggleResult,
)
from modvault.mods.profiles import ProfileManager
from modvault.mods.scanner import ModScanner
from modvault.mods.store import ModStore
from modvault.mods.watcher import ModWatcher
from modvault.vcs.models import (
    EnsureResult,
    RepositoryStatus,
    RollbackResult,
    Snapshot,
    SnapshotResult,
)
from modvault.vcs.orchestrator import DEFAULT_HISTORY_LIMIT, VersionControlOrchestrator

logger = logging.getLogger(__name__)


class ModvaultService:
    """Entry point for every command the application exposes.

    Args:
        config: Engine configuration. ``mods_path`` must be set.
        store: Record store to use. Defaults to the configured database.
        orchestrator: Version control orchestrator. Defaults to a new one.
    """

    def __init__(
        self,
        config: ModvaultConfig,
        *,
        store: ModStore | None = None,
        orchestrator: VersionControlOrchestrator | None = None,
    ) -> None:
        self.config = config
        self.root = config.require_mods_path()
        self.store = store or ModStore(config.effective_database_path)
        self.scanner = ModScanner(config)
        self.activation = ActivationManager(self.store, self.scanner)
        self.orchestrator = orchestrator or VersionControlOrchestrator(config)
        self.profiles = ProfileManager(self.store, self.activation)

    # mods

    def scan(self) -> ScanReport:
        """Reconcile the record store with the mods directory."""
        return self.scanner.scan(self.root, self.store)

    def list_mods(self, *, enabled: bool | None = None) -> list[ModRecord]:
        return self.store.list_mods(enabled=enabled, under=self.root)

    def get(self, mod_id: str) -> ModRecord:
        return self.store.require(mod_id)

    def toggle(self, mod_id: str) -> ToggleResult:
        """Flip a mod's state and snapshot the change."""
        return self._snapshot_toggle(self.activation.toggle(mod_id))

    def set_enabled(self, mod_id: str, enabled: bool) -> ToggleResult:
        """Bring a mod into the requested state and snapshot the change."""
        return self._snapshot_toggle(self.activation.set_enabled(mod_id, enabled))

    def _snapshot_toggle(self, result: ToggleResult) -> ToggleResult:
        if not result.changed or not self._auto_snapshot():
            return result

        record = self.store.require(result.mod_id)
        verb = "Enable" if result.enabled else "Disable"
        try:
            snapshot = self.orchestrator.snapshot(self.root, f"{verb} {record.display_name}")
        except Exception:
            logger.error("Snapshot failed, reverting %s of %s", verb.lower(), result.mod_id)
            self.activation.set_enabled(result.mod_id, not result.enabled)
            raise
        return dataclasses.replace(result, snapshot=snapshot)

    def delete(self, mod_id: str) -> ModRecord:
        """Delete a mod's file and record, then snapshot the removal."""
        if not self._auto_snapshot():
            return self.activation.delete(mod_id)

        pending = self.activation.stage_delete(mod_id, self.root)
        try:
            self.orchestrator.snapshot(self.root, f"Delete {pending.record.display_name}")
        except Exception:
            logger.error("Snapshot failed, restoring %s", mod_id)
            pending.abort()
            raise
        pending.commit()
        return pending.record

    def install(self, source: Path) -> ModRecord:
        """Copy a mod file into the mods directory and snapshot it."""
        record = self.activation.install(source, self.root)
        if not self._auto_snapshot():
            return record
        try:
            self.orchestrator.snapshot(self.root, f"Install {record.display_name}")
        except Exception:
            logger.error("Snapshot failed, removing installed %s", record.file_name)
            self.activation.delete(record.id)
            raise
        return record

    def conflicts(self) -> ConflictReport:
        return build_report(self.list_mods(), self.config.script_threshold)

    # version control

    def _auto_snapshot(self) -> bool:
        return self.config.auto_snapshot and self.orchestrator.is_initialized(self.root)

    def ensure_repository(self) -> EnsureResult:
        return self.orchestrator.ensure_repository(self.root)

    def snapshot(self, message: str) -> SnapshotResult:
        return self.orchestrator.snapshot(self.root, message)

    def history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[Snapshot]:
        return self.orchestrator.history(self.root, limit)

    def rollback(self, snapshot_id: str) -> RollbackResult:
        """Roll the mods directory back and re-scan so records match disk.

        A failing re-scan is logged and the result is still returned.
        """
        result = self.orchestrator.rollback(self.root, snapshot_id)
        self._rescan_after(f"rollback to {result.snapshot_id[:7]}")
        return result

    def _rescan_after(self, what: str) -> None:
        try:
            self.scan()
        except ModvaultError as e:
            logger.error("Re-scan after %s failed: %s", what, e)

    def branches(self) -> list[str]:
        return self.orchestrator.branches(self.root)

    def current_branch(self) -> str | None:
        return self.orchestrator.current_branch(self.root)

    def create_branch(self, name: str, *, switch: bool = True) -> str:
        return self.orchestrator.create_branch(self.root, name, switch=switch)

    def switch_branch(self, name: str) -> str:
        """Check out another branch and re-scan the mods it contains."""
        branch = self.orchestrator.switch_branch(self.root, name)
        self._rescan_after(f"switching to {branch}")
        return branch

    def status(self) -> RepositoryStatus:
        return self.orchestrator.status(self.root)

    # profiles

    def list_profiles(self) -> list[Profile]:
        return self.profiles.list_profiles()

    def active_profile(self) -> Profile | None:
        return self.profiles.active()

    def create_profile(
        self,
        name: str,
        *,
        mod_ids: list[str] | None = None,
        description: str | None = None,
        branch: str | None = None,
    ) -> Profile:
        return self.profiles.create(
            name, self.root, mod_ids=mod_ids, description=description, branch=branch
        )

    def capture_profile(self, name: str) -> Profile:
        return self.profiles.capture(name, self.root)

    def delete_profile(self, name: str) -> Profile:
        return self.profiles.delete(name)

    def apply_profile(self, name: str) -> ProfileApplyResult:
        """Apply a profile and snapshot the result.

        A profile tied to a branch first moves the repository onto that
        branch, creating it from the current snapshot if needed. Any failure
        undoes the mod changes and returns to the previous branch.
        """
        profile = self.profiles.get(name)
        previous_branch = self._enter_profile_branch(profile)
        try:
            result = self.profiles.apply(name, self.root, activate=False)
        except ModvaultError:
            self._leave_profile_branch(previous_branch)
            raise

        if result.changed and self._auto_snapshot():
            try:
                snapshot = self.orchestrator.snapshot(self.root, self._profile_message(result))
            except Exception:
                logger.error("Snapshot failed, reverting profile %s", name)
                self.profiles.revert(result)
                self._leave_profile_branch(previous_branch)
                raise
            result = dataclasses.replace(result, snapshot=snapshot)
        return self.profiles.activate(result)

    def _enter_profile_branch(self, profile: Profile) -> str | None:
        if not profile.branch or not self.orchestrator.is_initialized(self.root):
            return None
        current = self.orchestrator.current_branch(self.root)
        if current == profile.branch:
            return None
        if profile.branch in self.orchestrator.branches(self.root):
            self.orchestrator.switch_branch(self.root, profile.branch)
        else:
            self.orchestrator.create_branch(self.root, profile.branch)
        try:
            self.scan()
        except ModvaultError:
            self._leave_profile_branch(current)
            raise
        return current

    def _leave_profile_branch(self, branch: str | None) -> None:
        if branch is None:
            return
        try:
            self.orchestrator.switch_branch(self.root, branch)
        except ModvaultError as e:
            logger.error("Cannot switch back to %s: %s", branch, e)
            return
        self._rescan_after(f"switching back to {branch}")

    def _profile_message(self, result: ProfileApplyResult) -> str:
        lines = [f"Apply profile {result.profile.name}", ""]
        for verb, ids in (("Enable", result.enabled), ("Disable", result.disabled)):
            for mod_id in ids:
                record = self.store.get(mod_id)
                lines.append(f"{verb} {record.display_name if record else mod_id}")
        return "\n".join(lines)

    # watching

    def watch(
        self,
        on_scan: Callable[[ScanReport], None] | None = None,
        *,
        observe: bool = True,
    ) -> ModWatcher:
        """Start a watcher that re-scans after each burst of changes.

        Args:
            on_scan: Called with every resulting ScanReport.
            observe: Passed to ModWatcher.start().

        Returns:
            The running watcher. Call stop() on it when done.
        """

        def reconcile(paths: frozenset[str]) -> None:
            logger.debug("Re-scanning after changes to %d paths", len(paths))
            report = self.scan()
            if on_scan is not None:
                on_scan(report)

        watcher = ModWatcher(self.root, reconcile, self.config.debounce_seconds)
        watcher.start(observe=observe)
        return watcher

    def close(self) -> None:
        self.orchestrator.close()
        self.store.close()

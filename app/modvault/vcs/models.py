"""Version-control result models.

Snapshots are commits in the repository that lives at the mods root.
These types carry their facts out of the orchestrator as plain data.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class RepositoryState(str, Enum):
    """Lifecycle of a repository root as seen by the orchestrator.

    UNINITIALIZED -> INITIALIZED, then INITIALIZED <-> SNAPSHOTTING and
    INITIALIZED <-> ROLLING_BACK. Every operation returns to INITIALIZED,
    whether it succeeds or fails.
    """

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SNAPSHOTTING = "snapshotting"
    ROLLING_BACK = "rolling_back"


class ModChangeAction(str, Enum):
    """What a snapshot did to a mod, as stated in its message."""

    ADDED = "added"
    REMOVED = "removed"
    ENABLED = "enabled"
    DISABLED = "disabled"
    UPDATED = "updated"


@dataclass(frozen=True, slots=True)
class ModChange:
    """One mod named in a snapshot message."""

    mod_name: str
    action: ModChangeAction

    def to_dict(self) -> dict[str, Any]:
        return {"mod_name": self.mod_name, "action": self.action.value}


@dataclass(frozen=True, slots=True)
class Snapshot:
    """A recorded version of the mods directory.

    Attributes:
        id: Commit hash.
        message: Full commit message.
        authored_at: Author timestamp.
        author: Author name.
        changed_paths: Paths touched by the commit, relative to the root.
        mod_changes: Mods the message says were enabled, disabled, added,
            removed or updated.
    """

    id: str
    message: str
    authored_at: datetime
    author: str
    changed_paths: tuple[str, ...] = ()
    mod_changes: tuple[ModChange, ...] = ()

    @property
    def short_id(self) -> str:
        return self.id[:7]

    @property
    def summary(self) -> str:
        """First line of the message."""
        return self.message.splitlines()[0] if self.message else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "authored_at": self.authored_at.isoformat(),
            "author": self.author,
            "changed_paths": list(self.changed_paths),
            "mod_changes": [change.to_dict() for change in self.mod_changes],
        }


@dataclass(frozen=True, slots=True)
class RepositoryStatus:
    """Uncommitted state of the working tree.

    Attributes:
        branch: Checked-out branch, or None on a detached HEAD.
        staged: Paths with changes in the index.
        modified: Tracked paths changed in the working tree.
        untracked: Paths git does not know about yet.
    """

    branch: str | None
    staged: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()
    untracked: tuple[str, ...] = ()

    @property
    def clean(self) -> bool:
        return not (self.staged or self.modified or self.untracked)

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "clean": self.clean,
            "staged": list(self.staged),
            "modified": list(self.modified),
            "untracked": list(self.untracked),
        }


@dataclass(frozen=True, slots=True)
class SnapshotResult:
    """Outcome of a snapshot request.

    Attributes:
        snapshot_id: Hash of the new commit, or None if nothing changed.
        message: Commit message that was (or would have been) used.
    """

    snapshot_id: str | None
    message: str

    @property
    def no_changes(self) -> bool:
        """True if the working tree matched the last snapshot."""
        return self.snapshot_id is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_id": self.snapshot_id,
            "message": self.message,
            "no_changes": self.no_changes,
        }


@dataclass(frozen=True, slots=True)
class RollbackResult:
    """Outcome of a rollback.

    Attributes:
        snapshot_id: Full hash the working tree was reset to.
        backup_branch: Branch preserving the pre-rollback tip.
        previous_tip: Hash of the commit that was current before the rollback.
        branch: Branch that was checked out and reset.
    """

    snapshot_id: str
    backup_branch: str
    previous_tip: str
    branch: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_id": self.snapshot_id,
            "backup_branch": self.backup_branch,
            "previous_tip": self.previous_tip,
            "branch": self.branch,
        }


@dataclass(frozen=True, slots=True)
class EnsureResult:
    """Outcome of ensure_repository.

    Attributes:
        root: Repository root.
        created: True if the repository was created by this call.
        snapshot_id: Hash of the initial snapshot when created.
    """

    root: str
    created: bool
    snapshot_id: str | None = None

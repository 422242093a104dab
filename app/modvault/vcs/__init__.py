"""Version control for mods directories.

Snapshots, history and rollback are backed by a git repository at the
mods root. All git work for one root is serialized by the orchestrator.
"""

from modvault.vcs.git import IGNORE_PATTERNS, GitRepository
from modvault.vcs.models import (
    EnsureResult,
    RepositoryState,
    RollbackResult,
    Snapshot,
    SnapshotResult,
)
from modvault.vcs.orchestrator import RepositoryHandle, VersionControlOrchestrator

__all__ = [
    "IGNORE_PATTERNS",
    "EnsureResult",
    "GitRepository",
    "RepositoryHandle",
    "RepositoryState",
    "RollbackResult",
    "Snapshot",
    "SnapshotResult",
    "VersionControlOrchestrator",
]

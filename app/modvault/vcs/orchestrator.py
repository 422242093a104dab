"""Version control orchestrator.

Every repository root gets one RepositoryHandle with a single-worker
executor. All git work for that root runs on that worker, in submission
order, so two snapshots (or a snapshot and a rollback) never touch the
index at the same time. Different roots have different workers and run
in parallel.

Each operation comes in two forms: ``begin_*`` submits it and returns a
Future; the plain form waits for the result. A Future that has not started
yet can be cancelled; one that is running always completes.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import TypeVar

from modvault.core.config import ModvaultConfig
from modvault.core.errors import (
    AlreadyExistsError,
    InvalidNameError,
    NotFoundError,
    RepositoryNotInitializedError,
    SnapshotNotFoundError,
    SubordinateProcessError,
)
from modvault.vcs.git import GitRepository
from modvault.vcs.models import (
    EnsureResult,
    RepositoryState,
    RepositoryStatus,
    RollbackResult,
    Snapshot,
    SnapshotResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

INITIAL_SNAPSHOT_MESSAGE = "Initial snapshot"
DEFAULT_HISTORY_LIMIT = 50


class RepositoryHandle:
    """One repository root bound to its git runner and serialized queue."""

    def __init__(self, root: Path, git: GitRepository) -> None:
        self.root = root
        self.git = git
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="modvault-git")
        self._state = RepositoryState.UNINITIALIZED
        self._state_lock = threading.Lock()

    @property
    def state(self) -> RepositoryState:
        with self._state_lock:
            return self._state

    def set_state(self, state: RepositoryState) -> None:
        with self._state_lock:
            if self._state is not state:
                logger.debug("Repository %s: %s -> %s", self.root, self._state.value, state.value)
            self._state = state


class VersionControlOrchestrator:
    """Creates, snapshots, inspects and rolls back mod repositories.

    Args:
        config: Supplies the git executable, timeout, author identity and
            primary branch.
    """

    def __init__(self, config: ModvaultConfig) -> None:
        self._config = config
        self._handles: dict[Path, RepositoryHandle] = {}
        self._guard = threading.Lock()
        self._closed = False

    def handle(self, root: Path) -> RepositoryHandle:
        """Return the handle for a root, creating it on first use."""
        key = root.expanduser().resolve()
        with self._guard:
            if self._closed:
                msg = "Orchestrator is closed"
                raise RuntimeError(msg)
            handle = self._handles.get(key)
            if handle is None:
                git = GitRepository(
                    key,
                    executable=self._config.git_executable,
                    timeout=self._config.git_timeout_seconds,
                    author_name=self._config.author_name,
                    author_email=self._config.author_email,
                )
                handle = RepositoryHandle(key, git)
                self._handles[key] = handle
            return handle

    def _submit(self, root: Path, fn: Callable[[RepositoryHandle], T]) -> "Future[T]":
        handle = self.handle(root)
        return handle.executor.submit(fn, handle)

    def state(self, root: Path) -> RepositoryState:
        """Current state of a root as last observed by the orchestrator."""
        return self.handle(root).state

    # ensure_repository

    def begin_ensure_repository(self, root: Path) -> "Future[EnsureResult]":
        return self._submit(root, self._ensure_repository)

    def ensure_repository(self, root: Path) -> EnsureResult:
        """Make sure a repository exists at the root.

        On an uninitialized root this creates the repository, writes the
        ignore list (unless an ignore file is already there) and records
        the initial snapshot. On an initialized root it does nothing.

        Raises:
            NotFoundError: If the root directory does not exist.
            SubordinateProcessError: If git fails.
        """
        return self.begin_ensure_repository(root).result()

    def _ensure_repository(self, handle: RepositoryHandle) -> EnsureResult:
        if not handle.root.is_dir():
            raise NotFoundError(f"Mods directory does not exist: {handle.root}")

        git = handle.git
        if git.is_repository_root():
            git.exclude_workspace()
            handle.set_state(RepositoryState.INITIALIZED)
            return EnsureResult(root=str(handle.root), created=False)

        logger.info("Initializing repository at %s", handle.root)
        git.init(self._config.primary_branch)
        git.exclude_workspace()
        git.write_ignore_file()
        git.stage_all()
        snapshot_id = git.commit(INITIAL_SNAPSHOT_MESSAGE, allow_empty=True)
        handle.set_state(RepositoryState.INITIALIZED)
        return EnsureResult(root=str(handle.root), created=True, snapshot_id=snapshot_id)

    def _require_initialized(self, handle: RepositoryHandle) -> None:
        if handle.state is not RepositoryState.UNINITIALIZED:
            return
        if not handle.git.is_repository_root():
            raise RepositoryNotInitializedError(str(handle.root))
        handle.git.exclude_workspace()
        handle.set_state(RepositoryState.INITIALIZED)

    def is_initialized(self, root: Path) -> bool:
        """Check whether the root holds a repository, without queueing."""
        handle = self.handle(root)
        if handle.state is not RepositoryState.UNINITIALIZED:
            return True
        return handle.git.is_repository_root()

    # snapshot

    def begin_snapshot(self, root: Path, message: str) -> "Future[SnapshotResult]":
        return self._submit(root, lambda handle: self._snapshot(handle, message))

    def snapshot(self, root: Path, message: str) -> SnapshotResult:
        """Record the current working tree.

        Returns:
            SnapshotResult; ``no_changes`` is True when nothing differed from
            the last snapshot, in which case no commit is created.

        Raises:
            RepositoryNotInitializedError: If the root has no repository.
            SubordinateProcessError: If git fails.
        """
        return self.begin_snapshot(root, message).result()

    def _snapshot(self, handle: RepositoryHandle, message: str) -> SnapshotResult:
        self._require_initialized(handle)
        handle.set_state(RepositoryState.SNAPSHOTTING)
        try:
            git = handle.git
            git.stage_all()
            if not git.has_staged_changes():
                logger.debug("Nothing to snapshot in %s", handle.root)
                return SnapshotResult(snapshot_id=None, message=message)
            snapshot_id = git.commit(message)
            logger.info("Snapshot %s: %s", snapshot_id[:7], message)
            return SnapshotResult(snapshot_id=snapshot_id, message=message)
        finally:
            handle.set_state(RepositoryState.INITIALIZED)

    # history

    def begin_history(
        self, root: Path, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> "Future[list[Snapshot]]":
        return self._submit(root, lambda handle: self._history(handle, limit))

    def history(self, root: Path, limit: int = DEFAULT_HISTORY_LIMIT) -> list[Snapshot]:
        """Return up to ``limit`` snapshots, newest first.

        A failing git log is logged and yields an empty list.

        Raises:
            RepositoryNotInitializedError: If the root has no repository.
        """
        return self.begin_history(root, limit).result()

    def _history(self, handle: RepositoryHandle, limit: int) -> list[Snapshot]:
        self._require_initialized(handle)
        if limit <= 0:
            return []
        try:
            snapshots = handle.git.log(limit)
        except SubordinateProcessError as e:
            logger.warning("Cannot read history of %s: %s", handle.root, e)
            return []

        result: list[Snapshot] = []
        for snapshot in snapshots:
            try:
                paths = handle.git.changed_paths(snapshot.id)
            except SubordinateProcessError as e:
                logger.warning("Cannot list changes of %s: %s", snapshot.short_id, e)
                paths = ()
            result.append(
                Snapshot(
                    id=snapshot.id,
                    message=snapshot.message,
                    authored_at=snapshot.authored_at,
                    author=snapshot.author,
                    changed_paths=paths,
                    mod_changes=snapshot.mod_changes,
                )
            )
        return result

    # rollback

    def begin_rollback(self, root: Path, snapshot_id: str) -> "Future[RollbackResult]":
        return self._submit(root, lambda handle: self._rollback(handle, snapshot_id))

    def rollback(self, root: Path, snapshot_id: str) -> RollbackResult:
        """Reset the working tree to a snapshot.

        The current tip is preserved on a new ``backup-<timestamp>`` branch
        before anything is changed, then the primary branch is checked out
        and hard-reset to the snapshot.

        Raises:
            RepositoryNotInitializedError: If the root has no repository.
            SnapshotNotFoundError: If the id does not resolve to a snapshot.
            SubordinateProcessError: If git fails.
        """
        return self.begin_rollback(root, snapshot_id).result()

    def _rollback(self, handle: RepositoryHandle, snapshot_id: str) -> RollbackResult:
        self._require_initialized(handle)
        git = handle.git
        target = git.resolve_commit(snapshot_id)
        if target is None:
            raise SnapshotNotFoundError(snapshot_id)

        handle.set_state(RepositoryState.ROLLING_BACK)
        try:
            previous_tip = git.head()
            backup = self._backup_branch_name(git)
            git.create_branch(backup, previous_tip)
            logger.info("Saved %s as %s before rollback", previous_tip[:7], backup)

            branch = self._primary_branch(git)
            git.checkout(branch)
            git.reset_hard(target)
            logger.info("Rolled back %s to %s", handle.root, target[:7])
            return RollbackResult(
                snapshot_id=target,
                backup_branch=backup,
                previous_tip=previous_tip,
                branch=branch,
            )
        finally:
            handle.set_state(RepositoryState.INITIALIZED)

    @staticmethod
    def _backup_branch_name(git: GitRepository) -> str:
        base = f"backup-{datetime.now().strftime('%Y%m%d-%H%M%S-%f')}"
        name = base
        counter = 1
        while git.branch_exists(name):
            name = f"{base}-{counter}"
            counter += 1
        return name

    def _primary_branch(self, git: GitRepository) -> str:
        configured = self._config.primary_branch
        if git.branch_exists(configured):
            return configured
        if git.branch_exists("master"):
            return "master"
        return git.current_branch() or configured

    # branches

    def begin_branches(self, root: Path) -> "Future[list[str]]":
        return self._submit(root, self._branches)

    def branches(self, root: Path) -> list[str]:
        """List local branch names, sorted."""
        return self.begin_branches(root).result()

    def _branches(self, handle: RepositoryHandle) -> list[str]:
        self._require_initialized(handle)
        return handle.git.branches()

    def current_branch(self, root: Path) -> str | None:
        """Name of the checked-out branch, or None on a detached HEAD."""
        return self._submit(root, self._current_branch).result()

    def _current_branch(self, handle: RepositoryHandle) -> str | None:
        self._require_initialized(handle)
        return handle.git.current_branch()

    def begin_create_branch(
        self, root: Path, name: str, *, switch: bool = True
    ) -> "Future[str]":
        return self._submit(root, lambda handle: self._create_branch(handle, name, switch))

    def create_branch(self, root: Path, name: str, *, switch: bool = True) -> str:
        """Create a branch at the current snapshot and (by default) check it out.

        Raises:
            InvalidNameError: If git rejects the branch name.
            AlreadyExistsError: If the branch exists.
            SubordinateProcessError: If git fails.
        """
        return self.begin_create_branch(root, name, switch=switch).result()

    def _create_branch(self, handle: RepositoryHandle, name: str, switch: bool) -> str:
        self._require_initialized(handle)
        git = handle.git
        if not git.is_valid_branch_name(name):
            raise InvalidNameError(f"Invalid branch name: {name!r}")
        if git.branch_exists(name):
            raise AlreadyExistsError(f"Branch already exists: {name}")
        git.create_branch(name, switch=switch)
        logger.info("Created branch %s in %s", name, handle.root)
        return name

    def begin_switch_branch(self, root: Path, name: str) -> "Future[str]":
        return self._submit(root, lambda handle: self._switch_branch(handle, name))

    def switch_branch(self, root: Path, name: str) -> str:
        """Check out an existing branch.

        Uncommitted changes that conflict with the branch make git refuse,
        which surfaces as SubordinateProcessError.

        Raises:
            NotFoundError: If the branch does not exist.
        """
        return self.begin_switch_branch(root, name).result()

    def _switch_branch(self, handle: RepositoryHandle, name: str) -> str:
        self._require_initialized(handle)
        git = handle.git
        if not name or name.startswith("-") or not git.branch_exists(name):
            raise NotFoundError(f"Branch not found: {name}")
        git.checkout(name)
        logger.info("Switched %s to branch %s", handle.root, name)
        return name

    def begin_status(self, root: Path) -> "Future[RepositoryStatus]":
        return self._submit(root, self._status)

    def status(self, root: Path) -> RepositoryStatus:
        """Uncommitted changes in the working tree."""
        return self.begin_status(root).result()

    def _status(self, handle: RepositoryHandle) -> RepositoryStatus:
        self._require_initialized(handle)
        return handle.git.status()

    def close(self) -> None:
        """Finish queued work and stop every worker."""
        with self._guard:
            self._closed = True
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.executor.shutdown(wait=True)

"""Error taxonomy for modvault.

Every failure the core surfaces to a caller is a ModvaultError subclass
carrying enough context (path, operation, underlying message) to render
a user-facing message. Benign outcomes (a toggle that is already in the
requested state, a snapshot with nothing to commit) are results, not
exceptions.
"""

from collections.abc import Sequence


class ModvaultError(Exception):
    """Base exception for all modvault errors."""


class NotFoundError(ModvaultError):
    """Raised when a referenced mod id or path does not exist."""


class AlreadyExistsError(ModvaultError):
    """Raised when creating a profile or branch whose name is taken."""


class InvalidNameError(ModvaultError):
    """Raised when a branch or profile name is not acceptable."""


class UnsupportedModError(ModvaultError):
    """Raised when a file does not have a recognized mod extension."""


class RecordStoreError(ModvaultError):
    """Raised when persisted mod data is malformed or cannot be written."""


class FilesystemOperationError(ModvaultError):
    """Raised when a rename, copy or delete on a mod file fails.

    Attributes:
        operation: Name of the failed operation (e.g. "rename").
        path: Path the operation was applied to.
        reason: Underlying error message.
    """

    def __init__(self, operation: str, path: str, reason: str) -> None:
        self.operation = operation
        self.path = path
        self.reason = reason
        super().__init__(f"{operation} failed for {path}: {reason}")


class RepositoryNotInitializedError(ModvaultError):
    """Raised when a version-control operation targets an uninitialized root."""

    def __init__(self, root: str) -> None:
        self.root = root
        super().__init__(f"No modvault repository at {root}. Run 'modvault init' first.")


class SnapshotNotFoundError(ModvaultError):
    """Raised when a rollback target does not resolve to a snapshot."""

    def __init__(self, snapshot_id: str) -> None:
        self.snapshot_id = snapshot_id
        super().__init__(f"Snapshot not found: {snapshot_id}")


class SubordinateProcessError(ModvaultError):
    """Raised when the external version-control tool fails.

    Attributes:
        command: Command line that was executed.
        returncode: Exit code, or None if the process never exited normally.
        stderr: Captured standard error.
    """

    def __init__(self, args: Sequence[str], returncode: int | None, stderr: str) -> None:
        self.command = tuple(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no error output"
        super().__init__(f"'{' '.join(self.command)}' exited with {returncode}: {detail}")


class ConfigError(ModvaultError):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""

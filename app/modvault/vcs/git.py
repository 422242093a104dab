"""Thin wrapper around the git command line.

GitRepository runs one git process per call with a fixed author identity
passed through ``-c`` options, so no global git configuration is needed.
Nothing here serializes access; the orchestrator owns that.
"""

import logging
import re
import subprocess
from datetime import datetime
from pathlib import Path

from modvault.core.errors import SubordinateProcessError
from modvault.core.paths import WORKSPACE_DIRNAME
from modvault.utils.shell import CommandResult, run_command
from modvault.vcs.models import ModChange, ModChangeAction, RepositoryStatus, Snapshot

logger = logging.getLogger(__name__)

IGNORE_FILENAME = ".gitignore"

# Game-generated and personal files that never belong in a mod snapshot
IGNORE_PATTERNS: tuple[str, ...] = (
    "# Cache files",
    "cachestr/",
    "onlinethumbnailcache/",
    "localsimtexturecache.package",
    "localthumbcache.package",
    "*.cache",
    "",
    "# Log files",
    "*.log",
    "",
    "# Exception reports",
    "lastException*.txt",
    "mc_lastexception.html",
    "BE-ExceptionReport*.html",
    "",
    "# Database files",
    "clientDB.package",
    "avatarcache.package",
    "accountDataDB.package",
    "",
    "# Personal data",
    "saves/",
    "*.save",
    "*.backup",
    "Screenshots/",
    "Tray/",
    "Options.ini",
    "UserSetting.ini",
    "",
    "# System files",
    "Thumbs.db",
    ".DS_Store",
)

# Written to the repository-local exclude file, never to the shared ignore file
WORKSPACE_EXCLUDE = f"/{WORKSPACE_DIRNAME}/"

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%an{_FIELD_SEP}%aI{_FIELD_SEP}%B{_RECORD_SEP}"

_ACTION_WORDS: dict[ModChangeAction, tuple[str, ...]] = {
    ModChangeAction.ENABLED: ("enabled", "enable"),
    ModChangeAction.DISABLED: ("disabled", "disable"),
    ModChangeAction.ADDED: ("installed", "install", "added", "add"),
    ModChangeAction.REMOVED: ("deleted", "delete", "removed", "remove"),
    ModChangeAction.UPDATED: ("updated", "update"),
}
_WORD_ACTIONS = {word: action for action, words in _ACTION_WORDS.items() for word in words}
_CHANGE_LINE = re.compile(
    rf"^\s*(?:[-*]\s+)?({'|'.join(_WORD_ACTIONS)})\s+(?:mod:?\s+)?(\S.*?)\s*$",
    re.IGNORECASE,
)


def ignore_file_content() -> str:
    return "\n".join(IGNORE_PATTERNS) + "\n"


def parse_mod_changes(message: str) -> tuple[ModChange, ...]:
    """Extract mod changes from a snapshot message.

    Every line starting with a verb such as ``Enable``, ``Disabled``,
    ``Install`` or ``Deleted mod:`` names one mod. Other lines are ignored.
    """
    changes: list[ModChange] = []
    for line in message.splitlines():
        match = _CHANGE_LINE.match(line)
        if match is None:
            continue
        action = _WORD_ACTIONS[match.group(1).lower()]
        changes.append(ModChange(mod_name=match.group(2), action=action))
    return tuple(changes)


def parse_status(output: str) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]:
    """Split ``git status --porcelain=v1 -z`` output into staged, modified and untracked paths."""
    staged: list[str] = []
    modified: list[str] = []
    untracked: list[str] = []
    entries = iter(output.split("\0"))
    for entry in entries:
        if len(entry) < 4:
            continue
        index, worktree, path = entry[0], entry[1], entry[3:]
        if index in "RC":
            # renames and copies carry their origin path as the next entry
            next(entries, None)
        if index == "?":
            untracked.append(path)
            continue
        if index not in " !":
            staged.append(path)
        if worktree not in " !":
            modified.append(path)
    return tuple(staged), tuple(modified), tuple(untracked)


class GitRepository:
    """Runs git commands against one working directory.

    Args:
        root: Working directory (the repository root).
        executable: git binary name or path.
        timeout: Optional per-process limit in seconds.
        author_name: Name recorded on snapshots.
        author_email: Email recorded on snapshots.
    """

    def __init__(
        self,
        root: Path,
        *,
        executable: str = "git",
        timeout: float | None = None,
        author_name: str = "modvault",
        author_email: str = "modvault@localhost",
    ) -> None:
        self.root = root
        self._executable = executable
        self._timeout = timeout
        self._options = [
            "-c",
            f"user.name={author_name}",
            "-c",
            f"user.email={author_email}",
            "-c",
            "commit.gpgsign=false",
            "-c",
            "core.quotepath=false",
        ]

    def run(self, *args: str, check: bool = True) -> CommandResult:
        """Run a git subcommand in the repository root.

        Args:
            *args: git subcommand and arguments.
            check: If True, a non-zero exit raises SubordinateProcessError.

        Returns:
            CommandResult of the git process.

        Raises:
            SubordinateProcessError: If git cannot be started, times out, or
                exits non-zero while check is True.
        """
        command = [self._executable, *self._options, *args]
        logger.debug("Running %s in %s", " ".join(args), self.root)
        try:
            result = run_command(command, timeout=self._timeout, cwd=str(self.root))
        except FileNotFoundError as e:
            raise SubordinateProcessError(command, None, f"git executable not found: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise SubordinateProcessError(
                command, None, f"timed out after {self._timeout} seconds"
            ) from e

        if check and not result.success:
            raise SubordinateProcessError(command, result.returncode, result.stderr)
        return result

    def is_repository_root(self) -> bool:
        """Check whether the root is the top level of a git work tree."""
        if not self.root.is_dir():
            return False
        result = self.run("rev-parse", "--show-toplevel", check=False)
        if not result.success:
            return False
        return Path(result.stdout.strip()).resolve() == self.root.resolve()

    def init(self, branch: str) -> None:
        """Create a repository whose first commit will land on the given branch."""
        self.run("init", "-q")
        self.run("symbolic-ref", "HEAD", f"refs/heads/{branch}")

    def write_ignore_file(self) -> bool:
        """Write the ignore list unless an ignore file already exists.

        Returns:
            True if the file was written.
        """
        path = self.root / IGNORE_FILENAME
        if path.exists():
            return False
        path.write_text(ignore_file_content(), encoding="utf-8")
        return True

    def exclude_workspace(self) -> bool:
        """Add the staging area to the repository's local exclude file.

        Returns:
            True if the exclude file was changed.
        """
        git_path = self.run("rev-parse", "--git-path", "info/exclude").stdout.strip()
        path = self.root / git_path
        try:
            existing = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            existing = ""
        if WORKSPACE_EXCLUDE in existing.splitlines():
            return False

        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(f"{WORKSPACE_EXCLUDE}\n")
        logger.debug("Excluded %s in %s", WORKSPACE_EXCLUDE, path)
        return True

    def stage_all(self) -> None:
        """Stage every change in the working tree, deletions included."""
        self.run("add", "-A")

    def has_staged_changes(self) -> bool:
        result = self.run("diff", "--cached", "--quiet", check=False)
        if result.returncode == 0:
            return False
        if result.returncode == 1:
            return True
        raise SubordinateProcessError(list(result.args), result.returncode, result.stderr)

    def commit(self, message: str, *, allow_empty: bool = False) -> str:
        """Commit the index and return the new commit hash."""
        args = ["commit", "-q", "--no-verify", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self.run(*args)
        return self.head()

    def head(self) -> str:
        return self.run("rev-parse", "HEAD").stdout.strip()

    def resolve_commit(self, ref: str) -> str | None:
        """Resolve a reference to a full commit hash, or None."""
        if not ref or ref.startswith("-"):
            return None
        result = self.run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False)
        if not result.success:
            return None
        return result.stdout.strip() or None

    def branch_exists(self, name: str) -> bool:
        result = self.run("rev-parse", "--verify", "--quiet", f"refs/heads/{name}", check=False)
        return result.success

    def is_valid_branch_name(self, name: str) -> bool:
        if not name or name.startswith("-"):
            return False
        return self.run("check-ref-format", "--branch", name, check=False).success

    def create_branch(self, name: str, start: str | None = None, *, switch: bool = False) -> None:
        """Create a branch at ``start`` (HEAD by default), optionally checking it out."""
        args = ["checkout", "-q", "-b", name] if switch else ["branch", name]
        if start:
            args.append(start)
        self.run(*args)

    def checkout(self, branch: str) -> None:
        self.run("checkout", "-q", branch)

    def reset_hard(self, commit: str) -> None:
        self.run("reset", "-q", "--hard", commit)

    def current_branch(self) -> str | None:
        """Return the checked-out branch name, or None on a detached HEAD."""
        result = self.run("symbolic-ref", "--short", "-q", "HEAD", check=False)
        if not result.success:
            return None
        return result.stdout.strip() or None

    def branches(self) -> list[str]:
        result = self.run("for-each-ref", "--format=%(refname:short)", "refs/heads")
        return sorted(line for line in result.stdout.splitlines() if line)

    def log(self, limit: int) -> list[Snapshot]:
        """Return up to ``limit`` snapshots, newest first, without changed paths."""
        result = self.run("log", f"--max-count={limit}", f"--format={_LOG_FORMAT}")
        return parse_log(result.stdout)

    def changed_paths(self, commit: str) -> tuple[str, ...]:
        result = self.run("show", "--name-only", "--pretty=format:", commit)
        return tuple(line for line in result.stdout.splitlines() if line.strip())

    def status(self) -> RepositoryStatus:
        result = self.run("status", "--porcelain=v1", "-z", "--untracked-files=all")
        staged, modified, untracked = parse_status(result.stdout)
        return RepositoryStatus(
            branch=self.current_branch(),
            staged=staged,
            modified=modified,
            untracked=untracked,
        )


def parse_log(output: str) -> list[Snapshot]:
    """Parse ``git log`` output produced with the record/field separator format."""
    snapshots: list[Snapshot] = []
    for entry in output.split(_RECORD_SEP):
        entry = entry.strip("\n")
        if not entry:
            continue
        parts = entry.split(_FIELD_SEP, 3)
        if len(parts) != 4:
            logger.warning("Skipping malformed log entry: %r", entry[:80])
            continue
        sha, author, date, message = parts
        try:
            authored_at = datetime.fromisoformat(date.strip())
        except ValueError:
            logger.warning("Skipping log entry %s with bad date %r", sha, date)
            continue
        message = message.strip()
        snapshots.append(
            Snapshot(
                id=sha.strip(),
                message=message,
                authored_at=authored_at,
                author=author,
                mod_changes=parse_mod_changes(message),
            )
        )
    return snapshots

"""XDG-compliant path management for modvault.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and state storage.

XDG defaults:
- Config: ~/.config/modvault/
- State: ~/.local/state/modvault/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "modvault"

# Tool-owned directory inside a mods root (staging area, never scanned or snapshotted)
WORKSPACE_DIRNAME = ".modvault"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/modvault/ (or XDG_CONFIG_HOME/modvault/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the mod record database, which should persist
    between runs but is not configuration.

    Returns:
        Path to ~/.local/state/modvault/ (or XDG_STATE_HOME/modvault/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Get the default configuration file path.

    Returns:
        Path to ~/.config/modvault/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_database_path() -> Path:
    """Get the default mod record database path.

    Returns:
        Path to ~/.local/state/modvault/mods.db.
    """
    return get_state_dir() / "mods.db"


def get_trash_dir(mods_root: Path) -> Path:
    """Get the staging directory for deletions inside a mods root.

    Args:
        mods_root: Managed mods directory.

    Returns:
        Path to <mods_root>/.modvault/trash.
    """
    return mods_root / WORKSPACE_DIRNAME / "trash"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_trash_dir(mods_root: Path) -> Path:
    """Create the deletion staging directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_trash_dir(mods_root), "trash")

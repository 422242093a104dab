"""modvault configuration and settings.

This module provides the configuration model and I/O functions. A single
ModvaultConfig is loaded once by the outer shell and handed to every
component at construction time; no component reads the file itself.

Configuration is stored in ~/.config/modvault/config.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modvault.core.errors import ConfigError, ConfigParseError
from modvault.core.paths import get_config_path, get_database_path
from modvault.mods.models import ModCategory

logger = logging.getLogger(__name__)

# How a re-scan matches files to existing records
IdentityPolicy = Literal["content", "path"]

DEFAULT_MOD_EXTENSIONS: tuple[str, ...] = (".package", ".ts4script", ".cfg")

DEFAULT_EXTENSION_CATEGORIES: dict[str, ModCategory] = {
    ".ts4script": ModCategory.SCRIPT,
}


class ModvaultConfig(BaseModel):
    """Configuration for the mod state and versioning engine.

    Attributes:
        mods_path: Managed mods directory (also the repository root).
        database_path: SQLite file holding mod records. None uses the state dir.
        mod_extensions: Recognized mod file extensions (lowercase, with dot).
        extension_categories: Extension to category overrides applied before
            filename heuristics.
        script_threshold: Enabled script mods allowed before a conflict is reported.
        identity_policy: "content" lets a re-scan follow an externally renamed
            file by content hash; "path" treats every new path as a new mod.
        auto_snapshot: Snapshot the repository after toggle, delete and install.
        debounce_seconds: Quiet period the watcher waits before re-scanning.
        git_executable: Name or path of the git binary.
        git_timeout_seconds: Optional limit for a single git process.
        primary_branch: Branch that rollbacks return to.
        author_name: Commit author name for snapshots.
        author_email: Commit author email for snapshots.
    """

    model_config = ConfigDict(extra="forbid")

    mods_path: Path | None = None
    database_path: Path | None = None
    mod_extensions: tuple[str, ...] = DEFAULT_MOD_EXTENSIONS
    extension_categories: dict[str, ModCategory] = Field(
        default_factory=lambda: dict(DEFAULT_EXTENSION_CATEGORIES)
    )
    script_threshold: Annotated[int, Field(ge=1)] = 10
    identity_policy: IdentityPolicy = "content"
    auto_snapshot: bool = True
    debounce_seconds: Annotated[float, Field(ge=0.0, le=60.0)] = 0.5
    git_executable: str = "git"
    git_timeout_seconds: Annotated[float | None, Field(gt=0)] = None
    primary_branch: str = "main"
    author_name: str = "modvault"
    author_email: str = "modvault@localhost"

    @field_validator("mod_extensions", mode="after")
    @classmethod
    def normalize_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Lowercase extensions and ensure a leading dot."""
        normalized: list[str] = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in normalized:
                normalized.append(ext)
        if not normalized:
            msg = "mod_extensions must contain at least one extension"
            raise ValueError(msg)
        return tuple(normalized)

    @field_validator("extension_categories", mode="after")
    @classmethod
    def normalize_category_keys(cls, value: dict[str, ModCategory]) -> dict[str, ModCategory]:
        """Lowercase extension keys so lookups are case-insensitive."""
        return {
            (k.lower() if k.startswith(".") else f".{k.lower()}"): v for k, v in value.items()
        }

    @property
    def effective_database_path(self) -> Path:
        """Database file to use, falling back to the state directory."""
        if self.database_path is not None:
            return self.database_path
        return get_database_path()

    def require_mods_path(self) -> Path:
        """Return the configured mods directory.

        Raises:
            ConfigError: If no mods path has been configured.
        """
        if self.mods_path is None:
            raise ConfigError(
                "No mods directory configured. Run 'modvault init --mods-path <dir>'."
            )
        return self.mods_path.expanduser().resolve()


def load_config(path: Path | None = None) -> ModvaultConfig:
    """Load configuration from a TOML file.

    A missing file is not an error: defaults are returned so that a fresh
    install can run ``modvault init``.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated ModvaultConfig object.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file can't be read or doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return ModvaultConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return ModvaultConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e


def save_config(config: ModvaultConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The ModvaultConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def config_to_dict(config: ModvaultConfig) -> dict[str, Any]:
    """Convert ModvaultConfig to a dictionary for TOML serialization.

    Only includes values that differ from the defaults, plus the mods path,
    to keep the file short. TOML has no null, so None values are dropped.

    Args:
        config: The ModvaultConfig to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    defaults = ModvaultConfig()
    result: dict[str, Any] = {}

    for name in ModvaultConfig.model_fields:
        value = getattr(config, name)
        if value is None:
            continue
        if name != "mods_path" and value == getattr(defaults, name):
            continue
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, tuple):
            value = list(value)
        elif name == "extension_categories":
            value = {ext: category.value for ext, category in value.items()}
        result[name] = value

    return result

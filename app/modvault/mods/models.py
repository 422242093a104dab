"""Mod domain models.

This module defines the data structures that cross the boundary between
the engine and its callers: mod records, scan reports and toggle results.
All of them are immutable; components hand out fresh values instead of
sharing mutable objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from modvault.vcs.models import SnapshotResult

# Appended to a mod's file name to disable it; its presence is the only
# on-disk signal of the enabled state.
DISABLED_SUFFIX = ".disabled"


class ModCategory(str, Enum):
    """Category of a mod, inferred from its file name.

    Attributes:
        GAMEPLAY: Gameplay changes (traits, careers, aspirations).
        APPEARANCE: Create-a-Sim content (hair, clothing, makeup).
        BUILD: Build/buy mode objects and furniture.
        SCRIPT: Script mods (executable script bundles).
        OVERRIDE: Default replacements and overrides.
        OTHER: Anything the heuristics cannot place.
    """

    GAMEPLAY = "gameplay"
    APPEARANCE = "appearance"
    BUILD = "build"
    SCRIPT = "script"
    OVERRIDE = "override"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class ModRecord:
    """A mod the tool believes exists on disk.

    Attributes:
        id: Stable synthetic identifier, immutable once assigned.
        display_name: Cosmetic name derived from the file name.
        file_name: Canonical file name with the disabled suffix stripped.
        absolute_path: Current location of the file (changes on toggle).
        category: Inferred mod category.
        enabled: Whether the mod is active; mirrors the path suffix.
        file_size_bytes: Size of the file in bytes.
        content_hash: SHA-256 hex digest of the file contents.
        modified_at: File modification time (UTC).
        installed_at: When the tool first observed the file (UTC).
        last_enabled_at: When the tool last enabled the mod (UTC), if ever.
        author: Author parsed from a bracketed tag in the file name.
        version: Version parsed from the file name.
        conflicts: Auxiliary list of conflicting mod ids.
        dependencies: Auxiliary list of dependency names.
    """

    id: str
    display_name: str
    file_name: str
    absolute_path: str
    category: ModCategory
    enabled: bool
    file_size_bytes: int
    content_hash: str
    modified_at: datetime
    installed_at: datetime
    last_enabled_at: datetime | None = None
    author: str | None = None
    version: str | None = None
    conflicts: tuple[str, ...] = field(default_factory=tuple)
    dependencies: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.id:
            msg = "Mod id cannot be empty"
            raise ValueError(msg)
        if not self.absolute_path:
            msg = "Mod path cannot be empty"
            raise ValueError(msg)
        if self.enabled == self.absolute_path.endswith(DISABLED_SUFFIX):
            msg = (
                f"Inconsistent mod record {self.id}: enabled={self.enabled} "
                f"but path is {self.absolute_path}"
            )
            raise ValueError(msg)
        if self.file_size_bytes < 0:
            msg = f"File size cannot be negative, got {self.file_size_bytes}"
            raise ValueError(msg)

    @property
    def extension(self) -> str:
        """Lowercase extension of the canonical file name."""
        _, dot, ext = self.file_name.rpartition(".")
        return f".{ext.lower()}" if dot else ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary.

        Returns:
            Dictionary representation of the record.
        """
        return {
            "id": self.id,
            "display_name": self.display_name,
            "file_name": self.file_name,
            "absolute_path": self.absolute_path,
            "category": self.category.value,
            "enabled": self.enabled,
            "file_size_bytes": self.file_size_bytes,
            "content_hash": self.content_hash,
            "modified_at": self.modified_at.isoformat(),
            "installed_at": self.installed_at.isoformat(),
            "last_enabled_at": (
                self.last_enabled_at.isoformat() if self.last_enabled_at else None
            ),
            "author": self.author,
            "version": self.version,
            "conflicts": list(self.conflicts),
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True, slots=True)
class ScanReport:
    """Outcome of reconciling a directory scan into the record store.

    Attributes:
        root: Directory that was scanned.
        records: Every record currently observable on disk, sorted by path.
        added: Ids of records created by this scan.
        updated: Ids of records whose metadata changed.
        moved: Ids of records matched to a new path by content hash.
        removed: Ids of records deleted because their file disappeared.
        errors: Human-readable messages for files that could not be read.
    """

    root: str
    records: tuple[ModRecord, ...]
    added: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    moved: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        """True if the scan modified the record store."""
        return bool(self.added or self.updated or self.moved or self.removed)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "root": self.root,
            "records": [r.to_dict() for r in self.records],
            "added": list(self.added),
            "updated": list(self.updated),
            "moved": list(self.moved),
            "removed": list(self.removed),
            "errors": list(self.errors),
        }


@dataclass(frozen=True, slots=True)
class ToggleResult:
    """Outcome of an enable/disable request.

    Attributes:
        mod_id: Id of the mod that was targeted.
        enabled: Enabled state after the operation.
        changed: False if the mod was already in the requested state.
        path: Path of the file after the operation.
        previous_path: Path of the file before the operation.
        snapshot: Snapshot taken after the change, if any.
    """

    mod_id: str
    enabled: bool
    changed: bool
    path: str
    previous_path: str
    snapshot: SnapshotResult | None = None


@dataclass(frozen=True, slots=True)
class Profile:
    """A named set of mods that should be enabled together.

    Attributes:
        id: Stable synthetic identifier.
        name: Unique, user-facing name.
        mod_ids: Ids of the mods the profile enables; every other mod under
            the root is disabled when the profile is applied.
        description: Optional free text.
        branch: Repository branch the profile lives on, if any.
        created_at: When the profile was created (UTC).
        last_used_at: When the profile was last applied (UTC), if ever.
        active: True for the profile applied most recently.
    """

    id: str
    name: str
    mod_ids: tuple[str, ...]
    created_at: datetime
    description: str | None = None
    branch: str | None = None
    last_used_at: datetime | None = None
    active: bool = False

    def __post_init__(self) -> None:
        if not self.name.strip():
            msg = "Profile name cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "mod_ids": list(self.mod_ids),
            "branch": self.branch,
            "created_at": self.created_at.isoformat(),
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
            "active": self.active,
        }


@dataclass(frozen=True, slots=True)
class ProfileApplyResult:
    """Outcome of applying a profile.

    Attributes:
        profile: The profile as stored after it was applied.
        enabled: Ids of mods this application enabled.
        disabled: Ids of mods this application disabled.
        missing: Profile mod ids with no record under the root.
        snapshot: Snapshot taken after the change, if any.
    """

    profile: Profile
    enabled: tuple[str, ...] = ()
    disabled: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    snapshot: SnapshotResult | None = None

    @property
    def changed(self) -> bool:
        return bool(self.enabled or self.disabled)

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "enabled": list(self.enabled),
            "disabled": list(self.disabled),
            "missing": list(self.missing),
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
        }

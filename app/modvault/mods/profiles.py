"""Mod profiles.

A profile is a named set of mod ids. Applying it enables exactly those
mods under the root and disables every other one, going through the
activation manager so each change is a checked rename.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from modvault.core.errors import (
    AlreadyExistsError,
    InvalidNameError,
    ModvaultError,
    NotFoundError,
)
from modvault.mods.activation import ActivationManager
from modvault.mods.models import Profile, ProfileApplyResult
from modvault.mods.store import ModStore

logger = logging.getLogger(__name__)


class ProfileManager:
    """Creates, applies and deletes profiles.

    Args:
        store: Record store holding mods and profiles.
        activation: Activation manager used for every state change.
    """

    def __init__(self, store: ModStore, activation: ActivationManager) -> None:
        self._store = store
        self._activation = activation

    def list_profiles(self) -> list[Profile]:
        return self._store.list_profiles()

    def get(self, name: str) -> Profile:
        return self._store.require_profile(name)

    def create(
        self,
        name: str,
        root: Path,
        *,
        mod_ids: Iterable[str] | None = None,
        description: str | None = None,
        branch: str | None = None,
    ) -> Profile:
        """Create a profile.

        Args:
            name: Unique profile name.
            root: Managed mods directory.
            mod_ids: Mods the profile enables. Defaults to the mods that are
                enabled under the root right now.
            description: Optional free text.
            branch: Repository branch to switch to when the profile is applied.

        Raises:
            InvalidNameError: If the name is blank.
            AlreadyExistsError: If a profile with this name exists.
            NotFoundError: If a given mod id has no record.
        """
        name = name.strip()
        if not name:
            raise InvalidNameError("Profile name cannot be empty")
        if self._store.get_profile(name) is not None:
            raise AlreadyExistsError(f"Profile already exists: {name}")

        ids = self._resolve_ids(mod_ids, root)
        profile = Profile(
            id=uuid.uuid4().hex[:12],
            name=name,
            mod_ids=ids,
            created_at=datetime.now(UTC),
            description=description,
            branch=branch or None,
        )
        self._store.save_profile(profile)
        logger.info("Created profile %s with %d mods", name, len(ids))
        return profile

    def capture(self, name: str, root: Path) -> Profile:
        """Replace a profile's mod set with the mods enabled right now."""
        profile = self._store.require_profile(name)
        updated = replace(profile, mod_ids=self._resolve_ids(None, root))
        self._store.save_profile(updated)
        logger.info("Captured %d enabled mods into profile %s", len(updated.mod_ids), name)
        return updated

    def _resolve_ids(self, mod_ids: Iterable[str] | None, root: Path) -> tuple[str, ...]:
        if mod_ids is None:
            return tuple(r.id for r in self._store.list_mods(enabled=True, under=root))
        ids = tuple(dict.fromkeys(mod_ids))
        unknown = [mod_id for mod_id in ids if self._store.get(mod_id) is None]
        if unknown:
            raise NotFoundError(f"Mod not found: {', '.join(unknown)}")
        return ids

    def apply(self, name: str, root: Path, *, activate: bool = True) -> ProfileApplyResult:
        """Enable the profile's mods under the root and disable the rest.

        If any change fails, the changes already made are undone before
        the error propagates.

        Args:
            name: Profile to apply.
            root: Managed mods directory.
            activate: Mark the profile active once the mods are in place.

        Raises:
            NotFoundError: If the profile does not exist.
            FilesystemOperationError: If a rename fails.
        """
        profile = self._store.require_profile(name)
        wanted = set(profile.mod_ids)
        records = self._store.list_mods(under=root)
        known = {r.id for r in records}

        enabled: list[str] = []
        disabled: list[str] = []
        try:
            for record in records:
                result = self._activation.set_enabled(record.id, record.id in wanted)
                if not result.changed:
                    continue
                (enabled if result.enabled else disabled).append(record.id)
        except ModvaultError:
            logger.error(
                "Applying profile %s failed, undoing %d changes", name, len(enabled) + len(disabled)
            )
            self._undo(enabled, disabled)
            raise

        result = ProfileApplyResult(
            profile=profile,
            enabled=tuple(enabled),
            disabled=tuple(disabled),
            missing=tuple(mod_id for mod_id in profile.mod_ids if mod_id not in known),
        )
        logger.info(
            "Applied profile %s: %d enabled, %d disabled", name, len(enabled), len(disabled)
        )
        return self.activate(result) if activate else result

    def activate(self, result: ProfileApplyResult) -> ProfileApplyResult:
        """Mark the applied profile as the active one."""
        active = self._store.set_active_profile(result.profile.id, datetime.now(UTC))
        return replace(result, profile=active)

    def revert(self, result: ProfileApplyResult) -> None:
        """Undo the mod changes of an application."""
        self._undo(result.enabled, result.disabled)

    def _undo(self, enabled: Iterable[str], disabled: Iterable[str]) -> None:
        changes = [(mod_id, False) for mod_id in enabled]
        changes += [(mod_id, True) for mod_id in disabled]
        for mod_id, state in reversed(changes):
            try:
                self._activation.set_enabled(mod_id, state)
            except ModvaultError as e:
                logger.error("Cannot restore mod %s: %s", mod_id, e)

    def delete(self, name: str) -> Profile:
        """Delete a profile; its mods are left as they are.

        Raises:
            NotFoundError: If the profile does not exist.
        """
        profile = self._store.require_profile(name)
        self._store.delete_profile(name)
        logger.info("Deleted profile %s", name)
        return profile

    def active(self) -> Profile | None:
        return self._store.active_profile()

"""Hashing and naming helpers for mod files.

Everything here is derived from a file name or file bytes alone. Display
names, authors and versions are best-effort cosmetic cleanup and must never
be used as identity keys; the content hash is the only integrity signal.
"""

import hashlib
import re
from collections.abc import Mapping
from pathlib import Path

from modvault.mods.models import DISABLED_SUFFIX, ModCategory

_HASH_CHUNK_SIZE = 1024 * 1024

_AUTHOR_TAG = re.compile(r"\[([^\]]*)\]")
_SEPARATORS = re.compile(r"[-_]+")
_WHITESPACE = re.compile(r"\s+")

# A version token is bounded by start/end, whitespace, separators or brackets:
# "v1", "1.2", "v1.2.3". Bare integers are left alone ("4k", "Sims4").
_VERSION_TOKEN = re.compile(
    r"(?i)(?<![^\s\-_\[(])(?:v?(\d+(?:\.\d+)+)|v(\d+))(?![^\s\-_\])])"
)

# Checked in order; the first match wins.
_CATEGORY_PATTERNS: tuple[tuple[ModCategory, re.Pattern[str]], ...] = (
    (ModCategory.SCRIPT, re.compile(r"script")),
    (
        ModCategory.APPEARANCE,
        re.compile(r"(?<![a-z])cas(?![a-z])|hair|cloth|makeup|skin|outfit"),
    ),
    (ModCategory.BUILD, re.compile(r"build|(?<![a-z])buy(?![a-z])|furniture|deco")),
    (ModCategory.GAMEPLAY, re.compile(r"gameplay|trait|career|aspiration")),
    (ModCategory.OVERRIDE, re.compile(r"override|default|replacement")),
)


def content_hash(path: Path) -> str:
    """Compute the SHA-256 hex digest of a file's full contents.

    Args:
        path: File to hash.

    Returns:
        Lowercase hex digest.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    with path.open("rb") as f:
        while chunk := f.read(_HASH_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def has_valid_encoding(path: Path | str) -> bool:
    """Check that a path decoded from the filesystem is valid UTF-8.

    Names with undecodable bytes come back from the OS with surrogate
    escapes; they cannot be stored or shown as text.
    """
    try:
        str(path).encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def display_path(path: Path | str) -> str:
    """Render a path for messages, escaping undecodable bytes."""
    return str(path).encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def is_disabled(name: str) -> bool:
    """Check whether a file name carries the disabled suffix."""
    return name.endswith(DISABLED_SUFFIX)


def strip_disabled_suffix(name: str) -> str:
    """Remove one trailing disabled suffix, if present."""
    if is_disabled(name):
        return name[: -len(DISABLED_SUFFIX)]
    return name


def disabled_path(path: Path) -> Path:
    """Return the disabled location for an enabled mod path."""
    return path.with_name(path.name + DISABLED_SUFFIX)


def enabled_path(path: Path) -> Path:
    """Return the enabled location for a disabled mod path."""
    return path.with_name(strip_disabled_suffix(path.name))


def split_extension(file_name: str) -> tuple[str, str]:
    """Split a canonical file name into stem and lowercase extension.

    Args:
        file_name: File name without the disabled suffix.

    Returns:
        Tuple of (stem, extension). Extension includes the dot or is empty.
    """
    stem, dot, ext = file_name.rpartition(".")
    if not dot or not stem:
        return file_name, ""
    return stem, f".{ext.lower()}"


def derive_display_name(file_name: str) -> str:
    """Derive a human-friendly name from a canonical file name.

    Strips the extension, bracketed author tags and version substrings, and
    collapses dashes, underscores and whitespace to single spaces.

    Examples:
        >>> derive_display_name("[Author] Better_Build_Mode_v1.2.3.package")
        'Better Build Mode'

    Args:
        file_name: File name without the disabled suffix.

    Returns:
        Cleaned-up name, or the file name itself if nothing is left.
    """
    stem, _ = split_extension(file_name)
    name = _AUTHOR_TAG.sub(" ", stem)
    name = _VERSION_TOKEN.sub(" ", name)
    name = _SEPARATORS.sub(" ", name)
    name = _WHITESPACE.sub(" ", name).strip()
    return name or file_name


def extract_author(file_name: str) -> str | None:
    """Return the first non-empty bracketed tag in a file name, if any."""
    for match in _AUTHOR_TAG.finditer(file_name):
        author = match.group(1).strip()
        if author:
            return author
    return None


def extract_version(file_name: str) -> str | None:
    """Return the first version-like token in a file name, if any."""
    stem, _ = split_extension(file_name)
    match = _VERSION_TOKEN.search(stem)
    if match is None:
        return None
    return match.group(1) or match.group(2)


def categorize(
    file_name: str,
    extension_categories: Mapping[str, ModCategory] | None = None,
) -> ModCategory:
    """Infer a mod category from its canonical file name.

    The extension mapping is consulted first; keyword heuristics on the
    file name are the fallback.

    Args:
        file_name: File name without the disabled suffix.
        extension_categories: Lowercase extension to category overrides.

    Returns:
        The inferred ModCategory.
    """
    stem, ext = split_extension(file_name)
    if extension_categories and ext in extension_categories:
        return extension_categories[ext]

    lowered = stem.lower()
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(lowered):
            return category

    return ModCategory.OTHER

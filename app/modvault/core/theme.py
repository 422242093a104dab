"""Console theme.

Styles come from the bundled ``data/theme.toml``; a user file at
``<config dir>/theme.toml`` may override any subset of them. Every entry
is a Rich style definition such as ``"bold #03b971"``.
"""

import functools
import logging
import tomllib
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.errors import StyleSyntaxError
from rich.style import Style
from rich.theme import Theme

from modvault.core.paths import get_config_dir

logger = logging.getLogger(__name__)

# Styles the formatting helpers refer to
STYLE_NAMES = frozenset(
    {
        "text",
        "muted",
        "dim",
        "header",
        "bold_header",
        "border",
        "success",
        "warning",
        "error",
        "info",
        "added",
        "removed",
        "changed",
        "mod.name",
        "mod.size",
        "mod.enabled",
        "mod.disabled",
        "severity.high",
        "severity.medium",
        "severity.low",
        "snapshot.id",
    }
)


class ThemeFile(BaseModel):
    """Contents of one theme file."""

    model_config = ConfigDict(extra="ignore")

    styles: dict[str, str] = {}

    @field_validator("styles")
    @classmethod
    def check_styles(cls, styles: dict[str, str]) -> dict[str, str]:
        unknown = sorted(set(styles) - STYLE_NAMES)
        if unknown:
            msg = f"unknown style names: {', '.join(unknown)}"
            raise ValueError(msg)
        for name, definition in styles.items():
            try:
                Style.parse(definition)
            except StyleSyntaxError as e:
                msg = f"{name}: {e}"
                raise ValueError(msg) from e
        return styles


def user_theme_path() -> Path:
    return get_config_dir() / "theme.toml"


def read_theme_file(path: Path) -> dict[str, str]:
    """Return the styles defined in a theme file.

    A missing file defines nothing. A file that cannot be parsed or holds
    an invalid style is ignored as a whole, with a warning.
    """
    try:
        with path.open("rb") as f:
            return ThemeFile.model_validate(tomllib.load(f)).styles
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError, ValidationError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return {}


def load_styles(user_path: Path | None = None) -> dict[str, str]:
    """Merge the bundled styles with the user's overrides."""
    bundled = resources.files("modvault.data").joinpath("theme.toml")
    with resources.as_file(bundled) as path:
        styles = read_theme_file(path)
    styles.update(read_theme_file(user_path or user_theme_path()))
    return styles


@functools.cache
def get_theme() -> Theme:
    """Rich theme for the shared consoles, built once per process."""
    return Theme(load_styles())

"""Unit tests for the console theme."""

from pathlib import Path

import pytest
from modvault.core.theme import (
    STYLE_NAMES,
    ThemeFile,
    get_theme,
    load_styles,
    read_theme_file,
    user_theme_path,
)
from pydantic import ValidationError
from rich.theme import Theme


class TestThemeFile:
    """Tests for theme file validation."""

    def test_accepts_rich_style_definitions(self) -> None:
        theme = ThemeFile(styles={"error": "bold #f53263", "muted": "grey50"})
        assert theme.styles["error"] == "bold #f53263"

    def test_rejects_unknown_style_names(self) -> None:
        """Only styles the console output uses can be set."""
        with pytest.raises(ValidationError, match="unknown style names: package.manual"):
            ThemeFile(styles={"package.manual": "#ffffff"})

    def test_rejects_unparseable_style(self) -> None:
        with pytest.raises(ValidationError, match="snapshot.id"):
            ThemeFile(styles={"snapshot.id": "#12345g sparkly"})

    def test_missing_section_means_no_styles(self) -> None:
        assert ThemeFile.model_validate({}).styles == {}


class TestReadThemeFile:
    """Tests for read_theme_file."""

    def test_reads_styles(self, tmp_path: Path) -> None:
        path = tmp_path / "theme.toml"
        path.write_text('[styles]\ntext = "#000000"\n"mod.enabled" = "bold #aabbcc"\n')

        assert read_theme_file(path) == {"text": "#000000", "mod.enabled": "bold #aabbcc"}

    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_theme_file(tmp_path / "nope.toml") == {}

    def test_malformed_toml_ignored(self, tmp_path: Path) -> None:
        """A file that is not TOML contributes nothing."""
        path = tmp_path / "theme.toml"
        path.write_text("not valid [ toml")

        assert read_theme_file(path) == {}

    def test_invalid_file_ignored_as_a_whole(self, tmp_path: Path) -> None:
        """One bad entry discards the file, good entries included."""
        path = tmp_path / "theme.toml"
        path.write_text('[styles]\ntext = "#000000"\nmuted = 5\n')

        assert read_theme_file(path) == {}


class TestLoadStyles:
    """Tests for merging bundled and user styles."""

    def test_bundled_styles_cover_every_name(self, tmp_path: Path) -> None:
        styles = load_styles(tmp_path / "absent.toml")

        assert set(styles) == STYLE_NAMES
        assert styles["snapshot.id"] == "#d44ebc"

    def test_user_file_overrides_subset(self, tmp_path: Path) -> None:
        user = tmp_path / "theme.toml"
        user.write_text('[styles]\n"mod.enabled" = "#ff0000"\n')

        styles = load_styles(user)

        assert styles["mod.enabled"] == "#ff0000"
        assert styles["mod.disabled"] == "#636e72"

    def test_default_user_path_under_config_dir(self, tmp_path: Path) -> None:
        """Overrides are read from the modvault config directory."""
        assert user_theme_path() == tmp_path / "xdg-config" / "modvault" / "theme.toml"
        user_theme_path().parent.mkdir(parents=True)
        user_theme_path().write_text('[styles]\ninfo = "cyan"\n')

        assert load_styles()["info"] == "cyan"


class TestGetTheme:
    """Tests for get_theme."""

    def test_builds_rich_theme_once(self) -> None:
        theme = get_theme()

        assert isinstance(theme, Theme)
        assert theme is get_theme()
        for name in ("mod.enabled", "severity.high", "bold_header"):
            assert name in theme.styles

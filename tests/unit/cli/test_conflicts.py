"""Unit tests for the conflicts command."""

import json
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from modvault.cli.main import app
from modvault.mods.conflicts import build_report
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def service() -> Any:
    with patch("modvault.cli.commands.conflicts.open_service") as mock_open:
        yield mock_open.return_value


class TestConflictsCommand:
    """Tests for modvault conflicts."""

    def test_no_conflicts(self, service: MagicMock, record_factory: Any) -> None:
        """A clean set exits 0."""
        service.conflicts.return_value = build_report([record_factory()])
        result = runner.invoke(app, ["conflicts"])
        assert result.exit_code == 0
        assert "No conflicts found" in result.stdout

    def test_duplicates_exit_2(self, service: MagicMock, record_factory: Any) -> None:
        """Findings are shown with suggestions and exit code 2."""
        service.conflicts.return_value = build_report(
            [
                record_factory(id="aaa"),
                record_factory(id="bbb", absolute_path="/mods/Other/BetterBuild.package"),
            ]
        )

        result = runner.invoke(app, ["conflicts"])

        assert result.exit_code == 2
        assert "Suggestions" in result.stdout

    def test_json(self, service: MagicMock, record_factory: Any) -> None:
        service.conflicts.return_value = build_report(
            [
                record_factory(id="aaa"),
                record_factory(id="bbb", absolute_path="/mods/Other/BetterBuild.package"),
            ]
        )

        result = runner.invoke(app, ["conflicts", "--json"])

        assert result.exit_code == 2
        data = json.loads(result.stdout)
        assert data["has_conflicts"] is True
        assert data["findings"][0]["kind"] == "duplicate-filename"
        assert data["findings"][0]["affected_mod_ids"] == ["aaa", "bbb"]

"""Unit tests for history commands."""

import json
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from modvault.cli.main import app
from modvault.core.errors import (
    AlreadyExistsError,
    NotFoundError,
    RepositoryNotInitializedError,
    SnapshotNotFoundError,
)
from modvault.vcs.models import (
    ModChange,
    ModChangeAction,
    RepositoryStatus,
    RollbackResult,
    Snapshot,
    SnapshotResult,
)
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def service() -> Any:
    with patch("modvault.cli.commands.history.open_service") as mock_open:
        yield mock_open.return_value


@pytest.fixture
def sample_snapshots() -> list[Snapshot]:
    return [
        Snapshot(
            id="b" * 40,
            message="Disable Long Hair CC",
            authored_at=datetime(2026, 2, 1, 10, 0, tzinfo=UTC),
            author="modvault",
            changed_paths=("Hair/LongHair_CC.package", "Hair/LongHair_CC.package.disabled"),
        ),
        Snapshot(
            id="a" * 40,
            message="Initial snapshot",
            authored_at=datetime(2026, 1, 31, 9, 0, tzinfo=UTC),
            author="modvault",
        ),
    ]


class TestHistoryCommand:
    """Tests for modvault history."""

    def test_help(self) -> None:
        result = runner.invoke(app, ["history", "--help"])
        assert result.exit_code == 0
        assert "--limit" in result.stdout
        assert "rollback" in result.stdout

    def test_table(self, service: MagicMock, sample_snapshots: list[Snapshot]) -> None:
        service.history.return_value = sample_snapshots

        result = runner.invoke(app, ["history", "-n", "5"])

        assert result.exit_code == 0
        assert "bbbbbbb" in result.stdout
        service.history.assert_called_once_with(5)

    def test_json(self, service: MagicMock, sample_snapshots: list[Snapshot]) -> None:
        """JSON output carries full ids and changed paths."""
        service.history.return_value = sample_snapshots

        result = runner.invoke(app, ["history", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [s["id"] for s in data] == ["b" * 40, "a" * 40]
        assert data[0]["changed_paths"][0] == "Hair/LongHair_CC.package"
        service.history.assert_called_once_with(20)

    def test_empty(self, service: MagicMock) -> None:
        service.history.return_value = []
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No snapshots found" in result.stdout

    def test_not_initialized(self, service: MagicMock) -> None:
        service.history.side_effect = RepositoryNotInitializedError("/mods")
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 1


class TestSnapshotCommand:
    """Tests for modvault history snapshot."""

    def test_creates_snapshot(self, service: MagicMock) -> None:
        service.snapshot.return_value = SnapshotResult(snapshot_id="c" * 40, message="Tidy up")

        result = runner.invoke(app, ["history", "snapshot", "-m", "Tidy up"])

        assert result.exit_code == 0
        assert "Created snapshot" in result.stdout
        service.snapshot.assert_called_once_with("Tidy up")
        service.history.assert_not_called()

    def test_nothing_changed(self, service: MagicMock) -> None:
        service.snapshot.return_value = SnapshotResult(snapshot_id=None, message="Manual snapshot")
        result = runner.invoke(app, ["history", "snapshot"])
        assert result.exit_code == 0
        assert "Nothing changed" in result.stdout


class TestRollbackCommand:
    """Tests for modvault history rollback."""

    def test_rollback_yes(self, service: MagicMock) -> None:
        service.rollback.return_value = RollbackResult(
            snapshot_id="a" * 40,
            backup_branch="backup-20260201-100000-000000",
            previous_tip="b" * 40,
            branch="main",
        )

        result = runner.invoke(app, ["history", "rollback", "aaaaaaa", "--yes"])

        assert result.exit_code == 0
        assert "Rolled back to aaaaaaa" in result.stdout
        assert "backup-20260201-100000-000000" in result.stdout
        service.rollback.assert_called_once_with("aaaaaaa")

    def test_rollback_declined(self, service: MagicMock) -> None:
        """Answering no leaves the directory alone."""
        result = runner.invoke(app, ["history", "rollback", "aaaaaaa"], input="n\n")
        assert result.exit_code == 0
        service.rollback.assert_not_called()

    def test_unknown_snapshot(self, service: MagicMock) -> None:
        service.rollback.side_effect = SnapshotNotFoundError("zzz")
        result = runner.invoke(app, ["history", "rollback", "zzz", "-y"])
        assert result.exit_code == 1
        assert "zzz" in result.output


class TestBranchesCommand:
    """Tests for modvault history branches."""

    def test_marks_current(self, service: MagicMock) -> None:
        service.branches.return_value = ["backup-20260201-100000-000000", "main"]
        service.current_branch.return_value = "main"

        result = runner.invoke(app, ["history", "branches"])

        assert result.exit_code == 0
        assert "* main" in result.stdout
        assert "  backup-20260201-100000-000000" in result.stdout


class TestHistoryModChanges:
    """Mod changes parsed from snapshot messages."""

    def test_json_includes_mod_changes(self, service: MagicMock) -> None:
        service.history.return_value = [
            Snapshot(
                id="c" * 40,
                message="Apply profile builds\n\nDisable Long Hair CC",
                authored_at=datetime(2026, 2, 2, 10, 0, tzinfo=UTC),
                author="modvault",
                mod_changes=(ModChange("Long Hair CC", ModChangeAction.DISABLED),),
            )
        ]

        result = runner.invoke(app, ["history", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0]["mod_changes"] == [{"mod_name": "Long Hair CC", "action": "disabled"}]


class TestBranchCommand:
    """Tests for modvault history branch and switch."""

    def test_create_and_switch(self, service: MagicMock) -> None:
        result = runner.invoke(app, ["history", "branch", "builds"])

        assert result.exit_code == 0
        assert "Created and switched to branch builds" in result.stdout
        service.create_branch.assert_called_once_with("builds", switch=True)

    def test_create_without_switch(self, service: MagicMock) -> None:
        result = runner.invoke(app, ["history", "branch", "builds", "--no-switch"])

        assert result.exit_code == 0
        assert "Created branch builds" in result.stdout
        service.create_branch.assert_called_once_with("builds", switch=False)

    def test_existing_branch(self, service: MagicMock) -> None:
        service.create_branch.side_effect = AlreadyExistsError("Branch already exists: main")
        result = runner.invoke(app, ["history", "branch", "main"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_switch(self, service: MagicMock) -> None:
        result = runner.invoke(app, ["history", "switch", "builds"])

        assert result.exit_code == 0
        assert "Switched to branch builds" in result.stdout
        service.switch_branch.assert_called_once_with("builds")

    def test_switch_unknown(self, service: MagicMock) -> None:
        service.switch_branch.side_effect = NotFoundError("Branch not found: nope")
        result = runner.invoke(app, ["history", "switch", "nope"])
        assert result.exit_code == 1


class TestStatusCommand:
    """Tests for modvault history status."""

    def test_clean(self, service: MagicMock) -> None:
        service.status.return_value = RepositoryStatus(branch="main")

        result = runner.invoke(app, ["history", "status"])

        assert result.exit_code == 0
        assert "On branch main" in result.stdout
        assert "Nothing changed" in result.stdout

    def test_lists_changes(self, service: MagicMock) -> None:
        service.status.return_value = RepositoryStatus(
            branch="main",
            modified=("Hair/LongHair_CC.package",),
            untracked=("New_Trait.package",),
        )

        result = runner.invoke(app, ["history", "status"])

        assert result.exit_code == 0
        assert "Modified" in result.stdout
        assert "Hair/LongHair_CC.package" in result.stdout
        assert "New_Trait.package" in result.stdout
        assert "Nothing changed" not in result.stdout

    def test_json(self, service: MagicMock) -> None:
        service.status.return_value = RepositoryStatus(branch="main", staged=("a.package",))

        result = runner.invoke(app, ["history", "status", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["clean"] is False
        assert data["staged"] == ["a.package"]

    def test_not_initialized(self, service: MagicMock) -> None:
        service.status.side_effect = RepositoryNotInitializedError("/mods")
        result = runner.invoke(app, ["history", "status"])
        assert result.exit_code == 1

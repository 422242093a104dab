"""Structural conflict detection among enabled mods.

Only enabled mods are considered. Two rules apply:

- two or more enabled mods share a file name (case-insensitive);
- more enabled script mods than the configured threshold.

Detection is a pure function of its input: the same records always produce
the same findings in the same order.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from modvault.mods.models import ModCategory, ModRecord

DEFAULT_SCRIPT_THRESHOLD = 10


class ConflictKind(str, Enum):
    """Kind of structural conflict."""

    DUPLICATE_FILENAME = "duplicate-filename"
    EXCESSIVE_SCRIPT_COUNT = "excessive-script-count"


class Severity(str, Enum):
    """How serious a conflict is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class ConflictFinding:
    """A single detected conflict.

    Attributes:
        kind: Which rule produced the finding.
        affected_mod_ids: Ids of the involved mods, sorted.
        severity: Severity of the conflict.
        description: Human-readable explanation.
        auto_resolvable: Whether the tool could fix this by itself. Never True.
    """

    kind: ConflictKind
    affected_mod_ids: tuple[str, ...]
    severity: Severity
    description: str
    auto_resolvable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "affected_mod_ids": list(self.affected_mod_ids),
            "severity": self.severity.value,
            "description": self.description,
            "auto_resolvable": self.auto_resolvable,
        }


@dataclass(frozen=True, slots=True)
class ConflictReport:
    """Findings plus suggested resolutions."""

    findings: tuple[ConflictFinding, ...]
    suggestions: tuple[str, ...]

    @property
    def has_conflicts(self) -> bool:
        return bool(self.findings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_conflicts": self.has_conflicts,
            "findings": [f.to_dict() for f in self.findings],
            "suggestions": list(self.suggestions),
        }


def detect_conflicts(
    records: Iterable[ModRecord],
    script_threshold: int = DEFAULT_SCRIPT_THRESHOLD,
) -> list[ConflictFinding]:
    """Detect conflicts among the enabled mods in a record set.

    Args:
        records: Mod records to inspect. Disabled records are ignored.
        script_threshold: Enabled script mods allowed before a finding is raised.

    Returns:
        Duplicate-filename findings ordered by lowered file name, followed by
        the script-count finding if any.
    """
    enabled = [r for r in records if r.enabled]

    by_name: defaultdict[str, list[ModRecord]] = defaultdict(list)
    for record in enabled:
        by_name[record.file_name.lower()].append(record)

    findings: list[ConflictFinding] = []
    for name in sorted(by_name):
        group = by_name[name]
        if len(group) < 2:
            continue
        findings.append(
            ConflictFinding(
                kind=ConflictKind.DUPLICATE_FILENAME,
                affected_mod_ids=tuple(sorted(r.id for r in group)),
                severity=Severity.MEDIUM,
                description=f"{len(group)} enabled mods share the file name '{group[0].file_name}'",
            )
        )

    scripts = [r for r in enabled if r.category is ModCategory.SCRIPT]
    if len(scripts) > script_threshold:
        findings.append(
            ConflictFinding(
                kind=ConflictKind.EXCESSIVE_SCRIPT_COUNT,
                affected_mod_ids=tuple(sorted(r.id for r in scripts)),
                severity=Severity.LOW,
                description=(
                    f"{len(scripts)} script mods are enabled (more than {script_threshold}); "
                    "this may slow down the game or cause conflicts"
                ),
            )
        )

    return findings


def suggest_resolutions(findings: Iterable[ConflictFinding]) -> list[str]:
    """Return human-readable suggestions for a set of findings, without duplicates."""
    suggestions: list[str] = []
    for finding in findings:
        if finding.kind is ConflictKind.DUPLICATE_FILENAME:
            tips = [
                "Remove duplicate copies of the same mod",
                "Keep only the newest version of each mod",
            ]
        else:
            tips = [
                "Disable script mods you are not using",
                "Check whether several script mods provide the same feature",
            ]
        for tip in tips:
            if tip not in suggestions:
                suggestions.append(tip)
    return suggestions


def build_report(
    records: Iterable[ModRecord],
    script_threshold: int = DEFAULT_SCRIPT_THRESHOLD,
) -> ConflictReport:
    """Run detection and attach suggestions."""
    findings = detect_conflicts(records, script_threshold)
    return ConflictReport(
        findings=tuple(findings),
        suggestions=tuple(suggest_resolutions(findings)),
    )

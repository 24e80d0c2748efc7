"""Finding and summary objects returned by the validator, drift detector,
health aggregator and fitness checks.

None of these are raised; the caller decides whether a non-empty report is a
failure.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class GhostEntry:
    """A file table entry naming a file that does not exist on disk."""
    element: str
    filename: str
    source_dir: str


@dataclass(frozen=True)
class OrphanEntry:
    """A source file on disk missing from its module's file table."""
    element: str
    filename: str
    source_dir: str


@dataclass(frozen=True)
class MissingDirectory:
    element: str
    source_dir: str


@dataclass
class ValidationReport:
    ghosts: List[GhostEntry] = field(default_factory=list)
    orphans: List[OrphanEntry] = field(default_factory=list)
    missing_dirs: List[MissingDirectory] = field(default_factory=list)

    def is_clean(self) -> bool:
        return not (self.ghosts or self.orphans or self.missing_dirs)

    @property
    def finding_count(self) -> int:
        return len(self.ghosts) + len(self.orphans) + len(self.missing_dirs)

    def __str__(self) -> str:
        if self.is_clean():
            return "✅ File tables match the filesystem"
        return f"❌ {self.finding_count} file table finding(s)"


@dataclass(frozen=True)
class DriftedFile:
    path: str
    expected_lines: int
    actual_lines: int
    diff: str = ""


@dataclass
class DriftReport:
    drifted_files: List[DriftedFile] = field(default_factory=list)
    missing_files: List[str] = field(default_factory=list)

    def has_drift(self) -> bool:
        return bool(self.drifted_files or self.missing_files)


@dataclass
class ElementHealth:
    name: str
    level: str
    file_count: int = 0
    files_planned: int = 0
    files_active: int = 0
    files_stable: int = 0
    pattern: str = ""
    pattern_status: str = "planned"


@dataclass
class HealthReport:
    total_modules: int = 0
    modules_per_level: Dict[str, int] = field(default_factory=dict)
    total_files: int = 0
    files_per_health: Dict[str, int] = field(default_factory=dict)
    patterns_total: int = 0
    patterns_per_status: Dict[str, int] = field(default_factory=dict)
    per_element: List[ElementHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FitnessFailure:
    module_path: str
    source_file: str
    reason: str


@dataclass
class FitnessResult:
    name: str
    pattern: str
    checked: int = 0
    failures: List[FitnessFailure] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    def __str__(self) -> str:
        if self.passed:
            return f"PASS: {self.name} — checked {self.checked} module(s)"
        return f"FAIL: {self.name} — {len(self.failures)}/{self.checked} module(s) failed"

"""Error taxonomy for the compiler.

Only malformed input and broken structure are raised. Ghost/orphan files and
documentation drift are findings collected in :mod:`archidoc.reports`.
"""

from __future__ import annotations

from typing import Iterable, List


class ArchidocError(Exception):
    """Base class for fatal compiler errors."""

    def __init__(self, summary: str, details: Iterable[str] = ()) -> None:
        self.summary = summary
        self.details: List[str] = list(details)
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.details:
            return self.summary
        lines = [f"{self.summary} ({len(self.details)} found):"]
        lines.extend(f"  - {detail}" for detail in self.details)
        return "\n".join(lines)


class SchemaViolation(ArchidocError):
    """Malformed IR. Every offending record is listed, not just the first."""

    def __init__(self, violations: Iterable[str]) -> None:
        self.violations = list(violations)
        super().__init__("IR schema violation", self.violations)


class StructuralError(ArchidocError):
    """Dangling parents, parent mismatches and module path collisions."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems = list(problems)
        super().__init__("Structural error", self.problems)

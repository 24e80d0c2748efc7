"""Snapshot counts of file health and pattern maturity."""

from __future__ import annotations

from typing import List

from .models import HEALTH_VALUES, LEVELS, PATTERN_STATUSES
from .reports import ElementHealth, HealthReport
from .tree import CompiledTree


def aggregate_health(tree: CompiledTree) -> HealthReport:
    """Walk the tree once and count.

    The root sentinel is not a module and is left out. Pattern counts only
    include records that claim a pattern.
    """
    report = HealthReport(
        modules_per_level={level: 0 for level in LEVELS},
        files_per_health={health: 0 for health in HEALTH_VALUES},
        patterns_per_status={status: 0 for status in PATTERN_STATUSES},
    )

    for record in tree.ordered():
        report.total_modules += 1
        report.modules_per_level[record.level] += 1

        element = ElementHealth(
            name=record.module_path,
            level=record.level,
            file_count=len(record.files),
            pattern=record.pattern if record.has_pattern else "",
            pattern_status=record.pattern_status,
        )
        for entry in record.files:
            report.total_files += 1
            report.files_per_health[entry.health] += 1
            if entry.health == "planned":
                element.files_planned += 1
            elif entry.health == "active":
                element.files_active += 1
            else:
                element.files_stable += 1

        if record.has_pattern:
            report.patterns_total += 1
            report.patterns_per_status[record.pattern_status] += 1

        report.per_element.append(element)

    return report


def _percent(part: int, whole: int) -> str:
    return f"{part * 100 // whole}%" if whole else "0%"


def format_health_report(report: HealthReport) -> str:
    lines: List[str] = ["Architecture health", ""]
    levels = ", ".join(f"{n} {level}" for level, n in report.modules_per_level.items() if n)
    lines.append(f"Modules: {report.total_modules}" + (f" ({levels})" if levels else ""))

    lines.append(f"Files: {report.total_files}")
    for health, count in report.files_per_health.items():
        lines.append(f"  {health}: {count} ({_percent(count, report.total_files)})")

    lines.append(f"Patterns: {report.patterns_total}")
    for status, count in report.patterns_per_status.items():
        lines.append(f"  {status}: {count}")

    return "\n".join(lines) + "\n"

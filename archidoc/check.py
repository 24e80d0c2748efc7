"""Drift detection: regenerate artifacts in memory and compare with disk."""

from __future__ import annotations

import difflib
import logging
from pathlib import Path
from typing import Optional

from .architecture import render_artifacts
from .config_manager import Settings
from .reports import DriftedFile, DriftReport
from .tree import CompiledTree

logger = logging.getLogger(__name__)


def create_diff(actual: str, expected: str, filename: str) -> str:
    """Unified diff from what is on disk to what would be generated."""
    diff = difflib.unified_diff(
        actual.splitlines(keepends=True),
        expected.splitlines(keepends=True),
        fromfile=f"a/{filename}",
        tofile=f"b/{filename}",
    )
    return "".join(diff)


def check_drift(
    tree: CompiledTree,
    root: Path,
    settings: Optional[Settings] = None,
) -> DriftReport:
    """Byte-exact comparison of every default artifact against disk.

    Nothing is written. A missing artifact counts as drift.
    """
    settings = settings or Settings()
    report = DriftReport()

    for relative, expected in render_artifacts(tree, settings).items():
        path = root / relative
        try:
            actual_bytes = path.read_bytes()
        except FileNotFoundError:
            report.missing_files.append(relative)
            continue

        if actual_bytes == expected.encode("utf-8"):
            continue

        actual = actual_bytes.decode("utf-8", errors="replace")
        report.drifted_files.append(DriftedFile(
            path=relative,
            expected_lines=len(expected.splitlines()),
            actual_lines=len(actual.splitlines()),
            diff=create_diff(actual, expected, relative),
        ))

    logger.debug(
        "Drift check: %d drifted, %d missing",
        len(report.drifted_files), len(report.missing_files),
    )
    return report


def format_drift_report(report: DriftReport, show_diff: bool = False) -> str:
    if not report.has_drift():
        return "Documentation is up to date\n"

    lines = ["Documentation drift detected:"]
    for missing in report.missing_files:
        lines.append(f"  missing: {missing}")
    for drifted in report.drifted_files:
        lines.append(
            f"  drifted: {drifted.path} "
            f"(expected {drifted.expected_lines} lines, found {drifted.actual_lines})"
        )
        if show_diff and drifted.diff:
            lines.append(drifted.diff.rstrip("\n"))
    lines.append("Run `archidoc generate` to update.")
    return "\n".join(lines) + "\n"

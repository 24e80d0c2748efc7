"""Cross-check file tables against the filesystem (ghosts and orphans)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config_manager import Settings
from .models import ModuleRecord
from .reports import GhostEntry, MissingDirectory, OrphanEntry, ValidationReport
from .tree import CompiledTree

logger = logging.getLogger(__name__)


def module_dir(record: ModuleRecord, root: Path) -> Optional[Path]:
    """Directory holding a module's files: the parent of its source file.

    None when the record names no source file.
    """
    if not record.source_file.strip():
        return None
    source = Path(record.source_file)
    if not source.is_absolute():
        source = root / source
    return source.parent


def validate_file_tables(
    tree: CompiledTree,
    root: Path,
    settings: Optional[Settings] = None,
) -> ValidationReport:
    """Report ghost entries and orphan files for every module with a file table.

    Entries with ``planned`` health may name files that do not exist yet.
    Structural entry points (``__init__.py``, ``mod.rs``, ``index.ts`` ...)
    are never orphans. Only existence checks touch the disk.
    """
    settings = settings or Settings()
    report = ValidationReport()

    for record in tree.ordered():
        if not record.files:
            continue

        directory = module_dir(record, root)
        if directory is None:
            report.missing_dirs.append(MissingDirectory(record.module_path, ""))
            continue
        source_dir = str(directory)
        cataloged = {entry.name.rstrip("/") for entry in record.files}

        for entry in record.files:
            if entry.health == "planned":
                continue
            target = directory / entry.name.rstrip("/")
            present = target.is_dir() if entry.is_directory else target.exists()
            if not present:
                report.ghosts.append(GhostEntry(record.module_path, entry.name, source_dir))

        try:
            on_disk = sorted(directory.iterdir())
        except OSError as exc:
            logger.debug("Cannot list %s: %s", directory, exc)
            report.missing_dirs.append(MissingDirectory(record.module_path, source_dir))
            continue

        for path in on_disk:
            if not path.is_file():
                continue
            if path.suffix not in settings.source_extensions:
                continue
            if path.name in settings.entry_files or path.name in cataloged:
                continue
            report.orphans.append(OrphanEntry(record.module_path, path.name, source_dir))

    report.ghosts.sort(key=lambda g: (g.element, g.filename))
    report.orphans.sort(key=lambda o: (o.element, o.filename))
    report.missing_dirs.sort(key=lambda m: m.element)
    logger.debug("Validation found %d finding(s)", report.finding_count)
    return report


def format_validation_report(report: ValidationReport) -> str:
    if report.is_clean():
        return "File validation: all clear\n"

    out = []
    if report.ghosts:
        out.append(f"Ghost entries ({len(report.ghosts)} found):")
        out.extend(
            f"  {g.element} — '{g.filename}' listed in file table but not found on disk"
            for g in report.ghosts
        )
    if report.orphans:
        out.append(f"Orphan files ({len(report.orphans)} found):")
        out.extend(
            f"  {o.element} — '{o.filename}' exists on disk but not in file table"
            for o in report.orphans
        )
    if report.missing_dirs:
        out.append(f"Missing module directories ({len(report.missing_dirs)} found):")
        out.extend(f"  {m.element} — {m.source_dir or '(no source file)'}" for m in report.missing_dirs)
    return "\n".join(out) + "\n"

"""Pattern verification: promote Planned claims that have structural evidence.

Status moves one way only, planned -> verified. Patterns with no registered
heuristic keep whatever status the adapter supplied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config_manager import Settings
from .errors import ArchidocError
from .heuristics import ModuleSourceSet, predicate_for
from .models import ModuleRecord
from .reports import FitnessFailure, FitnessResult
from .tree import CompiledTree
from .validate import module_dir

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    tree: CompiledTree
    promoted: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.promoted:
            return "No pattern claims promoted"
        return f"✅ Promoted {len(self.promoted)} pattern claim(s) to verified"


def load_source_set(
    record: ModuleRecord,
    tree: CompiledTree,
    root: Path,
    settings: Optional[Settings] = None,
) -> ModuleSourceSet:
    """Read the source files in a module's directory.

    Unreadable files are skipped with a warning; a missing directory yields an
    empty set, which no predicate accepts.
    """
    settings = settings or Settings()
    directory = module_dir(record, root)
    sources: Dict[str, str] = {}

    if directory is not None and directory.is_dir():
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix not in settings.source_extensions:
                continue
            try:
                sources[path.name] = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Cannot read %s: %s", path, exc)
    else:
        logger.debug("No directory for %s at %s", record.module_path, directory)

    entry_file = Path(record.source_file).name
    declared = [child.rsplit(".", 1)[-1] for child in tree.children_of(record.module_path)]
    declared.extend(
        entry.name for entry in record.files
        if entry.name.rstrip("/") not in settings.entry_files and entry.name != entry_file
    )

    return ModuleSourceSet(
        module_path=record.module_path,
        directory=directory,
        entry_file=entry_file,
        sources=sources,
        declared=tuple(sorted(set(declared))),
    )


def verify_patterns(
    tree: CompiledTree,
    root: Path,
    settings: Optional[Settings] = None,
) -> VerificationResult:
    """Promote every planned claim whose structural predicate holds.

    Returns a new tree; ``tree`` itself is untouched. Verified records are
    never examined again, so running this twice gives the same result.
    """
    promoted: List[ModuleRecord] = []
    for record in tree.ordered():
        if record.pattern_status == "verified" or not record.has_pattern:
            continue
        predicate = predicate_for(record.pattern)
        if predicate is None:
            logger.debug("No heuristic for pattern '%s' (%s)", record.pattern, record.module_path)
            continue
        if predicate(load_source_set(record, tree, root, settings)):
            logger.info("Verified %s claim on %s", record.pattern, record.module_path)
            promoted.append(record.promote())

    if not promoted:
        return VerificationResult(tree=tree)
    return VerificationResult(
        tree=tree.replace_records(promoted),
        promoted=[r.module_path for r in promoted],
    )


def check_fitness(
    tree: CompiledTree,
    root: Path,
    pattern: str,
    settings: Optional[Settings] = None,
    name: Optional[str] = None,
) -> FitnessResult:
    """Require every module claiming ``pattern`` to pass its heuristic.

    Raises:
        ArchidocError: when no heuristic exists for ``pattern``.
    """
    predicate = predicate_for(pattern)
    if predicate is None:
        raise ArchidocError("Unknown pattern", [f"no structural heuristic for '{pattern}'"])

    result = FitnessResult(name=name or f"all_{pattern.lower()}_modules", pattern=pattern)
    for record in tree.ordered():
        if record.pattern.strip().lower() != pattern.strip().lower():
            continue
        result.checked += 1
        if not predicate(load_source_set(record, tree, root, settings)):
            result.failures.append(FitnessFailure(
                module_path=record.module_path,
                source_file=record.source_file,
                reason=f"claims {record.pattern} but shows no structural evidence of it",
            ))
    return result


FitnessFunction = Callable[[CompiledTree, Path, Optional[Settings]], FitnessResult]


def all_strategy_modules_define_an_abstraction(
    tree: CompiledTree, root: Path, settings: Optional[Settings] = None
) -> FitnessResult:
    return check_fitness(tree, root, "Strategy", settings, "all_strategy_modules_define_an_abstraction")


def all_facade_modules_reexport_submodules(
    tree: CompiledTree, root: Path, settings: Optional[Settings] = None
) -> FitnessResult:
    return check_fitness(tree, root, "Facade", settings, "all_facade_modules_reexport_submodules")


def all_observer_modules_have_channels_or_callbacks(
    tree: CompiledTree, root: Path, settings: Optional[Settings] = None
) -> FitnessResult:
    return check_fitness(
        tree, root, "Observer", settings, "all_observer_modules_have_channels_or_callbacks"
    )


FITNESS_FUNCTIONS: Dict[str, FitnessFunction] = {
    "all_strategy_modules_define_an_abstraction": all_strategy_modules_define_an_abstraction,
    "all_facade_modules_reexport_submodules": all_facade_modules_reexport_submodules,
    "all_observer_modules_have_channels_or_callbacks": all_observer_modules_have_channels_or_callbacks,
}


def format_fitness_result(result: FitnessResult) -> str:
    lines = [str(result)]
    for failure in result.failures:
        lines.append(f"  {failure.module_path} ({failure.source_file}): {failure.reason}")
    return "\n".join(lines) + "\n"

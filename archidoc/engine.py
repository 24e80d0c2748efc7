"""Pipeline wiring: adapter -> IR checks -> relationship resolution -> tree,
then whichever stage the caller asks for."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .adapters import AdapterOutput, get_adapter
from .architecture import render_artifacts
from .check import check_drift
from .config_manager import Settings, load_settings
from .health import aggregate_health
from .ir import validate_records
from .models import ModuleRecord, Relationship
from .relationships import apply_discovered
from .reports import DriftReport, HealthReport, ValidationReport
from .tree import CompiledTree, assemble
from .validate import validate_file_tables
from .verify import VerificationResult, verify_patterns

logger = logging.getLogger(__name__)


def compile_records(
    records: Sequence[ModuleRecord],
    discovered: Optional[Mapping[str, Sequence[Relationship]]] = None,
) -> CompiledTree:
    """Validate, resolve relationships and assemble.

    Raises:
        SchemaViolation: malformed records.
        StructuralError: collisions, parent mismatches or dangling parents.
    """
    validate_records(records)
    if discovered:
        records = apply_discovered(records, discovered)
    return assemble(records)


def write_artifacts(artifacts: Mapping[str, str], root: Path) -> List[Path]:
    """Write rendered text verbatim, ``\\n`` line endings on every platform."""
    written: List[Path] = []
    for relative, text in artifacts.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(text)
        written.append(path)
    logger.debug("Wrote %d artifact(s) under %s", len(written), root)
    return written


class ArchitectureCompiler:
    """Runs the engine stages for one project root."""

    def __init__(self, root: Path, settings: Optional[Settings] = None):
        self.root = root
        self.settings = settings or load_settings(root)

    def extract(self) -> AdapterOutput:
        adapter = get_adapter(self.settings.adapter, self.settings)
        return adapter.extract(self.root)

    def compile(
        self,
        records: Optional[Sequence[ModuleRecord]] = None,
        discovered: Optional[Mapping[str, Sequence[Relationship]]] = None,
    ) -> CompiledTree:
        """Compile the given IR, or extract it with the configured adapter."""
        if records is None:
            output = self.extract()
            records = output.records
            discovered = {**output.discovered, **(discovered or {})}
        return compile_records(records, discovered)

    def render(self, tree: CompiledTree) -> Dict[str, str]:
        return render_artifacts(tree, self.settings)

    def generate(self, tree: CompiledTree) -> List[Path]:
        return write_artifacts(self.render(tree), self.root)

    def check(self, tree: CompiledTree) -> DriftReport:
        return check_drift(tree, self.root, self.settings)

    def validate(self, tree: CompiledTree) -> ValidationReport:
        return validate_file_tables(tree, self.root, self.settings)

    def health(self, tree: CompiledTree) -> HealthReport:
        return aggregate_health(tree)

    def verify(self, tree: CompiledTree) -> VerificationResult:
        return verify_patterns(tree, self.root, self.settings)

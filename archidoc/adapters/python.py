"""Reference adapter for Python projects.

A package is an architectural element when the docstring of its
``__init__.py`` carries a ``@c4`` marker::

    \"\"\"
    @c4 container

    # Payments

    Charges cards and issues refunds.

    GoF: Strategy (verified)

    @c4 uses ledger "Posts transactions" "in-process"

    | File | Pattern | Purpose | Health |
    |------|---------|---------|--------|
    | `gateway.py` | Adapter | Card network client | active |
    \"\"\"

The ``__init__.py`` at the top of the source root holds the project
narrative and becomes the root sentinel. Relationships between annotated
packages are also discovered from ``import`` statements.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..config import NO_PATTERN, NO_PATTERN_ALIASES, ROOT_SENTINEL, SKIP_DIRS
from ..models import FileEntry, ModuleRecord, Relationship
from .base import Adapter, AdapterOutput, register_adapter

logger = logging.getLogger(__name__)

GOF_PATTERNS = (
    "Mediator",
    "Observer",
    "Strategy",
    "Facade",
    "Adapter",
    "Repository",
    "Singleton",
    "Factory",
    "Builder",
    "Decorator",
    "Active Object",
    "Memento",
    "Command",
    "Chain of Responsibility",
    "Registry",
    "Composite",
    "Interpreter",
    "Flyweight",
    "Publisher",
)

DISCOVERED_LABEL = "imports"
DISCOVERED_PROTOCOL = "python"

_USES_RE = re.compile(r'@c4\s+uses\s+(\S+)\s+"([^"]+)"\s+"([^"]+)"')
_GOF_LINE_RE = re.compile(r"^\s*GoF:\s*(.+)$", re.MULTILINE)


# ---------------------------------------------------------------------------
# Docstring annotation parsing
# ---------------------------------------------------------------------------

def _prose_lines(content: str) -> List[str]:
    """Lines outside the file table and ``@c4`` markers."""
    return [
        line for line in content.splitlines()
        if not line.strip().startswith("|") and "@c4" not in line
    ]


def extract_level(content: str) -> str:
    if re.search(r"@c4\s+container\b", content):
        return "container"
    if re.search(r"@c4\s+component\b", content):
        return "component"
    return "unknown"


def _split_status(field: str) -> Tuple[str, str]:
    """``Strategy (verified)`` -> ``("Strategy", "verified")``."""
    text = field.strip()
    if "(" in text:
        name, _, rest = text.partition("(")
        status = rest.split(")", 1)[0].strip().lower()
        return name.strip(), "verified" if status == "verified" else "planned"
    return text, "planned"


def _normalize_pattern(name: str) -> str:
    return NO_PATTERN if name.strip().lower() in NO_PATTERN_ALIASES else name.strip()


def extract_pattern(content: str) -> Tuple[str, str]:
    """Return ``(pattern, pattern_status)`` for the module.

    A ``GoF:`` line wins; otherwise the earliest known pattern name in the
    prose. File table cells are ignored, they describe files.
    """
    match = _GOF_LINE_RE.search(content)
    if match:
        name, status = _split_status(match.group(1))
        return _normalize_pattern(name), status

    prose = "\n".join(_prose_lines(content))
    found: Optional[Tuple[int, str]] = None
    for name in GOF_PATTERNS:
        hit = re.search(rf"\b{re.escape(name)}\b", prose)
        if hit and (found is None or hit.start() < found[0]):
            found = (hit.start(), name)
    if found is None:
        return NO_PATTERN, "planned"
    status = "verified" if "(verified)" in prose else "planned"
    return found[1], status


def extract_description(content: str) -> str:
    """First line that is neither a marker, a header, a table row nor ``GoF:``."""
    for line in content.splitlines():
        text = line.strip()
        if (
            text
            and "@c4" not in text
            and not text.startswith("#")
            and not text.startswith("|")
            and not text.startswith("GoF:")
            and "<<" not in text
        ):
            return text
    return ""


def extract_relationships(content: str) -> List[Relationship]:
    return [
        Relationship(target=target, label=label, protocol=protocol)
        for target, label, protocol in _USES_RE.findall(content)
    ]


def extract_file_table(content: str) -> List[FileEntry]:
    """Parse the ``| File | Pattern | Purpose | Health |`` table."""
    entries: List[FileEntry] = []
    in_table = False
    header_seen = False

    for line in content.splitlines():
        text = line.strip()
        if not in_table:
            lowered = text.lower()
            if text.startswith("|") and "file" in lowered and "pattern" in lowered:
                in_table = True
            continue
        if not header_seen:
            if text.startswith("|") and "---" in text:
                header_seen = True
            continue
        if not text.startswith("|"):
            break

        cells = [cell.strip() for cell in text.strip("|").split("|")]
        if len(cells) < 4:
            continue
        pattern, pattern_status = _split_status(cells[1])
        health = cells[3].lower()
        entries.append(FileEntry(
            name=cells[0].replace("`", "").strip(),
            pattern=_normalize_pattern(pattern),
            pattern_status=pattern_status,  # type: ignore[arg-type]
            purpose=cells[2],
            health=health if health in ("active", "stable") else "planned",  # type: ignore[arg-type]
        ))

    return entries


def parse_docstring(module_path: str, docstring: str, source_file: str) -> ModuleRecord:
    pattern, status = extract_pattern(docstring)
    return ModuleRecord(
        module_path=module_path,
        content=docstring,
        source_file=source_file,
        level=extract_level(docstring),  # type: ignore[arg-type]
        pattern=pattern,
        pattern_status=status,  # type: ignore[arg-type]
        description=extract_description(docstring),
        relationships=extract_relationships(docstring),
        files=extract_file_table(docstring),
    )


# ---------------------------------------------------------------------------
# Import discovery
# ---------------------------------------------------------------------------

def _imported_names(tree: ast.Module, package: str) -> Set[str]:
    """Dotted names imported at module level, relative imports resolved
    against *package*."""
    names: Set[str] = set()
    parts = package.split(".") if package else []
    for stmt in tree.body:
        if isinstance(stmt, ast.Import):
            names.update(alias.name for alias in stmt.names)
        elif isinstance(stmt, ast.ImportFrom):
            if stmt.level:
                keep = len(parts) - (stmt.level - 1)
                if keep < 0:
                    continue
                base_parts = parts[:keep]
            else:
                base_parts = []
            if stmt.module:
                base_parts = base_parts + stmt.module.split(".")
            base = ".".join(base_parts)
            if base:
                names.add(base)
            names.update(
                f"{base}.{alias.name}" if base else alias.name
                for alias in stmt.names if alias.name != "*"
            )
    return names


def _owning_module(dotted: str, known: Iterable[str]) -> Optional[str]:
    best: Optional[str] = None
    for path in known:
        if dotted == path or dotted.startswith(path + "."):
            if best is None or len(path) > len(best):
                best = path
    return best


def _is_related(a: str, b: str) -> bool:
    return a == b or a.startswith(b + ".") or b.startswith(a + ".")


def discover_relationships(
    module_path: str,
    directory: Path,
    known: Set[str],
) -> List[Relationship]:
    """Relationships implied by imports in the package's own ``.py`` files.

    Imports of the package's ancestors or descendants are structure, not
    relationships, and are left out.
    """
    targets: Set[str] = set()
    for path in sorted(directory.glob("*.py")):
        try:
            tree = ast.parse(path.read_text(encoding="utf-8", errors="ignore"))
        except SyntaxError as exc:
            logger.warning("SyntaxError in %s: %s", path, exc)
            continue
        for dotted in _imported_names(tree, module_path):
            owner = _owning_module(dotted, known)
            if owner and not _is_related(owner, module_path):
                targets.add(owner)
    return [
        Relationship(target=target, label=DISCOVERED_LABEL, protocol=DISCOVERED_PROTOCOL)
        for target in sorted(targets)
    ]


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

def source_root(root: Path) -> Path:
    """``src/`` when the project uses a src layout, else the root itself."""
    src = root / "src"
    return src if src.is_dir() else root


@register_adapter
class PythonAdapter(Adapter):
    """Annotated ``__init__.py`` docstrings -> module records."""

    name = "python"

    def _read_docstring(self, init_file: Path) -> Optional[str]:
        try:
            tree = ast.parse(init_file.read_text(encoding="utf-8", errors="ignore"))
        except SyntaxError as exc:
            logger.warning("SyntaxError in %s: %s", init_file, exc)
            return None
        return ast.get_docstring(tree)

    def extract(self, root: Path) -> AdapterOutput:
        base = source_root(root)
        found: Dict[str, Tuple[ModuleRecord, Path]] = {}

        for init_file in sorted(base.rglob("__init__.py")):
            relative = init_file.parent.relative_to(base)
            if any(part in SKIP_DIRS or part.startswith(".") for part in relative.parts):
                continue
            docstring = self._read_docstring(init_file)
            if not docstring:
                continue
            is_root = not relative.parts
            if not is_root and "@c4" not in docstring:
                continue
            module_path = ROOT_SENTINEL if is_root else ".".join(relative.parts)
            source_file = init_file.relative_to(root).as_posix()
            found[module_path] = (parse_docstring(module_path, docstring, source_file), init_file.parent)

        known = {path for path in found if path != ROOT_SENTINEL}
        records: List[ModuleRecord] = []
        discovered: Dict[str, List[Relationship]] = {}

        for module_path in sorted(found):
            record, directory = found[module_path]
            if record.derived_parent in known:
                record = replace(record, parent=record.derived_parent)
            records.append(record)
            if module_path in known:
                rels = discover_relationships(module_path, directory, known)
                if rels:
                    discovered[module_path] = rels

        logger.debug("Python adapter found %d annotated packages under %s", len(records), base)
        return AdapterOutput(records=records, discovered=discovered)

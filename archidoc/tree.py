"""Assemble module records into the container/component hierarchy."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from .errors import StructuralError
from .models import ModuleRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledTree:
    """Immutable hierarchy built once per invocation.

    ``children`` and ``roots`` are sorted by full module path. Pre-order
    traversal over them is the canonical order every renderer uses, so the
    input order of the IR never leaks into output.

    Diagram identifiers and document anchors are assigned once per tree and
    are unique even when two module paths escape to the same text
    (``a_b`` and ``a.b``).
    """

    records: Mapping[str, ModuleRecord]
    parents: Mapping[str, Optional[str]]
    children: Mapping[str, Tuple[str, ...]]
    roots: Tuple[str, ...]
    root_sentinel: Optional[ModuleRecord] = None
    node_ids: Mapping[str, str] = field(default_factory=dict)
    boundary_ids: Mapping[str, str] = field(default_factory=dict)
    anchors: Mapping[str, str] = field(default_factory=dict)

    def __contains__(self, module_path: object) -> bool:
        return module_path in self.records

    def __len__(self) -> int:
        return len(self.records)

    def get(self, module_path: str) -> Optional[ModuleRecord]:
        return self.records.get(module_path)

    def parent_of(self, module_path: str) -> Optional[str]:
        return self.parents.get(module_path)

    def children_of(self, module_path: str) -> Tuple[str, ...]:
        return self.children.get(module_path, ())

    def diagram_id(self, module_path: str) -> str:
        return self.node_ids[module_path]

    def boundary_id(self, module_path: str) -> str:
        return self.boundary_ids[module_path]

    def anchor(self, module_path: str) -> str:
        return self.anchors[module_path]

    def depth_of(self, module_path: str) -> int:
        depth = 0
        parent = self.parent_of(module_path)
        while parent is not None:
            depth += 1
            parent = self.parent_of(parent)
        return depth

    def walk(self) -> Iterator[Tuple[int, ModuleRecord]]:
        """Yield ``(depth, record)`` in canonical pre-order."""
        stack: List[Tuple[int, str]] = [(0, path) for path in reversed(self.roots)]
        while stack:
            depth, path = stack.pop()
            yield depth, self.records[path]
            for child in reversed(self.children_of(path)):
                stack.append((depth + 1, child))

    def ordered(self) -> List[ModuleRecord]:
        return [record for _, record in self.walk()]

    def all_records(self) -> List[ModuleRecord]:
        """Every record, root sentinel first, for re-serialization."""
        head = [self.root_sentinel] if self.root_sentinel is not None else []
        return head + self.ordered()

    def replace_records(self, updated: Iterable[ModuleRecord]) -> "CompiledTree":
        """Rebuild the tree with some records swapped for new versions."""
        by_path: Dict[str, ModuleRecord] = {r.module_path: r for r in self.all_records()}
        for record in updated:
            by_path[record.module_path] = record
        return assemble(by_path.values())


def _nearest_ancestor(module_path: str, index: Mapping[str, ModuleRecord]) -> Optional[str]:
    candidate = module_path
    while "." in candidate:
        candidate = candidate.rsplit(".", 1)[0]
        if candidate in index:
            return candidate
    return None


def _unique_ids(
    paths: Iterable[str],
    base: Callable[[str], str],
    used: Set[str],
    sep: str,
) -> Dict[str, str]:
    """Map each path to ``base(path)``, suffixing ``<sep>2``, ``<sep>3`` ... on collision."""
    assigned: Dict[str, str] = {}
    for path in paths:
        stem = base(path)
        candidate, n = stem, 2
        while candidate in used:
            candidate = f"{stem}{sep}{n}"
            n += 1
        used.add(candidate)
        assigned[path] = candidate
    return assigned


def _mermaid_id(module_path: str) -> str:
    return module_path.replace(".", "_")


def _anchor_id(module_path: str) -> str:
    return "module-" + module_path.replace(".", "-").replace("_", "-").lower()


def assemble(records: Iterable[ModuleRecord]) -> CompiledTree:
    """Build a :class:`CompiledTree`.

    An explicit parent must be the module path minus its last segment and must
    name another record. Without an explicit parent the nearest existing
    ancestor is used; a record with none becomes a top-level element.

    Raises:
        StructuralError: listing every duplicate path, parent mismatch and
            dangling parent found.
    """
    problems: List[str] = []
    index: Dict[str, ModuleRecord] = {}
    sentinels: List[ModuleRecord] = []

    for record in records:
        if record.is_root:
            sentinels.append(record)
            continue
        if record.module_path in index:
            problems.append(f"duplicate module path '{record.module_path}'")
            continue
        index[record.module_path] = record

    if len(sentinels) > 1:
        problems.append(f"{len(sentinels)} root sentinel records; expected at most one")

    parents: Dict[str, Optional[str]] = {}
    for path in sorted(index):
        record = index[path]
        if record.parent is None:
            parents[path] = _nearest_ancestor(path, index)
            continue
        expected = record.derived_parent
        if record.parent != expected:
            problems.append(
                f"'{path}' declares parent '{record.parent}' but its path implies "
                f"'{expected or '(none)'}'"
            )
        elif record.parent not in index:
            problems.append(f"'{path}' has dangling parent '{record.parent}'")
        else:
            parents[path] = record.parent

    if problems:
        raise StructuralError(problems)

    grouped: Dict[str, List[str]] = defaultdict(list)
    roots: List[str] = []
    for path in sorted(index):
        parent = parents[path]
        if parent is None:
            roots.append(path)
        else:
            grouped[parent].append(path)

    # Paths that already are valid identifiers keep them; escaped ones yield.
    diagram_ids: Set[str] = set()
    node_ids = _unique_ids(
        sorted(index, key=lambda p: (_mermaid_id(p) != p, p)), _mermaid_id, diagram_ids, "_"
    )
    boundary_ids = _unique_ids(sorted(grouped), lambda p: f"{node_ids[p]}_boundary", diagram_ids, "_")
    anchors = _unique_ids(sorted(index), _anchor_id, set(), "-")

    logger.debug("Assembled %d modules (%d top-level)", len(index), len(roots))
    return CompiledTree(
        records=MappingProxyType(index),
        parents=MappingProxyType(parents),
        children=MappingProxyType({k: tuple(v) for k, v in grouped.items()}),
        roots=tuple(roots),
        root_sentinel=sentinels[0] if sentinels else None,
        node_ids=MappingProxyType(node_ids),
        boundary_ids=MappingProxyType(boundary_ids),
        anchors=MappingProxyType(anchors),
    )

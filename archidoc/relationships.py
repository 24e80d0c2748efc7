"""Merge declared relationships with auto-discovered ones."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Sequence, Set

from .models import ModuleRecord, Relationship

logger = logging.getLogger(__name__)


def resolve_relationships(
    explicit: Iterable[Relationship],
    discovered: Iterable[Relationship],
) -> List[Relationship]:
    """Union keyed by target, explicit entries first.

    Explicit relationships are kept verbatim. A discovered relationship is
    appended only when nothing earlier already targets the same module, so an
    explicit entry fully shadows a discovered one (label and protocol are not
    combined). Targets are unique in the result; a repeated explicit target
    keeps its first declaration.
    """
    resolved: List[Relationship] = []
    seen: Set[str] = set()
    for rel in list(explicit) + list(discovered):
        if rel.target in seen:
            continue
        seen.add(rel.target)
        resolved.append(rel)
    return resolved


def apply_discovered(
    records: Sequence[ModuleRecord],
    discovered: Mapping[str, Sequence[Relationship]],
) -> List[ModuleRecord]:
    """Return new records with discovered relationships folded in."""
    known = {r.module_path for r in records}
    for module_path in sorted(set(discovered) - known):
        logger.debug("Ignoring discovered relationships for unknown module '%s'", module_path)

    merged: List[ModuleRecord] = []
    for record in records:
        extra = discovered.get(record.module_path)
        if not extra:
            merged.append(record)
            continue
        merged.append(
            record.with_relationships(resolve_relationships(record.relationships, extra))
        )
    return merged


def discovered_from_data(data: Mapping[str, Iterable[Mapping[str, str]]]) -> Dict[str, List[Relationship]]:
    """Decode the ``{module_path: [{target, label, protocol}]}`` sidecar format."""
    return {
        module_path: [
            Relationship(
                target=str(item["target"]),
                label=str(item.get("label", "")),
                protocol=str(item.get("protocol", "")),
            )
            for item in items
        ]
        for module_path, items in data.items()
    }

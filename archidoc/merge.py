"""Combine IR collections from several adapters into one."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Sequence

from .errors import StructuralError
from .models import ModuleRecord

logger = logging.getLogger(__name__)


def merge_ir(collections: Sequence[Sequence[ModuleRecord]]) -> List[ModuleRecord]:
    """Union of all records, sorted by module path.

    Ownership of a module path must be unambiguous: a path appearing twice,
    in one collection or across several, is a collision. Records are never
    reconciled field by field.

    Raises:
        StructuralError: naming every colliding path and the indexes of the
            collections it came from.
    """
    owners: Dict[str, List[int]] = defaultdict(list)
    merged: Dict[str, ModuleRecord] = {}

    for index, collection in enumerate(collections):
        for record in collection:
            key = "<root>" if record.is_root else record.module_path
            owners[key].append(index)
            merged.setdefault(key, record)

    collisions = [
        f"module path '{path}' defined in collections {', '.join(str(i) for i in indexes)}"
        for path, indexes in sorted(owners.items())
        if len(indexes) > 1
    ]
    if collisions:
        raise StructuralError(collisions)

    logger.debug("Merged %d collections into %d records", len(collections), len(merged))
    return sorted(merged.values(), key=lambda r: r.module_path)

"""Tabular exports: draw.io CSV import files plus flat relationship and
file listings for external diagramming tools."""

from __future__ import annotations

import csv
import io
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from .models import ModuleRecord, has_pattern, title_case
from .tree import CompiledTree

DRAWIO_HEADER = """## C4 Diagram
## Import: Arrange > Insert > Advanced > CSV
#
# label: <b>%name%</b><br><font style="font-size:11px;">%description%</font>
# stylename: type
# styles: {"container": "rounded=1;whiteSpace=wrap;fillColor=#438DD5;fontColor=#ffffff;", \\
#          "component": "rounded=1;whiteSpace=wrap;fillColor=#85BBF0;fontColor=#000000;"}
# connect: {"from": "refs", "to": "id", "invert": false, "style": "curved=1;exitX=0.5;exitY=1;entryX=0.5;entryY=0;"}
# width: 200
# height: 100
# padding: 30
# ignore: id,refs,type,pattern
# identity: id
# namespace: c4
"""

DRAWIO_COLUMNS = ["id", "name", "type", "pattern", "description", "refs"]


def _write_rows(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def _pattern(record: ModuleRecord) -> str:
    return record.pattern if record.has_pattern else ""


def _refs(record: ModuleRecord, tree: CompiledTree) -> List[str]:
    return [rel.target for rel in record.relationships if rel.target in tree]


def render_container_csv(tree: CompiledTree) -> str:
    rows = [
        [
            record.module_path,
            title_case(record.module_path),
            "container",
            _pattern(record),
            record.description,
            ",".join(_refs(record, tree)),
        ]
        for record in tree.ordered()
        if record.level == "container"
    ]
    return DRAWIO_HEADER + _write_rows(DRAWIO_COLUMNS, rows)


def render_component_csv(tree: CompiledTree) -> str:
    """Components grouped under stub rows for their parents.

    A parent that is itself a component already has a row and gets no stub.
    """
    components = [r for r in tree.ordered() if r.level != "container"]
    own_rows = {r.module_path for r in components}
    grouped: Dict[str, List[ModuleRecord]] = defaultdict(list)
    for record in components:
        grouped[tree.parent_of(record.module_path) or "other"].append(record)

    rows: List[List[str]] = []
    for parent in sorted(grouped):
        if parent not in own_rows:
            rows.append([parent, title_case(parent), "container", "", "", ""])
    for parent in sorted(grouped):
        for record in grouped[parent]:
            refs = _refs(record, tree)
            rows.append([
                record.module_path,
                record.name,
                "component",
                _pattern(record),
                record.description,
                ",".join(refs) if refs else (tree.parent_of(record.module_path) or ""),
            ])
    return DRAWIO_HEADER + _write_rows(DRAWIO_COLUMNS, rows)


def render_relationship_csv(tree: CompiledTree) -> str:
    """One row per relationship, dangling targets flagged rather than dropped."""
    rows = [
        [
            record.module_path,
            rel.target,
            rel.label,
            rel.protocol,
            "yes" if rel.target in tree else "no",
        ]
        for record in tree.ordered()
        for rel in record.relationships
    ]
    return _write_rows(["source", "target", "label", "protocol", "resolved"], rows)


def render_file_csv(tree: CompiledTree) -> str:
    """One row per file table entry."""
    rows = [
        [
            record.module_path,
            entry.name,
            entry.pattern if has_pattern(entry.pattern) else "",
            entry.pattern_status,
            entry.purpose,
            entry.health,
        ]
        for record in tree.ordered()
        for entry in record.files
    ]
    return _write_rows(["module", "file", "pattern", "pattern_status", "purpose", "health"], rows)

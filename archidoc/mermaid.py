"""Mermaid C4 diagram rendering.

Diagrams are plain text so they can be embedded in the indexed document and
compared byte-for-byte during drift checks.
"""

from __future__ import annotations

from typing import List, Set

from .models import ModuleRecord, title_case
from .tree import CompiledTree

INDENT = "    "


def _quote(text: str) -> str:
    return text.replace('"', "'").replace("\n", " ").strip()


def _technology(record: ModuleRecord) -> str:
    if not record.has_pattern:
        return ""
    if record.pattern_status == "verified":
        return f"{record.pattern} (verified)"
    return record.pattern


def _node(tree: CompiledTree, record: ModuleRecord, depth: int) -> str:
    shape = "Container" if record.level == "container" else "Component"
    node_id = tree.diagram_id(record.module_path)
    return (
        f"{INDENT * depth}{shape}({node_id}, \"{_quote(title_case(record.module_path))}\", "
        f"\"{_quote(_technology(record))}\", \"{_quote(record.description)}\")"
    )


def _rel_lines(tree: CompiledTree, rendered: Set[str]) -> List[str]:
    lines: List[str] = []
    for record in tree.ordered():
        if record.module_path not in rendered:
            continue
        for rel in record.relationships:
            # Dangling targets are reported by the validator, not drawn.
            if rel.target not in rendered:
                continue
            lines.append(
                f"{INDENT}Rel({tree.diagram_id(record.module_path)}, {tree.diagram_id(rel.target)}, "
                f"\"{_quote(rel.label)}\", \"{_quote(rel.protocol)}\")"
            )
    return lines


def _emit_subtree(tree: CompiledTree, path: str, depth: int, out: List[str]) -> None:
    record = tree.records[path]
    kids = tree.children_of(path)
    if not kids:
        out.append(_node(tree, record, depth))
        return
    out.append(
        f"{INDENT * depth}Container_Boundary({tree.boundary_id(path)}, "
        f"\"{_quote(title_case(path))}\") {{"
    )
    out.append(_node(tree, record, depth + 1))
    for child in kids:
        _emit_subtree(tree, child, depth + 1, out)
    out.append(f"{INDENT * depth}}}")


def _assemble(kind: str, title: str, body: List[str], rels: List[str]) -> str:
    lines = [kind, f"{INDENT}title {title}"]
    if body:
        lines.append("")
        lines.extend(body)
    if rels:
        lines.append("")
        lines.extend(rels)
    return "\n".join(lines) + "\n"


def render_diagram(tree: CompiledTree, title: str = "Architecture") -> str:
    """Full nested diagram: every module, one arrow per resolved relationship."""
    body: List[str] = []
    for root in tree.roots:
        _emit_subtree(tree, root, 1, body)
    return _assemble("C4Container", title, body, _rel_lines(tree, set(tree.records)))


def render_container_diagram(tree: CompiledTree, title: str = "Container Diagram") -> str:
    """Containers only, flattened, with the arrows between them."""
    containers = [r for r in tree.ordered() if r.level == "container"]
    body = [_node(tree, record, 1) for record in containers]
    rendered = {r.module_path for r in containers}
    return _assemble("C4Container", title, body, _rel_lines(tree, rendered))


def render_component_diagram(tree: CompiledTree, title: str = "Component Diagram") -> str:
    """One boundary per top-level element that has nested modules."""
    body: List[str] = []
    rendered: Set[str] = set()
    for root in tree.roots:
        if not tree.children_of(root):
            continue
        _emit_subtree(tree, root, 1, body)
        rendered.add(root)
        stack = list(tree.children_of(root))
        while stack:
            path = stack.pop()
            rendered.add(path)
            stack.extend(tree.children_of(path))
    return _assemble("C4Component", title, body, _rel_lines(tree, rendered))

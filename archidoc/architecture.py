"""The indexed architecture document and the default artifact set."""

from __future__ import annotations

from typing import Dict, List

from .ai_context import render_ai_context, strip_markup
from .config_manager import Settings
from .drawio import (
    render_component_csv,
    render_container_csv,
    render_file_csv,
    render_relationship_csv,
)
from .mermaid import render_component_diagram, render_container_diagram, render_diagram
from .models import ModuleRecord
from .tree import CompiledTree

BANNER = "<!-- Generated by archidoc. Do not edit by hand; run `archidoc generate`. -->"


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ").strip()


def _outline_line(tree: CompiledTree, depth: int, record: ModuleRecord) -> str:
    anchor = tree.anchor(record.module_path)
    line = f"{'  ' * depth}- <a id=\"{anchor}\"></a>**{record.module_path}** `{record.level}`"
    if record.has_pattern:
        line += f" — {record.pattern} ({record.pattern_status})"
    if record.description:
        line += f" — {record.description}"
    return line


def _mermaid(diagram: str) -> List[str]:
    return ["```mermaid", diagram.rstrip("\n"), "```", ""]


def _file_index(tree: CompiledTree) -> List[str]:
    rows = [
        f"| `{_cell(entry.name)}` | [{record.module_path}](#{tree.anchor(record.module_path)}) "
        f"| {_cell(entry.pattern)} | {_cell(entry.purpose)} | {entry.health} |"
        for record in tree.ordered()
        for entry in record.files
    ]
    if not rows:
        return []
    return [
        "## File Index",
        "",
        "| File | Module | Pattern | Purpose | Health |",
        "|------|--------|---------|---------|--------|",
        *rows,
        "",
    ]


def _relationship_map(tree: CompiledTree) -> List[str]:
    rows = []
    for record in tree.ordered():
        for rel in record.relationships:
            target = rel.target if rel.target in tree else f"{rel.target} (unresolved)"
            rows.append(
                f"| {record.module_path} | {_cell(target)} | {_cell(rel.label)} | {_cell(rel.protocol)} |"
            )
    if not rows:
        return []
    return [
        "## Relationships",
        "",
        "| From | To | Label | Protocol |",
        "|------|----|-------|----------|",
        *rows,
        "",
    ]


def render_architecture(tree: CompiledTree) -> str:
    """Render ``ARCHITECTURE.md``: narrative, every diagram, outline, file index
    and relationship map, all in canonical order.

    The component diagram is left out when no module has nested modules.
    """
    lines: List[str] = [BANNER, "", "# Architecture", ""]

    if tree.root_sentinel is not None:
        prose = strip_markup(tree.root_sentinel.content)
        if prose:
            lines.extend([prose, ""])

    lines.extend(["## Diagrams", "", "### Architecture", "", *_mermaid(render_diagram(tree))])
    lines.extend(["### Containers", "", *_mermaid(render_container_diagram(tree))])
    if any(tree.children_of(root) for root in tree.roots):
        lines.extend(["### Components", "", *_mermaid(render_component_diagram(tree))])

    outline = [_outline_line(tree, depth, record) for depth, record in tree.walk()]
    if outline:
        lines.extend(["## Modules", "", *outline, ""])

    lines.extend(_file_index(tree))
    lines.extend(_relationship_map(tree))

    return "\n".join(lines).rstrip("\n") + "\n"


def render_artifacts(tree: CompiledTree, settings: Settings) -> Dict[str, str]:
    """Map of artifact path (relative to the project root) to its text.

    The indexed document is always produced; sidecar exports only when
    enabled in settings.
    """
    artifacts: Dict[str, str] = {settings.output: render_architecture(tree)}
    if settings.sidecars:
        base = settings.sidecar_dir.rstrip("/")
        artifacts[f"{base}/AI_CONTEXT.md"] = render_ai_context(tree)
        artifacts[f"{base}/c4-container.mmd"] = render_container_diagram(tree)
        artifacts[f"{base}/c4-component.mmd"] = render_component_diagram(tree)
        artifacts[f"{base}/c4-container.csv"] = render_container_csv(tree)
        artifacts[f"{base}/c4-component.csv"] = render_component_csv(tree)
        artifacts[f"{base}/relationships.csv"] = render_relationship_csv(tree)
        artifacts[f"{base}/files.csv"] = render_file_csv(tree)
    return artifacts

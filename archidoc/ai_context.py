"""Token-compact architecture outline for machine and LLM consumption.

No diagrams, no tables: the root narrative, an indented module tree where
every module appears once, and a flat relationship list.
"""

from __future__ import annotations

import re
from typing import List, Sequence

from .models import ModuleRecord
from .tree import CompiledTree

HEADER = "# Architecture (AI Context)\n"

_MARKERS = ("@c4 ", "GoF:")


def strip_markup(content: str) -> str:
    """Reduce annotation text to prose.

    Drops fenced blocks, ``@c4`` and ``GoF:`` lines and file tables, removes
    headings left without content and collapses runs of blank lines.
    """
    kept: List[str] = []
    in_fence = False
    in_table = False

    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        if stripped == "@c4" or stripped.startswith(_MARKERS):
            continue
        if stripped.lower().startswith("| file"):
            in_table = True
            continue
        if in_table:
            if stripped.startswith("|"):
                continue
            in_table = False
        kept.append(line.rstrip())

    filtered: List[str] = []
    for i, line in enumerate(kept):
        if line.strip().startswith("#"):
            has_content = False
            for following in kept[i + 1:]:
                if following.strip().startswith("#"):
                    break
                if following.strip():
                    has_content = True
                    break
            if not has_content:
                continue
        filtered.append(line)

    text = "\n".join(filtered).strip()
    return re.sub(r"\n{3,}", "\n\n", text)


def common_prefix(paths: Sequence[str]) -> str:
    """Shared dotted prefix, never consuming a path's last segment."""
    if len(paths) < 2:
        return ""
    split = [p.split(".") for p in paths]
    length = min(len(parts) for parts in split) - 1
    for parts in split[1:]:
        shared = 0
        for a, b in zip(split[0], parts):
            if a != b:
                break
            shared += 1
        length = min(length, shared)
    if length <= 0:
        return ""
    return ".".join(split[0][:length]) + "."


def _module_line(depth: int, record: ModuleRecord) -> str:
    line = "  " * depth + record.name + "/"
    if record.has_pattern:
        line += f" {record.pattern}"
    if record.description:
        line += f" — {record.description}"
    return line


def render_ai_context(tree: CompiledTree) -> str:
    parts = [HEADER]

    if tree.root_sentinel is not None:
        prose = strip_markup(tree.root_sentinel.content)
        if prose:
            parts.append(prose + "\n")

    outline = [_module_line(depth, record) for depth, record in tree.walk()]
    if outline:
        parts.append("\n".join(outline) + "\n")

    prefix = common_prefix(list(tree.records))
    rels: List[str] = []
    for record in tree.ordered():
        for rel in record.relationships:
            src = record.module_path[len(prefix):] if prefix else record.module_path
            tgt = rel.target[len(prefix):] if prefix and rel.target.startswith(prefix) else rel.target
            rels.append(f"{src} -> {tgt}: \"{rel.label}\" ({rel.protocol})")
    if rels:
        parts.append("\n".join(rels) + "\n")

    return "\n".join(parts)

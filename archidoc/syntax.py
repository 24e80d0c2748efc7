"""Tree-sitter parsing for Rust and TypeScript/JavaScript sources.

Tree-sitter produces a concrete syntax tree even for sources with minor
syntax errors, and comments and string literals come back as their own
nodes, so pattern heuristics can look at declarations only.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional

import tree_sitter_javascript
import tree_sitter_rust
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

logger = logging.getLogger(__name__)

# File suffix -> grammar name
GRAMMAR_MAP: Dict[str, str] = {
    ".rs": "rust",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
}

_GRAMMARS: Dict[str, Callable[[], object]] = {
    "rust": tree_sitter_rust.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
    "javascript": tree_sitter_javascript.language,
}

_PARSERS: Dict[str, Parser] = {}


def parser_for(grammar: str) -> Parser:
    parser = _PARSERS.get(grammar)
    if parser is None:
        parser = Parser(Language(_GRAMMARS[grammar]()))
        _PARSERS[grammar] = parser
        logger.debug("Loaded tree-sitter parser for %s", grammar)
    return parser


def parse(text: str, filename: str) -> Optional[Node]:
    """Root node of ``text`` parsed with the grammar for ``filename``'s suffix."""
    grammar = GRAMMAR_MAP.get(Path(filename).suffix)
    if grammar is None:
        return None
    tree = parser_for(grammar).parse(text.encode("utf-8"))
    if tree.root_node.has_error:
        logger.debug("%s parsed with errors; using the recoverable parts", filename)
    return tree.root_node


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of ``node`` and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def find(roots: Iterable[Node], *types: str) -> Iterator[Node]:
    for root in roots:
        for node in walk(root):
            if node.type in types:
                yield node


def text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def field_text(node: Node, name: str) -> str:
    return text(node.child_by_field_name(name))


def last_segment(node: Optional[Node]) -> str:
    """``mpsc::channel::<T>`` -> ``channel``; ``this.bus.subscribe`` -> ``subscribe``."""
    path = text(node).split("<")[0].rstrip(":")
    return re.split(r"::|\?\.|\.", path)[-1].strip()


def has_token(node: Node, token: str) -> bool:
    """True when ``token`` (``static``, ``visibility_modifier`` ...) is a direct child."""
    return any(child.type == token for child in node.children)

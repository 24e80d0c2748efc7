"""Annotation scaffolding for packages that have none yet."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .config_manager import Settings


def infer_level(directory: Path) -> str:
    """One level below ``src/`` is a container, deeper is a component.

    Without a ``src`` ancestor the directory is treated as a container.
    """
    parts = directory.parts
    if "src" not in parts:
        return "container"
    src_index = len(parts) - 1 - parts[::-1].index("src")
    return "container" if len(parts) - src_index - 1 == 1 else "component"


def scan_source_files(directory: Path, settings: Optional[Settings] = None) -> List[str]:
    settings = settings or Settings()
    if not directory.is_dir():
        return []
    return sorted(
        path.name for path in directory.iterdir()
        if path.is_file()
        and path.suffix in settings.source_extensions
        and path.name not in settings.entry_files
    )


def module_title(directory: Path) -> str:
    name = directory.name.replace("_", " ") or "Module"
    return name[:1].upper() + name[1:]


def suggest_annotation(directory: Path, settings: Optional[Settings] = None) -> str:
    """A docstring ready to paste into the package's ``__init__.py``."""
    lines = [
        '"""',
        f"@c4 {infer_level(directory)}",
        "",
        f"# {module_title(directory)}",
        "",
        "[TODO: describe this module's responsibility]",
    ]
    files = scan_source_files(directory, settings)
    if files:
        lines.extend([
            "",
            "| File | Pattern | Purpose | Health |",
            "|------|---------|---------|--------|",
        ])
        lines.extend(f"| `{name}` | -- | [TODO] | active |" for name in files)
    lines.append('"""')
    return "\n".join(lines) + "\n"


COMMENT_STYLES = ("python", "rust", "typescript")

_MANIFESTS = (
    ("Cargo.toml", "rust"),
    ("package.json", "typescript"),
    ("pyproject.toml", "python"),
    ("setup.py", "python"),
)

_LANGUAGE_ALIASES = {
    "python": "python",
    "py": "python",
    "rust": "rust",
    "rs": "rust",
    "typescript": "typescript",
    "ts": "typescript",
    "javascript": "typescript",
    "js": "typescript",
}

_CONTEXT_DIAGRAM = [
    "C4Context",
    "    title System Context Diagram",
    "",
    '    Person(user, "TODO: User", "TODO: Primary user or actor")',
    '    System(system, "TODO: System Name", "TODO: System purpose")',
    '    System_Ext(ext1, "TODO: External System", "TODO: External dependency")',
    "",
    '    Rel(user, system, "Uses")',
    '    Rel(system, ext1, "TODO: relationship", "TODO: protocol")',
]

_ROOT_SECTIONS = [
    "@c4 container",
    "",
    "# [Project Name]",
    "",
    "[TODO: one-line description of what this system does and why it exists]",
    "",
    "## C4 Context",
    "",
    "```mermaid",
    *_CONTEXT_DIAGRAM,
    "```",
    "",
    "## Data Flow",
    "",
    "1. TODO: Primary request flow (e.g. CLI -> API -> Service -> DB)",
    "2. TODO: Primary response flow (e.g. DB -> Service -> CLI)",
    "3. TODO: Secondary flows (settings, background jobs)",
    "",
    "## Concurrency & Data Patterns",
    "",
    "- TODO: Key concurrency primitives (locks, queues, async tasks)",
    "- TODO: Data access patterns (caching, batching, connection pooling)",
    "",
    "## Deployment",
    "",
    "- TODO: Where does this run? (local, cloud, hybrid)",
    "- TODO: Key infrastructure (containers, serverless, schedulers)",
    "",
    "## External Dependencies",
    "",
    "- TODO: Third-party APIs and services",
    "- TODO: Databases and storage systems",
]


def detect_comment_style(root: Path) -> Optional[str]:
    """Guess the project language from the manifest at ``root``."""
    for manifest, style in _MANIFESTS:
        if (root / manifest).exists():
            return style
    return None


def comment_style_for(language: str) -> Optional[str]:
    return _LANGUAGE_ALIASES.get(language.strip().lower())


def _comment_line(style: str, text: str) -> str:
    if style == "rust":
        return f"//! {text}" if text else "//!"
    if style == "typescript":
        return f" * {text}" if text else " *"
    return text


def init_template(style: str) -> str:
    """Root-level annotation for a project's entry file.

    The block carries the ``@c4`` marker and the recommended top-level
    sections, each with placeholders to fill in. ``style`` is one of
    :data:`COMMENT_STYLES` and picks the doc-comment syntax.

    Raises:
        ValueError: for an unknown style.
    """
    if style not in COMMENT_STYLES:
        raise ValueError(f"Unknown comment style '{style}'; expected one of {', '.join(COMMENT_STYLES)}")
    body = [_comment_line(style, text) for text in _ROOT_SECTIONS]
    if style == "python":
        body = ['"""', *body, '"""']
    elif style == "typescript":
        body = ["/**", *body, " */"]
    return "\n".join(body) + "\n"

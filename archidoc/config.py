"""Defaults for the archidoc engine and its command line."""

from __future__ import annotations

import os

ROOT_SENTINEL = "_lib"
NO_PATTERN = "none"
# Older adapters emit these for "no pattern".
NO_PATTERN_ALIASES = {"none", "--", ""}

DEFAULT_OUTPUT = "ARCHITECTURE.md"
DEFAULT_SIDECAR_DIR = "docs/architecture"
DEFAULT_ADAPTER = os.environ.get("ARCHIDOC_ADAPTER", "python")

SOURCE_EXTENSIONS = {".py", ".rs", ".ts", ".tsx", ".js", ".jsx"}

# Module entry points; never reported as orphans.
ENTRY_FILES = {
    "__init__.py",
    "__main__.py",
    "mod.rs",
    "lib.rs",
    "main.rs",
    "index.ts",
    "index.tsx",
    "index.js",
}

SKIP_DIRS = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs", "target",
}

LOCAL_CONFIG_FILE = ".archidoc.toml"
PYPROJECT_FILE = "pyproject.toml"

"""Per-project settings loaded from TOML.

Settings live in ``[tool.archidoc]`` of the project's ``pyproject.toml`` or in
``.archidoc.toml`` at the project root; the dedicated file wins key by key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    output: str = config.DEFAULT_OUTPUT
    sidecars: bool = False
    sidecar_dir: str = config.DEFAULT_SIDECAR_DIR
    source_extensions: FrozenSet[str] = field(default_factory=lambda: frozenset(config.SOURCE_EXTENSIONS))
    entry_files: FrozenSet[str] = field(default_factory=lambda: frozenset(config.ENTRY_FILES))
    adapter: str = config.DEFAULT_ADAPTER


_SET_KEYS = {"source_extensions", "entry_files"}


def _read_toml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        return toml.load(str(path))
    except (toml.TomlDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def load_raw_config(root: Path) -> Dict[str, Any]:
    """Merge ``[tool.archidoc]`` from pyproject with ``.archidoc.toml``."""
    merged: Dict[str, Any] = {}
    pyproject = _read_toml(root / config.PYPROJECT_FILE)
    merged.update(pyproject.get("tool", {}).get("archidoc", {}))
    merged.update(_read_toml(root / config.LOCAL_CONFIG_FILE))
    return merged


def settings_from_dict(raw: Dict[str, Any]) -> Settings:
    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Unknown archidoc setting '%s' ignored", key)
            continue
        if key in _SET_KEYS:
            value = frozenset(str(item) for item in value)
        elif key == "sidecars":
            value = bool(value)
        else:
            value = str(value)
        values[key] = value
    return replace(Settings(), **values)


def load_settings(root: Path) -> Settings:
    return settings_from_dict(load_raw_config(root))

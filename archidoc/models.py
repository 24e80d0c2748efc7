"""Core data models shared by adapters, the engine and the renderers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Literal, Optional, Tuple

from .config import NO_PATTERN, NO_PATTERN_ALIASES, ROOT_SENTINEL

Level = Literal["container", "component", "unknown"]
PatternStatus = Literal["planned", "verified"]
Health = Literal["planned", "active", "stable"]

LEVELS: Tuple[str, ...] = ("container", "component", "unknown")
PATTERN_STATUSES: Tuple[str, ...] = ("planned", "verified")
HEALTH_VALUES: Tuple[str, ...] = ("planned", "active", "stable")


def has_pattern(pattern: str) -> bool:
    return pattern.strip().lower() not in NO_PATTERN_ALIASES


def title_case(module_path: str) -> str:
    """``bus.order_router`` -> ``Order Router``."""
    leaf = module_path.split(".")[-1]
    return " ".join(word[:1].upper() + word[1:] for word in leaf.split("_"))


@dataclass(frozen=True)
class Relationship:
    target: str
    label: str
    protocol: str


@dataclass(frozen=True)
class FileEntry:
    name: str
    pattern: str = NO_PATTERN
    pattern_status: PatternStatus = "planned"
    purpose: str = ""
    health: Health = "planned"

    @property
    def is_directory(self) -> bool:
        return self.name.endswith("/")


@dataclass(frozen=True)
class ModuleRecord:
    """One architectural element: a container or a component.

    Records are immutable once handed to the engine. Every stage that derives
    something new (resolved relationships, promoted pattern status) returns a
    new record built with :func:`dataclasses.replace`.
    """

    module_path: str
    content: str = ""
    source_file: str = ""
    level: Level = "unknown"
    pattern: str = NO_PATTERN
    pattern_status: PatternStatus = "planned"
    description: str = ""
    parent: Optional[str] = None
    relationships: Tuple[Relationship, ...] = ()
    files: Tuple[FileEntry, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from callers; store tuples so the record stays hashable.
        object.__setattr__(self, "relationships", tuple(self.relationships))
        object.__setattr__(self, "files", tuple(self.files))

    @property
    def is_root(self) -> bool:
        return self.module_path in (ROOT_SENTINEL, "")

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self.module_path.split("."))

    @property
    def name(self) -> str:
        return self.segments[-1]

    @property
    def derived_parent(self) -> Optional[str]:
        """Path with the trailing segment dropped; ``None`` for one segment."""
        if self.is_root or "." not in self.module_path:
            return None
        return self.module_path.rsplit(".", 1)[0]

    @property
    def has_pattern(self) -> bool:
        return has_pattern(self.pattern)

    def promote(self) -> "ModuleRecord":
        """Planned -> Verified. Verified records are returned unchanged."""
        if self.pattern_status == "verified":
            return self
        return replace(self, pattern_status="verified")

    def with_relationships(self, relationships: Iterable[Relationship]) -> "ModuleRecord":
        return replace(self, relationships=tuple(relationships))

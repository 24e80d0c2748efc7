"""Adapter boundary: one adapter per ecosystem turns a source tree into IR."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Type

from ..config_manager import Settings
from ..errors import ArchidocError
from ..models import ModuleRecord, Relationship


@dataclass
class AdapterOutput:
    records: List[ModuleRecord] = field(default_factory=list)
    discovered: Dict[str, List[Relationship]] = field(default_factory=dict)


class Adapter(ABC):
    """Abstract base class for all ecosystem adapters.

    Comment syntax and language rules live here, never in the engine.
    Records must come out sorted by module path.
    """

    name: str = ""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    @abstractmethod
    def extract(self, root: Path) -> AdapterOutput:
        """Extract module records and discovered relationships under *root*."""
        ...


ADAPTERS: Dict[str, Type[Adapter]] = {}


def register_adapter(cls: Type[Adapter]) -> Type[Adapter]:
    ADAPTERS[cls.name] = cls
    return cls


def get_adapter(name: str, settings: Optional[Settings] = None) -> Adapter:
    try:
        cls = ADAPTERS[name]
    except KeyError:
        raise ArchidocError(
            "Unknown adapter",
            [f"'{name}' (available: {', '.join(sorted(ADAPTERS)) or 'none'})"],
        ) from None
    return cls(settings)

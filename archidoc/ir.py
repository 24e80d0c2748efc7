"""Portable JSON IR: schema validation, ingestion and egress.

The IR is the contract between per-ecosystem adapters and the engine. Input is
checked exhaustively: every malformed record is reported in one
:class:`~archidoc.errors.SchemaViolation` instead of stopping at the first.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import SchemaViolation
from .models import (
    HEALTH_VALUES,
    LEVELS,
    PATTERN_STATUSES,
    FileEntry,
    ModuleRecord,
    Relationship,
)

logger = logging.getLogger(__name__)


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class RelationshipModel(_Strict):
    target: str
    label: str
    protocol: str


class FileEntryModel(_Strict):
    name: str
    pattern: str
    pattern_status: Literal["planned", "verified"]
    purpose: str
    health: Literal["planned", "active", "stable"]


class ModuleDocModel(_Strict):
    module_path: str
    content: str
    source_file: str
    c4_level: Literal["container", "component", "unknown"]
    pattern: str
    pattern_status: Literal["planned", "verified"]
    description: str
    parent_container: Optional[str] = None
    relationships: List[RelationshipModel]
    files: List[FileEntryModel]

    def to_record(self) -> ModuleRecord:
        return ModuleRecord(
            module_path=self.module_path,
            content=self.content,
            source_file=self.source_file,
            level=self.c4_level,
            pattern=self.pattern,
            pattern_status=self.pattern_status,
            description=self.description,
            parent=self.parent_container,
            relationships=[Relationship(**r.model_dump()) for r in self.relationships],
            files=[FileEntry(**f.model_dump()) for f in self.files],
        )


def _record_label(index: int, module_path: Any) -> str:
    if isinstance(module_path, str):
        return f"record {index} ('{module_path}')"
    return f"record {index}"


def _path_problems(module_path: str, is_root: bool) -> List[str]:
    if is_root:
        return []
    if not module_path.strip():
        return ["module_path must be non-empty"]
    if any(not segment.strip() for segment in module_path.split(".")):
        return [f"module_path '{module_path}' contains an empty segment"]
    return []


def validate_records(records: Sequence[ModuleRecord]) -> None:
    """Check in-process records against the IR rules.

    Raises:
        SchemaViolation: listing every offending record.
    """
    violations: List[str] = []
    root_indexes: List[int] = []

    for index, record in enumerate(records):
        label = _record_label(index, record.module_path)
        if record.level not in LEVELS:
            violations.append(f"{label}: c4_level '{record.level}' is not one of {', '.join(LEVELS)}")
        if record.pattern_status not in PATTERN_STATUSES:
            violations.append(
                f"{label}: pattern_status '{record.pattern_status}' is not one of "
                f"{', '.join(PATTERN_STATUSES)}"
            )
        for position, entry in enumerate(record.files):
            if entry.health not in HEALTH_VALUES:
                violations.append(
                    f"{label}: files.{position}.health '{entry.health}' is not one of "
                    f"{', '.join(HEALTH_VALUES)}"
                )
            if entry.pattern_status not in PATTERN_STATUSES:
                violations.append(
                    f"{label}: files.{position}.pattern_status '{entry.pattern_status}' is not one of "
                    f"{', '.join(PATTERN_STATUSES)}"
                )
        violations.extend(f"{label}: {msg}" for msg in _path_problems(record.module_path, record.is_root))
        if record.is_root:
            root_indexes.append(index)

    if len(root_indexes) > 1:
        violations.append(
            "multiple root sentinel records at indexes " + ", ".join(str(i) for i in root_indexes)
        )

    if violations:
        raise SchemaViolation(violations)


def from_data(data: Any) -> List[ModuleRecord]:
    """Build records from already-decoded JSON data."""
    if not isinstance(data, list):
        raise SchemaViolation(
            [f"IR must be a JSON array of module records, got {type(data).__name__}"]
        )

    violations: List[str] = []
    records: List[ModuleRecord] = []

    for index, item in enumerate(data):
        label = _record_label(index, item.get("module_path") if isinstance(item, dict) else None)
        try:
            model = ModuleDocModel.model_validate(item)
        except ValidationError as exc:
            for error in exc.errors():
                location = ".".join(str(part) for part in error["loc"]) or "<record>"
                violations.append(f"{label}: {location}: {error['msg']}")
            continue
        records.append(model.to_record())

    try:
        validate_records(records)
    except SchemaViolation as exc:
        violations.extend(exc.violations)

    if violations:
        raise SchemaViolation(violations)

    logger.debug("Ingested %d module records", len(records))
    return records


def deserialize(payload: str) -> List[ModuleRecord]:
    """Parse JSON IR text into module records.

    Raises:
        SchemaViolation: when the text is not JSON or any record is malformed.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise SchemaViolation([f"invalid JSON: {exc}"]) from exc
    return from_data(data)


def to_data(record: ModuleRecord) -> Dict[str, Any]:
    return {
        "module_path": record.module_path,
        "content": record.content,
        "source_file": record.source_file,
        "c4_level": record.level,
        "pattern": record.pattern,
        "pattern_status": record.pattern_status,
        "description": record.description,
        "parent_container": record.parent,
        "relationships": [asdict(rel) for rel in record.relationships],
        "files": [asdict(entry) for entry in record.files],
    }


def serialize(records: Sequence[ModuleRecord]) -> str:
    """Serialize records in canonical module-path order.

    Output is byte-stable: serializing the result of :func:`deserialize`
    reproduces the same text.
    """
    ordered = sorted(records, key=lambda r: r.module_path)
    return json.dumps([to_data(r) for r in ordered], indent=2, ensure_ascii=False) + "\n"

"""Tests for the adapter boundary and the Python adapter."""

from pathlib import Path

import pytest

from archidoc.adapters import ADAPTERS, PythonAdapter, get_adapter
from archidoc.adapters.python import (
    extract_description,
    extract_file_table,
    extract_level,
    extract_pattern,
    extract_relationships,
    source_root,
)
from archidoc.engine import compile_records
from archidoc.errors import ArchidocError
from archidoc.models import FileEntry, Relationship


DOC = """@c4 component

# Auth

Verifies bearer tokens.

@c4 uses db "Reads users" "sql"
@c4 uses cache "Caches sessions" "redis"

| File | Pattern | Purpose | Health |
|------|---------|---------|--------|
| `jwt.py` | Strategy (verified) | Token formats | stable |
| `keys/` | -- | Key material | planned |

Trailing prose after the table.
"""


class TestDocstringParsing:
    """Tests for annotation extraction from docstrings."""

    def test_level(self):
        assert extract_level(DOC) == "component"
        assert extract_level("@c4 container\n") == "container"
        assert extract_level("plain text") == "unknown"

    def test_description_skips_markers_and_headers(self):
        assert extract_description(DOC) == "Verifies bearer tokens."

    def test_relationships(self):
        assert extract_relationships(DOC) == [
            Relationship("db", "Reads users", "sql"),
            Relationship("cache", "Caches sessions", "redis"),
        ]

    def test_file_table(self):
        assert extract_file_table(DOC) == [
            FileEntry("jwt.py", "Strategy", "verified", "Token formats", "stable"),
            FileEntry("keys/", "none", "planned", "Key material", "planned"),
        ]

    def test_file_table_cells_are_not_module_pattern(self):
        assert extract_pattern(DOC) == ("none", "planned")

    def test_gof_line(self):
        assert extract_pattern("Routes events.\n\nGoF: Mediator (verified)\n") == ("Mediator", "verified")

    def test_pattern_named_in_prose(self):
        text = "Implements the Observer pattern (verified) for ticks.\n"

        assert extract_pattern(text) == ("Observer", "verified")


class TestRegistry:
    def test_python_registered(self):
        assert ADAPTERS["python"] is PythonAdapter
        assert isinstance(get_adapter("python"), PythonAdapter)

    def test_unknown_adapter(self):
        with pytest.raises(ArchidocError) as exc_info:
            get_adapter("cobol")

        assert "cobol" in str(exc_info.value)


class TestPythonAdapter:
    """Tests for extraction over an annotated src-layout project."""

    def test_source_root_prefers_src(self, annotated_project: Path):
        assert source_root(annotated_project) == annotated_project / "src"

    def test_records_sorted_with_root_sentinel(self, annotated_project: Path):
        output = PythonAdapter().extract(annotated_project)

        assert [r.module_path for r in output.records] == ["_lib", "orders", "orders.pricing", "payments"]

    def test_record_fields(self, annotated_project: Path):
        records = {r.module_path: r for r in PythonAdapter().extract(annotated_project).records}

        orders = records["orders"]
        assert orders.level == "container"
        assert orders.pattern == "Facade"
        assert orders.description == "Accepts and tracks customer orders."
        assert orders.source_file == "src/orders/__init__.py"
        assert orders.relationships == (Relationship("payments", "Charges orders", "in-process"),)
        assert [f.name for f in orders.files] == ["service.py"]

        assert records["orders.pricing"].parent == "orders"
        assert records["orders.pricing"].level == "component"
        assert records["_lib"].description == "An online shop split into ordering and payments."

    def test_discovers_import_relationships(self, annotated_project: Path):
        discovered = PythonAdapter().extract(annotated_project).discovered

        assert discovered == {
            "orders": [Relationship("payments", "imports", "python")],
            "payments": [Relationship("orders.pricing", "imports", "python")],
        }

    def test_explicit_shadows_discovered_after_compile(self, annotated_project: Path):
        output = PythonAdapter().extract(annotated_project)

        tree = compile_records(output.records, output.discovered)

        assert tree.get("orders").relationships == (Relationship("payments", "Charges orders", "in-process"),)
        assert tree.get("payments").relationships == (Relationship("orders.pricing", "imports", "python"),)

    def test_unannotated_packages_skipped(self, annotated_project: Path):
        plain = annotated_project / "src" / "orders" / "helpers"
        plain.mkdir()
        (plain / "__init__.py").write_text('"""Internal helpers."""\n')

        paths = [r.module_path for r in PythonAdapter().extract(annotated_project).records]

        assert "orders.helpers" not in paths

    def test_flat_layout(self, temp_dir: Path):
        pkg = temp_dir / "billing"
        pkg.mkdir()
        (pkg / "__init__.py").write_text('"""\n@c4 container\n\nBills customers.\n"""\n')

        records = PythonAdapter().extract(temp_dir).records

        assert [r.module_path for r in records] == ["billing"]
        assert records[0].source_file == "billing/__init__.py"

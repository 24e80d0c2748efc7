"""Tests for hierarchy assembly."""

import itertools

import pytest

from archidoc.architecture import render_architecture
from archidoc.errors import StructuralError
from archidoc.mermaid import render_diagram
from archidoc.models import ModuleRecord, Relationship
from archidoc.tree import assemble


class TestAssemble:
    """Tests for building the CompiledTree."""

    def test_api_example(self, api_records):
        tree = assemble(api_records)

        assert tree.roots == ("api",)
        assert tree.children_of("api") == ("api.auth",)
        assert tree.parent_of("api.auth") == "api"
        assert [(depth, r.module_path) for depth, r in tree.walk()] == [(0, "api"), (1, "api.auth")]

    def test_root_sentinel_kept_out_of_hierarchy(self, shop_records):
        tree = assemble(shop_records)

        assert tree.root_sentinel is not None
        assert tree.root_sentinel.module_path == "_lib"
        assert "_lib" not in tree
        assert tree.roots == ("orders", "payments")
        assert tree.all_records()[0].module_path == "_lib"

    def test_parent_derived_from_nearest_ancestor(self):
        tree = assemble([ModuleRecord("bus"), ModuleRecord("bus.router.table")])

        assert tree.parent_of("bus.router.table") == "bus"
        assert tree.depth_of("bus.router.table") == 1

    def test_missing_ancestors_make_a_root(self):
        tree = assemble([ModuleRecord("bus.router")])

        assert tree.roots == ("bus.router",)

    def test_canonical_order_sorts_siblings(self):
        tree = assemble([
            ModuleRecord("b"),
            ModuleRecord("a.z"),
            ModuleRecord("a"),
            ModuleRecord("a.b"),
        ])

        assert [r.module_path for r in tree.ordered()] == ["a", "a.b", "a.z", "b"]

    def test_dangling_parent_is_fatal(self):
        with pytest.raises(StructuralError) as exc_info:
            assemble([ModuleRecord("api.auth", parent="api")])

        assert "dangling parent 'api'" in exc_info.value.problems[0]

    def test_parent_mismatch_is_fatal(self):
        with pytest.raises(StructuralError) as exc_info:
            assemble([ModuleRecord("api"), ModuleRecord("db"), ModuleRecord("api.auth", parent="db")])

        assert "declares parent 'db'" in exc_info.value.problems[0]

    def test_duplicate_paths_are_fatal(self):
        with pytest.raises(StructuralError) as exc_info:
            assemble([ModuleRecord("api"), ModuleRecord("api", description="again")])

        assert "duplicate module path 'api'" in str(exc_info.value)

    def test_all_problems_collected(self):
        with pytest.raises(StructuralError) as exc_info:
            assemble([
                ModuleRecord("api"),
                ModuleRecord("api"),
                ModuleRecord("x.y", parent="x"),
            ])

        assert len(exc_info.value.problems) == 2

    def test_replace_records_rebuilds(self, api_records):
        tree = assemble(api_records)
        updated = tree.replace_records([tree.get("api").promote()])

        assert updated.get("api").pattern_status == "verified"
        assert tree.get("api").pattern_status == "planned"

    def test_escaped_paths_get_distinct_diagram_ids(self):
        records = [
            ModuleRecord("a_b"),
            ModuleRecord("a"),
            ModuleRecord("a.b", relationships=[Relationship("a_b", "Reads", "in-process")]),
        ]

        tree = assemble(records)
        diagram = render_diagram(tree)

        assert [tree.diagram_id(p) for p in ("a", "a_b", "a.b")] == ["a", "a_b", "a_b_2"]
        assert tree.boundary_id("a") == "a_boundary"
        assert "Component(a_b, " in diagram
        assert "Component(a_b_2, " in diagram
        assert 'Rel(a_b_2, a_b, "Reads", "in-process")' in diagram

    def test_colliding_anchors_are_suffixed(self):
        tree = assemble([ModuleRecord("a_b"), ModuleRecord("a-b"), ModuleRecord("a.b")])
        document = render_architecture(tree)

        anchors = [tree.anchor(p) for p in ("a-b", "a.b", "a_b")]
        assert anchors == ["module-a-b", "module-a-b-2", "module-a-b-3"]
        assert all(document.count(f'id="{a}"') == 1 for a in anchors)
        assert '<a id="module-a-b-3"></a>**a_b**' in document


class TestRenderingProperties:
    """Order invariance and idempotence of compiled output."""

    def test_order_invariance(self, shop_records):
        expected = render_architecture(assemble(shop_records))

        for permutation in itertools.permutations(shop_records):
            assert render_architecture(assemble(permutation)) == expected

    def test_idempotence(self, shop_records):
        first = render_architecture(assemble(shop_records))
        second = render_architecture(assemble(assemble(shop_records).all_records()))

        assert first == second

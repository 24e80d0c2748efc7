"""Tests for structural heuristics, pattern promotion and fitness checks."""

from dataclasses import replace
from pathlib import Path

import pytest

from archidoc.errors import ArchidocError
from archidoc.heuristics import (
    PREDICATES,
    ModuleSourceSet,
    check_pattern,
    predicate_for,
    register_predicate,
    verifiable_patterns,
)
from archidoc.models import ModuleRecord
from archidoc.tree import assemble
from archidoc.verify import (
    FITNESS_FUNCTIONS,
    check_fitness,
    format_fitness_result,
    load_source_set,
    verify_patterns,
)


def _sources(files, entry_file="__init__.py", declared=()):
    return ModuleSourceSet(
        module_path="mod",
        directory=Path("."),
        entry_file=entry_file,
        sources=files,
        declared=tuple(declared),
    )


STRATEGY_PY = """
from abc import ABC, abstractmethod

class Codec(ABC):
    @abstractmethod
    def encode(self, data): ...

class JsonCodec(Codec):
    def encode(self, data): return data

class CsvCodec(Codec):
    def encode(self, data): return data
"""

STRATEGY_RS = """
pub trait Router { fn route(&self); }
pub struct Fast;
pub struct Safe;
impl Router for Fast { fn route(&self) {} }
impl Router for Safe { fn route(&self) {} }
"""

STRATEGY_TS = """
export interface Renderer { render(): string; }
class SvgRenderer implements Renderer { render() { return ""; } }
class CanvasRenderer implements Renderer { render() { return ""; } }
"""


class TestRegistry:
    """Tests for the predicate lookup table."""

    def test_all_heuristics_registered(self):
        assert verifiable_patterns() == [
            "Adapter", "Builder", "Command", "Decorator", "Facade",
            "Factory", "Observer", "Singleton", "Strategy",
        ]

    def test_lookup_is_case_insensitive(self):
        assert predicate_for("strategy") is predicate_for("Strategy")
        assert predicate_for(" FACADE ") is not None

    def test_unknown_pattern(self):
        assert predicate_for("Repository") is None
        assert check_pattern("Repository", _sources({})) is False

    def test_register_new_pattern(self):
        @register_predicate("Memento")
        def check_memento(sources):
            return "snapshot" in "".join(sources.sources.values())

        try:
            assert check_pattern("memento", _sources({"a.py": "snapshot = 1"}))
        finally:
            PREDICATES.pop("memento")


class TestStrategy:
    def test_python_abstraction_with_two_implementations(self):
        assert check_pattern("Strategy", _sources({"codecs.py": STRATEGY_PY}))

    def test_python_single_implementation_fails(self):
        source = STRATEGY_PY.split("class CsvCodec")[0]

        assert not check_pattern("Strategy", _sources({"codecs.py": source}))

    def test_rust_trait(self):
        assert check_pattern("Strategy", _sources({"router.rs": STRATEGY_RS}, entry_file="mod.rs"))

    def test_typescript_interface(self):
        assert check_pattern("Strategy", _sources({"render.ts": STRATEGY_TS}, entry_file="index.ts"))

    def test_syntax_error_is_not_evidence(self):
        assert not check_pattern("Strategy", _sources({"broken.py": "class (:"}))


class TestFacade:
    def test_reexports_every_declared_part(self):
        entry = "from .client import Client\nfrom .models import Order\n\n__all__ = ['Client', 'Order']\n"

        assert check_pattern(
            "Facade",
            _sources({"__init__.py": entry}, declared=["client.py", "models.py"]),
        )

    def test_missing_reexport_fails(self):
        entry = "from .client import Client\n"

        assert not check_pattern(
            "Facade",
            _sources({"__init__.py": entry}, declared=["client.py", "models.py"]),
        )

    def test_new_public_surface_fails(self):
        entry = "from .client import Client\n\ndef connect():\n    return Client()\n"

        assert not check_pattern("Facade", _sources({"__init__.py": entry}, declared=["client.py"]))

    def test_rust_pub_use(self):
        entry = "pub mod client;\npub mod models;\npub use client::Client;\n"

        assert check_pattern(
            "Facade",
            _sources({"mod.rs": entry}, entry_file="mod.rs", declared=["client.rs", "models.rs"]),
        )

    def test_typescript_export_from(self):
        entry = "export { Chart } from './chart';\nexport * from './legend';\n"

        assert check_pattern(
            "Facade",
            _sources({"index.ts": entry}, entry_file="index.ts", declared=["chart.ts", "legend.ts"]),
        )


class TestOtherPatterns:
    def test_observer(self):
        source = "class Bus:\n    def subscribe(self, fn):\n        self.fns.append(fn)\n"

        assert check_pattern("Observer", _sources({"bus.py": source}))

    def test_builder(self):
        source = "class QueryBuilder:\n    def build(self):\n        return 1\n"

        assert check_pattern("Builder", _sources({"q.py": source}))

    def test_factory(self):
        assert check_pattern("Factory", _sources({"f.py": "def create_store(kind):\n    return kind\n"}))

    def test_singleton(self):
        assert check_pattern("Singleton", _sources({"s.py": "_instance = None\n"}))

    def test_command(self):
        source = (
            "from abc import ABC, abstractmethod\n\n"
            "class Command(ABC):\n"
            "    @abstractmethod\n"
            "    def execute(self): ...\n"
        )

        assert check_pattern("Command", _sources({"c.py": source}))

    def test_decorator(self):
        source = (
            "class Store: ...\n\n"
            "class CachedStore(Store):\n"
            "    def __init__(self, inner: Store):\n"
            "        self.inner = inner\n"
        )

        assert check_pattern("Decorator", _sources({"d.py": source}))

    def test_adapter(self):
        source = (
            "class Sink: ...\n\n"
            "class S3Sink(Sink):\n"
            "    def __init__(self, client):\n"
            "        self._client = client\n"
        )

        assert check_pattern("Adapter", _sources({"a.py": source}))

    def test_rust_observer_channel(self):
        source = "use std::sync::mpsc::channel;\nfn start() -> Receiver<Event> { let (tx, rx) = mpsc::channel(); rx }\n"

        assert check_pattern("Observer", _sources({"events.rs": source}, entry_file="mod.rs"))

    def test_rust_builder(self):
        source = (
            "pub struct QueryBuilder { table: String }\n"
            "impl QueryBuilder {\n"
            "    pub fn table(mut self, name: &str) -> Self { self.table = name.into(); self }\n"
            "    pub fn build(self) -> Query { Query }\n"
            "}\n"
        )

        assert check_pattern("Builder", _sources({"query.rs": source}, entry_file="mod.rs"))

    def test_typescript_singleton(self):
        source = (
            "export class Registry {\n"
            "  private static instance: Registry;\n"
            "  static getInstance(): Registry { return Registry.instance; }\n"
            "}\n"
        )

        assert check_pattern("Singleton", _sources({"registry.ts": source}, entry_file="index.ts"))

    def test_typescript_command(self):
        source = "export interface Command {\n  execute(): void;\n  undo(): void;\n}\n"

        assert check_pattern("Command", _sources({"command.ts": source}, entry_file="index.ts"))

    def test_typescript_observer(self):
        source = "import { EventEmitter } from 'events';\nexport const bus = new EventEmitter();\n"

        assert check_pattern("Observer", _sources({"bus.ts": source}, entry_file="index.ts"))


class TestCommentsAndStringsAreNotEvidence:
    """Only declarations count; comments and string literals never do."""

    def test_typescript_commented_implementations(self):
        source = (
            "interface Pricing {}\n"
            "// class A implements Pricing {}\n"
            "// class B implements Pricing {}\n"
        )

        assert not check_pattern("Strategy", _sources({"index.ts": source}, entry_file="index.ts"))

    def test_rust_impls_inside_string_literal(self):
        source = (
            "pub trait Pricing {}\n"
            'pub const DOC: &str = "impl Pricing for A {} impl Pricing for B {}";\n'
        )

        assert not check_pattern("Strategy", _sources({"lib.rs": source}, entry_file="lib.rs"))

    def test_rust_commented_lazy_static(self):
        source = "// lazy_static! { static ref CONFIG: Config = Config::new(); }\npub struct Config;\n"

        assert not check_pattern("Singleton", _sources({"config.rs": source}, entry_file="mod.rs"))

    def test_python_commented_queue(self):
        source = "# events = asyncio.Queue()\nRATE = 1\n"

        assert not check_pattern("Observer", _sources({"events.py": source}))

    def test_typescript_facade_with_own_function(self):
        entry = "export { Chart } from './chart';\nexport function draw() {}\n"

        assert not check_pattern(
            "Facade",
            _sources({"index.ts": entry}, entry_file="index.ts", declared=["chart.ts"]),
        )


@pytest.fixture
def shop_tree(shop_records):
    return assemble(shop_records)


class TestVerifyPatterns:
    """Tests for planned -> verified promotion over a real source tree."""

    def test_promotes_supported_claims(self, annotated_project: Path, shop_tree):
        result = verify_patterns(shop_tree, annotated_project)

        assert result.promoted == ["orders", "orders.pricing"]
        assert result.tree.get("orders").pattern_status == "verified"
        assert result.tree.get("orders.pricing").pattern_status == "verified"
        assert result.tree.get("payments").pattern_status == "planned"
        assert shop_tree.get("orders").pattern_status == "planned"

    def test_idempotent(self, annotated_project: Path, shop_tree):
        first = verify_patterns(shop_tree, annotated_project)
        second = verify_patterns(first.tree, annotated_project)

        assert second.promoted == []
        assert second.tree.ordered() == first.tree.ordered()

    def test_never_demotes(self, temp_dir: Path):
        record = ModuleRecord(
            module_path="svc",
            source_file="svc/__init__.py",
            pattern="Strategy",
            pattern_status="verified",
        )

        result = verify_patterns(assemble([record]), temp_dir)

        assert result.tree.get("svc").pattern_status == "verified"
        assert result.promoted == []

    def test_no_evidence_stays_planned(self, annotated_project: Path, shop_tree):
        (annotated_project / "src" / "orders" / "pricing" / "rules.py").write_text("RATE = 1\n")

        result = verify_patterns(shop_tree, annotated_project)

        assert "orders.pricing" not in result.promoted
        assert result.tree.get("orders.pricing").pattern_status == "planned"

    def test_empty_source_file_reads_nothing(self, temp_dir: Path):
        project = temp_dir / "project"
        project.mkdir()
        (temp_dir / "rules.py").write_text(STRATEGY_PY)
        record = ModuleRecord("pricing", source_file="", pattern="Strategy")
        tree = assemble([record])

        sources = load_source_set(record, tree, project)
        result = verify_patterns(tree, project)

        assert sources.directory is None
        assert dict(sources.sources) == {}
        assert result.promoted == []

    def test_source_set_declares_children_and_files(self, annotated_project: Path, shop_tree):
        sources = load_source_set(shop_tree.get("orders"), shop_tree, annotated_project)

        assert sources.entry_file == "__init__.py"
        assert sources.declared == ("pricing", "service.py")
        assert set(sources.sources) == {"__init__.py", "service.py"}


class TestFitness:
    def test_named_functions(self):
        assert sorted(FITNESS_FUNCTIONS) == [
            "all_facade_modules_reexport_submodules",
            "all_observer_modules_have_channels_or_callbacks",
            "all_strategy_modules_define_an_abstraction",
        ]

    def test_passes_when_claims_hold(self, annotated_project: Path, shop_tree):
        result = FITNESS_FUNCTIONS["all_strategy_modules_define_an_abstraction"](shop_tree, annotated_project)

        assert result.passed
        assert result.checked == 1
        assert str(result).startswith("PASS")

    def test_fails_with_offending_module(self, annotated_project: Path, shop_records):
        records = [replace(r, pattern="Facade") if r.module_path == "payments" else r for r in shop_records]

        result = check_fitness(assemble(records), annotated_project, "Facade")

        assert not result.passed
        assert result.checked == 2
        assert [f.module_path for f in result.failures] == ["payments"]
        assert "payments (src/payments/__init__.py)" in format_fitness_result(result)

    def test_unknown_pattern_raises(self, shop_tree, temp_dir: Path):
        with pytest.raises(ArchidocError):
            check_fitness(shop_tree, temp_dir, "Repository")

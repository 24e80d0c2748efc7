"""Structural heuristics for design pattern claims.

Each predicate looks for structural evidence consistent with a pattern in a
module's source files. It does not prove the pattern is implemented
correctly. Python sources are inspected with :mod:`ast`; Rust, TypeScript and
JavaScript sources with tree-sitter (:mod:`archidoc.syntax`). Comments and
string literals are never evidence.

Predicates are registered per pattern name, so a new pattern only needs a new
``@register_predicate`` function.
"""

from __future__ import annotations

import ast
import logging
import re
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from tree_sitter import Node

from . import syntax
from .syntax import field_text, find, has_token, last_segment

logger = logging.getLogger(__name__)

LANGUAGES: Dict[str, str] = {
    ".py": "python",
    ".rs": "rust",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "typescript",
    ".jsx": "typescript",
}


@dataclass(frozen=True)
class ModuleSourceSet:
    """The source files of one module, read once and handed to predicates."""

    module_path: str
    directory: Optional[Path]
    entry_file: str
    sources: Mapping[str, str]
    declared: Tuple[str, ...] = ()

    def python_trees(self) -> List[ast.Module]:
        trees = []
        for name, text in sorted(self.sources.items()):
            if Path(name).suffix != ".py":
                continue
            tree = _parse(text, name)
            if tree is not None:
                trees.append(tree)
        return trees

    def syntax_trees(self, language: str) -> List[Node]:
        """Tree-sitter roots for the ``rust`` or ``typescript`` family."""
        roots = []
        for name, text in sorted(self.sources.items()):
            if LANGUAGES.get(Path(name).suffix) != language:
                continue
            root = syntax.parse(text, name)
            if root is not None:
                roots.append(root)
        return roots

    @property
    def entry_source(self) -> Optional[str]:
        return self.sources.get(self.entry_file)


StructuralPredicate = Callable[[ModuleSourceSet], bool]

PREDICATES: Dict[str, StructuralPredicate] = {}
_CANONICAL_NAMES: Dict[str, str] = {}


def register_predicate(pattern: str) -> Callable[[StructuralPredicate], StructuralPredicate]:
    def decorator(func: StructuralPredicate) -> StructuralPredicate:
        PREDICATES[pattern.lower()] = func
        _CANONICAL_NAMES[pattern.lower()] = pattern
        return func
    return decorator


def predicate_for(pattern: str) -> Optional[StructuralPredicate]:
    return PREDICATES.get(pattern.strip().lower())


def verifiable_patterns() -> List[str]:
    return sorted(_CANONICAL_NAMES.get(key, key) for key in PREDICATES)


def check_pattern(pattern: str, sources: ModuleSourceSet) -> bool:
    """False for patterns without a heuristic."""
    predicate = predicate_for(pattern)
    return bool(predicate and predicate(sources))


# ---------------------------------------------------------------------------
# Python AST helpers
# ---------------------------------------------------------------------------

def _parse(text: str, name: str) -> Optional[ast.Module]:
    try:
        return ast.parse(text)
    except SyntaxError as exc:
        logger.debug("Skipping %s for pattern checks: %s", name, exc)
        return None


def _name_of(expr: ast.AST) -> Optional[str]:
    """Last dotted segment of a Name/Attribute/Subscript expression."""
    if isinstance(expr, ast.Name):
        return expr.id
    if isinstance(expr, ast.Attribute):
        return expr.attr
    if isinstance(expr, ast.Subscript):
        return _name_of(expr.value)
    return None


def _classes(trees: List[ast.Module]) -> List[ast.ClassDef]:
    return [node for tree in trees for node in ast.walk(tree) if isinstance(node, ast.ClassDef)]


def _methods(cls: ast.ClassDef) -> List[ast.AST]:
    return [n for n in cls.body if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef))]


def _base_names(cls: ast.ClassDef) -> Set[str]:
    return {name for name in (_name_of(base) for base in cls.bases) if name}


def _is_abstract(cls: ast.ClassDef) -> bool:
    if _base_names(cls) & {"ABC", "Protocol"}:
        return True
    for keyword in cls.keywords:
        if keyword.arg == "metaclass" and _name_of(keyword.value) == "ABCMeta":
            return True
    for method in _methods(cls):
        if any(_name_of(d) == "abstractmethod" for d in method.decorator_list):  # type: ignore[attr-defined]
            return True
    return False


def _functions(trees: List[ast.Module]) -> List[ast.AST]:
    return [
        node for tree in trees for node in ast.walk(tree)
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
    ]


def _referenced_names(trees: List[ast.Module]) -> Set[str]:
    """Every Name and Attribute used in code, by last dotted segment."""
    return {
        name for tree in trees for node in ast.walk(tree)
        if isinstance(node, (ast.Name, ast.Attribute))
        for name in [_name_of(node)] if name
    }


def _stem(name: str) -> str:
    return Path(name.rstrip("/")).stem


# ---------------------------------------------------------------------------
# Tree-sitter helpers (Rust and the TypeScript/JavaScript family)
# ---------------------------------------------------------------------------

_TS_CLASSES = ("class_declaration", "abstract_class_declaration", "class")
_TS_METHODS = ("method_definition", "method_signature", "abstract_method_signature")
_RUST_FUNCTIONS = ("function_item", "function_signature_item")


def _names(roots: List[Node], *types: str) -> List[str]:
    return [field_text(node, "name") for node in find(roots, *types)]


def _heritage(cls: Node, clause: Optional[str] = None) -> Set[str]:
    """Type names a TS/JS class extends or implements.

    ``clause`` narrows to ``extends_clause`` or ``implements_clause``.
    """
    names: Set[str] = set()
    for child in cls.children:
        if child.type != "class_heritage":
            continue
        parts = [child] if clause is None else [c for c in child.children if c.type == clause]
        names.update(syntax.text(n) for n in find(parts, "identifier", "type_identifier"))
    return names


def _class_methods(cls: Node) -> List[Node]:
    body = cls.child_by_field_name("body")
    if body is None:
        return []
    return [child for child in body.named_children if child.type in _TS_METHODS]


def _impl_methods(impl: Node) -> List[Node]:
    body = impl.child_by_field_name("body")
    if body is None:
        return []
    return [child for child in body.named_children if child.type in _RUST_FUNCTIONS]


def _trait_impls(roots: List[Node]) -> List[str]:
    """Trait name of every ``impl Trait for Type`` block."""
    return [
        last_segment(trait.child_by_field_name("type") if trait.type == "generic_type" else trait)
        for impl in find(roots, "impl_item")
        for trait in [impl.child_by_field_name("trait")] if trait is not None
    ]


# ---------------------------------------------------------------------------
# Strategy: one abstraction point, several interchangeable implementations
# ---------------------------------------------------------------------------

def _python_strategy(trees: List[ast.Module]) -> bool:
    classes = _classes(trees)
    abstractions = {cls.name for cls in classes if _is_abstract(cls)}
    for abstraction in abstractions:
        implementations = [
            cls for cls in classes
            if cls.name != abstraction and abstraction in _base_names(cls)
        ]
        if len(implementations) >= 2:
            return True
    return False


def _rust_strategy(roots: List[Node]) -> bool:
    traits = set(_names(roots, "trait_item"))
    implemented = Counter(_trait_impls(roots))
    return any(implemented[trait] >= 2 for trait in traits)


def _ts_strategy(roots: List[Node]) -> bool:
    abstractions = set(_names(roots, "interface_declaration", "abstract_class_declaration"))
    implemented: Counter = Counter()
    for cls in find(roots, *_TS_CLASSES):
        implemented.update((_heritage(cls) - {field_text(cls, "name")}) & abstractions)
    return any(count >= 2 for count in implemented.values())


@register_predicate("Strategy")
def check_strategy(sources: ModuleSourceSet) -> bool:
    return (
        _python_strategy(sources.python_trees())
        or _rust_strategy(sources.syntax_trees("rust"))
        or _ts_strategy(sources.syntax_trees("typescript"))
    )


# ---------------------------------------------------------------------------
# Facade: entry file re-exports every declared sub-component, adds nothing
# ---------------------------------------------------------------------------

_RUST_PUBLIC_ITEMS = {
    "function_item", "struct_item", "enum_item", "union_item", "trait_item",
    "const_item", "static_item", "type_item",
}
_TS_VALUE_EXPORTS = {"function", "function_expression", "arrow_function", "class"}


def _python_facade(text: str) -> Tuple[bool, Set[str], bool]:
    """Return (parsed, re-exported sub-modules, adds public surface)."""
    tree = _parse(text, "<entry>")
    if tree is None:
        return False, set(), False
    referenced: Set[str] = set()
    surface = False
    for node in tree.body:
        if isinstance(node, ast.ImportFrom):
            if node.level and node.module:
                referenced.add(node.module.split(".")[0])
            elif node.level:
                referenced.update(alias.name for alias in node.names)
            elif node.module:
                referenced.add(node.module.split(".")[-1])
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            if not node.name.startswith("_"):
                surface = True
        elif isinstance(node, (ast.Assign, ast.AnnAssign)):
            targets = node.targets if isinstance(node, ast.Assign) else [node.target]
            for target in targets:
                name = _name_of(target)
                if name and not name.startswith("_"):
                    surface = True
    return True, referenced, surface


def _rust_facade(root: Node) -> Tuple[bool, Set[str], bool]:
    referenced: Set[str] = set()
    surface = False
    for item in root.named_children:
        if not has_token(item, "visibility_modifier"):
            continue
        if item.type == "mod_item":
            referenced.add(field_text(item, "name"))
        elif item.type == "use_declaration":
            referenced.update(syntax.text(n) for n in find([item], "identifier"))
        elif item.type in _RUST_PUBLIC_ITEMS:
            surface = True
    return True, referenced, surface


def _ts_facade(root: Node) -> Tuple[bool, Set[str], bool]:
    referenced: Set[str] = set()
    surface = False
    for statement in root.named_children:
        if statement.type != "export_statement":
            continue
        source = statement.child_by_field_name("source")
        value = statement.child_by_field_name("value")
        if source is not None:
            module = syntax.text(source).strip("'\"`")
            referenced.add(_stem(module.split("/")[-1]))
        elif statement.child_by_field_name("declaration") is not None:
            surface = True
        elif value is not None and value.type in _TS_VALUE_EXPORTS:
            surface = True
    return True, referenced, surface


def _entry_facade(sources: ModuleSourceSet, text: str) -> Optional[Tuple[bool, Set[str], bool]]:
    language = LANGUAGES.get(Path(sources.entry_file).suffix)
    if language == "python":
        return _python_facade(text)
    root = syntax.parse(text, sources.entry_file)
    if root is None:
        return None
    return _rust_facade(root) if language == "rust" else _ts_facade(root)


@register_predicate("Facade")
def check_facade(sources: ModuleSourceSet) -> bool:
    text = sources.entry_source
    if text is None:
        return False
    inspected = _entry_facade(sources, text)
    if inspected is None:
        return False
    parsed, referenced, surface = inspected
    if not parsed or surface or not referenced:
        return False
    declared = {_stem(name) for name in sources.declared}
    declared.discard(_stem(sources.entry_file))
    return declared <= referenced


# ---------------------------------------------------------------------------
# Observer: channels, callbacks or subscribe/notify style methods
# ---------------------------------------------------------------------------

_OBSERVER_METHODS = {
    "subscribe", "unsubscribe", "notify", "on_event", "on_update", "on_change",
    "emit", "publish", "add_listener", "remove_listener", "attach", "detach",
    "addListener", "removeListener", "onEvent", "onUpdate", "onChange",
}

_RUST_CHANNEL_TYPES = {"Sender", "Receiver", "SyncSender", "UnboundedSender", "UnboundedReceiver"}
_RUST_CHANNEL_CALLS = {"channel", "sync_channel", "unbounded_channel", "unbounded"}
_RUST_CALLBACKS = {"Fn", "FnMut", "FnOnce"}

_TS_OBSERVER_TYPES = {"EventEmitter", "Observable", "Subject", "BehaviorSubject"}
_TS_OBSERVER_CALLS = {"subscribe", "addEventListener", "removeEventListener", "notify"}


def _python_observer(trees: List[ast.Module]) -> bool:
    if any(func.name in _OBSERVER_METHODS for func in _functions(trees)):  # type: ignore[attr-defined]
        return True
    if "Queue" in _referenced_names(trees):
        return True
    return any(
        isinstance(node, ast.Subscript) and _name_of(node.value) == "Callable"
        for tree in trees for node in ast.walk(tree)
    )


def _rust_observer(roots: List[Node]) -> bool:
    if set(_names(roots, *_RUST_FUNCTIONS)) & _OBSERVER_METHODS:
        return True
    if any(syntax.text(n) in _RUST_CHANNEL_TYPES for n in find(roots, "type_identifier")):
        return True
    if any(field_text(n, "trait") in _RUST_CALLBACKS for n in find(roots, "function_type")):
        return True
    return any(
        last_segment(call.child_by_field_name("function")) in _RUST_CHANNEL_CALLS
        for call in find(roots, "call_expression")
    )


def _ts_observer(roots: List[Node]) -> bool:
    if set(_names(roots, "function_declaration", *_TS_METHODS)) & _OBSERVER_METHODS:
        return True
    if any(syntax.text(n) in _TS_OBSERVER_TYPES for n in find(roots, "identifier", "type_identifier")):
        return True
    return any(
        last_segment(call.child_by_field_name("function")) in _TS_OBSERVER_CALLS
        for call in find(roots, "call_expression")
    )


@register_predicate("Observer")
def check_observer(sources: ModuleSourceSet) -> bool:
    return (
        _python_observer(sources.python_trees())
        or _rust_observer(sources.syntax_trees("rust"))
        or _ts_observer(sources.syntax_trees("typescript"))
    )


# ---------------------------------------------------------------------------
# Builder: build() or chained setters returning self
# ---------------------------------------------------------------------------

def _returns_self(func: ast.AST) -> bool:
    return any(
        isinstance(node, ast.Return) and isinstance(node.value, ast.Name) and node.value.id == "self"
        for node in ast.walk(func)
    )


def _returns_this(method: Node) -> bool:
    return any(
        has_token(statement, "this") for statement in find([method], "return_statement")
    )


def _python_builder(trees: List[ast.Module]) -> bool:
    for cls in _classes(trees):
        methods = _methods(cls)
        if any(m.name == "build" for m in methods):  # type: ignore[attr-defined]
            return True
        if sum(1 for m in methods if _returns_self(m)) >= 2:
            return True
    return False


def _rust_builder(roots: List[Node]) -> bool:
    for impl in find(roots, "impl_item"):
        methods = _impl_methods(impl)
        if any(field_text(m, "name") == "build" for m in methods):
            return True
        if sum(1 for m in methods if "Self" in field_text(m, "return_type")) >= 2:
            return True
    return False


def _ts_builder(roots: List[Node]) -> bool:
    for cls in find(roots, *_TS_CLASSES):
        methods = _class_methods(cls)
        if any(field_text(m, "name") == "build" for m in methods):
            return True
        if sum(1 for m in methods if _returns_this(m)) >= 2:
            return True
    return False


@register_predicate("Builder")
def check_builder(sources: ModuleSourceSet) -> bool:
    return (
        _python_builder(sources.python_trees())
        or _rust_builder(sources.syntax_trees("rust"))
        or _ts_builder(sources.syntax_trees("typescript"))
    )


# ---------------------------------------------------------------------------
# Factory: create/make functions or constructors returning abstractions
# ---------------------------------------------------------------------------

_FACTORY_NAME = re.compile(r"^(create|make)(_|$)|^from_")
_TS_FACTORY_NAME = re.compile(r"^(create|make)([A-Z_]|$)")


def _rust_factory(roots: List[Node]) -> bool:
    for func in find(roots, *_RUST_FUNCTIONS):
        if _FACTORY_NAME.match(field_text(func, "name")):
            return True
        returned = func.child_by_field_name("return_type")
        if returned is not None and any(find([returned], "dynamic_type", "abstract_type")):
            return True
    return False


def _ts_factory(roots: List[Node]) -> bool:
    names = _names(roots, "function_declaration", *_TS_METHODS)
    for declarator in find(roots, "variable_declarator"):
        value = declarator.child_by_field_name("value")
        if value is not None and value.type in _TS_VALUE_EXPORTS:
            names.append(field_text(declarator, "name"))
    return any(_TS_FACTORY_NAME.match(name) for name in names)


@register_predicate("Factory")
def check_factory(sources: ModuleSourceSet) -> bool:
    for func in _functions(sources.python_trees()):
        if _FACTORY_NAME.match(func.name):  # type: ignore[attr-defined]
            return True
    return _rust_factory(sources.syntax_trees("rust")) or _ts_factory(sources.syntax_trees("typescript"))


# ---------------------------------------------------------------------------
# Adapter: a thin wrapper around one collaborator implementing an interface
# ---------------------------------------------------------------------------

def _init_attributes(cls: ast.ClassDef) -> Set[str]:
    attrs: Set[str] = set()
    for method in _methods(cls):
        if method.name != "__init__":  # type: ignore[attr-defined]
            continue
        for node in ast.walk(method):
            if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name) \
                    and node.value.id == "self" and isinstance(node.ctx, ast.Store):
                attrs.add(node.attr)
    return attrs


def _rust_wrapper_struct(roots: List[Node]) -> bool:
    for struct in find(roots, "struct_item"):
        body = struct.child_by_field_name("body")
        if body is None or body.type != "field_declaration_list":
            continue
        if 1 <= sum(1 for f in body.named_children if f.type == "field_declaration") <= 2:
            return True
    return False


@register_predicate("Adapter")
def check_adapter(sources: ModuleSourceSet) -> bool:
    for cls in _classes(sources.python_trees()):
        bases = _base_names(cls) - {"object"}
        if bases and 1 <= len(_init_attributes(cls)) <= 2:
            return True
    rust = sources.syntax_trees("rust")
    if _rust_wrapper_struct(rust) and _trait_impls(rust):
        return True
    return any(
        _heritage(cls, "implements_clause")
        for cls in find(sources.syntax_trees("typescript"), *_TS_CLASSES)
    )


# ---------------------------------------------------------------------------
# Decorator: wraps an instance of the abstraction it also implements
# ---------------------------------------------------------------------------

def _init_annotations(cls: ast.ClassDef) -> Set[str]:
    names: Set[str] = set()
    for method in _methods(cls):
        if method.name != "__init__":  # type: ignore[attr-defined]
            continue
        for arg in method.args.args:  # type: ignore[attr-defined]
            if arg.annotation is not None:
                name = _name_of(arg.annotation)
                if name:
                    names.add(name)
    return names


def _python_decorator(trees: List[ast.Module]) -> bool:
    for cls in _classes(trees):
        if _base_names(cls) & _init_annotations(cls):
            return True
    return any(
        isinstance(decorator, ast.Call) and _name_of(decorator.func) == "wraps"
        for func in _functions(trees) for decorator in func.decorator_list  # type: ignore[attr-defined]
    )


def _rust_decorator(roots: List[Node]) -> bool:
    wraps_trait_object = any(
        any(find([field], "dynamic_type"))
        for field in find(roots, "field_declaration")
    )
    return wraps_trait_object and bool(_trait_impls(roots))


def _ts_decorator(roots: List[Node]) -> bool:
    for cls in find(roots, *_TS_CLASSES):
        interfaces = _heritage(cls, "implements_clause")
        if not interfaces:
            continue
        for method in _class_methods(cls):
            if field_text(method, "name") != "constructor":
                continue
            parameters = method.child_by_field_name("parameters")
            if parameters is None:
                continue
            if {syntax.text(n) for n in find([parameters], "type_identifier")} & interfaces:
                return True
    return False


@register_predicate("Decorator")
def check_decorator(sources: ModuleSourceSet) -> bool:
    return (
        _python_decorator(sources.python_trees())
        or _rust_decorator(sources.syntax_trees("rust"))
        or _ts_decorator(sources.syntax_trees("typescript"))
    )


# ---------------------------------------------------------------------------
# Singleton: one lazily created shared instance
# ---------------------------------------------------------------------------

_SINGLETON_ACCESSORS = {"instance", "get_instance", "getInstance"}
_RUST_LAZY_TYPES = {"Lazy", "OnceLock", "OnceCell"}


def _python_singleton(trees: List[ast.Module]) -> bool:
    if "_instance" in _referenced_names(trees):
        return True
    return any(func.name in _SINGLETON_ACCESSORS for func in _functions(trees))  # type: ignore[attr-defined]


def _rust_singleton(roots: List[Node]) -> bool:
    if any(last_segment(m.child_by_field_name("macro")) == "lazy_static" for m in find(roots, "macro_invocation")):
        return True
    if any(syntax.text(n) in _RUST_LAZY_TYPES for n in find(roots, "type_identifier")):
        return True
    for func in find(roots, "function_item"):
        parameters = func.child_by_field_name("parameters")
        if field_text(func, "name") in _SINGLETON_ACCESSORS and parameters is not None \
                and not parameters.named_children:
            return True
    return False


def _ts_singleton(roots: List[Node]) -> bool:
    for member in find(roots, "method_definition", "public_field_definition", "field_definition"):
        if not has_token(member, "static"):
            continue
        name = field_text(member, "name") or field_text(member, "property")
        if name.lstrip("#_") in {"instance", "getInstance"}:
            return True
    return False


@register_predicate("Singleton")
def check_singleton(sources: ModuleSourceSet) -> bool:
    return (
        _python_singleton(sources.python_trees())
        or _rust_singleton(sources.syntax_trees("rust"))
        or _ts_singleton(sources.syntax_trees("typescript"))
    )


# ---------------------------------------------------------------------------
# Command: an abstraction exposing execute/run style operations
# ---------------------------------------------------------------------------

_COMMAND_METHODS = {"execute", "exec", "run", "invoke", "perform", "undo", "redo"}


def _rust_command(roots: List[Node]) -> bool:
    return any(
        set(_names([trait], *_RUST_FUNCTIONS)) & _COMMAND_METHODS
        for trait in find(roots, "trait_item")
    )


def _ts_command(roots: List[Node]) -> bool:
    return any(
        set(_names([abstraction], *_TS_METHODS)) & _COMMAND_METHODS
        for abstraction in find(roots, "interface_declaration", "abstract_class_declaration")
    )


@register_predicate("Command")
def check_command(sources: ModuleSourceSet) -> bool:
    for cls in _classes(sources.python_trees()):
        if _is_abstract(cls) and any(m.name in _COMMAND_METHODS for m in _methods(cls)):  # type: ignore[attr-defined]
            return True
    return _rust_command(sources.syntax_trees("rust")) or _ts_command(sources.syntax_trees("typescript"))

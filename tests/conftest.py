"""Pytest configuration and fixtures for archidoc tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from archidoc.ir import to_data
from archidoc.models import FileEntry, ModuleRecord, Relationship


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def api_records() -> List[ModuleRecord]:
    """``api`` container with one ``api.auth`` component owning ``jwt.cfg``."""
    return [
        ModuleRecord(
            module_path="api",
            source_file="api/mod.rs",
            level="container",
            description="Public HTTP surface",
        ),
        ModuleRecord(
            module_path="api.auth",
            source_file="api/auth/mod.rs",
            level="component",
            description="Token checks",
            parent="api",
            files=[FileEntry(name="jwt.cfg", purpose="Signing keys", health="stable")],
        ),
    ]


@pytest.fixture
def shop_records() -> List[ModuleRecord]:
    """A small tree with a root narrative, nesting and relationships."""
    return [
        ModuleRecord(
            module_path="_lib",
            content="# Shop\n\nAn online shop split into ordering and payments.\n\n@c4 container",
            source_file="src/__init__.py",
        ),
        ModuleRecord(
            module_path="orders",
            source_file="src/orders/__init__.py",
            level="container",
            pattern="Facade",
            description="Accepts and tracks customer orders",
            relationships=[Relationship("payments", "Charges orders", "in-process")],
            files=[FileEntry(name="service.py", purpose="Order service", health="stable")],
        ),
        ModuleRecord(
            module_path="orders.pricing",
            source_file="src/orders/pricing/__init__.py",
            level="component",
            pattern="Strategy",
            description="Chooses a pricing rule per order",
            files=[FileEntry(name="rules.py", pattern="Strategy", purpose="Pricing rules", health="active")],
        ),
        ModuleRecord(
            module_path="payments",
            source_file="src/payments/__init__.py",
            level="container",
            pattern="Repository",
            description="Charges cards",
            relationships=[Relationship("ledger", "Posts entries", "sql")],
            files=[FileEntry(name="gateway.py", purpose="Card network client", health="planned")],
        ),
    ]


@pytest.fixture
def write_ir(temp_dir: Path):
    """Write records as a JSON IR file and return its path."""
    def _write(records: List[ModuleRecord], name: str = "ir.json") -> Path:
        path = temp_dir / name
        path.write_text(json.dumps([to_data(r) for r in records], indent=2), encoding="utf-8")
        return path
    return _write


ROOT_INIT = '''\
"""
# Shop

An online shop split into ordering and payments.
"""
'''

ORDERS_INIT = '''\
"""
@c4 container

# Orders

Accepts and tracks customer orders.

GoF: Facade

@c4 uses payments "Charges orders" "in-process"

| File | Pattern | Purpose | Health |
|------|---------|---------|--------|
| `service.py` | -- | Order service | stable |
"""

from .pricing import PricingRule
from .service import OrderService

__all__ = ["OrderService", "PricingRule"]
'''

ORDERS_SERVICE = '''\
from payments.gateway import charge


class OrderService:
    def place(self, amount):
        return charge(amount)
'''

PRICING_INIT = '''\
"""
@c4 component

# Pricing

Chooses a pricing rule per order.

GoF: Strategy

| File | Pattern | Purpose | Health |
|------|---------|---------|--------|
| `rules.py` | Strategy | Pricing rules | active |
"""

from .rules import PricingRule
'''

PRICING_RULES = '''\
from abc import ABC, abstractmethod


class PricingRule(ABC):
    @abstractmethod
    def price(self, amount):
        ...


class FlatRule(PricingRule):
    def price(self, amount):
        return amount


class DiscountRule(PricingRule):
    def price(self, amount):
        return amount * 0.9
'''

PAYMENTS_INIT = '''\
"""
@c4 container

# Payments

Charges cards.

GoF: Repository

| File | Pattern | Purpose | Health |
|------|---------|---------|--------|
| `gateway.py` | -- | Card network client | active |
"""
'''

PAYMENTS_GATEWAY = '''\
from orders.pricing.rules import FlatRule


def charge(amount):
    return FlatRule().price(amount)
'''


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def annotated_project(temp_dir: Path) -> Path:
    """A src-layout Python project annotated for the Python adapter."""
    src = temp_dir / "src"
    _write(src / "__init__.py", ROOT_INIT)
    _write(src / "orders" / "__init__.py", ORDERS_INIT)
    _write(src / "orders" / "service.py", ORDERS_SERVICE)
    _write(src / "orders" / "pricing" / "__init__.py", PRICING_INIT)
    _write(src / "orders" / "pricing" / "rules.py", PRICING_RULES)
    _write(src / "payments" / "__init__.py", PAYMENTS_INIT)
    _write(src / "payments" / "gateway.py", PAYMENTS_GATEWAY)
    return temp_dir

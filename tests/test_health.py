"""Tests for health aggregation."""

from archidoc.health import aggregate_health, format_health_report
from archidoc.tree import assemble


def test_api_example(api_records):
    report = aggregate_health(assemble(api_records))

    assert report.total_modules == 2
    assert report.total_files == 1
    assert report.files_per_health == {"planned": 0, "active": 0, "stable": 1}
    assert report.modules_per_level["container"] == 1
    assert report.modules_per_level["component"] == 1


def test_patterns_only_counted_when_claimed(shop_records):
    report = aggregate_health(assemble(shop_records))

    assert report.patterns_total == 3
    assert report.patterns_per_status == {"planned": 3, "verified": 0}


def test_root_sentinel_excluded(shop_records):
    report = aggregate_health(assemble(shop_records))

    assert report.total_modules == 3
    assert [e.name for e in report.per_element] == ["orders", "orders.pricing", "payments"]


def test_per_element_breakdown(shop_records):
    report = aggregate_health(assemble(shop_records))
    by_name = {e.name: e for e in report.per_element}

    assert by_name["orders"].files_stable == 1
    assert by_name["orders.pricing"].files_active == 1
    assert by_name["payments"].files_planned == 1
    assert by_name["payments"].pattern == "Repository"


def test_to_dict_is_json_ready(shop_records):
    data = aggregate_health(assemble(shop_records)).to_dict()

    assert data["total_files"] == 3
    assert data["per_element"][0]["name"] == "orders"


def test_format(shop_records):
    text = format_health_report(aggregate_health(assemble(shop_records)))

    assert "Modules: 3 (2 container, 1 component)" in text
    assert "  stable: 1 (33%)" in text
    assert "Patterns: 3" in text

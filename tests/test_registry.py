import pytest

from pdns_metrics.metrics.base import GraphSpec, MetricSpec
from pdns_metrics.metrics.catalog import GraphCatalog
from pdns_metrics.metrics.registry import GraphRegistry


def test_from_catalog_keeps_order():
    catalog = GraphCatalog().describe()
    registry = GraphRegistry.from_catalog(catalog)
    assert [graph.key for graph in registry.all()] == list(catalog)


def test_register_rejects_duplicate_key():
    registry = GraphRegistry()
    registry.register(GraphSpec(key="cpu", label="CPU"))
    with pytest.raises(ValueError, match="already registered"):
        registry.register(GraphSpec(key="cpu", label="Other"))


def test_get_unknown_key():
    with pytest.raises(KeyError):
        GraphRegistry().get("missing")


def test_match_omits_unreported_metrics():
    registry = GraphRegistry()
    registry.register(
        GraphSpec(
            key="cpu",
            label="CPU",
            metrics=(MetricSpec("user-msec", "User", diff=True), MetricSpec("sys-msec", "System")),
        )
    )
    registry.register(
        GraphSpec(key="latency", label="Latency", metrics=(MetricSpec("latency", "Latency"),))
    )

    matched = registry.match({"user-msec": 10.0, "uptime": 5.0})

    assert [(item.graph.key, item.values) for item in matched] == [
        ("cpu", {"user-msec": 10.0}),
        ("latency", {}),
    ]

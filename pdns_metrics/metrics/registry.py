from collections import OrderedDict
from typing import Iterable, List, Mapping

from .base import GraphSpec, GraphValues


class GraphRegistry:
    """Registry of graph definitions used to pick values out of fetched counters."""

    def __init__(self) -> None:
        self._graphs: "OrderedDict[str, GraphSpec]" = OrderedDict()

    @classmethod
    def from_catalog(cls, catalog: Mapping[str, GraphSpec]) -> "GraphRegistry":
        registry = cls()
        for graph in catalog.values():
            registry.register(graph)
        return registry

    def register(self, graph: GraphSpec) -> None:
        if graph.key in self._graphs:
            raise ValueError(f"Graph '{graph.key}' is already registered.")
        self._graphs[graph.key] = graph

    def all(self) -> Iterable[GraphSpec]:
        return self._graphs.values()

    def get(self, key: str) -> GraphSpec:
        if key not in self._graphs:
            raise KeyError(f"Graph '{key}' is not registered.")
        return self._graphs[key]

    def match(self, counters: Mapping[str, float]) -> List[GraphValues]:
        """Values of every registered metric present in ``counters``.

        Metrics missing from ``counters`` are left out rather than zero-filled.
        """
        return [
            GraphValues(
                graph,
                {
                    metric.name: counters[metric.name]
                    for metric in graph.metrics
                    if metric.name in counters
                },
            )
            for graph in self.all()
        ]

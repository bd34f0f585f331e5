"""Rendering for the mackerel-agent plugin protocol.

In meta mode the agent expects a ``# mackerel-agent-plugin`` header line
followed by a JSON graph definition. Otherwise each value is printed on its
own line as ``key<TAB>value<TAB>epoch``.
"""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable

from .metrics.base import GraphSpec

META_HEADER = "# mackerel-agent-plugin"


@dataclass(frozen=True)
class MetricValue:
    key: str
    value: float
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
        }


def metric_key(prefix: str, graph_key: str, metric_name: str) -> str:
    return f"{prefix}.{graph_key}.{metric_name}"


def graph_definition(graphs: Iterable[GraphSpec], prefix: str) -> Dict[str, Any]:
    return {
        "graphs": {
            f"{prefix}.{graph.key}": {
                "label": graph.label,
                "unit": graph.unit,
                "metrics": [
                    {"name": metric.name, "label": metric.label, "stacked": metric.stacked}
                    for metric in graph.metrics
                ],
            }
            for graph in graphs
        }
    }


def format_graph_definition(graphs: Iterable[GraphSpec], prefix: str) -> str:
    return f"{META_HEADER}\n{json.dumps(graph_definition(graphs, prefix))}\n"


def _format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_values(values: Iterable[MetricValue]) -> str:
    lines = [
        f"{item.key}\t{_format_number(item.value)}\t{int(item.timestamp.timestamp())}"
        for item in values
    ]
    return "".join(f"{line}\n" for line in lines)

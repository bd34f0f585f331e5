from dataclasses import dataclass, field
from typing import Dict, Literal, Tuple

GraphUnit = Literal["integer", "bytes"]


@dataclass(frozen=True)
class MetricSpec:
    """A single counter plotted on a graph."""

    name: str  # counter name as reported by pdns_control
    label: str
    diff: bool = False  # cumulative counter, plotted as a per-minute rate
    stacked: bool = False


@dataclass(frozen=True)
class GraphSpec:
    """Declarative definition of a graph and its ordered metrics."""

    key: str
    label: str
    unit: GraphUnit = "integer"
    metrics: Tuple[MetricSpec, ...] = ()

    def metric_names(self) -> Tuple[str, ...]:
        return tuple(metric.name for metric in self.metrics)


@dataclass
class GraphValues:
    graph: GraphSpec
    values: Dict[str, float] = field(default_factory=dict)

from dataclasses import replace
from types import MappingProxyType
from typing import Mapping, Tuple

from ..config import DEFAULT_PREFIX
from .base import GraphSpec, MetricSpec


def _by_transport(suffix: str) -> Tuple[MetricSpec, ...]:
    # tcp/udp totals overlap the per-family breakdown, so only the latter stacks
    return (
        MetricSpec(f"tcp-{suffix}", "TCP", diff=True),
        MetricSpec(f"udp-{suffix}", "UDP", diff=True),
        MetricSpec(f"tcp4-{suffix}", "TCP4", diff=True, stacked=True),
        MetricSpec(f"udp4-{suffix}", "UDP4", diff=True, stacked=True),
        MetricSpec(f"tcp6-{suffix}", "TCP6", diff=True, stacked=True),
        MetricSpec(f"udp6-{suffix}", "UDP6", diff=True, stacked=True),
    )


# Labels hold the graph title only; GraphCatalog.describe() adds the prefix.
GRAPHS: Tuple[GraphSpec, ...] = (
    GraphSpec(
        key="dnsupdate",
        label="Dynamic DNS Update",
        metrics=(
            MetricSpec("dnsupdate-answers", "Answers", diff=True),
            MetricSpec("dnsupdate-changes", "Changes", diff=True),
            MetricSpec("dnsupdate-queries", "Queries", diff=True),
            MetricSpec("dnsupdate-refused", "Refused", diff=True),
        ),
    ),
    GraphSpec(
        key="notifications",
        label="DNS Notifications",
        metrics=(MetricSpec("incoming-notifications", "Incoming", diff=True),),
    ),
    GraphSpec(
        key="packetcache",
        label="Packet Cache",
        metrics=(
            MetricSpec("packetcache-hit", "Hits", diff=True, stacked=True),
            MetricSpec("packetcache-miss", "Misses", diff=True, stacked=True),
        ),
    ),
    GraphSpec(
        key="query-cache",
        label="Query Cache",
        metrics=(
            MetricSpec("query-cache-hit", "Hits", diff=True, stacked=True),
            MetricSpec("query-cache-miss", "Misses", diff=True, stacked=True),
        ),
    ),
    GraphSpec(
        key="cache-size",
        label="Cache Sizes",
        metrics=(
            MetricSpec("packetcache-size", "Packet cache"),
            MetricSpec("key-cache-size", "Key cache"),
            MetricSpec("signature-cache-size", "Signature cache"),
            MetricSpec("meta-cache-size", "Metadata cache"),
        ),
    ),
    GraphSpec(
        key="fails",
        label="Failed packets",
        metrics=(
            MetricSpec("servfail-packets", "SERVFAIL packets", diff=True),
            MetricSpec("corrupt-packets", "Corrupt packets", diff=True),
            MetricSpec("timedout-packets", "Timedout packets", diff=True),
            MetricSpec("overload-drops", "Dropped because backends overload", diff=True),
        ),
    ),
    GraphSpec(
        key="backend",
        label="Backend",
        metrics=(MetricSpec("backend-queries", "Backend queries", diff=True),),
    ),
    GraphSpec(
        key="tcp-connection",
        # Shares its title with "backend"; labels are part of the published schema.
        label="Backend",
        metrics=(
            MetricSpec("open-tcp-connections", "TCP Connections"),
            MetricSpec("fd-usage", "FD usage"),
        ),
    ),
    GraphSpec(
        key="signatures",
        label="DNSSEC Signatures",
        metrics=(MetricSpec("signatures", "Signatures created", diff=True),),
    ),
    GraphSpec(
        key="latency",
        label="Latency (microseconds)",
        metrics=(MetricSpec("latency", "Latency"),),
    ),
    GraphSpec(
        key="qsize",
        label="Queue Size",
        metrics=(MetricSpec("qsize-q", "Queue size"),),
    ),
    GraphSpec(key="answers", label="Answers", metrics=_by_transport("answers")),
    GraphSpec(
        key="queries",
        label="Queries",
        metrics=_by_transport("queries")
        + (MetricSpec("udp-do-queries", "UDP DO queries", diff=True),),
    ),
    GraphSpec(
        key="answer-bytes", label="Answer Bytes", metrics=_by_transport("answers-bytes")
    ),
    GraphSpec(
        key="memory",
        label="Memory Usage",
        unit="bytes",
        metrics=(MetricSpec("real-memory-usage", "Usage"),),
    ),
    GraphSpec(
        key="cpu",
        label="CPU Usage (milliseconds)",
        metrics=(
            MetricSpec("user-msec", "User", diff=True),
            MetricSpec("sys-msec", "System", diff=True),
        ),
    ),
)


def label_prefix(prefix: str) -> str:
    """Return the display prefix with the first letter of every word upper-cased.

    Words are split on anything but letters, digits and underscores, so
    ``pdns-auth`` becomes ``Pdns-Auth``.
    """
    prefix = prefix or DEFAULT_PREFIX
    chars = []
    previous = " "
    for char in prefix:
        if not (previous.isalnum() or previous == "_"):
            char = char.upper()
        chars.append(char)
        previous = char
    return "".join(chars)


class GraphCatalog:
    """Graph definitions for PowerDNS counters, labelled for one installation."""

    def __init__(self, prefix: str = DEFAULT_PREFIX) -> None:
        self.prefix = prefix or DEFAULT_PREFIX

    def describe(self) -> Mapping[str, GraphSpec]:
        title = label_prefix(self.prefix)
        return MappingProxyType(
            {graph.key: replace(graph, label=f"{title}: {graph.label}") for graph in GRAPHS}
        )

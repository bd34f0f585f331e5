"""Command line entry point for the PowerDNS mackerel-agent plugin."""
import argparse
import asyncio
import logging
import os
import platform
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List, Optional

from .config import Settings
from .db import build_engine, build_session_factory, init_db
from .metrics.catalog import GraphCatalog
from .metrics.fetcher import CounterFetcher, ExecutionError
from .metrics.registry import GraphRegistry
from .output import MetricValue, format_graph_definition, format_values
from .services.collector import MetricCollector

STATUS_OK = 0
STATUS_WARNING = 1

META_ENV = "MACKEREL_AGENT_PLUGIN_META"

logger = logging.getLogger(__name__)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdns-metrics",
        description="PowerDNS metrics plugin for mackerel-agent",
    )
    parser.add_argument("-v", "--version", action="store_true", help="Show version")
    parser.add_argument("--prefix", help="Metric key prefix (default: pdns)")
    parser.add_argument(
        "--control-command",
        help="Path to pdns_control command (default: /usr/bin/pdns_control)",
    )
    parser.add_argument("--database-url", help="Database holding previous counter values")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API instead")
    parser.add_argument("--host", help="Bind address for --serve")
    parser.add_argument("--port", type=int, help="Port for --serve")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        "prefix": args.prefix,
        "control_command": args.control_command,
        "database_url": args.database_url,
        "host": args.host,
        "port": args.port,
    }
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


def version_text(prog: str) -> str:
    try:
        package_version = version("pdns-metrics")
    except PackageNotFoundError:
        package_version = "unknown"
    return (
        f"{prog} {package_version}\n"
        f"Python: {platform.python_implementation()} {platform.python_version()}\n"
    )


async def collect(settings: Settings) -> List[MetricValue]:
    engine = build_engine(settings.database_url, echo=settings.sqlalchemy_echo)
    try:
        await init_db(engine)
        collector = MetricCollector(
            fetcher=CounterFetcher(
                settings.control_command, report_dropped=settings.report_dropped
            ),
            registry=GraphRegistry.from_catalog(GraphCatalog(settings.prefix).describe()),
            session_factory=build_session_factory(engine),
            prefix=settings.prefix,
            diff_max_interval_seconds=settings.diff_max_interval_seconds,
            retention_seconds=settings.history_retention_seconds,
        )
        return await collector.collect_once()
    finally:
        await engine.dispose()


def serve(settings: Settings) -> None:
    import uvicorn

    from .main import create_app

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.version:
        sys.stdout.write(version_text(parser.prog))
        return STATUS_OK

    setup_logging(args.debug)
    settings = settings_from_args(args)

    if args.serve:
        serve(settings)
        return STATUS_OK

    if os.environ.get(META_ENV):
        graphs = GraphCatalog(settings.prefix).describe().values()
        sys.stdout.write(format_graph_definition(graphs, settings.prefix))
        return STATUS_OK

    try:
        values = asyncio.run(collect(settings))
    except ExecutionError as exc:
        logger.error("%s", exc)
        return STATUS_WARNING
    sys.stdout.write(format_values(values))
    return STATUS_OK


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings
from .db import build_engine, build_session_factory, init_db
from .metrics.base import GraphSpec
from .metrics.catalog import GraphCatalog
from .metrics.fetcher import CounterFetcher, ExecutionError
from .metrics.registry import GraphRegistry
from .models import CounterSample
from .services.collector import MetricCollector


def get_registry(request: Request) -> GraphRegistry:
    return request.app.state.registry


async def get_session(request: Request):
    async with request.app.state.session_factory() as session:
        yield session


def _graph_payload(graph: GraphSpec) -> Dict[str, Any]:
    payload = asdict(graph)
    payload["metrics"] = [asdict(metric) for metric in graph.metrics]
    return payload


router = APIRouter(prefix="/api")


@router.get("/graphs")
async def read_graphs(registry: GraphRegistry = Depends(get_registry)):
    return [_graph_payload(graph) for graph in registry.all()]


@router.get("/graphs/{key}")
async def read_graph(key: str, registry: GraphRegistry = Depends(get_registry)):
    try:
        graph = registry.get(key)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _graph_payload(graph)


@router.get("/counters")
async def read_counters(request: Request) -> Dict[str, float]:
    try:
        return await asyncio.to_thread(request.app.state.fetcher.fetch)
    except ExecutionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.get("/metrics")
async def read_metrics(request: Request):
    return [value.to_dict() for value in request.app.state.collector.latest]


@router.get("/graphs/{key}/history")
async def read_graph_history(
    request: Request,
    key: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
    registry: GraphRegistry = Depends(get_registry),
) -> Dict[str, List[Dict[str, Any]]]:
    try:
        graph = registry.get(key)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    points_limit = request.app.state.settings.history_points_limit
    limit = min(limit or points_limit, points_limit)
    history: Dict[str, List[Dict[str, Any]]] = {}
    for name in graph.metric_names():
        stmt = (
            select(CounterSample)
            .where(CounterSample.name == name)
            .order_by(CounterSample.timestamp.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        samples = list(result.scalars())
        history[name] = [sample.to_dict() for sample in reversed(samples)]
    return history


def create_app(
    settings: Optional[Settings] = None,
    fetcher: Optional[CounterFetcher] = None,
) -> FastAPI:
    settings = settings or Settings()
    fetcher = fetcher or CounterFetcher(
        settings.control_command, report_dropped=settings.report_dropped
    )
    registry = GraphRegistry.from_catalog(GraphCatalog(settings.prefix).describe())
    engine = build_engine(settings.database_url, echo=settings.sqlalchemy_echo)
    session_factory = build_session_factory(engine)
    collector = MetricCollector(
        fetcher=fetcher,
        registry=registry,
        session_factory=session_factory,
        prefix=settings.prefix,
        interval_seconds=settings.sample_interval_seconds,
        diff_max_interval_seconds=settings.diff_max_interval_seconds,
        retention_seconds=settings.history_retention_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db(engine)
        collector.start()
        try:
            yield
        finally:
            await collector.stop()
            await engine.dispose()

    app = FastAPI(title="PowerDNS metrics", lifespan=lifespan)
    app.state.settings = settings
    app.state.fetcher = fetcher
    app.state.registry = registry
    app.state.session_factory = session_factory
    app.state.collector = collector
    app.include_router(router)
    return app

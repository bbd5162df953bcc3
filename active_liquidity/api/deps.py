from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException

from active_liquidity.application.use_cases.compute_active_liquidity import (
    ComputeActiveLiquidityUseCase,
)
from active_liquidity.application.use_cases.get_pool_active_liquidity import (
    GetPoolActiveLiquidityUseCase,
)
from active_liquidity.application.use_cases.poll_tick_data import (
    DirectTickDataSource,
    PollingTickDataSource,
)
from active_liquidity.infrastructure.clients.univ3_subgraph_client import (
    Univ3SubgraphClient,
    Univ3SubgraphClientSettings,
)
from active_liquidity.infrastructure.db.engine import get_engine
from active_liquidity.infrastructure.db.repositories.active_liquidity_repository import (
    SqlActiveLiquidityRepository,
)
from active_liquidity.shared.config import get_settings


def _build_source():
    settings = get_settings()
    if settings.active_liquidity_source == "postgres":
        if not settings.postgres_dsn:
            raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
        return SqlActiveLiquidityRepository(get_engine(settings.postgres_dsn))
    if settings.active_liquidity_source == "subgraph":
        return Univ3SubgraphClient(
            Univ3SubgraphClientSettings(
                graph_gateway_base=settings.graph_gateway_base,
                graph_api_key=settings.graph_api_key,
                graph_subgraph_ids=settings.graph_subgraph_ids,
                timeout_seconds=settings.graph_request_timeout_seconds,
                max_retries=settings.graph_max_retries,
                min_interval_ms=settings.graph_min_interval_ms,
            )
        )
    raise HTTPException(
        status_code=500,
        detail="ACTIVE_LIQUIDITY_SOURCE must be one of: subgraph, postgres.",
    )


@lru_cache(maxsize=1)
def _get_pool_active_liquidity_use_case() -> GetPoolActiveLiquidityUseCase:
    settings = get_settings()
    source = _build_source()
    if settings.tick_polling_interval_seconds > 0:
        tick_source = PollingTickDataSource(
            tick_port=source,
            interval_seconds=settings.tick_polling_interval_seconds,
            max_pollers=settings.tick_poller_max_pools,
            idle_intervals=settings.tick_poller_idle_intervals,
        )
    else:
        tick_source = DirectTickDataSource(tick_port=source)
    return GetPoolActiveLiquidityUseCase(
        pool_state_port=source,
        tick_source=tick_source,
        validate_tick_order=settings.validate_tick_order,
    )


def get_pool_active_liquidity_use_case() -> GetPoolActiveLiquidityUseCase:
    return _get_pool_active_liquidity_use_case()


def get_compute_active_liquidity_use_case() -> ComputeActiveLiquidityUseCase:
    settings = get_settings()
    return ComputeActiveLiquidityUseCase(validate_tick_order=settings.validate_tick_order)


def close_pool_active_liquidity_use_case() -> None:
    if _get_pool_active_liquidity_use_case.cache_info().currsize:
        _get_pool_active_liquidity_use_case().close()
        _get_pool_active_liquidity_use_case.cache_clear()

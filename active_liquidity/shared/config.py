from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: str = "false") -> bool:
    value = (_env(name, default) or "").strip().lower()
    return value in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    active_liquidity_source: str
    postgres_dsn: str
    graph_api_key: str
    graph_gateway_base: str
    graph_subgraph_ids: dict
    graph_request_timeout_seconds: float
    graph_max_retries: int
    graph_min_interval_ms: int
    tick_polling_interval_seconds: float
    tick_poller_max_pools: int
    tick_poller_idle_intervals: int
    validate_tick_order: bool
    log_level: str


def get_settings() -> Settings:
    subgraphs = {
        "ethereum": _env("GRAPH_SUBGRAPH_ID_ETHEREUM", ""),
        "arbitrum": _env("GRAPH_SUBGRAPH_ID_ARBITRUM", ""),
        "base": _env("GRAPH_SUBGRAPH_ID_BASE", ""),
        "polygon": _env("GRAPH_SUBGRAPH_ID_POLYGON", ""),
        "bsc": _env("GRAPH_SUBGRAPH_ID_BSC", ""),
    }
    return Settings(
        active_liquidity_source=(_env("ACTIVE_LIQUIDITY_SOURCE", "subgraph") or "subgraph").lower(),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        graph_api_key=_env("GRAPH_API_KEY", ""),
        graph_gateway_base=_env("GRAPH_GATEWAY_BASE", "https://gateway.thegraph.com/api"),
        graph_subgraph_ids=subgraphs,
        graph_request_timeout_seconds=float(_env("GRAPH_REQUEST_TIMEOUT_SECONDS", "10")),
        graph_max_retries=int(_env("GRAPH_MAX_RETRIES", "3")),
        graph_min_interval_ms=int(_env("GRAPH_MIN_INTERVAL_MS", "120")),
        tick_polling_interval_seconds=float(_env("TICK_POLLING_INTERVAL_SECONDS", "120")),
        tick_poller_max_pools=int(_env("TICK_POLLER_MAX_POOLS", "64")),
        tick_poller_idle_intervals=int(_env("TICK_POLLER_IDLE_INTERVALS", "5")),
        validate_tick_order=_bool("ACTIVE_LIQUIDITY_VALIDATE_TICK_ORDER"),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
    )

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from active_liquidity.domain.entities.active_liquidity import PoolState, Tick
from active_liquidity.domain.entities.fee_amount import FeeAmount
from active_liquidity.domain.entities.token import Token
from active_liquidity.infrastructure.db.mappers.active_liquidity_mapper import (
    map_row_to_pool_state,
    map_row_to_tick,
)
from active_liquidity.infrastructure.db.repositories.active_liquidity_repository import (
    SqlActiveLiquidityRepository,
)


WETH = Token(chain_id=1, address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", decimals=18)
USDC = Token(chain_id=1, address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", decimals=6)


class _FakeResult:
    def __init__(self, rows: list[dict]):
        self._rows = rows

    def mappings(self) -> "_FakeResult":
        return self

    def first(self) -> dict | None:
        return self._rows[0] if self._rows else None

    def all(self) -> list[dict]:
        return list(self._rows)


class _FakeConnection:
    def __init__(self, engine: "_FakeEngine"):
        self._engine = engine

    def __enter__(self) -> "_FakeConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        _ = (exc_type, exc, tb)
        return None

    def execute(self, sql, params):
        self._engine.sql = str(sql)
        self._engine.params = params
        if self._engine.error is not None:
            raise self._engine.error
        return _FakeResult(self._engine.rows)


class _FakeEngine:
    def __init__(self, rows: list[dict], error: Exception | None = None):
        self.rows = rows
        self.error = error
        self.sql: str | None = None
        self.params: dict | None = None

    def connect(self) -> _FakeConnection:
        return _FakeConnection(self)


def test_map_row_to_tick_converts_numeric_columns():
    tick = map_row_to_tick(
        {
            "tick_idx": -887220,
            "liquidity_net": Decimal("-340282366920938463463374607431768211455"),
            "liquidity_gross": None,
        }
    )
    assert tick == Tick(
        tick_idx=-887220,
        liquidity_net=-340282366920938463463374607431768211455,
        liquidity_gross=0,
    )


def test_map_row_to_pool_state_handles_missing_row_and_nulls():
    assert map_row_to_pool_state(None).state is PoolState.NOT_EXISTS

    snapshot = map_row_to_pool_state(
        {"pool_address": "0xABC", "current_tick": None, "current_liquidity": Decimal("42")}
    )
    assert snapshot.state is PoolState.EXISTS
    assert snapshot.pool_address == "0xabc"
    assert snapshot.current_tick is None
    assert snapshot.current_liquidity == 42


def test_fetch_pool_state_binds_sorted_token_addresses():
    engine = _FakeEngine(
        [{"pool_address": "0xPOOL", "current_tick": 201234, "current_liquidity": Decimal("1000")}]
    )
    repo = SqlActiveLiquidityRepository(engine)

    snapshot = repo.fetch_pool_state(token_a=WETH, token_b=USDC, fee_amount=FeeAmount.LOW)

    assert engine.params == {
        "chain_id": 1,
        "token0": USDC.address.lower(),
        "token1": WETH.address.lower(),
        "fee_tier": 500,
    }
    assert snapshot.pool_address == "0xpool"
    assert snapshot.current_tick == 201234
    assert snapshot.current_liquidity == 1000


def test_fetch_all_ticks_orders_by_tick_and_maps_rows():
    engine = _FakeEngine(
        [
            {"tick_idx": -60, "liquidity_net": Decimal("10"), "liquidity_gross": Decimal("10")},
            {"tick_idx": 60, "liquidity_net": Decimal("-10"), "liquidity_gross": Decimal("10")},
        ]
    )
    repo = SqlActiveLiquidityRepository(engine)

    ticks = repo.fetch_all_ticks(pool_address="0xPOOL", chain_id=1)

    assert "ORDER BY t.tick_idx" in engine.sql
    assert engine.params == {"chain_id": 1, "pool_address": "0xpool"}
    assert ticks == [
        Tick(tick_idx=-60, liquidity_net=10, liquidity_gross=10),
        Tick(tick_idx=60, liquidity_net=-10, liquidity_gross=10),
    ]


def test_database_errors_surface_as_runtime_errors():
    engine = _FakeEngine([], error=OperationalError("SELECT 1", {}, Exception("connection refused")))
    repo = SqlActiveLiquidityRepository(engine)

    with pytest.raises(RuntimeError, match="Tick query failed"):
        repo.fetch_all_ticks(pool_address="0xpool", chain_id=1)

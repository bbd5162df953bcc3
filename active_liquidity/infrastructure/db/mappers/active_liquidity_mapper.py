from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from active_liquidity.domain.entities.active_liquidity import (
    PoolState,
    PoolStateSnapshot,
    Tick,
)


def _to_int(value: Any) -> int:
    # numeric(78,0) columns come back as Decimal.
    if isinstance(value, Decimal):
        return int(value.to_integral_value())
    return int(str(value))


def map_row_to_pool_state(row: Mapping[str, Any] | None) -> PoolStateSnapshot:
    if row is None:
        return PoolStateSnapshot(state=PoolState.NOT_EXISTS)
    return PoolStateSnapshot(
        state=PoolState.EXISTS,
        pool_address=str(row["pool_address"]).lower(),
        current_tick=_to_int(row["current_tick"]) if row["current_tick"] is not None else None,
        current_liquidity=_to_int(row["current_liquidity"])
        if row["current_liquidity"] is not None
        else None,
    )


def map_row_to_tick(row: Mapping[str, Any]) -> Tick:
    return Tick(
        tick_idx=_to_int(row["tick_idx"]),
        liquidity_net=_to_int(row["liquidity_net"]),
        liquidity_gross=_to_int(row["liquidity_gross"]) if row.get("liquidity_gross") is not None else 0,
    )

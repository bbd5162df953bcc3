from __future__ import annotations

import logging
from threading import Lock

from active_liquidity.application.dto.active_liquidity import (
    ActiveLiquidityOutput,
    ComputeActiveLiquidityInput,
    GetPoolActiveLiquidityInput,
)
from active_liquidity.application.ports.pool_state_port import PoolStatePort
from active_liquidity.application.ports.tick_data_port import TickSnapshotSource
from active_liquidity.application.use_cases.compute_active_liquidity import (
    ComputeActiveLiquidityUseCase,
)
from active_liquidity.domain.entities.active_liquidity import (
    PoolState,
    PoolStateSnapshot,
    TickDataSnapshot,
)
from active_liquidity.domain.exceptions import ActiveLiquidityInputError
from active_liquidity.domain.services.active_tick import resolve_active_tick


logger = logging.getLogger(__name__)


class ActiveLiquidityCache:
    """Holds the last computed curve, keyed by every input it depends on."""

    def __init__(self):
        self._lock = Lock()
        self._key: tuple | None = None
        self._value: ActiveLiquidityOutput | None = None

    def get(self, key: tuple) -> ActiveLiquidityOutput | None:
        with self._lock:
            if self._key == key:
                return self._value
            return None

    def put(self, key: tuple, value: ActiveLiquidityOutput) -> None:
        with self._lock:
            self._key = key
            self._value = value


class GetPoolActiveLiquidityUseCase:
    def __init__(
        self,
        *,
        pool_state_port: PoolStatePort,
        tick_source: TickSnapshotSource,
        validate_tick_order: bool = False,
        cache: ActiveLiquidityCache | None = None,
    ):
        self._pool_state_port = pool_state_port
        self._tick_source = tick_source
        self._compute = ComputeActiveLiquidityUseCase(validate_tick_order=validate_tick_order)
        self._cache = cache or ActiveLiquidityCache()

    def execute(self, command: GetPoolActiveLiquidityInput) -> ActiveLiquidityOutput:
        try:
            pool = self._resolve_pool(command)
        except RuntimeError as exc:
            logger.warning("active_liquidity: pool_state_failed error=%s", exc)
            return ActiveLiquidityOutput(
                is_loading=False,
                is_uninitialized=False,
                is_error=True,
                error=str(exc),
                active_tick=None,
                data=None,
            )

        # Nearest usable tick, in case the current tick is not initialized.
        active_tick = resolve_active_tick(pool.current_tick, command.fee_amount)
        ticks = self._resolve_ticks(command, pool)

        if (
            command.currency_a is None
            or command.currency_b is None
            or active_tick is None
            or pool.state is not PoolState.EXISTS
            or not ticks.ticks
            or ticks.is_loading
            or ticks.is_uninitialized
        ):
            return ActiveLiquidityOutput(
                is_loading=ticks.is_loading or pool.state is PoolState.LOADING,
                is_uninitialized=ticks.is_uninitialized,
                is_error=ticks.is_error,
                error=ticks.error,
                active_tick=active_tick,
                data=None,
            )

        key = (
            command.currency_a,
            command.currency_b,
            command.fee_amount,
            active_tick,
            pool.current_liquidity,
            ticks.ticks,
            ticks.is_error,
            ticks.error,
        )
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            result = self._compute.execute(
                ComputeActiveLiquidityInput(
                    token0=command.currency_a,
                    token1=command.currency_b,
                    fee_amount=command.fee_amount,
                    current_tick=pool.current_tick,
                    current_liquidity=pool.current_liquidity or 0,
                    ticks=ticks.ticks,
                )
            )
        except ActiveLiquidityInputError as exc:
            logger.warning(
                "active_liquidity: invalid_tick_data pool=%s error=%s",
                pool.pool_address,
                exc,
            )
            return ActiveLiquidityOutput(
                is_loading=False,
                is_uninitialized=False,
                is_error=True,
                error=str(exc),
                active_tick=active_tick,
                data=None,
            )

        if result.data is not None and ticks.is_error:
            # Stale ticks from a previous poll are still served.
            result = ActiveLiquidityOutput(
                is_loading=False,
                is_uninitialized=False,
                is_error=True,
                error=ticks.error,
                active_tick=result.active_tick,
                data=result.data,
            )
        self._cache.put(key, result)
        return result

    def _resolve_pool(self, command: GetPoolActiveLiquidityInput) -> PoolStateSnapshot:
        token_a = command.currency_a
        token_b = command.currency_b
        if token_a is None or token_b is None or not command.fee_amount:
            return PoolStateSnapshot(state=PoolState.INVALID)
        if token_a.chain_id != token_b.chain_id or token_a.equals(token_b):
            return PoolStateSnapshot(state=PoolState.INVALID)
        return self._pool_state_port.fetch_pool_state(
            token_a=token_a,
            token_b=token_b,
            fee_amount=command.fee_amount,
        )

    def _resolve_ticks(
        self,
        command: GetPoolActiveLiquidityInput,
        pool: PoolStateSnapshot,
    ) -> TickDataSnapshot:
        if pool.pool_address is None or command.currency_a is None:
            return TickDataSnapshot()
        return self._tick_source.get_snapshot(
            pool_address=pool.pool_address,
            chain_id=command.currency_a.chain_id,
        )

    def close(self) -> None:
        self._tick_source.close()

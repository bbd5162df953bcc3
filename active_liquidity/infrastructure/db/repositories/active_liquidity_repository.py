from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from active_liquidity.application.ports.pool_state_port import PoolStatePort
from active_liquidity.application.ports.tick_data_port import TickDataPort
from active_liquidity.domain.entities.active_liquidity import PoolStateSnapshot, Tick
from active_liquidity.domain.entities.fee_amount import FeeAmount
from active_liquidity.domain.entities.token import Token
from active_liquidity.infrastructure.db.mappers.active_liquidity_mapper import (
    map_row_to_pool_state,
    map_row_to_tick,
)


logger = logging.getLogger(__name__)


class SqlActiveLiquidityRepository(PoolStatePort, TickDataPort):
    def __init__(self, engine):
        self._engine = engine

    def fetch_pool_state(
        self,
        *,
        token_a: Token,
        token_b: Token,
        fee_amount: FeeAmount,
    ) -> PoolStateSnapshot:
        token0, token1 = (token_a, token_b) if token_a.sorts_before(token_b) else (token_b, token_a)
        sql = """
            SELECT
                lower(p.pool_address) AS pool_address,
                COALESCE(ss.tick, p.tick) AS current_tick,
                COALESCE(ss.liquidity, p.liquidity) AS current_liquidity
            FROM public.pools p
            LEFT JOIN LATERAL (
                SELECT
                    s.tick,
                    s.liquidity
                FROM public.pool_state_snapshots s
                WHERE s.dex_id = p.dex_id
                  AND s.chain_id = p.chain_id
                  AND lower(s.pool_address) = lower(p.pool_address)
                ORDER BY s.meta_block_number DESC
                LIMIT 1
            ) ss ON true
            WHERE p.chain_id = :chain_id
              AND lower(p.token0_address) = :token0
              AND lower(p.token1_address) = :token1
              AND p.fee_tier = :fee_tier
            ORDER BY COALESCE(p.tvl_usd, 0) DESC
            LIMIT 1
        """
        params = {
            "chain_id": token0.chain_id,
            "token0": token0.address.lower(),
            "token1": token1.address.lower(),
            "fee_tier": int(fee_amount),
        }
        try:
            with self._engine.connect() as conn:
                row = conn.execute(text(sql), params).mappings().first()
        except SQLAlchemyError as exc:
            raise RuntimeError(f"Pool state query failed: {exc}") from exc
        return map_row_to_pool_state(row)

    def fetch_all_ticks(self, *, pool_address: str, chain_id: int) -> list[Tick]:
        sql = """
            SELECT
                t.tick_idx,
                t.liquidity_net,
                t.liquidity_gross
            FROM public.pool_ticks_initialized t
            WHERE t.chain_id = :chain_id
              AND lower(t.pool_address) = :pool_address
              AND t.liquidity_net IS NOT NULL
            ORDER BY t.tick_idx
        """
        params = {
            "chain_id": chain_id,
            "pool_address": pool_address.lower(),
        }
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(text(sql), params).mappings().all()
        except SQLAlchemyError as exc:
            raise RuntimeError(f"Tick query failed: {exc}") from exc
        logger.info(
            "active_liquidity_repo: fetched_ticks rows=%s pool=%s chain_id=%s",
            len(rows),
            pool_address.lower(),
            chain_id,
        )
        return [map_row_to_tick(row) for row in rows]

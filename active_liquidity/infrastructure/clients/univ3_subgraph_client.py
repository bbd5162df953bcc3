from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock
import time

import httpx

from active_liquidity.domain.entities.active_liquidity import (
    PoolState,
    PoolStateSnapshot,
    Tick,
)
from active_liquidity.domain.entities.fee_amount import FeeAmount
from active_liquidity.domain.entities.token import Token


logger = logging.getLogger(__name__)


CHAIN_ID_TO_KEY = {
    1: "ethereum",
    42161: "arbitrum",
    8453: "base",
    137: "polygon",
    56: "bsc",
}

PAGE_SIZE = 1000


class SubgraphResolutionError(RuntimeError):
    pass


class SubgraphPaginationDriftError(RuntimeError):
    pass


@dataclass(frozen=True)
class Univ3SubgraphClientSettings:
    graph_gateway_base: str
    graph_api_key: str
    graph_subgraph_ids: dict
    timeout_seconds: float
    max_retries: int
    min_interval_ms: int


class Univ3SubgraphClient:
    def __init__(self, settings: Univ3SubgraphClientSettings):
        self._settings = settings
        self._lock = Lock()
        self._last_request_at = 0.0

    def fetch_pool_state(
        self,
        *,
        token_a: Token,
        token_b: Token,
        fee_amount: FeeAmount,
    ) -> PoolStateSnapshot:
        token0, token1 = (token_a, token_b) if token_a.sorts_before(token_b) else (token_b, token_a)
        subgraph_url = self._resolve_subgraph_url(token0.chain_id)

        query = """
        query PoolByTokens($token0: String!, $token1: String!, $feeTier: BigInt!) {
          pools(first: 1, where: { token0: $token0, token1: $token1, feeTier: $feeTier }) {
            id
            tick
            liquidity
          }
        }
        """
        payload = self._post_graphql(
            url=subgraph_url,
            query=query,
            variables={
                "token0": token0.address.lower(),
                "token1": token1.address.lower(),
                "feeTier": str(int(fee_amount)),
            },
        )
        pools = (payload.get("data") or {}).get("pools") or []
        if not pools:
            logger.info(
                "univ3_subgraph_client: pool_not_found token0=%s token1=%s fee_tier=%s chain_id=%s",
                token0.address,
                token1.address,
                int(fee_amount),
                token0.chain_id,
            )
            return PoolStateSnapshot(state=PoolState.NOT_EXISTS)

        pool = pools[0]
        raw_tick = pool.get("tick")
        raw_liquidity = pool.get("liquidity")
        return PoolStateSnapshot(
            state=PoolState.EXISTS,
            pool_address=str(pool["id"]).lower(),
            current_tick=int(raw_tick) if raw_tick is not None else None,
            current_liquidity=int(raw_liquidity) if raw_liquidity is not None else None,
        )

    def fetch_all_ticks(self, *, pool_address: str, chain_id: int) -> list[Tick]:
        subgraph_url = self._resolve_subgraph_url(chain_id)
        pool_id = pool_address.lower()

        query = """
        query AllV3Ticks($poolId: String!, $lastTick: BigInt!, $pageSize: Int!) {
          ticks(
            first: $pageSize,
            orderBy: tickIdx,
            orderDirection: asc,
            where: { poolAddress: $poolId, tickIdx_gt: $lastTick }
          ) {
            tickIdx
            liquidityNet
            liquidityGross
          }
          _meta { block { number } }
        }
        """

        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None

        for fetch_attempt in range(1, attempts + 1):
            # Subgraph tickIdx is a BigInt and the lowest valid tick is -887272.
            last_tick = -887273
            result: list[Tick] = []
            pages = 0
            expected_meta_block: int | None = None

            try:
                while True:
                    payload = self._post_graphql(
                        url=subgraph_url,
                        query=query,
                        variables={
                            "poolId": pool_id,
                            "lastTick": str(last_tick),
                            "pageSize": PAGE_SIZE,
                        },
                    )
                    rows = (payload.get("data") or {}).get("ticks") or []
                    if not rows:
                        break
                    pages += 1

                    meta_block = ((payload.get("data") or {}).get("_meta") or {}).get("block") or {}
                    raw_meta_block = meta_block.get("number")
                    if raw_meta_block is not None:
                        block_number = int(raw_meta_block)
                        if expected_meta_block is None:
                            expected_meta_block = block_number
                        elif block_number != expected_meta_block:
                            logger.warning(
                                "univ3_subgraph_client: ticks_pagination_drift pool=%s chain_id=%s page=%s prev_meta_block=%s new_meta_block=%s last_tick=%s",
                                pool_id,
                                chain_id,
                                pages,
                                expected_meta_block,
                                block_number,
                                last_tick,
                            )
                            raise SubgraphPaginationDriftError(
                                "Subgraph pagination drift: meta block changed "
                                f"from {expected_meta_block} to {block_number}"
                            )

                    for row in rows:
                        tick_idx = row.get("tickIdx")
                        if tick_idx is None:
                            continue
                        result.append(
                            Tick(
                                tick_idx=int(tick_idx),
                                liquidity_net=int(row.get("liquidityNet") or 0),
                                liquidity_gross=int(row.get("liquidityGross") or 0),
                            )
                        )

                    last_row_tick = rows[-1].get("tickIdx")
                    if last_row_tick is None:
                        break
                    last_tick = int(last_row_tick)
                    if len(rows) < PAGE_SIZE:
                        break
            except SubgraphPaginationDriftError as exc:
                last_exc = exc
                if fetch_attempt == attempts:
                    break
                logger.warning(
                    "univ3_subgraph_client: ticks_retry attempt=%s/%s reason=pagination_drift error=%s",
                    fetch_attempt,
                    attempts,
                    exc,
                )
                time.sleep(delay)
                delay *= 2
                continue

            logger.info(
                "univ3_subgraph_client: fetched_ticks fetched=%s pages=%s pool=%s chain_id=%s meta_block=%s",
                len(result),
                pages,
                pool_id,
                chain_id,
                expected_meta_block,
            )
            return result

        if last_exc is not None:
            raise RuntimeError(str(last_exc)) from last_exc
        return []

    def _post_graphql(self, *, url: str, query: str, variables: dict) -> dict:
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            self._respect_rate_limit()
            try:
                with httpx.Client(timeout=self._settings.timeout_seconds) as client:
                    response = client.post(
                        url,
                        json={"query": query, "variables": variables},
                    )
                    response.raise_for_status()
                    payload = response.json()

                errors = payload.get("errors") or []
                if errors:
                    message = " | ".join(str(err.get("message", err)) for err in errors)
                    raise RuntimeError(message)

                return payload
            except (httpx.HTTPError, RuntimeError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "univ3_subgraph_client: graphql_retry attempt=%s/%s error=%s",
                    attempt,
                    attempts,
                    exc,
                )
                time.sleep(delay)
                delay *= 2

        raise RuntimeError(f"GraphQL request failed after retries: {last_exc}") from last_exc

    def _respect_rate_limit(self) -> None:
        min_interval = max(0, self._settings.min_interval_ms) / 1000.0
        if min_interval <= 0:
            return

        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_at
            if elapsed < min_interval:
                time.sleep(min_interval - elapsed)
            self._last_request_at = time.monotonic()

    def _resolve_subgraph_url(self, chain_id: int) -> str:
        chain_key = CHAIN_ID_TO_KEY.get(chain_id)
        if not chain_key:
            raise SubgraphResolutionError(f"Unsupported chain_id for subgraph resolution: {chain_id}")

        subgraph_id = str(self._settings.graph_subgraph_ids.get(chain_key) or "").strip()
        if not subgraph_id:
            raise SubgraphResolutionError(
                f"Missing GRAPH_SUBGRAPH_ID for chain '{chain_key}' (chain_id={chain_id})."
            )
        return self._build_gateway_url(subgraph_id)

    def _build_gateway_url(self, subgraph_id: str) -> str:
        if subgraph_id.startswith("http://") or subgraph_id.startswith("https://"):
            return subgraph_id.rstrip("/")
        base = self._settings.graph_gateway_base.rstrip("/")
        api_key = self._settings.graph_api_key.strip()
        if api_key:
            return f"{base}/{api_key}/subgraphs/id/{subgraph_id}"
        return f"{base}/subgraphs/id/{subgraph_id}"

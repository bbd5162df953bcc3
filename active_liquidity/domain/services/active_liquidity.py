from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Sequence

from active_liquidity.domain.entities.active_liquidity import ProcessedTick, Tick
from active_liquidity.domain.entities.token import Token
from active_liquidity.domain.exceptions import TickOrderError
from active_liquidity.domain.services.univ3_math import tick_to_price_string


logger = logging.getLogger(__name__)


def assert_ticks_sorted(ticks: Sequence[Tick]) -> None:
    for idx in range(1, len(ticks)):
        if ticks[idx].tick_idx <= ticks[idx - 1].tick_idx:
            raise TickOrderError(
                "ticks must be strictly ascending by tick_idx "
                f"(index {idx}: {ticks[idx - 1].tick_idx} -> {ticks[idx].tick_idx})."
            )


def locate_pivot(ticks: Sequence[Tick], active_tick: int) -> int:
    """Index of the last tick at or below ``active_tick``; -1 when there is none."""
    tick_indexes = [tick.tick_idx for tick in ticks]
    return bisect_right(tick_indexes, active_tick) - 1


def build_active_tick(
    *,
    token0: Token,
    token1: Token,
    ticks: Sequence[Tick],
    pivot: int,
    active_tick: int,
    current_liquidity: int,
) -> ProcessedTick:
    pivot_tick = ticks[pivot]
    return ProcessedTick(
        tick_idx=active_tick,
        liquidity_active=int(current_liquidity),
        liquidity_net=pivot_tick.liquidity_net if pivot_tick.tick_idx == active_tick else 0,
        price0=tick_to_price_string(token0, token1, active_tick),
    )


def compute_surrounding_ticks(
    token0: Token,
    token1: Token,
    active_tick_processed: ProcessedTick,
    sorted_tick_data: Sequence[Tick],
    pivot: int,
    ascending: bool,
) -> list[ProcessedTick]:
    """Walk away from the active tick accumulating liquidity_net.

    Going up, crossing a tick adds its liquidity_net. Going down, leaving the
    tick above subtracts that tick's liquidity_net. Records come back in
    ascending tick order for both directions.
    """
    previous = active_tick_processed
    processed: list[ProcessedTick] = []

    if ascending:
        indexes = range(pivot + 1, len(sorted_tick_data))
    else:
        start = pivot
        if sorted_tick_data[pivot].tick_idx == active_tick_processed.tick_idx:
            start = pivot - 1
        indexes = range(start, -1, -1)

    for i in indexes:
        tick = sorted_tick_data[i]
        if ascending:
            liquidity_active = previous.liquidity_active + tick.liquidity_net
        else:
            liquidity_active = previous.liquidity_active - previous.liquidity_net

        current = ProcessedTick(
            tick_idx=tick.tick_idx,
            liquidity_active=liquidity_active,
            liquidity_net=tick.liquidity_net,
            price0=tick_to_price_string(token0, token1, tick.tick_idx),
        )
        processed.append(current)
        previous = current

    if not ascending:
        processed.reverse()
    return processed


def build_active_liquidity_curve(
    *,
    token0: Token,
    token1: Token,
    active_tick: int,
    current_liquidity: int,
    ticks: Sequence[Tick],
    validate_order: bool = False,
) -> list[ProcessedTick] | None:
    """Liquidity at every initialized tick plus the active tick, ascending.

    Returns ``None`` when the active tick lies below every known tick.
    """
    if validate_order:
        assert_ticks_sorted(ticks)

    pivot = locate_pivot(ticks, active_tick)
    if pivot < 0:
        logger.error(
            "active_liquidity: pivot_not_found active_tick=%s ticks=%s first_tick=%s",
            active_tick,
            len(ticks),
            ticks[0].tick_idx if ticks else None,
        )
        return None

    active_tick_processed = build_active_tick(
        token0=token0,
        token1=token1,
        ticks=ticks,
        pivot=pivot,
        active_tick=active_tick,
        current_liquidity=current_liquidity,
    )
    subsequent_ticks = compute_surrounding_ticks(
        token0, token1, active_tick_processed, ticks, pivot, True
    )
    previous_ticks = compute_surrounding_ticks(
        token0, token1, active_tick_processed, ticks, pivot, False
    )
    curve = previous_ticks + [active_tick_processed] + subsequent_ticks

    negative = [item.tick_idx for item in curve if item.liquidity_active < 0]
    if negative:
        logger.warning(
            "active_liquidity: negative_liquidity_active ticks=%s first=%s active_tick=%s",
            len(negative),
            negative[0],
            active_tick,
        )
    return curve

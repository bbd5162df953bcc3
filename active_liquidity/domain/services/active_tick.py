from __future__ import annotations

from active_liquidity.domain.entities.fee_amount import (
    DEFAULT_TICK_SPACING,
    TICK_SPACINGS,
    FeeAmount,
)


def tick_spacing_for(fee_amount: FeeAmount | None) -> int:
    if not fee_amount:
        return DEFAULT_TICK_SPACING
    return TICK_SPACINGS[FeeAmount(fee_amount)]


def resolve_active_tick(tick_current: int | None, fee_amount: FeeAmount | None) -> int | None:
    """Snap the pool tick down to the nearest usable tick for the fee tier.

    A current tick of exactly 0 resolves to ``None``, same as a missing tick.
    """
    tick_spacing = tick_spacing_for(fee_amount)
    if not tick_current:
        return None
    return (tick_current // tick_spacing) * tick_spacing

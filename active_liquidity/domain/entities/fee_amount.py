from __future__ import annotations

from enum import IntEnum


class FeeAmount(IntEnum):
    LOWEST = 100
    LOW = 500
    MEDIUM = 3000
    HIGH = 10000


TICK_SPACINGS: dict[FeeAmount, int] = {
    FeeAmount.LOWEST: 1,
    FeeAmount.LOW: 10,
    FeeAmount.MEDIUM: 60,
    FeeAmount.HIGH: 200,
}

DEFAULT_TICK_SPACING = 60


def parse_fee_amount(value: int | None) -> FeeAmount | None:
    if value is None:
        return None
    try:
        return FeeAmount(int(value))
    except ValueError as exc:
        raise ValueError(f"Unsupported fee tier: {value}") from exc

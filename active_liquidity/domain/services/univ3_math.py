from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext

from active_liquidity.domain.entities.token import Token


TICK_BASE = Decimal("1.0001")
PRICE_FIXED_DIGITS = 8
MIN_TICK = -887272
MAX_TICK = 887272

_PRECISION = 80


def tick_to_ratio(tick: int) -> Decimal:
    """Raw token1/token0 ratio at ``tick``, before decimals adjustment."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return TICK_BASE ** int(tick)


def tick_to_price(base_token: Token, quote_token: Token, tick: int) -> Decimal:
    """Price of ``base_token`` denominated in ``quote_token`` at ``tick``."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        ratio = tick_to_ratio(tick)
        if not base_token.sorts_before(quote_token):
            ratio = Decimal(1) / ratio
        decimal_adjust = Decimal(10) ** (base_token.decimals - quote_token.decimals)
        return ratio * decimal_adjust


def format_price(price: Decimal, digits: int = PRICE_FIXED_DIGITS) -> str:
    if digits < 0:
        raise ValueError("digits must be >= 0.")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        quantized = price.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    return f"{quantized:f}"


def tick_to_price_string(base_token: Token, quote_token: Token, tick: int) -> str:
    return format_price(tick_to_price(base_token, quote_token, tick))

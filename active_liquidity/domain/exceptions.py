from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class ActiveLiquidityInputError(DomainError):
    """Invalid parameters for the active liquidity curve."""


class TickOrderError(ActiveLiquidityInputError):
    """Tick sequence is not strictly ascending by tick index."""

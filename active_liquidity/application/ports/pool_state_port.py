from __future__ import annotations

from typing import Protocol

from active_liquidity.domain.entities.active_liquidity import PoolStateSnapshot
from active_liquidity.domain.entities.fee_amount import FeeAmount
from active_liquidity.domain.entities.token import Token


class PoolStatePort(Protocol):
    def fetch_pool_state(
        self,
        *,
        token_a: Token,
        token_b: Token,
        fee_amount: FeeAmount,
    ) -> PoolStateSnapshot:
        ...

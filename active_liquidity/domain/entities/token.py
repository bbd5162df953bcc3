from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Token:
    chain_id: int
    address: str
    decimals: int
    symbol: str | None = None

    def sorts_before(self, other: Token) -> bool:
        if self.chain_id != other.chain_id:
            raise ValueError("Tokens must be on the same chain.")
        a = self.address.lower()
        b = other.address.lower()
        if a == b:
            raise ValueError("Tokens must have different addresses.")
        return a < b

    def equals(self, other: Token) -> bool:
        return self.chain_id == other.chain_id and self.address.lower() == other.address.lower()

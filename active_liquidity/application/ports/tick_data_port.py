from __future__ import annotations

from typing import Protocol

from active_liquidity.domain.entities.active_liquidity import Tick, TickDataSnapshot


class TickDataPort(Protocol):
    def fetch_all_ticks(self, *, pool_address: str, chain_id: int) -> list[Tick]:
        ...


class TickSnapshotSource(Protocol):
    def get_snapshot(self, *, pool_address: str, chain_id: int) -> TickDataSnapshot:
        ...

    def close(self) -> None:
        ...

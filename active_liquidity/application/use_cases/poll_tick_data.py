from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import replace
import logging
from threading import Event, Lock, Thread
import time

from active_liquidity.application.ports.tick_data_port import TickDataPort
from active_liquidity.domain.entities.active_liquidity import TickDataSnapshot


logger = logging.getLogger(__name__)


DEFAULT_POLLING_INTERVAL_SECONDS = 120.0
DEFAULT_MAX_POLLERS = 64
DEFAULT_IDLE_INTERVALS = 5


def _fetch_snapshot(
    *,
    tick_port: TickDataPort,
    pool_address: str,
    chain_id: int,
    previous: TickDataSnapshot,
) -> TickDataSnapshot:
    try:
        ticks = tick_port.fetch_all_ticks(pool_address=pool_address, chain_id=chain_id)
    except (RuntimeError, ValueError) as exc:
        logger.warning(
            "tick_data: fetch_failed pool=%s chain_id=%s error=%s",
            pool_address,
            chain_id,
            exc,
        )
        return TickDataSnapshot(
            is_loading=False,
            is_uninitialized=False,
            is_error=True,
            error=str(exc),
            ticks=previous.ticks,
        )
    return TickDataSnapshot(
        is_loading=False,
        is_uninitialized=False,
        is_error=False,
        error=None,
        ticks=tuple(ticks),
    )


class DirectTickDataSource:
    """Fetches the full tick list on every call."""

    def __init__(self, *, tick_port: TickDataPort):
        self._tick_port = tick_port

    def get_snapshot(self, *, pool_address: str, chain_id: int) -> TickDataSnapshot:
        return _fetch_snapshot(
            tick_port=self._tick_port,
            pool_address=pool_address,
            chain_id=chain_id,
            previous=TickDataSnapshot(),
        )

    def close(self) -> None:
        return None


class TickDataPoller:
    """Keeps the latest tick snapshot of one pool, refreshed on a fixed interval."""

    def __init__(
        self,
        *,
        tick_port: TickDataPort,
        pool_address: str,
        chain_id: int,
        interval_seconds: float = DEFAULT_POLLING_INTERVAL_SECONDS,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self._tick_port = tick_port
        self._pool_address = pool_address
        self._chain_id = chain_id
        self._interval_seconds = interval_seconds
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Thread | None = None
        self._snapshot = TickDataSnapshot()

    @property
    def pool_address(self) -> str:
        return self._pool_address

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def snapshot(self) -> TickDataSnapshot:
        with self._lock:
            return self._snapshot

    def refresh(self) -> TickDataSnapshot:
        with self._lock:
            previous = self._snapshot
            self._snapshot = replace(
                previous,
                is_loading=previous.ticks is None,
                is_uninitialized=False,
            )

        snapshot = _fetch_snapshot(
            tick_port=self._tick_port,
            pool_address=self._pool_address,
            chain_id=self._chain_id,
            previous=previous,
        )
        with self._lock:
            self._snapshot = snapshot
        logger.debug(
            "tick_data_poller: refreshed pool=%s chain_id=%s ticks=%s is_error=%s",
            self._pool_address,
            self._chain_id,
            len(snapshot.ticks) if snapshot.ticks is not None else None,
            snapshot.is_error,
        )
        return snapshot

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        with self._lock:
            if self._snapshot.ticks is None:
                self._snapshot = replace(self._snapshot, is_loading=True, is_uninitialized=False)
        self._thread = Thread(
            target=self._run,
            name=f"tick-poller-{self._pool_address}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "tick_data_poller: started pool=%s chain_id=%s interval_seconds=%s",
            self._pool_address,
            self._chain_id,
            self._interval_seconds,
        )

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.refresh()
            self._stop_event.wait(self._interval_seconds)


class PollingTickDataSource:
    """Starts one poller per pool on first request and serves its latest snapshot.

    Pollers nobody asked about for ``idle_intervals`` polling intervals are
    stopped, and at most ``max_pollers`` run at once (least recently
    requested goes first).
    """

    def __init__(
        self,
        *,
        tick_port: TickDataPort,
        interval_seconds: float = DEFAULT_POLLING_INTERVAL_SECONDS,
        max_pollers: int = DEFAULT_MAX_POLLERS,
        idle_intervals: int = DEFAULT_IDLE_INTERVALS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_pollers < 1:
            raise ValueError("max_pollers must be >= 1.")
        if idle_intervals < 1:
            raise ValueError("idle_intervals must be >= 1.")
        self._tick_port = tick_port
        self._interval_seconds = interval_seconds
        self._max_pollers = max_pollers
        self._idle_seconds = interval_seconds * idle_intervals
        self._clock = clock
        self._lock = Lock()
        self._pollers: OrderedDict[tuple[int, str], TickDataPoller] = OrderedDict()
        self._last_requested: dict[tuple[int, str], float] = {}

    def get_snapshot(self, *, pool_address: str, chain_id: int) -> TickDataSnapshot:
        key = (chain_id, pool_address.lower())
        now = self._clock()
        with self._lock:
            evicted = self._evict_idle(now)
            poller = self._pollers.get(key)
            if poller is None:
                while len(self._pollers) >= self._max_pollers:
                    oldest_key, oldest = self._pollers.popitem(last=False)
                    self._last_requested.pop(oldest_key, None)
                    evicted.append(oldest)
                poller = TickDataPoller(
                    tick_port=self._tick_port,
                    pool_address=key[1],
                    chain_id=chain_id,
                    interval_seconds=self._interval_seconds,
                )
                self._pollers[key] = poller
                poller.start()
            else:
                self._pollers.move_to_end(key)
            self._last_requested[key] = now

        for stale in evicted:
            logger.info(
                "tick_data_poller: evicted pool=%s pollers=%s",
                stale.pool_address,
                len(self._pollers),
            )
            stale.stop(timeout=1.0)
        return poller.snapshot()

    def close(self) -> None:
        with self._lock:
            pollers = list(self._pollers.values())
            self._pollers.clear()
            self._last_requested.clear()
        for poller in pollers:
            poller.stop(timeout=1.0)

    def _evict_idle(self, now: float) -> list[TickDataPoller]:
        idle_keys = [
            key
            for key, requested_at in self._last_requested.items()
            if now - requested_at > self._idle_seconds
        ]
        evicted: list[TickDataPoller] = []
        for key in idle_keys:
            self._last_requested.pop(key, None)
            poller = self._pollers.pop(key, None)
            if poller is not None:
                evicted.append(poller)
        return evicted

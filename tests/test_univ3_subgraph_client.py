from __future__ import annotations

import httpx
import pytest

from active_liquidity.domain.entities.active_liquidity import PoolState
from active_liquidity.domain.entities.fee_amount import FeeAmount
from active_liquidity.domain.entities.token import Token
from active_liquidity.infrastructure.clients.univ3_subgraph_client import (
    PAGE_SIZE,
    SubgraphResolutionError,
    Univ3SubgraphClient,
    Univ3SubgraphClientSettings,
)


WETH = Token(chain_id=1, address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", decimals=18, symbol="WETH")
USDC = Token(chain_id=1, address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", decimals=6, symbol="USDC")


def _make_client(*, max_retries: int = 1) -> Univ3SubgraphClient:
    return Univ3SubgraphClient(
        Univ3SubgraphClientSettings(
            graph_gateway_base="https://gateway.thegraph.com/api",
            graph_api_key="api-key",
            graph_subgraph_ids={"ethereum": "subgraph-id"},
            timeout_seconds=10,
            max_retries=max_retries,
            min_interval_ms=0,
        )
    )


def _ticks_payload(start: int, end: int, *, meta_block: int | None) -> dict:
    rows = [
        {
            "tickIdx": str(tick),
            "liquidityNet": str(tick * 10),
            "liquidityGross": str(abs(tick * 10)),
        }
        for tick in range(start, end + 1)
    ]
    return {
        "data": {
            "ticks": rows,
            "_meta": {"block": {"number": meta_block} if meta_block is not None else None},
        }
    }


def test_build_gateway_url_uses_id_when_value_is_not_url():
    client = _make_client()
    assert client._build_gateway_url("abc") == "https://gateway.thegraph.com/api/api-key/subgraphs/id/abc"


def test_build_gateway_url_keeps_full_url_unchanged():
    client = _make_client()
    full_url = "https://example.org/subgraphs/name/uniswap/uniswap-v3/"
    assert client._build_gateway_url(full_url) == full_url.rstrip("/")


def test_unsupported_chain_is_a_resolution_error():
    client = _make_client()
    with pytest.raises(SubgraphResolutionError):
        client.fetch_all_ticks(pool_address="0xabc", chain_id=10)


def test_fetch_all_ticks_paginates_by_last_tick(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    scripted = [
        _ticks_payload(1, PAGE_SIZE, meta_block=100),
        _ticks_payload(PAGE_SIZE + 1, PAGE_SIZE + 5, meta_block=100),
    ]
    seen_last_ticks: list[str] = []

    def fake_post_graphql(*, url: str, query: str, variables: dict) -> dict:
        _ = query
        assert url.endswith("/subgraphs/id/subgraph-id")
        assert variables["poolId"] == "0xabc"
        seen_last_ticks.append(variables["lastTick"])
        return scripted[len(seen_last_ticks) - 1]

    monkeypatch.setattr(client, "_post_graphql", fake_post_graphql)

    ticks = client.fetch_all_ticks(pool_address="0xABC", chain_id=1)

    assert seen_last_ticks == ["-887273", str(PAGE_SIZE)]
    assert len(ticks) == PAGE_SIZE + 5
    assert ticks[0].tick_idx == 1
    assert ticks[0].liquidity_net == 10
    assert ticks[-1].tick_idx == PAGE_SIZE + 5
    assert [tick.tick_idx for tick in ticks] == sorted(tick.tick_idx for tick in ticks)


def test_fetch_all_ticks_restarts_when_meta_block_drifts(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(max_retries=2)
    monkeypatch.setattr(
        "active_liquidity.infrastructure.clients.univ3_subgraph_client.time.sleep",
        lambda _seconds: None,
    )
    scripted = [
        _ticks_payload(1, PAGE_SIZE, meta_block=100),
        _ticks_payload(PAGE_SIZE + 1, PAGE_SIZE + 1, meta_block=101),
        _ticks_payload(1, PAGE_SIZE, meta_block=101),
        _ticks_payload(PAGE_SIZE + 1, PAGE_SIZE + 2, meta_block=101),
    ]
    state = {"idx": 0}

    def fake_post_graphql(*, url: str, query: str, variables: dict) -> dict:
        _ = (url, query, variables)
        payload = scripted[state["idx"]]
        state["idx"] += 1
        return payload

    monkeypatch.setattr(client, "_post_graphql", fake_post_graphql)

    ticks = client.fetch_all_ticks(pool_address="0xabc", chain_id=1)

    assert state["idx"] == 4
    assert len(ticks) == PAGE_SIZE + 2


def test_fetch_all_ticks_gives_up_after_repeated_drift(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(max_retries=1)
    scripted = [
        _ticks_payload(1, PAGE_SIZE, meta_block=100),
        _ticks_payload(PAGE_SIZE + 1, PAGE_SIZE + 1, meta_block=101),
    ]
    state = {"idx": 0}

    def fake_post_graphql(*, url: str, query: str, variables: dict) -> dict:
        _ = (url, query, variables)
        payload = scripted[state["idx"]]
        state["idx"] += 1
        return payload

    monkeypatch.setattr(client, "_post_graphql", fake_post_graphql)

    with pytest.raises(RuntimeError, match="pagination drift"):
        client.fetch_all_ticks(pool_address="0xabc", chain_id=1)


def test_fetch_pool_state_queries_sorted_tokens(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    captured: dict = {}

    def fake_post_graphql(*, url: str, query: str, variables: dict) -> dict:
        _ = (url, query)
        captured.update(variables)
        return {
            "data": {
                "pools": [
                    {
                        "id": "0x88E6A0c2dDD26FEEb64F039a2c41296FcB3f5640",
                        "tick": "201234",
                        "liquidity": "123456789012345678901234567890",
                    }
                ]
            }
        }

    monkeypatch.setattr(client, "_post_graphql", fake_post_graphql)

    snapshot = client.fetch_pool_state(token_a=WETH, token_b=USDC, fee_amount=FeeAmount.LOW)

    assert captured == {
        "token0": USDC.address.lower(),
        "token1": WETH.address.lower(),
        "feeTier": "500",
    }
    assert snapshot.state is PoolState.EXISTS
    assert snapshot.pool_address == "0x88e6a0c2ddd26feeb64f039a2c41296fcb3f5640"
    assert snapshot.current_tick == 201234
    assert snapshot.current_liquidity == 123456789012345678901234567890


def test_fetch_pool_state_without_match_is_not_exists(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    monkeypatch.setattr(
        client,
        "_post_graphql",
        lambda *, url, query, variables: {"data": {"pools": []}},
    )

    snapshot = client.fetch_pool_state(token_a=WETH, token_b=USDC, fee_amount=FeeAmount.MEDIUM)

    assert snapshot.state is PoolState.NOT_EXISTS
    assert snapshot.pool_address is None


def test_fetch_pool_state_with_null_data_is_not_exists(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    monkeypatch.setattr(
        client,
        "_post_graphql",
        lambda *, url, query, variables: {"data": None, "errors": [{"message": "indexing"}]},
    )

    snapshot = client.fetch_pool_state(token_a=WETH, token_b=USDC, fee_amount=FeeAmount.MEDIUM)

    assert snapshot.state is PoolState.NOT_EXISTS


def test_fetch_all_ticks_with_null_data_returns_no_ticks(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    monkeypatch.setattr(client, "_post_graphql", lambda *, url, query, variables: {"data": None})

    assert client.fetch_all_ticks(pool_address="0xabc", chain_id=1) == []


def test_post_graphql_retries_http_errors(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(max_retries=3)
    module = "active_liquidity.infrastructure.clients.univ3_subgraph_client"
    monkeypatch.setattr(f"{module}.time.sleep", lambda _seconds: None)
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(502)
        if calls["count"] == 2:
            return httpx.Response(200, json={"errors": [{"message": "indexer busy"}]})
        return httpx.Response(200, json={"data": {"pools": []}})

    real_client = httpx.Client
    monkeypatch.setattr(
        f"{module}.httpx.Client",
        lambda timeout: real_client(transport=httpx.MockTransport(handler), timeout=timeout),
    )

    payload = client._post_graphql(url="https://example.org/graphql", query="{}", variables={})

    assert payload == {"data": {"pools": []}}
    assert calls["count"] == 3


def test_post_graphql_raises_after_exhausted_retries(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(max_retries=2)
    module = "active_liquidity.infrastructure.clients.univ3_subgraph_client"
    monkeypatch.setattr(f"{module}.time.sleep", lambda _seconds: None)

    real_client = httpx.Client
    monkeypatch.setattr(
        f"{module}.httpx.Client",
        lambda timeout: real_client(
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
            timeout=timeout,
        ),
    )

    with pytest.raises(RuntimeError, match="failed after retries"):
        client._post_graphql(url="https://example.org/graphql", query="{}", variables={})

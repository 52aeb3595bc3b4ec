"""Market parsing and Gamma client pagination tests."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import aiohttp
import pytest

from markets import FetchError, MarketClient, parse_market, parse_timestamp


def raw(market_id, **extra):
    data = {
        "id": market_id,
        "conditionId": f"0x{market_id}",
        "question": f"Team {market_id} vs Rivals",
        "outcomes": '["Team", "Rivals"]',
        "outcomePrices": '["0.6", "0.4"]',
        "spread": "0.01",
    }
    data.update(extra)
    return data


def make_client(**kwargs):
    kwargs.setdefault("sleep", AsyncMock())
    return MarketClient(base_url="https://gamma.test", **kwargs)


def test_parse_market_json_strings():
    market = parse_market(raw("1", volume="1234.5", gameStartTime="2025-06-12 00:30:00+00"))
    assert market.id == "1"
    assert market.condition_id == "0x1"
    assert market.outcomes == ["Team", "Rivals"]
    assert market.outcome_prices == [0.6, 0.4]
    assert market.spread == 0.01
    assert market.volume == 1234.5
    assert market.game_start_time == datetime(2025, 6, 12, 0, 30, tzinfo=timezone.utc)


def test_parse_market_native_lists():
    market = parse_market(raw("2", outcomes=["Yes", "No"], outcomePrices=["0.3", 0.7]))
    assert market.outcomes == ["Yes", "No"]
    assert market.outcome_prices == [0.3, 0.7]


def test_parse_market_malformed_outcomes_marked_unparseable():
    market = parse_market(raw("3", outcomes='["Yes", "No"', outcomePrices='not json'))
    assert market.outcomes is None
    assert market.outcome_prices is None


def test_parse_market_defaults():
    market = parse_market({"id": 9})
    assert market.id == "9"
    assert market.outcomes == []
    assert market.spread == 0.0
    assert market.volume is None
    assert market.game_start_time is None
    assert market.end_date is None
    assert market.sports_market_type == ""


def test_parse_timestamp_variants():
    expected = datetime(2025, 6, 12, 0, 0, tzinfo=timezone.utc)
    assert parse_timestamp("2025-06-12T00:00:00Z") == expected
    assert parse_timestamp("2025-06-12T00:00:00+00:00") == expected
    assert parse_timestamp("2025-06-11T20:00:00-04:00") == expected
    assert parse_timestamp("2025-06-12 00:00:00+00") == expected
    assert parse_timestamp("2025-06-12") == expected
    assert parse_timestamp("soon") is None
    assert parse_timestamp(None) is None


def test_fetch_stops_on_empty_page_after_full_page():
    client = make_client(batch_limit=3)
    client._get_json = AsyncMock(side_effect=[[raw("1"), raw("2"), raw("3")], []])

    markets = asyncio.run(client.fetch_all_markets(745))

    assert [m.id for m in markets] == ["1", "2", "3"]
    assert client._get_json.await_count == 2
    first_params = client._get_json.await_args_list[0].args[2]
    second_params = client._get_json.await_args_list[1].args[2]
    assert first_params == {
        "tag_id": 745, "closed": "false", "active": "true",
        "archived": "false", "limit": 3, "offset": 0,
    }
    assert second_params["offset"] == 3
    client._sleep.assert_awaited_once_with(0.5)


def test_fetch_stops_on_short_page():
    client = make_client(batch_limit=3)
    client._get_json = AsyncMock(side_effect=[[raw("1"), raw("2")]])

    markets = asyncio.run(client.fetch_all_markets(745))

    assert len(markets) == 2
    client._get_json.assert_awaited_once()
    client._sleep.assert_not_awaited()


def test_fetch_accepts_wrapped_payload():
    client = make_client(batch_limit=3)
    client._get_json = AsyncMock(return_value={"data": [raw("1")]})
    markets = asyncio.run(client.fetch_all_markets(745))
    assert [m.id for m in markets] == ["1"]


def test_first_page_failure_raises_fetch_error():
    client = make_client(batch_limit=3)
    client._get_json = AsyncMock(side_effect=aiohttp.ClientError("down"))

    with pytest.raises(FetchError):
        asyncio.run(client.fetch_all_markets(745))

    assert client._get_json.await_count == 2
    client._sleep.assert_awaited_once_with(1.0)


def test_first_page_retry_recovers():
    client = make_client(batch_limit=3)
    client._get_json = AsyncMock(side_effect=[asyncio.TimeoutError(), [raw("1")]])
    markets = asyncio.run(client.fetch_all_markets(745))
    assert [m.id for m in markets] == ["1"]


def test_later_page_failure_returns_partial_results():
    client = make_client(batch_limit=2)
    client._get_json = AsyncMock(side_effect=[
        [raw("1"), raw("2")],
        aiohttp.ClientError("down"),
        aiohttp.ClientError("still down"),
    ])

    markets = asyncio.run(client.fetch_all_markets(745))

    assert [m.id for m in markets] == ["1", "2"]
    assert client._get_json.await_count == 3


def test_get_market_by_id():
    client = make_client()
    client._get_json = AsyncMock(return_value=raw("77"))
    market = asyncio.run(client.get_market_by_id("77"))
    assert market.id == "77"
    assert client._get_json.await_args.args[1] == "https://gamma.test/markets/77"


def test_get_market_by_id_failure_returns_none():
    client = make_client()
    client._get_json = AsyncMock(side_effect=aiohttp.ClientError("down"))
    assert asyncio.run(client.get_market_by_id("77")) is None

    client._get_json = AsyncMock(return_value=[])
    assert asyncio.run(client.get_market_by_id("77")) is None

"""
Polymarket Gamma API client.

Fetches market listings for a tag in batches and normalizes every record at
the boundary, so the filters and formatters downstream only ever see plain
lists for outcomes/prices and parsed datetimes for the timing fields.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

import config
from retry import retry_async

logger = logging.getLogger(__name__)

# Gamma sometimes sends "+00" instead of "+00:00"
_SHORT_OFFSET = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)([+-]\d{2})$")


class FetchError(Exception):
    """Raised when not even the first batch of markets could be fetched"""


@dataclass
class Market:
    id: str
    condition_id: str = ""
    question: str = ""
    title: str = ""
    # None means the upstream value could not be parsed
    outcomes: Optional[List[str]] = None
    outcome_prices: Optional[List[float]] = None
    spread: float = 0.0
    game_start_time: Optional[datetime] = None
    end_date: Optional[datetime] = None
    volume: Optional[float] = None
    sports_market_type: str = ""
    line: Optional[float] = None
    slug: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


def parse_timestamp(value):
    """Parse an ISO-ish timestamp into an aware UTC datetime, None if absent or invalid"""
    if not value or not isinstance(value, str):
        return None
    text = value.strip().replace('Z', '+00:00')
    text = _SHORT_OFFSET.sub(r"\1\2:00", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_json_list(value):
    """Accept a native list or a JSON-encoded list; None on anything else"""
    if isinstance(value, list):
        return value
    if value is None or value == "":
        return []
    if not isinstance(value, str):
        return None
    try:
        decoded = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None
    return decoded if isinstance(decoded, list) else None


def _to_float(value, default=None):
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_market(raw):
    """Convert a Gamma API market object into a Market"""
    outcomes = parse_json_list(raw.get('outcomes'))
    if outcomes is not None:
        outcomes = [str(o) for o in outcomes]

    prices = parse_json_list(raw.get('outcomePrices'))
    if prices is not None:
        try:
            prices = [float(p) for p in prices]
        except (TypeError, ValueError):
            prices = None

    return Market(
        id=str(raw.get('id', '')),
        condition_id=raw.get('conditionId') or '',
        question=raw.get('question') or '',
        title=raw.get('title') or '',
        outcomes=outcomes,
        outcome_prices=prices,
        spread=_to_float(raw.get('spread'), 0.0),
        game_start_time=parse_timestamp(raw.get('gameStartTime')),
        end_date=parse_timestamp(raw.get('endDate')),
        volume=_to_float(raw.get('volume')),
        sports_market_type=raw.get('sportsMarketType') or '',
        line=_to_float(raw.get('line')),
        slug=raw.get('slug') or '',
        raw=raw,
    )


class MarketClient:
    """Read-only client for the market listing endpoints"""

    def __init__(self, base_url=config.POLYMARKET_API_URL, batch_limit=config.BATCH_LIMIT,
                 max_attempts=config.MAX_ATTEMPTS, retry_delay=config.RETRY_DELAY,
                 page_delay=config.PAGE_DELAY, timeout=config.REQUEST_TIMEOUT,
                 sleep=asyncio.sleep):
        self.base_url = base_url.rstrip('/')
        self.batch_limit = batch_limit
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.page_delay = page_delay
        self.timeout = timeout
        self._sleep = sleep

    def _session(self):
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def _get_json(self, session, url, params=None):
        async with session.get(url, params=params) as response:
            response.raise_for_status()
            return await response.json()

    async def _fetch_batch(self, session, tag_id, offset):
        # aiohttp refuses bool query values, so flags go out as strings
        params = {
            "tag_id": tag_id,
            "closed": "false",
            "active": "true",
            "archived": "false",
            "limit": self.batch_limit,
            "offset": offset,
        }
        data = await self._get_json(session, f"{self.base_url}/markets", params)
        if isinstance(data, dict) and isinstance(data.get('data'), list):
            data = data['data']
        if not isinstance(data, list):
            raise ValueError(f"unexpected markets payload: {type(data).__name__}")
        return data

    async def fetch_all_markets(self, tag_id):
        """
        Fetch every open market for a tag, batch by batch.

        Raises FetchError if the first batch fails on every attempt. A later
        batch failing ends pagination and returns what was collected so far.
        """
        all_markets = []
        offset = 0
        batch_count = 0

        async with self._session() as session:
            while True:
                try:
                    batch = await retry_async(
                        self._fetch_batch, session, tag_id, offset,
                        max_attempts=self.max_attempts,
                        delay=self.retry_delay,
                        exceptions=(aiohttp.ClientError, asyncio.TimeoutError, ValueError),
                        sleep=self._sleep,
                        description=f"markets batch {batch_count + 1} (tag {tag_id})",
                    )
                except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                    if batch_count == 0:
                        raise FetchError(f"Failed to fetch any markets for tag {tag_id}") from e
                    logger.warning(f"Failed to fetch additional markets, keeping {len(all_markets)}")
                    break

                logger.info(f"Received {len(batch)} markets in batch {batch_count + 1}")
                if not batch:
                    break

                all_markets.extend(parse_market(raw) for raw in batch if isinstance(raw, dict))
                batch_count += 1
                offset += len(batch)

                # A short batch is the last page
                if len(batch) < self.batch_limit:
                    break

                await self._sleep(self.page_delay)

        logger.info(f"Total markets fetched for tag {tag_id}: {len(all_markets)}")
        return all_markets

    async def get_market_by_id(self, market_id):
        """Fetch a single market fresh from the API, None on any failure"""
        try:
            async with self._session() as session:
                data = await self._get_json(session, f"{self.base_url}/markets/{market_id}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Error fetching market {market_id}: {e}")
            return None
        if not isinstance(data, dict):
            logger.error(f"Unexpected payload for market {market_id}: {type(data).__name__}")
            return None
        return parse_market(data)

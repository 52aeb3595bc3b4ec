"""
Market browsing flow, independent of the chat platform.

    CATEGORY_SELECT -> (BASKETBALL_TYPE_SELECT) -> KEYWORD_PROMPT
        -> PAGED_RESULTS -> BET_DETAIL

Result pages are served from the per-user cache only. Bet details always
re-fetch the market so the odds shown next to the betting link are live.
"""

import logging
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional

import config
from categories import Category, BasketballMarketType
from market_cache import CacheEntry, EntryKind
from market_filters import (
    filter_basketball_markets,
    filter_by_keyword,
    filter_category_markets,
    is_match_all,
)
from markets import FetchError, Market

logger = logging.getLogger(__name__)

BASKETBALL_ALL_KEY = "NBA_ALL"
PENDING_KEY = "pending"

EXPIRED_MESSAGE = "❌ Market data expired. Please run /markets again."


class BrowseState(IntEnum):
    CATEGORY_SELECT = 0
    BASKETBALL_TYPE_SELECT = 1
    KEYWORD_PROMPT = 2
    PAGED_RESULTS = 3
    BET_DETAIL = 4


class BrowseError(Exception):
    """A terminal, user-facing failure; the user restarts from /markets"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


def total_pages(count, page_size=config.PAGE_SIZE):
    return math.ceil(count / page_size) if count > 0 else 0


def clamp_page(page, count, page_size=config.PAGE_SIZE):
    last = max(total_pages(count, page_size) - 1, 0)
    return max(0, min(page, last))


@dataclass
class Page:
    markets: List[Market]
    title: str
    page: int
    total_pages: int
    start: int
    end: int
    count: int
    category: Optional[Category] = None

    @property
    def has_prev(self):
        return self.page > 0

    @property
    def has_next(self):
        return self.page < self.total_pages - 1


def paginate(markets, page, page_size=config.PAGE_SIZE, title="", category=None):
    """Slice one page out of a result set, clamping the page number"""
    count = len(markets)
    page = clamp_page(page, count, page_size)
    start = page * page_size
    end = min(start + page_size, count)
    return Page(
        markets=markets[start:end],
        title=title,
        page=page,
        total_pages=total_pages(count, page_size),
        start=start,
        end=end,
        count=count,
        category=category,
    )


@dataclass
class BetDetail:
    market_id: str
    market: Optional[Market]
    url: str


class MarketBrowser:
    """Drives one user's walk through categories, filters, pages and bets"""

    def __init__(self, client, cache, bridge, page_size=config.PAGE_SIZE, clock=None):
        self.client = client
        self.cache = cache
        self.bridge = bridge
        self.page_size = page_size
        # Optional callable returning "now" for the timing filters
        self._clock = clock

    def _now(self):
        return self._clock() if self._clock else None

    async def _fetch(self, category):
        try:
            markets = await self.client.fetch_all_markets(category.tag_id)
        except FetchError as e:
            logger.error(f"Error fetching {category.label} markets: {e}")
            raise BrowseError("❌ Failed to load markets. Please try again later.") from e
        if not markets:
            raise BrowseError(f"📭 No active {category.label} markets found. Try again later!")
        return markets

    async def select_category(self, user_id, category):
        """
        Fetch a category and move to the next state.

        Basketball stops at the sub-type menu with the raw list cached; the
        other categories are filtered now and wait for a keyword.
        """
        if category is None:
            raise BrowseError("❌ Unknown market category. Please run /markets again.")

        logger.info(f"Fetching markets for category: {category.label} (tag_id: {category.tag_id})")
        markets = await self._fetch(category)

        if category is Category.BASKETBALL:
            self.cache.put(user_id, BASKETBALL_ALL_KEY, CacheEntry(
                markets=markets, label=category.label,
                kind=EntryKind.ALL_MARKETS, category=category,
            ))
            return BrowseState.BASKETBALL_TYPE_SELECT

        filtered = filter_category_markets(markets, category, now=self._now())
        if not filtered:
            raise BrowseError(
                f"📭 No qualifying {category.label} markets found. "
                f"Markets may have wide spreads or be expired."
            )
        self.cache.put(user_id, PENDING_KEY, CacheEntry(
            markets=filtered, label=category.label,
            kind=EntryKind.PENDING_KEYWORD, category=category,
        ))
        return BrowseState.KEYWORD_PROMPT

    def select_basketball_type(self, user_id, market_type):
        if market_type is None:
            raise BrowseError("❌ Unknown NBA market type. Please run /markets again.")

        cached = self.cache.get(user_id, BASKETBALL_ALL_KEY)
        if cached is None:
            raise BrowseError("❌ NBA market data expired. Please run /markets again.")

        filtered = filter_basketball_markets(cached.markets, market_type, now=self._now())
        if not filtered:
            raise BrowseError(f"📭 No qualifying NBA {market_type.key} markets found.")

        self.cache.put(user_id, PENDING_KEY, CacheEntry(
            markets=filtered, label=f"NBA {market_type.label}",
            kind=EntryKind.PENDING_KEYWORD, category=Category.BASKETBALL,
            market_type=market_type,
        ))
        return BrowseState.KEYWORD_PROMPT

    def pending_label(self, user_id):
        pending = self.cache.get(user_id, PENDING_KEY)
        return pending.label if pending else None

    def apply_keyword(self, user_id, keyword):
        """Filter the pending list by keyword, cache it as the result set and return page 0"""
        pending = self.cache.get(user_id, PENDING_KEY)
        if pending is None:
            raise BrowseError(EXPIRED_MESSAGE)

        keyword = (keyword or '').strip()
        results = filter_by_keyword(pending.markets, keyword)
        if not results:
            raise BrowseError(
                f"📭 No {pending.label} markets match '{keyword}'. Run /markets to start over."
            )

        label = pending.label if is_match_all(keyword) else f"{pending.label} · {keyword}"
        logger.info(f"Keyword '{keyword}' kept {len(results)} of {len(pending.markets)} markets")

        self.cache.put(user_id, pending.label, CacheEntry(
            markets=results, label=label, kind=EntryKind.RESULTS,
            category=pending.category, market_type=pending.market_type, keyword=keyword,
        ))
        return paginate(results, 0, self.page_size, title=label, category=pending.category)

    def show_page(self, user_id, page):
        """Serve a page of the user's latest result set straight from the cache"""
        cached = self.cache.find_latest(user_id, kind=EntryKind.RESULTS)
        if cached is None:
            raise BrowseError(EXPIRED_MESSAGE)
        return paginate(cached.markets, page, self.page_size,
                        title=cached.label, category=cached.category)

    def turn_page(self, user_id, direction, current_page):
        step = 1 if direction == 'next' else -1
        return self.show_page(user_id, current_page + step)

    async def bet_detail(self, user, guild, market_id, context=None):
        """Re-fetch the market live and exchange it for a betting link"""
        market = await self.client.get_market_by_id(market_id)
        if market is None:
            logger.warning(f"Live data unavailable for market {market_id}")
            session_market = Market(id=market_id, question='Unknown Market')
        elif not market.question and not market.title:
            session_market = Market(id=market.id or market_id, question='Unknown Market')
        else:
            session_market = market
        url = await self.bridge.create_session(user, guild, session_market, context)
        return BetDetail(market_id=market_id, market=market, url=url)

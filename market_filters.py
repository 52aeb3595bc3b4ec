"""
Market filtering pipeline.

Every stage takes a list of Markets and returns a new list in the same order.
Stages never reorder and never raise on bad records; a record that cannot be
judged is dropped (or kept, for the generic no-timing case).
"""

import logging
import re
from datetime import datetime, timedelta, timezone

from categories import Category, BasketballMarketType

logger = logging.getLogger(__name__)

MAX_SPREAD = 0.05

# Markets that skip the timing, spread and outcome-shape checks
SPECIAL_CONDITION_IDS = frozenset({
    '0x6edc6c77c16ef3ba1bcd646159f12f8b8a39528e500dcff95b9220ccfbb75141',  # OKC Thunder Finals
    '0xf2a89afeddff5315e37211b0b0e4e93ed167fba2694cd35c252672d0aca73711',
})

BASKETBALL_LOOKBACK = timedelta(hours=24)
GENERIC_LOOKBACK = timedelta(hours=2)

_VS_PATTERN = re.compile(r"(.+?)\s+vs\s+(.+?)(\s|$)", re.IGNORECASE)


def _now(now):
    return now or datetime.now(timezone.utc)


def is_special(market):
    return market.condition_id in SPECIAL_CONDITION_IDS


def is_binary(market):
    return market.outcomes is not None and len(market.outcomes) == 2


def filter_future_markets_basketball(markets, now=None):
    """Keep tight-spread games starting no earlier than 24h ago"""
    threshold = _now(now) - BASKETBALL_LOOKBACK
    kept = []
    for market in markets:
        if is_special(market):
            logger.debug(f"Including special market {market.id}")
            kept.append(market)
            continue
        if market.spread > MAX_SPREAD:
            continue
        if market.game_start_time is None:
            continue
        if market.game_start_time >= threshold:
            kept.append(market)
    return kept


def filter_future_markets_generic(markets, now=None):
    """
    Keep tight-spread markets that have not finished.

    Uses the game start (with a 2h look-back) when it parses, then the end
    date (strictly in the future), and keeps markets with no timing at all.
    """
    now = _now(now)
    threshold = now - GENERIC_LOOKBACK
    kept = []
    for market in markets:
        if market.spread > MAX_SPREAD:
            continue
        if market.game_start_time is not None:
            if market.game_start_time >= threshold:
                kept.append(market)
        elif market.end_date is not None:
            if market.end_date > now:
                kept.append(market)
        else:
            kept.append(market)
    return kept


FUTURE_FILTERS = {
    Category.BASKETBALL: filter_future_markets_basketball,
    Category.BASEBALL: filter_future_markets_generic,
    Category.HOCKEY: filter_future_markets_generic,
    Category.SOCCER: filter_future_markets_generic,
    Category.MMA: filter_future_markets_generic,
    Category.ESPORTS: filter_future_markets_generic,
}


def filter_future_markets(markets, category, now=None):
    return FUTURE_FILTERS[category](markets, now=now)


def filter_binary_markets(markets):
    """Keep markets with exactly two outcomes"""
    return [m for m in markets if is_special(m) or is_binary(m)]


def filter_moneyline_markets(markets):
    kept = []
    for market in markets:
        market_type = market.sports_market_type.lower()
        if not is_special(market) and market_type in ('spreads', 'totals'):
            continue
        if is_binary(market):
            kept.append(market)
    return kept


def filter_over_under_markets(markets):
    return [
        m for m in markets
        if m.sports_market_type.lower() == 'totals' and m.spread <= MAX_SPREAD
    ]


def filter_spread_markets(markets):
    return [
        m for m in markets
        if m.sports_market_type.lower() == 'spreads' and m.spread <= MAX_SPREAD
    ]


BASKETBALL_TYPE_FILTERS = {
    BasketballMarketType.MONEYLINE: filter_moneyline_markets,
    BasketballMarketType.OVER_UNDER: filter_over_under_markets,
    BasketballMarketType.SPREAD: filter_spread_markets,
}


def get_event_title(market):
    """'A vs B' when the question names a matchup, else its first 50 characters"""
    question = market.question or market.title or ''
    match = _VS_PATTERN.search(question)
    if match:
        return f"{match.group(1).strip()} vs {match.group(2).strip()}"
    return question[:50]


def is_match_all(keyword):
    keyword = (keyword or '').strip()
    return not keyword or keyword.lower() == 'all'


def filter_by_keyword(markets, keyword):
    """Case-insensitive substring match on question, title and event title"""
    if is_match_all(keyword):
        return list(markets)
    needle = keyword.strip().lower()
    kept = []
    for market in markets:
        haystack = f"{market.question} {market.title} {get_event_title(market)}".lower()
        if needle in haystack:
            kept.append(market)
    return kept


def filter_category_markets(markets, category, now=None):
    """Timing/spread then outcome-shape stages for a category"""
    filtered = filter_future_markets(markets, category, now=now)
    filtered = filter_binary_markets(filtered)
    logger.info(f"Filtered {len(markets)} {category.label} markets down to {len(filtered)}")
    return filtered


def filter_basketball_markets(markets, market_type, now=None):
    filtered = filter_category_markets(markets, Category.BASKETBALL, now=now)
    filtered = BASKETBALL_TYPE_FILTERS[market_type](filtered)
    logger.info(f"Filtered NBA {market_type.key} markets: {len(filtered)}")
    return filtered

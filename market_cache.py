"""
Per-user market cache.

Holds the market lists a user is browsing, keyed by (user id, label). The
cache is process memory only; entries expire after `max_age` seconds and the
oldest entries are dropped once `max_entries` is exceeded.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import config
from categories import Category, BasketballMarketType
from markets import Market

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    ALL_MARKETS = "all"           # unfiltered basketball list awaiting a sub-type
    PENDING_KEYWORD = "pending"   # filtered list awaiting a keyword
    RESULTS = "results"           # paged result set


@dataclass
class CacheEntry:
    markets: List[Market]
    label: str
    kind: EntryKind
    category: Optional[Category] = None
    market_type: Optional[BasketballMarketType] = None
    keyword: str = ""
    created_at: float = field(default=0.0)


class MarketCache:
    def __init__(self, max_age=config.MARKET_CACHE_MAX_AGE,
                 max_entries=config.MARKET_CACHE_MAX_ENTRIES, clock=time.monotonic):
        self.max_age = max_age
        self.max_entries = max_entries
        self._clock = clock
        self._entries = OrderedDict()

    def __len__(self):
        return len(self._entries)

    def _expired(self, entry):
        return self.max_age is not None and self._clock() - entry.created_at > self.max_age

    def put(self, user_id, key, entry):
        """Store an entry, replacing any previous one under the same key"""
        cache_key = (str(user_id), key)
        entry.created_at = self._clock()
        self._entries.pop(cache_key, None)
        self._entries[cache_key] = entry

        while self.max_entries and len(self._entries) > self.max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.info(f"Market cache full, evicted {evicted_key}")
        return entry

    def get(self, user_id, key):
        cache_key = (str(user_id), key)
        entry = self._entries.get(cache_key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[cache_key]
            logger.info(f"Market cache entry {cache_key} expired")
            return None
        return entry

    def find_latest(self, user_id, kind=None):
        """Most recently written live entry for a user, optionally of one kind"""
        user_id = str(user_id)
        for (owner, key), entry in reversed(list(self._entries.items())):
            if owner != user_id:
                continue
            if kind is not None and entry.kind is not kind:
                continue
            if self._expired(entry):
                continue
            return entry
        return None

    def evict_expired(self):
        """Drop every expired entry, returns how many were removed"""
        stale = [key for key, entry in self._entries.items() if self._expired(entry)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info(f"Evicted {len(stale)} expired market cache entries")
        return len(stale)

    def clear_user(self, user_id):
        user_id = str(user_id)
        for key in [k for k in self._entries if k[0] == user_id]:
            del self._entries[key]

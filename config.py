import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")


def env_int(name, default, minimum=1):
    """Integer setting from the environment, never below `minimum`"""
    return max(minimum, int(os.getenv(name, str(default))))


# Upstream services
POLYMARKET_API_URL = os.getenv("POLYMARKET_API_URL", "https://gamma-api.polymarket.com")
SESSION_API_URL = os.getenv("SESSION_API_URL", "http://localhost:3000")
UI_DOMAIN = os.getenv("UI_DOMAIN", "http://localhost:3000")
FALLBACK_MARKET_URL = "https://polymarket.com/event"

# Market fetching
BATCH_LIMIT = 1000
MAX_ATTEMPTS = 2
RETRY_DELAY = 1.0  # seconds between attempts
PAGE_DELAY = 0.5  # seconds between pages, keeps us under the rate limit
REQUEST_TIMEOUT = 10
SESSION_LOOKUP_TIMEOUT = 5

# Browsing
PAGE_SIZE = env_int("MARKETS_PAGE_SIZE", 5)
MARKET_CACHE_MAX_AGE = float(os.getenv("MARKET_CACHE_MAX_AGE", "1800"))
MARKET_CACHE_MAX_ENTRIES = env_int("MARKET_CACHE_MAX_ENTRIES", 1000)
CACHE_SWEEP_INTERVAL = 300

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level=LOG_LEVEL):
    """Configure root logging once at startup"""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, level.upper(), logging.INFO)
    )
    # httpx logs every Telegram poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

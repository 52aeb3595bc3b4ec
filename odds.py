import math
from datetime import datetime
from zoneinfo import ZoneInfo

from markets import parse_timestamp

DISPLAY_TIMEZONE = ZoneInfo("America/New_York")
DISPLAY_TIMEZONE_LABEL = "EST"


def _round_half_up(value):
    return math.floor(value + 0.5)


def decimal_to_american_odds(probability):
    """Convert a decimal probability (0-1) to American odds, e.g. 0.25 -> '+300'"""
    if probability > 0.5:
        odds = _round_half_up(-100 * probability / (1 - probability))
        return str(odds)
    odds = _round_half_up(100 * (1 - probability) / probability)
    return f"+{odds}"


def calculate_european_odds(share_price):
    """Decimal (European) odds to two places, 'N/A' when they cannot be computed"""
    try:
        odds = _round_half_up(100 / float(share_price)) / 100
    except (ZeroDivisionError, TypeError, ValueError, OverflowError):
        return 'N/A'
    return f"{odds:.2f}".rstrip('0').rstrip('.')


def safe_american_odds(probability):
    """American odds, or 'N/A' for prices where the conversion is undefined"""
    if probability is None or not 0 < probability < 1:
        return 'N/A'
    return decimal_to_american_odds(probability)


def format_volume(volume):
    if not volume:
        return 'N/A'
    try:
        num = float(volume)
    except (TypeError, ValueError):
        return 'N/A'
    if num >= 1_000_000:
        return f"${num / 1_000_000:.1f}M"
    elif num >= 1_000:
        return f"${num / 1_000:.1f}K"
    return f"${num:.0f}"


def format_date(value):
    """'Jun 12, 08:30 PM EST' in New York time, 'TBD' if missing or unparseable"""
    if isinstance(value, datetime):
        moment = value
    else:
        moment = parse_timestamp(value)
    if moment is None:
        return 'TBD'
    local = moment.astimezone(DISPLAY_TIMEZONE)
    return f"{local:%b} {local.day}, {local:%I:%M %p} {DISPLAY_TIMEZONE_LABEL}"

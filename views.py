"""Message text (Telegram HTML) and inline keyboards for the markets flow"""

import html

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from categories import Category, BasketballMarketType, outcome_emojis
from market_filters import get_event_title
from odds import (
    calculate_european_odds,
    format_date,
    format_volume,
    safe_american_odds,
)

BET_BUTTONS_PER_ROW = 5
DIVIDER = "━━━━━━━━━━━━━━"


def esc(text):
    return html.escape(str(text), quote=False)


def category_menu():
    text = "📊 <b>Polymarket Categories</b>\n"
    text += f"{DIVIDER}\n"
    text += "Select a category to view available betting markets:\n\n"
    for category in Category:
        text += f"{category.emoji} <b>{esc(category.label)}</b> - {category.blurb}\n"

    keyboard = [
        [InlineKeyboardButton(f"{category.emoji} {category.label}",
                              callback_data=f"category_{category.name}")]
        for category in Category
    ]
    return text, InlineKeyboardMarkup(keyboard)


def basketball_type_menu():
    text = "🏀 <b>NBA Market Types</b>\n"
    text += "Select the type of NBA markets you want to view:\n\n"
    for market_type in BasketballMarketType:
        text += f"{market_type.emoji} <b>{market_type.label}</b> - {market_type.blurb}\n"

    row = [
        InlineKeyboardButton(f"{t.emoji} {t.label}", callback_data=f"nba_type_{t.key}")
        for t in BasketballMarketType
    ]
    return text, InlineKeyboardMarkup([row])


def keyword_prompt(label):
    text = f"🔍 <b>{esc(label)}</b>\n\n"
    text += "Reply with a team, player or keyword to narrow the list,\n"
    text += "or tap <b>Show all</b> to browse every market."
    keyboard = InlineKeyboardMarkup([
        [InlineKeyboardButton("📋 Show all", callback_data="keyword_all")]
    ])
    return text, keyboard


def market_summary(market, category=None):
    """Outcome odds, game time, volume and line for one listing"""
    lines = []
    outcomes = market.outcomes or []
    prices = market.outcome_prices or []

    if len(outcomes) >= 2 and len(prices) >= 2:
        first, second = outcome_emojis(category)
        lines.append(
            f"{first} <b>{esc(outcomes[0])}:</b> {safe_american_odds(prices[0])} | "
            f"{second} <b>{esc(outcomes[1])}:</b> {safe_american_odds(prices[1])}"
        )

    details = []
    if market.game_start_time:
        details.append(f"🗓️ Game: {format_date(market.game_start_time)}")
    if market.volume:
        details.append(f"💰 Volume: {format_volume(market.volume)}")
    if details:
        lines.append(" | ".join(details))

    market_type = market.sports_market_type.lower()
    if market.line is not None:
        if market_type == 'totals':
            lines.append(f"📊 Total Line: {market.line:g}")
        elif market_type == 'spreads':
            lines.append(f"📏 Spread: {market.line:g}")

    return "\n".join(lines) or "Market data loading..."


def page_text(page):
    emoji = page.category.emoji if page.category else "📊"
    text = f"{emoji} <b>{esc(page.title)} Markets</b>\n"
    text += f"Showing {page.start + 1}-{page.end} of {page.count} markets\n"
    text += f"{DIVIDER}\n\n"
    for index, market in enumerate(page.markets, start=page.start + 1):
        text += f"<b>{index}. {esc(get_event_title(market))}</b>\n"
        text += f"{market_summary(market, page.category)}\n\n"
    text += f"<i>Page {page.page + 1} of {page.total_pages}</i>"
    return text


def page_keyboard(page, owner_id):
    """Bet buttons in rows, then Previous/Next tagged with the owning user id"""
    rows = []
    bet_buttons = [
        InlineKeyboardButton(f"💰 Bet {index}", callback_data=f"bet_{market.id}")
        for index, market in enumerate(page.markets, start=page.start + 1)
    ]
    for i in range(0, len(bet_buttons), BET_BUTTONS_PER_ROW):
        rows.append(bet_buttons[i:i + BET_BUTTONS_PER_ROW])

    navigation = []
    if page.has_prev:
        navigation.append(InlineKeyboardButton("⬅️ Previous", callback_data=f"page_prev_{owner_id}_{page.page}"))
    if page.has_next:
        navigation.append(InlineKeyboardButton("➡️ Next", callback_data=f"page_next_{owner_id}_{page.page}"))
    if navigation:
        rows.append(navigation)
    return InlineKeyboardMarkup(rows)


def odds_lines(market):
    if market is None:
        return 'Live odds unavailable.'
    outcomes = market.outcomes or []
    prices = market.outcome_prices or []
    if not outcomes or len(outcomes) != len(prices):
        return 'Live odds unavailable.'
    return "\n".join(
        f"• <b>{esc(outcome)}</b> - {safe_american_odds(price)} (EU {calculate_european_odds(price)})"
        for outcome, price in zip(outcomes, prices)
    )


def bet_detail(detail):
    market = detail.market
    question = (market.question or market.title) if market else None
    text = "🎯 <b>Live Market Odds</b>\n"
    text += f"{esc(question or 'Market Details')}\n"
    text += f"{DIVIDER}\n"
    text += f"📊 <b>Current Odds</b>\n{odds_lines(market)}\n\n"
    text += f"💰 Volume: {format_volume(market.volume if market else None)}\n"
    text += f"⏰ Ends: {format_date(market.end_date if market else None)}\n\n"
    text += "<i>Tap below to place your bet securely</i>"
    keyboard = InlineKeyboardMarkup([
        [InlineKeyboardButton("💰 Place Bet", url=detail.url)]
    ])
    return text, keyboard

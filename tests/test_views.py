from datetime import datetime, timezone

import views
from browse import BetDetail, paginate
from categories import Category
from markets import Market


def market(market_id, **kwargs):
    kwargs.setdefault("question", f"Team{market_id} vs Rival{market_id}")
    kwargs.setdefault("outcomes", ["Home", "Away"])
    kwargs.setdefault("outcome_prices", [0.6, 0.4])
    return Market(id=str(market_id), **kwargs)


def callbacks(keyboard):
    return [[button.callback_data for button in row] for row in keyboard.inline_keyboard]


def test_category_menu_lists_every_category():
    text, keyboard = views.category_menu()
    assert [row[0].callback_data for row in keyboard.inline_keyboard] == [
        f"category_{c.name}" for c in Category
    ]
    assert "FIFA Club World Cup" in text


def test_page_keyboard_rows_and_navigation():
    markets = [market(i) for i in range(23)]

    first = views.page_keyboard(paginate(markets, 0, 10), 42)
    assert callbacks(first) == [
        [f"bet_{i}" for i in range(0, 5)],
        [f"bet_{i}" for i in range(5, 10)],
        ["page_next_42_0"],
    ]

    middle = views.page_keyboard(paginate(markets, 1, 10), 42)
    assert callbacks(middle)[-1] == ["page_prev_42_1", "page_next_42_1"]

    last = views.page_keyboard(paginate(markets, 2, 10), 42)
    assert callbacks(last) == [["bet_20", "bet_21", "bet_22"], ["page_prev_42_2"]]


def test_single_page_has_no_navigation():
    keyboard = views.page_keyboard(paginate([market(1), market(2)], 0, 10), 42)
    assert callbacks(keyboard) == [["bet_1", "bet_2"]]


def test_page_text():
    page = paginate([market(i) for i in range(12)], 1, 10, title="MLB", category=Category.BASEBALL)
    text = views.page_text(page)
    assert text.startswith("⚾ <b>MLB Markets</b>")
    assert "Showing 11-12 of 12 markets" in text
    assert "<b>11. Team10 vs Rival10</b>" in text
    assert text.endswith("<i>Page 2 of 2</i>")


def test_market_summary():
    m = market(
        1,
        outcome_prices=[0.75, 0.25],
        volume=2_500_000,
        game_start_time=datetime(2025, 6, 13, 0, 30, tzinfo=timezone.utc),
        sports_market_type="totals",
        line=215.5,
    )
    summary = views.market_summary(m, Category.BASKETBALL)
    assert "🏀 <b>Home:</b> -300 | ⚔️ <b>Away:</b> +300" in summary
    assert "🗓️ Game: Jun 12, 08:30 PM EST | 💰 Volume: $2.5M" in summary
    assert "📊 Total Line: 215.5" in summary


def test_market_summary_spread_line_and_fallback():
    spread = market(1, sports_market_type="spreads", line=-4.5, outcome_prices=[0.5, 0.5])
    assert "📏 Spread: -4.5" in views.market_summary(spread)

    empty = Market(id="2", outcomes=None, outcome_prices=None)
    assert views.market_summary(empty) == "Market data loading..."


def test_text_is_html_escaped():
    page = paginate([market(1, question="<Cats> & Dogs")], 0, 10, title="R&D")
    text = views.page_text(page)
    assert "&lt;Cats&gt; &amp; Dogs" in text
    assert "R&amp;D Markets" in text


def test_odds_lines():
    assert views.odds_lines(None) == "Live odds unavailable."
    assert views.odds_lines(market(1, outcome_prices=[0.5])) == "Live odds unavailable."
    lines = views.odds_lines(market(1, outcome_prices=[0.8, 0.2]))
    assert "• <b>Home</b> - -400 (EU 1.25)" in lines
    assert "• <b>Away</b> - +400 (EU 5)" in lines


def test_bet_detail_view():
    detail = BetDetail(market_id="9", market=None, url="https://polymarket.com/event/9")
    text, keyboard = views.bet_detail(detail)
    assert "Market Details" in text
    assert "Live odds unavailable." in text
    assert "⏰ Ends: TBD" in text
    button = keyboard.inline_keyboard[0][0]
    assert button.url == "https://polymarket.com/event/9"

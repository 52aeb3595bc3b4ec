from enum import Enum


class Category(Enum):
    """Browsable market categories mapped to their upstream tag ids"""
    BASKETBALL = ("NBA", 745, "🏀", "Basketball games and futures")
    BASEBALL = ("MLB", 100381, "⚾", "Baseball games and futures")
    HOCKEY = ("NHL", 899, "🏒", "Hockey games and futures")
    SOCCER = ("FIFA Club World Cup", 102192, "⚽", "International football")
    MMA = ("UFC", 279, "🥊", "Mixed martial arts")
    ESPORTS = ("ESPORTS", 64, "🎮", "Gaming competitions")

    def __init__(self, label, tag_id, emoji, blurb):
        self.label = label
        self.tag_id = tag_id
        self.emoji = emoji
        self.blurb = blurb

    @classmethod
    def from_key(cls, key):
        """Look up a category by enum name, returns None if unknown"""
        try:
            return cls[key]
        except KeyError:
            return None


class BasketballMarketType(Enum):
    """Basketball sub-types the user picks from before the keyword prompt"""
    MONEYLINE = ("moneyline", "Moneyline", "💰", "Straight win/loss bets")
    OVER_UNDER = ("overunder", "Over/Under", "📊", "Total points markets")
    SPREAD = ("spread", "Spread", "📏", "Point spread markets")

    def __init__(self, key, label, emoji, blurb):
        self.key = key
        self.label = label
        self.emoji = emoji
        self.blurb = blurb

    @classmethod
    def from_key(cls, key):
        for market_type in cls:
            if market_type.key == key:
                return market_type
        return None


# Emojis used on outcome lines, (first outcome, second outcome)
OUTCOME_EMOJIS = {
    Category.BASKETBALL: ("🏀", "⚔️"),
    Category.BASEBALL: ("⚾", "⚾"),
    Category.HOCKEY: ("🏒", "🏒"),
    Category.SOCCER: ("⚽", "⚽"),
    Category.MMA: ("🥊", "🥊"),
    Category.ESPORTS: ("🎮", "🎮"),
}
DEFAULT_OUTCOME_EMOJIS = ("🔥", "🔥")


def outcome_emojis(category):
    return OUTCOME_EMOJIS.get(category, DEFAULT_OUTCOME_EMOJIS)

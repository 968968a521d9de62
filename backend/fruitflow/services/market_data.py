"""Illustrative fruit market prices shown on the dashboard."""

from fruitflow.schemas.ai import MarketQuote

_QUOTES = [
    ("Apples", "$2.50/kg", "+1.2%", "up"),
    ("Bananas", "$0.80/kg", "-0.5%", "down"),
    ("Oranges", "$3.10/kg", "+2.0%", "up"),
    ("Grapes", "$4.50/kg", "0.0%", "stable"),
    ("Mangoes", "$5.20/kg", "+3.5%", "up"),
    ("Pears", "$2.80/kg", "-1.1%", "down"),
]


def get_market_quotes() -> list[MarketQuote]:
    return [
        MarketQuote(fruit_name=name, price=price, change=change, trend=trend)
        for name, price, change, trend in _QUOTES
    ]

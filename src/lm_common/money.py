"""Integer money utilities.

All prices are int minor units of the listing currency (kobo for NGN,
cents for USD). No float, no Decimal.
"""

_CURRENCY_SYMBOLS = {
    "NGN": "₦",
    "GHS": "GH₵",
    "KES": "KSh",
    "USD": "$",
}


def validate_price(amount: int) -> None:
    """Listing prices are strictly positive."""
    if amount <= 0:
        raise ValueError(f"Price must be > 0, got {amount}")


def format_price(amount: int, currency: str) -> str:
    """Render minor units for display: (650000, 'NGN') -> '₦6,500.00'."""
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), currency.upper() + " ")
    if amount < 0:
        abs_amount = -amount
        return f"-{symbol}{abs_amount // 100:,}.{abs_amount % 100:02d}"
    return f"{symbol}{amount // 100:,}.{amount % 100:02d}"


def price_band(market_price: int, spread_bps: int) -> tuple[int, int]:
    """Propose a (min, max) range around a market price.

    Floor rounds down, ceiling rounds up (integer ceiling: (a + b - 1) // b),
    so the band always contains the market price. The floor never drops
    below 1 minor unit.
    """
    validate_price(market_price)
    if spread_bps < 0:
        raise ValueError(f"spread_bps must be >= 0, got {spread_bps}")
    down = market_price * spread_bps // 10000
    up = (market_price * spread_bps + 9999) // 10000
    return max(1, market_price - down), market_price + up

"""Integer arithmetic utilities for cents-based money.

All prices, fees and payouts use int (minor units). No float, no Decimal.
Percentages that only exist for display may be floats; amounts never are.
"""

_CURRENCY_SYMBOLS = {
    "NGN": "₦",
    "USD": "$",
    "GBP": "£",
    "EUR": "€",
}


def cents_to_display(cents: int, currency_code: str = "NGN") -> str:
    """Convert cents to display string: 150000 -> '₦1,500.00', -1200 -> '-₦12.00'."""
    symbol = _CURRENCY_SYMBOLS.get(currency_code.upper(), f"{currency_code.upper()} ")
    if cents < 0:
        abs_cents = -cents
        return f"-{symbol}{abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"{symbol}{cents // 100:,}.{cents % 100:02d}"


def apply_bps(amount: int, bps: int) -> int:
    """Floor of amount x bps / 10000.

    Floor rounding: 1.5% of 9,999,999 is 149,999 (not 150,000).
    """
    if amount == 0 or bps == 0:
        return 0
    return (amount * bps) // 10000

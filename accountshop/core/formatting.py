# accountshop/core/formatting.py
from datetime import timedelta


def format_price(price: float) -> str:
    """Mozambican metical, e.g. 1500 -> "1.500,00 MT"."""
    whole = f"{price:,.2f}"  # 1,500.00
    swapped = whole.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{swapped} MT"


def format_countdown(remaining: timedelta) -> str:
    """Session countdown as MM:SS."""
    total = max(0, int(remaining.total_seconds()))
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"

"""Display formatting for money, dates, percentages and file sizes.

These mirror the en-US renderings the dashboards and report exports show:

    format_currency(1234.5)           → "$1,234.50"
    format_currency(-80, "EUR")       → "-€80.00"
    format_date("2024-03-05")         → "Mar 5, 2024"
    format_date(d, "short")           → "03/05/2024"
    format_file_size(2_500_000)       → "2.4 MB"
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

# Currencies rendered without minor units
_ZERO_DECIMAL = {"JPY"}

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _to_decimal(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot format {value!r} as a number") from None


def format_currency(amount, currency: str = "USD") -> str:
    """Render ``amount`` with a currency symbol and thousands separators."""
    currency = (currency or "USD").upper()
    places = Decimal("1") if currency in _ZERO_DECIMAL else Decimal("0.01")
    value = _to_decimal(amount).quantize(places, rounding=ROUND_HALF_UP)

    sign = "-" if value < 0 else ""
    digits = 0 if currency in _ZERO_DECIMAL else 2
    body = f"{abs(value):,.{digits}f}"

    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol is None:
        return f"{sign}{currency} {body}"
    return f"{sign}{symbol}{body}"


def _coerce_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Cannot format {value!r} as a date") from None


def format_date(value, fmt: str = "medium") -> str:
    """Render a date in one of ``short``, ``medium``, ``long`` or ``iso``.

    Empty input renders as an empty string.
    """
    if value is None or value == "":
        return ""
    d = _coerce_date(value)
    if fmt == "short":
        return f"{d.month:02d}/{d.day:02d}/{d.year}"
    if fmt == "long":
        return f"{_MONTHS[d.month - 1]} {d.day}, {d.year}"
    if fmt == "iso":
        return d.isoformat()
    if fmt == "medium":
        return f"{_MONTHS[d.month - 1][:3]} {d.day}, {d.year}"
    raise ValueError(f"Unknown date format: {fmt}")


def format_percent(value, digits: int = 0) -> str:
    if value is None:
        return ""
    quant = Decimal(1).scaleb(-digits)
    rounded = _to_decimal(value).quantize(quant, rounding=ROUND_HALF_UP)
    return f"{rounded}%"


def format_file_size(num_bytes) -> str:
    """Human-readable size using 1024 steps (B, KB, MB, GB)."""
    if not num_bytes:
        return "0 B"
    size = float(num_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"

"""Currency utilities — cent rounding and static conversion between currencies."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

# Static exchange rates to USD (can be updated periodically)
EXCHANGE_RATES_TO_USD: dict[str, Decimal] = {
    "USD": Decimal("1.0"),
    "CAD": Decimal("0.74"),
    "GBP": Decimal("1.27"),
    "EUR": Decimal("1.08"),
    "JPY": Decimal("0.0067"),
    "AUD": Decimal("0.65"),
    "SGD": Decimal("0.75"),
    "HKD": Decimal("0.13"),
    "INR": Decimal("0.012"),
    "AED": Decimal("0.27"),
    "QAR": Decimal("0.27"),
    "TRY": Decimal("0.031"),
    "KRW": Decimal("0.00074"),
    "THB": Decimal("0.028"),
    "CHF": Decimal("1.13"),
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$", "CAD": "CA$", "GBP": "£", "EUR": "€",
    "JPY": "¥", "AUD": "A$", "SGD": "S$", "HKD": "HK$",
    "INR": "₹", "AED": "AED", "QAR": "QAR", "TRY": "TRY",
    "KRW": "₩", "THB": "฿", "CHF": "CHF ",
}


def to_decimal(value) -> Decimal:
    """Coerce provider amounts (str / int / float / Decimal) without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(amount) -> Decimal:
    """Round to cents, half-up."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def convert(amount, from_currency: str, to_currency: str) -> Decimal:
    """Convert between two currencies through USD using static rates."""
    amount = to_decimal(amount)
    if from_currency == to_currency:
        return quantize(amount)
    from_rate = EXCHANGE_RATES_TO_USD.get(from_currency, Decimal("1.0"))
    to_rate = EXCHANGE_RATES_TO_USD.get(to_currency, Decimal("1.0"))
    if to_rate == 0:
        return quantize(amount)
    return quantize(amount * from_rate / to_rate)


def convert_to_usd(amount, from_currency: str) -> Decimal:
    """Convert an amount to USD using static exchange rates."""
    return convert(amount, from_currency, "USD")


def format_price(amount, currency: str = "USD") -> str:
    """Format a price with currency symbol for display."""
    symbol = CURRENCY_SYMBOLS.get(currency, currency + " ")
    return f"{symbol}{round(to_decimal(amount)):,}"

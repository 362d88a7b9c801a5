from decimal import ROUND_HALF_UP, Decimal

from paylink.errors import BadRequest

# Minimum charge per currency, in minor units
MINIMUM_AMOUNTS = {
    "usd": 50,
    "eur": 50,
    "gbp": 30,
    "cad": 50,
    "aud": 50,
    "chf": 50,
    "nzd": 50,
    "sgd": 50,
    "hkd": 400,
    "mxn": 1000,
    "jpy": 50,
    "krw": 500,
}

ZERO_DECIMAL_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})


def to_minor_units(amount, currency: str) -> int:
    """Convert a major-unit price (``Decimal("19.99")``) to gateway minor units (1999)."""
    value = Decimal(str(amount))
    if currency.lower() not in ZERO_DECIMAL_CURRENCIES:
        value = value * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_amount(amount: int, currency: str) -> None:
    currency = currency.lower()
    if currency not in MINIMUM_AMOUNTS and currency not in ZERO_DECIMAL_CURRENCIES:
        raise BadRequest(f"Unsupported currency: {currency.upper()}")
    minimum = MINIMUM_AMOUNTS.get(currency, 1)
    if amount < minimum:
        raise BadRequest(f"Amount must be at least {minimum} {currency.upper()} minor units, got {amount}")

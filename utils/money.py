from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from utils.errors import InvalidInput

PAISE = Decimal("100")


def parse_amount(value) -> Decimal:
    """
    Accepts a JSON number or numeric string and returns a positive Decimal
    quantized to 2 places. Floats go through str() so 499.5 stays 499.50.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput("amount is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput("amount must be a number")
    if not amount.is_finite():
        raise InvalidInput("amount must be positive")
    # positivity holds for the rounded value, not the raw input
    amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise InvalidInput("amount must be positive")
    return amount


def to_paise(amount) -> int:
    """Rupees -> integer paise, rounded half-up. This is what the gateway charges."""
    return int((Decimal(str(amount)) * PAISE).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_paise(paise: int) -> Decimal:
    return (Decimal(int(paise)) / PAISE).quantize(Decimal("0.01"))

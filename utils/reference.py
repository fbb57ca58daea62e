import secrets
from datetime import datetime, timezone


def new_payment_reference(now: datetime = None) -> str:
    """PAY-<YYYYMMDD>-<8 hex>. Used as the gateway receipt and for human lookups."""
    now = now or datetime.utcnow()
    return f"PAY-{now:%Y%m%d}-{secrets.token_hex(4).upper()}"


def epoch_to_datetime(value):
    """Gateway timestamps are unix seconds; the ledger stores naive UTC."""
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)

"""
Typed view of the Razorpay webhook events this service acts on.

``parse_event`` maps the JSON body onto one dataclass per event family,
each carrying only the fields its handler reads. Event names outside
``KNOWN_EVENTS`` parse to ``None``; a known event with missing fields
raises ``MalformedEvent``.
"""
from dataclasses import dataclass, field
from typing import Optional

PAYMENT_CAPTURED = "payment.captured"
PAYMENT_FAILED = "payment.failed"
SUBSCRIPTION_ACTIVATED = "subscription.activated"
SUBSCRIPTION_CHARGED = "subscription.charged"
SUBSCRIPTION_CANCELLED = "subscription.cancelled"
SUBSCRIPTION_EXPIRED = "subscription.expired"
SUBSCRIPTION_PAUSED = "subscription.paused"
SUBSCRIPTION_RESUMED = "subscription.resumed"

PAYMENT_EVENTS = (PAYMENT_CAPTURED, PAYMENT_FAILED)
SUBSCRIPTION_STATE_EVENTS = (
    SUBSCRIPTION_ACTIVATED, SUBSCRIPTION_CANCELLED, SUBSCRIPTION_EXPIRED,
    SUBSCRIPTION_PAUSED, SUBSCRIPTION_RESUMED,
)
KNOWN_EVENTS = PAYMENT_EVENTS + SUBSCRIPTION_STATE_EVENTS + (SUBSCRIPTION_CHARGED,)


class MalformedEvent(ValueError):
    pass


@dataclass(frozen=True)
class PaymentEvent:
    name: str
    payment_id: str
    order_id: Optional[str]
    notes_type: Optional[str]
    amount_paise: Optional[int] = None


@dataclass(frozen=True)
class SubscriptionEvent:
    name: str
    subscription_id: str
    current_start: Optional[int] = None
    charge_at: Optional[int] = None


@dataclass(frozen=True)
class SubscriptionChargedEvent:
    subscription_id: str
    payment_id: str
    amount_paise: int
    charge_at: Optional[int] = None
    name: str = field(default=SUBSCRIPTION_CHARGED)


def _entity(body: dict, key: str) -> dict:
    try:
        entity = body["payload"][key]["entity"]
    except (KeyError, TypeError):
        raise MalformedEvent(f"missing payload.{key}.entity")
    if not isinstance(entity, dict):
        raise MalformedEvent(f"payload.{key}.entity is not an object")
    return entity


def _required(entity: dict, key: str, where: str):
    value = entity.get(key)
    if value in (None, ""):
        raise MalformedEvent(f"missing {where}.{key}")
    return value


def parse_event(body: dict):
    if not isinstance(body, dict):
        raise MalformedEvent("event body is not an object")
    name = body.get("event")
    if name not in KNOWN_EVENTS:
        return None

    if name in PAYMENT_EVENTS:
        payment = _entity(body, "payment")
        notes = payment.get("notes") if isinstance(payment.get("notes"), dict) else {}
        return PaymentEvent(
            name=name,
            payment_id=_required(payment, "id", "payment"),
            order_id=payment.get("order_id"),
            notes_type=notes.get("type"),
            amount_paise=payment.get("amount"),
        )

    subscription = _entity(body, "subscription")
    subscription_id = _required(subscription, "id", "subscription")

    if name == SUBSCRIPTION_CHARGED:
        payment = _entity(body, "payment")
        return SubscriptionChargedEvent(
            subscription_id=subscription_id,
            payment_id=_required(payment, "id", "payment"),
            amount_paise=int(_required(payment, "amount", "payment")),
            charge_at=subscription.get("charge_at"),
        )

    return SubscriptionEvent(
        name=name,
        subscription_id=subscription_id,
        current_start=subscription.get("current_start"),
        charge_at=subscription.get("charge_at"),
    )

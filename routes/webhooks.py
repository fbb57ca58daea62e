import json
from datetime import datetime

from flask import Blueprint, request, jsonify, current_app

from models import db
from models.subscription import Subscription
from models.status import DONATION
from security.signature import verify_webhook_signature
from utils.audit import log_event
from utils.errors import TransitionRefused
from utils.razorpay_client import require_secret
from utils.reconcile import (
    settle_donation, fail_donation, settle_payment, fail_payment, record_recurring_charge,
)
from utils.reference import epoch_to_datetime
from utils import webhook_events as ev

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")

SIGNATURE_HEADER = "X-Razorpay-Signature"


@webhook_bp.post("/razorpay")
def razorpay_webhook():
    secret = require_secret("RAZORPAY_WEBHOOK_SECRET")
    payload = request.get_data(cache=True)
    signature = request.headers.get(SIGNATURE_HEADER)

    if not signature:
        current_app.logger.warning("webhook without signature header")
        return jsonify(error="No signature provided"), 400
    if not verify_webhook_signature(secret, payload, signature):
        current_app.logger.warning("invalid webhook signature")
        log_event("SIGNATURE_REJECTED", source="webhook", metadata={"length": len(payload)})
        return jsonify(error="Invalid signature"), 400

    try:
        body = json.loads(payload)
    except ValueError:
        current_app.logger.error("webhook body is not JSON")
        return jsonify(error="Invalid JSON payload"), 400

    name = body.get("event") if isinstance(body, dict) else None
    current_app.logger.info("received webhook event %s", name)

    try:
        event = ev.parse_event(body)
    except ev.MalformedEvent as exc:
        # resending the same payload will never fix it
        current_app.logger.error("malformed %s webhook: %s", name, exc)
        return jsonify(received=True), 200

    if event is None:
        current_app.logger.info("ignoring unhandled webhook event %s", name)
        return jsonify(received=True), 200

    try:
        _dispatch(event)
    except TransitionRefused as exc:
        current_app.logger.warning("%s refused: %s", event.name, exc.message)
        log_event("TRANSITION_REFUSED", entity=exc.entity, source="webhook",
                  metadata={"event": event.name, "from": exc.current, "to": exc.target})

    return jsonify(received=True), 200


def _dispatch(event):
    if isinstance(event, ev.PaymentEvent):
        _handle_payment(event)
    elif isinstance(event, ev.SubscriptionChargedEvent):
        _handle_charged(event)
    else:
        _handle_subscription_state(event)


def _handle_payment(event: ev.PaymentEvent):
    if not event.order_id:
        current_app.logger.info("%s for payment %s has no order; skipping", event.name, event.payment_id)
        return

    is_donation = event.notes_type == DONATION
    if event.name == ev.PAYMENT_CAPTURED:
        if is_donation:
            row = settle_donation(event.order_id, event.payment_id, source="webhook")
        else:
            row = settle_payment(event.order_id, event.payment_id, plan_type=event.notes_type, source="webhook")
    else:
        if is_donation:
            row = fail_donation(event.order_id, event.payment_id, source="webhook")
        else:
            row = fail_payment(event.order_id, event.payment_id, source="webhook")

    if row is None:
        current_app.logger.warning("%s for unknown order %s (payment %s)", event.name, event.order_id, event.payment_id)


def _subscription(gateway_id: str):
    sub = Subscription.query.filter_by(razorpay_subscription_id=gateway_id).first()
    if sub is None:
        current_app.logger.warning("webhook for unknown subscription %s", gateway_id)
    return sub


def _handle_charged(event: ev.SubscriptionChargedEvent):
    sub = _subscription(event.subscription_id)
    if sub is None:
        return
    payment, created = record_recurring_charge(
        sub, event.payment_id, event.amount_paise, charge_at=event.charge_at, source="webhook")
    if not created:
        current_app.logger.info("duplicate subscription.charged for payment %s ignored", event.payment_id)


def _handle_subscription_state(event: ev.SubscriptionEvent):
    sub = _subscription(event.subscription_id)
    if sub is None:
        return

    now = datetime.utcnow()
    if event.name == ev.SUBSCRIPTION_ACTIVATED:
        changed = sub.activate(
            epoch_to_datetime(event.current_start) or now,
            next_billing_date=epoch_to_datetime(event.charge_at),
        )
    elif event.name == ev.SUBSCRIPTION_CANCELLED:
        changed = sub.cancel(now)
    elif event.name == ev.SUBSCRIPTION_EXPIRED:
        changed = sub.expire(now)
    elif event.name == ev.SUBSCRIPTION_PAUSED:
        changed = sub.pause()
    else:
        changed = sub.resume()

    if changed:
        db.session.commit()
        log_event(event.name.upper().replace(".", "_"), entity="subscription", entity_id=sub.id, source="webhook",
                  metadata={"razorpay_subscription_id": event.subscription_id, "status": sub.status})

"""
Ledger mutations shared by the checkout callback and the webhook.

Both entry points may see the same order, in either order, more than once.
Every function here is keyed by the gateway id, applies at most one status
transition and returns ``None`` when there is no matching row so the caller
decides whether that is an error (checkout callback) or just logged
(webhook).
"""
import calendar
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.donation import Donation
from models.payment import Payment
from models.subscription import Subscription
from models.status import MONTHLY, YEARLY, LIFETIME, PLAN_TYPES, SUCCESS, RECURRING_CHARGE
from utils.audit import log_event
from utils.emailer import email_configured, send_donation_receipt
from utils.money import from_paise
from utils.reference import new_payment_reference, epoch_to_datetime


def add_months(start: datetime, months: int) -> datetime:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def period_end(plan_type: str, start: datetime):
    if plan_type == MONTHLY:
        return add_months(start, 1)
    if plan_type == YEARLY:
        return add_months(start, 12)
    return None


def queue_donation_receipt(donation: Donation):
    if not donation.donor_email or donation.confirmation_email_sent_at:
        return
    if not email_configured():
        current_app.logger.info("email not configured; skipping receipt for donation %s", donation.id)
        return
    current_app.extensions["notifier"].submit(send_donation_receipt, donation.id)


def settle_donation(order_id: str, payment_id: str, signature: str = None, source: str = None):
    donation = Donation.query.filter_by(razorpay_order_id=order_id).first()
    if donation is None:
        return None

    changed = donation.mark_success(payment_id, signature)
    db.session.commit()
    if changed:
        log_event("DONATION_PAID", entity="donation", entity_id=donation.id, source=source,
                  metadata={"order_id": order_id, "payment_id": payment_id})
    queue_donation_receipt(donation)
    return donation


def fail_donation(order_id: str, payment_id: str, source: str = None):
    donation = Donation.query.filter_by(razorpay_order_id=order_id).first()
    if donation is None:
        return None
    if donation.mark_failed(payment_id):
        db.session.commit()
        log_event("DONATION_FAILED", entity="donation", entity_id=donation.id, source=source,
                  metadata={"order_id": order_id, "payment_id": payment_id})
    return donation


def activate_for_payment(payment: Payment, plan_type: str, source: str = None):
    """One-time membership order paid: the linked subscription becomes active now."""
    if not payment.subscription_id or plan_type not in PLAN_TYPES:
        return None
    subscription = db.session.get(Subscription, payment.subscription_id)
    if subscription is None:
        return None

    start = datetime.utcnow()
    end = None if plan_type == LIFETIME else period_end(plan_type, start)
    if subscription.activate(start, end_date=end, next_billing_date=None):
        db.session.commit()
        log_event("SUBSCRIPTION_ACTIVATED", entity="subscription", entity_id=subscription.id, source=source,
                  metadata={"payment_id": payment.id, "plan_type": plan_type})
    return subscription


def settle_payment(order_id: str, payment_id: str, plan_type: str = None, signature: str = None, source: str = None):
    payment = Payment.query.filter_by(razorpay_order_id=order_id).first()
    if payment is None:
        return None

    changed = payment.mark_success(payment_id, signature)
    db.session.commit()
    if changed:
        log_event("PAYMENT_PAID", entity="payment", entity_id=payment.id, source=source,
                  metadata={"order_id": order_id, "payment_id": payment_id})

    # stored type wins over what the caller or notes claim
    activate_for_payment(payment, payment.payment_type or plan_type, source=source)
    return payment


def fail_payment(order_id: str, payment_id: str, source: str = None):
    payment = Payment.query.filter_by(razorpay_order_id=order_id).first()
    if payment is None:
        return None
    if payment.mark_failed(payment_id):
        db.session.commit()
        log_event("PAYMENT_FAILED", entity="payment", entity_id=payment.id, source=source,
                  metadata={"order_id": order_id, "payment_id": payment_id})
    return payment


def record_recurring_charge(subscription: Subscription, payment_id: str, amount_paise: int,
                            charge_at=None, source: str = None):
    """
    subscription.charged: one success Payment per gateway payment id.

    Returns (payment, created). A redelivered event finds the existing row
    (or loses the unique-constraint race). The billing date only moves
    forward, so an older cycle delivered late leaves it alone.
    """
    payment = Payment.query.filter_by(razorpay_payment_id=payment_id).first()
    created = False
    if payment is None:
        payment = Payment(
            member_id=subscription.member_id,
            subscription_id=subscription.id,
            plan_id=subscription.plan_id,
            amount=from_paise(amount_paise),
            currency=current_app.config.get("CURRENCY", "INR"),
            razorpay_payment_id=payment_id,
            payment_status=SUCCESS,
            payment_type=RECURRING_CHARGE,
            payment_reference=new_payment_reference(),
        )
        db.session.add(payment)
        try:
            db.session.commit()
            created = True
        except IntegrityError:
            db.session.rollback()
            payment = Payment.query.filter_by(razorpay_payment_id=payment_id).first()

    # second write, separate commit (no cross-table transaction)
    next_billing = epoch_to_datetime(charge_at)
    current = subscription.next_billing_date
    if next_billing is not None and (current is None or next_billing > current):
        subscription.next_billing_date = next_billing
        subscription.updated_at = datetime.utcnow()
        db.session.commit()

    if created:
        log_event("SUBSCRIPTION_CHARGED", entity="payment", entity_id=payment.id, source=source,
                  metadata={"subscription_id": subscription.id, "payment_id": payment_id, "amount_paise": amount_paise})
    return payment, created

"""
Membership purchase flows.

A plan is bought either as a one-time gateway order (lifetime, or any plan
when autopay is off) or as a recurring gateway subscription backed by a
lazily created gateway plan.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.member import Member
from models.membership_plan import MembershipPlan
from models.payment import Payment
from models.subscription import Subscription
from models.status import LIFETIME, MONTHLY, PENDING, SUB_PENDING
from utils.audit import log_event
from utils.errors import RecordNotFound
from utils.money import to_paise
from utils.razorpay_client import get_gateway
from utils.reference import new_payment_reference


def member_for_user(user, create: bool = True):
    member = Member.query.filter_by(user_id=user.id).first()
    if member is None and create:
        member = Member(
            user_id=user.id,
            full_name=user.full_name or user.email.split("@")[0],
            email=user.email,
        )
        db.session.add(member)
        db.session.commit()
    return member


def active_plan(plan_id) -> MembershipPlan:
    try:
        plan = db.session.get(MembershipPlan, int(plan_id))
    except (TypeError, ValueError):
        plan = None
    if plan is None or not plan.is_active:
        raise RecordNotFound("Plan not found", status_code=404)
    return plan


def uses_autopay(plan: MembershipPlan) -> bool:
    return plan.type != LIFETIME and current_app.config.get("MEMBERSHIP_AUTOPAY", True)


def _orphaned(kind: str, gateway_id: str, **meta):
    db.session.rollback()
    current_app.logger.exception("orphaned razorpay %s %s", kind, gateway_id)
    log_event("ORDER_ORPHANED", source="order", metadata=dict(meta, gateway_id=gateway_id, kind=kind))


def create_plan_order(member: Member, plan: MembershipPlan, user_id=None) -> dict:
    """Pay-per-period or lifetime: gateway order + pending subscription + pending payment."""
    gateway = get_gateway()
    reference = new_payment_reference()
    currency = current_app.config.get("CURRENCY", "INR")

    order = gateway.create_order(
        to_paise(plan.price),
        receipt=reference,
        currency=currency,
        notes={"type": plan.type, "member_id": str(member.id), "plan_id": str(plan.id)},
    )

    try:
        subscription = Subscription(member_id=member.id, plan_id=plan.id, status=SUB_PENDING)
        db.session.add(subscription)
        db.session.flush()
        payment = Payment(
            member_id=member.id,
            subscription_id=subscription.id,
            plan_id=plan.id,
            amount=plan.price,
            currency=currency,
            razorpay_order_id=order["id"],
            payment_reference=reference,
            payment_type=plan.type,
            payment_status=PENDING,
        )
        db.session.add(payment)
        db.session.commit()
    except SQLAlchemyError:
        _orphaned("order", order["id"], payment_reference=reference, plan_id=plan.id)
        raise

    log_event("ORDER_CREATED", user_id=user_id, entity="payment", entity_id=payment.id, source="order",
              metadata={"order_id": order["id"], "subscription_id": subscription.id, "plan_type": plan.type})

    return {
        "type": "order",
        "paymentType": plan.type,
        "orderId": order["id"],
        "amount": order.get("amount", to_paise(plan.price)),
        "currency": order.get("currency", currency),
        "keyId": gateway.key_id,
        "subscriptionId": subscription.id,
        "paymentReference": reference,
    }


def ensure_gateway_plan(plan: MembershipPlan) -> str:
    if plan.razorpay_plan_id:
        return plan.razorpay_plan_id

    gateway = get_gateway()
    period = "monthly" if plan.type == MONTHLY else "yearly"
    remote = gateway.create_plan(
        period,
        name=plan.name,
        amount_paise=to_paise(plan.price),
        currency=current_app.config.get("CURRENCY", "INR"),
    )
    plan.razorpay_plan_id = remote["id"]
    db.session.commit()
    current_app.logger.info("created razorpay plan %s for plan %s", remote["id"], plan.id)
    return plan.razorpay_plan_id


def create_recurring_subscription(member: Member, plan: MembershipPlan, user_id=None) -> dict:
    gateway = get_gateway()
    gateway_plan_id = ensure_gateway_plan(plan)
    total_count = current_app.config.get("SUBSCRIPTION_TOTAL_COUNT", {}).get(plan.type, 12)

    remote = gateway.create_subscription(
        gateway_plan_id,
        total_count=total_count,
        notes={"member_id": str(member.id), "plan_id": str(plan.id)},
    )

    subscription = Subscription(
        member_id=member.id,
        plan_id=plan.id,
        razorpay_subscription_id=remote["id"],
        status=SUB_PENDING,
    )
    db.session.add(subscription)
    try:
        db.session.commit()
    except SQLAlchemyError:
        _orphaned("subscription", remote["id"], plan_id=plan.id)
        raise

    log_event("SUBSCRIPTION_CREATED", user_id=user_id, entity="subscription", entity_id=subscription.id,
              source="order", metadata={"razorpay_subscription_id": remote["id"], "plan_type": plan.type})

    return {
        "type": "subscription",
        "subscriptionId": remote["id"],
        "keyId": gateway.key_id,
        "dbSubscriptionId": subscription.id,
    }


def start_purchase(member: Member, plan: MembershipPlan, user_id=None) -> dict:
    if uses_autopay(plan):
        return create_recurring_subscription(member, plan, user_id=user_id)
    return create_plan_order(member, plan, user_id=user_id)

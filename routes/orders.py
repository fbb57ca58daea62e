from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.donation import Donation
from models.status import DONATION, PENDING, PLAN_TYPES
from utils.audit import log_event
from utils.errors import InvalidInput
from utils.money import parse_amount, to_paise
from utils.purchases import active_plan, create_plan_order, member_for_user
from utils.razorpay_client import get_gateway
from utils.reference import new_payment_reference

orders_bp = Blueprint("orders", __name__)


def _clean(value, limit: int):
    value = (value or "").strip() if isinstance(value, str) else ""
    return value[:limit] or None


def _plan_order(data, order_type: str, amount):
    if getattr(g, "user", None) is None:
        return jsonify(error="Authentication required"), 401
    plan = active_plan(data.get("plan_id"))
    if plan.type != order_type:
        raise InvalidInput(f"Plan {plan.id} is a {plan.type} plan")
    if amount != plan.price:
        raise InvalidInput("amount does not match the plan price")
    member = member_for_user(g.user)
    return jsonify(create_plan_order(member, plan, user_id=g.user.id)), 200


@orders_bp.post("/orders")
def create_order():
    data = request.get_json(silent=True) or {}
    order_type = str(data.get("type") or DONATION).strip().lower()
    amount = parse_amount(data.get("amount"))

    if order_type in PLAN_TYPES:
        return _plan_order(data, order_type, amount)
    if order_type != DONATION:
        raise InvalidInput(f"Unknown order type: {order_type}")

    donor_name = _clean(data.get("donor_name"), 120)
    donor_email = _clean(data.get("donor_email"), 255)
    if not donor_name or not donor_email or "@" not in donor_email:
        raise InvalidInput("donor_name and a valid donor_email are required")

    gateway = get_gateway()
    reference = new_payment_reference()
    currency = current_app.config.get("CURRENCY", "INR")

    order = gateway.create_order(
        to_paise(amount),
        receipt=reference,
        currency=currency,
        notes={
            "type": order_type,
            "donor_name": donor_name,
            "donor_email": donor_email,
            "plan_id": str(data.get("plan_id") or ""),
        },
    )

    donation = Donation(
        donor_name=donor_name,
        donor_email=donor_email,
        donor_phone=_clean(data.get("donor_phone"), 30),
        donor_address=_clean(data.get("donor_address"), 255),
        amount=amount,
        currency=currency,
        razorpay_order_id=order["id"],
        payment_reference=reference,
        payment_status=PENDING,
        notes=_clean(data.get("notes"), 2000),
    )
    db.session.add(donation)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        # the gateway order exists but nothing here points at it
        current_app.logger.exception("orphaned razorpay order %s (reference %s)", order["id"], reference)
        log_event("ORDER_ORPHANED", source="order",
                  metadata={"order_id": order["id"], "payment_reference": reference, "amount": str(amount)})
        return jsonify(error="Failed to save donation record"), 500

    log_event("ORDER_CREATED", entity="donation", entity_id=donation.id, source="order",
              metadata={"order_id": order["id"], "payment_reference": reference})
    current_app.logger.info("donation order %s created for %s", order["id"], amount)

    return jsonify(
        orderId=order["id"],
        amount=order.get("amount", to_paise(amount)),
        currency=order.get("currency", currency),
        keyId=gateway.key_id,
        paymentReference=reference,
    ), 200

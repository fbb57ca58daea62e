from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.member import Member
from models.subscription import Subscription
from models.status import LIFETIME, SUB_CANCELLED, SUB_EXPIRED
from security.rbac import ADMIN, has_role
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import GatewayError, RecordNotFound
from utils.purchases import active_plan, member_for_user, start_purchase
from utils.razorpay_client import get_gateway

subscriptions_bp = Blueprint("subscriptions", __name__, url_prefix="/subscriptions")


def _owns(subscription: Subscription) -> bool:
    member = member_for_user(g.user, create=False)
    return member is not None and subscription.member_id == member.id


@subscriptions_bp.post("")
@login_required
def create_subscription():
    data = request.get_json(silent=True) or {}
    plan = active_plan(data.get("plan_id"))

    member_id = data.get("member_id")
    own = member_for_user(g.user, create=member_id is None)
    if member_id is None or (own is not None and str(member_id) == str(own.id)):
        member = own
    elif has_role(g.user, ADMIN):
        try:
            member = db.session.get(Member, int(member_id))
        except (TypeError, ValueError):
            member = None
        if member is None:
            raise RecordNotFound("Member not found", status_code=404)
    else:
        log_event("SUBSCRIPTION_MEMBER_MISMATCH", user_id=g.user.id, metadata={"member_id": member_id})
        return jsonify(error="Forbidden"), 403

    result = start_purchase(member, plan, user_id=g.user.id)
    current_app.logger.info("plan %s purchase started for member %s (%s)", plan.id, member.id, result["type"])
    return jsonify(result), 200


@subscriptions_bp.post("/<int:subscription_id>/cancel")
@login_required
def cancel_subscription(subscription_id: int):
    sub = db.session.get(Subscription, subscription_id)
    if sub is None:
        return jsonify(error="Subscription not found"), 404
    if not has_role(g.user, ADMIN) and not _owns(sub):
        return jsonify(error="Forbidden"), 403

    if sub.plan is not None and sub.plan.type == LIFETIME:
        return jsonify(error="Lifetime memberships cannot be cancelled"), 400
    if sub.status in (SUB_CANCELLED, SUB_EXPIRED):
        return jsonify(success=True, message=f"Subscription already {sub.status}"), 200
    if not sub.razorpay_subscription_id:
        return jsonify(error="Subscription has no gateway subscription to cancel"), 400

    try:
        get_gateway().cancel_subscription(sub.razorpay_subscription_id, cancel_at_cycle_end=True)
    except GatewayError:
        current_app.logger.exception("gateway cancel failed for subscription %s", sub.id)
        raise

    if sub.cancel(datetime.utcnow()):
        db.session.commit()
    log_event("SUBSCRIPTION_CANCELLED", user_id=g.user.id, entity="subscription", entity_id=sub.id,
              source="admin" if has_role(g.user, ADMIN) else "member",
              metadata={"razorpay_subscription_id": sub.razorpay_subscription_id})

    return jsonify(success=True, message="Subscription cancelled"), 200

from flask import Blueprint, jsonify, g

from models.payment import Payment
from models.subscription import Subscription
from models.status import SUB_ACTIVE, SUB_PAUSED, SUB_PENDING
from utils.auth_context import login_required
from utils.purchases import member_for_user

members_bp = Blueprint("members", __name__, url_prefix="/members")


@members_bp.get("/me")
@login_required
def my_membership():
    member = member_for_user(g.user, create=False)
    if member is None:
        return jsonify(member=None, subscription=None, subscriptions=[], payments=[]), 200

    subscriptions = (
        Subscription.query
        .filter_by(member_id=member.id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )
    # prefer a live entitlement over a newer pending attempt
    current = next((s for s in subscriptions if s.status in (SUB_ACTIVE, SUB_PAUSED)), None)
    if current is None:
        current = next((s for s in subscriptions if s.status == SUB_PENDING), None)

    payments = (
        Payment.query
        .filter_by(member_id=member.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(50)
        .all()
    )

    return jsonify(
        member=member.to_dict(),
        subscription=current.to_dict() if current else None,
        subscriptions=[s.to_dict() for s in subscriptions],
        payments=[p.to_dict() for p in payments],
    ), 200

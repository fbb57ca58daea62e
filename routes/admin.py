from datetime import datetime

from flask import Blueprint, jsonify, g, request

from models import db
from models.audit_log import AuditLog
from models.donation import Donation
from models.membership_plan import MembershipPlan
from models.payment import Payment
from models.subscription import Subscription
from models.status import PLAN_TYPES
from security.rbac import ADMIN, STAFF_ROLES, require_roles
from utils.audit import log_event
from utils.errors import InvalidInput
from utils.money import parse_amount

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _limit(default: int = 200) -> int:
    limit = request.args.get("limit", type=int) or default
    return max(1, min(limit, 500))


def _plan_fields(data: dict, partial: bool) -> dict:
    fields = {}

    if "name" in data or not partial:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip() or len(name.strip()) > 120:
            raise InvalidInput("Invalid name")
        fields["name"] = name.strip()

    if "type" in data or not partial:
        plan_type = str(data.get("type") or "").strip().lower()
        if plan_type not in PLAN_TYPES:
            raise InvalidInput("type must be one of: " + ", ".join(PLAN_TYPES))
        fields["type"] = plan_type

    if "price" in data or not partial:
        fields["price"] = parse_amount(data.get("price"))

    if "description" in data:
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise InvalidInput("Invalid description")
        fields["description"] = description

    if "features" in data:
        features = data.get("features") or []
        if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
            raise InvalidInput("features must be a list of strings")
        fields["features"] = features

    if "is_active" in data:
        if not isinstance(data.get("is_active"), bool):
            raise InvalidInput("is_active must be a boolean")
        fields["is_active"] = data["is_active"]

    return fields


@admin_bp.get("/plans")
@require_roles(*STAFF_ROLES)
def list_plans():
    rows = MembershipPlan.query.order_by(MembershipPlan.price.asc()).all()
    return jsonify([p.to_dict() for p in rows]), 200


@admin_bp.post("/plans")
@require_roles(ADMIN)
def create_plan():
    data = request.get_json(silent=True) or {}
    plan = MembershipPlan(**_plan_fields(data, partial=False))
    db.session.add(plan)
    db.session.commit()

    log_event("PLAN_CREATED", user_id=g.user.id, entity="membership_plan", entity_id=plan.id, source="admin",
              metadata={"type": plan.type, "price": str(plan.price)})
    return jsonify(plan.to_dict()), 201


@admin_bp.patch("/plans/<int:plan_id>")
@require_roles(ADMIN)
def update_plan(plan_id: int):
    plan = db.session.get(MembershipPlan, plan_id)
    if not plan:
        return jsonify(error="Plan not found"), 404

    data = request.get_json(silent=True) or {}
    fields = _plan_fields(data, partial=True)

    # the gateway plan is priced at creation; a new price or period needs a new one
    if ("price" in fields and fields["price"] != plan.price) or ("type" in fields and fields["type"] != plan.type):
        fields["razorpay_plan_id"] = None

    for key, value in fields.items():
        setattr(plan, key, value)
    plan.updated_at = datetime.utcnow()
    db.session.commit()

    log_event("PLAN_UPDATED", user_id=g.user.id, entity="membership_plan", entity_id=plan.id, source="admin",
              metadata={"fields": sorted(fields)})
    return jsonify(plan.to_dict()), 200


@admin_bp.get("/donations")
@require_roles(*STAFF_ROLES)
def list_donations():
    q = Donation.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(Donation.payment_status == status)
    rows = q.order_by(Donation.created_at.desc()).limit(_limit()).all()
    return jsonify([d.to_dict() for d in rows]), 200


@admin_bp.get("/payments")
@require_roles(*STAFF_ROLES)
def list_payments():
    q = Payment.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(Payment.payment_status == status)
    member_id = request.args.get("member_id", type=int)
    if member_id is not None:
        q = q.filter(Payment.member_id == member_id)
    rows = q.order_by(Payment.created_at.desc()).limit(_limit()).all()
    return jsonify([p.to_dict() for p in rows]), 200


@admin_bp.get("/subscriptions")
@require_roles(*STAFF_ROLES)
def list_subscriptions():
    q = Subscription.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(Subscription.status == status)
    rows = q.order_by(Subscription.created_at.desc()).limit(_limit()).all()
    return jsonify([s.to_dict() for s in rows]), 200


@admin_bp.get("/audit-logs")
@require_roles(ADMIN)
def list_audit_logs():
    q = AuditLog.query

    action = request.args.get("action")
    if action:
        q = q.filter(AuditLog.action == action)
    source = request.args.get("source")
    if source:
        q = q.filter(AuditLog.source == source)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(_limit()).all()
    return jsonify([r.to_dict() for r in rows]), 200

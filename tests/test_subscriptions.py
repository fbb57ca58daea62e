from models import db
from models.audit_log import AuditLog
from models.member import Member
from models.membership_plan import MembershipPlan
from models.subscription import Subscription
from models.user import User
from security.tokens import issue_token


def _start(client, plan, headers, **extra):
    body = {"plan_id": plan.id}
    body.update(extra)
    return client.post("/subscriptions", json=body, headers=headers)


def test_requires_authentication(client, plans):
    assert _start(client, plans["monthly"], {}).status_code == 401


def test_inactive_or_missing_plan(client, plans, member_headers):
    plans["monthly"].is_active = False
    db.session.commit()
    assert _start(client, plans["monthly"], member_headers).status_code == 404
    resp = client.post("/subscriptions", json={"plan_id": 9999}, headers=member_headers)
    assert resp.status_code == 404


def test_autopay_creates_gateway_plan_once(client, plans, member_headers, gateway):
    plan = plans["monthly"]
    first = _start(client, plan, member_headers)
    assert first.status_code == 200
    data = first.get_json()
    assert data["type"] == "subscription"
    assert data["keyId"] == "rzp_test_key"

    assert gateway.names() == ["create_plan", "create_subscription"]
    plan_call = gateway.calls[0][1]
    assert plan_call["period"] == "monthly"
    assert plan_call["interval"] == 1
    assert plan_call["amount"] == 19900
    assert gateway.calls[1][1]["total_count"] == 120

    plan_row = db.session.get(MembershipPlan, plan.id)
    assert plan_row.razorpay_plan_id == gateway.calls[1][1]["plan_id"]

    sub = db.session.get(Subscription, data["dbSubscriptionId"])
    assert sub.status == "pending"
    assert sub.razorpay_subscription_id == data["subscriptionId"]

    _start(client, plan, member_headers)
    assert gateway.names().count("create_plan") == 1


def test_yearly_total_count(client, plans, member_headers, gateway):
    _start(client, plans["yearly"], member_headers)
    assert gateway.calls[0][1]["period"] == "yearly"
    assert gateway.calls[1][1]["total_count"] == 10


def test_lifetime_always_uses_order(client, plans, member_headers, gateway):
    data = _start(client, plans["lifetime"], member_headers).get_json()
    assert data["type"] == "order"
    assert data["paymentType"] == "lifetime"
    assert gateway.names() == ["create_order"]
    assert gateway.calls[0][1]["notes"]["type"] == "lifetime"


def test_member_id_of_someone_else_forbidden(client, plans, member_headers, admin_user):
    other = Member(user_id=admin_user.id, full_name="Other", email=admin_user.email)
    db.session.add(other)
    db.session.commit()
    resp = _start(client, plans["monthly"], member_headers, member_id=other.id)
    assert resp.status_code == 403


def test_admin_may_purchase_for_member(client, plans, admin_headers, member_user):
    member = Member(user_id=member_user.id, full_name="Asha", email=member_user.email)
    db.session.add(member)
    db.session.commit()
    data = _start(client, plans["lifetime"], admin_headers, member_id=member.id).get_json()
    assert db.session.get(Subscription, data["subscriptionId"]).member_id == member.id


def test_admin_purchase_for_member_leaves_admin_without_profile(client, plans, admin_headers, admin_user, member_user):
    member = Member(user_id=member_user.id, full_name="Asha", email=member_user.email)
    db.session.add(member)
    db.session.commit()
    assert _start(client, plans["lifetime"], admin_headers, member_id=member.id).status_code == 200
    assert Member.query.filter_by(user_id=admin_user.id).count() == 0


def _recurring(client, plans, headers):
    data = _start(client, plans["monthly"], headers).get_json()
    return db.session.get(Subscription, data["dbSubscriptionId"])


def test_cancel_calls_gateway_at_cycle_end(client, plans, member_headers, gateway):
    sub = _recurring(client, plans, member_headers)
    sub.status = "active"
    db.session.commit()

    resp = client.post(f"/subscriptions/{sub.id}/cancel", headers=member_headers)
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True

    name, call = gateway.calls[-1]
    assert name == "cancel_subscription"
    assert call == {"id": sub.razorpay_subscription_id, "cancel_at_cycle_end": True}

    row = db.session.get(Subscription, sub.id)
    assert row.status == "cancelled"
    assert row.cancelled_at is not None
    assert AuditLog.query.filter_by(action="SUBSCRIPTION_CANCELLED").count() == 1


def test_cancel_gateway_failure_keeps_status(client, plans, member_headers, gateway, gateway_error):
    sub = _recurring(client, plans, member_headers)
    sub.status = "active"
    db.session.commit()

    gateway.fail_with = gateway_error
    resp = client.post(f"/subscriptions/{sub.id}/cancel", headers=member_headers)
    assert resp.status_code == 502
    assert db.session.get(Subscription, sub.id).status == "active"


def test_cancel_lifetime_rejected(client, plans, member_headers, gateway):
    data = _start(client, plans["lifetime"], member_headers).get_json()
    resp = client.post(f"/subscriptions/{data['subscriptionId']}/cancel", headers=member_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Lifetime memberships cannot be cancelled"
    assert "cancel_subscription" not in gateway.names()


def test_cancel_without_gateway_id(client, plans, member_headers, app):
    app.config["MEMBERSHIP_AUTOPAY"] = False
    data = _start(client, plans["monthly"], member_headers).get_json()
    resp = client.post(f"/subscriptions/{data['subscriptionId']}/cancel", headers=member_headers)
    assert resp.status_code == 400


def test_cancel_already_cancelled_is_noop(client, plans, member_headers, gateway):
    sub = _recurring(client, plans, member_headers)
    sub.status = "cancelled"
    db.session.commit()
    resp = client.post(f"/subscriptions/{sub.id}/cancel", headers=member_headers)
    assert resp.status_code == 200
    assert "cancel_subscription" not in gateway.names()


def test_cancel_not_found_and_not_owner(client, plans, member_headers, admin_user):
    assert client.post("/subscriptions/424242/cancel", headers=member_headers).status_code == 404

    sub = _recurring(client, plans, member_headers)
    stranger = User(email="stranger@example.com", password_hash="x")
    db.session.add(stranger)
    db.session.commit()
    headers = {"Authorization": f"Bearer {issue_token(stranger.id)}"}
    assert client.post(f"/subscriptions/{sub.id}/cancel", headers=headers).status_code == 403


def test_admin_can_cancel_any(client, plans, member_headers, admin_headers):
    sub = _recurring(client, plans, member_headers)
    resp = client.post(f"/subscriptions/{sub.id}/cancel", headers=admin_headers)
    assert resp.status_code == 200
    assert db.session.get(Subscription, sub.id).status == "cancelled"

from datetime import datetime

from conftest import checkout_signature, payment_event, post_webhook, subscription_event

from models import db
from models.audit_log import AuditLog
from models.donation import Donation
from models.member import Member
from models.payment import Payment
from models.subscription import Subscription


def _create_donation(client):
    resp = client.post("/orders", json={"amount": 500, "type": "donation",
                                        "donor_name": "Ravi", "donor_email": "ravi@example.com"})
    return resp.get_json()


def _gateway_subscription(plans, member_user, gateway_id="sub_ext_1", status="pending"):
    member = Member(user_id=member_user.id, full_name="Asha", email=member_user.email)
    db.session.add(member)
    db.session.commit()
    sub = Subscription(member_id=member.id, plan_id=plans["monthly"].id,
                       razorpay_subscription_id=gateway_id, status=status)
    db.session.add(sub)
    db.session.commit()
    return sub


def test_missing_signature_rejected(client):
    resp = post_webhook(client, payment_event("payment.captured", "order_1", "pay_1"), signature="")
    assert resp.status_code == 400


def test_bad_signature_rejected_without_mutation(client):
    order = _create_donation(client)
    event = payment_event("payment.captured", order["orderId"], "pay_1")
    resp = post_webhook(client, event, secret="wrong_secret")
    assert resp.status_code == 400
    assert Donation.query.one().payment_status == "pending"
    assert AuditLog.query.filter_by(action="SIGNATURE_REJECTED", source="webhook").count() == 1


def test_missing_webhook_secret_is_config_error(app, client):
    app.config["RAZORPAY_WEBHOOK_SECRET"] = None
    resp = post_webhook(client, payment_event("payment.captured", "order_1", "pay_1"), secret="anything")
    assert resp.status_code == 500


def test_invalid_json_with_valid_signature(client):
    resp = post_webhook(client, b"{not json")
    assert resp.status_code == 400


def test_unknown_event_acknowledged(client):
    resp = post_webhook(client, {"event": "refund.processed", "payload": {}})
    assert resp.status_code == 200
    assert resp.get_json() == {"received": True}


def test_malformed_known_event_acknowledged(client):
    resp = post_webhook(client, {"event": "payment.captured", "payload": {}})
    assert resp.status_code == 200


def test_unknown_order_acknowledged(client):
    resp = post_webhook(client, payment_event("payment.captured", "order_nowhere", "pay_1"))
    assert resp.status_code == 200
    assert Donation.query.count() == 0


def test_webhook_first_then_verify_converges(client, monkeypatch):
    sent = []
    monkeypatch.setattr("utils.emailer.send_email", lambda *a, **kw: sent.append(a) or (True, None))
    order = _create_donation(client)

    resp = post_webhook(client, payment_event("payment.captured", order["orderId"], "pay_1"))
    assert resp.status_code == 200
    row = Donation.query.one()
    assert row.payment_status == "success"
    assert row.razorpay_signature is None

    resp = client.post("/verify-payment", json={
        "razorpay_order_id": order["orderId"],
        "razorpay_payment_id": "pay_1",
        "razorpay_signature": checkout_signature(order["orderId"], "pay_1"),
        "type": "donation",
    })
    assert resp.status_code == 200
    row = Donation.query.one()
    assert row.payment_status == "success"
    assert row.razorpay_signature == checkout_signature(order["orderId"], "pay_1")
    assert len(sent) == 1


def test_replayed_capture_is_a_noop(client):
    order = _create_donation(client)
    event = payment_event("payment.captured", order["orderId"], "pay_1")
    for _ in range(3):
        assert post_webhook(client, event).status_code == 200
    assert AuditLog.query.filter_by(action="DONATION_PAID").count() == 1


def test_failed_after_success_is_refused_and_acknowledged(client):
    order = _create_donation(client)
    post_webhook(client, payment_event("payment.captured", order["orderId"], "pay_1"))

    resp = post_webhook(client, payment_event("payment.failed", order["orderId"], "pay_2"))
    assert resp.status_code == 200
    assert Donation.query.one().payment_status == "success"
    assert AuditLog.query.filter_by(action="TRANSITION_REFUSED", source="webhook").count() == 1


def test_capture_for_plan_order_activates_subscription(client, plans, member_headers, app):
    app.config["MEMBERSHIP_AUTOPAY"] = False
    data = client.post("/subscriptions", json={"plan_id": plans["yearly"].id},
                       headers=member_headers).get_json()

    resp = post_webhook(client, payment_event("payment.captured", data["orderId"], "pay_y",
                                              notes_type="yearly", amount=199900))
    assert resp.status_code == 200
    assert Payment.query.filter_by(razorpay_order_id=data["orderId"]).one().payment_status == "success"
    sub = db.session.get(Subscription, data["subscriptionId"])
    assert sub.status == "active"
    assert sub.end_date.year == sub.start_date.year + 1


def test_subscription_activated_sets_dates(client, plans, member_user):
    sub = _gateway_subscription(plans, member_user)
    resp = post_webhook(client, subscription_event("subscription.activated", "sub_ext_1",
                                                   current_start=1700000000, charge_at=1702592000))
    assert resp.status_code == 200
    sub = db.session.get(Subscription, sub.id)
    assert sub.status == "active"
    assert sub.start_date == datetime(2023, 11, 14, 22, 13, 20)
    assert sub.next_billing_date == datetime(2023, 12, 14, 22, 13, 20)


def test_subscription_charged_dedupes_by_payment_id(client, plans, member_user):
    sub = _gateway_subscription(plans, member_user, status="active")
    event = subscription_event("subscription.charged", "sub_ext_1", payment_id="pay_cycle_1",
                               amount=19900, charge_at=1702592000)

    for _ in range(2):
        assert post_webhook(client, event).status_code == 200

    rows = Payment.query.filter_by(subscription_id=sub.id).all()
    assert len(rows) == 1
    charge = rows[0]
    assert charge.payment_status == "success"
    assert charge.payment_type == "subscription"
    assert str(charge.amount) == "199.00"
    assert charge.payment_reference.startswith("PAY-")
    assert db.session.get(Subscription, sub.id).next_billing_date == datetime(2023, 12, 14, 22, 13, 20)

    second = subscription_event("subscription.charged", "sub_ext_1", payment_id="pay_cycle_2",
                                amount=19900, charge_at=1705270400)
    post_webhook(client, second)
    assert Payment.query.filter_by(subscription_id=sub.id).count() == 2


def test_late_charge_redelivery_keeps_latest_billing_date(client, plans, member_user):
    sub = _gateway_subscription(plans, member_user, status="active")
    first = subscription_event("subscription.charged", "sub_ext_1", payment_id="pay_cycle_1",
                               amount=19900, charge_at=1702592000)
    second = subscription_event("subscription.charged", "sub_ext_1", payment_id="pay_cycle_2",
                                amount=19900, charge_at=1705270400)

    for event in (first, second, first):
        assert post_webhook(client, event).status_code == 200

    assert Payment.query.filter_by(subscription_id=sub.id).count() == 2
    assert db.session.get(Subscription, sub.id).next_billing_date == datetime(2024, 1, 14, 22, 13, 20)


def test_subscription_state_events(client, plans, member_user):
    sub = _gateway_subscription(plans, member_user, status="active")

    post_webhook(client, subscription_event("subscription.paused", "sub_ext_1"))
    assert db.session.get(Subscription, sub.id).status == "paused"

    post_webhook(client, subscription_event("subscription.resumed", "sub_ext_1"))
    assert db.session.get(Subscription, sub.id).status == "active"

    post_webhook(client, subscription_event("subscription.cancelled", "sub_ext_1"))
    row = db.session.get(Subscription, sub.id)
    assert row.status == "cancelled"
    cancelled_at = row.cancelled_at
    assert cancelled_at is not None

    post_webhook(client, subscription_event("subscription.cancelled", "sub_ext_1"))
    assert db.session.get(Subscription, sub.id).cancelled_at == cancelled_at

    post_webhook(client, subscription_event("subscription.expired", "sub_ext_1"))
    row = db.session.get(Subscription, sub.id)
    assert row.status == "expired"
    assert row.end_date is not None

    # resumed after expiry is refused but still acknowledged
    resp = post_webhook(client, subscription_event("subscription.resumed", "sub_ext_1"))
    assert resp.status_code == 200
    assert db.session.get(Subscription, sub.id).status == "expired"


def test_unknown_subscription_acknowledged(client):
    resp = post_webhook(client, subscription_event("subscription.charged", "sub_missing",
                                                   payment_id="pay_1"))
    assert resp.status_code == 200
    assert Payment.query.count() == 0

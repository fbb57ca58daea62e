"""
Shared fixtures: an app on in-memory SQLite with a fake Razorpay gateway,
seeded roles and plans, users with bearer tokens, and signing helpers for
checkout callbacks and webhooks.
"""
import itertools
import json
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.membership_plan import MembershipPlan
from models.user import User, Role
from security.password import hash_password
from security.rbac import ADMIN, MEMBER
from security.signature import compute_signature
from security.tokens import issue_token
from utils.errors import GatewayError
from utils.seed import seed_roles


class FakeGateway:
    """Records every call and answers like the Razorpay REST API."""

    key_id = "rzp_test_key"

    def __init__(self):
        self.calls = []
        self.fail_with = None
        self._ids = itertools.count(1)

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def create_order(self, amount_paise, receipt, notes=None, currency="INR"):
        self.calls.append(("create_order", {"amount": amount_paise, "receipt": receipt,
                                            "notes": notes or {}, "currency": currency}))
        self._maybe_fail()
        return {"id": f"order_{next(self._ids)}", "amount": amount_paise, "currency": currency,
                "receipt": receipt, "status": "created"}

    def create_plan(self, period, name, amount_paise, currency="INR", interval=1):
        self.calls.append(("create_plan", {"period": period, "name": name, "amount": amount_paise,
                                           "interval": interval}))
        self._maybe_fail()
        return {"id": f"plan_{next(self._ids)}", "period": period, "interval": interval}

    def create_subscription(self, plan_id, total_count, notes=None):
        self.calls.append(("create_subscription", {"plan_id": plan_id, "total_count": total_count,
                                                   "notes": notes or {}}))
        self._maybe_fail()
        return {"id": f"sub_{next(self._ids)}", "plan_id": plan_id, "status": "created"}

    def cancel_subscription(self, subscription_id, cancel_at_cycle_end=True):
        self.calls.append(("cancel_subscription", {"id": subscription_id,
                                                   "cancel_at_cycle_end": cancel_at_cycle_end}))
        self._maybe_fail()
        return {"id": subscription_id, "status": "cancelled"}

    def names(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(gateway):
    app = create_app(TestConfig, gateway=gateway)
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()
    app.extensions["notifier"].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def plans(app):
    rows = {
        "monthly": MembershipPlan(name="Monthly Supporter", type="monthly", price=Decimal("199.00")),
        "yearly": MembershipPlan(name="Yearly Supporter", type="yearly", price=Decimal("1999.00")),
        "lifetime": MembershipPlan(name="Lifetime Member", type="lifetime", price=Decimal("9999.00")),
    }
    db.session.add_all(rows.values())
    db.session.commit()
    return rows


def _make_user(email, role_name, full_name=None):
    user = User(email=email, password_hash=hash_password("secret123", rounds=4), full_name=full_name)
    user.roles.append(Role.query.filter_by(name=role_name).first())
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def member_user(app):
    return _make_user("member@example.com", MEMBER, full_name="Asha Member")


@pytest.fixture
def admin_user(app):
    return _make_user("admin@example.com", ADMIN, full_name="Trust Admin")


@pytest.fixture
def member_headers(member_user):
    return {"Authorization": f"Bearer {issue_token(member_user.id)}"}


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {issue_token(admin_user.id)}"}


def checkout_signature(order_id, payment_id, secret=TestConfig.RAZORPAY_KEY_SECRET):
    return compute_signature(secret, f"{order_id}|{payment_id}")


def post_webhook(client, event, secret=TestConfig.RAZORPAY_WEBHOOK_SECRET, signature=None):
    raw = json.dumps(event).encode("utf-8") if not isinstance(event, bytes) else event
    headers = {"Content-Type": "application/json"}
    sig = signature if signature is not None else compute_signature(secret, raw)
    if sig:
        headers["X-Razorpay-Signature"] = sig
    return client.post("/webhooks/razorpay", data=raw, headers=headers)


def payment_event(name, order_id, payment_id, notes_type="donation", amount=50000):
    return {
        "event": name,
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "order_id": order_id,
                    "amount": amount,
                    "notes": {"type": notes_type},
                }
            }
        },
    }


def subscription_event(name, subscription_id, payment_id=None, amount=19900, current_start=None, charge_at=None):
    event = {
        "event": name,
        "payload": {
            "subscription": {
                "entity": {
                    "id": subscription_id,
                    "current_start": current_start,
                    "charge_at": charge_at,
                }
            }
        },
    }
    if payment_id:
        event["payload"]["payment"] = {"entity": {"id": payment_id, "amount": amount}}
    return event


@pytest.fixture
def gateway_error():
    return GatewayError("Razorpay request failed: {\"error\":\"BAD_REQUEST_ERROR\"}",
                        upstream_status=400, body="{\"error\":\"BAD_REQUEST_ERROR\"}")

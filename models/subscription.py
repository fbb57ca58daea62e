from datetime import datetime
from models.db import db
from models.ledger_row import compare_and_set
from models.status import (
    SUBSCRIPTION_TRANSITIONS, SUB_PENDING, SUB_ACTIVE, SUB_CANCELLED, SUB_EXPIRED, SUB_PAUSED
)


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=False, index=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("membership_plans.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=SUB_PENDING)
    # status values: pending, active, cancelled, expired, paused

    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    next_billing_date = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    # absent for pay-per-period orders
    razorpay_subscription_id = db.Column(db.String(64), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    plan = db.relationship("MembershipPlan")
    member = db.relationship("Member")

    def _move(self, target: str, values: dict = None) -> bool:
        return compare_and_set(self, "status", SUBSCRIPTION_TRANSITIONS, "subscription", target, values)

    def activate(self, start_date: datetime, end_date: datetime = None, next_billing_date: datetime = None) -> bool:
        return self._move(SUB_ACTIVE, {
            "start_date": start_date,
            "end_date": end_date,
            "next_billing_date": next_billing_date,
        })

    def resume(self) -> bool:
        return self._move(SUB_ACTIVE)

    def pause(self) -> bool:
        return self._move(SUB_PAUSED)

    def cancel(self, when: datetime) -> bool:
        return self._move(SUB_CANCELLED, {"cancelled_at": self.cancelled_at or when})

    def expire(self, when: datetime) -> bool:
        return self._move(SUB_EXPIRED, {"end_date": when})

    def to_dict(self):
        def iso(value):
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "member_id": self.member_id,
            "plan_id": self.plan_id,
            "plan": self.plan.to_dict() if self.plan else None,
            "status": self.status,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "next_billing_date": iso(self.next_billing_date),
            "cancelled_at": iso(self.cancelled_at),
            "razorpay_subscription_id": self.razorpay_subscription_id,
            "created_at": iso(self.created_at),
        }

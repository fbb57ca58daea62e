from datetime import datetime
from models.db import db
from models.ledger_row import PaymentStatusMixin
from models.status import PENDING


class Payment(PaymentStatusMixin, db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=True, index=True)
    subscription_id = db.Column(db.Integer, db.ForeignKey("subscriptions.id"), nullable=True, index=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("membership_plans.id"), nullable=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)  # rupees, not paise
    currency = db.Column(db.String(10), nullable=False, default="INR")

    # order id is absent for recurring charges; payment id dedupes subscription.charged
    razorpay_order_id = db.Column(db.String(64), nullable=True, unique=True, index=True)
    razorpay_payment_id = db.Column(db.String(64), nullable=True, unique=True, index=True)
    razorpay_signature = db.Column(db.String(128), nullable=True)

    payment_status = db.Column(db.String(20), nullable=False, default=PENDING)
    payment_type = db.Column(db.String(20), nullable=True)  # lifetime, monthly, yearly, subscription
    payment_reference = db.Column(db.String(40), nullable=True, index=True)
    receipt_url = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "member_id": self.member_id,
            "subscription_id": self.subscription_id,
            "plan_id": self.plan_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "razorpay_order_id": self.razorpay_order_id,
            "razorpay_payment_id": self.razorpay_payment_id,
            "payment_status": self.payment_status,
            "payment_type": self.payment_type,
            "payment_reference": self.payment_reference,
            "receipt_url": self.receipt_url,
            "created_at": self.created_at.isoformat(),
        }

from datetime import datetime
from models.db import db
from models.ledger_row import PaymentStatusMixin
from models.status import PENDING


class Donation(PaymentStatusMixin, db.Model):
    __tablename__ = "donations"

    id = db.Column(db.Integer, primary_key=True)

    donor_name = db.Column(db.String(120), nullable=False)
    donor_email = db.Column(db.String(255), nullable=False)
    donor_phone = db.Column(db.String(30), nullable=True)
    donor_address = db.Column(db.String(255), nullable=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)  # rupees, not paise
    currency = db.Column(db.String(10), nullable=False, default="INR")

    # lookup key for reconciliation
    razorpay_order_id = db.Column(db.String(64), nullable=True, unique=True, index=True)
    razorpay_payment_id = db.Column(db.String(64), nullable=True)
    razorpay_signature = db.Column(db.String(128), nullable=True)

    payment_status = db.Column(db.String(20), nullable=False, default=PENDING)
    # status values: pending, success, failed, refunded
    payment_reference = db.Column(db.String(40), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    confirmation_email_sent_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "donor_name": self.donor_name,
            "donor_email": self.donor_email,
            "donor_phone": self.donor_phone,
            "amount": str(self.amount),
            "currency": self.currency,
            "razorpay_order_id": self.razorpay_order_id,
            "razorpay_payment_id": self.razorpay_payment_id,
            "payment_status": self.payment_status,
            "payment_reference": self.payment_reference,
            "created_at": self.created_at.isoformat(),
        }

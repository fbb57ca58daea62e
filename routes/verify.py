from flask import Blueprint, request, jsonify, current_app

from models.donation import Donation
from models.payment import Payment
from models.status import DONATION, PLAN_TYPES
from security.signature import verify_payment_signature
from utils.audit import log_event
from utils.errors import InvalidInput, RecordNotFound, SignatureError, TransitionRefused
from utils.razorpay_client import require_secret
from utils.reconcile import settle_donation, settle_payment

verify_bp = Blueprint("verify", __name__)


@verify_bp.post("/verify-payment")
def verify_payment():
    data = request.get_json(silent=True) or {}
    order_id = data.get("razorpay_order_id")
    payment_id = data.get("razorpay_payment_id")
    signature = data.get("razorpay_signature")
    payment_type = str(data.get("type") or "").strip().lower()
    reference = data.get("payment_reference")

    if not order_id or not payment_id or not signature:
        raise InvalidInput("razorpay_order_id, razorpay_payment_id and razorpay_signature are required")
    if payment_type != DONATION and payment_type not in PLAN_TYPES:
        raise InvalidInput(f"Unknown payment type: {payment_type or '(missing)'}")

    key_secret = require_secret("RAZORPAY_KEY_SECRET")
    if not verify_payment_signature(key_secret, order_id, payment_id, signature):
        current_app.logger.warning("invalid checkout signature for order %s", order_id)
        log_event("SIGNATURE_REJECTED", entity=payment_type, source="verify",
                  metadata={"order_id": order_id, "payment_id": payment_id})
        raise SignatureError("Invalid payment signature")

    model = Donation if payment_type == DONATION else Payment
    row = model.query.filter_by(razorpay_order_id=order_id).first()
    if row is None:
        current_app.logger.warning("verified payment %s for unknown order %s", payment_id, order_id)
        log_event("LEDGER_ROW_MISSING", entity=payment_type, source="verify",
                  metadata={"order_id": order_id, "payment_id": payment_id})
        raise RecordNotFound(f"No {payment_type} record for order {order_id}")
    if reference and row.payment_reference and row.payment_reference != reference:
        raise InvalidInput("Payment reference does not match order")

    try:
        if payment_type == DONATION:
            settle_donation(order_id, payment_id, signature=signature, source="verify")
        else:
            settle_payment(order_id, payment_id, plan_type=payment_type, signature=signature, source="verify")
    except TransitionRefused as exc:
        current_app.logger.warning("verify for order %s refused: %s", order_id, exc.message)
        log_event("TRANSITION_REFUSED", entity=exc.entity, source="verify",
                  metadata={"order_id": order_id, "payment_id": payment_id, "from": exc.current, "to": exc.target})
        raise

    return jsonify(success=True, message="Payment verified successfully"), 200

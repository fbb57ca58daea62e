from datetime import datetime

from models.db import db
from models.status import PAYMENT_TRANSITIONS, SUCCESS, FAILED, check_transition


def compare_and_set(row, status_attr: str, table: dict, entity: str, target: str, values: dict = None) -> bool:
    """
    Moves `row` to `target` with UPDATE ... WHERE id = ? AND <status> = <observed>.

    A concurrent writer that got there first makes the UPDATE hit zero rows;
    the row is re-read and the transition re-checked against the new status,
    so a success can never be overwritten by a racing failure. Returns False
    when the row already is in `target`.
    """
    model = type(row)
    column = getattr(model, status_attr)
    while True:
        current = getattr(row, status_attr)
        if not check_transition(table, entity, current, target):
            return False
        changes = dict(values or {})
        changes[status_attr] = target
        changes["updated_at"] = datetime.utcnow()
        updated = (
            model.query
            .filter(model.id == row.id, column == current)
            .update(changes, synchronize_session=False)
        )
        db.session.refresh(row)
        if updated:
            return True


class PaymentStatusMixin:
    """Shared status handling for donations and payments."""

    def mark_success(self, payment_id: str, signature: str = None) -> bool:
        values = {"razorpay_payment_id": payment_id}
        if signature:
            values["razorpay_signature"] = signature
        changed = compare_and_set(self, "payment_status", PAYMENT_TRANSITIONS, self.__tablename__, SUCCESS, values)
        if not changed and signature and not self.razorpay_signature:
            # the webhook settled it first and had no checkout signature to store
            self.razorpay_signature = signature
        return changed

    def mark_failed(self, payment_id: str = None) -> bool:
        values = {"razorpay_payment_id": payment_id} if payment_id else {}
        return compare_and_set(self, "payment_status", PAYMENT_TRANSITIONS, self.__tablename__, FAILED, values)

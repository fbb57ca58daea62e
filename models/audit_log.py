from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)  # null for webhook and anonymous donor calls
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. PAYMENT_VERIFIED, SIGNATURE_REJECTED
    entity = db.Column(db.String(80), nullable=True)   # donation, payment, subscription
    entity_id = db.Column(db.String(80), nullable=True)
    source = db.Column(db.String(20), nullable=True)   # order, verify, webhook, cancel, admin

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "action": self.action,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "source": self.source,
            "ip": self.ip,
            "metadata": self.metadata_json,
        }

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        current_app.logger.exception("health check: database unreachable")
        db.session.rollback()
        database = "unavailable"

    gateway = "configured" if current_app.extensions.get("razorpay") is not None else "missing"
    webhook = "configured" if current_app.config.get("RAZORPAY_WEBHOOK_SECRET") else "missing"

    status = 200 if database == "ok" else 503
    return jsonify(
        status="ok" if status == 200 else "degraded",
        database=database,
        gateway=gateway,
        webhook_secret=webhook,
    ), status

import logging
from datetime import datetime, timedelta

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from models.donation import Donation
from models.payment import Payment
from models.status import PENDING
from models.user import User, Role
from routes import (
    health_bp, auth_bp, admin_bp, orders_bp, verify_bp, webhook_bp, subscriptions_bp, members_bp,
)
from security.rbac import ADMIN
from utils.auth_context import load_current_user
from utils.errors import GatewayError, LedgerError
from utils.notifier import Notifier
from utils.razorpay_client import RazorpayClient
from utils.seed import seed_roles, seed_plans


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    for name in ("notifications", "utils"):
        logging.getLogger(name).setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def create_app(config_object=Config, gateway=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(verify_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(subscriptions_bp)
    app.register_blueprint(members_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Payment gateway (None when credentials are missing; handlers answer 500)
    app.extensions["razorpay"] = gateway if gateway is not None else RazorpayClient.from_config(app.config)
    if app.extensions["razorpay"] is None:
        app.logger.warning("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not set; payment endpoints are disabled")

    Notifier(app)

    # Seed default roles at startup (idempotent)
    if app.config.get("SEED_ROLES_ON_STARTUP", True):
        with app.app_context():
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(LedgerError)
    def _ledger_error(exc):
        if isinstance(exc, GatewayError):
            app.logger.error("gateway error (%s): %s", exc.upstream_status, exc.body)
            return jsonify(error=exc.message, details=exc.body), exc.status_code
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.message)
        return jsonify(error=exc.message), exc.status_code

    @app.errorhandler(Exception)
    def _unexpected(exc):
        if isinstance(exc, HTTPException):
            return exc
        db.session.rollback()
        app.logger.exception("unhandled error")
        return jsonify(error="Internal server error"), 500


#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        admin_role = Role.query.filter_by(name=ADMIN).first()
        if not admin_role:
            admin_role = Role(name=ADMIN)
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-plans")
    def seed_plans_command():
        """Create the default membership plans if missing."""
        seed_roles()
        created = seed_plans()
        print(f"{created} plan(s) created")

    @app.cli.command("stale-orders")
    @click.option("--hours", default=24, show_default=True, type=int, help="Minimum age of a pending order.")
    def stale_orders(hours):
        """List orders still pending after HOURS, for manual reconciliation."""
        for kind, row in find_stale_orders(hours):
            print(f"{kind}\t{row.id}\t{row.razorpay_order_id}\t{row.payment_reference}\t"
                  f"{row.amount}\t{row.created_at.isoformat()}")


def find_stale_orders(hours: int, now: datetime = None):
    cutoff = (now or datetime.utcnow()) - timedelta(hours=hours)
    rows = []
    for kind, model in (("donation", Donation), ("payment", Payment)):
        q = (
            model.query
            .filter(model.payment_status == PENDING)
            .filter(model.razorpay_order_id.isnot(None))
            .filter(model.created_at < cutoff)
            .order_by(model.created_at.asc())
        )
        rows.extend((kind, row) for row in q.all())
    return rows

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)

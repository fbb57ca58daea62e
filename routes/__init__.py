from routes.health import health_bp
from routes.auth import auth_bp
from routes.admin import admin_bp
from routes.orders import orders_bp
from routes.verify import verify_bp
from routes.webhooks import webhook_bp
from routes.subscriptions import subscriptions_bp
from routes.members import members_bp

__all__ = [
    "health_bp",
    "auth_bp",
    "admin_bp",
    "orders_bp",
    "verify_bp",
    "webhook_bp",
    "subscriptions_bp",
    "members_bp",
]

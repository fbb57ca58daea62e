import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as trust_payments.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "trust_payments.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens: 8 hours absolute, 2 hours idle
    TOKEN_LIFETIME_SECONDS = 8 * 60 * 60
    TOKEN_IDLE_TIMEOUT_SECONDS = 2 * 60 * 60

    # Password policy and hashing cost
    PASSWORD_MIN_LEN = 8
    PASSWORD_MAX_LEN = 128
    BCRYPT_ROUNDS = 12

    # Razorpay (key secret and webhook secret are server-only)
    RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
    RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
    RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET")
    RAZORPAY_API_BASE = os.getenv("RAZORPAY_API_BASE", "https://api.razorpay.com/v1")
    RAZORPAY_TIMEOUT_SECONDS = int(os.getenv("RAZORPAY_TIMEOUT_SECONDS", "15"))
    CURRENCY = "INR"

    # Monthly/yearly plans as recurring gateway subscriptions (False = pay per period)
    MEMBERSHIP_AUTOPAY = _env_bool("MEMBERSHIP_AUTOPAY", "true")
    SUBSCRIPTION_TOTAL_COUNT = {"monthly": 120, "yearly": 10}

    # Email (SMTP). Missing host disables donor receipts.
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", "true")
    ORG_NAME = os.getenv("ORG_NAME", "Parwah Sports Charitable Trust")

    # Notifications run on a small thread pool; NOTIFY_SYNC runs them inline
    NOTIFY_SYNC = False
    NOTIFY_MAX_WORKERS = int(os.getenv("NOTIFY_MAX_WORKERS", "2"))

    # Startup
    SEED_ROLES_ON_STARTUP = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"

    RAZORPAY_KEY_ID = "rzp_test_key"
    RAZORPAY_KEY_SECRET = "test_key_secret"
    RAZORPAY_WEBHOOK_SECRET = "test_webhook_secret"
    MEMBERSHIP_AUTOPAY = True

    SMTP_HOST = "smtp.test.local"
    SMTP_FROM_EMAIL = "receipts@test.local"

    NOTIFY_SYNC = True
    SEED_ROLES_ON_STARTUP = False
    LOG_LEVEL = "DEBUG"
    BCRYPT_ROUNDS = 4

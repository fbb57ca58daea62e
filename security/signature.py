import hashlib
import hmac


def compute_signature(secret: str, message) -> str:
    """Hex-encoded HMAC-SHA256 of `message` (str or raw bytes) keyed by `secret`."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify(secret: str, message, provided_signature: str) -> bool:
    if not secret or not isinstance(provided_signature, str) or not provided_signature or message is None:
        return False
    expected = compute_signature(secret, message)
    return hmac.compare_digest(expected.encode("ascii"), provided_signature.encode("utf-8"))


def verify_payment_signature(key_secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    """Checkout callback: the gateway signs "<order_id>|<payment_id>" with the key secret."""
    if not order_id or not payment_id:
        return False
    return verify(key_secret, f"{order_id}|{payment_id}", signature)


def verify_webhook_signature(webhook_secret: str, raw_body: bytes, signature: str) -> bool:
    """Webhook: the gateway signs the exact request body with the webhook secret."""
    return verify(webhook_secret, raw_body, signature)

import hashlib
import hmac

from security.signature import (
    compute_signature, verify, verify_payment_signature, verify_webhook_signature,
)


def test_compute_signature_matches_hmac_sha256_hex():
    expected = hmac.new(b"s3cret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert compute_signature("s3cret", "order_1|pay_1") == expected
    assert compute_signature("s3cret", b"order_1|pay_1") == expected


def test_verify_accepts_exact_signature_only():
    sig = compute_signature("k", "msg")
    assert verify("k", "msg", sig) is True
    assert verify("k", "msg", sig.upper()) is False
    assert verify("k", "msg", sig[:-1]) is False
    assert verify("k", "msg2", sig) is False
    assert verify("other", "msg", sig) is False


def test_verify_rejects_missing_inputs():
    sig = compute_signature("k", "msg")
    assert verify("", "msg", sig) is False
    assert verify(None, "msg", sig) is False
    assert verify("k", None, sig) is False
    assert verify("k", "msg", None) is False
    assert verify("k", "msg", "") is False
    assert verify("k", "msg", 12345) is False


def test_verify_handles_non_ascii_signature():
    assert verify("k", "msg", "ü" * 64) is False


def test_payment_signature_uses_order_pipe_payment():
    sig = compute_signature("key_secret", "order_A|pay_B")
    assert verify_payment_signature("key_secret", "order_A", "pay_B", sig) is True
    # swapped ids sign a different message
    assert verify_payment_signature("key_secret", "pay_B", "order_A", sig) is False
    assert verify_payment_signature("key_secret", None, "pay_B", sig) is False


def test_webhook_signature_is_over_exact_bytes():
    body = b'{"event":"payment.captured","payload":{}}'
    sig = compute_signature("whsec", body)
    assert verify_webhook_signature("whsec", body, sig) is True
    # same JSON, different whitespace
    assert verify_webhook_signature("whsec", b'{"event": "payment.captured", "payload": {}}', sig) is False

"""
Thin Razorpay REST client.

Built once by the app factory from config and stored in
``app.extensions["razorpay"]``; handlers fetch it with ``get_gateway()``.
Only server-side code ever sees the key secret.
"""
import logging

import requests
from flask import current_app

from utils.errors import ConfigError, GatewayError

logger = logging.getLogger(__name__)


class RazorpayClient:
    def __init__(self, key_id: str, key_secret: str, api_base: str = "https://api.razorpay.com/v1",
                 timeout: int = 15, session: requests.Session = None):
        self.key_id = key_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (key_id, key_secret)

    @classmethod
    def from_config(cls, config):
        key_id = config.get("RAZORPAY_KEY_ID")
        key_secret = config.get("RAZORPAY_KEY_SECRET")
        if not key_id or not key_secret:
            return None
        return cls(
            key_id,
            key_secret,
            api_base=config.get("RAZORPAY_API_BASE", "https://api.razorpay.com/v1"),
            timeout=config.get("RAZORPAY_TIMEOUT_SECONDS", 15),
        )

    def _request(self, method: str, path: str, payload: dict = None) -> dict:
        url = f"{self.api_base}/{path.lstrip('/')}"
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("razorpay %s %s unreachable: %s", method, path, exc)
            raise GatewayError(f"Failed to contact Razorpay: {exc}")

        if resp.status_code >= 400:
            body = resp.text
            logger.error("razorpay %s %s -> %s: %s", method, path, resp.status_code, body)
            raise GatewayError(f"Razorpay request failed: {body}", upstream_status=resp.status_code, body=body)

        try:
            data = resp.json()
        except ValueError:
            raise GatewayError("Invalid response received from Razorpay")
        if not isinstance(data, dict):
            raise GatewayError("Unexpected response format from Razorpay")
        return data

    def create_order(self, amount_paise: int, receipt: str, notes: dict = None, currency: str = "INR") -> dict:
        return self._request("POST", "/orders", {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        })

    def create_plan(self, period: str, name: str, amount_paise: int, currency: str = "INR", interval: int = 1) -> dict:
        return self._request("POST", "/plans", {
            "period": period,
            "interval": interval,
            "item": {"name": name, "amount": amount_paise, "currency": currency},
        })

    def create_subscription(self, plan_id: str, total_count: int, notes: dict = None) -> dict:
        return self._request("POST", "/subscriptions", {
            "plan_id": plan_id,
            "total_count": total_count,
            "customer_notify": 1,
            "notes": notes or {},
        })

    def cancel_subscription(self, subscription_id: str, cancel_at_cycle_end: bool = True) -> dict:
        return self._request("POST", f"/subscriptions/{subscription_id}/cancel", {
            "cancel_at_cycle_end": 1 if cancel_at_cycle_end else 0,
        })


def get_gateway():
    client = current_app.extensions.get("razorpay")
    if client is None:
        raise ConfigError("Razorpay credentials not configured")
    return client


def require_secret(name: str) -> str:
    value = current_app.config.get(name)
    if not value:
        raise ConfigError(f"{name} not configured")
    return value

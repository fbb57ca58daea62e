"""
Error taxonomy for the payment core.

Every error carries the HTTP status it maps to; the app factory renders
them as ``{"error": message}``.
"""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigError(LedgerError):
    """Missing secret or credential. Operator must fix it."""
    status_code = 500


class GatewayError(LedgerError):
    status_code = 502

    def __init__(self, message: str, upstream_status: int = None, body: str = None):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


class SignatureError(LedgerError):
    status_code = 400


class InvalidInput(LedgerError):
    status_code = 400


class RecordNotFound(LedgerError):
    status_code = 400


class TransitionRefused(LedgerError):
    status_code = 409

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"Cannot move {entity} from {current} to {target}")
        self.entity = entity
        self.current = current
        self.target = target

from utils.errors import TransitionRefused

# payment_status values (donations + payments)
PENDING = "pending"
SUCCESS = "success"
FAILED = "failed"
REFUNDED = "refunded"

PAYMENT_TRANSITIONS = {
    PENDING: {SUCCESS, FAILED},
    SUCCESS: {REFUNDED},
    FAILED: set(),
    REFUNDED: set(),
}

# subscription status values
SUB_PENDING = "pending"
SUB_ACTIVE = "active"
SUB_CANCELLED = "cancelled"
SUB_EXPIRED = "expired"
SUB_PAUSED = "paused"

SUBSCRIPTION_TRANSITIONS = {
    SUB_PENDING: {SUB_ACTIVE, SUB_PAUSED, SUB_CANCELLED, SUB_EXPIRED},
    SUB_ACTIVE: {SUB_PAUSED, SUB_CANCELLED, SUB_EXPIRED},
    SUB_PAUSED: {SUB_ACTIVE, SUB_CANCELLED, SUB_EXPIRED},
    SUB_CANCELLED: {SUB_EXPIRED},
    SUB_EXPIRED: set(),
}

# membership plan types
MONTHLY = "monthly"
YEARLY = "yearly"
LIFETIME = "lifetime"
PLAN_TYPES = (MONTHLY, YEARLY, LIFETIME)

DONATION = "donation"
RECURRING_CHARGE = "subscription"


def check_transition(table: dict, entity: str, current: str, target: str) -> bool:
    """
    Returns True if the row must change, False if it is already in `target`.
    Raises TransitionRefused for anything the table does not allow.
    """
    if current == target:
        return False
    if target not in table.get(current, set()):
        raise TransitionRefused(entity, current, target)
    return True

from .db import db
from .user import User, Role, user_roles
from .auth_token import AuthToken
from .audit_log import AuditLog
from .member import Member
from .membership_plan import MembershipPlan
from .subscription import Subscription
from .donation import Donation
from .payment import Payment

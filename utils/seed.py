from decimal import Decimal

from models import db
from models.user import Role
from models.membership_plan import MembershipPlan
from security.rbac import ADMIN, MODERATOR, MEMBER

DEFAULT_ROLES = [MEMBER, MODERATOR, ADMIN]

DEFAULT_PLANS = [
    {"name": "Monthly Supporter", "type": "monthly", "price": Decimal("199.00"),
     "features": ["Member newsletter", "Event updates"]},
    {"name": "Yearly Supporter", "type": "yearly", "price": Decimal("1999.00"),
     "features": ["Member newsletter", "Event updates", "Priority event registration"]},
    {"name": "Lifetime Member", "type": "lifetime", "price": Decimal("9999.00"),
     "features": ["All yearly benefits", "Lifetime recognition"]},
]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_plans() -> int:
    existing = {p.name for p in MembershipPlan.query.all()}
    created = 0
    for row in DEFAULT_PLANS:
        if row["name"] in existing:
            continue
        db.session.add(MembershipPlan(**row))
        created += 1
    db.session.commit()
    return created

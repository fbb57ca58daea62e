from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, needs_rehash, verify_password
from security.password_policy import validate_password
from security.rbac import MEMBER
from security.tokens import bearer_from_request, issue_token, revoke_token
from utils.audit import log_event
from utils.auth_context import login_required


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    full_name = data.get("full_name")

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if full_name is not None and (not isinstance(full_name, str) or len(full_name.strip()) > 120):
        return jsonify(error="Invalid full_name"), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    pw_hash = hash_password(password)

    user = User(email=email, password_hash=pw_hash, full_name=(full_name or "").strip() or None)
    db.session.add(user)
    db.session.flush()

    member_role = Role.query.filter_by(name=MEMBER).first()
    if member_role:
        user.roles.append(member_role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id)

    return jsonify(message="Registered successfully", id=user.id), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        db.session.commit()
        log_event("PASSWORD_REHASHED", user_id=user.id)

    raw_token = issue_token(user.id)
    log_event("LOGIN_SUCCESS", user_id=user.id)

    return jsonify(
        message="Login OK",
        token=raw_token,
        token_type="Bearer",
        expires_in=current_app.config.get("TOKEN_LIFETIME_SECONDS", 28800),
    ), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(
        id=g.user.id,
        email=g.user.email,
        full_name=g.user.full_name,
        roles=g.user.role_names(),
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_token(bearer_from_request())
    log_event("LOGOUT", user_id=g.user.id)
    return jsonify(message="Logged out"), 200

import logging
from functools import wraps

from flask import Blueprint, request, jsonify
from flask_login import LoginManager, UserMixin, login_user, logout_user, login_required, current_user

from models.users_db import get_user, verify_password
from services.metrics import LOGIN_SUCCESSES, LOGIN_FAILURES

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()


class User(UserMixin):
    def __init__(self, user_id, email, role):
        self.id = user_id
        self.email = email
        self.role = role

    @property
    def is_admin(self):
        return self.role == "admin"


@login_manager.user_loader
def load_user(user_id):
    row = get_user(user_id)
    if not row:
        return None
    return User(row["id"], row["email"], row["role"])


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "authentication required"}), 401


def admin_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not getattr(current_user, "is_admin", False):
            return jsonify({"error": "forbidden"}), 403
        return f(*args, **kwargs)
    return wrapper


@auth_bp.post("/login")
def login_post():
    payload = request.get_json(silent=True) or request.form
    email = (payload.get("email") or "").strip()
    password = payload.get("password") or ""

    row = verify_password(email, password)
    if not row:
        LOGIN_FAILURES.labels(reason="bad_credentials").inc()
        logger.warning("login failed for %s", email or "unknown")
        return jsonify({"error": "Invalid email or password."}), 401

    login_user(User(row["id"], row["email"], row["role"]))
    LOGIN_SUCCESSES.inc()
    logger.info("login ok user=%s role=%s", row["id"], row["role"])
    return jsonify({"id": row["id"], "email": row["email"], "role": row["role"]}), 200


@auth_bp.post("/logout")
@login_required
def logout():
    logger.info("logout user=%s", current_user.id)
    logout_user()
    return jsonify({"ok": True}), 200

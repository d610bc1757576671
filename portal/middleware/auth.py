from functools import wraps
from typing import NamedTuple, Optional
from datetime import timedelta
from flask import request, jsonify, g, current_app
import jwt
from portal.models.session import PORTAL_SESSION
from portal.utils.serialization import utcnow

# role -> set of (resource, action); "*" grants everything
CAPABILITIES = {
    "superadmin": {("*", "*")},
    "trainer": {
        ("batches", "read"),
        ("batches", "export"),
        ("participants", "read"),
    },
    "supervisor": {
        ("batches", "read"),
        ("batches", "export"),
        ("participants", "read"),
        ("exams", "results"),
        ("courses", "read"),
    },
    "formadmin": {
        ("courses", "read"),
    },
    "student": {
        ("courses", "read_own"),
        ("lessons", "complete"),
        ("exams", "take"),
    },
}


class AuthContext(NamedTuple):
    role: str
    subject_id: str
    user: dict
    jti: str


def has_capability(role, resource, action):
    granted = CAPABILITIES.get(role, set())
    return (
        ("*", "*") in granted
        or (resource, action) in granted
        or (resource, "*") in granted
    )


# ---------------------------
# Helpers
# ---------------------------

def create_jwt(payload, expires_in: Optional[timedelta] = None):
    expires_in = expires_in or current_app.config["SESSION_TTL"]
    payload_copy = payload.copy()
    now = utcnow()
    payload_copy["iat"] = now
    payload_copy["exp"] = now + expires_in
    return jwt.encode(payload_copy, current_app.config["SECRET_KEY"], algorithm="HS256")


def _get_bearer_token():
    auth = request.headers.get("Authorization", "")
    if not auth or not auth.startswith("Bearer "):
        return None
    return auth.split("Bearer ", 1)[1].strip()


def _decode_jwt(token):
    if not token:
        return None, ("Missing token", 401)
    try:
        payload = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
        return payload, None
    except jwt.ExpiredSignatureError:
        return None, ("Token expired", 401)
    except jwt.InvalidTokenError:
        return None, ("Invalid token", 401)


def _load_auth_context():
    """Resolve the request's bearer token to an AuthContext, or return an error tuple."""
    token = _get_bearer_token()
    if not token:
        return None, ("Authorization header missing or invalid", 401)

    payload, err = _decode_jwt(token)
    if err:
        return None, err

    jti = payload.get("jti")
    if not jti:
        return None, ("Malformed token: missing jti", 401)

    session = PORTAL_SESSION.get_active(jti)
    if session is None:
        return None, ("Session expired or revoked", 401)

    return AuthContext(
        role=session["role"],
        subject_id=session["subject_id"],
        user=session.get("user") or {},
        jti=jti,
    ), None


# ---------------------------
# Decorators
# ---------------------------

def login_required(func):
    """Attach g.auth for any signed-in role."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx, err = _load_auth_context()
        if err:
            msg, code = err
            return jsonify({"error": msg}), code
        g.auth = ctx
        return func(*args, **kwargs)
    return wrapper


def require_capability(resource, action):
    """Attach g.auth and allow the call only when the role grants (resource, action)."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            ctx, err = _load_auth_context()
            if err:
                msg, code = err
                return jsonify({"error": msg}), code
            if not has_capability(ctx.role, resource, action):
                current_app.logger.info(f"Denied {ctx.role} {resource}:{action} on {request.path}")
                return jsonify({"error": "Forbidden"}), 403
            g.auth = ctx
            return func(*args, **kwargs)
        return wrapper
    return decorator

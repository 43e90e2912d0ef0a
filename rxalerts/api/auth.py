"""
JWT authentication helpers and middleware for the Flask API.

Tokens are issued by the pharmacy backend (claims ``id`` and ``role``) and
verified here with the shared secret.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import request, jsonify

from rxalerts.config import SECRET_KEY, TOKEN_EXPIRY_HOURS
from rxalerts.models import Identity


def generate_token(user_id: Any, role: str, username: Optional[str] = None, secret: str = SECRET_KEY) -> str:
    """Generate a JWT shaped like the backend's (used by dev scripts and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=TOKEN_EXPIRY_HOURS),
    }
    if username:
        payload["username"] = username
    return jwt.encode(payload, secret, algorithm="HS256")


def verify_token(token: str, secret: str = SECRET_KEY) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def identity_from_payload(payload: Dict[str, Any]) -> Optional[Identity]:
    return Identity.from_user({"id": payload.get("id"), "role": payload.get("role")})


def token_required(f):
    """Decorator that protects endpoints with JWT authentication."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None

        # Check Authorization header (Bearer token)
        if "Authorization" in request.headers:
            auth_header = request.headers["Authorization"]
            try:
                token = auth_header.split(" ")[1]
            except IndexError:
                return jsonify({"error": "Invalid authorization header format"}), 401

        # Fallback: query params
        if not token:
            token = request.args.get("token")

        if not token:
            return jsonify({"error": "Authentication token is missing"}), 401

        payload = verify_token(token)
        if not payload:
            return jsonify({"error": "Invalid or expired token"}), 401

        identity = identity_from_payload(payload)
        if identity is None:
            return jsonify({"error": "Token does not identify a user (id and role required)"}), 401

        request.identity = identity
        request.token = token
        request.user = {"id": identity.user_id, "role": identity.role, "username": payload.get("username")}

        return f(*args, **kwargs)

    return decorated

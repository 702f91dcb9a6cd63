# krishisarthi/routes/auth/auth_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt,
    get_jwt_identity,
    jwt_required,
)

from krishisarthi.routes.helpers import json_body, ok, require_user_id, user_service
from krishisarthi.services.user_service import public_user

# -------------------------------------------------------------------
# Blueprints
# -------------------------------------------------------------------
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
user_bp = Blueprint("user", __name__, url_prefix="/api/user")


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _issue_tokens(user_doc: dict) -> tuple[str, str]:
    ident = str(user_doc["_id"])
    claims = {"username": user_doc.get("username", "")}
    access = create_access_token(identity=ident, additional_claims=claims)
    refresh = create_refresh_token(identity=ident, additional_claims=claims)
    return access, refresh


# -------------------------------------------------------------------
# JSON: /api/auth/register
# -------------------------------------------------------------------
@auth_bp.post("/register")
def auth_register():
    """
    Body: { fullname, username, email, password, phone? }
    Returns the public user plus access + refresh tokens (auto-login).
    """
    user = user_service().register(json_body())
    access, refresh = _issue_tokens(user)
    return jsonify(
        success=True,
        message="User registered successfully",
        token=access,
        refresh_token=refresh,
        user=public_user(user),
    ), 201


# -------------------------------------------------------------------
# JSON: /api/auth/login
# -------------------------------------------------------------------
@auth_bp.post("/login")
def auth_login():
    """Body: { username, password }. Same 401 for unknown user and bad password."""
    user = user_service().authenticate(json_body())
    access, refresh = _issue_tokens(user)
    return jsonify(
        success=True,
        message="Login successful",
        token=access,
        refresh_token=refresh,
        user=public_user(user),
    ), 200


# -------------------------------------------------------------------
# JSON: /api/auth/refresh
# -------------------------------------------------------------------
@auth_bp.post("/refresh")
@jwt_required(refresh=True)
def auth_refresh():
    ident = get_jwt_identity()
    claims = {"username": get_jwt().get("username", "")}
    new_access = create_access_token(identity=ident, additional_claims=claims)
    return jsonify(success=True, token=new_access), 200


# -------------------------------------------------------------------
# JSON: /api/user/profile
# -------------------------------------------------------------------
@user_bp.get("/profile")
def profile():
    user_id = require_user_id()
    user = user_service().get_profile(user_id)
    return ok(public_user(user))

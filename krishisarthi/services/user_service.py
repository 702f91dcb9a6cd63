# krishisarthi/services/user_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError

from krishisarthi.errors import AuthenticationError, ConflictError, NotFoundError
from krishisarthi.models.user_models import LoginRequest, RegisterRequest
from krishisarthi.mongo import USERS
from krishisarthi.services.lifecycle import validate
from krishisarthi.utils import to_object_id, utcnow

logger = logging.getLogger(__name__)


def public_user(u: dict) -> dict:
    """Safe subset of a user document (never the password hash)."""
    return {
        "id": str(u.get("_id")),
        "fullname": u.get("fullname", ""),
        "username": u.get("username", ""),
        "email": u.get("email", ""),
        "phone": u.get("phone"),
    }


class UserService:

    def __init__(self, db, bcrypt):
        self.users = db[USERS]
        self.bcrypt = bcrypt

    def register(self, payload: dict) -> Dict[str, Any]:
        data = validate(RegisterRequest, payload)

        existing = self.users.find_one({"$or": [{"email": data.email}, {"username": data.username}]})
        if existing:
            raise ConflictError("Email or username already exists")

        now = utcnow()
        user_doc = {
            "fullname": data.fullname,
            "username": data.username,
            "email": data.email,
            "password": self.bcrypt.generate_password_hash(data.password).decode("utf-8"),
            "phone": data.phone,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            inserted = self.users.insert_one(user_doc)
        except DuplicateKeyError:
            # lost a race with another signup for the same email/username
            raise ConflictError("Email or username already exists") from None

        user_doc["_id"] = inserted.inserted_id
        logger.info("user %s registered", data.username)
        return user_doc

    def authenticate(self, payload: dict) -> Dict[str, Any]:
        data = validate(LoginRequest, payload)

        user = self.users.find_one({"username": data.username.strip()})
        if not user or not self.bcrypt.check_password_hash(user.get("password", ""), data.password):
            logger.warning("failed login for username %s", data.username)
            raise AuthenticationError("Invalid credentials")
        return user

    def get_profile(self, user_id: Optional[str]) -> Dict[str, Any]:
        oid = to_object_id(user_id)
        user = self.users.find_one({"_id": oid}) if oid else None
        if not user:
            raise NotFoundError("User not found")
        return user

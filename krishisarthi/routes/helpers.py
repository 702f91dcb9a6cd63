# krishisarthi/routes/helpers.py

from flask import current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from krishisarthi.errors import ValidationError
from krishisarthi.extensions import bcrypt
from krishisarthi.mongo import EXTENSION_KEY, get_db
from krishisarthi.services.listing_service import ListingService
from krishisarthi.services.quotation_service import QuotationService
from krishisarthi.services.user_service import UserService
from krishisarthi.utils import serialize


# ------------------------------------------------------------
# Envelope
# ------------------------------------------------------------
def ok(data=None, message=None, status=200, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = serialize(data)
    body.update(serialize(extra))
    return jsonify(body), status


def json_body() -> dict:
    if not request.data:
        return {}
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


# ------------------------------------------------------------
# Identity
# ------------------------------------------------------------
def require_user_id() -> str:
    """Bearer token required; missing/invalid tokens become 401 via JWT callbacks."""
    verify_jwt_in_request()
    return get_jwt_identity()


def optional_user_id():
    verify_jwt_in_request(optional=True)
    return get_jwt_identity()


# ------------------------------------------------------------
# Services (built per request from the app's db + settings)
# ------------------------------------------------------------
def _settings():
    return current_app.extensions[EXTENSION_KEY]["settings"]


def listing_service() -> ListingService:
    return ListingService(get_db(), _settings())


def quotation_service() -> QuotationService:
    return QuotationService(get_db(), _settings())


def user_service() -> UserService:
    return UserService(get_db(), bcrypt)

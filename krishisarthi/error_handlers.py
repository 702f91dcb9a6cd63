# krishisarthi/error_handlers.py

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from krishisarthi.errors import MarketplaceError
from krishisarthi.extensions import jwt
from krishisarthi.routes.root.root_routes import ENDPOINTS


def _envelope(message, status, error=None):
    body = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return jsonify(body), status


def register_error_handlers(app):

    # ── domain errors (validation, state guard, ownership, conflicts)
    def _marketplace_error(e: MarketplaceError):
        if e.status_code >= 500:
            current_app.logger.error("%s %s failed: %s", request.method, request.path, e.message)
        return jsonify(e.to_dict()), e.status_code

    # ── werkzeug errors keep the JSON envelope
    def _http_error(e: HTTPException):
        if e.code == 404:
            body = {
                "success": False,
                "message": "Route not found",
                "path": request.path,
                "availableEndpoints": ENDPOINTS,
            }
            return jsonify(body), 404
        return _envelope(e.description or e.name, e.code)

    # ── anything else is a 500; details only outside production
    def _unexpected_error(e: Exception):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        detail = None
        if current_app.debug or current_app.config.get("ENVIRONMENT") == "development":
            detail = str(e)
        return _envelope("Internal Server Error", 500, detail)

    app.register_error_handler(MarketplaceError, _marketplace_error)
    app.register_error_handler(HTTPException, _http_error)
    app.register_error_handler(Exception, _unexpected_error)


# ── flask-jwt-extended callbacks: every token problem is a 401 envelope
@jwt.unauthorized_loader
def _missing_token(reason):
    return _envelope("No token provided", 401, reason)


@jwt.invalid_token_loader
def _invalid_token(reason):
    return _envelope("Invalid or expired token", 401, reason)


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return _envelope("Invalid or expired token", 401, "Token has expired")

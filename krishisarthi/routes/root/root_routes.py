# krishisarthi/routes/root/root_routes.py

from flask import current_app, jsonify
from pymongo.errors import PyMongoError

from krishisarthi.mongo import get_db
from krishisarthi.routes.root import root_bp
from krishisarthi.utils import utcnow

ENDPOINTS = {
    "root": "/",
    "health": "/api/health",
    "auth": {
        "login": "/api/auth/login",
        "register": "/api/auth/register",
        "refresh": "/api/auth/refresh",
    },
    "user": "/api/user/profile",
    "quotations": "/api/quotations",
    "cropListings": "/api/crop-listings",
}


# -----------------------------
# SERVICE INFO
# -----------------------------
@root_bp.get("/")
def home():
    return jsonify(
        success=True,
        message="KrishiSarthi API Server",
        version=current_app.config.get("API_VERSION", "1.0.0"),
        status="Running",
        endpoints=ENDPOINTS,
    )


# -----------------------------
# HEALTH
# -----------------------------
@root_bp.get("/api/health")
def health():
    connected = True
    try:
        get_db().command("ping")
    except (PyMongoError, NotImplementedError) as e:
        current_app.logger.warning("health: database ping failed: %s", e)
        connected = False

    return jsonify(
        success=True,
        message="KrishiSarthi API is running",
        timestamp=utcnow().isoformat(),
        database={
            "status": "Connected" if connected else "Disconnected",
            "connected": connected,
        },
        environment=current_app.config.get("ENVIRONMENT", "development"),
    )

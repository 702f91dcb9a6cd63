# app.py

import logging
import os

from flask import Flask

from krishisarthi.app_config import load_config
from krishisarthi.error_handlers import register_error_handlers
from krishisarthi.extensions import bcrypt, cors, jwt
from krishisarthi.mongo import EXTENSION_KEY, init_mongo
from krishisarthi.register_blueprints import register_all_blueprints


def create_app(overrides=None, db=None):
    """
    Build the API. `overrides` replaces config keys after the environment is
    read; `db` injects a ready Database instead of connecting via MONGO_URI.
    """
    app = Flask(__name__)

    # -------------------------
    # Config & logging
    # -------------------------
    settings = load_config(app, overrides)
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])
    app.extensions.setdefault(EXTENSION_KEY, {})["settings"] = settings

    # -------------------------
    # Extensions
    # -------------------------
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    )
    bcrypt.init_app(app)
    jwt.init_app(app)

    # -------------------------
    # Mongo
    # -------------------------
    init_mongo(app, db=db)

    # -------------------------
    # Blueprints + errors
    # -------------------------
    register_all_blueprints(app)
    register_error_handlers(app)

    return app


# Local run only
if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=True)

# krishisarthi/mongo.py
from __future__ import annotations

import logging

from flask import current_app
from flask_pymongo import PyMongo
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

mongo = PyMongo()

EXTENSION_KEY = "krishisarthi"

LISTINGS = "cropListings"
QUOTATIONS = "quotation"
USERS = "users"
COUNTERS = "counters"


def init_mongo(app, db=None):
    """
    Initializes Flask-PyMongo from app.config["MONGO_URI"], or registers
    an already-built Database (tests pass a mongomock one).
    Returns the Database the services will use.
    """
    if db is None:
        mongo.init_app(app)
        db = mongo.db
        if db is None:
            raise RuntimeError("MONGO_URI must include a database name")
        logger.info("✅ Mongo initialized")
    else:
        logger.info("Using injected database %s", getattr(db, "name", db))

    app.extensions.setdefault(EXTENSION_KEY, {})["db"] = db
    ensure_indexes(db)
    return db


def get_db():
    """Returns the Database registered for the current app."""
    try:
        return current_app.extensions[EXTENSION_KEY]["db"]
    except KeyError:
        raise RuntimeError("init_mongo(app) was not called") from None


def ensure_indexes(db):
    try:
        db[LISTINGS].create_index([("listingNumber", ASCENDING)], unique=True)
        db[LISTINGS].create_index([("userId", ASCENDING)])
        db[LISTINGS].create_index([("status", ASCENDING)])
        db[LISTINGS].create_index([("createdAt", DESCENDING)])

        db[QUOTATIONS].create_index([("quotationNumber", ASCENDING)], unique=True)
        db[QUOTATIONS].create_index([("userId", ASCENDING)])
        db[QUOTATIONS].create_index([("status", ASCENDING)])
        db[QUOTATIONS].create_index([("createdAt", DESCENDING)])

        db[USERS].create_index([("email", ASCENDING)], unique=True)
        db[USERS].create_index([("username", ASCENDING)], unique=True)
    except PyMongoError as e:
        logger.warning("index error: %s", e)

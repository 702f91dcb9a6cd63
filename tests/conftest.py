# tests/conftest.py

import mongomock
import pytest

from app import create_app
from krishisarthi.app_config import Settings
from krishisarthi.mongo import ensure_indexes
from krishisarthi.services.listing_service import ListingService
from krishisarthi.services.quotation_service import QuotationService

TEST_CONFIG = {
    "TESTING": True,
    "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
    "SECRET_KEY": "test",
    "BCRYPT_LOG_ROUNDS": 4,
    "ENVIRONMENT": "testing",
    "LOG_LEVEL": "WARNING",
}


def listing_payload(**overrides):
    payload = {
        "crop": {"name": "Wheat", "category": "Cereal", "msp": "2275"},
        "seller": {
            "name": "Ramesh Patel",
            "phone": "9876543210",
            "email": "ramesh@example.com",
            "location": "Indore",
        },
        "cropDetails": {"quantity": 100, "quality": "standard", "expectedPrice": 2200},
        "services": {"transport": True},
        "additionalInfo": "Stored in dry godown",
    }
    payload.update(overrides)
    return payload


def quotation_payload(**overrides):
    payload = {
        "equipment": {"name": "Mahindra 575 DI", "category": "Tractor", "price": "650000", "rentalPrice": "1500/day"},
        "quotationType": "rental",
        "customerDetails": {"name": "Sita Devi", "phone": "9123456780", "location": "Nashik", "landSize": 4.5},
        "rentalDuration": "7 days",
        "interests": {"subsidy": True},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def db():
    database = mongomock.MongoClient().db
    ensure_indexes(database)
    return database


@pytest.fixture
def settings():
    return Settings(environment="testing")


@pytest.fixture
def listings(db, settings):
    return ListingService(db, settings)


@pytest.fixture
def quotations(db, settings):
    return QuotationService(db, settings)


@pytest.fixture
def app(db):
    return create_app(dict(TEST_CONFIG), db=db)


@pytest.fixture
def client(app):
    return app.test_client()


def _register(client, username):
    resp = client.post(
        "/api/auth/register",
        json={
            "fullname": username.title(),
            "username": username,
            "email": f"{username}@example.com",
            "password": "secret123",
        },
    )
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    return {"Authorization": f"Bearer {body['token']}"}, body["user"]["id"]


@pytest.fixture
def register(client):
    """register("alice") -> (auth headers, user id)"""
    return lambda username: _register(client, username)

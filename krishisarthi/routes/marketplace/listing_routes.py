# krishisarthi/routes/marketplace/listing_routes.py

from flask import Blueprint, request

from krishisarthi.routes.helpers import (
    json_body,
    listing_service,
    ok,
    require_user_id,
)

listings_bp = Blueprint(
    "crop_listings_bp",
    __name__,
    url_prefix="/api/crop-listings",
)


# ------------------------------------------------------------
# Create / read
# ------------------------------------------------------------
@listings_bp.post("/", strict_slashes=False)
def create_listing():
    user_id = require_user_id()
    listing = listing_service().create(user_id, json_body())
    return ok(listing, "Crop listing created successfully", 201)


@listings_bp.get("/", strict_slashes=False)
def list_listings():
    docs, pagination = listing_service().list_listings(request.args.to_dict(flat=True))
    return ok(docs, pagination=pagination)


@listings_bp.get("/mine")
def my_listings():
    user_id = require_user_id()
    docs = listing_service().list_for_owner(user_id)
    return ok(docs, count=len(docs))


@listings_bp.get("/seller/<phone>")
def listings_by_seller(phone):
    docs = listing_service().list_by_seller_phone(phone)
    return ok(docs, count=len(docs))


@listings_bp.get("/stats/dashboard")
def listing_stats():
    return ok(listing_service().dashboard_stats())


@listings_bp.get("/<listing_id>")
def get_listing(listing_id):
    return ok(listing_service().get(listing_id))


# ------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------
@listings_bp.post("/<listing_id>/buyer-contact")
def add_buyer_contact(listing_id):
    listing = listing_service().express_interest(listing_id, json_body())
    return ok(listing, "Buyer contact added successfully")


@listings_bp.post("/<listing_id>/sold")
def mark_listing_sold(listing_id):
    user_id = require_user_id()
    listing = listing_service().mark_sold(listing_id, user_id, json_body())
    return ok(listing, "Listing marked as sold")


@listings_bp.post("/<listing_id>/cancel")
def cancel_listing(listing_id):
    user_id = require_user_id()
    listing = listing_service().cancel(listing_id, user_id, json_body())
    return ok(listing, "Listing cancelled")


@listings_bp.patch("/<listing_id>/status")
def update_listing_status(listing_id):
    user_id = require_user_id()
    listing = listing_service().update_status(listing_id, user_id, json_body())
    return ok(listing, "Listing updated successfully")


@listings_bp.post("/<listing_id>/notes")
def add_listing_note(listing_id):
    user_id = require_user_id()
    listing = listing_service().add_note(listing_id, user_id, json_body())
    return ok(listing, "Note added")


@listings_bp.delete("/<listing_id>")
def delete_listing(listing_id):
    user_id = require_user_id()
    listing_service().delete(listing_id, user_id)
    return ok(message="Listing deleted successfully")

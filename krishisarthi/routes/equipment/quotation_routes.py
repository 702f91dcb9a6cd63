# krishisarthi/routes/equipment/quotation_routes.py

from flask import Blueprint, request

from krishisarthi.routes.helpers import (
    json_body,
    ok,
    optional_user_id,
    quotation_service,
    require_user_id,
)

quotations_bp = Blueprint(
    "quotations_bp",
    __name__,
    url_prefix="/api/quotations",
)


# ------------------------------------------------------------
# Create / read
# ------------------------------------------------------------
@quotations_bp.post("/", strict_slashes=False)
def create_quotation():
    user_id = require_user_id()
    quotation = quotation_service().create(user_id, json_body())
    return ok(quotation, "Quotation submitted successfully", 201)


@quotations_bp.get("/", strict_slashes=False)
def list_quotations():
    docs, pagination = quotation_service().list_quotations(request.args.to_dict(flat=True))
    return ok(docs, pagination=pagination)


@quotations_bp.get("/mine")
def my_quotations():
    user_id = require_user_id()
    docs = quotation_service().list_for_owner(user_id)
    return ok(docs, count=len(docs))


@quotations_bp.get("/customer/<phone>")
def quotations_by_customer(phone):
    docs = quotation_service().list_by_customer_phone(phone)
    return ok(docs, count=len(docs))


@quotations_bp.get("/stats/dashboard")
def quotation_stats():
    return ok(quotation_service().dashboard_stats())


@quotations_bp.get("/<quotation_id>")
def get_quotation(quotation_id):
    return ok(quotation_service().get(quotation_id))


# ------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------
@quotations_bp.post("/<quotation_id>/accept")
def accept_quotation(quotation_id):
    caller_id = optional_user_id()
    quotation = quotation_service().accept(quotation_id, json_body(), caller_id=caller_id)
    return ok(quotation, "Quotation accepted")


@quotations_bp.post("/<quotation_id>/cancel")
def cancel_quotation(quotation_id):
    user_id = require_user_id()
    quotation = quotation_service().cancel(quotation_id, user_id, json_body())
    return ok(quotation, "Quotation cancelled")


@quotations_bp.post("/<quotation_id>/complete")
def complete_quotation(quotation_id):
    user_id = require_user_id()
    quotation = quotation_service().complete(quotation_id, user_id, json_body())
    return ok(quotation, "Quotation marked as completed")


@quotations_bp.patch("/<quotation_id>")
def update_quotation(quotation_id):
    user_id = require_user_id()
    quotation = quotation_service().update_details(quotation_id, user_id, json_body())
    return ok(quotation, "Quotation updated successfully")


@quotations_bp.delete("/<quotation_id>")
def delete_quotation(quotation_id):
    user_id = require_user_id()
    quotation_service().delete(quotation_id, user_id)
    return ok(message="Quotation deleted successfully")

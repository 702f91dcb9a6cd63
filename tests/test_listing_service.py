# tests/test_listing_service.py

import re

import pytest

from conftest import listing_payload
from krishisarthi.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    StateGuardError,
    ValidationError,
)

OWNER = "64b000000000000000000001"
OTHER = "64b000000000000000000002"


def _interest(phone="9000000001", name="Buyer A", price=2000):
    return {"buyerName": name, "buyerPhone": phone, "offeredPrice": price}


def test_create_assigns_number_and_active_status(listings):
    doc = listings.create(OWNER, listing_payload())

    assert re.fullmatch(r"CL-\d{13}-0001", doc["listingNumber"])
    assert doc["status"] == "active"
    assert doc["userId"] == OWNER
    assert doc["buyerContacts"] == []
    assert doc["statusHistory"] == []


def test_create_then_get_returns_submitted_fields(listings):
    payload = listing_payload()
    created = listings.create(OWNER, payload)

    fetched = listings.get(str(created["_id"]))

    assert fetched["crop"] == payload["crop"]
    assert fetched["seller"] == payload["seller"]
    assert fetched["cropDetails"]["quantity"] == 100
    assert fetched["cropDetails"]["quality"] == "standard"
    assert fetched["services"] == {"transport": True, "storage": False, "qualityTest": False}
    assert fetched["additionalInfo"] == payload["additionalInfo"]
    assert fetched["listingNumber"] == created["listingNumber"]
    assert fetched["status"] == "active"


def test_create_requires_owner(listings):
    with pytest.raises(ValidationError):
        listings.create(None, listing_payload())


def test_create_rejects_bad_payload(listings):
    bad = listing_payload(cropDetails={"quantity": 10, "quality": "excellent", "expectedPrice": 5})
    with pytest.raises(ValidationError) as exc:
        listings.create(OWNER, bad)
    assert "cropDetails.quality" in exc.value.message


def test_create_rejects_bad_phone(listings):
    bad = listing_payload(seller={"name": "X", "phone": "12345", "location": "Pune"})
    with pytest.raises(ValidationError):
        listings.create(OWNER, bad)


def test_sequence_numbers_are_unique(listings):
    numbers = {listings.create(OWNER, listing_payload())["listingNumber"] for _ in range(25)}
    assert len(numbers) == 25


def test_duplicate_number_is_retried(listings, monkeypatch):
    from krishisarthi.services import sequence_service

    monkeypatch.setattr(sequence_service, "_now_millis", lambda: 1700000000000)
    listings.col.insert_one({"listingNumber": "CL-1700000000000-0001", "userId": OTHER, "status": "active"})

    doc = listings.create(OWNER, listing_payload())

    assert doc["listingNumber"] == "CL-1700000000000-0002"


def test_express_interest_moves_active_to_contacted(listings):
    listing = listings.create(OWNER, listing_payload())

    updated = listings.express_interest(str(listing["_id"]), _interest())

    assert updated["status"] == "contacted"
    assert len(updated["buyerContacts"]) == 1
    assert updated["buyerContacts"][0]["buyerPhone"] == "9000000001"
    assert len(updated["statusHistory"]) == 1
    entry = updated["statusHistory"][-1]
    assert entry["status"] == "contacted"
    assert entry["fromStatus"] == "active"
    assert entry["changedBy"] == "Buyer A"


def test_second_buyer_keeps_contacted_and_appends_history(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])
    listings.express_interest(lid, _interest())

    updated = listings.express_interest(lid, _interest(phone="9000000002", name="Buyer B"))

    assert updated["status"] == "contacted"
    assert len(updated["buyerContacts"]) == 2
    assert len(updated["statusHistory"]) == 2
    assert updated["statusHistory"][-1]["status"] == "contacted"


def test_duplicate_interest_is_conflict_and_leaves_listing_unchanged(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])
    listings.express_interest(lid, _interest())

    with pytest.raises(ConflictError):
        listings.express_interest(lid, _interest(price=2500))

    after = listings.get(lid)
    assert len(after["buyerContacts"]) == 1
    assert len(after["statusHistory"]) == 1


def test_interest_not_allowed_while_negotiating(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])
    listings.express_interest(lid, _interest())
    listings.update_status(lid, OWNER, {"status": "negotiating"})

    with pytest.raises(StateGuardError):
        listings.express_interest(lid, _interest(phone="9000000002", name="Buyer B"))


def test_scenario_interest_then_sold_then_terminal(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])
    assert listing["status"] == "active"

    contacted = listings.express_interest(lid, _interest(price=2000))
    assert contacted["status"] == "contacted"
    assert len(contacted["buyerContacts"]) == 1

    sold = listings.mark_sold(lid, OWNER, {"soldTo": "Buyer A", "finalPrice": 2100, "soldQuantity": 80})
    assert sold["status"] == "sold"
    assert sold["soldQuantity"] == 80
    assert sold["finalPrice"] == 2100
    assert sold["soldTo"] == "Buyer A"
    assert sold["soldDate"] is not None
    assert sold["statusHistory"][-1]["status"] == "sold"

    with pytest.raises(StateGuardError):
        listings.express_interest(lid, _interest(phone="9000000009"))
    with pytest.raises(StateGuardError):
        listings.cancel(lid, OWNER, {"reason": "changed my mind"})
    with pytest.raises(StateGuardError):
        listings.mark_sold(lid, OWNER, {"finalPrice": 1})

    assert len(listings.get(lid)["statusHistory"]) == 2


def test_sold_quantity_defaults_to_listed_quantity(listings):
    listing = listings.create(OWNER, listing_payload())

    sold = listings.mark_sold(str(listing["_id"]), OWNER, {"finalPrice": 2000})

    assert sold["soldQuantity"] == 100


def test_sold_quantity_cannot_exceed_listing(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])

    with pytest.raises(ValidationError):
        listings.mark_sold(lid, OWNER, {"finalPrice": 2000, "soldQuantity": 150})
    assert listings.get(lid)["status"] == "active"


def test_cancel_records_reason_and_is_terminal(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])

    cancelled = listings.cancel(lid, OWNER, {"reason": "crop damaged"})

    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelReason"] == "crop damaged"
    assert cancelled["cancelledAt"] is not None
    assert cancelled["statusHistory"][-1]["status"] == "cancelled"
    with pytest.raises(StateGuardError):
        listings.mark_sold(lid, OWNER, {"finalPrice": 10})
    with pytest.raises(StateGuardError):
        listings.update_status(lid, OWNER, {"status": "negotiating"})


def test_owner_operations_reject_other_users_as_not_found(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])

    with pytest.raises(NotFoundError) as exc:
        listings.mark_sold(lid, OTHER, {"finalPrice": 2000})
    assert "not authorized" in exc.value.message
    with pytest.raises(NotFoundError):
        listings.cancel(lid, OTHER)
    with pytest.raises(NotFoundError):
        listings.delete(lid, OTHER)

    assert listings.get(lid)["status"] == "active"


def test_owner_operations_require_session(listings):
    listing = listings.create(OWNER, listing_payload())

    with pytest.raises(AuthenticationError):
        listings.cancel(str(listing["_id"]), None)


def test_unknown_and_malformed_ids_are_not_found(listings):
    with pytest.raises(NotFoundError):
        listings.get("not-an-object-id")
    with pytest.raises(NotFoundError):
        listings.get("64b0000000000000000000ff")


def test_update_status_follows_transition_table(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])
    listings.express_interest(lid, _interest())

    negotiating = listings.update_status(lid, OWNER, {"status": "negotiating", "notes": "price talks"})
    assert negotiating["status"] == "negotiating"
    assert negotiating["statusHistory"][-1]["fromStatus"] == "contacted"
    assert negotiating["statusHistory"][-1]["notes"] == "price talks"

    with pytest.raises(StateGuardError):
        listings.update_status(lid, OWNER, {"status": "contacted"})
    with pytest.raises(StateGuardError):
        listings.update_status(lid, OWNER, {"status": "expired"})
    with pytest.raises(StateGuardError):
        listings.update_status(lid, OWNER, {"status": "active"})

    sold = listings.update_status(lid, OWNER, {"status": "sold", "finalPrice": 2150})
    assert sold["status"] == "sold"
    assert sold["finalPrice"] == 2150
    assert [h["status"] for h in sold["statusHistory"]] == ["contacted", "negotiating", "sold"]


def test_active_listing_cannot_skip_buyer_interest(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])

    with pytest.raises(StateGuardError):
        listings.update_status(lid, OWNER, {"status": "negotiating"})
    with pytest.raises(StateGuardError):
        listings.update_status(lid, OWNER, {"status": "contacted"})

    after = listings.get(lid)
    assert after["status"] == "active"
    assert after["buyerContacts"] == []
    assert after["statusHistory"] == []


def test_update_status_to_sold_requires_price(listings):
    listing = listings.create(OWNER, listing_payload())

    with pytest.raises(ValidationError):
        listings.update_status(str(listing["_id"]), OWNER, {"status": "sold"})


def test_add_note_does_not_touch_status_history(listings):
    listing = listings.create(OWNER, listing_payload())

    updated = listings.add_note(str(listing["_id"]), OWNER, {"text": "Buyer visiting Friday"}, added_by="ramesh")

    assert updated["notes"][0]["text"] == "Buyer visiting Friday"
    assert updated["notes"][0]["addedBy"] == "ramesh"
    assert updated["statusHistory"] == []


def test_delete_is_unconditional_for_owner(listings):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])
    listings.mark_sold(lid, OWNER, {"finalPrice": 2000})

    listings.delete(lid, OWNER)

    with pytest.raises(NotFoundError):
        listings.get(lid)


def test_transition_retries_after_concurrent_change(listings, monkeypatch):
    listing = listings.create(OWNER, listing_payload())
    lid = str(listing["_id"])
    original = listings.col.find_one_and_update
    calls = {"n": 0}

    def racing_update(query, update, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            # someone else moves the listing between our read and write
            original({"_id": listing["_id"]}, {"$set": {"status": "negotiating"}})
        return original(query, update, **kwargs)

    monkeypatch.setattr(listings.col, "find_one_and_update", racing_update)

    sold = listings.mark_sold(lid, OWNER, {"finalPrice": 2000})

    assert calls["n"] == 2
    assert sold["status"] == "sold"
    assert sold["statusHistory"][-1]["fromStatus"] == "negotiating"
    assert len(sold["statusHistory"]) == 1


def test_list_filters_search_and_pagination(listings):
    for i in range(3):
        listings.create(OWNER, listing_payload())
    rice = listing_payload(crop={"name": "Basmati Rice", "category": "Cereal", "msp": "2183"})
    rice["cropDetails"] = {"quantity": 40, "quality": "premium", "expectedPrice": 3100}
    listings.create(OTHER, rice)

    docs, pagination = listings.list_listings({"crop": "rice"})
    assert [d["crop"]["name"] for d in docs] == ["Basmati Rice"]
    assert pagination["total"] == 1

    docs, _ = listings.list_listings({"quality": "premium"})
    assert len(docs) == 1

    docs, pagination = listings.list_listings({"page": "2", "limit": "2"})
    assert len(docs) == 2
    assert pagination == {"total": 4, "page": 2, "pages": 2, "limit": 2}

    docs, _ = listings.list_listings({"search": "ramesh"})
    assert len(docs) == 4

    # regex metacharacters are matched literally
    docs, _ = listings.list_listings({"search": ".*"})
    assert docs == []


def test_list_by_phone_and_owner(listings):
    listings.create(OWNER, listing_payload())
    other = listing_payload(seller={"name": "Kiran", "phone": "9111111111", "location": "Surat"})
    listings.create(OTHER, other)

    assert len(listings.list_by_seller_phone("9111111111")) == 1
    assert len(listings.list_for_owner(OWNER)) == 1
    with pytest.raises(AuthenticationError):
        listings.list_for_owner(None)


def test_dashboard_stats(listings):
    a = listings.create(OWNER, listing_payload())
    listings.create(OWNER, listing_payload())
    c = listings.create(OWNER, listing_payload())
    listings.mark_sold(str(a["_id"]), OWNER, {"finalPrice": 2000})
    listings.express_interest(str(c["_id"]), _interest())
    listings.update_status(str(c["_id"]), OWNER, {"status": "negotiating"})

    stats = listings.dashboard_stats()

    assert stats["total"] == 3
    assert stats["active"] == 1
    assert stats["sold"] == 1
    assert stats["negotiating"] == 1
    assert stats["totalQuantity"] == 100
    assert len(stats["recent"]) == 3

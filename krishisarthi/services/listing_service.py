# krishisarthi/services/listing_service.py

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from krishisarthi.errors import ConflictError, StateGuardError, ValidationError
from krishisarthi.models.listing_models import (
    BuyerInterestModel,
    CancelListingModel,
    ListingCreateModel,
    ListingFilterModel,
    ListingStatusUpdateModel,
    MarkSoldModel,
    NoteModel,
)
from krishisarthi.mongo import LISTINGS
from krishisarthi.services.lifecycle import Change, LifecycleService, contains, validate
from krishisarthi.utils import utcnow


class ListingService(LifecycleService):
    """
    Crop listings: active -> contacted -> negotiating -> sold | cancelled.
    `expired` is part of the vocabulary but nothing produces it yet.

    TRANSITIONS holds the seller's moves. `contacted` is only entered
    through express_interest, guarded by INTEREST_SOURCES.
    """

    collection_name = LISTINGS
    label = "Listing"
    number_field = "listingNumber"
    number_prefix = "CL"
    initial_status = "active"

    TRANSITIONS = {
        "active": frozenset({"sold", "cancelled"}),
        "contacted": frozenset({"negotiating", "sold", "cancelled"}),
        "negotiating": frozenset({"sold", "cancelled"}),
        "sold": frozenset(),
        "cancelled": frozenset(),
        "expired": frozenset(),
    }

    # buyers may only knock while nobody is negotiating yet
    INTEREST_SOURCES = frozenset({"active", "contacted"})

    # =========================
    # CREATE
    # =========================
    def create(self, owner_id: Optional[str], payload: dict) -> Dict[str, Any]:
        if not owner_id:
            raise ValidationError("Listing owner is required")
        data = validate(ListingCreateModel, payload)

        doc = data.model_dump()
        doc.update({
            "userId": owner_id,
            "status": self.initial_status,
            "buyerContacts": [],
        })
        return self._insert_with_number(doc)

    # =========================
    # BUYER INTEREST
    # =========================
    def express_interest(self, listing_id: str, payload: dict) -> Dict[str, Any]:
        data = validate(BuyerInterestModel, payload)

        def build(doc):
            if any(c.get("buyerPhone") == data.buyerPhone for c in doc.get("buyerContacts", [])):
                raise ConflictError("This buyer has already expressed interest in the listing")

            contact = {
                "buyerName": data.buyerName,
                "buyerPhone": data.buyerPhone,
                "offeredPrice": data.offeredPrice,
                "contactedAt": utcnow(),
            }
            return Change(
                target="contacted",
                actor=data.buyerName,
                notes=f"Buyer {data.buyerName} expressed interest at ₹{data.offeredPrice:g}",
                push_fields={"buyerContacts": contact},
                # a racing duplicate fails the write, not just the read above
                precondition={"buyerContacts.buyerPhone": {"$ne": data.buyerPhone}},
            )

        try:
            return self._transition(listing_id, self.INTEREST_SOURCES, build)
        except ConflictError:
            doc = self.get(listing_id)
            if any(c.get("buyerPhone") == data.buyerPhone for c in doc.get("buyerContacts", [])):
                raise ConflictError("This buyer has already expressed interest in the listing") from None
            raise

    # =========================
    # OWNER TRANSITIONS
    # =========================
    def mark_sold(self, listing_id: str, owner_id: Optional[str], payload: dict) -> Dict[str, Any]:
        data = validate(MarkSoldModel, payload)
        return self._sell(listing_id, owner_id, data.soldTo, data.finalPrice, data.soldQuantity, data.soldDate, data.notes)

    def _sell(self, listing_id, owner_id, sold_to, final_price, sold_quantity, sold_date, notes) -> Dict[str, Any]:
        def build(doc):
            listed = (doc.get("cropDetails") or {}).get("quantity")
            qty = sold_quantity if sold_quantity is not None else listed
            if listed is not None and qty is not None and qty > listed:
                raise ValidationError(f"soldQuantity cannot exceed the listed quantity ({listed:g})")

            buyer = sold_to or "-"
            return Change(
                target="sold",
                actor=owner_id,
                notes=notes or f"Sold to {buyer} at ₹{final_price:g}",
                set_fields={
                    "soldTo": sold_to,
                    "finalPrice": final_price,
                    "soldQuantity": qty,
                    "soldDate": sold_date or utcnow(),
                },
            )

        return self._transition(listing_id, self.sources_for("sold"), build, owner_id=owner_id, owner_required=True)

    def cancel(self, listing_id: str, owner_id: Optional[str], payload: Optional[dict] = None) -> Dict[str, Any]:
        data = validate(CancelListingModel, payload)
        return self._cancel(listing_id, owner_id, data.reason)

    def _cancel(self, listing_id, owner_id, reason) -> Dict[str, Any]:
        def build(doc):
            return Change(
                target="cancelled",
                actor=owner_id,
                notes=f"Listing cancelled: {reason}" if reason else "Listing cancelled by seller",
                set_fields={"cancelReason": reason, "cancelledAt": utcnow()},
            )

        return self._transition(listing_id, self.sources_for("cancelled"), build, owner_id=owner_id, owner_required=True)

    def update_status(self, listing_id: str, owner_id: Optional[str], payload: dict) -> Dict[str, Any]:
        """
        Administrative status change. Routed through the same table as every
        other transition; sold/cancelled reuse their dedicated operations.
        """
        data = validate(ListingStatusUpdateModel, payload)

        if data.status == "sold":
            if data.finalPrice is None:
                raise ValidationError("finalPrice is required to mark a listing sold")
            return self._sell(listing_id, owner_id, data.soldTo, data.finalPrice, None, data.soldDate, data.notes)
        if data.status == "cancelled":
            return self._cancel(listing_id, owner_id, data.notes)
        if data.status == "contacted":
            raise StateGuardError("A listing becomes contacted only when a buyer expresses interest")

        sources = self.sources_for(data.status)
        if not sources:
            raise StateGuardError(f"Listings cannot be moved to {data.status}")

        def build(doc):
            set_fields = {}
            if data.finalPrice is not None:
                set_fields["finalPrice"] = data.finalPrice
            return Change(
                target=data.status,
                actor=owner_id,
                notes=data.notes or f"Status changed from {doc.get('status')} to {data.status}",
                set_fields=set_fields,
            )

        return self._transition(listing_id, sources, build, owner_id=owner_id, owner_required=True)

    # =========================
    # NOTES
    # =========================
    def add_note(self, listing_id: str, owner_id: Optional[str], payload: dict, added_by: Optional[str] = None) -> Dict[str, Any]:
        data = validate(NoteModel, payload)
        note = {"text": data.text, "addedBy": added_by or owner_id, "addedAt": utcnow()}
        return self._update_owned_fields(listing_id, owner_id, {"$push": {"notes": note}})

    # =========================
    # READ
    # =========================
    def list_listings(self, params: Optional[dict] = None) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        f = validate(ListingFilterModel, params)

        query: Dict[str, Any] = {}
        if f.status:
            query["status"] = f.status
        if f.crop:
            query["crop.name"] = contains(f.crop)
        if f.quality:
            query["cropDetails.quality"] = f.quality
        if f.search:
            rx = contains(f.search)
            query["$or"] = [
                {"seller.name": rx},
                {"seller.phone": rx},
                {"crop.name": rx},
                {"listingNumber": rx},
            ]
        return self._paginate(query, f.page, f.limit)

    def list_by_seller_phone(self, phone: str) -> List[Dict[str, Any]]:
        return list(self.col.find({"seller.phone": phone}).sort("createdAt", -1))

    def dashboard_stats(self) -> Dict[str, Any]:
        agg = list(self.col.aggregate([
            {"$match": {"status": "active"}},
            {"$group": {"_id": None, "totalQuantity": {"$sum": "$cropDetails.quantity"}}},
        ]))
        return {
            "total": self._count(),
            "active": self._count(status="active"),
            "sold": self._count(status="sold"),
            "negotiating": self._count(status="negotiating"),
            "totalQuantity": agg[0]["totalQuantity"] if agg else 0,
            "recent": self._recent(),
        }

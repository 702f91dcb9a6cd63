# krishisarthi/services/quotation_service.py

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pymongo import ReturnDocument

from krishisarthi.errors import AuthorizationError, StateGuardError, ValidationError
from krishisarthi.models.quotation_models import (
    AcceptQuotationModel,
    CancelQuotationModel,
    CompleteQuotationModel,
    QuotationCreateModel,
    QuotationDetailsModel,
    QuotationFilterModel,
)
from krishisarthi.mongo import QUOTATIONS
from krishisarthi.services.lifecycle import Change, LifecycleService, contains, validate
from krishisarthi.utils import utcnow

CUSTOMER = "Customer"


class QuotationService(LifecycleService):
    """
    Equipment purchase/rental requests:
    pending -> approved -> completed, cancellable until completed.
    `contacted`, `quoted` and `rejected` are declared statuses with no
    operation producing them.
    """

    collection_name = QUOTATIONS
    label = "Quotation"
    number_field = "quotationNumber"
    number_prefix = "KS"
    initial_status = "pending"

    TRANSITIONS = {
        "pending": frozenset({"approved", "completed", "cancelled"}),
        "contacted": frozenset({"approved", "completed", "cancelled"}),
        "quoted": frozenset({"approved", "completed", "cancelled"}),
        "approved": frozenset({"completed", "cancelled"}),
        "rejected": frozenset(),
        "completed": frozenset(),
        "cancelled": frozenset(),
    }

    # =========================
    # CREATE
    # =========================
    def create(self, owner_id: Optional[str], payload: dict) -> Dict[str, Any]:
        if not owner_id:
            raise ValidationError("Quotation requester is required")
        data = validate(QuotationCreateModel, payload)

        doc = data.model_dump()
        doc.update({"userId": owner_id, "status": self.initial_status})
        return self._insert_with_number(doc)

    # =========================
    # SUPPLIER
    # =========================
    def accept(self, quotation_id: str, payload: dict, caller_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Suppliers are not users, so acceptance works without a session.
        A signed-in requester cannot approve their own request.
        """
        data = validate(AcceptQuotationModel, payload)

        def build(doc):
            if caller_id and doc.get("userId") == caller_id:
                raise AuthorizationError("You cannot accept your own quotation request")
            return Change(
                target="approved",
                actor=data.supplierName,
                notes=data.notes or f"Quotation accepted by {data.supplierName}",
                set_fields={
                    "acceptedBy": data.supplierName,
                    "acceptedContact": data.supplierContact,
                    "acceptedAt": utcnow(),
                },
            )

        return self._transition(quotation_id, self.sources_for("approved"), build)

    # =========================
    # REQUESTER
    # =========================
    def cancel(self, quotation_id: str, owner_id: Optional[str], payload: Optional[dict] = None) -> Dict[str, Any]:
        data = validate(CancelQuotationModel, payload)

        def build(doc):
            return Change(
                target="cancelled",
                actor=CUSTOMER,
                notes=f"Cancelled by customer: {data.reason}" if data.reason else "Cancelled by customer",
                set_fields={
                    "cancelledBy": CUSTOMER,
                    "cancelReason": data.reason,
                    "cancelledAt": utcnow(),
                },
            )

        return self._transition(quotation_id, self.sources_for("cancelled"), build, owner_id=owner_id, owner_required=True)

    def complete(self, quotation_id: str, owner_id: Optional[str], payload: dict) -> Dict[str, Any]:
        data = validate(CompleteQuotationModel, payload)

        def build(doc):
            return Change(
                target="completed",
                actor=CUSTOMER,
                notes=f"Completed with rating {data.rating}/5" + (f": {data.feedback}" if data.feedback else ""),
                set_fields={
                    "rating": data.rating,
                    "feedback": data.feedback,
                    "completedBy": CUSTOMER,
                    "completedAt": utcnow(),
                },
                history_extra={"rating": data.rating},
            )

        return self._transition(quotation_id, self.sources_for("completed"), build, owner_id=owner_id, owner_required=True)

    def update_details(self, quotation_id: str, owner_id: Optional[str], payload: dict) -> Dict[str, Any]:
        """Assignment / pricing. Status is never written here."""
        payload = payload or {}
        if "status" in payload:
            raise ValidationError("status can only change through accept, cancel or complete")
        data = validate(QuotationDetailsModel, payload)

        fields = data.model_dump(exclude_none=True)
        if not fields:
            raise ValidationError("Nothing to update: send assignedTo, estimatedPrice or finalPrice")

        doc = self._load_owned(quotation_id, owner_id)
        if self.is_terminal(doc.get("status")):
            raise StateGuardError(f"Quotation cannot be changed while it is {doc.get('status')}")

        updated = self.col.find_one_and_update(
            {"_id": doc["_id"], "userId": owner_id, "status": doc.get("status")},
            {"$set": {**fields, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise StateGuardError("Quotation changed while updating, please retry")
        return updated

    # =========================
    # READ
    # =========================
    def list_quotations(self, params: Optional[dict] = None) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        f = validate(QuotationFilterModel, params)

        query: Dict[str, Any] = {}
        if f.status:
            query["status"] = f.status
        if f.type:
            query["quotationType"] = f.type
        if f.search:
            rx = contains(f.search)
            query["$or"] = [
                {"customerDetails.name": rx},
                {"customerDetails.phone": rx},
                {"equipment.name": rx},
                {"quotationNumber": rx},
            ]
        return self._paginate(query, f.page, f.limit)

    def list_by_customer_phone(self, phone: str) -> List[Dict[str, Any]]:
        return list(self.col.find({"customerDetails.phone": phone}).sort("createdAt", -1))

    def dashboard_stats(self) -> Dict[str, Any]:
        return {
            "total": self._count(),
            "pending": self._count(status="pending"),
            "approved": self._count(status="approved"),
            "completed": self._count(status="completed"),
            "purchase": self._count(quotationType="purchase"),
            "rental": self._count(quotationType="rental"),
            "recent": self._recent(),
        }

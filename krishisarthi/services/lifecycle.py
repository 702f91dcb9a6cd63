# krishisarthi/services/lifecycle.py

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from krishisarthi.app_config import Settings
from krishisarthi.errors import (
    ConflictError,
    NotFoundError,
    StateGuardError,
    AuthenticationError,
    from_pydantic,
)
from krishisarthi.services.sequence_service import SequenceService
from krishisarthi.utils import to_object_id, utcnow

logger = logging.getLogger(__name__)


def history_entry(status: str, from_status: Optional[str], actor: Optional[str], notes: str, **extra) -> Dict[str, Any]:
    entry = {
        "status": status,
        "fromStatus": from_status,
        "changedAt": utcnow(),
        "changedBy": actor,
        "notes": notes,
    }
    entry.update({k: v for k, v in extra.items() if v is not None})
    return entry


def validate(model, payload):
    """Parse `payload` with a pydantic model, raising our ValidationError."""
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as e:
        raise from_pydantic(e) from None


def contains(text: str) -> Dict[str, str]:
    """Case-insensitive substring match; user input is never a raw regex."""
    return {"$regex": re.escape(text.strip()), "$options": "i"}


@dataclass
class Change:
    """What a guarded transition writes, computed from the freshly read doc."""
    target: str
    notes: str
    actor: Optional[str] = None
    set_fields: Dict[str, Any] = field(default_factory=dict)
    push_fields: Dict[str, Any] = field(default_factory=dict)
    history_extra: Dict[str, Any] = field(default_factory=dict)
    precondition: Dict[str, Any] = field(default_factory=dict)


class LifecycleService:
    """
    Shared machinery for the listing and quotation engines.

    Every status write goes through `_transition`, which checks the status
    table and ownership, then issues ONE find_one_and_update conditioned on
    the status it just read (compare-and-swap) and pushes exactly one
    statusHistory entry in the same write.
    """

    collection_name: str = ""
    label: str = "Entity"
    number_field: str = ""
    number_prefix: str = ""
    initial_status: str = ""
    TRANSITIONS: Mapping[str, FrozenSet[str]] = {}

    def __init__(self, db, settings: Optional[Settings] = None, sequences: Optional[SequenceService] = None):
        self.db = db
        self.settings = settings or Settings()
        self.col = db[self.collection_name]
        self.sequences = sequences or SequenceService(db)

    # =========================
    # STATE TABLE
    # =========================
    @classmethod
    def sources_for(cls, target: str) -> FrozenSet[str]:
        return frozenset(s for s, targets in cls.TRANSITIONS.items() if target in targets)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.TRANSITIONS.get(status)

    # =========================
    # LOOKUPS
    # =========================
    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.label} not found")

    def _not_yours(self) -> NotFoundError:
        # same response for "missing" and "someone else's" so ids don't leak
        return NotFoundError(f"{self.label} not found or you are not authorized")

    def _oid(self, entity_id):
        oid = to_object_id(entity_id)
        if oid is None:
            raise self._not_found()
        return oid

    def get(self, entity_id) -> Dict[str, Any]:
        doc = self.col.find_one({"_id": self._oid(entity_id)})
        if not doc:
            raise self._not_found()
        return doc

    def _load_owned(self, entity_id, owner_id: Optional[str]) -> Dict[str, Any]:
        if not owner_id:
            raise AuthenticationError("Authentication required")
        oid = to_object_id(entity_id)
        if oid is None:
            raise self._not_yours()
        doc = self.col.find_one({"_id": oid})
        if not doc or doc.get("userId") != owner_id:
            if doc:
                logger.warning("%s %s: owner mismatch for user %s", self.label, doc.get(self.number_field), owner_id)
            raise self._not_yours()
        return doc

    # =========================
    # CREATE
    # =========================
    def _insert_with_number(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """
        Stamp a fresh sequence number and insert. A duplicate number (unique
        index) draws another one; drawn numbers are never handed out again.
        """
        now = utcnow()
        doc.setdefault("status", self.initial_status)
        doc.setdefault("statusHistory", [])
        doc.setdefault("notes", [])
        doc["createdAt"] = now
        doc["updatedAt"] = now

        for attempt in range(1, self.settings.sequence_retries + 1):
            doc[self.number_field] = self.sequences.next_number(self.number_prefix)
            doc.pop("_id", None)
            try:
                inserted = self.col.insert_one(doc)
            except DuplicateKeyError:
                logger.warning(
                    "%s number %s already taken (attempt %s), drawing another",
                    self.label, doc[self.number_field], attempt,
                )
                continue
            doc["_id"] = inserted.inserted_id
            logger.info("%s %s created by %s", self.label, doc[self.number_field], doc.get("userId"))
            return doc

        raise ConflictError(f"Could not allocate a unique {self.label.lower()} number, please retry")

    # =========================
    # GUARDED TRANSITION
    # =========================
    def _transition(
        self,
        entity_id,
        sources: FrozenSet[str],
        build: Callable[[Dict[str, Any]], Change],
        owner_id: Optional[str] = None,
        owner_required: bool = False,
    ) -> Dict[str, Any]:
        attempts = max(1, self.settings.transition_attempts)

        for _ in range(attempts):
            if owner_required or owner_id:
                doc = self._load_owned(entity_id, owner_id)
            else:
                doc = self.get(entity_id)

            current = doc.get("status")
            if current not in sources:
                logger.warning("%s %s: rejected transition out of '%s'", self.label, doc.get(self.number_field), current)
                raise StateGuardError(f"{self.label} cannot be changed while it is {current}")

            change = build(doc)
            now = utcnow()
            entry = history_entry(
                change.target,
                current,
                change.actor,
                change.notes,
                **change.history_extra,
            )

            query = {"_id": doc["_id"], "status": current}
            if owner_id:
                query["userId"] = owner_id
            query.update(change.precondition)

            update: Dict[str, Any] = {
                "$set": {**change.set_fields, "status": change.target, "updatedAt": now},
                "$push": {**change.push_fields, "statusHistory": entry},
            }

            updated = self.col.find_one_and_update(query, update, return_document=ReturnDocument.AFTER)
            if updated is not None:
                logger.info(
                    "%s %s: %s -> %s by %s",
                    self.label, updated.get(self.number_field), current, change.target, change.actor,
                )
                return updated

            logger.info("%s %s changed concurrently, re-reading", self.label, doc.get(self.number_field))

        raise ConflictError(f"{self.label} was modified concurrently, please retry")

    def _update_owned_fields(self, entity_id, owner_id: Optional[str], update: Dict[str, Any]) -> Dict[str, Any]:
        """Non-status write on an owned entity (notes, assignment)."""
        doc = self._load_owned(entity_id, owner_id)
        update.setdefault("$set", {})["updatedAt"] = utcnow()
        updated = self.col.find_one_and_update(
            {"_id": doc["_id"], "userId": owner_id},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise self._not_yours()
        return updated

    # =========================
    # DELETE
    # =========================
    def delete(self, entity_id, owner_id: Optional[str]) -> None:
        doc = self._load_owned(entity_id, owner_id)
        res = self.col.delete_one({"_id": doc["_id"], "userId": owner_id})
        if res.deleted_count == 0:
            raise self._not_yours()
        logger.info("%s %s deleted by %s", self.label, doc.get(self.number_field), owner_id)

    # =========================
    # READ: LISTS
    # =========================
    def _page_args(self, page: int, limit: Optional[int]) -> Tuple[int, int]:
        limit = limit or self.settings.default_page_size
        limit = max(1, min(int(limit), self.settings.max_page_size))
        return max(1, int(page)), limit

    def _paginate(self, query: Dict[str, Any], page: int, limit: Optional[int]) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        page, limit = self._page_args(page, limit)
        docs = list(
            self.col.find(query)
            .sort("createdAt", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        total = self.col.count_documents(query)
        pagination = {
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit) if total else 0,
            "limit": limit,
        }
        return docs, pagination

    def list_for_owner(self, owner_id: Optional[str]) -> List[Dict[str, Any]]:
        if not owner_id:
            raise AuthenticationError("Authentication required")
        return list(self.col.find({"userId": owner_id}).sort("createdAt", DESCENDING))

    def _recent(self) -> List[Dict[str, Any]]:
        return list(self.col.find().sort("createdAt", DESCENDING).limit(self.settings.recent_limit))

    def _count(self, **query) -> int:
        return self.col.count_documents(query)

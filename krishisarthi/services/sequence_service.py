# krishisarthi/services/sequence_service.py

import time

from pymongo import ReturnDocument

from krishisarthi.mongo import COUNTERS


def _now_millis() -> int:
    return int(time.time() * 1000)


class SequenceService:
    """
    Human readable entity numbers: <PREFIX>-<epoch millis>-<NNNN>.
    The ordinal comes from one atomically incremented counter document per
    prefix, so two concurrent creations never draw the same ordinal.
    """

    def __init__(self, db):
        self.counters = db[COUNTERS]

    def next_ordinal(self, prefix: str) -> int:
        doc = self.counters.find_one_and_update(
            {"_id": prefix},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["seq"])

    def next_number(self, prefix: str) -> str:
        ordinal = self.next_ordinal(prefix)
        return f"{prefix}-{_now_millis()}-{ordinal:04d}"

# krishisarthi/models/listing_models.py

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

PHONE_PATTERN = r"^[0-9]{10}$"

ListingStatus = Literal["active", "contacted", "negotiating", "sold", "cancelled", "expired"]
Quality = Literal["premium", "standard", "fair"]


def loose_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip().lower()
    if not v:
        return None
    if "@" not in v or " " in v or "." not in v.split("@")[-1]:
        raise ValueError("invalid email format (expected something like user@host)")
    return v


class CropModel(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    msp: str = Field(..., min_length=1)


class SellerModel(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    email: Optional[str] = None
    location: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _loose_email(cls, v: Optional[str]) -> Optional[str]:
        return loose_email(v)


class CropDetailsModel(BaseModel):
    quantity: float = Field(..., gt=0)
    quality: Quality
    expectedPrice: float = Field(..., ge=0)
    harvestDate: Optional[datetime] = None


class ServicesModel(BaseModel):
    transport: bool = False
    storage: bool = False
    qualityTest: bool = False


class ListingCreateModel(BaseModel):
    crop: CropModel
    seller: SellerModel
    cropDetails: CropDetailsModel
    services: ServicesModel = Field(default_factory=ServicesModel)
    additionalInfo: Optional[str] = None


# ---------------- lifecycle commands ----------------
class BuyerInterestModel(BaseModel):
    buyerName: str = Field(..., min_length=1)
    buyerPhone: str = Field(..., pattern=PHONE_PATTERN)
    offeredPrice: float = Field(..., ge=0)


class MarkSoldModel(BaseModel):
    soldTo: Optional[str] = None
    finalPrice: float = Field(..., ge=0)
    soldQuantity: Optional[float] = Field(default=None, gt=0)
    soldDate: Optional[datetime] = None
    notes: Optional[str] = None


class CancelListingModel(BaseModel):
    reason: Optional[str] = None


class ListingStatusUpdateModel(BaseModel):
    status: ListingStatus
    finalPrice: Optional[float] = Field(default=None, ge=0)
    soldDate: Optional[datetime] = None
    soldTo: Optional[str] = None
    notes: Optional[str] = None


class NoteModel(BaseModel):
    text: str = Field(..., min_length=1)


class ListingFilterModel(BaseModel):
    status: Optional[ListingStatus] = None
    crop: Optional[str] = None
    quality: Optional[Quality] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)

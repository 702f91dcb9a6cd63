# krishisarthi/models/quotation_models.py

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from krishisarthi.models.listing_models import PHONE_PATTERN, loose_email

QuotationStatus = Literal["pending", "contacted", "quoted", "approved", "rejected", "completed", "cancelled"]
QuotationType = Literal["purchase", "rental"]


class EquipmentModel(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1)
    rentalPrice: Optional[str] = None
    subsidy: Optional[str] = None


class CustomerDetailsModel(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    email: Optional[str] = None
    location: str = Field(..., min_length=1)
    landSize: Optional[float] = Field(default=None, ge=0)

    @field_validator("email")
    @classmethod
    def _loose_email(cls, v: Optional[str]) -> Optional[str]:
        return loose_email(v)


class InterestsModel(BaseModel):
    subsidy: bool = False
    loan: bool = False
    insurance: bool = False


class QuotationCreateModel(BaseModel):
    equipment: EquipmentModel
    quotationType: QuotationType
    customerDetails: CustomerDetailsModel
    rentalDuration: Optional[str] = None
    interests: InterestsModel = Field(default_factory=InterestsModel)
    additionalNotes: Optional[str] = None


# ---------------- lifecycle commands ----------------
class AcceptQuotationModel(BaseModel):
    supplierName: str = Field(..., min_length=1)
    supplierContact: Optional[str] = None
    notes: Optional[str] = None


class CancelQuotationModel(BaseModel):
    reason: Optional[str] = None


class CompleteQuotationModel(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None


class QuotationDetailsModel(BaseModel):
    assignedTo: Optional[str] = None
    estimatedPrice: Optional[float] = Field(default=None, ge=0)
    finalPrice: Optional[float] = Field(default=None, ge=0)


class QuotationFilterModel(BaseModel):
    status: Optional[QuotationStatus] = None
    type: Optional[QuotationType] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)

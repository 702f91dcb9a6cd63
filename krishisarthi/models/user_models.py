# krishisarthi/models/user_models.py

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from krishisarthi.models.listing_models import PHONE_PATTERN, loose_email


class RegisterRequest(BaseModel):
    fullname: str = Field(..., min_length=1)
    username: str = Field(..., min_length=3)
    email: str
    password: str = Field(..., min_length=6)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("fullname", "username")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def _loose_email(cls, v: str) -> str:
        v = loose_email(v)
        if not v:
            raise ValueError("email is required")
        return v


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

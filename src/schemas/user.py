"""Merchant account schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MerchantConfig(BaseModel):
    """Billing and display preferences of a merchant."""

    model_config = ConfigDict(str_strip_whitespace=True)

    company_number: str = Field(..., min_length=1, max_length=50, description="Company registration number")
    currency: str = Field(default="ILS", pattern=r"^[A-Z]{3}$", description="ISO 4217 code, e.g. ILS")
    language: str = Field(default="he", pattern=r"^[a-z]{2}$", description="ISO 639-1 code, e.g. he")

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("language", mode="before")
    @classmethod
    def normalize_language(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class RegisterMerchantRequest(BaseModel):
    """Create the local merchant profile for a signed-in Clerk user."""

    model_config = ConfigDict(str_strip_whitespace=True)

    shop_name: str = Field(..., min_length=2, max_length=100)
    owner_name: str = Field(..., min_length=2, max_length=100)
    merchant_config: MerchantConfig


class UserResponse(BaseModel):
    """Merchant profile response."""

    id: UUID
    email: str
    shop_name: str
    owner_name: str
    merchant_config: MerchantConfig
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

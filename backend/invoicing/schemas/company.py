"""
Company schemas for API request/response validation.

WHAT: Pydantic schemas for company registration details, contact details
and banking details.

WHY: South African formats are validated at the edge so bad registration
or VAT numbers never reach the database:
- Registration number: NNNN/NNNNNN/NN (e.g. 2020/123456/07)
- VAT number: 10 digits starting with 4
- Phone: +27 or 0 followed by 9 digits
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


REGISTRATION_NUMBER_PATTERN = r"^\d{4}/\d{6}/\d{2}$"
VAT_NUMBER_PATTERN = r"^4\d{9}$"
PHONE_NUMBER_PATTERN = r"^(\+27|0)[1-9]\d{8}$"


# ============================================================================
# Request Schemas
# ============================================================================


class CompanyBase(BaseModel):
    """Fields shared by create and response schemas."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, description="Legal company name")
    trading_name: Optional[str] = Field(default=None, max_length=255)
    registration_number: Optional[str] = Field(
        default=None,
        pattern=REGISTRATION_NUMBER_PATTERN,
        description="Company registration number (e.g., 2020/123456/07)",
    )
    vat_number: Optional[str] = Field(
        default=None,
        pattern=VAT_NUMBER_PATTERN,
        description="VAT number (10 digits starting with 4)",
    )
    vat_registered: bool = Field(default=False)
    email: EmailStr
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_NUMBER_PATTERN)
    website: Optional[str] = Field(default=None, max_length=255)
    logo_url: Optional[str] = Field(default=None, max_length=500)

    physical_address: Optional[str] = None
    postal_address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    province: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=10)

    bank_name: Optional[str] = Field(default=None, max_length=100)
    bank_account_number: Optional[str] = Field(default=None, max_length=30)
    bank_branch_code: Optional[str] = Field(default=None, max_length=10)
    bank_account_type: Optional[str] = Field(default=None, max_length=30)


class CompanyCreate(CompanyBase):
    """Schema for registering a company."""


class CompanyUpdate(BaseModel):
    """
    Schema for updating a company.

    All fields optional; only fields present in the request are changed.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    trading_name: Optional[str] = Field(default=None, max_length=255)
    registration_number: Optional[str] = Field(default=None, pattern=REGISTRATION_NUMBER_PATTERN)
    vat_number: Optional[str] = Field(default=None, pattern=VAT_NUMBER_PATTERN)
    vat_registered: Optional[bool] = None
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_NUMBER_PATTERN)
    website: Optional[str] = Field(default=None, max_length=255)
    logo_url: Optional[str] = Field(default=None, max_length=500)

    physical_address: Optional[str] = None
    postal_address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    province: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=10)

    bank_name: Optional[str] = Field(default=None, max_length=100)
    bank_account_number: Optional[str] = Field(default=None, max_length=30)
    bank_branch_code: Optional[str] = Field(default=None, max_length=10)
    bank_account_type: Optional[str] = Field(default=None, max_length=30)


# ============================================================================
# Response Schemas
# ============================================================================


class CompanyResponse(CompanyBase):
    """Schema for company response data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    # Stored emails are trusted; don't re-validate deliverability on output
    email: str
    created_at: datetime
    updated_at: datetime


class CompanyListResponse(BaseModel):
    """Paginated list response for companies."""

    items: List[CompanyResponse]
    total: int
    skip: int
    limit: int

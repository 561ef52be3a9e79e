"""
Client schemas for API request/response validation.

WHAT: Pydantic schemas for clients (customers) of a company.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from invoicing.schemas.company import PHONE_NUMBER_PATTERN, VAT_NUMBER_PATTERN


class ClientCreate(BaseModel):
    """
    Schema for creating a client.

    WHY: payment_terms drives the default due date of the client's invoices.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, description="Client name")
    contact_person: Optional[str] = Field(default=None, max_length=255)
    email: EmailStr
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_NUMBER_PATTERN)
    vat_number: Optional[str] = Field(default=None, pattern=VAT_NUMBER_PATTERN)
    registration_number: Optional[str] = Field(default=None, max_length=20)

    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    province: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    notes: Optional[str] = Field(default=None, max_length=5000)

    credit_limit: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    payment_terms: Optional[int] = Field(
        default=None,
        ge=0,
        le=365,
        description="Payment terms in days (defaults to the configured terms)",
    )


class ClientUpdate(BaseModel):
    """Schema for updating a client; only fields sent are changed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_NUMBER_PATTERN)
    vat_number: Optional[str] = Field(default=None, pattern=VAT_NUMBER_PATTERN)
    registration_number: Optional[str] = Field(default=None, max_length=20)

    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    province: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    notes: Optional[str] = Field(default=None, max_length=5000)

    credit_limit: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    payment_terms: Optional[int] = Field(default=None, ge=0, le=365)


class ClientResponse(BaseModel):
    """Schema for client response data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    name: str
    contact_person: Optional[str]
    email: str
    phone_number: Optional[str]
    vat_number: Optional[str]
    registration_number: Optional[str]

    billing_address: Optional[str]
    shipping_address: Optional[str]
    city: Optional[str]
    province: Optional[str]
    postal_code: Optional[str]
    notes: Optional[str]

    is_active: bool
    credit_limit: Optional[float]
    payment_terms: int

    created_at: datetime
    updated_at: datetime


class ClientListResponse(BaseModel):
    """Paginated list response for clients."""

    items: List[ClientResponse]
    total: int
    skip: int
    limit: int

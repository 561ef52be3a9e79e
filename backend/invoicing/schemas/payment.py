"""
Payment schemas for API request/response validation.

WHAT: Pydantic schemas for recording, editing and listing payments.
"""

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict

from invoicing.models.payment import PaymentMethod


class PaymentCreate(BaseModel):
    """
    Schema for recording a payment against an invoice.

    WHY: Supports offline payments:
    - EFT and bank deposits (the common case)
    - Cash and cheque
    - Card and mobile payments
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Payment amount received")
    payment_date: date = Field(default_factory=date.today, description="Date the money was received")
    payment_method: PaymentMethod = Field(default=PaymentMethod.EFT)
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=5000)


class PaymentUpdate(BaseModel):
    """
    Schema for editing an unreconciled payment.

    WHY: amount and payment_date are always resubmitted; payment_method
    left out keeps the current method.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_date: date
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=5000)


class PaymentResponse(BaseModel):
    """Schema for payment response data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    amount: float
    payment_date: date
    payment_method: PaymentMethod
    reference_number: Optional[str]
    notes: Optional[str]
    is_reconciled: bool
    reconciled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class PaymentListResponse(BaseModel):
    """List response for payments."""

    items: List[PaymentResponse]
    total: int

"""
Invoice schemas for API request/response validation.

WHAT: Pydantic schemas for invoices and their line items.

WHY: Schemas provide:
1. Type-safe request/response handling
2. Automatic validation with clear error messages
3. OpenAPI documentation generation

HOW: Uses Pydantic v2 with Field validators and model_config. Monetary
inputs are Decimal so nothing is lost to float rounding before the ledger
sees them; derived amounts are never accepted from the client.
"""

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, model_validator, ConfigDict

from invoicing.models.invoice import InvoiceStatus


# ============================================================================
# Line Items
# ============================================================================


class LineItemCreate(BaseModel):
    """
    Schema for one line item in a create/update request.

    WHY: line_total and discount_amount are derived by the ledger; only the
    pricing inputs are accepted.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, max_length=5000)
    item_code: Optional[str] = Field(default=None, max_length=50)
    quantity: int = Field(default=1, ge=1, description="Whole units, at least 1")
    unit_of_measure: str = Field(default="each", max_length=20)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2, description="Price per unit excl. VAT")
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    sort_order: Optional[int] = Field(default=None, ge=0)


class LineItemResponse(BaseModel):
    """Schema for line item response data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    item_code: Optional[str]
    quantity: int
    unit_of_measure: str
    unit_price: float
    discount_percentage: float
    discount_amount: float
    line_total: float
    sort_order: int


# ============================================================================
# Request Schemas
# ============================================================================


class InvoiceCreate(BaseModel):
    """
    Schema for creating an invoice.

    WHY: Dates, VAT rate and currency are optional; the service fills them
    from the client's payment terms and the configured defaults. Line items
    may be added later.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: int = Field(..., description="Billed client")
    issue_date: Optional[date] = Field(default=None, description="Defaults to today")
    due_date: Optional[date] = Field(
        default=None,
        description="Defaults to issue date plus the client's payment terms",
    )
    vat_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = Field(default=None, max_length=5000)
    terms_and_conditions: Optional[str] = Field(default=None, max_length=10000)
    reference_number: Optional[str] = Field(default=None, max_length=100)
    purchase_order_number: Optional[str] = Field(default=None, max_length=100)
    line_items: List[LineItemCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self) -> "InvoiceCreate":
        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            raise ValueError("due_date cannot be before issue_date")
        return self


class InvoiceUpdate(BaseModel):
    """
    Schema for updating an invoice.

    WHY: Any field left out is unchanged. When line_items is present the
    whole list is replaced, mirroring an edit form that submits every row.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: Optional[int] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    vat_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = Field(default=None, max_length=5000)
    terms_and_conditions: Optional[str] = Field(default=None, max_length=10000)
    reference_number: Optional[str] = Field(default=None, max_length=100)
    purchase_order_number: Optional[str] = Field(default=None, max_length=100)
    line_items: Optional[List[LineItemCreate]] = None


class InvoiceStatusUpdate(BaseModel):
    """Schema for an explicit status change request."""

    status: InvoiceStatus


# ============================================================================
# Response Schemas
# ============================================================================


class InvoiceResponse(BaseModel):
    """
    Schema for invoice response data.

    WHY: status is the stored status; effective_status additionally shows
    OVERDUE for invoices past their due date.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    status: InvoiceStatus
    effective_status: InvoiceStatus

    company_id: int
    client_id: int
    client_name: Optional[str]

    issue_date: date
    due_date: date

    # Rates
    vat_rate: float
    discount_percentage: float

    # Amounts
    subtotal: float
    discount_amount: float
    vat_amount: float
    total_amount: float
    amount_paid: float
    balance_due: float
    currency: str

    notes: Optional[str]
    terms_and_conditions: Optional[str]
    reference_number: Optional[str]
    purchase_order_number: Optional[str]

    sent_at: Optional[datetime]
    paid_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    line_items: List[LineItemResponse]

    # Computed properties
    is_editable: bool
    is_overdue: bool


class InvoiceListResponse(BaseModel):
    """
    Paginated list response for invoices.

    WHY: Standard pagination structure for list endpoints.
    """

    items: List[InvoiceResponse]
    total: int
    skip: int
    limit: int

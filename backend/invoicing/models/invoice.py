"""
Invoice model for billing and payment tracking.

WHAT: SQLAlchemy models for an invoice aggregate: the invoice header, its
line items, and the per-company invoice number sequence.

WHY: Invoices are the financial documents of the system. They:
1. Record what a client owes (line items, discount, VAT)
2. Track payments received and the outstanding balance
3. Move through a status lifecycle (draft, sent, paid, cancelled...)

HOW: Uses SQLAlchemy 2.0 with:
- Line items and payments owned by the invoice (delete-orphan cascade)
- Derived monetary columns stored for fast queries; they are only ever
  written by the InvoiceLedger
- Status enum stored as its lowercase value
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Date,
    ForeignKey,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from invoicing.models.base import Base, Money, Percentage, ZERO

if TYPE_CHECKING:
    from invoicing.models.client import Client
    from invoicing.models.payment import Payment


class InvoiceStatus(str, Enum):
    """
    Invoice lifecycle status.

    WHAT: Enumeration of possible invoice states.

    WHY: Tracks invoice through the billing process:
    - DRAFT: Created, still editable, cannot receive payments
    - PENDING: Finalized but not yet sent
    - SENT: Sent to the client, awaiting payment
    - PARTIALLY_PAID: Some payment received, balance remains
    - PAID: Balance settled (terminal)
    - OVERDUE: Past due date; derived at query time, never stored
    - CANCELLED: Voided (terminal)
    - REFUNDED: Payment returned to client (terminal)

    HOW: String enum for database storage and API serialization.
    """

    DRAFT = "draft"
    PENDING = "pending"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# No explicit transition leaves these states
TERMINAL_STATUSES = frozenset(
    {InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED}
)


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


class Invoice(Base):
    """
    Invoice aggregate root.

    Attributes:
        id: Primary key
        invoice_number: Human-readable number, unique per company (INV-2024-00001)
        company_id: Issuing company
        client_id: Billed client

        Rates (inputs):
        vat_rate: VAT percentage (default 15.00)
        discount_percentage: Invoice-level discount percentage

        Amounts (derived by the ledger):
        subtotal: Sum of line totals
        discount_amount: Invoice-level discount
        vat_amount: VAT on the discounted subtotal
        total_amount: Discounted subtotal plus VAT
        amount_paid: Sum of all payments
        balance_due: total_amount - amount_paid

        Dates:
        issue_date, due_date: Document dates
        sent_at: When the invoice was sent
        paid_at: When the balance was first settled
    """

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("company_id", "invoice_number", name="uq_invoices_company_number"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    invoice_number: Mapped[str] = Column(
        String(50),
        nullable=False,
        index=True,
        comment="Invoice number (e.g., INV-2024-00001)",
    )

    status: Mapped[InvoiceStatus] = Column(
        SQLEnum(
            InvoiceStatus,
            name="invoicestatus",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=InvoiceStatus.DRAFT,
        index=True,
        comment="Current invoice status",
    )

    company_id: Mapped[int] = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[int] = Column(
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    issue_date: Mapped[date] = Column(Date, nullable=False, default=date.today)
    due_date: Mapped[date] = Column(Date, nullable=False)

    # Rates
    vat_rate: Mapped[Decimal] = Column(Percentage, nullable=False, default=Decimal("15.00"))
    discount_percentage: Mapped[Decimal] = Column(Percentage, nullable=False, default=ZERO)

    # Derived amounts
    subtotal: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)
    discount_amount: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)
    vat_amount: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)
    total_amount: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)
    amount_paid: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)
    balance_due: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)

    currency: Mapped[str] = Column(String(3), nullable=False, default="ZAR")

    notes: Mapped[Optional[str]] = Column(Text, nullable=True)
    terms_and_conditions: Mapped[Optional[str]] = Column(Text, nullable=True)
    reference_number: Mapped[Optional[str]] = Column(String(100), nullable=True)
    purchase_order_number: Mapped[Optional[str]] = Column(String(100), nullable=True)

    sent_at: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)
    paid_at: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)
    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationships
    # WHY: lazy="selectin" loads the owned collections with the invoice so
    # the ledger never triggers an implicit (blocking) lazy load under asyncio.
    line_items: Mapped[List["LineItem"]] = relationship(
        "LineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="LineItem.sort_order",
        lazy="selectin",
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.id",
        lazy="selectin",
    )
    client: Mapped["Client"] = relationship("Client", lazy="selectin")

    def __init__(self, **kwargs: Any) -> None:
        # Column defaults only apply at INSERT; the ledger needs them on
        # transient instances too.
        kwargs.setdefault("status", InvoiceStatus.DRAFT)
        kwargs.setdefault("vat_rate", Decimal("15.00"))
        kwargs.setdefault("discount_percentage", ZERO)
        kwargs.setdefault("currency", "ZAR")
        for field in ("subtotal", "discount_amount", "vat_amount", "total_amount", "amount_paid", "balance_due"):
            kwargs.setdefault(field, ZERO)
        # Initialized collections never lazy-load after flush
        kwargs.setdefault("line_items", [])
        kwargs.setdefault("payments", [])
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status})>"

    @property
    def is_editable(self) -> bool:
        """
        Check if invoice details and line items can be changed.

        Returns:
            True unless the invoice is paid, cancelled or refunded
        """
        return self.status not in TERMINAL_STATUSES

    @property
    def is_deletable(self) -> bool:
        """Only drafts may be deleted; anything sent must be cancelled instead."""
        return self.status == InvoiceStatus.DRAFT

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID

    def is_overdue_on(self, today: date) -> bool:
        """
        Check if invoice is past due date on the given day.

        WHAT: The derived Overdue view of an invoice.

        WHY: Overdue is never persisted. It is a function of the due date and
        the stored status, so it can never drift from either.

        Args:
            today: The reference date

        Returns:
            True if due_date has passed and invoice isn't paid/cancelled/refunded
        """
        if not self.due_date:
            return False
        if self.status in TERMINAL_STATUSES:
            return False
        return self.due_date < today

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_on(date.today())

    @property
    def effective_status(self) -> InvoiceStatus:
        """Stored status, or OVERDUE when past due."""
        return InvoiceStatus.OVERDUE if self.is_overdue else self.status

    @property
    def client_name(self) -> Optional[str]:
        return self.client.name if self.client is not None else None


class LineItem(Base):
    """
    One priced row of an invoice.

    Attributes:
        description: What is being billed (required)
        quantity: Whole units, at least 1
        unit_price: Price per unit excluding VAT
        discount_percentage: Line-level discount
        discount_amount: Derived: gross - line_total
        line_total: Derived: round2(unit_price * quantity * (1 - discount/100))
        sort_order: Display position on the invoice
    """

    __tablename__ = "line_items"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    invoice_id: Mapped[int] = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = Column(Text, nullable=False)
    item_code: Mapped[Optional[str]] = Column(String(50), nullable=True)
    quantity: Mapped[int] = Column(Integer, nullable=False, default=1)
    unit_of_measure: Mapped[str] = Column(String(20), nullable=False, default="each")
    unit_price: Mapped[Decimal] = Column(Money, nullable=False)
    discount_percentage: Mapped[Decimal] = Column(Percentage, nullable=False, default=ZERO)
    discount_amount: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)
    line_total: Mapped[Decimal] = Column(Money, nullable=False, default=ZERO)
    sort_order: Mapped[int] = Column(Integer, nullable=False, default=0)

    invoice: Mapped[Optional["Invoice"]] = relationship("Invoice", back_populates="line_items")

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("quantity", 1)
        kwargs.setdefault("unit_of_measure", "each")
        kwargs.setdefault("discount_percentage", ZERO)
        kwargs.setdefault("discount_amount", ZERO)
        kwargs.setdefault("line_total", ZERO)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<LineItem(id={self.id}, description={self.description!r}, line_total={self.line_total})>"


class InvoiceSequence(Base):
    """
    Last issued invoice sequence per company, prefix and year.

    WHY: Numbering from "max existing number + 1" alone would hand out the
    number of a deleted draft again. The stored counter only ever moves
    forward, so a number is never reused.
    """

    __tablename__ = "invoice_sequences"
    __table_args__ = (
        UniqueConstraint("company_id", "prefix", "year", name="uq_invoice_sequences_scope"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True)
    company_id: Mapped[int] = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    prefix: Mapped[str] = Column(String(20), nullable=False)
    year: Mapped[int] = Column(Integer, nullable=False)
    last_value: Mapped[int] = Column(Integer, nullable=False, default=0)

"""
Payment model.

WHAT: SQLAlchemy model for a payment received against an invoice.

WHY: Payments drive the invoice balance and its payment-related status
(partially paid, paid). Reconciliation marks a payment as verified against
the bank statement; a reconciled payment is frozen.
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    Date,
    ForeignKey,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from invoicing.models.base import Base, Money

if TYPE_CHECKING:
    from invoicing.models.invoice import Invoice


class PaymentMethod(str, Enum):
    """
    Payment methods commonly used in South Africa.

    - EFT: Electronic funds transfer (the most common)
    - SNAPSCAN, ZAPPER: QR-code mobile payments
    - PAYFAST: Online payment gateway
    """

    EFT = "eft"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CHEQUE = "cheque"
    SNAPSCAN = "snapscan"
    ZAPPER = "zapper"
    PAYFAST = "payfast"
    OTHER = "other"


class Payment(Base):
    """
    Payment made against an invoice.

    Attributes:
        id: Primary key
        invoice_id: Invoice the payment settles
        amount: Amount received (> 0)
        payment_date: Date the money was received
        payment_method: How it was paid (EFT by default)
        reference_number: Bank reference or transaction ID
        is_reconciled: Verified against a bank statement; irreversible
        reconciled_at: When the payment was reconciled
    """

    __tablename__ = "payments"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    invoice_id: Mapped[int] = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = Column(Money, nullable=False)
    payment_date: Mapped[date] = Column(Date, nullable=False, index=True)
    payment_method: Mapped[PaymentMethod] = Column(
        SQLEnum(
            PaymentMethod,
            name="paymentmethod",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=PaymentMethod.EFT,
    )
    reference_number: Mapped[Optional[str]] = Column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = Column(Text, nullable=True)

    is_reconciled: Mapped[bool] = Column(Boolean, nullable=False, default=False, index=True)
    reconciled_at: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)

    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    invoice: Mapped[Optional["Invoice"]] = relationship("Invoice", back_populates="payments")

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("payment_method", PaymentMethod.EFT)
        kwargs.setdefault("is_reconciled", False)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Payment(id={self.id}, invoice_id={self.invoice_id}, amount={self.amount})>"

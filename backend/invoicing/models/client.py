"""
Client model.

WHAT: SQLAlchemy model for a customer billed by a company.

WHY: Invoices are always addressed to a client of the issuing company.
Clients carry their own payment terms, which the invoice service uses to
default the due date.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped

from invoicing.models.base import Base, Money


class Client(Base):
    """
    Client (customer) of a company.

    Attributes:
        id: Primary key
        company_id: Owning company
        name: Client name
        email: Contact email, unique within the company
        is_active: Inactive clients are kept for history but hidden from pickers
        credit_limit: Optional credit limit
        payment_terms: Days between issue date and due date (default 30)
    """

    __tablename__ = "clients"
    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_clients_company_email"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    company_id: Mapped[int] = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = Column(String(255), nullable=False, index=True)
    contact_person: Mapped[Optional[str]] = Column(String(255), nullable=True)
    email: Mapped[str] = Column(String(255), nullable=False)
    phone_number: Mapped[Optional[str]] = Column(String(20), nullable=True)
    vat_number: Mapped[Optional[str]] = Column(String(10), nullable=True)
    registration_number: Mapped[Optional[str]] = Column(String(20), nullable=True)

    billing_address: Mapped[Optional[str]] = Column(Text, nullable=True)
    shipping_address: Mapped[Optional[str]] = Column(Text, nullable=True)
    city: Mapped[Optional[str]] = Column(String(100), nullable=True)
    province: Mapped[Optional[str]] = Column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = Column(String(10), nullable=True)
    notes: Mapped[Optional[str]] = Column(Text, nullable=True)

    is_active: Mapped[bool] = Column(Boolean, nullable=False, default=True)
    credit_limit: Mapped[Optional[Decimal]] = Column(Money, nullable=True)
    payment_terms: Mapped[int] = Column(
        Integer,
        nullable=False,
        default=30,
        comment="Payment terms in days",
    )

    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Client(id={self.id}, name={self.name}, company_id={self.company_id})>"

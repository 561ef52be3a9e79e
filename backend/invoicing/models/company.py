"""
Company model.

WHAT: SQLAlchemy model for the business that issues invoices.

WHY: A company is the tenant boundary of the system. Clients, invoices,
payments and invoice number sequences are all scoped to one company, and the
company's registration, VAT and banking details are printed on its invoices.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.orm import Mapped

from invoicing.models.base import Base


class Company(Base):
    """
    Company that issues invoices.

    Attributes:
        id: Primary key
        name: Legal name
        trading_name: Name the company trades under, if different
        registration_number: CIPC registration number (NNNN/NNNNNN/NN)
        vat_number: SARS VAT number (10 digits starting with 4)
        vat_registered: Whether VAT is charged on invoices
        email: Contact email (unique)

        Banking details (printed on invoices for EFT payments):
        bank_name, bank_account_number, bank_branch_code, bank_account_type
    """

    __tablename__ = "companies"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    name: Mapped[str] = Column(String(255), nullable=False)
    trading_name: Mapped[Optional[str]] = Column(String(255), nullable=True)
    registration_number: Mapped[Optional[str]] = Column(
        String(20),
        nullable=True,
        unique=True,
        comment="Company registration number (e.g., 2020/123456/07)",
    )
    vat_number: Mapped[Optional[str]] = Column(
        String(10),
        nullable=True,
        unique=True,
        comment="VAT number (10 digits, starts with 4)",
    )
    vat_registered: Mapped[bool] = Column(Boolean, nullable=False, default=False)

    # Contact
    email: Mapped[str] = Column(String(255), nullable=False, unique=True, index=True)
    phone_number: Mapped[Optional[str]] = Column(String(20), nullable=True)
    website: Mapped[Optional[str]] = Column(String(255), nullable=True)
    logo_url: Mapped[Optional[str]] = Column(String(500), nullable=True)

    # Address
    physical_address: Mapped[Optional[str]] = Column(Text, nullable=True)
    postal_address: Mapped[Optional[str]] = Column(Text, nullable=True)
    city: Mapped[Optional[str]] = Column(String(100), nullable=True)
    province: Mapped[Optional[str]] = Column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = Column(String(10), nullable=True)

    # Banking
    bank_name: Mapped[Optional[str]] = Column(String(100), nullable=True)
    bank_account_number: Mapped[Optional[str]] = Column(String(30), nullable=True)
    bank_branch_code: Mapped[Optional[str]] = Column(String(10), nullable=True)
    bank_account_type: Mapped[Optional[str]] = Column(String(30), nullable=True)

    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Company(id={self.id}, name={self.name})>"

"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from invoicing.models.base import Base, Money, Percentage, ZERO
from invoicing.models.company import Company
from invoicing.models.client import Client
from invoicing.models.invoice import (
    Invoice,
    InvoiceStatus,
    InvoiceSequence,
    LineItem,
    TERMINAL_STATUSES,
)
from invoicing.models.payment import Payment, PaymentMethod

__all__ = [
    "Base",
    "Money",
    "Percentage",
    "ZERO",
    "Company",
    "Client",
    "Invoice",
    "InvoiceStatus",
    "InvoiceSequence",
    "LineItem",
    "TERMINAL_STATUSES",
    "Payment",
    "PaymentMethod",
]

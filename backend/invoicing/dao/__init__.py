"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean abstraction layer between business logic and database
operations, following the Repository pattern for better testability and maintainability.
"""

from invoicing.dao.base import BaseDAO
from invoicing.dao.company import CompanyDAO
from invoicing.dao.client import ClientDAO
from invoicing.dao.invoice import InvoiceDAO
from invoicing.dao.payment import PaymentDAO

__all__ = [
    "BaseDAO",
    "CompanyDAO",
    "ClientDAO",
    "InvoiceDAO",
    "PaymentDAO",
]

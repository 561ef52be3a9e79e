"""
Services package.

WHY: Services hold business logic between the HTTP layer and the DAOs. All
invoice arithmetic and status rules live in the InvoiceLedger.
"""

from invoicing.services.ledger import InvoiceLedger, round_money
from invoicing.services.invoice_service import InvoiceService
from invoicing.services.payment_service import PaymentService
from invoicing.services.dashboard_service import DashboardService

__all__ = [
    "InvoiceLedger",
    "round_money",
    "InvoiceService",
    "PaymentService",
    "DashboardService",
]

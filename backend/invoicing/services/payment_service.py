"""
Payment Service.

WHAT: Business logic for recording, editing, deleting and reconciling
payments.

WHY: A payment changes its invoice's balance and possibly its status. The
invoice is therefore loaded under a row lock before the ledger checks the
balance, so two payments recorded at the same time cannot both pass the
"amount <= balance due" check.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.core.exceptions import ResourceNotFoundError, ValidationError
from invoicing.dao.payment import PaymentDAO
from invoicing.models.payment import Payment
from invoicing.schemas.payment import PaymentCreate, PaymentUpdate
from invoicing.services.invoice_service import InvoiceService
from invoicing.services.ledger import InvoiceLedger


logger = logging.getLogger(__name__)


class PaymentService:
    """
    Service for payment operations.

    HOW: Reuses InvoiceService for locked invoice loads and shares its
    ledger, so both services see the same clock.
    """

    def __init__(self, session: AsyncSession, ledger: Optional[InvoiceLedger] = None):
        """
        Initialize PaymentService.

        Args:
            session: Async database session
            ledger: Ledger to use (tests inject one with a fixed clock)
        """
        self.session = session
        self.invoice_service = InvoiceService(session, ledger)
        self.ledger = self.invoice_service.ledger
        self.payment_dao = PaymentDAO(session)

    async def get_payment(self, company_id: int, payment_id: int) -> Payment:
        """
        Get a payment of a company.

        Raises:
            ResourceNotFoundError: If the payment doesn't exist or belongs
                to another company's invoice
        """
        payment = await self.payment_dao.get_by_id_and_company(payment_id, company_id)
        if not payment:
            raise ResourceNotFoundError(
                message=f"Payment with id {payment_id} not found",
                resource_type="Payment",
                resource_id=payment_id,
            )
        return payment

    async def record_payment(self, company_id: int, invoice_id: int, data: PaymentCreate) -> Payment:
        """
        Record a payment against an invoice.

        Args:
            company_id: Owning company
            invoice_id: Invoice being paid
            data: Payment details

        Returns:
            Created payment

        Raises:
            ResourceNotFoundError: Invoice not found
            InvalidStateError: Invoice is a draft, paid, cancelled or refunded
            ValidationError: Amount exceeds the balance due
        """
        invoice = await self.invoice_service.get_invoice_for_update(company_id, invoice_id)
        payment = Payment(
            amount=data.amount,
            payment_date=data.payment_date,
            payment_method=data.payment_method,
            reference_number=data.reference_number,
            notes=data.notes,
        )
        self.ledger.add_payment(invoice, payment)
        await self.session.flush()

        logger.info(
            f"Payment {payment.id} of {payment.amount} recorded on invoice "
            f"{invoice.invoice_number} (balance due {invoice.balance_due}, status {invoice.status.value})"
        )
        return payment

    async def list_invoice_payments(self, company_id: int, invoice_id: int) -> List[Payment]:
        invoice = await self.invoice_service.get_invoice(company_id, invoice_id)
        return list(invoice.payments)

    async def list_payments(self, company_id: int, skip: int = 0, limit: int = 100) -> List[Payment]:
        return await self.payment_dao.get_by_company(company_id, skip=skip, limit=limit)

    async def list_unreconciled(self, company_id: int) -> List[Payment]:
        return await self.payment_dao.get_unreconciled(company_id)

    async def list_by_date_range(self, company_id: int, start_date: date, end_date: date) -> List[Payment]:
        if end_date < start_date:
            raise ValidationError(
                message="end_date cannot be before start_date",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )
        return await self.payment_dao.get_by_date_range(company_id, start_date, end_date)

    async def get_total_by_date_range(self, company_id: int, start_date: date, end_date: date) -> Decimal:
        return await self.payment_dao.get_total_by_date_range(company_id, start_date, end_date)

    async def get_totals_by_method(self, company_id: int) -> Dict[str, Dict[str, object]]:
        return await self.payment_dao.get_totals_by_method(company_id)

    async def update_payment(self, company_id: int, payment_id: int, data: PaymentUpdate) -> Payment:
        """
        Edit an unreconciled payment.

        Raises:
            ResourceNotFoundError: Payment not found
            InvalidStateError: Payment is reconciled
            ValidationError: New amount exceeds the balance available to it
        """
        payment = await self.get_payment(company_id, payment_id)
        invoice = await self.invoice_service.get_invoice_for_update(company_id, payment.invoice_id)
        self.ledger.update_payment(
            invoice,
            payment,
            amount=data.amount,
            payment_date=data.payment_date,
            payment_method=data.payment_method,
            reference_number=data.reference_number,
            notes=data.notes,
        )
        await self.session.flush()
        logger.info(f"Payment {payment.id} on invoice {invoice.invoice_number} updated to {payment.amount}")
        return payment

    async def delete_payment(self, company_id: int, payment_id: int) -> None:
        """
        Delete an unreconciled payment and recalculate its invoice.

        Raises:
            InvalidStateError: Payment is reconciled
        """
        payment = await self.get_payment(company_id, payment_id)
        invoice = await self.invoice_service.get_invoice_for_update(company_id, payment.invoice_id)
        self.ledger.remove_payment(invoice, payment)
        await self.session.flush()
        logger.info(f"Payment {payment_id} removed from invoice {invoice.invoice_number}")

    async def reconcile_payment(self, company_id: int, payment_id: int) -> Payment:
        """
        Mark a payment as matched against the bank statement.

        Irreversible; a reconciled payment can no longer be edited or deleted.
        """
        payment = await self.get_payment(company_id, payment_id)
        self.ledger.reconcile_payment(payment)
        await self.session.flush()
        logger.info(f"Payment {payment.id} reconciled")
        return payment

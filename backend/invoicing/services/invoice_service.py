"""
Invoice Service.

WHAT: Business logic for the invoice lifecycle: creation with number
generation, editing, line items, status changes and deletion.

WHY: The service layer:
1. Loads the invoice aggregate under a row lock
2. Hands it to the InvoiceLedger for every calculation and state check
3. Supplies configured defaults (VAT rate, currency, payment terms)
4. Flushes the result inside the request transaction

HOW: Orchestrates InvoiceDAO, ClientDAO and CompanyDAO. The service never
computes amounts itself.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.core.config import settings
from invoicing.core.exceptions import (
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from invoicing.dao.client import ClientDAO
from invoicing.dao.company import CompanyDAO
from invoicing.dao.invoice import InvoiceDAO
from invoicing.models.client import Client
from invoicing.models.company import Company
from invoicing.models.invoice import Invoice, InvoiceStatus, LineItem
from invoicing.schemas.invoice import InvoiceCreate, InvoiceUpdate, LineItemCreate
from invoicing.services.ledger import (
    InvoiceLedger,
    format_invoice_number,
    parse_invoice_sequence,
)


logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Service for invoice operations.

    WHAT: Provides business logic for invoices.

    WHY: Every mutation goes through the same load-lock-ledger-flush path,
    so concurrent requests against one invoice are serialized and the
    stored totals always match the line items.

    HOW: Coordinates DAOs and delegates rules to InvoiceLedger.
    """

    def __init__(self, session: AsyncSession, ledger: Optional[InvoiceLedger] = None):
        """
        Initialize InvoiceService.

        Args:
            session: Async database session
            ledger: Ledger to use (tests inject one with a fixed clock)
        """
        self.session = session
        self.ledger = ledger or InvoiceLedger()
        self.invoice_dao = InvoiceDAO(session)
        self.client_dao = ClientDAO(session)
        self.company_dao = CompanyDAO(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_company(self, company_id: int) -> Company:
        company = await self.company_dao.get_by_id(company_id)
        if not company:
            raise ResourceNotFoundError(
                message=f"Company with id {company_id} not found",
                resource_type="Company",
                resource_id=company_id,
            )
        return company

    async def get_client(self, company_id: int, client_id: int) -> Client:
        client = await self.client_dao.get_by_id_and_company(client_id, company_id)
        if not client:
            raise ResourceNotFoundError(
                message=f"Client with id {client_id} not found",
                resource_type="Client",
                resource_id=client_id,
            )
        return client

    async def get_invoice(self, company_id: int, invoice_id: int) -> Invoice:
        """
        Get an invoice of a company.

        Raises:
            ResourceNotFoundError: If the invoice doesn't exist or belongs
                to another company
        """
        invoice = await self.invoice_dao.get_by_id_and_company(invoice_id, company_id)
        if not invoice:
            raise ResourceNotFoundError(
                message=f"Invoice with id {invoice_id} not found",
                resource_type="Invoice",
                resource_id=invoice_id,
            )
        return invoice

    async def get_invoice_for_update(self, company_id: int, invoice_id: int) -> Invoice:
        """Like get_invoice, but holds the invoice row lock until commit."""
        invoice = await self.invoice_dao.get_for_update(invoice_id, company_id)
        if not invoice:
            raise ResourceNotFoundError(
                message=f"Invoice with id {invoice_id} not found",
                resource_type="Invoice",
                resource_id=invoice_id,
            )
        return invoice

    async def get_by_number(self, company_id: int, invoice_number: str) -> Invoice:
        invoice = await self.invoice_dao.get_by_invoice_number(company_id, invoice_number)
        if not invoice:
            raise ResourceNotFoundError(
                message=f"Invoice {invoice_number} not found",
                resource_type="Invoice",
                invoice_number=invoice_number,
            )
        return invoice

    async def list_invoices(
        self,
        company_id: int,
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[int] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Invoice], int]:
        """
        List invoices with filters.

        Args:
            status: Stored status, or OVERDUE for the derived overdue view

        Returns:
            Tuple of (invoices, total count)
        """
        if start_date and end_date and end_date < start_date:
            raise ValidationError(
                message="end_date cannot be before start_date",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )
        return await self.invoice_dao.list_invoices(
            company_id,
            status=status,
            client_id=client_id,
            search=search,
            start_date=start_date,
            end_date=end_date,
            skip=skip,
            limit=limit,
            today=self.ledger.now().date(),
        )

    async def get_overdue(self, company_id: int) -> List[Invoice]:
        return await self.invoice_dao.get_overdue(company_id, today=self.ledger.now().date())

    # ------------------------------------------------------------------
    # Numbering
    # ------------------------------------------------------------------

    async def generate_invoice_number(self, company_id: int, year: int) -> str:
        """
        Allocate the next invoice number for a company and year.

        WHAT: next = max(stored counter, highest existing number) + 1.

        WHY: The stored counter keeps numbers of deleted drafts from being
        handed out again; the scan of existing numbers covers invoices
        imported or created before the counter existed.

        Args:
            company_id: Issuing company
            year: Year part of the number (the issue date's year)

        Returns:
            Invoice number such as "INV-2024-00001"
        """
        prefix = settings.INVOICE_NUMBER_PREFIX
        sequence = await self.invoice_dao.get_sequence_for_update(company_id, prefix, year)
        existing = await self.invoice_dao.get_invoice_numbers(company_id, f"{prefix}-{year:04d}-")
        highest = max(
            (parse_invoice_sequence(number, prefix, year) or 0 for number in existing),
            default=0,
        )
        next_value = max(sequence.last_value, highest) + 1
        sequence.last_value = next_value
        return format_invoice_number(prefix, year, next_value)

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    @staticmethod
    def _build_line_item(data: LineItemCreate, position: int) -> LineItem:
        return LineItem(
            description=data.description,
            item_code=data.item_code,
            quantity=data.quantity,
            unit_of_measure=data.unit_of_measure,
            unit_price=data.unit_price,
            discount_percentage=data.discount_percentage,
            sort_order=data.sort_order if data.sort_order is not None else position,
        )

    @staticmethod
    def _validate_dates(issue_date: date, due_date: date) -> None:
        if due_date < issue_date:
            raise ValidationError(
                message="Due date cannot be before issue date",
                issue_date=issue_date.isoformat(),
                due_date=due_date.isoformat(),
            )

    async def create_invoice(self, company_id: int, data: InvoiceCreate) -> Invoice:
        """
        Create a new invoice in DRAFT status.

        WHAT: Allocates a number, applies defaults, attaches line items and
        lets the ledger compute the totals.

        Args:
            company_id: Issuing company
            data: Invoice creation data

        Returns:
            Created invoice

        Raises:
            ResourceNotFoundError: Company or client not found
            ValidationError: Due date before issue date, or invalid line items
        """
        await self.get_company(company_id)
        client = await self.get_client(company_id, data.client_id)

        issue_date = data.issue_date or self.ledger.now().date()
        payment_terms = client.payment_terms
        if payment_terms is None:
            payment_terms = settings.DEFAULT_PAYMENT_TERMS_DAYS
        due_date = data.due_date or issue_date + timedelta(days=payment_terms)
        self._validate_dates(issue_date, due_date)

        invoice_number = await self.generate_invoice_number(company_id, issue_date.year)

        invoice = Invoice(
            invoice_number=invoice_number,
            company_id=company_id,
            client_id=client.id,
            client=client,
            issue_date=issue_date,
            due_date=due_date,
            vat_rate=data.vat_rate if data.vat_rate is not None else settings.DEFAULT_VAT_RATE,
            discount_percentage=data.discount_percentage,
            currency=(data.currency or settings.DEFAULT_CURRENCY).upper(),
            notes=data.notes,
            terms_and_conditions=data.terms_and_conditions,
            reference_number=data.reference_number,
            purchase_order_number=data.purchase_order_number,
        )
        self.ledger.replace_line_items(
            invoice,
            [self._build_line_item(item, position) for position, item in enumerate(data.line_items)],
        )

        self.session.add(invoice)
        await self.session.flush()

        logger.info(
            f"Invoice {invoice.invoice_number} created for company {company_id} "
            f"(client {client.id}, total {invoice.total_amount})"
        )
        return invoice

    async def update_invoice(self, company_id: int, invoice_id: int, data: InvoiceUpdate) -> Invoice:
        """
        Update invoice details and optionally replace its line items.

        WHAT: Partial update; fields not sent are unchanged.

        Raises:
            ResourceNotFoundError: Invoice or new client not found
            InvalidStateError: Invoice is paid, cancelled or refunded
            ValidationError: Due date before issue date, or invalid line items
        """
        invoice = await self.get_invoice_for_update(company_id, invoice_id)
        if not invoice.is_editable:
            raise InvalidStateError(
                message=f"Cannot edit a {invoice.status.value} invoice",
                invoice_number=invoice.invoice_number,
                status=invoice.status.value,
            )

        changes = data.model_dump(exclude_unset=True, exclude={"line_items", "client_id"})

        if data.client_id is not None and data.client_id != invoice.client_id:
            client = await self.get_client(company_id, data.client_id)
            invoice.client = client
            invoice.client_id = client.id

        # Required columns can't be cleared; optional text fields can
        required = {"issue_date", "due_date", "vat_rate", "discount_percentage", "currency"}
        for field, value in changes.items():
            if value is None and field in required:
                continue
            if field == "currency":
                value = value.upper()
            setattr(invoice, field, value)

        self._validate_dates(invoice.issue_date, invoice.due_date)

        if data.line_items is not None:
            self.ledger.replace_line_items(
                invoice,
                [self._build_line_item(item, position) for position, item in enumerate(data.line_items)],
            )
        else:
            self.ledger.recalculate_totals(invoice)

        await self.session.flush()
        logger.info(f"Invoice {invoice.invoice_number} updated")
        return invoice

    async def delete_invoice(self, company_id: int, invoice_id: int) -> None:
        """
        Delete a draft invoice.

        WHY: Anything that has left draft may already be in the client's
        hands; it must be cancelled instead so the number stays accounted for.

        Raises:
            InvalidStateError: Invoice is not a draft
        """
        invoice = await self.get_invoice_for_update(company_id, invoice_id)
        if not invoice.is_deletable:
            raise InvalidStateError(
                message="Only draft invoices can be deleted. Cancel the invoice instead.",
                invoice_number=invoice.invoice_number,
                status=invoice.status.value,
            )
        await self.session.delete(invoice)
        await self.session.flush()
        logger.info(f"Invoice {invoice.invoice_number} deleted")

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    async def add_line_item(self, company_id: int, invoice_id: int, data: LineItemCreate) -> Invoice:
        invoice = await self.get_invoice_for_update(company_id, invoice_id)
        self.ledger.add_line_item(invoice, self._build_line_item(data, len(invoice.line_items)))
        await self.session.flush()
        return invoice

    async def remove_line_item(self, company_id: int, invoice_id: int, line_item_id: int) -> Invoice:
        """
        Remove one line item and recalculate.

        Raises:
            ResourceNotFoundError: The line item is not on this invoice
        """
        invoice = await self.get_invoice_for_update(company_id, invoice_id)
        item = next((li for li in invoice.line_items if li.id == line_item_id), None)
        if item is None:
            raise ResourceNotFoundError(
                message=f"Line item with id {line_item_id} not found",
                resource_type="LineItem",
                resource_id=line_item_id,
            )
        self.ledger.remove_line_item(invoice, item)
        await self.session.flush()
        return invoice

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def change_status(self, company_id: int, invoice_id: int, new_status: InvoiceStatus) -> Invoice:
        """
        Apply an explicit status change through the ledger's state machine.

        Raises:
            InvalidStateTransitionError: Transition not allowed
        """
        invoice = await self.get_invoice_for_update(company_id, invoice_id)
        self.ledger.transition_status(invoice, new_status)
        await self.session.flush()
        return invoice

    async def send_invoice(self, company_id: int, invoice_id: int) -> Invoice:
        invoice = await self.get_invoice_for_update(company_id, invoice_id)
        self.ledger.send(invoice)
        await self.session.flush()
        logger.info(f"Invoice {invoice.invoice_number} sent")
        return invoice

    async def cancel_invoice(self, company_id: int, invoice_id: int) -> Invoice:
        invoice = await self.get_invoice_for_update(company_id, invoice_id)
        self.ledger.cancel(invoice)
        await self.session.flush()
        logger.info(f"Invoice {invoice.invoice_number} cancelled")
        return invoice

"""
Invoice Data Access Object (DAO).

WHAT: Database operations for the Invoice model.

WHY: The DAO pattern:
1. Separates data access from business logic
2. Provides a consistent API for invoice operations
3. Enforces company scoping on every query
4. Encapsulates reporting queries for the dashboard

HOW: Extends BaseDAO with invoice-specific queries:
- Locked loads for ledger mutations (SELECT ... FOR UPDATE)
- Status, client, date range and free-text filtering
- Overdue derivation at query time
- Invoice number sequence bookkeeping
- Financial aggregates
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, func, extract, or_
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.dao.base import BaseDAO
from invoicing.models.client import Client
from invoicing.models.company import Company
from invoicing.models.invoice import (
    Invoice,
    InvoiceSequence,
    InvoiceStatus,
    TERMINAL_STATUSES,
)


def _as_money(value) -> Decimal:
    # SQLite returns SUM() over NUMERIC as float
    return Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class InvoiceDAO(BaseDAO[Invoice]):
    """
    Data Access Object for Invoice model.

    WHAT: Provides CRUD and query operations for invoices.

    WHY: Centralizes all invoice database operations:
    - Enforces company_id scoping
    - Provides specialized invoice queries
    - Serializes concurrent mutations of one invoice via row locks

    HOW: Extends BaseDAO with invoice-specific methods. Line items, payments
    and client load eagerly (selectin) with every invoice.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize InvoiceDAO.

        Args:
            session: Async database session
        """
        super().__init__(Invoice, session)

    async def get_for_update(self, invoice_id: int, company_id: int) -> Optional[Invoice]:
        """
        Load an invoice with a row lock for a ledger mutation.

        WHAT: SELECT ... FOR UPDATE on the invoice row.

        WHY: add_payment checks the balance and then attaches the payment.
        Two concurrent requests could both pass the check; holding the row
        lock until the request transaction commits serializes them. SQLite
        has no row locks and ignores the clause (it locks the whole database
        on write instead).

        Args:
            invoice_id: Invoice ID
            company_id: Owning company

        Returns:
            Invoice with line items and payments loaded, or None
        """
        result = await self.session.execute(
            select(Invoice)
            .where(
                Invoice.id == invoice_id,
                Invoice.company_id == company_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_invoice_number(
        self,
        company_id: int,
        invoice_number: str,
    ) -> Optional[Invoice]:
        """
        Get an invoice by its invoice number.

        WHY: Invoice numbers appear on payment references and client
        communications, so lookups by number are common.

        Args:
            company_id: Owning company
            invoice_number: The invoice number (e.g., INV-2024-00001)

        Returns:
            Invoice if found and belongs to the company, None otherwise
        """
        result = await self.session.execute(
            select(Invoice).where(
                Invoice.company_id == company_id,
                Invoice.invoice_number == invoice_number,
            )
        )
        return result.scalar_one_or_none()

    def _list_query(
        self,
        company_id: int,
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[int] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None,
    ):
        query = select(Invoice).where(Invoice.company_id == company_id)

        if status == InvoiceStatus.OVERDUE:
            # Derived: never stored, so filter on the due date instead
            query = query.where(
                Invoice.due_date < (today or date.today()),
                Invoice.status.notin_(list(TERMINAL_STATUSES)),
            )
        elif status is not None:
            query = query.where(Invoice.status == status)

        if client_id is not None:
            query = query.where(Invoice.client_id == client_id)

        if search:
            pattern = f"%{search}%"
            query = query.join(Client, Invoice.client_id == Client.id).where(
                or_(
                    Invoice.invoice_number.ilike(pattern),
                    Invoice.reference_number.ilike(pattern),
                    Client.name.ilike(pattern),
                )
            )

        if start_date is not None:
            query = query.where(Invoice.issue_date >= start_date)
        if end_date is not None:
            query = query.where(Invoice.issue_date <= end_date)

        return query

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
        today: Optional[date] = None,
    ) -> Tuple[List[Invoice], int]:
        """
        List a company's invoices with optional filters.

        WHAT: One query builder shared by every listing endpoint.

        Args:
            company_id: Owning company
            status: Stored status, or OVERDUE for the derived overdue view
            client_id: Only this client's invoices
            search: Substring of invoice number, reference number or client name
            start_date: Issue date lower bound (inclusive)
            end_date: Issue date upper bound (inclusive)
            skip: Pagination offset
            limit: Pagination limit
            today: Reference date for the overdue filter

        Returns:
            Tuple of (invoices newest first, total matching count)
        """
        query = self._list_query(
            company_id,
            status=status,
            client_id=client_id,
            search=search,
            start_date=start_date,
            end_date=end_date,
            today=today,
        )

        count_result = await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        result = await self.session.execute(
            query.order_by(Invoice.issue_date.desc(), Invoice.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_by_status(
        self,
        company_id: int,
        status: InvoiceStatus,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """Invoices with the given stored status."""
        invoices, _ = await self.list_invoices(company_id, status=status, skip=skip, limit=limit)
        return invoices

    async def get_by_client(
        self,
        company_id: int,
        client_id: int,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        invoices, _ = await self.list_invoices(company_id, client_id=client_id, skip=skip, limit=limit)
        return invoices

    async def search(
        self,
        company_id: int,
        term: str,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        invoices, _ = await self.list_invoices(company_id, search=term, skip=skip, limit=limit)
        return invoices

    async def get_by_date_range(
        self,
        company_id: int,
        start_date: date,
        end_date: date,
    ) -> List[Invoice]:
        """Invoices issued between start_date and end_date inclusive."""
        result = await self.session.execute(
            self._list_query(company_id, start_date=start_date, end_date=end_date)
            .order_by(Invoice.issue_date.asc(), Invoice.id.asc())
        )
        return list(result.scalars().all())

    async def get_overdue(
        self,
        company_id: int,
        today: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """
        Get invoices that are past due date.

        WHAT: due_date < today and status not paid, cancelled or refunded.

        WHY: Overdue is derived at query time; nothing ever writes the
        OVERDUE status, so filtering on it would find nothing.

        Returns:
            Overdue invoices, oldest due date first
        """
        result = await self.session.execute(
            self._list_query(company_id, status=InvoiceStatus.OVERDUE, today=today)
            .order_by(Invoice.due_date.asc(), Invoice.id.asc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_recent(self, company_id: int, limit: int = 5) -> List[Invoice]:
        """Most recently created invoices."""
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.company_id == company_id)
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Invoice numbering
    # ------------------------------------------------------------------

    async def get_invoice_numbers(self, company_id: int, number_prefix: str) -> List[str]:
        """
        All invoice numbers of a company starting with number_prefix.

        Args:
            company_id: Owning company
            number_prefix: e.g. "INV-2024-"
        """
        result = await self.session.execute(
            select(Invoice.invoice_number).where(
                Invoice.company_id == company_id,
                Invoice.invoice_number.like(f"{number_prefix}%"),
            )
        )
        return list(result.scalars().all())

    async def lock_company(self, company_id: int) -> None:
        """
        Take the company row lock for the rest of the transaction.

        WHY: The first invoice of a year has no counter row to lock yet, so
        number allocation is serialized on the company row instead.
        """
        await self.session.execute(
            select(Company.id).where(Company.id == company_id).with_for_update()
        )

    async def get_sequence_for_update(
        self,
        company_id: int,
        prefix: str,
        year: int,
    ) -> InvoiceSequence:
        """
        Load (or create) the number counter for company, prefix and year.

        WHY: Two invoices created at the same time must not receive the same
        number. The company row is locked before the counter is read or
        created, so concurrent allocations for one company run one at a time
        even when the counter row doesn't exist yet.
        """
        await self.lock_company(company_id)
        result = await self.session.execute(
            select(InvoiceSequence)
            .where(
                InvoiceSequence.company_id == company_id,
                InvoiceSequence.prefix == prefix,
                InvoiceSequence.year == year,
            )
            .with_for_update()
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            sequence = InvoiceSequence(company_id=company_id, prefix=prefix, year=year, last_value=0)
            self.session.add(sequence)
            await self.session.flush()
        return sequence

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    async def count_by_status(self, company_id: int) -> Dict[str, int]:
        """
        Get count of invoices by stored status for a company.

        Returns:
            Dict mapping status value to count
        """
        result = await self.session.execute(
            select(Invoice.status, func.count(Invoice.id))
            .where(Invoice.company_id == company_id)
            .group_by(Invoice.status)
        )
        return {row[0].value: row[1] for row in result.all()}

    async def calculate_total_paid(self, company_id: int) -> Decimal:
        """Sum of total_amount over paid invoices."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(
                Invoice.company_id == company_id,
                Invoice.status == InvoiceStatus.PAID,
            )
        )
        return _as_money(result.scalar_one())

    async def calculate_total_outstanding(self, company_id: int) -> Decimal:
        """
        Calculate total outstanding balance for a company.

        WHAT: Sum of balance_due for invoices that are not paid, cancelled
        or refunded.
        """
        result = await self.session.execute(
            select(func.coalesce(func.sum(Invoice.balance_due), 0)).where(
                Invoice.company_id == company_id,
                Invoice.status.notin_(list(TERMINAL_STATUSES)),
            )
        )
        return _as_money(result.scalar_one())

    async def calculate_revenue(self, company_id: int, start_date: date, end_date: date) -> Decimal:
        """
        Sum of total_amount for invoices issued in a date range.

        Cancelled invoices are excluded.
        """
        result = await self.session.execute(
            select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(
                Invoice.company_id == company_id,
                Invoice.issue_date >= start_date,
                Invoice.issue_date <= end_date,
                Invoice.status != InvoiceStatus.CANCELLED,
            )
        )
        return _as_money(result.scalar_one())

    async def get_monthly_revenue(self, company_id: int, year: int) -> Dict[int, Decimal]:
        """
        Paid invoice totals per issue month for a year.

        Returns:
            Dict mapping month number (1-12) to revenue; months without
            paid invoices are absent
        """
        month = extract("month", Invoice.issue_date)
        result = await self.session.execute(
            select(month, func.coalesce(func.sum(Invoice.total_amount), 0))
            .where(
                Invoice.company_id == company_id,
                extract("year", Invoice.issue_date) == year,
                Invoice.status == InvoiceStatus.PAID,
            )
            .group_by(month)
            .order_by(month)
        )
        return {int(row[0]): _as_money(row[1]) for row in result.all()}

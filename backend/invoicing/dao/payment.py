"""
Payment Data Access Object (DAO).

WHAT: Database operations for the Payment model.

WHY: Payments have no company column of their own; they belong to a company
through their invoice. Every company-scoped query joins the invoice.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.dao.base import BaseDAO
from invoicing.models.invoice import Invoice
from invoicing.models.payment import Payment


class PaymentDAO(BaseDAO[Payment]):
    """
    Data Access Object for Payment model.

    HOW: Extends BaseDAO with invoice- and company-scoped queries,
    reconciliation listings and reporting aggregates.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Payment, session)

    def _company_query(self, company_id: int):
        return (
            select(Payment)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .where(Invoice.company_id == company_id)
        )

    async def get_by_id_and_company(self, id: int, company_id: int) -> Optional[Payment]:
        """
        Get a payment by ID, ensuring its invoice belongs to the company.

        Returns:
            Payment if found and owned by the company, None otherwise
        """
        result = await self.session.execute(
            self._company_query(company_id).where(Payment.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by_invoice(self, invoice_id: int) -> List[Payment]:
        """Payments of one invoice in the order they were recorded."""
        result = await self.session.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id)
            .order_by(Payment.id)
        )
        return list(result.scalars().all())

    async def get_by_company(self, company_id: int, skip: int = 0, limit: int = 100) -> List[Payment]:
        """
        All payments received by a company, newest first.

        Args:
            company_id: Owning company
            skip: Pagination offset
            limit: Pagination limit
        """
        result = await self.session.execute(
            self._company_query(company_id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_date_range(
        self,
        company_id: int,
        start_date: date,
        end_date: date,
    ) -> List[Payment]:
        """Payments received between start_date and end_date inclusive."""
        result = await self.session.execute(
            self._company_query(company_id)
            .where(
                Payment.payment_date >= start_date,
                Payment.payment_date <= end_date,
            )
            .order_by(Payment.payment_date.asc(), Payment.id.asc())
        )
        return list(result.scalars().all())

    async def get_unreconciled(self, company_id: int) -> List[Payment]:
        """
        Payments not yet matched against a bank statement.

        WHY: The reconciliation worklist; oldest first so the backlog is
        cleared in statement order.
        """
        result = await self.session.execute(
            self._company_query(company_id)
            .where(Payment.is_reconciled.is_(False))
            .order_by(Payment.payment_date.asc(), Payment.id.asc())
        )
        return list(result.scalars().all())

    async def get_total_by_date_range(
        self,
        company_id: int,
        start_date: date,
        end_date: date,
    ) -> Decimal:
        """Sum of payments received in a date range."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0))
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .where(
                Invoice.company_id == company_id,
                Payment.payment_date >= start_date,
                Payment.payment_date <= end_date,
            )
        )
        return Decimal(str(result.scalar_one())).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    async def get_totals_by_method(self, company_id: int) -> Dict[str, Dict[str, object]]:
        """
        Payment count and amount per payment method.

        Returns:
            Dict mapping method value to {"count": int, "amount": Decimal}
        """
        result = await self.session.execute(
            select(
                Payment.payment_method,
                func.count(Payment.id),
                func.coalesce(func.sum(Payment.amount), 0),
            )
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .where(Invoice.company_id == company_id)
            .group_by(Payment.payment_method)
        )
        return {
            row[0].value: {
                "count": row[1],
                "amount": Decimal(str(row[2])).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            }
            for row in result.all()
        }

"""
Dashboard Service.

WHAT: Aggregates invoice, client and payment figures for a company
dashboard.

WHY: The dashboard needs a dozen numbers from three tables. Collecting them
in one service keeps the router thin and makes the figures testable without
HTTP.
"""

import calendar
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.core.exceptions import ResourceNotFoundError
from invoicing.dao.client import ClientDAO
from invoicing.dao.company import CompanyDAO
from invoicing.dao.invoice import InvoiceDAO
from invoicing.dao.payment import PaymentDAO
from invoicing.models.invoice import InvoiceStatus
from invoicing.schemas.dashboard import (
    DashboardResponse,
    MonthlyRevenue,
    OverdueInvoice,
    PaymentMethodTotal,
    RecentInvoice,
)


class DashboardService:
    """Read-only statistics for one company."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.company_dao = CompanyDAO(session)
        self.client_dao = ClientDAO(session)
        self.invoice_dao = InvoiceDAO(session)
        self.payment_dao = PaymentDAO(session)

    async def get_dashboard(self, company_id: int, today: Optional[date] = None) -> DashboardResponse:
        """
        Build the dashboard for a company.

        Args:
            company_id: Company to report on
            today: Reference date (defaults to today)

        Returns:
            DashboardResponse with counts, revenue figures and short lists

        Raises:
            ResourceNotFoundError: Company not found
        """
        if not await self.company_dao.get_by_id(company_id):
            raise ResourceNotFoundError(
                message=f"Company with id {company_id} not found",
                resource_type="Company",
                resource_id=company_id,
            )

        today = today or date.today()
        by_status = await self.invoice_dao.count_by_status(company_id)
        overdue = await self.invoice_dao.get_overdue(company_id, today=today)

        start_of_month = today.replace(day=1)
        start_of_year = today.replace(month=1, day=1)

        monthly = await self.invoice_dao.get_monthly_revenue(company_id, today.year)
        monthly_revenue_data = [
            MonthlyRevenue(month=month, month_name=calendar.month_abbr[month], amount=float(amount))
            for month, amount in sorted(monthly.items())
        ]

        recent_invoices = [
            RecentInvoice(
                id=invoice.id,
                invoice_number=invoice.invoice_number,
                client_name=invoice.client_name or "",
                amount=float(invoice.total_amount),
                status=InvoiceStatus.OVERDUE if invoice.is_overdue_on(today) else invoice.status,
            )
            for invoice in await self.invoice_dao.get_recent(company_id, limit=5)
        ]

        overdue_invoices_list = [
            OverdueInvoice(
                id=invoice.id,
                invoice_number=invoice.invoice_number,
                client_name=invoice.client_name or "",
                balance_due=float(invoice.balance_due),
                days_overdue=(today - invoice.due_date).days,
            )
            for invoice in overdue
        ]

        payments_by_method = {
            method: PaymentMethodTotal(count=totals["count"], amount=float(totals["amount"]))
            for method, totals in (await self.payment_dao.get_totals_by_method(company_id)).items()
        }

        return DashboardResponse(
            total_invoices=sum(by_status.values()),
            draft_invoices=by_status.get(InvoiceStatus.DRAFT.value, 0),
            pending_invoices=(
                by_status.get(InvoiceStatus.PENDING.value, 0)
                + by_status.get(InvoiceStatus.SENT.value, 0)
            ),
            paid_invoices=by_status.get(InvoiceStatus.PAID.value, 0),
            overdue_invoices=len(overdue),
            by_status=by_status,
            total_clients=await self.client_dao.count(company_id=company_id),
            active_clients=await self.client_dao.count_active(company_id),
            total_revenue=float(await self.invoice_dao.calculate_revenue(company_id, start_of_year, today)),
            monthly_revenue=float(await self.invoice_dao.calculate_revenue(company_id, start_of_month, today)),
            total_outstanding=float(await self.invoice_dao.calculate_total_outstanding(company_id)),
            total_paid=float(await self.invoice_dao.calculate_total_paid(company_id)),
            monthly_revenue_data=monthly_revenue_data,
            recent_invoices=recent_invoices,
            overdue_invoices_list=overdue_invoices_list,
            payments_by_method=payments_by_method,
        )

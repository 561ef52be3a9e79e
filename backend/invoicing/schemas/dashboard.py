"""
Dashboard schemas.

WHAT: Aggregated figures for a company's dashboard: invoice counts,
revenue, outstanding balances and short lists of recent and overdue
invoices.
"""

from typing import Dict, List

from pydantic import BaseModel, Field

from invoicing.models.invoice import InvoiceStatus


class MonthlyRevenue(BaseModel):
    """Paid revenue for one month of the current year."""

    month: int = Field(ge=1, le=12)
    month_name: str
    amount: float


class RecentInvoice(BaseModel):
    id: int
    invoice_number: str
    client_name: str
    amount: float
    status: InvoiceStatus


class OverdueInvoice(BaseModel):
    id: int
    invoice_number: str
    client_name: str
    balance_due: float
    days_overdue: int


class PaymentMethodTotal(BaseModel):
    count: int
    amount: float


class DashboardResponse(BaseModel):
    """
    Invoice statistics for the dashboard.

    WHY: Aggregated metrics for:
    - Financial overview
    - Payment tracking
    - Status distribution
    """

    total_invoices: int
    draft_invoices: int
    pending_invoices: int = Field(description="Pending or sent, awaiting payment")
    paid_invoices: int
    overdue_invoices: int
    by_status: Dict[str, int] = Field(description="Count by stored status")

    total_clients: int
    active_clients: int

    total_revenue: float = Field(description="Invoiced this year (excluding cancelled)")
    monthly_revenue: float = Field(description="Invoiced this month (excluding cancelled)")
    total_outstanding: float = Field(description="Unpaid balance of open invoices")
    total_paid: float = Field(description="Total of paid invoices")

    monthly_revenue_data: List[MonthlyRevenue]
    recent_invoices: List[RecentInvoice]
    overdue_invoices_list: List[OverdueInvoice]
    payments_by_method: Dict[str, PaymentMethodTotal]

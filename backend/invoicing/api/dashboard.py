"""
Dashboard API endpoint.

WHAT: One read-only endpoint returning a company's invoice statistics.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.db.session import get_db
from invoicing.schemas.dashboard import DashboardResponse
from invoicing.services.dashboard_service import DashboardService


router = APIRouter(prefix="/companies/{company_id}/dashboard", tags=["dashboard"])


@router.get(
    "",
    response_model=DashboardResponse,
    summary="Company dashboard",
)
async def get_dashboard(
    company_id: int,
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    """
    Invoice counts, revenue, outstanding balance, monthly revenue for the
    current year, and the latest and overdue invoices.

    Raises:
        ResourceNotFoundError (404): Company not found
    """
    return await DashboardService(db).get_dashboard(company_id)

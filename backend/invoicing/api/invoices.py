"""
Invoice management API endpoints.

WHAT: RESTful API for the invoice lifecycle.

WHY: Invoices are critical for:
1. Billing clients
2. Tracking payment status
3. Generating financial records

HOW: FastAPI router nested under /companies/{company_id}. Every handler
delegates to InvoiceService; the ledger behind it decides what is allowed.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.db.session import get_db
from invoicing.models.invoice import Invoice, InvoiceStatus
from invoicing.schemas.invoice import (
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    LineItemCreate,
)
from invoicing.services.invoice_service import InvoiceService


router = APIRouter(prefix="/companies/{company_id}/invoices", tags=["invoices"])


def get_invoice_service(db: AsyncSession = Depends(get_db)) -> InvoiceService:
    return InvoiceService(db)


def _invoice_to_response(invoice: Invoice) -> InvoiceResponse:
    """
    Convert Invoice model to InvoiceResponse schema.

    WHY: Centralized conversion ensures consistent response format
    and proper handling of decimal to float conversion.
    """
    return InvoiceResponse.model_validate(invoice)


# ============================================================================
# Invoice CRUD Endpoints
# ============================================================================


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
    description="Create a new invoice in DRAFT status",
)
async def create_invoice(
    company_id: int,
    data: InvoiceCreate,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    """
    Create a new invoice.

    WHAT: Creates an invoice in DRAFT status with the next invoice number.

    Raises:
        ResourceNotFoundError (404): Company or client not found
        ValidationError (400): Due date before issue date, invalid line items
    """
    invoice = await service.create_invoice(company_id, data)
    return _invoice_to_response(invoice)


@router.get(
    "",
    response_model=InvoiceListResponse,
    summary="List invoices",
)
async def list_invoices(
    company_id: int,
    status_filter: Optional[InvoiceStatus] = Query(
        None,
        alias="status",
        description="Filter by status (overdue is derived from the due date)",
    ),
    client_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Invoice number, reference or client name contains"),
    start_date: Optional[date] = Query(None, description="Issued on or after"),
    end_date: Optional[date] = Query(None, description="Issued on or before"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceListResponse:
    invoices, total = await service.list_invoices(
        company_id,
        status=status_filter,
        client_id=client_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return InvoiceListResponse(
        items=[_invoice_to_response(i) for i in invoices],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/overdue",
    response_model=List[InvoiceResponse],
    summary="List overdue invoices",
)
async def list_overdue_invoices(
    company_id: int,
    service: InvoiceService = Depends(get_invoice_service),
) -> List[InvoiceResponse]:
    """
    Invoices past their due date that are not paid, cancelled or refunded.
    """
    invoices = await service.get_overdue(company_id)
    return [_invoice_to_response(i) for i in invoices]


@router.get(
    "/number/{invoice_number}",
    response_model=InvoiceResponse,
    summary="Get invoice by number",
)
async def get_invoice_by_number(
    company_id: int,
    invoice_number: str,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    invoice = await service.get_by_number(company_id, invoice_number)
    return _invoice_to_response(invoice)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Get invoice",
)
async def get_invoice(
    company_id: int,
    invoice_id: int,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    invoice = await service.get_invoice(company_id, invoice_id)
    return _invoice_to_response(invoice)


@router.put(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Update invoice",
    description="Update invoice details; line_items, when sent, replaces the whole list",
)
async def update_invoice(
    company_id: int,
    invoice_id: int,
    data: InvoiceUpdate,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    """
    Update invoice details.

    Raises:
        ResourceNotFoundError (404): Invoice not found
        InvalidStateError (409): Invoice is paid, cancelled or refunded
        ValidationError (400): Invalid dates or line items
    """
    invoice = await service.update_invoice(company_id, invoice_id, data)
    return _invoice_to_response(invoice)


@router.delete(
    "/{invoice_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete invoice",
    description="Delete a draft invoice",
)
async def delete_invoice(
    company_id: int,
    invoice_id: int,
    service: InvoiceService = Depends(get_invoice_service),
) -> Response:
    """
    Raises:
        InvalidStateError (409): Invoice is not a draft
    """
    await service.delete_invoice(company_id, invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Status Endpoints
# ============================================================================


@router.patch(
    "/{invoice_id}/status",
    response_model=InvoiceResponse,
    summary="Change invoice status",
)
async def change_invoice_status(
    company_id: int,
    invoice_id: int,
    data: InvoiceStatusUpdate,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    """
    Request an explicit status change.

    Paid and partially paid follow the payments and overdue follows the due
    date, so none of them can be requested here.

    Raises:
        InvalidStateTransitionError (409): Transition not allowed
    """
    invoice = await service.change_status(company_id, invoice_id, data.status)
    return _invoice_to_response(invoice)


@router.post(
    "/{invoice_id}/send",
    response_model=InvoiceResponse,
    summary="Send invoice",
)
async def send_invoice(
    company_id: int,
    invoice_id: int,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    """
    Mark a draft or pending invoice as sent.

    Raises:
        InvalidStateTransitionError (409): Invoice already sent, paid or cancelled
        ValidationError (400): Invoice has no line items
    """
    invoice = await service.send_invoice(company_id, invoice_id)
    return _invoice_to_response(invoice)


@router.post(
    "/{invoice_id}/cancel",
    response_model=InvoiceResponse,
    summary="Cancel invoice",
)
async def cancel_invoice(
    company_id: int,
    invoice_id: int,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    invoice = await service.cancel_invoice(company_id, invoice_id)
    return _invoice_to_response(invoice)


# ============================================================================
# Line Item Endpoints
# ============================================================================


@router.post(
    "/{invoice_id}/line-items",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add line item",
)
async def add_line_item(
    company_id: int,
    invoice_id: int,
    data: LineItemCreate,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    invoice = await service.add_line_item(company_id, invoice_id, data)
    return _invoice_to_response(invoice)


@router.delete(
    "/{invoice_id}/line-items/{line_item_id}",
    response_model=InvoiceResponse,
    summary="Remove line item",
)
async def remove_line_item(
    company_id: int,
    invoice_id: int,
    line_item_id: int,
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceResponse:
    invoice = await service.remove_line_item(company_id, invoice_id, line_item_id)
    return _invoice_to_response(invoice)

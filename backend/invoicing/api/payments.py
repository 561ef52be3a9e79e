"""
Payment API endpoints.

WHAT: Recording payments against invoices, and managing a company's
payments (edit, delete, reconcile).

HOW: Two routers:
- invoice_payments_router: /companies/{company_id}/invoices/{invoice_id}/payments
- router: /companies/{company_id}/payments
"""

from datetime import date
from typing import List
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.db.session import get_db
from invoicing.schemas.payment import (
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    PaymentUpdate,
)
from invoicing.services.payment_service import PaymentService


invoice_payments_router = APIRouter(
    prefix="/companies/{company_id}/invoices/{invoice_id}/payments",
    tags=["payments"],
)
router = APIRouter(prefix="/companies/{company_id}/payments", tags=["payments"])


def get_payment_service(db: AsyncSession = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


def _to_list(payments) -> PaymentListResponse:
    items = [PaymentResponse.model_validate(p) for p in payments]
    return PaymentListResponse(items=items, total=len(items))


# ============================================================================
# Invoice Payments
# ============================================================================


@invoice_payments_router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record payment",
)
async def record_payment(
    company_id: int,
    invoice_id: int,
    data: PaymentCreate,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    """
    Record a payment against an invoice.

    WHAT: Adds the payment, recalculates the balance and moves the invoice
    to partially paid or paid.

    Raises:
        ResourceNotFoundError (404): Invoice not found
        InvalidStateError (409): Invoice is a draft, paid, cancelled or refunded
        ValidationError (400): Amount exceeds the balance due
    """
    payment = await service.record_payment(company_id, invoice_id, data)
    return PaymentResponse.model_validate(payment)


@invoice_payments_router.get(
    "",
    response_model=PaymentListResponse,
    summary="List invoice payments",
)
async def list_invoice_payments(
    company_id: int,
    invoice_id: int,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentListResponse:
    return _to_list(await service.list_invoice_payments(company_id, invoice_id))


# ============================================================================
# Company Payments
# ============================================================================


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="List payments",
)
async def list_payments(
    company_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentListResponse:
    return _to_list(await service.list_payments(company_id, skip=skip, limit=limit))


@router.get(
    "/unreconciled",
    response_model=PaymentListResponse,
    summary="List unreconciled payments",
)
async def list_unreconciled_payments(
    company_id: int,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentListResponse:
    return _to_list(await service.list_unreconciled(company_id))


@router.get(
    "/date-range",
    response_model=PaymentListResponse,
    summary="List payments in a date range",
)
async def list_payments_by_date_range(
    company_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentListResponse:
    return _to_list(await service.list_by_date_range(company_id, start_date, end_date))


@router.get(
    "/total",
    summary="Total payments in a date range",
)
async def get_payment_total(
    company_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    service: PaymentService = Depends(get_payment_service),
) -> dict:
    total = await service.get_total_by_date_range(company_id, start_date, end_date)
    return {"start_date": start_date, "end_date": end_date, "total": float(total)}


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get payment",
)
async def get_payment(
    company_id: int,
    payment_id: int,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    payment = await service.get_payment(company_id, payment_id)
    return PaymentResponse.model_validate(payment)


@router.put(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Update payment",
)
async def update_payment(
    company_id: int,
    payment_id: int,
    data: PaymentUpdate,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    """
    Edit an unreconciled payment.

    Raises:
        InvalidStateError (409): Payment is reconciled
        ValidationError (400): New amount exceeds the available balance
    """
    payment = await service.update_payment(company_id, payment_id, data)
    return PaymentResponse.model_validate(payment)


@router.delete(
    "/{payment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete payment",
)
async def delete_payment(
    company_id: int,
    payment_id: int,
    service: PaymentService = Depends(get_payment_service),
) -> Response:
    await service.delete_payment(company_id, payment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{payment_id}/reconcile",
    response_model=PaymentResponse,
    summary="Reconcile payment",
)
async def reconcile_payment(
    company_id: int,
    payment_id: int,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    """
    Mark a payment as matched against the bank statement (irreversible).

    Raises:
        InvalidStateError (409): Payment already reconciled
    """
    payment = await service.reconcile_payment(company_id, payment_id)
    return PaymentResponse.model_validate(payment)

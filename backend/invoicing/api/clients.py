"""
Client management API endpoints.

WHAT: RESTful API for a company's clients.

WHY: Clients are billed by invoices. A client with invoices is never
deleted (the invoices would go with it); it is deactivated instead.

HOW: FastAPI router nested under /companies/{company_id}, using ClientDAO
directly.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.core.config import settings
from invoicing.core.exceptions import (
    InvalidStateError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from invoicing.dao.client import ClientDAO
from invoicing.dao.company import CompanyDAO
from invoicing.dao.invoice import InvoiceDAO
from invoicing.db.session import get_db
from invoicing.models.client import Client
from invoicing.schemas.client import (
    ClientCreate,
    ClientListResponse,
    ClientResponse,
    ClientUpdate,
)


router = APIRouter(prefix="/companies/{company_id}/clients", tags=["clients"])


async def _get_client_or_404(client_dao: ClientDAO, company_id: int, client_id: int) -> Client:
    client = await client_dao.get_by_id_and_company(client_id, company_id)
    if not client:
        raise ResourceNotFoundError(
            message=f"Client with id {client_id} not found",
            resource_type="Client",
            resource_id=client_id,
        )
    return client


async def _ensure_email_free(
    client_dao: ClientDAO,
    company_id: int,
    email: str,
    exclude_id: Optional[int] = None,
) -> None:
    existing = await client_dao.get_by_email(company_id, email)
    if existing and existing.id != exclude_id:
        raise ResourceAlreadyExistsError(
            message="A client with this email already exists",
            resource_type="Client",
            field="email",
        )


@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
)
async def create_client(
    company_id: int,
    data: ClientCreate,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    """
    Create a client for a company.

    Raises:
        ResourceNotFoundError (404): Company not found
        ResourceAlreadyExistsError (409): Email already used by another client of the company
    """
    if not await CompanyDAO(db).get_by_id(company_id):
        raise ResourceNotFoundError(
            message=f"Company with id {company_id} not found",
            resource_type="Company",
            resource_id=company_id,
        )

    client_dao = ClientDAO(db)
    await _ensure_email_free(client_dao, company_id, data.email)

    values = data.model_dump()
    if values["payment_terms"] is None:
        values["payment_terms"] = settings.DEFAULT_PAYMENT_TERMS_DAYS
    client = await client_dao.create(company_id=company_id, is_active=True, **values)
    return ClientResponse.model_validate(client)


@router.get(
    "",
    response_model=ClientListResponse,
    summary="List clients",
)
async def list_clients(
    company_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> ClientListResponse:
    client_dao = ClientDAO(db)
    clients = await client_dao.get_by_company(company_id, skip=skip, limit=limit)
    total = await client_dao.count(company_id=company_id)
    return ClientListResponse(
        items=[ClientResponse.model_validate(c) for c in clients],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/active",
    response_model=List[ClientResponse],
    summary="List active clients",
)
async def list_active_clients(
    company_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[ClientResponse]:
    clients = await ClientDAO(db).get_active(company_id)
    return [ClientResponse.model_validate(c) for c in clients]


@router.get(
    "/search",
    response_model=List[ClientResponse],
    summary="Search clients",
)
async def search_clients(
    company_id: int,
    q: str = Query(..., min_length=1, description="Name, contact person or email contains"),
    db: AsyncSession = Depends(get_db),
) -> List[ClientResponse]:
    clients = await ClientDAO(db).search(company_id, q)
    return [ClientResponse.model_validate(c) for c in clients]


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Get client",
)
async def get_client(
    company_id: int,
    client_id: int,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    client = await _get_client_or_404(ClientDAO(db), company_id, client_id)
    return ClientResponse.model_validate(client)


@router.put(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Update client",
)
async def update_client(
    company_id: int,
    client_id: int,
    data: ClientUpdate,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    client_dao = ClientDAO(db)
    await _get_client_or_404(client_dao, company_id, client_id)

    changes = data.model_dump(exclude_unset=True)
    for field in ("name", "email", "payment_terms"):
        if field in changes and changes[field] is None:
            changes.pop(field)
    if "email" in changes:
        await _ensure_email_free(client_dao, company_id, changes["email"], exclude_id=client_id)

    client = await client_dao.update(client_id, **changes)
    return ClientResponse.model_validate(client)


@router.patch(
    "/{client_id}/deactivate",
    response_model=ClientResponse,
    summary="Deactivate client",
)
async def deactivate_client(
    company_id: int,
    client_id: int,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    client_dao = ClientDAO(db)
    await _get_client_or_404(client_dao, company_id, client_id)
    client = await client_dao.update(client_id, is_active=False)
    return ClientResponse.model_validate(client)


@router.patch(
    "/{client_id}/activate",
    response_model=ClientResponse,
    summary="Activate client",
)
async def activate_client(
    company_id: int,
    client_id: int,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    client_dao = ClientDAO(db)
    await _get_client_or_404(client_dao, company_id, client_id)
    client = await client_dao.update(client_id, is_active=True)
    return ClientResponse.model_validate(client)


@router.delete(
    "/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete client",
)
async def delete_client(
    company_id: int,
    client_id: int,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Delete a client that has never been invoiced.

    Raises:
        InvalidStateError (409): The client has invoices; deactivate instead
    """
    client_dao = ClientDAO(db)
    await _get_client_or_404(client_dao, company_id, client_id)

    if await InvoiceDAO(db).exists(client_id=client_id):
        raise InvalidStateError(
            message="Client has invoices and cannot be deleted. Deactivate the client instead.",
            client_id=client_id,
        )

    await client_dao.delete(client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

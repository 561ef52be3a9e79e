"""
Company management API endpoints.

WHAT: RESTful API for company CRUD.

WHY: Companies own everything else: clients, invoices and, through the
invoices, payments. Registration number, VAT number and email are unique
across companies.

HOW: FastAPI router using CompanyDAO directly; there is no business logic
beyond uniqueness checks.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.core.exceptions import ResourceAlreadyExistsError, ResourceNotFoundError
from invoicing.dao.company import CompanyDAO
from invoicing.db.session import get_db
from invoicing.schemas.company import (
    CompanyCreate,
    CompanyListResponse,
    CompanyResponse,
    CompanyUpdate,
)


router = APIRouter(prefix="/companies", tags=["companies"])


async def _ensure_unique(
    company_dao: CompanyDAO,
    email: Optional[str],
    registration_number: Optional[str],
    vat_number: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    """
    Raise ResourceAlreadyExistsError if another company uses one of the values.

    Args:
        exclude_id: Company being updated (its own values don't conflict)
    """
    checks = [
        ("email", email, company_dao.get_by_email),
        ("registration_number", registration_number, company_dao.get_by_registration_number),
        ("vat_number", vat_number, company_dao.get_by_vat_number),
    ]
    for field, value, lookup in checks:
        if not value:
            continue
        existing = await lookup(value)
        if existing and existing.id != exclude_id:
            raise ResourceAlreadyExistsError(
                message=f"A company with this {field.replace('_', ' ')} already exists",
                resource_type="Company",
                field=field,
            )


async def _get_company_or_404(company_dao: CompanyDAO, company_id: int):
    company = await company_dao.get_by_id(company_id)
    if not company:
        raise ResourceNotFoundError(
            message=f"Company with id {company_id} not found",
            resource_type="Company",
            resource_id=company_id,
        )
    return company


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create company",
)
async def create_company(
    data: CompanyCreate,
    db: AsyncSession = Depends(get_db),
) -> CompanyResponse:
    """
    Register a company.

    Raises:
        ResourceAlreadyExistsError (409): Email, registration or VAT number taken
    """
    company_dao = CompanyDAO(db)
    await _ensure_unique(company_dao, data.email, data.registration_number, data.vat_number)
    company = await company_dao.create(**data.model_dump())
    return CompanyResponse.model_validate(company)


@router.get(
    "",
    response_model=CompanyListResponse,
    summary="List companies",
)
async def list_companies(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    search: Optional[str] = Query(None, description="Name, trading name or email contains"),
    db: AsyncSession = Depends(get_db),
) -> CompanyListResponse:
    company_dao = CompanyDAO(db)
    if search:
        companies = await company_dao.search(search, skip=skip, limit=limit)
        total = len(companies)
    else:
        companies = await company_dao.get_all(skip=skip, limit=limit)
        total = await company_dao.count()
    return CompanyListResponse(
        items=[CompanyResponse.model_validate(c) for c in companies],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/{company_id}",
    response_model=CompanyResponse,
    summary="Get company",
)
async def get_company(
    company_id: int,
    db: AsyncSession = Depends(get_db),
) -> CompanyResponse:
    company = await _get_company_or_404(CompanyDAO(db), company_id)
    return CompanyResponse.model_validate(company)


@router.put(
    "/{company_id}",
    response_model=CompanyResponse,
    summary="Update company",
)
async def update_company(
    company_id: int,
    data: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
) -> CompanyResponse:
    """
    Update company details. Only fields present in the request change.

    Raises:
        ResourceNotFoundError (404): Company not found
        ResourceAlreadyExistsError (409): New email, registration or VAT number taken
    """
    company_dao = CompanyDAO(db)
    await _get_company_or_404(company_dao, company_id)

    changes = data.model_dump(exclude_unset=True)
    # name and email are required columns
    for field in ("name", "email"):
        if field in changes and changes[field] is None:
            changes.pop(field)

    await _ensure_unique(
        company_dao,
        changes.get("email"),
        changes.get("registration_number"),
        changes.get("vat_number"),
        exclude_id=company_id,
    )
    company = await company_dao.update(company_id, **changes)
    return CompanyResponse.model_validate(company)


@router.delete(
    "/{company_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete company",
    description="Delete a company together with its clients, invoices and payments",
)
async def delete_company(
    company_id: int,
    db: AsyncSession = Depends(get_db),
) -> Response:
    company_dao = CompanyDAO(db)
    await _get_company_or_404(company_dao, company_id)
    await company_dao.delete(company_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

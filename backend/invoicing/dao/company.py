"""
Company Data Access Object (DAO).

WHAT: Database operations for the Company model.

WHY: Companies are the top-level owners of clients and invoices. Their
email, registration number and VAT number are unique, so the service layer
needs cheap existence checks before create and update.
"""

from typing import List, Optional
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.dao.base import BaseDAO
from invoicing.models.company import Company


class CompanyDAO(BaseDAO[Company]):
    """Data Access Object for Company model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Company, session)

    async def get_by_email(self, email: str) -> Optional[Company]:
        return await self.get_by_field("email", email)

    async def get_by_registration_number(self, registration_number: str) -> Optional[Company]:
        return await self.get_by_field("registration_number", registration_number)

    async def get_by_vat_number(self, vat_number: str) -> Optional[Company]:
        return await self.get_by_field("vat_number", vat_number)

    async def search(self, term: str, skip: int = 0, limit: int = 100) -> List[Company]:
        """
        Search companies by name, trading name or email.

        Args:
            term: Case-insensitive substring
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Matching companies ordered by name
        """
        pattern = f"%{term}%"
        result = await self.session.execute(
            select(Company)
            .where(
                or_(
                    Company.name.ilike(pattern),
                    Company.trading_name.ilike(pattern),
                    Company.email.ilike(pattern),
                )
            )
            .order_by(Company.name)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

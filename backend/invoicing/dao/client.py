"""
Client Data Access Object (DAO).

WHAT: Database operations for the Client model.

WHY: Every client query is scoped to its owning company. Inactive clients
are kept for invoice history, so "active" listings are a separate query.
"""

from typing import List, Optional
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.dao.base import BaseDAO
from invoicing.models.client import Client


class ClientDAO(BaseDAO[Client]):
    """
    Data Access Object for Client model.

    HOW: Extends BaseDAO with company-scoped search and active filtering.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Client, session)

    async def get_by_email(self, company_id: int, email: str) -> Optional[Client]:
        """
        Get a client by email within a company.

        WHY: Client emails are unique per company, not globally; two
        companies may bill the same customer.
        """
        result = await self.session.execute(
            select(Client).where(
                Client.company_id == company_id,
                Client.email == email,
            )
        )
        return result.scalar_one_or_none()

    async def get_active(self, company_id: int, skip: int = 0, limit: int = 100) -> List[Client]:
        """Active clients of a company, alphabetically."""
        result = await self.session.execute(
            select(Client)
            .where(
                Client.company_id == company_id,
                Client.is_active.is_(True),
            )
            .order_by(Client.name)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def search(
        self,
        company_id: int,
        term: str,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Client]:
        """
        Search a company's clients by name, contact person or email.

        Args:
            company_id: Owning company
            term: Case-insensitive substring
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Matching clients ordered by name
        """
        pattern = f"%{term}%"
        result = await self.session.execute(
            select(Client)
            .where(
                Client.company_id == company_id,
                or_(
                    Client.name.ilike(pattern),
                    Client.contact_person.ilike(pattern),
                    Client.email.ilike(pattern),
                ),
            )
            .order_by(Client.name)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_active(self, company_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Client.id)).where(
                Client.company_id == company_id,
                Client.is_active.is_(True),
            )
        )
        return result.scalar_one()

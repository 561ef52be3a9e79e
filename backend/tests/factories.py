"""
Test factories for creating test data.

WHY: Factories provide a consistent, reusable way to create test objects,
reducing duplication and making tests more maintainable. Invoices are built
through the InvoiceLedger so their stored totals are always consistent.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from invoicing.models.client import Client
from invoicing.models.company import Company
from invoicing.models.invoice import Invoice, InvoiceStatus, LineItem
from invoicing.models.payment import Payment, PaymentMethod
from invoicing.services.ledger import InvoiceLedger


class CompanyFactory:
    """
    Factory for creating Company test instances.

    WHY: Centralizes company creation logic for tests, ensuring consistent
    test data across all test suites.
    """

    _counter = 0

    @classmethod
    async def create(
        cls,
        session: AsyncSession,
        name: str = "Test Company",
        email: Optional[str] = None,
        vat_registered: bool = True,
    ) -> Company:
        """
        Create a company for testing.

        Args:
            session: Database session
            name: Legal name
            email: Contact email (generated and unique when omitted)
            vat_registered: Whether the company charges VAT

        Returns:
            Created Company instance
        """
        cls._counter += 1
        company = Company(
            name=name,
            email=email or f"company{cls._counter}@example.co.za",
            vat_registered=vat_registered,
        )
        session.add(company)
        await session.flush()
        return company


class ClientFactory:
    """Factory for creating Client test instances."""

    _counter = 0

    @classmethod
    async def create(
        cls,
        session: AsyncSession,
        company: Company,
        name: Optional[str] = None,
        email: Optional[str] = None,
        payment_terms: int = 30,
        is_active: bool = True,
    ) -> Client:
        """
        Create a client of a company.

        Args:
            session: Database session
            company: Owning company
            name: Client name (generated when omitted)
            email: Contact email (generated when omitted)
            payment_terms: Days until due
            is_active: Whether the client is active

        Returns:
            Created Client instance
        """
        cls._counter += 1
        client = Client(
            company_id=company.id,
            name=name or f"Client {cls._counter}",
            email=email or f"client{cls._counter}@example.com",
            payment_terms=payment_terms,
            is_active=is_active,
        )
        session.add(client)
        await session.flush()
        return client


class InvoiceFactory:
    """
    Factory for creating Invoice test instances.

    WHY: Tests need invoices in every lifecycle state. Building them with the
    ledger (rather than writing totals by hand) keeps amounts realistic.
    """

    _counter = 0

    @classmethod
    async def create(
        cls,
        session: AsyncSession,
        company: Company,
        client: Client,
        items: Optional[List[Tuple[str, int, str]]] = None,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        vat_rate: Decimal = Decimal("15.00"),
        discount_percentage: Decimal = Decimal("0"),
        status: InvoiceStatus = InvoiceStatus.DRAFT,
        invoice_number: Optional[str] = None,
        ledger: Optional[InvoiceLedger] = None,
    ) -> Invoice:
        """
        Create an invoice with line items.

        Args:
            session: Database session
            company: Issuing company
            client: Billed client
            items: (description, quantity, unit_price) tuples; one R1000.00
                item when omitted
            issue_date: Defaults to 2024-03-01
            due_date: Defaults to issue date plus 30 days
            vat_rate: VAT percentage
            discount_percentage: Invoice-level discount
            status: DRAFT, or any status reachable by explicit transition
                (PENDING, SENT, CANCELLED)
            invoice_number: Defaults to a unique INV-YYYY-NNNNN number
            ledger: Ledger to build with

        Returns:
            Created Invoice instance
        """
        cls._counter += 1
        ledger = ledger or InvoiceLedger()
        issue_date = issue_date or date(2024, 3, 1)
        if items is None:
            items = [("Consulting services", 1, "1000.00")]

        invoice = Invoice(
            invoice_number=invoice_number or f"INV-{issue_date.year}-{cls._counter:05d}",
            company_id=company.id,
            client_id=client.id,
            client=client,
            issue_date=issue_date,
            due_date=due_date or issue_date + timedelta(days=30),
            vat_rate=vat_rate,
            discount_percentage=discount_percentage,
        )
        ledger.replace_line_items(
            invoice,
            [
                LineItem(description=description, quantity=quantity, unit_price=Decimal(price))
                for description, quantity, price in items
            ],
        )
        if status != InvoiceStatus.DRAFT:
            ledger.transition_status(invoice, status)

        session.add(invoice)
        await session.flush()
        return invoice


class PaymentFactory:
    """Factory for recording payments through the ledger."""

    @staticmethod
    async def create(
        session: AsyncSession,
        invoice: Invoice,
        amount: str,
        payment_date: Optional[date] = None,
        payment_method: PaymentMethod = PaymentMethod.EFT,
        ledger: Optional[InvoiceLedger] = None,
    ) -> Payment:
        """
        Record a payment against a sent invoice.

        Args:
            session: Database session
            invoice: Invoice being paid (must not be a draft)
            amount: Amount as a decimal string
            payment_date: Defaults to 2024-03-10
            payment_method: How the payment was made
            ledger: Ledger to record with

        Returns:
            Created Payment instance
        """
        ledger = ledger or InvoiceLedger()
        payment = Payment(
            amount=Decimal(amount),
            payment_date=payment_date or date(2024, 3, 10),
            payment_method=payment_method,
        )
        ledger.add_payment(invoice, payment)
        await session.flush()
        return payment

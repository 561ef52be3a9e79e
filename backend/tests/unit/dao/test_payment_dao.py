"""
Unit tests for Payment DAO.

WHAT: Tests for PaymentDAO queries.

WHY: Payments reach their company only through their invoice. These tests
verify the join keeps one company's payments out of another's listings and
that the reporting aggregates add up.
"""

import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal

from invoicing.dao.payment import PaymentDAO
from invoicing.models.invoice import InvoiceStatus
from invoicing.models.payment import PaymentMethod
from invoicing.services.ledger import InvoiceLedger
from tests.factories import (
    ClientFactory,
    CompanyFactory,
    InvoiceFactory,
    PaymentFactory,
)


@pytest_asyncio.fixture
async def sent_invoice(db_session, test_company, test_client_record):
    # Total 1150.00
    return await InvoiceFactory.create(db_session, test_company, test_client_record, status=InvoiceStatus.SENT)


class TestPaymentDAOScoping:
    """Tests for company scoping through the invoice."""

    @pytest.mark.asyncio
    async def test_get_by_id_and_company(self, db_session, test_company, sent_invoice):
        payment = await PaymentFactory.create(db_session, sent_invoice, "100.00")
        other = await CompanyFactory.create(db_session, name="Other Company")
        dao = PaymentDAO(db_session)

        assert (await dao.get_by_id_and_company(payment.id, test_company.id)).id == payment.id
        assert await dao.get_by_id_and_company(payment.id, other.id) is None

    @pytest.mark.asyncio
    async def test_get_by_company_excludes_other_companies(self, db_session, test_company, sent_invoice):
        ours = await PaymentFactory.create(db_session, sent_invoice, "100.00")
        other = await CompanyFactory.create(db_session, name="Other Company")
        other_client = await ClientFactory.create(db_session, other)
        other_invoice = await InvoiceFactory.create(db_session, other, other_client, status=InvoiceStatus.SENT)
        await PaymentFactory.create(db_session, other_invoice, "50.00")

        payments = await PaymentDAO(db_session).get_by_company(test_company.id)

        assert [p.id for p in payments] == [ours.id]

    @pytest.mark.asyncio
    async def test_get_by_invoice_in_recorded_order(self, db_session, sent_invoice):
        first = await PaymentFactory.create(db_session, sent_invoice, "100.00", payment_date=date(2024, 3, 12))
        second = await PaymentFactory.create(db_session, sent_invoice, "200.00", payment_date=date(2024, 3, 5))

        payments = await PaymentDAO(db_session).get_by_invoice(sent_invoice.id)

        assert [p.id for p in payments] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_payments_on_invoice_created_in_same_session(self, db_session, test_company, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_company, test_client_record, status=InvoiceStatus.SENT)
        await PaymentFactory.create(db_session, invoice, "150.00")
        await PaymentFactory.create(db_session, invoice, "1000.00")

        payments = await PaymentDAO(db_session).get_by_invoice(invoice.id)

        assert [p.amount for p in payments] == [Decimal("150.00"), Decimal("1000.00")]
        assert invoice.amount_paid == Decimal("1150.00")
        assert invoice.status == InvoiceStatus.PAID


class TestPaymentDAOQueries:
    """Tests for reconciliation and reporting queries."""

    @pytest.mark.asyncio
    async def test_get_unreconciled(self, db_session, test_company, sent_invoice):
        reconciled = await PaymentFactory.create(db_session, sent_invoice, "100.00")
        open_payment = await PaymentFactory.create(db_session, sent_invoice, "200.00")
        InvoiceLedger().reconcile_payment(reconciled)
        await db_session.flush()

        payments = await PaymentDAO(db_session).get_unreconciled(test_company.id)

        assert [p.id for p in payments] == [open_payment.id]

    @pytest.mark.asyncio
    async def test_date_range_and_total(self, db_session, test_company, sent_invoice):
        await PaymentFactory.create(db_session, sent_invoice, "100.00", payment_date=date(2024, 2, 28))
        inside = await PaymentFactory.create(db_session, sent_invoice, "200.50", payment_date=date(2024, 3, 1))
        await PaymentFactory.create(db_session, sent_invoice, "300.25", payment_date=date(2024, 4, 1))
        dao = PaymentDAO(db_session)

        payments = await dao.get_by_date_range(test_company.id, date(2024, 3, 1), date(2024, 3, 31))
        total = await dao.get_total_by_date_range(test_company.id, date(2024, 3, 1), date(2024, 4, 1))

        assert [p.id for p in payments] == [inside.id]
        assert total == Decimal("500.75")

    @pytest.mark.asyncio
    async def test_totals_by_method(self, db_session, test_company, sent_invoice):
        await PaymentFactory.create(db_session, sent_invoice, "100.00")
        await PaymentFactory.create(db_session, sent_invoice, "50.00")
        await PaymentFactory.create(db_session, sent_invoice, "20.00", payment_method=PaymentMethod.CASH)

        totals = await PaymentDAO(db_session).get_totals_by_method(test_company.id)

        assert totals == {
            "eft": {"count": 2, "amount": Decimal("150.00")},
            "cash": {"count": 1, "amount": Decimal("20.00")},
        }

"""
InvoiceLedger Tests.

WHAT: Unit tests for the invoice monetary engine and status state machine.

WHY: The ledger is the only place invoice amounts and statuses are
computed. These tests pin down:
- Line, discount, VAT and total arithmetic with half-up rounding
- Idempotent recalculation
- Payment validation and payment-driven status (including demotion)
- Reconciliation freezing a payment
- Every explicit status transition, legal and illegal
- The derived overdue view

HOW: Pure in-memory tests on transient model instances; no database.
"""

import random
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from invoicing.core.exceptions import (
    InvalidStateError,
    InvalidStateTransitionError,
    ValidationError,
)
from invoicing.models.invoice import Invoice, InvoiceStatus, LineItem
from invoicing.models.payment import Payment, PaymentMethod
from invoicing.services.ledger import (
    InvoiceLedger,
    format_invoice_number,
    parse_invoice_sequence,
    round_money,
    to_decimal,
)


D = Decimal


def make_item(quantity=1, unit_price="100.00", discount="0", description="Consulting") -> LineItem:
    return LineItem(
        description=description,
        quantity=quantity,
        unit_price=D(unit_price),
        discount_percentage=D(discount),
    )


def make_invoice(ledger, items=None, vat_rate="15.00", discount="0", status=InvoiceStatus.DRAFT, due_date=None):
    invoice = Invoice(
        invoice_number="INV-2024-00001",
        company_id=1,
        client_id=1,
        issue_date=date(2024, 3, 1),
        due_date=due_date or date(2024, 3, 31),
        vat_rate=D(vat_rate),
        discount_percentage=D(discount),
    )
    ledger.replace_line_items(invoice, items if items is not None else [make_item(2, "100.00")])
    if status != InvoiceStatus.DRAFT:
        ledger.transition_status(invoice, status)
    return invoice


def make_payment(amount, method=PaymentMethod.EFT) -> Payment:
    return Payment(amount=D(amount), payment_date=date(2024, 3, 10), payment_method=method)


def snapshot(invoice):
    return (
        invoice.subtotal,
        invoice.discount_amount,
        invoice.vat_amount,
        invoice.total_amount,
        invoice.amount_paid,
        invoice.balance_due,
        invoice.status,
        invoice.paid_at,
        tuple((item.line_total, item.discount_amount) for item in invoice.line_items),
    )


def assert_invariants(invoice):
    """Check every derived amount against its definition."""
    for item in invoice.line_items:
        expected = round_money(item.unit_price * item.quantity * (100 - item.discount_percentage) / 100)
        assert item.line_total == expected

    subtotal = sum((item.line_total for item in invoice.line_items), D("0"))
    assert invoice.subtotal == subtotal

    expected_discount = round_money(invoice.subtotal * invoice.discount_percentage / 100)
    assert invoice.discount_amount == expected_discount

    expected_vat = round_money((invoice.subtotal - invoice.discount_amount) * invoice.vat_rate / 100)
    assert invoice.vat_amount == expected_vat

    assert invoice.total_amount == round_money(
        round_money(invoice.subtotal - invoice.discount_amount) + invoice.vat_amount
    )
    assert invoice.amount_paid == sum((p.amount for p in invoice.payments), D("0"))
    assert invoice.balance_due == invoice.total_amount - invoice.amount_paid


# ============================================================================
# Helpers
# ============================================================================


class TestMoneyHelpers:
    """Tests for to_decimal and round_money."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("0.005", "0.01"),
            ("0.004", "0.00"),
            ("2.675", "2.68"),
            ("10", "10.00"),
            ("-0.005", "-0.01"),
        ],
    )
    def test_round_money_rounds_half_up(self, value, expected):
        assert round_money(D(value)) == D(expected)

    def test_to_decimal_avoids_float_artefacts(self):
        assert to_decimal(0.1) == D("0.1")

    def test_to_decimal_none_is_zero(self):
        assert to_decimal(None) == D("0")


class TestInvoiceNumbers:
    """Tests for invoice number formatting and parsing."""

    def test_format_pads_year_and_sequence(self):
        assert format_invoice_number("INV", 2024, 7) == "INV-2024-00007"

    def test_parse_returns_sequence(self):
        assert parse_invoice_sequence("INV-2024-00042", "INV", 2024) == 42

    @pytest.mark.parametrize(
        "number",
        ["INV-2023-00001", "QUO-2024-00001", "INV-2024-", "INV-2024-00001-A", ""],
    )
    def test_parse_rejects_other_scopes(self, number):
        assert parse_invoice_sequence(number, "INV", 2024) is None

    def test_parse_handles_sequences_beyond_five_digits(self):
        assert parse_invoice_sequence("INV-2024-100000", "INV", 2024) == 100000


# ============================================================================
# Totals
# ============================================================================


class TestLineTotals:
    """Tests for per-line arithmetic."""

    @pytest.mark.parametrize(
        "quantity,unit_price,discount,line_total,discount_amount",
        [
            (2, "100.00", "0", "200.00", "0.00"),
            (3, "33.33", "10", "89.99", "10.00"),
            (1, "0.05", "50", "0.03", "0.02"),
            (5, "19.99", "100", "0.00", "99.95"),
            (1, "0.00", "0", "0.00", "0.00"),
        ],
    )
    def test_line_total(self, ledger, quantity, unit_price, discount, line_total, discount_amount):
        item = make_item(quantity, unit_price, discount)

        assert ledger.calculate_line_total(item) == D(line_total)
        assert item.line_total == D(line_total)
        assert item.discount_amount == D(discount_amount)


class TestRecalculateTotals:
    """Tests for invoice-level totals."""

    def test_single_line_with_vat(self, ledger):
        """Two units at 100.00 with 15% VAT."""
        invoice = make_invoice(ledger, [make_item(2, "100.00")])

        assert invoice.subtotal == D("200.00")
        assert invoice.discount_amount == D("0.00")
        assert invoice.vat_amount == D("30.00")
        assert invoice.total_amount == D("230.00")
        assert invoice.balance_due == D("230.00")

    def test_invoice_discount_applies_before_vat(self, ledger):
        invoice = make_invoice(ledger, [make_item(1, "1000.00")], discount="10")

        assert invoice.discount_amount == D("100.00")
        assert invoice.vat_amount == D("135.00")
        assert invoice.total_amount == D("1035.00")

    def test_each_percentage_is_rounded_before_summing(self, ledger):
        """
        subtotal 99.99, discount 12.5% = 12.49875 -> 12.50,
        VAT 15% of 87.49 = 13.1235 -> 13.12, total 100.61.
        """
        invoice = make_invoice(ledger, [make_item(1, "99.99")], discount="12.5")

        assert invoice.discount_amount == D("12.50")
        assert invoice.vat_amount == D("13.12")
        assert invoice.total_amount == D("100.61")

    def test_zero_vat_rate(self, ledger):
        invoice = make_invoice(ledger, [make_item(3, "10.00")], vat_rate="0")

        assert invoice.vat_amount == D("0")
        assert invoice.total_amount == D("30.00")

    def test_multiple_lines_sum_rounded_line_totals(self, ledger):
        invoice = make_invoice(
            ledger,
            [make_item(3, "33.33", "10"), make_item(1, "0.05", "50"), make_item(7, "12.34")],
        )

        assert invoice.subtotal == D("89.99") + D("0.03") + D("86.38")
        assert_invariants(invoice)

    def test_empty_invoice_totals_are_zero(self, ledger):
        invoice = make_invoice(ledger, [])

        assert invoice.subtotal == D("0.00")
        assert invoice.total_amount == D("0.00")
        assert invoice.status == InvoiceStatus.DRAFT

    def test_recalculate_is_idempotent(self, ledger):
        invoice = make_invoice(
            ledger,
            [make_item(3, "33.33", "10"), make_item(2, "45.55")],
            discount="7.5",
            status=InvoiceStatus.SENT,
        )
        ledger.add_payment(invoice, make_payment("50.00"))

        ledger.recalculate_totals(invoice)
        first = snapshot(invoice)
        ledger.recalculate_totals(invoice)

        assert snapshot(invoice) == first

    @pytest.mark.parametrize("field,value", [("vat_rate", "100.01"), ("discount_percentage", "-1")])
    def test_out_of_range_percentage_rejected(self, ledger, field, value):
        invoice = make_invoice(ledger)
        setattr(invoice, field, D(value))

        with pytest.raises(ValidationError):
            ledger.recalculate_totals(invoice)

    def test_totals_hold_across_random_operation_sequences(self, ledger):
        """Invariants hold after every legal add/remove of items and payments."""
        rng = random.Random(20240315)
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT, discount="5")

        for _ in range(300):
            operation = rng.choice(["add_item", "remove_item", "add_payment", "remove_payment"])

            if operation == "add_item" and invoice.is_editable:
                ledger.add_line_item(
                    invoice,
                    make_item(
                        rng.randint(1, 20),
                        f"{rng.randint(0, 99999) / 100:.2f}",
                        str(rng.choice([0, 5, 12.5, 33.33, 100])),
                    ),
                )
            elif operation == "remove_item" and invoice.is_editable and invoice.line_items:
                ledger.remove_line_item(invoice, rng.choice(list(invoice.line_items)))
            elif operation == "add_payment" and invoice.balance_due > 0 and not invoice.is_paid:
                cents = rng.randint(1, int(invoice.balance_due * 100))
                ledger.add_payment(invoice, make_payment(D(cents) / 100))
            elif operation == "remove_payment" and invoice.payments:
                ledger.remove_payment(invoice, rng.choice(list(invoice.payments)))

            assert_invariants(invoice)
            if invoice.line_items and invoice.balance_due <= 0:
                assert invoice.status == InvoiceStatus.PAID
            elif invoice.amount_paid > 0 and invoice.balance_due > 0:
                assert invoice.status == InvoiceStatus.PARTIALLY_PAID


# ============================================================================
# Line items
# ============================================================================


class TestLineItems:
    """Tests for line item validation and mutation."""

    @pytest.mark.parametrize(
        "item",
        [
            LineItem(description="", quantity=1, unit_price=D("10.00")),
            LineItem(description="   ", quantity=1, unit_price=D("10.00")),
            LineItem(description="Widget", quantity=0, unit_price=D("10.00")),
            LineItem(description="Widget", quantity=1, unit_price=D("-0.01")),
            LineItem(description="Widget", quantity=1, unit_price=D("10.00"), discount_percentage=D("150")),
        ],
    )
    def test_invalid_line_item_rejected(self, ledger, item):
        invoice = make_invoice(ledger)

        with pytest.raises(ValidationError):
            ledger.add_line_item(invoice, item)
        assert len(invoice.line_items) == 1

    def test_add_line_item_appends_and_recalculates(self, ledger):
        invoice = make_invoice(ledger)

        item = ledger.add_line_item(invoice, make_item(1, "50.00"))

        assert item.sort_order == 1
        assert item.invoice is invoice
        assert invoice.subtotal == D("250.00")
        assert invoice.total_amount == D("287.50")

    def test_remove_line_item_recalculates(self, ledger):
        first, second = make_item(2, "100.00"), make_item(1, "50.00")
        invoice = make_invoice(ledger, [first, second])

        ledger.remove_line_item(invoice, second)

        assert list(invoice.line_items) == [first]
        assert invoice.total_amount == D("230.00")

    def test_remove_foreign_line_item_rejected(self, ledger):
        invoice = make_invoice(ledger)

        with pytest.raises(ValidationError):
            ledger.remove_line_item(invoice, make_item())

    def test_replace_line_items_numbers_positions(self, ledger):
        invoice = make_invoice(ledger)

        ledger.replace_line_items(invoice, [make_item(description="A"), make_item(description="B")])

        assert [(i.description, i.sort_order) for i in invoice.line_items] == [("A", 0), ("B", 1)]

    def test_replace_with_invalid_item_leaves_invoice_unchanged(self, ledger):
        invoice = make_invoice(ledger)
        before = snapshot(invoice)

        with pytest.raises(ValidationError):
            ledger.replace_line_items(invoice, [make_item(), make_item(quantity=0)])

        assert snapshot(invoice) == before

    @pytest.mark.parametrize("status", [InvoiceStatus.CANCELLED])
    def test_line_items_frozen_on_terminal_invoice(self, ledger, status):
        invoice = make_invoice(ledger, status=status)

        with pytest.raises(InvalidStateError):
            ledger.add_line_item(invoice, make_item())
        with pytest.raises(InvalidStateError):
            ledger.remove_line_item(invoice, invoice.line_items[0])

    def test_line_items_frozen_on_paid_invoice(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("230.00"))

        with pytest.raises(InvalidStateError):
            ledger.add_line_item(invoice, make_item())


# ============================================================================
# Payments
# ============================================================================


class TestAddPayment:
    """Tests for recording payments."""

    def test_full_payment_marks_paid(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        ledger.add_payment(invoice, make_payment("230.00"))

        assert invoice.amount_paid == D("230.00")
        assert invoice.balance_due == D("0.00")
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_at == datetime(2024, 3, 15, 9, 30, 0)

    def test_partial_payment_marks_partially_paid(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        ledger.add_payment(invoice, make_payment("100.00"))

        assert invoice.balance_due == D("130.00")
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.paid_at is None

    def test_payments_accumulate_to_paid(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        ledger.add_payment(invoice, make_payment("100.00"))
        ledger.add_payment(invoice, make_payment("130.00", PaymentMethod.CASH))

        assert invoice.status == InvoiceStatus.PAID
        assert invoice.balance_due == D("0.00")

    def test_payment_on_pending_invoice_allowed(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.PENDING)

        ledger.add_payment(invoice, make_payment("30.00"))

        assert invoice.status == InvoiceStatus.PARTIALLY_PAID

    def test_overpayment_rejected(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        with pytest.raises(ValidationError) as exc_info:
            ledger.add_payment(invoice, make_payment("300.00"))

        assert "exceeds remaining balance" in exc_info.value.message
        assert invoice.payments == []
        assert invoice.balance_due == D("230.00")

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_non_positive_amount_rejected(self, ledger, amount):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        with pytest.raises(ValidationError):
            ledger.add_payment(invoice, make_payment(amount))

    def test_draft_invoice_must_be_sent_first(self, ledger):
        invoice = make_invoice(ledger)

        with pytest.raises(InvalidStateError) as exc_info:
            ledger.add_payment(invoice, make_payment("10.00"))

        assert "Send the invoice first" in exc_info.value.message

    def test_paid_invoice_rejects_payment(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("230.00"))

        with pytest.raises(InvalidStateError):
            ledger.add_payment(invoice, make_payment("1.00"))

    def test_cancelled_invoice_rejects_payment(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.CANCELLED)

        with pytest.raises(InvalidStateError):
            ledger.add_payment(invoice, make_payment("1.00"))

    def test_refunded_invoice_rejects_payment(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.transition_status(invoice, InvoiceStatus.REFUNDED)

        with pytest.raises(InvalidStateError):
            ledger.add_payment(invoice, make_payment("1.00"))

    def test_paid_at_set_only_once(self):
        invoice = make_invoice(InvoiceLedger(clock=lambda: datetime(2024, 3, 15)), status=InvoiceStatus.SENT)
        InvoiceLedger(clock=lambda: datetime(2024, 3, 15)).add_payment(invoice, make_payment("230.00"))

        later = InvoiceLedger(clock=lambda: datetime(2024, 6, 1))
        later.recalculate_totals(invoice)
        later.recalculate_payments(invoice)

        assert invoice.paid_at == datetime(2024, 3, 15)


class TestUpdateAndRemovePayment:
    """Tests for editing and deleting payments, including status demotion."""

    def test_update_checks_balance_as_if_payment_removed(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("100.00"))

        ledger.update_payment(invoice, payment, D("230.00"), date(2024, 3, 12), PaymentMethod.CASH, "REF-1")

        assert payment.amount == D("230.00")
        assert payment.payment_date == date(2024, 3, 12)
        assert payment.payment_method == PaymentMethod.CASH
        assert payment.reference_number == "REF-1"
        assert invoice.status == InvoiceStatus.PAID

    def test_update_beyond_available_balance_rejected(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("100.00"))

        with pytest.raises(ValidationError):
            ledger.update_payment(invoice, payment, D("230.01"), date(2024, 3, 12))

        assert payment.amount == D("100.00")

    def test_update_keeps_method_when_not_given(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("100.00", PaymentMethod.SNAPSCAN))

        ledger.update_payment(invoice, payment, D("50.00"), date(2024, 3, 12))

        assert payment.payment_method == PaymentMethod.SNAPSCAN
        assert invoice.balance_due == D("180.00")

    def test_reducing_payment_demotes_paid(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("230.00"))

        ledger.update_payment(invoice, payment, D("200.00"), date(2024, 3, 10))

        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.paid_at is None

    def test_removing_only_payment_returns_to_sent(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("230.00"))

        ledger.remove_payment(invoice, payment)

        assert invoice.status == InvoiceStatus.SENT
        assert invoice.amount_paid == D("0.00")
        assert invoice.balance_due == D("230.00")
        assert invoice.paid_at is None

    def test_removing_one_of_two_payments_demotes_to_partially_paid(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("100.00"))
        second = ledger.add_payment(invoice, make_payment("130.00"))

        ledger.remove_payment(invoice, second)

        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.balance_due == D("130.00")

    def test_payment_of_other_invoice_rejected(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        with pytest.raises(ValidationError):
            ledger.remove_payment(invoice, make_payment("10.00"))


class TestReconcilePayment:
    """Tests for reconciliation freezing a payment."""

    def test_reconcile_sets_flag_and_timestamp(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("100.00"))

        ledger.reconcile_payment(payment)

        assert payment.is_reconciled is True
        assert payment.reconciled_at == datetime(2024, 3, 15, 9, 30, 0)

    def test_reconciled_payment_cannot_be_removed(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("100.00"))
        ledger.reconcile_payment(payment)

        with pytest.raises(InvalidStateError):
            ledger.remove_payment(invoice, payment)

        assert payment in invoice.payments
        assert invoice.amount_paid == D("100.00")

    def test_reconciled_payment_cannot_be_updated(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("100.00"))
        ledger.reconcile_payment(payment)

        with pytest.raises(InvalidStateError):
            ledger.update_payment(invoice, payment, D("50.00"), date(2024, 3, 10))

        assert payment.amount == D("100.00")

    def test_reconcile_twice_rejected(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        payment = ledger.add_payment(invoice, make_payment("100.00"))
        ledger.reconcile_payment(payment)

        with pytest.raises(InvalidStateError):
            ledger.reconcile_payment(payment)

    def test_reconciled_payments_count_towards_balance(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.reconcile_payment(ledger.add_payment(invoice, make_payment("100.00")))
        ledger.add_payment(invoice, make_payment("130.00"))

        assert invoice.status == InvoiceStatus.PAID


# ============================================================================
# Status transitions
# ============================================================================


class TestTransitions:
    """Tests for the explicit status state machine."""

    def test_send_from_draft_sets_sent_at(self, ledger):
        invoice = make_invoice(ledger)

        ledger.send(invoice)

        assert invoice.status == InvoiceStatus.SENT
        assert invoice.sent_at == datetime(2024, 3, 15, 9, 30, 0)

    def test_send_from_pending(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.PENDING)

        ledger.send(invoice)

        assert invoice.status == InvoiceStatus.SENT

    def test_send_without_line_items_rejected(self, ledger):
        invoice = make_invoice(ledger, [])

        with pytest.raises(ValidationError):
            ledger.send(invoice)
        assert invoice.status == InvoiceStatus.DRAFT

    def test_send_twice_rejected(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        with pytest.raises(InvalidStateTransitionError):
            ledger.send(invoice)

    def test_sending_zero_total_invoice_settles_it(self, ledger):
        invoice = make_invoice(ledger, [make_item(1, "0.00")])

        ledger.send(invoice)

        assert invoice.status == InvoiceStatus.PAID

    def test_empty_pending_invoice_is_not_paid(self, ledger):
        invoice = make_invoice(ledger, [], status=InvoiceStatus.PENDING)

        ledger.recalculate_totals(invoice)

        assert invoice.status == InvoiceStatus.PENDING

    @pytest.mark.parametrize(
        "target",
        [InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE],
    )
    def test_payment_driven_and_derived_states_cannot_be_requested(self, ledger, target):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        with pytest.raises(InvalidStateTransitionError):
            ledger.transition_status(invoice, target)

    @pytest.mark.parametrize(
        "target",
        [InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED],
    )
    def test_paid_invoice_is_terminal(self, ledger, target):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("230.00"))

        with pytest.raises(InvalidStateTransitionError):
            ledger.transition_status(invoice, target)
        assert invoice.status == InvoiceStatus.PAID

    @pytest.mark.parametrize("target", [InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.CANCELLED])
    def test_cancelled_invoice_is_terminal(self, ledger, target):
        invoice = make_invoice(ledger, status=InvoiceStatus.CANCELLED)

        with pytest.raises(InvalidStateTransitionError):
            ledger.transition_status(invoice, target)

    def test_cancel_from_draft(self, ledger):
        invoice = make_invoice(ledger)

        ledger.cancel(invoice)

        assert invoice.status == InvoiceStatus.CANCELLED

    def test_cancel_partially_paid_invoice(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("100.00"))

        ledger.cancel(invoice)

        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.amount_paid == D("100.00")

    def test_cancel_paid_invoice_rejected(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("230.00"))

        with pytest.raises(InvalidStateTransitionError):
            ledger.cancel(invoice)

    def test_refund_partially_paid_invoice(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("100.00"))

        ledger.transition_status(invoice, InvoiceStatus.REFUNDED)

        assert invoice.status == InvoiceStatus.REFUNDED

    def test_revert_sent_invoice_to_draft(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)

        ledger.transition_status(invoice, InvoiceStatus.DRAFT)

        assert invoice.status == InvoiceStatus.DRAFT

    def test_revert_to_draft_with_payments_rejected(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT)
        ledger.add_payment(invoice, make_payment("100.00"))

        assert ledger.can_transition(invoice, InvoiceStatus.DRAFT) is False
        with pytest.raises(InvalidStateTransitionError):
            ledger.transition_status(invoice, InvoiceStatus.DRAFT)

    def test_transition_error_is_invalid_state(self, ledger):
        invoice = make_invoice(ledger, status=InvoiceStatus.CANCELLED)

        with pytest.raises(InvalidStateError) as exc_info:
            ledger.transition_status(invoice, InvoiceStatus.SENT)

        assert exc_info.value.status_code == 409
        assert exc_info.value.context["current_status"] == "cancelled"
        assert exc_info.value.context["requested_status"] == "sent"


class TestOverdue:
    """Tests for the derived overdue view."""

    def test_past_due_open_invoice_is_overdue(self, ledger, today):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT, due_date=today - timedelta(days=1))

        assert ledger.is_overdue(invoice, today) is True
        assert ledger.effective_status(invoice, today) == InvoiceStatus.OVERDUE
        # Never persisted
        assert invoice.status == InvoiceStatus.SENT

    def test_due_today_is_not_overdue(self, ledger, today):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT, due_date=today)

        assert ledger.is_overdue(invoice, today) is False

    def test_is_overdue_defaults_to_ledger_clock(self, ledger, today):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT, due_date=today - timedelta(days=1))

        assert ledger.is_overdue(invoice) is True

    @pytest.mark.parametrize("status", [InvoiceStatus.CANCELLED])
    def test_terminal_invoice_is_never_overdue(self, ledger, today, status):
        invoice = make_invoice(ledger, status=status, due_date=today - timedelta(days=60))

        assert ledger.is_overdue(invoice, today) is False
        assert ledger.effective_status(invoice, today) == status

    def test_overdue_does_not_block_payment_or_cancel(self, ledger, today):
        invoice = make_invoice(ledger, status=InvoiceStatus.SENT, due_date=today - timedelta(days=10))

        ledger.add_payment(invoice, make_payment("100.00"))
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID

        ledger.cancel(invoice)
        assert invoice.status == InvoiceStatus.CANCELLED

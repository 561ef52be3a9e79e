"""
Invoice ledger: the monetary engine and status state machine.

WHAT: Pure, synchronous operations on one invoice aggregate (invoice header,
line items, payments). Computes the derived amounts and enforces which
status changes are legal.

WHY: Every path that changes an invoice (HTTP handlers, services, tests)
must agree on how totals are rounded and when an invoice counts as paid.
Keeping the rules in one place makes illegal transitions a single enforced
choke point instead of guard checks scattered across services.

HOW:
- All money is decimal.Decimal quantized to 2 places with ROUND_HALF_UP
- Percentage divisions are rounded before they feed a later sum
- The ledger never touches the database; callers load the aggregate under
  a row lock, call the ledger, then flush
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, FrozenSet, Iterable, Optional

from invoicing.core.exceptions import (
    InvalidStateError,
    InvalidStateTransitionError,
    ValidationError,
)
from invoicing.models.base import ZERO
from invoicing.models.invoice import (
    Invoice,
    InvoiceStatus,
    LineItem,
    TERMINAL_STATUSES,
)
from invoicing.models.payment import Payment, PaymentMethod


logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """
    Convert a numeric value to Decimal without float artefacts.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not
    Decimal("0.1000000000000000055511151231257827...").
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value) -> Decimal:
    """Quantize to cents, rounding half up (accounting rounding)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_invoice_number(prefix: str, year: int, sequence: int) -> str:
    """
    Format an invoice number.

    Example:
        >>> format_invoice_number("INV", 2024, 7)
        'INV-2024-00007'
    """
    return f"{prefix}-{year:04d}-{sequence:05d}"


def parse_invoice_sequence(number: str, prefix: str, year: int) -> Optional[int]:
    """
    Extract the sequence part of an invoice number.

    Args:
        number: Invoice number such as "INV-2024-00007"
        prefix: Expected prefix
        year: Expected year

    Returns:
        The sequence (7 for the example), or None when the number does not
        belong to the given prefix and year.
    """
    pattern = rf"{re.escape(prefix)}-{year:04d}-(\d+)"
    match = re.fullmatch(pattern, number or "")
    if not match:
        return None
    return int(match.group(1))


# Explicitly requestable transitions. PAID and PARTIALLY_PAID never appear as
# targets: they are reached only through payment recalculation.
ALLOWED_TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset(
        {InvoiceStatus.PENDING, InvoiceStatus.SENT, InvoiceStatus.CANCELLED}
    ),
    InvoiceStatus.PENDING: frozenset(
        {InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.CANCELLED}
    ),
    InvoiceStatus.SENT: frozenset(
        {
            InvoiceStatus.DRAFT,
            InvoiceStatus.PENDING,
            InvoiceStatus.CANCELLED,
            InvoiceStatus.REFUNDED,
        }
    ),
    InvoiceStatus.PARTIALLY_PAID: frozenset(
        {InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED}
    ),
    # Legacy rows only; OVERDUE is never written by this code
    InvoiceStatus.OVERDUE: frozenset(
        {
            InvoiceStatus.DRAFT,
            InvoiceStatus.PENDING,
            InvoiceStatus.CANCELLED,
            InvoiceStatus.REFUNDED,
        }
    ),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
    InvoiceStatus.REFUNDED: frozenset(),
}

# Statuses whose value follows the payment balance
PAYMENT_DRIVEN_STATUSES = frozenset(
    {
        InvoiceStatus.PENDING,
        InvoiceStatus.SENT,
        InvoiceStatus.OVERDUE,
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.PAID,
    }
)

_UNSENT_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.PENDING})


class InvoiceLedger:
    """
    Monetary engine for one invoice aggregate.

    WHAT: Recalculates totals and balances, validates line items and
    payments, and applies status transitions.

    WHY: A single object owning the rules keeps the arithmetic identical
    across every caller and gives tests one seam (the clock) to control.

    HOW: Stateless apart from the injectable clock used for sent_at,
    paid_at and reconciled_at timestamps.

    Example:
        ledger = InvoiceLedger()
        ledger.add_line_item(invoice, LineItem(description="Consulting", quantity=2, unit_price=Decimal("100.00")))
        ledger.send(invoice)
        ledger.add_payment(invoice, Payment(amount=invoice.balance_due, payment_date=date.today()))
        assert invoice.status == InvoiceStatus.PAID
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.utcnow

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def calculate_line_total(self, item: LineItem) -> Decimal:
        """
        Recompute and store the derived amounts of one line item.

        line_total = round2(unit_price * quantity * (1 - discount / 100))
        discount_amount = gross - line_total

        Returns:
            The new line total
        """
        gross = to_decimal(item.unit_price) * item.quantity
        discount = to_decimal(item.discount_percentage)
        line_total = round_money(gross * (HUNDRED - discount) / HUNDRED)
        item.line_total = line_total
        item.discount_amount = round_money(gross - line_total)
        return line_total

    def recalculate_totals(self, invoice: Invoice) -> None:
        """
        Recompute subtotal, discount, VAT and total from the line items.

        WHAT: Rebuilds every derived amount strictly from current state, then
        recalculates payments so the balance and status follow.

        WHY: Stored totals are a cache of the line items. Recomputing from
        scratch (rather than adjusting incrementally) makes the operation
        idempotent and self-healing.

        Args:
            invoice: Invoice aggregate with its line items loaded

        Raises:
            ValidationError: If the VAT rate or discount percentage is outside 0-100
        """
        vat_rate = self._validate_percentage(invoice.vat_rate, "vat_rate")
        discount_percentage = self._validate_percentage(
            invoice.discount_percentage, "discount_percentage"
        )

        subtotal = ZERO
        for item in invoice.line_items:
            subtotal += self.calculate_line_total(item)
        invoice.subtotal = round_money(subtotal)

        if discount_percentage > ZERO:
            invoice.discount_amount = round_money(invoice.subtotal * discount_percentage / HUNDRED)
        else:
            invoice.discount_amount = ZERO

        net = invoice.subtotal - invoice.discount_amount
        if vat_rate > ZERO:
            invoice.vat_amount = round_money(net * vat_rate / HUNDRED)
        else:
            invoice.vat_amount = ZERO

        invoice.total_amount = round_money(net + invoice.vat_amount)

        self.recalculate_payments(invoice)

    def recalculate_payments(self, invoice: Invoice) -> None:
        """
        Recompute amount_paid and balance_due and apply payment-driven status.

        Status rules (only for invoices that have left draft and are not
        cancelled or refunded):
        - balance_due <= 0: PAID, paid_at set on the first transition only
          (an invoice with no line items and no payments is left alone)
        - otherwise amount_paid > 0: PARTIALLY_PAID
        - otherwise a PAID or PARTIALLY_PAID invoice falls back to SENT

        Removing or reducing a payment can therefore demote PAID back to
        PARTIALLY_PAID; paid_at is cleared when that happens.
        """
        amount_paid = ZERO
        for payment in invoice.payments:
            amount_paid += to_decimal(payment.amount)
        invoice.amount_paid = round_money(amount_paid)
        invoice.balance_due = round_money(to_decimal(invoice.total_amount) - invoice.amount_paid)

        if invoice.status not in PAYMENT_DRIVEN_STATUSES:
            return

        previous = invoice.status
        # An empty invoice with nothing paid is not "settled"
        settled = invoice.balance_due <= ZERO and (
            bool(invoice.line_items) or invoice.amount_paid > ZERO
        )
        if settled:
            invoice.status = InvoiceStatus.PAID
            if invoice.paid_at is None:
                invoice.paid_at = self.now()
        elif invoice.amount_paid > ZERO:
            invoice.status = InvoiceStatus.PARTIALLY_PAID
            invoice.paid_at = None
        elif previous in (InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID):
            invoice.status = InvoiceStatus.SENT
            invoice.paid_at = None

        if invoice.status != previous:
            logger.info(
                f"Invoice {invoice.invoice_number} status {previous.value} -> "
                f"{invoice.status.value} (balance due {invoice.balance_due})"
            )

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    def validate_line_item(self, item: LineItem) -> None:
        """
        Check a line item's inputs.

        Raises:
            ValidationError: Empty description, quantity < 1, negative unit
                price, or discount outside 0-100
        """
        if not item.description or not item.description.strip():
            raise ValidationError(message="Line item description is required")
        if item.quantity is None or item.quantity < 1:
            raise ValidationError(
                message="Line item quantity must be at least 1",
                quantity=item.quantity,
            )
        if item.unit_price is None or to_decimal(item.unit_price) < ZERO:
            raise ValidationError(
                message="Line item unit price cannot be negative",
                unit_price=str(item.unit_price),
            )
        self._validate_percentage(item.discount_percentage, "discount_percentage")

    def add_line_item(self, invoice: Invoice, item: LineItem) -> LineItem:
        """
        Attach a line item and recalculate.

        Raises:
            InvalidStateError: If the invoice is paid, cancelled or refunded
            ValidationError: If the item is invalid
        """
        self._ensure_editable(invoice)
        self.validate_line_item(item)
        if item.sort_order is None:
            item.sort_order = len(invoice.line_items)
        invoice.line_items.append(item)
        self.recalculate_totals(invoice)
        return item

    def remove_line_item(self, invoice: Invoice, item: LineItem) -> None:
        """
        Detach a line item and recalculate.

        Raises:
            InvalidStateError: If the invoice is paid, cancelled or refunded
            ValidationError: If the item does not belong to the invoice
        """
        self._ensure_editable(invoice)
        if item not in invoice.line_items:
            raise ValidationError(
                message="Line item does not belong to this invoice",
                invoice_number=invoice.invoice_number,
            )
        invoice.line_items.remove(item)
        self.recalculate_totals(invoice)

    def replace_line_items(self, invoice: Invoice, items: Iterable[LineItem]) -> None:
        """
        Replace the whole line-item list, numbering sort order by position.

        All items are validated before the existing list is touched, so a
        bad item leaves the invoice unchanged.
        """
        self._ensure_editable(invoice)
        items = list(items)
        for item in items:
            self.validate_line_item(item)

        invoice.line_items.clear()
        for position, item in enumerate(items):
            item.sort_order = position
            invoice.line_items.append(item)
        self.recalculate_totals(invoice)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def add_payment(self, invoice: Invoice, payment: Payment) -> Payment:
        """
        Record a payment against an invoice.

        Args:
            invoice: Invoice receiving the payment
            payment: New payment (amount > 0)

        Returns:
            The attached payment

        Raises:
            InvalidStateError: Invoice is paid, cancelled, refunded or still a draft
            ValidationError: Amount is not positive or exceeds the balance due
        """
        if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED):
            raise InvalidStateError(
                message=f"Cannot record payment for a {invoice.status.value} invoice",
                invoice_number=invoice.invoice_number,
                status=invoice.status.value,
            )
        if invoice.status == InvoiceStatus.DRAFT:
            raise InvalidStateError(
                message="Cannot record payment for a draft invoice. Send the invoice first.",
                invoice_number=invoice.invoice_number,
                status=invoice.status.value,
            )

        amount = to_decimal(payment.amount)
        self._validate_payment_amount(amount)
        balance_due = to_decimal(invoice.balance_due)
        if amount > balance_due:
            raise ValidationError(
                message=(
                    f"Payment amount ({round_money(amount)}) exceeds remaining balance "
                    f"({balance_due})"
                ),
                amount=str(amount),
                balance_due=str(balance_due),
            )

        payment.amount = round_money(amount)
        invoice.payments.append(payment)
        self.recalculate_payments(invoice)
        return payment

    def update_payment(
        self,
        invoice: Invoice,
        payment: Payment,
        amount,
        payment_date: date,
        payment_method: Optional[PaymentMethod] = None,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """
        Change an unreconciled payment.

        The new amount is checked against the balance as if this payment had
        been removed first: amount <= balance_due + payment.amount.

        Raises:
            InvalidStateError: The payment is reconciled
            ValidationError: The payment is not on this invoice, or the amount
                is not positive or exceeds the available balance
        """
        self._ensure_payment_on_invoice(invoice, payment)
        if payment.is_reconciled:
            raise InvalidStateError(
                message="Cannot update a reconciled payment",
                payment_id=payment.id,
            )

        new_amount = to_decimal(amount)
        self._validate_payment_amount(new_amount)
        available = to_decimal(invoice.balance_due) + to_decimal(payment.amount)
        if new_amount > available:
            raise ValidationError(
                message=(
                    f"Payment amount ({round_money(new_amount)}) exceeds remaining balance "
                    f"({round_money(available)})"
                ),
                amount=str(new_amount),
                balance_due=str(available),
            )

        payment.amount = round_money(new_amount)
        payment.payment_date = payment_date
        if payment_method is not None:
            payment.payment_method = payment_method
        payment.reference_number = reference_number
        payment.notes = notes
        self.recalculate_payments(invoice)
        return payment

    def remove_payment(self, invoice: Invoice, payment: Payment) -> None:
        """
        Remove an unreconciled payment and recalculate the balance.

        Raises:
            InvalidStateError: The payment is reconciled
            ValidationError: The payment is not on this invoice
        """
        self._ensure_payment_on_invoice(invoice, payment)
        if payment.is_reconciled:
            raise InvalidStateError(
                message="Cannot delete a reconciled payment",
                payment_id=payment.id,
            )
        invoice.payments.remove(payment)
        self.recalculate_payments(invoice)

    def reconcile_payment(self, payment: Payment) -> Payment:
        """
        Mark a payment as verified against the bank statement.

        Irreversible: there is no unreconcile.

        Raises:
            InvalidStateError: The payment is already reconciled
        """
        if payment.is_reconciled:
            raise InvalidStateError(
                message="Payment is already reconciled",
                payment_id=payment.id,
            )
        payment.is_reconciled = True
        payment.reconciled_at = self.now()
        return payment

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def can_transition(self, invoice: Invoice, new_status: InvoiceStatus) -> bool:
        """Whether an explicit request may move the invoice to new_status."""
        if new_status not in ALLOWED_TRANSITIONS.get(invoice.status, frozenset()):
            return False
        # Reverting to an unsent state would orphan recorded payments
        if new_status in _UNSENT_STATUSES and invoice.payments:
            return False
        return True

    def transition_status(self, invoice: Invoice, new_status: InvoiceStatus) -> Invoice:
        """
        Apply an explicitly requested status change.

        WHAT: The single choke point for explicit status changes (send,
        cancel, refund, revert to draft).

        WHY: PAID and PARTIALLY_PAID follow the balance and OVERDUE is derived
        from the due date, so none of them can be requested. Terminal states
        have no way out.

        Args:
            invoice: Invoice to change
            new_status: Requested status

        Returns:
            The invoice

        Raises:
            InvalidStateTransitionError: The transition is not allowed
            ValidationError: Sending an invoice with no line items
        """
        current = invoice.status
        if not self.can_transition(invoice, new_status):
            raise InvalidStateTransitionError(
                message=f"Cannot change invoice status from {current.value} to {new_status.value}",
                invoice_number=invoice.invoice_number,
                current_status=current.value,
                requested_status=new_status.value,
            )

        if new_status == InvoiceStatus.SENT:
            if not invoice.line_items:
                raise ValidationError(
                    message="Cannot send an invoice without line items",
                    invoice_number=invoice.invoice_number,
                )
            invoice.sent_at = self.now()

        invoice.status = new_status
        logger.info(f"Invoice {invoice.invoice_number} status {current.value} -> {new_status.value}")

        # A sent invoice may already be fully covered (e.g. zero total)
        self.recalculate_payments(invoice)
        return invoice

    def send(self, invoice: Invoice) -> Invoice:
        """Send a draft or pending invoice."""
        if invoice.status not in _UNSENT_STATUSES:
            raise InvalidStateTransitionError(
                message="Only draft or pending invoices can be sent",
                invoice_number=invoice.invoice_number,
                current_status=invoice.status.value,
                requested_status=InvoiceStatus.SENT.value,
            )
        return self.transition_status(invoice, InvoiceStatus.SENT)

    def cancel(self, invoice: Invoice) -> Invoice:
        """Cancel any invoice that is not paid, cancelled or refunded."""
        return self.transition_status(invoice, InvoiceStatus.CANCELLED)

    def is_overdue(self, invoice: Invoice, today: Optional[date] = None) -> bool:
        """Past due date and not paid, cancelled or refunded."""
        return invoice.is_overdue_on(today or self.now().date())

    def effective_status(self, invoice: Invoice, today: Optional[date] = None) -> InvoiceStatus:
        """
        Status as presented to callers: OVERDUE when overdue, else the stored status.

        Being overdue never blocks payments or cancellation; those checks use
        the stored status.
        """
        if self.is_overdue(invoice, today):
            return InvoiceStatus.OVERDUE
        return invoice.status

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_editable(self, invoice: Invoice) -> None:
        if invoice.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                message=f"Cannot modify line items of a {invoice.status.value} invoice",
                invoice_number=invoice.invoice_number,
                status=invoice.status.value,
            )

    def _ensure_payment_on_invoice(self, invoice: Invoice, payment: Payment) -> None:
        if payment not in invoice.payments:
            raise ValidationError(
                message="Payment does not belong to this invoice",
                invoice_number=invoice.invoice_number,
                payment_id=payment.id,
            )

    @staticmethod
    def _validate_payment_amount(amount: Decimal) -> None:
        if amount <= ZERO:
            raise ValidationError(
                message="Payment amount must be greater than zero",
                amount=str(amount),
            )

    @staticmethod
    def _validate_percentage(value, field: str) -> Decimal:
        percentage = to_decimal(value)
        if percentage < ZERO or percentage > HUNDRED:
            raise ValidationError(
                message=f"{field} must be between 0 and 100",
                field=field,
                value=str(percentage),
            )
        return percentage

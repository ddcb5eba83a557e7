# Overview: Service-layer operations for loan invoices (repairs on credit) and their payments.

"""
Loan Invoices

Balance invariants:
- paid_cents + remaining_cents == total_cents
- a payment must be > 0 and <= remaining_cents
- status becomes paid when remaining reaches 0, partial otherwise

Overdue is derived, not stored: listings report an unpaid invoice past its
due date as overdue.
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Customer, Device, LoanInvoice, LoanInvoicePayment
from ..models.finance import LOAN_INVOICE_STATUSES
from ..models.sales import PAYMENT_METHODS
from ..validation import ConflictError, MAX_AMOUNT_CENTS, NotFoundError, ValidationError
from solnet.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .location_service import ensure_in_scope, scope_query


INVOICE_MUTABLE_FIELDS = {
    "device_description",
    "service_description",
    "due_date",
    "notes",
}


def today() -> date:
    return utcnow().date()


def get_invoice(invoice_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> LoanInvoice:
    invoice = db.session.get(LoanInvoice, invoice_id)
    if not invoice:
        raise NotFoundError("Loan invoice not found")
    ensure_in_scope(invoice.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return invoice


def list_invoices(
    *,
    location_id: int | None,
    is_admin: bool,
    status: str | None = None,
    customer_id: int | None = None,
) -> list[LoanInvoice]:
    query = scope_query(db.session.query(LoanInvoice), LoanInvoice.location_id, location_id, is_admin=is_admin)
    if customer_id is not None:
        query = query.filter(LoanInvoice.customer_id == customer_id)

    invoices = query.order_by(LoanInvoice.due_date.asc(), LoanInvoice.id.asc()).all()
    if status:
        if status not in LOAN_INVOICE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(LOAN_INVOICE_STATUSES)}")
        current = today()
        invoices = [i for i in invoices if i.effective_status(current) == status]
    return invoices


def outstanding_balance_cents(*, location_id: int | None, is_admin: bool) -> int:
    query = scope_query(
        db.session.query(db.func.coalesce(db.func.sum(LoanInvoice.remaining_cents), 0)),
        LoanInvoice.location_id,
        location_id,
        is_admin=is_admin,
    )
    return int(query.filter(LoanInvoice.remaining_cents > 0).scalar() or 0)


def create_invoice(patch: dict, *, user_id: int | None, default_location_id: int | None = None) -> LoanInvoice:
    customer = db.session.get(Customer, patch["customer_id"])
    if not customer:
        raise NotFoundError("Customer not found")
    if patch.get("device_id") is not None and not db.session.get(Device, patch["device_id"]):
        raise NotFoundError("Device not found")

    total = patch["total_cents"]
    if total <= 0 or total > MAX_AMOUNT_CENTS:
        raise ValidationError("total_cents must be > 0")

    invoice = LoanInvoice(
        customer_id=customer.id,
        device_id=patch.get("device_id"),
        location_id=patch.get("location_id", default_location_id),
        created_by_user_id=user_id,
        device_description=patch["device_description"],
        service_description=patch.get("service_description"),
        total_cents=total,
        paid_cents=0,
        remaining_cents=total,
        due_date=patch["due_date"],
        status="pending",
        notes=patch.get("notes"),
    )
    db.session.add(invoice)
    db.session.commit()
    return invoice


def update_invoice(invoice: LoanInvoice, patch: dict) -> LoanInvoice:
    for key, value in patch.items():
        if key in INVOICE_MUTABLE_FIELDS:
            setattr(invoice, key, value)
    db.session.commit()
    return invoice


def record_payment(
    invoice_id: int,
    *,
    amount_cents,
    payment_method: str = "cash",
    notes: str | None = None,
    user_id: int | None = None,
) -> tuple[LoanInvoice, LoanInvoicePayment]:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount_cents must be an integer")
    if amount_cents <= 0:
        raise ValidationError("amount_cents must be > 0")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    def _op():
        invoice = lock_for_update(db.session.query(LoanInvoice).filter_by(id=invoice_id)).first()
        if not invoice:
            raise NotFoundError("Loan invoice not found")
        if invoice.remaining_cents <= 0:
            raise ConflictError("Invoice is already paid")
        if amount_cents > invoice.remaining_cents:
            raise ValidationError(
                f"Payment exceeds remaining balance ({invoice.remaining_cents} cents)"
            )

        payment = LoanInvoicePayment(
            loan_invoice_id=invoice.id,
            amount_cents=amount_cents,
            payment_method=payment_method,
            notes=notes,
            recorded_by_user_id=user_id,
        )
        invoice.paid_cents += amount_cents
        invoice.remaining_cents = invoice.total_cents - invoice.paid_cents
        invoice.status = "paid" if invoice.remaining_cents == 0 else "partial"

        db.session.add(payment)
        db.session.commit()
        return invoice, payment

    try:
        return run_with_retry(_op)
    except ValueError:
        db.session.rollback()
        raise


def list_payments(invoice: LoanInvoice) -> list[LoanInvoicePayment]:
    return (
        db.session.query(LoanInvoicePayment)
        .filter(LoanInvoicePayment.loan_invoice_id == invoice.id)
        .order_by(LoanInvoicePayment.payment_date.desc(), LoanInvoicePayment.id.desc())
        .all()
    )

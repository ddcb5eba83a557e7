from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z, to_iso_date


BUDGET_PERIODS = ("monthly", "quarterly", "yearly")

LOAN_INVOICE_STATUSES = ("pending", "partial", "paid", "overdue")


class ExpenseCategory(db.Model):
    __tablename__ = "expense_categories"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    color = db.Column(db.String(16), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """
    Business expense.

    category is free text so historical rows survive category renames;
    the category list only feeds the form dropdown.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_date", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    category = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    vendor = db.Column(db.String(255), nullable=True)
    receipt_reference = db.Column(db.String(128), nullable=True)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurring_period = db.Column(db.String(16), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "created_by_user_id": self.created_by_user_id,
            "category": self.category,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "expense_date": to_iso_date(self.expense_date),
            "vendor": self.vendor,
            "receipt_reference": self.receipt_reference,
            "is_recurring": self.is_recurring,
            "recurring_period": self.recurring_period,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Budget(db.Model):
    __tablename__ = "budgets"
    __table_args__ = (
        db.UniqueConstraint("category", "year", "month", name="uq_budgets_category_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(128), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=True)  # NULL for quarterly/yearly budgets
    amount_cents = db.Column(db.Integer, nullable=False)
    period = db.Column(db.String(16), nullable=False, default="monthly")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "year": self.year,
            "month": self.month,
            "amount_cents": self.amount_cents,
            "period": self.period,
            "created_at": to_utc_z(self.created_at),
        }


class LoanInvoice(db.Model):
    """
    Repair work delivered on credit.

    paid_cents + remaining_cents == total_cents at all times; payments are
    recorded as LoanInvoicePayment rows.
    """
    __tablename__ = "loan_invoices"
    __table_args__ = (
        db.Index("ix_loan_invoices_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    device_description = db.Column(db.String(255), nullable=False)
    service_description = db.Column(db.Text, nullable=True)
    total_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_cents = db.Column(db.Integer, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("loan_invoices", lazy=True))
    payments = db.relationship(
        "LoanInvoicePayment",
        backref="invoice",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="LoanInvoicePayment.id",
    )

    def effective_status(self, today) -> str:
        if self.remaining_cents > 0 and self.due_date and self.due_date < today:
            return "overdue"
        return self.status

    def to_dict(self, today=None) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "device_id": self.device_id,
            "location_id": self.location_id,
            "created_by_user_id": self.created_by_user_id,
            "device_description": self.device_description,
            "service_description": self.service_description,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "remaining_cents": self.remaining_cents,
            "due_date": to_iso_date(self.due_date),
            "status": self.effective_status(today) if today else self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LoanInvoicePayment(db.Model):
    __tablename__ = "loan_invoice_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_loan_invoice_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    loan_invoice_id = db.Column(db.Integer, db.ForeignKey("loan_invoices.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    notes = db.Column(db.Text, nullable=True)
    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "loan_invoice_id": self.loan_invoice_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "recorded_by_user_id": self.recorded_by_user_id,
            "payment_date": to_utc_z(self.payment_date),
        }

# Overview: Service-layer operations for expenses, expense categories and budgets.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Budget, Expense, ExpenseCategory
from ..models.finance import BUDGET_PERIODS
from ..validation import ConflictError, NotFoundError, ValidationError
from .location_service import ensure_in_scope, scope_query


DEFAULT_EXPENSE_CATEGORIES = (
    ("Rent", "Shop rent and service charges"),
    ("Utilities", "Electricity, water and internet"),
    ("Salaries", "Worker wages"),
    ("Parts", "Spare parts bought for repairs"),
    ("Tools", "Repair tools and equipment"),
    ("Marketing", "Advertising and SMS credit"),
    ("Transport", "Deliveries and travel"),
    ("Other", None),
)

EXPENSE_MUTABLE_FIELDS = {
    "category",
    "description",
    "amount_cents",
    "expense_date",
    "vendor",
    "receipt_reference",
    "is_recurring",
    "recurring_period",
    "notes",
    "location_id",
}


# =============================================================================
# Categories
# =============================================================================

def seed_expense_categories() -> int:
    existing = {name for (name,) in db.session.query(ExpenseCategory.name).all()}
    created = 0
    for name, description in DEFAULT_EXPENSE_CATEGORIES:
        if name not in existing:
            db.session.add(ExpenseCategory(name=name, description=description))
            created += 1
    db.session.commit()
    return created


def list_categories(include_inactive: bool = False) -> list[ExpenseCategory]:
    query = db.session.query(ExpenseCategory)
    if not include_inactive:
        query = query.filter(ExpenseCategory.is_active.is_(True))
    return query.order_by(ExpenseCategory.name.asc()).all()


def get_category(category_id: int) -> ExpenseCategory:
    category = db.session.get(ExpenseCategory, category_id)
    if not category:
        raise NotFoundError("Expense category not found")
    return category


def _ensure_unique_category(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(ExpenseCategory).filter(db.func.lower(ExpenseCategory.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(ExpenseCategory.id != exclude_id)
    if query.first():
        raise ConflictError("Expense category already exists")


def create_category(patch: dict) -> ExpenseCategory:
    patch["name"] = patch["name"].strip()
    _ensure_unique_category(patch["name"])
    category = ExpenseCategory(**patch)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category: ExpenseCategory, patch: dict) -> ExpenseCategory:
    if "name" in patch:
        patch["name"] = patch["name"].strip()
        _ensure_unique_category(patch["name"], exclude_id=category.id)
    for key, value in patch.items():
        setattr(category, key, value)
    db.session.commit()
    return category


def delete_category(category: ExpenseCategory) -> ExpenseCategory:
    """Expenses store the category name, so only deactivate."""
    category.is_active = False
    db.session.commit()
    return category


# =============================================================================
# Expenses
# =============================================================================

def get_expense(expense_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    ensure_in_scope(expense.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return expense


def _expenses_query(*, location_id: int | None, is_admin: bool, category: str | None = None,
                    date_from: date | None = None, date_to: date | None = None):
    query = scope_query(db.session.query(Expense), Expense.location_id, location_id, is_admin=is_admin)
    if category:
        query = query.filter(Expense.category == category)
    if date_from:
        query = query.filter(Expense.expense_date >= date_from)
    if date_to:
        query = query.filter(Expense.expense_date <= date_to)
    return query


def list_expenses(**filters) -> list[Expense]:
    return (
        _expenses_query(**filters)
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
        .all()
    )


def create_expense(patch: dict, *, user_id: int | None, default_location_id: int | None = None) -> Expense:
    if patch.get("amount_cents") is not None and patch["amount_cents"] <= 0:
        raise ValidationError("amount_cents must be > 0")

    expense = Expense()
    for key, value in patch.items():
        if key in EXPENSE_MUTABLE_FIELDS:
            setattr(expense, key, value)
    if expense.location_id is None:
        expense.location_id = default_location_id
    expense.created_by_user_id = user_id

    db.session.add(expense)
    db.session.commit()
    return expense


def update_expense(expense: Expense, patch: dict) -> Expense:
    if "amount_cents" in patch and (patch["amount_cents"] is None or patch["amount_cents"] <= 0):
        raise ValidationError("amount_cents must be > 0")
    for key, value in patch.items():
        if key in EXPENSE_MUTABLE_FIELDS:
            setattr(expense, key, value)
    db.session.commit()
    return expense


def delete_expense(expense: Expense) -> None:
    db.session.delete(expense)
    db.session.commit()


def expense_stats(**filters) -> dict:
    """
    Totals for the filtered expenses.

    by_month keys are "YYYY-MM", sorted; by_category is sorted by total desc.
    """
    expenses = _expenses_query(**filters).all()

    by_month: dict[str, int] = {}
    by_category: dict[str, int] = {}
    for expense in expenses:
        month = expense.expense_date.strftime("%Y-%m")
        by_month[month] = by_month.get(month, 0) + expense.amount_cents
        by_category[expense.category] = by_category.get(expense.category, 0) + expense.amount_cents

    return {
        "total_cents": sum(by_month.values()),
        "count": len(expenses),
        "by_month": [{"month": m, "total_cents": by_month[m]} for m in sorted(by_month)],
        "by_category": [
            {"category": c, "total_cents": t}
            for c, t in sorted(by_category.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
    }


# =============================================================================
# Budgets
# =============================================================================

def list_budgets(year: int | None = None) -> list[Budget]:
    query = db.session.query(Budget)
    if year is not None:
        query = query.filter(Budget.year == year)
    return query.order_by(Budget.year.desc(), Budget.month.asc(), Budget.category.asc()).all()


def get_budget(budget_id: int) -> Budget:
    budget = db.session.get(Budget, budget_id)
    if not budget:
        raise NotFoundError("Budget not found")
    return budget


def _check_budget(patch: dict) -> None:
    if "period" in patch and patch["period"] not in BUDGET_PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(BUDGET_PERIODS)}")
    month = patch.get("month")
    if month is not None and not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if "amount_cents" in patch and (patch["amount_cents"] is None or patch["amount_cents"] < 0):
        raise ValidationError("amount_cents must be >= 0")


def _ensure_unique_budget(category: str, year: int, month: int | None, exclude_id: int | None = None) -> None:
    query = db.session.query(Budget).filter(Budget.category == category, Budget.year == year)
    query = query.filter(Budget.month.is_(None)) if month is None else query.filter(Budget.month == month)
    if exclude_id is not None:
        query = query.filter(Budget.id != exclude_id)
    if query.first():
        raise ConflictError("A budget for this category and period already exists")


def create_budget(patch: dict) -> Budget:
    _check_budget(patch)
    _ensure_unique_budget(patch["category"], patch["year"], patch.get("month"))
    budget = Budget(**patch)
    db.session.add(budget)
    db.session.commit()
    return budget


def update_budget(budget: Budget, patch: dict) -> Budget:
    _check_budget(patch)
    _ensure_unique_budget(
        patch.get("category", budget.category),
        patch.get("year", budget.year),
        patch.get("month", budget.month),
        exclude_id=budget.id,
    )
    for key, value in patch.items():
        setattr(budget, key, value)
    db.session.commit()
    return budget


def delete_budget(budget: Budget) -> None:
    db.session.delete(budget)
    db.session.commit()

# Overview: Flask API routes for expenses, expense categories and budgets.

"""
Finance routes

- /api/expenses            CRUD + /stats (location-scoped)
- /api/expense-categories  CRUD, DELETE deactivates
- /api/budgets             CRUD, one per (category, year, month)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..models import Budget, Expense, ExpenseCategory
from ..services import expense_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_amounts, error_response
from solnet.time_utils import parse_date


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields=set(expense_service.EXPENSE_MUTABLE_FIELDS),
    required_on_create={"category", "description", "amount_cents", "expense_date"},
)

EXPENSE_CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "color", "is_active"},
    required_on_create={"name"},
)

BUDGET_POLICY = ModelValidationPolicy(
    writable_fields={"category", "year", "month", "amount_cents", "period"},
    required_on_create={"category", "year", "amount_cents"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")
expense_categories_bp = Blueprint("expense_categories", __name__, url_prefix="/api/expense-categories")
budgets_bp = Blueprint("budgets", __name__, url_prefix="/api/budgets")


def _expense_filters() -> dict:
    return {
        **list_scope(),
        "category": request.args.get("category") or None,
        "date_from": parse_date(request.args.get("date_from")),
        "date_to": parse_date(request.args.get("date_to")),
    }


# =============================================================================
# EXPENSES
# =============================================================================

@expenses_bp.get("")
@require_auth
@require_permission("VIEW_FINANCE")
def list_expenses_route():
    """Query params: category, date_from, date_to (YYYY-MM-DD, inclusive)."""
    try:
        expenses = expense_service.list_expenses(**_expense_filters())
    except ValueError as e:
        return error_response(e)
    return jsonify({"items": [x.to_dict() for x in expenses], "count": len(expenses)})


@expenses_bp.get("/stats")
@require_auth
@require_permission("VIEW_FINANCE")
def expense_stats_route():
    try:
        stats = expense_service.expense_stats(**_expense_filters())
    except ValueError as e:
        return error_response(e)
    return jsonify(stats)


@expenses_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def create_expense_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_amounts(patch, "amount_cents")
        if not g.is_admin:
            patch.pop("location_id", None)
        expense = expense_service.create_expense(
            patch, user_id=g.current_user.id, default_location_id=g.location_id
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"expense": expense.to_dict()}), 201


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_permission("VIEW_FINANCE")
def get_expense_route(expense_id: int):
    try:
        expense = expense_service.get_expense(expense_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"expense": expense.to_dict()})


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        expense = expense_service.get_expense(expense_id, **record_scope())
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
        enforce_amounts(patch, "amount_cents")
        if not g.is_admin:
            patch.pop("location_id", None)
        expense = expense_service.update_expense(expense, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"expense": expense.to_dict()})


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def delete_expense_route(expense_id: int):
    try:
        expense = expense_service.get_expense(expense_id, **record_scope())
        expense_service.delete_expense(expense)
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Expense deleted"})


# =============================================================================
# EXPENSE CATEGORIES
# =============================================================================

@expense_categories_bp.get("")
@require_auth
@require_permission("VIEW_FINANCE")
def list_categories_route():
    categories = expense_service.list_categories(
        include_inactive=request.args.get("include_inactive") in {"1", "true"}
    )
    return jsonify({"items": [c.to_dict() for c in categories], "count": len(categories)})


@expense_categories_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ExpenseCategory, payload=payload, policy=EXPENSE_CATEGORY_POLICY, partial=False)
        category = expense_service.create_category(patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"category": category.to_dict()}), 201


@expense_categories_bp.put("/<int:category_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        category = expense_service.get_category(category_id)
        patch = validate_payload(model=ExpenseCategory, payload=payload, policy=EXPENSE_CATEGORY_POLICY, partial=True)
        category = expense_service.update_category(category, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"category": category.to_dict()})


@expense_categories_bp.delete("/<int:category_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def delete_category_route(category_id: int):
    try:
        category = expense_service.delete_category(expense_service.get_category(category_id))
    except ValueError as e:
        return error_response(e)
    return jsonify({"category": category.to_dict(), "message": "Category deactivated"})


# =============================================================================
# BUDGETS
# =============================================================================

@budgets_bp.get("")
@require_auth
@require_permission("VIEW_FINANCE")
def list_budgets_route():
    budgets = expense_service.list_budgets(year=request.args.get("year", type=int))
    return jsonify({"items": [b.to_dict() for b in budgets], "count": len(budgets)})


@budgets_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def create_budget_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Budget, payload=payload, policy=BUDGET_POLICY, partial=False)
        budget = expense_service.create_budget(patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"budget": budget.to_dict()}), 201


@budgets_bp.get("/<int:budget_id>")
@require_auth
@require_permission("VIEW_FINANCE")
def get_budget_route(budget_id: int):
    try:
        budget = expense_service.get_budget(budget_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"budget": budget.to_dict()})


@budgets_bp.put("/<int:budget_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def update_budget_route(budget_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        budget = expense_service.get_budget(budget_id)
        patch = validate_payload(model=Budget, payload=payload, policy=BUDGET_POLICY, partial=True)
        budget = expense_service.update_budget(budget, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"budget": budget.to_dict()})


@budgets_bp.delete("/<int:budget_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def delete_budget_route(budget_id: int):
    try:
        expense_service.delete_budget(expense_service.get_budget(budget_id))
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Budget deleted"})

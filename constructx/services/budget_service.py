"""Budget service — budgets, categories, line items and the budget summary.

Transaction policy: functions flush, the route commits.

Budget lifecycle:
    Draft ──approve──▶ Approved ──▶ Active ──▶ Closed
    Only Draft budgets may be approved or deleted.

Budget summary ("actuals"):
    Approved, non-deleted expenses linked to one of the budget's items are
    summed per item, rolled up per category, and compared with the budget
    total.
"""
import logging
from collections import defaultdict

from constructx.core.exceptions import ConflictError, NotFoundError, ValidationError
from constructx.models import db
from constructx.models.audit import field_diff, write_audit
from constructx.models.base import utcnow
from constructx.models.budget import (
    BUDGET_UPDATABLE_FIELDS,
    Budget,
    BudgetCategory,
    BudgetItem,
)
from constructx.models.expense import Expense
from constructx.services.notification import NotificationService
from constructx.utils.helpers import (
    optional_text,
    parse_amount,
    parse_date_input,
    require_text,
    validate_date_order,
)

logger = logging.getLogger(__name__)


# ── Budget ───────────────────────────────────────────────────────────────


def get_budget(budget_id):
    budget = db.session.get(Budget, budget_id)
    if not budget or budget.is_deleted:
        raise NotFoundError(resource="Budget", resource_id=budget_id)
    return budget


def list_budgets(project_id):
    return (Budget.query_active()
            .filter_by(project_id=project_id)
            .order_by(Budget.created_at.desc(), Budget.id.desc())
            .all())


def create_budget(project_id, data, actor="system"):
    """Create a Draft budget.

    Raises:
        ValueError: missing/negative total_amount or end date before start date.
    """
    total = parse_amount(data.get("total_amount"), "total_amount", required=True, minimum=0)
    start = parse_date_input(data.get("start_date"), "start_date")
    end = parse_date_input(data.get("end_date"), "end_date")
    validate_date_order(start, end)

    budget = Budget(
        project_id=project_id,
        name=optional_text(data, "name") or "Project Budget",
        description=optional_text(data, "description"),
        total_amount=total,
        start_date=start,
        end_date=end,
        created_by=actor,
    )
    db.session.add(budget)
    db.session.flush()
    write_audit(entity_type="budget", entity_id=budget.id, action="create",
                actor=actor, project_id=project_id)
    return budget


def update_budget(budget, data, actor="system"):
    """Apply whitelisted field changes; status and approval are untouchable here."""
    changes = {k: data[k] for k in BUDGET_UPDATABLE_FIELDS if k in data}
    for field in ("name", "description"):
        if field in changes:
            changes[field] = optional_text(data, field)
    if "total_amount" in changes:
        changes["total_amount"] = parse_amount(
            changes["total_amount"], "total_amount", required=True, minimum=0,
        )
    for field in ("start_date", "end_date"):
        if field in changes:
            changes[field] = parse_date_input(changes[field], field)

    start = changes.get("start_date", budget.start_date)
    end = changes.get("end_date", budget.end_date)
    validate_date_order(start, end)

    diff = field_diff(budget, changes, BUDGET_UPDATABLE_FIELDS)
    for field, value in changes.items():
        if field == "name" and not value:
            continue
        setattr(budget, field, value)
    db.session.flush()
    if diff:
        write_audit(entity_type="budget", entity_id=budget.id, action="update",
                    actor=actor, project_id=budget.project_id, diff=diff)
    return budget


def delete_budget(budget, actor="system"):
    if budget.status != "Draft":
        raise ValidationError("Only Draft budgets can be deleted")
    budget.soft_delete()
    write_audit(entity_type="budget", entity_id=budget.id, action="delete",
                actor=actor, project_id=budget.project_id)
    db.session.flush()


def approve_budget(budget, actor="system"):
    if budget.status != "Draft":
        raise ValidationError(f"Budget is already {budget.status}")
    budget.status = "Approved"
    budget.approved_by = actor
    budget.approved_at = utcnow()
    db.session.flush()

    write_audit(entity_type="budget", entity_id=budget.id, action="approve",
                actor=actor, project_id=budget.project_id,
                diff={"status": {"old": "Draft", "new": "Approved"}})
    NotificationService.create(
        title=f"Budget approved: {budget.name}",
        message=f"Approved by {actor}.",
        category="budget", severity="success",
        project_id=budget.project_id, entity_type="budget", entity_id=budget.id,
    )
    logger.info("Budget %s approved by %s", budget.id, actor)
    return budget


def budget_summary(budget):
    """Compare the budget total with approved spending on its items."""
    categories = (BudgetCategory.query.filter_by(budget_id=budget.id)
                  .order_by(BudgetCategory.order, BudgetCategory.name).all())
    category_ids = [c.id for c in categories]
    items = (BudgetItem.query.filter(BudgetItem.category_id.in_(category_ids))
             .order_by(BudgetItem.order, BudgetItem.name).all()) if category_ids else []
    item_ids = [i.id for i in items]

    item_actuals = defaultdict(float)
    if item_ids:
        expenses = (Expense.query_active()
                    .filter(Expense.project_id == budget.project_id,
                            Expense.approval_status == "Approved",
                            Expense.budget_item_id.in_(item_ids))
                    .all())
        for expense in expenses:
            item_actuals[expense.budget_item_id] += expense.amount

    category_actuals = defaultdict(float)
    for item in items:
        category_actuals[item.category_id] += item_actuals[item.id]

    total_actual = round(sum(category_actuals.values()), 2)
    return {
        "budget_id": budget.id,
        "budget_name": budget.name,
        "total_budget_amount": budget.total_amount,
        "total_actual_amount": total_actual,
        "variance": round(budget.total_amount - total_actual, 2),
        "categories": [c.to_dict(actual_amount=round(category_actuals[c.id], 2)) for c in categories],
        "items": [i.to_dict(actual_amount=round(item_actuals[i.id], 2)) for i in items],
    }


def approved_budget_for_project(project_id):
    """The project's primary approved budget (oldest approval first), or None."""
    return (Budget.query_active()
            .filter_by(project_id=project_id, status="Approved")
            .order_by(Budget.approved_at, Budget.id)
            .first())


# ── Category ─────────────────────────────────────────────────────────────


def get_category(category_id):
    category = db.session.get(BudgetCategory, category_id)
    if not category or category.budget.is_deleted:
        raise NotFoundError(resource="Budget category", resource_id=category_id)
    return category


def list_categories(budget):
    return (BudgetCategory.query.filter_by(budget_id=budget.id)
            .order_by(BudgetCategory.order, BudgetCategory.name).all())


def _check_category_name(budget_id, parent_id, name, exclude_id=None):
    q = BudgetCategory.query.filter_by(budget_id=budget_id, parent_category_id=parent_id, name=name)
    if exclude_id:
        q = q.filter(BudgetCategory.id != exclude_id)
    if q.first():
        raise ConflictError("Budget category", "name", name)


def _order(value):
    if value in (None, ""):
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError("order must be an integer")
    try:
        return int(value)
    except ValueError:
        raise ValueError("order must be an integer") from None


def _resolve_parent(budget_id, parent_id):
    if parent_id in (None, ""):
        return None
    parent = db.session.get(BudgetCategory, parent_id)
    if not parent or parent.budget_id != budget_id:
        raise ValueError("Parent category must belong to the same budget")
    return parent.id


def create_category(budget, data):
    name = require_text(data, "name")
    amount = parse_amount(data.get("amount"), "amount", required=True, minimum=0)
    parent_id = _resolve_parent(budget.id, data.get("parent_category_id"))
    _check_category_name(budget.id, parent_id, name)

    category = BudgetCategory(
        budget_id=budget.id,
        name=name,
        description=optional_text(data, "description"),
        amount=amount,
        parent_category_id=parent_id,
        order=_order(data.get("order")),
    )
    db.session.add(category)
    db.session.flush()
    return category


def update_category(category, data):
    if "parent_category_id" in data:
        parent_id = _resolve_parent(category.budget_id, data["parent_category_id"])
        if parent_id == category.id:
            raise ValueError("A category cannot be its own parent")
        category.parent_category_id = parent_id
    if "name" in data:
        name = require_text(data, "name")
        category.name = name
    if "name" in data or "parent_category_id" in data:
        _check_category_name(category.budget_id, category.parent_category_id,
                             category.name, exclude_id=category.id)
    if "amount" in data:
        category.amount = parse_amount(data["amount"], "amount", required=True, minimum=0)
    if "description" in data:
        category.description = optional_text(data, "description")
    if "order" in data:
        category.order = _order(data["order"])
    db.session.flush()
    return category


def delete_category(category):
    if category.items.count():
        raise ValidationError("Cannot delete category with items")
    if category.subcategories.count():
        raise ValidationError("Cannot delete category with subcategories")
    db.session.delete(category)
    db.session.flush()


# ── Item ─────────────────────────────────────────────────────────────────


def get_item(item_id):
    item = db.session.get(BudgetItem, item_id)
    if not item or item.category.budget.is_deleted:
        raise NotFoundError(resource="Budget item", resource_id=item_id)
    return item


def list_items(category):
    return (BudgetItem.query.filter_by(category_id=category.id)
            .order_by(BudgetItem.order, BudgetItem.name).all())


def _check_item_name(category_id, name, exclude_id=None):
    q = BudgetItem.query.filter_by(category_id=category_id, name=name)
    if exclude_id:
        q = q.filter(BudgetItem.id != exclude_id)
    if q.first():
        raise ConflictError("Budget item", "name", name)


def create_item(category, data):
    name = require_text(data, "name")
    unit = require_text(data, "unit")
    unit_price = parse_amount(data.get("unit_price"), "unit_price", required=True, minimum=0)
    quantity = parse_amount(data.get("quantity"), "quantity", minimum=0)
    _check_item_name(category.id, name)

    item = BudgetItem(
        category_id=category.id,
        name=name,
        description=optional_text(data, "description"),
        quantity=1 if quantity is None else quantity,
        unit=unit,
        unit_price=unit_price,
        order=_order(data.get("order")),
    )
    item.recalculate_total()
    db.session.add(item)
    db.session.flush()
    return item


def update_item(item, data):
    if "name" in data:
        name = require_text(data, "name")
        _check_item_name(item.category_id, name, exclude_id=item.id)
        item.name = name
    if "unit" in data:
        item.unit = require_text(data, "unit")
    if "quantity" in data:
        item.quantity = parse_amount(data["quantity"], "quantity", required=True, minimum=0)
    if "unit_price" in data:
        item.unit_price = parse_amount(data["unit_price"], "unit_price", required=True, minimum=0)
    if "description" in data:
        item.description = optional_text(data, "description")
    if "order" in data:
        item.order = _order(data["order"])
    item.recalculate_total()
    db.session.flush()
    return item


def delete_item(item):
    if item.expenses.filter(Expense.deleted_at.is_(None)).count():
        raise ValidationError("Cannot delete item with linked expenses")
    db.session.delete(item)
    db.session.flush()

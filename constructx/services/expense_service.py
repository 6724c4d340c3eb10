"""Expense service — recording, approval workflow and receipt uploads.

Transaction policy: functions flush, the route commits.

Approval workflow:
    Pending ──approve──▶ Approved   (locked: amount frozen, cannot delete)
       └────reject────▶ Rejected   (reason stored, notification raised)
"""
import logging
import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

from constructx.core.exceptions import NotFoundError, ValidationError
from constructx.models import db
from constructx.models.audit import field_diff, write_audit
from constructx.models.base import utcnow
from constructx.models.budget import Budget, BudgetCategory, BudgetItem
from constructx.models.expense import (
    EXPENSE_PROTECTED_FIELDS,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    Expense,
)
from constructx.services.notification import NotificationService
from constructx.utils.helpers import optional_text, parse_amount, parse_date_input, require_text

logger = logging.getLogger(__name__)

_EDITABLE = (
    "description", "amount", "date", "vendor", "payment_method", "payment_status",
    "budget_category_id", "budget_item_id",
)


def get_expense(expense_id):
    expense = db.session.get(Expense, expense_id)
    if not expense or expense.is_deleted:
        raise NotFoundError(resource="Expense", resource_id=expense_id)
    return expense


def list_expenses(project_id, filters=None):
    """Non-deleted expenses of a project, newest date first."""
    filters = filters or {}
    q = Expense.query_active().filter_by(project_id=project_id)

    start = parse_date_input(filters.get("start_date"), "start_date")
    end = parse_date_input(filters.get("end_date"), "end_date")
    if start:
        q = q.filter(Expense.date >= start)
    if end:
        q = q.filter(Expense.date <= end)
    for field in ("approval_status", "payment_status"):
        if filters.get(field):
            q = q.filter(getattr(Expense, field) == filters[field])
    for field in ("budget_category_id", "budget_item_id"):
        if filters.get(field):
            q = q.filter(getattr(Expense, field) == int(filters[field]))
    if filters.get("vendor"):
        q = q.filter(Expense.vendor.ilike(f"%{filters['vendor']}%"))
    return q.order_by(Expense.date.desc(), Expense.id.desc())


def _link_id(value, field):
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"{field} must be an integer")
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{field} must be an integer") from None


def _resolve_budget_links(project_id, category_id, item_id):
    """Check category/item belong to this project; an item implies its category."""
    category = None
    if category_id not in (None, ""):
        category = db.session.get(BudgetCategory, _link_id(category_id, "budget_category_id"))
        if not category or category.budget.project_id != project_id or category.budget.is_deleted:
            raise ValueError("Budget category does not belong to this project")
    if item_id not in (None, ""):
        item = db.session.get(BudgetItem, _link_id(item_id, "budget_item_id"))
        if not item:
            raise ValueError("Budget item does not belong to this project")
        owner = db.session.get(Budget, item.category.budget_id)
        if owner.project_id != project_id or owner.is_deleted:
            raise ValueError("Budget item does not belong to this project")
        if category and item.category_id != category.id:
            raise ValueError("Budget item does not belong to the given category")
        return item.category_id, item.id
    return (category.id if category else None), None


def _validate_payment(data):
    method = data.get("payment_method")
    if method and (not isinstance(method, str) or method not in PAYMENT_METHODS):
        raise ValueError(f"Invalid payment_method. Must be one of: {', '.join(PAYMENT_METHODS)}")
    status = data.get("payment_status")
    if status and (not isinstance(status, str) or status not in PAYMENT_STATUSES):
        raise ValueError(
            f"Invalid payment_status. Must be one of: {', '.join(sorted(PAYMENT_STATUSES))}"
        )


def create_expense(project_id, data, actor="system"):
    description = require_text(data, "description")
    amount = parse_amount(data.get("amount"), "amount", required=True, minimum=0, allow_equal=False)
    expense_date = parse_date_input(data.get("date"), "date")
    if not expense_date:
        raise ValueError("date is required")
    _validate_payment(data)
    category_id, item_id = _resolve_budget_links(
        project_id, data.get("budget_category_id"), data.get("budget_item_id"),
    )

    expense = Expense(
        project_id=project_id,
        budget_category_id=category_id,
        budget_item_id=item_id,
        description=description,
        amount=amount,
        date=expense_date,
        vendor=optional_text(data, "vendor"),
        payment_method=data.get("payment_method"),
        payment_status=data.get("payment_status") or "Pending",
        created_by=actor,
    )
    db.session.add(expense)
    db.session.flush()
    write_audit(entity_type="expense", entity_id=expense.id, action="create",
                actor=actor, project_id=project_id)
    return expense


def update_expense(expense, data, actor="system"):
    protected = sorted(EXPENSE_PROTECTED_FIELDS & set(data))
    if protected:
        raise ValueError(f"Cannot modify protected fields: {', '.join(protected)}")

    changes = {k: data[k] for k in _EDITABLE if k in data}
    if "amount" in changes:
        if expense.approval_status == "Approved":
            raise ValidationError("Cannot change the amount of an Approved expense")
        changes["amount"] = parse_amount(
            changes["amount"], "amount", required=True, minimum=0, allow_equal=False,
        )
    if "date" in changes:
        changes["date"] = parse_date_input(changes["date"], "date")
        if not changes["date"]:
            raise ValueError("date is required")
    if "description" in changes:
        changes["description"] = require_text(data, "description")
    if "vendor" in changes:
        changes["vendor"] = optional_text(data, "vendor")
    _validate_payment(changes)
    if "budget_category_id" in changes or "budget_item_id" in changes:
        category_id = changes.get("budget_category_id", expense.budget_category_id)
        if changes.get("budget_item_id") not in (None, "") and "budget_category_id" not in changes:
            # a newly linked item brings its own category
            category_id = None
        category_id, item_id = _resolve_budget_links(
            expense.project_id, category_id,
            changes.get("budget_item_id", expense.budget_item_id),
        )
        changes["budget_category_id"], changes["budget_item_id"] = category_id, item_id

    diff = field_diff(expense, changes, _EDITABLE)
    for field, value in changes.items():
        setattr(expense, field, value)
    db.session.flush()
    if diff:
        write_audit(entity_type="expense", entity_id=expense.id, action="update",
                    actor=actor, project_id=expense.project_id, diff=diff)
    return expense


def delete_expense(expense, actor="system"):
    if expense.approval_status == "Approved":
        raise ValidationError("Approved expenses cannot be deleted")
    expense.soft_delete()
    write_audit(entity_type="expense", entity_id=expense.id, action="delete",
                actor=actor, project_id=expense.project_id)
    db.session.flush()


def approve_expense(expense, actor="system"):
    if expense.approval_status != "Pending":
        raise ValidationError(f"Expense is already {expense.approval_status}")
    expense.approval_status = "Approved"
    expense.approved_by = actor
    expense.approved_at = utcnow()
    expense.rejection_reason = None
    db.session.flush()
    write_audit(entity_type="expense", entity_id=expense.id, action="approve",
                actor=actor, project_id=expense.project_id,
                diff={"approval_status": {"old": "Pending", "new": "Approved"}})
    return expense


def reject_expense(expense, actor="system", reason=None):
    if expense.approval_status != "Pending":
        raise ValidationError(f"Expense is already {expense.approval_status}")
    expense.approval_status = "Rejected"
    expense.approved_by = actor
    expense.approved_at = utcnow()
    expense.rejection_reason = reason
    db.session.flush()
    write_audit(entity_type="expense", entity_id=expense.id, action="reject",
                actor=actor, project_id=expense.project_id,
                diff={"approval_status": {"old": "Pending", "new": "Rejected"},
                      "rejection_reason": reason})
    NotificationService.create(
        title=f"Expense rejected: {expense.description[:80]}",
        message=reason or "No reason given.",
        category="expense", severity="warning",
        recipient=expense.created_by or "all",
        project_id=expense.project_id, entity_type="expense", entity_id=expense.id,
    )
    return expense


def attach_receipt(expense, file_storage):
    """Save an uploaded receipt under ``UPLOAD_FOLDER/receipts`` and link it."""
    if file_storage is None or not file_storage.filename:
        raise ValueError("Receipt file is required")
    filename = secure_filename(file_storage.filename)
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    allowed = current_app.config.get("RECEIPT_EXTENSIONS", {"pdf", "png", "jpg", "jpeg"})
    if ext not in allowed:
        raise ValueError(f"Unsupported receipt type. Allowed: {', '.join(sorted(allowed))}")

    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], "receipts")
    os.makedirs(folder, exist_ok=True)
    stored_name = f"expense-{expense.id}-{uuid.uuid4().hex[:8]}-{filename}"
    file_storage.save(os.path.join(folder, stored_name))

    expense.receipt_url = f"/uploads/receipts/{stored_name}"
    db.session.flush()
    logger.info("Receipt stored for expense %s: %s", expense.id, stored_name)
    return expense

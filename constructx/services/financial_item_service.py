"""Financial item ledger (budget / expense / invoice / payment entries)."""
import logging
from collections import defaultdict

from sqlalchemy import or_

from constructx.core.exceptions import NotFoundError
from constructx.models import db
from constructx.models.financial import (
    FINANCIAL_ITEM_CATEGORIES,
    FINANCIAL_ITEM_STATUSES,
    FINANCIAL_ITEM_TYPES,
    FinancialItem,
)
from constructx.utils.helpers import optional_text, parse_amount, parse_date_input, require_text

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("title", "description", "vendor", "reference")


def get_item(item_id):
    item = db.session.get(FinancialItem, item_id)
    if not item:
        raise NotFoundError(resource="Financial item", resource_id=item_id)
    return item


def list_items(project_id=None, filters=None):
    filters = filters or {}
    q = FinancialItem.query
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    for field in ("type", "status", "category"):
        if filters.get(field):
            q = q.filter(getattr(FinancialItem, field) == filters[field])
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(FinancialItem.title.ilike(like), FinancialItem.vendor.ilike(like)))
    return q.order_by(FinancialItem.date.desc(), FinancialItem.id.desc())


def _validate(item_type, category, status):
    if not isinstance(item_type, str) or item_type not in FINANCIAL_ITEM_TYPES:
        raise ValueError(f"Invalid type. Must be one of: {', '.join(sorted(FINANCIAL_ITEM_TYPES))}")
    if not isinstance(category, str) or category not in FINANCIAL_ITEM_CATEGORIES[item_type]:
        raise ValueError(f"Invalid category '{category}' for type '{item_type}'")
    if not isinstance(status, str) or status not in FINANCIAL_ITEM_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(sorted(FINANCIAL_ITEM_STATUSES))}")


def create_item(project_id, data, actor="system"):
    title = require_text(data, "title")
    item_type = data.get("type")
    status = data.get("status") or "draft"
    _validate(item_type, data.get("category"), status)
    item_date = parse_date_input(data.get("date"), "date")
    if not item_date:
        raise ValueError("date is required")

    item = FinancialItem(
        project_id=project_id,
        title=title,
        type=item_type,
        category=data["category"],
        amount=parse_amount(data.get("amount"), "amount", required=True, minimum=0),
        date=item_date,
        due_date=parse_date_input(data.get("due_date"), "due_date"),
        status=status,
        description=optional_text(data, "description"),
        vendor=optional_text(data, "vendor"),
        reference=optional_text(data, "reference"),
        attachments=data.get("attachments") or [],
        created_by=actor,
    )
    db.session.add(item)
    db.session.flush()
    return item


def update_item(item, data):
    item_type = data.get("type", item.type)
    category = data.get("category", item.category)
    status = data.get("status", item.status)
    _validate(item_type, category, status)
    item.type, item.category, item.status = item_type, category, status

    for field in _TEXT_FIELDS:
        if field in data:
            setattr(item, field, optional_text(data, field))
    if not item.title:
        raise ValueError("title is required")
    if "amount" in data:
        item.amount = parse_amount(data["amount"], "amount", required=True, minimum=0)
    if "date" in data:
        item.date = parse_date_input(data["date"], "date") or item.date
    if "due_date" in data:
        item.due_date = parse_date_input(data["due_date"], "due_date")
    if "attachments" in data:
        item.attachments = data["attachments"] or []
    db.session.flush()
    return item


def delete_item(item):
    db.session.delete(item)
    db.session.flush()


def financial_item_totals(project_id=None):
    """Per type: summed amount, item count and count by status."""
    totals = {
        t: {"amount": 0.0, "count": 0, "by_status": defaultdict(int)}
        for t in sorted(FINANCIAL_ITEM_TYPES)
    }
    for item in list_items(project_id).all():
        bucket = totals[item.type]
        bucket["amount"] += item.amount
        bucket["count"] += 1
        bucket["by_status"][item.status] += 1
    return {
        t: {"amount": round(b["amount"], 2), "count": b["count"], "by_status": dict(b["by_status"])}
        for t, b in totals.items()
    }

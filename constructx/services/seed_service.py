"""
ConstructX
Demo data for ``flask seed-demo``.

Builds one project with an approved budget, a handful of expenses, a
quality check and a safety item, going through the same services the API
uses so audit rows and notifications are produced as in normal use.
"""

import logging
from datetime import date, timedelta

from constructx.models.project import Project
from constructx.services import (
    budget_service, expense_service, project_service, quality_service, safety_service,
)

logger = logging.getLogger(__name__)

DEMO_CODE = "DEMO-001"


def seed_demo(actor="seed"):
    """Create the demo project. Returns the project, or None when it already exists."""
    if Project.query.filter_by(code=DEMO_CODE).first():
        logger.info("Demo project %s already present, skipping", DEMO_CODE)
        return None

    today = date.today()
    start = today.replace(day=1) - timedelta(days=60)

    project = project_service.create_project({
        "code": DEMO_CODE,
        "name": "Riverside Office Block",
        "description": "Four-storey office building with underground parking.",
        "status": "Active",
        "budget": 1_250_000,
        "location": "Riverside Ave 12",
        "project_type": "Commercial",
        "client_name": "Harbor Holdings",
        "project_manager": "Dana Ortiz",
        "start_date": start.isoformat(),
    }, actor=actor)

    budget = budget_service.create_budget(project.id, {
        "name": "Construction Budget",
        "total_amount": 1_200_000,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=365)).isoformat(),
    }, actor=actor)

    categories = {}
    for name, amount in (("Site Work", 150_000), ("Structure", 600_000), ("Finishes", 450_000)):
        categories[name] = budget_service.create_category(budget, {"name": name, "amount": amount})
    budget_service.create_item(categories["Structure"], {
        "name": "Ready-mix concrete", "quantity": 800, "unit": "cubic yards", "unit_price": 145,
    })
    budget_service.approve_budget(budget, actor=actor)

    expenses = (
        ("Excavation and grading", 48_500, "Site Work", "Bedrock Earthworks", 55),
        ("Concrete pour, level 1", 61_200, "Structure", "Metro Ready Mix", 30),
        ("Rebar delivery", 22_750, "Structure", "SteelLine Supply", 12),
    )
    for description, amount, category, vendor, days_ago in expenses:
        expense = expense_service.create_expense(project.id, {
            "description": description,
            "amount": amount,
            "date": (today - timedelta(days=days_ago)).isoformat(),
            "vendor": vendor,
            "budget_category_id": categories[category].id,
            "payment_method": "Bank Transfer",
        }, actor=actor)
        expense_service.approve_expense(expense, actor=actor)

    expense_service.create_expense(project.id, {
        "description": "Temporary fencing rental",
        "amount": 3_400,
        "date": (today - timedelta(days=3)).isoformat(),
        "vendor": "SiteSafe Rentals",
        "budget_category_id": categories["Site Work"].id,
    }, actor=actor)

    quality_service.create_qc(project.id, {
        "title": "Level 1 slab pre-pour inspection",
        "type": "inspection",
        "inspector": "J. Whitaker",
        "scheduled_date": (today - timedelta(days=31)).isoformat(),
        "criteria": [
            {"description": "Rebar spacing per drawings", "status": "passed"},
            {"description": "Formwork level and braced", "status": "passed"},
            {"description": "Embedded conduits placed", "status": "pending"},
        ],
    })

    safety_service.create_item(project.id, {
        "title": "Unguarded slab edge on level 2",
        "type": "hazard",
        "severity": "high",
        "location": "Level 2, north face",
        "reported_by": "Site supervisor",
        "actions": [
            {"description": "Install edge protection", "assigned_to": "Framing crew",
             "due_date": (today + timedelta(days=2)).isoformat()},
        ],
    })

    logger.info("Seeded demo project %s (id=%s)", project.code, project.id)
    return project

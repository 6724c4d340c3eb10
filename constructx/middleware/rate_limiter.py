"""
Per-blueprint rate limits (Flask-Limiter).

The Limiter instance lives in ``constructx/__init__.py`` with no default
limit; this module attaches limits by blueprint name:

    write-heavy modules  60/minute
    reporting / charts   200/minute
    health               exempt

Disabled entirely when TESTING is set.
"""

import logging

logger = logging.getLogger(__name__)

WRITE_BLUEPRINTS = (
    "project", "budget", "expense", "financial_item", "quality", "safety",
    "communication", "document", "lead", "resource", "team",
)
READ_BLUEPRINTS = ("financial", "audit", "notification")


def init_rate_limits(app, limiter):
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for name in WRITE_BLUEPRINTS:
        bp = app.blueprints.get(name)
        if bp:
            limiter.limit("60/minute")(bp)

    for name in READ_BLUEPRINTS:
        bp = app.blueprints.get(name)
        if bp:
            limiter.limit("200/minute")(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: write 60/min, read 200/min")

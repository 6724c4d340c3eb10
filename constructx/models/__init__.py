"""
ConstructX
Model package — shared SQLAlchemy handle.

Every model module imports ``db`` from here:

    from constructx.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

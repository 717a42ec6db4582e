"""
Video Production Tracker
Shared SQLAlchemy extension instance.

Every model module imports ``db`` from here so the factory can bind it once:

    from vpm.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

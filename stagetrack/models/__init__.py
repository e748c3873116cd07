"""
Stage Tracker
SQLAlchemy extension instance shared by every model module.

Usage:
    from stagetrack.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

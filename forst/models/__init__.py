"""
FORST Reporting Service
SQLAlchemy extension instance shared by all model modules.

Usage:
    from forst.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

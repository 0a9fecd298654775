"""Database setup utilities.

This module centralises the SQLAlchemy extension object. It exposes
the ``db`` object used by models throughout the application.

Import ``db`` from ``trainer_directory`` rather than from this module
directly. The application factory initialises ``db`` with the Flask app.
"""
from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

"""
Database Configuration

Global SQLAlchemy instance shared by every model. Bound to the Flask app in
`create_app` and created with `db.create_all()` at start-up.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

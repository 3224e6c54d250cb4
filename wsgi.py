"""
WSGI / Flask-Migrate entry point.

Usage:
    gunicorn wsgi:app
    FLASK_APP=wsgi.py flask db upgrade
"""

from docmanager import create_app

app = create_app()

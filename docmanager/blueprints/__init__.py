"""
Document Manager
Blueprint registry.
"""

from docmanager.blueprints.documents_bp import documents_bp
from docmanager.blueprints.health_bp import health_bp

ALL_BLUEPRINTS = (documents_bp, health_bp)

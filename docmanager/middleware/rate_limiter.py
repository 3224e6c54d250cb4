"""
Per-blueprint rate limits (Flask-Limiter).

The Limiter instance is created in docmanager/__init__.py with no default
limits; this module attaches limits per blueprint after registration.

Limits (per remote IP):
    documents   120/minute  (tree builds fan out to many store reads)
    health      exempt

Disabled in testing.

Usage:
    from docmanager.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

DOCUMENTS_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("documents")
    if bp:
        limiter.limit(app.config.get("DOCUMENTS_RATE_LIMIT", DOCUMENTS_LIMIT))(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: documents=%s",
                    app.config.get("DOCUMENTS_RATE_LIMIT", DOCUMENTS_LIMIT))

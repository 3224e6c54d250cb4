"""
Security headers for the JSON API.

Every response carries ``X-XSS-Protection: 1; mode=block`` (document
endpoints have always returned it) plus the usual hardening headers.
The ``Server`` header is dropped.

Usage:
    from docmanager.middleware.security_headers import init_security_headers
    init_security_headers(app)
"""

_API_HEADERS = {
    "X-XSS-Protection": "1; mode=block",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    # JSON only: nothing to load, nothing to frame
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


def init_security_headers(app):
    """Register the after_request hook that stamps the headers."""

    @app.after_request
    def _add_security_headers(response):
        for name, value in _API_HEADERS.items():
            response.headers.setdefault(name, value)
        if not app.config.get("DEBUG") and not app.config.get("TESTING"):
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        response.headers.pop("Server", None)
        return response

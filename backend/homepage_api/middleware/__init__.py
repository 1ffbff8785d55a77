"""
Homepage Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [Errors] → [GZip] → Route Handler

    CORS is outermost so preflight OPTIONS requests for any path are
    answered before routing. Unexpected exceptions become a JSON 500 in
    [Errors], inside CORS and Request ID, so every response carries both
    headers and the access log records the 500.
"""

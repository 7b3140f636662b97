# Middleware package init
"""
MarkNotes Backend - Middleware Package
========================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Security Headers]
            → [GZip] → [CORS] → Route Handler

    Rate limiting rejects abusive clients before any other work; the request
    ID is set before the access log line is written.
"""

# Middleware package init
"""
Pixdrop Backend — Middleware Package
=====================================

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    Request ID runs first so the access log line and the exception handlers
    can both read the correlation ID.
"""

"""
Serenity Backend — Middleware Package
=====================================

Cross-cutting concerns applied to every request.

Execution order (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

Responses unwind in reverse, so the request ID header and the access log
line are both written after the route handler returns.
"""

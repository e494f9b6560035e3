# Middleware package init
"""
Agora Backend: Middleware Package
==================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later log line of the request can carry it
    2. Logging: method, path, status and duration of the response

    The order is reversed for responses, so the logging middleware sees the
    final status code and the request ID header is set last.
"""

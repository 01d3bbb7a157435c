"""
Servekit — Middleware Package
=============================

App-wide (ASGI) middleware, applied to every HTTP request:

    Request → [Request ID] → [Logging] → [GZip] → [CORS] → route

    - request_id.py: correlation ID in a ContextVar, request.state and header
    - logging.py:    access log with status-dependent level

Per-route middlewares are different: they are FastAPI dependencies passed to
`MasterController.get(router, path, [dep, ...])`, e.g. `use_db_session`.
"""

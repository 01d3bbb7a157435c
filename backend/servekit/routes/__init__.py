"""
Servekit — Routes Package
=========================

Route inventory:
    - users.py:   POST /api/users, GET /api/users, GET /api/users/{user_id}
    - events.py:  socket events `ping` and `chat:message` on /ws
    - health.py:  GET /health

Controllers stay thin: validation lives in `validate()`, queries live in
repositories, and errors are raised (not returned) so the global handlers
shape them.
"""

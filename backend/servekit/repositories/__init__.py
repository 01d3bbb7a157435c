"""
Servekit — Repositories
=======================

Query helpers, one module per model. Controllers call these instead of
building SQL themselves, so queries can be unit-tested with a mocked session.

    - user_repository.py: find / create / list / count users
"""

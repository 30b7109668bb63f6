"""Rate limiting adapters.

The HTTP layer depends on the abstract limiter only, so the in-memory store
can be replaced by a shared one without touching the routes.
"""

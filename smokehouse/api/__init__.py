"""API Layer — FastAPI routes, middleware, dependencies and error handlers.

Invariants:
    - Routes are registered explicitly in main.py
    - Routes parse, authorize and delegate; services own transactions and rules
"""

"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Time-dependent code accepts `now` (or a clock callable) so tests never depend on the wall clock

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""

"""Services Layer — orchestration of DB, gateways and core rules.

Invariants:
    - Services own transactions (commit/rollback); routes never commit
    - Email failures inside payment flows are logged, never fatal

Design Decisions:
    - One service module per business capability (ADR: no god objects)
"""

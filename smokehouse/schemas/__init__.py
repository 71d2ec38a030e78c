"""Pydantic Schemas — request payloads for the storefront API.

Invariants:
    - Shape and range checks only; money, inventory and status rules live in core/ and services/
    - Enum fields reuse core/domain_types.py so wire values match the stored ones
"""

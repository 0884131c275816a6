"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at the HTTP boundary (transport bridge input, reply output)

Design Decisions:
    - Separate from core/responses: schemas are the HTTP contract, replies are domain values
"""

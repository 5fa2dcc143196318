"""Pydantic Schemas - request/response shapes for the XRPC boundary.

Invariants:
    - Schemas validate at the system boundary (server responses, request bodies)
    - Wire names are camelCase aliases; Python attributes are snake_case
"""

"""Infrastructure Layer - XRPC transport and cross-cutting concerns.

Invariants:
    - Every external call goes through XrpcClient and its error mapping
    - Transport exceptions never leave this layer unmapped

Design Decisions:
    - Thin wrapper over httpx.AsyncClient: the session service stays transport-agnostic
"""

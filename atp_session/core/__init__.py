"""Core Layer - session data, snapshots, errors and collaborator contracts.

Invariants:
    - No module in core/ imports from services/, schemas/ or infrastructure/
    - No IO and no async in core/ (the Protocols only describe async boundaries)

Design Decisions:
    - Functional core separated from imperative shell: services/ owns the network calls
"""

"""Services Layer - the session lifecycle component.

Invariants:
    - SessionService is the only writer of SessionHolder state
    - Collaborators are reached through core/collaborator_protocols.py only
"""

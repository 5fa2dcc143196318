"""Boundary Protocols - contracts between the session core and its collaborators.

Invariants:
    - Core NEVER imports concrete collaborators - dependency arrows point inward only
    - The profile, onboarding and root stores are reached only through these types
    - Implementations are provided by the composition root via constructor injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - ProfileStore.load is async because implementations do IO; clear() is sync
      because it only drops cached state
"""

from typing import Protocol

from atp_session.core.domain_types import Did


class ProfileStore(Protocol):
    """Local user-profile cache for the logged-in account."""
    did: Did | None

    def clear(self) -> None: ...
    async def load(self) -> None: ...


class OnboardingFlow(Protocol):
    """First-run flow started after a new account is created."""
    def start(self) -> None: ...


class RootStore(Protocol):
    """Composition root that owns every dependent store, this session included."""
    def clear_all(self) -> None: ...

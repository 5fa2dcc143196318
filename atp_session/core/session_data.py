"""Session Data - the credential + identity record for one logged-in account.

Invariants:
    - A SessionData held by SessionHolder has all five fields non-empty
    - Records are immutable; token rotation produces a new record with the same identity
    - __repr__ never exposes bearer tokens

Design Decisions:
    - Frozen dataclass: holder replacement is the only way state changes
    - Completeness is a predicate (is_complete), not a constructor check, so the
      snapshot decoder can assemble a partial record before deciding to drop it
"""

from dataclasses import dataclass, field, fields, replace

from atp_session.core.domain_types import Did, Handle


@dataclass(frozen=True)
class SessionData:
    """Service endpoint, token pair and account identity."""

    service: str
    access_jwt: str = field(repr=False)
    refresh_jwt: str = field(repr=False)
    handle: Handle
    did: Did

    @property
    def is_complete(self) -> bool:
        return all(
            isinstance(getattr(self, f.name), str) and getattr(self, f.name)
            for f in fields(self)
        )

    def with_tokens(self, access_jwt: str, refresh_jwt: str) -> "SessionData":
        """Copy with a rotated token pair; identity fields preserved."""
        return replace(self, access_jwt=access_jwt, refresh_jwt=refresh_jwt)

"""Session Schemas - Pydantic models for the XRPC session/account endpoints.

Invariants:
    - Input models serialize with camelCase aliases and drop None fields
    - SessionCredentials tolerates missing tokens: partial responses are modelled,
      not rejected, so the service layer decides what a partial answer means
    - SessionInfo requires did and handle: an identity answer without them is malformed

Design Decisions:
    - extra="ignore" on outputs: servers add fields over time
    - populate_by_name: tests and callers may build models with snake_case names
"""

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Requests -------------------------------------------------------------------

class CreateSessionInput(_WireModel):
    """Body of com.atproto.session.create."""
    handle: str = Field(min_length=1)
    password: str = Field(min_length=1)


class CreateAccountInput(_WireModel):
    """Body of com.atproto.account.create."""
    handle: str = Field(min_length=1)
    password: str = Field(min_length=1)
    email: str = Field(min_length=1)
    invite_code: str | None = Field(None, alias="inviteCode")


# --- Responses ------------------------------------------------------------------

class SessionCredentials(_WireModel):
    """Output of session.create / account.create. Tokens may be absent."""
    access_jwt: str | None = Field(None, alias="accessJwt")
    refresh_jwt: str | None = Field(None, alias="refreshJwt")
    handle: str = ""
    did: str = ""

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_jwt and self.refresh_jwt)


class SessionInfo(_WireModel):
    """Output of com.atproto.session.get: the identity behind the access token."""
    did: str
    handle: str


class RefreshedTokens(_WireModel):
    """Output of com.atproto.session.refresh."""
    access_jwt: str = Field(alias="accessJwt")
    refresh_jwt: str = Field(alias="refreshJwt")
    handle: str | None = None
    did: str | None = None


class ServiceLinks(_WireModel):
    privacy_policy: str | None = Field(None, alias="privacyPolicy")
    terms_of_service: str | None = Field(None, alias="termsOfService")


class ServiceDescription(_WireModel):
    """Output of com.atproto.server.getAccountsConfig."""
    invite_code_required: bool = Field(False, alias="inviteCodeRequired")
    available_user_domains: list[str] = Field(
        default_factory=list, alias="availableUserDomains",
    )
    links: ServiceLinks | None = None

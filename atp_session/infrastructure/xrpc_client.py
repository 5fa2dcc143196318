"""XRPC Client - httpx.AsyncClient wrapper for the account/session endpoints.

Invariants:
    - Transport failures (DNS, refused, timeout, protocol) map to NetworkError
    - HTTP 401 or an auth error name maps to AuthenticationError; any other
      error status maps to XrpcRequestError
    - Malformed success bodies map to XrpcRequestError(status_code=None)
    - configure() is the single place service endpoint and tokens are set;
      authenticated calls read nothing else
    - An ExpiredToken rejection triggers at most one refresh and one replay

Design Decisions:
    - No retry/backoff here: connectivity retries belong to the caller's policy
    - Refresh listeners instead of a back-reference to the session holder:
      infrastructure/ stays unaware of who owns the credentials
    - Service path prefix kept when building /xrpc/<nsid> URLs (PDS behind a proxy path)
"""

import logging
from collections.abc import Callable
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from atp_session.config import Settings
from atp_session.core.domain_types import AuthScheme, Nsid
from atp_session.core.errors import (
    AuthenticationError,
    ErrorContext,
    InvalidServiceUrlError,
    NetworkError,
    XrpcRequestError,
)
from atp_session.schemas.session import (
    CreateAccountInput,
    CreateSessionInput,
    RefreshedTokens,
    ServiceDescription,
    SessionCredentials,
    SessionInfo,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
RefreshListener = Callable[[RefreshedTokens], None]

_AUTH_ERROR_NAMES = frozenset({
    "AuthRequired",
    "AuthenticationRequired",
    "InvalidToken",
    "ExpiredToken",
    "AccountTakedown",
})


def parse_service_url(service: str) -> httpx.URL:
    """Validate an account service endpoint. Raises InvalidServiceUrlError."""
    try:
        url = httpx.URL(service)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidServiceUrlError(str(service), str(e)) from e
    if url.scheme not in ("http", "https"):
        raise InvalidServiceUrlError(service, "scheme must be http or https")
    if not url.host:
        raise InvalidServiceUrlError(service, "missing host")
    return url


def _xrpc_url(service: httpx.URL, nsid: Nsid) -> httpx.URL:
    return service.copy_with(path=service.path.rstrip("/") + f"/xrpc/{nsid.value}")


def _parse(model: type[ModelT], payload: dict, ctx: ErrorContext) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise XrpcRequestError(
            f"Malformed {ctx.nsid} response: {e.error_count()} invalid field(s)",
            None, context=ctx,
        ) from e


def _map_error_response(
    response: httpx.Response, ctx: ErrorContext,
) -> XrpcRequestError:
    """Translate an XRPC error envelope ({"error", "message"}) into a typed error."""
    error_name: str | None = None
    message = response.reason_phrase or "XRPC request failed"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        if isinstance(body.get("error"), str):
            error_name = body["error"]
        if isinstance(body.get("message"), str) and body["message"]:
            message = body["message"]
        elif error_name:
            message = error_name

    if response.status_code == 401 or error_name in _AUTH_ERROR_NAMES:
        return AuthenticationError(
            message, response.status_code, error_name, context=ctx,
        )
    return XrpcRequestError(
        message, response.status_code, error_name, context=ctx,
    )


class XrpcClient:
    """Async XRPC client holding the configured service and token pair."""

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        user_agent: str = "atp-session/0.1.0",
        auto_refresh: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.http = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"User-Agent": user_agent},
            transport=transport,
        )
        self.auto_refresh = auto_refresh
        self.service: httpx.URL | None = None
        self._access_jwt: str | None = None
        self._refresh_jwt: str | None = None
        self._refresh_listeners: list[RefreshListener] = []

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None,
    ) -> "XrpcClient":
        return cls(
            timeout_seconds=settings.request_timeout_seconds,
            user_agent=settings.user_agent,
            auto_refresh=settings.auto_refresh_tokens,
            transport=transport,
        )

    # --- Configuration sink ----------------------------------------------------

    def configure(self, service: str, access_jwt: str, refresh_jwt: str) -> None:
        """Point authenticated calls at a service with a token pair."""
        self.service = parse_service_url(service)
        self._access_jwt = access_jwt
        self._refresh_jwt = refresh_jwt

    def clear_credentials(self) -> None:
        self._access_jwt = None
        self._refresh_jwt = None

    def on_session_refreshed(self, listener: RefreshListener) -> Callable[[], None]:
        """Register a callback for rotated tokens. Returns an unsubscribe callable."""
        self._refresh_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._refresh_listeners:
                self._refresh_listeners.remove(listener)

        return unsubscribe

    # --- Endpoints -------------------------------------------------------------

    async def get_session(self) -> SessionInfo:
        payload = await self._authed_call("GET", Nsid.GET_SESSION)
        return _parse(SessionInfo, payload, self._context(Nsid.GET_SESSION))

    async def create_session(
        self, service: str, handle: str, password: str,
    ) -> SessionCredentials:
        url = parse_service_url(service)
        body = CreateSessionInput(handle=handle, password=password).to_wire()
        payload = await self._request(
            url, "POST", Nsid.CREATE_SESSION, AuthScheme.NONE, body=body,
        )
        return _parse(
            SessionCredentials, payload, self._context(Nsid.CREATE_SESSION, url),
        )

    async def create_account(
        self,
        service: str,
        *,
        handle: str,
        password: str,
        email: str,
        invite_code: str | None = None,
    ) -> SessionCredentials:
        url = parse_service_url(service)
        body = CreateAccountInput(
            handle=handle, password=password, email=email, invite_code=invite_code,
        ).to_wire()
        payload = await self._request(
            url, "POST", Nsid.CREATE_ACCOUNT, AuthScheme.NONE, body=body,
        )
        return _parse(
            SessionCredentials, payload, self._context(Nsid.CREATE_ACCOUNT, url),
        )

    async def delete_session(self) -> None:
        """Revoke the current refresh token server-side."""
        await self._request(
            self._require_service(), "POST", Nsid.DELETE_SESSION, AuthScheme.REFRESH,
        )

    async def refresh_session(self) -> RefreshedTokens:
        """Exchange the refresh token for a new pair and notify listeners."""
        payload = await self._request(
            self._require_service(), "POST", Nsid.REFRESH_SESSION, AuthScheme.REFRESH,
        )
        tokens = _parse(
            RefreshedTokens, payload, self._context(Nsid.REFRESH_SESSION),
        )
        self._access_jwt = tokens.access_jwt
        self._refresh_jwt = tokens.refresh_jwt
        logger.info("Session tokens refreshed", extra={"nsid": Nsid.REFRESH_SESSION.value})
        for listener in list(self._refresh_listeners):
            try:
                listener(tokens)
            except Exception:
                logger.error("Token refresh listener failed", exc_info=True)
        return tokens

    async def get_accounts_config(self, service: str) -> ServiceDescription:
        url = parse_service_url(service)
        payload = await self._request(
            url, "GET", Nsid.GET_ACCOUNTS_CONFIG, AuthScheme.NONE,
        )
        return _parse(
            ServiceDescription, payload, self._context(Nsid.GET_ACCOUNTS_CONFIG, url),
        )

    # --- Lifecycle -------------------------------------------------------------

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "XrpcClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- Internals -------------------------------------------------------------

    async def _authed_call(self, method: str, nsid: Nsid) -> dict:
        """Call with the access token; on ExpiredToken refresh once and replay."""
        service = self._require_service()
        try:
            return await self._request(service, method, nsid, AuthScheme.ACCESS)
        except AuthenticationError as e:
            if not (self.auto_refresh and e.token_expired and self._refresh_jwt):
                raise
            logger.info(
                "Access token expired, refreshing", extra={"nsid": nsid.value},
            )
        await self.refresh_session()
        return await self._request(service, method, nsid, AuthScheme.ACCESS)

    async def _request(
        self,
        service: httpx.URL,
        method: str,
        nsid: Nsid,
        auth: AuthScheme,
        body: dict | None = None,
    ) -> dict:
        ctx = self._context(nsid, service)
        headers = {}
        token = self._token_for(auth)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.http.request(
                method, _xrpc_url(service, nsid), json=body, headers=headers,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"timeout calling {nsid.value}", ctx) from e
        except httpx.TransportError as e:
            raise NetworkError(str(e) or type(e).__name__, ctx) from e

        if response.status_code >= 400:
            error = _map_error_response(response, ctx)
            logger.debug(
                f"XRPC error: {error.message}",
                extra={"nsid": nsid.value, "status_code": response.status_code},
            )
            raise error

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as e:
            raise XrpcRequestError(
                f"Malformed {nsid.value} response: invalid JSON", None, context=ctx,
            ) from e
        if not isinstance(payload, dict):
            raise XrpcRequestError(
                f"Malformed {nsid.value} response: expected an object",
                None, context=ctx,
            )
        return payload

    def _token_for(self, auth: AuthScheme) -> str | None:
        if auth is AuthScheme.ACCESS:
            return self._access_jwt
        if auth is AuthScheme.REFRESH:
            return self._refresh_jwt
        return None

    def _require_service(self) -> httpx.URL:
        if self.service is None:
            raise RuntimeError("XrpcClient not configured")
        return self.service

    def _context(self, nsid: Nsid, service: httpx.URL | None = None) -> ErrorContext:
        target = service if service is not None else self.service
        return ErrorContext(
            service=str(target) if target is not None else None, nsid=nsid.value,
        )

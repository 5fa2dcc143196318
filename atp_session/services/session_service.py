"""Session Service - lifecycle of one authenticated session against an account service.

Invariants:
    - At most one reconciliation in flight: concurrent connect() calls share one task
    - The in-flight slot is cleared exactly once, when its task settles
    - connect() never raises; failures surface only as online/has_session
    - Network failures during reconciliation keep the session; rejections clear it
    - login/create_account commit state only when the response carries both tokens
    - logout pushes a held session into the client before revoking it, drops
      client credentials, and always ends in root.clear_all()
    - Background profile loads never fail the transaction that started them

Design Decisions:
    - asyncio.shield around the shared task: one cancelled caller does not cancel
      the reconciliation other callers are awaiting
    - Background tasks kept in a set until done: the event loop only holds weak
      references to tasks
    - Token refreshes performed by XrpcClient flow back through
      SessionHolder.update_auth_tokens, so identity fields are never touched
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from atp_session.config import Settings, get_settings
from atp_session.core.collaborator_protocols import (
    OnboardingFlow,
    ProfileStore,
    RootStore,
)
from atp_session.core.domain_types import Did, Handle, Nsid
from atp_session.core.errors import (
    InvalidServiceUrlError,
    MissingCredentialsError,
    is_network_error,
)
from atp_session.core.session_data import SessionData
from atp_session.core.session_holder import SessionHolder
from atp_session.core.session_snapshot import hydrate_session, session_to_snapshot
from atp_session.infrastructure.xrpc_client import XrpcClient
from atp_session.schemas.session import (
    RefreshedTokens,
    ServiceDescription,
    SessionCredentials,
)

logger = logging.getLogger(__name__)


class SessionService:
    """Owns the SessionHolder and every transition of the session lifecycle."""

    def __init__(
        self,
        client: XrpcClient,
        root: RootStore,
        profile: ProfileStore,
        onboarding: OnboardingFlow,
        settings: Settings | None = None,
        holder: SessionHolder | None = None,
    ):
        self.client = client
        self.root = root
        self.profile = profile
        self.onboarding = onboarding
        self.settings = settings or get_settings()
        self.holder = holder or SessionHolder()
        self._connect_task: asyncio.Task[None] | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._unsubscribe_refresh = client.on_session_refreshed(
            self._on_tokens_refreshed,
        )

    # --- Holder passthrough ------------------------------------------------------

    @property
    def data(self) -> SessionData | None:
        return self.holder.data

    @property
    def has_session(self) -> bool:
        return self.holder.has_session

    @property
    def online(self) -> bool:
        return self.holder.online

    @property
    def attempting_connect(self) -> bool:
        return self.holder.attempting_connect

    def clear(self) -> None:
        self.holder.clear()

    # --- Persistence bridge ------------------------------------------------------

    def serialize(self) -> dict:
        return session_to_snapshot(self.holder)

    def hydrate(self, snapshot: object) -> None:
        hydrate_session(self.holder, snapshot)

    # --- Connectivity reconciler -------------------------------------------------

    async def connect(self) -> None:
        """Verify the held session with the server; coalesces concurrent calls."""
        task = self._connect_task
        if task is None:
            task = asyncio.ensure_future(self._connect())
            self._connect_task = task
            task.add_done_callback(self._release_connect_slot)
        await asyncio.shield(task)

    def _release_connect_slot(self, task: asyncio.Task[None]) -> None:
        if self._connect_task is task:
            self._connect_task = None

    async def _connect(self) -> None:
        self.holder.set_attempting_connect(True)
        try:
            await self._reconcile()
        except Exception:
            logger.error("Unexpected failure while resuming session", exc_info=True)
            self.holder.set_online(False, False)

    async def _reconcile(self) -> None:
        if not self._configure_client():
            self.holder.set_online(False, False)
            return

        data = self.holder.data
        try:
            info = await self.client.get_session()
        except Exception as e:
            if is_network_error(e):
                logger.warning(
                    "Session check failed: service unreachable",
                    extra={"service": data.service, "did": data.did},
                )
                self.holder.set_online(False, False)
                return
            logger.warning(
                f"Cached session rejected by server: {e}",
                extra={"service": data.service, "did": data.did},
            )
            self.holder.clear()
        else:
            current = self.holder.data
            if current is not None and current.did == info.did:
                self.holder.set_online(True, False)
                if self.profile.did != info.did:
                    self.profile.clear()
                self._load_profile_in_background()
                logger.info(
                    "Session resumed", extra={"did": info.did, "handle": info.handle},
                )
                return
            logger.warning(
                "Cached session belongs to a different account",
                extra={"did": info.did},
            )
            self.holder.clear()

        self.holder.set_online(False, False)

    def _configure_client(self) -> bool:
        """Push the held service + tokens into the client. False means nothing to verify."""
        data = self.holder.data
        if data is None:
            return False
        try:
            self.client.configure(data.service, data.access_jwt, data.refresh_jwt)
        except InvalidServiceUrlError as e:
            logger.error(
                f"{e.message}. Resetting session.",
                extra={"service": data.service, "error_code": e.code},
            )
            self.holder.clear()
            return False
        return True

    # --- Credential transactions -------------------------------------------------

    async def describe_service(self, service: str | None = None) -> ServiceDescription:
        return await self.client.get_accounts_config(self._resolve_service(service))

    async def login(self, service: str | None, handle: str, password: str) -> None:
        service = self._resolve_service(service)
        res = await self.client.create_session(service, handle, password)
        if not self._accept_credentials(Nsid.CREATE_SESSION, res):
            return
        self._commit(service, res)
        self.holder.set_online(True, False)
        self._load_profile_in_background()
        logger.info("Logged in", extra={"did": res.did, "handle": res.handle})

    async def create_account(
        self,
        service: str | None,
        email: str,
        password: str,
        handle: str,
        invite_code: str | None = None,
    ) -> None:
        service = self._resolve_service(service)
        res = await self.client.create_account(
            service,
            handle=handle, password=password, email=email, invite_code=invite_code,
        )
        if not self._accept_credentials(Nsid.CREATE_ACCOUNT, res):
            return
        self._commit(service, res)
        self.onboarding.start()
        self.holder.set_online(True, False)
        self._load_profile_in_background()
        logger.info("Account created", extra={"did": res.did, "handle": res.handle})

    async def logout(self) -> None:
        # A hydrated session has not been pushed into the client until connect()
        if self.holder.has_session and self._configure_client():
            try:
                await self.client.delete_session()
            except Exception as e:
                logger.warning(f"(Minor issue) Failed to delete session on the server: {e}")
        self.client.clear_credentials()
        self.root.clear_all()

    def _resolve_service(self, service: str | None) -> str:
        return service or self.settings.default_service_url

    def _accept_credentials(self, nsid: Nsid, res: SessionCredentials) -> bool:
        if res.has_tokens and res.did and res.handle:
            return True
        if self.settings.raise_on_missing_credentials:
            raise MissingCredentialsError(nsid.value)
        logger.warning(
            "Response without credentials ignored", extra={"nsid": nsid.value},
        )
        return False

    def _commit(self, service: str, res: SessionCredentials) -> None:
        self.holder.set_state(SessionData(
            service=service,
            access_jwt=res.access_jwt,
            refresh_jwt=res.refresh_jwt,
            handle=Handle(res.handle),
            did=Did(res.did),
        ))
        self._configure_client()

    def _on_tokens_refreshed(self, tokens: RefreshedTokens) -> None:
        self.holder.update_auth_tokens(tokens.access_jwt, tokens.refresh_jwt)

    # --- Background work ---------------------------------------------------------

    def _load_profile_in_background(self) -> None:
        self._spawn(self._load_profile())

    async def _load_profile(self) -> None:
        try:
            await self.profile.load()
        except Exception:
            logger.error("Failed to fetch local user information", exc_info=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def wait_for_background_tasks(self) -> None:
        """Await profile loads started by earlier transactions."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks))

    async def aclose(self) -> None:
        await self.wait_for_background_tasks()
        self._unsubscribe_refresh()
        await self.client.aclose()

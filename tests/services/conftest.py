"""Service test fixtures - fake collaborators + mocked XRPC client.

Invariants:
    - Every test gets a fresh SessionService with no session held
    - FakeRootStore.clear_all clears the session and the profile, like a real root store
    - mock_client is spec'd on XrpcClient: async endpoints become AsyncMock automatically

Design Decisions:
    - Plain fake classes for collaborators: call logs are easier to assert than mock_calls
    - make_session_data / credentials builders keep test bodies short
"""

import pytest
from unittest.mock import MagicMock

from atp_session.config import Settings
from atp_session.core.domain_types import Did, Handle
from atp_session.core.session_data import SessionData
from atp_session.infrastructure.xrpc_client import XrpcClient
from atp_session.schemas.session import SessionCredentials, SessionInfo
from atp_session.services.session_service import SessionService


class FakeProfileStore:
    def __init__(self, did=None, load_error=None):
        self.did = did
        self.load_error = load_error
        self.cleared = 0
        self.loaded = 0

    def clear(self):
        self.cleared += 1
        self.did = None

    async def load(self):
        self.loaded += 1
        if self.load_error:
            raise self.load_error


class FakeOnboarding:
    def __init__(self):
        self.started = 0

    def start(self):
        self.started += 1


class FakeRootStore:
    def __init__(self):
        self.session = None
        self.profile = None
        self.cleared = 0

    def clear_all(self):
        self.cleared += 1
        if self.session is not None:
            self.session.clear()
        if self.profile is not None:
            self.profile.clear()


def make_session_data(**overrides) -> SessionData:
    fields = {
        "service": "https://pds.test",
        "access_jwt": "access-1",
        "refresh_jwt": "refresh-1",
        "handle": Handle("alice.test"),
        "did": Did("did:plc:alice"),
    }
    fields.update(overrides)
    return SessionData(**fields)


def credentials(**overrides) -> SessionCredentials:
    fields = {
        "accessJwt": "a", "refreshJwt": "r",
        "handle": "alice", "did": "did:1",
    }
    fields.update(overrides)
    return SessionCredentials.model_validate(fields)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def mock_client():
    client = MagicMock(spec=XrpcClient)
    client.get_session.return_value = SessionInfo(
        did="did:plc:alice", handle="alice.test",
    )
    return client


@pytest.fixture
def profile():
    return FakeProfileStore()


@pytest.fixture
def onboarding():
    return FakeOnboarding()


@pytest.fixture
def root(profile):
    r = FakeRootStore()
    r.profile = profile
    return r


@pytest.fixture
def service(mock_client, root, profile, onboarding, settings):
    svc = SessionService(mock_client, root, profile, onboarding, settings=settings)
    root.session = svc
    return svc


@pytest.fixture
def seeded_service(service):
    """SessionService already holding a hydrated (unverified) session."""
    service.holder.set_state(make_session_data())
    return service


@pytest.fixture
def make_data():
    return make_session_data


@pytest.fixture
def make_credentials():
    return credentials

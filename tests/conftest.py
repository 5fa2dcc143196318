"""Root conftest - shared test configuration."""

import os

import pytest

# Ensure tests never pick up a developer's real account service settings
os.environ.setdefault("ATP_SESSION_DEFAULT_SERVICE_URL", "https://pds.test")
os.environ.setdefault("ATP_SESSION_LOG_FORMAT", "text")


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    from atp_session.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

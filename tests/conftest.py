import pytest

import adjourn.main as main
from adjourn.muse import get_muse_rate_limiter


@pytest.fixture(autouse=True)
def disable_lifecycle(monkeypatch):
    async def noop():
        return None

    for name in (
        "startup_db",
        "shutdown_db",
        "startup_auth_client",
        "shutdown_auth_client",
        "startup_muse_client",
        "shutdown_muse_client",
        "startup_transcribe_client",
        "shutdown_transcribe_client",
    ):
        monkeypatch.setattr(main, name, noop)
    yield


@pytest.fixture(autouse=True)
def reset_muse_limits():
    get_muse_rate_limiter().reset()
    yield
    get_muse_rate_limiter().reset()

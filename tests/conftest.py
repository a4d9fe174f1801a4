"""Shared test fixtures for ghstubs.

Provides isolated config directories, client settings pointing at a
throwaway disk cache, a recording mock transport, and an initialized
process-wide factory. Global state (output manager, factory) is reset
after every test.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from ghstubs.app import _configure_logging
from ghstubs.factory import ServiceFactory, init_client, reset_factory
from ghstubs.models import CacheConfig, ClientSettings
from ghstubs.output import get_output, reset_output

BASE_URL = "https://api.github.test"


# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> None:
    """Drop the global OutputManager and factory after every test.

    The OutputManager and any Rich log handler hold the streams CliRunner
    swapped in; the factory holds an open disk cache under tmp_path.
    """
    yield
    _configure_logging(get_output(), verbose=False, http_debug=False)
    reset_output()
    reset_factory()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the XDG directories at tmp_path and clear GHSTUBS_* variables."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "GHSTUBS_BASE_URL",
        "GHSTUBS_DEBUG",
        "GHSTUBS_CACHE_DIR",
        "GHSTUBS_TOKEN_SOURCE",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def settings(isolated_config: Path) -> ClientSettings:
    """Settings with a per-test disk cache and a fake base URL."""
    return ClientSettings(
        base_url=BASE_URL,
        cache=CacheConfig(directory=str(isolated_config / "http-cache")),
    )


# ---------------------------------------------------------------------------
# Mock network
# ---------------------------------------------------------------------------


class Recorder:
    """MockTransport handler that records requests and delegates to ``responder``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def factory(settings: ClientSettings, recorder: Recorder) -> ServiceFactory:
    """The process-wide factory, wired to the recording mock transport."""
    return init_client(settings, transport=httpx.MockTransport(recorder))


@pytest.fixture
def debug_factory(settings: ClientSettings, recorder: Recorder) -> ServiceFactory:
    """Like ``factory`` but with the diagnostic stages enabled."""
    return init_client(
        settings.model_copy(update={"debug": True}),
        transport=httpx.MockTransport(recorder),
    )

"""Shared pytest fixtures for tecton-access tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from tecton_access.core.principal import Principal
from tecton_access.features.reconcile.fetcher import StateFetcher
from tecton_access.features.reconcile.service import Reconciler
from tecton_access.settings import reload_settings

from tests.support import InMemoryBackend

_SETTINGS_ENV = (
    "TECTON_ACCESS_URL",
    "TECTON_ACCESS_API_KEY",
    "TECTON_ACCESS_CLI_PATH",
    "TECTON_ACCESS_TIMEOUT_SECONDS",
    "TECTON_ACCESS_DIRECT_GRANTS_ONLY",
    "TECTON_ACCESS_LOG_LEVEL",
    "TECTON_ACCESS_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """Keep settings independent of the developer's environment and .env file."""

    for var in _SETTINGS_ENV:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    reload_settings()
    yield
    for var in _SETTINGS_ENV:
        monkeypatch.delenv(var, raising=False)
    reload_settings()


@pytest.fixture()
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture()
def alice() -> Principal:
    return Principal.user("alice")


@pytest.fixture()
def reconciler(backend: InMemoryBackend) -> Reconciler:
    return Reconciler(StateFetcher(backend), backend)

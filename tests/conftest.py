import os
import tempfile
from pathlib import Path

import platformdirs
import pytest
import requests
from registry_helpers import (
    VPC_SOURCE,
    FakeFetchEngine,
    FakeRegistrySession,
    registry_routes,
)

from tfrget import utils

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.send."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used by the test modules."""
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: multi-component tests")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Isolate environment inputs, config directories and temporary files for each test.

    Clears registry-related environment variables, points HOME and the platformdirs
    config dir at temp paths, redirects tempfile to a per-test directory, blocks
    real HTTP traffic, and resets the shared HTTP session.
    """
    base = tmp_path_factory.mktemp("tfrget")
    home_dir = base / "home"
    config_dir = base / "config"
    temp_dir = base / "tmp"
    for path in (home_dir, config_dir, temp_dir):
        path.mkdir(parents=True, exist_ok=True)

    for name in list(os.environ):
        if name.startswith("TF_TOKEN_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("TG_TF_REGISTRY_TOKEN", raising=False)
    monkeypatch.delenv("TG_TF_DEFAULT_REGISTRY_HOST", raising=False)
    monkeypatch.delenv("HTTPS_PROXY", raising=False)
    monkeypatch.delenv("https_proxy", raising=False)
    monkeypatch.setenv("HOME", str(home_dir))

    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(tempfile, "tempdir", str(temp_dir))

    monkeypatch.setattr(requests.Session, "send", _block_network)
    monkeypatch.setattr(utils, "_shared_session", None)


@pytest.fixture
def temp_root() -> Path:
    """The per-test directory that tempfile creates staging areas in."""
    return Path(tempfile.gettempdir())


@pytest.fixture
def fake_session():
    """A FakeRegistrySession serving the VPC module through X-Terraform-Get."""
    return FakeRegistrySession(registry_routes({"X-Terraform-Get": VPC_SOURCE}))


@pytest.fixture
def fake_engine():
    """A FakeFetchEngine with no trees registered."""
    return FakeFetchEngine()

"""
Pytest configuration and fixtures for rackbridge tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from rackbridge.env import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from rackbridge.config import RackConfig  # noqa: E402
from rackbridge.context import DirectoryRackContext, set_default_context  # noqa: E402
from rackbridge.env import ContainerRequest  # noqa: E402


@pytest.fixture
def app_root(tmp_path):
    """Empty application root directory."""
    return tmp_path


@pytest.fixture
def make_context(app_root):
    """Build a DirectoryRackContext over the application root."""

    def _make(**config):
        return DirectoryRackContext(app_root, RackConfig(**config))

    return _make


@pytest.fixture
def rack_context(make_context):
    return make_context(server_info="rackbridge-test")


@pytest.fixture
def sample_request(rack_context):
    """A typical POST request."""
    return ContainerRequest(
        method="POST",
        scheme="http",
        server_name="example.org",
        server_port=8080,
        script_name="/shop",
        path_info="/orders",
        query_string="page=2",
        remote_addr="10.0.0.7",
        content_type="application/json",
        headers={
            "Content-Type": "application/json",
            "Content-Length": "9",
            "Accept": "application/json",
            "X-Forwarded-For": "192.168.1.20",
        },
        body=b'{"id": 1}',
        context=rack_context,
    )


@pytest.fixture(autouse=True)
def clear_default_context():
    """Never leak a process default context between tests."""
    yield
    set_default_context(None)

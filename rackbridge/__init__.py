"""
rackbridge - Bridge a request container and isolated application runtimes.

rackbridge sits between a host container (anything that parses HTTP and
hands over request objects) and applications loaded from entry scripts:

- **Environment Adapter**: Converts container requests into the CGI-like
  environment applications expect, lazily and with attribute overrides
- **Application Factory**: Resolves the entry script, creates isolated
  runtimes and manages application lifecycles
- **Error Application**: A shared fallback built lazily, exactly once
- **Buffer Policy**: One request body buffering policy per process

Quick Start:
    >>> from rackbridge import DefaultApplicationFactory, DirectoryRackContext
    >>> from rackbridge import ContainerRequest, EnvironmentAdapter
    >>>
    >>> context = DirectoryRackContext("/srv/app")
    >>> factory = DefaultApplicationFactory()
    >>> factory.init(context)
    >>>
    >>> env = EnvironmentAdapter.create(ContainerRequest(path_info="/", context=context))
    >>> app = factory.get_application()
    >>> status, headers, body = app.call(env)
    >>> factory.finished_with_application(app)
"""

__version__ = "0.1.0"
__license__ = "MIT"

from rackbridge.application import (
    DefaultApplicationFactory,
    DefaultErrorApplication,
    RackApplication,
)
from rackbridge.config import RackConfig
from rackbridge.context import (
    DirectoryRackContext,
    RackContext,
    get_default_context,
    set_default_context,
)
from rackbridge.env import ContainerRequest, Environment, EnvironmentAdapter

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration and context
    "RackConfig",
    "RackContext",
    "DirectoryRackContext",
    "get_default_context",
    "set_default_context",
    # Environment
    "ContainerRequest",
    "Environment",
    "EnvironmentAdapter",
    # Applications
    "DefaultApplicationFactory",
    "DefaultErrorApplication",
    "RackApplication",
]

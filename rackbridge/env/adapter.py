"""
Environment Adapter.

Converts a container request (RequestSource) into the environment mapping
applications expect.

Two modes:
    - Eager: ``EnvironmentAdapter.create(source)`` / ``populate()`` loads
      every builtin, variable and header up front.
    - Lazy: ``EnvironmentAdapter(source).to_hash()`` only pre-loads request
      attributes; everything else is computed on first access.

Precedence:
    Request attributes are always loaded first (at construction) and are
    never overwritten: every later pass skips keys already present. This
    lets a container (or a filter in front of the dispatcher) override any
    CGI variable by setting a request attribute of the same name.

The eager and lazy paths share the same per-key loaders.
"""

from __future__ import annotations

import logging
import platform
import re
from typing import TYPE_CHECKING, Any

from .environment import HEADER_PREFIX, Environment, KeyCategory, classify_key

if TYPE_CHECKING:
    from rackbridge.context import RackContext

    from .request import RequestSource

logger = logging.getLogger(__name__)

RACK_VERSION = (1, 3)
RACK_RELEASE = "1.3"

BUILTINS = (
    "rack.version",
    "rack.input",
    "rack.errors",
    "rack.url_scheme",
    "rack.multithread",
    "rack.multiprocess",
    "rack.run_once",
    "container.request",
    "container.response",
    "container.context",
    "rackbridge.context",
    "rackbridge.version",
    "rackbridge.python.version",
    "rackbridge.rack.release",
)

VARIABLES = (
    "CONTENT_TYPE",
    "CONTENT_LENGTH",
    "PATH_INFO",
    "QUERY_STRING",
    "REMOTE_ADDR",
    "REMOTE_HOST",
    "REMOTE_USER",
    "REQUEST_METHOD",
    "REQUEST_URI",
    "SCRIPT_NAME",
    "SERVER_NAME",
    "SERVER_PORT",
    "SERVER_SOFTWARE",
)

# Represented only through CONTENT_TYPE / CONTENT_LENGTH
CONTENT_HEADER_NAMES = re.compile(r"^Content-(Type|Length)$", re.IGNORECASE)


def header_key(name: str) -> str:
    """``X-Forwarded-For`` -> ``HTTP_X_FORWARDED_FOR``"""
    return f"{HEADER_PREFIX}{name.upper().replace('-', '_')}"


def header_name(key: str) -> str:
    """``HTTP_X_FORWARDED_FOR`` -> ``X-Forwarded-For``"""
    name = key[len(HEADER_PREFIX):] if key.startswith(HEADER_PREFIX) else key
    return "-".join(part.capitalize() for part in name.split("_"))


def _non_negative(value: Any) -> int | None:
    """Integer value of ``value`` when it is a number >= 0."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


class EnvironmentAdapter:
    """
    Builds the (lazy) environment for one request.

    Example:
        env = EnvironmentAdapter.create(request)          # eager
        env = EnvironmentAdapter(request).to_hash()       # lazy
        env["REQUEST_METHOD"]                             # computed on access
    """

    def __init__(self, source: RequestSource):
        self._source = source
        self._rack_context: RackContext | None = None
        self._env = Environment(self._load_key)
        # Attributes may override anything computed later
        self._load_attributes()

    @classmethod
    def create(cls, source: RequestSource) -> Environment:
        """Create a fully populated environment."""
        return cls(source).populate()

    @property
    def source(self) -> RequestSource:
        return self._source

    def populate(self) -> Environment:
        """Eagerly load builtins, variables and headers; return the environment."""
        self._load_builtins()
        self._load_variables()
        self._load_headers()
        return self._env

    def to_hash(self) -> Environment:
        """The (lazy) environment."""
        return self._env

    # =========================================================================
    # Eager passes
    # =========================================================================

    def _load_attributes(self) -> None:
        env = self._env
        for name in self._source.attribute_names() or ():
            value = self._source.get_attribute(name)
            if name in ("SERVER_PORT", "CONTENT_LENGTH"):
                number = _non_negative(value)
                if number is not None:
                    env[name] = str(number)
            elif name == "CONTENT_TYPE":
                if value is not None:
                    env[name] = str(value)
            else:
                env[name] = "" if value is None else str(value)

    def _load_builtins(self) -> None:
        for key in BUILTINS:
            if key not in self._env:
                self._load_builtin(self._env, key)

    def _load_variables(self) -> None:
        for key in VARIABLES:
            if key not in self._env:
                self._load_variable(self._env, key)

    def _load_headers(self) -> None:
        # Containers may deny header access altogether
        names = self._source.header_names()
        if names is None:
            return
        env = self._env
        for name in names:
            if CONTENT_HEADER_NAMES.match(name):
                continue
            key = header_key(name)
            if key not in env:
                value = self._source.get_header(name)
                if value is not None:
                    env[key] = value

    # =========================================================================
    # Per-key loaders (shared by eager and lazy paths)
    # =========================================================================

    def _load_key(self, env: Environment, key: str) -> Any:
        """Compute a missing key on demand."""
        # Consumers may freeze a copy of the environment; never touch it
        if env.frozen:
            return None

        category = classify_key(key)
        if category is KeyCategory.BUILTIN:
            return self._load_builtin(env, key)
        if category is KeyCategory.HEADER:
            return self._load_header(env, key)
        return self._load_variable(env, key)

    def _load_header(self, env: Environment, key: str) -> str | None:
        name = header_name(key)
        if CONTENT_HEADER_NAMES.match(name):
            return None
        value = self._source.get_header(name)
        if value is None:
            return None
        return env.fill(key, value)

    def _load_builtin(self, env: Environment, key: str) -> Any:
        source = self._source
        if key == "rack.version":
            value: Any = RACK_VERSION
        elif key == "rack.multithread":
            value = True
        elif key == "rack.multiprocess":
            value = False
        elif key == "rack.run_once":
            value = False
        elif key == "rack.input":
            value = source.input_stream()
        elif key == "rack.errors":
            value = self.rack_context.errors
        elif key == "rack.url_scheme":
            value = source.scheme
            if value == "https":
                env.fill("HTTPS", "on")
        elif key == "container.request":
            value = source.request if hasattr(source, "request") else source
        elif key == "container.response":
            value = source.response if hasattr(source, "response") else source
        elif key == "container.context":
            value = self.container_context
        elif key == "rackbridge.context":
            value = self.rack_context
        elif key == "rackbridge.version":
            from rackbridge import __version__

            value = __version__
        elif key == "rackbridge.python.version":
            value = platform.python_version()
        elif key == "rackbridge.rack.release":
            value = RACK_RELEASE
        else:
            return None

        if value is None:
            return None
        return env.fill(key, value)

    def _load_variable(self, env: Environment, key: str) -> Any:
        source = self._source
        if key == "CONTENT_TYPE":
            value: Any = source.content_type
        elif key == "CONTENT_LENGTH":
            length = _non_negative(source.content_length)
            value = None if length is None else str(length)
        elif key == "PATH_INFO":
            value = source.path_info
        elif key == "REQUEST_URI":
            value = source.request_uri
        elif key == "SCRIPT_NAME":
            value = source.script_name
        elif key == "QUERY_STRING":
            value = source.query_string or ""
        elif key == "REMOTE_ADDR":
            value = source.remote_addr or ""
        elif key == "REMOTE_HOST":
            value = source.remote_host or ""
        elif key == "REMOTE_USER":
            value = source.remote_user or ""
        elif key == "REQUEST_METHOD":
            value = source.method or "GET"
        elif key == "SERVER_NAME":
            value = source.server_name or ""
        elif key == "SERVER_PORT":
            value = str(source.server_port)
        elif key == "SERVER_SOFTWARE":
            value = self.rack_context.server_info
        else:
            return None

        if value is None:
            return None
        return env.fill(key, value)

    # =========================================================================
    # Context lookup
    # =========================================================================

    @property
    def rack_context(self) -> RackContext:
        """
        The RackContext for this request.

        Raises:
            MissingContextError: If the request has none and no process
                default context is registered
        """
        if self._rack_context is None:
            if hasattr(self._source, "context"):
                self._rack_context = self._source.context
            else:
                from rackbridge.context import get_default_context

                self._rack_context = get_default_context()
                logger.debug("[env] Request has no context, using the process default")
        return self._rack_context

    @property
    def container_context(self) -> object:
        if hasattr(self._source, "container_context"):
            return self._source.container_context
        return self.rack_context.container_context

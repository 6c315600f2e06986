"""
Runtime Builder.

A runtime instance is one isolated execution context for entry scripts.
Each instance owns:
- A private module namespace the script runs in
- A private copy of the process environment variables (``ENV``)
- The argument list (``ARGV``)
- The RackContext, bound as ``container_context``

The script builds its application by calling ``run(app)``. Scripts never
see (or mutate) ``os.environ`` through ``ENV``, so applications cannot
affect the host or sibling applications.

Usage:
    config = RuntimeConfig.from_config(rack_config)
    runtime = ScriptRuntime(config, context)
    app = runtime.build_application("run(lambda env: (200, {}, [b'ok']))", "<config>")
    runtime.tear_down()
"""

from __future__ import annotations

import builtins
import logging
import os
import platform
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from rackbridge.errors import ApplicationInitError, RackError

if TYPE_CHECKING:
    from rackbridge.config import RackConfig
    from rackbridge.context import RackContext

logger = logging.getLogger(__name__)

SCRIPT_MODULE_NAME = "__rackup__"


def empty_application(env: Any) -> tuple[int, dict[str, str], list[bytes]]:
    """Application used when the entry script never calls ``run``."""
    return 404, {"Content-Type": "text/plain"}, []


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """
    Configuration shared by every runtime a factory creates.

    Attributes:
        arguments: Runtime argument list (exposed as ``ARGV``)
        compat_version: Compatibility mode hint (exposed as ``COMPAT_VERSION``)
        ignore_environment: Start with an empty ``ENV`` (``PATH`` set to "")
        update_native_env: Whether ``ENV`` writes reach ``os.environ`` (never)
        home: Interpreter home directory hint (exposed as ``PYTHON_HOME``)
    """

    arguments: tuple[str, ...] = ()
    compat_version: str | None = None
    ignore_environment: bool = False
    update_native_env: bool = False
    home: str | None = None

    @classmethod
    def from_config(cls, config: RackConfig) -> RuntimeConfig:
        home = sys.prefix
        # Trailing separators confuse some hosts
        if home and home.endswith(os.sep) and len(home) > 1:
            home = home.rstrip(os.sep)
        return cls(
            arguments=tuple(config.runtime_arguments),
            compat_version=config.compat_version,
            ignore_environment=config.ignore_environment,
            update_native_env=False,
            home=home,
        )

    @property
    def version_string(self) -> str:
        from rackbridge import __version__

        return (
            f"rackbridge {__version__} on {platform.python_implementation()} "
            f"{platform.python_version()}"
        )


class ScriptRuntime:
    """
    One isolated runtime instance.

    A runtime is created by the application factory, loads exactly one
    application object and is torn down with the application that owns it.
    """

    def __init__(self, config: RuntimeConfig, context: RackContext):
        self.config = config
        self.context = context
        self.captured: list[ApplicationInitError] = []
        self._application: Callable[..., Any] | None = None
        self._torn_down = False

        if config.ignore_environment:
            self.environ: dict[str, str] = {"PATH": ""}
        else:
            self.environ = dict(os.environ)

        self.namespace: dict[str, Any] = {
            "__name__": SCRIPT_MODULE_NAME,
            "__builtins__": builtins,
            "container_context": context,
            "ENV": self.environ,
            "ARGV": list(config.arguments),
            "PYTHON_HOME": config.home,
            "COMPAT_VERSION": config.compat_version,
            "run": self._run,
        }

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def _run(self, app: Callable[..., Any]) -> Callable[..., Any]:
        if not callable(app):
            raise TypeError(f"run() expects a callable application, got {type(app).__name__}")
        self._application = app
        return app

    def evaluate(self, source: str, filename: str = "<script>") -> None:
        """Execute source code in this runtime's namespace."""
        if self._torn_down:
            raise RackError("runtime has been torn down")
        code = compile(source, filename, "exec")
        exec(code, self.namespace)

    def build_application(self, script: str, filename: str | None = None) -> Callable[..., Any]:
        """
        Build the application object from an entry script.

        Args:
            script: Entry script source
            filename: Label used in tracebacks

        Returns:
            The application passed to ``run()`` (or the empty application)

        Raises:
            ApplicationInitError: If the script fails
        """
        filename = filename or "<config>"
        self._application = None
        try:
            self.evaluate(script, filename)
        # Scripts calling sys.exit() fail like any other script
        except (Exception, SystemExit) as e:
            raise ApplicationInitError(
                f"failed to build application from {filename}: {e}",
                filename=filename,
                runtime=self,
            ) from e

        if self._application is None:
            logger.debug(f"[runtime] {filename} did not call run(), using empty application")
            return empty_application
        return self._application

    def tear_down(self) -> None:
        """Release the namespace; safe to call more than once."""
        if self._torn_down:
            return
        self._torn_down = True
        self._application = None
        self.namespace.clear()
        self.environ.clear()
        logger.debug("[runtime] Runtime torn down")

"""
Application instances.

An application instance wraps one application object (and, for
runtime-backed instances, the runtime that owns it) with an explicit
lifecycle:

    CREATED --init()--> INITIALIZED --destroy()--> DESTROYED

- ``call(env)`` is only allowed while INITIALIZED
- ``destroy()`` is irreversible and idempotent
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from rackbridge.errors import ApplicationStateError

if TYPE_CHECKING:
    from rackbridge.context import RackContext
    from rackbridge.runtime.builder import ScriptRuntime

logger = logging.getLogger(__name__)

# Builds the application object inside a runtime
ApplicationObjectFactory = Callable[["ScriptRuntime"], Callable[..., Any]]


class ApplicationState(str, Enum):
    """Lifecycle state of an application instance."""

    CREATED = "created"
    INITIALIZED = "initialized"
    DESTROYED = "destroyed"


class RackApplication:
    """
    Base application instance.

    Subclasses provide the application object in ``init()`` (via
    ``set_application``) and release resources in ``_release()``.
    """

    def __init__(self) -> None:
        self._application: Callable[..., Any] | None = None
        self._state = ApplicationState.CREATED
        self._state_lock = threading.Lock()

    @property
    def state(self) -> ApplicationState:
        return self._state

    @property
    def application(self) -> Callable[..., Any] | None:
        """The loaded application object."""
        return self._application

    def set_application(self, application: Callable[..., Any]) -> None:
        self._application = application
        self._state = ApplicationState.INITIALIZED

    def init(self) -> None:
        """Load the application object."""
        raise NotImplementedError

    def call(self, env: Any) -> Any:
        """
        Invoke the application with an environment.

        Raises:
            ApplicationStateError: If the instance is not initialized
        """
        if self._state is not ApplicationState.INITIALIZED or self._application is None:
            raise ApplicationStateError(f"application is {self._state.value}, not initialized")
        return self._application(env)

    def destroy(self) -> None:
        """Tear the instance down; later calls are no-ops."""
        with self._state_lock:
            if self._state is ApplicationState.DESTROYED:
                return
            self._state = ApplicationState.DESTROYED
        self._application = None
        self._release()
        logger.debug(f"[application] Destroyed {type(self).__name__}")

    def _release(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} state={self._state.value}>"


class RuntimeApplication(RackApplication):
    """
    Application instance backed by its own ScriptRuntime.

    The runtime is created up front (state CREATED); ``init()`` runs the
    application object factory inside it.
    """

    def __init__(
        self,
        runtime: ScriptRuntime,
        app_factory: ApplicationObjectFactory,
        *,
        on_failure: Callable[[BaseException], None] | None = None,
    ):
        super().__init__()
        self.runtime = runtime
        self._app_factory = app_factory
        self._on_failure = on_failure

    def init(self) -> None:
        if self._state is ApplicationState.DESTROYED:
            raise ApplicationStateError("application is destroyed")
        try:
            application = self._app_factory(self.runtime)
        except Exception as e:
            if self._on_failure is not None:
                self._on_failure(e)
            raise
        self.set_application(application)

    def _release(self) -> None:
        self.runtime.tear_down()


class DefaultErrorApplication(RackApplication):
    """
    Minimal error application.

    Used when the error application is disabled or cannot be built: it never
    allocates a runtime and answers every request with an empty 500.
    """

    def __init__(self, context: RackContext | None = None):
        super().__init__()
        self._context = context
        self.set_application(self._respond)

    def init(self) -> None:
        pass

    def _respond(self, env: Any) -> tuple[int, dict[str, str], list[bytes]]:
        exception = env.get("rack.exception") if hasattr(env, "get") else None
        if exception is not None and self._context is not None:
            self._context.log(logging.DEBUG, f"[error_app] Responding to: {exception!r}")
        return 500, {"Content-Type": "text/plain"}, []

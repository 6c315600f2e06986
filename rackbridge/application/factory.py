"""
Application Factory.

The factory is the single entry point a dispatcher uses to obtain
application instances:

    factory = DefaultApplicationFactory()
    factory.init(context)                     # once, at startup

    app = factory.get_application()           # per request (or per pool slot)
    try:
        response = app.call(env)
    finally:
        factory.finished_with_application(app)

    factory.get_error_application()           # when get_application() fails
    factory.destroy()                         # at shutdown

Instances are not managed here: every ``get_application()`` builds a new
runtime and a new application object. Pooling or sharing instances is up
to the dispatcher. The only shared state is the error application, which
is created lazily under a lock and destroyed exactly once.

Failure handling:
    - Entry script failures are captured (best effort) and re-raised
    - Error application failures are logged and degrade to the minimal
      DefaultErrorApplication; they never propagate
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

from rackbridge.errors import RackInitializationError
from rackbridge.runtime import (
    CONFIG_LABEL,
    BufferPolicyConfigurator,
    RuntimeConfig,
    ScriptLocation,
    ScriptResolver,
    ScriptRuntime,
)

from .base import DefaultErrorApplication, RackApplication, RuntimeApplication
from .error_app import DEFAULT_ERROR_APP_SCRIPT

if TYPE_CHECKING:
    from rackbridge.context import RackContext

logger = logging.getLogger(__name__)

DEFAULT_ERROR_APP_LABEL = "<default error app>"


# =============================================================================
# Failure capture
# =============================================================================


def capture_failure(error: BaseException, context: RackContext | None) -> bool:
    """
    Ask a failure to capture and store its diagnostics.

    Any exception raised while capturing (including a failure object that
    has no capture hooks) is logged and discarded. The caller re-raises the
    original failure.

    Returns:
        True if both hooks ran
    """
    try:
        error.capture()
        error.store()
    except Exception as e:
        message = "[factory] Failed to capture exception message"
        if context is not None:
            context.log(logging.INFO, message, e)
        else:
            logger.info(message, exc_info=True)
        return False
    return True


# =============================================================================
# Shared error application cell
# =============================================================================


class ErrorApplicationCell:
    """
    Lock guarded holder for the shared error application.

    ``get_or_create`` uses double-checked locking so the fast path (already
    built) does not take the lock, while concurrent first calls build the
    application exactly once. Seeding and destruction take the same lock.
    """

    def __init__(self) -> None:
        self._application: RackApplication | None = None
        self._lock = threading.Lock()

    @property
    def application(self) -> RackApplication | None:
        return self._application

    def get_or_create(self, create: Callable[[], RackApplication]) -> RackApplication:
        application = self._application
        if application is None:
            with self._lock:
                application = self._application
                if application is None:
                    application = create()
                    self._application = application
        return application

    def set(self, application: RackApplication | None) -> None:
        with self._lock:
            self._application = application

    def destroy(self) -> bool:
        """Destroy the held application; returns False when there was none."""
        if self._application is None:
            return False
        with self._lock:
            application = self._application
            if application is None:
                return False
            application.destroy()
            self._application = None
        return True


# =============================================================================
# Factory
# =============================================================================


@runtime_checkable
class FactoryDecorator(Protocol):
    """A factory wrapping another factory (pooling, sharing, ...)."""

    @property
    def delegate(self) -> Any:
        ...


def get_real_factory(factory: Any) -> Any:
    """Unwrap (possibly nested) factory decorators."""
    while isinstance(factory, FactoryDecorator):
        factory = factory.delegate
    return factory


class DefaultApplicationFactory:
    """
    Creates a new application instance on each ``get_application()`` call.

    Exceptions are left to the caller (an outer factory or the dispatcher);
    they are not wrapped here.
    """

    def __init__(self) -> None:
        self._context: RackContext | None = None
        self._location: ScriptLocation | None = None
        self._runtime_config: RuntimeConfig | None = None
        self._error_application = ErrorApplicationCell()

    @property
    def context(self) -> RackContext | None:
        return self._context

    @property
    def rackup_script(self) -> str | None:
        return self._location.script if self._location is not None else None

    @property
    def rackup_location(self) -> str | None:
        return self._location.label if self._location is not None else None

    @property
    def runtime_config(self) -> RuntimeConfig | None:
        return self._runtime_config

    def init(self, context: RackContext) -> None:
        """
        One-time setup: resolve the entry script, build the runtime config
        and configure request body buffering.

        Raises:
            ResolutionReadError: If the entry script exists but can't be read
        """
        self._context = context
        self._location = ScriptResolver(context).resolve()
        self._runtime_config = RuntimeConfig.from_config(context.config)
        context.log(logging.INFO, self._runtime_config.version_string)
        context.buffer_policy = BufferPolicyConfigurator(context.config).configure()

    # =========================================================================
    # Applications
    # =========================================================================

    def new_runtime(self) -> ScriptRuntime:
        if self._context is None or self._runtime_config is None:
            raise RackInitializationError("application factory has not been initialized")
        return ScriptRuntime(self._runtime_config, self._context)

    def new_application(self) -> RackApplication:
        """Create an application instance (runtime allocated, not initialized)."""
        return RuntimeApplication(
            self.new_runtime(),
            self.create_application_object,
            on_failure=self._capture,
        )

    def get_application(self) -> RackApplication:
        """Create and initialize an application instance."""
        application = self.new_application()
        application.init()
        return application

    def finished_with_application(self, application: RackApplication | None) -> None:
        """Destroy an application created by this factory."""
        if application is not None:
            application.destroy()

    def create_application_object(self, runtime: ScriptRuntime) -> Callable[..., Any]:
        if self._location is None:
            if self._context is not None:
                self._context.log(
                    logging.WARNING,
                    "no rackup script found - starting empty application!",
                )
            self._location = ScriptLocation(script="", label=CONFIG_LABEL)
        return runtime.build_application(self._location.script, self._location.label)

    def _capture(self, error: BaseException) -> None:
        capture_failure(error, self._context)

    # =========================================================================
    # Error application
    # =========================================================================

    def get_error_application(self) -> RackApplication:
        """The shared error application (built on first use)."""
        if self._context is None and self._error_application.application is None:
            # Not cached: init() must still be able to build the real one
            logger.warning("[factory] Error application requested before init()")
            return DefaultErrorApplication()
        return self._error_application.get_or_create(self.new_error_application)

    def set_error_application(self, application: RackApplication | None) -> None:
        self._error_application.set(application)

    def new_error_application(self) -> RackApplication:
        """
        Build an error application; never raises.

        Returns DefaultErrorApplication when the error application is
        disabled (``error=False``) or cannot be built.
        """
        context = self._context
        if context is None:
            return DefaultErrorApplication()
        if context.config.error is False:
            return DefaultErrorApplication(context)

        application: RackApplication | None = None
        try:
            application = RuntimeApplication(
                self.new_runtime(),
                self.create_error_application_object,
            )
            application.init()
            return application
        except Exception as e:
            context.log(logging.WARNING, "error application could not be initialized", e)
            if application is not None:
                application.destroy()
            return DefaultErrorApplication(context)

    def create_error_application_object(self, runtime: ScriptRuntime) -> Callable[..., Any]:
        location = self._resolve_error_script()
        return runtime.build_application(location.script, location.label)

    def _resolve_error_script(self) -> ScriptLocation:
        context = self._context
        config = context.config

        if config.error_app is not None:
            return ScriptLocation(script=config.error_app, label=CONFIG_LABEL)

        path = config.error_app_path
        if path is not None:
            label = context.get_real_path(path) or path
            try:
                return ScriptLocation(script=context.read_resource(path), label=label)
            except (OSError, UnicodeDecodeError) as e:
                context.log(
                    logging.WARNING,
                    f"failed to read error app path = '{path}' will use default error application",
                    e,
                )

        return ScriptLocation(script=DEFAULT_ERROR_APP_SCRIPT, label=DEFAULT_ERROR_APP_LABEL)

    def destroy(self) -> None:
        """Destroy the shared error application (if it was ever built)."""
        if self._error_application.destroy():
            logger.debug("[factory] Error application destroyed")

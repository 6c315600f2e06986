"""
Exceptions for rackbridge.

Error kinds:
    - RackInitializationError: an application could not be built
    - ResolutionReadError: a matched entry script exists but cannot be read
    - ApplicationInitError: the entry script failed inside a runtime
    - MissingContextError: no enclosing RackContext can be located
    - ApplicationStateError: an application was used outside its lifecycle

Resolution and construction failures propagate to the dispatcher, which is
expected to fall back to the error application. Failures while building the
error application itself never propagate (see application.factory).
"""

from __future__ import annotations

import traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .runtime.builder import ScriptRuntime


class RackError(Exception):
    """Base exception for rackbridge errors."""

    pass


class RackInitializationError(RackError):
    """Raised when an application (or the factory itself) cannot be initialized."""

    pass


class ResolutionReadError(RackInitializationError):
    """
    Raised when a resolved entry script cannot be read.

    This is fatal for factory initialization: resolution does not fall
    through to the next candidate location.
    """

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(message)
        self.path = path


class ApplicationInitError(RackInitializationError):
    """
    Raised when an entry script fails to build its application object.

    The original exception is chained as ``__cause__``. The factory calls
    ``capture()`` and ``store()`` on failure so the error application can
    show what went wrong.
    """

    def __init__(
        self,
        message: str,
        *,
        filename: str | None = None,
        runtime: ScriptRuntime | None = None,
    ):
        super().__init__(message)
        self.filename = filename
        self.runtime = runtime
        self.output: str | None = None

    def capture(self) -> str:
        """Format the underlying failure into ``output``."""
        cause = self.__cause__ or self
        self.output = "".join(
            traceback.format_exception(type(cause), cause, cause.__traceback__)
        )
        return self.output

    def store(self) -> None:
        """Record this failure on the runtime it came from."""
        if self.runtime is not None:
            self.runtime.captured.append(self)


class MissingContextError(RackError):
    """Raised when the enclosing RackContext cannot be located."""

    pass


class ApplicationStateError(RackError):
    """Raised when an application is called outside the Initialized state."""

    pass

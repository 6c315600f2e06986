"""
Application layer.

Application instances and the factory managing their lifecycle.
"""

from .base import (
    ApplicationState,
    DefaultErrorApplication,
    RackApplication,
    RuntimeApplication,
)
from .error_app import DEFAULT_ERROR_APP_SCRIPT, ErrorApp
from .factory import (
    DefaultApplicationFactory,
    ErrorApplicationCell,
    FactoryDecorator,
    capture_failure,
    get_real_factory,
)

__all__ = [
    "ApplicationState",
    "DEFAULT_ERROR_APP_SCRIPT",
    "DefaultApplicationFactory",
    "DefaultErrorApplication",
    "ErrorApp",
    "ErrorApplicationCell",
    "FactoryDecorator",
    "RackApplication",
    "RuntimeApplication",
    "capture_failure",
    "get_real_factory",
]

"""
rackbridge Runtime Layer.

Everything needed to turn configuration into a live runtime instance:
    - ScriptResolver: locates the entry script
    - RuntimeConfig / ScriptRuntime: isolated execution contexts
    - BufferPolicyConfigurator: request body buffering policy

Design Principle:
    "Resolve once, build many."

    1. The factory resolves the entry script once at startup
    2. Every application gets its own runtime built from the same config
    3. Runtimes are torn down with the application that owns them
"""

from .buffers import BufferPolicyConfigurator
from .builder import RuntimeConfig, ScriptRuntime, empty_application
from .resolver import CONFIG_LABEL, ScriptLocation, ScriptResolver

__all__ = [
    "BufferPolicyConfigurator",
    "CONFIG_LABEL",
    "RuntimeConfig",
    "ScriptLocation",
    "ScriptResolver",
    "ScriptRuntime",
    "empty_application",
]

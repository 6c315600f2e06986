"""
Request environment layer.

Builds the environment mapping applications receive from container
requests:
    - Environment: lazily populated, freezable dict
    - EnvironmentAdapter: eager/lazy conversion from a RequestSource
    - ContainerRequest: in-memory RequestSource
    - RewindableInput: rewindable request body with a BufferPolicy
"""

from .adapter import BUILTINS, VARIABLES, EnvironmentAdapter, header_key, header_name
from .environment import Environment, FrozenEnvironmentError, KeyCategory, classify_key
from .input import (
    DEFAULT_INITIAL_BUFFER_SIZE,
    DEFAULT_MAXIMUM_BUFFER_SIZE,
    BufferPolicy,
    RewindableInput,
)
from .request import ContainerRequest, RequestSource

__all__ = [
    "BUILTINS",
    "BufferPolicy",
    "ContainerRequest",
    "DEFAULT_INITIAL_BUFFER_SIZE",
    "DEFAULT_MAXIMUM_BUFFER_SIZE",
    "Environment",
    "EnvironmentAdapter",
    "FrozenEnvironmentError",
    "KeyCategory",
    "RequestSource",
    "RewindableInput",
    "VARIABLES",
    "classify_key",
    "header_key",
    "header_name",
]

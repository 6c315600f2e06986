"""
Environment store.

The environment handed to applications is a dict subclass whose missing
keys are computed on demand:

    env = Environment(loader)
    env["REQUEST_METHOD"]    # miss -> loader(env, "REQUEST_METHOD") -> cached

Rules:
    - First writer wins: loaders only fill keys that are not present yet.
    - A frozen environment is never mutated. Lookups of missing keys skip
      the loader and return None, leaving the key absent.
    - A key the loader cannot resolve reads as None and stays absent.

Keys fall into three categories by name (see ``classify_key``):
    BUILTIN   protocol reserved names (``rack.*``, ``container.*``, ``rackbridge.*``)
    HEADER    ``HTTP_*`` request headers
    VARIABLE  CGI style metadata (everything else)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional

BUILTIN_PREFIXES = ("rack.", "container.", "rackbridge.")
HEADER_PREFIX = "HTTP_"

# Loader signature: (env, key) -> value or None
KeyLoader = Callable[["Environment", str], Any]


class KeyCategory(str, Enum):
    """Category of an environment key."""

    BUILTIN = "builtin"
    HEADER = "header"
    VARIABLE = "variable"


def classify_key(key: str) -> KeyCategory:
    """Classify an environment key by its name."""
    if key.startswith(BUILTIN_PREFIXES):
        return KeyCategory.BUILTIN
    if key.startswith(HEADER_PREFIX):
        return KeyCategory.HEADER
    return KeyCategory.VARIABLE


class FrozenEnvironmentError(TypeError):
    """Raised when mutating a frozen Environment."""

    pass


class Environment(dict):
    """
    Lazily populated environment mapping.

    ``env[key]`` and ``env.get(key)`` trigger the loader for missing keys;
    ``key in env``, ``keys()`` and iteration only see what has been
    materialized so far.
    """

    def __init__(self, loader: Optional[KeyLoader] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._loader = loader
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> Environment:
        """Mark this environment immutable (returns self)."""
        self._frozen = True
        return self

    def copy(self) -> Environment:
        """Unfrozen shallow copy sharing the same loader."""
        return Environment(self._loader, self)

    def __missing__(self, key: str) -> Any:
        if self._frozen or self._loader is None:
            return None
        value = self._loader(self, key)
        return dict.get(self, key, value)

    def get(self, key: str, default: Any = None) -> Any:
        if dict.__contains__(self, key):
            return dict.__getitem__(self, key)
        value = self.__missing__(key)
        if dict.__contains__(self, key):
            return dict.__getitem__(self, key)
        return default if value is None else value

    def fill(self, key: str, value: Any) -> Any:
        """Store ``value`` unless ``key`` is already present; return the stored value."""
        if dict.__contains__(self, key):
            return dict.__getitem__(self, key)
        self[key] = value
        return value

    # Mutation guards

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenEnvironmentError("can't modify frozen Environment")

    def __setitem__(self, key: str, value: Any) -> None:
        self._check_mutable()
        super().__setitem__(key, value)

    def __delitem__(self, key: str) -> None:
        self._check_mutable()
        super().__delitem__(key)

    def setdefault(self, key: str, default: Any = None) -> Any:
        self._check_mutable()
        return super().setdefault(key, default)

    def update(self, *args, **kwargs) -> None:
        self._check_mutable()
        super().update(*args, **kwargs)

    def pop(self, key: str, *default: Any) -> Any:
        self._check_mutable()
        return super().pop(key, *default)

    def popitem(self) -> tuple[str, Any]:
        self._check_mutable()
        return super().popitem()

    def clear(self) -> None:
        self._check_mutable()
        super().clear()

    def __repr__(self) -> str:
        state = "frozen " if self._frozen else ""
        return f"<{state}Environment {dict.__repr__(self)}>"

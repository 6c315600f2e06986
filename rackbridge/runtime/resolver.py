"""
Entry Script Resolver.

Locates the entry script an application is built from.

Resolution order (first match wins):
    1. ``rackup``: inline script from configuration (label ``<config>``)
    2. ``rackup_path``: resource path from configuration
    3. A search for ``rackup.py`` under ``/app/``, descending one level
       into sub-directories (first match in listing order)
    4. ``/rackup.py`` at the application root, when it exists on disk

A matched resource that cannot be read is fatal (ResolutionReadError);
resolution does not fall through to the next candidate. When nothing
matches, ``resolve()`` returns None and the application starts empty.

Usage:
    resolver = ScriptResolver(context)
    location = resolver.resolve()
    if location is not None:
        print(location.label)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rackbridge.errors import ResolutionReadError

if TYPE_CHECKING:
    from rackbridge.context import RackContext

logger = logging.getLogger(__name__)

CONFIG_LABEL = "<config>"
SCRIPT_NAME = "rackup.py"
SEARCH_ROOT = "/app/"
SEARCH_DEPTH = 1
DEFAULT_SCRIPT_PATH = f"/{SCRIPT_NAME}"


@dataclass(frozen=True, slots=True)
class ScriptLocation:
    """
    A resolved entry script.

    Attributes:
        script: Script source text
        label: Where it came from (a real path or ``<config>``)
    """

    script: str
    label: str

    @property
    def configured(self) -> bool:
        """Whether the script was given inline by configuration."""
        return self.label == CONFIG_LABEL


class ScriptResolver:
    """
    Resolves an application's entry script against a RackContext.

    The resource namespace (listing, real paths, reading) is provided by
    the context; the resolver only encodes the search order.
    """

    def __init__(
        self,
        context: RackContext,
        *,
        script_name: str = SCRIPT_NAME,
        search_root: str = SEARCH_ROOT,
        search_depth: int = SEARCH_DEPTH,
    ):
        self._context = context
        self._script_name = script_name
        self._search_root = search_root
        self._search_depth = search_depth

    def resolve(self) -> ScriptLocation | None:
        """
        Resolve the entry script.

        Returns:
            ScriptLocation, or None when no candidate matched

        Raises:
            ResolutionReadError: If a matched resource cannot be read
        """
        config = self._context.config

        if config.rackup is not None:
            logger.debug("[resolver] Using inline script from configuration")
            return ScriptLocation(script=config.rackup, label=CONFIG_LABEL)

        path = config.rackup_path
        if path is None:
            path = self.find_in_subdirectories(self._search_root, self._search_depth)
        if path is None:
            path = self._default_path()
        if path is None:
            return None

        return self.read(path)

    def read(self, path: str) -> ScriptLocation:
        """
        Read the script at a resource path.

        Raises:
            ResolutionReadError: If the resource cannot be read
        """
        label = self._context.get_real_path(path) or path
        try:
            script = self._context.read_resource(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"[resolver] Failed to read entry script from '{path}' ({e})")
            raise ResolutionReadError(
                f"failed to read entry script input from '{path}'", path=path
            ) from e

        logger.info(f"[resolver] Resolved entry script: {label}")
        return ScriptLocation(script=script, label=label)

    def find_in_subdirectories(self, path: str, level: int) -> str | None:
        """
        Find the script below ``path``, descending at most ``level`` levels.

        Args:
            path: Directory resource path (ending with ``/``)
            level: How many sub-directory levels may still be searched

        Returns:
            Resource path of the first match, or None
        """
        entries = self._context.get_resource_paths(path)
        if entries is None:
            return None

        candidate = f"{path}{self._script_name}"
        if candidate in entries:
            return candidate

        if level > 0:
            for entry in entries:
                if entry.endswith("/"):
                    found = self.find_in_subdirectories(entry, level - 1)
                    if found is not None:
                        return found
        return None

    def _default_path(self) -> str | None:
        # Some hosts do not list the root; look it up on disk directly
        real_path = self._context.get_real_path(f"/{self._script_name}")
        if real_path is not None and os.path.exists(real_path):
            return f"/{self._script_name}"
        return None

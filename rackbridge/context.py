"""
Rack Context.

The RackContext is the enclosing context shared by the factory, every
runtime instance and every request environment. It provides:
- Configuration (RackConfig)
- Logging (a stdlib logger, also behind ``rack.errors``)
- The resource namespace of the application root
- The process buffer policy (set by the factory at startup)

DirectoryRackContext implements the resource namespace over a directory
on disk. Resource paths are absolute, ``/``-separated and relative to that
directory; directory entries are listed with a trailing ``/``.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import BinaryIO

from .config import RackConfig
from .env.input import BufferPolicy
from .errors import MissingContextError

logger = logging.getLogger(__name__)


class RackContext:
    """
    Base context: configuration, logging and an empty resource namespace.

    Hosts that own their own resource lookup subclass this and override
    ``get_resource_paths``, ``get_real_path`` and ``open_resource``.
    """

    def __init__(
        self,
        config: RackConfig | None = None,
        *,
        logger_name: str = "rackbridge.context",
        container_context: object | None = None,
    ):
        self.config = config or RackConfig()
        self.logger = logging.getLogger(logger_name)
        self.buffer_policy = BufferPolicy()
        self.errors = ErrorStream(self)
        self._container_context = container_context

    @property
    def server_info(self) -> str:
        return self.config.server_info

    @property
    def container_context(self) -> object:
        """The container's own context object (this context when it has none)."""
        return self._container_context if self._container_context is not None else self

    def log(self, level: int, message: str, exc: BaseException | None = None) -> None:
        """Log a message, with the traceback of ``exc`` when given."""
        if exc is not None:
            self.logger.log(level, message, exc_info=(type(exc), exc, exc.__traceback__))
        else:
            self.logger.log(level, message)

    def get_resource_paths(self, path: str) -> list[str] | None:
        """List the entries below ``path`` (None when it is not a directory)."""
        return None

    def get_real_path(self, path: str) -> str | None:
        """Map a resource path to a filesystem path (None when unmapped)."""
        return None

    def open_resource(self, path: str) -> BinaryIO:
        """Open a resource for reading."""
        raise FileNotFoundError(path)

    def read_resource(self, path: str, encoding: str = "utf-8") -> str:
        """Read a resource as text."""
        with self.open_resource(path) as stream:
            return stream.read().decode(encoding)


class DirectoryRackContext(RackContext):
    """
    RackContext backed by an application root directory.

    Example:
        context = DirectoryRackContext("/srv/app", RackConfig(rackup_path="/rackup.py"))
        context.get_resource_paths("/app/")   # ["/app/lib/", "/app/rackup.py"]
    """

    def __init__(self, root: str | Path, config: RackConfig | None = None, **kwargs):
        super().__init__(config, **kwargs)
        self.root = Path(root).resolve()

    def _locate(self, path: str) -> Path:
        candidate = (self.root / path.lstrip("/")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise FileNotFoundError(f"Resource outside application root: {path}")
        return candidate

    def get_resource_paths(self, path: str) -> list[str] | None:
        try:
            directory = self._locate(path)
        except FileNotFoundError:
            return None
        if not directory.is_dir():
            return None

        prefix = path if path.endswith("/") else f"{path}/"
        entries = []
        for child in sorted(directory.iterdir()):
            entries.append(f"{prefix}{child.name}/" if child.is_dir() else f"{prefix}{child.name}")
        return entries

    def get_real_path(self, path: str) -> str | None:
        try:
            return str(self._locate(path))
        except FileNotFoundError:
            return None

    def open_resource(self, path: str) -> BinaryIO:
        return self._locate(path).open("rb")


class ErrorStream:
    """
    File-like ``rack.errors`` sink writing to the context logger.

    Text is accumulated until a newline and emitted line by line at ERROR
    level. ``flush`` emits any pending partial line.
    """

    def __init__(self, context: RackContext):
        self._context = context
        self._pending = ""
        self._lock = threading.Lock()

    def write(self, message: str) -> int:
        with self._lock:
            self._pending += str(message)
            *lines, self._pending = self._pending.split("\n")
        for line in lines:
            self._context.log(logging.ERROR, line)
        return len(message)

    def puts(self, *messages: object) -> None:
        for message in messages:
            text = str(message)
            self.write(text if text.endswith("\n") else f"{text}\n")

    def writelines(self, lines) -> None:
        for line in lines:
            self.write(line)

    def flush(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, ""
        if pending:
            self._context.log(logging.ERROR, pending)

    def close(self) -> None:
        """Errors stream is never closed by applications."""
        pass


# =============================================================================
# Process default context
# =============================================================================

_default_context: RackContext | None = None


def set_default_context(context: RackContext | None) -> None:
    """Register (or clear) the process default RackContext."""
    global _default_context
    _default_context = context
    logger.debug(f"[context] Default context {'set' if context is not None else 'cleared'}")


def get_default_context() -> RackContext:
    """
    Get the process default RackContext.

    Raises:
        MissingContextError: If none was registered
    """
    if _default_context is None:
        raise MissingContextError("missing rack context")
    return _default_context

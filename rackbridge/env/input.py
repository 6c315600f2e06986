"""
Rewindable request body input.

The container's request body stream can only be consumed once, while
applications expect ``rack.input`` to support ``rewind()``. RewindableInput
buffers whatever has been read so far: in memory up to the policy's maximum
size, in a temporary file beyond that.

The buffering policy is an explicit value (BufferPolicy) handed to whoever
creates the input, normally ContainerRequest. The application factory
computes it once at startup (see runtime.buffers).
"""

from __future__ import annotations

import io
import logging
import tempfile
from dataclasses import dataclass
from typing import BinaryIO, Iterator

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_BUFFER_SIZE = 16 * 1024
DEFAULT_MAXIMUM_BUFFER_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class BufferPolicy:
    """
    Request body buffering policy.

    Attributes:
        initial_size: Chunk size used when pulling from the source stream
        maximum_size: Bytes kept in memory before spilling to a temp file
    """

    initial_size: int = DEFAULT_INITIAL_BUFFER_SIZE
    maximum_size: int = DEFAULT_MAXIMUM_BUFFER_SIZE


class RewindableInput:
    """
    A read-only, rewindable view over a one-shot binary stream.

    Example:
        body = RewindableInput(raw_stream, BufferPolicy())
        first = body.read()
        body.rewind()
        assert body.read() == first
    """

    def __init__(self, source: BinaryIO | None, policy: BufferPolicy | None = None):
        self._source = source
        self._policy = policy or BufferPolicy()
        self._buffer: BinaryIO = io.BytesIO()
        self._buffered = 0
        self._position = 0
        self._exhausted = source is None
        self._spilled = False
        self._closed = False

    @property
    def policy(self) -> BufferPolicy:
        return self._policy

    @property
    def spilled(self) -> bool:
        """Whether the buffer moved from memory to a temporary file."""
        return self._spilled

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes (everything when negative or None)."""
        self._check_open()
        if size is None or size < 0:
            self._fill()
        else:
            self._fill(self._position + size)
        self._buffer.seek(self._position)
        data = self._buffer.read() if size is None or size < 0 else self._buffer.read(size)
        self._position += len(data)
        return data

    def readline(self, size: int | None = -1) -> bytes:
        self._check_open()
        while True:
            self._buffer.seek(self._position)
            line = self._buffer.readline()
            if line.endswith(b"\n") or self._exhausted:
                break
            if size is not None and 0 <= size <= len(line):
                break
            self._fill(self._buffered + self._policy.initial_size)
        if size is not None and size >= 0:
            line = line[:size]
        self._position += len(line)
        return line

    def readlines(self) -> list[bytes]:
        return list(self)

    def __iter__(self) -> Iterator[bytes]:
        while True:
            line = self.readline()
            if not line:
                return
            yield line

    def each(self) -> Iterator[bytes]:
        return iter(self)

    def rewind(self) -> None:
        """Move back to the start of the body."""
        self._check_open()
        self._position = 0

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed input")

    def _fill(self, upto: int | None = None) -> None:
        """Pull from the source until ``upto`` bytes are buffered (or EOF)."""
        while not self._exhausted and (upto is None or self._buffered < upto):
            chunk = self._source.read(self._policy.initial_size)
            if not chunk:
                self._exhausted = True
                break
            self._append(chunk)

    def _append(self, chunk: bytes) -> None:
        if not self._spilled and self._buffered + len(chunk) > self._policy.maximum_size:
            self._spill()
        self._buffer.seek(0, io.SEEK_END)
        self._buffer.write(chunk)
        self._buffered += len(chunk)

    def _spill(self) -> None:
        spool = tempfile.TemporaryFile()
        spool.write(self._buffer.getvalue())
        self._buffer.close()
        self._buffer = spool
        self._spilled = True
        logger.debug(
            f"[input] Body exceeds {self._policy.maximum_size} bytes, buffering to temp file"
        )

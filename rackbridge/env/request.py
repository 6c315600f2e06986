"""
Container request boundary.

RequestSource is the read-only view of a request that the environment
adapter consumes. Any of its accessors may return None; the adapter applies
the documented defaults.

Optional capabilities are discovered with ``hasattr``:
    context            the RackContext for this request
    request/response   the container's native request/response objects
    container_context  the container's native context object

ContainerRequest is an in-memory implementation used by the FastAPI host
and by tests.
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, BinaryIO, Protocol, runtime_checkable

from .input import BufferPolicy, RewindableInput

if TYPE_CHECKING:
    from rackbridge.context import RackContext


@runtime_checkable
class RequestSource(Protocol):
    """Read-only request capability exposed by the container."""

    method: str | None
    path_info: str | None
    request_uri: str | None
    script_name: str | None
    query_string: str | None
    remote_addr: str | None
    remote_host: str | None
    remote_user: str | None
    content_type: str | None
    content_length: int
    scheme: str | None
    server_name: str | None
    server_port: int

    def attribute_names(self) -> Iterable[str]:
        """Names of the request attributes."""
        ...

    def get_attribute(self, name: str) -> Any:
        """Value of a request attribute (None when unset)."""
        ...

    def header_names(self) -> Iterable[str] | None:
        """Header names, or None when the container denies header access."""
        ...

    def get_header(self, name: str) -> str | None:
        """Header value by (case-insensitive) name."""
        ...

    def input_stream(self) -> Any:
        """The request body stream."""
        ...


class ContainerRequest:
    """
    In-memory RequestSource.

    Example:
        request = ContainerRequest(
            method="POST",
            path_info="/orders",
            headers={"Content-Type": "application/json", "X-Request-Id": "abc"},
            body=b'{"id": 1}',
            context=rack_context,
        )
    """

    def __init__(
        self,
        *,
        method: str | None = "GET",
        scheme: str | None = "http",
        server_name: str | None = "localhost",
        server_port: int = 80,
        script_name: str | None = "",
        path_info: str | None = "/",
        request_uri: str | None = None,
        query_string: str | None = None,
        remote_addr: str | None = None,
        remote_host: str | None = None,
        remote_user: str | None = None,
        content_type: str | None = None,
        content_length: int | None = None,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = (),
        attributes: Mapping[str, Any] | None = None,
        body: bytes | BinaryIO | None = None,
        context: RackContext | None = None,
        buffer_policy: BufferPolicy | None = None,
        request: Any = None,
        response: Any = None,
    ):
        self.method = method
        self.scheme = scheme
        self.server_name = server_name
        self.server_port = server_port
        self.script_name = script_name
        self.path_info = path_info
        self.request_uri = request_uri if request_uri is not None else f"{script_name or ''}{path_info or ''}"
        self.query_string = query_string
        self.remote_addr = remote_addr
        self.remote_host = remote_host
        self.remote_user = remote_user
        self.content_type = content_type

        if isinstance(body, (bytes, bytearray)):
            self._body: BinaryIO | None = io.BytesIO(bytes(body))
            if content_length is None:
                content_length = len(body)
        else:
            self._body = body
        self.content_length = content_length if content_length is not None else -1

        # None means the container does not expose headers at all
        if headers is None:
            self._headers: list[tuple[str, str]] | None = None
        else:
            items = headers.items() if isinstance(headers, Mapping) else headers
            self._headers = [(name, value) for name, value in items]

        self._attributes = dict(attributes or {})
        self._buffer_policy = buffer_policy
        self._input: RewindableInput | None = None

        # Optional capabilities only exist when given
        if context is not None:
            self.context = context
        if request is not None:
            self.request = request
        if response is not None:
            self.response = response

    def attribute_names(self) -> list[str]:
        return list(self._attributes)

    def get_attribute(self, name: str) -> Any:
        return self._attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self._attributes[name] = value

    def header_names(self) -> list[str] | None:
        if self._headers is None:
            return None
        names: list[str] = []
        seen: set[str] = set()
        for name, _ in self._headers:
            if name.lower() not in seen:
                seen.add(name.lower())
                names.append(name)
        return names

    def get_header(self, name: str) -> str | None:
        if self._headers is None:
            return None
        wanted = name.lower()
        values = [value for header, value in self._headers if header.lower() == wanted]
        if not values:
            return None
        return ",".join(values)

    @property
    def buffer_policy(self) -> BufferPolicy:
        if self._buffer_policy is not None:
            return self._buffer_policy
        context = getattr(self, "context", None)
        if context is not None:
            return context.buffer_policy
        return BufferPolicy()

    def input_stream(self) -> RewindableInput:
        """The (memoized) rewindable request body."""
        if self._input is None:
            self._input = RewindableInput(self._body, self.buffer_policy)
        return self._input

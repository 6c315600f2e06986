"""
rackbridge host container.

FastAPI application that dispatches every request to an application built
by the factory:

    request -> ContainerRequest -> EnvironmentAdapter -> app.call(env) -> response

A new application instance is obtained for each request and released when
the response has been rendered. When the application cannot be built the
shared error application answers instead, with the failure stored under
``rack.exception``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from starlette.concurrency import run_in_threadpool

from rackbridge import __version__
from rackbridge.app.dependencies import create_context, create_factory, get_settings
from rackbridge.application import DefaultApplicationFactory
from rackbridge.config import AppSettings
from rackbridge.context import RackContext, set_default_context
from rackbridge.env import ContainerRequest, Environment, EnvironmentAdapter
from rackbridge.errors import RackInitializationError

logger = logging.getLogger(__name__)

METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
DEFAULT_PORTS = {"http": 80, "https": 443}


def to_container_request(request: Request, body: bytes, context: RackContext) -> ContainerRequest:
    """Convert a Starlette request into a ContainerRequest."""
    url = request.url
    headers = [
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in request.headers.raw
    ]
    content_length = request.headers.get("content-length")
    client = request.client

    # scope["path"] includes root_path on current Starlette
    root_path = request.scope.get("root_path", "")
    path_info = request.scope.get("path", "/")
    if root_path and path_info.startswith(root_path):
        rest = path_info[len(root_path):]
        if not rest or rest.startswith("/"):
            path_info = rest

    return ContainerRequest(
        method=request.method,
        scheme=url.scheme,
        server_name=url.hostname or "",
        server_port=url.port or DEFAULT_PORTS.get(url.scheme, 80),
        script_name=root_path,
        path_info=path_info,
        request_uri=url.path,
        query_string=url.query,
        remote_addr=client.host if client else None,
        remote_host=client.host if client else None,
        content_type=request.headers.get("content-type"),
        content_length=int(content_length) if content_length and content_length.isdigit() else None,
        headers=headers,
        body=body,
        context=context,
        request=request,
    )


def render_body(body: Any) -> bytes:
    """Join an application body into bytes, closing it when it can be closed."""
    try:
        chunks = [chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk) for chunk in body]
    finally:
        close = getattr(body, "close", None)
        if callable(close):
            close()
    return b"".join(chunks)


def invoke(factory: DefaultApplicationFactory, env: Environment) -> tuple[int, dict[str, str], bytes]:
    """Run one request through a fresh application (or the error application)."""
    try:
        application = factory.get_application()
    except RackInitializationError as e:
        logger.error(f"[host] Application could not be initialized: {e}")
        env["rack.exception"] = e
        status, headers, body = factory.get_error_application().call(env)
        return status, dict(headers), render_body(body)

    try:
        status, headers, body = application.call(env)
        return status, dict(headers), render_body(body)
    finally:
        factory.finished_with_application(application)


def create_app(
    *,
    factory: DefaultApplicationFactory | None = None,
    context: RackContext | None = None,
    settings: AppSettings | None = None,
) -> FastAPI:
    """
    Create the host FastAPI application.

    Args:
        factory: Application factory (a DefaultApplicationFactory if None)
        context: RackContext (built from settings if None)
        settings: Host settings (read from environment if None)
    """
    settings = settings or get_settings()
    context = context or create_context(settings)
    factory = factory or create_factory()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting rackbridge host...")
        try:
            factory.init(context)
            set_default_context(context)
            logger.info("rackbridge host initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize application factory: {e}", exc_info=True)
            raise

        yield

        logger.info("Shutting down rackbridge host...")
        try:
            factory.destroy()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}", exc_info=True)
        finally:
            set_default_context(None)

    app = FastAPI(
        title="rackbridge",
        description="Host container dispatching requests to script-built applications",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.factory = factory
    app.state.context = context

    @app.api_route("/{path:path}", methods=METHODS, include_in_schema=False)
    async def dispatch(request: Request) -> Response:
        body = await request.body()
        env = EnvironmentAdapter.create(to_container_request(request, body, context))
        status, headers, content = await run_in_threadpool(invoke, factory, env)
        return Response(content=content, status_code=status, headers=headers)

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)

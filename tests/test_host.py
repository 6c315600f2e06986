"""
Tests for the FastAPI host container.

Tests for:
- Request dispatch through the environment adapter
- Error application fallback
- Lifespan init/destroy
"""

import pytest
from fastapi.testclient import TestClient

from starlette.requests import Request

from rackbridge.app.main import create_app, render_body, to_container_request
from rackbridge.config import AppSettings, RackConfig
from rackbridge.context import DirectoryRackContext, get_default_context
from rackbridge.errors import MissingContextError

ECHO_APP = """
def app(env):
    body = env['rack.input'].read()
    text = '|'.join([
        env['REQUEST_METHOD'],
        env['PATH_INFO'],
        env['QUERY_STRING'],
        env['HTTP_X_TEST'] or '-',
        body.decode(),
    ])
    return 200, {'Content-Type': 'text/plain'}, [text]

run(app)
"""


def make_app(app_root, **config):
    context = DirectoryRackContext(app_root, RackConfig(**config))
    settings = AppSettings(app_root=str(app_root))
    return create_app(context=context, settings=settings)


# =============================================================================
# Dispatch Tests
# =============================================================================


class TestDispatch:
    def test_echo(self, app_root):
        app = make_app(app_root, rackup=ECHO_APP)

        with TestClient(app) as client:
            response = client.post("/orders?page=2", content=b"payload", headers={"X-Test": "yes"})

        assert response.status_code == 200
        assert response.text == "POST|/orders|page=2|yes|payload"
        assert response.headers["content-type"] == "text/plain"

    def test_missing_header_is_none(self, app_root):
        app = make_app(app_root, rackup=ECHO_APP)

        with TestClient(app) as client:
            response = client.get("/")

        assert response.text == "GET|/||-|"

    def test_script_from_application_root(self, app_root):
        (app_root / "rackup.py").write_text(ECHO_APP)
        app = make_app(app_root)

        with TestClient(app) as client:
            response = client.delete("/items/7")

        assert response.text == "DELETE|/items/7||-|"

    def test_mounted_under_root_path(self, app_root):
        app = make_app(
            app_root,
            rackup="run(lambda env: (200, {}, [env['SCRIPT_NAME'] + '|' + env['PATH_INFO']]))\n",
        )

        with TestClient(app, root_path="/shop") as client:
            response = client.get("/shop/orders")

        assert response.text == "/shop|/orders"

    def test_empty_application(self, app_root):
        app = make_app(app_root)

        with TestClient(app) as client:
            response = client.get("/anything")

        assert response.status_code == 404


# =============================================================================
# Error Fallback Tests
# =============================================================================


class TestErrorFallback:
    def test_broken_script_uses_error_application(self, app_root):
        app = make_app(app_root, rackup="raise RuntimeError('broken')\n")

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 500
        assert response.text == "500 Internal Server Error\n"

    def test_exiting_script_uses_error_application(self, app_root):
        app = make_app(app_root, rackup="import sys\nsys.exit(3)\n")

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 500
        assert response.text == "500 Internal Server Error\n"

    def test_custom_error_application(self, app_root):
        app = make_app(
            app_root,
            rackup="raise RuntimeError('broken')\n",
            error_app="run(lambda env: (503, {}, [type(env['rack.exception']).__name__.encode()]))\n",
        )

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 503
        assert response.text == "ApplicationInitError"

    def test_disabled_error_application(self, app_root):
        app = make_app(app_root, rackup="raise RuntimeError('broken')\n", error=False)

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 500
        assert response.content == b""


# =============================================================================
# Lifespan Tests
# =============================================================================


class TestLifespan:
    def test_init_and_destroy(self, app_root):
        app = make_app(app_root, rackup=ECHO_APP)
        factory = app.state.factory

        with TestClient(app) as client:
            assert get_default_context() is app.state.context
            assert factory.context is app.state.context
            client.get("/")
            error_app = factory.get_error_application()

        assert error_app.state.value == "destroyed"
        with pytest.raises(MissingContextError):
            get_default_context()


def make_request(path, root_path=""):
    return Request(
        {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": path,
            "root_path": root_path,
            "query_string": b"",
            "headers": [],
        }
    )


class TestToContainerRequest:
    def test_root_path_is_stripped(self, rack_context):
        request = to_container_request(make_request("/shop/orders", "/shop"), b"", rack_context)

        assert request.script_name == "/shop"
        assert request.path_info == "/orders"

    def test_mount_root(self, rack_context):
        request = to_container_request(make_request("/shop", "/shop"), b"", rack_context)

        assert request.path_info == ""

    def test_prefix_of_another_segment(self, rack_context):
        request = to_container_request(make_request("/shopping", "/shop"), b"", rack_context)

        assert request.path_info == "/shopping"

    def test_without_root_path(self, rack_context):
        request = to_container_request(make_request("/orders"), b"", rack_context)

        assert request.script_name == ""
        assert request.path_info == "/orders"


class TestRenderBody:
    def test_mixed_chunks(self):
        assert render_body(["a", b"b", bytearray(b"c")]) == b"abc"

    def test_closes_body(self):
        class Body(list):
            closed = False

            def close(self):
                self.closed = True

        body = Body([b"x"])

        assert render_body(body) == b"x"
        assert body.closed is True

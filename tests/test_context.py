"""
Tests for RackContext and its resource namespace.
"""

import logging

import pytest

from rackbridge.config import RackConfig
from rackbridge.context import (
    DirectoryRackContext,
    RackContext,
    get_default_context,
    set_default_context,
)
from rackbridge.errors import MissingContextError


class TestDirectoryRackContext:
    def test_listing(self, app_root, rack_context):
        (app_root / "app" / "lib").mkdir(parents=True)
        (app_root / "app" / "rackup.py").write_text("")

        assert rack_context.get_resource_paths("/app/") == ["/app/lib/", "/app/rackup.py"]
        assert rack_context.get_resource_paths("/app") == ["/app/lib/", "/app/rackup.py"]

    def test_listing_of_file_or_missing(self, app_root, rack_context):
        (app_root / "rackup.py").write_text("")

        assert rack_context.get_resource_paths("/rackup.py") is None
        assert rack_context.get_resource_paths("/missing/") is None

    def test_real_path(self, app_root, rack_context):
        assert rack_context.get_real_path("/rackup.py") == str(app_root.resolve() / "rackup.py")

    def test_read_resource(self, app_root, rack_context):
        (app_root / "rackup.py").write_text("run(app)\n")

        assert rack_context.read_resource("/rackup.py") == "run(app)\n"

    def test_paths_cannot_escape_root(self, rack_context):
        assert rack_context.get_real_path("/../outside.py") is None
        assert rack_context.get_resource_paths("/../") is None
        with pytest.raises(FileNotFoundError):
            rack_context.open_resource("/../../etc/passwd")

    def test_server_info(self, rack_context):
        assert rack_context.server_info == "rackbridge-test"


class TestRackContext:
    def test_empty_namespace(self):
        context = RackContext()

        assert context.get_resource_paths("/") is None
        assert context.get_real_path("/rackup.py") is None
        with pytest.raises(FileNotFoundError):
            context.read_resource("/rackup.py")

    def test_container_context(self):
        native = object()

        assert RackContext().container_context is not None
        assert RackContext(container_context=native).container_context is native

    def test_log_with_exception(self, caplog):
        context = RackContext(RackConfig())
        caplog.set_level(logging.WARNING, logger="rackbridge.context")

        try:
            raise ValueError("boom")
        except ValueError as e:
            context.log(logging.WARNING, "something failed", e)

        record = caplog.records[-1]
        assert record.getMessage() == "something failed"
        assert record.exc_info[0] is ValueError


class TestErrorStream:
    def test_writes_complete_lines(self, caplog):
        caplog.set_level(logging.ERROR, logger="rackbridge.context")
        errors = RackContext().errors

        errors.write("first line\nsecond ")
        errors.write("line\n")

        assert [r.getMessage() for r in caplog.records] == ["first line", "second line"]
        assert all(r.levelno == logging.ERROR for r in caplog.records)

    def test_puts_and_flush(self, caplog):
        caplog.set_level(logging.ERROR, logger="rackbridge.context")
        errors = RackContext().errors

        errors.puts("one", "two")
        errors.write("partial")
        errors.flush()

        assert [r.getMessage() for r in caplog.records] == ["one", "two", "partial"]


class TestDefaultContext:
    def test_missing(self):
        with pytest.raises(MissingContextError):
            get_default_context()

    def test_set_and_clear(self):
        context = RackContext()

        set_default_context(context)
        assert get_default_context() is context

        set_default_context(None)
        with pytest.raises(MissingContextError):
            get_default_context()

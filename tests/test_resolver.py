"""
Tests for entry script resolution and buffer policy configuration.

Tests for:
- ScriptResolver precedence
- Sub-directory search depth
- Read failures
- BufferPolicyConfigurator
"""

import pytest

from rackbridge.config import RackConfig
from rackbridge.context import DirectoryRackContext
from rackbridge.env import DEFAULT_INITIAL_BUFFER_SIZE, DEFAULT_MAXIMUM_BUFFER_SIZE, BufferPolicy
from rackbridge.errors import ResolutionReadError
from rackbridge.runtime import CONFIG_LABEL, BufferPolicyConfigurator, ScriptResolver

SCRIPT = "run(lambda env: (200, {}, [b'ok']))\n"


def write(root, relative, text=SCRIPT):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class UnreadableContext(DirectoryRackContext):
    """Context whose resources can be listed but not read."""

    def open_resource(self, path):
        raise PermissionError(path)


# =============================================================================
# Precedence Tests
# =============================================================================


class TestPrecedence:
    def test_inline_script_wins(self, app_root, make_context):
        write(app_root, "app/rackup.py")
        context = make_context(rackup="run(object)", rackup_path="/app/rackup.py")

        location = ScriptResolver(context).resolve()

        assert location.script == "run(object)"
        assert location.label == CONFIG_LABEL
        assert location.configured is True

    def test_configured_path(self, app_root, make_context):
        path = write(app_root, "config/site.py", "# site\n")
        context = make_context(rackup_path="/config/site.py")

        location = ScriptResolver(context).resolve()

        assert location.script == "# site\n"
        assert location.label == str(path.resolve())
        assert location.configured is False

    def test_configured_path_beats_search(self, app_root, make_context):
        write(app_root, "app/rackup.py", "# searched\n")
        write(app_root, "custom.py", "# custom\n")
        context = make_context(rackup_path="/custom.py")

        assert ScriptResolver(context).resolve().script == "# custom\n"

    def test_search_beats_root_default(self, app_root, make_context):
        write(app_root, "app/rackup.py", "# searched\n")
        write(app_root, "rackup.py", "# root\n")

        assert ScriptResolver(make_context()).resolve().script == "# searched\n"

    def test_root_default(self, app_root, make_context):
        path = write(app_root, "rackup.py", "# root\n")

        location = ScriptResolver(make_context()).resolve()

        assert location.script == "# root\n"
        assert location.label == str(path.resolve())

    def test_not_found(self, make_context):
        assert ScriptResolver(make_context()).resolve() is None


# =============================================================================
# Search Depth Tests
# =============================================================================


class TestSearch:
    def test_finds_one_level_below(self, app_root, make_context):
        write(app_root, "app/site/rackup.py", "# nested\n")

        location = ScriptResolver(make_context()).resolve()

        assert location is not None
        assert location.script == "# nested\n"

    def test_ignores_two_levels_below(self, app_root, make_context):
        write(app_root, "app/site/deeper/rackup.py", "# too deep\n")

        assert ScriptResolver(make_context()).resolve() is None

    def test_first_match_in_listing_order(self, app_root, make_context):
        write(app_root, "app/beta/rackup.py", "# beta\n")
        write(app_root, "app/alpha/rackup.py", "# alpha\n")

        assert ScriptResolver(make_context()).resolve().script == "# alpha\n"

    def test_find_in_subdirectories(self, app_root, make_context):
        write(app_root, "app/site/rackup.py")
        resolver = ScriptResolver(make_context())

        assert resolver.find_in_subdirectories("/app/", 1) == "/app/site/rackup.py"
        assert resolver.find_in_subdirectories("/app/", 0) is None
        assert resolver.find_in_subdirectories("/missing/", 1) is None

    def test_files_are_not_descended(self, app_root, make_context):
        write(app_root, "app/notes.txt", "not a directory")

        assert ScriptResolver(make_context()).resolve() is None


# =============================================================================
# Read Failure Tests
# =============================================================================


class TestReadFailures:
    def test_unreadable_match_is_fatal(self, app_root):
        write(app_root, "app/rackup.py")
        write(app_root, "rackup.py")
        context = UnreadableContext(app_root, RackConfig())

        with pytest.raises(ResolutionReadError) as exc_info:
            ScriptResolver(context).resolve()

        assert exc_info.value.path == "/app/rackup.py"

    def test_missing_configured_path_is_fatal(self, make_context):
        context = make_context(rackup_path="/nowhere.py")

        with pytest.raises(ResolutionReadError):
            ScriptResolver(context).resolve()


# =============================================================================
# BufferPolicyConfigurator Tests
# =============================================================================


class TestBufferPolicyConfigurator:
    def test_defaults(self):
        policy = BufferPolicyConfigurator(RackConfig()).configure()

        assert policy == BufferPolicy(DEFAULT_INITIAL_BUFFER_SIZE, DEFAULT_MAXIMUM_BUFFER_SIZE)

    def test_configured_sizes(self):
        config = RackConfig(initial_memory_buffer_size=1024, maximum_memory_buffer_size=4096)

        policy = BufferPolicyConfigurator(config).configure()

        assert policy.initial_size == 1024
        assert policy.maximum_size == 4096

    def test_initial_clamped_to_maximum(self):
        config = RackConfig(initial_memory_buffer_size=8192, maximum_memory_buffer_size=4096)

        policy = BufferPolicyConfigurator(config).configure()

        assert policy.initial_size == 4096
        assert policy.maximum_size == 4096

    def test_default_initial_clamped_to_small_maximum(self):
        config = RackConfig(maximum_memory_buffer_size=1024)

        policy = BufferPolicyConfigurator(config).configure()

        assert policy.initial_size == 1024

"""
Dependency wiring for the rackbridge host.

Provides the settings, context and factory the FastAPI host runs with.

Environment Variables:
    RACKBRIDGE_APP_ROOT       application root directory (default ".")
    RACKBRIDGE_ENVIRONMENT    environment label
    RACKBRIDGE_DEBUG          "true" enables debug mode
    RACKBRIDGE_<NAME>         any other variable becomes the configuration
                              property ``rackbridge.<name>`` with underscores
                              turned into dots, e.g. RACKBRIDGE_RACKUP_PATH
                              -> rackbridge.rackup.path
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from functools import lru_cache

from rackbridge.application import DefaultApplicationFactory
from rackbridge.config import AppSettings, RackConfig
from rackbridge.context import DirectoryRackContext

logger = logging.getLogger(__name__)

ENV_PREFIX = "RACKBRIDGE_"
_SETTINGS_VARIABLES = frozenset({"APP_ROOT", "ENVIRONMENT", "DEBUG", "SERVICE_NAME"})


def properties_from_environ(environ: Mapping[str, str]) -> dict[str, str]:
    """Map RACKBRIDGE_* variables onto dotted configuration properties."""
    properties: dict[str, str] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        suffix = name[len(ENV_PREFIX):]
        if not suffix or suffix in _SETTINGS_VARIABLES:
            continue
        properties[f"rackbridge.{suffix.lower().replace('_', '.')}"] = value
    return properties


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get host settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        service_name=os.getenv("RACKBRIDGE_SERVICE_NAME", "rackbridge"),
        environment=os.getenv("RACKBRIDGE_ENVIRONMENT", "development"),
        debug=os.getenv("RACKBRIDGE_DEBUG", "false").lower() == "true",
        app_root=os.getenv("RACKBRIDGE_APP_ROOT", "."),
        properties=properties_from_environ(os.environ),
    )


def create_context(settings: AppSettings) -> DirectoryRackContext:
    """Build the RackContext for the configured application root."""
    config = RackConfig.from_properties(settings.properties)
    logger.info(f"[host] Application root: {settings.app_root}")
    return DirectoryRackContext(settings.app_root, config)


def create_factory() -> DefaultApplicationFactory:
    """Build the (uninitialized) application factory."""
    return DefaultApplicationFactory()

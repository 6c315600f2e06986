"""
Configuration Schemas for rackbridge.

Pydantic models for the configuration surface consumed by the application
factory and the FastAPI host.

Property Names:
    Containers usually hand configuration over as flat init parameters.
    ``RackConfig.from_properties`` maps the dotted names below onto fields:

        rackbridge.rackup                      -> rackup
        rackbridge.rackup.path                 -> rackup_path
        rackbridge.error                       -> error
        rackbridge.error.app                   -> error_app
        rackbridge.error.app.path              -> error_app_path
        rackbridge.request.size.initial.bytes  -> initial_memory_buffer_size
        rackbridge.request.size.maximum.bytes  -> maximum_memory_buffer_size
        rackbridge.ignore.environment          -> ignore_environment
        rackbridge.compat.version              -> compat_version
        rackbridge.runtime.arguments           -> runtime_arguments
        rackbridge.server.info                 -> server_info

    Any other name is kept verbatim in ``properties``.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROPERTY_FIELDS: dict[str, str] = {
    "rackbridge.rackup": "rackup",
    "rackbridge.rackup.path": "rackup_path",
    "rackbridge.error": "error",
    "rackbridge.error.app": "error_app",
    "rackbridge.error.app.path": "error_app_path",
    "rackbridge.request.size.initial.bytes": "initial_memory_buffer_size",
    "rackbridge.request.size.maximum.bytes": "maximum_memory_buffer_size",
    "rackbridge.ignore.environment": "ignore_environment",
    "rackbridge.compat.version": "compat_version",
    "rackbridge.runtime.arguments": "runtime_arguments",
    "rackbridge.server.info": "server_info",
}

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})
_FALSE_VALUES = frozenset({"false", "no", "off", "0"})


def parse_boolean(value: Any) -> bool | None:
    """Parse a boolean-ish property value, None when it is not one."""
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return None


class RackConfig(BaseModel):
    """
    Configuration for an application factory.

    Attributes:
        rackup: Inline entry script
        rackup_path: Resource path of the entry script
        error: Tri-state error application switch (False disables it)
        error_app: Inline error application script
        error_app_path: Resource path of the error application script
        initial_memory_buffer_size: Initial request body buffer size (bytes)
        maximum_memory_buffer_size: Maximum in-memory request body size (bytes)
        ignore_environment: Start runtimes with an empty ENV
        compat_version: Language compatibility mode hint
        runtime_arguments: Arguments handed to every runtime
        server_info: Value of SERVER_SOFTWARE
        properties: Any other configuration property
    """

    model_config = ConfigDict(extra="ignore")

    rackup: str | None = Field(None, description="Inline entry script")
    rackup_path: str | None = Field(None, description="Entry script resource path")

    error: bool | None = Field(None, description="False disables the error application")
    error_app: str | None = Field(None, description="Inline error application script")
    error_app_path: str | None = Field(None, description="Error application resource path")

    initial_memory_buffer_size: int | None = Field(None, gt=0)
    maximum_memory_buffer_size: int | None = Field(None, gt=0)

    ignore_environment: bool = Field(False, description="Isolate runtimes from os.environ")
    compat_version: str | None = Field(None, description="Compatibility mode")
    runtime_arguments: list[str] = Field(default_factory=list)
    server_info: str = Field("rackbridge", description="SERVER_SOFTWARE value")

    properties: dict[str, str] = Field(default_factory=dict)

    @field_validator("runtime_arguments", mode="before")
    @classmethod
    def _split_arguments(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("error", mode="before")
    @classmethod
    def _parse_error_flag(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_boolean(value)
        return value

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> RackConfig:
        """
        Build a config from flat dotted property names.

        Args:
            properties: Init parameters (e.g. from a container descriptor)

        Returns:
            Validated RackConfig
        """
        data: dict[str, Any] = {}
        extra: dict[str, str] = {}
        for name, value in properties.items():
            field_name = PROPERTY_FIELDS.get(name)
            if field_name is None:
                extra[name] = str(value)
            else:
                data[field_name] = value
        data["properties"] = extra
        return cls.model_validate(data)

    def get_property(self, name: str, default: str | None = None) -> str | None:
        """Get a free-form property."""
        return self.properties.get(name, default)

    def get_boolean_property(self, name: str, default: bool | None = None) -> bool | None:
        """Get a free-form property parsed as a boolean."""
        value = parse_boolean(self.properties.get(name))
        return default if value is None else value


class AppSettings(BaseModel):
    """
    Settings for the FastAPI host container.

    Read from RACKBRIDGE_* environment variables by app.dependencies.
    """

    service_name: str = "rackbridge"
    environment: str = "development"
    debug: bool = False

    # Application root served by the host
    app_root: str = Field(".", description="Directory holding the application")
    properties: dict[str, str] = Field(default_factory=dict)

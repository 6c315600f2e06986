"""
rackbridge Configuration

Pydantic models for factory and host configuration.
"""

from .schemas import PROPERTY_FIELDS, AppSettings, RackConfig, parse_boolean

__all__ = [
    "AppSettings",
    "PROPERTY_FIELDS",
    "RackConfig",
    "parse_boolean",
]

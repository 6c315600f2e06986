"""Request body buffer policy configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rackbridge.env.input import (
    DEFAULT_INITIAL_BUFFER_SIZE,
    DEFAULT_MAXIMUM_BUFFER_SIZE,
    BufferPolicy,
)

if TYPE_CHECKING:
    from rackbridge.config import RackConfig

logger = logging.getLogger(__name__)


class BufferPolicyConfigurator:
    """
    Computes the process BufferPolicy from configuration.

    Missing sizes fall back to the built-in defaults; an initial size above
    the maximum is clamped down to the maximum.
    """

    def __init__(self, config: RackConfig):
        self._config = config

    def configure(self) -> BufferPolicy:
        initial = self._config.initial_memory_buffer_size
        if initial is None:
            initial = DEFAULT_INITIAL_BUFFER_SIZE
        maximum = self._config.maximum_memory_buffer_size
        if maximum is None:
            maximum = DEFAULT_MAXIMUM_BUFFER_SIZE

        if initial > maximum:
            logger.debug(f"[buffers] Initial size {initial} exceeds maximum, using {maximum}")
            initial = maximum

        return BufferPolicy(initial_size=initial, maximum_size=maximum)

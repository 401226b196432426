"""
Trackway core primitives: errors, logging, settings.

Nothing in here knows about chains; the railway package builds on it.
"""

from trackway.core.errors import (
    ChainConstructionError,
    DuplicateStepError,
    ErrorCategory,
    ErrorContext,
    HandlerAlreadySetError,
    InvalidStepNameError,
    MissingContextError,
    MissingTargetError,
    ScopeLookupError,
    TrackwayError,
    UnboundSlotError,
    is_construction_error,
)
from trackway.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    unbind_context,
)
from trackway.core.settings import TrackwaySettings, get_settings

__all__ = [
    # errors
    "ErrorCategory",
    "ErrorContext",
    "TrackwayError",
    "ChainConstructionError",
    "InvalidStepNameError",
    "DuplicateStepError",
    "MissingTargetError",
    "UnboundSlotError",
    "HandlerAlreadySetError",
    "MissingContextError",
    "ScopeLookupError",
    "is_construction_error",
    # logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    # settings
    "TrackwaySettings",
    "get_settings",
]

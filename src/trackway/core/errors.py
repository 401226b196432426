"""
Structured error types for Trackway.

Provides a small hierarchy of typed errors with metadata for categorisation,
reporting, and root cause analysis through error chaining.

Trackway distinguishes three kinds of "something went wrong":

- **Halt:** a guard returned a falsy value. This is *data*, not an error. It
  is carried by :class:`~trackway.railway.runner.Halt` and routed to the
  reject handler. Nothing in this module represents a halt.
- **Construction errors:** the chain is malformed (duplicate step names, a
  guard with nothing to guard, a slot never given a producer). Raised while
  building, before any closure is evaluated.
- **Lookup failures:** a closure asked the Scope for a name that is neither a
  computed step nor a member of the context. Raised during ``run`` and
  propagated to the caller; never passed to the reject handler.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per construction mistake
    - **Halts are not errors:** The railway never throws for a failed guard
    - **Rich Context:** Errors carry the chain and step they belong to
    - **Error Chaining:** Preserve original exceptions as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      TrackwayError                           │
        │               (category, context, cause)                     │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ChainConstructionError            ScopeLookupError          │
        │  (CONSTRUCTION)                    (LOOKUP, AttributeError)  │
        │       │                                                      │
        │  InvalidStepNameError   DuplicateStepError                   │
        │  MissingTargetError     UnboundSlotError                     │
        │  HandlerAlreadySetError MissingContextError                  │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = DuplicateStepError("clean")
    >>> error.category
    <ErrorCategory.CONSTRUCTION: 'CONSTRUCTION'>
    >>> error.step_name
    'clean'

    >>> error = ScopeLookupError("pasword").with_context(step="length")
    >>> error.context.step
    'length'
    >>> isinstance(error, AttributeError)
    True

Tags:
    error-handling, exception-hierarchy, error-context, trackway

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification.

    Attributes:
        CONSTRUCTION: Malformed chain, raised at build time
        LOOKUP: Unresolvable name inside a closure, raised at run time
        INTERNAL: Bugs, unexpected state
    """

    CONSTRUCTION = "CONSTRUCTION"
    LOOKUP = "LOOKUP"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Attributes:
        chain: Label of the chain being built or run
        step: Name of the step involved
        metadata: Additional key-value pairs
    """

    chain: str | None = None
    step: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["chain", "step"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TrackwayError(Exception):
    """
    Base exception for all Trackway errors.

    Every TrackwayError carries:
    - **category:** ErrorCategory for classification
    - **context:** ErrorContext with the chain/step involved
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category`` to provide a sensible default.

    Examples:
        >>> error = TrackwayError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(step="clean").context.step
        'clean'
        >>> error.to_dict()["error_type"]
        'TrackwayError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TrackwayError:
        """
        Add context to this error (fluent API).

        Usage:
            raise UnboundSlotError("clean").with_context(chain="login")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }

        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict

        if self.cause is not None:
            result["cause"] = str(self.cause)

        return result

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONSTRUCTION ERRORS
# =============================================================================


class ChainConstructionError(TrackwayError):
    """
    The chain being built is malformed.

    Never recoverable by the engine: the building code must be fixed.
    """

    default_category = ErrorCategory.CONSTRUCTION


class InvalidStepNameError(ChainConstructionError):
    """Step name is not usable as a Scope attribute."""

    def __init__(self, name: Any):
        self.step_name = name
        super().__init__(
            f"Invalid step name {name!r}: must be an identifier not starting with '_'",
            context=ErrorContext(step=name if isinstance(name, str) else None),
        )


class DuplicateStepError(ChainConstructionError):
    """Two different steps were bound to the same name."""

    def __init__(self, name: str):
        self.step_name = name
        super().__init__(f"Duplicate step name: {name}", context=ErrorContext(step=name))


class MissingTargetError(ChainConstructionError):
    """A guard or side effect was attached before any step could receive it."""

    def __init__(self, operation: str, reason: str | None = None):
        self.operation = operation
        super().__init__(reason or f"No step to attach {operation} to")


class UnboundSlotError(ChainConstructionError):
    """A slot was declared but never given a producer."""

    def __init__(self, name: str, message: str | None = None):
        self.step_name = name
        super().__init__(
            message or f"Slot '{name}' was declared but never bound to a producer",
            context=ErrorContext(step=name),
        )


class HandlerAlreadySetError(ChainConstructionError):
    """The accept or reject handler was attached twice."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"The {kind} handler is already set")


class MissingContextError(ChainConstructionError):
    """A step mirrors its value onto a context, but the chain has none."""

    def __init__(self, name: str, mirror_to: str):
        self.step_name = name
        self.mirror_to = mirror_to
        super().__init__(
            f"Step '{name}' mirrors to '{mirror_to}' but the chain has no context",
            context=ErrorContext(step=name),
        )


# =============================================================================
# RUNTIME ERRORS
# =============================================================================


class ScopeLookupError(TrackwayError, AttributeError):
    """
    A closure referenced a name the Scope cannot resolve.

    Resolution order is: computed step values, then the context object. Also
    an ``AttributeError`` so ``getattr(scope, name, default)`` and ``hasattr``
    behave as usual.
    """

    default_category = ErrorCategory.LOOKUP

    def __init__(self, name: str, *, cause: Exception | None = None):
        super().__init__(
            f"Name '{name}' is neither a computed step nor a member of the context",
            cause=cause,
        )
        # AttributeError.__init__ resets ``name``
        self.name = name


def is_construction_error(error: Exception) -> bool:
    """Check whether an error was raised while building a chain."""
    return isinstance(error, TrackwayError) and error.category == ErrorCategory.CONSTRUCTION


__all__ = [
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
]

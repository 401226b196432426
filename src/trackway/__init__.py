"""
Trackway - railway-oriented step chains.

Compose named steps, each optionally guarded; the first failing guard
routes to a reject handler with the step's name and value, and a chain
that passes every guard runs its accept handler with every value in scope.

    from trackway import start_chain

    def login(self, username, password):
        return (
            start_chain(lambda s: username.lower(), context=self)
            .bind_name("clean")
            .guarded_by(lambda s: s.clean.isalnum())
            .and_then(lambda s: len(password))
            .bind_name("length")
            .guarded_by(lambda s: s.length >= 6)
            .on_accept(lambda s: ("ok", s.clean))
            .on_reject(lambda name, value: ("error", name, value))
            .run()
        )
"""

__version__ = "0.1.0"

from trackway.core.errors import (
    ChainConstructionError,
    DuplicateStepError,
    HandlerAlreadySetError,
    InvalidStepNameError,
    MissingContextError,
    MissingTargetError,
    ScopeLookupError,
    TrackwayError,
    UnboundSlotError,
)
from trackway.railway import (
    Chain,
    ChainResult,
    ChainRunner,
    ChainStatus,
    Halt,
    PendingStep,
    ResultRecord,
    Scope,
    Step,
    declare_slot,
    mapping_accessor,
    mapping_writer,
    start_chain,
)

__all__ = [
    "__version__",
    "start_chain",
    "declare_slot",
    "PendingStep",
    "Chain",
    "Step",
    "Scope",
    "ResultRecord",
    "mapping_accessor",
    "mapping_writer",
    "ChainRunner",
    "ChainResult",
    "ChainStatus",
    "Halt",
    "TrackwayError",
    "ChainConstructionError",
    "InvalidStepNameError",
    "DuplicateStepError",
    "MissingTargetError",
    "UnboundSlotError",
    "HandlerAlreadySetError",
    "MissingContextError",
    "ScopeLookupError",
]

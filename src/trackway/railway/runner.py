"""Chain Runner — executes a built chain once, step by step.

The ChainRunner takes a :class:`~trackway.railway.chain.Chain` and walks its
steps in declaration order:

1. evaluate the producer and store its value in a fresh ResultRecord
   (and on the context, when the step mirrors),
2. evaluate the guard, if any; a falsy guard *halts* the chain and the
   reject handler receives ``(step_name, value)``,
3. run the step's side effects.

When every step passes, the accept handler runs with a Scope exposing every
computed value. Missing handlers yield ``None``.

A halt is data, never an exception. Exceptions raised by user closures,
including :class:`~trackway.core.errors.ScopeLookupError`, propagate to the
caller of ``run``; the runner only adds the chain and step to the lookup
error's context before re-raising it.

The runner keeps no per-run state on itself, so one instance (or one built
chain) can be run from several threads as long as the context object and
the closures allow it.

Example::

    from trackway import start_chain

    chain = (
        start_chain(lambda s: s.username.lower(), context=form)
        .bind_name("clean")
        .guarded_by(lambda s: s.clean.isalnum())
        .on_accept(lambda s: ("ok", s.clean))
        .on_reject(lambda name, value: ("error", name, value))
        .build()
    )

    result = ChainRunner().execute(chain)
    if result.status == ChainStatus.HALTED:
        print(f"Halted at {result.halt.step}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from trackway.core.errors import ScopeLookupError
from trackway.core.logging import get_logger
from trackway.core.settings import TrackwaySettings, get_settings
from trackway.railway.scope import ResultRecord, Scope, attribute_writer

if TYPE_CHECKING:
    from trackway.railway.chain import Chain

logger = get_logger(__name__)


class ChainStatus(str, Enum):
    """How a run ended."""

    ACCEPTED = "accepted"
    HALTED = "halted"


@dataclass(frozen=True)
class Halt:
    """A failed guard: which step stopped the chain and what it computed."""

    step: str
    value: Any


@dataclass
class ChainResult:
    """Outcome of a single run.

    Attributes:
        status: ACCEPTED or HALTED
        value: What the accept/reject handler returned (``None`` if unset)
        values: Every value computed before the run ended, in step order
        halt: The halting step, when status is HALTED
    """

    status: ChainStatus
    value: Any = None
    values: dict[str, Any] = field(default_factory=dict)
    halt: Halt | None = None
    label: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def accepted(self) -> bool:
        return self.status == ChainStatus.ACCEPTED

    @property
    def halted(self) -> bool:
        return self.status == ChainStatus.HALTED

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self, include_values: bool = False) -> dict[str, Any]:
        """Serialize for logging. Values are left out unless asked for."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "label": self.label,
            "steps": list(self.values),
            "duration_seconds": self.duration_seconds,
        }
        if self.halt is not None:
            result["halt_step"] = self.halt.step
        if include_values:
            result["values"] = dict(self.values)
            if self.halt is not None:
                result["halt_value"] = self.halt.value
        return result


class ChainRunner:
    """Executes chains synchronously, one uninterrupted pass per call."""

    def __init__(self, settings: TrackwaySettings | None = None) -> None:
        """Initialise the runner.

        Args:
            settings: Overrides the process-wide settings from ``get_settings()``.
        """
        self._settings = settings

    @property
    def settings(self) -> TrackwaySettings:
        return self._settings or get_settings()

    def run(self, chain: Chain) -> Any:
        """Execute ``chain`` and return the accept or reject handler's result."""
        return self.execute(chain).value

    def execute(self, chain: Chain) -> ChainResult:
        """Execute ``chain`` and return the full :class:`ChainResult`."""
        settings = self.settings
        label = chain.label or "chain"
        record = ResultRecord()
        scope = Scope(record, chain.context, chain.accessor)
        writer = chain.writer or attribute_writer
        started_at = datetime.now(UTC)

        logger.debug("chain.start", chain=label, step_count=len(chain.steps))

        for step in chain.steps:
            try:
                value = step.producer(scope)
                record._store(step.name, value)
                if step.mirror_to is not None:
                    writer(chain.context, step.mirror_to, value)

                if step.guard is not None and not step.guard(scope):
                    return self._reject(chain, label, Halt(step.name, value), record, started_at)

                for effect in step.side_effects:
                    effect(scope)
            except ScopeLookupError as exc:
                self._lookup_failed(exc, label, step.name)
                raise

            if settings.trace_steps:
                event: dict[str, Any] = {"chain": label, "step": step.name}
                if settings.log_values:
                    event["value"] = value
                logger.debug("step.complete", **event)

        try:
            value = chain.accept(scope) if chain.accept is not None else None
        except ScopeLookupError as exc:
            self._lookup_failed(exc, label, None)
            raise

        completed_at = datetime.now(UTC)
        logger.debug(
            "chain.accept",
            chain=label,
            step_count=len(record),
            duration_seconds=(completed_at - started_at).total_seconds(),
        )

        return ChainResult(
            status=ChainStatus.ACCEPTED,
            value=value,
            values=dict(record),
            label=label,
            started_at=started_at,
            completed_at=completed_at,
        )

    def _reject(
        self,
        chain: Chain,
        label: str,
        halt: Halt,
        record: ResultRecord,
        started_at: datetime,
    ) -> ChainResult:
        event: dict[str, Any] = {"chain": label, "step": halt.step}
        if self.settings.log_values:
            event["value"] = halt.value
        logger.info("chain.reject", **event)

        value = chain.reject(halt.step, halt.value) if chain.reject is not None else None

        return ChainResult(
            status=ChainStatus.HALTED,
            value=value,
            values=dict(record),
            halt=halt,
            label=label,
            started_at=started_at,
            completed_at=datetime.now(UTC),
        )

    @staticmethod
    def _lookup_failed(exc: ScopeLookupError, label: str, step: str | None) -> None:
        # Inner chains run from a closure keep their own chain/step
        if exc.context.chain is None:
            exc.with_context(chain=label, step=step)
        logger.error(
            "chain.lookup_failed",
            chain=exc.context.chain,
            step=exc.context.step,
            name=exc.name,
        )


__all__ = ["ChainRunner", "ChainResult", "ChainStatus", "Halt"]

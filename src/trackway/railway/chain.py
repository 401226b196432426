"""Chain — fluent construction of a guarded, named sequence of steps.

Manifesto:
    The happy path should read top to bottom, and the unhappy path should be
    written once, at the end, keyed by the step that failed. Construction
    never evaluates anything: it only records steps, guards, side effects
    and the two terminal handlers. Mistakes in the shape of the chain are
    raised here, before any closure runs.

ARCHITECTURE
────────────
::

    start_chain(producer, context=...)     declare_slot(name, mirror_to=...)
            │                                      │
            ▼                                      ▼
        PendingStep ──────── bind_name(name | slot) ─────────┐
            │  .guarded_by(predicate)   guard the last step  │
            │  .and_then(producer)      stage next producer  │
            │  .tap(effect)             side effect          │
            │  .on_accept(handler)      (scope) -> result    │
            │  .on_reject(handler)      (name, value) -> result
            ▼
        .build() ──► Chain (frozen) ──► .run() / .execute()

    Guards, taps and unnamed ``and_then`` producers attach to the most
    recently named step, which is not always the last one: filling a slot by
    name keeps the slot where it was declared. An ``and_then`` producer that
    never receives a name becomes a side effect of that step, either when the
    next ``and_then`` is staged or when the chain is built.

Example::

    chain = (
        start_chain(lambda s: s.username.lower(), context=form)
        .bind_name("clean")
        .guarded_by(lambda s: s.clean.isalnum())
        .and_then(lambda s: len(s.password))
        .bind_name("length")
        .guarded_by(lambda s: s.length >= 6)
        .and_then(lambda s: audit.info("login.validated", user=s.clean))
        .on_accept(lambda s: ("ok", s.clean))
        .on_reject(lambda name, value: ("error", name, value))
    )
    chain.run()

Slots let a guard or mirror be declared before the producer is known::

    username = declare_slot("username", mirror_to="last_username").guarded_by(
        lambda s: s.username != ""
    )
    start_chain(read_username, context=form).bind_name(username)

Tags:
    trackway, railway, chain, builder, fluent-api

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from trackway.core.errors import (
    ChainConstructionError,
    DuplicateStepError,
    ErrorContext,
    HandlerAlreadySetError,
    MissingContextError,
    MissingTargetError,
    UnboundSlotError,
)
from trackway.railway.runner import ChainResult, ChainRunner
from trackway.railway.scope import AccessorFn, Scope, WriterFn
from trackway.railway.step import GuardFn, ProducerFn, SideEffectFn, Step, validate_step_name

AcceptFn = Callable[[Scope], Any]
RejectFn = Callable[[str, Any], Any]


@dataclass(frozen=True, eq=False)
class Chain:
    """
    A built chain, ready to run any number of times.

    Each run starts from an empty ResultRecord and re-evaluates every
    producer; nothing is cached between runs.

    Attributes:
        steps: Steps in execution order
        accept: Handler (scope) -> result, run when every guard passes
        reject: Handler (name, value) -> result, run on the first halt
        context: Object whose members the Scope falls back to (not owned)
        accessor: Reads a member from ``context`` (default: ``getattr``)
        writer: Writes mirrored values to ``context`` (default: ``setattr``)
        label: Name used in log events
    """

    steps: tuple[Step, ...]
    accept: AcceptFn | None = None
    reject: RejectFn | None = None
    context: Any = None
    accessor: AccessorFn | None = None
    writer: WriterFn | None = None
    label: str | None = None

    def __post_init__(self):
        """Validate chain structure."""
        if not self.steps:
            raise ChainConstructionError("A chain needs at least one step")

        step_names: set[str] = set()
        for step in self.steps:
            if step.name in step_names:
                raise DuplicateStepError(step.name).with_context(chain=self.label)
            step_names.add(step.name)

            if not step.is_bound:
                raise UnboundSlotError(step.name).with_context(chain=self.label)
            if step.mirror_to is not None and self.context is None:
                raise MissingContextError(step.name, step.mirror_to).with_context(chain=self.label)

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    def describe(self) -> list[dict[str, Any]]:
        """Describe every step, in order."""
        return [step.to_dict() for step in self.steps]

    def run(self, runner: ChainRunner | None = None) -> Any:
        """Execute once; return the accept or reject handler's result."""
        return (runner or ChainRunner()).run(self)

    def execute(self, runner: ChainRunner | None = None) -> ChainResult:
        """Execute once; return the full :class:`ChainResult`."""
        return (runner or ChainRunner()).execute(self)

    def __repr__(self) -> str:
        return f"Chain({self.label or 'chain'!r}, steps={self.step_names!r})"


class PendingStep:
    """Fluent builder returned by :func:`start_chain` and :func:`declare_slot`.

    Every method records something and returns the same builder. Nothing is
    evaluated until the chain is run.
    """

    def __init__(
        self,
        steps: list[Step] | None = None,
        staged: ProducerFn | None = None,
        context: Any = None,
        accessor: AccessorFn | None = None,
        writer: WriterFn | None = None,
        label: str | None = None,
    ) -> None:
        self._steps: list[Step] = list(steps or [])
        # Index of the most recently named step; guards and side effects go there
        self._cursor: int | None = len(self._steps) - 1 if self._steps else None
        self._staged = staged
        self._context = context
        self._accessor = accessor
        self._writer = writer
        self._label = label
        self._accept: AcceptFn | None = None
        self._reject: RejectFn | None = None

    # =========================================================================
    # Construction
    # =========================================================================

    def bind_name(self, target: str | PendingStep) -> PendingStep:
        """Name the staged producer.

        ``target`` is either a step name or a builder from
        :func:`declare_slot`. A name that matches an unbound slot in this
        builder fills that slot where it was declared; a slot builder is
        grafted on with its guard, mirror, later steps and handlers.

        Raises:
            DuplicateStepError: If the name (or the slot) is already bound.
        """
        if isinstance(target, PendingStep):
            return self._graft(target)

        name = validate_step_name(target)
        existing = self._find(name)
        if existing is not None and existing.is_bound:
            raise DuplicateStepError(name).with_context(chain=self._label)

        producer = self._take_staged(name)
        if existing is not None:
            # Slots keep the position they were declared at
            self._cursor = self._steps.index(existing)
            self._steps[self._cursor] = existing.with_producer(producer)
        else:
            self._steps.append(Step.bound(name, producer))
            self._cursor = len(self._steps) - 1
        return self

    def guarded_by(self, predicate: GuardFn) -> PendingStep:
        """Guard the most recently named step.

        The guard sees the step's own value in the Scope. A falsy result
        halts the chain at this step.
        """
        if self._staged is not None:
            raise MissingTargetError(
                "guard",
                "A producer is staged but not named; call bind_name() before guarded_by()",
            )
        index = self._target("guard")
        self._steps[index] = self._steps[index].with_guard(predicate)
        return self

    def and_then(self, producer: ProducerFn) -> PendingStep:
        """Stage the next producer.

        Name it with :meth:`bind_name`. If another producer is staged first,
        the unnamed one becomes a side effect of the preceding step.
        """
        if self._staged is not None:
            self._attach_side_effect(self._staged)
        self._staged = producer
        return self

    def tap(self, effect: SideEffectFn) -> PendingStep:
        """Attach a side effect to the most recently named step."""
        if self._staged is not None:
            raise MissingTargetError(
                "side effect",
                "A producer is staged but not named; call bind_name() before tap()",
            )
        self._attach_side_effect(effect)
        return self

    def on_accept(self, handler: AcceptFn) -> PendingStep:
        """Set the handler run with the final Scope when every guard passes."""
        if self._accept is not None:
            raise HandlerAlreadySetError("accept")
        self._accept = handler
        return self

    def on_reject(self, handler: RejectFn) -> PendingStep:
        """Set the handler run with ``(step_name, value)`` on the first halt."""
        if self._reject is not None:
            raise HandlerAlreadySetError("reject")
        self._reject = handler
        return self

    # =========================================================================
    # Finishing
    # =========================================================================

    def build(self) -> Chain:
        """Freeze the builder into a :class:`Chain`.

        The builder itself is left untouched, so building twice gives two
        equivalent chains.
        """
        steps = list(self._steps)
        if self._staged is not None:
            if self._cursor is None:
                raise MissingTargetError(
                    "side effect",
                    "The starting producer was never named; call bind_name()",
                )
            steps[self._cursor] = steps[self._cursor].with_side_effect(self._staged)

        return Chain(
            steps=tuple(steps),
            accept=self._accept,
            reject=self._reject,
            context=self._context,
            accessor=self._accessor,
            writer=self._writer,
            label=self._label,
        )

    def run(self, runner: ChainRunner | None = None) -> Any:
        """Build and execute once."""
        return self.build().run(runner)

    def execute(self, runner: ChainRunner | None = None) -> ChainResult:
        """Build and execute once, returning the full result."""
        return self.build().execute(runner)

    # =========================================================================
    # Internals
    # =========================================================================

    def _find(self, name: str) -> Step | None:
        for step in self._steps:
            if step.name == name:
                return step
        return None

    def _target(self, operation: str) -> int:
        if self._cursor is None:
            raise MissingTargetError(operation).with_context(chain=self._label)
        return self._cursor

    def _take_staged(self, name: str) -> ProducerFn:
        producer = self._staged
        if producer is None:
            raise ChainConstructionError(
                f"No producer staged for '{name}'; call and_then() first",
                context=ErrorContext(chain=self._label, step=name),
            )
        self._staged = None
        return producer

    def _attach_side_effect(self, effect: SideEffectFn) -> None:
        index = self._target("side effect")
        self._steps[index] = self._steps[index].with_side_effect(effect)

    def _graft(self, slot: PendingStep) -> PendingStep:
        if slot is self:
            raise ChainConstructionError("A chain cannot be bound to itself")
        if not slot._steps:
            raise ChainConstructionError("Only builders from declare_slot() can be bound")

        head = slot._steps[0]
        if head.is_bound:
            raise DuplicateStepError(head.name).with_context(chain=self._label)
        for step in slot._steps:
            if self._find(step.name) is not None:
                raise DuplicateStepError(step.name).with_context(chain=self._label)
        if slot._accept is not None and self._accept is not None:
            raise HandlerAlreadySetError("accept")
        if slot._reject is not None and self._reject is not None:
            raise HandlerAlreadySetError("reject")

        producer = self._take_staged(head.name)

        offset = len(self._steps)
        self._steps.append(head.with_producer(producer))
        self._steps.extend(slot._steps[1:])
        self._cursor = offset + slot._cursor
        self._staged = slot._staged
        self._accept = self._accept or slot._accept
        self._reject = self._reject or slot._reject
        return self

    def __repr__(self) -> str:
        names = [s.name if s.is_bound else f"{s.name}?" for s in self._steps]
        staged = ", staged" if self._staged is not None else ""
        return f"PendingStep({names!r}{staged})"


def declare_slot(name: str, mirror_to: str | None = None) -> PendingStep:
    """Declare a named step whose producer is attached later.

    Args:
        name: Step name
        mirror_to: Context attribute that also receives the step's value
    """
    return PendingStep(steps=[Step.slot(name, mirror_to=mirror_to)])


def start_chain(
    producer: ProducerFn,
    context: Any = None,
    *,
    accessor: AccessorFn | None = None,
    writer: WriterFn | None = None,
    label: str | None = None,
) -> PendingStep:
    """Begin a chain with an unnamed producer; name it with ``bind_name``.

    Args:
        producer: First producer, (scope) -> value
        context: Object the Scope falls back to for names that are not steps
        accessor: Reads a member from ``context`` (default: ``getattr``)
        writer: Writes mirrored values to ``context`` (default: ``setattr``)
        label: Name used in log events
    """
    return PendingStep(
        staged=producer,
        context=context,
        accessor=accessor,
        writer=writer,
        label=label,
    )


__all__ = ["Chain", "PendingStep", "declare_slot", "start_chain"]

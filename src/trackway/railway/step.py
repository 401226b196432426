"""Step — the descriptor for one named unit of computation.

Manifesto:
    A chain is a list of Steps. Each Step names the value it produces, says
    how to produce it, and optionally says when to stop. Steps are frozen:
    the builder evolves them with ``dataclasses.replace`` while the chain is
    being assembled, and nothing touches them once the chain is built.

ARCHITECTURE
────────────
::

    Step
      ├── name          ── identifier, becomes a Scope attribute
      ├── producer      ── (scope) -> value, evaluated once per run
      ├── guard         ── (scope) -> truthy/falsy, evaluated after producer
      ├── side_effects  ── tuple of (scope) -> None, run when the guard passes
      └── mirror_to     ── optional context attribute that receives the value

    Step.slot(name)      ── placeholder with no producer yet
    Step.bound(name, fn) ── step with a producer

Related modules:
    scope.py   — the Scope every closure receives
    chain.py   — builder that produces Steps
    runner.py  — evaluates Steps in order

Tags:
    trackway, railway, step, descriptor

Doc-Types:
    api-reference
"""

from __future__ import annotations

import keyword
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from trackway.core.errors import ChainConstructionError, ErrorContext, InvalidStepNameError

if TYPE_CHECKING:
    from trackway.railway.scope import Scope


# Type aliases for step closures
ProducerFn = Callable[["Scope"], Any]
GuardFn = Callable[["Scope"], Any]
SideEffectFn = Callable[["Scope"], Any]


def _callable_ref(fn: Callable[..., Any] | None) -> str | None:
    """Return ``'module:qualname'`` for a named function, else ``None``.

    Lambdas, built-ins, and nested definitions return ``None`` because they
    cannot be reliably re-imported.
    """
    if fn is None:
        return None
    module = getattr(fn, "__module__", None)
    qualname = getattr(fn, "__qualname__", None)
    if not module or not qualname:
        return None
    if "<lambda>" in qualname or "<locals>" in qualname:
        return None
    return f"{module}:{qualname}"


def validate_step_name(name: Any) -> str:
    """Return ``name`` if it can be used as a step name.

    Step names are read back as Scope attributes (``scope.clean``), so they
    must be identifiers. Keywords are refused because ``scope.class`` is not
    valid syntax, and leading underscores are reserved for the Scope itself.

    Raises:
        InvalidStepNameError: If the name is unusable.
    """
    if (
        not isinstance(name, str)
        or not name.isidentifier()
        or keyword.iskeyword(name)
        or name.startswith("_")
    ):
        raise InvalidStepNameError(name)
    return name


@dataclass(frozen=True)
class Step:
    """
    A single named step within a chain.

    Use the factory methods rather than the constructor:
    - Step.slot() for a placeholder whose producer is attached later
    - Step.bound() for a step with a producer

    Attributes:
        name: Unique step name within the chain
        producer: Function (scope) -> value; ``None`` only for unbound slots
        guard: Optional predicate (scope) -> bool, sees this step's value
        side_effects: Functions (scope) -> None run after the guard passes
        mirror_to: Context attribute that also receives the value
    """

    name: str
    producer: ProducerFn | None = None
    guard: GuardFn | None = None
    side_effects: tuple[SideEffectFn, ...] = ()
    mirror_to: str | None = None

    # =========================================================================
    # Factory Methods
    # =========================================================================

    @classmethod
    def slot(cls, name: str, mirror_to: str | None = None) -> Step:
        """Create a placeholder step that has no producer yet."""
        return cls(name=validate_step_name(name), mirror_to=mirror_to)

    @classmethod
    def bound(
        cls,
        name: str,
        producer: ProducerFn,
        guard: GuardFn | None = None,
        mirror_to: str | None = None,
    ) -> Step:
        """Create a step with a producer."""
        return cls(
            name=validate_step_name(name),
            producer=producer,
            guard=guard,
            mirror_to=mirror_to,
        )

    # =========================================================================
    # Evolution (returns new step)
    # =========================================================================

    @property
    def is_bound(self) -> bool:
        """True once a producer is attached."""
        return self.producer is not None

    def with_producer(self, producer: ProducerFn) -> Step:
        return replace(self, producer=producer)

    def with_guard(self, guard: GuardFn) -> Step:
        """Return a copy guarded by ``guard``.

        Raises:
            ChainConstructionError: If the step is already guarded.
        """
        if self.guard is not None:
            raise ChainConstructionError(
                f"Step '{self.name}' is already guarded",
                context=ErrorContext(step=self.name),
            )
        return replace(self, guard=guard)

    def with_side_effect(self, effect: SideEffectFn) -> Step:
        return replace(self, side_effects=(*self.side_effects, effect))

    # =========================================================================
    # Utilities
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Describe the step for logging and introspection."""
        result: dict[str, Any] = {
            "name": self.name,
            "bound": self.is_bound,
            "guarded": self.guard is not None,
            "side_effects": len(self.side_effects),
        }

        if self.mirror_to:
            result["mirror_to"] = self.mirror_to

        producer_ref = _callable_ref(self.producer)
        if producer_ref:
            result["producer_ref"] = producer_ref
        guard_ref = _callable_ref(self.guard)
        if guard_ref:
            result["guard_ref"] = guard_ref

        return result

    def __repr__(self) -> str:
        parts = [repr(self.name)]
        if not self.is_bound:
            parts.append("unbound")
        if self.guard is not None:
            parts.append("guarded")
        if self.side_effects:
            parts.append(f"side_effects={len(self.side_effects)}")
        if self.mirror_to:
            parts.append(f"mirror_to={self.mirror_to!r}")
        return f"Step({', '.join(parts)})"

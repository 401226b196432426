"""
Trackway Railway — guarded step chains with a single exit for failures.

WHY
───
A sequence of computations where any step may fail tends to turn into
nested ``if`` blocks or early returns. A chain keeps the happy path linear
and names the failure once, at the end, by the step that produced it.

ARCHITECTURE
────────────
::

    start_chain() / declare_slot()   ─ fluent PendingStep builder
    Step                             ─ name, producer, guard, side effects
    Chain                            ─ frozen, validated list of Steps
    Scope / ResultRecord             ─ computed values, then the context
    ChainRunner                      ─ short-circuit execution
    ChainResult / Halt               ─ what a run produced

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. step.py     ─ Step descriptor + name validation
2. scope.py    ─ ResultRecord, Scope, context accessors/writers
3. runner.py   ─ execution algorithm, ChainResult, Halt
4. chain.py    ─ Chain + PendingStep builder, declare_slot, start_chain
"""

from trackway.railway.chain import Chain, PendingStep, declare_slot, start_chain
from trackway.railway.runner import ChainResult, ChainRunner, ChainStatus, Halt
from trackway.railway.scope import (
    ResultRecord,
    Scope,
    attribute_accessor,
    attribute_writer,
    mapping_accessor,
    mapping_writer,
)
from trackway.railway.step import Step, validate_step_name

__all__ = [
    # construction
    "start_chain",
    "declare_slot",
    "PendingStep",
    "Chain",
    "Step",
    "validate_step_name",
    # scope
    "Scope",
    "ResultRecord",
    "attribute_accessor",
    "attribute_writer",
    "mapping_accessor",
    "mapping_writer",
    # execution
    "ChainRunner",
    "ChainResult",
    "ChainStatus",
    "Halt",
]

"""Tests for ChainRunner — ordering, short-circuit, handlers, mirroring, logging.

Covers the execution contract: producers run once and in order, the first
falsy guard halts, halts go to the reject handler as (name, value), lookup
failures propagate, and reruns are independent.
"""

from __future__ import annotations

import threading

import pytest
from structlog.testing import capture_logs

from trackway.core.errors import ScopeLookupError
from trackway.core.settings import TrackwaySettings
from trackway.railway.chain import declare_slot, start_chain
from trackway.railway.runner import ChainResult, ChainRunner, ChainStatus, Halt
from trackway.railway.scope import mapping_accessor, mapping_writer


def _three_step_chain(call_log, fail_at: str | None = None):
    def guard(name):
        return lambda s: call_log(f"{name}.guard", name != fail_at)

    return (
        start_chain(lambda s: call_log("a", 1))
        .bind_name("a")
        .guarded_by(guard("a"))
        .and_then(lambda s: call_log("a.effect"))
        .and_then(lambda s: call_log("b", s.a + 1))
        .bind_name("b")
        .guarded_by(guard("b"))
        .and_then(lambda s: call_log("b.effect"))
        .and_then(lambda s: call_log("c", s.b + 1))
        .bind_name("c")
        .guarded_by(guard("c"))
        .tap(lambda s: call_log("c.effect"))
        .on_accept(lambda s: ("ok", s._asdict()))
        .on_reject(lambda name, value: ("rejected", name, value))
    )


class TestChainStatus:
    def test_values(self):
        assert ChainStatus.ACCEPTED.value == "accepted"
        assert ChainStatus.HALTED.value == "halted"


class TestAllGuardsPass:
    def test_every_closure_runs_once_in_order(self, call_log):
        result = _three_step_chain(call_log).run()
        assert call_log.calls == [
            "a", "a.guard", "a.effect",
            "b", "b.guard", "b.effect",
            "c", "c.guard", "c.effect",
        ]
        assert result == ("ok", {"a": 1, "b": 2, "c": 3})

    def test_execute_reports_accepted(self, call_log):
        result = _three_step_chain(call_log).execute()
        assert isinstance(result, ChainResult)
        assert result.accepted and not result.halted
        assert result.halt is None
        assert result.values == {"a": 1, "b": 2, "c": 3}
        assert result.duration_seconds is not None

    def test_no_guards_no_handlers(self):
        assert start_chain(lambda s: 1).bind_name("a").run() is None

    def test_side_effect_results_are_discarded(self):
        result = (
            start_chain(lambda s: 1)
            .bind_name("a")
            .tap(lambda s: "ignored")
            .on_accept(lambda s: s.a)
            .run()
        )
        assert result == 1


class TestShortCircuit:
    def test_halt_skips_later_steps(self, call_log):
        result = _three_step_chain(call_log, fail_at="b").run()
        assert result == ("rejected", "b", 2)
        assert call_log.calls == ["a", "a.guard", "a.effect", "b", "b.guard"]

    def test_halt_at_first_step(self, call_log):
        result = _three_step_chain(call_log, fail_at="a").execute()
        assert result.status == ChainStatus.HALTED
        assert result.halt == Halt("a", 1)
        assert result.values == {"a": 1}
        assert result.value == ("rejected", "a", 1)
        assert "a.effect" not in call_log.calls

    def test_falsy_values_halt(self):
        for falsy in (False, None, 0, "", []):
            halted = start_chain(lambda s: 1).bind_name("a").guarded_by(lambda s, f=falsy: f).execute()
            assert halted.halted

    def test_no_reject_handler_returns_none(self):
        result = (
            start_chain(lambda s: 1)
            .bind_name("a")
            .guarded_by(lambda s: False)
            .on_accept(lambda s: "ok")
            .run()
        )
        assert result is None

    def test_guard_sees_own_value(self):
        seen = []
        start_chain(lambda s: 41).bind_name("a").guarded_by(lambda s: seen.append(s.a) or True).run()
        assert seen == [41]

    def test_halt_on_slot_filled_out_of_order(self, call_log):
        chain = (
            declare_slot("a")
            .and_then(lambda s: call_log("b", "b-value"))
            .bind_name("b")
            .and_then(lambda s: call_log("a", "a-value"))
            .bind_name("a")
            .guarded_by(lambda s: False)
            .tap(lambda s: call_log("a.effect"))
            .on_reject(lambda name, value: (name, value))
        )
        assert chain.run() == ("a", "a-value")
        assert call_log.calls == ["a"]


class TestLookupFailures:
    def test_forward_reference_fails(self):
        builder = (
            start_chain(lambda s: s.b + 1)
            .bind_name("a")
            .and_then(lambda s: 1)
            .bind_name("b")
            .on_reject(lambda name, value: pytest.fail("lookup failures are not halts"))
        )
        with pytest.raises(ScopeLookupError) as exc_info:
            builder.run()
        assert exc_info.value.name == "b"
        assert exc_info.value.context.step == "a"

    def test_reordering_independent_steps_keeps_result(self):
        def build(first, second):
            producers = {"x": lambda s: 2, "y": lambda s: 3}
            return (
                start_chain(producers[first])
                .bind_name(first)
                .and_then(producers[second])
                .bind_name(second)
                .on_accept(lambda s: s.x * s.y)
            )

        assert build("x", "y").run() == build("y", "x").run() == 6

    def test_failure_in_accept_handler(self):
        builder = start_chain(lambda s: 1).bind_name("a").on_accept(lambda s: s.missing)
        with pytest.raises(ScopeLookupError) as exc_info:
            builder.run()
        assert exc_info.value.context.step is None
        assert exc_info.value.context.chain == "chain"

    def test_other_exceptions_propagate_unchanged(self):
        def boom(scope):
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            start_chain(boom).bind_name("a").run()

    def test_context_member_resolves(self, account):
        result = (
            start_chain(lambda s: s.normalise(s.username), context=account)
            .bind_name("clean")
            .on_accept(lambda s: s.clean)
            .run()
        )
        assert result == "ann"


class TestMirroring:
    def test_mirror_sets_context_attribute(self, account):
        (
            start_chain(lambda s: s.username.lower(), context=account)
            .bind_name(declare_slot("clean", mirror_to="clean_username"))
            .run()
        )
        assert account.clean_username == "ann"

    def test_mirror_happens_before_guard(self, account):
        (
            start_chain(lambda s: "an#n", context=account)
            .bind_name(declare_slot("clean", mirror_to="clean_username"))
            .guarded_by(lambda s: s.clean.isalnum())
            .run()
        )
        assert account.clean_username == "an#n"

    def test_mapping_context(self):
        form = {"username": "Ann"}
        result = (
            start_chain(
                lambda s: s.username.lower(),
                context=form,
                accessor=mapping_accessor,
                writer=mapping_writer,
            )
            .bind_name(declare_slot("clean", mirror_to="clean"))
            .on_accept(lambda s: s.clean)
            .run()
        )
        assert result == "ann"
        assert form["clean"] == "ann"


class TestReruns:
    def test_runs_are_independent(self):
        counter = {"n": 0}

        def produce(scope):
            counter["n"] += 1
            return counter["n"]

        chain = start_chain(produce).bind_name("a").on_accept(lambda s: s.a).build()
        assert chain.run() == 1
        assert chain.run() == 2
        assert chain.steps[0].producer is produce

    def test_concurrent_runs(self):
        barrier = threading.Barrier(8)

        def produce(scope):
            barrier.wait(timeout=5)
            return threading.get_ident()

        chain = (
            start_chain(produce)
            .bind_name("ident")
            .on_accept(lambda s: s.ident)
            .build()
        )
        results: dict[int, int] = {}

        def worker(i):
            results[i] = chain.run()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(results.values())) == 8


class TestLogging:
    def test_reject_event_hides_values_by_default(self):
        runner = ChainRunner(settings=TrackwaySettings())
        chain = start_chain(lambda s: "secret1", label="login").bind_name("password").guarded_by(lambda s: False).build()
        with capture_logs() as logs:
            runner.run(chain)
        reject = [e for e in logs if e["event"] == "chain.reject"]
        assert reject == [
            {"event": "chain.reject", "chain": "login", "step": "password", "log_level": "info", "logger_name": "trackway.railway.runner"}
        ]

    def test_reject_event_with_values(self):
        runner = ChainRunner(settings=TrackwaySettings(log_values=True))
        chain = start_chain(lambda s: "an#n").bind_name("clean").guarded_by(lambda s: False).build()
        with capture_logs() as logs:
            runner.run(chain)
        reject = next(e for e in logs if e["event"] == "chain.reject")
        assert reject["value"] == "an#n"

    def test_trace_steps(self):
        runner = ChainRunner(settings=TrackwaySettings(trace_steps=True))
        chain = start_chain(lambda s: 1).bind_name("a").and_then(lambda s: 2).bind_name("b").build()
        with capture_logs() as logs:
            runner.run(chain)
        traced = [e["step"] for e in logs if e["event"] == "step.complete"]
        assert traced == ["a", "b"]

    def test_lookup_failure_logged(self):
        chain = start_chain(lambda s: s.nope).bind_name("a").build()
        with capture_logs() as logs:
            with pytest.raises(ScopeLookupError):
                chain.run()
        failed = next(e for e in logs if e["event"] == "chain.lookup_failed")
        assert failed["step"] == "a"
        assert failed["name"] == "nope"
        assert failed["log_level"] == "error"

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("TRACKWAY_TRACE_STEPS", "true")
        assert ChainRunner().settings.trace_steps is True


class TestChainResult:
    def test_to_dict_hides_values(self):
        result = start_chain(lambda s: "secret1").bind_name("a").guarded_by(lambda s: False).execute()
        d = result.to_dict()
        assert d["status"] == "halted"
        assert d["halt_step"] == "a"
        assert d["steps"] == ["a"]
        assert "values" not in d and "halt_value" not in d

    def test_to_dict_with_values(self):
        result = start_chain(lambda s: "secret1").bind_name("a").guarded_by(lambda s: False).execute()
        d = result.to_dict(include_values=True)
        assert d["values"] == {"a": "secret1"}
        assert d["halt_value"] == "secret1"

# =============================================================================
# tests/test_saga.py - Saga Runner Tests
# =============================================================================

import pytest

from lib.saga import Saga, SagaError, SagaStep


def recorder(calls, name, fail=False):
    def step(ctx):
        calls.append(name)
        if fail:
            raise RuntimeError(f"{name} broke")
        ctx[name] = True
    return step


class TestSaga:
    """Tests for ordered execution and compensation."""

    def test_all_steps_run_in_order(self):
        calls = []
        saga = Saga("demo", [
            SagaStep("a", recorder(calls, "a")),
            SagaStep("b", recorder(calls, "b")),
        ])

        context = saga.run({"seed": 1})

        assert calls == ["a", "b"]
        assert context["a"] and context["b"] and context["seed"] == 1
        assert saga.result.completed == ["a", "b"]

    def test_critical_failure_compensates_in_reverse(self):
        calls = []
        saga = Saga("demo", [
            SagaStep("a", recorder(calls, "a"), compensate=recorder(calls, "undo-a")),
            SagaStep("b", recorder(calls, "b"), compensate=recorder(calls, "undo-b")),
            SagaStep("c", recorder(calls, "c", fail=True), compensate=recorder(calls, "undo-c")),
            SagaStep("d", recorder(calls, "d")),
        ])

        with pytest.raises(SagaError) as exc_info:
            saga.run()

        assert calls == ["a", "b", "c", "undo-b", "undo-a"]
        assert exc_info.value.step == "c"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.result.compensated == ["b", "a"]

    def test_non_critical_failure_continues(self):
        calls = []
        saga = Saga("demo", [
            SagaStep("a", recorder(calls, "a")),
            SagaStep("sync", recorder(calls, "sync", fail=True), critical=False),
            SagaStep("b", recorder(calls, "b")),
        ])

        saga.run()

        assert calls == ["a", "sync", "b"]
        assert saga.result.completed == ["a", "b"]
        assert saga.result.warnings == ["sync: sync broke"]

    def test_failed_compensation_is_recorded_not_raised(self):
        calls = []
        saga = Saga("demo", [
            SagaStep("a", recorder(calls, "a"), compensate=recorder(calls, "undo-a")),
            SagaStep("b", recorder(calls, "b"), compensate=recorder(calls, "undo-b", fail=True)),
            SagaStep("c", recorder(calls, "c", fail=True)),
        ])

        with pytest.raises(SagaError) as exc_info:
            saga.run()

        assert calls == ["a", "b", "c", "undo-b", "undo-a"]
        assert exc_info.value.result.compensation_failures == ["b"]
        assert exc_info.value.result.compensated == ["a"]

    def test_steps_without_compensation_are_skipped(self):
        calls = []
        saga = Saga("demo", [
            SagaStep("a", recorder(calls, "a")),
            SagaStep("b", recorder(calls, "b", fail=True)),
        ])

        with pytest.raises(SagaError):
            saga.run()

        assert saga.result.compensated == []

    def test_result_exposed_in_context(self):
        saga = Saga("demo", [SagaStep("a", lambda ctx: None)])

        context = saga.run()

        assert context["saga"] is saga.result

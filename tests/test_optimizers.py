"""Tests for OptimizationFree, ScipyOptimizer and AdamOptimizer.

The toy problem is H = Z_0 + Z_1 from |00> with generators Y_0, Y_1:
E(a, b) = cos(2a) + cos(2b), minimized at a = b = pi/2 with E = -2.
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import numpy as np
import pytest

from adapt_vqe import (
    AdamOptimizer,
    Ansatz,
    Callback,
    OptimizationFree,
    PauliSum,
    PauliTerm,
    ScipyOptimizer,
    Tracer,
    basis_state,
)
from adapt_vqe.evolution import evaluate_ansatz

OBSERVABLE = PauliSum([PauliTerm("ZI"), PauliTerm("IZ")])
REFERENCE = basis_state(2, 0)


def _ansatz(x=(0.1, 0.2)):
    return Ansatz(generators=[PauliTerm("YI"), PauliTerm("IY")], parameters=x)


class _StopAfter(Callback):
    def __init__(self, n, mark_optimized=False):
        self.n = n
        self.mark_optimized = mark_optimized
        self.seen = 0

    def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
        self.seen += 1
        if self.seen >= self.n:
            if self.mark_optimized:
                ansatz.set_optimized(True)
            return True
        return False


def test_toy_energy():
    assert evaluate_ansatz(_ansatz((0.0, 0.0)), OBSERVABLE, REFERENCE) == pytest.approx(2.0)
    assert evaluate_ansatz(_ansatz((np.pi / 2, np.pi / 2)), OBSERVABLE, REFERENCE) == pytest.approx(-2.0)


# --- OptimizationFree ---


def test_optimization_free_reports_once():
    ansatz = _ansatz()
    ansatz.set_optimized(False)
    callback = MagicMock(spec=Callback)
    callback.on_iteration.return_value = False
    assert OptimizationFree().optimize(ansatz, OBSERVABLE, REFERENCE, {}, [callback])
    assert ansatz.is_optimized()
    callback.on_iteration.assert_called_once()
    data = callback.on_iteration.call_args[0][0]
    assert data["energy"] == pytest.approx(np.cos(0.2) + np.cos(0.4))
    np.testing.assert_array_equal(ansatz.angles(), [0.1, 0.2])


# --- ScipyOptimizer ---


def test_bfgs_reaches_minimum():
    ansatz = _ansatz()
    ansatz.set_optimized(False)
    trace: dict = {}
    assert ScipyOptimizer("BFGS").optimize(ansatz, OBSERVABLE, REFERENCE, trace, [Tracer("energy", "g_norm")])
    assert ansatz.is_optimized()
    assert evaluate_ansatz(ansatz, OBSERVABLE, REFERENCE) == pytest.approx(-2.0, abs=1e-8)
    assert trace["energy"][-1] == pytest.approx(-2.0, abs=1e-8)
    assert trace["iteration"] == list(range(1, len(trace["energy"]) + 1))


def test_iteration_data_keys():
    received = []

    class _Capture(Callback):
        def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
            received.append(dict(data))
            return False

    ScipyOptimizer("BFGS").optimize(_ansatz(), OBSERVABLE, REFERENCE, {}, [_Capture()])
    assert received
    assert set(received[0]) == {
        "energy",
        "g_norm",
        "elapsed_iterations",
        "elapsed_time",
        "elapsed_f_calls",
        "elapsed_g_calls",
    }
    assert [d["elapsed_iterations"] for d in received] == list(range(1, len(received) + 1))


def test_callback_sees_accepted_iterate():
    """The ansatz seen by callbacks matches the reported energy."""

    class _Check(Callback):
        def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
            assert evaluate_ansatz(ansatz, observable, reference) == pytest.approx(data["energy"])
            return False

    ScipyOptimizer("BFGS").optimize(_ansatz(), OBSERVABLE, REFERENCE, {}, [_Check()])


def test_cobyla_without_gradient():
    ansatz = _ansatz()
    ansatz.set_optimized(False)
    optimizer = ScipyOptimizer("COBYLA", tol=1e-10)
    assert optimizer.use_gradient is False
    optimizer.optimize(ansatz, OBSERVABLE, REFERENCE, {})
    assert evaluate_ansatz(ansatz, OBSERVABLE, REFERENCE) < -1.999


def test_halting_callback_leaves_ansatz_unoptimized():
    ansatz = _ansatz()
    ansatz.set_optimized(False)
    assert ScipyOptimizer("BFGS").optimize(ansatz, OBSERVABLE, REFERENCE, {}, [_StopAfter(1)]) is False
    assert not ansatz.is_optimized()


def test_halting_callback_may_mark_optimized():
    ansatz = _ansatz()
    ansatz.set_optimized(False)
    callback = _StopAfter(2, mark_optimized=True)
    assert ScipyOptimizer("BFGS").optimize(ansatz, OBSERVABLE, REFERENCE, {}, [callback])
    assert callback.seen == 2


def test_empty_ansatz_is_trivially_optimized():
    ansatz = Ansatz()
    ansatz.set_optimized(False)
    assert ScipyOptimizer().optimize(ansatz, OBSERVABLE, REFERENCE, {})


def test_failure_is_logged(caplog):
    ansatz = _ansatz()
    ansatz.set_optimized(False)
    with caplog.at_level(logging.WARNING, logger="adapt_vqe.optimizers"):
        result = ScipyOptimizer("BFGS", options={"maxiter": 1}).optimize(
            ansatz, OBSERVABLE, REFERENCE, {}
        )
    assert result is False
    assert "did not converge" in caplog.text


# --- Adam ---


def test_adam_lowers_energy():
    ansatz = _ansatz()
    ansatz.set_optimized(False)
    AdamOptimizer(lr=0.05, max_iter=300, gtol=1e-12).optimize(ansatz, OBSERVABLE, REFERENCE, {})
    assert evaluate_ansatz(ansatz, OBSERVABLE, REFERENCE) < -1.5


def test_adam_at_optimum_converges_immediately():
    ansatz = _ansatz((np.pi / 2, np.pi / 2))
    ansatz.set_optimized(False)
    callback = MagicMock(spec=Callback)
    assert AdamOptimizer().optimize(ansatz, OBSERVABLE, REFERENCE, {}, [callback])
    callback.on_iteration.assert_not_called()


def test_adam_step_matches_reference_update():
    adam = AdamOptimizer(lr=0.1)
    params = adam.step(np.array([1.0]), np.array([2.0]))
    # First bias-corrected step moves by lr * sign(grad).
    np.testing.assert_allclose(params, [0.9], atol=1e-7)
    adam.reset()
    assert adam.t == 0 and adam.m is None


class _FlagOptimizedAt(Callback):
    """Marks the ansatz optimized at iteration ``n`` without asking to stop."""

    def __init__(self, n):
        self.n = n
        self.seen = 0
        self.flagged_angles = None

    def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
        self.seen += 1
        if self.seen == self.n:
            ansatz.set_optimized(True)
            self.flagged_angles = ansatz.angles()
        return False


class TestOptimizedFlagHaltsOptimization:
    """A callback that flags the ansatz optimized ends the optimization at that iterate."""

    @pytest.mark.parametrize(
        "optimizer",
        [ScipyOptimizer("BFGS"), AdamOptimizer(lr=0.05, max_iter=50, gtol=1e-12)],
        ids=["bfgs", "adam"],
    )
    def test_halts_at_flagged_iterate(self, optimizer):
        ansatz = _ansatz()
        ansatz.set_optimized(False)
        callback = _FlagOptimizedAt(1)

        assert optimizer.optimize(ansatz, OBSERVABLE, REFERENCE, {}, [callback]) is True

        assert callback.seen == 1
        assert ansatz.is_optimized()
        np.testing.assert_array_equal(ansatz.angles(), callback.flagged_angles)

    def test_adam_does_not_warn_when_flagged(self, caplog):
        ansatz = _ansatz()
        ansatz.set_optimized(False)
        with caplog.at_level(logging.WARNING, logger="adapt_vqe.optimizers"):
            AdamOptimizer(lr=0.05, max_iter=50, gtol=1e-12).optimize(
                ansatz, OBSERVABLE, REFERENCE, {}, [_FlagOptimizedAt(3)]
            )
        assert "did not converge" not in caplog.text

    def test_stale_flag_does_not_stop_a_new_run(self):
        """An ansatz already marked optimized is still refined."""
        ansatz = _ansatz()
        assert ansatz.is_optimized()
        trace: dict = {}
        ScipyOptimizer("BFGS").optimize(ansatz, OBSERVABLE, REFERENCE, trace, [Tracer("energy")])
        assert len(trace["energy"]) > 1
        assert evaluate_ansatz(ansatz, OBSERVABLE, REFERENCE) == pytest.approx(-2.0, abs=1e-8)

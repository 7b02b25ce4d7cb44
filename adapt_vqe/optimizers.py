"""Optimization protocols.

* ``OptimizationFree``: no parameter refinement; reports the energy once.
* ``ScipyOptimizer``: delegates to ``scipy.optimize.minimize`` with the
  analytic gradient (gradient-based methods) or without it (COBYLA,
  Nelder-Mead, Powell, ...).
* ``AdamOptimizer``: first-order Adam loop on the analytic gradient.

Every iteration reports a Data dict with the keys ``energy``, ``g_norm``,
``elapsed_iterations``, ``elapsed_time``, ``elapsed_f_calls`` and
``elapsed_g_calls``.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import OptimizeResult, minimize

from adapt_vqe.callbacks import Callback, Data, Trace, run_iteration_callbacks
from adapt_vqe.evolution import evaluate_ansatz
from adapt_vqe.gradient import gradient, make_costfunction, make_gradfunction
from adapt_vqe.protocols import OptimizationProtocol
from adapt_vqe.quantum_objects import Observable
from adapt_vqe.states import QuantumState

if TYPE_CHECKING:
    from adapt_vqe.ansatz import AbstractAnsatz

logger = logging.getLogger(__name__)

SCIPY_DEFAULT_METHOD = "BFGS"
SCIPY_DEFAULT_GTOL = 1e-6
SCIPY_DEFAULT_MAXITER = 10000
GRADIENT_FREE_METHODS = {"COBYLA", "COBYQA", "NELDER-MEAD", "POWELL"}
GTOL_METHODS = {"BFGS", "CG", "L-BFGS-B"}

# Default hyperparameters for the Adam protocol
ADAM_LR = 0.01
ADAM_BETA1 = 0.9
ADAM_BETA2 = 0.999
ADAM_EPS = 1e-8
ADAM_MAX_ITER = 1000
ADAM_GTOL = 1e-6


def _iteration_data(
    energy: float,
    g_norm: float,
    iterations: int,
    start: float,
    f_calls: int,
    g_calls: int,
) -> Data:
    return {
        "energy": float(energy),
        "g_norm": float(g_norm),
        "elapsed_iterations": iterations,
        "elapsed_time": time.perf_counter() - start,
        "elapsed_f_calls": f_calls,
        "elapsed_g_calls": g_calls,
    }


class OptimizationFree(OptimizationProtocol):
    """Leave the parameters alone; always mark the ansatz optimized."""

    def optimize(
        self,
        ansatz: "AbstractAnsatz",
        observable: Observable,
        reference: QuantumState,
        trace: Trace,
        callbacks: Sequence[Callback] = (),
    ) -> bool:
        start = time.perf_counter()
        energy = evaluate_ansatz(ansatz, observable, reference)
        data = _iteration_data(energy, float("nan"), 0, start, 1, 0)
        run_iteration_callbacks(callbacks, data, ansatz, trace, self, observable, reference)
        ansatz.set_optimized(True)
        return True


class ScipyOptimizer(OptimizationProtocol):
    """Minimize with ``scipy.optimize.minimize``.

    Trial points probed by the minimizer (line searches, simplex vertices)
    never leak into the ansatz: the cost and gradient functions restore the
    prior parameters. Only the iterate accepted by scipy's callback is bound
    before the ADAPT callbacks see the ansatz.

    A callback ends the run either by returning True or by flagging the
    ansatz optimized; in both cases the ansatz keeps the iterate the
    callback saw.

    Args:
        method: Any ``scipy.optimize.minimize`` method name.
        tol: Passed through as ``minimize(tol=...)``.
        options: Method options; ``maxiter`` defaults to
            ``SCIPY_DEFAULT_MAXITER`` and ``gtol`` to ``SCIPY_DEFAULT_GTOL``
            for gradient-norm methods.
        bounds: Optional bounds for methods that support them.
        use_gradient: Supply the analytic gradient. Defaults to False for
            the gradient-free methods and True otherwise.
    """

    def __init__(
        self,
        method: str = SCIPY_DEFAULT_METHOD,
        tol: Optional[float] = None,
        options: Optional[Dict[str, Any]] = None,
        bounds: Optional[Any] = None,
        use_gradient: Optional[bool] = None,
    ):
        self.method = method
        self.tol = tol
        self.bounds = bounds
        self.options = dict(options or {})
        self.options.setdefault("maxiter", SCIPY_DEFAULT_MAXITER)
        if method.upper() in GTOL_METHODS:
            self.options.setdefault("gtol", SCIPY_DEFAULT_GTOL)
        if use_gradient is None:
            use_gradient = method.upper() not in GRADIENT_FREE_METHODS
        self.use_gradient = use_gradient

    def optimize(
        self,
        ansatz: "AbstractAnsatz",
        observable: Observable,
        reference: QuantumState,
        trace: Trace,
        callbacks: Sequence[Callback] = (),
    ) -> bool:
        if ansatz.n_parameters == 0:
            ansatz.set_optimized(True)
            return True

        # Only a callback during this run may flag the ansatz optimized.
        ansatz.set_optimized(False)
        costfunction = make_costfunction(ansatz, observable, reference)
        gradfunction = make_gradfunction(ansatz, observable, reference)
        counts = {"f": 0, "g": 0, "iterations": 0}
        last: Dict[str, Any] = {"f_x": None, "f": None, "g_x": None, "g": None}
        halted = False
        start = time.perf_counter()

        def fun(x: NDArray[np.float64]) -> float:
            counts["f"] += 1
            value = costfunction(x)
            last["f_x"], last["f"] = np.array(x, copy=True), value
            return value

        def jac(x: NDArray[np.float64]) -> NDArray[np.float64]:
            counts["g"] += 1
            value = gradfunction(x)
            last["g_x"], last["g"] = np.array(x, copy=True), value
            return value

        def callback(intermediate_result):
            nonlocal halted
            if isinstance(intermediate_result, OptimizeResult):
                x = intermediate_result.x
            else:
                x = intermediate_result
            x = np.asarray(x, dtype=np.float64)
            ansatz.bind(x)
            counts["iterations"] += 1

            if last["f_x"] is not None and np.array_equal(last["f_x"], x):
                energy = last["f"]
            else:
                energy = evaluate_ansatz(ansatz, observable, reference)
            if not self.use_gradient:
                g_norm = float("nan")
            elif last["g_x"] is not None and np.array_equal(last["g_x"], x):
                g_norm = float(np.linalg.norm(last["g"]))
            else:
                g_norm = float(np.linalg.norm(gradient(ansatz, observable, reference)))

            data = _iteration_data(
                energy, g_norm, counts["iterations"], start, counts["f"], counts["g"]
            )
            logger.debug(
                "%s iter %d: E=%.10f, |g|=%.2e", self.method, counts["iterations"], energy, g_norm
            )
            stop = run_iteration_callbacks(
                callbacks, data, ansatz, trace, self, observable, reference
            )
            if stop or ansatz.is_optimized():
                halted = True
                raise StopIteration

        x0 = np.asarray(ansatz.angles(), dtype=np.float64)
        result = None
        try:
            result = minimize(
                fun,
                x0,
                jac=jac if self.use_gradient else None,
                method=self.method,
                tol=self.tol,
                bounds=self.bounds,
                options=self.options,
                callback=callback,
            )
        except StopIteration:
            # Methods without native early-stop support let the exception escape.
            halted = True

        if halted:
            logger.info("Optimization halted by a callback after %d iterations", counts["iterations"])
            return ansatz.is_optimized()

        ansatz.bind(result.x)
        logger.info(
            "%s finished: success=%s, E=%.10f, nit=%s, nfev=%d, njev=%d",
            self.method,
            result.success,
            result.fun,
            result.get("nit", counts["iterations"]),
            counts["f"],
            counts["g"],
        )
        if result.success:
            ansatz.set_optimized(True)
        else:
            logger.warning("%s did not converge: %s", self.method, result.message)
        return ansatz.is_optimized()


class AdamOptimizer(OptimizationProtocol):
    """Adam on the analytic gradient.

    Converges when the gradient norm drops below ``gtol``.

    Args:
        lr: Learning rate.
        beta1: First-moment decay.
        beta2: Second-moment decay.
        max_iter: Maximum number of parameter updates per call.
        gtol: Gradient-norm convergence threshold.
    """

    def __init__(
        self,
        lr: float = ADAM_LR,
        beta1: float = ADAM_BETA1,
        beta2: float = ADAM_BETA2,
        eps: float = ADAM_EPS,
        max_iter: int = ADAM_MAX_ITER,
        gtol: float = ADAM_GTOL,
    ):
        self.lr = lr
        self.beta1 = beta1
        self.beta2 = beta2
        self.eps = eps
        self.max_iter = max_iter
        self.gtol = gtol
        self.m: NDArray[np.float64] | None = None
        self.v: NDArray[np.float64] | None = None
        self.t = 0

    def step(
        self, params: NDArray[np.float64], grad: NDArray[np.float64]
    ) -> NDArray[np.float64]:
        self.t += 1
        if self.m is None:
            self.m = np.zeros_like(params)
            self.v = np.zeros_like(params)
        self.m = self.beta1 * self.m + (1 - self.beta1) * grad
        self.v = self.beta2 * self.v + (1 - self.beta2) * grad**2
        m_hat = self.m / (1 - self.beta1**self.t)
        v_hat = self.v / (1 - self.beta2**self.t)
        return params - self.lr * m_hat / (np.sqrt(v_hat) + self.eps)

    def reset(self) -> None:
        self.m = None
        self.v = None
        self.t = 0

    def optimize(
        self,
        ansatz: "AbstractAnsatz",
        observable: Observable,
        reference: QuantumState,
        trace: Trace,
        callbacks: Sequence[Callback] = (),
    ) -> bool:
        # Moment estimates belong to one parameter vector; the ansatz may have grown.
        self.reset()
        start = time.perf_counter()
        ansatz.set_optimized(False)
        params = np.asarray(ansatz.angles(), dtype=np.float64)
        g_calls = f_calls = 0

        for iteration in range(1, self.max_iter + 1):
            grad = gradient(ansatz, observable, reference)
            g_calls += 1
            g_norm = float(np.linalg.norm(grad))
            if g_norm < self.gtol:
                logger.info("Adam converged at iteration %d (|g|=%.2e)", iteration, g_norm)
                ansatz.set_optimized(True)
                return True

            params = self.step(params, grad)
            ansatz.bind(params)
            energy = evaluate_ansatz(ansatz, observable, reference)
            f_calls += 1
            logger.debug("Adam iter %d: E=%.10f, |g|=%.2e", iteration, energy, g_norm)

            data = _iteration_data(energy, g_norm, iteration, start, f_calls, g_calls)
            stop = run_iteration_callbacks(
                callbacks, data, ansatz, trace, self, observable, reference
            )
            if ansatz.is_optimized():
                logger.info("Adam flagged optimized by a callback at iteration %d", iteration)
                return True
            if stop:
                return False

        logger.warning("Adam did not converge within %d iterations", self.max_iter)
        return ansatz.is_optimized()

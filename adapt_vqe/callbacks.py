"""Callbacks invoked by the adapt and optimization protocols.

A callback observes a protocol step through a ``Data`` dict and may record
into the shared ``Trace`` dict, print, or flag the ansatz converged or
optimized. Returning ``True`` asks the protocol to stop immediately; the
callbacks later in the list are then skipped. Stoppers signal convergence
through the ansatz flags and return ``False``.

Callbacks are order sensitive. Put a ``Tracer`` before any stopper that
reads the trace.
"""

from __future__ import annotations

import logging
from typing import IO, TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import numpy as np

from adapt_vqe.quantum_objects import Observable
from adapt_vqe.states import QuantumState

if TYPE_CHECKING:
    from adapt_vqe.ansatz import AbstractAnsatz

logger = logging.getLogger(__name__)

Trace = Dict[str, Any]
Data = Dict[str, Any]


class Callback:
    """Base callback: does nothing in either context."""

    def on_adaptation(
        self,
        data: Data,
        ansatz: "AbstractAnsatz",
        trace: Trace,
        protocol: Any,
        pool: Sequence[Any],
        observable: Observable,
        reference: QuantumState,
    ) -> bool:
        return False

    def on_iteration(
        self,
        data: Data,
        ansatz: "AbstractAnsatz",
        trace: Trace,
        protocol: Any,
        observable: Observable,
        reference: QuantumState,
    ) -> bool:
        return False


def run_adaptation_callbacks(
    callbacks: Sequence[Callback],
    data: Data,
    ansatz: "AbstractAnsatz",
    trace: Trace,
    protocol: Any,
    pool: Sequence[Any],
    observable: Observable,
    reference: QuantumState,
) -> bool:
    """Run callbacks in order; stop at (and return True for) the first that asks to."""
    for callback in callbacks:
        if callback.on_adaptation(data, ansatz, trace, protocol, pool, observable, reference):
            return True
    return False


def run_iteration_callbacks(
    callbacks: Sequence[Callback],
    data: Data,
    ansatz: "AbstractAnsatz",
    trace: Trace,
    protocol: Any,
    observable: Observable,
    reference: QuantumState,
) -> bool:
    for callback in callbacks:
        if callback.on_iteration(data, ansatz, trace, protocol, observable, reference):
            return True
    return False


def _snapshot(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.copy()
    if isinstance(value, list):
        return list(value)
    return value


def _format_value(value: Any) -> str:
    if isinstance(value, (float, np.floating)):
        return f"{value:.10g}"
    if isinstance(value, np.ndarray) and value.size > 8:
        return f"array(shape={value.shape}, max|.|={np.max(np.abs(value)):.3e})"
    return str(value)


class Tracer(Callback):
    """Append the chosen data keys into the trace.

    Also maintains two counters: ``trace["iteration"]`` gets the running
    iteration number at every optimization iteration, and
    ``trace["adaptation"]`` records, at every adaptation, how many
    iterations had happened so far.

    Args:
        *keys: Data keys to record, e.g. ``"energy"``, ``"selected_index"``.
    """

    def __init__(self, *keys: str):
        self.keys = keys

    def _record(self, data: Data, trace: Trace) -> None:
        for key in self.keys:
            if key in data:
                trace.setdefault(key, []).append(_snapshot(data[key]))

    def on_adaptation(self, data, ansatz, trace, protocol, pool, observable, reference):
        trace.setdefault("adaptation", []).append(len(trace.get("iteration", [])))
        self._record(data, trace)
        return False

    def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
        iterations = trace.setdefault("iteration", [])
        iterations.append(len(iterations) + 1)
        self._record(data, trace)
        return False


class ParameterTracer(Callback):
    """Record the parameter vector at every iteration.

    ``trace["parameters"]`` is a 2-D array with one column per iteration.
    When the ansatz grows, earlier columns are zero-padded to the new length.
    """

    def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
        column = np.asarray(ansatz.angles(), dtype=np.float64).reshape(-1, 1)
        history = trace.get("parameters")
        if history is None:
            trace["parameters"] = column
            return False
        rows = max(history.shape[0], column.shape[0])
        if history.shape[0] < rows:
            history = np.vstack([history, np.zeros((rows - history.shape[0], history.shape[1]))])
        if column.shape[0] < rows:
            column = np.vstack([column, np.zeros((rows - column.shape[0], 1))])
        trace["parameters"] = np.hstack([history, column])
        return False


class Printer(Callback):
    """Report chosen data keys at every adaptation and iteration.

    Writes to ``stream`` when one is given, otherwise logs at INFO level.
    """

    def __init__(self, *keys: str, stream: Optional[IO[str]] = None):
        self.keys = keys
        self.stream = stream

    def _emit(self, message: str) -> None:
        if self.stream is not None:
            self.stream.write(message + "\n")
        else:
            logger.info("%s", message)

    def _line(self, prefix: str, data: Data) -> str:
        fields = [f"{k}={_format_value(data[k])}" for k in self.keys if k in data]
        return f"{prefix}: " + ", ".join(fields)

    def on_adaptation(self, data, ansatz, trace, protocol, pool, observable, reference):
        self._emit(self._line(f"--- adaptation {len(trace.get('adaptation', []))} ---", data))
        return False

    def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
        self._emit(self._line(f"iteration {len(trace.get('iteration', []))}", data))
        return False


class ParameterPrinter(Callback):
    """Report the full parameter vector.

    Args:
        stream: Text stream to write to; logs at INFO level when omitted.
        adapt: Report at every adaptation.
        optimize: Report at every optimization iteration.
    """

    def __init__(
        self, stream: Optional[IO[str]] = None, adapt: bool = True, optimize: bool = False
    ):
        self.stream = stream
        self.adapt = adapt
        self.optimize = optimize

    def _report(self, ansatz: "AbstractAnsatz") -> None:
        message = "parameters: " + np.array2string(ansatz.angles(), precision=6)
        if self.stream is not None:
            self.stream.write(message + "\n")
        else:
            logger.info("%s", message)

    def on_adaptation(self, data, ansatz, trace, protocol, pool, observable, reference):
        if self.adapt:
            self._report(ansatz)
        return False

    def on_iteration(self, data, ansatz, trace, protocol, observable, reference):
        if self.optimize:
            self._report(ansatz)
        return False


class ParameterStopper(Callback):
    """Flag convergence once the ansatz holds ``n`` generators."""

    def __init__(self, n: int):
        self.n = n

    def on_adaptation(self, data, ansatz, trace, protocol, pool, observable, reference):
        if len(ansatz) >= self.n:
            logger.info("Ansatz reached %d generators; stopping", len(ansatz))
            ansatz.set_converged(True)
        return False


class ScoreStopper(Callback):
    """Flag convergence when the largest score falls below ``threshold``."""

    def __init__(self, threshold: float):
        self.threshold = threshold

    def on_adaptation(self, data, ansatz, trace, protocol, pool, observable, reference):
        scores = np.abs(np.asarray(data["scores"]))
        if scores.size and scores.max() < self.threshold:
            logger.info("Largest score %.3e below %.3e; stopping", scores.max(), self.threshold)
            ansatz.set_converged(True)
        return False


class SlowStopper(Callback):
    """Flag convergence when the energies at the last ``n`` adaptations span
    less than ``threshold``.

    The energy at an adaptation is the last one traced before it. Needs a
    preceding ``Tracer`` recording ``"energy"``; does nothing until ``n``
    adaptations with an energy exist.
    """

    def __init__(self, threshold: float, n: int):
        if n < 1:
            raise ValueError(f"SlowStopper needs a window of at least one adaptation, got {n}")
        self.threshold = threshold
        self.n = n

    def on_adaptation(self, data, ansatz, trace, protocol, pool, observable, reference):
        energies: List[float] = trace.get("energy", [])
        adaptations: List[int] = trace.get("adaptation", [])
        at_adaptation = [energies[k - 1] for k in adaptations if 0 < k <= len(energies)]
        if len(at_adaptation) < self.n:
            return False
        recent = at_adaptation[-self.n :]
        spread = max(recent) - min(recent)
        if spread < self.threshold:
            logger.info(
                "Energy spread %.3e over the last %d adaptations; stopping", spread, self.n
            )
            ansatz.set_converged(True)
        return False


class FloorStopper(Callback):
    """Flag convergence once the latest energy is within ``threshold`` of ``floor``."""

    def __init__(self, threshold: float, floor: float):
        self.threshold = threshold
        self.floor = floor

    def on_adaptation(self, data, ansatz, trace, protocol, pool, observable, reference):
        energies = trace.get("energy", [])
        if energies and energies[-1] - self.floor < self.threshold:
            logger.info(
                "Energy %.10f within %.3e of floor %.10f; stopping",
                energies[-1],
                self.threshold,
                self.floor,
            )
            ansatz.set_converged(True)
        return False

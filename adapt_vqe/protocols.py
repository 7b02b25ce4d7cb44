"""Protocol interfaces and the ADAPT run loop.

An ``AdaptProtocol`` scores pool candidates and grows the ansatz; an
``OptimizationProtocol`` refines the current parameters. ``run`` alternates
between them until the ansatz is converged or a step fails.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Sequence

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.callbacks import Callback, Trace
from adapt_vqe.gradient import commutator_score
from adapt_vqe.quantum_objects import Generator, Observable
from adapt_vqe.states import QuantumState

if TYPE_CHECKING:
    from adapt_vqe.ansatz import AbstractAnsatz

logger = logging.getLogger(__name__)


class AdaptProtocol(abc.ABC):
    """Selects which generator(s) from a pool to append to an ansatz.

    The default score of a candidate G is |<psi|[G, H]|psi>|, which equals
    the magnitude of the derivative G would have if appended with parameter
    zero. The state psi comes from ``ansatz.prepare_scoring_state``.
    """

    score_dtype = np.float64

    def calculate_score(
        self,
        ansatz: "AbstractAnsatz",
        generator: Generator,
        observable: Observable,
        reference: QuantumState,
    ) -> float:
        state = ansatz.prepare_scoring_state(reference)
        return commutator_score(generator, state, observable.covector(state))

    def calculate_scores(
        self,
        ansatz: "AbstractAnsatz",
        pool: Sequence[Generator],
        observable: Observable,
        reference: QuantumState,
    ) -> NDArray[np.float64]:
        """Score every pool candidate, reusing one evolved state and covector."""
        state = ansatz.prepare_scoring_state(reference)
        covector = observable.covector(state)
        return np.array(
            [commutator_score(g, state, covector) for g in pool], dtype=self.score_dtype
        )

    @abc.abstractmethod
    def adapt(
        self,
        ansatz: "AbstractAnsatz",
        trace: Trace,
        pool: Sequence[Generator],
        observable: Observable,
        reference: QuantumState,
        callbacks: Sequence[Callback] = (),
    ) -> bool:
        """Try to grow the ansatz; return True iff generators were appended."""


class OptimizationProtocol(abc.ABC):
    """Refines all ansatz parameters toward a local minimum of the cost."""

    @abc.abstractmethod
    def optimize(
        self,
        ansatz: "AbstractAnsatz",
        observable: Observable,
        reference: QuantumState,
        trace: Trace,
        callbacks: Sequence[Callback] = (),
    ) -> bool:
        """Optimize in place; return True iff the ansatz ends up optimized."""


def run(
    ansatz: "AbstractAnsatz",
    trace: Trace,
    adapt_protocol: AdaptProtocol,
    optimization_protocol: OptimizationProtocol,
    pool: Sequence[Generator],
    observable: Observable,
    reference: QuantumState,
    callbacks: Sequence[Callback] = (),
) -> bool:
    """Alternate optimization and adaptation until convergence.

    There is no iteration cap: install a stopper callback (for example
    ``ParameterStopper``) when the pool may never exhaust its scores.

    Returns:
        True if the ansatz converged; False if an optimization ended without
        reaching an optimum or a callback stopped an adaptation before
        convergence.
    """
    while True:
        if ansatz.is_converged():
            logger.info("ADAPT converged with %d generators", len(ansatz))
            return True

        if not ansatz.is_optimized():
            optimization_protocol.optimize(ansatz, observable, reference, trace, callbacks)
            if not ansatz.is_optimized():
                logger.warning(
                    "Optimization stopped before reaching an optimum (%d generators)",
                    len(ansatz),
                )
                return False

        if not adapt_protocol.adapt(ansatz, trace, pool, observable, reference, callbacks):
            if not ansatz.is_converged():
                logger.warning("Adaptation halted by a callback before convergence")
            return ansatz.is_converged()

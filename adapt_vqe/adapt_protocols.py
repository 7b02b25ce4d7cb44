"""Concrete adapt protocols: vanilla, degenerate tie-breaking, and TETRIS.

All three share one step structure:

1. score every candidate;
2. if every score is below ``epsilon``, flag the ansatz converged and return
   without consulting any callback;
3. select one or more candidates and package their data;
4. run the callbacks; abort if one asks to stop or flags convergence;
5. otherwise append the selection with zero parameters.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.callbacks import Callback, Data, Trace, run_adaptation_callbacks
from adapt_vqe.protocols import AdaptProtocol
from adapt_vqe.quantum_objects import SCORE_EPSILON, Generator, Observable
from adapt_vqe.states import QuantumState

if TYPE_CHECKING:
    from adapt_vqe.ansatz import AbstractAnsatz

logger = logging.getLogger(__name__)

TETRIS_SCORE_THRESHOLD = 1e-3


class VanillaADAPT(AdaptProtocol):
    """Append the single candidate with the largest score magnitude.

    Ties go to the first occurrence in the pool.

    Args:
        epsilon: Scores below this magnitude count as zero.
    """

    def __init__(self, epsilon: float = SCORE_EPSILON):
        self.epsilon = epsilon

    def select(self, scores: NDArray[np.float64]) -> int:
        return int(np.argmax(np.abs(scores)))

    def _is_exhausted(self, ansatz: "AbstractAnsatz", scores: NDArray[np.float64]) -> bool:
        if np.all(np.abs(scores) < self.epsilon):
            logger.info("All %d scores vanish; ansatz converged", len(scores))
            ansatz.set_converged(True)
            return True
        return False

    def adapt(
        self,
        ansatz: "AbstractAnsatz",
        trace: Trace,
        pool: Sequence[Generator],
        observable: Observable,
        reference: QuantumState,
        callbacks: Sequence[Callback] = (),
    ) -> bool:
        if len(pool) == 0:
            raise ValueError("Cannot adapt with an empty pool")

        scores = self.calculate_scores(ansatz, pool, observable, reference)
        if self._is_exhausted(ansatz, scores):
            return False

        index = self.select(scores)
        generator = pool[index]
        parameter = ansatz.parameter_dtype(0)
        data: Data = {
            "scores": scores,
            "selected_index": index,
            "selected_score": float(scores[index]),
            "selected_generator": generator,
            "selected_parameter": parameter,
        }

        stop = run_adaptation_callbacks(
            callbacks, data, ansatz, trace, self, pool, observable, reference
        )
        if stop or ansatz.is_converged():
            return False

        ansatz.add_generator(generator, parameter)
        logger.info(
            "Adapted: pool[%d] = %r (score %.3e), ansatz length %d",
            index,
            generator,
            scores[index],
            len(ansatz),
        )
        return True


class DegenerateADAPT(VanillaADAPT):
    """Vanilla ADAPT, but exact ties for the top score are broken uniformly at random.

    Args:
        rng: Random generator used for tie-breaking.
        epsilon: Scores below this magnitude count as zero.
    """

    def __init__(
        self, rng: Optional[np.random.Generator] = None, epsilon: float = SCORE_EPSILON
    ):
        super().__init__(epsilon)
        self.rng = rng if rng is not None else np.random.default_rng()

    def select(self, scores: NDArray[np.float64]) -> int:
        magnitudes = np.abs(scores)
        tied = np.flatnonzero(magnitudes == magnitudes.max())
        if len(tied) > 1:
            logger.debug("Breaking a %d-way score tie at random", len(tied))
        return int(self.rng.choice(tied))


class TetrisADAPT(VanillaADAPT):
    """Append several candidates with pairwise disjoint qubit support per step.

    Candidates are visited in decreasing score order. The top candidate is
    always taken; each later one is taken if its score exceeds ``threshold``
    and its support avoids every qubit already covered.

    Args:
        threshold: Minimum score for candidates after the first.
        epsilon: Scores below this magnitude count as zero.
    """

    def __init__(
        self, threshold: float = TETRIS_SCORE_THRESHOLD, epsilon: float = SCORE_EPSILON
    ):
        super().__init__(epsilon)
        self.threshold = threshold

    def select_many(
        self, scores: NDArray[np.float64], pool: Sequence[Generator]
    ) -> List[int]:
        magnitudes = np.abs(scores)
        # Stable sort keeps first-occurrence order among ties.
        order = np.argsort(-magnitudes, kind="stable")
        selected = [int(order[0])]
        covered = set(pool[order[0]].support())
        for index in order[1:]:
            if magnitudes[index] <= self.threshold:
                break
            support = pool[index].support()
            if covered.isdisjoint(support):
                selected.append(int(index))
                covered |= support
        return selected

    def adapt(
        self,
        ansatz: "AbstractAnsatz",
        trace: Trace,
        pool: Sequence[Generator],
        observable: Observable,
        reference: QuantumState,
        callbacks: Sequence[Callback] = (),
    ) -> bool:
        if len(pool) == 0:
            raise ValueError("Cannot adapt with an empty pool")

        scores = self.calculate_scores(ansatz, pool, observable, reference)
        if self._is_exhausted(ansatz, scores):
            return False

        indices = self.select_many(scores, pool)
        generators = [pool[i] for i in indices]
        parameters = [ansatz.parameter_dtype(0) for _ in indices]
        data: Data = {
            "scores": scores,
            "selected_index": indices,
            "selected_score": [float(scores[i]) for i in indices],
            "selected_generator": generators,
            "selected_parameter": parameters,
        }

        stop = run_adaptation_callbacks(
            callbacks, data, ansatz, trace, self, pool, observable, reference
        )
        if stop or ansatz.is_converged():
            return False

        ansatz.add_generators(generators, parameters)
        logger.info(
            "Adapted %d disjoint generators %s, ansatz length %d",
            len(indices),
            indices,
            len(ansatz),
        )
        return True

"""Analytic gradients by the adjoint (costate) method.

For a cost C(psi) with covector lambda (dC = 2 Re <lambda|d psi>) and an
ansatz U = U_L ... U_1, the derivative with respect to angle i is

    dC/d theta_i = 2 Re <U_{i+1}^dag ... U_L^dag lambda | dU_i psi_{i-1}>.

``gradient_inplace`` computes every component with one forward sweep and
one backward sweep: the state and the covector are both un-rotated gate by
gate, so the total cost is O(L) generator applications. ``partial`` computes
one component directly and serves as a reference for consistency checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.evolution import evaluate_ansatz, evolve_state
from adapt_vqe.quantum_objects import DimensionMismatchError, Generator, Observable
from adapt_vqe.states import QuantumState, copy_state, inner

if TYPE_CHECKING:
    from adapt_vqe.ansatz import AbstractAnsatz


def partial(
    index: int,
    ansatz: "AbstractAnsatz",
    observable: Observable,
    reference: QuantumState,
) -> float:
    """Derivative of the cost with respect to the ``index``-th angle (0-based).

    Evolves up to the chosen step, forms the costate there, then carries
    both the state and the costate through the remaining steps.
    """
    steps = list(ansatz.steps())
    if not 0 <= index < len(steps):
        raise IndexError(f"Parameter index {index} out of range for {len(steps)} parameters")

    state = copy_state(reference)
    for generator, angle in steps[:index]:
        generator.evolve_inplace(angle, state)

    generator, angle = steps[index]
    costate = generator.differential_action(angle, state)
    generator.evolve_inplace(angle, state)

    for generator, angle in steps[index + 1 :]:
        generator.evolve_inplace(angle, state)
        generator.evolve_inplace(angle, costate)

    covector = observable.covector(state)
    return 2.0 * float(np.real(inner(covector, costate)))


def gradient_inplace(
    result: NDArray[np.float64],
    ansatz: "AbstractAnsatz",
    observable: Observable,
    reference: QuantumState,
) -> NDArray[np.float64]:
    """Fill ``result`` with the cost gradient over all ansatz angles.

    Holds two working states (the state and the covector) for the whole
    sweep and allocates one costate per parameter.

    Raises:
        DimensionMismatchError: If ``result`` does not have one slot per angle.
    """
    steps = list(ansatz.steps())
    if len(result) != len(steps):
        raise DimensionMismatchError(
            f"Gradient buffer has length {len(result)}, ansatz has {len(steps)} parameters"
        )

    state = evolve_state(ansatz, reference)
    covector = observable.covector(state)
    for i in range(len(steps) - 1, -1, -1):
        generator, angle = steps[i]
        generator.unevolve_inplace(angle, state)
        costate = generator.differential_action(angle, state)
        result[i] = 2.0 * np.real(inner(costate, covector))
        generator.unevolve_inplace(angle, covector)
    return result


def gradient(
    ansatz: "AbstractAnsatz", observable: Observable, reference: QuantumState
) -> NDArray[np.float64]:
    """Cost gradient with respect to ``ansatz.angles()``."""
    result = np.zeros(ansatz.n_parameters, dtype=np.float64)
    return gradient_inplace(result, ansatz, observable, reference)


def commutator_score(
    generator: Generator, state: QuantumState, covector: QuantumState
) -> float:
    """|dC/d theta| at theta = 0 for exp(-i theta G) applied after ``state``.

    Equals |<psi|[G, H]|psi>| = 2 |Im <H psi|G psi>| when the covector is
    H|psi>.
    """
    return 2.0 * abs(float(np.imag(inner(covector, generator.apply(state)))))


def make_costfunction(
    ansatz: "AbstractAnsatz", observable: Observable, reference: QuantumState
) -> Callable[[NDArray[np.float64]], float]:
    """Scalar cost of a flat parameter vector.

    The returned function binds the trial point, evaluates, then restores the
    ansatz's previous parameters, so probing it never changes the ansatz.
    """

    def costfunction(x: NDArray[np.float64]) -> float:
        saved = ansatz.angles()
        ansatz.bind(x)
        try:
            return float(evaluate_ansatz(ansatz, observable, reference))
        finally:
            ansatz.bind(saved)

    return costfunction


def make_gradfunction(
    ansatz: "AbstractAnsatz",
    observable: Observable,
    reference: QuantumState,
    buffer: Optional[NDArray[np.float64]] = None,
) -> Callable[[NDArray[np.float64]], NDArray[np.float64]]:
    """Gradient of a flat parameter vector; restores the ansatz like the cost."""

    def gradfunction(x: NDArray[np.float64]) -> NDArray[np.float64]:
        saved = ansatz.angles()
        ansatz.bind(x)
        try:
            result = np.zeros(len(x)) if buffer is None else buffer
            return gradient_inplace(result, ansatz, observable, reference).copy()
        finally:
            ansatz.bind(saved)

    return gradfunction

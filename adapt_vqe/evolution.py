"""State evolution and expectation values.

``evolve_state_inplace`` is the canonical implementation: it walks the
ansatz's (generator, angle) steps in application order and rotates the
given state in place. All non-mutating variants copy first, so a reference
state handed to the engine is never modified.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from adapt_vqe.quantum_objects import Energy, Generator, Observable
from adapt_vqe.states import QuantumState, copy_state

if TYPE_CHECKING:
    from adapt_vqe.ansatz import AbstractAnsatz


def evolve_generator_inplace(
    generator: Generator, angle: float, state: QuantumState
) -> QuantumState:
    """Apply exp(-i angle G) to ``state`` in place; returns the same object."""
    return generator.evolve_inplace(angle, state)


def evolve_generator(
    generator: Generator, angle: float, state: QuantumState
) -> QuantumState:
    """Return exp(-i angle G)|state> without touching ``state``."""
    return generator.evolve_inplace(angle, copy_state(state))


def evolve_state_inplace(ansatz: "AbstractAnsatz", state: QuantumState) -> QuantumState:
    """Rotate ``state`` by every step of ``ansatz``, lowest index first."""
    for generator, angle in ansatz.steps():
        generator.evolve_inplace(angle, state)
    return state


def unevolve_state_inplace(ansatz: "AbstractAnsatz", state: QuantumState) -> QuantumState:
    """Undo ``evolve_state_inplace``: inverse rotations, highest index first."""
    for generator, angle in reversed(list(ansatz.steps())):
        generator.unevolve_inplace(angle, state)
    return state


def evolve_state(ansatz: "AbstractAnsatz", reference: QuantumState) -> QuantumState:
    """Return the state prepared by ``ansatz`` from ``reference`` (copied)."""
    return evolve_state_inplace(ansatz, copy_state(reference))


def evaluate(observable: Observable, state: QuantumState) -> Energy:
    """Expectation value (cost) of ``observable`` in ``state``."""
    return observable.evaluate(state)


def evaluate_ansatz(
    ansatz: "AbstractAnsatz", observable: Observable, reference: QuantumState
) -> Energy:
    """Cost of the state that ``ansatz`` prepares from ``reference``."""
    return observable.evaluate(evolve_state(ansatz, reference))

"""Core object model for ADAPT-VQE.

Defines the numeric aliases, the error taxonomy, and the two capability
interfaces every concrete representation must satisfy:

* ``Generator``: the Hermitian operator G of a rotation exp(-i theta G).
* ``Observable``: the operator (or cost) whose expectation value is minimized.

Quantum states are either dense ``numpy`` complex vectors or
``adapt_vqe.states.SparseState`` maps; the state helpers live in
``adapt_vqe.states``.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, FrozenSet

import numpy as np

if TYPE_CHECKING:
    from adapt_vqe.states import QuantumState

# Semantic names for the scalar categories used throughout the package.
Parameter = float
Energy = float
Score = float

# Scores below this magnitude count as zero when checking convergence.
SCORE_EPSILON = float(np.finfo(np.float64).eps)


class AdaptNotImplementedError(NotImplementedError):
    """A generator/observable has no implementation for the given state type.

    Raised instead of silently approximating, so that the validation harness
    can tell a missing plugin apart from a misbehaving one.
    """


class DimensionMismatchError(ValueError):
    """Qubit counts or parameter-vector lengths disagree."""


class Generator(abc.ABC):
    """Hermitian operator G defining the rotation exp(-i theta G).

    Subclasses must implement ``evolve_inplace``, ``apply`` and
    ``differential_action``. The default ``unevolve_inplace`` applies the
    rotation with negated angle, which is only correct when the rotation is a
    single exponential; product-form generators override it.
    """

    n_qubits: int

    @abc.abstractmethod
    def evolve_inplace(self, angle: float, state: QuantumState) -> QuantumState:
        """Apply exp(-i angle G) to ``state`` in place and return it."""

    def unevolve_inplace(self, angle: float, state: QuantumState) -> QuantumState:
        """Apply the inverse rotation to ``state`` in place and return it."""
        return self.evolve_inplace(-angle, state)

    @abc.abstractmethod
    def apply(self, state: QuantumState) -> QuantumState:
        """Return G|state> as a new state."""

    @abc.abstractmethod
    def differential_action(self, angle: float, state: QuantumState) -> QuantumState:
        """Return d/d(angle) [exp(-i angle G)] |state> as a new state.

        This is the costate of the adjoint gradient sweep. ``state`` is the
        state *before* this generator's rotation and is left untouched.
        """

    def support(self) -> FrozenSet[int]:
        """Qubits on which the generator acts non-trivially."""
        raise AdaptNotImplementedError(
            f"{type(self).__name__} does not define its qubit support"
        )


class Observable(abc.ABC):
    """Operator (or cost) defining the quantity to minimize.

    ``covector(state)`` returns the bra-state lambda for which a small change
    d|psi> of the state changes the cost by 2 Re <lambda|d psi>. For a
    Hermitian operator H this is simply H|psi>.
    """

    n_qubits: int
    energy_dtype = np.float64

    @abc.abstractmethod
    def evaluate(self, state: QuantumState) -> Energy:
        """Cost of ``state``; for a Hermitian H this is Re <state|H|state>."""

    @abc.abstractmethod
    def covector(self, state: QuantumState) -> QuantumState:
        """Return the gradient covector lambda for ``state`` as a new state."""

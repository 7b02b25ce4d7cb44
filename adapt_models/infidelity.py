"""Infidelity cost for overlap-guided ADAPT.

Instead of minimizing an energy, grow an ansatz that reproduces a known
target state |phi>: the cost is 1 - |<phi|psi>|^2. Scoring and gradients
go through the generic covector interface, with lambda = -|phi><phi|psi>.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.quantum_objects import Observable
from adapt_vqe.states import (
    QuantumState,
    as_dense,
    check_qubits,
    copy_state,
    inner,
    n_qubits_of,
    scale_state,
    state_norm,
)


class Infidelity(Observable):
    """Cost 1 - |<target|psi>|^2 for a normalized target state.

    Args:
        target: Dense or sparse target state.

    Raises:
        ValueError: If the target is not normalized.
    """

    def __init__(self, target: QuantumState):
        norm = state_norm(target)
        if abs(norm - 1.0) > 1e-10:
            raise ValueError(f"Infidelity target must be normalized, got norm {norm:.6g}")
        self.target = copy_state(target)
        self.n_qubits = n_qubits_of(target)

    def __repr__(self) -> str:
        return f"Infidelity(n_qubits={self.n_qubits})"

    def overlap(self, state: QuantumState) -> complex:
        check_qubits(self.n_qubits, state)
        return inner(self.target, state)

    def evaluate(self, state: QuantumState) -> float:
        return 1.0 - abs(self.overlap(state)) ** 2

    def covector(self, state: QuantumState) -> QuantumState:
        return scale_state(-self.overlap(state), copy_state(self.target))

    def dense(self) -> NDArray[np.complex128]:
        """I - |target><target|, whose expectation equals the cost on normalized states."""
        phi = as_dense(self.target)
        return np.eye(len(phi), dtype=np.complex128) - np.outer(phi, phi.conj())

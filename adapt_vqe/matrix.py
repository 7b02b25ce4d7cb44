"""Brute-force dense matrices for generators, observables and ansatze.

These exist to check the state-vector engine against plain linear algebra
on small registers (``scipy.linalg.expm`` of explicit 2^n x 2^n matrices).
They scale exponentially and are never used on the hot path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import expm

from adapt_vqe.pauli import PauliVector
from adapt_vqe.quantum_objects import AdaptNotImplementedError, DimensionMismatchError

if TYPE_CHECKING:
    from adapt_vqe.ansatz import AbstractAnsatz


def _dense_operator(n_qubits: int, operator) -> NDArray[np.complex128]:
    dense = getattr(operator, "dense", None)
    if dense is None:
        raise AdaptNotImplementedError(
            f"No dense matrix conversion for {type(operator).__name__}"
        )
    matrix = dense()
    if matrix.shape != (1 << n_qubits, 1 << n_qubits):
        raise DimensionMismatchError(
            f"{type(operator).__name__} matrix has shape {matrix.shape}, "
            f"expected {n_qubits} qubits"
        )
    return matrix


def observable_matrix(n_qubits: int, observable) -> NDArray[np.complex128]:
    """Dense Hermitian matrix whose expectation value is the observable's cost."""
    return _dense_operator(n_qubits, observable)


def generator_unitary(n_qubits: int, generator, angle: float) -> NDArray[np.complex128]:
    """exp(-i angle G) as a dense matrix; product-form generators multiply per term."""
    if isinstance(generator, PauliVector):
        unitary = np.eye(1 << n_qubits, dtype=np.complex128)
        for term in generator:
            unitary = expm(-1j * angle * _dense_operator(n_qubits, term)) @ unitary
        return unitary
    return expm(-1j * angle * _dense_operator(n_qubits, generator))


def ansatz_matrix(n_qubits: int, ansatz: "AbstractAnsatz") -> NDArray[np.complex128]:
    """Dense unitary U = U_L ... U_1 prepared by ``ansatz``."""
    unitary = np.eye(1 << n_qubits, dtype=np.complex128)
    for generator, angle in ansatz.steps():
        unitary = generator_unitary(n_qubits, generator, angle) @ unitary
    return unitary

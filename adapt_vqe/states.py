"""Quantum state representations and representation-agnostic helpers.

A state is either a dense complex ``numpy`` vector of length 2**n, or a
``SparseState`` holding only the non-zero amplitudes. Basis index ``b``
encodes qubit ``k`` in bit ``n - 1 - k`` (qubit 0 is the most significant
bit), matching the TensorCircuit ordering.

The helpers in this module (``copy_state``, ``zeros_like_state``, ``inner``,
``axpy``, ...) accept either representation so the evolution and gradient
engines never need to branch on the state type.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Union

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.quantum_objects import DimensionMismatchError

# Amplitudes smaller than this are pruned from sparse states after rotations.
SPARSE_CLIP_THRESHOLD = 1e-16


class SparseState:
    """Sparse state vector: a map from basis index to complex amplitude.

    Args:
        n_qubits: Number of qubits in the register.
        amplitudes: Optional initial ``{basis_index: amplitude}`` mapping.
    """

    __slots__ = ("n_qubits", "amplitudes")

    def __init__(
        self, n_qubits: int, amplitudes: Optional[Dict[int, complex]] = None
    ):
        if n_qubits < 0:
            raise ValueError(f"n_qubits must be non-negative, got {n_qubits}")
        self.n_qubits = n_qubits
        self.amplitudes: Dict[int, complex] = {}
        dim = 1 << n_qubits
        for index, amplitude in (amplitudes or {}).items():
            if not 0 <= index < dim:
                raise DimensionMismatchError(
                    f"Basis index {index} out of range for {n_qubits} qubits"
                )
            self.amplitudes[int(index)] = complex(amplitude)

    @property
    def dim(self) -> int:
        return 1 << self.n_qubits

    @classmethod
    def from_dense(
        cls, vector: NDArray[np.complex128], threshold: float = 0.0
    ) -> "SparseState":
        """Build a sparse state from the non-zero entries of a dense vector."""
        n_qubits = n_qubits_of(vector)
        nonzero = np.flatnonzero(np.abs(vector) > threshold)
        return cls(n_qubits, {int(i): complex(vector[i]) for i in nonzero})

    def to_dense(self) -> NDArray[np.complex128]:
        vector = np.zeros(self.dim, dtype=np.complex128)
        for index, amplitude in self.amplitudes.items():
            vector[index] = amplitude
        return vector

    def copy(self) -> "SparseState":
        return SparseState(self.n_qubits, dict(self.amplitudes))

    def zeros_like(self) -> "SparseState":
        return SparseState(self.n_qubits)

    def clip(self, threshold: float = SPARSE_CLIP_THRESHOLD) -> "SparseState":
        """Drop amplitudes with magnitude below ``threshold`` (in place)."""
        self.amplitudes = {
            k: v for k, v in self.amplitudes.items() if abs(v) >= threshold
        }
        return self

    def scale(self, factor: complex) -> "SparseState":
        """Multiply every amplitude by ``factor`` (in place)."""
        for index in self.amplitudes:
            self.amplitudes[index] *= factor
        return self

    def add_scaled(self, factor: complex, other: "SparseState") -> "SparseState":
        """In-place ``self += factor * other``."""
        _check_same_register(self, other)
        for index, amplitude in other.amplitudes.items():
            self.amplitudes[index] = self.amplitudes.get(index, 0.0) + factor * amplitude
        return self

    def vdot(self, other: Union["SparseState", NDArray[np.complex128]]) -> complex:
        """Inner product <self|other>; ``other`` may be dense."""
        if isinstance(other, SparseState):
            _check_same_register(self, other)
            small, large = (
                (self.amplitudes, other.amplitudes)
                if len(self.amplitudes) <= len(other.amplitudes)
                else (other.amplitudes, self.amplitudes)
            )
            total = 0.0j
            for index in small:
                if index in large:
                    total += self.amplitudes[index].conjugate() * other.amplitudes[index]
            return total
        if len(other) != self.dim:
            raise DimensionMismatchError(
                f"Cannot contract {self.n_qubits}-qubit sparse state with "
                f"vector of length {len(other)}"
            )
        return sum(
            (a.conjugate() * complex(other[i]) for i, a in self.amplitudes.items()),
            0.0j,
        )

    def norm(self) -> float:
        return float(np.sqrt(sum(abs(a) ** 2 for a in self.amplitudes.values())))

    def __len__(self) -> int:
        return len(self.amplitudes)

    def __getitem__(self, index: int) -> complex:
        return self.amplitudes.get(index, 0.0j)

    def __mul__(self, factor: complex) -> "SparseState":
        return self.copy().scale(factor)

    __rmul__ = __mul__

    def __add__(self, other: "SparseState") -> "SparseState":
        return self.copy().add_scaled(1.0, other)

    def __sub__(self, other: "SparseState") -> "SparseState":
        return self.copy().add_scaled(-1.0, other)

    def __neg__(self) -> "SparseState":
        return self.copy().scale(-1.0)

    def __repr__(self) -> str:
        return f"SparseState(n_qubits={self.n_qubits}, nnz={len(self.amplitudes)})"


QuantumState = Union[NDArray[np.complex128], SparseState]


def _check_same_register(a: SparseState, b: SparseState) -> None:
    if a.n_qubits != b.n_qubits:
        raise DimensionMismatchError(
            f"Sparse states act on {a.n_qubits} and {b.n_qubits} qubits"
        )


def n_qubits_of(state: QuantumState) -> int:
    """Number of qubits spanned by ``state``."""
    if isinstance(state, SparseState):
        return state.n_qubits
    dim = len(state)
    n_qubits = dim.bit_length() - 1
    if dim < 1 or (1 << n_qubits) != dim:
        raise DimensionMismatchError(
            f"State vector length {dim} is not a power of two"
        )
    return n_qubits


def check_qubits(expected: int, state: QuantumState) -> None:
    """Raise ``DimensionMismatchError`` unless ``state`` spans ``expected`` qubits."""
    actual = n_qubits_of(state)
    if actual != expected:
        raise DimensionMismatchError(
            f"Operator acts on {expected} qubits but state has {actual}"
        )


def copy_state(state: QuantumState) -> QuantumState:
    return state.copy()


def zeros_like_state(state: QuantumState) -> QuantumState:
    if isinstance(state, SparseState):
        return state.zeros_like()
    return np.zeros_like(state)


def scale_state(factor: complex, state: QuantumState) -> QuantumState:
    """In-place ``state *= factor``."""
    if isinstance(state, SparseState):
        return state.scale(factor)
    state *= factor
    return state


def axpy(factor: complex, x: QuantumState, y: QuantumState) -> QuantumState:
    """In-place ``y += factor * x``; returns ``y``."""
    if isinstance(y, SparseState):
        return y.add_scaled(factor, x)
    y += factor * x
    return y


def inner(bra: QuantumState, ket: QuantumState) -> complex:
    """Inner product <bra|ket> for any combination of representations."""
    if isinstance(bra, SparseState):
        return bra.vdot(ket)
    if isinstance(ket, SparseState):
        return ket.vdot(bra).conjugate()
    return complex(np.vdot(bra, ket))


def state_norm(state: QuantumState) -> float:
    if isinstance(state, SparseState):
        return state.norm()
    return float(np.linalg.norm(state))


def as_dense(state: QuantumState) -> NDArray[np.complex128]:
    """Dense copy of ``state`` as a complex vector."""
    if isinstance(state, SparseState):
        return state.to_dense()
    return np.array(state, dtype=np.complex128)


def basis_state(
    n_qubits: int, index: Union[int, str], sparse: bool = False
) -> QuantumState:
    """Computational basis state |index>.

    Args:
        n_qubits: Register size.
        index: Basis index, or a bitstring such as ``"0011"`` whose first
            character is qubit 0.
        sparse: Return a ``SparseState`` instead of a dense vector.
    """
    if isinstance(index, str):
        if len(index) != n_qubits or set(index) - {"0", "1"}:
            raise ValueError(f"Invalid {n_qubits}-qubit bitstring {index!r}")
        index = int(index, 2)
    if not 0 <= index < (1 << n_qubits):
        raise DimensionMismatchError(
            f"Basis index {index} out of range for {n_qubits} qubits"
        )
    if sparse:
        return SparseState(n_qubits, {index: 1.0})
    state = np.zeros(1 << n_qubits, dtype=np.complex128)
    state[index] = 1.0
    return state


def uniform_superposition(n_qubits: int) -> NDArray[np.complex128]:
    """The |+>^n state, the usual QAOA reference."""
    dim = 1 << n_qubits
    return np.full(dim, 1.0 / np.sqrt(dim), dtype=np.complex128)


def superposition(
    n_qubits: int, indices: Iterable[Union[int, str]], sparse: bool = False
) -> QuantumState:
    """Equal-weight normalized superposition of the given basis states."""
    state = zeros_like_state(basis_state(n_qubits, 0, sparse=sparse))
    count = 0
    for index in indices:
        axpy(1.0, basis_state(n_qubits, index, sparse=sparse), state)
        count += 1
    if count == 0:
        raise ValueError("superposition needs at least one basis state")
    return scale_state(1.0 / np.sqrt(count), state)

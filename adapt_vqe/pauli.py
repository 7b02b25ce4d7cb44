"""Pauli-operator generators and observables.

Three representations of a Hermitian operator built from Pauli words:

* ``PauliTerm``: one weighted Pauli word c P. exp(-i theta c P) has the
  closed form cos(theta c) - i sin(theta c) P.
* ``PauliVector``: an ordered product of single-term exponentials. Exact
  when the terms commute (e.g. qubit-excitation generators).
* ``PauliSum``: a general weighted sum, exponentiated exactly through
  Lanczos/Krylov action on dense states.

Labels are strings over ``IXYZ``; character ``k`` acts on qubit ``k``, which
is bit ``n - 1 - k`` of the basis index (see ``adapt_vqe.states``).
"""

from __future__ import annotations

import functools
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.krylov import expm_multiply_hermitian
from adapt_vqe.quantum_objects import (
    AdaptNotImplementedError,
    DimensionMismatchError,
    Generator,
    Observable,
)
from adapt_vqe.states import (
    SparseState,
    QuantumState,
    axpy,
    check_qubits,
    copy_state,
    inner,
    scale_state,
    zeros_like_state,
)

PAULI_CHARS = "IXYZ"
COEFF_THRESHOLD = 1e-14

# Pauli multiplication table: (phase, result_pauli)
_PAULI_MULT = {
    ("I", "I"): (1, "I"),
    ("I", "X"): (1, "X"),
    ("I", "Y"): (1, "Y"),
    ("I", "Z"): (1, "Z"),
    ("X", "I"): (1, "X"),
    ("X", "X"): (1, "I"),
    ("X", "Y"): (1j, "Z"),
    ("X", "Z"): (-1j, "Y"),
    ("Y", "I"): (1, "Y"),
    ("Y", "X"): (-1j, "Z"),
    ("Y", "Y"): (1, "I"),
    ("Y", "Z"): (1j, "X"),
    ("Z", "I"): (1, "Z"),
    ("Z", "X"): (1j, "Y"),
    ("Z", "Y"): (-1j, "X"),
    ("Z", "Z"): (1, "I"),
}


@functools.lru_cache(maxsize=None)
def _masks(label: str) -> Tuple[int, int, int]:
    """(x_mask, z_mask, number_of_Y) for a Pauli label."""
    n = len(label)
    x_mask = z_mask = 0
    for k, op in enumerate(label):
        bit = 1 << (n - 1 - k)
        if op in "XY":
            x_mask |= bit
        if op in "ZY":
            z_mask |= bit
    return x_mask, z_mask, label.count("Y")


def _parity(values: NDArray[np.int64], mask: int) -> NDArray[np.int64]:
    """Bitwise parity of ``values & mask`` for every element."""
    parity = np.zeros_like(values)
    bit = 0
    while mask >> bit:
        if (mask >> bit) & 1:
            parity ^= (values >> bit) & 1
        bit += 1
    return parity


@functools.lru_cache(maxsize=4096)
def _dense_action(label: str) -> Tuple[NDArray[np.int64], NDArray[np.complex128]]:
    """Permutation and phases with (P psi)[j] = phases[j] * psi[perm[j]]."""
    x_mask, z_mask, n_y = _masks(label)
    indices = np.arange(1 << len(label), dtype=np.int64)
    perm = indices ^ x_mask
    phases = (1j**n_y) * (1 - 2 * _parity(perm, z_mask)).astype(np.complex128)
    perm.setflags(write=False)
    phases.setflags(write=False)
    return perm, phases


def _apply_pauli(label: str, state: QuantumState) -> QuantumState:
    """Unweighted Pauli word action P|state> as a new state."""
    if isinstance(state, SparseState):
        x_mask, z_mask, n_y = _masks(label)
        base = 1j**n_y
        out = SparseState(state.n_qubits)
        for index, amplitude in state.amplitudes.items():
            sign = -1 if bin(index & z_mask).count("1") % 2 else 1
            out.amplitudes[index ^ x_mask] = base * sign * amplitude
        return out
    perm, phases = _dense_action(label)
    return phases * state[perm]


def _validate_label(label: str) -> str:
    label = label.upper()
    if not label or set(label) - set(PAULI_CHARS):
        raise ValueError(f"Invalid Pauli label {label!r}; expected characters from IXYZ")
    return label


def _real_coefficient(coefficient: complex, label: str) -> float:
    coefficient = complex(coefficient)
    if abs(coefficient.imag) > 1e-12:
        raise ValueError(
            f"Pauli term {label} has complex coefficient {coefficient}; "
            "a Hermitian operator must have real Pauli coefficients"
        )
    return coefficient.real


def pauli_label(n_qubits: int, **ops: Iterable[int]) -> str:
    """Build a label from qubit lists, e.g. ``pauli_label(4, X=[0], Z=[2, 3])``."""
    chars = ["I"] * n_qubits
    for op, qubits in ops.items():
        op = op.upper()
        if op not in "XYZ" or len(op) != 1:
            raise ValueError(f"Unknown Pauli operator {op!r}")
        for q in qubits:
            if not 0 <= q < n_qubits:
                raise DimensionMismatchError(f"Qubit {q} outside {n_qubits}-qubit register")
            chars[q] = op
    return "".join(chars)


class PauliTerm(Generator, Observable):
    """A single weighted Pauli word c P with real coefficient c.

    Args:
        label: Pauli string such as ``"XIZY"``.
        coefficient: Real weight c.
    """

    def __init__(self, label: str, coefficient: float = 1.0):
        self.label = _validate_label(label)
        self.coefficient = _real_coefficient(coefficient, self.label)
        self.n_qubits = len(self.label)

    @classmethod
    def from_ops(
        cls, n_qubits: int, coefficient: float = 1.0, **ops: Iterable[int]
    ) -> "PauliTerm":
        return cls(pauli_label(n_qubits, **ops), coefficient)

    # --- value semantics -------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PauliTerm):
            return NotImplemented
        return self.label == other.label and self.coefficient == other.coefficient

    def __hash__(self) -> int:
        return hash((self.label, self.coefficient))

    def __repr__(self) -> str:
        return f"PauliTerm({self.label!r}, {self.coefficient:g})"

    def __mul__(self, factor: float) -> "PauliTerm":
        return PauliTerm(self.label, self.coefficient * factor)

    __rmul__ = __mul__

    # --- algebra ---------------------------------------------------------

    def support(self) -> FrozenSet[int]:
        return frozenset(k for k, op in enumerate(self.label) if op != "I")

    @property
    def is_diagonal(self) -> bool:
        return set(self.label) <= {"I", "Z"}

    def commutes_with(self, other: "PauliTerm") -> bool:
        if other.n_qubits != self.n_qubits:
            raise DimensionMismatchError(
                f"Cannot compare {self.n_qubits}- and {other.n_qubits}-qubit terms"
            )
        clashes = sum(
            1 for a, b in zip(self.label, other.label) if a != "I" and b != "I" and a != b
        )
        return clashes % 2 == 0

    def multiply(self, other: "PauliTerm") -> Tuple[complex, str]:
        """Return (phase, label) with P_self P_other = phase * P_label (unweighted)."""
        if other.n_qubits != self.n_qubits:
            raise DimensionMismatchError(
                f"Cannot multiply {self.n_qubits}- and {other.n_qubits}-qubit terms"
            )
        phase: complex = 1.0
        result: List[str] = []
        for a, b in zip(self.label, other.label):
            p, s = _PAULI_MULT[(a, b)]
            phase *= p
            result.append(s)
        return phase, "".join(result)

    def dense(self) -> NDArray[np.complex128]:
        """Explicit 2^n x 2^n matrix of c P."""
        perm, phases = _dense_action(self.label)
        dim = 1 << self.n_qubits
        matrix = np.zeros((dim, dim), dtype=np.complex128)
        matrix[np.arange(dim), perm] = self.coefficient * phases
        return matrix

    # --- Generator / Observable ------------------------------------------

    def apply(self, state: QuantumState) -> QuantumState:
        check_qubits(self.n_qubits, state)
        return scale_state(self.coefficient, _apply_pauli(self.label, state))

    def evolve_inplace(self, angle: float, state: QuantumState) -> QuantumState:
        check_qubits(self.n_qubits, state)
        theta = angle * self.coefficient
        flipped = _apply_pauli(self.label, state)
        scale_state(np.cos(theta), state)
        axpy(-1j * np.sin(theta), flipped, state)
        if isinstance(state, SparseState):
            state.clip()
        return state

    def differential_action(self, angle: float, state: QuantumState) -> QuantumState:
        costate = scale_state(-1j, self.apply(state))
        return self.evolve_inplace(angle, costate)

    def evaluate(self, state: QuantumState) -> float:
        return float(np.real(inner(state, self.apply(state))))

    def covector(self, state: QuantumState) -> QuantumState:
        return self.apply(state)


class PauliVector(Generator):
    """Ordered product of Pauli-term exponentials sharing one angle.

    exp(-i theta G) is taken as the product over terms, first term applied
    first. This equals the true exponential of the summed generator exactly
    when the terms commute.
    """

    def __init__(self, terms: Iterable[PauliTerm]):
        self.terms: Tuple[PauliTerm, ...] = tuple(terms)
        if not self.terms:
            raise ValueError("PauliVector needs at least one term")
        sizes = {t.n_qubits for t in self.terms}
        if len(sizes) != 1:
            raise DimensionMismatchError(f"PauliVector terms span different registers: {sizes}")
        self.n_qubits = sizes.pop()

    def __iter__(self) -> Iterator[PauliTerm]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PauliVector):
            return NotImplemented
        return self.terms == other.terms

    def __hash__(self) -> int:
        return hash(("PauliVector", self.terms))

    def __repr__(self) -> str:
        return f"PauliVector({list(self.terms)!r})"

    def support(self) -> FrozenSet[int]:
        return frozenset().union(*(t.support() for t in self.terms))

    def is_commuting(self) -> bool:
        return all(
            a.commutes_with(b)
            for i, a in enumerate(self.terms)
            for b in self.terms[i + 1 :]
        )

    def apply(self, state: QuantumState) -> QuantumState:
        out = self.terms[0].apply(state)
        for term in self.terms[1:]:
            axpy(1.0, term.apply(state), out)
        return out

    def evolve_inplace(self, angle: float, state: QuantumState) -> QuantumState:
        for term in self.terms:
            term.evolve_inplace(angle, state)
        return state

    def unevolve_inplace(self, angle: float, state: QuantumState) -> QuantumState:
        for term in reversed(self.terms):
            term.evolve_inplace(-angle, state)
        return state

    def differential_action(self, angle: float, state: QuantumState) -> QuantumState:
        # Sum over which term is differentiated: apply the terms before k,
        # reflect by -i c_k P_k, then apply the terms from k onward.
        costate = zeros_like_state(state)
        partial_state = copy_state(state)
        for k, term in enumerate(self.terms):
            reflected = scale_state(-1j, term.apply(partial_state))
            for later in self.terms[k:]:
                later.evolve_inplace(angle, reflected)
            axpy(1.0, reflected, costate)
            term.evolve_inplace(angle, partial_state)
        return costate

    def to_sum(self) -> "PauliSum":
        return PauliSum(self.terms)


class PauliSum(Generator, Observable):
    """General weighted sum of Pauli words, merged by label.

    Args:
        terms: PauliTerms, or a ``{label: coefficient}`` dictionary.
        n_qubits: Register size; only required when ``terms`` is empty.
        coeff_threshold: Merged terms with |coefficient| at or below this
            value are dropped.
    """

    def __init__(
        self,
        terms: Union[Iterable[PauliTerm], Dict[str, float]] = (),
        n_qubits: Optional[int] = None,
        coeff_threshold: float = COEFF_THRESHOLD,
    ):
        if isinstance(terms, dict):
            terms = [PauliTerm(label, c) for label, c in terms.items()]
        combined: Dict[str, float] = {}
        for term in terms:
            if n_qubits is None:
                n_qubits = term.n_qubits
            elif term.n_qubits != n_qubits:
                raise DimensionMismatchError(
                    f"Term {term.label} acts on {term.n_qubits} qubits, expected {n_qubits}"
                )
            combined[term.label] = combined.get(term.label, 0.0) + term.coefficient
        if n_qubits is None:
            raise ValueError("An empty PauliSum needs an explicit n_qubits")
        self.n_qubits = n_qubits
        self.terms: Tuple[PauliTerm, ...] = tuple(
            PauliTerm(label, c) for label, c in combined.items() if abs(c) > coeff_threshold
        )

    def to_dict(self) -> Dict[str, float]:
        return {t.label: t.coefficient for t in self.terms}

    def __iter__(self) -> Iterator[PauliTerm]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PauliSum):
            return NotImplemented
        return self.n_qubits == other.n_qubits and self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(("PauliSum", self.n_qubits, frozenset(self.to_dict().items())))

    def __repr__(self) -> str:
        return f"PauliSum({self.to_dict()!r})"

    def __add__(self, other: Union["PauliSum", PauliTerm]) -> "PauliSum":
        others = other.terms if isinstance(other, PauliSum) else (other,)
        return PauliSum(self.terms + tuple(others), n_qubits=self.n_qubits)

    def __mul__(self, factor: float) -> "PauliSum":
        return PauliSum([t * factor for t in self.terms], n_qubits=self.n_qubits)

    __rmul__ = __mul__

    def support(self) -> FrozenSet[int]:
        return frozenset().union(*(t.support() for t in self.terms))

    @property
    def is_diagonal(self) -> bool:
        return all(t.is_diagonal for t in self.terms)

    def diagonal(self) -> NDArray[np.float64]:
        """Diagonal entries of a Z-only sum, one per basis index."""
        if not self.is_diagonal:
            raise ValueError("diagonal() requires a sum of I/Z words only")
        indices = np.arange(1 << self.n_qubits, dtype=np.int64)
        values = np.zeros(len(indices))
        for term in self.terms:
            _, z_mask, _ = _masks(term.label)
            values += term.coefficient * (1 - 2 * _parity(indices, z_mask))
        return values

    def norm_bound(self) -> float:
        """Sum of absolute coefficients, an upper bound on the spectral norm."""
        return float(sum(abs(t.coefficient) for t in self.terms))

    def dense(self) -> NDArray[np.complex128]:
        dim = 1 << self.n_qubits
        matrix = np.zeros((dim, dim), dtype=np.complex128)
        for term in self.terms:
            matrix += term.dense()
        return matrix

    def apply(self, state: QuantumState) -> QuantumState:
        check_qubits(self.n_qubits, state)
        out = zeros_like_state(state)
        for term in self.terms:
            axpy(term.coefficient, _apply_pauli(term.label, state), out)
        return out

    def evolve_inplace(self, angle: float, state: QuantumState) -> QuantumState:
        if isinstance(state, SparseState):
            raise AdaptNotImplementedError(
                "Exact PauliSum evolution is only implemented for dense states"
            )
        check_qubits(self.n_qubits, state)
        state[:] = expm_multiply_hermitian(self.apply, state, angle, self.norm_bound())
        return state

    def differential_action(self, angle: float, state: QuantumState) -> QuantumState:
        evolved = self.evolve_inplace(angle, copy_state(state))
        return scale_state(-1j, self.apply(evolved))

    def evaluate(self, state: QuantumState) -> float:
        return float(np.real(inner(state, self.apply(state))))

    def covector(self, state: QuantumState) -> QuantumState:
        return self.apply(state)


def commutator(
    a: Union[PauliTerm, PauliSum, PauliVector], b: Union[PauliTerm, PauliSum, PauliVector]
) -> PauliSum:
    """Return the Hermitian operator i[A, B] as a PauliSum.

    Only anticommuting pairs of words contribute; for those
    P_j P_k - P_k P_j = 2 P_j P_k, whose phase is +-i, so every resulting
    coefficient is real.
    """
    terms_a = (a,) if isinstance(a, PauliTerm) else tuple(a.terms)
    terms_b = (b,) if isinstance(b, PauliTerm) else tuple(b.terms)
    n_qubits = terms_a[0].n_qubits if terms_a else b.n_qubits
    result: List[PauliTerm] = []
    for ta in terms_a:
        for tb in terms_b:
            if ta.commutes_with(tb):
                continue
            phase, label = ta.multiply(tb)
            result.append(PauliTerm(label, 2j * phase * ta.coefficient * tb.coefficient))
    return PauliSum(result, n_qubits=n_qubits)

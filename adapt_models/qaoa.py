"""ADAPT-QAOA: diagonal cost observable and the interleaved QAOA ansatzes.

``QAOAObservable`` wraps a Z-only Hamiltonian by its diagonal, so that
exp(-i gamma H) is an element-wise phase (valid on dense and sparse states).

``QAOAAnsatz`` applies, for each layer k, the cost rotation exp(-i gamma_k H)
followed by the mixer exp(-i beta_k G_k):

    U = e^{-i beta_L G_L} e^{-i gamma_L H} ... e^{-i beta_1 G_1} e^{-i gamma_1 H}

Its flat parameter vector is ordered gamma_1, beta_1, gamma_2, beta_2, ...
Candidate mixers are scored after an extra exp(-i gamma H) with the gamma a
new layer would get, so that mixers have non-zero scores on |+>^n.

* ``QAOAAnsatz``: any cost operator that is also a generator; new layers
  start at ``gamma0``.
* ``DiagonalQAOAAnsatz``: the same, restricted to a ``QAOAObservable``.
* ``PlasticQAOAAnsatz``: diagonal, but new layers copy the previous gamma.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, Iterator, List, Sequence, Tuple, Type

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.ansatz import AbstractAnsatz, Step
from adapt_vqe.evolution import evolve_state
from adapt_vqe.pauli import PauliSum
from adapt_vqe.quantum_objects import DimensionMismatchError, Generator, Observable
from adapt_vqe.states import QuantumState, SparseState, check_qubits, copy_state

DEFAULT_GAMMA0 = 0.1


class QAOAObservable(Generator, Observable):
    """A diagonal (Z-only) Hamiltonian usable as observable and as generator.

    Args:
        hamiltonian: PauliSum whose words contain only I and Z.

    Raises:
        ValueError: If any term has an X or Y factor.
    """

    def __init__(self, hamiltonian: PauliSum):
        if not hamiltonian.is_diagonal:
            raise ValueError("QAOAObservable needs a Hamiltonian built from I/Z words only")
        self.hamiltonian = hamiltonian
        self.n_qubits = hamiltonian.n_qubits
        self.diagonal: NDArray[np.float64] = hamiltonian.diagonal()
        self.diagonal.setflags(write=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QAOAObservable):
            return NotImplemented
        return self.hamiltonian == other.hamiltonian

    def __hash__(self) -> int:
        return hash(("QAOAObservable", self.hamiltonian))

    def __repr__(self) -> str:
        return f"QAOAObservable({len(self.hamiltonian)} terms, {self.n_qubits} qubits)"

    def support(self) -> FrozenSet[int]:
        return self.hamiltonian.support()

    def ground_energy(self) -> float:
        return float(self.diagonal.min())

    def dense(self) -> NDArray[np.complex128]:
        return np.diag(self.diagonal).astype(np.complex128)

    def apply(self, state: QuantumState) -> QuantumState:
        check_qubits(self.n_qubits, state)
        if isinstance(state, SparseState):
            return SparseState(
                state.n_qubits,
                {b: self.diagonal[b] * a for b, a in state.amplitudes.items()},
            )
        return self.diagonal * state

    def evolve_inplace(self, angle: float, state: QuantumState) -> QuantumState:
        check_qubits(self.n_qubits, state)
        if isinstance(state, SparseState):
            for b in state.amplitudes:
                state.amplitudes[b] *= np.exp(-1j * angle * self.diagonal[b])
            return state
        state *= np.exp(-1j * angle * self.diagonal)
        return state

    def differential_action(self, angle: float, state: QuantumState) -> QuantumState:
        evolved = self.evolve_inplace(angle, copy_state(state))
        out = self.apply(evolved)
        if isinstance(out, SparseState):
            return out.scale(-1j)
        return -1j * out

    def evaluate(self, state: QuantumState) -> float:
        check_qubits(self.n_qubits, state)
        if isinstance(state, SparseState):
            return float(
                sum(self.diagonal[b] * abs(a) ** 2 for b, a in state.amplitudes.items())
            )
        return float(np.dot(self.diagonal, np.abs(state) ** 2))

    def covector(self, state: QuantumState) -> QuantumState:
        return self.apply(state)


class QAOAAnsatz(AbstractAnsatz):
    """QAOA-style ansatz interleaving cost and adaptively chosen mixer layers.

    The cost operator may be any object that is both a ``Generator`` and an
    ``Observable`` (a ``PauliSum``, a ``PauliTerm``, a ``QAOAObservable``).
    Indexing, iteration and ``add_generator`` act on (mixer, beta) pairs;
    adding a mixer also appends the gamma of its cost layer, ``gamma0``.

    Args:
        observable: The cost operator applied in every layer.
        gamma0: Initial cost-layer angle for new layers and for scoring.
        generators: Optional initial mixers.
        beta: Initial mixer angles (zeros if omitted).
        gamma: Initial cost angles (``gamma0`` if omitted).
        parameter_dtype: Numeric type of the parameters.

    Raises:
        TypeError: If ``observable`` cannot act as a generator.
    """

    def __init__(
        self,
        observable,
        gamma0: float = DEFAULT_GAMMA0,
        generators: Iterable[Generator] = (),
        beta: Iterable[float] = (),
        gamma: Iterable[float] = (),
        parameter_dtype: Type = np.float64,
    ):
        if not (isinstance(observable, Generator) and isinstance(observable, Observable)):
            raise TypeError(
                f"{type(self).__name__} needs a cost operator that is both a Generator "
                f"and an Observable, got {type(observable).__name__}"
            )
        super().__init__(parameter_dtype)
        self.observable = observable
        self.gamma0 = parameter_dtype(gamma0)
        self.generators: List[Generator] = list(generators)
        self.beta_values: List[float] = [parameter_dtype(b) for b in beta] or [
            parameter_dtype(0.0) for _ in self.generators
        ]
        self.gamma_values: List[float] = [parameter_dtype(g) for g in gamma] or [
            self.gamma0 for _ in self.generators
        ]
        if not len(self.generators) == len(self.beta_values) == len(self.gamma_values):
            raise DimensionMismatchError(
                f"{len(self.generators)} mixers, {len(self.beta_values)} betas and "
                f"{len(self.gamma_values)} gammas"
            )

    def __len__(self) -> int:
        return len(self.generators)

    def __getitem__(self, index: int) -> Tuple[Generator, float]:
        return self.generators[index], self.beta_values[index]

    def __setitem__(self, index: int, pair: Tuple[Generator, float]) -> None:
        generator, beta = pair
        self.generators[index] = generator
        self.beta_values[index] = self.parameter_dtype(beta)

    def next_gamma(self) -> float:
        """Cost angle given to the next layer."""
        return self.gamma0

    def _append(self, generator: Generator, parameter: float) -> None:
        self.gamma_values.append(self.next_gamma())
        self.generators.append(generator)
        self.beta_values.append(parameter)

    def resize(self, length: int) -> None:
        if not 0 <= length <= len(self):
            raise ValueError(
                f"Cannot resize a QAOA ansatz of {len(self)} layers to {length}"
            )
        del self.generators[length:]
        del self.beta_values[length:]
        del self.gamma_values[length:]

    def steps(self) -> Iterator[Step]:
        for generator, beta, gamma in zip(self.generators, self.beta_values, self.gamma_values):
            yield self.observable, gamma
            yield generator, beta

    def angles(self) -> NDArray:
        x = np.empty(2 * len(self), dtype=self.parameter_dtype)
        x[0::2] = self.gamma_values
        x[1::2] = self.beta_values
        return x

    def bind(self, x: Sequence[float]) -> None:
        self._check_length(x)
        x = np.asarray(x)
        self.gamma_values[:] = [self.parameter_dtype(v) for v in x[0::2]]
        self.beta_values[:] = [self.parameter_dtype(v) for v in x[1::2]]

    def prepare_scoring_state(self, reference: QuantumState) -> QuantumState:
        # A candidate is scored inside the cost layer it would be added with.
        state = evolve_state(self, reference)
        return self.observable.evolve_inplace(self.next_gamma(), state)

    def copy(self) -> "QAOAAnsatz":
        other = type(self)(
            self.observable,
            self.gamma0,
            self.generators,
            self.beta_values,
            self.gamma_values,
            self.parameter_dtype,
        )
        other.set_optimized(self.is_optimized())
        other.set_converged(self.is_converged())
        return other

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(layers={len(self)}, gamma0={self.gamma0}, "
            f"optimized={self.is_optimized()}, converged={self.is_converged()})"
        )


class DiagonalQAOAAnsatz(QAOAAnsatz):
    """QAOA ansatz whose cost layers are element-wise phases.

    Restricting the cost operator to a ``QAOAObservable`` keeps every layer
    valid on sparse states.

    Raises:
        TypeError: If ``observable`` is not a ``QAOAObservable``.
    """

    def __init__(
        self,
        observable: QAOAObservable,
        gamma0: float = DEFAULT_GAMMA0,
        generators: Iterable[Generator] = (),
        beta: Iterable[float] = (),
        gamma: Iterable[float] = (),
        parameter_dtype: Type = np.float64,
    ):
        if not isinstance(observable, QAOAObservable):
            raise TypeError(
                f"{type(self).__name__} needs a QAOAObservable, got {type(observable).__name__}"
            )
        super().__init__(observable, gamma0, generators, beta, gamma, parameter_dtype)


class PlasticQAOAAnsatz(DiagonalQAOAAnsatz):
    """Diagonal QAOA ansatz whose new layers inherit the previous layer's gamma.

    Only the first layer starts at ``gamma0``. Candidates are scored with the
    gamma they would inherit.
    """

    def next_gamma(self) -> float:
        return self.gamma_values[-1] if self.gamma_values else self.gamma0

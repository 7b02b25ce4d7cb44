"""Ansatz: the mutable state of an ADAPT run.

An ansatz is an ordered list of (generator, parameter) pairs plus two
independent flags:

* ``optimized``: the current parameters are a local optimum for the current
  generator sequence. Cleared whenever a generator is added.
* ``converged``: no further generator should be added. Only protocols and
  callbacks set it; adding generators never touches it.

Subclasses may interleave fixed operators between the listed pairs (see
``adapt_models.qaoa.QAOAAnsatz``). They do so by overriding
``steps`` (the flattened (generator, angle) sequence in application order),
``angles``/``bind`` (which must use the same order as ``steps``) and
``prepare_scoring_state``.
"""

from __future__ import annotations

import abc
from typing import Iterable, Iterator, List, Sequence, Tuple, Type

import numpy as np
from numpy.typing import NDArray

from adapt_vqe.evolution import evolve_state
from adapt_vqe.quantum_objects import DimensionMismatchError, Generator
from adapt_vqe.states import QuantumState

Step = Tuple[Generator, float]


class AbstractAnsatz(abc.ABC):
    """List-like container of (generator, parameter) pairs with run flags.

    A freshly created ansatz is marked optimized (there is nothing to
    optimize) and not converged.
    """

    def __init__(self, parameter_dtype: Type = np.float64):
        self.parameter_dtype = parameter_dtype
        self._optimized = True
        self._converged = False

    # --- flags -----------------------------------------------------------

    def is_optimized(self) -> bool:
        return self._optimized

    def set_optimized(self, flag: bool = True) -> None:
        self._optimized = bool(flag)

    def is_converged(self) -> bool:
        return self._converged

    def set_converged(self, flag: bool = True) -> None:
        self._converged = bool(flag)

    # --- structure ---------------------------------------------------------

    @abc.abstractmethod
    def __len__(self) -> int:
        """Number of (generator, parameter) pairs."""

    @abc.abstractmethod
    def __getitem__(self, index: int) -> Tuple[Generator, float]:
        ...

    @abc.abstractmethod
    def __setitem__(self, index: int, pair: Tuple[Generator, float]) -> None:
        ...

    @abc.abstractmethod
    def _append(self, generator: Generator, parameter: float) -> None:
        ...

    @abc.abstractmethod
    def resize(self, length: int) -> None:
        """Truncate to ``length`` pairs."""

    @abc.abstractmethod
    def steps(self) -> Iterator[Step]:
        """(generator, angle) pairs in application order, aligned with ``angles``."""

    @abc.abstractmethod
    def angles(self) -> NDArray:
        """Copy of the flat parameter vector."""

    @abc.abstractmethod
    def bind(self, x: Sequence[float]) -> None:
        """Overwrite the flat parameter vector in place (same length only)."""

    @abc.abstractmethod
    def copy(self) -> "AbstractAnsatz":
        ...

    def __iter__(self) -> Iterator[Tuple[Generator, float]]:
        for i in range(len(self)):
            yield self[i]

    @property
    def n_parameters(self) -> int:
        return len(self.angles())

    def add_generator(self, generator: Generator, parameter: float = 0.0) -> None:
        """Append one pair and clear ``optimized``; ``converged`` is untouched."""
        self._append(generator, self.parameter_dtype(parameter))
        self.set_optimized(False)

    def add_generators(
        self, generators: Iterable[Generator], parameters: Iterable[float]
    ) -> None:
        """Append several pairs in one step (batched adaptation)."""
        for generator, parameter in zip(generators, parameters):
            self._append(generator, self.parameter_dtype(parameter))
        self.set_optimized(False)

    append = add_generator

    def _check_length(self, x: Sequence[float]) -> None:
        if len(x) != self.n_parameters:
            raise DimensionMismatchError(
                f"Cannot bind {len(x)} values to an ansatz with "
                f"{self.n_parameters} parameters"
            )

    def prepare_scoring_state(self, reference: QuantumState) -> QuantumState:
        """State at which candidate generators are scored.

        By default this is the fully evolved reference; subclasses that
        insert operators before every candidate extend it.
        """
        return evolve_state(self, reference)

    def with_candidate(self, generator: Generator) -> "AbstractAnsatz":
        """Copy of this ansatz with ``generator`` appended at parameter zero."""
        candidate = self.copy()
        candidate.add_generator(generator, 0.0)
        return candidate


class Ansatz(AbstractAnsatz):
    """Plain ADAPT ansatz: U = exp(-i x_L G_L) ... exp(-i x_1 G_1).

    Args:
        parameter_dtype: Numeric type of the parameters.
        generators: Optional initial generators.
        parameters: Initial parameters, one per generator (zeros if omitted).
    """

    def __init__(
        self,
        parameter_dtype: Type = np.float64,
        generators: Iterable[Generator] = (),
        parameters: Iterable[float] = (),
    ):
        super().__init__(parameter_dtype)
        self.generators: List[Generator] = list(generators)
        self.parameters: List[float] = [parameter_dtype(p) for p in parameters]
        if not self.parameters:
            self.parameters = [parameter_dtype(0.0) for _ in self.generators]
        if len(self.parameters) != len(self.generators):
            raise DimensionMismatchError(
                f"{len(self.generators)} generators but {len(self.parameters)} parameters"
            )

    def __len__(self) -> int:
        return len(self.generators)

    def __getitem__(self, index: int) -> Tuple[Generator, float]:
        return self.generators[index], self.parameters[index]

    def __setitem__(self, index: int, pair: Tuple[Generator, float]) -> None:
        generator, parameter = pair
        self.generators[index] = generator
        self.parameters[index] = self.parameter_dtype(parameter)

    def _append(self, generator: Generator, parameter: float) -> None:
        self.generators.append(generator)
        self.parameters.append(parameter)

    def resize(self, length: int) -> None:
        if not 0 <= length <= len(self):
            raise ValueError(
                f"Cannot resize an ansatz of length {len(self)} to {length}; "
                "new pairs must be added with add_generator"
            )
        del self.generators[length:]
        del self.parameters[length:]

    def steps(self) -> Iterator[Step]:
        return zip(self.generators, self.parameters)

    def angles(self) -> NDArray:
        return np.array(self.parameters, dtype=self.parameter_dtype)

    def bind(self, x: Sequence[float]) -> None:
        self._check_length(x)
        self.parameters[:] = [self.parameter_dtype(v) for v in x]

    def copy(self) -> "Ansatz":
        other = Ansatz(self.parameter_dtype, self.generators, self.parameters)
        other.set_optimized(self.is_optimized())
        other.set_converged(self.is_converged())
        return other

    def __repr__(self) -> str:
        return (
            f"Ansatz(length={len(self)}, optimized={self.is_optimized()}, "
            f"converged={self.is_converged()})"
        )

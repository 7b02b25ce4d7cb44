"""adapt_vqe: adaptive variational quantum eigensolver toolkit.

Grows a parameterized ansatz one generator at a time, picking from an
operator pool the candidate with the largest energy-gradient score, and
re-optimizes all parameters after every addition. States are simulated
exactly (dense numpy vectors or sparse amplitude maps); gradients come
from a single adjoint sweep.
"""

from adapt_vqe.quantum_objects import (
    SCORE_EPSILON,
    AdaptNotImplementedError,
    DimensionMismatchError,
    Energy,
    Generator,
    Observable,
    Parameter,
    Score,
)
from adapt_vqe.states import (
    QuantumState,
    SparseState,
    basis_state,
    superposition,
    uniform_superposition,
)
from adapt_vqe.pauli import PauliSum, PauliTerm, PauliVector, commutator
from adapt_vqe.evolution import (
    evaluate,
    evaluate_ansatz,
    evolve_generator,
    evolve_generator_inplace,
    evolve_state,
    evolve_state_inplace,
)
from adapt_vqe.gradient import (
    gradient,
    gradient_inplace,
    make_costfunction,
    make_gradfunction,
    partial,
)
from adapt_vqe.ansatz import AbstractAnsatz, Ansatz
from adapt_vqe.callbacks import (
    Callback,
    FloorStopper,
    ParameterPrinter,
    ParameterStopper,
    ParameterTracer,
    Printer,
    ScoreStopper,
    SlowStopper,
    Tracer,
)
from adapt_vqe.protocols import AdaptProtocol, OptimizationProtocol, run
from adapt_vqe.adapt_protocols import DegenerateADAPT, TetrisADAPT, VanillaADAPT
from adapt_vqe.optimizers import AdamOptimizer, OptimizationFree, ScipyOptimizer

__all__ = [
    "SCORE_EPSILON",
    "AdaptNotImplementedError",
    "DimensionMismatchError",
    "Energy",
    "Generator",
    "Observable",
    "Parameter",
    "Score",
    "QuantumState",
    "SparseState",
    "basis_state",
    "superposition",
    "uniform_superposition",
    "PauliSum",
    "PauliTerm",
    "PauliVector",
    "commutator",
    "evaluate",
    "evaluate_ansatz",
    "evolve_generator",
    "evolve_generator_inplace",
    "evolve_state",
    "evolve_state_inplace",
    "gradient",
    "gradient_inplace",
    "make_costfunction",
    "make_gradfunction",
    "partial",
    "AbstractAnsatz",
    "Ansatz",
    "Callback",
    "FloorStopper",
    "ParameterPrinter",
    "ParameterStopper",
    "ParameterTracer",
    "Printer",
    "ScoreStopper",
    "SlowStopper",
    "Tracer",
    "AdaptProtocol",
    "OptimizationProtocol",
    "run",
    "DegenerateADAPT",
    "TetrisADAPT",
    "VanillaADAPT",
    "AdamOptimizer",
    "OptimizationFree",
    "ScipyOptimizer",
]

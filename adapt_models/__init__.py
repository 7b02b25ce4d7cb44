"""Collaborators for adapt_vqe: operator pools, model Hamiltonians, QAOA, overlap costs."""

from adapt_models.hamiltonians import (
    erdos_renyi_maxcut,
    exact_ground_energy,
    get_unweighted_maxcut,
    hubbard_chain,
    hubbard_hamiltonian,
    maxcut_hamiltonian,
    transverse_field_ising,
    xyz_model,
)
from adapt_models.infidelity import Infidelity
from adapt_models.pools import (
    full_pauli_pool,
    qaoa_double_ops,
    qaoa_double_pool,
    qaoa_mixer,
    qaoa_single_x,
    qubit_adapt_pool,
    qubit_excitation,
    qubit_excitation_pool,
    tile_operators,
    two_local_pool,
)
from adapt_models.qaoa import (
    DiagonalQAOAAnsatz,
    PlasticQAOAAnsatz,
    QAOAAnsatz,
    QAOAObservable,
)

__all__ = [
    "erdos_renyi_maxcut",
    "exact_ground_energy",
    "get_unweighted_maxcut",
    "hubbard_chain",
    "hubbard_hamiltonian",
    "maxcut_hamiltonian",
    "transverse_field_ising",
    "xyz_model",
    "Infidelity",
    "full_pauli_pool",
    "qaoa_double_ops",
    "qaoa_double_pool",
    "qaoa_mixer",
    "qaoa_single_x",
    "qubit_adapt_pool",
    "qubit_excitation",
    "qubit_excitation_pool",
    "tile_operators",
    "two_local_pool",
    "DiagonalQAOAAnsatz",
    "PlasticQAOAAnsatz",
    "QAOAAnsatz",
    "QAOAObservable",
]

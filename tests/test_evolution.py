"""Tests for ansatz evolution, evaluation and the dense-matrix reference."""

from __future__ import annotations

import numpy as np
import pytest

from adapt_vqe import Ansatz, PauliTerm, SparseState, basis_state
from adapt_vqe.evolution import (
    evaluate,
    evaluate_ansatz,
    evolve_generator,
    evolve_generator_inplace,
    evolve_state,
    evolve_state_inplace,
    unevolve_state_inplace,
)
from adapt_vqe.matrix import ansatz_matrix, generator_unitary, observable_matrix

from tests.sim_utils import (
    chain_observable,
    random_ansatz,
    random_state,
    sum_pool,
    vector_pool,
)

N_QUBITS = 4


def test_evolve_state_does_not_alias_reference():
    rng = np.random.default_rng(0)
    ansatz = random_ansatz(vector_pool(N_QUBITS), 3, rng)
    reference = random_state(N_QUBITS, rng)
    original = reference.copy()
    evolved = evolve_state(ansatz, reference)
    assert evolved is not reference
    np.testing.assert_array_equal(reference, original)


def test_evolve_state_inplace_returns_same_object():
    rng = np.random.default_rng(1)
    ansatz = random_ansatz(vector_pool(N_QUBITS), 3, rng)
    state = random_state(N_QUBITS, rng)
    expected = evolve_state(ansatz, state)
    returned = evolve_state_inplace(ansatz, state)
    assert returned is state
    np.testing.assert_allclose(state, expected, atol=1e-14)


def test_evolution_preserves_norm():
    rng = np.random.default_rng(2)
    ansatz = random_ansatz(sum_pool(N_QUBITS), 5, rng)
    state = evolve_state(ansatz, random_state(N_QUBITS, rng))
    assert np.linalg.norm(state) == pytest.approx(1.0, abs=1e-12)


def test_unevolve_state_restores_reference():
    rng = np.random.default_rng(3)
    ansatz = random_ansatz(vector_pool(N_QUBITS), 4, rng)
    reference = random_state(N_QUBITS, rng)
    state = evolve_state(ansatz, reference)
    unevolve_state_inplace(ansatz, state)
    np.testing.assert_allclose(state, reference, atol=1e-13)


@pytest.mark.parametrize("pool_factory", [vector_pool, sum_pool])
def test_ansatz_matrix_round_trip(pool_factory):
    """The state engine and the dense unitary agree to 1e-10."""
    rng = np.random.default_rng(4)
    ansatz = random_ansatz(pool_factory(N_QUBITS), 3, rng)
    reference = random_state(N_QUBITS, rng)
    expected = ansatz_matrix(N_QUBITS, ansatz) @ reference
    np.testing.assert_allclose(evolve_state(ansatz, reference), expected, atol=1e-10)


def test_ansatz_matrix_is_unitary():
    rng = np.random.default_rng(5)
    unitary = ansatz_matrix(N_QUBITS, random_ansatz(vector_pool(N_QUBITS), 3, rng))
    np.testing.assert_allclose(unitary.conj().T @ unitary, np.eye(1 << N_QUBITS), atol=1e-12)


def test_empty_ansatz_is_identity():
    reference = basis_state(N_QUBITS, "0101")
    np.testing.assert_array_equal(evolve_state(Ansatz(), reference), reference)


def test_sparse_and_dense_evolution_agree():
    rng = np.random.default_rng(6)
    ansatz = random_ansatz(vector_pool(N_QUBITS), 4, rng)
    dense = basis_state(N_QUBITS, "1010")
    sparse = basis_state(N_QUBITS, "1010", sparse=True)
    result = evolve_state(ansatz, sparse)
    assert isinstance(result, SparseState)
    np.testing.assert_allclose(result.to_dense(), evolve_state(ansatz, dense), atol=1e-13)


def test_generator_helpers():
    rng = np.random.default_rng(7)
    generator = PauliTerm("XYZI", 0.3)
    state = random_state(N_QUBITS, rng)
    expected = generator_unitary(N_QUBITS, generator, 0.9) @ state
    copied = evolve_generator(generator, 0.9, state)
    np.testing.assert_allclose(copied, expected, atol=1e-12)
    assert evolve_generator_inplace(generator, 0.9, state) is state
    np.testing.assert_allclose(state, expected, atol=1e-12)


def test_evaluate_ansatz_matches_dense_expectation():
    rng = np.random.default_rng(8)
    observable = chain_observable(N_QUBITS)
    ansatz = random_ansatz(vector_pool(N_QUBITS), 3, rng)
    reference = basis_state(N_QUBITS, 0)
    psi = ansatz_matrix(N_QUBITS, ansatz) @ reference
    expected = np.real(np.vdot(psi, observable_matrix(N_QUBITS, observable) @ psi))
    assert evaluate_ansatz(ansatz, observable, reference) == pytest.approx(expected, abs=1e-10)
    assert evaluate(observable, psi) == pytest.approx(expected, abs=1e-10)

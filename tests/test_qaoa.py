"""Tests for the diagonal QAOA observable, the interleaved ansatzes, and a full MaxCut run."""

from __future__ import annotations

import numpy as np
import pytest

from adapt_vqe import PauliSum, PauliTerm, SparseState, VanillaADAPT, uniform_superposition
from adapt_vqe.evolution import evolve_state
from adapt_vqe.gradient import gradient, partial
from adapt_vqe.matrix import ansatz_matrix
from adapt_vqe.validation import finite_difference_gradient
from adapt_models.hamiltonians import erdos_renyi_maxcut, maxcut_hamiltonian, transverse_field_ising
from adapt_models.infidelity import Infidelity
from adapt_models.pools import qaoa_double_pool, qaoa_mixer
from adapt_models.qaoa import DiagonalQAOAAnsatz, PlasticQAOAAnsatz, QAOAAnsatz, QAOAObservable

from tests.sim_utils import random_state

N_QUBITS = 4
EDGES = [(0, 1, 1.0), (1, 2, 1.0), (2, 3, 1.0), (3, 0, 1.0), (0, 2, 0.5)]


@pytest.fixture
def observable():
    return QAOAObservable(maxcut_hamiltonian(N_QUBITS, EDGES))


def _ansatz(observable, layers=2):
    pool = qaoa_double_pool(N_QUBITS)
    return DiagonalQAOAAnsatz(
        observable,
        gamma0=0.1,
        generators=[pool[i] for i in range(layers)],
        beta=[0.3 * (i + 1) for i in range(layers)],
        gamma=[0.2 * (i + 1) for i in range(layers)],
    )


# --- QAOAObservable ---


def test_rejects_non_diagonal_hamiltonian():
    with pytest.raises(ValueError):
        QAOAObservable(PauliSum([PauliTerm("XZ")]))


def test_matches_pauli_sum(observable):
    rng = np.random.default_rng(0)
    state = random_state(N_QUBITS, rng)
    hamiltonian = observable.hamiltonian
    assert observable.evaluate(state) == pytest.approx(hamiltonian.evaluate(state), abs=1e-12)
    np.testing.assert_allclose(observable.apply(state), hamiltonian.apply(state), atol=1e-12)
    np.testing.assert_allclose(
        observable.evolve_inplace(0.7, state.copy()),
        hamiltonian.evolve_inplace(0.7, state.copy()),
        atol=1e-10,
    )


def test_sparse_phase_evolution(observable):
    sparse = SparseState(N_QUBITS, {0: 0.6, 5: 0.8})
    dense = sparse.to_dense()
    observable.evolve_inplace(0.4, sparse)
    observable.evolve_inplace(0.4, dense)
    np.testing.assert_allclose(sparse.to_dense(), dense, atol=1e-14)
    assert observable.evaluate(sparse) == pytest.approx(observable.evaluate(dense))


def test_ground_energy_is_minus_maxcut(observable):
    # Cutting {0, 2} from {1, 3} cuts the four unit ring edges.
    assert observable.ground_energy() == pytest.approx(-4.0)


def test_diagonal_is_read_only(observable):
    with pytest.raises(ValueError):
        observable.diagonal[0] = 1.0


# --- DiagonalQAOAAnsatz ---


def test_flat_parameter_order(observable):
    ansatz = _ansatz(observable)
    np.testing.assert_allclose(ansatz.angles(), [0.2, 0.3, 0.4, 0.6])
    steps = list(ansatz.steps())
    assert steps[0] == (observable, 0.2)
    assert steps[1][1] == 0.3
    assert steps[2] == (observable, 0.4)


def test_bind_round_trip(observable):
    ansatz = _ansatz(observable)
    ansatz.bind([1.0, 2.0, 3.0, 4.0])
    assert ansatz.gamma_values == [1.0, 3.0]
    assert ansatz.beta_values == [2.0, 4.0]
    np.testing.assert_allclose(ansatz.angles(), [1.0, 2.0, 3.0, 4.0])


def test_add_generator_appends_gamma0(observable):
    ansatz = DiagonalQAOAAnsatz(observable, gamma0=0.25)
    assert ansatz.is_optimized()
    ansatz.add_generator(qaoa_mixer(N_QUBITS)[0])
    assert len(ansatz) == 1
    assert ansatz.n_parameters == 2
    np.testing.assert_allclose(ansatz.angles(), [0.25, 0.0])
    assert not ansatz.is_optimized()


def test_evolution_matches_dense_unitary(observable):
    ansatz = _ansatz(observable, layers=3)
    reference = uniform_superposition(N_QUBITS)
    expected = ansatz_matrix(N_QUBITS, ansatz) @ reference
    np.testing.assert_allclose(evolve_state(ansatz, reference), expected, atol=1e-10)


def test_gradient_matches_finite_difference(observable):
    ansatz = _ansatz(observable, layers=3)
    reference = uniform_superposition(N_QUBITS)
    np.testing.assert_allclose(
        gradient(ansatz, observable, reference),
        finite_difference_gradient(ansatz, observable, reference),
        atol=1e-8,
    )


def test_copy_is_independent(observable):
    ansatz = _ansatz(observable)
    other = ansatz.copy()
    other.add_generator(qaoa_mixer(N_QUBITS)[0])
    other.bind(np.zeros(6))
    assert len(ansatz) == 2
    np.testing.assert_allclose(ansatz.angles(), [0.2, 0.3, 0.4, 0.6])


def test_resize_drops_whole_layers(observable):
    ansatz = _ansatz(observable, layers=3)
    ansatz.resize(1)
    assert ansatz.n_parameters == 2
    with pytest.raises(ValueError):
        ansatz.resize(2)


def test_scores_include_gamma0_rotation(observable):
    """On |+>^n the plain mixer scores zero; after exp(-i gamma0 H) it does not."""
    ansatz = DiagonalQAOAAnsatz(observable, gamma0=0.1)
    reference = uniform_superposition(N_QUBITS)
    mixer = qaoa_mixer(N_QUBITS)[0]
    score = VanillaADAPT().calculate_score(ansatz, mixer, observable, reference)
    assert score > 1e-3
    candidate = ansatz.with_candidate(mixer)
    assert score == pytest.approx(abs(partial(1, candidate, observable, reference)), abs=1e-12)


def _scores_match_partials(ansatz, pool, cost, reference):
    scores = VanillaADAPT().calculate_scores(ansatz, pool, cost, reference)
    for generator, score in zip(pool, scores):
        candidate = ansatz.with_candidate(generator)
        expected = abs(partial(candidate.n_parameters - 1, candidate, cost, reference))
        assert score == pytest.approx(expected, abs=1e-10)
    return scores


class TestQAOAAnsatz:
    """General QAOA ansatz on a non-diagonal cost operator."""

    @pytest.fixture
    def hamiltonian(self):
        return transverse_field_ising(N_QUBITS, j=1.0, h=0.5)

    def _ansatz(self, hamiltonian, layers=3):
        pool = qaoa_double_pool(N_QUBITS)
        return QAOAAnsatz(
            hamiltonian,
            gamma0=0.15,
            generators=[pool[i] for i in range(layers)],
            beta=[0.25 * (i + 1) for i in range(layers)],
            gamma=[-0.1 * (i + 1) for i in range(layers)],
        )

    def test_accepts_pauli_sum_cost(self, hamiltonian):
        ansatz = QAOAAnsatz(hamiltonian, gamma0=0.3)
        ansatz.add_generator(qaoa_mixer(N_QUBITS)[0])
        np.testing.assert_allclose(ansatz.angles(), [0.3, 0.0])
        assert list(ansatz.steps())[0] == (hamiltonian, 0.3)

    def test_rejects_observable_that_is_not_a_generator(self):
        with pytest.raises(TypeError):
            QAOAAnsatz(Infidelity(uniform_superposition(2)))

    def test_evolution_matches_dense_unitary(self, hamiltonian):
        ansatz = self._ansatz(hamiltonian)
        reference = uniform_superposition(N_QUBITS)
        expected = ansatz_matrix(N_QUBITS, ansatz) @ reference
        np.testing.assert_allclose(evolve_state(ansatz, reference), expected, atol=1e-9)

    def test_gradient_matches_finite_difference(self, hamiltonian):
        ansatz = self._ansatz(hamiltonian)
        reference = uniform_superposition(N_QUBITS)
        np.testing.assert_allclose(
            gradient(ansatz, hamiltonian, reference),
            finite_difference_gradient(ansatz, hamiltonian, reference),
            atol=1e-8,
        )

    def test_scores_match_partials(self, hamiltonian):
        ansatz = self._ansatz(hamiltonian, layers=2)
        scores = _scores_match_partials(
            ansatz, qaoa_double_pool(N_QUBITS), hamiltonian, uniform_superposition(N_QUBITS)
        )
        assert scores.max() > 1e-3

    def test_copy_keeps_class(self, hamiltonian):
        other = self._ansatz(hamiltonian).copy()
        assert type(other) is QAOAAnsatz
        assert other.observable is hamiltonian


class TestDiagonalQAOAAnsatzCost:
    """The diagonal ansatz only takes a QAOAObservable."""

    def test_rejects_pauli_sum(self):
        with pytest.raises(TypeError):
            DiagonalQAOAAnsatz(maxcut_hamiltonian(N_QUBITS, EDGES))

    def test_scores_match_partials(self, observable):
        _scores_match_partials(
            _ansatz(observable), qaoa_double_pool(N_QUBITS), observable, uniform_superposition(N_QUBITS)
        )


class TestPlasticQAOAAnsatz:
    """New layers inherit the previous layer's gamma."""

    def test_first_layer_uses_gamma0_then_inherits(self, observable):
        ansatz = PlasticQAOAAnsatz(observable, gamma0=0.25)
        mixer = qaoa_mixer(N_QUBITS)[0]
        ansatz.add_generator(mixer)
        assert ansatz.gamma_values == [0.25]
        ansatz.bind([0.7, 0.4])
        ansatz.add_generator(mixer)
        np.testing.assert_allclose(ansatz.angles(), [0.7, 0.4, 0.7, 0.0])

    def test_diagonal_ansatz_does_not_inherit(self, observable):
        ansatz = _ansatz(observable)
        ansatz.add_generator(qaoa_mixer(N_QUBITS)[0])
        assert ansatz.gamma_values[-1] == pytest.approx(0.1)

    def test_copy_keeps_class(self, observable):
        ansatz = PlasticQAOAAnsatz(observable, gamma0=0.25, generators=qaoa_mixer(N_QUBITS))
        assert type(ansatz.copy()) is PlasticQAOAAnsatz

    def _ansatz(self, observable, layers=3):
        pool = qaoa_double_pool(N_QUBITS)
        return PlasticQAOAAnsatz(
            observable,
            gamma0=0.1,
            generators=[pool[i] for i in range(layers)],
            beta=[0.3 * (i + 1) for i in range(layers)],
            gamma=[0.2 * (i + 1) for i in range(layers)],
        )

    def test_gradient_matches_finite_difference(self, observable):
        ansatz = self._ansatz(observable)
        reference = uniform_superposition(N_QUBITS)
        np.testing.assert_allclose(
            gradient(ansatz, observable, reference),
            finite_difference_gradient(ansatz, observable, reference),
            atol=1e-8,
        )

    def test_scores_use_inherited_gamma(self, observable):
        """Scores are the partials of candidates added with the inherited gamma."""
        ansatz = self._ansatz(observable, layers=2)
        reference = uniform_superposition(N_QUBITS)
        _scores_match_partials(ansatz, qaoa_double_pool(N_QUBITS), observable, reference)
        candidate = ansatz.with_candidate(qaoa_mixer(N_QUBITS)[0])
        assert candidate.gamma_values[-1] == pytest.approx(0.4)


# --- end to end ---


def test_maxcut_end_to_end():
    """n=6, p=0.5, seed=0 MaxCut converges to within the floor tolerance."""
    from experiments.maxcut_diagonal_qaoa import FLOOR_TOLERANCE, run_maxcut

    result = run_maxcut(n=6, p=0.5, seed=0, slow_stop=False)
    assert result["converged"]
    assert result["energy"] - result["ground_energy"] < FLOOR_TOLERANCE
    assert len(result["trace"]["energy"]) > 0


def test_erdos_renyi_is_reproducible():
    assert erdos_renyi_maxcut(6, 0.5, seed=0) == erdos_renyi_maxcut(6, 0.5, seed=0)

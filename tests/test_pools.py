"""Tests for operator pools."""

from __future__ import annotations

from math import comb

import numpy as np
import pytest

from adapt_vqe import PauliTerm, PauliVector
from adapt_models.pools import (
    full_pauli_pool,
    qaoa_double_ops,
    qaoa_double_pool,
    qaoa_mixer,
    qaoa_single_pool,
    qaoa_single_x,
    qubit_adapt_pool,
    qubit_excitation,
    qubit_excitation_pool,
    tile_operators,
    two_local_pool,
)

from tests.sim_utils import kron_sum


def test_full_pauli_pool_sizes():
    assert len(full_pauli_pool(2)) == 15
    assert len(full_pauli_pool(3, max_weight=1)) == 9


def test_two_local_pool_size():
    assert len(two_local_pool(4)) == comb(4, 2) * 9
    assert len(two_local_pool(3, axes=("X", "Y"))) == 3 * 4


def test_qubit_excitation_pool_size():
    n = 5
    assert len(qubit_excitation_pool(n)) == comb(n, 2) + 3 * comb(n, 4)


@pytest.mark.parametrize("qubits", [(0, 2), (0, 1, 2, 3), (3, 0, 2, 1)])
def test_qubit_excitations_are_commuting_and_hermitian(qubits):
    operator = qubit_excitation(4, *qubits)
    assert operator.is_commuting()
    matrix = kron_sum(list(operator))
    np.testing.assert_allclose(matrix, matrix.conj().T)


def test_double_excitation_swaps_pair_occupations():
    """<0011|G|1100> is non-zero and G maps |1100> only into |0011>."""
    operator = qubit_excitation(4, 0, 1, 2, 3)
    matrix = kron_sum(list(operator))
    column = matrix[:, 0b1100]
    assert abs(column[0b0011]) == pytest.approx(1.0)
    assert np.count_nonzero(np.abs(column) > 1e-12) == 1


def test_qubit_excitation_rejects_bad_indices():
    with pytest.raises(ValueError):
        qubit_excitation(4, 0, 0)
    with pytest.raises(ValueError):
        qubit_excitation(4, 0, 1, 2)


def test_qubit_adapt_pool_is_deduplicated():
    pool = qubit_adapt_pool(4)
    labels = [t.label for t in pool]
    assert len(labels) == len(set(labels))
    assert all(t.coefficient == 1.0 for t in pool)


def test_qaoa_pools():
    n = 4
    mixer = qaoa_mixer(n)
    assert len(mixer) == 1 and isinstance(mixer[0], PauliVector)
    assert {t.label for t in mixer[0]} == {"XIII", "IXII", "IIXI", "IIIX"}
    assert len(qaoa_single_x(n)) == n
    assert len(qaoa_single_pool(n)) == n + 1
    assert len(qaoa_double_ops(n)) == 4 * comb(n, 2)
    assert len(qaoa_double_pool(n)) == n + 1 + 4 * comb(n, 2)


def test_tile_operators():
    tiled = tile_operators(["XZII", "IIYY"], 4)
    assert [t.label for t in tiled] == ["IIXZ", "IIYY", "IXZI", "IYYI", "XZII", "YYII"]
    periodic = tile_operators(["XZ"], 3, periodic=True)
    assert {t.label for t in periodic} == {"XZI", "IXZ", "ZIX"}


def test_tile_operators_rejects_oversized_word():
    with pytest.raises(ValueError):
        tile_operators(["XYZX"], 3)


def test_pool_generators_are_valid_terms():
    for generator in two_local_pool(3):
        assert isinstance(generator, PauliTerm)
        assert len(generator.support()) == 2

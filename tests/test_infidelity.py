"""Tests for the infidelity cost."""

from __future__ import annotations

import numpy as np
import pytest

from adapt_vqe import basis_state, superposition
from adapt_models.infidelity import Infidelity

from tests.sim_utils import random_state


def test_infidelity_values():
    target = superposition(2, [0, 3])
    cost = Infidelity(target)
    assert cost.evaluate(target) == pytest.approx(0.0, abs=1e-15)
    assert cost.evaluate(basis_state(2, 0)) == pytest.approx(0.5)
    assert cost.evaluate(basis_state(2, 1)) == pytest.approx(1.0)


def test_dense_expectation_matches_cost():
    rng = np.random.default_rng(0)
    cost = Infidelity(random_state(3, rng))
    state = random_state(3, rng)
    expected = np.real(np.vdot(state, cost.dense() @ state))
    assert cost.evaluate(state) == pytest.approx(expected, abs=1e-12)


def test_covector_is_directional_derivative():
    """C(psi + h d) - C(psi - h d) ~ 4 h Re <lambda|d>."""
    rng = np.random.default_rng(1)
    cost = Infidelity(random_state(3, rng))
    psi = random_state(3, rng)
    direction = random_state(3, rng)
    h = 1e-6
    numeric = (cost.evaluate(psi + h * direction) - cost.evaluate(psi - h * direction)) / (2 * h)
    analytic = 2 * np.real(np.vdot(cost.covector(psi), direction))
    assert numeric == pytest.approx(analytic, abs=1e-7)


def test_sparse_target_and_state():
    cost = Infidelity(superposition(3, ["000", "111"], sparse=True))
    assert cost.evaluate(basis_state(3, "111", sparse=True)) == pytest.approx(0.5)
    assert cost.evaluate(basis_state(3, "111")) == pytest.approx(0.5)


def test_target_must_be_normalized():
    with pytest.raises(ValueError):
        Infidelity(2 * basis_state(2, 0))


def test_target_is_copied():
    target = basis_state(2, 0)
    cost = Infidelity(target)
    target[0] = 0.0
    assert cost.evaluate(basis_state(2, 0)) == pytest.approx(0.0)

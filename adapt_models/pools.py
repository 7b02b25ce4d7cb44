"""Operator pools: the candidate generators offered to ADAPT.

Every function returns a list of generators on ``n`` qubits (qubit indices
are 0-based). Pools built from commuting terms use ``PauliVector`` so that
their rotations stay exact and work on sparse states.
"""

from __future__ import annotations

import itertools
from typing import Dict, Iterable, List, Sequence, Tuple

from adapt_vqe.pauli import PauliTerm, PauliVector, pauli_label


def full_pauli_pool(n: int, max_weight: int | None = None) -> List[PauliTerm]:
    """Every non-identity Pauli word on ``n`` qubits, optionally capped in weight."""
    pool: List[PauliTerm] = []
    for chars in itertools.product("IXYZ", repeat=n):
        label = "".join(chars)
        weight = n - label.count("I")
        if weight == 0 or (max_weight is not None and weight > max_weight):
            continue
        pool.append(PauliTerm(label))
    return pool


def two_local_pool(n: int, axes: Sequence[str] = ("X", "Y", "Z")) -> List[PauliTerm]:
    """All weight-2 words a_i b_j (i < j) with a, b drawn from ``axes``."""
    pool: List[PauliTerm] = []
    for i, j in itertools.combinations(range(n), 2):
        for a, b in itertools.product(axes, repeat=2):
            label = ["I"] * n
            label[i], label[j] = a, b
            pool.append(PauliTerm("".join(label)))
    return pool


def qubit_excitation(n: int, *qubits: int) -> PauliVector:
    """Qubit-excitation generator (Yordanov et al., 2021).

    Two indices (i, k) give the single excitation (X_i Y_k - X_k Y_i) / 2;
    four indices (i, j, k, l) give the double excitation, eight odd-Y words
    weighted by +-1/8. All terms of one operator commute, so the product form
    is exact.
    """
    if len(set(qubits)) != len(qubits):
        raise ValueError(f"Qubit excitation indices must be distinct, got {qubits}")
    if len(qubits) == 2:
        i, k = qubits
        return PauliVector(
            [
                PauliTerm(pauli_label(n, X=[i], Y=[k]), 0.5),
                PauliTerm(pauli_label(n, X=[k], Y=[i]), -0.5),
            ]
        )
    if len(qubits) == 4:
        i, j, k, l = qubits
        signed: List[Tuple[float, Dict[str, List[int]]]] = [
            (1.0, {"X": [i, k, l], "Y": [j]}),
            (1.0, {"X": [j, k, l], "Y": [i]}),
            (1.0, {"X": [l], "Y": [i, j, k]}),
            (1.0, {"X": [k], "Y": [i, j, l]}),
            (-1.0, {"X": [i, j, l], "Y": [k]}),
            (-1.0, {"X": [i, j, k], "Y": [l]}),
            (-1.0, {"X": [j], "Y": [i, k, l]}),
            (-1.0, {"X": [i], "Y": [j, k, l]}),
        ]
        return PauliVector(
            [PauliTerm(pauli_label(n, **ops), sign / 8) for sign, ops in signed]
        )
    raise ValueError(f"Qubit excitations take 2 or 4 indices, got {len(qubits)}")


def qubit_excitation_pool(n: int) -> List[PauliVector]:
    """All single and double qubit excitations.

    There are C(n, 2) singles and 3 C(n, 4) doubles: each 4-subset
    contributes its three target/source pairings.
    """
    pool = [qubit_excitation(n, i, k) for i, k in itertools.combinations(range(n), 2)]
    for a, b, c, d in itertools.combinations(range(n), 4):
        pool.append(qubit_excitation(n, a, b, c, d))
        pool.append(qubit_excitation(n, a, c, b, d))
        pool.append(qubit_excitation(n, b, c, a, d))
    return pool


def qubit_adapt_pool(n: int) -> List[PauliTerm]:
    """Individual Pauli words of the qubit-excitation pool, unit weight, deduplicated."""
    seen: Dict[str, PauliTerm] = {}
    for operator in qubit_excitation_pool(n):
        for term in operator:
            seen.setdefault(term.label, PauliTerm(term.label))
    return list(seen.values())


def qaoa_mixer(n: int) -> List[PauliVector]:
    """One-element pool holding the standard mixer sum_i X_i."""
    return [PauliVector(PauliTerm.from_ops(n, X=[i]) for i in range(n))]


def qaoa_single_x(n: int) -> List[PauliVector]:
    """Single-qubit X_i mixers."""
    return [PauliVector([PauliTerm.from_ops(n, X=[i])]) for i in range(n)]


def qaoa_single_pool(n: int) -> List[PauliVector]:
    return qaoa_single_x(n) + qaoa_mixer(n)


def qaoa_double_ops(n: int) -> List[PauliVector]:
    """Two-qubit words preserving bit-flip symmetry: XX, YY, YZ, ZY on every pair."""
    pool: List[PauliVector] = []
    for i, j in itertools.combinations(range(n), 2):
        for ops in ({"X": [i, j]}, {"Y": [i, j]}, {"Y": [i], "Z": [j]}, {"Z": [i], "Y": [j]}):
            pool.append(PauliVector([PauliTerm.from_ops(n, **ops)]))
    return pool


def qaoa_double_pool(n: int) -> List[PauliVector]:
    """Single X mixers, the standard mixer, and the symmetric two-qubit words."""
    return qaoa_single_x(n) + qaoa_mixer(n) + qaoa_double_ops(n)


def tile_operators(
    labels: Iterable[str], n_target: int, periodic: bool = False
) -> List[PauliTerm]:
    """Translate Pauli words chosen on a small register across a larger one.

    Each label is stripped of its leading and trailing identities, placed at
    every offset of an ``n_target``-qubit register (wrapping around when
    ``periodic``), and the result is deduplicated and sorted.

    Args:
        labels: Pauli labels, e.g. those selected by ADAPT on a small system.
        n_target: Size of the larger register.
        periodic: Also place words across the boundary.
    """
    tiled = set()
    for label in labels:
        core = label.strip("I")
        if not core:
            continue
        if len(core) > n_target:
            raise ValueError(f"Word {core!r} does not fit on {n_target} qubits")
        base = core + "I" * (n_target - len(core))
        shifts = n_target if periodic else n_target - len(core) + 1
        for s in range(shifts):
            tiled.add(base[n_target - s :] + base[: n_target - s])
    return [PauliTerm(label) for label in sorted(tiled)]

"""Model Hamiltonians: MaxCut, spin chains, and the Fermi-Hubbard model.

MaxCut graphs come from ``networkx``. The Hubbard model is mapped to qubits
by Jordan-Wigner with spin orbitals interleaved (even index = alpha,
odd index = beta).
"""

from __future__ import annotations

import itertools
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import networkx as nx
import numpy as np
from numpy.typing import NDArray

from adapt_vqe.pauli import PauliSum, PauliTerm, pauli_label

logger = logging.getLogger(__name__)

Edge = Tuple[int, int, float]
LabelTerm = Tuple[complex, str]  # (coefficient, Pauli label)


# --- MaxCut ------------------------------------------------------------------


def get_unweighted_maxcut(graph: nx.Graph) -> List[Edge]:
    """Edge list of ``graph`` with unit weights."""
    return [(int(i), int(j), 1.0) for i, j in graph.edges()]


def get_weighted_maxcut(graph: nx.Graph, weight: str = "weight") -> List[Edge]:
    """Edge list of ``graph`` using the ``weight`` edge attribute (default 1)."""
    return [(int(i), int(j), float(d.get(weight, 1.0))) for i, j, d in graph.edges(data=True)]


def erdos_renyi_maxcut(n: int, p: float, seed: Optional[int] = None) -> List[Edge]:
    """Unweighted MaxCut edges of a G(n, p) random graph."""
    return get_unweighted_maxcut(nx.erdos_renyi_graph(n, p, seed=seed))


def random_regular_maxcut(d: int, n: int, seed: Optional[int] = None) -> List[Edge]:
    """Unweighted MaxCut edges of a random d-regular graph on n nodes."""
    return get_unweighted_maxcut(nx.random_regular_graph(d, n, seed=seed))


def maxcut_hamiltonian(n: int, edges: Iterable[Edge]) -> PauliSum:
    """MaxCut cost H = sum_(i,j,w) (w/2) (Z_i Z_j - I).

    A cut edge contributes -w and an uncut edge 0, so the ground energy is
    minus the maximum cut weight.

    Raises:
        ValueError: For self-loops or nodes outside the register.
    """
    terms: List[PauliTerm] = []
    for i, j, w in edges:
        if i == j:
            raise ValueError(f"Self-loop on node {i} has no MaxCut meaning")
        if not (0 <= i < n and 0 <= j < n):
            raise ValueError(f"Edge ({i}, {j}) outside a {n}-node graph")
        terms.append(PauliTerm(pauli_label(n, Z=[i, j]), w / 2))
        terms.append(PauliTerm("I" * n, -w / 2))
    return PauliSum(terms, n_qubits=n)


def maxcut_value(edges: Iterable[Edge], assignment: Union[int, Sequence[int]], n: int) -> float:
    """Total weight of edges cut by ``assignment`` (bitmask or 0/1 sequence)."""
    if isinstance(assignment, int):
        bits = [(assignment >> (n - 1 - k)) & 1 for k in range(n)]
    else:
        bits = list(assignment)
    return float(sum(w for i, j, w in edges if bits[i] != bits[j]))


# --- spin chains -----------------------------------------------------------------


def xyz_model(
    n: int, jx: float, jy: float, jz: float, periodic: bool = False, h: float = 0.0
) -> PauliSum:
    """XYZ Heisenberg chain sum_i (Jx X_i X_i+1 + Jy Y_i Y_i+1 + Jz Z_i Z_i+1) + h sum_i Z_i."""
    bonds = [(i, i + 1) for i in range(n - 1)]
    if periodic and n > 2:
        bonds.append((n - 1, 0))
    terms: List[PauliTerm] = []
    for i, j in bonds:
        for op, coupling in (("X", jx), ("Y", jy), ("Z", jz)):
            if coupling != 0.0:
                terms.append(PauliTerm(pauli_label(n, **{op: [i, j]}), coupling))
    if h != 0.0:
        terms.extend(PauliTerm(pauli_label(n, Z=[i]), h) for i in range(n))
    return PauliSum(terms, n_qubits=n)


def transverse_field_ising(n: int, j: float, h: float, periodic: bool = False) -> PauliSum:
    """H = -J sum_i Z_i Z_i+1 - h sum_i X_i."""
    bonds = [(i, i + 1) for i in range(n - 1)]
    if periodic and n > 2:
        bonds.append((n - 1, 0))
    terms = [PauliTerm(pauli_label(n, Z=[a, b]), -j) for a, b in bonds]
    terms += [PauliTerm(pauli_label(n, X=[i]), -h) for i in range(n)]
    return PauliSum(terms, n_qubits=n)


# --- Fermi-Hubbard (Jordan-Wigner) ----------------------------------------------


def _jordan_wigner_one_body(p: int, q: int, n_qubits: int) -> List[LabelTerm]:
    """Map a+_p a_q to Pauli strings via Jordan-Wigner."""
    if p == q:
        # a+_p a_p = (I - Z_p) / 2
        return [(0.5, "I" * n_qubits), (-0.5, pauli_label(n_qubits, Z=[p]))]

    # p != q: produces X-X and Y-Y chains with Z parity string
    terms: List[LabelTerm] = []
    lo, hi = min(p, q), max(p, q)
    for pauli_pair, sign in [("XX", 0.25), ("YY", 0.25), ("XY", -0.25j), ("YX", 0.25j)]:
        ops = []
        for i in range(n_qubits):
            if i == p:
                ops.append(pauli_pair[0])
            elif i == q:
                ops.append(pauli_pair[1])
            elif lo < i < hi:
                ops.append("Z")
            else:
                ops.append("I")
        terms.append((sign, "".join(ops)))
    return terms


def _product(a: List[LabelTerm], b: List[LabelTerm]) -> List[LabelTerm]:
    result: List[LabelTerm] = []
    for ca, la in a:
        for cb, lb in b:
            phase, label = PauliTerm(la).multiply(PauliTerm(lb))
            result.append((ca * cb * phase, label))
    return result


def _simplify(terms: List[LabelTerm], n_qubits: int, coeff_threshold: float = 1e-12) -> PauliSum:
    """Combine like Pauli strings, drop negligible ones, and check hermiticity.

    Raises:
        ValueError: If a merged coefficient keeps a non-negligible imaginary part.
    """
    combined: Dict[str, complex] = {}
    for coeff, label in terms:
        combined[label] = combined.get(label, 0.0) + coeff
    result: List[PauliTerm] = []
    for label, value in combined.items():
        if abs(value) <= coeff_threshold:
            continue
        if abs(value.imag) > 1e-10:
            raise ValueError(
                f"Pauli term '{label}' has non-negligible imaginary coefficient "
                f"{value.imag:.2e}; Hermitian Hamiltonians must have real coefficients."
            )
        result.append(PauliTerm(label, value.real))
    return PauliSum(result, n_qubits=n_qubits)


def hubbard_hamiltonian(
    graph: Union[nx.Graph, NDArray[np.float64]], u: float, t: float
) -> PauliSum:
    """Fermi-Hubbard model H = -t sum_<ij>,s (a+_is a_js + h.c.) + U sum_i n_i,up n_i,dn.

    Args:
        graph: Site connectivity, as a networkx graph or symmetric adjacency matrix.
        u: On-site Coulomb repulsion.
        t: Hopping amplitude.

    Returns:
        PauliSum on 2 * n_sites qubits (site i -> qubits 2i (alpha), 2i+1 (beta)).
    """
    if isinstance(graph, nx.Graph):
        n_sites = graph.number_of_nodes()
        bonds = [(int(i), int(j)) for i, j in graph.edges() if i != j]
    else:
        adjacency = np.asarray(graph)
        if adjacency.ndim != 2 or adjacency.shape[0] != adjacency.shape[1]:
            raise ValueError(f"Adjacency matrix must be square, got shape {adjacency.shape}")
        n_sites = adjacency.shape[0]
        bonds = [
            (i, j)
            for i, j in itertools.combinations(range(n_sites), 2)
            if abs(adjacency[i, j]) > 1e-16
        ]
    n_qubits = 2 * n_sites
    terms: List[LabelTerm] = []
    for i, j in bonds:
        for spin in range(2):
            p, q = 2 * i + spin, 2 * j + spin
            for coeff, label in _jordan_wigner_one_body(p, q, n_qubits):
                terms.append((-t * coeff, label))
            for coeff, label in _jordan_wigner_one_body(q, p, n_qubits):
                terms.append((-t * coeff, label))
    for i in range(n_sites):
        n_up = _jordan_wigner_one_body(2 * i, 2 * i, n_qubits)
        n_dn = _jordan_wigner_one_body(2 * i + 1, 2 * i + 1, n_qubits)
        terms.extend((u * c, label) for c, label in _product(n_up, n_dn))
    return _simplify(terms, n_qubits)


def hubbard_chain(n_sites: int, u: float, t: float, periodic: bool = False) -> PauliSum:
    """1-D nearest-neighbour Hubbard chain."""
    graph = nx.cycle_graph(n_sites) if periodic and n_sites > 2 else nx.path_graph(n_sites)
    return hubbard_hamiltonian(graph, u, t)


# --- exact reference energies ---------------------------------------------------


def exact_ground_energy(observable) -> float:
    """Lowest eigenvalue by dense diagonalization (or the diagonal minimum)."""
    diagonal = getattr(observable, "diagonal", None)
    if isinstance(diagonal, np.ndarray):
        return float(diagonal.min())
    if isinstance(observable, PauliSum) and observable.is_diagonal:
        return float(observable.diagonal().min())
    energies = np.linalg.eigvalsh(observable.dense())
    logger.debug("Exact spectrum: E0=%.10f, E1=%.10f", energies[0], energies[min(1, len(energies) - 1)])
    return float(energies[0])

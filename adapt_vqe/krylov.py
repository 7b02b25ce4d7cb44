"""Lanczos (Krylov-subspace) action of a Hermitian exponential on a vector.

Computes exp(-i t H)|psi> for a Hermitian H available only as a
matrix-vector product. The time interval is split into substeps short
enough that a fixed-size Krylov space resolves each step to machine
precision. Only the small tridiagonal projection is ever exponentiated
densely (``scipy.linalg.expm``).
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import expm

logger = logging.getLogger(__name__)

KRYLOV_DIMENSION = 30
KRYLOV_TOLERANCE = 1e-12
# Largest |t| * ||H|| handled in one substep with a KRYLOV_DIMENSION space.
KRYLOV_STEP_NORM = 4.0

MatVec = Callable[[NDArray[np.complex128]], NDArray[np.complex128]]


def _lanczos_exp_step(
    matvec: MatVec,
    vector: NDArray[np.complex128],
    dt: float,
    krylov_dim: int,
    tol: float,
) -> NDArray[np.complex128]:
    beta0 = float(np.linalg.norm(vector))
    if beta0 == 0.0:
        return vector.copy()

    basis: List[NDArray[np.complex128]] = [vector / beta0]
    alphas: List[float] = []
    betas: List[float] = []
    for j in range(min(krylov_dim, len(vector))):
        w = matvec(basis[j])
        alpha = float(np.real(np.vdot(basis[j], w)))
        alphas.append(alpha)
        w = w - alpha * basis[j]
        if j > 0:
            w = w - betas[j - 1] * basis[j - 1]
        # Full reorthogonalization keeps the small basis numerically orthonormal.
        for v in basis:
            w = w - np.vdot(v, w) * v
        beta = float(np.linalg.norm(w))
        if beta < tol or j == krylov_dim - 1 or j == len(vector) - 1:
            break
        betas.append(beta)
        basis.append(w / beta)

    k = len(alphas)
    tridiagonal = np.diag(alphas).astype(np.complex128)
    if k > 1:
        off = np.asarray(betas[: k - 1])
        tridiagonal += np.diag(off, 1) + np.diag(off, -1)
    coefficients = beta0 * expm(-1j * dt * tridiagonal)[:, 0]

    result = np.zeros_like(vector)
    for c, v in zip(coefficients, basis):
        result += c * v
    return result


def expm_multiply_hermitian(
    matvec: MatVec,
    vector: NDArray[np.complex128],
    time: float,
    norm_bound: float,
    krylov_dim: int = KRYLOV_DIMENSION,
    tol: float = KRYLOV_TOLERANCE,
) -> NDArray[np.complex128]:
    """Return exp(-i time H) @ vector without forming exp(H).

    Args:
        matvec: Callable computing H @ v for Hermitian H.
        vector: Dense complex input vector (not modified).
        time: Evolution time t.
        norm_bound: Any upper bound on the spectral norm of H, e.g. the sum
            of absolute Pauli coefficients. Sets the number of substeps.
        krylov_dim: Maximum Krylov subspace dimension per substep.
        tol: Lanczos breakdown tolerance; a smaller residual means the
            subspace is invariant and the step is exact.

    Returns:
        New vector holding the evolved state.
    """
    if krylov_dim < 1:
        raise ValueError(f"krylov_dim must be positive, got {krylov_dim}")
    result = np.array(vector, dtype=np.complex128)
    if time == 0.0 or norm_bound == 0.0:
        return result

    n_steps = max(1, math.ceil(abs(time) * norm_bound / KRYLOV_STEP_NORM))
    dt = time / n_steps
    logger.debug(
        "Krylov exponentiation: t=%.3e, |H|<=%.3e, %d substep(s)",
        time,
        norm_bound,
        n_steps,
    )
    for _ in range(n_steps):
        result = _lanczos_exp_step(matvec, result, dt, krylov_dim, tol)
    return result

# greenframe/kernel/solve.py
"""Linear system solve with boundary conditions via DOF partitioning."""

import numpy as np
from typing import Iterable, Optional, Tuple

from .matrix import solve_linear_system, SINGULAR_TOLERANCE


def partition_dofs(ndof: int, constrained_dofs: Iterable[int]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split DOFs into free and constrained index arrays (both sorted).

    Args:
        ndof: Total number of DOFs
        constrained_dofs: DOFs held at their prescribed value

    Returns:
        free, constrained
    """
    constrained = np.array(sorted(set(int(i) for i in constrained_dofs)), dtype=int)
    mask = np.ones(ndof, dtype=bool)
    mask[constrained] = False
    free = np.flatnonzero(mask)
    return free, constrained


def expand(
    reduced: np.ndarray,
    free: np.ndarray,
    ndof: int,
    prescribed: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Expand a free-DOF vector back to the full DOF set.

    Constrained DOFs take their prescribed value (zero by default).
    """
    d = np.zeros(ndof, dtype=float) if prescribed is None else np.array(prescribed, dtype=float)
    d[free] = reduced
    return d


def solve_linear(
    K: np.ndarray,
    F: np.ndarray,
    constrained_dofs: Iterable[int],
    tol: float = SINGULAR_TOLERANCE
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Solve K·d = F with constrained DOFs held at zero.

    Args:
        K: Global stiffness matrix (ndof x ndof)
        F: Global load vector (ndof,)
        constrained_dofs: Constrained DOF indices (displacement = 0)
        tol: Relative pivot tolerance for Gaussian elimination

    Returns:
        d: Displacement vector (ndof,)
        R: Residual K·d - F (ndof,), the reactions at constrained DOFs
        free: Array of free DOF indices

    Raises:
        SingularMatrixError: If the reduced system is singular (mechanism)
    """
    ndof = K.shape[0]
    free, _ = partition_dofs(ndof, constrained_dofs)

    Kff = K[np.ix_(free, free)]
    Ff = F[free]

    df = solve_linear_system(Kff, Ff, tol=tol)
    d = expand(df, free, ndof)

    # Reactions: R = K·d - F
    R = K @ d - F

    return d, R, free


def to_basis(A: np.ndarray, bases) -> np.ndarray:
    """
    Re-express a global vector or square matrix in rotated nodal coordinates.

    bases is a sequence of (dof indices, V) with V orthonormal; within those
    DOFs the new coordinates are Vᵀ·θ. Blocks of different nodes are disjoint.
    """
    if not bases:
        return A
    out = np.array(A, dtype=float)
    for dofs, V in bases:
        idx = list(dofs)
        out[idx] = V.T @ out[idx]
        if out.ndim == 2:
            out[:, idx] = out[:, idx] @ V
    return out


def from_basis(x: np.ndarray, bases) -> np.ndarray:
    """Inverse of to_basis for vectors (or column stacks of vectors)."""
    if not bases:
        return x
    out = np.array(x, dtype=float)
    for dofs, V in bases:
        idx = list(dofs)
        out[idx] = V @ out[idx]
    return out

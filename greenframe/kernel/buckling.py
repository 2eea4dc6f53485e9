# greenframe/kernel/buckling.py
"""Buckling analysis: geometric stiffness and eigenvalue problem."""

import numpy as np
from typing import Optional, Tuple

from .matrix import SINGULAR_TOLERANCE, solve_generalized_eigenvalue


def geometric_stiffness_truss3d(
    L: float,
    direction: np.ndarray,
    axial_force: float
) -> np.ndarray:
    """
    Build 6x6 geometric stiffness matrix for a 3D truss element (global axes).

    Kg = (N/L) * [G, -G; -G, G] where G = I - nn^T, the projection
    perpendicular to the bar. Tension stiffens, compression softens.

    Args:
        L: Element length
        direction: Unit vector from node i to node j
        axial_force: Axial force N (positive=tension, negative=compression)

    Returns:
        6x6 geometric stiffness matrix Kg
    """
    n = np.asarray(direction, dtype=float)
    G = np.eye(3) - np.outer(n, n)

    Kg = np.zeros((6, 6), dtype=float)
    Kg[0:3, 0:3] = G
    Kg[0:3, 3:6] = -G
    Kg[3:6, 0:3] = -G
    Kg[3:6, 3:6] = G
    return Kg * (axial_force / L)


def _plane_block(L: float) -> np.ndarray:
    """Consistent geometric stiffness of one bending plane, DOFs [v1, θ1, v2, θ2], without N/L."""
    return np.array([
        [ 6/5,     L/10,       -6/5,     L/10],
        [ L/10,    2*L*L/15,   -L/10,   -L*L/30],
        [-6/5,    -L/10,        6/5,    -L/10],
        [ L/10,   -L*L/30,     -L/10,    2*L*L/15],
    ], dtype=float)


def geometric_stiffness_frame3d_local(L: float, axial_force: float) -> np.ndarray:
    """
    12x12 geometric stiffness of a 3D beam-column in LOCAL coordinates.

    Local DOF order: [u1, v1, w1, θx1, θy1, θz1, u2, v2, w2, θx2, θy2, θz2].
    The v-θz plane uses the block directly; the w-θy plane flips the sign of
    the rotation coupling because θy = -dw/dx.
    """
    block = _plane_block(L) * (axial_force / L)
    flip = np.diag([1.0, -1.0, 1.0, -1.0])

    kg = np.zeros((12, 12), dtype=float)
    v_plane = [1, 5, 7, 11]
    w_plane = [2, 4, 8, 10]
    kg[np.ix_(v_plane, v_plane)] = block
    kg[np.ix_(w_plane, w_plane)] = flip @ block @ flip
    return kg


def critical_buckling_factor(
    K: np.ndarray,
    Kg: np.ndarray,
    free: np.ndarray
) -> Tuple[float, Optional[np.ndarray], np.ndarray]:
    """
    Solve the linearized buckling problem (K + λ·Kg)·φ = 0.

    Rewritten as K·φ = λ·(-Kg)·φ. The critical buckling factor λ_cr is the
    smallest strictly positive eigenvalue.
    If λ_cr > 1.0, the structure is stable under current loads.
    If λ_cr < 1.0, the structure will buckle before reaching full load.

    Args:
        K: Global elastic stiffness matrix
        Kg: Global geometric stiffness matrix for the reference load
        free: Free DOF indices

    Returns:
        (λ_cr, mode on free DOFs or None, all positive eigenvalues).
        λ_cr is inf when the load pattern cannot buckle the structure.
    """
    if len(free) == 0:
        return float('inf'), None, np.zeros(0)

    Kff = K[np.ix_(free, free)]
    Kgff = Kg[np.ix_(free, free)]

    # No geometric effects, no buckling
    if np.max(np.abs(Kgff)) <= SINGULAR_TOLERANCE * np.max(np.abs(Kff)):
        return float('inf'), None, np.zeros(0)

    eigenvalues, eigenvectors = solve_generalized_eigenvalue(Kff, -Kgff)

    positive = eigenvalues > 1e-9
    if not np.any(positive):
        return float('inf'), None, np.zeros(0)

    values = eigenvalues[positive]
    vectors = eigenvectors[:, positive]
    return float(values[0]), vectors[:, 0], values


def euler_buckling_load(E: float, I: float, L: float, k: float = 1.0) -> float:
    """
    Euler critical buckling load for a column.

    P_cr = π²EI / (kL)²

    Args:
        E: Young's modulus
        I: Moment of inertia
        L: Member length
        k: Effective length factor (1.0 pinned-pinned, 2.0 cantilever)

    Returns:
        Critical buckling load P_cr
    """
    Le = k * L
    return (np.pi ** 2 * E * I) / (Le ** 2)

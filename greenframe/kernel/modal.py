# greenframe/kernel/modal.py
"""Modal analysis: natural frequencies, participation factors, effective mass."""

import numpy as np
from typing import Tuple

from .matrix import solve_generalized_eigenvalue


def natural_frequencies(
    K: np.ndarray,
    M: np.ndarray,
    free: np.ndarray,
    n_modes: int = 10
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Compute natural frequencies and mode shapes.

    Solves the generalized eigenvalue problem on the free DOFs: K·φ = ω²·M·φ

    Args:
        K: Global stiffness matrix
        M: Global mass matrix
        free: Free DOF indices
        n_modes: Number of modes to return

    Returns:
        eigenvalues: ω² per mode, ascending
        frequencies_hz: Natural frequencies in Hz
        mode_shapes: Mode shape matrix (n_free_dofs x n_modes), unit L2 columns

    Raises:
        ValueError: If there are no free DOFs or the mass matrix is negative
    """
    if len(free) == 0:
        raise ValueError("No free DOFs - cannot compute modes")

    Kff = K[np.ix_(free, free)]
    Mff = M[np.ix_(free, free)]

    if np.any(np.diag(Mff) < 0):
        raise ValueError("Mass matrix has negative diagonal entries")

    eigenvalues, mode_shapes = solve_generalized_eigenvalue(Kff, Mff, n_modes=n_modes)

    # ω² = eigenvalue, f = ω / (2π)
    omega = np.sqrt(np.maximum(eigenvalues, 0.0))  # Clamp round-off negatives
    frequencies_hz = omega / (2.0 * np.pi)

    return eigenvalues, frequencies_hz, mode_shapes


def _influence_vector(free: np.ndarray, direction: int, dof_per_node: int) -> np.ndarray:
    """Unit rigid-body translation in `direction`, restricted to free DOFs."""
    return (np.asarray(free) % dof_per_node == direction).astype(float)


def modal_participation_factors(
    mode_shapes: np.ndarray,
    M: np.ndarray,
    free: np.ndarray,
    direction: int = 2,
    dof_per_node: int = 6
) -> np.ndarray:
    """
    Compute modal participation factors for a given direction.

    Γ = (φᵀ·M·r) / (φᵀ·M·φ), r = unit translation in `direction`.
    Higher factors indicate modes that matter more for seismic/dynamic
    response in that direction.

    Args:
        mode_shapes: Mode shape matrix from natural_frequencies()
        M: Full mass matrix
        free: Array of free DOF indices
        direction: DOF direction (0=X, 1=Y, 2=Z)
        dof_per_node: DOFs per node (6 for 3D frames)

    Returns:
        participation: Participation factor for each mode
    """
    Mff = M[np.ix_(free, free)]
    r = _influence_vector(free, direction, dof_per_node)

    participation = np.zeros(mode_shapes.shape[1])
    for mode in range(mode_shapes.shape[1]):
        phi = mode_shapes[:, mode]
        m_star = phi @ Mff @ phi
        if m_star > 0:
            participation[mode] = (phi @ Mff @ r) / m_star
    return participation


def effective_modal_mass(
    mode_shapes: np.ndarray,
    M: np.ndarray,
    free: np.ndarray,
    direction: int = 2,
    dof_per_node: int = 6
) -> np.ndarray:
    """
    Compute effective modal mass for each mode.

    Effective mass = (φᵀ·M·r)² / (φᵀ·M·φ). Summed over all modes it equals
    the total mass mobilised in that direction.
    """
    Mff = M[np.ix_(free, free)]
    r = _influence_vector(free, direction, dof_per_node)

    eff_mass = np.zeros(mode_shapes.shape[1])
    for mode in range(mode_shapes.shape[1]):
        phi = mode_shapes[:, mode]
        m_star = phi @ Mff @ phi
        if m_star > 0:
            eff_mass[mode] = (phi @ Mff @ r) ** 2 / m_star
    return eff_mass

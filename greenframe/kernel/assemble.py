# greenframe/kernel/assemble.py
"""
ASSEMBLY: Global Matrix Assembly
================================

The scatter-add that builds global K, M (and F) from element data.
Assembly does not care about element TYPE. It needs:

- Total number of DOFs
- For each element: its DOF map and its matrix in global coordinates

ALGORITHM:
----------
    K = zeros(ndof × ndof)
    for each element:
        for each (a, b) in element ke:
            K[dof_map[a], dof_map[b]] += ke[a, b]

Elements are visited in list order, so repeated assembly of an unchanged
model is bit-identical.
"""

import numpy as np
from typing import List, Sequence, Tuple

from ..errors import DimensionMismatchError


def assemble_global_matrix(
    ndof: int,
    contributions: Sequence[Tuple[Sequence[int], np.ndarray]]
) -> np.ndarray:
    """
    Assemble a global (ndof × ndof) matrix from element contributions.

    Parameters:
    -----------
    ndof : int
        Total number of DOFs in the system (6 × n_nodes)

    contributions : sequence of (dof_map, ke)
        - dof_map: global DOF indices of the element (12 for a 2-node element)
        - ke: element matrix in global coordinates, shape (len(dof_map), len(dof_map))

    Returns:
    --------
    np.ndarray
        Global matrix, shape (ndof, ndof)
    """
    K = np.zeros((ndof, ndof), dtype=float)

    for dof_map, ke in contributions:
        n_element_dofs = len(dof_map)
        if ke.shape != (n_element_dofs, n_element_dofs):
            raise DimensionMismatchError(
                f"Element matrix shape {ke.shape} doesn't match dof_map length {n_element_dofs}"
            )
        idx = np.asarray(dof_map, dtype=int)
        K[np.ix_(idx, idx)] += ke

    return K


def add_nodal_load(
    F: np.ndarray,
    node_index: int,
    load_vector: Sequence[float],
    dof_per_node: int = 6
) -> None:
    """
    Add a nodal load to the global load vector (in-place).

    load_vector is [Fx, Fy, Fz, Mx, My, Mz] (or a leading subset).
    """
    base_dof = dof_per_node * node_index
    for i, val in enumerate(load_vector):
        F[base_dof + i] += val


def gather(d_global: np.ndarray, dof_map: List[int]) -> np.ndarray:
    """Extract an element's DOF values from a global vector."""
    return np.asarray(d_global, dtype=float)[np.asarray(dof_map, dtype=int)]

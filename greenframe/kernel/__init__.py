# greenframe/kernel - Core numerical plumbing
"""
KERNEL: THE NUMERICAL FOUNDATION
================================

Element-agnostic pieces of the solver:

- A way to map (node_index, local_dof) → global DOF index   (dof.py)
- Dense linear algebra: Gaussian elimination, eigenproblems (matrix.py)
- Scatter-add of element matrices into global ones           (assemble.py)
- Partitioned linear solve with supports                      (solve.py)
- Modal and buckling eigen-analysis helpers                   (modal.py, buckling.py)

The ELEMENT formulations (truss, beam, frame) live in greenframe.elements;
the kernel only sees matrices and DOF maps.
"""

from .dof import DOFManager, DOF_3D_FRAME
from .matrix import (
    zero,
    multiply,
    add,
    subtract,
    transpose,
    norm,
    solve_linear_system,
    solve_generalized_eigenvalue,
)
from .solve import solve_linear, partition_dofs, expand, to_basis, from_basis

__all__ = [
    'DOFManager',
    'DOF_3D_FRAME',
    'zero',
    'multiply',
    'add',
    'subtract',
    'transpose',
    'norm',
    'solve_linear_system',
    'solve_generalized_eigenvalue',
    'solve_linear',
    'partition_dofs',
    'expand',
    'to_basis',
    'from_basis',
]

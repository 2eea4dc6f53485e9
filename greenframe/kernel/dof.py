# greenframe/kernel/dof.py
"""
DOF MANAGER: Degree of Freedom Indexing
=======================================

PURPOSE:
--------
Maps (node_index, local_dof) to global DOF indices. Every node of a 3D
frame model owns 6 DOFs:

    0=ux, 1=uy, 2=uz, 3=rx, 4=ry, 5=rz

Nodes are stored in an arena (a list) so the node index IS the position
in that list. DOF numbering is then a multiplication, not a lookup:

    global_idx = 6 × node_index + local_dof

USAGE:
------
    dof = DOFManager()
    dof.idx(node_index=2, local_dof=1)   # → 13
    dof.element_dof_map([0, 3])          # → [0..5, 18..23]
"""

from dataclasses import dataclass
from typing import List, Sequence

ROTATIONS = (3, 4, 5)
DOF_LABELS = ("ux", "uy", "uz", "rx", "ry", "rz")


@dataclass(frozen=True)
class DOFManager:
    """
    Manages degree-of-freedom indexing for structural analysis.

    Attributes:
    -----------
    dof_per_node : int
        Number of DOFs per node (6 for a 3D frame: ux, uy, uz, rx, ry, rz)

    Examples:
    ---------
    >>> dof = DOFManager()
    >>> dof.idx(1, 0)  # Node 1, ux
    6
    >>> dof.ndof(4)
    24
    """
    dof_per_node: int = 6

    def idx(self, node_index: int, local_dof: int) -> int:
        """Global DOF index for a node's local DOF."""
        return self.dof_per_node * node_index + local_dof

    def ndof(self, n_nodes: int) -> int:
        """Total DOFs for a system with n_nodes."""
        return self.dof_per_node * n_nodes

    def node_dofs(self, node_index: int) -> List[int]:
        """
        All global DOF indices for a single node.

        >>> DOFManager().node_dofs(2)
        [12, 13, 14, 15, 16, 17]
        """
        base = self.dof_per_node * node_index
        return list(range(base, base + self.dof_per_node))

    def element_dof_map(self, node_indices: Sequence[int]) -> List[int]:
        """
        DOF map for an element connecting several nodes.

        These are the indices used to scatter/gather element matrices
        into/from the global matrices. A 2-node element gets 12 entries.
        """
        result = []
        for node_index in node_indices:
            result.extend(self.node_dofs(node_index))
        return result

    def node_of(self, global_dof: int) -> int:
        """Inverse mapping: which node owns a global DOF."""
        return global_dof // self.dof_per_node


DOF_3D_FRAME = DOFManager(dof_per_node=6)

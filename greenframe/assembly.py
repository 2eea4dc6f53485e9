# greenframe/assembly.py
"""
MODEL ASSEMBLER
===============

Two jobs:

1. Turn geometry (members between points) into an FEAModel: member ends
   that coincide within the joint tolerance become one node, supports and
   point loads are matched to nodes by their coordinates.

2. Build the global stiffness and mass matrices by scatter-adding every
   element's 12×12 global matrices through its DOF map:

       node index i owns DOFs 6i .. 6i+5,   ndof = 6 × n_nodes

Joint rotations with no stiffness at all (a node reached only by truss
bars, or a rotation every connected element releases, in any direction)
are reported as inactive. The solvers hold them at zero as long as no load
acts on them; a load there is a mechanism and raises MechanismError.
Translations are never held: a translation without stiffness goes to the
singular pivot check.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .cad import GeometryModel
from .config import DEFAULT_CONFIG, SolverConfiguration
from .elements import get_formulation
from .errors import ModelError
from .events import MatricesAssembled, ModelCreated, Observer, notify
from .kernel.assemble import assemble_global_matrix
from .kernel.dof import DOF_3D_FRAME, ROTATIONS
from .kernel.matrix import SINGULAR_TOLERANCE
from .model import ElementLoad, FEAModel, LoadCase, NodalLoad, Vec3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalMatrices:
    """
    Assembled global matrices of one model.

    The arrays are flagged read-only so several runs can share them.

    inactive_dofs are joint rotations without stiffness. Most of them are
    plain global DOFs. When the stiffness-free direction is skewed to the
    global axes, the node's rotations are re-expressed in the orthonormal
    basis V of `inactive_bases` (θ' = Vᵀ·θ) and the listed index then
    refers to that rotated coordinate.
    """
    stiffness: np.ndarray
    mass: np.ndarray
    ndof: int
    inactive_dofs: Tuple[int, ...] = ()
    inactive_bases: Tuple[Tuple[Tuple[int, ...], np.ndarray], ...] = ()

    @property
    def K(self) -> np.ndarray:
        return self.stiffness

    @property
    def M(self) -> np.ndarray:
        return self.mass


def element_dof_map(element) -> List[int]:
    return DOF_3D_FRAME.element_dof_map(element.node_indices)


def find_inactive_dofs(
    K: np.ndarray,
    constrained: Sequence[int] = (),
    tol: float = SINGULAR_TOLERANCE
) -> Tuple[Tuple[int, ...], Tuple[Tuple[Tuple[int, ...], np.ndarray], ...]]:
    """
    Joint rotations that no element resists.

    Per node, the unconstrained rotational block of K is searched for
    directions with (relatively) zero stiffness: first axis-aligned ones
    by their diagonal, then skewed ones by an eigen-decomposition of the
    remaining block. Translations are never held here; a translation
    without stiffness is a mechanism for the pivot check to report.

    Returns:
    --------
    (inactive DOF indices, rotated bases) as stored on GlobalMatrices
    """
    held = set(int(i) for i in constrained)
    diag = np.abs(np.diag(K))
    threshold = tol * float(np.max(diag)) if diag.size else 0.0

    inactive = []
    bases = []
    for node_index in range(K.shape[0] // DOF_3D_FRAME.dof_per_node):
        rotations = [DOF_3D_FRAME.idx(node_index, r) for r in ROTATIONS]
        rotations = [i for i in rotations if i not in held]

        aligned = [i for i in rotations if diag[i] <= threshold]
        inactive.extend(aligned)

        rest = [i for i in rotations if i not in aligned]
        if len(rest) < 2:
            continue
        values, vectors = np.linalg.eigh(K[np.ix_(rest, rest)])
        n_zero = int(np.sum(values <= threshold))
        if n_zero:
            # eigh sorts ascending, so the stiffness-free directions come first
            inactive.extend(rest[:n_zero])
            bases.append((tuple(rest), vectors))

    return tuple(sorted(inactive)), tuple(bases)


def assemble_global_matrices(
    model: FEAModel,
    config: SolverConfiguration = DEFAULT_CONFIG,
    observer: Optional[Observer] = None
) -> GlobalMatrices:
    """
    Assemble global K and M for every element of the model.

    Elements are visited in arena order, so the result is bit-identical on
    repeated calls for an unchanged model.
    """
    stiffness = []
    mass = []
    for element in model.elements:
        formulation = get_formulation(element.type)
        dof_map = element_dof_map(element)
        stiffness.append((dof_map, formulation.global_stiffness(element, model.nodes, config)))
        mass.append((dof_map, formulation.global_mass(element, model.nodes)))

    ndof = model.ndof
    K = assemble_global_matrix(ndof, stiffness)
    M = assemble_global_matrix(ndof, mass)
    inactive, bases = find_inactive_dofs(K, model.constrained_dofs(), config.singular_tolerance)

    K.setflags(write=False)
    M.setflags(write=False)

    logger.debug("Assembled %d elements into %d DOFs (%d inactive, %d rotated joints)",
                 len(model.elements), ndof, len(inactive), len(bases))
    matrices = GlobalMatrices(stiffness=K, mass=M, ndof=ndof,
                              inactive_dofs=inactive, inactive_bases=bases)
    notify(observer, MatricesAssembled(ndof=ndof, stiffness=K, mass=M))
    return matrices


class ModelAssembler:
    """
    Builds an FEAModel from geometry and assembles its matrices.

    The assembler owns one model; create_model_from_cad() discards whatever
    was built before.
    """

    def __init__(self, model: Optional[FEAModel] = None):
        self.model = model if model is not None else FEAModel()

    def _find_node(self, point: Sequence[float], tolerance: float) -> Optional[str]:
        p = np.asarray(point, dtype=float)
        for node in self.model.nodes:
            if np.linalg.norm(node.xyz - p) <= tolerance:
                return node.id
        return None

    def _node_at(self, point: Vec3, tolerance: float) -> str:
        """Existing node within tolerance of `point`, or a new one named N<k>."""
        node_id = self._find_node(point, tolerance)
        if node_id is None:
            node_id = f"N{self.model.n_nodes + 1}"
            self.model.add_node(node_id, point)
        return node_id

    def _resolve_point(self, point: Vec3, tolerance: float, what: str) -> str:
        node_id = self._find_node(point, tolerance)
        if node_id is None:
            raise ModelError(f"{what} at {tuple(point)} does not coincide with any member end")
        return node_id

    def create_model_from_cad(
        self,
        geometry: GeometryModel,
        observer: Optional[Observer] = None
    ) -> FEAModel:
        """
        Create nodes, elements, supports and load cases from geometry.

        Raises:
        -------
        ModelError
            Unknown material/section name, support or load point off the
            structure, member load on an unknown member
        ConfigurationError
            Unknown element type or support type (spring, rigid_link, ...)
        """
        self.model.clear()
        tol = geometry.joint_tolerance

        for member in geometry.members:
            if member.material not in geometry.materials:
                raise ModelError(f"Member {member.id!r} uses unknown material {member.material!r}")
            if member.section not in geometry.sections:
                raise ModelError(f"Member {member.id!r} uses unknown section {member.section!r}")
            ni = self._node_at(member.start, tol)
            nj = self._node_at(member.end, tol)
            self.model.add_element(
                member.id,
                member.element_type,
                (ni, nj),
                geometry.materials[member.material],
                geometry.sections[member.section],
                local_y=member.local_y,
                releases=member.releases,
            )

        for support in geometry.supports:
            node_id = self._resolve_point(support.point, tol, "Support")
            self.model.set_constraints(node_id, support.constraint)

        for case in geometry.load_cases:
            loads = []
            for pl in case.point_loads:
                node_id = self._resolve_point(pl.point, tol, f"Point load of case {case.id!r}")
                loads.append(NodalLoad(node_id, tuple(pl.forces), tuple(pl.moments)))
            for ml in case.member_loads:
                if not self.model.has_element(ml.member_id):
                    raise ModelError(f"Load case {case.id!r} loads unknown member {ml.member_id!r}")
                loads.append(ElementLoad(ml.member_id, tuple(ml.w), ml.coordinate_system))
            self.model.add_load_case(
                LoadCase(id=case.id, category=case.category, factor=case.factor,
                         loads=loads, name=case.name)
            )

        logger.info("Model created from geometry: %d nodes, %d elements, %d load cases",
                    self.model.n_nodes, len(self.model.elements), len(self.model.load_cases))
        notify(observer, ModelCreated(nodes=self.model.n_nodes,
                                      elements=len(self.model.elements),
                                      load_cases=len(self.model.load_cases)))
        return self.model

    def assemble(
        self,
        config: SolverConfiguration = DEFAULT_CONFIG,
        observer: Optional[Observer] = None
    ) -> GlobalMatrices:
        return assemble_global_matrices(self.model, config, observer)

# greenframe/loads.py
"""
Load vectors: nodal loads, equivalent nodal loads of element loads, and
factored load combinations.

A uniform distributed load w (per unit length) on an element is turned
into equivalent point forces and moments at its two nodes (fixed-end
forces with the sign reversed convention of "loads applied to nodes"):

    total force w×L, split wL/2 to each end
    end moments ±wL²/12 in each bending plane

These produce the exact nodal displacements of the distributed load for
cubic beam elements. The same fixed-end forces are removed again when
element end forces are recovered (greenframe.post).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence

import numpy as np

from .config import DEFAULT_CONFIG, SolverConfiguration
from .elements import element_geometry, get_formulation, local_axes, TRUSS_DOFS
from .errors import ModelError
from .kernel.assemble import add_nodal_load
from .kernel.dof import DOF_3D_FRAME
from .model import Element, ElementLoad, ElementType, FEAModel, LoadCombination, NodalLoad, Node

logger = logging.getLogger(__name__)


@dataclass
class CombinedLoads:
    """
    Result of applying a load combination.

    F : global load vector (ndof,)
    element_loads : element index → total uniform load in LOCAL axes
    """
    F: np.ndarray
    element_loads: Dict[int, np.ndarray] = field(default_factory=dict)


def element_load_local(nodes: Sequence[Node], element: Element, load: ElementLoad) -> np.ndarray:
    """Uniform load (wx, wy, wz) of an ElementLoad expressed in local axes."""
    w = np.array(load.w, dtype=float)
    if load.coordinate_system == "local":
        return w
    return local_axes(nodes, element) @ w


def equivalent_nodal_load(
    nodes: Sequence[Node],
    element: Element,
    w_local: np.ndarray,
    config: SolverConfiguration = DEFAULT_CONFIG
) -> np.ndarray:
    """
    Equivalent nodal load vector of a uniform element load, GLOBAL axes (12,).

    Truss elements carry no bending: each node simply receives half of
    the total load on its translations.
    """
    formulation = get_formulation(element.type)
    if element.type == ElementType.TRUSS:
        L, _ = element_geometry(nodes, element)
        w_global = local_axes(nodes, element).T @ w_local
        fe = np.zeros(12)
        fe[TRUSS_DOFS] = np.concatenate([w_global, w_global]) * L / 2.0
        return fe
    f_local = formulation.fixed_end_forces(element, nodes, w_local, config)
    T = formulation.transformation_matrix(element, nodes)
    return T.T @ f_local


def combined_load_vector(
    model: FEAModel,
    combination: LoadCombination,
    config: SolverConfiguration = DEFAULT_CONFIG
) -> CombinedLoads:
    """
    Build the global load vector of a load combination.

    F = Σ_case (combination factor × case factor × case loads) + node loads

    Raises:
    -------
    ModelError
        If the combination names an unregistered load case, or a load
        references an unknown node/element.
    """
    F = np.zeros(model.ndof, dtype=float)
    element_loads: Dict[int, np.ndarray] = {}

    for node in model.nodes:
        if any(node.loads):
            add_nodal_load(F, node.index, node.loads)

    for case_id, combo_factor in combination.factors.items():
        if case_id not in model.load_cases:
            raise ModelError(
                f"Load combination {combination.id!r} references unknown load case {case_id!r}"
            )
        case = model.load_cases[case_id]
        factor = float(combo_factor) * case.factor
        if factor == 0.0:
            continue

        for load in case.loads:
            if isinstance(load, NodalLoad):
                node = model.node(load.node_id)
                add_nodal_load(F, node.index, factor * load.vector)
            elif isinstance(load, ElementLoad):
                element = model.element(load.element_id)
                w_local = factor * element_load_local(model.nodes, element, load)
                if element.index in element_loads:
                    element_loads[element.index] = element_loads[element.index] + w_local
                else:
                    element_loads[element.index] = w_local
            else:
                raise ModelError(f"Load case {case_id!r} holds unsupported load {load!r}")

    for index, w_local in element_loads.items():
        element = model.elements[index]
        fe = equivalent_nodal_load(model.nodes, element, w_local, config)
        F[DOF_3D_FRAME.element_dof_map(element.node_indices)] += fe

    logger.debug("Combination %s: |F| = %.3e, %d loaded elements",
                 combination.label, float(np.linalg.norm(F)), len(element_loads))
    return CombinedLoads(F=F, element_loads=element_loads)

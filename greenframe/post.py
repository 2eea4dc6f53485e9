# greenframe/post.py
"""
POST-PROCESSOR
==============

Turns a solved displacement vector into engineering quantities:

- element end forces      f_local = k_local × d_local - fef_local
- internal force diagrams N, Vy, Vz, T, My, Mz at stations along each member
- stresses and von Mises  σ = |N|/A + |My|/Sy + |Mz|/Sz
                          τ = √(τy² + τz²) + |T|·c/J
                          σ_vm = √(σ² + 3τ²)
- deflected shape         Hermite cubic between the nodes, plus the
                          uniform-load bulge of a fixed-fixed member
- utilization             max σ_vm / yield strength
- support reactions       R = K·u - F at constrained DOFs

SIGN CONVENTIONS (local axes):
------------------------------
- N positive = tension
- With end forces f (forces the nodes exert on the element) and a uniform
  load (wx, wy, wz) per unit length, at distance x from node i:

      N(x)  = -(f0 + wx·x)
      Vy(x) =   f1 + wy·x          Vz(x) = f2 + wz·x
      T(x)  = -f3
      Mz(x) = -f5 + f1·x + wy·x²/2
      My(x) = -f4 - f2·x - wz·x²/2
"""

import logging
from typing import Dict, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG, SolverConfiguration
from .elements import element_geometry, get_formulation, local_axes
from .kernel.assemble import gather
from .kernel.dof import DOF_3D_FRAME, DOF_LABELS
from .model import Element, ElementType, FEAModel, Node
from .results import (
    ElementDeflections,
    ElementForces,
    ElementResult,
    ElementStresses,
    NodeResult,
    SolverResults,
)

logger = logging.getLogger(__name__)


def hermite_shape_functions(xi):
    """
    Cubic Hermite shape functions at ξ = x/L.

    v(ξ) = N1·v1 + N2·L·θ1 + N3·v2 + N4·L·θ2
    """
    xi = np.asarray(xi, dtype=float)
    N1 = 1 - 3 * xi**2 + 2 * xi**3
    N2 = xi - 2 * xi**2 + xi**3
    N3 = 3 * xi**2 - 2 * xi**3
    N4 = -xi**2 + xi**3
    return N1, N2, N3, N4


def internal_forces(f_local: np.ndarray, x: np.ndarray, w_local=None) -> ElementForces:
    """Internal force diagrams at positions x from local end forces."""
    wx, wy, wz = (0.0, 0.0, 0.0) if w_local is None else w_local
    f = f_local
    x = np.asarray(x, dtype=float)
    return ElementForces(
        axial=-(f[0] + wx * x),
        shear_y=f[1] + wy * x,
        shear_z=f[2] + wz * x,
        torsion=np.full_like(x, -f[3]),
        moment_y=-f[4] - f[2] * x - wz * x**2 / 2.0,
        moment_z=-f[5] + f[1] * x + wy * x**2 / 2.0,
    )


def element_stresses(element: Element, forces: ElementForces) -> ElementStresses:
    """
    Nominal stresses from internal forces.

    Bending and torsion terms drop out where the section has no modulus
    (truss bars). Shear areas fall back to the gross area.
    """
    sec = element.section
    A = sec.area
    Sy = sec.modulus_y
    Sz = sec.modulus_z
    Asy = sec.shear_area_y if sec.shear_area_y > 0 else A
    Asz = sec.shear_area_z if sec.shear_area_z > 0 else A

    axial = forces.axial / A
    shear_y = forces.shear_y / Asy
    shear_z = forces.shear_z / Asz

    sigma = np.abs(axial)
    if Sy > 0:
        sigma = sigma + np.abs(forces.moment_y) / Sy
    if Sz > 0:
        sigma = sigma + np.abs(forces.moment_z) / Sz

    tau = np.sqrt(shear_y**2 + shear_z**2)
    if sec.j > 0:
        # extreme fibre distance c = I / S
        c = max([I / S for I, S in ((sec.iy, Sy), (sec.iz, Sz)) if S > 0], default=0.0)
        tau = tau + np.abs(forces.torsion) * c / sec.j

    return ElementStresses(
        axial=axial,
        shear_y=shear_y,
        shear_z=shear_z,
        von_mises=np.sqrt(sigma**2 + 3.0 * tau**2),
    )


def element_deflections(
    element: Element,
    nodes: Sequence[Node],
    d_local: np.ndarray,
    x: np.ndarray,
    w_local=None
) -> ElementDeflections:
    """
    Displacement of the member axis at positions x, GLOBAL axes.

    Beams: Hermite cubic in both bending planes (θy = -dw/dx flips the
    w-plane rotations), linear axial, plus w·x²(L-x)²/(24EI) for a uniform
    load. Trusses: linear between the end translations.
    """
    L, _ = element_geometry(nodes, element)
    xi = np.asarray(x, dtype=float) / L
    d = d_local

    u = (1 - xi) * d[0] + xi * d[6]
    if element.type == ElementType.TRUSS:
        v = (1 - xi) * d[1] + xi * d[7]
        w = (1 - xi) * d[2] + xi * d[8]
    else:
        N1, N2, N3, N4 = hermite_shape_functions(xi)
        v = N1 * d[1] + N2 * L * d[5] + N3 * d[7] + N4 * L * d[11]
        w = N1 * d[2] - N2 * L * d[4] + N3 * d[8] - N4 * L * d[10]

        if w_local is not None:
            E = element.material.E
            sec = element.section
            bulge = x**2 * (L - x)**2 / 24.0
            if sec.iz > 0:
                v = v + w_local[1] * bulge / (E * sec.iz)
            if sec.iy > 0:
                w = w + w_local[2] * bulge / (E * sec.iy)

    R = local_axes(nodes, element)
    glob = R.T @ np.vstack([u, v, w])
    return ElementDeflections(x=glob[0], y=glob[1], z=glob[2])


def element_result(
    element: Element,
    nodes: Sequence[Node],
    d_global: np.ndarray,
    config: SolverConfiguration = DEFAULT_CONFIG,
    w_local: Optional[np.ndarray] = None
) -> ElementResult:
    """Forces, stresses, deflections and utilization of one element."""
    formulation = get_formulation(element.type)
    d_element = gather(d_global, DOF_3D_FRAME.element_dof_map(element.node_indices))
    d_local, f_local = formulation.end_forces(element, nodes, d_element, config, w_local)

    L, _ = element_geometry(nodes, element)
    x = np.linspace(0.0, L, config.n_stations)

    # transverse load on a truss went straight to the nodes
    w_diagram = w_local
    if w_local is not None and element.type == ElementType.TRUSS:
        w_diagram = np.array([w_local[0], 0.0, 0.0])

    forces = internal_forces(f_local, x, w_diagram)
    if element.type == ElementType.TRUSS:
        zeros = np.zeros_like(x)
        forces.shear_y = forces.shear_z = forces.torsion = zeros
        forces.moment_y = forces.moment_z = zeros

    stresses = element_stresses(element, forces)
    deflections = element_deflections(element, nodes, d_local, x, w_diagram)

    vm = stresses.von_mises
    fy = element.material.yield_strength
    utilization = float(np.max(vm) / fy) if fy > 0 else 0.0

    return ElementResult(
        element_id=element.id,
        stations=x,
        end_forces=f_local,
        forces=forces,
        stresses=stresses,
        deflections=deflections,
        utilization=utilization,
        critical_location=int(np.argmax(vm)),
    )


def compute_element_results(
    model: FEAModel,
    d: np.ndarray,
    config: SolverConfiguration = DEFAULT_CONFIG,
    element_loads: Optional[Mapping[int, np.ndarray]] = None
) -> Dict[str, ElementResult]:
    element_loads = element_loads or {}
    return {
        element.id: element_result(element, model.nodes, d, config, element_loads.get(element.index))
        for element in model.elements
    }


def compute_reactions(model: FEAModel, R: np.ndarray) -> Dict[str, np.ndarray]:
    """
    Reaction 6-vectors at supported nodes.

    R is the full residual (K·u - F); only DOFs the user restrained carry
    a reaction, the rest of the vector is zero.
    """
    reactions = {}
    for node in model.nodes:
        if not node.is_constrained:
            continue
        dofs = DOF_3D_FRAME.node_dofs(node.index)
        mask = np.array(node.constraints, dtype=bool)
        reactions[node.id] = np.where(mask, R[dofs], 0.0)
    return reactions


def compute_node_results(
    model: FEAModel,
    d: np.ndarray,
    reactions: Optional[Mapping[str, np.ndarray]] = None
) -> Dict[str, NodeResult]:
    reactions = reactions or {}
    return {
        node.id: NodeResult(
            node_id=node.id,
            displacement=d[DOF_3D_FRAME.node_dofs(node.index)].copy(),
            reaction=reactions.get(node.id),
        )
        for node in model.nodes
    }


def max_translation(d: np.ndarray) -> float:
    """Largest nodal translation magnitude in a 6-DOF-per-node vector."""
    if len(d) == 0:
        return 0.0
    t = np.asarray(d, dtype=float).reshape(-1, 6)[:, :3]
    return float(np.max(np.linalg.norm(t, axis=1)))


# ----------------------------------------------------------------------
# Tables for reporting layers
# ----------------------------------------------------------------------

def node_table(results: SolverResults) -> pd.DataFrame:
    """One row per node: displacements and (at supports) reactions."""
    rows = []
    for node_id, nr in results.nodes.items():
        row = {'node': node_id}
        row.update({label: float(val) for label, val in zip(DOF_LABELS, nr.displacement)})
        reaction = nr.reaction if nr.reaction is not None else np.full(6, np.nan)
        row.update({f"R_{label}": float(val) for label, val in zip(DOF_LABELS, reaction)})
        rows.append(row)
    return pd.DataFrame(rows).set_index('node') if rows else pd.DataFrame()


def element_table(results: SolverResults) -> pd.DataFrame:
    """One row per element: peak forces, peak von Mises, utilization."""
    rows = []
    for element_id, er in results.elements.items():
        f = er.forces
        rows.append({
            'element': element_id,
            'N_max': float(np.max(f.axial)),
            'N_min': float(np.min(f.axial)),
            'V_max': float(np.max(np.hypot(f.shear_y, f.shear_z))),
            'T_max': float(np.max(np.abs(f.torsion))),
            'M_max': float(np.max(np.hypot(f.moment_y, f.moment_z))),
            'von_mises_max': er.max_von_mises,
            'utilization': er.utilization,
            'critical_station': er.stations[er.critical_location],
        })
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).set_index('element').sort_values('utilization', ascending=False)

# greenframe/elements.py
"""
ELEMENT LIBRARY: Truss, Beam and Frame Formulations
===================================================

Every element is a 2-node line element with 6 DOFs per node. Local DOF
order (12 entries):

    [u1, v1, w1, θx1, θy1, θz1,  u2, v2, w2, θx2, θy2, θz2]

u is along the member, v along local y, w along local z.

FORMULATIONS:
-------------
Truss   axial only, k = EA/L projected on the direction cosines:

            ke = (EA/L) × [ B  -B ]     B = c·cᵀ, c = [l, m, n]
                          [-B   B ]

        The 6×6 matrix acts on translations; rotations are untouched.

Beam    3D Euler–Bernoulli: axial EA/L, torsion GJ/L and two bending
        planes (12EI/L³, 6EI/L², 4EI/L, 2EI/L). The v-θz plane bends
        about local z (Iz), the w-θy plane about local y (Iy).
        Global stiffness: ke_global = Tᵀ × k_local × T

Frame   Beam plus the Timoshenko shear-deformation correction,
        φ = 12EI / (G·As·L²), when the configuration asks for it.

LOCAL AXES:
-----------
x: node i → node j. y: horizontal and perpendicular to x, (-x_y, x_x, 0),
unless the member is near-vertical (|x_z| > 0.9) where global X is the
trial vector. The trial y is orthogonalised against x. z = x × y.
An element may supply its own reference y vector.
"""

import numpy as np
from typing import Dict, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, SolverConfiguration
from .errors import ConfigurationError, ModelError, SingularMatrixError
from .kernel.buckling import geometric_stiffness_frame3d_local, geometric_stiffness_truss3d
from .kernel.matrix import solve_linear_system
from .model import Element, ElementType, Node, parse_element_type

TRUSS_DOFS = [0, 1, 2, 6, 7, 8]  # translational entries of the 12-DOF vector
VERTICAL_THRESHOLD = 0.9


def element_geometry(nodes: Sequence[Node], element: Element) -> Tuple[float, np.ndarray]:
    """
    Length and unit direction vector (node i → node j) of an element.

    Raises:
    -------
    ModelError
        If the element has zero length (nodes at same location)
    """
    ni = nodes[element.node_indices[0]]
    nj = nodes[element.node_indices[1]]
    delta = nj.xyz - ni.xyz
    L = float(np.sqrt(delta @ delta))
    if L <= 0.0:
        raise ModelError(
            f"Element {element.id} has zero length (nodes {ni.id} and {nj.id} "
            f"at same location: {ni.coordinates})"
        )
    return L, delta / L


def local_axes(nodes: Sequence[Node], element: Element) -> np.ndarray:
    """
    3×3 rotation whose rows are the local x, y, z unit vectors in global axes.

    v_local = R @ v_global
    """
    _, ex = element_geometry(nodes, element)

    if element.local_y is not None:
        trial = np.array(element.local_y, dtype=float)
    elif abs(ex[2]) > VERTICAL_THRESHOLD:
        trial = np.array([1.0, 0.0, 0.0])
    else:
        trial = np.array([-ex[1], ex[0], 0.0])

    ey = trial - (trial @ ex) * ex
    length = np.linalg.norm(ey)
    if length < 1e-9:
        raise ModelError(f"Element {element.id}: local y reference is parallel to the member axis")
    ey /= length
    ez = np.cross(ex, ey)
    return np.vstack([ex, ey, ez])


def transformation_matrix(nodes: Sequence[Node], element: Element) -> np.ndarray:
    """
    12×12 transform from global DOFs to local DOFs (block diagonal of R).

    d_local = T @ d_global,  k_global = Tᵀ @ k_local @ T
    """
    R = local_axes(nodes, element)
    T = np.zeros((12, 12), dtype=float)
    for block in range(4):
        s = 3 * block
        T[s:s + 3, s:s + 3] = R
    return T


def _bending_block(EI: float, L: float, phi: float = 0.0) -> np.ndarray:
    """Bending stiffness of one plane, DOFs [v1, θ1, v2, θ2]. phi > 0 adds shear flexibility."""
    L2 = L * L
    L3 = L2 * L
    c = EI / (1.0 + phi)
    return c * np.array([
        [ 12/L3,   6/L2,            -12/L3,   6/L2],
        [  6/L2,  (4 + phi)/L,       -6/L2,  (2 - phi)/L],
        [-12/L3,  -6/L2,             12/L3,  -6/L2],
        [  6/L2,  (2 - phi)/L,       -6/L2,  (4 + phi)/L],
    ], dtype=float)


def beam_local_stiffness(
    E: float, G: float, A: float, Iy: float, Iz: float, J: float, L: float,
    phi_y: float = 0.0, phi_z: float = 0.0
) -> np.ndarray:
    """
    12×12 local stiffness of a 3D beam.

    phi_y: shear parameter of the v-θz plane (shear along local y)
    phi_z: shear parameter of the w-θy plane (shear along local z)
    Both zero gives the Euler–Bernoulli matrix.
    """
    k = np.zeros((12, 12), dtype=float)

    # Axial
    EA_L = E * A / L
    k[np.ix_([0, 6], [0, 6])] = EA_L * np.array([[1.0, -1.0], [-1.0, 1.0]])

    # Torsion
    GJ_L = G * J / L
    k[np.ix_([3, 9], [3, 9])] = GJ_L * np.array([[1.0, -1.0], [-1.0, 1.0]])

    # Bending in the local x-y plane (about z)
    v_plane = [1, 5, 7, 11]
    k[np.ix_(v_plane, v_plane)] = _bending_block(E * Iz, L, phi_y)

    # Bending in the local x-z plane (about y); θy = -dw/dx flips the coupling
    w_plane = [2, 4, 8, 10]
    flip = np.diag([1.0, -1.0, 1.0, -1.0])
    k[np.ix_(w_plane, w_plane)] = flip @ _bending_block(E * Iy, L, phi_z) @ flip

    return k


def shear_parameters(element: Element, L: float) -> Tuple[float, float]:
    """Timoshenko φ for both bending planes (0 where shear data is missing)."""
    G = element.material.G
    sec = element.section
    E = element.material.E

    def phi(I, As):
        if G <= 0 or As <= 0:
            return 0.0
        return 12.0 * E * I / (G * As * L * L)

    return phi(sec.iz, sec.shear_area_y), phi(sec.iy, sec.shear_area_z)


def condense(
    k: np.ndarray,
    released: Sequence[int],
    f: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Static condensation of released DOFs.

        k_cc' = k_cc - k_cr·k_rr⁻¹·k_rc
        f_c'  = f_c  - k_cr·k_rr⁻¹·f_r

    Released rows/columns come back as zeros so the matrix keeps its size.
    """
    if not released:
        return k, f
    n = k.shape[0]
    r = np.asarray(released, dtype=int)
    c = np.array([i for i in range(n) if i not in set(released)], dtype=int)

    k_rr = k[np.ix_(r, r)]
    identity = np.eye(len(r))
    try:
        k_rr_inv = np.column_stack([solve_linear_system(k_rr, identity[:, j]) for j in range(len(r))])
    except SingularMatrixError:
        raise ModelError("End releases leave the element unstable") from None

    k_out = np.zeros_like(k)
    k_out[np.ix_(c, c)] = k[np.ix_(c, c)] - k[np.ix_(c, r)] @ k_rr_inv @ k[np.ix_(r, c)]

    f_out = None
    if f is not None:
        y = k_rr_inv @ f[r]
        f_out = np.zeros_like(f)
        f_out[c] = f[c] - k[np.ix_(c, r)] @ y
    return k_out, f_out


def recover_released(
    k: np.ndarray,
    released: Sequence[int],
    d_local: np.ndarray,
    f_fixed: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Element-side displacement at released DOFs.

    A released DOF carries no end force: k_rc·d_c + k_rr·d_r - f_r = 0.
    """
    if not released:
        return d_local
    n = k.shape[0]
    r = np.asarray(released, dtype=int)
    c = np.array([i for i in range(n) if i not in set(released)], dtype=int)
    rhs = -k[np.ix_(r, c)] @ d_local[c]
    if f_fixed is not None:
        rhs = rhs + f_fixed[r]
    d = d_local.copy()
    d[r] = solve_linear_system(k[np.ix_(r, r)], rhs)
    return d


def fixed_end_forces_udl(L: float, w_local: Sequence[float]) -> np.ndarray:
    """
    Fixed-end forces of a uniform load (wx, wy, wz) in LOCAL coordinates.

        axial:  wx·L/2 at each end
        v-θz:   wy·L/2, +wy·L²/12  |  wy·L/2, -wy·L²/12
        w-θy:   wz·L/2, -wz·L²/12  |  wz·L/2, +wz·L²/12
    """
    wx, wy, wz = w_local
    f = np.zeros(12)
    f[0] = f[6] = wx * L / 2.0
    f[1] = f[7] = wy * L / 2.0
    f[5] = wy * L * L / 12.0
    f[11] = -wy * L * L / 12.0
    f[2] = f[8] = wz * L / 2.0
    f[4] = -wz * L * L / 12.0
    f[10] = wz * L * L / 12.0
    return f


def expand_truss(k6: np.ndarray) -> np.ndarray:
    """Place a 6×6 translational matrix into the 12-DOF layout."""
    k = np.zeros((12, 12), dtype=float)
    k[np.ix_(TRUSS_DOFS, TRUSS_DOFS)] = k6
    return k


class ElementFormulation:
    """
    Stiffness, mass and force recovery of one element type.

    `nodes` is the model's node arena (a sequence indexed by node index).
    """

    element_type: ElementType

    def stiffness_matrix(self, element, nodes, config: SolverConfiguration = DEFAULT_CONFIG):
        raise NotImplementedError

    def mass_matrix(self, element, nodes):
        raise NotImplementedError

    def transformation_matrix(self, element, nodes) -> np.ndarray:
        return transformation_matrix(nodes, element)

    def global_stiffness(self, element, nodes, config: SolverConfiguration = DEFAULT_CONFIG):
        raise NotImplementedError

    def global_mass(self, element, nodes):
        raise NotImplementedError

    def geometric_stiffness(self, element, nodes, axial_force: float) -> np.ndarray:
        raise NotImplementedError

    def fixed_end_forces(self, element, nodes, w_local, config=DEFAULT_CONFIG) -> np.ndarray:
        raise NotImplementedError

    def end_forces(self, element, nodes, d_element, config=DEFAULT_CONFIG, w_local=None):
        """
        Local displacements and end forces from global element displacements.

        Returns (d_local, f_local), both 12-vectors. f_local are the forces
        the nodes exert on the element, fixed-end forces of element loads
        removed.
        """
        raise NotImplementedError

    def axial_force(self, element, nodes, d_element, config=DEFAULT_CONFIG, w_local=None) -> float:
        """Axial force, positive = tension."""
        _, f = self.end_forces(element, nodes, d_element, config, w_local)
        return 0.5 * (f[6] - f[0])


class TrussFormulation(ElementFormulation):
    element_type = ElementType.TRUSS

    def stiffness_matrix(self, element, nodes, config=DEFAULT_CONFIG):
        """6×6 axial stiffness in global translations (direction-cosine projection)."""
        L, c = element_geometry(nodes, element)
        EA_L = element.material.E * element.section.area / L
        B = np.outer(c, c)
        ke = np.zeros((6, 6), dtype=float)
        ke[0:3, 0:3] = B
        ke[0:3, 3:6] = -B
        ke[3:6, 0:3] = -B
        ke[3:6, 3:6] = B
        return ke * EA_L

    def mass_matrix(self, element, nodes):
        """Lumped: half the bar mass on each node's translations."""
        L, _ = element_geometry(nodes, element)
        half = element.material.density * element.section.area * L / 2.0
        return np.eye(6) * half

    def global_stiffness(self, element, nodes, config=DEFAULT_CONFIG):
        return expand_truss(self.stiffness_matrix(element, nodes, config))

    def global_mass(self, element, nodes):
        return expand_truss(self.mass_matrix(element, nodes))

    def geometric_stiffness(self, element, nodes, axial_force):
        L, c = element_geometry(nodes, element)
        return expand_truss(geometric_stiffness_truss3d(L, c, axial_force))

    def fixed_end_forces(self, element, nodes, w_local, config=DEFAULT_CONFIG):
        """Only the axial share stays in the bar; transverse load goes straight to the nodes."""
        L, _ = element_geometry(nodes, element)
        f = np.zeros(12)
        f[0] = f[6] = w_local[0] * L / 2.0
        return f

    def end_forces(self, element, nodes, d_element, config=DEFAULT_CONFIG, w_local=None):
        L, c = element_geometry(nodes, element)
        d_local = self.transformation_matrix(element, nodes) @ d_element
        delta_L = c @ (d_element[6:9] - d_element[0:3])
        N = element.material.E * element.section.area / L * delta_L
        f = np.zeros(12)
        f[0] = -N
        f[6] = N
        if w_local is not None:
            f = f - self.fixed_end_forces(element, nodes, w_local)
        return d_local, f

    def axial_force(self, element, nodes, d_element, config=DEFAULT_CONFIG, w_local=None):
        """Axial force from the elongation; an axial element load shifts both ends equally."""
        L, c = element_geometry(nodes, element)
        delta_L = c @ (d_element[6:9] - d_element[0:3])
        return element.material.E * element.section.area / L * delta_L


class BeamFormulation(ElementFormulation):
    element_type = ElementType.BEAM

    def _raw_local_stiffness(self, element, L, config):
        m, s = element.material, element.section
        return beam_local_stiffness(m.E, m.G, s.area, s.iy, s.iz, s.j, L)

    def _released(self, element):
        return element.releases.released_dofs if element.releases is not None else []

    def stiffness_matrix(self, element, nodes, config=DEFAULT_CONFIG):
        """12×12 local stiffness with end releases condensed out."""
        L, _ = element_geometry(nodes, element)
        k = self._raw_local_stiffness(element, L, config)
        k, _ = condense(k, self._released(element))
        return k

    def mass_matrix(self, element, nodes):
        """
        Lumped mass: ρAL/2 on each translation, ρAL³/12 on each rotation.

        Screening-grade only, not a consistent mass matrix. The matrix is a
        multiple of the identity per node block, so it is the same in local
        and global axes.
        """
        L, _ = element_geometry(nodes, element)
        mass = element.material.density * element.section.area * L
        diag = np.array([mass / 2.0] * 3 + [mass * L * L / 12.0] * 3)
        return np.diag(np.concatenate([diag, diag]))

    def global_stiffness(self, element, nodes, config=DEFAULT_CONFIG):
        T = self.transformation_matrix(element, nodes)
        return T.T @ self.stiffness_matrix(element, nodes, config) @ T

    def global_mass(self, element, nodes):
        return self.mass_matrix(element, nodes)

    def geometric_stiffness(self, element, nodes, axial_force):
        L, _ = element_geometry(nodes, element)
        T = self.transformation_matrix(element, nodes)
        return T.T @ geometric_stiffness_frame3d_local(L, axial_force) @ T

    def fixed_end_forces(self, element, nodes, w_local, config=DEFAULT_CONFIG):
        """Equivalent nodal loads of a uniform load in LOCAL coordinates, released ends condensed."""
        L, _ = element_geometry(nodes, element)
        f = fixed_end_forces_udl(L, w_local)
        released = self._released(element)
        if released:
            k = self._raw_local_stiffness(element, L, config)
            _, f = condense(k, released, f)
        return f

    def end_forces(self, element, nodes, d_element, config=DEFAULT_CONFIG, w_local=None):
        L, _ = element_geometry(nodes, element)
        T = self.transformation_matrix(element, nodes)
        d_local = T @ d_element
        k = self._raw_local_stiffness(element, L, config)

        # Unreleased fixed-end forces; the released share is recovered below
        f_fixed = fixed_end_forces_udl(L, w_local) if w_local is not None else None

        d_local = recover_released(k, self._released(element), d_local, f_fixed)
        f_local = k @ d_local
        if f_fixed is not None:
            f_local = f_local - f_fixed
        return d_local, f_local


class FrameFormulation(BeamFormulation):
    """Beam with optional Timoshenko shear-deformation correction."""
    element_type = ElementType.FRAME

    def shear_correction(self, element, L) -> np.ndarray:
        """Additive correction: Timoshenko stiffness minus Euler–Bernoulli stiffness."""
        m, s = element.material, element.section
        phi_y, phi_z = shear_parameters(element, L)
        timoshenko = beam_local_stiffness(m.E, m.G, s.area, s.iy, s.iz, s.j, L, phi_y, phi_z)
        return timoshenko - beam_local_stiffness(m.E, m.G, s.area, s.iy, s.iz, s.j, L)

    def _raw_local_stiffness(self, element, L, config):
        k = super()._raw_local_stiffness(element, L, config)
        if config.include_shear_deformation:
            k = k + self.shear_correction(element, L)
        return k


FORMULATIONS: Dict[ElementType, ElementFormulation] = {
    ElementType.TRUSS: TrussFormulation(),
    ElementType.BEAM: BeamFormulation(),
    ElementType.FRAME: FrameFormulation(),
}


def get_formulation(element_type) -> ElementFormulation:
    """Formulation for an element type; continuum types raise ConfigurationError."""
    etype = parse_element_type(element_type)
    try:
        return FORMULATIONS[etype]
    except KeyError:
        raise ConfigurationError(f"Unsupported element type: {etype.value}") from None

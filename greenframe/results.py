# greenframe/results.py
"""Result containers returned by FEASolver.solve()."""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from .config import AnalysisType


@dataclass
class NodeResult:
    """Displacement [ux, uy, uz, rx, ry, rz] and, at supports, the reaction."""
    node_id: str
    displacement: np.ndarray
    reaction: Optional[np.ndarray] = None

    @property
    def translation(self) -> float:
        return float(np.linalg.norm(self.displacement[:3]))


@dataclass
class ElementForces:
    """Internal forces in local axes at each station. Axial positive = tension."""
    axial: np.ndarray
    shear_y: np.ndarray
    shear_z: np.ndarray
    torsion: np.ndarray
    moment_y: np.ndarray
    moment_z: np.ndarray


@dataclass
class ElementStresses:
    axial: np.ndarray
    shear_y: np.ndarray
    shear_z: np.ndarray
    von_mises: np.ndarray


@dataclass
class ElementDeflections:
    """Displacement samples in GLOBAL axes at each station."""
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray

    @property
    def magnitude(self) -> np.ndarray:
        return np.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)


@dataclass
class ElementResult:
    """
    Post-processed response of one element.

    stations : positions along the member (0 .. L)
    end_forces : local 12-vector of forces the nodes exert on the element
    utilization : max von Mises / yield strength (0 when no yield given)
    critical_location : station index with the highest von Mises stress
    """
    element_id: str
    stations: np.ndarray
    end_forces: np.ndarray
    forces: ElementForces
    stresses: ElementStresses
    deflections: ElementDeflections
    utilization: float
    critical_location: int

    @property
    def max_von_mises(self) -> float:
        return float(np.max(self.stresses.von_mises)) if len(self.stresses.von_mises) else 0.0

    @property
    def axial_force(self) -> float:
        return 0.5 * float(self.end_forces[6] - self.end_forces[0])


@dataclass
class ModalResults:
    """
    eigenvalues : ω² per mode, ascending
    frequencies : Hz
    mode_shapes : (n_modes, n_nodes, 6)
    """
    eigenvalues: np.ndarray
    frequencies: np.ndarray
    mode_shapes: np.ndarray
    participation_factors: np.ndarray
    effective_masses: np.ndarray
    direction: int = 2
    damping_ratio: float = 0.05

    @property
    def periods(self) -> np.ndarray:
        with np.errstate(divide='ignore'):
            return np.where(self.frequencies > 0, 1.0 / self.frequencies, np.inf)

    @property
    def n_modes(self) -> int:
        return len(self.frequencies)


@dataclass
class BucklingResults:
    """
    critical_load_factor : λ_cr, the load multiplier at which the structure
        buckles (inf when the load pattern cannot cause buckling)
    mode_shape : (n_nodes, 6) or None
    """
    critical_load_factor: float
    mode_shape: Optional[np.ndarray]
    eigenvalues: np.ndarray

    @property
    def is_stable(self) -> bool:
        return self.critical_load_factor > 1.0


@dataclass
class SolverResults:
    analysis_type: AnalysisType
    converged: bool
    iterations: int
    residual_norm: float
    displacements: np.ndarray
    max_displacement: float = 0.0
    max_stress: float = 0.0
    nodes: Dict[str, NodeResult] = field(default_factory=dict)
    elements: Dict[str, ElementResult] = field(default_factory=dict)
    reactions: Dict[str, np.ndarray] = field(default_factory=dict)
    modal: Optional[ModalResults] = None
    buckling: Optional[BucklingResults] = None
    load_combination: Optional[str] = None
    elapsed: float = 0.0

    def displacement(self, node_id: str) -> np.ndarray:
        return self.nodes[node_id].displacement

    def reaction(self, node_id: str) -> np.ndarray:
        return self.reactions[node_id]

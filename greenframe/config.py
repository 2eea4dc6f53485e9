# greenframe/config.py
"""
Solver configuration and defaults.

A SolverConfiguration is frozen: one instance is shared, read-only, by
every step of a solve. Use ``dataclasses.replace`` (or ``with_changes``)
to derive a variant for another run.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping

from .errors import ConfigurationError


class AnalysisType(str, Enum):
    """Analysis strategies known to the solver selector."""
    LINEAR_STATIC = "linear_static"
    LINEAR_DYNAMIC = "linear_dynamic"
    NONLINEAR_STATIC = "nonlinear_static"
    NONLINEAR_DYNAMIC = "nonlinear_dynamic"
    BUCKLING = "buckling"
    MODAL = "modal"


# Strategies that are actually implemented by FEASolver
SUPPORTED_ANALYSES = frozenset({
    AnalysisType.LINEAR_STATIC,
    AnalysisType.NONLINEAR_STATIC,
    AnalysisType.MODAL,
    AnalysisType.BUCKLING,
})


@dataclass(frozen=True)
class SolverConfiguration:
    """
    Numerical settings for one analysis run.

    Attributes:
        tolerance: Relative residual tolerance ||r|| / ||F|| (nonlinear).
        max_iterations: Newton-Raphson iteration cap.
        damping_ratio: Modal damping ratio, reported with modal results.
        analysis_type: Strategy selected by FEASolver.solve().
        include_geometric_nonlinearity: Add geometric (stress) stiffness to
            the tangent in the nonlinear solver.
        include_material_nonlinearity: Not implemented; rejected at solve.
        include_shear_deformation: Timoshenko correction for frame elements.
        include_p_delta: Second-order P-Delta stiffness (nonlinear solver).
        n_modes: Number of modes extracted by modal analysis.
        n_stations: Sample points per element in post-processing.
        excitation_direction: Global direction (0=X, 1=Y, 2=Z) used for
            modal participation factors.
        singular_tolerance: Relative pivot tolerance of Gaussian elimination.
    """
    tolerance: float = 1e-6
    max_iterations: int = 1000
    damping_ratio: float = 0.05
    analysis_type: AnalysisType = AnalysisType.LINEAR_STATIC
    include_geometric_nonlinearity: bool = False
    include_material_nonlinearity: bool = False
    include_shear_deformation: bool = True
    include_p_delta: bool = False
    n_modes: int = 10
    n_stations: int = 11
    excitation_direction: int = 2
    singular_tolerance: float = 1e-12

    def __post_init__(self):
        try:
            analysis = AnalysisType(self.analysis_type)
        except ValueError:
            raise ConfigurationError(
                f"Unknown analysis type: {self.analysis_type!r}. "
                f"Expected one of {[a.value for a in AnalysisType]}"
            ) from None
        object.__setattr__(self, 'analysis_type', analysis)

        if not self.tolerance > 0:
            raise ConfigurationError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if not 0.0 <= self.damping_ratio < 1.0:
            raise ConfigurationError(f"damping_ratio must be in [0, 1), got {self.damping_ratio}")
        if self.n_modes < 1:
            raise ConfigurationError(f"n_modes must be >= 1, got {self.n_modes}")
        if self.n_stations < 2:
            raise ConfigurationError(f"n_stations must be >= 2, got {self.n_stations}")
        if self.excitation_direction not in (0, 1, 2):
            raise ConfigurationError(
                f"excitation_direction must be 0, 1 or 2, got {self.excitation_direction}"
            )
        if not self.singular_tolerance > 0:
            raise ConfigurationError(
                f"singular_tolerance must be positive, got {self.singular_tolerance}"
            )

    @property
    def geometric_stiffness_enabled(self) -> bool:
        """True when the tangent stiffness carries a geometric part."""
        return self.include_geometric_nonlinearity or self.include_p_delta

    def check_supported(self) -> None:
        """Raise ConfigurationError for strategies the solver cannot run."""
        if self.analysis_type not in SUPPORTED_ANALYSES:
            raise ConfigurationError(f"Unsupported solver type: {self.analysis_type.value}")
        if self.include_material_nonlinearity:
            raise ConfigurationError("Material nonlinearity is not supported")

    def with_changes(self, **changes: Any) -> "SolverConfiguration":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SolverConfiguration":
        """Build a configuration from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        return cls(**dict(data))


# Global default instance
DEFAULT_CONFIG = SolverConfiguration()

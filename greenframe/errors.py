# greenframe/errors.py
"""Error taxonomy for model building, assembly and solving."""


class FEAError(Exception):
    """Base class for every error raised by greenframe."""
    pass


class ConfigurationError(FEAError, ValueError):
    """Unsupported element type, analysis type or invalid solver setting."""
    pass


class ModelError(FEAError, ValueError):
    """Inconsistent model: unknown node, load case or element, bad geometry."""
    pass


class DimensionMismatchError(FEAError, ValueError):
    """Matrix operands with incompatible shapes."""
    pass


class MechanismError(FEAError, RuntimeError):
    """Raised when structure is unstable or ill-conditioned."""
    pass


class SingularMatrixError(MechanismError):
    """Raised when Gaussian elimination meets a pivot below tolerance."""
    pass


class ConvergenceError(FEAError, RuntimeError):
    """
    Raised when iterative solution does not converge.

    The partial results are kept on the exception so callers can inspect
    the divergent trajectory. They must not be used for design decisions.
    """

    def __init__(self, message, results=None, iterations=0, residual_norm=float('nan')):
        super().__init__(message)
        self.results = results
        self.iterations = iterations
        self.residual_norm = residual_norm

# greenframe/solver.py
"""
SOLVER CORE
===========

FEASolver runs one analysis of an FEAModel for one load combination. The
strategy comes from SolverConfiguration.analysis_type:

    linear_static     K·u = F on the free DOFs
    nonlinear_static  Newton-Raphson with tangent K + Kg(u)
    modal             K·φ = ω²·M·φ, lowest n_modes
    buckling          (K + λ·Kg)·φ = 0 for the load pattern

Every run:

    check configuration → validate model → assemble K, M → load vector F
    → strategy → post-processing → AnalysisComplete

Errors propagate to the caller after an AnalysisError event. The model and
the assembled matrices are only read, so several solvers can share a model.
"""

import logging
import time
from typing import Any, Optional

import numpy as np

from .assembly import GlobalMatrices, assemble_global_matrices, element_dof_map
from .config import AnalysisType, DEFAULT_CONFIG, SolverConfiguration
from .elements import get_formulation
from .errors import ConvergenceError, MechanismError, ModelError
from .events import AnalysisComplete, AnalysisError, IterationProgress, Observer, notify
from .kernel.assemble import assemble_global_matrix, gather
from .kernel.buckling import critical_buckling_factor
from .kernel.dof import DOF_3D_FRAME
from .kernel.matrix import solve_linear_system
from .kernel.modal import effective_modal_mass, modal_participation_factors, natural_frequencies
from .kernel.solve import expand, from_basis, partition_dofs, solve_linear, to_basis
from .loads import CombinedLoads, combined_load_vector
from .model import FEAModel, LoadCombination
from .post import compute_element_results, compute_node_results, compute_reactions, max_translation
from .results import BucklingResults, ModalResults, SolverResults

logger = logging.getLogger(__name__)


class FEASolver:
    """
    Runs analyses of one model.

    Parameters:
    -----------
    model : FEAModel
        Nodes, elements and registered load cases
    config : SolverConfiguration
        Frozen numerical settings, shared read-only by the whole run
    """

    def __init__(self, model: FEAModel, config: SolverConfiguration = DEFAULT_CONFIG):
        self.model = model
        self.config = config

    def solve(
        self,
        combination: LoadCombination,
        observer: Optional[Observer] = None,
        cancel: Optional[Any] = None
    ) -> SolverResults:
        """
        Analyse the model under a load combination.

        Parameters:
        -----------
        combination : LoadCombination
            Factored load cases to apply
        observer : callable, optional
            Receives MatricesAssembled, IterationProgress, AnalysisComplete
            and AnalysisError events
        cancel : object with is_set(), optional
            Cooperative cancellation (e.g. threading.Event), checked once
            per nonlinear iteration

        Raises:
        -------
        ConfigurationError, ModelError, MechanismError (SingularMatrixError),
        ConvergenceError
        """
        label = combination.label
        start = time.perf_counter()
        logger.info("Starting %s analysis for %s", self.config.analysis_type.value, label)

        try:
            self.config.check_supported()
            self.model.validate(combination.factors.keys())
            matrices = assemble_global_matrices(self.model, self.config, observer)
            loads = combined_load_vector(self.model, combination, self.config)

            strategy = {
                AnalysisType.LINEAR_STATIC: self._solve_linear_static,
                AnalysisType.NONLINEAR_STATIC: self._solve_nonlinear_static,
                AnalysisType.MODAL: self._solve_modal,
                AnalysisType.BUCKLING: self._solve_buckling,
            }[self.config.analysis_type]
            results = strategy(matrices, loads, observer, cancel)
        except Exception as exc:
            if isinstance(exc, ConvergenceError) and exc.results is not None:
                exc.results.elapsed = time.perf_counter() - start
                exc.results.load_combination = label
            logger.error("Analysis for %s failed: %s", label, exc)
            notify(observer, AnalysisError(error=exc, load_combination=label))
            raise

        results.elapsed = time.perf_counter() - start
        results.load_combination = label
        logger.info("Finished %s for %s in %.3f s (max displacement %.4e)",
                    self.config.analysis_type.value, label, results.elapsed,
                    results.max_displacement)
        notify(observer, AnalysisComplete(results=results, elapsed=results.elapsed,
                                          load_combination=label))
        return results

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _held_dofs(self, matrices: GlobalMatrices):
        """Support DOFs plus DOFs without any stiffness."""
        return sorted(set(self.model.constrained_dofs()) | set(matrices.inactive_dofs))

    def _check_inactive_loads(self, matrices: GlobalMatrices, F_basis: np.ndarray) -> None:
        """
        Refuse loads on rotations that nothing resists.

        F_basis is the load vector in the coordinates of matrices.inactive_bases.
        """
        if not matrices.inactive_dofs or not np.any(F_basis):
            return
        limit = self.config.singular_tolerance * float(np.max(np.abs(F_basis)))
        loaded = [i for i in matrices.inactive_dofs if abs(F_basis[i]) > limit]
        if loaded:
            where = sorted({self.model.nodes[DOF_3D_FRAME.node_of(i)].id for i in loaded})
            raise MechanismError(
                f"Moment applied to joint rotations without stiffness at nodes {where}. "
                f"Add a support or a member that can carry it."
            )

    def _axial_forces(self, d: np.ndarray, element_loads) -> np.ndarray:
        """Axial force of every element (positive = tension) for displacement d."""
        N = np.zeros(len(self.model.elements))
        for element in self.model.elements:
            formulation = get_formulation(element.type)
            d_element = gather(d, element_dof_map(element))
            N[element.index] = formulation.axial_force(element, self.model.nodes, d_element,
                                                       self.config, element_loads.get(element.index))
        return N

    def _geometric_stiffness(self, d: np.ndarray, element_loads) -> np.ndarray:
        """Global geometric stiffness for the axial forces produced by d."""
        N = self._axial_forces(d, element_loads)
        contributions = []
        for element in self.model.elements:
            formulation = get_formulation(element.type)
            kg = formulation.geometric_stiffness(element, self.model.nodes, N[element.index])
            contributions.append((element_dof_map(element), kg))
        return assemble_global_matrix(self.model.ndof, contributions)

    def _tangent(self, K: np.ndarray, d: np.ndarray, element_loads) -> np.ndarray:
        if self.config.geometric_stiffness_enabled:
            return K + self._geometric_stiffness(d, element_loads)
        return K

    def _static_results(
        self,
        analysis_type: AnalysisType,
        d: np.ndarray,
        R: np.ndarray,
        loads: CombinedLoads,
        converged: bool,
        iterations: int,
        residual_norm: float
    ) -> SolverResults:
        reactions = compute_reactions(self.model, R)
        elements = compute_element_results(self.model, d, self.config, loads.element_loads)
        max_stress = max((er.max_von_mises for er in elements.values()), default=0.0)
        return SolverResults(
            analysis_type=analysis_type,
            converged=converged,
            iterations=iterations,
            residual_norm=residual_norm,
            displacements=d,
            max_displacement=max_translation(d),
            max_stress=max_stress,
            nodes=compute_node_results(self.model, d, reactions),
            elements=elements,
            reactions=reactions,
        )

    def _linear_displacements(self, matrices: GlobalMatrices, F: np.ndarray):
        """
        Linear solve, short-circuiting an all-zero load vector.

        Returns (d, R, free) with d and R in global axes; free indexes the
        coordinates of matrices.inactive_bases.
        """
        held = self._held_dofs(matrices)
        if not np.any(F):
            free, _ = partition_dofs(matrices.ndof, held)
            return np.zeros(matrices.ndof), np.zeros(matrices.ndof), free

        bases = matrices.inactive_bases
        F_basis = to_basis(F, bases)
        self._check_inactive_loads(matrices, F_basis)
        d, _, free = solve_linear(to_basis(matrices.K, bases), F_basis, held,
                                  tol=self.config.singular_tolerance)
        d = from_basis(d, bases)
        R = matrices.K @ d - F
        return d, R, free

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _solve_linear_static(self, matrices, loads, observer, cancel) -> SolverResults:
        d, R, free = self._linear_displacements(matrices, loads.F)
        bases = matrices.inactive_bases
        F_norm = np.linalg.norm(to_basis(loads.F, bases)[free])
        residual = float(np.linalg.norm(to_basis(R, bases)[free]) / F_norm) if F_norm > 0 else 0.0
        return self._static_results(AnalysisType.LINEAR_STATIC, d, R, loads,
                                    converged=True, iterations=1, residual_norm=residual)

    def _solve_nonlinear_static(self, matrices, loads, observer, cancel) -> SolverResults:
        """
        Newton-Raphson on the free DOFs.

        Each iteration: check cancellation, solve K_t·du = r, update u,
        f_int = K_t(u)·u, r = F - f_int. Converged when ||r|| / ||F|| is
        below the tolerance.
        """
        K = matrices.K
        F = loads.F
        ndof = matrices.ndof
        bases = matrices.inactive_bases
        free, _ = partition_dofs(ndof, self._held_dofs(matrices))
        tol = self.config.tolerance

        F_basis = to_basis(F, bases)
        self._check_inactive_loads(matrices, F_basis)

        u = np.zeros(ndof)
        F_norm = float(np.linalg.norm(F_basis[free]))
        if F_norm == 0.0:
            return self._static_results(AnalysisType.NONLINEAR_STATIC, u, -F, loads,
                                        converged=True, iterations=0, residual_norm=0.0)

        r = F.copy()
        R = -F
        residual_norm = 1.0
        iteration = 0
        for iteration in range(1, self.config.max_iterations + 1):
            if cancel is not None and cancel.is_set():
                logger.info("Nonlinear analysis cancelled after %d iterations", iteration - 1)
                return self._static_results(AnalysisType.NONLINEAR_STATIC, u, R, loads,
                                            converged=False, iterations=iteration - 1,
                                            residual_norm=residual_norm)

            Kt = to_basis(self._tangent(K, u, loads.element_loads), bases)
            r_basis = to_basis(r, bases)
            du = solve_linear_system(Kt[np.ix_(free, free)], r_basis[free],
                                     tol=self.config.singular_tolerance)
            u += from_basis(expand(du, free, ndof), bases)

            f_int = self._tangent(K, u, loads.element_loads) @ u
            R = f_int - F
            r = -R
            residual_norm = float(np.linalg.norm(to_basis(r, bases)[free]) / F_norm)
            converged = residual_norm < tol
            notify(observer, IterationProgress(iteration=iteration, residual_norm=residual_norm,
                                               converged=converged))
            logger.debug("Iteration %d: residual %.3e", iteration, residual_norm)

            if converged:
                return self._static_results(AnalysisType.NONLINEAR_STATIC, u, R, loads,
                                            converged=True, iterations=iteration,
                                            residual_norm=residual_norm)

        partial = self._static_results(AnalysisType.NONLINEAR_STATIC, u, R, loads,
                                       converged=False, iterations=iteration,
                                       residual_norm=residual_norm)
        raise ConvergenceError(
            f"Newton-Raphson did not converge in {iteration} iterations "
            f"(residual {residual_norm:.3e}, tolerance {tol:.1e})",
            results=partial, iterations=iteration, residual_norm=residual_norm,
        )

    def _solve_modal(self, matrices, loads, observer, cancel) -> SolverResults:
        bases = matrices.inactive_bases
        K, M = to_basis(matrices.K, bases), to_basis(matrices.M, bases)
        ndof = matrices.ndof
        free, _ = partition_dofs(ndof, self._held_dofs(matrices))
        if len(free) == 0:
            raise ModelError("Modal analysis needs at least one free DOF")
        if not np.any(np.diag(M)[free] > 0):
            raise ModelError("Modal analysis needs mass: give the materials a density")

        n_modes = min(self.config.n_modes, len(free))
        eigenvalues, frequencies, shapes = natural_frequencies(K, M, free, n_modes)
        direction = self.config.excitation_direction
        participation = modal_participation_factors(shapes, M, free, direction)
        eff_mass = effective_modal_mass(shapes, M, free, direction)

        n_found = shapes.shape[1]
        full = np.zeros((ndof, n_found))
        full[free] = shapes
        mode_shapes = from_basis(full, bases).T.reshape(n_found, self.model.n_nodes, 6)

        logger.info("Modal analysis: %d modes, f1 = %.4g Hz", n_found,
                    frequencies[0] if n_found else float('nan'))
        return SolverResults(
            analysis_type=AnalysisType.MODAL,
            converged=True,
            iterations=1,
            residual_norm=0.0,
            displacements=np.zeros(ndof),
            modal=ModalResults(
                eigenvalues=eigenvalues,
                frequencies=frequencies,
                mode_shapes=mode_shapes,
                participation_factors=participation,
                effective_masses=eff_mass,
                direction=direction,
                damping_ratio=self.config.damping_ratio,
            ),
        )

    def _solve_buckling(self, matrices, loads, observer, cancel) -> SolverResults:
        d, R, free = self._linear_displacements(matrices, loads.F)
        Kg = self._geometric_stiffness(d, loads.element_loads)
        bases = matrices.inactive_bases
        factor, mode, positive = critical_buckling_factor(to_basis(matrices.K, bases),
                                                          to_basis(Kg, bases), free)

        mode_shape = None
        if mode is not None:
            full = from_basis(expand(mode, free, matrices.ndof), bases)
            mode_shape = full.reshape(self.model.n_nodes, 6)
        logger.info("Buckling analysis: critical load factor %.4g", factor)

        results = self._static_results(AnalysisType.BUCKLING, d, R, loads,
                                       converged=True, iterations=1, residual_norm=0.0)
        results.buckling = BucklingResults(
            critical_load_factor=factor,
            mode_shape=mode_shape,
            eigenvalues=positive,
        )
        return results

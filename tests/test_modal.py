"""
MODAL ANALYSIS
==============

Single-DOF check: an axial bar with one free DOF is a spring-mass system,

    ω² = (EA/L) / (ρAL/2) = 2E / (ρL²)

plus shape/ordering checks on a meshed cantilever.
"""

import numpy as np
import pytest

from greenframe import (
    AnalysisType,
    FEAModel,
    FEASolver,
    LoadCombination,
    Material,
    ModelError,
    Section,
    SolverConfiguration,
)

E = 210e9
RHO = 7850.0
MODAL = SolverConfiguration(analysis_type=AnalysisType.MODAL)


def make_axial_bar(L=2.0, density=RHO):
    model = FEAModel()
    model.add_node("A", (0.0, 0.0, 0.0), "pinned")
    model.add_node("B", (L, 0.0, 0.0), (False, True, True, False, False, False))
    model.add_element("bar", "truss", ("A", "B"), Material(E, density=density), Section(area=0.001))
    return model


def make_cantilever(n_elements=4, L=3.0):
    model = FEAModel()
    steel = Material(E, density=RHO)
    section = Section(area=0.01, iy=8e-6, iz=4e-6, j=1e-5)
    for i in range(n_elements + 1):
        model.add_node(f"N{i}", (L * i / n_elements, 0.0, 0.0), "fixed" if i == 0 else "free")
    for i in range(n_elements):
        model.add_element(f"E{i}", "frame", (f"N{i}", f"N{i + 1}"), steel, section)
    return model


def test_single_dof_frequency():
    L = 2.0
    config = MODAL.with_changes(excitation_direction=0)
    results = FEASolver(make_axial_bar(L), config).solve(LoadCombination("modal", {}))

    omega2 = 2 * E / (RHO * L**2)
    modal = results.modal
    assert modal.n_modes == 1
    assert np.isclose(modal.eigenvalues[0], omega2, rtol=1e-9)
    assert np.isclose(modal.frequencies[0], np.sqrt(omega2) / (2 * np.pi), rtol=1e-9)
    assert np.isclose(modal.periods[0], 1.0 / modal.frequencies[0])


def test_single_dof_mode_shape_and_participation():
    L = 2.0
    config = MODAL.with_changes(excitation_direction=0)
    modal = FEASolver(make_axial_bar(L), config).solve(LoadCombination("modal", {})).modal

    assert modal.mode_shapes.shape == (1, 2, 6)
    assert modal.mode_shapes[0, 1, 0] == pytest.approx(1.0)
    assert modal.participation_factors[0] == pytest.approx(1.0)
    assert modal.effective_masses[0] == pytest.approx(RHO * 0.001 * L / 2)
    assert modal.direction == 0


def test_modal_results_layout():
    model = make_cantilever()
    results = FEASolver(model, MODAL.with_changes(n_modes=5)).solve(LoadCombination("modal", {}))

    assert results.analysis_type == AnalysisType.MODAL
    assert results.elements == {}
    assert results.reactions == {}
    assert results.buckling is None

    modal = results.modal
    assert modal.mode_shapes.shape == (5, 5, 6)
    assert np.all(np.diff(modal.frequencies) >= 0)
    assert np.all(modal.frequencies > 0)
    # The fixed node does not move in any mode
    assert not modal.mode_shapes[:, 0, :].any()
    assert modal.damping_ratio == pytest.approx(0.05)


def test_weak_axis_bends_first():
    """iz < iy, so the first mode is lateral (global Y) bending."""
    modal = FEASolver(make_cantilever(), MODAL.with_changes(n_modes=2)).solve(
        LoadCombination("modal", {})).modal
    tip = modal.mode_shapes[0, -1]
    assert abs(tip[1]) > abs(tip[2])


def test_first_cantilever_frequency_close_to_theory():
    """Eight lumped-mass elements land within a few percent of the continuous beam."""
    L = 3.0
    model = make_cantilever(n_elements=8, L=L)
    modal = FEASolver(model, MODAL.with_changes(n_modes=1)).solve(LoadCombination("modal", {})).modal

    m = RHO * 0.01
    f_theory = 1.875**2 / (2 * np.pi) * np.sqrt(E * 4e-6 / (m * L**4))
    assert np.isclose(modal.frequencies[0], f_theory, rtol=0.05)


def test_massless_model_rejected():
    with pytest.raises(ModelError):
        FEASolver(make_axial_bar(density=0.0), MODAL).solve(LoadCombination("modal", {}))

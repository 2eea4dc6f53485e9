"""
LOADS: equivalent nodal loads and load combinations
===================================================

For a uniform load w on a member of length L the equivalent nodal loads
are wL/2 at each end plus end moments ±wL²/12. A simply supported beam
meshed into elements reproduces the exact midspan deflection 5wL⁴/(384EI)
at the nodes.
"""

import numpy as np
import pytest

from greenframe import (
    ElementLoad,
    FEAModel,
    FEASolver,
    LoadCase,
    LoadCombination,
    Material,
    ModelError,
    NodalLoad,
    Section,
)
from greenframe.loads import combined_load_vector, element_load_local, equivalent_nodal_load

E = 210e9
IY = 8.0e-6


def make_member(end=(4.0, 0.0, 0.0), element_type="frame"):
    model = FEAModel()
    model.add_node("A", (0.0, 0.0, 0.0), "fixed")
    model.add_node("B", end)
    model.add_element("E", element_type, ("A", "B"), Material(E),
                      Section(area=0.01, iy=IY, iz=IY, j=1e-5))
    return model


def make_simply_supported(n_elements=10, L=6.0, w=-5e3):
    model = FEAModel()
    steel = Material(E)
    section = Section(area=0.01, iy=IY, iz=IY, j=1e-5)
    for i in range(n_elements + 1):
        model.add_node(f"N{i}", (L * i / n_elements, 0.0, 0.0))
    # pin at the left (torsion held), roller at the right
    model.set_constraints("N0", (True, True, True, True, False, False))
    model.set_constraints(f"N{n_elements}", (False, True, True, False, False, False))
    for i in range(n_elements):
        model.add_element(f"E{i}", "frame", (f"N{i}", f"N{i + 1}"), steel, section)
    model.add_load_case(LoadCase("w", loads=[ElementLoad(f"E{i}", (0.0, 0.0, w))
                                             for i in range(n_elements)]))
    return model


def test_udl_equivalent_nodal_loads():
    L, w = 4.0, 3e3
    model = make_member(end=(L, 0.0, 0.0))
    element = model.element("E")

    fe = equivalent_nodal_load(model.nodes, element, np.array([0.0, 0.0, -w]))

    assert fe[2] == pytest.approx(-w * L / 2)
    assert fe[8] == pytest.approx(-w * L / 2)
    assert fe[4] == pytest.approx(w * L**2 / 12)
    assert fe[10] == pytest.approx(-w * L**2 / 12)
    assert np.allclose(fe[[0, 1, 3, 5, 6, 7, 9, 11]], 0.0)


def test_truss_udl_goes_to_nodes_without_moments():
    L, w = 4.0, 3e3
    model = make_member(end=(L, 0.0, 0.0), element_type="truss")
    fe = equivalent_nodal_load(model.nodes, model.element("E"), np.array([0.0, 0.0, -w]))

    assert fe[2] == pytest.approx(-w * L / 2)
    assert fe[8] == pytest.approx(-w * L / 2)
    assert not fe[[3, 4, 5, 9, 10, 11]].any()


def test_global_load_rotated_into_local_axes():
    model = make_member(end=(0.0, 3.0, 0.0))
    element = model.element("E")

    down = element_load_local(model.nodes, element, ElementLoad("E", (0.0, 0.0, -1.0)))
    along_x = element_load_local(model.nodes, element, ElementLoad("E", (1.0, 0.0, 0.0)))
    local = element_load_local(model.nodes, element, ElementLoad("E", (0.0, 2.0, 0.0), "local"))

    assert np.allclose(down, [0.0, 0.0, -1.0])
    assert np.allclose(along_x, [0.0, -1.0, 0.0])
    assert np.allclose(local, [0.0, 2.0, 0.0])


def test_bad_coordinate_system():
    with pytest.raises(ModelError):
        ElementLoad("E", (0.0, 0.0, 1.0), coordinate_system="polar")


class TestCombinations:

    def test_factors_multiply(self):
        model = make_member()
        model.add_load_case(LoadCase("dead", factor=1.5,
                                     loads=[NodalLoad("B", forces=(0.0, 0.0, -100.0))]))
        F = combined_load_vector(model, LoadCombination("ULS", {"dead": 1.2})).F
        assert F[8] == pytest.approx(-180.0)

    def test_cases_superpose(self):
        model = make_member()
        model.add_load_case(LoadCase("a", loads=[NodalLoad("B", forces=(10.0, 0.0, 0.0))]))
        model.add_load_case(LoadCase("b", loads=[NodalLoad("B", moments=(0.0, 5.0, 0.0))]))
        F = combined_load_vector(model, LoadCombination("C", {"a": 2.0, "b": -1.0})).F
        assert F[6] == pytest.approx(20.0)
        assert F[10] == pytest.approx(-5.0)

    def test_node_loads_always_apply(self):
        model = FEAModel()
        model.add_node("A", (0.0, 0.0, 0.0), "fixed")
        model.add_node("B", (1.0, 0.0, 0.0), loads=(0.0, 0.0, -7.0, 0.0, 0.0, 0.0))
        model.add_element("E", "frame", ("A", "B"), Material(E), Section(0.01, IY, IY, 1e-5))
        F = combined_load_vector(model, LoadCombination("empty", {})).F
        assert F[8] == pytest.approx(-7.0)

    def test_element_loads_tracked_in_local_axes(self):
        model = make_member()
        model.add_load_case(LoadCase("w", loads=[ElementLoad("E", (0.0, 0.0, -2.0))]))
        combined = combined_load_vector(model, LoadCombination("C", {"w": 3.0}))
        assert np.allclose(combined.element_loads[0], [0.0, 0.0, -6.0])

    def test_unknown_load_case(self):
        with pytest.raises(ModelError):
            combined_load_vector(make_member(), LoadCombination("C", {"ghost": 1.0}))


class TestSimplySupportedUDL:

    def test_midspan_deflection(self):
        L, w = 6.0, -5e3
        results = FEASolver(make_simply_supported(L=L, w=w)).solve(LoadCombination("C", {"w": 1.0}))
        expected = 5 * w * L**4 / (384 * E * IY)
        assert np.isclose(results.displacement("N5")[2], expected, rtol=1e-6)

    def test_support_reactions(self):
        L, w = 6.0, -5e3
        results = FEASolver(make_simply_supported(L=L, w=w)).solve(LoadCombination("C", {"w": 1.0}))
        assert np.isclose(results.reaction("N0")[2], -w * L / 2, rtol=1e-8)
        assert np.isclose(results.reaction("N10")[2], -w * L / 2, rtol=1e-8)

    def test_single_element_interpolated_midspan(self):
        """One element: Hermite curve plus the fixed-end bulge gives the exact midspan value."""
        L, w = 6.0, -5e3
        results = FEASolver(make_simply_supported(n_elements=1, L=L, w=w)).solve(
            LoadCombination("C", {"w": 1.0}))
        er = results.elements["E0"]
        assert np.isclose(er.deflections.z[5], 5 * w * L**4 / (384 * E * IY), rtol=1e-6)

    def test_midspan_moment(self):
        L, w = 6.0, -5e3
        results = FEASolver(make_simply_supported(n_elements=2, L=L, w=w)).solve(
            LoadCombination("C", {"w": 1.0}))
        er = results.elements["E0"]
        assert np.isclose(abs(er.forces.moment_y[-1]), abs(w) * L**2 / 8, rtol=1e-6)

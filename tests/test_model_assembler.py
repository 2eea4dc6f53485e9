"""
MODEL ASSEMBLER: geometry → FEAModel
====================================

A greenhouse bay described as members between points: member ends that
coincide become shared nodes, supports and loads find their nodes by
coordinates.
"""

import numpy as np
import pytest

from greenframe import (
    ConfigurationError,
    FEASolver,
    GeometryLoadCase,
    GeometryModel,
    LoadCombination,
    Material,
    MemberGeometry,
    MemberLoad,
    ModelAssembler,
    ModelCreated,
    ModelError,
    PointLoad,
    RecordingObserver,
    Section,
    SupportGeometry,
)

STEEL = Material(210e9, poisson_ratio=0.3, density=7850.0, yield_strength=235e6, name="S235")
TUBE = Section(area=2.0e-3, iy=3.0e-6, iz=3.0e-6, j=6.0e-6, name="RHS80")
DIAG = Section(area=5.0e-4, name="rod")


def greenhouse_bay(**overrides):
    """Two columns, two rafters to a ridge, one tie rod."""
    members = [
        MemberGeometry("col_L", (0.0, 0.0, 0.0), (0.0, 0.0, 3.0), "S235", "RHS80"),
        MemberGeometry("col_R", (6.0, 0.0, 0.0), (6.0, 0.0, 3.0), "S235", "RHS80"),
        MemberGeometry("raf_L", (0.0, 0.0, 3.0), (3.0, 0.0, 4.0), "S235", "RHS80"),
        MemberGeometry("raf_R", (3.0, 0.0, 4.0), (6.0, 0.0, 3.0), "S235", "RHS80"),
        MemberGeometry("tie", (0.0, 0.0, 3.0), (6.0, 0.0, 3.0), "S235", "rod", element_type="truss"),
    ]
    data = dict(
        members=members,
        materials={"S235": STEEL},
        sections={"RHS80": TUBE, "rod": DIAG},
        supports=[SupportGeometry((0.0, 0.0, 0.0), "fixed"),
                  SupportGeometry((6.0, 0.0, 0.0), "fixed")],
        load_cases=[
            GeometryLoadCase("snow", category="snow",
                             member_loads=[MemberLoad("raf_L", (0.0, 0.0, -1.5e3)),
                                           MemberLoad("raf_R", (0.0, 0.0, -1.5e3))]),
            GeometryLoadCase("wind", category="wind",
                             point_loads=[PointLoad((0.0, 0.0, 3.0), forces=(2e3, 0.0, 0.0))]),
        ],
    )
    data.update(overrides)
    return GeometryModel(**data)


def test_nodes_are_merged_at_shared_ends():
    model = ModelAssembler().create_model_from_cad(greenhouse_bay())

    assert model.n_nodes == 5
    assert len(model.elements) == 5
    assert [n.id for n in model.nodes] == ["N1", "N2", "N3", "N4", "N5"]
    # col_L top, raf_L start and tie start share one node
    top_left = model.element("col_L").node_ids[1]
    assert model.element("raf_L").node_ids[0] == top_left
    assert model.element("tie").node_ids[0] == top_left


def test_tolerance_merges_nearly_coincident_points():
    members = [
        MemberGeometry("a", (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), "S235", "RHS80"),
        MemberGeometry("b", (1.0 + 1e-9, 0.0, 0.0), (2.0, 0.0, 0.0), "S235", "RHS80"),
    ]
    geometry = greenhouse_bay(members=members, supports=[], load_cases=[])
    model = ModelAssembler().create_model_from_cad(geometry)
    assert model.n_nodes == 3


def test_supports_and_load_cases():
    model = ModelAssembler().create_model_from_cad(greenhouse_bay())

    assert model.node("N1").constraints == (True,) * 6
    assert not model.node("N5").is_constrained
    assert set(model.load_cases) == {"snow", "wind"}
    assert model.load_cases["snow"].category.value == "snow"
    assert model.load_cases["wind"].loads[0].node_id == "N2"


def test_explicit_support_flags():
    supports = [SupportGeometry((0.0, 0.0, 0.0), (True, True, True, False, False, False)),
                SupportGeometry((6.0, 0.0, 0.0), "pinned")]
    model = ModelAssembler().create_model_from_cad(greenhouse_bay(supports=supports))
    assert model.node("N1").constraints == (True, True, True, False, False, False)


def test_model_created_event():
    observer = RecordingObserver()
    ModelAssembler().create_model_from_cad(greenhouse_bay(), observer=observer)
    assert observer.events == [ModelCreated(nodes=5, elements=5, load_cases=2)]


def test_second_call_replaces_model():
    assembler = ModelAssembler()
    assembler.create_model_from_cad(greenhouse_bay())
    members = [MemberGeometry("a", (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), "S235", "RHS80")]
    model = assembler.create_model_from_cad(greenhouse_bay(members=members, supports=[], load_cases=[]))
    assert model.n_nodes == 2
    assert not model.load_cases


def test_solve_generated_model():
    model = ModelAssembler().create_model_from_cad(greenhouse_bay())
    results = FEASolver(model).solve(LoadCombination("ULS", {"snow": 1.5, "wind": 0.9}))

    total = sum(results.reactions.values())
    assert np.isclose(total[0], -0.9 * 2e3, rtol=1e-8)
    rafter_length = np.hypot(3.0, 1.0)
    assert np.isclose(total[2], 1.5 * 1.5e3 * 2 * rafter_length, rtol=1e-8)
    assert results.elements["tie"].axial_force > 0  # tie rod in tension under snow


class TestErrors:

    def test_unknown_material(self):
        members = [MemberGeometry("a", (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), "S355", "RHS80")]
        with pytest.raises(ModelError):
            ModelAssembler().create_model_from_cad(greenhouse_bay(members=members))

    def test_unknown_section(self):
        members = [MemberGeometry("a", (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), "S235", "IPE200")]
        with pytest.raises(ModelError):
            ModelAssembler().create_model_from_cad(greenhouse_bay(members=members))

    def test_support_off_structure(self):
        supports = [SupportGeometry((9.0, 9.0, 0.0), "fixed")]
        with pytest.raises(ModelError):
            ModelAssembler().create_model_from_cad(greenhouse_bay(supports=supports))

    def test_point_load_off_structure(self):
        cases = [GeometryLoadCase("w", point_loads=[PointLoad((1.0, 1.0, 1.0), forces=(1.0, 0.0, 0.0))])]
        with pytest.raises(ModelError):
            ModelAssembler().create_model_from_cad(greenhouse_bay(load_cases=cases))

    def test_load_on_unknown_member(self):
        cases = [GeometryLoadCase("w", member_loads=[MemberLoad("purlin", (0.0, 0.0, -1.0))])]
        with pytest.raises(ModelError):
            ModelAssembler().create_model_from_cad(greenhouse_bay(load_cases=cases))

    @pytest.mark.parametrize("kind", ["spring", "rigid_link"])
    def test_unsupported_support_types(self, kind):
        supports = [SupportGeometry((0.0, 0.0, 0.0), kind)]
        with pytest.raises(ConfigurationError):
            ModelAssembler().create_model_from_cad(greenhouse_bay(supports=supports))

    def test_unsupported_element_type(self):
        members = [MemberGeometry("a", (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), "S235", "RHS80",
                                  element_type="plate")]
        with pytest.raises(ConfigurationError):
            ModelAssembler().create_model_from_cad(greenhouse_bay(members=members))

import numpy as np
import pytest

from greenframe import (
    FEAModel,
    FEASolver,
    LoadCase,
    LoadCombination,
    Material,
    MechanismError,
    ModelError,
    NodalLoad,
    Releases,
    Section,
    SingularMatrixError,
    assemble_global_matrices,
)
from greenframe.events import AnalysisError, MatricesAssembled, RecordingObserver
from greenframe.kernel.dof import DOFManager


def test_dof_numbering():
    dof = DOFManager()
    assert dof.idx(2, 1) == 13
    assert dof.ndof(4) == 24
    assert dof.element_dof_map([0, 3]) == list(range(0, 6)) + list(range(18, 24))
    assert dof.node_of(13) == 2


def test_global_stiffness_is_symmetric(portal):
    K = assemble_global_matrices(portal).stiffness
    assert K.shape == (24, 24)
    assert np.allclose(K, K.T, atol=1e-9 * np.abs(K).max())


def test_mass_matrix_total(portal):
    M = assemble_global_matrices(portal).mass
    total = 7850.0 * 0.01 * (3.0 + 3.0 + 4.0)
    ux = np.arange(0, 24, 6)
    assert np.isclose(M[ux, ux].sum(), total)


def test_reassembly_is_bit_identical(portal):
    first = assemble_global_matrices(portal)
    second = assemble_global_matrices(portal)
    assert np.array_equal(first.stiffness, second.stiffness)
    assert np.array_equal(first.mass, second.mass)


def test_matrices_are_read_only(portal):
    matrices = assemble_global_matrices(portal)
    with pytest.raises(ValueError):
        matrices.stiffness[0, 0] = 1.0
    with pytest.raises(ValueError):
        matrices.mass[0, 0] = 1.0


def test_frame_model_has_no_inactive_dofs(portal):
    assert assemble_global_matrices(portal).inactive_dofs == ()


def test_assembly_emits_event(portal):
    observer = RecordingObserver()
    matrices = assemble_global_matrices(portal, observer=observer)

    events = observer.of_type(MatricesAssembled)
    assert len(events) == 1
    assert events[0].ndof == 24
    assert events[0].stiffness is matrices.stiffness


E_STEEL = 210e9
JOINT_SECTION = Section(area=0.01, iy=8e-6, iz=8e-6, j=1e-5)


def pinned_joint_line(angle=0.0):
    """A - B - C on a straight line at `angle` in plan; both beams pinned at B."""
    c, s = np.cos(angle), np.sin(angle)
    model = FEAModel()
    steel = Material(E_STEEL)
    model.add_node("A", (0.0, 0.0, 0.0), "fixed")
    model.add_node("B", (2.0 * c, 2.0 * s, 0.0))
    model.add_node("C", (4.0 * c, 4.0 * s, 0.0), "fixed")
    pin_at_b = Releases.pinned_ends(start=False, end=True)
    model.add_element("AB", "beam", ("A", "B"), steel, JOINT_SECTION, releases=pin_at_b)
    model.add_element("CB", "beam", ("C", "B"), steel, JOINT_SECTION, releases=pin_at_b)
    return model


def solve_with_load_at_b(model, forces=(0.0, 0.0, 0.0), moments=(0.0, 0.0, 0.0)):
    model.add_load_case(LoadCase("P", loads=[NodalLoad("B", forces=forces, moments=moments)]))
    return FEASolver(model).solve(LoadCombination("C", {"P": 1.0}))


class TestReleasedJoint:
    """Two pin-ended beams meeting at B leave its bending rotations without stiffness."""

    # Two propped cantilevers in parallel: δ = P / (2 · 3EI/L³)
    K_VERTICAL = 2 * 3 * E_STEEL * 8e-6 / 2.0**3

    def test_axis_aligned_rotations_are_inactive(self):
        matrices = assemble_global_matrices(pinned_joint_line())
        assert matrices.inactive_dofs == (10, 11)
        assert matrices.inactive_bases == ()

    def test_skewed_rotation_found_by_eigen_decomposition(self):
        matrices = assemble_global_matrices(pinned_joint_line(np.pi / 6))

        # rz is still a global zero; the bending rotation in plan is skewed
        assert len(matrices.inactive_dofs) == 2
        assert 11 in matrices.inactive_dofs
        (dofs, V), = matrices.inactive_bases
        assert dofs == (9, 10)
        assert np.allclose(V.T @ V, np.eye(2))

    @pytest.mark.parametrize("angle", [0.0, np.pi / 6, np.pi / 4, 1.0])
    def test_vertical_load_in_any_plan_direction(self, angle):
        results = solve_with_load_at_b(pinned_joint_line(angle), forces=(0.0, 0.0, -1e3))

        d = results.displacement("B")
        assert np.isclose(d[2], -1e3 / self.K_VERTICAL, rtol=1e-8)
        assert np.allclose(d[3:], 0.0, atol=1e-12)
        total = sum(results.reactions.values())
        assert np.allclose(total[:3], [0.0, 0.0, 1e3], rtol=1e-8)

    @pytest.mark.parametrize("angle", [0.0, np.pi / 6])
    def test_torque_about_member_axis_is_carried(self, angle):
        axis = np.array([np.cos(angle), np.sin(angle), 0.0])
        results = solve_with_load_at_b(pinned_joint_line(angle), moments=tuple(1e3 * axis))

        G = E_STEEL / (2 * 1.3)
        twist = 1e3 / (2 * G * 1e-5 / 2.0)
        assert np.allclose(results.displacement("B")[3:], twist * axis, rtol=1e-8)

    @pytest.mark.parametrize("angle", [0.0, np.pi / 6])
    def test_moment_on_released_rotation_is_a_mechanism(self, angle):
        across = (-1e3 * np.sin(angle), 1e3 * np.cos(angle), 0.0)
        observer = RecordingObserver()
        model = pinned_joint_line(angle)
        model.add_load_case(LoadCase("M", loads=[NodalLoad("B", moments=across)]))

        with pytest.raises(MechanismError) as excinfo:
            FEASolver(model).solve(LoadCombination("C", {"M": 1.0}), observer=observer)
        assert excinfo.type is MechanismError
        assert "B" in str(excinfo.value)
        assert isinstance(observer.events[-1], AnalysisError)


class TestValidation:

    def test_unsupported_structure_is_singular(self):
        model = FEAModel()
        model.add_node("A", (0.0, 0.0, 0.0))
        model.add_node("B", (3.0, 0.0, 0.0))
        model.add_element("E", "frame", ("A", "B"), Material(210e9), Section(0.01, 8e-6, 8e-6, 1e-5))
        model.add_load_case(LoadCase("P", loads=[NodalLoad("B", forces=(0.0, 0.0, -1.0))]))

        with pytest.raises(SingularMatrixError):
            FEASolver(model).solve(LoadCombination("C", {"P": 1.0}))

    def test_empty_model(self):
        with pytest.raises(ModelError):
            FEAModel().validate()

    def test_orphan_node(self, portal):
        portal.add_node("lonely", (9.0, 9.0, 9.0))
        with pytest.raises(ModelError):
            portal.validate()

    def test_unknown_node_in_element(self):
        model = FEAModel()
        model.add_node("A", (0.0, 0.0, 0.0))
        with pytest.raises(ModelError):
            model.add_element("E", "frame", ("A", "X"), Material(210e9), Section(0.01))

    def test_duplicate_ids(self, portal):
        with pytest.raises(ModelError):
            portal.add_node("A", (1.0, 1.0, 1.0))
        with pytest.raises(ModelError):
            portal.add_element("beam", "frame", ("A", "B"), Material(210e9), Section(0.01))

    def test_unknown_load_case_in_combination(self, portal):
        with pytest.raises(ModelError):
            FEASolver(portal).solve(LoadCombination("C", {"missing": 1.0}))

    def test_load_on_unknown_node(self, portal):
        portal.add_load_case(LoadCase("bad", loads=[NodalLoad("Z", forces=(1.0, 0.0, 0.0))]))
        with pytest.raises(ModelError):
            portal.validate()

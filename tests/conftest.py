"""Shared structures for the test-suite."""

import pytest

from greenframe import ElementLoad, FEAModel, LoadCase, Material, NodalLoad, Section


def build_portal(H=3.0, span=4.0, lateral=5e3, udl=-2e3, gravity=0.0, density=7850.0):
    """
    Fixed-base portal frame in the XZ plane.

        C ---- beam ---- D        lateral load at C (global X)
        |                |        UDL on the beam (global Z)
      col1             col2       optional gravity point loads at C and D
        |                |
        A                B        fixed
    """
    model = FEAModel()
    steel = Material(210e9, poisson_ratio=0.3, density=density, yield_strength=355e6)
    section = Section(area=0.01, iy=8.0e-6, iz=8.0e-6, j=1.2e-5)

    model.add_node("A", (0.0, 0.0, 0.0), "fixed")
    model.add_node("B", (span, 0.0, 0.0), "fixed")
    model.add_node("C", (0.0, 0.0, H))
    model.add_node("D", (span, 0.0, H))
    model.add_element("col1", "frame", ("A", "C"), steel, section)
    model.add_element("col2", "frame", ("B", "D"), steel, section)
    model.add_element("beam", "frame", ("C", "D"), steel, section)

    loads = []
    if lateral:
        loads.append(NodalLoad("C", forces=(lateral, 0.0, 0.0)))
    if udl:
        loads.append(ElementLoad("beam", w=(0.0, 0.0, udl)))
    if gravity:
        loads.append(NodalLoad("C", forces=(0.0, 0.0, gravity)))
        loads.append(NodalLoad("D", forces=(0.0, 0.0, gravity)))
    model.add_load_case(LoadCase("LC1", loads=loads))
    return model


@pytest.fixture
def portal():
    return build_portal()


@pytest.fixture
def portal_factory():
    return build_portal

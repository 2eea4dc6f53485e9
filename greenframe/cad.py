# greenframe/cad.py
"""
Geometry-provider input types.

A CAD or parametric generator describes the structure as members between
points in space. ModelAssembler.create_model_from_cad() merges coincident
member ends into nodes, resolves materials and sections by name, and turns
these records into an FEAModel.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .model import LoadCategory, Material, Releases, Section, Vec3


@dataclass(frozen=True)
class MemberGeometry:
    """A straight member from `start` to `end`; material/section are names."""
    id: str
    start: Vec3
    end: Vec3
    material: str
    section: str
    element_type: str = "frame"
    releases: Optional[Releases] = None
    local_y: Optional[Vec3] = None


@dataclass(frozen=True)
class SupportGeometry:
    """
    Support at a point.

    constraint: 'fixed', 'pinned', 'roller', 'free' or 6 flags
    (ux, uy, uz, rx, ry, rz).
    """
    point: Vec3
    constraint: Union[str, Tuple[bool, ...]] = "fixed"


@dataclass(frozen=True)
class PointLoad:
    point: Vec3
    forces: Vec3 = (0.0, 0.0, 0.0)
    moments: Vec3 = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class MemberLoad:
    """Uniform load per unit length on a member, in global or local axes."""
    member_id: str
    w: Vec3 = (0.0, 0.0, 0.0)
    coordinate_system: str = "global"


@dataclass
class GeometryLoadCase:
    id: str
    category: Union[str, LoadCategory] = LoadCategory.CUSTOM
    factor: float = 1.0
    point_loads: List[PointLoad] = field(default_factory=list)
    member_loads: List[MemberLoad] = field(default_factory=list)
    name: str = ""


@dataclass
class GeometryModel:
    """
    Everything a geometry provider hands to the assembler.

    joint_tolerance: member ends closer than this share one node.
    """
    members: Sequence[MemberGeometry]
    materials: Dict[str, Material]
    sections: Dict[str, Section]
    supports: Sequence[SupportGeometry] = field(default_factory=list)
    load_cases: Sequence[GeometryLoadCase] = field(default_factory=list)
    joint_tolerance: float = 1e-6

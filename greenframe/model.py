# greenframe/model.py
"""
MODEL DEFINITIONS: Nodes, Elements, Materials, Sections, Loads
==============================================================

Data structures of a 3D frame model:

- Node: a joint in 3D space with 6 DOFs (ux, uy, uz, rx, ry, rz)
- Element: a 2-node line element (truss, beam or frame)
- Material / Section: element properties
- NodalLoad / ElementLoad / LoadCase / LoadCombination: loading
- FEAModel: arenas of nodes and elements addressed by dense index,
  with a name → index table

Nodes and elements are immutable once created. Solved displacements and
reactions are stored in SolverResults, never written back here, so one
model can serve several analyses at once.

Coordinate system: right-handed, z up. Units must be consistent
(SI in the tests: m, N, Pa, kg/m³).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import ConfigurationError, ModelError

Vec3 = Tuple[float, float, float]
Flags6 = Tuple[bool, bool, bool, bool, bool, bool]

FREE: Flags6 = (False, False, False, False, False, False)
FIXED: Flags6 = (True, True, True, True, True, True)
PINNED: Flags6 = (True, True, True, False, False, False)
ROLLER: Flags6 = (False, False, True, False, False, False)

SUPPORT_TYPES: Dict[str, Flags6] = {
    'free': FREE,
    'fixed': FIXED,
    'pinned': PINNED,
    'roller': ROLLER,
}


def _flags6(values: Sequence[bool], what: str) -> Flags6:
    values = tuple(bool(v) for v in values)
    if len(values) != 6:
        raise ModelError(f"{what} needs 6 flags (ux, uy, uz, rx, ry, rz), got {len(values)}")
    return values


def _vec(values: Sequence[float], size: int, what: str) -> Tuple[float, ...]:
    values = tuple(float(v) for v in values)
    if len(values) != size:
        raise ModelError(f"{what} needs {size} components, got {len(values)}")
    return values


class ElementType(str, Enum):
    TRUSS = "truss"
    BEAM = "beam"
    FRAME = "frame"
    # Continuum types are recognised but not implemented
    PLATE = "plate"
    SHELL = "shell"
    SOLID = "solid"


LINE_ELEMENTS = frozenset({ElementType.TRUSS, ElementType.BEAM, ElementType.FRAME})


def parse_element_type(value: Union[str, ElementType]) -> ElementType:
    """Resolve an element type, rejecting unknown and continuum types."""
    try:
        etype = ElementType(value)
    except ValueError:
        raise ConfigurationError(f"Unsupported element type: {value!r}") from None
    if etype not in LINE_ELEMENTS:
        raise ConfigurationError(
            f"Unsupported element type: {etype.value} (only truss, beam and frame are implemented)"
        )
    return etype


@dataclass(frozen=True)
class Node:
    """
    A node (joint) in 3D space.

    Parameters:
    -----------
    id : str
        User-facing name
    index : int
        Position in the model's node arena; node i owns DOFs 6i..6i+5
    coordinates : (x, y, z)
    constraints : 6 flags
        True = DOF restrained (ux, uy, uz, rx, ry, rz)
    loads : 6 floats
        Forces/moments attached directly to the node. They belong to every
        load combination with factor 1.
    """
    id: str
    index: int
    coordinates: Vec3
    constraints: Flags6 = FREE
    loads: Tuple[float, ...] = (0.0,) * 6

    @property
    def x(self) -> float:
        return self.coordinates[0]

    @property
    def y(self) -> float:
        return self.coordinates[1]

    @property
    def z(self) -> float:
        return self.coordinates[2]

    @property
    def xyz(self) -> np.ndarray:
        return np.array(self.coordinates, dtype=float)

    @property
    def is_constrained(self) -> bool:
        return any(self.constraints)


@dataclass(frozen=True)
class Material:
    """
    Linear elastic isotropic material.

    shear_modulus defaults to E / (2(1 + ν)) when not given.
    """
    elastic_modulus: float
    shear_modulus: Optional[float] = None
    poisson_ratio: float = 0.3
    density: float = 0.0
    yield_strength: float = 0.0
    ultimate_strength: float = 0.0
    name: str = ""

    def __post_init__(self):
        if self.elastic_modulus <= 0:
            raise ModelError(f"Material {self.name!r}: elastic modulus must be positive")
        if self.density < 0:
            raise ModelError(f"Material {self.name!r}: density must be non-negative")
        if self.shear_modulus is None:
            object.__setattr__(
                self, 'shear_modulus', self.elastic_modulus / (2.0 * (1.0 + self.poisson_ratio))
            )

    @property
    def E(self) -> float:
        return self.elastic_modulus

    @property
    def G(self) -> float:
        return self.shear_modulus


@dataclass(frozen=True)
class Section:
    """
    Cross-section properties in local element axes.

    iy bends about local y (deflection along local z), iz about local z
    (deflection along local y). shear_area_y carries shear along local y.
    Missing elastic section moduli are estimated from an equivalent solid
    rectangle, S = sqrt(I·A/3).
    """
    area: float
    iy: float = 0.0
    iz: float = 0.0
    j: float = 0.0
    ix: float = 0.0
    shear_area_y: float = 0.0
    shear_area_z: float = 0.0
    sy: Optional[float] = None
    sz: Optional[float] = None
    name: str = ""

    def __post_init__(self):
        if self.area <= 0:
            raise ModelError(f"Section {self.name!r}: area must be positive")
        if min(self.iy, self.iz, self.j) < 0:
            raise ModelError(f"Section {self.name!r}: inertias must be non-negative")

    @property
    def A(self) -> float:
        return self.area

    @property
    def modulus_y(self) -> float:
        if self.sy is not None:
            return self.sy
        return float(np.sqrt(self.iy * self.area / 3.0))

    @property
    def modulus_z(self) -> float:
        if self.sz is not None:
            return self.sz
        return float(np.sqrt(self.iz * self.area / 3.0))


@dataclass(frozen=True)
class Releases:
    """End releases in local DOF order (ux, uy, uz, rx, ry, rz) per end."""
    start: Flags6 = FREE
    end: Flags6 = FREE

    def __post_init__(self):
        object.__setattr__(self, 'start', _flags6(self.start, "Release"))
        object.__setattr__(self, 'end', _flags6(self.end, "Release"))

    @property
    def released_dofs(self) -> List[int]:
        """Local 12-DOF indices that are released."""
        flags = self.start + self.end
        return [i for i, released in enumerate(flags) if released]

    @classmethod
    def pinned_ends(cls, start: bool = True, end: bool = True) -> "Releases":
        """Moment releases (ry, rz) at the chosen ends."""
        pin = (False, False, False, False, True, True)
        return cls(start=pin if start else FREE, end=pin if end else FREE)


@dataclass(frozen=True)
class Element:
    """
    A 2-node line element.

    node_ids are user names; node_indices are their arena positions,
    resolved when the element is added to a model.
    """
    id: str
    index: int
    type: ElementType
    node_ids: Tuple[str, str]
    node_indices: Tuple[int, int]
    material: Material
    section: Section
    local_y: Optional[Vec3] = None
    releases: Optional[Releases] = None


@dataclass(frozen=True)
class NodalLoad:
    node_id: str
    forces: Vec3 = (0.0, 0.0, 0.0)
    moments: Vec3 = (0.0, 0.0, 0.0)

    @property
    def vector(self) -> np.ndarray:
        return np.array(tuple(self.forces) + tuple(self.moments), dtype=float)


@dataclass(frozen=True)
class ElementLoad:
    """Uniform distributed load per unit length on an element."""
    element_id: str
    w: Vec3 = (0.0, 0.0, 0.0)
    coordinate_system: str = "global"

    def __post_init__(self):
        if self.coordinate_system not in ("global", "local"):
            raise ModelError(
                f"Element load coordinate system must be 'global' or 'local', got {self.coordinate_system!r}"
            )


class LoadCategory(str, Enum):
    DEAD = "dead"
    LIVE = "live"
    WIND = "wind"
    SNOW = "snow"
    SEISMIC = "seismic"
    THERMAL = "thermal"
    CUSTOM = "custom"


@dataclass
class LoadCase:
    id: str
    category: LoadCategory = LoadCategory.CUSTOM
    factor: float = 1.0
    loads: List[Union[NodalLoad, ElementLoad]] = field(default_factory=list)
    name: str = ""

    def __post_init__(self):
        try:
            self.category = LoadCategory(self.category)
        except ValueError:
            raise ModelError(f"Load case {self.id!r}: unknown category {self.category!r}") from None


@dataclass
class LoadCombination:
    """
    Factored sum of load cases. `code` is metadata for reports only.
    """
    id: str
    factors: Dict[str, float] = field(default_factory=dict)
    code: str = ""
    name: str = ""
    kind: str = "strength"

    @property
    def label(self) -> str:
        return self.name or self.id


class FEAModel:
    """
    Arena of nodes and elements plus registered load cases.

    Nodes and elements are addressed by dense integer index; the id → index
    tables are filled as items are added.
    """

    def __init__(self):
        self.nodes: List[Node] = []
        self.elements: List[Element] = []
        self.load_cases: Dict[str, LoadCase] = {}
        self._node_index: Dict[str, int] = {}
        self._element_index: Dict[str, int] = {}

    def clear(self) -> None:
        self.nodes.clear()
        self.elements.clear()
        self.load_cases.clear()
        self._node_index.clear()
        self._element_index.clear()

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_node(
        self,
        node_id: str,
        coordinates: Sequence[float],
        constraints: Union[str, Sequence[bool]] = FREE,
        loads: Optional[Sequence[float]] = None,
    ) -> Node:
        if node_id in self._node_index:
            raise ModelError(f"Duplicate node id {node_id!r}")
        if isinstance(constraints, str):
            constraints = support_flags(constraints)
        node = Node(
            id=node_id,
            index=len(self.nodes),
            coordinates=_vec(coordinates, 3, f"Node {node_id!r} coordinates"),
            constraints=_flags6(constraints, f"Node {node_id!r} constraints"),
            loads=_vec(loads, 6, f"Node {node_id!r} loads") if loads is not None else (0.0,) * 6,
        )
        self.nodes.append(node)
        self._node_index[node_id] = node.index
        return node

    def set_constraints(self, node_id: str, constraints: Union[str, Sequence[bool]]) -> Node:
        """Replace a node's constraint flags (nodes are immutable, so swap it)."""
        old = self.node(node_id)
        if isinstance(constraints, str):
            constraints = support_flags(constraints)
        new = Node(old.id, old.index, old.coordinates,
                   _flags6(constraints, f"Node {node_id!r} constraints"), old.loads)
        self.nodes[old.index] = new
        return new

    def add_element(
        self,
        element_id: str,
        element_type: Union[str, ElementType],
        node_ids: Sequence[str],
        material: Material,
        section: Section,
        local_y: Optional[Sequence[float]] = None,
        releases: Optional[Releases] = None,
    ) -> Element:
        if element_id in self._element_index:
            raise ModelError(f"Duplicate element id {element_id!r}")
        etype = parse_element_type(element_type)
        node_ids = tuple(node_ids)
        if len(node_ids) != 2:
            raise ModelError(f"Element {element_id!r} must connect exactly 2 nodes, got {len(node_ids)}")
        for nid in node_ids:
            if nid not in self._node_index:
                raise ModelError(f"Element {element_id!r} references unknown node {nid!r}")
        if node_ids[0] == node_ids[1]:
            raise ModelError(f"Element {element_id!r} connects node {node_ids[0]!r} to itself")

        element = Element(
            id=element_id,
            index=len(self.elements),
            type=etype,
            node_ids=node_ids,
            node_indices=(self._node_index[node_ids[0]], self._node_index[node_ids[1]]),
            material=material,
            section=section,
            local_y=_vec(local_y, 3, f"Element {element_id!r} local_y") if local_y is not None else None,
            releases=releases,
        )
        self.elements.append(element)
        self._element_index[element_id] = element.index
        return element

    def add_load_case(self, load_case: LoadCase) -> LoadCase:
        if load_case.id in self.load_cases:
            raise ModelError(f"Duplicate load case id {load_case.id!r}")
        self.load_cases[load_case.id] = load_case
        return load_case

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def node(self, node_id: str) -> Node:
        try:
            return self.nodes[self._node_index[node_id]]
        except KeyError:
            raise ModelError(f"Unknown node id {node_id!r}") from None

    def element(self, element_id: str) -> Element:
        try:
            return self.elements[self._element_index[element_id]]
        except KeyError:
            raise ModelError(f"Unknown element id {element_id!r}") from None

    def node_index(self, node_id: str) -> int:
        return self.node(node_id).index

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def has_element(self, element_id: str) -> bool:
        return element_id in self._element_index

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def ndof(self) -> int:
        return 6 * len(self.nodes)

    def constrained_dofs(self) -> List[int]:
        """Global DOFs restrained by node constraint flags."""
        dofs = []
        for node in self.nodes:
            base = 6 * node.index
            dofs.extend(base + i for i, fixed in enumerate(node.constraints) if fixed)
        return dofs

    def validate(self, load_case_ids: Optional[Iterable[str]] = None) -> None:
        """
        Check the model before assembly.

        Raises ModelError for an empty model, nodes without elements, and
        loads pointing at unknown nodes/elements.
        """
        if not self.elements:
            raise ModelError("Model has no elements")

        connected = set()
        for element in self.elements:
            connected.update(element.node_indices)
        orphans = [n.id for n in self.nodes if n.index not in connected]
        if orphans:
            raise ModelError(f"Nodes not connected to any element: {orphans}")

        ids = self.load_cases.keys() if load_case_ids is None else load_case_ids
        for case_id in ids:
            if case_id not in self.load_cases:
                raise ModelError(f"Unknown load case {case_id!r}")
            for load in self.load_cases[case_id].loads:
                if isinstance(load, NodalLoad) and not self.has_node(load.node_id):
                    raise ModelError(f"Load case {case_id!r} loads unknown node {load.node_id!r}")
                if isinstance(load, ElementLoad) and not self.has_element(load.element_id):
                    raise ModelError(f"Load case {case_id!r} loads unknown element {load.element_id!r}")


def support_flags(kind: str) -> Flags6:
    """Constraint flags for a named support type."""
    try:
        return SUPPORT_TYPES[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported constraint type: {kind!r}. Expected one of {sorted(SUPPORT_TYPES)}"
        ) from None

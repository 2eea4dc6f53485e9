# greenframe - structural analysis of greenhouse and building frames
"""
greenframe
==========

3D frame finite element analysis: truss, beam and frame elements, linear
and nonlinear static, modal and buckling analysis, and post-processing of
forces, stresses, deflections and reactions.

    model = FEAModel()
    model.add_node("A", (0, 0, 0), "fixed")
    model.add_node("B", (3, 0, 0))
    model.add_element("E1", "frame", ("A", "B"), steel, rhs)
    model.add_load_case(LoadCase("P", loads=[NodalLoad("B", forces=(0, 0, -1e3))]))
    results = FEASolver(model).solve(LoadCombination("ULS", {"P": 1.0}))
"""

from .errors import (
    FEAError,
    ConfigurationError,
    ModelError,
    DimensionMismatchError,
    MechanismError,
    SingularMatrixError,
    ConvergenceError,
)
from .config import AnalysisType, SolverConfiguration, DEFAULT_CONFIG
from .logging_config import setup_logging
from .events import (
    ModelCreated,
    MatricesAssembled,
    IterationProgress,
    AnalysisComplete,
    AnalysisError,
    LoggingObserver,
    RecordingObserver,
)
from .model import (
    Node,
    Element,
    ElementType,
    Material,
    Section,
    Releases,
    NodalLoad,
    ElementLoad,
    LoadCategory,
    LoadCase,
    LoadCombination,
    FEAModel,
    FREE,
    FIXED,
    PINNED,
    ROLLER,
)
from .elements import get_formulation, TrussFormulation, BeamFormulation, FrameFormulation
from .cad import (
    GeometryModel,
    MemberGeometry,
    SupportGeometry,
    PointLoad,
    MemberLoad,
    GeometryLoadCase,
)
from .assembly import ModelAssembler, GlobalMatrices, assemble_global_matrices
from .results import (
    SolverResults,
    NodeResult,
    ElementResult,
    ModalResults,
    BucklingResults,
)
from .solver import FEASolver
from .post import node_table, element_table

__version__ = "0.1.0"

__all__ = [
    'FEAError', 'ConfigurationError', 'ModelError', 'DimensionMismatchError',
    'MechanismError', 'SingularMatrixError', 'ConvergenceError',
    'AnalysisType', 'SolverConfiguration', 'DEFAULT_CONFIG',
    'setup_logging',
    'ModelCreated', 'MatricesAssembled', 'IterationProgress', 'AnalysisComplete',
    'AnalysisError', 'LoggingObserver', 'RecordingObserver',
    'Node', 'Element', 'ElementType', 'Material', 'Section', 'Releases',
    'NodalLoad', 'ElementLoad', 'LoadCategory', 'LoadCase', 'LoadCombination',
    'FEAModel', 'FREE', 'FIXED', 'PINNED', 'ROLLER',
    'get_formulation', 'TrussFormulation', 'BeamFormulation', 'FrameFormulation',
    'GeometryModel', 'MemberGeometry', 'SupportGeometry', 'PointLoad', 'MemberLoad',
    'GeometryLoadCase',
    'ModelAssembler', 'GlobalMatrices', 'assemble_global_matrices',
    'SolverResults', 'NodeResult', 'ElementResult', 'ModalResults', 'BucklingResults',
    'FEASolver',
    'node_table', 'element_table',
]

# greenframe/events.py
"""
Lifecycle notifications.

Observers are plain callables ``observer(event) -> None`` handed to
``ModelAssembler.create_model_from_cad`` and ``FEASolver.solve``. There is
no listener registry: whoever starts a run decides who hears about it.
Delivery is fire-and-forget.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelCreated:
    nodes: int
    elements: int
    load_cases: int


@dataclass(frozen=True)
class MatricesAssembled:
    ndof: int
    stiffness: Any = field(repr=False)
    mass: Any = field(repr=False)


@dataclass(frozen=True)
class IterationProgress:
    iteration: int
    residual_norm: float
    converged: bool


@dataclass(frozen=True)
class AnalysisComplete:
    results: Any = field(repr=False)
    elapsed: float
    load_combination: Optional[str]


@dataclass(frozen=True)
class AnalysisError:
    error: BaseException
    load_combination: Optional[str]


Observer = Callable[[Any], None]


def notify(observer: Optional[Observer], event: Any) -> None:
    """Deliver an event if an observer was supplied."""
    if observer is not None:
        observer(event)


class LoggingObserver:
    """Forward lifecycle events to the package logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def __call__(self, event: Any) -> None:
        if isinstance(event, ModelCreated):
            self.log.info("Model created: %d nodes, %d elements, %d load cases",
                          event.nodes, event.elements, event.load_cases)
        elif isinstance(event, MatricesAssembled):
            self.log.info("Global matrices assembled (%d DOFs)", event.ndof)
        elif isinstance(event, IterationProgress):
            self.log.debug("Iteration %d: residual=%.3e converged=%s",
                           event.iteration, event.residual_norm, event.converged)
        elif isinstance(event, AnalysisComplete):
            self.log.info("Analysis complete for %s in %.3f s",
                          event.load_combination, event.elapsed)
        elif isinstance(event, AnalysisError):
            self.log.error("Analysis failed for %s: %s",
                           event.load_combination, event.error)
        else:
            self.log.debug("Unhandled event %r", event)


class RecordingObserver:
    """Keep every event in order. Handy for tests and progress UIs."""

    def __init__(self):
        self.events: List[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

"""
Simulation Session State

Tracks where one simulation run is in its lifecycle.

State transitions:
- empty → uploaded: A photo was captured or uploaded
- uploaded → validating: The suitability check started
- validating → ready | failed: The check passed or rejected the photo
- ready → masked: The user painted a region
- masked → generating: A simulation was requested
- generating → complete | failed: The model answered or the run errored
- complete → masked: The user edits the mask for another attempt

Uploading a new photo, clearing the mask or starting over are allowed from
the states listed in ``TRANSITIONS``. Every other move raises
InvalidTransitionError.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from ..core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class SimulationStage(str, Enum):
    EMPTY = "empty"
    UPLOADED = "uploaded"
    VALIDATING = "validating"
    READY = "ready"
    MASKED = "masked"
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"


TRANSITIONS: Dict[SimulationStage, FrozenSet[SimulationStage]] = {
    SimulationStage.EMPTY: frozenset({SimulationStage.UPLOADED}),
    SimulationStage.UPLOADED: frozenset({SimulationStage.VALIDATING}),
    SimulationStage.VALIDATING: frozenset({SimulationStage.READY, SimulationStage.FAILED}),
    SimulationStage.READY: frozenset({SimulationStage.MASKED, SimulationStage.UPLOADED}),
    SimulationStage.MASKED: frozenset({
        SimulationStage.GENERATING,
        SimulationStage.MASKED,
        SimulationStage.READY,
        SimulationStage.UPLOADED,
    }),
    SimulationStage.GENERATING: frozenset({SimulationStage.COMPLETE, SimulationStage.FAILED}),
    SimulationStage.COMPLETE: frozenset({
        SimulationStage.MASKED,
        SimulationStage.UPLOADED,
        SimulationStage.EMPTY,
    }),
    SimulationStage.FAILED: frozenset({SimulationStage.UPLOADED, SimulationStage.EMPTY}),
}


def can_transition(current: SimulationStage, target: SimulationStage) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


class SimulationSession:
    """
    Lifecycle of a single simulation run.

    A session is owned by one request; it is never shared.
    """

    def __init__(self, label: str = "session") -> None:
        self.label = label
        self._stage = SimulationStage.EMPTY
        self._history: List[Tuple[SimulationStage, float]] = [(self._stage, time.time())]
        self.error: Optional[str] = None

    @property
    def stage(self) -> SimulationStage:
        return self._stage

    @property
    def history(self) -> List[SimulationStage]:
        return [stage for stage, _ in self._history]

    def advance(self, target: SimulationStage, error: Optional[str] = None) -> SimulationStage:
        """
        Move to ``target``.

        Args:
            target: Next stage
            error: Failure reason, recorded when moving to FAILED

        Raises:
            InvalidTransitionError: If the move is not a legal edge
        """
        current = self._stage
        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"Illegal simulation transition: {current.value} → {target.value}"
            )

        previous_time = self._history[-1][1]
        self._stage = target
        self._history.append((target, time.time()))
        self.error = error if target is SimulationStage.FAILED else None

        elapsed_ms = (time.time() - previous_time) * 1000
        if target is SimulationStage.FAILED:
            logger.warning(
                f"⚠️ [{self.label}] {current.value} → {target.value} "
                f"after {elapsed_ms:.0f}ms: {error}"
            )
        else:
            logger.debug(f"[{self.label}] {current.value} → {target.value} ({elapsed_ms:.0f}ms)")
        return target

    def reset(self) -> None:
        """Start over from EMPTY regardless of the current stage."""
        logger.debug(f"[{self.label}] reset from {self._stage.value}")
        self._stage = SimulationStage.EMPTY
        self._history.append((self._stage, time.time()))
        self.error = None

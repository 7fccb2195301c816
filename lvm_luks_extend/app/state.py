"""Orchestrator states and the transitions allowed between them.

    MENU_IDLE -> WORKFLOW_SELECTED -> TOPOLOGY_RESOLVED -> (MISMATCH_HANDLING)?
              -> PLAN_CONFIRMED -> EXECUTING -> REPORTED -> EXIT

A volume group mismatch in a split workflow is the only path from a
workflow back to MENU_IDLE; every other failure ends in FAILED, and a
declined confirmation ends in CANCELLED.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List


class State(Enum):
    MENU_IDLE = "menu-idle"
    WORKFLOW_SELECTED = "workflow-selected"
    TOPOLOGY_RESOLVED = "topology-resolved"
    MISMATCH_HANDLING = "mismatch-handling"
    PLAN_CONFIRMED = "plan-confirmed"
    EXECUTING = "executing"
    REPORTED = "reported"
    CANCELLED = "cancelled"
    FAILED = "failed"
    EXIT = "exit"


class Outcome(Enum):
    """How a workflow handed control back to the menu loop."""

    COMPLETED = "completed"
    RETURN_TO_MENU = "return-to-menu"


_ABORT = frozenset({State.FAILED, State.CANCELLED})

TRANSITIONS: Dict[State, FrozenSet[State]] = {
    State.MENU_IDLE: frozenset({State.MENU_IDLE, State.WORKFLOW_SELECTED, State.EXIT}),
    State.WORKFLOW_SELECTED: frozenset({State.TOPOLOGY_RESOLVED}) | _ABORT,
    State.TOPOLOGY_RESOLVED: frozenset(
        {State.MISMATCH_HANDLING, State.PLAN_CONFIRMED, State.MENU_IDLE}
    )
    | _ABORT,
    State.MISMATCH_HANDLING: frozenset({State.MENU_IDLE, State.WORKFLOW_SELECTED})
    | _ABORT,
    State.PLAN_CONFIRMED: frozenset({State.EXECUTING, State.FAILED}),
    # Split workflows pause after the disk stages for a second plan and gate.
    State.EXECUTING: frozenset({State.PLAN_CONFIRMED, State.REPORTED}) | _ABORT,
    State.REPORTED: frozenset({State.EXIT, State.FAILED}),
    State.CANCELLED: frozenset({State.EXIT}),
    State.FAILED: frozenset({State.EXIT}),
    State.EXIT: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    def __init__(self, current: State, requested: State):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid state transition {current.name} -> {requested.name}")


@dataclass
class StateMachine:
    state: State = State.MENU_IDLE
    history: List[State] = field(default_factory=lambda: [State.MENU_IDLE])

    def can_enter(self, state: State) -> bool:
        return state in TRANSITIONS[self.state]

    def enter(self, state: State) -> State:
        if not self.can_enter(state):
            raise InvalidTransitionError(self.state, state)
        previous = self.state
        self.state = state
        self.history.append(state)
        return previous

    @property
    def is_terminal(self) -> bool:
        return self.state is State.EXIT

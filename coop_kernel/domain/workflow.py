"""
Canonical workflow types (``coop_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for state machines, and the ingestion workflow the
Ingestion Orchestrator walks through for every attempt.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``Workflow.assert_transition`` raises ``InvalidTransitionError`` for any
  transition not declared.
"""

from __future__ import annotations

from dataclasses import dataclass

from coop_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""

    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition.

    ``terminal_states`` are states with no outgoing transitions.
    """

    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"initial_state {self.initial_state!r} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"transition {t.action!r} references unknown state")

    def allowed(self, from_state: str) -> frozenset[str]:
        return frozenset(
            t.to_state for t in self.transitions if t.from_state == from_state
        )

    def assert_transition(self, from_state: str, to_state: str) -> None:
        if to_state not in self.allowed(from_state):
            raise InvalidTransitionError(self.name, from_state, to_state)


# ---------------------------------------------------------------------------
# Ingestion workflow
# ---------------------------------------------------------------------------

REQUESTED = "requested"
FETCHING = "fetching"
NORMALIZING = "normalizing"
IDEMPOTENCY_CHECK = "idempotency_check"
REJECTED = "rejected"
REPLACING = "replacing"
PERSISTING = "persisting"
AUDITING = "auditing"
COMPLETED = "completed"
FAILED = "failed"

INGESTION_WORKFLOW = Workflow(
    name="period_ingestion",
    description="Fetch, normalize, check, replace, persist and audit one period unit",
    initial_state=REQUESTED,
    states=(
        REQUESTED,
        FETCHING,
        NORMALIZING,
        IDEMPOTENCY_CHECK,
        REJECTED,
        REPLACING,
        PERSISTING,
        AUDITING,
        COMPLETED,
        FAILED,
    ),
    transitions=(
        Transition(REQUESTED, FETCHING, "acquire_rows"),
        Transition(FETCHING, NORMALIZING, "normalize"),
        Transition(FETCHING, FAILED, "source_unavailable"),
        Transition(NORMALIZING, IDEMPOTENCY_CHECK, "check_existing"),
        Transition(NORMALIZING, FAILED, "no_valid_records"),
        Transition(IDEMPOTENCY_CHECK, REJECTED, "data_exists"),
        Transition(IDEMPOTENCY_CHECK, REPLACING, "replace"),
        Transition(IDEMPOTENCY_CHECK, FAILED, "persistence_failure"),
        Transition(REPLACING, PERSISTING, "insert"),
        Transition(REPLACING, FAILED, "persistence_failure"),
        Transition(PERSISTING, AUDITING, "record_history"),
        Transition(PERSISTING, FAILED, "persistence_failure"),
        Transition(AUDITING, COMPLETED, "commit"),
        Transition(AUDITING, FAILED, "persistence_failure"),
    ),
    terminal_states=(REJECTED, COMPLETED, FAILED),
)


class WorkflowRun:
    """Mutable cursor over a workflow for a single attempt."""

    def __init__(self, workflow: Workflow):
        self.workflow = workflow
        self.state = workflow.initial_state
        self.visited: list[str] = [self.state]

    def advance(self, to_state: str) -> None:
        self.workflow.assert_transition(self.state, to_state)
        self.state = to_state
        self.visited.append(to_state)

    @property
    def is_terminal(self) -> bool:
        return self.state in self.workflow.terminal_states

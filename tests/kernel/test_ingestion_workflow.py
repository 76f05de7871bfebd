"""Ingestion workflow transitions."""

import pytest

from coop_kernel.domain.workflow import (
    AUDITING,
    COMPLETED,
    FAILED,
    FETCHING,
    IDEMPOTENCY_CHECK,
    INGESTION_WORKFLOW,
    NORMALIZING,
    PERSISTING,
    REJECTED,
    REPLACING,
    REQUESTED,
    Transition,
    Workflow,
    WorkflowRun,
)
from coop_kernel.exceptions import InvalidTransitionError


def test_happy_path_reaches_completed():
    run = WorkflowRun(INGESTION_WORKFLOW)
    for state in (FETCHING, NORMALIZING, IDEMPOTENCY_CHECK, REPLACING, PERSISTING, AUDITING, COMPLETED):
        run.advance(state)
    assert run.is_terminal
    assert run.visited[0] == REQUESTED
    assert run.visited[-1] == COMPLETED


def test_rejection_only_from_idempotency_check():
    assert REJECTED in INGESTION_WORKFLOW.allowed(IDEMPOTENCY_CHECK)
    for state in (FETCHING, NORMALIZING, REPLACING, PERSISTING, AUDITING):
        assert REJECTED not in INGESTION_WORKFLOW.allowed(state)


def test_insert_cannot_skip_replace_step():
    run = WorkflowRun(INGESTION_WORKFLOW)
    run.advance(FETCHING)
    run.advance(NORMALIZING)
    run.advance(IDEMPOTENCY_CHECK)
    with pytest.raises(InvalidTransitionError) as exc_info:
        run.advance(PERSISTING)
    assert exc_info.value.from_state == IDEMPOTENCY_CHECK
    assert exc_info.value.to_state == PERSISTING


def test_failed_reachable_from_every_working_state():
    for state in (FETCHING, NORMALIZING, IDEMPOTENCY_CHECK, REPLACING, PERSISTING, AUDITING):
        assert FAILED in INGESTION_WORKFLOW.allowed(state)


def test_terminal_states_have_no_exits():
    for state in INGESTION_WORKFLOW.terminal_states:
        assert INGESTION_WORKFLOW.allowed(state) == frozenset()


def test_workflow_rejects_unknown_states():
    with pytest.raises(ValueError):
        Workflow(
            name="broken",
            description="",
            initial_state="a",
            states=("a",),
            transitions=(Transition("a", "b", "go"),),
        )

"""
Activity log collaborator.

The orchestrator appends one entry after each committed ingestion.  It is
purely observational: a failing activity log is logged by the orchestrator
and never changes the ingestion outcome.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from coop_kernel.logging_config import get_logger

logger = get_logger("ingestion.activity")


class ActivityLog(Protocol):
    def record(self, actor_id: str | None, action: str, details: Mapping[str, Any]) -> None: ...


class LoggingActivityLog:
    """Writes each activity entry as a structured log line."""

    def record(self, actor_id: str | None, action: str, details: Mapping[str, Any]) -> None:
        logger.info(
            "activity_recorded",
            extra={"activity": action, "activity_actor": actor_id, "details": dict(details)},
        )

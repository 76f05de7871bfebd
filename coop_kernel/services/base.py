"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract.  Concrete services
    receive a SQLAlchemy ``Session`` and use ``session.flush()``, never
    ``session.commit()``.

Invariants enforced:
    Transaction boundaries belong to the caller (the Ingestion Orchestrator
    or a test harness).  Services flush within the caller's transaction and
    never commit or roll back themselves.  The atomic replace of a period
    unit depends on this.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Abstract base class for all kernel services."""

    def __init__(self, session: Session):
        self.session = session

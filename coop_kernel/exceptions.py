"""
Typed Exception Hierarchy for the cooperative finance kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure an ingestion attempt can hit has its own class and a
machine-readable ``code``.  The Ingestion Orchestrator catches these by
type and turns them into a structured ``IngestionResult``; callers never
parse message strings.

    try:
        orchestrator.ingest(...)
    except DataExistsError as e:      # typed catch
        log.info("exists", extra={"module": e.module, "year": e.year})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CoopFinanceError (base)
    |
    +-- IngestionError
    |   +-- SourceUnavailableError
    |   +-- NoValidRecordsError
    |   +-- DataExistsError
    |   +-- PersistenceFailureError
    |   +-- UnsupportedModuleError
    |
    +-- RatioError
    |   +-- NoBalanceDataError
    |
    +-- PeriodError
    |   +-- InvalidPeriodError
    |
    +-- ErpError
    |   +-- ErpNotConfiguredError
    |   +-- ErpAuthenticationError
    |   +-- ErpTransportError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |
    +-- ConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                 | When Raised
-----------|----------------------|---------------------------------------------
Ingestion  | SOURCE_UNAVAILABLE   | ERP unreachable / auth failure / bad file
           | NO_VALID_RECORDS     | Normalization produced zero usable rows
           | DATA_EXISTS          | Rows exist and overwrite is false
           | PERSISTENCE_FAILURE  | Storage error during replace / insert
           | UNSUPPORTED_MODULE   | Module not valid for the requested operation
-----------|----------------------|---------------------------------------------
Ratio      | NO_BALANCE_DATA      | No balance entries for the period
-----------|----------------------|---------------------------------------------
Period     | INVALID_PERIOD       | year < 1900 or month outside 1..12
-----------|----------------------|---------------------------------------------
ERP        | ERP_NOT_CONFIGURED   | Cooperative has no ERP connection saved
           | ERP_AUTH_FAILED      | ERP rejected the credentials
           | ERP_TRANSPORT_ERROR  | HTTP / JSON-RPC failure talking to the ERP
-----------|----------------------|---------------------------------------------
Workflow   | INVALID_TRANSITION   | Illegal ingestion state transition
-----------|----------------------|---------------------------------------------
Config     | CONFIG_ERROR         | Configuration cannot be used
"""


class CoopFinanceError(Exception):
    """
    Base exception for all cooperative finance errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COOP_FINANCE_ERROR"


# Ingestion


class IngestionError(CoopFinanceError):
    """Base exception for ingestion failures scoped to one period unit."""

    code: str = "INGESTION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        cooperative_id: str | None = None,
        year: int | None = None,
        month: int | None = None,
        module: str | None = None,
    ):
        self.cooperative_id = cooperative_id
        self.year = year
        self.month = month
        self.module = module
        super().__init__(message)


class SourceUnavailableError(IngestionError):
    """Raw rows could not be acquired from the ERP or the uploaded file."""

    code: str = "SOURCE_UNAVAILABLE"

    def __init__(self, reason: str, **context):
        self.reason = reason
        super().__init__(f"Source unavailable: {reason}", **context)


class NoValidRecordsError(IngestionError):
    """Normalization produced zero usable records."""

    code: str = "NO_VALID_RECORDS"

    def __init__(self, rejected_count: int, **context):
        self.rejected_count = rejected_count
        super().__init__(
            f"No valid records found ({rejected_count} row(s) rejected)",
            **context,
        )


class DataExistsError(IngestionError):
    """Rows already exist for the unit and overwrite was not requested."""

    code: str = "DATA_EXISTS"

    def __init__(self, cooperative_id: str, year: int, month: int, module: str):
        super().__init__(
            f"Data already exists for {module} {month}/{year}; "
            f"use overwrite to replace it",
            cooperative_id=cooperative_id,
            year=year,
            month=month,
            module=module,
        )


class PersistenceFailureError(IngestionError):
    """Storage-layer error during replace or insert."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, reason: str, **context):
        self.reason = reason
        super().__init__(f"Persistence failure: {reason}", **context)


class UnsupportedModuleError(IngestionError):
    """Module is not valid for the requested operation."""

    code: str = "UNSUPPORTED_MODULE"

    def __init__(self, module: str, operation: str):
        self.operation = operation
        super().__init__(
            f"Module {module!r} is not supported for {operation}",
            module=module,
        )


# Ratio


class RatioError(CoopFinanceError):
    """Base exception for ratio computation errors."""

    code: str = "RATIO_ERROR"


class NoBalanceDataError(RatioError):
    """No balance entries exist for the period."""

    code: str = "NO_BALANCE_DATA"

    def __init__(self, cooperative_id: str, year: int, month: int):
        self.cooperative_id = cooperative_id
        self.year = year
        self.month = month
        super().__init__(
            f"No balance sheet data for {month}/{year}; "
            f"ingest the balance sheet before computing ratios"
        )


# Period


class PeriodError(CoopFinanceError):
    """Base exception for period-related errors."""

    code: str = "PERIOD_ERROR"


class InvalidPeriodError(PeriodError):
    """Period key fails validation."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: object, month: object):
        self.year = year
        self.month = month
        super().__init__(
            f"Invalid period {month}/{year}: year must be >= 1900 "
            f"and month between 1 and 12"
        )


# ERP


class ErpError(CoopFinanceError):
    """Base exception for ERP integration errors."""

    code: str = "ERP_ERROR"


class ErpNotConfiguredError(ErpError):
    """Cooperative has no ERP connection configured."""

    code: str = "ERP_NOT_CONFIGURED"

    def __init__(self, cooperative_id: str):
        self.cooperative_id = cooperative_id
        super().__init__(f"ERP is not configured for cooperative {cooperative_id}")


class ErpAuthenticationError(ErpError):
    """ERP rejected the credentials."""

    code: str = "ERP_AUTH_FAILED"

    def __init__(self, url: str, username: str):
        self.url = url
        self.username = username
        super().__init__(f"ERP authentication failed for {username} at {url}")


class ErpTransportError(ErpError):
    """HTTP or JSON-RPC failure talking to the ERP."""

    code: str = "ERP_TRANSPORT_ERROR"

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"ERP request to {url} failed: {reason}")


# Workflow


class WorkflowError(CoopFinanceError):
    """Base exception for workflow errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Transition is not defined by the workflow."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, from_state: str, to_state: str):
        self.workflow = workflow
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid transition in {workflow}: {from_state} -> {to_state}"
        )


# Config


class ConfigError(CoopFinanceError):
    """Configuration cannot be used."""

    code: str = "CONFIG_ERROR"

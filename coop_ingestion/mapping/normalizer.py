"""
Record Normalizer: raw rows to canonical records.  Pure, ZERO I/O.

Contract:
    ``RecordNormalizer.normalize(module, rows)`` maps spreadsheet rows
    (localized headers) or ERP rows (native ERP shape) onto the canonical
    record of the module and returns the accepted records, the rejected rows
    and the coercion warnings.

Rules:
    - Header matching is case-insensitive through the configured vocabulary;
      unknown columns are dropped.
    - Spreadsheet rows that are blank in every cell, or whose first cell
      starts with an instruction prefix (template title, legend), are
      filtered out before mapping and are not counted as rejected.
    - Numbers that cannot be parsed become 0 and produce a warning.
    - Enum tokens go through closed lookup tables; an unknown token takes the
      table's fallback and produces a warning.
    - A row missing a required identifying field is rejected; the rest of
      the batch continues.
    - Membership fee debt is max(expected - paid, 0).  Status follows the
      configured policy when the source supplies one.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from coop_config.schema import FeeStatusPolicy, IngestionConfig, TokenTable
from coop_ingestion.domain.types import (
    CoercionWarning,
    ErpRow,
    NormalizationResult,
    RawRow,
    RejectedRow,
    SpreadsheetRow,
)
from coop_kernel.domain.records import (
    BalanceEntry,
    CanonicalRecord,
    CashFlowEntry,
    FinancialRatio,
    MembershipFee,
)
from coop_kernel.domain.values import (
    BalanceCategory,
    CashFlowCategory,
    FeeStatus,
    Module,
    Trend,
)
from coop_kernel.exceptions import UnsupportedModuleError
from coop_kernel.logging_config import get_logger

logger = get_logger("ingestion.normalizer")

ZERO = Decimal("0")

BALANCE_AMOUNT_FIELDS = (
    "initial_debit",
    "initial_credit",
    "period_debit",
    "period_credit",
    "final_debit",
    "final_credit",
)

_CURRENCY_MARKS = "$€"


class _RowRejected(Exception):
    """Internal signal: the row lacks a required identifying field."""


# -----------------------------------------------------------------------------
# Scalar coercion (pure)
# -----------------------------------------------------------------------------


def is_blank(value: Any) -> bool:
    # ERP responses use False for empty fields
    return value is None or value is False or str(value).strip() == ""


def coerce_amount(value: Any) -> tuple[Decimal, str | None]:
    """Parse a monetary value.  Returns (amount, problem); problem is None when clean."""
    if is_blank(value):
        return ZERO, None
    if isinstance(value, bool):
        return ZERO, "is not a number"
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        return Decimal(value), None
    elif isinstance(value, float):
        if not math.isfinite(value):
            return ZERO, "is not a finite number"
        result = Decimal(repr(value))
    else:
        text = str(value).strip().replace(" ", "").lstrip(_CURRENCY_MARKS)
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return ZERO, "is not a number"
    if not result.is_finite():
        return ZERO, "is not a finite number"
    return result, None


def coerce_ratio_value(value: Any) -> tuple[float, str | None]:
    amount, problem = coerce_amount(value)
    return float(amount), problem


def text_value(value: Any) -> str | None:
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def is_instruction_row(row: SpreadsheetRow, prefixes: tuple[str, ...]) -> bool:
    """Blank in every cell, or first cell starts with an instruction prefix."""
    if all(is_blank(v) for v in row.cells.values()):
        return True
    first = text_value(row.first_value)
    if first is None:
        return False
    first = first.lower()
    return any(first.startswith(p) for p in prefixes)


# -----------------------------------------------------------------------------
# Normalizer
# -----------------------------------------------------------------------------


class _Collector:
    """Per-row helper that records warnings against a row number."""

    def __init__(self, row_number: int, warnings: list[CoercionWarning]):
        self.row_number = row_number
        self._warnings = warnings

    def warn(self, field: str, raw: Any, message: str) -> None:
        warning = CoercionWarning(self.row_number, field, str(raw), message)
        self._warnings.append(warning)
        logger.warning(
            "normalizer_coercion",
            extra={
                "row_number": self.row_number,
                "field": field,
                "raw_value": str(raw),
                "problem": message,
            },
        )

    def amount(self, fields: Mapping[str, Any], name: str, default: Decimal = ZERO) -> Decimal:
        raw = fields.get(name)
        if is_blank(raw):
            return default
        value, problem = coerce_amount(raw)
        if problem:
            self.warn(name, raw, f"{problem}; using 0")
        return value

    def token(self, fields: Mapping[str, Any], name: str, table: TokenTable) -> tuple[str, bool]:
        """Returns (canonical token, supplied).  Blank -> (fallback, False)."""
        raw = fields.get(name)
        if is_blank(raw):
            return table.fallback, False
        value, recognized = table.lookup(raw)
        if not recognized:
            self.warn(name, raw, f"is not a known value; using {table.fallback!r}")
        return value, True


def _require(fields: Mapping[str, Any], *names: str) -> list[str]:
    values = [text_value(fields.get(n)) for n in names]
    missing = [n for n, v in zip(names, values) if v is None]
    if missing:
        raise _RowRejected(f"missing required field(s): {', '.join(missing)}")
    return values  # type: ignore[return-value]


class RecordNormalizer:
    """Maps raw rows of one module onto canonical records."""

    def __init__(self, config: IngestionConfig):
        self._config = config
        self._builders: dict[Module, Callable[[Mapping[str, Any], _Collector], CanonicalRecord]] = {
            Module.BALANCE_SHEET: self._balance_entry,
            Module.CASH_FLOW: self._cash_flow_entry,
            Module.MEMBERSHIP_FEES: self._membership_fee,
            Module.RATIOS: self._financial_ratio,
        }
        self._erp_translators: dict[Module, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
            Module.BALANCE_SHEET: self._erp_balance_fields,
            Module.CASH_FLOW: self._erp_payment_fields,
            Module.MEMBERSHIP_FEES: self._erp_partner_fields,
        }

    def header_keywords(self, module: Module) -> frozenset[str]:
        return self._config.vocabulary(module.value).header_tokens

    def normalize(self, module: Module, rows: Iterable[RawRow]) -> NormalizationResult:
        builder = self._builders.get(module)
        if builder is None:
            raise UnsupportedModuleError(module.value, "normalization")

        records: list[CanonicalRecord] = []
        rejected: list[RejectedRow] = []
        warnings: list[CoercionWarning] = []
        filtered = 0

        for row in rows:
            if isinstance(row, SpreadsheetRow):
                if is_instruction_row(row, self._config.instruction_prefixes):
                    filtered += 1
                    continue
                fields = self._map_headers(module, row.cells)
            elif isinstance(row, ErpRow):
                translate = self._erp_translators.get(module)
                if translate is None:
                    raise UnsupportedModuleError(module.value, "ERP ingestion")
                fields = translate(row.record)
            else:
                raise TypeError(f"unsupported raw row type: {type(row).__name__}")

            try:
                records.append(builder(fields, _Collector(row.row_number, warnings)))
            except _RowRejected as exc:
                rejected.append(RejectedRow(row.row_number, str(exc)))

        result = NormalizationResult(
            module=module,
            records=tuple(records),
            rejected=tuple(rejected),
            warnings=tuple(warnings),
            filtered_count=filtered,
        )
        logger.info(
            "normalization_completed",
            extra={
                "target_module": module.value,
                "accepted": len(records),
                "rejected": len(rejected),
                "filtered": filtered,
                "warning_count": len(warnings),
            },
        )
        return result

    # -- header mapping --------------------------------------------------------

    def _map_headers(self, module: Module, cells: Mapping[str, Any]) -> dict[str, Any]:
        vocabulary = self._config.vocabulary(module.value)
        fields: dict[str, Any] = {}
        for header, value in cells.items():
            canonical = vocabulary.canonical(header)
            if canonical is None:
                continue
            # First non-blank column wins when two headers map to one field
            if canonical not in fields or is_blank(fields[canonical]):
                fields[canonical] = value
        return fields

    # -- ERP translation -------------------------------------------------------

    def _erp_balance_fields(self, record: Mapping[str, Any]) -> dict[str, Any]:
        debit = record.get("debit") or 0
        credit = record.get("credit") or 0
        account_type = record.get("account_type")
        return {
            "account_code": record.get("code"),
            "account_name": record.get("name"),
            "category": account_type,
            "subcategory": account_type,
            "period_debit": debit,
            "period_credit": credit,
            "final_debit": debit,
            "final_credit": credit,
            "external_ref": record.get("account_id"),
        }

    def _erp_payment_fields(self, record: Mapping[str, Any]) -> dict[str, Any]:
        amount, _ = coerce_amount(record.get("amount"))
        if record.get("payment_type") != "inbound":
            amount = -amount
        description = text_value(record.get("name")) or text_value(record.get("ref")) or "Payment"
        return {
            "description": description,
            "category": "operating",
            "amount": amount,
            "external_ref": record.get("id"),
        }

    def _erp_partner_fields(self, record: Mapping[str, Any]) -> dict[str, Any]:
        partner_id = record.get("id")
        member_id = text_value(record.get("ref"))
        if member_id is None and isinstance(partner_id, int):
            member_id = f"M{partner_id:03d}"
        return {
            "member_id": member_id,
            "member_name": record.get("name"),
            "expected_contribution": self._config.default_expected_contribution,
            "payment_made": record.get("debit") or 0,
            "external_ref": partner_id,
        }

    # -- builders --------------------------------------------------------------

    def _balance_entry(self, fields: Mapping[str, Any], row: _Collector) -> BalanceEntry:
        code, name = _require(fields, "account_code", "account_name")
        category_token, _ = row.token(fields, "category", self._config.balance_categories)
        category = BalanceCategory(category_token)

        amounts = {f: row.amount(fields, f) for f in BALANCE_AMOUNT_FIELDS}
        has_detail = any(not is_blank(fields.get(f)) for f in BALANCE_AMOUNT_FIELDS)
        if not has_detail and not is_blank(fields.get("amount")):
            single = row.amount(fields, "amount")
            side = "final_debit" if category == BalanceCategory.ASSETS else "final_credit"
            amounts[side] = single

        return BalanceEntry(
            account_code=code,
            account_name=name,
            category=category,
            subcategory=text_value(fields.get("subcategory")),
            external_ref=text_value(fields.get("external_ref")),
            **amounts,
        )

    def _cash_flow_entry(self, fields: Mapping[str, Any], row: _Collector) -> CashFlowEntry:
        description, _ = _require(fields, "description", "category")
        category_token, _ = row.token(fields, "category", self._config.cash_flow_categories)
        return CashFlowEntry(
            description=description,
            category=CashFlowCategory(category_token),
            amount=row.amount(fields, "amount"),
            external_ref=text_value(fields.get("external_ref")),
        )

    def _membership_fee(self, fields: Mapping[str, Any], row: _Collector) -> MembershipFee:
        member_id, member_name = _require(fields, "member_id", "member_name")
        expected = row.amount(fields, "expected_contribution")
        paid = row.amount(fields, "payment_made")
        debt = max(expected - paid, ZERO)
        computed = FeeStatus.WITH_DEBT if debt > ZERO else FeeStatus.UP_TO_DATE

        status = computed
        token, supplied = row.token(fields, "status", self._config.fee_statuses)
        if supplied:
            explicit = FeeStatus(token)
            if explicit != computed:
                if self._config.fee_status_policy == FeeStatusPolicy.EXPLICIT_WINS:
                    status = explicit
                    row.warn("status", fields.get("status"),
                             f"conflicts with debt {debt}; keeping explicit {explicit.value!r}")
                else:
                    row.warn("status", fields.get("status"),
                             f"conflicts with debt {debt}; using computed {computed.value!r}")

        return MembershipFee(
            member_id=member_id,
            member_name=member_name,
            expected_contribution=expected,
            payment_made=paid,
            debt=debt,
            status=status,
            external_ref=text_value(fields.get("external_ref")),
        )

    def _financial_ratio(self, fields: Mapping[str, Any], row: _Collector) -> FinancialRatio:
        name, _ = _require(fields, "name", "value")
        raw_value = fields.get("value")
        value, problem = coerce_ratio_value(raw_value)
        if problem:
            row.warn("value", raw_value, f"{problem}; using 0")
        trend_token, _ = row.token(fields, "trend", self._config.ratio_trends)
        return FinancialRatio(
            name=name,
            value=value,
            trend=Trend(trend_token),
            description=text_value(fields.get("description")),
        )

"""
Property-based checks on the pure ingestion and ratio code.

- Amount coercion never raises and always yields a finite Decimal.
- A normalized membership fee always satisfies debt = max(expected - paid, 0).
- Trend classification is antisymmetric and stable within tolerance.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from coop_config import DEFAULT_CONFIG_PATH
from coop_config.loader import load_config
from coop_engines.ratios import classify_trend
from coop_ingestion.domain.types import SpreadsheetRow
from coop_ingestion.mapping import RecordNormalizer, coerce_amount
from coop_kernel.domain.values import FeeStatus, Module, Trend

NORMALIZER = RecordNormalizer(load_config(DEFAULT_CONFIG_PATH).ingestion)

raw_cells = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.floats(allow_nan=True, allow_infinity=True),
    st.decimals(allow_nan=True, allow_infinity=True),
    st.text(max_size=20),
)

money = st.decimals(min_value=Decimal("0"), max_value=Decimal("1000000"), places=2)


@given(raw_cells)
def test_coerce_amount_never_raises(raw):
    value, problem = coerce_amount(raw)
    assert isinstance(value, Decimal)
    assert value.is_finite()
    if problem is not None:
        assert value == Decimal("0")


@given(expected=money, paid=money, status=st.sampled_from(["", "pagado", "pendiente", "???"]))
@settings(max_examples=60)
def test_fee_debt_is_consistent(expected, paid, status):
    row = SpreadsheetRow(
        1,
        {
            "id_socio": "S-1",
            "nombre_socio": "Ana",
            "monto_esperado": str(expected),
            "monto_pagado": str(paid),
            "estado": status,
        },
    )
    (fee,) = NORMALIZER.normalize(Module.MEMBERSHIP_FEES, [row]).records
    assert fee.debt == max(expected - paid, Decimal("0"))
    assert fee.debt >= 0
    if status == "":
        assert fee.status == (FeeStatus.WITH_DEBT if fee.debt > 0 else FeeStatus.UP_TO_DATE)


finite = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False)


@given(current=finite, previous=finite)
def test_trend_is_antisymmetric(current, previous):
    forward = classify_trend(current, previous, 0.01)
    backward = classify_trend(previous, current, 0.01)
    mirror = {Trend.UP: Trend.DOWN, Trend.DOWN: Trend.UP, Trend.STABLE: Trend.STABLE}
    assert backward == mirror[forward]


@given(previous=finite, delta=st.floats(min_value=-0.009, max_value=0.009))
def test_small_moves_are_stable(previous, delta):
    assert classify_trend(previous + delta, previous, 0.01) == Trend.STABLE

"""
Period key value object (``coop_kernel.domain.period``).

A period is the (cooperative, year, month) partition shared by every
financial module.  Construction validates the key; anything that holds a
``PeriodKey`` can rely on ``year >= 1900`` and ``1 <= month <= 12``.
"""

from __future__ import annotations

from dataclasses import dataclass

from coop_kernel.exceptions import InvalidPeriodError

MIN_YEAR = 1900


@dataclass(frozen=True, order=True)
class PeriodKey:
    cooperative_id: str
    year: int
    month: int

    def __post_init__(self) -> None:
        year, month = self.year, self.month
        if isinstance(year, bool) or not isinstance(year, int) or year < MIN_YEAR:
            raise InvalidPeriodError(year, month)
        if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
            raise InvalidPeriodError(year, month)
        if not self.cooperative_id:
            raise InvalidPeriodError(year, month)

    def previous(self) -> PeriodKey:
        """The immediately preceding calendar month (January wraps to December)."""
        if self.month == 1:
            return PeriodKey(self.cooperative_id, self.year - 1, 12)
        return PeriodKey(self.cooperative_id, self.year, self.month - 1)

    def previous_or_none(self) -> PeriodKey | None:
        """Like ``previous`` but ``None`` for January of ``MIN_YEAR``."""
        if self.year == MIN_YEAR and self.month == 1:
            return None
        return self.previous()

    def trailing(self, count: int) -> list[PeriodKey]:
        """The ``count`` periods ending at this one, oldest first.

        Shorter than ``count`` when the window would start before ``MIN_YEAR``.
        """
        keys = [self]
        while len(keys) < count:
            earlier = keys[-1].previous_or_none()
            if earlier is None:
                break
            keys.append(earlier)
        return list(reversed(keys))

    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"

    def __str__(self) -> str:
        return f"{self.cooperative_id}:{self.year:04d}-{self.month:02d}"

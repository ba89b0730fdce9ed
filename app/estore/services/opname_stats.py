from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.estore.repos.opname import OpnameRepository
from app.estore.services.opname_sessions import get_session

MATCH = "Match"
DIFF = "Diff"


@dataclass(frozen=True)
class OpnameStats:
    total: int
    counted: int
    matched: int
    variance: int

    @property
    def progress_pct(self) -> int:
        # An empty session reports no progress.
        if self.total == 0:
            return 0
        return percent(self.counted, self.total)

    @property
    def accuracy_pct(self) -> int:
        if self.counted == 0:
            return 100
        return percent(self.matched, self.counted)


def percent(part: int, whole: int) -> int:
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_variance(line) -> float:
    return (line.physical_qty or 0) - (line.system_qty or 0)


def classify_line(line) -> str:
    if line.is_counted and line_variance(line) == 0:
        return MATCH
    return DIFF


def compute_stats(db, session_id) -> OpnameStats:
    get_session(db, session_id)
    total, counted, variance = OpnameRepository(db).aggregate_counts(session_id)
    return OpnameStats(total=total, counted=counted, matched=counted - variance, variance=variance)

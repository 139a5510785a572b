"""Pure formulas behind the calculator widgets, plus number parsing/formatting."""

import math
import re
from dataclasses import dataclass

from paperlane.models import LockPoint

PLACEHOLDER = "—"

DEFAULT_LOCK_SCHEDULE = [
    LockPoint(days=30, mult=1.0),
    LockPoint(days=90, mult=1.25),
    LockPoint(days=180, mult=1.5),
    LockPoint(days=365, mult=2.0),
]

PUBLISHER_SHARE = 0.60
VALIDATOR_SHARE = 0.25
POOL_SHARE = 0.15  # split evenly between burn and stakers

_NUMBER_RE = re.compile(r"-?\d+(\.\d+)?")


def feedback_weight(stake: float, reputation: float) -> float:
    """w = sqrt(s) * r"""
    return math.sqrt(max(0.0, stake)) * reputation


@dataclass(frozen=True)
class SybilComparison:
    many: float
    one: float

    @property
    def ratio(self) -> float:
        """many / one; infinite when the single account has no weight."""
        return self.many / self.one if self.one > 0 else math.inf


def sybil_comparison(
    accounts: float,
    stake_per_account: float,
    rep_per_account: float,
    single_stake: float,
    single_rep: float,
) -> SybilComparison:
    many = accounts * math.sqrt(max(0.0, stake_per_account)) * rep_per_account
    one = math.sqrt(max(0.0, single_stake)) * single_rep
    return SybilComparison(many=many, one=one)


@dataclass(frozen=True)
class RevenueSplit:
    publishers: float
    validators: float
    burn: float
    stakers: float

    @property
    def pool(self) -> float:
        return self.burn + self.stakers

    def as_list(self) -> list[float]:
        return [self.publishers, self.validators, self.burn, self.stakers]


def revenue_split(total: float) -> RevenueSplit:
    half_pool = POOL_SHARE / 2
    return RevenueSplit(
        publishers=total * PUBLISHER_SHARE,
        validators=total * VALIDATOR_SHARE,
        burn=total * half_pool,
        stakers=total * half_pool,
    )


def lock_multiplier(points: list[LockPoint], days: int) -> float:
    """Multiplier for a lock duration; falls back to the first schedule entry."""
    schedule = points or DEFAULT_LOCK_SCHEDULE
    for p in schedule:
        if p.days == days:
            return p.mult
    return schedule[0].mult


def staking_power(stake: float, multiplier: float) -> float:
    return stake * multiplier


def voting_power(stake: float, multiplier: float, reputation: float) -> float:
    """v = s * m * r"""
    return stake * multiplier * reputation


def num_from_text(text: str | None) -> float:
    """First numeric token in free text (commas stripped), else NaN."""
    t = " ".join(str(text or "").replace(",", "").split())
    m = _NUMBER_RE.search(t)
    return float(m.group(0)) if m else math.nan


@dataclass(frozen=True)
class MetricGrowth:
    earlier: float
    later: float
    is_percent: bool

    @property
    def growth(self) -> float:
        """later / earlier; infinite (or NaN) when earlier is unusable."""
        if math.isnan(self.earlier) or math.isnan(self.later):
            return math.nan
        return self.later / self.earlier if self.earlier > 0 else math.inf


def metric_growth(earlier_text: str, later_text: str) -> MetricGrowth:
    return MetricGrowth(
        earlier=num_from_text(earlier_text),
        later=num_from_text(later_text),
        is_percent="%" in str(earlier_text) or "%" in str(later_text),
    )


def fmt(n: float | None, digits: int = 2) -> str:
    """Grouped number with at most ``digits`` decimals; placeholder if not finite."""
    if n is None or not math.isfinite(n):
        return PLACEHOLDER
    text = f"{n:,.{digits}f}"
    if digits > 0:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def fmt_ratio(n: float, digits: int = 2) -> str:
    return f"{fmt(n, digits)}x" if math.isfinite(n) else PLACEHOLDER

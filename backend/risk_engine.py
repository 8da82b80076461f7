"""
Asset Risk Scoring Engine

Scores council assets on a 0-100 scale from:
- Condition (enumerated asset condition)
- Age relative to expected lifespan
- Maintenance recency (work orders in the last year)
- Inspection recency (days since the latest inspection)
- Failure modes linked through RCM templates, weighted by severity

The four factor scores (1-10) are averaged and contribute 70% of the
overall score; the average severity-adjusted failure-mode risk contributes
the remaining 30%. Everything here is a pure function of its inputs and
the supplied `now`.
"""

import logging
import math
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from models import Asset, RCMFailureMode

logger = logging.getLogger("aegrid.risk")


class RiskLevel(str, Enum):
    """Five-bucket asset risk level"""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


class TrendRiskLevel(str, Enum):
    """Four-bucket level used for organisation risk trends"""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# ============================================
# Scoring constants
# ============================================

DEFAULT_CONDITION_SCORE = 5
DEFAULT_AGE_SCORE = 5
NO_MAINTENANCE_SCORE = 8
NO_INSPECTION_SCORE = 7
DEFAULT_PROBABILITY = 5
DEFAULT_IMPACT = 5
DEFAULT_SEVERITY_MULTIPLIER = 1.0

FACTOR_WEIGHT = 0.7
FAILURE_MODE_WEIGHT = 0.3

MIN_RISK_SCORE = 0
MAX_RISK_SCORE = 100

DAYS_PER_YEAR = 365.25
MAINTENANCE_LOOKBACK = timedelta(days=365)

CONDITION_SCORES = MappingProxyType({
    "EXCELLENT": 1,
    "GOOD": 3,
    "FAIR": 6,
    "POOR": 9,
    "CRITICAL": 10,
})

# Sort ordinal, worst first
CONDITION_ORDER = MappingProxyType({
    "CRITICAL": 5,
    "POOR": 4,
    "FAIR": 3,
    "GOOD": 2,
    "EXCELLENT": 1,
})

SEVERITY_MULTIPLIERS = MappingProxyType({
    "CRITICAL": 1.5,
    "HIGH": 1.2,
    "MEDIUM": 1.0,
    "LOW": 0.8,
})

# (upper bound on age as % of lifespan, score)
AGE_THRESHOLDS: Tuple[Tuple[float, int], ...] = (
    (25, 2),
    (50, 4),
    (75, 6),
    (90, 8),
)
END_OF_LIFE_AGE_SCORE = 10

# (minimum score, level), evaluated top-down
RISK_LEVEL_THRESHOLDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (80, RiskLevel.CRITICAL),
    (60, RiskLevel.HIGH),
    (40, RiskLevel.MEDIUM),
    (20, RiskLevel.LOW),
)

TREND_LEVEL_THRESHOLDS: Tuple[Tuple[int, TrendRiskLevel], ...] = (
    (80, TrendRiskLevel.CRITICAL),
    (60, TrendRiskLevel.HIGH),
    (40, TrendRiskLevel.MEDIUM),
)

LIKELIHOOD_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (80, "VERY LIKELY"),
    (60, "LIKELY"),
    (40, "POSSIBLE"),
)


# ============================================
# Result types
# ============================================

@dataclass(frozen=True)
class RiskFactors:
    """Factor sub-scores, each in [1, 10]"""
    condition: int
    age: int
    maintenance_history: int
    inspection_history: int

    def values(self) -> Tuple[int, int, int, int]:
        return (self.condition, self.age, self.maintenance_history, self.inspection_history)

    def average(self) -> float:
        return sum(self.values()) / 4


@dataclass(frozen=True)
class FailureModeRisk:
    """Aggregated failure-mode exposure for one asset"""
    risk_sum: float
    count: int
    critical_count: int
    high_count: int

    @property
    def average(self) -> float:
        return self.risk_sum / max(self.count, 1)


@dataclass
class ScoredAsset:
    """An asset summary with its computed risk"""
    id: Optional[int]
    name: str
    asset_number: Optional[str]
    asset_type: Optional[str]
    condition: Optional[str]
    priority: Optional[str]
    location: Optional[str]
    installation_date: Optional[datetime]
    expected_lifespan: Optional[int]
    risk_factors: RiskFactors
    overall_risk_score: int
    risk_level: RiskLevel
    failure_mode_count: int
    critical_failure_modes: int
    high_failure_modes: int
    last_inspection: Optional[datetime] = None
    last_maintenance: Optional[datetime] = None
    maintenance_frequency: int = 0


@dataclass
class RiskStats:
    total: int
    critical: int
    high: int
    medium: int
    low: int
    very_low: int
    average_risk_score: Optional[int]  # None for an empty collection


@dataclass
class RiskAnalysis:
    assets: List[ScoredAsset] = field(default_factory=list)
    risk_stats: Optional[RiskStats] = None


# ============================================
# Helpers
# ============================================

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching JavaScript Math.round."""
    return int(math.floor(value + 0.5))


def as_utc(value) -> Optional[datetime]:
    """Normalize a date/datetime to an aware UTC datetime. Naive values are taken as UTC."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        if isinstance(value, date):
            value = datetime(value.year, value.month, value.day)
        else:
            return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _resolve_now(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else datetime.now(timezone.utc)


# ============================================
# Factor scorers
# ============================================

def condition_score(condition: Optional[str]) -> int:
    return CONDITION_SCORES.get(condition, DEFAULT_CONDITION_SCORE)


def age_score(
    installation_date,
    expected_lifespan: Optional[float],
    now: Optional[datetime] = None,
) -> int:
    installed = as_utc(installation_date)
    if installed is None or not expected_lifespan:
        return DEFAULT_AGE_SCORE

    age_in_years = (_resolve_now(now) - installed) / timedelta(days=DAYS_PER_YEAR)
    age_percentage = age_in_years / expected_lifespan * 100

    for upper_bound, score in AGE_THRESHOLDS:
        if age_percentage < upper_bound:
            return score
    return END_OF_LIFE_AGE_SCORE


def maintenance_score(maintenance_dates: Sequence, now: Optional[datetime] = None) -> int:
    """
    Score maintenance recency from the dates of maintenance records.
    More work in the last year means lower risk.
    """
    if not maintenance_dates:
        return NO_MAINTENANCE_SCORE

    current = _resolve_now(now)
    recent = 0
    for value in maintenance_dates:
        performed = as_utc(value)
        if performed is not None and current - performed < MAINTENANCE_LOOKBACK:
            recent += 1

    if recent == 0:
        return NO_MAINTENANCE_SCORE
    if recent < 2:
        return 6
    if recent < 4:
        return 4
    return 2


def inspection_score(inspection_dates: Sequence, now: Optional[datetime] = None) -> int:
    """Score inspection recency from the dates of inspection records."""
    dates = [d for d in (as_utc(value) for value in inspection_dates) if d is not None]
    if not dates:
        return NO_INSPECTION_SCORE

    latest = max(dates)
    days_since = (_resolve_now(now) - latest) / timedelta(days=1)

    if days_since > 365:
        return 8
    if days_since > 180:
        return 6
    if days_since > 90:
        return 4
    return 2


# ============================================
# Failure modes
# ============================================

def collect_failure_modes(asset: Asset) -> List[RCMFailureMode]:
    """Flatten failure modes across every RCM template linked to the asset."""
    return [
        failure_mode
        for link in asset.rcm_templates
        if link.template is not None
        for failure_mode in link.template.failure_modes
    ]


def severity_multiplier(severity: Optional[str]) -> float:
    return SEVERITY_MULTIPLIERS.get(severity, DEFAULT_SEVERITY_MULTIPLIER)


def base_failure_mode_risk(failure_mode: RCMFailureMode) -> float:
    """Explicit risk score when set, otherwise probability x impact."""
    if failure_mode.risk_score:
        return failure_mode.risk_score
    probability = failure_mode.probability or DEFAULT_PROBABILITY
    impact = failure_mode.impact or DEFAULT_IMPACT
    return probability * impact


def aggregate_failure_modes(failure_modes: Iterable[RCMFailureMode]) -> FailureModeRisk:
    risk_sum = 0.0
    count = critical = high = 0
    for failure_mode in failure_modes:
        risk_sum += base_failure_mode_risk(failure_mode) * severity_multiplier(failure_mode.severity)
        count += 1
        if failure_mode.severity == "CRITICAL":
            critical += 1
        elif failure_mode.severity == "HIGH":
            high += 1
    return FailureModeRisk(risk_sum=risk_sum, count=count, critical_count=critical, high_count=high)


# ============================================
# Composite score and classification
# ============================================

def composite_score(factors: RiskFactors, failure_mode_risk: FailureModeRisk) -> int:
    raw = factors.average() * FACTOR_WEIGHT + failure_mode_risk.average * FAILURE_MODE_WEIGHT
    return min(max(round_half_up(raw), MIN_RISK_SCORE), MAX_RISK_SCORE)


def classify_risk_level(score: float) -> RiskLevel:
    for threshold, level in RISK_LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.VERY_LOW


def classify_trend_level(score: float) -> TrendRiskLevel:
    for threshold, level in TREND_LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return TrendRiskLevel.LOW


def classify_consequence(score: float) -> TrendRiskLevel:
    return classify_trend_level(score)


def classify_likelihood(score: float) -> str:
    for threshold, likelihood in LIKELIHOOD_THRESHOLDS:
        if score >= threshold:
            return likelihood
    return "UNLIKELY"


# ============================================
# Per-asset scoring
# ============================================

def calculate_risk_factors(
    asset: Asset,
    now: Optional[datetime] = None,
    inspections: Optional[Sequence] = None,
    maintenance: Optional[Sequence] = None,
) -> RiskFactors:
    """
    Compute the four factor scores for an asset.

    `inspections` and `maintenance` default to the asset's own records;
    callers pass filtered lists to score the asset as of an earlier date.
    """
    if inspections is None:
        inspections = asset.inspections
    if maintenance is None:
        maintenance = asset.maintenance

    return RiskFactors(
        condition=condition_score(asset.condition),
        age=age_score(asset.installation_date, asset.expected_lifespan, now),
        maintenance_history=maintenance_score([m.maintenance_date for m in maintenance], now),
        inspection_history=inspection_score([i.inspection_date for i in inspections], now),
    )


def _latest(values) -> Optional[datetime]:
    dates = [d for d in (as_utc(v) for v in values) if d is not None]
    return max(dates) if dates else None


def score_asset(
    asset: Asset,
    now: Optional[datetime] = None,
    inspections: Optional[Sequence] = None,
    maintenance: Optional[Sequence] = None,
) -> ScoredAsset:
    now = _resolve_now(now)
    if inspections is None:
        inspections = asset.inspections
    if maintenance is None:
        maintenance = asset.maintenance

    factors = calculate_risk_factors(asset, now, inspections, maintenance)
    failure_mode_risk = aggregate_failure_modes(collect_failure_modes(asset))
    overall = composite_score(factors, failure_mode_risk)

    return ScoredAsset(
        id=asset.id,
        name=asset.name,
        asset_number=asset.asset_number,
        asset_type=asset.asset_type,
        condition=asset.condition,
        priority=asset.priority,
        location=asset.address,
        installation_date=asset.installation_date,
        expected_lifespan=asset.expected_lifespan,
        risk_factors=factors,
        overall_risk_score=overall,
        risk_level=classify_risk_level(overall),
        failure_mode_count=failure_mode_risk.count,
        critical_failure_modes=failure_mode_risk.critical_count,
        high_failure_modes=failure_mode_risk.high_count,
        last_inspection=_latest(i.inspection_date for i in inspections),
        last_maintenance=_latest(m.maintenance_date for m in maintenance),
        maintenance_frequency=len(maintenance),
    )


# ============================================
# Ranking and statistics
# ============================================

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def collation_key(value: Optional[str]) -> Tuple[str, str]:
    """Accent- and case-insensitive sort key; the raw string breaks ties."""
    text = value or ""
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), text)


# sort key name -> (key function, descending)
SORT_KEYS: Dict[str, Tuple[Callable[[ScoredAsset], object], bool]] = {
    "riskScore": (lambda a: a.overall_risk_score, True),
    "name": (lambda a: collation_key(a.name), False),
    "assetType": (lambda a: collation_key(a.asset_type), False),
    "condition": (lambda a: CONDITION_ORDER.get(a.condition, 0), True),
    "lastInspection": (lambda a: a.last_inspection or _EPOCH, True),
}
DEFAULT_SORT_KEY = "riskScore"


def rank_assets(assets: Iterable[ScoredAsset], sort_by: str = DEFAULT_SORT_KEY) -> List[ScoredAsset]:
    """Stable sort by `sort_by`; unknown keys fall back to risk score."""
    key, descending = SORT_KEYS.get(sort_by, SORT_KEYS[DEFAULT_SORT_KEY])
    return sorted(assets, key=key, reverse=descending)


def filter_by_risk_level(assets: Iterable[ScoredAsset], risk_level: Optional[str]) -> List[ScoredAsset]:
    if not risk_level:
        return list(assets)
    return [a for a in assets if a.risk_level == risk_level]


def summarize_risk(assets: Sequence[ScoredAsset]) -> RiskStats:
    counts = {level: 0 for level in RiskLevel}
    for asset in assets:
        counts[asset.risk_level] += 1

    average = None
    if assets:
        average = round_half_up(sum(a.overall_risk_score for a in assets) / len(assets))

    return RiskStats(
        total=len(assets),
        critical=counts[RiskLevel.CRITICAL],
        high=counts[RiskLevel.HIGH],
        medium=counts[RiskLevel.MEDIUM],
        low=counts[RiskLevel.LOW],
        very_low=counts[RiskLevel.VERY_LOW],
        average_risk_score=average,
    )


def analyze_assets(
    assets: Iterable[Asset],
    risk_level: Optional[str] = None,
    sort_by: str = DEFAULT_SORT_KEY,
    now: Optional[datetime] = None,
) -> RiskAnalysis:
    """Score, filter, rank and summarize a page of assets."""
    now = _resolve_now(now)
    scored = [score_asset(asset, now) for asset in assets]
    ranked = rank_assets(filter_by_risk_level(scored, risk_level), sort_by)
    stats = summarize_risk(ranked)

    logger.debug(
        "Scored %d assets, %d after filter (risk_level=%s, sort_by=%s)",
        len(scored), len(ranked), risk_level, sort_by,
    )
    return RiskAnalysis(assets=ranked, risk_stats=stats)

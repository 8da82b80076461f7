"""
Organisation Risk Trend Service

Replays the risk engine at the end of each period in a time range:
each asset is scored as it stood at that instant, counting only the
inspections and maintenance recorded by then. The period score is the
average overall risk score across the assets installed by then.

Trend points use the four-bucket trend scale (CRITICAL/HIGH/MEDIUM/LOW),
not the five-bucket asset scale.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from models import Asset
import risk_engine

logger = logging.getLogger("aegrid.trends")


@dataclass
class RiskTrendPoint:
    period: str
    date: datetime
    risk_score: float
    trend: str  # up, down, stable
    change: int  # percent vs previous period
    risk_level: risk_engine.TrendRiskLevel
    consequence: risk_engine.TrendRiskLevel
    likelihood: str


def _hour_label(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def _day_label(moment: datetime) -> str:
    return f"{moment.strftime('%a')} {moment.day}"


def _day_month_label(moment: datetime) -> str:
    return f"{moment.day} {moment.strftime('%b')}"


# time range -> (periods, step, label builder); labels for weekly points are positional
TIME_RANGES: Dict[str, Tuple[int, timedelta, Optional[Callable[[datetime], str]]]] = {
    "24h": (24, timedelta(hours=1), _hour_label),
    "7d": (7, timedelta(days=1), _day_label),
    "30d": (30, timedelta(days=1), _day_month_label),
    "90d": (12, timedelta(weeks=1), None),
}
DEFAULT_TIME_RANGE = "7d"


class UnknownTimeRangeError(ValueError):
    pass


def period_ends(time_range: str, now: datetime) -> List[Tuple[str, datetime]]:
    """Return (label, period end) pairs, oldest first, ending at `now`."""
    if time_range not in TIME_RANGES:
        raise UnknownTimeRangeError(f"Unknown time range: {time_range}")

    count, step, label = TIME_RANGES[time_range]
    ends = []
    for i in range(count):
        moment = now - step * (count - 1 - i)
        ends.append((label(moment) if label else f"Week {count - i}", moment))
    return ends


def _installed_by(asset: Asset, moment: datetime) -> bool:
    installed = risk_engine.as_utc(asset.installation_date)
    return installed is None or installed <= moment


def average_risk_as_of(assets: Sequence[Asset], moment: datetime) -> float:
    """
    Average overall risk score with history truncated at `moment`.
    Assets installed after `moment` are left out; 0 when none remain.
    """
    existing = [asset for asset in assets if _installed_by(asset, moment)]
    if not existing:
        return 0.0

    total = 0
    for asset in existing:
        inspections = [
            i for i in asset.inspections
            if risk_engine.as_utc(i.inspection_date) <= moment
        ]
        maintenance = [
            m for m in asset.maintenance
            if risk_engine.as_utc(m.maintenance_date) <= moment
        ]
        scored = risk_engine.score_asset(asset, moment, inspections, maintenance)
        total += scored.overall_risk_score
    return round(total / len(existing), 2)


def _percent_change(current: float, previous: Optional[float]) -> int:
    if not previous:
        return 0
    return risk_engine.round_half_up((current - previous) / previous * 100)


def _direction(current: float, previous: Optional[float]) -> str:
    if previous is None or current == previous:
        return "stable"
    return "up" if current > previous else "down"


def build_risk_trends(
    assets: Sequence[Asset],
    time_range: str = DEFAULT_TIME_RANGE,
    now: Optional[datetime] = None,
) -> List[RiskTrendPoint]:
    now = risk_engine.as_utc(now) if now is not None else datetime.now(timezone.utc)
    points: List[RiskTrendPoint] = []
    previous: Optional[float] = None

    for label, moment in period_ends(time_range, now):
        score = average_risk_as_of(assets, moment)
        points.append(RiskTrendPoint(
            period=label,
            date=moment,
            risk_score=score,
            trend=_direction(score, previous),
            change=_percent_change(score, previous),
            risk_level=risk_engine.classify_trend_level(score),
            consequence=risk_engine.classify_consequence(score),
            likelihood=risk_engine.classify_likelihood(score),
        ))
        previous = score

    logger.info("Built %d risk trend points (%s) over %d assets", len(points), time_range, len(assets))
    return points

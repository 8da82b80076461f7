"""
FMEA (Failure Mode and Effects Analysis) Service

Builds a per-asset FMEA view on top of the risk engine:
- Risk factors and overall risk score for the asset
- Failure modes adjusted for the asset's condition and age, grouped by severity
- Maintenance recommendations derived from the adjusted risks and factors
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from models import Asset, RCMFailureMode
import risk_engine

logger = logging.getLogger("aegrid.fmea")

SEVERITY_GROUPS = ("CRITICAL", "HIGH", "MEDIUM", "LOW")
PRIORITY_ORDER = {"CRITICAL": 4, "HIGH": 3, "MEDIUM": 2, "LOW": 1}

HIGH_RISK_FAILURE_MODE_SCORE = 60
ADJUSTED_RISK_CAP = 100
FACTOR_NEUTRAL_SCORE = 5

# Factor-driven recommendations: (factor, threshold, recommendation)
FACTOR_RECOMMENDATIONS = (
    ("condition", 7, {
        "type": "CONDITION",
        "title": "Asset Condition Assessment",
        "description": "Asset condition requires immediate attention",
        "priority": "HIGH",
        "estimated_cost": 500,
        "timeline": "Within 14 days",
    }),
    ("age", 7, {
        "type": "AGE",
        "title": "Age-Related Maintenance",
        "description": "Asset approaching end of expected lifespan",
        "priority": "MEDIUM",
        "estimated_cost": 1000,
        "timeline": "Within 90 days",
    }),
    ("maintenance_history", 6, {
        "type": "MAINTENANCE",
        "title": "Scheduled Maintenance Overdue",
        "description": "Regular maintenance schedule needs attention",
        "priority": "MEDIUM",
        "estimated_cost": 300,
        "timeline": "Within 60 days",
    }),
)


def adjusted_risk_score(failure_mode: RCMFailureMode, factors: risk_engine.RiskFactors) -> int:
    """Scale a failure mode's base risk by the asset's condition and age (5 is neutral)."""
    risk = risk_engine.base_failure_mode_risk(failure_mode)
    risk *= factors.condition / FACTOR_NEUTRAL_SCORE
    risk *= factors.age / FACTOR_NEUTRAL_SCORE
    return min(risk_engine.round_half_up(risk), ADJUSTED_RISK_CAP)


def _template_task_cost(failure_mode: RCMFailureMode) -> float:
    template = failure_mode.template
    if template is None:
        return 0.0
    return sum(task.estimated_cost or 0 for task in template.maintenance_tasks)


def analyze_failure_modes(failure_modes: List[RCMFailureMode], factors: risk_engine.RiskFactors) -> List[Dict]:
    analyzed = []
    for fm in failure_modes:
        analyzed.append({
            "id": fm.id,
            "name": fm.name,
            "effect": fm.effect,
            "severity": fm.severity,
            "probability": fm.probability,
            "impact": fm.impact,
            "risk_score": fm.risk_score,
            "adjusted_risk_score": adjusted_risk_score(fm, factors),
            "risk_level": risk_engine.classify_risk_level(risk_engine.base_failure_mode_risk(fm)),
            "estimated_task_cost": _template_task_cost(fm),
        })
    analyzed.sort(key=lambda item: item["adjusted_risk_score"], reverse=True)
    return analyzed


def generate_recommendations(failure_modes: List[Dict], factors: risk_engine.RiskFactors) -> List[Dict]:
    recommendations = []

    high_risk = [fm for fm in failure_modes if fm["adjusted_risk_score"] >= HIGH_RISK_FAILURE_MODE_SCORE]
    if high_risk:
        recommendations.append({
            "type": "URGENT",
            "title": "Address High-Risk Failure Modes",
            "description": f"{len(high_risk)} failure modes require immediate attention",
            "priority": "CRITICAL",
            "estimated_cost": sum(fm["estimated_task_cost"] for fm in high_risk),
            "timeline": "Within 30 days",
        })

    for factor_name, threshold, recommendation in FACTOR_RECOMMENDATIONS:
        if getattr(factors, factor_name) >= threshold:
            recommendations.append(dict(recommendation))

    recommendations.sort(key=lambda r: PRIORITY_ORDER[r["priority"]], reverse=True)
    return recommendations


def analyze_asset(asset: Asset, now: Optional[datetime] = None) -> Dict:
    """Full FMEA analysis for one asset."""
    scored = risk_engine.score_asset(asset, now)
    factors = scored.risk_factors

    failure_modes = analyze_failure_modes(risk_engine.collect_failure_modes(asset), factors)
    by_severity = {
        severity: [fm for fm in failure_modes if fm["severity"] == severity]
        for severity in SEVERITY_GROUPS
    }
    recommendations = generate_recommendations(failure_modes, factors)

    logger.info(
        "FMEA for asset %s: %d failure modes, %d recommendations",
        asset.id, len(failure_modes), len(recommendations),
    )

    return {
        "asset": {
            "id": asset.id,
            "name": asset.name,
            "asset_number": asset.asset_number,
            "asset_type": asset.asset_type,
            "condition": asset.condition,
            "installation_date": asset.installation_date,
            "expected_lifespan": asset.expected_lifespan,
        },
        "risk_factors": factors,
        "overall_risk_score": scored.overall_risk_score,
        "overall_risk_level": scored.risk_level,
        "failure_modes_by_severity": by_severity,
        "maintenance_recommendations": recommendations,
        "last_updated": risk_engine.as_utc(now) or datetime.now(timezone.utc),
    }

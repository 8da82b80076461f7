"""
Tests for the risk engine: factor scores, failure-mode aggregation,
composite score, classification, ranking and statistics.
"""

from datetime import timedelta

import pytest

import risk_engine
from risk_engine import RiskFactors, RiskLevel, ScoredAsset, TrendRiskLevel


def _years_ago(now, years):
    return now - timedelta(days=risk_engine.DAYS_PER_YEAR * years)


def _scored(name="A", score=50, asset_type="ROAD", condition="GOOD", last_inspection=None):
    return ScoredAsset(
        id=None,
        name=name,
        asset_number=None,
        asset_type=asset_type,
        condition=condition,
        priority="MEDIUM",
        location=None,
        installation_date=None,
        expected_lifespan=None,
        risk_factors=RiskFactors(5, 5, 5, 5),
        overall_risk_score=score,
        risk_level=risk_engine.classify_risk_level(score),
        failure_mode_count=0,
        critical_failure_modes=0,
        high_failure_modes=0,
        last_inspection=last_inspection,
    )


# ---------- factor scorers ----------

@pytest.mark.parametrize("condition,expected", [
    ("EXCELLENT", 1),
    ("GOOD", 3),
    ("FAIR", 6),
    ("POOR", 9),
    ("CRITICAL", 10),
    ("UNKNOWN", 5),
    ("bogus", 5),
    (None, 5),
])
def test_condition_score(condition, expected):
    assert risk_engine.condition_score(condition) == expected


def test_age_score_defaults_without_date_or_lifespan(now):
    assert risk_engine.age_score(None, 40, now) == risk_engine.DEFAULT_AGE_SCORE
    assert risk_engine.age_score(_years_ago(now, 10), None, now) == risk_engine.DEFAULT_AGE_SCORE
    assert risk_engine.age_score(_years_ago(now, 10), 0, now) == 5


@pytest.mark.parametrize("years,expected", [
    (5, 2),     # 12.5%
    (12, 4),    # 30%
    (25, 6),    # 62.5%
    (30, 8),    # exactly 75%
    (35, 8),    # 87.5%
    (36, 10),   # exactly 90%
    (60, 10),
])
def test_age_score_thresholds(now, years, expected):
    assert risk_engine.age_score(_years_ago(now, years), 40, now) == expected


def test_age_score_accepts_naive_dates(now):
    naive = _years_ago(now, 5).replace(tzinfo=None)
    assert risk_engine.age_score(naive, 40, now) == 2


def test_maintenance_score_no_records():
    assert risk_engine.maintenance_score([]) == risk_engine.NO_MAINTENANCE_SCORE == 8


@pytest.mark.parametrize("days_ago,expected", [
    ([400, 500], 8),
    ([10], 6),
    ([10, 400], 6),
    ([10, 20], 4),
    ([10, 20, 30], 4),
    ([10, 20, 30, 40], 2),
    ([1, 2, 3, 4, 5], 2),
])
def test_maintenance_score_counts_last_year(now, days_ago, expected):
    dates = [now - timedelta(days=d) for d in days_ago]
    assert risk_engine.maintenance_score(dates, now) == expected


def test_inspection_score_no_records():
    assert risk_engine.inspection_score([]) == risk_engine.NO_INSPECTION_SCORE == 7


@pytest.mark.parametrize("days_ago,expected", [
    (30, 2),
    (90, 2),
    (91, 4),
    (181, 6),
    (366, 8),
])
def test_inspection_score_thresholds(now, days_ago, expected):
    assert risk_engine.inspection_score([now - timedelta(days=days_ago)], now) == expected


def test_inspection_score_uses_most_recent_record(now):
    dates = [now - timedelta(days=400), now - timedelta(days=10), now - timedelta(days=200)]
    assert risk_engine.inspection_score(dates, now) == 2


# ---------- failure modes ----------

def test_empty_failure_modes_aggregate_to_zero():
    result = risk_engine.aggregate_failure_modes([])
    assert result.risk_sum == 0
    assert result.count == 0
    assert result.average == 0


def test_failure_mode_risk_uses_explicit_score_and_defaults(make_asset):
    asset = make_asset(failure_modes=[
        {"severity": "MEDIUM", "risk_score": 40},
        {"severity": "LOW"},  # 5 * 5 * 0.8
        {"severity": "CRITICAL", "probability": 2, "impact": 3},  # 6 * 1.5
        {"severity": "UNHEARD_OF", "probability": 4, "impact": 4},  # 16 * 1.0
    ])
    result = risk_engine.aggregate_failure_modes(risk_engine.collect_failure_modes(asset))
    assert result.count == 4
    assert result.risk_sum == pytest.approx(40 + 20 + 9 + 16)
    assert result.critical_count == 1
    assert result.high_count == 0


@pytest.mark.parametrize("severity,multiplier", [
    ("CRITICAL", 1.5),
    ("HIGH", 1.2),
    ("MEDIUM", 1.0),
    ("LOW", 0.8),
    (None, risk_engine.DEFAULT_SEVERITY_MULTIPLIER),
])
def test_severity_multiplier(severity, multiplier):
    assert risk_engine.severity_multiplier(severity) == multiplier


# ---------- composite and classification ----------

def test_end_to_end_single_asset(make_asset, now):
    asset = make_asset(
        condition="CRITICAL",
        failure_modes=[{"severity": "HIGH", "probability": 8, "impact": 9}],
    )
    scored = risk_engine.score_asset(asset, now)

    assert scored.risk_factors == RiskFactors(condition=10, age=5, maintenance_history=8, inspection_history=7)
    assert scored.overall_risk_score == 31
    assert scored.risk_level == RiskLevel.LOW
    assert scored.failure_mode_count == 1
    assert scored.high_failure_modes == 1
    assert scored.critical_failure_modes == 0


def test_composite_score_is_clamped():
    factors = RiskFactors(10, 10, 10, 10)
    huge = risk_engine.FailureModeRisk(risk_sum=5000, count=1, critical_count=1, high_count=0)
    assert risk_engine.composite_score(factors, huge) == 100


def test_composite_score_without_failure_modes():
    factors = RiskFactors(1, 2, 2, 2)
    empty = risk_engine.aggregate_failure_modes([])
    # 1.75 * 0.7 = 1.225
    assert risk_engine.composite_score(factors, empty) == 1


def test_round_half_up():
    assert risk_engine.round_half_up(30.5) == 31
    assert risk_engine.round_half_up(30.49) == 30
    assert risk_engine.round_half_up(0) == 0


@pytest.mark.parametrize("score,level", [
    (100, RiskLevel.CRITICAL),
    (80, RiskLevel.CRITICAL),
    (79, RiskLevel.HIGH),
    (60, RiskLevel.HIGH),
    (59, RiskLevel.MEDIUM),
    (40, RiskLevel.MEDIUM),
    (39, RiskLevel.LOW),
    (20, RiskLevel.LOW),
    (19, RiskLevel.VERY_LOW),
    (0, RiskLevel.VERY_LOW),
])
def test_classify_risk_level(score, level):
    assert risk_engine.classify_risk_level(score) == level


def test_trend_scale_has_no_very_low_bucket():
    assert risk_engine.classify_trend_level(10) == TrendRiskLevel.LOW
    assert risk_engine.classify_trend_level(80) == TrendRiskLevel.CRITICAL
    assert risk_engine.classify_consequence(65) == TrendRiskLevel.HIGH
    assert risk_engine.classify_likelihood(85) == "VERY LIKELY"
    assert risk_engine.classify_likelihood(45) == "POSSIBLE"
    assert risk_engine.classify_likelihood(5) == "UNLIKELY"


# ---------- ranking ----------

def test_rank_by_name_ascending():
    ranked = risk_engine.rank_assets([_scored("Zeta"), _scored("Alpha"), _scored("Mid")], "name")
    assert [a.name for a in ranked] == ["Alpha", "Mid", "Zeta"]


def test_rank_by_name_ignores_case():
    ranked = risk_engine.rank_assets([_scored("beta"), _scored("Alpha"), _scored("Charlie")], "name")
    assert [a.name for a in ranked] == ["Alpha", "beta", "Charlie"]


def test_rank_by_name_ignores_accents():
    ranked = risk_engine.rank_assets(
        [_scored("Zeta Reserve"), _scored("Émile Park"), _scored("Alpha")], "name"
    )
    assert [a.name for a in ranked] == ["Alpha", "Émile Park", "Zeta Reserve"]


@pytest.mark.parametrize("sort_by", ["name", "assetType"])
def test_rank_ascending_keys_are_stable_for_ties(sort_by):
    assets = [
        _scored("Oval", score=10, asset_type="PARK"),
        _scored("Bridge", score=20, asset_type="BRIDGE"),
        _scored("Oval", score=30, asset_type="PARK"),
        _scored("Bridge", score=40, asset_type="BRIDGE"),
    ]
    ranked = risk_engine.rank_assets(assets, sort_by)
    assert [a.overall_risk_score for a in ranked] == [20, 40, 10, 30]


@pytest.mark.parametrize("types,expected", [
    (["STREET_LIGHT", "BRIDGE", "ROAD"], ["BRIDGE", "ROAD", "STREET_LIGHT"]),
    (["road", "BRIDGE", "Park"], ["BRIDGE", "Park", "road"]),
])
def test_rank_by_asset_type_ascending(types, expected):
    ranked = risk_engine.rank_assets([_scored(asset_type=t) for t in types], "assetType")
    assert [a.asset_type for a in ranked] == expected


def test_rank_by_risk_score_descending():
    ranked = risk_engine.rank_assets([_scored(score=10), _scored(score=90), _scored(score=50)], "riskScore")
    assert [a.overall_risk_score for a in ranked] == [90, 50, 10]


def test_rank_is_stable_for_ties():
    assets = [_scored("first", 50), _scored("second", 70), _scored("third", 50)]
    ranked = risk_engine.rank_assets(assets, "riskScore")
    assert [a.name for a in ranked] == ["second", "first", "third"]


def test_rank_by_condition_worst_first():
    assets = [_scored(condition=c) for c in ("GOOD", "UNKNOWN", "CRITICAL", "FAIR", "EXCELLENT", "POOR")]
    ranked = risk_engine.rank_assets(assets, "condition")
    assert [a.condition for a in ranked] == ["CRITICAL", "POOR", "FAIR", "GOOD", "EXCELLENT", "UNKNOWN"]


def test_rank_by_last_inspection_puts_missing_last(now):
    assets = [
        _scored("never"),
        _scored("old", last_inspection=now - timedelta(days=300)),
        _scored("recent", last_inspection=now - timedelta(days=3)),
    ]
    ranked = risk_engine.rank_assets(assets, "lastInspection")
    assert [a.name for a in ranked] == ["recent", "old", "never"]


def test_rank_unknown_key_falls_back_to_risk_score():
    ranked = risk_engine.rank_assets([_scored(score=10), _scored(score=90)], "colour")
    assert [a.overall_risk_score for a in ranked] == [90, 10]


# ---------- statistics and pipeline ----------

def test_summarize_empty_collection():
    stats = risk_engine.summarize_risk([])
    assert stats.total == 0
    assert stats.average_risk_score is None


def test_summarize_counts_each_level():
    assets = [_scored(score=s) for s in (85, 65, 45, 25, 5, 90)]
    stats = risk_engine.summarize_risk(assets)
    assert (stats.critical, stats.high, stats.medium, stats.low, stats.very_low) == (2, 1, 1, 1, 1)
    assert stats.total == 6
    assert stats.average_risk_score == 53  # 315 / 6 = 52.5


def test_analyze_assets_filters_then_summarizes(make_asset, now):
    risky = make_asset(name="Risky", condition="CRITICAL",
                       failure_modes=[{"severity": "HIGH", "probability": 8, "impact": 9}])
    calm = make_asset(name="Calm", condition="EXCELLENT", inspection_days_ago=[5],
                      maintenance_days_ago=[10, 20, 30, 40])

    analysis = risk_engine.analyze_assets([calm, risky], risk_level="LOW", now=now)

    assert [a.name for a in analysis.assets] == ["Risky"]
    assert analysis.risk_stats.total == 1
    assert analysis.risk_stats.low == 1
    assert analysis.risk_stats.average_risk_score == 31


def test_analyze_assets_is_idempotent(make_asset, now):
    assets = [
        make_asset(name="One", condition="FAIR", installation_date=_years_ago(now, 20), expected_lifespan=25),
        make_asset(name="Two", condition="POOR", inspection_days_ago=[120],
                   failure_modes=[{"severity": "CRITICAL", "risk_score": 60}]),
    ]
    first = risk_engine.analyze_assets(assets, sort_by="name", now=now)
    second = risk_engine.analyze_assets(assets, sort_by="name", now=now)
    assert first == second


def test_scored_asset_reports_latest_history(make_asset, now):
    asset = make_asset(inspection_days_ago=[50, 5], maintenance_days_ago=[100, 30, 700])
    scored = risk_engine.score_asset(asset, now)
    assert scored.last_inspection == now - timedelta(days=5)
    assert scored.last_maintenance == now - timedelta(days=30)
    assert scored.maintenance_frequency == 3

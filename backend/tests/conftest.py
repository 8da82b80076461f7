"""
Test fixtures shared across all Aegrid tests.
"""

import os

# Point the app at a private in-memory database before anything imports config
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime, timedelta, timezone

import pytest

import database
import models


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_database():
    models.Base.metadata.drop_all(bind=database.engine)
    models.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def org_headers():
    return {"X-Organisation-Id": "org-test"}


@pytest.fixture
def make_asset():
    """Build a transient Asset with optional history and failure modes."""
    def _make(
        name="Test Asset",
        condition="GOOD",
        asset_type="ROAD",
        installation_date=None,
        expected_lifespan=None,
        inspection_days_ago=(),
        maintenance_days_ago=(),
        failure_modes=(),
        now=NOW,
    ):
        asset = models.Asset(
            name=name,
            asset_number=f"AST-{name}",
            asset_type=asset_type,
            condition=condition,
            priority="MEDIUM",
            installation_date=installation_date,
            expected_lifespan=expected_lifespan,
        )
        asset.inspections = [
            models.AssetInspection(
                inspection_date=now - timedelta(days=days),
                inspector_name="Inspector",
                condition=condition,
            )
            for days in inspection_days_ago
        ]
        asset.maintenance = [
            models.AssetMaintenance(
                maintenance_date=now - timedelta(days=days),
                maintenance_type="PREVENTIVE",
                description="Scheduled works",
            )
            for days in maintenance_days_ago
        ]
        if failure_modes:
            template = models.RCMTemplate(name="Template", asset_type=asset_type)
            template.failure_modes = [
                models.RCMFailureMode(name=f"Mode {i}", effect="Effect", **fm)
                for i, fm in enumerate(failure_modes)
            ]
            asset.rcm_templates = [models.AssetRCMTemplate(template=template)]
        return asset

    return _make

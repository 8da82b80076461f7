from fastapi import FastAPI, Depends, HTTPException, Query, Header
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timedelta, timezone
import logging
import random
from dotenv import load_dotenv

load_dotenv()

import models, schemas, crud, database, risk_engine, fmea_service, risk_trend_service
from config import settings
from database import get_db

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("aegrid.api")

# Create tables
models.Base.metadata.create_all(bind=database.engine)

app = FastAPI(title="Aegrid API", description="Council asset management and risk analysis")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Tenant dependency; the session layer in front of this service sets the header
def get_organisation_id(x_organisation_id: Optional[str] = Header(default=None)) -> str:
    if not x_organisation_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_organisation_id


def _get_asset_or_404(db: Session, organisation_id: str, asset_id: int) -> models.Asset:
    asset = crud.get_asset(db, organisation_id, asset_id)
    if asset is None:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "Aegrid API"}


# ============================================
# Risk Analysis
# ============================================

@app.get("/api/assets/risk-analysis", response_model=schemas.RiskAnalysisResponse)
def get_risk_analysis(
    asset_type: Optional[str] = Query(default=None, alias="assetType"),
    risk_level: Optional[risk_engine.RiskLevel] = Query(default=None, alias="riskLevel"),
    sort_by: str = Query(default=risk_engine.DEFAULT_SORT_KEY, alias="sortBy"),
    limit: int = Query(default=settings.risk_analysis_default_limit, ge=1, le=settings.risk_analysis_max_limit),
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    """
    Risk analysis for the organisation's assets.
    Scores up to `limit` assets, optionally filtered by type and risk level,
    sorted by riskScore (default), name, assetType, condition or lastInspection.
    """
    try:
        assets = crud.get_assets_for_risk_analysis(db, organisation_id, asset_type=asset_type, limit=limit)
        analysis = risk_engine.analyze_assets(assets, risk_level=risk_level, sort_by=sort_by)
    except Exception:
        logger.exception("Error generating risk analysis")
        raise HTTPException(status_code=500, detail="Failed to generate risk analysis")

    logger.info(
        "Risk analysis for %s: %d assets (type=%s, level=%s, sort=%s)",
        organisation_id, analysis.risk_stats.total, asset_type, risk_level, sort_by,
    )
    return schemas.RiskAnalysisResponse(
        assets=[schemas.ScoredAsset.model_validate(a) for a in analysis.assets],
        risk_stats=schemas.RiskStats.model_validate(analysis.risk_stats),
        filters=schemas.RiskAnalysisFilters(
            asset_type=asset_type,
            risk_level=risk_level,
            sort_by=sort_by,
            limit=limit,
        ),
    )


@app.get("/api/assets/{asset_id}/fmea", response_model=schemas.FMEAAnalysis)
def get_asset_fmea(
    asset_id: int,
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    """FMEA analysis for a single asset"""
    asset = crud.get_asset_for_fmea(db, organisation_id, asset_id)
    if asset is None:
        raise HTTPException(status_code=404, detail="Asset not found")

    try:
        analysis = fmea_service.analyze_asset(asset)
    except Exception:
        logger.exception("Error generating FMEA analysis for asset %s", asset_id)
        raise HTTPException(status_code=500, detail="Failed to generate FMEA analysis")
    return schemas.FMEAAnalysis.model_validate(analysis)


@app.get("/api/manager/risk-trends", response_model=schemas.RiskTrendsResponse)
def get_risk_trends(
    time_range: str = Query(default=risk_trend_service.DEFAULT_TIME_RANGE, alias="timeRange"),
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    """
    Organisation risk trend over 24h, 7d, 30d or 90d.
    Each point replays the risk engine at the end of its period.
    """
    try:
        assets = crud.get_assets_for_risk_analysis(db, organisation_id, limit=None)
        trends = risk_trend_service.build_risk_trends(assets, time_range)
    except risk_trend_service.UnknownTimeRangeError:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown timeRange '{time_range}'. Use one of: {', '.join(risk_trend_service.TIME_RANGES)}",
        )
    except Exception:
        logger.exception("Error generating risk trends")
        raise HTTPException(status_code=500, detail="Failed to load risk trends")

    return schemas.RiskTrendsResponse(
        time_range=time_range,
        trends=[schemas.RiskTrendPoint.model_validate(t) for t in trends],
    )


# ============================================
# Assets
# ============================================

@app.get("/api/assets", response_model=List[schemas.Asset])
def read_assets(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    return crud.get_assets(db, organisation_id, skip=skip, limit=limit)


@app.post("/api/assets", response_model=schemas.Asset, status_code=201)
def create_asset(
    asset: schemas.AssetCreate,
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    return crud.create_asset(db, organisation_id, asset)


@app.get("/api/assets/{asset_id}", response_model=schemas.Asset)
def read_asset(
    asset_id: int,
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    return _get_asset_or_404(db, organisation_id, asset_id)


@app.post("/api/assets/{asset_id}/inspections", response_model=schemas.Inspection, status_code=201)
def create_inspection(
    asset_id: int,
    inspection: schemas.InspectionCreate,
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    asset = _get_asset_or_404(db, organisation_id, asset_id)
    return crud.create_inspection(db, asset, inspection)


@app.post("/api/assets/{asset_id}/maintenance", response_model=schemas.Maintenance, status_code=201)
def create_maintenance(
    asset_id: int,
    maintenance: schemas.MaintenanceCreate,
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    asset = _get_asset_or_404(db, organisation_id, asset_id)
    return crud.create_maintenance(db, asset, maintenance)


# ============================================
# RCM Templates
# ============================================

@app.post("/api/rcm-templates", response_model=schemas.RCMTemplate, status_code=201)
def create_rcm_template(
    template: schemas.RCMTemplateCreate,
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    return crud.create_rcm_template(db, organisation_id, template)


@app.post("/api/assets/{asset_id}/rcm-templates/{template_id}", response_model=schemas.AssetTemplateLink)
def link_rcm_template(
    asset_id: int,
    template_id: int,
    organisation_id: str = Depends(get_organisation_id),
    db: Session = Depends(get_db),
):
    asset = _get_asset_or_404(db, organisation_id, asset_id)
    template = crud.get_rcm_template(db, organisation_id, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="RCM template not found")
    return crud.link_rcm_template(db, asset, template)


# ============================================
# Demo data
# ============================================

SEED_ASSET_COUNT = 40

SEED_TEMPLATES = [
    schemas.RCMTemplateCreate(
        name="Road Pavement RCM",
        asset_type=schemas.AssetType.ROAD,
        status="ACTIVE",
        failure_modes=[
            schemas.FailureModeCreate(name="Surface cracking", effect="Water ingress into base course",
                                      severity=schemas.FailureSeverity.MEDIUM, probability=7, impact=5),
            schemas.FailureModeCreate(name="Pothole formation", effect="Vehicle damage and injury claims",
                                      severity=schemas.FailureSeverity.HIGH, probability=6, impact=8),
        ],
        maintenance_tasks=[
            schemas.MaintenanceTaskCreate(name="Crack sealing", task_type="REPAIR", estimated_cost=4500),
        ],
    ),
    schemas.RCMTemplateCreate(
        name="Bridge Structure RCM",
        asset_type=schemas.AssetType.BRIDGE,
        status="ACTIVE",
        failure_modes=[
            schemas.FailureModeCreate(name="Bearing seizure", effect="Thermal stress on deck",
                                      severity=schemas.FailureSeverity.HIGH, probability=4, impact=8),
            schemas.FailureModeCreate(name="Rebar corrosion", effect="Loss of load capacity",
                                      severity=schemas.FailureSeverity.CRITICAL, probability=5, impact=10),
        ],
        maintenance_tasks=[
            schemas.MaintenanceTaskCreate(name="Principal inspection", task_type="INSPECTION", estimated_cost=12000),
            schemas.MaintenanceTaskCreate(name="Bearing replacement", task_type="REPLACEMENT", estimated_cost=85000),
        ],
    ),
    schemas.RCMTemplateCreate(
        name="Street Light RCM",
        asset_type=schemas.AssetType.STREET_LIGHT,
        status="ACTIVE",
        failure_modes=[
            schemas.FailureModeCreate(name="Lamp failure", effect="Unlit footpath",
                                      severity=schemas.FailureSeverity.LOW, probability=8, impact=3),
        ],
        maintenance_tasks=[
            schemas.MaintenanceTaskCreate(name="Lamp replacement", task_type="REPLACEMENT", estimated_cost=350),
        ],
    ),
]


@app.post("/api/seed")
def seed_data(organisation_id: str = Depends(get_organisation_id), db: Session = Depends(get_db)):
    if crud.get_assets(db, organisation_id, limit=1):
        return {"message": "Data already seeded"}

    rng = random.Random(f"aegrid-{organisation_id}")
    now = datetime.now(timezone.utc)

    templates = {t.asset_type: crud.create_rcm_template(db, organisation_id, t) for t in SEED_TEMPLATES}
    suburbs = ["Parramatta", "Penrith", "Blacktown", "Liverpool", "Campbelltown"]
    conditions = [c for c in schemas.AssetCondition]
    asset_types = [schemas.AssetType.ROAD, schemas.AssetType.BRIDGE, schemas.AssetType.STREET_LIGHT,
                   schemas.AssetType.PARK, schemas.AssetType.BUILDING]

    for i in range(SEED_ASSET_COUNT):
        asset_type = rng.choice(asset_types)
        suburb = rng.choice(suburbs)
        installed = now - timedelta(days=rng.randint(365, 365 * 60))
        asset = crud.create_asset(db, organisation_id, schemas.AssetCreate(
            asset_number=f"AST-{i + 1:04d}",
            name=f"{suburb} {asset_type.value.replace('_', ' ').title()} {i + 1}",
            asset_type=asset_type,
            condition=rng.choice(conditions),
            priority=rng.choice([p for p in schemas.AssetPriority]),
            address=f"{rng.randint(1, 400)} Main St, {suburb}",
            suburb=suburb,
            installation_date=installed,
            expected_lifespan=rng.choice([15, 25, 40, 50, 80]),
        ))

        for _ in range(rng.randint(0, 3)):
            crud.create_inspection(db, asset, schemas.InspectionCreate(
                inspection_date=now - timedelta(days=rng.randint(1, 700)),
                inspector_name=rng.choice(["J. Nguyen", "A. Patel", "S. Walker"]),
                condition=asset.condition,
            ))
        for _ in range(rng.randint(0, 5)):
            crud.create_maintenance(db, asset, schemas.MaintenanceCreate(
                maintenance_date=now - timedelta(days=rng.randint(1, 900)),
                maintenance_type=rng.choice(["PREVENTIVE", "CORRECTIVE"]),
                description="Scheduled works",
                cost=round(rng.uniform(200, 15000), 2),
            ))
        template = templates.get(asset_type.value)
        if template is not None:
            crud.link_rcm_template(db, asset, template)

    logger.info("Seeded %d assets for %s", SEED_ASSET_COUNT, organisation_id)
    return {"message": f"Seeded {SEED_ASSET_COUNT} assets"}

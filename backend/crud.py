from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

import models, schemas


def get_or_create_organisation(db: Session, organisation_id: str, name: Optional[str] = None):
    organisation = db.get(models.Organisation, organisation_id)
    if organisation is None:
        organisation = models.Organisation(id=organisation_id, name=name or organisation_id)
        db.add(organisation)
        db.flush()
    return organisation


def get_asset(db: Session, organisation_id: str, asset_id: int):
    return db.query(models.Asset).filter(
        models.Asset.id == asset_id,
        models.Asset.organisation_id == organisation_id,
    ).first()


def get_assets(db: Session, organisation_id: str, skip: int = 0, limit: int = 100):
    return (
        db.query(models.Asset)
        .filter(models.Asset.organisation_id == organisation_id)
        .order_by(models.Asset.id)
        .offset(skip)
        .limit(limit)
        .all()
    )


def _with_risk_relations(query):
    """Eager-load everything the risk engine reads."""
    return query.options(
        selectinload(models.Asset.inspections),
        selectinload(models.Asset.maintenance),
        selectinload(models.Asset.rcm_templates)
        .selectinload(models.AssetRCMTemplate.template)
        .selectinload(models.RCMTemplate.failure_modes),
    )


def get_assets_for_risk_analysis(
    db: Session,
    organisation_id: str,
    asset_type: Optional[str] = None,
    limit: Optional[int] = 50,
) -> List[models.Asset]:
    query = db.query(models.Asset).filter(models.Asset.organisation_id == organisation_id)
    if asset_type:
        query = query.filter(models.Asset.asset_type == asset_type)
    query = _with_risk_relations(query).order_by(models.Asset.id)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_asset_for_fmea(db: Session, organisation_id: str, asset_id: int):
    query = db.query(models.Asset).filter(
        models.Asset.id == asset_id,
        models.Asset.organisation_id == organisation_id,
    )
    query = _with_risk_relations(query).options(
        selectinload(models.Asset.rcm_templates)
        .selectinload(models.AssetRCMTemplate.template)
        .selectinload(models.RCMTemplate.maintenance_tasks),
    )
    return query.first()


def create_asset(db: Session, organisation_id: str, asset: schemas.AssetCreate):
    get_or_create_organisation(db, organisation_id)
    db_asset = models.Asset(organisation_id=organisation_id, **asset.model_dump())
    db.add(db_asset)
    db.commit()
    db.refresh(db_asset)
    return db_asset


def create_inspection(db: Session, asset: models.Asset, inspection: schemas.InspectionCreate):
    db_inspection = models.AssetInspection(asset_id=asset.id, **inspection.model_dump())
    db.add(db_inspection)
    db.commit()
    db.refresh(db_inspection)
    return db_inspection


def create_maintenance(db: Session, asset: models.Asset, maintenance: schemas.MaintenanceCreate):
    db_maintenance = models.AssetMaintenance(asset_id=asset.id, **maintenance.model_dump())
    db.add(db_maintenance)
    db.commit()
    db.refresh(db_maintenance)
    return db_maintenance


# ============================================
# RCM templates
# ============================================

def get_rcm_template(db: Session, organisation_id: str, template_id: int):
    return db.query(models.RCMTemplate).filter(
        models.RCMTemplate.id == template_id,
        models.RCMTemplate.organisation_id == organisation_id,
    ).first()


def create_rcm_template(db: Session, organisation_id: str, template: schemas.RCMTemplateCreate):
    get_or_create_organisation(db, organisation_id)
    data = template.model_dump(exclude={"failure_modes", "maintenance_tasks"})
    db_template = models.RCMTemplate(organisation_id=organisation_id, **data)
    db_template.failure_modes = [
        models.RCMFailureMode(**fm.model_dump()) for fm in template.failure_modes
    ]
    db_template.maintenance_tasks = [
        models.RCMMaintenanceTask(**task.model_dump()) for task in template.maintenance_tasks
    ]
    db.add(db_template)
    db.commit()
    db.refresh(db_template)
    return db_template


def link_rcm_template(db: Session, asset: models.Asset, template: models.RCMTemplate):
    link = db.query(models.AssetRCMTemplate).filter(
        models.AssetRCMTemplate.asset_id == asset.id,
        models.AssetRCMTemplate.template_id == template.id,
    ).first()
    if link is None:
        link = models.AssetRCMTemplate(asset_id=asset.id, template_id=template.id)
        db.add(link)
        db.commit()
        db.refresh(link)
    return link

from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, Text, DateTime
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


class Organisation(Base):
    __tablename__ = "organisations"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    assets = relationship("Asset", back_populates="organisation")
    rcm_templates = relationship("RCMTemplate", back_populates="organisation")


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(String, ForeignKey("organisations.id"), nullable=False, index=True)
    asset_number = Column(String, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    asset_type = Column(String, nullable=False, index=True)  # BUILDING, ROAD, BRIDGE, ...
    status = Column(String, nullable=False, default="ACTIVE")
    condition = Column(String, nullable=False, default="UNKNOWN")  # EXCELLENT .. CRITICAL, UNKNOWN
    priority = Column(String, nullable=False, default="MEDIUM")  # LOW, MEDIUM, HIGH, CRITICAL
    address = Column(String, nullable=True)
    suburb = Column(String, nullable=True)
    installation_date = Column(DateTime, nullable=True)
    expected_lifespan = Column(Integer, nullable=True)  # years
    replacement_cost = Column(Float, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    organisation = relationship("Organisation", back_populates="assets")
    inspections = relationship(
        "AssetInspection",
        back_populates="asset",
        order_by="AssetInspection.inspection_date.desc()",
        cascade="all, delete-orphan",
    )
    maintenance = relationship(
        "AssetMaintenance",
        back_populates="asset",
        order_by="AssetMaintenance.maintenance_date.desc()",
        cascade="all, delete-orphan",
    )
    rcm_templates = relationship(
        "AssetRCMTemplate", back_populates="asset", cascade="all, delete-orphan"
    )


class AssetInspection(Base):
    __tablename__ = "asset_inspections"

    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False, index=True)
    inspection_date = Column(DateTime, nullable=False)
    inspector_name = Column(String, nullable=False)
    condition = Column(String, nullable=False)
    condition_notes = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)

    asset = relationship("Asset", back_populates="inspections")


class AssetMaintenance(Base):
    __tablename__ = "asset_maintenance"

    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False, index=True)
    maintenance_date = Column(DateTime, nullable=False)
    maintenance_type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    performed_by = Column(String, nullable=True)
    cost = Column(Float, nullable=True)

    asset = relationship("Asset", back_populates="maintenance")


# ============================================
# Reliability-Centered Maintenance (RCM) Models
# ============================================

class RCMTemplate(Base):
    """
    Reusable RCM template for an asset type.
    Holds the failure modes and maintenance tasks that apply to every
    asset linked to it.
    """
    __tablename__ = "rcm_templates"

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(String, ForeignKey("organisations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    asset_type = Column(String, nullable=False)
    version = Column(String, default="1.0")
    status = Column(String, default="DRAFT")  # DRAFT, ACTIVE, ARCHIVED, REVIEW_REQUIRED
    created_at = Column(DateTime, default=_utcnow)

    organisation = relationship("Organisation", back_populates="rcm_templates")
    failure_modes = relationship(
        "RCMFailureMode", back_populates="template", cascade="all, delete-orphan"
    )
    maintenance_tasks = relationship(
        "RCMMaintenanceTask", back_populates="template", cascade="all, delete-orphan"
    )
    asset_links = relationship("AssetRCMTemplate", back_populates="template")


class RCMFailureMode(Base):
    __tablename__ = "rcm_failure_modes"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("rcm_templates.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False, default="FUNCTIONAL_FAILURE")
    cause = Column(Text, nullable=True)
    effect = Column(Text, nullable=False)
    severity = Column(String, nullable=False)  # LOW, MEDIUM, HIGH, CRITICAL
    probability = Column(Integer, nullable=True)  # 1-10
    impact = Column(Integer, nullable=True)  # 1-10
    risk_score = Column(Integer, nullable=True)

    template = relationship("RCMTemplate", back_populates="failure_modes")


class RCMMaintenanceTask(Base):
    __tablename__ = "rcm_maintenance_tasks"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("rcm_templates.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    task_type = Column(String, nullable=False, default="INSPECTION")
    frequency = Column(String, nullable=False, default="ANNUALLY")
    estimated_cost = Column(Float, nullable=True)

    template = relationship("RCMTemplate", back_populates="maintenance_tasks")


class AssetRCMTemplate(Base):
    __tablename__ = "asset_rcm_templates"

    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("rcm_templates.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=_utcnow)

    asset = relationship("Asset", back_populates="rcm_templates")
    template = relationship("RCMTemplate", back_populates="asset_links")

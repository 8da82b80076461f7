from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional
from datetime import datetime
from enum import Enum

from risk_engine import RiskLevel, TrendRiskLevel, as_utc


class AssetType(str, Enum):
    BUILDING = "BUILDING"
    ROAD = "ROAD"
    BRIDGE = "BRIDGE"
    FOOTPATH = "FOOTPATH"
    PARK = "PARK"
    PLAYGROUND = "PLAYGROUND"
    SPORTS_FACILITY = "SPORTS_FACILITY"
    LIBRARY = "LIBRARY"
    COMMUNITY_CENTRE = "COMMUNITY_CENTRE"
    CAR_PARK = "CAR_PARK"
    STREET_FURNITURE = "STREET_FURNITURE"
    TRAFFIC_LIGHT = "TRAFFIC_LIGHT"
    STREET_LIGHT = "STREET_LIGHT"
    DRAINAGE = "DRAINAGE"
    WATER_SUPPLY = "WATER_SUPPLY"
    SEWER = "SEWER"
    ELECTRICAL_INFRASTRUCTURE = "ELECTRICAL_INFRASTRUCTURE"
    TELECOMMUNICATIONS = "TELECOMMUNICATIONS"
    OTHER = "OTHER"


class AssetStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    UNDER_CONSTRUCTION = "UNDER_CONSTRUCTION"
    UNDER_MAINTENANCE = "UNDER_MAINTENANCE"
    DECOMMISSIONED = "DECOMMISSIONED"
    PLANNED = "PLANNED"


class AssetCondition(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"


class AssetPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class FailureSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ApiModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


# ============================================
# Assets and history records
# ============================================

class InspectionBase(ApiModel):
    inspection_date: datetime
    inspector_name: str
    condition: AssetCondition
    condition_notes: Optional[str] = None
    recommendations: Optional[str] = None

    @field_validator("inspection_date")
    @classmethod
    def _inspection_date_utc(cls, value):
        return as_utc(value)

class InspectionCreate(InspectionBase):
    pass

class Inspection(InspectionBase):
    id: int
    asset_id: int


class MaintenanceBase(ApiModel):
    maintenance_date: datetime
    maintenance_type: str
    description: str
    performed_by: Optional[str] = None
    cost: Optional[float] = Field(default=None, ge=0)

    @field_validator("maintenance_date")
    @classmethod
    def _maintenance_date_utc(cls, value):
        return as_utc(value)

class MaintenanceCreate(MaintenanceBase):
    pass

class Maintenance(MaintenanceBase):
    id: int
    asset_id: int


class AssetBase(ApiModel):
    asset_number: str
    name: str
    asset_type: AssetType
    description: Optional[str] = None
    status: AssetStatus = AssetStatus.ACTIVE
    condition: AssetCondition = AssetCondition.UNKNOWN
    priority: AssetPriority = AssetPriority.MEDIUM
    address: Optional[str] = None
    suburb: Optional[str] = None
    installation_date: Optional[datetime] = None
    expected_lifespan: Optional[int] = Field(default=None, ge=1)
    replacement_cost: Optional[float] = Field(default=None, ge=0)

    @field_validator("installation_date")
    @classmethod
    def _installation_date_utc(cls, value):
        return as_utc(value)

class AssetCreate(AssetBase):
    pass

class Asset(AssetBase):
    id: int
    organisation_id: str
    inspections: List[Inspection] = []
    maintenance: List[Maintenance] = []


# ============================================
# RCM templates
# ============================================

class FailureModeBase(ApiModel):
    name: str
    effect: str
    severity: FailureSeverity
    type: str = "FUNCTIONAL_FAILURE"
    description: Optional[str] = None
    cause: Optional[str] = None
    probability: Optional[int] = Field(default=None, ge=1, le=10)
    impact: Optional[int] = Field(default=None, ge=1, le=10)
    risk_score: Optional[int] = Field(default=None, ge=0)

class FailureModeCreate(FailureModeBase):
    pass

class FailureMode(FailureModeBase):
    id: int
    template_id: int


class MaintenanceTaskBase(ApiModel):
    name: str
    task_type: str = "INSPECTION"
    frequency: str = "ANNUALLY"
    estimated_cost: Optional[float] = Field(default=None, ge=0)

class MaintenanceTaskCreate(MaintenanceTaskBase):
    pass

class MaintenanceTask(MaintenanceTaskBase):
    id: int
    template_id: int


class RCMTemplateBase(ApiModel):
    name: str
    asset_type: AssetType
    description: Optional[str] = None
    version: str = "1.0"
    status: str = "DRAFT"

class RCMTemplateCreate(RCMTemplateBase):
    failure_modes: List[FailureModeCreate] = []
    maintenance_tasks: List[MaintenanceTaskCreate] = []

class RCMTemplate(RCMTemplateBase):
    id: int
    organisation_id: str
    failure_modes: List[FailureMode] = []
    maintenance_tasks: List[MaintenanceTask] = []


class AssetTemplateLink(ApiModel):
    id: int
    asset_id: int
    template_id: int
    is_active: bool


# ============================================
# Risk analysis
# ============================================

class RiskFactors(ApiModel):
    condition: int = Field(..., ge=1, le=10)
    age: int = Field(..., ge=1, le=10)
    maintenance_history: int = Field(..., ge=1, le=10)
    inspection_history: int = Field(..., ge=1, le=10)


class ScoredAsset(ApiModel):
    id: int
    name: str
    asset_number: Optional[str] = None
    asset_type: Optional[str] = None
    condition: Optional[str] = None
    priority: Optional[str] = None
    location: Optional[str] = None
    installation_date: Optional[datetime] = None
    expected_lifespan: Optional[int] = None
    risk_factors: RiskFactors
    overall_risk_score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    failure_mode_count: int
    critical_failure_modes: int
    high_failure_modes: int
    last_inspection: Optional[datetime] = None
    last_maintenance: Optional[datetime] = None
    maintenance_frequency: int = 0


class RiskStats(ApiModel):
    total: int
    critical: int
    high: int
    medium: int
    low: int
    very_low: int
    average_risk_score: Optional[int] = None


class RiskAnalysisFilters(ApiModel):
    asset_type: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    sort_by: str
    limit: int


class RiskAnalysisResponse(ApiModel):
    assets: List[ScoredAsset]
    risk_stats: RiskStats
    filters: RiskAnalysisFilters


# ============================================
# FMEA
# ============================================

class AssetSummary(ApiModel):
    id: int
    name: str
    asset_number: str
    asset_type: str
    condition: Optional[str] = None
    installation_date: Optional[datetime] = None
    expected_lifespan: Optional[int] = None


class FailureModeAnalysis(ApiModel):
    id: Optional[int] = None
    name: str
    effect: Optional[str] = None
    severity: str
    probability: Optional[int] = None
    impact: Optional[int] = None
    risk_score: Optional[int] = None
    adjusted_risk_score: int
    risk_level: RiskLevel


class MaintenanceRecommendation(ApiModel):
    type: str
    title: str
    description: str
    priority: str
    estimated_cost: float
    timeline: str


class FMEAAnalysis(ApiModel):
    asset: AssetSummary
    risk_factors: RiskFactors
    overall_risk_score: int
    overall_risk_level: RiskLevel
    failure_modes_by_severity: Dict[str, List[FailureModeAnalysis]]
    maintenance_recommendations: List[MaintenanceRecommendation]
    last_updated: datetime


# ============================================
# Risk trends
# ============================================

class RiskTrendPoint(ApiModel):
    period: str
    date: datetime
    risk_score: float
    trend: str
    change: int
    risk_level: TrendRiskLevel
    consequence: TrendRiskLevel
    likelihood: str


class RiskTrendsResponse(ApiModel):
    time_range: str
    trends: List[RiskTrendPoint]

from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Literal, Optional
from datetime import datetime

SourceType = Literal["mparivahan", "vcourt", "delhi_police"]
Region = Literal["ALL", "DL", "UP", "HR"]
CutoffLogic = Literal["≤", ">"]

SOURCE_TYPES = [
    {"value": "mparivahan", "label": "MParivahan (ACKO/CarInfo)"},
    {"value": "vcourt", "label": "VCourt"},
    {"value": "delhi_police", "label": "Delhi Police"},
]

REGIONS = [
    {"value": "ALL", "label": "All Regions"},
    {"value": "DL", "label": "Delhi (DL)"},
    {"value": "UP", "label": "Uttar Pradesh (UP)"},
    {"value": "HR", "label": "Haryana (HR)"},
]

CUTOFF_LOGIC_OPTIONS = [
    {"value": "≤", "label": "Less than or equal to (≤)"},
    {"value": ">", "label": "Greater than (>)"},
]


class SettlementConfigBase(BaseModel):
    challan_year_cutoff: Optional[int] = Field(None, ge=2000, le=2030)
    year_cutoff_logic: Optional[CutoffLogic] = None
    amount_cutoff: Optional[float] = Field(None, ge=0)
    amount_cutoff_logic: Optional[CutoffLogic] = None

    @field_validator("year_cutoff_logic", "amount_cutoff_logic", mode="before")
    @classmethod
    def blank_logic_is_none(cls, value: Any) -> Any:
        return value or None


class SettlementConfigCreate(SettlementConfigBase):
    rule_name: str
    source_type: SourceType
    region: Region
    settlement_percentage: float = Field(..., ge=0, le=1000)
    is_active: bool = True

    @field_validator("rule_name")
    @classmethod
    def rule_name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Rule name is required")
        return value.strip()


class SettlementConfigUpdate(SettlementConfigBase):
    rule_name: Optional[str] = None
    source_type: Optional[SourceType] = None
    region: Optional[Region] = None
    settlement_percentage: Optional[float] = Field(None, ge=0, le=1000)
    is_active: Optional[bool] = None


class SettlementConfigToggle(BaseModel):
    is_active: Any = None


class SettlementConfigResponse(BaseModel):
    id: int
    rule_name: str
    source_type: str
    region: str
    challan_year_cutoff: Optional[int]
    year_cutoff_logic: Optional[str]
    amount_cutoff: Optional[float]
    amount_cutoff_logic: Optional[str]
    settlement_percentage: float
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class SettlementConfigOptions(BaseModel):
    source_types: List[dict]
    regions: List[dict]
    cutoff_logic_options: List[dict]


class ClearAllResponse(BaseModel):
    message: str
    deletedCount: int

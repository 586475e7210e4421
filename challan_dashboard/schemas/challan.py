from pydantic import BaseModel, field_validator
from typing import Any, Dict, List, Optional


class HoldAmountResult(BaseModel):
    holdAmount: float
    breakdown: str
    ruleApplied: str
    baseAmount: float
    extraCharge: float
    originalAmount: float


class VehicleRecord(BaseModel):
    """One row of the challan database, as produced by the aggregation pipeline"""
    id: Optional[int] = None
    reg_no: str
    engine_no: Optional[str] = None
    chassis_no: Optional[str] = None
    vcourt_notice_status: Optional[str] = None
    vcourt_traffic_status: Optional[str] = None
    unique_challans_json: Optional[List[Any]] = None
    aggregated_challans_json: Optional[List[Any]] = None
    settlement_summary_json: Optional[Dict[str, Any]] = None
    settlement_calculation_status: Optional[str] = None
    fir_status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class VehicleWithHold(BaseModel):
    vehicle: Dict[str, Any]
    hold: HoldAmountResult


class DatabaseStats(BaseModel):
    total_records: int
    records_with_settlement_data: int
    records_with_unique_challans: int


class ChallanDatabaseResponse(BaseModel):
    count: int
    stats: DatabaseStats
    data: List[VehicleWithHold]


class ChallanLine(BaseModel):
    source: Optional[str]
    jurisdiction_id: str
    status: str
    original_amount: float
    settlement_amount: float
    is_local: bool


class SourceGroup(BaseModel):
    source: str
    display_name: str
    count: int
    original_total: float
    settlement_total: float
    challans: List[ChallanLine]


class VehicleSummaryResponse(BaseModel):
    reg_no: str
    total_challans: int
    active_challans: int
    active_original_total: float
    active_settlement_total: float
    sources: List[SourceGroup]
    hold: HoldAmountResult


class VehicleSearchRequest(BaseModel):
    regNumber: str
    mobileNumber: str
    engineNumber: str = ""
    chassisNumber: str = ""

    @field_validator("regNumber")
    @classmethod
    def reg_number_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Vehicle registration number is required")
        return value.strip()

    @field_validator("mobileNumber")
    @classmethod
    def mobile_number_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Mobile number is required")
        return value.strip()


class VehicleSearchResponse(BaseModel):
    success: bool
    message: str
    result: Optional[Any] = None


class BulkVehicle(BaseModel):
    regNo: str
    engineNo: str = ""
    chassisNo: str = ""
    stakeholderMobile: str


class BulkUploadResult(BaseModel):
    total: int
    success: int
    failed: int
    message: str

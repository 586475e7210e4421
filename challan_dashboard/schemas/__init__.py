# Pydantic schemas
from challan_dashboard.schemas.auth import Envelope, PermissionEntry, TokenData, UserLogin, UserResponse
from challan_dashboard.schemas.challan import (
    HoldAmountResult,
    VehicleRecord,
    VehicleSearchRequest,
    VehicleSearchResponse,
    BulkVehicle,
    BulkUploadResult,
)
from challan_dashboard.schemas.settlement_config import (
    SettlementConfigCreate,
    SettlementConfigUpdate,
    SettlementConfigResponse,
)

__all__ = [
    "Envelope", "PermissionEntry", "TokenData", "UserLogin", "UserResponse",
    "HoldAmountResult", "VehicleRecord", "VehicleSearchRequest", "VehicleSearchResponse",
    "BulkVehicle", "BulkUploadResult",
    "SettlementConfigCreate", "SettlementConfigUpdate", "SettlementConfigResponse",
]

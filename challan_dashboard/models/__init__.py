from challan_dashboard.models.user import User, Role, Permission, UserPermission, UserStatus
from challan_dashboard.models.settlement_config import SettlementConfig

__all__ = [
    "User",
    "Role",
    "Permission",
    "UserPermission",
    "UserStatus",
    "SettlementConfig",
]

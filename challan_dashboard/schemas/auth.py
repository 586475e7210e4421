from pydantic import BaseModel, EmailStr
from typing import Any, List, Optional
from datetime import datetime


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class PermissionEntry(BaseModel):
    resource: str
    action: str
    source: str
    role: Optional[str] = None
    granted: Optional[bool] = None


class RoleResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class PermissionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    resource: str
    action: str
    is_active: bool

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str
    status: str
    permissions: List[PermissionEntry]


class ManagedUserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: RoleResponse
    last_login: Optional[datetime]
    created_at: Optional[datetime]
    permissions: List[PermissionEntry]


class TokenData(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class RoleUpdateRequest(BaseModel):
    userId: int
    roleId: int


class PermissionChangeRequest(BaseModel):
    userId: int
    permissionId: int


class Envelope(BaseModel):
    """Response wrapper the dashboard expects from the auth endpoints"""
    success: bool = True
    data: Any = None
    message: Optional[str] = None

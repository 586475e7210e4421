from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging
from challan_dashboard.database import get_db
from challan_dashboard.models.user import User, Role, Permission, UserPermission
from challan_dashboard.middleware.auth import require_permission, load_user
from challan_dashboard.core.permissions import effective_permissions
from challan_dashboard.schemas.auth import (
    Envelope,
    ManagedUserResponse,
    PermissionChangeRequest,
    PermissionResponse,
    RoleResponse,
    RoleUpdateRequest,
)

router = APIRouter()
logger = logging.getLogger(__name__)

can_manage = require_permission("rbac", "manage")


def to_managed_user(user: User) -> ManagedUserResponse:
    return ManagedUserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=RoleResponse.model_validate(user.role),
        last_login=user.last_login,
        created_at=user.created_at,
        permissions=effective_permissions(user),
    )


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await load_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _get_permission_or_404(db: AsyncSession, permission_id: int) -> Permission:
    result = await db.execute(select(Permission).where(Permission.id == permission_id))
    permission = result.scalar_one_or_none()
    if permission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Permission not found")
    return permission


async def _set_override(db: AsyncSession, request: PermissionChangeRequest, granted: bool) -> User:
    user = await _get_user_or_404(db, request.userId)
    await _get_permission_or_404(db, request.permissionId)

    result = await db.execute(
        select(UserPermission).where(
            UserPermission.user_id == request.userId,
            UserPermission.permission_id == request.permissionId,
        )
    )
    override = result.scalar_one_or_none()
    if override is None:
        db.add(UserPermission(user_id=user.id, permission_id=request.permissionId, granted=granted))
    else:
        override.granted = granted
    await db.commit()

    return await load_user(db, user.id)


@router.get("/users", response_model=Envelope)
async def list_users(
    current_user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db)
):
    """All users with their role and effective permissions"""
    result = await db.execute(select(User).order_by(User.id))
    return Envelope(data=[to_managed_user(user) for user in result.scalars().all()])


@router.get("/roles", response_model=Envelope)
async def list_roles(
    current_user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(Role).order_by(Role.id))
    return Envelope(data=[RoleResponse.model_validate(role) for role in result.scalars().all()])


@router.get("/permissions", response_model=Envelope)
async def list_permissions(
    current_user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(Permission).order_by(Permission.id))
    return Envelope(
        data=[PermissionResponse.model_validate(p) for p in result.scalars().all()]
    )


@router.put("/users/role", response_model=Envelope)
async def update_user_role(
    request: RoleUpdateRequest,
    current_user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db)
):
    """Assign a different role to a user"""
    user = await _get_user_or_404(db, request.userId)

    result = await db.execute(select(Role).where(Role.id == request.roleId))
    role = result.scalar_one_or_none()
    if role is None or not role.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")

    user.role_id = role.id
    await db.commit()
    logger.info(f"{current_user.email} moved user {user.id} to role {role.name}")

    return Envelope(data=to_managed_user(await load_user(db, user.id)))


@router.post("/users/permissions/grant", response_model=Envelope)
async def grant_permission(
    request: PermissionChangeRequest,
    current_user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db)
):
    user = await _set_override(db, request, granted=True)
    logger.info(f"{current_user.email} granted permission {request.permissionId} to user {user.id}")
    return Envelope(data=to_managed_user(user))


@router.post("/users/permissions/revoke", response_model=Envelope)
async def revoke_permission(
    request: PermissionChangeRequest,
    current_user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db)
):
    user = await _set_override(db, request, granted=False)
    logger.info(f"{current_user.email} revoked permission {request.permissionId} from user {user.id}")
    return Envelope(data=to_managed_user(user))

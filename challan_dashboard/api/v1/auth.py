from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime, timezone
import logging
from challan_dashboard.database import get_db
from challan_dashboard.models.user import User, UserStatus
from challan_dashboard.schemas.auth import (
    Envelope,
    RefreshTokenRequest,
    TokenData,
    UserLogin,
    UserResponse,
)
from challan_dashboard.middleware.auth import get_current_user, load_user
from challan_dashboard.core.permissions import effective_permissions
from challan_dashboard.core.security import (
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token
)

router = APIRouter()
logger = logging.getLogger(__name__)


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role.name if user.role else "",
        status=user.status.value if hasattr(user.status, 'value') else str(user.status),
        permissions=effective_permissions(user),
    )


@router.post("/login", response_model=Envelope)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login and get access/refresh tokens"""
    result = await db.execute(
        select(User).where(User.email == credentials.email)
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Failed login attempt for {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    if user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    user.last_login = datetime.now(timezone.utc)
    await db.commit()

    access_token = create_access_token(data={"sub": str(user.id)})
    refresh_token = create_refresh_token(data={"sub": str(user.id)})

    return Envelope(
        data=TokenData(
            access_token=access_token,
            refresh_token=refresh_token,
            user=to_user_response(user),
        )
    )


@router.post("/refresh", response_model=Envelope)
async def refresh_token(
    refresh_token_data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Refresh access token using refresh token"""
    payload = decode_token(refresh_token_data.refresh_token)

    if not payload or payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    user = await load_user(db, user_id)
    if not user or user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return Envelope(
        data=TokenData(
            access_token=create_access_token(data={"sub": str(user.id)}),
            refresh_token=create_refresh_token(data={"sub": str(user.id)}),
        )
    )


@router.get("/profile", response_model=Envelope)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Current user with effective permissions"""
    return Envelope(data={"user": to_user_response(current_user)})


@router.post("/logout", response_model=Envelope)
async def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client drops them"""
    logger.info(f"User {current_user.email} logged out")
    return Envelope(message="Logged out successfully")

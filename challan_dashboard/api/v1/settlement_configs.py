from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from typing import List
import logging
from challan_dashboard.database import get_db
from challan_dashboard.models.settlement_config import SettlementConfig
from challan_dashboard.models.user import User
from challan_dashboard.middleware.auth import require_permission
from challan_dashboard.schemas.settlement_config import (
    CUTOFF_LOGIC_OPTIONS,
    REGIONS,
    SOURCE_TYPES,
    ClearAllResponse,
    SettlementConfigCreate,
    SettlementConfigOptions,
    SettlementConfigResponse,
    SettlementConfigToggle,
    SettlementConfigUpdate,
)

router = APIRouter()
logger = logging.getLogger(__name__)

can_read = require_permission("settlement_configs", "read")
can_write = require_permission("settlement_configs", "write")

NOT_FOUND = "Settlement configuration not found"
DUPLICATE_NAME = "A settlement configuration with this rule name already exists"


async def _get_config_or_404(db: AsyncSession, config_id: int) -> SettlementConfig:
    result = await db.execute(select(SettlementConfig).where(SettlementConfig.id == config_id))
    config = result.scalar_one_or_none()
    if config is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return config


async def _ensure_unique_name(db: AsyncSession, rule_name: str, exclude_id: int = None):
    query = select(SettlementConfig.id).where(SettlementConfig.rule_name == rule_name)
    if exclude_id is not None:
        query = query.where(SettlementConfig.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_NAME)


@router.get("", response_model=List[SettlementConfigResponse])
@router.get("/", response_model=List[SettlementConfigResponse], include_in_schema=False)
async def list_settlement_configs(
    current_user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Get all settlement configurations"""
    result = await db.execute(
        select(SettlementConfig).order_by(
            SettlementConfig.source_type.asc(),
            SettlementConfig.region.asc(),
            SettlementConfig.challan_year_cutoff.asc(),
        )
    )
    return result.scalars().all()


@router.get("/options", response_model=SettlementConfigOptions)
async def get_settlement_config_options(current_user: User = Depends(can_read)):
    """Choices offered by the settlement rule form"""
    return SettlementConfigOptions(
        source_types=SOURCE_TYPES,
        regions=REGIONS,
        cutoff_logic_options=CUTOFF_LOGIC_OPTIONS,
    )


@router.delete("/clear-all", response_model=ClearAllResponse)
async def clear_all_settlement_configs(
    current_user: User = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """Delete every settlement configuration"""
    result = await db.execute(delete(SettlementConfig))
    await db.commit()
    deleted = result.rowcount or 0
    logger.info(f"User {current_user.email} cleared {deleted} settlement configurations")
    return ClearAllResponse(
        message=f"Deleted {deleted} settlement configurations",
        deletedCount=deleted,
    )


@router.get("/{config_id}", response_model=SettlementConfigResponse)
async def get_settlement_config(
    config_id: int,
    current_user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Get settlement configuration by ID"""
    return await _get_config_or_404(db, config_id)


@router.post("", response_model=SettlementConfigResponse, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=SettlementConfigResponse, status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_settlement_config(
    config_data: SettlementConfigCreate,
    current_user: User = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """Create new settlement configuration"""
    await _ensure_unique_name(db, config_data.rule_name)

    config = SettlementConfig(
        rule_name=config_data.rule_name,
        source_type=config_data.source_type,
        region=config_data.region,
        challan_year_cutoff=config_data.challan_year_cutoff or None,
        year_cutoff_logic=config_data.year_cutoff_logic,
        amount_cutoff=config_data.amount_cutoff or None,
        amount_cutoff_logic=config_data.amount_cutoff_logic,
        settlement_percentage=config_data.settlement_percentage,
        is_active=config_data.is_active,
    )
    db.add(config)
    await db.commit()
    await db.refresh(config)

    logger.info(f"Settlement rule {config.rule_name} created by {current_user.email}")
    return config


@router.put("/{config_id}", response_model=SettlementConfigResponse)
async def update_settlement_config(
    config_id: int,
    config_data: SettlementConfigUpdate,
    current_user: User = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """Update settlement configuration; cutoffs left out of the payload are cleared"""
    config = await _get_config_or_404(db, config_id)

    if config_data.rule_name:
        await _ensure_unique_name(db, config_data.rule_name, exclude_id=config_id)
        config.rule_name = config_data.rule_name
    if config_data.source_type:
        config.source_type = config_data.source_type
    if config_data.region:
        config.region = config_data.region

    config.challan_year_cutoff = config_data.challan_year_cutoff or None
    config.year_cutoff_logic = config_data.year_cutoff_logic
    config.amount_cutoff = config_data.amount_cutoff or None
    config.amount_cutoff_logic = config_data.amount_cutoff_logic

    if config_data.settlement_percentage is not None:
        config.settlement_percentage = config_data.settlement_percentage
    if config_data.is_active is not None:
        config.is_active = config_data.is_active

    await db.commit()
    await db.refresh(config)

    logger.info(f"Settlement rule {config.id} updated by {current_user.email}")
    return config


@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_settlement_config(
    config_id: int,
    current_user: User = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """Delete settlement configuration"""
    config = await _get_config_or_404(db, config_id)
    await db.delete(config)
    await db.commit()

    logger.info(f"Settlement rule {config_id} deleted by {current_user.email}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{config_id}/toggle", response_model=SettlementConfigResponse)
async def toggle_settlement_config(
    config_id: int,
    toggle: SettlementConfigToggle,
    current_user: User = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """Toggle active status"""
    if not isinstance(toggle.is_active, bool):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="is_active must be a boolean value"
        )

    config = await _get_config_or_404(db, config_id)
    config.is_active = toggle.is_active
    await db.commit()
    await db.refresh(config)
    return config

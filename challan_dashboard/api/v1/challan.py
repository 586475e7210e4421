from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import PlainTextResponse
from typing import Any, Dict, Literal
import logging
from challan_dashboard.config import get_settings
from challan_dashboard.schemas.challan import (
    BulkUploadResult,
    ChallanDatabaseResponse,
    HoldAmountResult,
    VehicleRecord,
    VehicleSearchRequest,
    VehicleSearchResponse,
    VehicleSummaryResponse,
    VehicleWithHold,
)
from challan_dashboard.middleware.auth import require_permission
from challan_dashboard.models.user import User
from challan_dashboard.core.pipeline_client import ChallanPipelineClient, PipelineError
from challan_dashboard.core.hold_engine import compute_hold
from challan_dashboard.core.bulk_upload import BulkUploadError, csv_template, parse_bulk_csv, run_bulk_upload
from challan_dashboard.core.vehicle_listing import (
    DEFAULT_SORT_FIELD,
    database_stats,
    filter_vehicles,
    find_vehicle,
    sort_vehicles,
    summarize_vehicle,
)

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)

can_read = require_permission("challans", "read")
can_search = require_permission("challans", "search")


def get_pipeline_client() -> ChallanPipelineClient:
    return ChallanPipelineClient()


async def _load_database(client: ChallanPipelineClient):
    try:
        return await client.fetch_database()
    except PipelineError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@router.get("/database", response_model=ChallanDatabaseResponse)
async def get_challan_database(
    search: str = Query("", description="Registration number substring"),
    status_filter: str = Query("all", alias="status"),
    sort_field: str = Query(DEFAULT_SORT_FIELD),
    sort_direction: Literal["asc", "desc"] = Query("desc"),
    current_user: User = Depends(can_read),
    client: ChallanPipelineClient = Depends(get_pipeline_client),
):
    """All vehicles from the challan database with their hold amounts"""
    vehicles = await _load_database(client)
    rows = sort_vehicles(filter_vehicles(vehicles, search, status_filter), sort_field, sort_direction)

    return ChallanDatabaseResponse(
        count=len(rows),
        stats=database_stats(vehicles),
        data=[VehicleWithHold(vehicle=dict(v), hold=compute_hold(v)) for v in rows],
    )


@router.get("/database/{reg_no}", response_model=VehicleSummaryResponse)
async def get_vehicle_summary(
    reg_no: str,
    current_user: User = Depends(can_read),
    client: ChallanPipelineClient = Depends(get_pipeline_client),
):
    """Per-source challan breakdown and hold amount for one vehicle"""
    vehicle = find_vehicle(await _load_database(client), reg_no)
    if vehicle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found in challan database"
        )
    return summarize_vehicle(vehicle)


@router.post("/hold-amount", response_model=HoldAmountResult)
async def calculate_hold_amount(
    vehicle: VehicleRecord,
    current_user: User = Depends(can_read),
):
    """Hold amount for a vehicle record supplied by the caller"""
    return compute_hold(vehicle.model_dump())


@router.post("/search", response_model=VehicleSearchResponse)
async def search_challans(
    request: VehicleSearchRequest,
    current_user: User = Depends(can_search),
    client: ChallanPipelineClient = Depends(get_pipeline_client),
):
    """Start the challan pipeline for one vehicle"""
    try:
        result = await client.trigger_search(request)
    except PipelineError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return VehicleSearchResponse(
        success=True,
        message=(
            f"Successfully initiated challan search for {request.regNumber}. "
            f"The pipeline is now running in the background."
        ),
        result=result,
    )


@router.post("/database/{reg_no}/refetch", response_model=VehicleSearchResponse)
async def refetch_vehicle(
    reg_no: str,
    current_user: User = Depends(can_search),
    client: ChallanPipelineClient = Depends(get_pipeline_client),
):
    """Run the pipeline again for a vehicle already in the database"""
    vehicle: Dict[str, Any] = find_vehicle(await _load_database(client), reg_no)
    if vehicle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found in challan database"
        )

    request = VehicleSearchRequest(
        regNumber=vehicle["reg_no"],
        engineNumber=vehicle.get("engine_no") or "",
        chassisNumber=vehicle.get("chassis_no") or "",
        mobileNumber=settings.DEFAULT_STAKEHOLDER_MOBILE,
    )
    try:
        result = await client.trigger_search(request)
    except PipelineError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return VehicleSearchResponse(
        success=True,
        message=(
            f"Successfully initiated challan refetch for {request.regNumber}. "
            f"The pipeline is now running in the background."
        ),
        result=result,
    )


@router.get("/bulk-upload/template", response_class=PlainTextResponse)
async def download_bulk_upload_template(current_user: User = Depends(can_search)):
    return PlainTextResponse(
        csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=bulk_upload_template.csv"},
    )


@router.post("/bulk-upload", response_model=BulkUploadResult)
async def bulk_upload(
    file: UploadFile = File(...),
    current_user: User = Depends(can_search),
    client: ChallanPipelineClient = Depends(get_pipeline_client),
):
    """Push every vehicle of a CSV through the pipeline, one at a time"""
    raw = await file.read()
    try:
        vehicles = parse_bulk_csv(raw.decode("utf-8"))
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CSV file must be UTF-8 encoded")
    except BulkUploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Bulk upload of {len(vehicles)} vehicles started by {current_user.email}")
    return await run_bulk_upload(client, vehicles)

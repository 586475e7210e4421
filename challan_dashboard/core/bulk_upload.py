"""
Bulk vehicle upload.

Vehicles from a CSV are pushed through the pipeline search one at a time with a
fixed pause between requests so the scraped sites are not hammered.
"""
import asyncio
import csv
import io
import logging
from typing import List, Optional

from challan_dashboard.config import get_settings
from challan_dashboard.core.pipeline_client import ChallanPipelineClient, PipelineError
from challan_dashboard.schemas.challan import BulkUploadResult, BulkVehicle, VehicleSearchRequest

settings = get_settings()
logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ["regNo", "engineNo", "chassisNo", "stakeholderMobile"]

TEMPLATE_ROWS = [
    ["DL1SAD6045", "", "", "9315970244"],
    ["DL3CBZ4267", "123456789", "ABCD123456", "8287041552"],
    ["HR12AB1234", "987654321", "XYZ789012", "9876543210"],
]


class BulkUploadError(ValueError):
    """Raised for CSV files that cannot be turned into a vehicle list"""


def csv_template() -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(REQUIRED_HEADERS)
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue()


def parse_bulk_csv(text: str, default_mobile: Optional[str] = None) -> List[BulkVehicle]:
    default_mobile = default_mobile or settings.DEFAULT_STAKEHOLDER_MOBILE
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))

    headers = [h.strip() for h in next(reader, [])]
    missing = [h for h in REQUIRED_HEADERS if h not in headers]
    if missing:
        raise BulkUploadError(
            "Invalid CSV format. Please use the provided template. "
            "Required columns: " + ", ".join(REQUIRED_HEADERS)
        )
    index = {name: headers.index(name) for name in REQUIRED_HEADERS}

    def cell(row: List[str], name: str) -> str:
        position = index[name]
        return row[position].strip() if position < len(row) else ""

    vehicles = []
    for row in reader:
        if not any(value.strip() for value in row):
            continue
        reg_no = cell(row, "regNo")
        if not reg_no:
            continue
        vehicles.append(
            BulkVehicle(
                regNo=reg_no,
                engineNo=cell(row, "engineNo"),
                chassisNo=cell(row, "chassisNo"),
                stakeholderMobile=cell(row, "stakeholderMobile") or default_mobile,
            )
        )

    if not vehicles:
        raise BulkUploadError("No valid vehicle data found in CSV.")
    return vehicles


async def run_bulk_upload(
    client: ChallanPipelineClient,
    vehicles: List[BulkVehicle],
    delay_seconds: Optional[float] = None,
) -> BulkUploadResult:
    if delay_seconds is None:
        delay_seconds = settings.BULK_UPLOAD_DELAY_SECONDS

    success = 0
    failed = 0
    total = len(vehicles)

    for position, vehicle in enumerate(vehicles, start=1):
        logger.info(f"Processing vehicle {position}/{total}: {vehicle.regNo}")
        try:
            await client.trigger_search(
                VehicleSearchRequest(
                    regNumber=vehicle.regNo,
                    engineNumber=vehicle.engineNo,
                    chassisNumber=vehicle.chassisNo,
                    mobileNumber=vehicle.stakeholderMobile,
                )
            )
            success += 1
        except (PipelineError, ValueError) as e:
            logger.error(f"Vehicle {vehicle.regNo} failed: {str(e)}")
            failed += 1

        if position < total and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

    if success > 0:
        message = (
            f"Successfully processed {success} out of {total} vehicles through the complete pipeline. "
            f"{failed} vehicles failed."
        )
    else:
        message = f"All {total} vehicles failed to process."
    logger.info(f"Bulk upload completed for {total} vehicles ({success} ok, {failed} failed)")

    return BulkUploadResult(total=total, success=success, failed=failed, message=message)

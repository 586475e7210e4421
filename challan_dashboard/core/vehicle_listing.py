"""Filtering, sorting and per-vehicle summaries for the challan database view"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence

from challan_dashboard.core.challan_rules import (
    SOURCE_DISPLAY_NAMES,
    ChallanSource,
    coerce_amount,
    normalize_challan,
)
from challan_dashboard.core.hold_engine import compute_hold
from challan_dashboard.schemas.challan import (
    ChallanLine,
    DatabaseStats,
    SourceGroup,
    VehicleSummaryResponse,
)

logger = logging.getLogger(__name__)

SORT_FIELDS = (
    "reg_no",
    "challan_count",
    "original_amount",
    "settlement_amount",
    "savings",
    "hold_amount",
    "status",
    "fir_status",
    "vehicle_status",
    "updated_at",
)

DEFAULT_SORT_FIELD = "updated_at"


def _challans(vehicle: Mapping[str, Any]) -> List[Any]:
    challans = vehicle.get("unique_challans_json")
    return challans if isinstance(challans, list) else []


def _summary_amount(vehicle: Mapping[str, Any], key: str) -> float:
    summary = vehicle.get("settlement_summary_json")
    if not isinstance(summary, Mapping):
        return 0
    return coerce_amount(summary.get(key))


def _timestamp(value: Any) -> float:
    if not value:
        return 0
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except (ValueError, OverflowError, OSError):
        return 0


def sort_key(vehicle: Mapping[str, Any], sort_field: str):
    if sort_field == "reg_no":
        return str(vehicle.get("reg_no") or "")
    if sort_field == "challan_count":
        return len(_challans(vehicle))
    if sort_field == "original_amount":
        return _summary_amount(vehicle, "totalOriginalAmount")
    if sort_field == "settlement_amount":
        return _summary_amount(vehicle, "totalSettlementAmount")
    if sort_field == "savings":
        return _summary_amount(vehicle, "totalSavings")
    if sort_field == "hold_amount":
        return compute_hold(vehicle).holdAmount
    if sort_field == "status":
        return str(vehicle.get("settlement_calculation_status") or "")
    if sort_field in ("fir_status", "vehicle_status"):
        return str(vehicle.get("fir_status") or "")
    return _timestamp(vehicle.get("updated_at"))


def filter_vehicles(
    vehicles: Sequence[Mapping[str, Any]],
    search_term: str = "",
    status_filter: str = "all",
) -> List[Mapping[str, Any]]:
    term = (search_term or "").lower()
    wanted_status = (status_filter or "all").lower()

    result = []
    for vehicle in vehicles:
        if term and term not in str(vehicle.get("reg_no") or "").lower():
            continue
        if wanted_status != "all":
            status = str(vehicle.get("settlement_calculation_status") or "").lower()
            if status != wanted_status:
                continue
        result.append(vehicle)
    return result


def sort_vehicles(
    vehicles: Sequence[Mapping[str, Any]],
    sort_field: str = DEFAULT_SORT_FIELD,
    direction: str = "desc",
) -> List[Mapping[str, Any]]:
    if sort_field not in SORT_FIELDS:
        sort_field = DEFAULT_SORT_FIELD
    return sorted(
        vehicles,
        key=lambda vehicle: sort_key(vehicle, sort_field),
        reverse=direction != "asc",
    )


def database_stats(vehicles: Sequence[Mapping[str, Any]]) -> DatabaseStats:
    return DatabaseStats(
        total_records=len(vehicles),
        records_with_settlement_data=sum(1 for v in vehicles if v.get("settlement_summary_json")),
        records_with_unique_challans=sum(1 for v in vehicles if _challans(v)),
    )


def find_vehicle(vehicles: Sequence[Mapping[str, Any]], reg_no: str):
    wanted = reg_no.strip().upper()
    for vehicle in vehicles:
        if str(vehicle.get("reg_no") or "").strip().upper() == wanted:
            return vehicle
    return None


def summarize_vehicle(vehicle: Mapping[str, Any]) -> VehicleSummaryResponse:
    """
    Detail view of one vehicle: active challans grouped by source with original
    and settlement totals, plus the hold amount.
    """
    challans = _challans(vehicle)
    normalized = [normalize_challan(c) for c in challans]
    active = [c for c in normalized if c.is_active]

    groups: Dict[str, List[ChallanLine]] = {source.value: [] for source in ChallanSource}
    for challan in active:
        key = challan.source.value if challan.source else "other"
        groups.setdefault(key, []).append(
            ChallanLine(
                source=challan.source.value if challan.source else None,
                jurisdiction_id=challan.jurisdiction_id,
                status=challan.status,
                original_amount=challan.amount,
                settlement_amount=challan.settlement_amount,
                is_local=challan.is_local,
            )
        )

    sources = []
    for key, lines in groups.items():
        if key == "other" and not lines:
            continue
        display_name = SOURCE_DISPLAY_NAMES.get(ChallanSource(key), key) if key != "other" else "Other"
        sources.append(
            SourceGroup(
                source=key,
                display_name=display_name,
                count=len(lines),
                original_total=sum(line.original_amount for line in lines),
                settlement_total=sum(line.settlement_amount for line in lines),
                challans=lines,
            )
        )

    return VehicleSummaryResponse(
        reg_no=str(vehicle.get("reg_no") or ""),
        total_challans=len(challans),
        active_challans=len(active),
        active_original_total=sum(c.amount for c in active),
        active_settlement_total=sum(c.settlement_amount for c in active),
        sources=sources,
        hold=compute_hold(vehicle),
    )

"""
Per-challan rules used by the hold amount engine and the vehicle views.

Challan records reach us from several scrapers, each with its own field layout.
Every source gets one amount adapter; the public helpers below never raise and
degrade to a safe default instead:

- extract_amount -> 0
- resolve_settlement_amount -> original amount
- is_active -> True
- is_local_jurisdiction -> False
"""
import enum
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Plausible fine range for amounts scraped out of VCourt case details
MAX_PLAUSIBLE_FINE = 100000

RUPEE_SYMBOL = "₹"

INACTIVE_STATUS_MARKERS = ("completed", "disposed", "paid", "settled", "closed")

STATUS_FIELDS = ("status", "challanStatus", "paymentStatus")

JURISDICTION_ID_FIELDS = (
    "challanNo",
    "noticeNo",
    "challanNumber",
    "noticeNumber",
    "caseNumber",
    "firNumber",
)

SETTLEMENT_FIELDS = ("settlementAmount", "settledAmount", "finalAmount", "paidAmount")

ACKO_AMOUNT_FIELDS = (
    "fineAmount",
    "penaltyAmount",
    "totalAmount",
    "amount",
    "fine",
    "penalty",
    "challanAmount",
)

VCOURT_CASE_DETAIL_FIELDS = ("Fine", "Amount", "Total Amount", "Challan Amount", "Penalty")

VCOURT_DIRECT_FIELDS = ("amount", "fine", "penalty", "challanAmount", "totalAmount", "proposedFine")

TRAFFIC_NOTICE_FIELDS = ("amount", "fine", "penalty", "challanAmount", "totalAmount", "fineAmount")

GENERIC_AMOUNT_FIELDS = ("fine", "penalty", "challanAmount", "totalAmount", "proposedFine", "caseAmount")

_NON_NUMERIC = re.compile(r"[^\d.]")
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))", re.ASCII)
_LEADING_DIGIT = re.compile(r"\d", re.ASCII)


class ChallanSource(str, enum.Enum):
    VCOURT_NOTICE = "vcourt_notice"
    VCOURT_TRAFFIC = "vcourt_traffic"
    TRAFFIC_NOTICE = "traffic_notice"
    ACKO = "acko"


SOURCE_DISPLAY_NAMES = {
    ChallanSource.VCOURT_NOTICE: "VCourt Notice",
    ChallanSource.VCOURT_TRAFFIC: "VCourt Traffic",
    ChallanSource.TRAFFIC_NOTICE: "Delhi Police Traffic",
    ChallanSource.ACKO: "ACKO",
}


@dataclass(frozen=True)
class NormalizedChallan:
    """Read-only view of one challan with every heuristic already applied"""

    source: Optional[ChallanSource]
    amount: float
    settlement_amount: float
    status: str
    jurisdiction_id: str
    is_active: bool
    is_local: bool


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_present(value: Any) -> bool:
    """Upstream JSON treats null, false, 0, "" and NaN as missing"""
    if value is None or value is False:
        return False
    if _is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def _present_number(value: Any) -> bool:
    return _is_number(value) and _is_present(value)


def _to_text(value: Any) -> str:
    if _is_number(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def _parse_float(text: Any) -> Optional[float]:
    """Parse the leading decimal number of a string, None when there is none"""
    match = _LEADING_FLOAT.match(_to_text(text))
    if not match:
        return None
    return float(match.group(1))


def _parse_currency(value: Any) -> Optional[float]:
    """Strip everything but digits and dots, then parse ("₹1,500.00" -> 1500.0)"""
    return _parse_float(_NON_NUMERIC.sub("", _to_text(value)))


def _positive_currency(value: Any) -> Optional[float]:
    amount = _parse_currency(value)
    if amount is not None and amount > 0:
        return amount
    return None


def _plausible_currency(value: Any) -> Optional[float]:
    amount = _parse_currency(value)
    if amount is not None and 0 < amount < MAX_PLAUSIBLE_FINE:
        return amount
    return None


def _number_or_currency(value: Any) -> Optional[float]:
    """Numbers are taken as they are, strings must parse to a positive amount"""
    if _is_number(value):
        return value
    if isinstance(value, str):
        return _positive_currency(value)
    return None


def _case_details(challan: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    detailed_info = challan.get("detailedInfo")
    if not isinstance(detailed_info, Mapping):
        return None
    case_details = detailed_info.get("caseDetails")
    if not isinstance(case_details, Mapping):
        return None
    return case_details


def get_source(challan: Mapping[str, Any]) -> Optional[ChallanSource]:
    try:
        return ChallanSource(challan.get("source"))
    except (ValueError, TypeError, AttributeError):
        return None


# ---------------------------------------------------------------------------
# Source adapters
# ---------------------------------------------------------------------------

def _acko_amount(challan: Mapping[str, Any]) -> Optional[float]:
    """ACKO/CarInfo: numeric fields first, then the same fields as strings"""
    for field in ACKO_AMOUNT_FIELDS:
        if _present_number(challan.get(field)):
            return challan[field]

    for field in ACKO_AMOUNT_FIELDS:
        value = challan.get(field)
        if isinstance(value, str) and value:
            amount = _positive_currency(value)
            if amount is not None:
                return amount
    return None


def _vcourt_amount(challan: Mapping[str, Any]) -> Optional[float]:
    """VCourt notice and traffic records keep the fine inside detailedInfo.caseDetails"""
    case_details = _case_details(challan)
    if case_details is not None:
        proposed_fine = case_details.get("Proposed Fine")
        if _is_present(proposed_fine):
            amount = _parse_float(proposed_fine)
            if amount is not None:
                return amount

        for field in VCOURT_CASE_DETAIL_FIELDS:
            value = case_details.get(field)
            if _is_present(value):
                amount = _plausible_currency(value)
                if amount is not None:
                    return amount

        for value in case_details.values():
            if isinstance(value, str) and RUPEE_SYMBOL in value:
                amount = _plausible_currency(value)
                if amount is not None:
                    return amount

    for field in VCOURT_DIRECT_FIELDS:
        value = challan.get(field)
        if _is_present(value):
            amount = _number_or_currency(value)
            if amount is not None:
                return amount

    challan_data = challan.get("challanData")
    if isinstance(challan_data, Mapping):
        for field in ("amount", "fine", "penalty"):
            value = challan_data.get(field)
            if _is_present(value):
                return _positive_currency(value)
    return None


def _traffic_notice_amount(challan: Mapping[str, Any]) -> Optional[float]:
    """Delhi Police notices: penaltyAmount is the primary field"""
    for field in ("penaltyAmount",) + TRAFFIC_NOTICE_FIELDS:
        value = challan.get(field)
        if _is_present(value):
            amount = _number_or_currency(value)
            if amount is not None:
                return amount
    return None


AMOUNT_ADAPTERS: Dict[ChallanSource, Callable[[Mapping[str, Any]], Optional[float]]] = {
    ChallanSource.ACKO: _acko_amount,
    ChallanSource.VCOURT_NOTICE: _vcourt_amount,
    ChallanSource.VCOURT_TRAFFIC: _vcourt_amount,
    ChallanSource.TRAFFIC_NOTICE: _traffic_notice_amount,
}


def _generic_amount(challan: Mapping[str, Any]) -> Optional[float]:
    for field in GENERIC_AMOUNT_FIELDS:
        if _present_number(challan.get(field)):
            return challan[field]

    case_details = _case_details(challan)
    if case_details is not None:
        for value in case_details.values():
            if isinstance(value, str) and "." in value:
                amount = _parse_float(value)
                if amount is not None and 0 < amount < MAX_PLAUSIBLE_FINE:
                    return amount
    return None


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def extract_amount(challan: Mapping[str, Any]) -> float:
    """
    Original fine amount of a challan.

    A numeric `amount` wins for every source. Otherwise the source adapter runs,
    then the generic field scan, then a last look through caseDetails.
    Returns 0 when nothing usable is found.
    """
    try:
        if _present_number(challan.get("amount")):
            return challan["amount"]

        source = get_source(challan)
        adapter = AMOUNT_ADAPTERS.get(source)
        if adapter is not None:
            amount = adapter(challan)
            if amount is not None:
                return amount

        amount = _generic_amount(challan)
        if amount is not None:
            return amount
        return 0
    except Exception as e:
        logger.error(f"Error getting challan amount: {str(e)}")
        return 0


def resolve_settlement_amount(challan: Mapping[str, Any]) -> float:
    """Post-discount amount of a challan, falling back to the original amount"""
    try:
        value = next((challan.get(f) for f in SETTLEMENT_FIELDS if _is_present(challan.get(f))), None)
        if isinstance(value, str):
            value = _parse_currency(value) or 0
        if _present_number(value):
            return value
    except Exception as e:
        logger.error(f"Error getting challan settlement amount: {str(e)}")
    return extract_amount(challan)


def get_status(challan: Mapping[str, Any]) -> str:
    for field in STATUS_FIELDS:
        value = challan.get(field)
        if _is_present(value):
            return _to_text(value)
    return ""


def is_active(challan: Mapping[str, Any]) -> bool:
    """False once the status mentions completed/disposed/paid/settled/closed"""
    try:
        status = get_status(challan).lower()
        return not any(marker in status for marker in INACTIVE_STATUS_MARKERS)
    except Exception as e:
        logger.error(f"Error checking challan status: {str(e)}")
        return True


def get_jurisdiction_id(challan: Mapping[str, Any]) -> str:
    for field in JURISDICTION_ID_FIELDS:
        value = challan.get(field)
        if _is_present(value):
            return _to_text(value)
    return ""


def is_local_jurisdiction(challan: Mapping[str, Any]) -> bool:
    """DL challans carry a DL prefix or a purely numeric identifier"""
    try:
        identifier = get_jurisdiction_id(challan).upper()
        if not identifier:
            return False
        return identifier.startswith("DL") or bool(_LEADING_DIGIT.match(identifier))
    except Exception as e:
        logger.error(f"Error checking DL status: {str(e)}")
        return False


def normalize_challan(challan: Mapping[str, Any]) -> NormalizedChallan:
    if not isinstance(challan, Mapping):
        logger.warning(f"Malformed challan entry of type {type(challan).__name__}, treating as empty")
        challan = {}
    return NormalizedChallan(
        source=get_source(challan),
        amount=extract_amount(challan),
        settlement_amount=resolve_settlement_amount(challan),
        status=get_status(challan),
        jurisdiction_id=get_jurisdiction_id(challan),
        is_active=is_active(challan),
        is_local=is_local_jurisdiction(challan),
    )


def coerce_amount(value: Any) -> float:
    """Numbers and numeric strings as float-compatible amounts, anything else 0"""
    if _is_number(value):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0
        return parsed if math.isfinite(parsed) else 0
    return 0

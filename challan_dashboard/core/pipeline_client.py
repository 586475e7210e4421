import aiohttp
from typing import Optional, Dict, Any, List
from challan_dashboard.config import get_settings
from challan_dashboard.schemas.challan import VehicleSearchRequest
import logging

settings = get_settings()
logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Raised when the external challan aggregation pipeline cannot serve a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ChallanPipelineClient:
    """Client for the external challan aggregation pipeline"""

    def __init__(self, base_url: Optional[str] = None, timeout_seconds: Optional[int] = None):
        self.base_url = (base_url or settings.CHALLAN_API_BASE_URL).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(
            total=timeout_seconds or settings.CHALLAN_API_TIMEOUT_SECONDS
        )

    async def fetch_database(self) -> List[Dict[str, Any]]:
        """
        Fetch every vehicle record of the challan database.
        The pipeline answers either with a bare JSON array or with {"data": [...]}.
        """
        endpoint = f"{self.base_url}/api/challan/database"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(endpoint) as response:
                    if response.status != 200:
                        logger.error(f"Challan database request failed with status {response.status}")
                        raise PipelineError(
                            "Failed to fetch bike challan database",
                            status_code=response.status,
                        )
                    payload = await response.json(content_type=None)
        except PipelineError:
            raise
        except Exception as e:
            logger.error(f"Error fetching challan database: {str(e)}")
            raise PipelineError("Failed to load bike challan database") from e

        records = self._extract_records(payload)
        logger.info(f"Fetched {len(records)} vehicle records from challan database")
        return records

    async def trigger_search(self, search: VehicleSearchRequest) -> Any:
        """Start the scraping pipeline for one vehicle; the pipeline runs in the background"""
        endpoint = f"{self.base_url}/api/challan/search"
        body = {
            "regNumber": search.regNumber,
            "engineNumber": search.engineNumber,
            "chassisNumber": search.chassisNumber,
            "mobileNumber": search.mobileNumber,
        }
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(endpoint, json=body) as response:
                    payload = await self._read_payload(response)
                    if response.status >= 400:
                        message = "Failed to search challans"
                        if isinstance(payload, dict) and payload.get("error"):
                            message = str(payload["error"])
                        logger.error(f"Challan search for {search.regNumber} failed: {message}")
                        raise PipelineError(message, status_code=response.status)
        except PipelineError:
            raise
        except Exception as e:
            logger.error(f"Error triggering challan search for {search.regNumber}: {str(e)}")
            raise PipelineError("An error occurred during search") from e

        logger.info(f"Challan search triggered for {search.regNumber}")
        return payload

    @staticmethod
    async def _read_payload(response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json(content_type=None)
        except Exception:
            text = await response.text()
            return {"error": text} if response.status >= 400 and text else None

    @staticmethod
    def _extract_records(payload: Any) -> List[Dict[str, Any]]:
        if isinstance(payload, dict):
            payload = payload.get("data")
        if not isinstance(payload, list):
            logger.warning("Unexpected challan database payload shape, treating as empty")
            return []
        return [record for record in payload if isinstance(record, dict)]

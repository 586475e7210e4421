"""
Tests for bulk CSV upload

CSV template and parsing, and the sequential run against a fake pipeline.
"""

import pytest

from challan_dashboard.core import bulk_upload
from challan_dashboard.core.bulk_upload import (
    REQUIRED_HEADERS,
    BulkUploadError,
    csv_template,
    parse_bulk_csv,
    run_bulk_upload,
)
from challan_dashboard.core.pipeline_client import PipelineError
from challan_dashboard.schemas.challan import BulkVehicle


# ============================================
# Fixtures
# ============================================

class FakePipelineClient:
    """Records searches and fails for the registration numbers it is told to"""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.searches = []

    async def trigger_search(self, search):
        self.searches.append(search)
        if search.regNumber in self.failing:
            raise PipelineError("Vehicle not found", status_code=404)
        return {"success": True}


@pytest.fixture
def vehicles():
    return [
        BulkVehicle(regNo="DL1SAD6045", stakeholderMobile="9315970244"),
        BulkVehicle(regNo="HR12AB1234", engineNo="987654321", chassisNo="XYZ789012", stakeholderMobile="9876543210"),
        BulkVehicle(regNo="DL3CBZ4267", stakeholderMobile="8287041552"),
    ]


# ============================================
# CSV handling
# ============================================

class TestCsv:
    """Tests for csv_template and parse_bulk_csv"""

    def test_template_header_and_rows(self):
        lines = csv_template().strip().split("\n")
        assert lines[0] == "regNo,engineNo,chassisNo,stakeholderMobile"
        assert len(lines) == 4

    def test_template_parses_back(self):
        parsed = parse_bulk_csv(csv_template())
        assert [v.regNo for v in parsed] == ["DL1SAD6045", "DL3CBZ4267", "HR12AB1234"]

    def test_missing_mobile_uses_default(self):
        text = "regNo,engineNo,chassisNo,stakeholderMobile\nDL1AB1,,,\n"
        parsed = parse_bulk_csv(text, default_mobile="9000000000")
        assert parsed[0].stakeholderMobile == "9000000000"

    def test_blank_rows_and_rows_without_reg_no_are_skipped(self):
        text = (
            "\ufeffregNo,engineNo,chassisNo,stakeholderMobile\n"
            "\n"
            ",123,ABC,9999999999\n"
            " DL5CX0001 ,E1,C1,9999999999\n"
        )
        parsed = parse_bulk_csv(text)
        assert len(parsed) == 1
        assert parsed[0].regNo == "DL5CX0001"
        assert parsed[0].engineNo == "E1"

    def test_column_order_does_not_matter(self):
        text = "stakeholderMobile,regNo,chassisNo,engineNo\n9999999999,DL7,C7,E7\n"
        parsed = parse_bulk_csv(text)
        assert parsed[0].regNo == "DL7"
        assert parsed[0].engineNo == "E7"

    def test_missing_header_is_rejected(self):
        with pytest.raises(BulkUploadError) as exc:
            parse_bulk_csv("regNo,engineNo\nDL1,E1\n")
        assert "Required columns: " + ", ".join(REQUIRED_HEADERS) in str(exc.value)

    def test_no_vehicles_is_rejected(self):
        with pytest.raises(BulkUploadError, match="No valid vehicle data found in CSV."):
            parse_bulk_csv("regNo,engineNo,chassisNo,stakeholderMobile\n,,,\n")


# ============================================
# Sequential run
# ============================================

class TestRunBulkUpload:
    """Tests for run_bulk_upload"""

    @pytest.mark.asyncio
    async def test_all_succeed(self, vehicles):
        client = FakePipelineClient()
        result = await run_bulk_upload(client, vehicles, delay_seconds=0)

        assert result.total == 3
        assert result.success == 3
        assert result.failed == 0
        assert [s.regNumber for s in client.searches] == ["DL1SAD6045", "HR12AB1234", "DL3CBZ4267"]
        assert client.searches[1].chassisNumber == "XYZ789012"

    @pytest.mark.asyncio
    async def test_partial_failure_continues(self, vehicles):
        client = FakePipelineClient(failing={"HR12AB1234"})
        result = await run_bulk_upload(client, vehicles, delay_seconds=0)

        assert result.success == 2
        assert result.failed == 1
        assert len(client.searches) == 3
        assert result.message == (
            "Successfully processed 2 out of 3 vehicles through the complete pipeline. 1 vehicles failed."
        )

    @pytest.mark.asyncio
    async def test_all_fail(self, vehicles):
        client = FakePipelineClient(failing={v.regNo for v in vehicles})
        result = await run_bulk_upload(client, vehicles, delay_seconds=0)
        assert result.success == 0
        assert result.message == "All 3 vehicles failed to process."

    @pytest.mark.asyncio
    async def test_pause_between_vehicles_only(self, vehicles, monkeypatch):
        pauses = []

        async def fake_sleep(seconds):
            pauses.append(seconds)

        monkeypatch.setattr(bulk_upload.asyncio, "sleep", fake_sleep)
        await run_bulk_upload(FakePipelineClient(), vehicles, delay_seconds=2)
        assert pauses == [2, 2]

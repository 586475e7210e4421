"""
Tests for the settlement configuration API

CRUD, validation, toggling, clear-all and permission checks.
"""

import pytest

BASE = "/api/settlement-configs"


def rule(**overrides):
    payload = {
        "rule_name": "DL_MPARIVAHAN_60",
        "source_type": "mparivahan",
        "region": "DL",
        "settlement_percentage": 60,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def created(client, admin_headers):
    """One stored rule with both cutoffs set"""
    response = client.post(
        BASE,
        json=rule(
            rule_name="DL_VCOURT_OLD",
            source_type="vcourt",
            challan_year_cutoff=2020,
            year_cutoff_logic="≤",
            amount_cutoff=5000,
            amount_cutoff_logic=">",
            settlement_percentage=45.5,
        ),
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()


# ============================================
# Create and read
# ============================================

class TestCreateAndRead:
    """Creating and listing rules"""

    def test_create(self, created):
        assert created["id"] > 0
        assert created["rule_name"] == "DL_VCOURT_OLD"
        assert created["challan_year_cutoff"] == 2020
        assert created["year_cutoff_logic"] == "≤"
        assert created["amount_cutoff"] == 5000
        assert created["settlement_percentage"] == 45.5
        assert created["is_active"] is True

    def test_duplicate_name_rejected(self, client, admin_headers, created):
        response = client.post(BASE, json=rule(rule_name="DL_VCOURT_OLD"), headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "A settlement configuration with this rule name already exists"

    @pytest.mark.parametrize("overrides", [
        {"settlement_percentage": 1001},
        {"settlement_percentage": -1},
        {"challan_year_cutoff": 1999},
        {"challan_year_cutoff": 2031},
        {"amount_cutoff": -5},
        {"source_type": "carinfo"},
        {"region": "MH"},
        {"rule_name": "   "},
        {"year_cutoff_logic": "<"},
    ])
    def test_validation(self, client, admin_headers, overrides):
        response = client.post(BASE, json=rule(**overrides), headers=admin_headers)
        assert response.status_code == 422

    def test_percentage_above_100_allowed(self, client, admin_headers):
        response = client.post(BASE, json=rule(settlement_percentage=150), headers=admin_headers)
        assert response.status_code == 201

    def test_blank_logic_is_stored_as_null(self, client, admin_headers):
        response = client.post(BASE, json=rule(year_cutoff_logic=""), headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["year_cutoff_logic"] is None

    def test_list_ordering(self, client, admin_headers):
        client.post(BASE, json=rule(rule_name="C", source_type="vcourt", region="DL"), headers=admin_headers)
        client.post(BASE, json=rule(rule_name="B", source_type="delhi_police", region="UP"), headers=admin_headers)
        client.post(BASE, json=rule(rule_name="A", source_type="delhi_police", region="ALL"), headers=admin_headers)

        response = client.get(BASE, headers=admin_headers)
        assert response.status_code == 200
        assert [r["rule_name"] for r in response.json()] == ["A", "B", "C"]

    def test_trailing_slash_is_served_directly(self, client, admin_headers):
        response = client.post(f"{BASE}/", json=rule(), headers=admin_headers, follow_redirects=False)
        assert response.status_code == 201

        response = client.get(f"{BASE}/", headers=admin_headers, follow_redirects=False)
        assert response.status_code == 200
        assert [r["rule_name"] for r in response.json()] == ["DL_MPARIVAHAN_60"]

    def test_get_by_id(self, client, admin_headers, created):
        response = client.get(f"{BASE}/{created['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["rule_name"] == "DL_VCOURT_OLD"

    def test_get_missing(self, client, admin_headers):
        response = client.get(f"{BASE}/999", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Settlement configuration not found"

    def test_options(self, client, viewer_headers):
        response = client.get(f"{BASE}/options", headers=viewer_headers)
        assert response.status_code == 200
        body = response.json()
        assert [o["value"] for o in body["source_types"]] == ["mparivahan", "vcourt", "delhi_police"]
        assert [o["value"] for o in body["regions"]] == ["ALL", "DL", "UP", "HR"]
        assert [o["value"] for o in body["cutoff_logic_options"]] == ["≤", ">"]


# ============================================
# Update, toggle and delete
# ============================================

class TestModify:
    """Updating, toggling and deleting rules"""

    def test_update_clears_omitted_cutoffs(self, client, admin_headers, created):
        response = client.put(
            f"{BASE}/{created['id']}",
            json={"settlement_percentage": 30},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["settlement_percentage"] == 30
        assert body["rule_name"] == "DL_VCOURT_OLD"
        assert body["challan_year_cutoff"] is None
        assert body["year_cutoff_logic"] is None
        assert body["amount_cutoff"] is None
        assert body["amount_cutoff_logic"] is None

    def test_update_rename_to_existing_name(self, client, admin_headers, created):
        client.post(BASE, json=rule(rule_name="OTHER"), headers=admin_headers)
        response = client.put(f"{BASE}/{created['id']}", json={"rule_name": "OTHER"}, headers=admin_headers)
        assert response.status_code == 400

    def test_update_missing(self, client, admin_headers):
        response = client.put(f"{BASE}/999", json={"settlement_percentage": 30}, headers=admin_headers)
        assert response.status_code == 404

    def test_toggle(self, client, admin_headers, created):
        response = client.patch(f"{BASE}/{created['id']}/toggle", json={"is_active": False}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False

    @pytest.mark.parametrize("value", ["yes", 1, None])
    def test_toggle_requires_boolean(self, client, admin_headers, created, value):
        response = client.patch(f"{BASE}/{created['id']}/toggle", json={"is_active": value}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "is_active must be a boolean value"

    def test_delete(self, client, admin_headers, created):
        response = client.delete(f"{BASE}/{created['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert client.get(f"{BASE}/{created['id']}", headers=admin_headers).status_code == 404

    def test_clear_all(self, client, admin_headers, created):
        client.post(BASE, json=rule(), headers=admin_headers)
        response = client.delete(f"{BASE}/clear-all", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["deletedCount"] == 2
        assert client.get(BASE, headers=admin_headers).json() == []


# ============================================
# Permissions
# ============================================

class TestPermissions:
    """Who may read and write rules"""

    def test_requires_token(self, client):
        assert client.get(BASE).status_code == 401

    def test_viewer_can_read(self, client, viewer_headers, created):
        response = client.get(BASE, headers=viewer_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_viewer_cannot_write(self, client, viewer_headers):
        response = client.post(BASE, json=rule(), headers=viewer_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Missing permission settlement_configs:write"

    def test_manager_can_write(self, client, manager_headers):
        assert client.post(BASE, json=rule(), headers=manager_headers).status_code == 201

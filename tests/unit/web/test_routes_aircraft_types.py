"""Tests for fleetref.web.routes.aircraft_types - Type mapping rule routes."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fleetref.canonical.rules_repository import ConfigurationError
from fleetref.models import CanonicalizedType, MappingRule
from fleetref.web.routes import aircraft_types

REPO = "fleetref.web.routes.aircraft_types.rules_repository"


@pytest.fixture
def app():
    test_app = FastAPI()
    test_app.include_router(aircraft_types.router)
    return test_app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture(autouse=True)
def mock_get_session():
    """Every route opens a session; hand out a mock one."""
    session = AsyncMock()
    async_cm = AsyncMock()
    async_cm.__aenter__.return_value = session
    async_cm.__aexit__.return_value = None

    with patch("fleetref.web.routes.aircraft_types.get_session") as mock:
        mock.return_value = async_cm
        yield mock


@pytest.fixture
def rule():
    return MappingRule(id=7, pattern="*777*", canonical_type="B777", priority=50)


class TestListAndCreate:
    @patch(f"{REPO}.list_rules", new_callable=AsyncMock)
    def test_list_rules(self, mock_list, client, rule):
        mock_list.return_value = [rule]

        response = client.get("/api/aircraft-types")

        assert response.status_code == 200
        assert response.json()[0]["pattern"] == "*777*"
        assert mock_list.call_args.kwargs == {"include_inactive": True}

    @patch(f"{REPO}.create_rule", new_callable=AsyncMock)
    def test_create_rule(self, mock_create, client, rule):
        mock_create.return_value = rule

        response = client.post(
            "/api/aircraft-types",
            json={"pattern": "*777*", "canonical_type": "B777", "priority": 50},
        )

        assert response.status_code == 201
        assert response.json()["id"] == 7
        created = mock_create.call_args.args[1]
        assert created.id is None
        assert created.priority == 50

    @pytest.mark.parametrize(
        "body",
        [
            {"pattern": "", "canonical_type": "B777"},
            {"pattern": "A32*", "canonical_type": "A320"},
        ],
    )
    def test_create_rejects_invalid_rule(self, client, body):
        assert client.post("/api/aircraft-types", json=body).status_code == 422


class TestUpdateAndDelete:
    @patch(f"{REPO}.update_rule", new_callable=AsyncMock)
    def test_partial_update_passes_only_set_fields(self, mock_update, client, rule):
        mock_update.return_value = rule.model_copy(update={"priority": 60})

        response = client.put("/api/aircraft-types/7", json={"priority": 60})

        assert response.status_code == 200
        assert response.json()["priority"] == 60
        assert mock_update.call_args.args[1:] == (7, {"priority": 60})

    @patch(f"{REPO}.update_rule", new_callable=AsyncMock)
    def test_update_missing_rule(self, mock_update, client):
        mock_update.return_value = None

        response = client.put("/api/aircraft-types/99", json={"priority": 1})

        assert response.status_code == 404

    @patch(f"{REPO}.update_rule", new_callable=AsyncMock)
    def test_update_invalid_merge(self, mock_update, client):
        mock_update.side_effect = ValueError("bad rule")

        response = client.put("/api/aircraft-types/7", json={"description": "x"})

        assert response.status_code == 422
        assert response.json()["detail"] == "bad rule"

    @patch(f"{REPO}.delete_rule", new_callable=AsyncMock)
    def test_delete(self, mock_delete, client):
        mock_delete.return_value = True

        response = client.delete("/api/aircraft-types/7")

        assert response.status_code == 200
        assert response.json() == {"success": True}

    @patch(f"{REPO}.delete_rule", new_callable=AsyncMock)
    def test_delete_missing(self, mock_delete, client):
        mock_delete.return_value = False

        assert client.delete("/api/aircraft-types/7").status_code == 404


class TestResetAndCheck:
    @patch(f"{REPO}.reset_to_defaults", new_callable=AsyncMock)
    def test_reset(self, mock_reset, client):
        mock_reset.return_value = 15

        response = client.post("/api/aircraft-types/reset")

        assert response.status_code == 200
        assert response.json() == {"success": True, "restored": 15}

    @patch(f"{REPO}.reset_to_defaults", new_callable=AsyncMock)
    def test_reset_with_broken_defaults(self, mock_reset, client):
        mock_reset.side_effect = ConfigurationError("Aircraft type mappings not found")

        response = client.post("/api/aircraft-types/reset")

        assert response.status_code == 500
        assert "not found" in response.json()["detail"]

    @patch(f"{REPO}.test_raw_type", new_callable=AsyncMock)
    def test_check_raw_type(self, mock_check, client):
        mock_check.return_value = CanonicalizedType(
            raw="777-200F", canonical="B777", confidence="pattern", rule_id=7
        )

        response = client.post(
            "/api/aircraft-types/test", json={"raw_type": "777-200F", "registration": "N1"}
        )

        assert response.status_code == 200
        assert response.json()["canonical"] == "B777"
        assert response.json()["confidence"] == "pattern"
        assert mock_check.call_args.args[1:] == ("777-200F", "N1")

"""
Eligibility Routes Tests.
Real-time eligibility checks, rule listing and health endpoints.
"""

from dataclasses import replace
from datetime import date, timedelta

import pytest
from fastapi import status

from src.db.repositories import AuditRepository


async def _stored_check(session_maker, request_id):
    async with session_maker() as session:
        return await AuditRepository(session).get_eligibility_check(request_id)


def _body(**overrides):
    body = {
        "member_id": "M100",
        "service_code": "OPD-001",
        "service_date": (date.today() - timedelta(days=10)).isoformat(),
        "requested_amount": "200.00",
    }
    body.update(overrides)
    return body


@pytest.mark.api
class TestEligibilityCheck:
    """POST /api/v1/eligibility/check"""

    def test_eligible_member(self, client):
        response = client.post("/api/v1/eligibility/check", json=_body())

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["eligible"] is True
        assert data["status"] == "eligible"
        assert data["reasons"] == []
        assert data["metrics"]["rules_evaluated"] > 0
        assert data["snapshot"]["policy"]["policy_id"] == "P001"

    def test_ineligible_is_not_an_error(self, client):
        response = client.post(
            "/api/v1/eligibility/check", json=_body(service_code="OPT-001")
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["eligible"] is False
        assert data["status"] == "not_eligible"
        assert data["reasons"][-1]["code"] == "SERVICE_NOT_COVERED"
        assert data["reasons"][-1]["hard"] is True

    def test_unknown_member(self, client):
        response = client.post("/api/v1/eligibility/check", json=_body(member_id="M999"))

        data = response.json()
        assert data["eligible"] is False
        assert [r["code"] for r in data["reasons"]] == ["MEMBER_NOT_FOUND"]

    def test_provider_checked_when_given(self, client):
        response = client.post(
            "/api/v1/eligibility/check", json=_body(provider_id="PR-UNKNOWN")
        )

        data = response.json()
        assert data["eligible"] is False
        assert data["reasons"][-1]["code"] == "PROVIDER_NOT_FOUND"

    def test_policy_other_than_members_is_not_enrolled(self, client):
        source = client.app.state.snapshot_source
        source.add_policy(replace(source.policies["P001"], policy_id="P002", policy_number="P002"))

        response = client.post("/api/v1/eligibility/check", json=_body(policy_id="P002"))

        data = response.json()
        assert data["eligible"] is False
        assert [r["code"] for r in data["reasons"]] == ["MEMBER_NOT_ENROLLED"]
        assert data["snapshot"]["policy"]["policy_id"] == "P002"

    def test_members_own_policy_by_id(self, client):
        response = client.post("/api/v1/eligibility/check", json=_body(policy_id="P001"))

        assert response.json()["eligible"] is True

    def test_decision_recorded(self, client):
        response = client.post(
            "/api/v1/eligibility/check", json=_body(request_id="req-api-1")
        )
        assert response.json()["request_id"] == "req-api-1"

        record = client.portal.call(_stored_check, client.app.state.session_maker, "req-api-1")

        assert record is not None
        assert record.eligible is True
        assert record.member_id == "M100"

    def test_negative_amount_rejected(self, client):
        response = client.post(
            "/api/v1/eligibility/check", json=_body(requested_amount="-5")
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_missing_service_date_rejected(self, client):
        body = _body()
        del body["service_date"]

        response = client.post("/api/v1/eligibility/check", json=body)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.api
class TestRuleListing:
    """GET /api/v1/eligibility/rules"""

    def test_lists_rules_in_order(self, client):
        response = client.get("/api/v1/eligibility/rules")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["count"] == len(data["rules"])
        assert data["count"] == len(client.app.state.engine.rules)
        assert data["rules"] == client.app.state.engine.rule_codes()


@pytest.mark.api
class TestHealth:
    """Health endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.json() == {"status": "healthy", "service": "adjudication-core"}

    def test_detailed_health(self, client):
        data = client.get("/health/detailed").json()

        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "healthy"
        assert data["checks"]["rules_loaded"] > 0

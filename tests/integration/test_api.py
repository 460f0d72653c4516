"""Integration tests for API endpoints"""

from typing import Any, Dict
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from onboarding_gateway.domain.exceptions import AccountServiceError
from onboarding_gateway.domain.models import ProfileBranch
from onboarding_gateway.domain.stages import STAGE_CATALOG
from onboarding_gateway.infrastructure.database.repositories import SubmissionAttemptRepository

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24

ACCOUNTS = "onboarding_gateway.infrastructure.clients.accounts.AccountServiceClient"
AUTH = {"Authorization": "Bearer token-123"}


def _create(client: TestClient, entry_flow: str = "borrower") -> Dict[str, Any]:
    response = client.post("/v1/onboarding/sessions", json={"entry_flow": entry_flow})
    assert response.status_code == 201
    return response.json()


def _upload(client: TestClient, session_id: str, slot: str, data: bytes = PNG_BYTES):
    return client.put(
        f"/v1/onboarding/sessions/{session_id}/attachments/{slot}",
        files={"file": (f"{slot}.png", data, "image/png")},
    )


def _drive(client: TestClient, stage_values, entry_flow: str, branch: ProfileBranch, skip_slots=()) -> str:
    """Walk a new session through every stage of a branch; returns the session id"""
    session_id = _create(client, entry_flow)["session_id"]
    response = client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": branch.value})
    assert response.status_code == 200
    for stage in STAGE_CATALOG[branch]:
        response = client.patch(
            f"/v1/onboarding/sessions/{session_id}/fields", json={"fields": stage_values[stage.name]}
        )
        assert response.status_code == 200, response.json()
        for slot in stage.files:
            if slot.name not in skip_slots:
                assert _upload(client, session_id, slot.name).status_code == 200
        response = client.post(f"/v1/onboarding/sessions/{session_id}/advance")
        if response.status_code != 200:
            break
    return session_id


@pytest.fixture
def confirmed_borrower(client: TestClient, stage_values) -> str:
    session_id = _drive(client, stage_values, "borrower", ProfileBranch.INDIVIDUAL_BORROWER)
    assert client.get(f"/v1/onboarding/sessions/{session_id}").json()["state"] == "confirmation"
    return session_id


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "onboarding_submissions_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_create_session_offers_entry_flow_branches(client: TestClient):
    data = _create(client, "investor")

    assert data["state"] == "branch-selection"
    assert set(data["offered_branches"]) == {
        "individual-investor",
        "non-individual-investor",
        "direct-lender",
    }
    assert data["stages"] == []


def test_unknown_session_is_404(client: TestClient):
    assert client.get("/v1/onboarding/sessions/missing").status_code == 404
    assert client.delete("/v1/onboarding/sessions/missing").status_code == 404


def test_branch_not_offered_is_rejected(client: TestClient):
    session_id = _create(client, "borrower")["session_id"]

    response = client.post(
        f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "direct-lender"}
    )

    assert response.status_code == 409


def test_update_fields_rejects_other_stage_fields(client: TestClient):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})

    response = client.patch(
        f"/v1/onboarding/sessions/{session_id}/fields", json={"fields": {"entityName": "Acme Co."}}
    )

    assert response.status_code == 422
    assert response.json()["detail"]["unknown_fields"] == ["entityName"]


@pytest.mark.parametrize(
    "body",
    [
        '{"fields": {"firstName": ["x"], "lastName": {}}}',
        '{"fields": {"firstName": {"nested": "Juan"}}}',
        '{"fields": {"firstName": NaN}}',
        '{"fields": {"lastName": Infinity}}',
    ],
)
def test_update_fields_rejects_non_scalar_and_non_finite_values(client: TestClient, body: str):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})

    response = client.patch(
        f"/v1/onboarding/sessions/{session_id}/fields",
        content=body,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    session = client.get(f"/v1/onboarding/sessions/{session_id}").json()
    assert "firstName" not in session["details"]
    assert "lastName" not in session["details"]


def test_advance_with_errors_is_422_and_keeps_values(client: TestClient):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})
    client.patch(f"/v1/onboarding/sessions/{session_id}/fields", json={"fields": {"firstName": "Juan"}})

    response = client.post(f"/v1/onboarding/sessions/{session_id}/advance")

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["stage"] == "personal-identification"
    assert "lastName" in detail["errors"]
    assert "nationalIdFile" in detail["errors"]

    session = client.get(f"/v1/onboarding/sessions/{session_id}").json()
    assert session["details"]["firstName"] == "Juan"
    assert session["current_stage"] == "personal-identification"


def test_upload_reports_attachment_state(client: TestClient):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})

    response = _upload(client, session_id, "nationalIdFile")

    assert response.status_code == 200
    state = response.json()["attachments"]["nationalIdFile"]
    assert state == {"filename": "nationalIdFile.png", "content_type": "image/png", "encoded": True}


def test_empty_upload_is_rejected(client: TestClient):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})

    response = _upload(client, session_id, "nationalIdFile", data=b"")

    assert response.status_code == 422
    assert response.json()["detail"]["slot"] == "nationalIdFile"


def test_go_to_unpassed_stage_is_409(client: TestClient):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})

    response = client.post(f"/v1/onboarding/sessions/{session_id}/go-to", json={"stage": "bank-details"})

    assert response.status_code == 409


def test_submit_before_confirmation_is_409(client: TestClient):
    session_id = _create(client)["session_id"]

    response = client.post(f"/v1/onboarding/sessions/{session_id}/submit", headers=AUTH)

    assert response.status_code == 409


@patch(f"{ACCOUNTS}.get_profile")
@patch(f"{ACCOUNTS}.list_accounts")
@patch(f"{ACCOUNTS}.get_permissions")
@patch(f"{ACCOUNTS}.complete_kyc")
@patch(f"{ACCOUNTS}.create_account")
def test_submit_success(
    mock_create: AsyncMock,
    mock_kyc: AsyncMock,
    mock_permissions: AsyncMock,
    mock_list_accounts: AsyncMock,
    mock_profile: AsyncMock,
    client: TestClient,
    db,
    confirmed_borrower: str,
):
    """Test POST /v1/onboarding/sessions/{id}/submit end to end with stubbed account service"""
    mock_create.return_value = "acct-9"
    mock_kyc.return_value = {"success": True}
    mock_permissions.return_value = {"isAdmin": False}
    mock_list_accounts.return_value = {"accounts": {}}
    mock_profile.return_value = {"profile": {}}

    response = client.post(f"/v1/onboarding/sessions/{confirmed_borrower}/submit", headers=AUTH)

    assert response.status_code == 200
    data = response.json()
    assert data["succeeded"] is True
    assert data["account_id"] == "acct-9"
    assert data["steps"]["complete_kyc"] == "succeeded"

    kyc_type, payload, token = mock_kyc.call_args.args
    assert kyc_type == "borrower"
    assert payload["isIndividualAccount"] is True
    assert token == "token-123"

    session = client.get(f"/v1/onboarding/sessions/{confirmed_borrower}").json()
    assert session["state"] == "success"
    assert session["active_profile"] == "borrower"

    attempts = SubmissionAttemptRepository(db).get_attempts_by_session(confirmed_borrower)
    assert [a.outcome for a in attempts] == ["succeeded"]


@patch(f"{ACCOUNTS}.complete_kyc")
@patch(f"{ACCOUNTS}.create_account")
def test_submit_create_account_failure_is_502_and_retryable(
    mock_create: AsyncMock,
    mock_kyc: AsyncMock,
    client: TestClient,
    db,
    confirmed_borrower: str,
):
    mock_create.side_effect = AccountServiceError(
        "create_account", "HTTP 500", status_code=500, body='{"error":"database unavailable"}'
    )

    response = client.post(f"/v1/onboarding/sessions/{confirmed_borrower}/submit", headers=AUTH)

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["failed_step"] == "create_account"
    assert detail["retryable"] is True
    mock_kyc.assert_not_awaited()

    session = client.get(f"/v1/onboarding/sessions/{confirmed_borrower}").json()
    assert session["state"] == "failed"
    assert session["details"]["firstName"] == "Juan"

    retried = client.post(f"/v1/onboarding/sessions/{confirmed_borrower}/retry")
    assert retried.json()["state"] == "confirmation"

    attempts = SubmissionAttemptRepository(db).get_attempts_by_session(confirmed_borrower)
    assert [a.failed_step for a in attempts] == ["create_account"]


def test_prefill_requires_branch(client: TestClient):
    session_id = _create(client)["session_id"]

    response = client.post(f"/v1/onboarding/sessions/{session_id}/prefill", headers=AUTH)

    assert response.status_code == 409


def test_prefill_without_credential_is_401(client: TestClient):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})

    response = client.post(f"/v1/onboarding/sessions/{session_id}/prefill")

    assert response.status_code == 401


def test_abandon_and_delete(client: TestClient, registry):
    session_id = _create(client)["session_id"]
    client.post(f"/v1/onboarding/sessions/{session_id}/branch", json={"profile_branch": "individual-borrower"})

    abandoned = client.post(f"/v1/onboarding/sessions/{session_id}/abandon")
    assert abandoned.json()["state"] == "branch-selection"
    assert abandoned.json()["profile_branch"] is None

    assert client.delete(f"/v1/onboarding/sessions/{session_id}").status_code == 204
    assert len(registry) == 0

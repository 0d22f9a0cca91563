"""HTTP tests for the time entry endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tests.factories import (
    ADMIN_ID,
    COMPANY_ID,
    COWORKER_ID,
    EMPLOYEE_ID,
    MANAGER_ID,
    OTHER_COMPANY_ID,
    auth_headers,
    entry_payload,
)
from timesheets.models import UserRole

if TYPE_CHECKING:
    from httpx import AsyncClient

BASE = f"/companies/{COMPANY_ID}/time-entries"
EMPLOYEE_HEADERS = auth_headers(EMPLOYEE_ID)
MANAGER_HEADERS = auth_headers(MANAGER_ID, UserRole.MANAGER)
ADMIN_HEADERS = auth_headers(ADMIN_ID, UserRole.ADMIN)


async def _create(client: AsyncClient, **overrides: Any) -> dict[str, Any]:
    resp = await client.post(BASE, json=entry_payload(**overrides), headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _submitted(client: AsyncClient, **overrides: Any) -> dict[str, Any]:
    entry = await _create(client, **overrides)
    resp = await client.post(f"{BASE}/{entry['id']}/submit", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Auth and scope
# ---------------------------------------------------------------------------


async def test_requires_auth(async_client: AsyncClient) -> None:
    resp = await async_client.get(BASE)
    assert resp.status_code == 401
    assert resp.json()["error"] == "UnauthenticatedError"


async def test_company_mismatch(async_client: AsyncClient) -> None:
    resp = await async_client.get(BASE, headers=auth_headers(EMPLOYEE_ID, company_id=OTHER_COMPANY_ID))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Company ID mismatch"


async def test_superadmin_crosses_companies(async_client: AsyncClient) -> None:
    await _create(async_client)
    headers = auth_headers("root", UserRole.SUPERADMIN, company_id=OTHER_COMPANY_ID)
    resp = await async_client.get(BASE, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 1


# ---------------------------------------------------------------------------
# Create and read
# ---------------------------------------------------------------------------


async def test_create_returns_camel_case(async_client: AsyncClient) -> None:
    data = await _create(async_client, projectId="proj-1")
    assert data["userId"] == EMPLOYEE_ID
    assert data["companyId"] == COMPANY_ID
    assert data["yearWeek"] == "2024-10"
    assert data["regularHours"] == 6
    assert data["overtimeHours"] == 2
    assert data["projectId"] == "proj-1"
    assert data["status"] == "pending"
    assert data["isSubmitted"] is False
    assert data["managerId"] == MANAGER_ID
    assert "user_id" not in data


async def test_create_ignores_body_company(async_client: AsyncClient) -> None:
    data = await _create(async_client, companyId=OTHER_COMPANY_ID)
    assert data["companyId"] == COMPANY_ID


async def test_create_invalid_lists_violations(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        BASE,
        json=entry_payload(hours=8, regularHours=5, overtimeHours=2),
        headers=EMPLOYEE_HEADERS,
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "ValidationError"
    assert [v["path"] for v in body["violations"]] == ["hours"]


async def test_create_reports_every_field_violation(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        BASE,
        json=entry_payload(date="2024-02-30", overtimeHours=-1, ptoHours=30),
        headers=EMPLOYEE_HEADERS,
    )
    assert resp.status_code == 422
    assert [v["path"] for v in resp.json()["violations"]] == ["date", "overtimeHours", "ptoHours"]


async def test_create_for_other_user_forbidden(async_client: AsyncClient) -> None:
    resp = await async_client.post(BASE, json=entry_payload(userId=COWORKER_ID), headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_get_and_list(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    await _create(async_client, date="2024-03-11")

    resp = await async_client.get(f"{BASE}/{created['id']}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["id"] == created["id"]

    resp = await async_client.get(BASE, params={"yearWeek": "2024-10"}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == created["id"]


async def test_get_missing(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"{BASE}/missing", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 404


async def test_list_other_user_forbidden_for_plain_user(async_client: AsyncClient) -> None:
    resp = await async_client.get(BASE, params={"userId": COWORKER_ID}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_list_bad_status_filter(async_client: AsyncClient) -> None:
    resp = await async_client.get(BASE, params={"status": "archived"}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


async def test_submit_approve_flow(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    assert submitted["isSubmitted"] is True
    assert submitted["needsApproval"] is True

    resp = await async_client.get(f"{BASE}/pending", headers=MANAGER_HEADERS)
    assert [e["id"] for e in resp.json()["items"]] == [submitted["id"]]

    resp = await async_client.post(
        f"{BASE}/{submitted['id']}/approve",
        json={"notes": "Looks good"},
        headers=MANAGER_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "approved"
    assert data["managerApproved"] is True
    assert data["overtimeApproved"] is True
    assert data["managerApprovedBy"] == MANAGER_ID
    assert data["managerNotes"] == "Looks good"

    resp = await async_client.get(f"{BASE}/pending", headers=MANAGER_HEADERS)
    assert resp.json()["total"] == 0


async def test_approve_without_body(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    resp = await async_client.post(f"{BASE}/{submitted['id']}/approve", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["managerApprovedBy"] == ADMIN_ID


async def test_approve_regular_then_overtime(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    resp = await async_client.post(
        f"{BASE}/{submitted['id']}/approve",
        json={"includeOvertime": False, "adjustment": {"regularHours": 7, "overtimeHours": 1}},
        headers=MANAGER_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["overtimeApproved"] is False
    assert resp.json()["regularHours"] == 7

    resp = await async_client.post(f"{BASE}/{submitted['id']}/approve-overtime", headers=MANAGER_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["overtimeApproved"] is True


async def test_adjustment_must_keep_sum(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    resp = await async_client.post(
        f"{BASE}/{submitted['id']}/approve",
        json={"adjustment": {"regularHours": 8}},
        headers=MANAGER_HEADERS,
    )
    assert resp.status_code == 422
    assert [v["path"] for v in resp.json()["violations"]] == ["hours"]


async def test_approve_own_entry_forbidden(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    resp = await async_client.post(f"{BASE}/{submitted['id']}/approve", headers=auth_headers(EMPLOYEE_ID))
    assert resp.status_code == 403


async def test_reject_requires_notes(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    resp = await async_client.post(f"{BASE}/{submitted['id']}/reject", headers=MANAGER_HEADERS)
    assert resp.status_code == 422
    assert [v["path"] for v in resp.json()["violations"]] == ["managerNotes"]

    resp = await async_client.post(
        f"{BASE}/{submitted['id']}/reject",
        json={"notes": "Wrong project"},
        headers=MANAGER_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["managerNotes"] == "Wrong project"


async def test_reopen_and_edit(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    await async_client.post(f"{BASE}/{submitted['id']}/reject", json={"notes": "Fix it"}, headers=MANAGER_HEADERS)

    resp = await async_client.post(f"{BASE}/{submitted['id']}/reopen", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["isSubmitted"] is False

    resp = await async_client.patch(
        f"{BASE}/{submitted['id']}",
        json={"regularHours": 8, "overtimeHours": 0},
        headers=EMPLOYEE_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["regularHours"] == 8


async def test_invalid_transition_is_conflict(async_client: AsyncClient) -> None:
    submitted = await _submitted(async_client)
    resp = await async_client.post(f"{BASE}/{submitted['id']}/submit", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 409
    assert resp.json()["error"] == "InvalidTransitionError"

    resp = await async_client.patch(f"{BASE}/{submitted['id']}", json={"notes": "late"}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 409


async def test_submit_week(async_client: AsyncClient) -> None:
    await _create(async_client, date="2024-03-04")
    await _create(async_client, date="2024-03-05")
    resp = await async_client.post(f"{BASE}/submit-week", json={"yearWeek": "2024-10"}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["total"] == 2
    assert all(e["isSubmitted"] for e in resp.json()["items"])


async def test_submit_week_bad_key(async_client: AsyncClient) -> None:
    resp = await async_client.post(f"{BASE}/submit-week", json={"yearWeek": "2024-W10"}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 422


async def test_delete(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    resp = await async_client.delete(f"{BASE}/{created['id']}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["isDeleted"] is True

    resp = await async_client.get(f"{BASE}/{created['id']}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 404

    resp = await async_client.get(BASE, params={"includeDeleted": "true"}, headers=EMPLOYEE_HEADERS)
    assert resp.json()["total"] == 1


async def test_request_id_header(async_client: AsyncClient) -> None:
    resp = await async_client.get(BASE, headers={**EMPLOYEE_HEADERS, "X-Request-Id": "req-123"})
    assert resp.headers["X-Request-Id"] == "req-123"

"""Tests for balance reads, privileged edits, statistics and the audit log."""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import TYPE_CHECKING

import pytest

from leave_engine.exceptions import UnauthorizedError, ValidationError
from leave_engine.models.enums import LeaveType, NotificationEvent, TrainerCategory, UserRole
from leave_engine.schemas.auth import AuthContext
from leave_engine.schemas.balance import EditBalancePayload
from leave_engine.services import balance as balance_service
from leave_engine.services.audit import list_audit_entries
from leave_engine.services.directory import TrainerInfo

if TYPE_CHECKING:
    from collections.abc import Iterator

    from conftest import RecordingNotifier
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.services.directory import InMemoryUserDirectory

TRAINER_ID = uuid.uuid4()
CONTRACTED_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()

ADMIN = AuthContext(user_id=ADMIN_ID, role=UserRole.ADMIN)
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "ADMIN"}
TRAINER_HEADERS = {"X-User-Id": str(TRAINER_ID), "X-Role": "TRAINER"}
REASON = "Attending a family wedding"


@pytest.fixture(autouse=True)
def _seed_directory(directory: InMemoryUserDirectory) -> Iterator[None]:
    directory.seed(TrainerInfo(id=TRAINER_ID, first_name="Asha", last_name="Rao", email="asha@example.com"))
    directory.seed(
        TrainerInfo(
            id=CONTRACTED_ID,
            first_name="Ravi",
            last_name="Kumar",
            email="ravi@example.com",
            category=TrainerCategory.CONTRACTED,
        )
    )
    yield


# ---------------------------------------------------------------------------
# get_balance
# ---------------------------------------------------------------------------


async def test_balance_defaults_for_permanent_trainer(db_session: AsyncSession) -> None:
    snapshot = await balance_service.get_balance(db_session, TRAINER_ID)

    assert snapshot.category == TrainerCategory.PERMANENT
    assert snapshot.allowed_leave_types == [LeaveType.SICK, LeaveType.CASUAL, LeaveType.PAID]
    assert snapshot.last_increment_date is None
    sick = snapshot.for_type(LeaveType.SICK)
    paid = snapshot.for_type(LeaveType.PAID)
    assert sick is not None
    assert sick.available == 0
    assert sick.is_unlimited is False
    assert paid is not None
    assert paid.available is None
    assert paid.is_unlimited is True


async def test_balance_defaults_for_contracted_trainer(db_session: AsyncSession) -> None:
    snapshot = await balance_service.get_balance(db_session, CONTRACTED_ID)

    assert snapshot.allowed_leave_types == [LeaveType.PAID]
    assert snapshot.for_type(LeaveType.SICK) is None


async def test_balance_of_unknown_trainer_returns_404(async_client: AsyncClient) -> None:
    unknown = uuid.uuid4()
    resp = await async_client.get(f"/trainers/{unknown}/balance", headers=ADMIN_HEADERS)
    assert resp.status_code == 404


async def test_trainer_can_read_own_balance(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"/trainers/{TRAINER_ID}/balance", headers=TRAINER_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["trainer_id"] == str(TRAINER_ID)


async def test_trainer_cannot_read_other_balance(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"/trainers/{CONTRACTED_ID}/balance", headers=TRAINER_HEADERS)
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# edit_balance
# ---------------------------------------------------------------------------


async def test_edit_balance_sets_value_and_audits(db_session: AsyncSession, notifications: RecordingNotifier) -> None:
    snapshot = await balance_service.edit_balance(
        db_session, ADMIN, TRAINER_ID, LeaveType.SICK, EditBalancePayload(new_value=8, reason="Opening balance")
    )

    sick = snapshot.for_type(LeaveType.SICK)
    assert sick is not None
    assert sick.available == 8
    assert snapshot.last_increment_date == date.today()

    audit = await list_audit_entries(db_session, TRAINER_ID)
    assert [(e.entry_type, e.delta, e.actor_id) for e in audit.items] == [("ADMIN_EDIT", 8, ADMIN_ID)]
    assert notifications.events() == [NotificationEvent.BALANCE_UPDATED]


async def test_edit_balance_to_unlimited(db_session: AsyncSession) -> None:
    snapshot = await balance_service.edit_balance(
        db_session, ADMIN, TRAINER_ID, LeaveType.CASUAL, EditBalancePayload(unlimited=True, reason="Policy change")
    )

    casual = snapshot.for_type(LeaveType.CASUAL)
    assert casual is not None
    assert casual.is_unlimited is True
    assert casual.available is None


async def test_edit_balance_requires_admin(db_session: AsyncSession) -> None:
    trainer = AuthContext(user_id=TRAINER_ID, role=UserRole.TRAINER)
    with pytest.raises(UnauthorizedError):
        await balance_service.edit_balance(
            db_session, trainer, TRAINER_ID, LeaveType.SICK, EditBalancePayload(new_value=50, reason="Nice try")
        )


async def test_edit_balance_rejects_contracted_trainer(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError, match="CONTRACTED"):
        await balance_service.edit_balance(
            db_session, ADMIN, CONTRACTED_ID, LeaveType.PAID, EditBalancePayload(new_value=5, reason="Grant")
        )


async def test_edit_balance_negative_value_returns_422(async_client: AsyncClient) -> None:
    resp = await async_client.put(
        f"/trainers/{TRAINER_ID}/balance/SICK",
        json={"new_value": -1, "reason": "Typo"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 422


async def test_edit_balance_requires_value_or_unlimited(async_client: AsyncClient) -> None:
    resp = await async_client.put(
        f"/trainers/{TRAINER_ID}/balance/SICK",
        json={"reason": "Nothing to set"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 422


async def test_trainer_cannot_edit_balance_over_http(async_client: AsyncClient) -> None:
    resp = await async_client.put(
        f"/trainers/{TRAINER_ID}/balance/SICK",
        json={"new_value": 30, "reason": "Self service"},
        headers=TRAINER_HEADERS,
    )
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


async def test_statistics_count_requests_by_status(async_client: AsyncClient) -> None:
    start = date.today() + timedelta(days=3)

    async def _apply(offset: int) -> str:
        resp = await async_client.post(
            f"/trainers/{TRAINER_ID}/leaves",
            json={
                "leave_type": "PAID",
                "from_date": (start + timedelta(days=offset)).isoformat(),
                "to_date": (start + timedelta(days=offset)).isoformat(),
                "reason": REASON,
            },
            headers=TRAINER_HEADERS,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    approved = await _apply(0)
    rejected = await _apply(2)
    await _apply(4)
    await async_client.post(f"/leaves/{approved}/approve", headers=ADMIN_HEADERS)
    await async_client.post(f"/leaves/{rejected}/reject", headers=ADMIN_HEADERS)

    resp = await async_client.get(f"/trainers/{TRAINER_ID}/statistics", headers=TRAINER_HEADERS)

    assert resp.status_code == 200
    stats = resp.json()["statistics"]
    assert stats["pending_requests"] == 1
    assert stats["rejected_requests"] == 1
    # Approved leave starting next year does not count toward this year.
    expected_approved = 1 if start.year == date.today().year else 0
    assert stats["approved_this_year"] == expected_approved
    assert resp.json()["balance"]["trainer_id"] == str(TRAINER_ID)


# ---------------------------------------------------------------------------
# Audit log endpoint
# ---------------------------------------------------------------------------


async def test_audit_log_is_newest_first_and_paginated(async_client: AsyncClient) -> None:
    for value in (3, 5, 9):
        resp = await async_client.put(
            f"/trainers/{TRAINER_ID}/balance/SICK",
            json={"new_value": value, "reason": f"Set to {value}"},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 200

    resp = await async_client.get(f"/trainers/{TRAINER_ID}/audit", params={"limit": 2}, headers=TRAINER_HEADERS)

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert data["pages"] == 2
    assert [item["delta"] for item in data["items"]] == [4, 2]
    assert [item["resulting_available"] for item in data["items"]] == [9, 5]


async def test_audit_log_filters_by_leave_type(async_client: AsyncClient) -> None:
    await async_client.put(
        f"/trainers/{TRAINER_ID}/balance/SICK", json={"new_value": 2, "reason": "Sick grant"}, headers=ADMIN_HEADERS
    )
    await async_client.put(
        f"/trainers/{TRAINER_ID}/balance/CASUAL", json={"new_value": 4, "reason": "Casual grant"}, headers=ADMIN_HEADERS
    )

    resp = await async_client.get(
        f"/trainers/{TRAINER_ID}/audit", params={"leave_type": "CASUAL"}, headers=ADMIN_HEADERS
    )

    items = resp.json()["items"]
    assert len(items) == 1
    assert items[0]["leave_type"] == "CASUAL"
    assert items[0]["entry_type"] == "ADMIN_EDIT"

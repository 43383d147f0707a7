"""HTTP API tests against an in-memory database."""

from decimal import Decimal
from uuid import uuid4

import httpx
import pytest

from shift_engine.api.app import create_app
from shift_engine.api.dependencies import get_db_session
from shift_engine.config import get_settings
from shift_engine.events import ShiftAccepted, ShiftAssigned


@pytest.fixture
async def client(
    session_factory, session, settings, emitter, admin_employee, hourly_employee, salaried_employee
):
    """API client sharing the test database; fixture employees are committed."""
    await session.commit()

    app = create_app(emitter)

    async def override_session():
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_settings] = lambda: settings

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def headers(employee, role="EMPLOYEE"):
    return {"X-Employee-ID": str(employee.employee_id), "X-Role": role}


@pytest.fixture
def admin_headers(admin_employee):
    return headers(admin_employee, "ADMIN")


@pytest.fixture
def worker_headers(hourly_employee):
    return headers(hourly_employee)


async def create_shift(
    client, admin_headers, employee, day="2026-03-02", start="09:00", end="17:00", **extra
):
    return await client.post(
        "/api/v1/shifts",
        json={
            "employee_id": str(employee.employee_id),
            "shift_date": day,
            "start_time": start,
            "end_time": end,
            **extra,
        },
        headers=admin_headers,
    )


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "healthy"

    async def test_live_and_ready(self, client):
        assert (await client.get("/live")).json() == {"status": "alive"}
        assert (await client.get("/ready")).json() == {"status": "ready"}


class TestIdentity:
    async def test_missing_employee_header(self, client):
        response = await client.get("/api/v1/shifts")
        assert response.status_code == 401

    async def test_malformed_employee_header(self, client):
        response = await client.get("/api/v1/shifts", headers={"X-Employee-ID": "nope"})
        assert response.status_code == 400


class TestShiftEndpoints:
    async def test_conflict_requires_override(self, client, admin_headers, hourly_employee):
        first = await create_shift(client, admin_headers, hourly_employee, start="09:00", end="12:00")
        assert first.status_code == 201
        assert Decimal(first.json()["hours"]) == Decimal("3")

        touching = await create_shift(client, admin_headers, hourly_employee, start="12:00", end="15:00")
        assert touching.status_code == 201

        clash = await create_shift(client, admin_headers, hourly_employee, start="10:00", end="11:00")
        assert clash.status_code == 409
        body = clash.json()
        assert body["code"] == "SCHEDULE_CONFLICT"
        assert body["context"]["conflicts"][0]["conflicting_shift_id"] == first.json()["shift_id"]

        forced = await create_shift(
            client, admin_headers, hourly_employee, start="10:00", end="11:00", override=True
        )
        assert forced.status_code == 201

    async def test_employee_cannot_assign(self, client, worker_headers, hourly_employee):
        response = await create_shift(client, worker_headers, hourly_employee)

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    async def test_employee_cannot_see_others_conflicts(
        self, client, admin_headers, worker_headers, salaried_employee
    ):
        await create_shift(client, admin_headers, salaried_employee)

        assigned = await create_shift(
            client, worker_headers, salaried_employee, start="10:00", end="12:00"
        )
        checked = await client.get(
            "/api/v1/shifts/conflicts",
            params={
                "employee_id": str(salaried_employee.employee_id),
                "shift_date": "2026-03-02",
                "start_time": "10:00",
                "end_time": "12:00",
            },
            headers=worker_headers,
        )

        assert assigned.status_code == 403
        assert "context" not in assigned.json()
        assert checked.status_code == 403

    async def test_admin_conflict_check(self, client, admin_headers, hourly_employee):
        await create_shift(client, admin_headers, hourly_employee)

        checked = await client.get(
            "/api/v1/shifts/conflicts",
            params={
                "employee_id": str(hourly_employee.employee_id),
                "shift_date": "2026-03-02",
                "start_time": "16:00",
                "end_time": "18:00",
            },
            headers=admin_headers,
        )

        assert checked.status_code == 200
        assert checked.json()["has_conflict"] is True

    async def test_invalid_times(self, client, admin_headers, hourly_employee):
        response = await create_shift(client, admin_headers, hourly_employee, start="17:00", end="09:00")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_unknown_shift(self, client, admin_headers):
        response = await client.get(f"/api/v1/shifts/{uuid4()}", headers=admin_headers)
        assert response.status_code == 404

    async def test_sick_decline_charges_balance(
        self, client, admin_headers, worker_headers, hourly_employee
    ):
        created = await create_shift(client, admin_headers, hourly_employee, start="09:00", end="13:00")
        shift_id = created.json()["shift_id"]

        declined = await client.post(
            f"/api/v1/shifts/{shift_id}/decline",
            json={"decline_type": "SICK_DAY", "reason": "flu"},
            headers=worker_headers,
        )
        assert declined.status_code == 200
        assert declined.json()["status"] == "DECLINED"

        balance = await client.get(
            f"/api/v1/balances/{hourly_employee.employee_id}", headers=worker_headers
        )
        assert Decimal(balance.json()["sick_hours_remaining"]) == Decimal("36")
        assert Decimal(balance.json()["vacation_hours_remaining"]) == Decimal("80")

        again = await client.post(f"/api/v1/shifts/{shift_id}/accept", headers=worker_headers)
        assert again.status_code == 409
        assert again.json()["code"] == "INVALID_STATE"

    async def test_employees_list_only_their_shifts(
        self, client, admin_headers, worker_headers, hourly_employee, salaried_employee
    ):
        await create_shift(client, admin_headers, hourly_employee)
        await create_shift(client, admin_headers, salaried_employee)

        mine = await client.get("/api/v1/shifts", headers=worker_headers)
        everyone = await client.get("/api/v1/shifts", headers=admin_headers)

        assert mine.json()["total"] == 1
        assert everyone.json()["total"] == 2

    async def test_recurring_rule(self, client, admin_headers, hourly_employee):
        payload = {
            "employee_id": str(hourly_employee.employee_id),
            "day_of_week": 1,
            "start_time": "09:00",
            "end_time": "15:00",
            "start_date": "2026-03-01",
            "end_date": "2026-03-31",
        }

        created = await client.post("/api/v1/recurring-rules", json=payload, headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["count"] == 5

        repeated = await client.post("/api/v1/recurring-rules", json=payload, headers=admin_headers)
        assert repeated.status_code == 409
        assert len(repeated.json()["context"]["conflicts"]) == 5


class TestRecurringEndpoints:
    async def test_rule_visible_to_owner_only(
        self, client, admin_headers, worker_headers, hourly_employee, salaried_employee
    ):
        payload = {
            "day_of_week": 2,
            "start_time": "09:00",
            "end_time": "15:00",
            "start_date": "2026-03-01",
            "end_date": "2026-03-31",
        }
        mine = await client.post(
            "/api/v1/recurring-rules",
            json={**payload, "employee_id": str(hourly_employee.employee_id)},
            headers=admin_headers,
        )
        theirs = await client.post(
            "/api/v1/recurring-rules",
            json={**payload, "employee_id": str(salaried_employee.employee_id)},
            headers=admin_headers,
        )

        own = await client.get(
            f"/api/v1/recurring-rules/{mine.json()['rule']['recurring_rule_id']}",
            headers=worker_headers,
        )
        other = await client.get(
            f"/api/v1/recurring-rules/{theirs.json()['rule']['recurring_rule_id']}",
            headers=worker_headers,
        )

        assert own.status_code == 200
        assert other.status_code == 404


class TestEventPublishing:
    async def test_events_published_after_commit(
        self, client, admin_headers, worker_headers, hourly_employee, collector
    ):
        created = await create_shift(client, admin_headers, hourly_employee)
        await client.post(f"/api/v1/shifts/{created.json()['shift_id']}/accept", headers=worker_headers)

        [assigned] = collector.of_type(ShiftAssigned)
        [accepted] = collector.of_type(ShiftAccepted)
        assert str(assigned.shift_id) == created.json()["shift_id"]
        assert accepted.shift_id == assigned.shift_id

    async def test_failed_request_publishes_nothing(
        self, client, admin_headers, worker_headers, hourly_employee, collector
    ):
        pending = await create_shift(client, admin_headers, hourly_employee)
        declined = await create_shift(client, admin_headers, hourly_employee, day="2026-03-03")
        await client.post(
            f"/api/v1/shifts/{declined.json()['shift_id']}/decline",
            json={"decline_type": "UNPAID", "reason": "personal"},
            headers=worker_headers,
        )

        response = await client.post(
            "/api/v1/shifts/bulk-accept",
            json={"shift_ids": [pending.json()["shift_id"], declined.json()["shift_id"]]},
            headers=worker_headers,
        )

        assert response.status_code == 409
        still_pending = await client.get(
            f"/api/v1/shifts/{pending.json()['shift_id']}", headers=worker_headers
        )
        assert still_pending.json()["status"] == "PENDING"
        assert collector.of_type(ShiftAccepted) == []


class TestBalanceEndpoints:
    async def test_adjust_and_history(self, client, admin_headers, worker_headers, hourly_employee):
        url = f"/api/v1/balances/{hourly_employee.employee_id}"

        adjusted = await client.post(
            f"{url}/adjust",
            json={"bucket": "VACATION", "hours": "4", "operation": "debit", "note": "correction"},
            headers=admin_headers,
        )
        assert adjusted.status_code == 200
        assert Decimal(adjusted.json()["vacation_hours_remaining"]) == Decimal("76")

        history = await client.get(f"{url}/history", headers=worker_headers)
        [entry] = history.json()
        assert entry["source_type"] == "manual"
        assert Decimal(entry["delta_hours"]) == Decimal("-4")
        assert Decimal(entry["balance_after"]) == Decimal("76")

    async def test_unknown_bucket(self, client, admin_headers, hourly_employee):
        response = await client.post(
            f"/api/v1/balances/{hourly_employee.employee_id}/adjust",
            json={"bucket": "PERSONAL", "hours": "4"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_employee_cannot_adjust(self, client, worker_headers, hourly_employee):
        response = await client.post(
            f"/api/v1/balances/{hourly_employee.employee_id}/adjust",
            json={"bucket": "SICK", "hours": "4"},
            headers=worker_headers,
        )
        assert response.status_code == 403

    async def test_cannot_view_other_balance(self, client, worker_headers, salaried_employee):
        response = await client.get(
            f"/api/v1/balances/{salaried_employee.employee_id}", headers=worker_headers
        )
        assert response.status_code == 403


class TestTimeOffEndpoints:
    async def test_submit_and_approve(
        self, client, admin_headers, worker_headers, hourly_employee
    ):
        submitted = await client.post(
            "/api/v1/time-off/selections",
            json={
                "days": [
                    {"day": "2026-03-02"},
                    {"day": "2026-03-03"},
                    {"day": "2026-03-09", "portion": "HALF"},
                ],
                "request_type": "VACATION",
            },
            headers=worker_headers,
        )
        assert submitted.status_code == 201
        requests = submitted.json()["items"]
        assert len(requests) == 2

        for request in requests:
            approved = await client.post(
                f"/api/v1/time-off/{request['request_id']}/approve", headers=admin_headers
            )
            assert approved.status_code == 200

        balance = await client.get(
            f"/api/v1/balances/{hourly_employee.employee_id}", headers=admin_headers
        )
        # 2 full days + 1 half day
        assert Decimal(balance.json()["vacation_hours_remaining"]) == Decimal("60")

    async def test_employee_cannot_approve(self, client, worker_headers):
        submitted = await client.post(
            "/api/v1/time-off",
            json={"start_date": "2026-03-02", "end_date": "2026-03-02", "request_type": "SICK"},
            headers=worker_headers,
        )

        response = await client.post(
            f"/api/v1/time-off/{submitted.json()['request_id']}/approve", headers=worker_headers
        )
        assert response.status_code == 403


class TestPayPeriodEndpoints:
    async def test_close_flow(
        self, client, admin_headers, worker_headers, hourly_employee, salaried_employee
    ):
        period = await client.post(
            "/api/v1/pay-periods",
            json={
                "name": "March A",
                "start_date": "2026-03-01",
                "end_date": "2026-03-14",
                "frequency": "BI_WEEKLY",
            },
            headers=admin_headers,
        )
        assert period.status_code == 201
        period_id = period.json()["pay_period_id"]

        for day in ("2026-03-02", "2026-03-03"):
            created = await create_shift(client, admin_headers, hourly_employee, day=day)
            await client.post(
                f"/api/v1/shifts/{created.json()['shift_id']}/accept", headers=worker_headers
            )

        preview = await client.get(
            f"/api/v1/pay-periods/{period_id}/close-preview", headers=admin_headers
        )
        assert preview.status_code == 200
        body = preview.json()
        assert Decimal(body["hourly_employees"][0]["gross_amount"]) == Decimal("320")
        assert Decimal(body["salaried_employees"][0]["gross_amount"]) == Decimal("2000")
        assert Decimal(body["total_gross"]) == Decimal("2320")

        closed = await client.post(f"/api/v1/pay-periods/{period_id}/close", headers=admin_headers)
        assert closed.status_code == 200
        assert closed.json()["status"] == "CLOSED"
        assert closed.json()["totals_hash"]

        again = await client.post(f"/api/v1/pay-periods/{period_id}/close", headers=admin_headers)
        assert again.status_code == 409

        payouts = await client.get(f"/api/v1/pay-periods/{period_id}/payouts", headers=admin_headers)
        assert len(payouts.json()) == 2

    async def test_employee_cannot_close(self, client, admin_headers, worker_headers):
        period = await client.post(
            "/api/v1/pay-periods",
            json={"name": "March", "start_date": "2026-03-01", "end_date": "2026-03-31"},
            headers=admin_headers,
        )

        response = await client.post(
            f"/api/v1/pay-periods/{period.json()['pay_period_id']}/close", headers=worker_headers
        )
        assert response.status_code == 403

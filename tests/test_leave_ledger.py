"""Tests for the leave balance ledger."""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from shift_engine.errors import InsufficientBalanceError, NotFoundError, ValidationError
from shift_engine.events import LeaveBalanceChanged
from shift_engine.services import LeaveLedger
from shift_engine.services.types import LeaveBucket
from tests.conftest import make_employee


class TestProvision:
    async def test_allotment_converted_to_hours(self, ledger, hourly_employee):
        balance = await ledger.get_balance(hourly_employee.employee_id)

        # 5 sick days and 10 vacation days at 8 hours per day
        assert balance.sick_hours_remaining == Decimal("40.00")
        assert balance.vacation_hours_remaining == Decimal("80.00")

    async def test_provision_is_idempotent(self, ledger, hourly_employee):
        await ledger.debit(hourly_employee.employee_id, LeaveBucket.SICK, Decimal("4"))
        balance = await ledger.provision(hourly_employee)

        assert balance.sick_hours_remaining == Decimal("36.00")

    async def test_unknown_employee(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.get_balance(uuid4())
        with pytest.raises(NotFoundError):
            await ledger.debit(uuid4(), LeaveBucket.SICK, Decimal("1"))


class TestDebitCredit:
    async def test_debit_reduces_only_its_bucket(self, ledger, hourly_employee):
        remaining = await ledger.debit(
            hourly_employee.employee_id, LeaveBucket.SICK, Decimal("4")
        )

        assert remaining == Decimal("36.00")
        assert await ledger.remaining(
            hourly_employee.employee_id, LeaveBucket.VACATION
        ) == Decimal("80.00")

    async def test_credit_adds_hours(self, ledger, hourly_employee):
        remaining = await ledger.credit(
            hourly_employee.employee_id, LeaveBucket.VACATION, Decimal("2.5")
        )
        assert remaining == Decimal("82.50")

    @pytest.mark.parametrize("hours", [Decimal("0"), Decimal("-3")])
    async def test_hours_must_be_positive(self, ledger, hourly_employee, hours):
        with pytest.raises(ValidationError):
            await ledger.debit(hourly_employee.employee_id, LeaveBucket.SICK, hours)

    async def test_overdraw_allowed_by_default(self, ledger, hourly_employee):
        remaining = await ledger.debit(
            hourly_employee.employee_id, LeaveBucket.SICK, Decimal("50")
        )
        assert remaining == Decimal("-10.00")

    async def test_overdraw_refused_when_disabled(self, session, settings, hourly_employee):
        strict = LeaveLedger(session, replace(settings, allow_negative_leave_balance=False))

        await strict.debit(hourly_employee.employee_id, LeaveBucket.SICK, Decimal("40"))
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await strict.debit(hourly_employee.employee_id, LeaveBucket.SICK, Decimal("0.5"))

        assert exc_info.value.remaining == Decimal("0.00")
        assert await strict.remaining(
            hourly_employee.employee_id, LeaveBucket.SICK
        ) == Decimal("0.00")

    async def test_repeated_debits_accumulate(self, ledger, hourly_employee):
        for _ in range(3):
            await ledger.debit(hourly_employee.employee_id, LeaveBucket.VACATION, Decimal("8"))

        assert await ledger.remaining(
            hourly_employee.employee_id, LeaveBucket.VACATION
        ) == Decimal("56.00")


class TestHistory:
    async def test_every_mutation_recorded(self, ledger, hourly_employee):
        source_id = uuid4()
        await ledger.debit(
            hourly_employee.employee_id,
            LeaveBucket.SICK,
            Decimal("4"),
            source_type="shift",
            source_id=source_id,
            note="flu",
        )
        await ledger.credit(hourly_employee.employee_id, LeaveBucket.SICK, Decimal("1"))

        history = await ledger.history(hourly_employee.employee_id)

        assert [t.delta_hours for t in history] == [Decimal("-4.00"), Decimal("1.00")]
        assert [t.balance_after for t in history] == [Decimal("36.00"), Decimal("37.00")]
        assert history[0].source_type == "shift"
        assert history[0].source_id == source_id
        assert history[1].source_type == "manual"

    async def test_emits_balance_changed(self, ledger, collector, hourly_employee):
        await ledger.debit(hourly_employee.employee_id, LeaveBucket.SICK, Decimal("4"))

        events = collector.of_type(LeaveBalanceChanged)
        assert len(events) == 1
        assert events[0].bucket == "SICK"
        assert events[0].delta_hours == Decimal("-4.00")
        assert events[0].balance_after == Decimal("36.00")


class TestRollover:
    async def test_reset_without_carryover(self, ledger, hourly_employee):
        await ledger.debit(hourly_employee.employee_id, LeaveBucket.SICK, Decimal("10"))
        await ledger.credit(hourly_employee.employee_id, LeaveBucket.VACATION, Decimal("5"))

        balance = await ledger.roll_over_year(hourly_employee.employee_id)

        assert balance.sick_hours_remaining == Decimal("40.00")
        assert balance.vacation_hours_remaining == Decimal("80.00")

    async def test_carryover_adds_allotment(self, session, settings, ledger):
        employee = await make_employee(
            session, settings, display_name="Casey Carryover", carryover_enabled=True
        )
        await ledger.debit(employee.employee_id, LeaveBucket.SICK, Decimal("10"))

        balance = await ledger.roll_over_year(employee.employee_id)

        assert balance.sick_hours_remaining == Decimal("70.00")
        assert balance.vacation_hours_remaining == Decimal("160.00")

        rollovers = [t for t in await ledger.history(employee.employee_id) if t.source_type == "rollover"]
        assert len(rollovers) == 2

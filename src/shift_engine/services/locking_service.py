"""Shift locking for closed pay periods."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.models import PayPeriod, Shift
from shift_engine.services.types import PayrollLine


class LockingService:
    """Service for freezing a period's inputs when it closes.

    When a pay period is closed:
    1. All shifts dated within the period are marked as locked
    2. A hash of the payroll totals is computed and stored on the period

    Locked shifts can no longer transition or be edited, so the totals that
    were paid cannot drift afterwards.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lock_shifts_for_period(self, period: PayPeriod) -> int:
        """Lock all unlocked shifts dated within the period.

        Returns count of locked records.
        """
        result = await self.session.execute(
            update(Shift)
            .where(
                Shift.shift_date >= period.start_date,
                Shift.shift_date <= period.end_date,
                Shift.locked_by_pay_period_id.is_(None),
            )
            .values(
                locked_by_pay_period_id=period.pay_period_id,
                locked_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def compute_totals_hash(self, lines: Iterable[PayrollLine]) -> str:
        """Deterministic hash over the canonical form of payroll lines."""
        canonical = sorted(
            (line.to_canonical_dict() for line in lines),
            key=lambda d: d["employee_id"],
        )
        return self._compute_hash({"lines": canonical})

    def _compute_hash(self, data: dict[str, Any]) -> str:
        """Compute a deterministic hash of data."""
        # Sort keys for deterministic JSON
        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

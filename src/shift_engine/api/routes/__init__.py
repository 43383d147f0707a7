"""API routes."""

from shift_engine.api.routes.balances import router as balances_router
from shift_engine.api.routes.health import router as health_router
from shift_engine.api.routes.pay_periods import router as pay_periods_router
from shift_engine.api.routes.recurring import router as recurring_router
from shift_engine.api.routes.shifts import router as shifts_router
from shift_engine.api.routes.time_off import router as time_off_router

__all__ = [
    "balances_router",
    "health_router",
    "pay_periods_router",
    "recurring_router",
    "shifts_router",
    "time_off_router",
]

"""Dashboard router: fee collection figures (Admin only)."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.rbac import Action, check_permission
from school_admin.core import clock
from school_admin.db.session import get_db

from .schemas import ClassWiseItem, DashboardStats, MonthlyTrendItem, PaymentModeItem
from . import service

router = APIRouter(
    prefix="/api/v1/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(check_permission(Action.FEES_READ))],
)


def _year(year: Optional[int]) -> int:
    return year if year is not None else clock.today().year


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
) -> DashboardStats:
    return await service.get_stats(db, _year(year))


@router.get("/monthly-trend", response_model=List[MonthlyTrendItem])
async def get_monthly_trend(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
) -> List[MonthlyTrendItem]:
    return await service.get_monthly_trend(db, _year(year))


@router.get("/class-wise", response_model=List[ClassWiseItem])
async def get_class_wise(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    month: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> List[ClassWiseItem]:
    return await service.get_class_wise(db, _year(year), month)


@router.get("/payment-modes", response_model=List[PaymentModeItem])
async def get_payment_modes(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
) -> List[PaymentModeItem]:
    return await service.get_payment_modes(db, _year(year))

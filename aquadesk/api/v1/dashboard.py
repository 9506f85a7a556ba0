from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from aquadesk.core.dependencies import get_db
from aquadesk.logger_config import logger
from aquadesk.schemas.dashboard import Activity, ActivityListResponse, DashboardStats
from aquadesk.services.dashboard_service import get_dashboard_stats, get_recent_activities

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(
    date: Optional[date] = Query(None, description="Business day for orders_today (YYYY-MM-DD); defaults to today"),
    db: Session = Depends(get_db)
):
    """
    Customers, riders, today's orders, open orders and what customers currently owe.
    """
    logger.info(f"API: Dashboard stats for {date or 'today'}")
    return DashboardStats(**get_dashboard_stats(db, date))


@router.get("/activities", response_model=ActivityListResponse)
def recent_activities(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """Latest order transitions and new customers, newest first."""
    return ActivityListResponse(
        activities=[Activity(**a) for a in get_recent_activities(db, limit=limit)]
    )

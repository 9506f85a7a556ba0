from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from aquadesk.core.dependencies import get_db
from aquadesk.logger_config import logger
from aquadesk.schemas.daily_closing import (
    DailyClosingListResponse,
    DailyClosingResponse,
    DailyClosingSummary,
)
from aquadesk.services.daily_closing_service import DailyClosingService

router = APIRouter()


@router.get("/summary", response_model=DailyClosingSummary)
def get_closing_summary(
    date: Optional[date] = Query(None, description="Business day (YYYY-MM-DD); defaults to today"),
    db: Session = Depends(get_db)
):
    """
    Preview the day's figures. Nothing is saved.
    `can_close` is false while any of the day's orders is still open.
    """
    logger.info(f"API: Daily closing summary for {date or 'today'}")
    return DailyClosingSummary(**DailyClosingService(db).compute_summary(date))


@router.post("", response_model=DailyClosingResponse, status_code=status.HTTP_201_CREATED)
def save_closing(
    response: Response,
    date: Optional[date] = Query(None, description="Business day (YYYY-MM-DD); defaults to today"),
    db: Session = Depends(get_db)
):
    """
    Save the closing for a business day.
    201 when the day is closed for the first time, 200 when an existing closing is overwritten.
    """
    service = DailyClosingService(db)
    reference_date = date or service.today()
    logger.info(f"API: Save daily closing for {reference_date}")

    if service.exists(reference_date):
        response.status_code = status.HTTP_200_OK
    closing = service.save(reference_date)
    return DailyClosingResponse.model_validate(closing)


@router.get("", response_model=DailyClosingListResponse)
def list_closings(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=366),
    db: Session = Depends(get_db)
):
    closings, total = DailyClosingService(db).list_closings(skip=skip, limit=limit)
    return DailyClosingListResponse(
        total=total,
        closings=[DailyClosingResponse.model_validate(c) for c in closings]
    )


@router.get("/{closing_date}", response_model=DailyClosingResponse)
def get_closing(closing_date: date, db: Session = Depends(get_db)):
    return DailyClosingResponse.model_validate(DailyClosingService(db).get_closing(closing_date))

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from aquadesk.core.dependencies import get_db
from aquadesk.core.exceptions import AquaDeskError
from aquadesk.services.rider_service import (
    create_rider,
    get_all_riders,
    get_rider_dashboard,
    get_rider_or_404,
    set_rider_status,
    update_rider,
)
from aquadesk.schemas.rider import (
    RiderCreate,
    RiderDashboardResponse,
    RiderListResponse,
    RiderResponse,
    RiderStatusUpdate,
    RiderUpdate,
)
from aquadesk.logger_config import logger

router = APIRouter()


@router.get("", response_model=RiderListResponse)
def get_riders(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None, description="Pass true to list riders available for assignment"),
    db: Session = Depends(get_db)
):
    """ Get all the Riders """
    try:
        riders, total = get_all_riders(db, skip, limit, search, is_active)
        return RiderListResponse(
            total=total,
            riders=[RiderResponse.model_validate(rider) for rider in riders]
        )
    except Exception as e:
        logger.error(f"Error fetching riders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch riders"
        )


@router.get("/{rider_id}", response_model=RiderResponse)
def get_rider(rider_id: str, db: Session = Depends(get_db)):
    """
    Get Rider by Id
    """
    return RiderResponse.model_validate(get_rider_or_404(db, rider_id))


@router.get("/{rider_id}/dashboard", response_model=RiderDashboardResponse)
def get_rider_dashboard_route(
    rider_id: str,
    date: Optional[date] = Query(None, description="Business day (YYYY-MM-DD); defaults to today"),
    db: Session = Depends(get_db)
):
    """Orders handled and cash collected by a rider on one business day."""
    return RiderDashboardResponse(**get_rider_dashboard(db, rider_id, date))


@router.post("", response_model=RiderResponse, status_code=status.HTTP_201_CREATED)
def create_rider_route(rider_data: RiderCreate, db: Session = Depends(get_db)):
    """
    Create Rider
    """
    try:
        rider = create_rider(db=db, name=rider_data.name, phone=rider_data.phone, is_active=rider_data.is_active)
        logger.info(f"Rider {rider.name} created")
        return RiderResponse.model_validate(rider)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating rider: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create rider"
        )


@router.put("/{rider_id}", response_model=RiderResponse)
def update_rider_route(rider_id: str, rider_data: RiderUpdate, db: Session = Depends(get_db)):
    try:
        rider = update_rider(db, rider_id, name=rider_data.name, phone=rider_data.phone)
        logger.info(f"Rider {rider_id} updated")
        return RiderResponse.model_validate(rider)
    except AquaDeskError:
        raise
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating rider: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update rider"
        )


@router.patch("/{rider_id}/status", response_model=RiderResponse)
def update_rider_status_route(rider_id: str, status_data: RiderStatusUpdate, db: Session = Depends(get_db)):
    """Deactivated riders are no longer offered for assignment."""
    return RiderResponse.model_validate(set_rider_status(db, rider_id, status_data.is_active))

"""
Grouped staff reports over bookings and payments.
"""

from datetime import date
from typing import Literal

from fastapi import APIRouter, HTTPException, Query, status

from app.dependencies import StaffUser
from app.models import Report
from app.services.reports import REPORTS

router = APIRouter(prefix="/api/admin/reports", tags=["reports"])


@router.get(
    "/{report_type}",
    response_model=Report,
    operation_id="getReport",
    summary="Run a grouped report",
)
async def get_report(
    report_type: str,
    staff: StaffUser,
    group_by: Literal["day", "week", "month"] = Query("day", description="Period bucket"),
    start_date: date | None = Query(None, description="Inclusive lower bound"),
    end_date: date | None = Query(None, description="Inclusive upper bound"),
) -> Report:
    runner = REPORTS.get(report_type)
    if runner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown report {report_type}. Available: {', '.join(REPORTS)}",
        )
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )
    rows = await runner(group_by, start_date, end_date)
    return Report(
        report_type=report_type,
        group_by=group_by,
        start_date=start_date,
        end_date=end_date,
        rows=rows,
    )

import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List, Optional
from roomsplit.db.database import get_db
from roomsplit.api.v1.dependencies import get_member_household
from roomsplit.models.households import Household
from roomsplit.services.expense_service import load_snapshot
from roomsplit.schemas.report_schema import ReportOut, NetSpendingOut, ReportTransferOut
from roomsplit.utils.reports import (
    REPORT_KINDS, available_months, build_report, export_report_csv, report_filename
)
from roomsplit.utils.settlement_engine import SettlementError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/households/{household_id}/reports", tags=["reports"])

MONTH_PATTERN = r"^\d{4}-\d{2}$"


def _build(db, household_id, month, room, payer):
    members, expenses = load_snapshot(db, household_id)
    try:
        return members, build_report(members, expenses, month=month, room=room, payer=payer)
    except SettlementError as e:
        logger.error(f"Cannot build report for household {household_id}: {e}")
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/months", response_model=List[str])
def get_available_months(
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Months (YYYY-MM) that have expenses, newest first"""
    _, expenses = load_snapshot(db, household.id)
    return available_months(expenses)


@router.get("/summary", response_model=ReportOut)
def get_report_summary(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    room: Optional[str] = None,
    payer: Optional[str] = None,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Spending, balances and settlement for the filtered expenses"""
    _, report = _build(db, household.id, month, room, payer)
    return ReportOut(
        month=report.month,
        expense_count=len(report.expenses),
        total=report.total,
        spending=report.spending,
        categories=report.categories,
        balances=report.balances,
        transfers=[ReportTransferOut.model_validate(transfer) for transfer in report.transfers],
        net=[NetSpendingOut.model_validate(item) for item in report.net]
    )


@router.get("/export.csv")
def export_report(
    kind: str = Query("overview", pattern="^(" + "|".join(REPORT_KINDS) + ")$"),
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    room: Optional[str] = None,
    payer: Optional[str] = None,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Download one report kind as CSV"""
    members, report = _build(db, household.id, month, room, payer)
    content = export_report_csv(report, members, kind)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(kind, month)}"'}
    )

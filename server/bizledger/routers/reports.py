from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bizledger.auth import AuthContext, get_auth_context
from bizledger.db import get_db
from bizledger.errors import LedgerValidationError
from bizledger.reports import schemas
from bizledger.reports.cashflow import build_cash_flow_report
from bizledger.reports.creditors import build_creditors_report
from bizledger.reports.dates import DateRange, ReportRange, resolve_date_range
from bizledger.reports.debtors import build_debtors_report
from bizledger.reports.expense import build_expense_report
from bizledger.reports.income import build_income_report

router = APIRouter(prefix="/api/reports", tags=["reports"])


@dataclass(frozen=True)
class ReportWindow:
    name: str
    date_range: DateRange


def _parse_date(value: Optional[str], field: str) -> Optional[date]:
    if not value:
        return None
    try:
        if "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return date.fromisoformat(value)
    except ValueError:
        message = f"{field} must be a valid ISO date"
        raise LedgerValidationError(message, errors={field: [message]})


def report_window(
    range_name: ReportRange = Query(ReportRange.THIS_YEAR, alias="range"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
) -> ReportWindow:
    start = _parse_date(start_date, "startDate")
    end = _parse_date(end_date, "endDate")
    if range_name == ReportRange.CUSTOM and start and end and start > end:
        message = "startDate must not be after endDate"
        raise LedgerValidationError(message, errors={"startDate": [message]})
    return ReportWindow(range_name.value, resolve_date_range(range_name.value, start, end))


@router.get("/cashflow", response_model=schemas.CashFlowReport)
def get_cash_flow_report(
    window: ReportWindow = Depends(report_window),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return build_cash_flow_report(db, auth, window.date_range, window.name)


@router.get("/income", response_model=schemas.IncomeReport)
def get_income_report(
    window: ReportWindow = Depends(report_window),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return build_income_report(db, auth, window.date_range, window.name)


@router.get("/expense", response_model=schemas.ExpenseReport)
def get_expense_report(
    window: ReportWindow = Depends(report_window),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return build_expense_report(db, auth, window.date_range, window.name)


@router.get("/debtors", response_model=schemas.DebtorsReport)
def get_debtors_report(
    window: ReportWindow = Depends(report_window),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return build_debtors_report(db, auth, window.date_range, window.name)


@router.get("/creditors", response_model=schemas.CreditorsReport)
def get_creditors_report(
    window: ReportWindow = Depends(report_window),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return build_creditors_report(db, auth, window.date_range, window.name)

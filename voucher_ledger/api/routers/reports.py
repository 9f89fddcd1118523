"""
API Routers - ledger reports over posted vouchers.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from voucher_ledger.api.dependencies import Gateways, get_gateways, raise_for_result, require
from voucher_ledger.application.dto.voucher_dto import OperationResultDTO, TrialBalanceDTO
from voucher_ledger.core.security import Permission
from voucher_ledger.domain.value_objects import SessionContext

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.get("/trial-balance", response_model=TrialBalanceDTO)
def get_trial_balance(
    company_id: int | None = Query(None, description="Defaults to the caller's company"),
    date_from: date | None = None,
    date_to: date | None = None,
    gateways: Gateways = Depends(get_gateways),
    ctx: SessionContext = Depends(require(Permission.REPORT_VIEW)),
):
    """
    Trial balance: posted debit and credit totals per account.

    Total debits must equal total credits; `is_balanced` reports it.
    """
    result = gateways.journal.trial_balance(company_id or ctx.company_id, date_from, date_to)
    raise_for_result(result)
    return TrialBalanceDTO(**result.data)


@router.get("/account-balance/{account_id}", response_model=OperationResultDTO)
def get_account_balance(
    account_id: int,
    balance_date: date | None = None,
    gateways: Gateways = Depends(get_gateways),
    ctx: SessionContext = Depends(require(Permission.REPORT_VIEW)),
):
    result = gateways.journal.account_balance(account_id, balance_date)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)

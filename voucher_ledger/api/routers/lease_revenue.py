"""
API Routers - lease revenue posting endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends

from voucher_ledger.api.dependencies import get_lease_revenue_gateway, raise_for_result, require
from voucher_ledger.application.dto.lease_revenue_dto import LeaseApprovalRequestDTO, LeaseRevenuePostingDTO
from voucher_ledger.application.dto.voucher_dto import (
    OperationResultDTO,
    ReversalRequestDTO,
    ValidationResultDTO,
)
from voucher_ledger.application.lease_revenue import LeaseRevenuePostingGateway
from voucher_ledger.core.security import Permission
from voucher_ledger.domain.value_objects import (
    ApprovalStatus,
    LeaseRevenueFilters,
    LeaseTransactionType,
    SessionContext,
)

router = APIRouter(prefix="/api/v1/lease-revenue", tags=["Lease revenue"])


def _filters(
    company_id: int | None = None,
    fiscal_year_id: int | None = None,
    property_id: int | None = None,
    unit_id: int | None = None,
    customer_id: int | None = None,
    contract_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    approval_status: ApprovalStatus | None = None,
) -> LeaseRevenueFilters:
    return LeaseRevenueFilters(
        company_id=company_id,
        fiscal_year_id=fiscal_year_id,
        property_id=property_id,
        unit_id=unit_id,
        customer_id=customer_id,
        contract_id=contract_id,
        date_from=date_from,
        date_to=date_to,
        approval_status=approval_status,
    )


@router.post("/validate", response_model=ValidationResultDTO)
def validate_posting(
    dto: LeaseRevenuePostingDTO,
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
):
    return ValidationResultDTO.from_result(gateway.validate_posting(dto.to_domain()))


@router.post("/post", response_model=OperationResultDTO)
def post_selected(
    dto: LeaseRevenuePostingDTO,
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.LEASE_REVENUE_POST)),
):
    """Post the selected invoices/receipts; each becomes its own balanced entry."""
    result = gateway.post_selected(dto.to_domain(), ctx)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.get("/unposted", response_model=OperationResultDTO)
def unposted_transactions(
    filters: LeaseRevenueFilters = Depends(_filters),
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
):
    result = gateway.unposted(filters)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.get("/posted", response_model=OperationResultDTO)
def posted_transactions(
    filters: LeaseRevenueFilters = Depends(_filters),
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
):
    result = gateway.posted(filters)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.get("/pending", response_model=OperationResultDTO)
def pending_approvals(
    company_id: int | None = None,
    fiscal_year_id: int | None = None,
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
):
    result = gateway.pending_approvals(company_id or ctx.company_id, fiscal_year_id)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.get("/summary", response_model=OperationResultDTO)
def posting_summary(
    filters: LeaseRevenueFilters = Depends(_filters),
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.REPORT_VIEW)),
):
    result = gateway.posting_summary(filters)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.get("/transactions/{transaction_type}/{transaction_id}", response_model=OperationResultDTO)
def transaction_details(
    transaction_type: LeaseTransactionType,
    transaction_id: int,
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
):
    result = gateway.transaction_details(transaction_type, transaction_id)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.post("/postings/{posting_id}/approval", response_model=OperationResultDTO)
def approve_or_reject(
    posting_id: int,
    dto: LeaseApprovalRequestDTO,
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.VOUCHER_APPROVE)),
):
    result = gateway.approve_or_reject(posting_id, dto.action, ctx, dto.comments, dto.rejection_reason)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.post("/postings/{posting_id}/reset-approval", response_model=OperationResultDTO)
def reset_approval(
    posting_id: int,
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.VOUCHER_RESET_APPROVAL)),
):
    result = gateway.reset_approval(posting_id, ctx)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)


@router.post("/postings/{posting_id}/reverse", response_model=OperationResultDTO)
def reverse_posting(
    posting_id: int,
    dto: ReversalRequestDTO,
    gateway: LeaseRevenuePostingGateway = Depends(get_lease_revenue_gateway),
    ctx: SessionContext = Depends(require(Permission.VOUCHER_REVERSE)),
):
    result = gateway.reverse(posting_id, dto.reason, ctx)
    raise_for_result(result)
    return OperationResultDTO.from_result(result)

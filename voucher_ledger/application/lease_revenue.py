"""
Lease Revenue Posting Gateway - posts unposted lease invoices and receipts.

Each selected transaction becomes a balanced Dr/Cr pair in the ledger store.
Postings then follow the same approval rules as vouchers.
"""

import json
import logging
from datetime import date

from voucher_ledger.application.base import StoreGateway
from voucher_ledger.application.results import OperationResult
from voucher_ledger.domain.entities import LeaseRevenuePosting
from voucher_ledger.domain.exceptions import RemoteStoreError, VoucherNotFoundError, VoucherValidationError
from voucher_ledger.domain.services import ILedgerStore, LeaseRevenuePostingValidator
from voucher_ledger.domain.value_objects import (
    ApprovalAction,
    FieldError,
    LeaseRevenueFilters,
    LeaseRevenueMode,
    LeaseRevenuePostingRequest,
    LeaseTransactionType,
    SessionContext,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class LeaseRevenuePostingGateway(StoreGateway):

    noun = "Lease revenue posting"

    def __init__(self, store: ILedgerStore, validator: LeaseRevenuePostingValidator | None = None):
        super().__init__(store)
        self.validator = validator or LeaseRevenuePostingValidator()

    def validate_posting(self, request: LeaseRevenuePostingRequest) -> ValidationResult:
        return self.validator.validate_request(request)

    def post_selected(self, request: LeaseRevenuePostingRequest, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            result = self.validate_posting(request)
            if not result.is_valid:
                raise VoucherValidationError(result.errors)
            selected = [tx.to_store() for tx in request.resolved_transactions()]
            params = {
                **request.to_store(),
                "SelectedTransactionsJSON": json.dumps(selected),
                **ctx.audit_parameters(),
            }
            # A failed reply still lists the reason for each transaction.
            response = self.store.execute(int(LeaseRevenueMode.POST_SELECTED), params, ctx.user_name)
            items = [_post_item(row) for row in response.rows()]
            if not response.success and not items:
                raise RemoteStoreError(response.message or "Failed to post transactions")
            posted = sum(1 for item in items if item["success"])
            summary = {
                "posted_count": response.extras.get("PostedCount", posted if items else len(selected)),
                "failed_count": response.extras.get("FailedCount", len(items) - posted),
                "total_amount": response.extras.get("TotalAmount", float(request.total_amount)),
                "voucher_no": response.extras.get("VoucherNo"),
                "items": items,
            }
            if not response.success:
                logger.warning(f"No lease transactions posted: {response.message}")
                return OperationResult(
                    success=False,
                    message=response.message or "No transactions were posted",
                    errors=[
                        FieldError("TransactionID", f"{item['transaction_id']}: {item['message']}")
                        for item in items if not item["success"]
                    ],
                    error_kind=VoucherValidationError.kind,
                    data=summary,
                )
            return OperationResult.ok(response.message or "Transactions posted successfully", summary)

        return self._run("post selected", f"{len(request.transactions)} transaction(s)", op)

    def approve_or_reject(
        self,
        posting_id: int,
        action: ApprovalAction,
        ctx: SessionContext,
        comments: str | None = None,
        rejection_reason: str | None = None,
    ) -> OperationResult:
        def op() -> OperationResult:
            try:
                approval = ApprovalAction(action)
            except ValueError:
                raise VoucherValidationError([FieldError("ApprovalAction", "Valid approval action is required")])
            reason = (rejection_reason or comments or "").strip()
            if approval is ApprovalAction.REJECT and not reason:
                raise VoucherValidationError([
                    FieldError("RejectionReason", "Rejection reason is required when rejecting a posting")
                ])
            posting = self._load(posting_id, ctx)
            posting.ensure_decidable()
            params = {
                "PostingID": posting_id,
                "ApprovalAction": approval.value,
                "ApprovalComments": comments,
                "RejectionReason": reason if approval is ApprovalAction.REJECT else None,
                **ctx.audit_parameters(),
            }
            verb = "approved" if approval is ApprovalAction.APPROVE else "rejected"
            response = self._call(
                LeaseRevenueMode.APPROVE_REJECT, params, ctx, f"Failed to {approval.value.lower()} posting"
            )
            return OperationResult.ok(response.message or f"Posting {verb} successfully", {"posting_id": posting_id})

        return self._run("approve/reject", str(posting_id), op)

    def reset_approval(self, posting_id: int, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            posting = self._load(posting_id, ctx)
            posting.ensure_resettable()
            response = self._call(
                LeaseRevenueMode.RESET_APPROVAL,
                {"PostingID": posting_id, **ctx.audit_parameters()},
                ctx,
                "Failed to reset approval status",
            )
            return OperationResult.ok(
                response.message or "Approval status reset successfully", {"posting_id": posting_id}
            )

        return self._run("reset approval", str(posting_id), op)

    def reverse(self, posting_id: int, reason: str | None, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            if not posting_id:
                raise VoucherValidationError([FieldError("PostingID", "Posting ID is required for reversal")])
            if not reason or not reason.strip():
                raise VoucherValidationError([FieldError("ReversalReason", "Reversal reason is required")])
            posting = self._load(posting_id, ctx)
            posting.ensure_reversible(reason)
            response = self._call(
                LeaseRevenueMode.REVERSE,
                {"PostingID": posting_id, "ReversalReason": reason.strip(), **ctx.audit_parameters()},
                ctx,
                "Failed to reverse transaction",
            )
            return OperationResult.ok(
                response.message or "Transaction reversed successfully",
                {"posting_id": posting_id, "reversal_voucher_no": response.extras.get("ReversalVoucherNo")},
            )

        return self._run("reverse", str(posting_id), op)

    # Queries

    def unposted(self, filters: LeaseRevenueFilters | None = None) -> OperationResult:
        params = (filters or LeaseRevenueFilters()).to_store(posted=False)
        return self._query(LeaseRevenueMode.GET_UNPOSTED, params, "unposted transactions")

    def posted(self, filters: LeaseRevenueFilters | None = None) -> OperationResult:
        params = (filters or LeaseRevenueFilters()).to_store(posted=True)
        return self._query(LeaseRevenueMode.GET_POSTED, params, "posted transactions")

    def posting_summary(self, filters: LeaseRevenueFilters | None = None) -> OperationResult:
        filters = filters or LeaseRevenueFilters()
        params = {
            "CompanyID": filters.company_id,
            "FiscalYearID": filters.fiscal_year_id,
            "PostingFromDate": _iso(filters.date_from),
            "PostingToDate": _iso(filters.date_to),
            "FilterApprovalStatus": filters.approval_status.value if filters.approval_status else None,
        }
        return self._query(LeaseRevenueMode.POSTING_SUMMARY, params, "posting summary")

    def pending_approvals(self, company_id: int | None = None, fiscal_year_id: int | None = None) -> OperationResult:
        params = {"CompanyID": company_id, "FiscalYearID": fiscal_year_id}
        return self._query(LeaseRevenueMode.PENDING_APPROVALS, params, "pending approvals")

    def transaction_details(self, transaction_type: LeaseTransactionType, transaction_id: int) -> OperationResult:
        def op() -> OperationResult:
            tx_type = LeaseTransactionType(transaction_type)
            key = "LeaseInvoiceID" if tx_type is LeaseTransactionType.INVOICE else "LeaseReceiptID"
            response = self._call(
                LeaseRevenueMode.TRANSACTION_DETAILS,
                {"TransactionType": tx_type.value, key: transaction_id},
                None,
                "Failed to load transaction details",
            )
            rows = response.rows()
            if not rows:
                raise VoucherNotFoundError(str(transaction_id), noun=f"Lease {tx_type.value.lower()}")
            return OperationResult.ok(response.message or "", rows[0])

        return self._run("transaction details", str(transaction_id), op)

    def _load(self, posting_id: int, ctx: SessionContext) -> LeaseRevenuePosting:
        response = self._call(
            LeaseRevenueMode.GET_POSTED,
            {"PostingID": posting_id, "CompanyID": ctx.company_id},
            None,
            f"Failed to load posting {posting_id}",
        )
        for row in response.rows():
            if row.get("PostingID") == posting_id:
                return LeaseRevenuePosting.from_store(row)
        raise VoucherNotFoundError(str(posting_id), noun="Lease revenue posting")


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _post_item(row: dict) -> dict:
    return {
        "transaction_id": row.get("TransactionID"),
        "success": bool(row.get("Success")),
        "message": row.get("Message") or "",
        "voucher_no": row.get("VoucherNo"),
        "posting_id": row.get("PostingID"),
    }

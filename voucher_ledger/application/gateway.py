"""
Voucher Ledger Gateway - guards journal and payment voucher operations.

Every mutating call is checked locally (balance, required fields, posting state)
before the single request to the ledger store. Failures come back as a failed
OperationResult; nothing here raises for invariant violations or store errors.
"""

import json
import logging
from collections.abc import Iterable
from datetime import date

from voucher_ledger.application.base import StoreGateway
from voucher_ledger.application.results import BulkItemResult, BulkResult, OperationResult
from voucher_ledger.domain.entities import Voucher
from voucher_ledger.domain.exceptions import (
    VoucherNotFoundError,
    VoucherValidationError,
)
from voucher_ledger.domain.services import (
    IAttachmentEncoder,
    ILedgerStore,
    VoucherValidator,
)
from voucher_ledger.domain.value_objects import (
    BALANCE_TOLERANCE,
    ZERO,
    ApprovalAction,
    Attachment,
    FieldError,
    JournalMode,
    PaymentMode,
    SessionContext,
    ValidationResult,
    VoucherFilters,
    VoucherMode,
    VoucherType,
    _to_decimal,
)

logger = logging.getLogger(__name__)


class VoucherLedgerGateway(StoreGateway):
    """
    Service - One gateway per voucher endpoint (journal or payment).
    The session context is passed into every call; nothing is read from globals.
    """

    def __init__(
        self,
        store: ILedgerStore,
        voucher_type: VoucherType,
        validator: VoucherValidator | None = None,
        encoder: IAttachmentEncoder | None = None,
    ):
        super().__init__(store)
        self.voucher_type = voucher_type
        self.validator = validator or VoucherValidator()
        self.encoder = encoder
        self.noun = f"{voucher_type.value} voucher"

    # Validation

    def validate(self, draft: Voucher, today: date | None = None) -> ValidationResult:
        if draft.voucher_type is not self.voucher_type:
            return ValidationResult((FieldError(
                "voucher_type", f"Expected a {self.noun.lower()}, got {draft.voucher_type.value.lower()}"
            ),))
        return self.validator.validate(draft, today=today)

    def _ensure_valid(self, draft: Voucher) -> None:
        result = self.validate(draft)
        if not result.is_valid:
            raise VoucherValidationError(result.errors)

    # Core operations

    def create(self, draft: Voucher, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            self._ensure_valid(draft)
            params = {
                **draft.header_to_store(),
                "VoucherLinesJSON": _lines_json(draft.lines),
                "AttachmentsJSON": _attachments_json(draft.attachments),
                **ctx.audit_parameters(),
            }
            response = self._call(VoucherMode.CREATE, params, ctx, f"Failed to create {self.noun.lower()}")
            voucher_no = response.extras.get("VoucherNo")
            return OperationResult.ok(
                response.message or f"{self.noun} created successfully",
                {"voucher_no": voucher_no, "posting_id": response.extras.get("PostingID")},
            )

        return self._run("create", draft.voucher_no or "(new)", op)

    def update(self, voucher_no: str, draft: Voucher, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            current = self._load(voucher_no, ctx)
            current.ensure_editable()
            self._ensure_valid(draft)
            params = {
                **draft.header_to_store(),
                "VoucherNo": voucher_no,
                "PostingID": current.posting_id,
                "VoucherLinesJSON": _lines_json(draft.lines),
                "AttachmentsJSON": _attachments_json(draft.attachments),
                **ctx.audit_parameters(),
            }
            response = self._call(VoucherMode.UPDATE, params, ctx, f"Failed to update {self.noun.lower()}")
            return OperationResult.ok(
                response.message or f"{self.noun} updated successfully", {"voucher_no": voucher_no}
            )

        return self._run("update", voucher_no, op)

    def submit_for_approval(self, voucher_no: str, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            current = self._load(voucher_no, ctx)
            submitted = current.submit(ctx.user_name)
            response = self._call(
                VoucherMode.SUBMIT,
                self._key_params(current, ctx),
                ctx,
                f"Failed to submit {self.noun.lower()} for approval",
            )
            return OperationResult.ok(
                response.message or f"{self.noun} submitted for approval successfully",
                {"voucher_no": voucher_no, "posting_status": submitted.posting_status.value},
            )

        return self._run("submit", voucher_no, op)

    def approve_or_reject(
        self,
        voucher_no: str,
        action: ApprovalAction,
        comments: str | None,
        ctx: SessionContext,
    ) -> OperationResult:
        def op() -> OperationResult:
            try:
                approval = ApprovalAction(action)
            except ValueError:
                raise VoucherValidationError([FieldError("ApprovalAction", "Valid approval action is required")])
            if approval is ApprovalAction.REJECT and not (comments or "").strip():
                raise VoucherValidationError([FieldError("RejectionReason", "Rejection reason is required")])

            current = self._load(voucher_no, ctx)
            if approval is ApprovalAction.APPROVE:
                decided = current.approve(ctx.user_name, comments)
            else:
                decided = current.reject(ctx.user_name, comments)

            params = {
                **self._key_params(current, ctx),
                "ApprovalAction": approval.value,
                "ApprovalComments": comments,
                "RejectionReason": comments if approval is ApprovalAction.REJECT else None,
            }
            verb = "approved" if approval is ApprovalAction.APPROVE else "rejected"
            response = self._call(
                VoucherMode.APPROVE_REJECT, params, ctx, f"Failed to {approval.value.lower()} {self.noun.lower()}"
            )
            return OperationResult.ok(
                response.message or f"{self.noun} {verb} successfully",
                {
                    "voucher_no": voucher_no,
                    "posting_status": decided.posting_status.value,
                    "approval_status": decided.approval_status.value,
                },
            )

        return self._run("approve/reject", voucher_no, op)

    def reset_approval(self, voucher_no: str, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            current = self._load(voucher_no, ctx)
            reset = current.reset_approval(ctx.user_name)
            response = self._call(
                VoucherMode.RESET_APPROVAL,
                self._key_params(current, ctx),
                ctx,
                f"Failed to reset {self.noun.lower()} approval status",
            )
            return OperationResult.ok(
                response.message or f"{self.noun} approval status reset successfully",
                {"voucher_no": voucher_no, "posting_status": reset.posting_status.value},
            )

        return self._run("reset approval", voucher_no, op)

    def reverse(self, voucher_no: str, reason: str | None, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            if not reason or not reason.strip():
                raise VoucherValidationError([FieldError("ReversalReason", "Reversal reason is required")])
            current = self._load(voucher_no, ctx)
            _, reversal = current.reverse(ctx.user_name, reason)
            params = {
                **self._key_params(current, ctx),
                "ReversalReason": reason.strip(),
                "ReversalLinesJSON": _lines_json(reversal.lines),
            }
            response = self._call(VoucherMode.REVERSE, params, ctx, f"Failed to reverse {self.noun.lower()}")
            return OperationResult.ok(
                response.message or f"{self.noun} reversed successfully",
                {
                    "voucher_no": voucher_no,
                    "reversal_voucher_no": response.extras.get("ReversalVoucherNo"),
                },
            )

        return self._run("reverse", voucher_no, op)

    def delete(self, voucher_no: str, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            current = self._load(voucher_no, ctx)
            current.ensure_deletable()
            response = self._call(
                VoucherMode.DELETE, self._key_params(current, ctx), ctx, f"Failed to delete {self.noun.lower()}"
            )
            return OperationResult.ok(response.message or f"{self.noun} deleted successfully")

        return self._run("delete", voucher_no, op)

    def bulk_approve(
        self,
        voucher_nos: Iterable[str],
        action: ApprovalAction,
        comments: str | None,
        ctx: SessionContext,
    ) -> BulkResult:
        """Independent approve/reject per voucher; partial success is the expected outcome."""
        result = BulkResult()
        for voucher_no in voucher_nos:
            outcome = self.approve_or_reject(voucher_no, action, comments, ctx)
            result.items.append(BulkItemResult(voucher_no, outcome.success, outcome.message))
        logger.info(f"Bulk {getattr(action, 'value', action)} of {self.noun.lower()}s: {result.summary()}")
        return result

    # Queries

    def get(self, voucher_no: str, ctx: SessionContext) -> OperationResult:
        return self._run("get", voucher_no, lambda: OperationResult.ok("", self._load(voucher_no, ctx)))

    def list_vouchers(self, filters: VoucherFilters | None = None) -> OperationResult:
        return self._query(VoucherMode.LIST, (filters or VoucherFilters()).to_store(), "list")

    def search(self, filters: VoucherFilters) -> OperationResult:
        return self._query(VoucherMode.SEARCH, filters.to_store(), "search")

    def pending_approvals(self, company_id: int | None = None, fiscal_year_id: int | None = None) -> OperationResult:
        params = {"CompanyID": company_id, "FiscalYearID": fiscal_year_id}
        return self._query(VoucherMode.PENDING_APPROVALS, params, "pending approvals")

    def voucher_number_exists(
        self, voucher_no: str, company_id: int, posting_id: int | None = None
    ) -> OperationResult:
        def op() -> OperationResult:
            response = self._call(
                VoucherMode.NUMBER_EXISTS,
                {"VoucherNo": voucher_no, "CompanyID": company_id, "PostingID": posting_id},
                None,
                "Failed to check voucher number",
            )
            if "Exists" in response.extras:
                exists = bool(response.extras["Exists"])
            else:
                # Legacy stores answer Status 0 for "exists".
                exists = response.extras.get("Status") == 0
            return OperationResult.ok(response.message or "", exists)

        return self._run("check number", voucher_no, op)

    def next_voucher_number(
        self, company_id: int, fiscal_year_id: int, transaction_date: date | None = None
    ) -> OperationResult:
        def op() -> OperationResult:
            response = self._call(
                VoucherMode.NEXT_NUMBER,
                {
                    "CompanyID": company_id,
                    "FiscalYearID": fiscal_year_id,
                    "TransactionDate": transaction_date.isoformat() if transaction_date else None,
                },
                None,
                "Failed to get next voucher number",
            )
            return OperationResult.ok(response.message or "", response.extras.get("NextVoucherNo") or "")

        return self._run("next number", "-", op)

    def account_balance(self, account_id: int, balance_date: date | None = None) -> OperationResult:
        def op() -> OperationResult:
            response = self._call(
                VoucherMode.ACCOUNT_BALANCE,
                {"AccountID": account_id, "BalanceDate": balance_date.isoformat() if balance_date else None},
                None,
                "Failed to get account balance",
            )
            return OperationResult.ok(response.message or "", response.extras.get("AccountBalance") or 0)

        return self._run("account balance", str(account_id), op)

    def trial_balance(
        self,
        company_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> OperationResult:
        """Posted debit/credit totals per account plus an overall balanced flag."""
        params = {
            "CompanyID": company_id,
            "DateFrom": date_from.isoformat() if date_from else None,
            "DateTo": date_to.isoformat() if date_to else None,
        }

        def op() -> OperationResult:
            self._ensure_endpoint(VoucherType.JOURNAL, "trial balance")
            response = self._call(JournalMode.TRIAL_BALANCE, params, None, "Failed to load trial balance")
            rows = response.rows()
            if "TotalDebit" in response.extras:
                total_debit = _to_decimal(response.extras["TotalDebit"])
            else:
                total_debit = sum((_to_decimal(r.get("TotalDebit")) for r in rows), ZERO)
            if "TotalCredit" in response.extras:
                total_credit = _to_decimal(response.extras["TotalCredit"])
            else:
                total_credit = sum((_to_decimal(r.get("TotalCredit")) for r in rows), ZERO)
            is_balanced = response.extras.get("IsBalanced")
            if is_balanced is None:
                is_balanced = abs(total_debit - total_credit) <= BALANCE_TOLERANCE
            return OperationResult.ok(response.message or "", {
                "accounts": rows,
                "total_debit": total_debit,
                "total_credit": total_credit,
                "is_balanced": bool(is_balanced),
            })

        return self._run("trial balance", str(company_id or "-"), op)

    def summary_report(self, company_id: int | None = None, fiscal_year_id: int | None = None) -> OperationResult:
        params = {"CompanyID": company_id, "FiscalYearID": fiscal_year_id}
        return self._query(VoucherMode.SUMMARY_REPORT, params, "summary report")

    # Suppliers (payment endpoint)

    def supplier_outstanding_balance(self, supplier_id: int, balance_date: date | None = None) -> OperationResult:
        def op() -> OperationResult:
            self._ensure_endpoint(VoucherType.PAYMENT, "supplier outstanding balance")
            if not supplier_id:
                raise VoucherValidationError([FieldError("SupplierID", "Supplier is required")])
            response = self._call(
                PaymentMode.SUPPLIER_BALANCE,
                {"SupplierID": supplier_id, "BalanceDate": balance_date.isoformat() if balance_date else None},
                None,
                "Failed to get supplier outstanding balance",
            )
            return OperationResult.ok(response.message or "", {
                "supplier_id": response.extras.get("SupplierID") or supplier_id,
                "outstanding_balance": _to_decimal(response.extras.get("SupplierBalance")),
                "balance_date": balance_date or date.today(),
            })

        return self._run("supplier balance", str(supplier_id), op)

    def supplier_payment_history(
        self, supplier_id: int, date_from: date | None = None, date_to: date | None = None
    ) -> OperationResult:
        def op() -> OperationResult:
            self._ensure_endpoint(VoucherType.PAYMENT, "supplier payment history")
            if not supplier_id:
                raise VoucherValidationError([FieldError("SupplierID", "Supplier is required")])
            response = self._call(
                PaymentMode.SUPPLIER_PAYMENTS,
                {
                    "SupplierID": supplier_id,
                    "FilterDateFrom": date_from.isoformat() if date_from else None,
                    "FilterDateTo": date_to.isoformat() if date_to else None,
                },
                None,
                "Failed to load supplier payment history",
            )
            return OperationResult.ok(response.message or "", response.rows())

        return self._run("supplier payments", str(supplier_id), op)

    # Attachments

    def encode_attachment(
        self,
        document_name: str,
        content: bytes,
        content_type: str | None = None,
        doc_type_id: int | None = None,
        description: str | None = None,
    ) -> Attachment:
        if self.encoder is None:
            raise RuntimeError("No attachment encoder configured")
        return self.encoder.encode(document_name, content, content_type, doc_type_id, description)

    def add_attachment(self, posting_id: int, attachment: Attachment, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            if not posting_id:
                raise VoucherValidationError([FieldError("PostingID", "Posting ID is required")])
            if not attachment.document_name:
                raise VoucherValidationError([FieldError("DocumentName", "Document name is required")])
            params = {**attachment.to_store(), "PostingID": posting_id, **ctx.audit_parameters()}
            response = self._call(VoucherMode.ADD_ATTACHMENT, params, ctx, "Failed to add attachment")
            return OperationResult.ok(
                response.message or "Attachment added successfully",
                {"attachment_id": response.extras.get("PostingAttachmentID")},
            )

        return self._run("add attachment", str(posting_id), op)

    def update_attachment(self, attachment_id: int, attachment: Attachment, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            params = {**attachment.to_store(), "PostingAttachmentID": attachment_id, **ctx.audit_parameters()}
            response = self._call(VoucherMode.UPDATE_ATTACHMENT, params, ctx, "Failed to update attachment")
            return OperationResult.ok(response.message or "Attachment updated successfully")

        return self._run("update attachment", str(attachment_id), op)

    def delete_attachment(self, attachment_id: int, ctx: SessionContext) -> OperationResult:
        def op() -> OperationResult:
            params = {"PostingAttachmentID": attachment_id, **ctx.audit_parameters()}
            response = self._call(VoucherMode.DELETE_ATTACHMENT, params, ctx, "Failed to delete attachment")
            return OperationResult.ok(response.message or "Attachment deleted successfully")

        return self._run("delete attachment", str(attachment_id), op)

    def attachments(self, posting_id: int) -> OperationResult:
        def op() -> OperationResult:
            response = self._call(
                VoucherMode.ATTACHMENTS_BY_POSTING, {"PostingID": posting_id}, None, "Failed to load attachments"
            )
            return OperationResult.ok("", [Attachment.from_store(row) for row in response.rows()])

        return self._run("attachments", str(posting_id), op)

    # Plumbing

    def _ensure_endpoint(self, voucher_type: VoucherType, operation: str) -> None:
        """Modes 19 and 20 mean different things on the journal and payment endpoints."""
        if self.voucher_type is not voucher_type:
            raise VoucherValidationError([FieldError(
                "voucher_type", f"{operation.capitalize()} is served by the {voucher_type.value.lower()} voucher endpoint"
            )])

    def _key_params(self, voucher: Voucher, ctx: SessionContext) -> dict:
        return {
            "VoucherNo": voucher.voucher_no,
            "CompanyID": voucher.company_id or ctx.company_id,
            **ctx.audit_parameters(),
        }

    def _load(self, voucher_no: str, ctx: SessionContext) -> Voucher:
        response = self._call(
            VoucherMode.GET,
            {"VoucherNo": voucher_no, "CompanyID": ctx.company_id},
            None,
            f"Failed to load {self.noun.lower()} {voucher_no}",
        )
        header = response.table(1)
        if not header:
            raise VoucherNotFoundError(voucher_no)
        return Voucher.from_store(self.voucher_type, header[0], response.table(2), response.table(3))


def _lines_json(lines: list) -> str:
    rows = []
    for idx, line in enumerate(lines, start=1):
        row = line.to_store()
        row["Line_No"] = row["Line_No"] or idx
        rows.append(row)
    return json.dumps(rows)


def _attachments_json(attachments: list[Attachment]) -> str | None:
    if not attachments:
        return None
    return json.dumps([a.to_store() for a in attachments])

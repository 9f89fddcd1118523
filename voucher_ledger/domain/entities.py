"""
Domain Entities - Voucher header with its lines and attachments.
Debits equal credits; approved vouchers are immutable, reversal never rewrites history.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal

from .exceptions import InvalidTransitionError, ProtectedStateError, VoucherValidationError
from .value_objects import (
    ZERO,
    ApprovalStatus,
    Attachment,
    FieldError,
    PaymentType,
    PostingStatus,
    VoucherLine,
    VoucherType,
    _to_decimal,
)

DELETABLE_STATES = (PostingStatus.DRAFT, PostingStatus.PENDING)
EDITABLE_STATES = (PostingStatus.DRAFT, PostingStatus.PENDING, PostingStatus.REJECTED)


@dataclass
class Voucher:
    """
    Entity - Journal or payment voucher.
    State transitions return a new instance; the receiver is never mutated.
    """
    voucher_type: VoucherType
    transaction_date: date | None
    company_id: int | None
    fiscal_year_id: int | None
    currency_id: int | None
    lines: list[VoucherLine] = field(default_factory=list)
    voucher_no: str | None = None
    posting_id: int | None = None
    posting_date: date | None = None
    exchange_rate: Decimal = Decimal("1")
    total_amount: Decimal | None = None
    narration: str = ""
    posting_status: PostingStatus = PostingStatus.DRAFT
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    requires_approval: bool = True
    is_reversed: bool = False
    reversal_of: str | None = None
    reversed_by: str | None = None
    reversal_reason: str | None = None
    approved_by: str | None = None
    approved_on: datetime | None = None
    approval_comments: str | None = None
    rejection_reason: str | None = None
    attachments: list[Attachment] = field(default_factory=list)

    # Payment voucher header
    payment_type: PaymentType | None = None
    payment_account_id: int | None = None
    supplier_id: int | None = None
    bank_id: int | None = None
    cheque_no: str | None = None
    cheque_date: date | None = None
    transaction_reference: str | None = None

    created_by: str | None = None
    created_on: datetime | None = None
    updated_by: str | None = None
    updated_on: datetime | None = None

    @property
    def is_payment(self) -> bool:
        return self.voucher_type is VoucherType.PAYMENT

    @property
    def label(self) -> str:
        return self.voucher_no or "(new)"

    def ledger_lines(self) -> list[VoucherLine]:
        """
        Lines as they hit the ledger.
        Payment lines are debit-only; the payment account takes the implied credit.
        """
        if not self.is_payment:
            return list(self.lines)
        lines = list(self.lines)
        amount = self.total_amount or ZERO
        if self.payment_account_id and amount > 0:
            lines.append(VoucherLine.credit(self.payment_account_id, amount, "Payment account"))
        return lines

    def total_debit(self) -> Decimal:
        return sum((line.debit_amount or ZERO for line in self.ledger_lines()), ZERO)

    def total_credit(self) -> Decimal:
        return sum((line.credit_amount or ZERO for line in self.ledger_lines()), ZERO)

    def difference(self) -> Decimal:
        return self.total_debit() - self.total_credit()

    @property
    def is_protected(self) -> bool:
        return (
            self.approval_status is ApprovalStatus.APPROVED
            or self.posting_status is PostingStatus.POSTED
            or self.is_reversed
        )

    def ensure_editable(self) -> None:
        if self.approval_status is ApprovalStatus.APPROVED:
            raise ProtectedStateError(
                f"Voucher {self.label} is approved and cannot be modified; reset its approval first"
            )
        if self.is_protected or self.posting_status not in EDITABLE_STATES:
            raise ProtectedStateError(
                f"Voucher {self.label} is {self.posting_status.value.lower()} and cannot be modified"
            )

    def ensure_deletable(self) -> None:
        if self.reversal_of:
            raise ProtectedStateError(f"Voucher {self.label} reverses {self.reversal_of} and cannot be deleted")
        if self.approval_status is ApprovalStatus.APPROVED or self.posting_status not in DELETABLE_STATES:
            raise ProtectedStateError(
                f"Voucher {self.label} is {self.posting_status.value.lower()}/"
                f"{self.approval_status.value.lower()}; only draft or pending vouchers can be deleted"
            )

    def edited(self, draft: "Voucher", actor: str) -> "Voucher":
        """Apply an edit. A rejected voucher goes back to draft for resubmission."""
        self.ensure_editable()
        status = PostingStatus.DRAFT if self.posting_status is PostingStatus.REJECTED else self.posting_status
        return replace(
            draft,
            voucher_no=self.voucher_no,
            posting_id=self.posting_id,
            posting_status=status,
            approval_status=ApprovalStatus.PENDING,
            rejection_reason=None,
            created_by=self.created_by,
            created_on=self.created_on,
            updated_by=actor,
            updated_on=datetime.now(timezone.utc),
        )

    def submit(self, actor: str) -> "Voucher":
        if self.posting_status is not PostingStatus.DRAFT:
            raise InvalidTransitionError(self.label, "submit", self.posting_status.value, ["Draft"])
        if not self.requires_approval:
            return replace(
                self,
                posting_status=PostingStatus.POSTED,
                approval_status=ApprovalStatus.APPROVED,
                approved_by=actor,
                approved_on=datetime.now(timezone.utc),
                updated_by=actor,
                updated_on=datetime.now(timezone.utc),
            )
        return replace(
            self,
            posting_status=PostingStatus.PENDING,
            approval_status=ApprovalStatus.PENDING,
            updated_by=actor,
            updated_on=datetime.now(timezone.utc),
        )

    def approve(self, actor: str, comments: str | None = None) -> "Voucher":
        if self.posting_status is not PostingStatus.PENDING:
            raise InvalidTransitionError(self.label, "approve", self.posting_status.value, ["Pending"])
        return replace(
            self,
            posting_status=PostingStatus.POSTED,
            approval_status=ApprovalStatus.APPROVED,
            approved_by=actor,
            approved_on=datetime.now(timezone.utc),
            approval_comments=comments,
            updated_by=actor,
            updated_on=datetime.now(timezone.utc),
        )

    def reject(self, actor: str, reason: str | None) -> "Voucher":
        if not reason or not reason.strip():
            raise VoucherValidationError([FieldError("RejectionReason", "Rejection reason is required")])
        if self.posting_status is not PostingStatus.PENDING:
            raise InvalidTransitionError(self.label, "reject", self.posting_status.value, ["Pending"])
        return replace(
            self,
            posting_status=PostingStatus.REJECTED,
            approval_status=ApprovalStatus.REJECTED,
            rejection_reason=reason.strip(),
            approved_by=None,
            approved_on=None,
            updated_by=actor,
            updated_on=datetime.now(timezone.utc),
        )

    def reset_approval(self, actor: str) -> "Voucher":
        if self.is_reversed:
            raise ProtectedStateError(f"Voucher {self.label} has been reversed; its approval cannot be reset")
        if self.reversal_of:
            raise ProtectedStateError(
                f"Voucher {self.label} reverses {self.reversal_of}; its approval cannot be reset"
            )
        status = self.posting_status
        if status in (PostingStatus.POSTED, PostingStatus.REJECTED):
            status = PostingStatus.PENDING
        return replace(
            self,
            posting_status=status,
            approval_status=ApprovalStatus.PENDING,
            approved_by=None,
            approved_on=None,
            approval_comments=None,
            rejection_reason=None,
            updated_by=actor,
            updated_on=datetime.now(timezone.utc),
        )

    def reverse(self, actor: str, reason: str | None) -> tuple["Voucher", "Voucher"]:
        """
        Returns (original flagged reversed, new reversal voucher).
        The reversal carries every ledger line swapped Dr<->Cr and links back via reversal_of.
        """
        if not reason or not reason.strip():
            raise VoucherValidationError([FieldError("ReversalReason", "Reversal reason is required")])
        if self.is_reversed:
            raise ProtectedStateError(f"Voucher {self.label} has already been reversed")
        if self.posting_status is not PostingStatus.POSTED:
            raise InvalidTransitionError(self.label, "reverse", self.posting_status.value, ["Posted"])

        now = datetime.now(timezone.utc)
        reversal = Voucher(
            voucher_type=self.voucher_type,
            payment_type=self.payment_type,
            supplier_id=self.supplier_id,
            transaction_date=date.today(),
            posting_date=date.today(),
            company_id=self.company_id,
            fiscal_year_id=self.fiscal_year_id,
            currency_id=self.currency_id,
            exchange_rate=self.exchange_rate,
            lines=self.reversal_lines(),
            total_amount=self.total_debit(),
            narration=f"Reversal of {self.label}: {reason.strip()}",
            posting_status=PostingStatus.POSTED,
            approval_status=ApprovalStatus.APPROVED,
            requires_approval=False,
            reversal_of=self.voucher_no,
            reversal_reason=reason.strip(),
            approved_by=actor,
            approved_on=now,
            created_by=actor,
            created_on=now,
        )
        original = replace(self, is_reversed=True, reversal_reason=reason.strip(), updated_by=actor, updated_on=now)
        return original, reversal

    def reversal_lines(self) -> list[VoucherLine]:
        return [
            replace(line.swapped(), line_no=idx)
            for idx, line in enumerate(self.ledger_lines(), start=1)
        ]

    def header_to_store(self) -> dict:
        params = {
            "VoucherNo": self.voucher_no,
            "PostingID": self.posting_id,
            "TransactionDate": _iso(self.transaction_date),
            "PostingDate": _iso(self.posting_date or self.transaction_date),
            "CompanyID": self.company_id,
            "FiscalYearID": self.fiscal_year_id,
            "CurrencyID": self.currency_id,
            "ExchangeRate": float(self.exchange_rate),
            "TotalAmount": float(self.total_amount if self.total_amount is not None else self.total_debit()),
            "Narration": self.narration,
            "RequiresApproval": self.requires_approval,
        }
        if self.is_payment:
            params.update({
                "PaymentType": self.payment_type.value if self.payment_type else None,
                "PaymentAccountID": self.payment_account_id,
                "SupplierID": self.supplier_id,
                "BankID": self.bank_id,
                "ChequeNo": self.cheque_no,
                "ChequeDate": _iso(self.cheque_date),
                "TransactionReference": self.transaction_reference,
            })
        return params

    @classmethod
    def from_store(
        cls,
        voucher_type: VoucherType,
        header: dict,
        lines: list[dict] | None = None,
        attachments: list[dict] | None = None,
    ) -> "Voucher":
        payment_type = header.get("PaymentType")
        total = header.get("TotalAmount")
        return cls(
            voucher_type=voucher_type,
            transaction_date=_parse_date(header.get("TransactionDate")),
            posting_date=_parse_date(header.get("PostingDate")),
            company_id=header.get("CompanyID"),
            fiscal_year_id=header.get("FiscalYearID"),
            currency_id=header.get("CurrencyID"),
            exchange_rate=_to_decimal(header.get("ExchangeRate") or 1),
            total_amount=None if total is None else _to_decimal(total),
            narration=header.get("Narration") or "",
            voucher_no=header.get("VoucherNo"),
            posting_id=header.get("PostingID"),
            posting_status=PostingStatus(header.get("PostingStatus") or PostingStatus.DRAFT.value),
            approval_status=ApprovalStatus(header.get("ApprovalStatus") or ApprovalStatus.PENDING.value),
            requires_approval=bool(header.get("RequiresApproval", True)),
            is_reversed=bool(header.get("IsReversed")),
            reversal_of=header.get("ReversalOfVoucherNo"),
            reversed_by=header.get("ReversedByVoucherNo"),
            reversal_reason=header.get("ReversalReason"),
            approved_by=header.get("ApprovedBy"),
            approved_on=_parse_datetime(header.get("ApprovedOn")),
            approval_comments=header.get("ApprovalComments"),
            rejection_reason=header.get("RejectionReason"),
            payment_type=PaymentType(payment_type) if payment_type else None,
            payment_account_id=header.get("PaymentAccountID"),
            supplier_id=header.get("SupplierID"),
            bank_id=header.get("BankID"),
            cheque_no=header.get("ChequeNo"),
            cheque_date=_parse_date(header.get("ChequeDate")),
            transaction_reference=header.get("TransactionReference"),
            created_by=header.get("CreatedBy"),
            created_on=_parse_datetime(header.get("CreatedOn")),
            updated_by=header.get("UpdatedBy"),
            updated_on=_parse_datetime(header.get("UpdatedOn")),
            lines=[VoucherLine.from_store(row) for row in lines or []],
            attachments=[Attachment.from_store(row) for row in attachments or []],
        )


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _parse_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value) -> datetime | None:
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    # Stores without timezone support hand back naive UTC.
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass
class LeaseRevenuePosting:
    """
    Entity - A posted lease invoice/receipt awaiting or past approval.
    Same approval rules as vouchers; the store performs the ledger work.
    """
    posting_id: int
    voucher_no: str | None = None
    transaction_type: str | None = None
    transaction_id: int | None = None
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    posting_status: PostingStatus = PostingStatus.DRAFT
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    requires_approval: bool = True
    is_reversed: bool = False
    company_id: int | None = None

    @property
    def label(self) -> str:
        return self.voucher_no or f"posting {self.posting_id}"

    def ensure_decidable(self) -> None:
        if self.is_reversed:
            raise ProtectedStateError(f"Lease revenue {self.label} has been reversed")
        if not self.requires_approval:
            raise InvalidTransitionError(self.label, "approve", "approval not required", ["awaiting approval"])
        if self.approval_status is not ApprovalStatus.PENDING:
            raise InvalidTransitionError(self.label, "approve", self.approval_status.value, ["Pending"])

    def ensure_resettable(self) -> None:
        if self.is_reversed:
            raise ProtectedStateError(f"Lease revenue {self.label} has been reversed; its approval cannot be reset")

    def ensure_reversible(self, reason: str | None) -> None:
        if not reason or not reason.strip():
            raise VoucherValidationError([FieldError("ReversalReason", "Reversal reason is required")])
        if self.is_reversed:
            raise ProtectedStateError(f"Lease revenue {self.label} has already been reversed")
        if self.posting_status is not PostingStatus.POSTED or self.approval_status is not ApprovalStatus.APPROVED:
            raise InvalidTransitionError(self.label, "reverse", self.posting_status.value, ["Posted"])

    @classmethod
    def from_store(cls, row: dict) -> "LeaseRevenuePosting":
        status = row.get("PostingStatus") or PostingStatus.DRAFT.value
        is_reversed = bool(row.get("IsReversed"))
        if status == "Reversed":
            status, is_reversed = PostingStatus.POSTED.value, True
        elif status not in PostingStatus._value2member_map_:
            status = PostingStatus.DRAFT.value
        return cls(
            posting_id=row.get("PostingID"),
            voucher_no=row.get("VoucherNo"),
            transaction_type=row.get("TransactionType"),
            transaction_id=row.get("TransactionID"),
            debit_amount=_to_decimal(row.get("DebitAmount")),
            credit_amount=_to_decimal(row.get("CreditAmount")),
            posting_status=PostingStatus(status),
            approval_status=ApprovalStatus(row.get("ApprovalStatus") or ApprovalStatus.PENDING.value),
            requires_approval=bool(row.get("RequiresApproval", True)),
            is_reversed=is_reversed,
            company_id=row.get("CompanyID"),
        )

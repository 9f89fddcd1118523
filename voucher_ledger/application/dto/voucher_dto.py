"""
API DTOs - Data Transfer Objects for voucher requests/responses.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voucher_ledger.application.results import BulkResult, OperationResult
from voucher_ledger.domain.entities import Voucher
from voucher_ledger.domain.value_objects import (
    ApprovalAction,
    ApprovalStatus,
    Attachment,
    PaymentType,
    PostingStatus,
    TransactionType,
    ValidationResult,
    VoucherLine,
    VoucherType,
)


class VoucherLineDTO(BaseModel):
    """DTO - Voucher line."""
    account_id: int | None = Field(None, description="Ledger account")
    debit_amount: Decimal = Field(Decimal("0"), description="Debit amount")
    credit_amount: Decimal = Field(Decimal("0"), description="Credit amount")
    transaction_type: TransactionType | None = Field(None, description="Debit or Credit")
    description: str = ""
    line_no: int | None = None
    cost_center_id: int | None = None
    customer_id: int | None = None
    supplier_id: int | None = None

    model_config = ConfigDict(from_attributes=True)

    def to_domain(self) -> VoucherLine:
        return VoucherLine(
            account_id=self.account_id,
            debit_amount=self.debit_amount,
            credit_amount=self.credit_amount,
            transaction_type=self.transaction_type,
            description=self.description,
            line_no=self.line_no,
            cost_center_id=self.cost_center_id,
            customer_id=self.customer_id,
            supplier_id=self.supplier_id,
        )


class AttachmentDTO(BaseModel):
    """DTO - Base64 attachment sent with a voucher."""
    document_name: str = Field(..., min_length=1)
    content: str = Field(..., description="Base64 file content")
    content_type: str = "application/octet-stream"
    file_size: int = Field(0, ge=0)
    doc_type_id: int | None = None
    description: str | None = None

    def to_domain(self, posting_id: int | None = None) -> Attachment:
        return Attachment(
            document_name=self.document_name,
            content=self.content,
            content_type=self.content_type,
            file_size=self.file_size,
            doc_type_id=self.doc_type_id,
            description=self.description,
            posting_id=posting_id,
        )


class AttachmentResponseDTO(BaseModel):
    attachment_id: int | None
    posting_id: int | None
    document_name: str
    content_type: str
    file_size: int
    doc_type_id: int | None
    description: str | None

    model_config = ConfigDict(from_attributes=True)


class VoucherCreateDTO(BaseModel):
    """DTO - Create or update a journal/payment voucher."""
    transaction_date: date | None = Field(None, description="Transaction date")
    posting_date: date | None = Field(None, description="Posting date, defaults to the transaction date")
    company_id: int | None = None
    fiscal_year_id: int | None = None
    currency_id: int | None = None
    exchange_rate: Decimal = Decimal("1")
    total_amount: Decimal | None = Field(None, description="Required for payment vouchers")
    narration: str = Field("", max_length=500)
    requires_approval: bool = True

    payment_type: PaymentType | None = None
    payment_account_id: int | None = Field(None, description="Bank/cash account credited by a payment")
    supplier_id: int | None = None
    bank_id: int | None = None
    cheque_no: str | None = None
    cheque_date: date | None = None
    transaction_reference: str | None = None

    lines: list[VoucherLineDTO] = Field(default_factory=list)
    attachments: list[AttachmentDTO] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "transaction_date": "2025-06-30",
            "company_id": 1,
            "fiscal_year_id": 2025,
            "currency_id": 1,
            "narration": "June rent accrual",
            "lines": [
                {"account_id": 1001, "debit_amount": 500, "transaction_type": "Debit"},
                {"account_id": 4001, "credit_amount": 500, "transaction_type": "Credit"},
            ],
        }
    })

    def to_domain(self, voucher_type: VoucherType) -> Voucher:
        return Voucher(
            voucher_type=voucher_type,
            transaction_date=self.transaction_date,
            posting_date=self.posting_date,
            company_id=self.company_id,
            fiscal_year_id=self.fiscal_year_id,
            currency_id=self.currency_id,
            exchange_rate=self.exchange_rate,
            total_amount=self.total_amount,
            narration=self.narration,
            requires_approval=self.requires_approval,
            payment_type=self.payment_type,
            payment_account_id=self.payment_account_id,
            supplier_id=self.supplier_id,
            bank_id=self.bank_id,
            cheque_no=self.cheque_no,
            cheque_date=self.cheque_date,
            transaction_reference=self.transaction_reference,
            lines=[line.to_domain() for line in self.lines],
            attachments=[a.to_domain() for a in self.attachments],
        )


class VoucherResponseDTO(BaseModel):
    """DTO - Voucher with lines and attachment metadata."""
    voucher_no: str | None
    posting_id: int | None
    voucher_type: VoucherType
    transaction_date: date | None
    posting_date: date | None
    company_id: int | None
    fiscal_year_id: int | None
    currency_id: int | None
    exchange_rate: Decimal
    total_amount: Decimal | None
    narration: str
    posting_status: PostingStatus
    approval_status: ApprovalStatus
    requires_approval: bool
    is_reversed: bool
    reversal_of: str | None
    reversed_by: str | None
    reversal_reason: str | None
    approved_by: str | None
    approved_on: datetime | None
    approval_comments: str | None
    rejection_reason: str | None
    payment_type: PaymentType | None
    payment_account_id: int | None
    supplier_id: int | None
    bank_id: int | None
    cheque_no: str | None
    cheque_date: date | None
    transaction_reference: str | None
    created_by: str | None
    created_on: datetime | None
    updated_by: str | None
    updated_on: datetime | None
    lines: list[VoucherLineDTO]
    attachments: list[AttachmentResponseDTO]
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")

    @classmethod
    def from_entity(cls, voucher: Voucher) -> "VoucherResponseDTO":
        # total_debit/total_credit are methods on the entity, not attributes.
        fields = {
            name: getattr(voucher, name)
            for name in cls.model_fields
            if name not in ("lines", "attachments", "total_debit", "total_credit")
        }
        return cls(
            **fields,
            lines=[VoucherLineDTO.model_validate(line) for line in voucher.lines],
            attachments=[AttachmentResponseDTO.model_validate(a) for a in voucher.attachments],
            total_debit=voucher.total_debit(),
            total_credit=voucher.total_credit(),
        )


class ApprovalRequestDTO(BaseModel):
    """DTO - Approve or reject; a rejection needs comments."""
    action: ApprovalAction
    comments: str | None = None


class BulkApprovalRequestDTO(BaseModel):
    voucher_nos: list[str] = Field(..., min_length=1)
    action: ApprovalAction
    comments: str | None = None


class ReversalRequestDTO(BaseModel):
    reason: str | None = Field(None, description="Mandatory reversal reason")


class FieldErrorDTO(BaseModel):
    field: str
    message: str

    model_config = ConfigDict(from_attributes=True)


class ValidationResultDTO(BaseModel):
    is_valid: bool
    errors: list[FieldErrorDTO] = []

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResultDTO":
        return cls(
            is_valid=result.is_valid,
            errors=[FieldErrorDTO.model_validate(e) for e in result.errors],
        )


class OperationResultDTO(BaseModel):
    """DTO - Gateway outcome."""
    success: bool
    message: str = ""
    errors: list[FieldErrorDTO] = []
    error_kind: str | None = None
    data: Any = None

    @classmethod
    def from_result(cls, result: OperationResult, data: Any = None) -> "OperationResultDTO":
        return cls(
            success=result.success,
            message=result.message,
            errors=[FieldErrorDTO.model_validate(e) for e in result.errors],
            error_kind=result.error_kind,
            data=result.data if data is None else data,
        )


class BulkItemDTO(BaseModel):
    voucher_no: str
    success: bool
    message: str


class BulkResultDTO(BaseModel):
    success_count: int
    failure_count: int
    message: str
    items: list[BulkItemDTO]

    @classmethod
    def from_result(cls, result: BulkResult) -> "BulkResultDTO":
        return cls(
            success_count=result.success_count,
            failure_count=result.failure_count,
            message=result.summary(),
            items=[BulkItemDTO(voucher_no=i.key, success=i.success, message=i.message) for i in result.items],
        )


class TrialBalanceDTO(BaseModel):
    """DTO - Trial balance over posted vouchers."""
    accounts: list[dict]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool

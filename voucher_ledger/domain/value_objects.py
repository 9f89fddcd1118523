"""
Domain Layer - Value objects for voucher posting and approval.
Double-entry rules shared by journal vouchers, payment vouchers and lease revenue postings.
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum, IntEnum
from typing import NewType

VoucherNumber = NewType("VoucherNumber", str)

BALANCE_TOLERANCE = Decimal("0.01")
ZERO = Decimal("0")


class VoucherType(str, Enum):
    JOURNAL = "Journal"
    PAYMENT = "Payment"


class PostingStatus(str, Enum):
    """Posting state machine: Draft -> Pending -> Posted | Rejected."""
    DRAFT = "Draft"
    PENDING = "Pending"
    POSTED = "Posted"
    REJECTED = "Rejected"


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ApprovalAction(str, Enum):
    APPROVE = "Approve"
    REJECT = "Reject"


class TransactionType(str, Enum):
    DEBIT = "Debit"
    CREDIT = "Credit"


class PaymentType(str, Enum):
    CASH = "Cash"
    CHEQUE = "Cheque"
    BANK_TRANSFER = "Bank Transfer"
    ONLINE_PAYMENT = "Online Payment"
    WIRE_TRANSFER = "Wire Transfer"
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"

    @property
    def requires_bank(self) -> bool:
        return self in (PaymentType.CHEQUE, PaymentType.BANK_TRANSFER, PaymentType.WIRE_TRANSFER)

    @property
    def requires_cheque(self) -> bool:
        return self is PaymentType.CHEQUE


class LeaseTransactionType(str, Enum):
    INVOICE = "Invoice"
    RECEIPT = "Receipt"


class VoucherMode(IntEnum):
    """Stored-procedure modes shared by the journal and payment voucher endpoints."""
    CREATE = 1
    UPDATE = 2
    LIST = 3
    GET = 4
    DELETE = 5
    SEARCH = 6
    APPROVE_REJECT = 7
    REVERSE = 8
    GET_FOR_EDIT = 9
    SUMMARY_REPORT = 10
    NUMBER_EXISTS = 11
    NEXT_NUMBER = 12
    ACCOUNT_BALANCE = 13
    SUBMIT = 14
    ADD_ATTACHMENT = 15
    UPDATE_ATTACHMENT = 16
    DELETE_ATTACHMENT = 17
    ATTACHMENTS_BY_POSTING = 18
    PENDING_APPROVALS = 21
    RESET_APPROVAL = 22


class JournalMode(IntEnum):
    """Modes only the journal voucher endpoint understands."""
    TRIAL_BALANCE = 19


class PaymentMode(IntEnum):
    """Modes only the payment voucher endpoint understands; 19 and 20 differ from the journal's."""
    SUPPLIER_BALANCE = 19
    SUPPLIER_PAYMENTS = 20


class LeaseRevenueMode(IntEnum):
    """Stored-procedure modes for the lease revenue posting endpoint."""
    GET_UNPOSTED = 1
    GET_POSTED = 2
    POST_SELECTED = 3
    REVERSE = 4
    TRANSACTION_DETAILS = 5
    POSTING_SUMMARY = 6
    APPROVE_REJECT = 7
    PENDING_APPROVALS = 8
    RESET_APPROVAL = 9


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single validation failure, addressed to a field or a line."""
    field: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ValidationResult:
    errors: tuple[FieldError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.errors]


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Caller identity attached to every mutating store call for the audit trail."""
    user_id: int
    user_name: str
    company_id: int | None = None
    role: str | None = None

    def audit_parameters(self) -> dict:
        return {"CurrentUserID": self.user_id, "CurrentUserName": self.user_name}


@dataclass(frozen=True, slots=True)
class VoucherLine:
    """One account movement. Exactly one of debit_amount/credit_amount is positive."""
    account_id: int | None
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    transaction_type: TransactionType | None = None
    description: str = ""
    line_no: int | None = None
    cost_center_id: int | None = None
    customer_id: int | None = None
    supplier_id: int | None = None

    @classmethod
    def debit(cls, account_id: int, amount: Decimal, description: str = "", **kwargs) -> "VoucherLine":
        return cls(account_id, Decimal(amount), ZERO, TransactionType.DEBIT, description, **kwargs)

    @classmethod
    def credit(cls, account_id: int, amount: Decimal, description: str = "", **kwargs) -> "VoucherLine":
        return cls(account_id, ZERO, Decimal(amount), TransactionType.CREDIT, description, **kwargs)

    @property
    def has_debit(self) -> bool:
        return (self.debit_amount or ZERO) > 0

    @property
    def has_credit(self) -> bool:
        return (self.credit_amount or ZERO) > 0

    def swapped(self) -> "VoucherLine":
        """Counter-entry: same magnitude on the opposite side."""
        if self.transaction_type is TransactionType.DEBIT:
            new_type = TransactionType.CREDIT
        elif self.transaction_type is TransactionType.CREDIT:
            new_type = TransactionType.DEBIT
        else:
            new_type = None
        return replace(
            self,
            debit_amount=self.credit_amount,
            credit_amount=self.debit_amount,
            transaction_type=new_type,
        )

    def to_store(self) -> dict:
        return {
            "Line_No": self.line_no,
            "AccountID": self.account_id,
            "DebitAmount": float(self.debit_amount or ZERO),
            "CreditAmount": float(self.credit_amount or ZERO),
            "TransactionType": self.transaction_type.value if self.transaction_type else None,
            "Description": self.description,
            "CostCenter1ID": self.cost_center_id,
            "CustomerID": self.customer_id,
            "SupplierID": self.supplier_id,
        }

    @classmethod
    def from_store(cls, row: dict) -> "VoucherLine":
        tx_type = row.get("TransactionType")
        return cls(
            account_id=row.get("AccountID"),
            debit_amount=_to_decimal(row.get("DebitAmount")),
            credit_amount=_to_decimal(row.get("CreditAmount")),
            transaction_type=TransactionType(tx_type) if tx_type else None,
            description=row.get("Description") or "",
            line_no=row.get("Line_No"),
            cost_center_id=row.get("CostCenter1ID"),
            customer_id=row.get("CustomerID"),
            supplier_id=row.get("SupplierID"),
        )


@dataclass(frozen=True, slots=True)
class Attachment:
    """Base64 document owned by one voucher."""
    document_name: str
    content: str
    content_type: str
    file_size: int
    doc_type_id: int | None = None
    description: str | None = None
    attachment_id: int | None = None
    posting_id: int | None = None

    def to_store(self) -> dict:
        return {
            "PostingAttachmentID": self.attachment_id,
            "PostingID": self.posting_id,
            "DocTypeID": self.doc_type_id,
            "DocumentName": self.document_name,
            "FileContent": self.content,
            "FileContentType": self.content_type,
            "FileSize": self.file_size,
            "DocumentDescription": self.description,
        }

    @classmethod
    def from_store(cls, row: dict) -> "Attachment":
        return cls(
            document_name=row.get("DocumentName") or "",
            content=row.get("FileContent") or "",
            content_type=row.get("FileContentType") or "application/octet-stream",
            file_size=int(row.get("FileSize") or 0),
            doc_type_id=row.get("DocTypeID"),
            description=row.get("DocumentDescription"),
            attachment_id=row.get("PostingAttachmentID"),
            posting_id=row.get("PostingID"),
        )

    @property
    def data_url(self) -> str:
        return f"data:{self.content_type};base64,{self.content}"


@dataclass(frozen=True, slots=True)
class SelectedLeaseTransaction:
    """An unposted lease invoice or receipt picked for revenue posting."""
    transaction_id: int | None
    transaction_type: LeaseTransactionType | None
    posting_amount: Decimal
    debit_account_id: int | None = None
    credit_account_id: int | None = None

    def to_store(self) -> dict:
        return {
            "TransactionID": self.transaction_id,
            "TransactionType": self.transaction_type.value if self.transaction_type else None,
            "PostingAmount": float(self.posting_amount),
            "DebitAccountID": self.debit_account_id,
            "CreditAccountID": self.credit_account_id,
        }


@dataclass(frozen=True, slots=True)
class VoucherFilters:
    company_id: int | None = None
    fiscal_year_id: int | None = None
    status: PostingStatus | None = None
    supplier_id: int | None = None
    account_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    search_text: str | None = None

    def to_store(self) -> dict:
        return {
            "SearchText": self.search_text,
            "FilterCompanyID": self.company_id,
            "FilterFiscalYearID": self.fiscal_year_id,
            "FilterStatus": self.status.value if self.status else None,
            "FilterSupplierID": self.supplier_id,
            "FilterAccountID": self.account_id,
            "FilterDateFrom": self.date_from.isoformat() if self.date_from else None,
            "FilterDateTo": self.date_to.isoformat() if self.date_to else None,
        }


def _to_decimal(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    return Decimal(str(value))


@dataclass(frozen=True, slots=True)
class LeaseRevenueFilters:
    company_id: int | None = None
    fiscal_year_id: int | None = None
    property_id: int | None = None
    unit_id: int | None = None
    customer_id: int | None = None
    contract_id: int | None = None
    posting_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    approval_status: ApprovalStatus | None = None

    def to_store(self, posted: bool) -> dict:
        params = {
            "CompanyID": self.company_id,
            "FiscalYearID": self.fiscal_year_id,
            "PropertyID": self.property_id,
            "UnitID": self.unit_id,
            "CustomerID": self.customer_id,
        }
        date_from = self.date_from.isoformat() if self.date_from else None
        date_to = self.date_to.isoformat() if self.date_to else None
        if posted:
            params.update({
                "PostingID": self.posting_id,
                "PostingFromDate": date_from,
                "PostingToDate": date_to,
                "FilterApprovalStatus": self.approval_status.value if self.approval_status else None,
            })
        else:
            params.update({
                "ContractID": self.contract_id,
                "PeriodFromDate": date_from,
                "PeriodToDate": date_to,
                "ShowUnpostedOnly": True,
            })
        return params


@dataclass(frozen=True, slots=True)
class LeaseRevenuePostingRequest:
    """Batch of unposted lease invoices/receipts to post in one call."""
    posting_date: date | None
    company_id: int | None
    fiscal_year_id: int | None
    transactions: tuple[SelectedLeaseTransaction, ...] = ()
    debit_account_id: int | None = None
    credit_account_id: int | None = None
    currency_id: int | None = 1
    exchange_rate: Decimal = Decimal("1")
    narration: str = ""
    reference_no: str | None = None
    requires_approval: bool = True

    @property
    def total_amount(self) -> Decimal:
        return sum((tx.posting_amount or ZERO for tx in self.transactions), ZERO)

    def resolved_transactions(self) -> list[SelectedLeaseTransaction]:
        """Per-transaction accounts fall back to the batch accounts."""
        return [
            replace(
                tx,
                debit_account_id=tx.debit_account_id or self.debit_account_id,
                credit_account_id=tx.credit_account_id or self.credit_account_id,
            )
            for tx in self.transactions
        ]

    def to_store(self) -> dict:
        return {
            "PostingDate": self.posting_date.isoformat() if self.posting_date else None,
            "DebitAccountID": self.debit_account_id,
            "CreditAccountID": self.credit_account_id,
            "Narration": self.narration,
            "ReferenceNo": self.reference_no,
            "CurrencyID": self.currency_id,
            "ExchangeRate": float(self.exchange_rate or 1),
            "CompanyID": self.company_id,
            "FiscalYearID": self.fiscal_year_id,
            "ApprovalStatus": ApprovalStatus.PENDING.value,
            "RequiresApproval": self.requires_approval,
        }

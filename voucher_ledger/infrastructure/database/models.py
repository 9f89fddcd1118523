"""
Infrastructure - SQLModel tables backing the local ledger store.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlmodel import Field, Relationship, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerVoucher(SQLModel, table=True):
    """Voucher header. `id` is the store's PostingID."""

    id: int | None = Field(default=None, primary_key=True)
    voucher_no: str = Field(index=True)
    voucher_type: str = Field(index=True)  # Journal, Payment, LeaseRevenue
    company_id: int = Field(index=True)
    fiscal_year_id: int = Field(index=True)
    currency_id: int | None = None
    exchange_rate: Decimal = Decimal("1")
    transaction_date: date = Field(index=True)
    posting_date: date | None = None
    total_amount: Decimal = Decimal("0")
    narration: str = ""

    posting_status: str = Field(default="Draft", index=True)
    approval_status: str = "Pending"
    requires_approval: bool = True
    approved_by: str | None = None
    approved_on: datetime | None = None
    approval_comments: str | None = None
    rejection_reason: str | None = None

    is_reversed: bool = False
    reversal_of: str | None = None
    reversed_by: str | None = None
    reversal_reason: str | None = None

    # Payment voucher header
    payment_type: str | None = None
    payment_account_id: int | None = None
    supplier_id: int | None = None
    bank_id: int | None = None
    cheque_no: str | None = None
    cheque_date: date | None = None
    transaction_reference: str | None = None

    # Lease revenue source document
    lease_transaction_id: int | None = Field(default=None, foreign_key="leasetransaction.id")
    reference_no: str | None = None

    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_by: str | None = None
    updated_at: datetime = Field(default_factory=utc_now)

    lines: list["LedgerVoucherLine"] = Relationship(
        back_populates="voucher", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    attachments: list["PostingAttachment"] = Relationship(
        back_populates="voucher", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


class LedgerVoucherLine(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    voucher_id: int = Field(foreign_key="ledgervoucher.id", index=True)
    line_no: int
    account_id: int = Field(index=True)
    debit_amount: Decimal = Decimal("0")
    credit_amount: Decimal = Decimal("0")
    transaction_type: str | None = None  # Debit, Credit
    description: str | None = None
    cost_center_id: int | None = None
    customer_id: int | None = None
    supplier_id: int | None = None

    voucher: "LedgerVoucher" = Relationship(back_populates="lines")


class PostingAttachment(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    voucher_id: int = Field(foreign_key="ledgervoucher.id", index=True)
    doc_type_id: int | None = None
    document_name: str
    file_content: str  # base64
    content_type: str = "application/octet-stream"
    file_size: int = 0
    description: str | None = None
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    voucher: "LedgerVoucher" = Relationship(back_populates="attachments")


class LeaseTransaction(SQLModel, table=True):
    """Lease invoice or receipt waiting to be posted to revenue."""

    id: int | None = Field(default=None, primary_key=True)
    transaction_type: str  # Invoice, Receipt
    transaction_no: str = Field(index=True)
    company_id: int = Field(index=True)
    fiscal_year_id: int | None = None
    property_id: int | None = None
    unit_id: int | None = None
    customer_id: int | None = None
    contract_id: int | None = None
    transaction_date: date
    amount: Decimal = Decimal("0")
    is_posted: bool = False
    created_at: datetime = Field(default_factory=utc_now)


class AuditLog(SQLModel, table=True):
    """Audit trail for every mutating store call."""

    id: int | None = Field(default=None, primary_key=True)
    company_id: int | None = None
    user_id: int | None = Field(default=None, index=True)
    user_name: str | None = None
    action: str = Field(index=True)  # CREATE, UPDATE, DELETE, SUBMIT, APPROVE, REJECT, RESET, REVERSE, ...
    entity_type: str
    entity_id: str
    new_value: str | None = None  # JSON
    created_at: datetime = Field(default_factory=utc_now, index=True)

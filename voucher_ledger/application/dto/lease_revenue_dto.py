"""
API DTOs - Lease revenue posting requests.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from voucher_ledger.domain.value_objects import (
    ApprovalAction,
    LeaseRevenuePostingRequest,
    LeaseTransactionType,
    SelectedLeaseTransaction,
)


class SelectedTransactionDTO(BaseModel):
    """DTO - One lease invoice/receipt picked for posting."""
    transaction_id: int | None = None
    transaction_type: LeaseTransactionType | None = None
    posting_amount: Decimal = Decimal("0")
    debit_account_id: int | None = Field(None, description="Overrides the batch debit account")
    credit_account_id: int | None = Field(None, description="Overrides the batch credit account")

    def to_domain(self) -> SelectedLeaseTransaction:
        return SelectedLeaseTransaction(
            transaction_id=self.transaction_id,
            transaction_type=self.transaction_type,
            posting_amount=self.posting_amount,
            debit_account_id=self.debit_account_id,
            credit_account_id=self.credit_account_id,
        )


class LeaseRevenuePostingDTO(BaseModel):
    """DTO - Batch posting of unposted lease revenue."""
    posting_date: date | None = None
    company_id: int | None = None
    fiscal_year_id: int | None = None
    debit_account_id: int | None = None
    credit_account_id: int | None = None
    currency_id: int | None = 1
    exchange_rate: Decimal = Decimal("1")
    narration: str = ""
    reference_no: str | None = None
    requires_approval: bool = True
    transactions: list[SelectedTransactionDTO] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "posting_date": "2025-06-30",
            "company_id": 1,
            "fiscal_year_id": 2025,
            "debit_account_id": 1200,
            "credit_account_id": 4100,
            "transactions": [
                {"transaction_id": 17, "transaction_type": "Invoice", "posting_amount": 1500},
            ],
        }
    })

    def to_domain(self) -> LeaseRevenuePostingRequest:
        return LeaseRevenuePostingRequest(
            posting_date=self.posting_date,
            company_id=self.company_id,
            fiscal_year_id=self.fiscal_year_id,
            transactions=tuple(tx.to_domain() for tx in self.transactions),
            debit_account_id=self.debit_account_id,
            credit_account_id=self.credit_account_id,
            currency_id=self.currency_id,
            exchange_rate=self.exchange_rate,
            narration=self.narration,
            reference_no=self.reference_no,
            requires_approval=self.requires_approval,
        )


class LeaseApprovalRequestDTO(BaseModel):
    action: ApprovalAction
    comments: str | None = None
    rejection_reason: str | None = None

"""
Domain Services - Validation rules and the ports the gateway talks through.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from .entities import Voucher
from .value_objects import (
    BALANCE_TOLERANCE,
    ZERO,
    Attachment,
    FieldError,
    LeaseRevenuePostingRequest,
    SelectedLeaseTransaction,
    TransactionType,
    ValidationResult,
)


@dataclass
class StoreResponse:
    """
    Normalized reply of the ledger store.
    `tables` holds table1..tableN in order; any other top-level keys land in `extras`.
    """
    success: bool
    message: str | None = None
    data: object = None
    tables: list[list[dict]] = field(default_factory=list)
    extras: dict = field(default_factory=dict)

    def table(self, index: int) -> list[dict]:
        """1-based, like the store's table1..tableN keys."""
        if 0 < index <= len(self.tables):
            return self.tables[index - 1] or []
        return []

    def rows(self) -> list[dict]:
        if isinstance(self.data, list):
            return self.data
        return self.table(1)

    @classmethod
    def from_payload(cls, payload: dict) -> "StoreResponse":
        tables: list[list[dict]] = []
        extras: dict = {}
        for key, value in payload.items():
            if key in ("success", "message", "data"):
                continue
            if key.startswith("table") and key[5:].isdigit():
                idx = int(key[5:])
                while len(tables) < idx:
                    tables.append([])
                tables[idx - 1] = value or []
            else:
                extras[key] = value
        return cls(
            success=bool(payload.get("success")),
            message=payload.get("message"),
            data=payload.get("data"),
            tables=tables,
            extras=extras,
        )

    def to_payload(self) -> dict:
        payload = {"success": self.success, "message": self.message, "data": self.data}
        for idx, rows in enumerate(self.tables, start=1):
            payload[f"table{idx}"] = rows
        payload.update(self.extras)
        return payload


class ILedgerStore(ABC):
    """One stored-procedure endpoint: a numeric mode plus a parameter bag."""

    @abstractmethod
    def execute(self, mode: int, parameters: dict, action_by: str | None = None) -> StoreResponse:
        ...


class IAttachmentEncoder(ABC):

    @abstractmethod
    def encode(
        self,
        document_name: str,
        content: bytes,
        content_type: str | None = None,
        doc_type_id: int | None = None,
        description: str | None = None,
    ) -> Attachment:
        ...


class VoucherValidator:
    """
    Service - Pre-submission checks for journal and payment vouchers.
    Collects every violation instead of stopping at the first one.
    """

    def __init__(self, tolerance: Decimal = BALANCE_TOLERANCE):
        self.tolerance = tolerance

    def validate(self, voucher: Voucher, today: date | None = None) -> ValidationResult:
        errors: list[FieldError] = []
        errors += self._check_header(voucher)
        if voucher.is_payment:
            errors += self._check_payment(voucher, today or date.today())

        if not voucher.lines:
            noun = "voucher" if voucher.is_payment else "journal"
            errors.append(FieldError("lines", f"At least one {noun} line is required"))
            return ValidationResult(tuple(errors))

        if voucher.is_payment:
            line_total = sum((line.debit_amount or ZERO for line in voucher.lines), ZERO)
            if abs(line_total - (voucher.total_amount or ZERO)) > self.tolerance:
                errors.append(FieldError("lines", "Total line amounts must equal the payment amount"))
        elif abs(voucher.difference()) > self.tolerance:
            errors.append(FieldError(
                "lines",
                f"Total debits must equal total credits "
                f"(debits {voucher.total_debit():.2f}, credits {voucher.total_credit():.2f})",
            ))

        for idx, line in enumerate(voucher.lines, start=1):
            errors += self._check_line(idx, line, debit_only=voucher.is_payment)

        return ValidationResult(tuple(errors))

    def _check_header(self, voucher: Voucher) -> list[FieldError]:
        errors = []
        if not voucher.transaction_date:
            errors.append(FieldError("TransactionDate", "Transaction date is required"))
        if not voucher.company_id:
            errors.append(FieldError("CompanyID", "Company is required"))
        if not voucher.fiscal_year_id:
            errors.append(FieldError("FiscalYearID", "Fiscal year is required"))
        if not voucher.currency_id:
            errors.append(FieldError("CurrencyID", "Currency is required"))
        return errors

    def _check_payment(self, voucher: Voucher, today: date) -> list[FieldError]:
        errors = []
        if not voucher.payment_type:
            errors.append(FieldError("PaymentType", "Payment type is required"))
        if not voucher.payment_account_id:
            errors.append(FieldError("PaymentAccountID", "Payment account is required"))
        if not voucher.total_amount or voucher.total_amount <= 0:
            errors.append(FieldError("TotalAmount", "Total amount must be greater than zero"))

        payment_type = voucher.payment_type
        if payment_type is None:
            return errors
        method = payment_type.value.lower()
        if payment_type.requires_cheque:
            if not voucher.cheque_no:
                errors.append(FieldError("ChequeNo", "Cheque number is required for cheque payments"))
            if not voucher.cheque_date:
                errors.append(FieldError("ChequeDate", "Cheque date is required for cheque payments"))
            elif voucher.cheque_date > today:
                errors.append(FieldError("ChequeDate", "Cheque date cannot be in the future"))
        if payment_type.requires_bank and not voucher.bank_id:
            errors.append(FieldError("BankID", f"Bank is required for {method} payments"))
        return errors

    def _check_line(self, idx: int, line, debit_only: bool) -> list[FieldError]:
        field_name = f"lines[{idx}]"
        errors = []
        if not line.account_id:
            errors.append(FieldError(field_name, f"Line {idx}: Account is required"))

        if debit_only:
            if not line.has_debit:
                errors.append(FieldError(field_name, f"Line {idx}: Debit amount must be greater than zero"))
            if line.has_credit:
                errors.append(FieldError(field_name, f"Line {idx}: Payment voucher lines cannot carry a credit amount"))
            if line.transaction_type and line.transaction_type is not TransactionType.DEBIT:
                errors.append(FieldError(field_name, f"Line {idx}: Payment voucher lines must be debit transactions"))
            return errors

        if (line.debit_amount or ZERO) < 0 or (line.credit_amount or ZERO) < 0:
            errors.append(FieldError(field_name, f"Line {idx}: Amounts cannot be negative"))
        if not line.has_debit and not line.has_credit:
            errors.append(FieldError(
                field_name, f"Line {idx}: Either debit or credit amount must be greater than zero"
            ))
        if line.has_debit and line.has_credit:
            errors.append(FieldError(
                field_name, f"Line {idx}: Cannot have both debit and credit amounts on the same line"
            ))
        if line.has_debit and line.transaction_type is not TransactionType.DEBIT:
            errors.append(FieldError(
                field_name, f"Line {idx}: Transaction type must be 'Debit' when debit amount is specified"
            ))
        if line.has_credit and line.transaction_type is not TransactionType.CREDIT:
            errors.append(FieldError(
                field_name, f"Line {idx}: Transaction type must be 'Credit' when credit amount is specified"
            ))
        return errors


class LeaseRevenuePostingValidator:
    """
    Service - Checks a lease revenue posting batch.
    Each selected invoice/receipt posts as its own Dr/Cr pair.
    """

    def validate_request(self, request: LeaseRevenuePostingRequest) -> ValidationResult:
        return self.validate(
            request.posting_date,
            request.company_id,
            request.fiscal_year_id,
            list(request.transactions),
            request.debit_account_id,
            request.credit_account_id,
        )

    def validate(
        self,
        posting_date: date | None,
        company_id: int | None,
        fiscal_year_id: int | None,
        transactions: list[SelectedLeaseTransaction],
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
    ) -> ValidationResult:
        errors: list[FieldError] = []
        if not posting_date:
            errors.append(FieldError("PostingDate", "Posting date is required"))
        if not company_id:
            errors.append(FieldError("CompanyID", "Company is required"))
        if not fiscal_year_id:
            errors.append(FieldError("FiscalYearID", "Fiscal year is required"))
        if not transactions:
            errors.append(FieldError("SelectedTransactions", "No transactions selected for posting"))

        for idx, tx in enumerate(transactions, start=1):
            name = f"SelectedTransactions[{idx}]"
            debit = tx.debit_account_id or debit_account_id
            credit = tx.credit_account_id or credit_account_id
            if not tx.transaction_id:
                errors.append(FieldError(name, f"Transaction {idx}: Transaction ID is required"))
            if not tx.transaction_type:
                errors.append(FieldError(name, f"Transaction {idx}: Transaction type is required"))
            if tx.posting_amount is None or tx.posting_amount <= 0:
                errors.append(FieldError(name, f"Transaction {idx}: Valid posting amount is required"))
            if not debit:
                errors.append(FieldError(name, f"Transaction {idx}: Debit account is required"))
            if not credit:
                errors.append(FieldError(name, f"Transaction {idx}: Credit account is required"))
            if debit and credit and debit == credit:
                errors.append(FieldError(
                    name, f"Transaction {idx}: Debit and credit accounts cannot be the same"
                ))
        return ValidationResult(tuple(errors))

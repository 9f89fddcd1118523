"""
Unit tests - Domain layer: double-entry validation and the posting state machine.
"""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest

from voucher_ledger.domain.entities import LeaseRevenuePosting, Voucher
from voucher_ledger.domain.exceptions import (
    InvalidTransitionError,
    ProtectedStateError,
    VoucherValidationError,
)
from voucher_ledger.domain.services import LeaseRevenuePostingValidator, StoreResponse, VoucherValidator
from voucher_ledger.domain.value_objects import (
    ApprovalStatus,
    LeaseTransactionType,
    PaymentType,
    PostingStatus,
    SelectedLeaseTransaction,
    TransactionType,
    VoucherLine,
    VoucherType,
)


def _posted(voucher: Voucher) -> Voucher:
    return voucher.submit("alice").approve("bob")


class TestBalanceCheck:
    """Debits must equal credits within 0.01."""

    def test_balanced_journal_is_valid(self, journal_draft):
        """Dr 500 / Cr 500 passes."""
        result = VoucherValidator().validate(journal_draft)
        assert result.is_valid
        assert journal_draft.difference() == Decimal("0")

    def test_off_by_one_yields_single_balance_error(self, journal_draft):
        """Dr 500 / Cr 499 is reported once, with both totals."""
        journal_draft.lines[1] = VoucherLine.credit(4001, Decimal("499"))
        result = VoucherValidator().validate(journal_draft)
        assert len(result.errors) == 1
        assert "debits 500.00, credits 499.00" in result.messages[0]

    def test_difference_within_tolerance_passes(self, journal_draft):
        """0.01 apart still balances."""
        journal_draft.lines[1] = VoucherLine.credit(4001, Decimal("499.99"))
        assert VoucherValidator().validate(journal_draft).is_valid

    def test_difference_above_tolerance_fails(self, journal_draft):
        """0.02 apart does not."""
        journal_draft.lines[1] = VoucherLine.credit(4001, Decimal("499.98"))
        assert not VoucherValidator().validate(journal_draft).is_valid

    def test_every_violation_is_reported(self):
        """Missing header fields and bad lines come back together."""
        voucher = Voucher(
            voucher_type=VoucherType.JOURNAL,
            transaction_date=None,
            company_id=None,
            fiscal_year_id=None,
            currency_id=None,
            lines=[VoucherLine(account_id=None), VoucherLine.debit(1001, Decimal("10"))],
        )
        fields = [e.field for e in VoucherValidator().validate(voucher).errors]
        assert {"TransactionDate", "CompanyID", "FiscalYearID", "CurrencyID"} <= set(fields)
        assert "lines[1]" in fields

    def test_no_lines(self, journal_draft):
        journal_draft.lines = []
        result = VoucherValidator().validate(journal_draft)
        assert result.messages == ["At least one journal line is required"]


class TestLineRules:
    """Per-line checks, numbered from 1."""

    def test_line_with_both_sides(self, journal_draft):
        """A line cannot carry a debit and a credit."""
        journal_draft.lines.append(
            VoucherLine(2001, Decimal("5"), Decimal("5"), TransactionType.DEBIT)
        )
        messages = VoucherValidator().validate(journal_draft).messages
        assert "Line 3: Cannot have both debit and credit amounts on the same line" in messages

    def test_zero_line(self, journal_draft):
        journal_draft.lines.append(VoucherLine(2001, transaction_type=TransactionType.DEBIT))
        messages = VoucherValidator().validate(journal_draft).messages
        assert "Line 3: Either debit or credit amount must be greater than zero" in messages

    def test_transaction_type_must_match_side(self, journal_draft):
        """A debit amount flagged Credit is rejected."""
        journal_draft.lines[0] = VoucherLine(1001, Decimal("500"), transaction_type=TransactionType.CREDIT)
        messages = VoucherValidator().validate(journal_draft).messages
        assert "Line 1: Transaction type must be 'Debit' when debit amount is specified" in messages

    def test_negative_amount(self, journal_draft):
        journal_draft.lines[0] = VoucherLine(1001, Decimal("-500"), transaction_type=TransactionType.DEBIT)
        messages = VoucherValidator().validate(journal_draft).messages
        assert "Line 1: Amounts cannot be negative" in messages


class TestPaymentRules:
    """Payment vouchers: debit-only lines, the payment account takes the credit."""

    def test_valid_cheque_payment(self, payment_draft):
        result = VoucherValidator().validate(payment_draft, today=date(2025, 6, 30))
        assert result.is_valid, result.messages

    def test_implied_credit_balances_the_voucher(self, payment_draft):
        """Ledger lines include Cr 1100 for the total amount."""
        ledger = payment_draft.ledger_lines()
        assert ledger[-1].account_id == 1100
        assert ledger[-1].credit_amount == Decimal("300")
        assert payment_draft.total_debit() == payment_draft.total_credit() == Decimal("300")

    def test_lines_must_sum_to_total(self, payment_draft):
        payment_draft.total_amount = Decimal("350")
        messages = VoucherValidator().validate(payment_draft, today=date(2025, 6, 30)).messages
        assert "Total line amounts must equal the payment amount" in messages

    def test_cheque_needs_number_date_and_bank(self, payment_draft):
        payment_draft.cheque_no = None
        payment_draft.cheque_date = None
        payment_draft.bank_id = None
        fields = {e.field for e in VoucherValidator().validate(payment_draft, today=date(2025, 6, 30)).errors}
        assert {"ChequeNo", "ChequeDate", "BankID"} <= fields

    def test_future_cheque_date(self, payment_draft):
        payment_draft.cheque_date = date(2025, 6, 30) + timedelta(days=1)
        messages = VoucherValidator().validate(payment_draft, today=date(2025, 6, 30)).messages
        assert "Cheque date cannot be in the future" in messages

    def test_cash_payment_needs_no_bank(self, payment_draft):
        payment_draft.payment_type = PaymentType.CASH
        payment_draft.bank_id = None
        payment_draft.cheque_no = None
        payment_draft.cheque_date = None
        assert VoucherValidator().validate(payment_draft, today=date(2025, 6, 30)).is_valid

    def test_credit_line_rejected(self, payment_draft):
        payment_draft.lines.append(VoucherLine.credit(6300, Decimal("10")))
        messages = VoucherValidator().validate(payment_draft, today=date(2025, 6, 30)).messages
        assert "Line 3: Payment voucher lines cannot carry a credit amount" in messages


class TestStateMachine:
    """Draft -> Pending -> Posted | Rejected."""

    def test_submit_moves_draft_to_pending(self, journal_draft):
        submitted = journal_draft.submit("alice")
        assert submitted.posting_status is PostingStatus.PENDING
        assert journal_draft.posting_status is PostingStatus.DRAFT

    def test_submit_without_approval_posts_directly(self, journal_draft):
        journal_draft.requires_approval = False
        posted = journal_draft.submit("alice")
        assert posted.posting_status is PostingStatus.POSTED
        assert posted.approval_status is ApprovalStatus.APPROVED

    def test_submit_twice_is_invalid(self, journal_draft):
        with pytest.raises(InvalidTransitionError):
            journal_draft.submit("alice").submit("alice")

    def test_approve_posts(self, journal_draft):
        posted = _posted(journal_draft)
        assert posted.posting_status is PostingStatus.POSTED
        assert posted.approved_by == "bob"

    def test_reject_requires_reason(self, journal_draft):
        with pytest.raises(VoucherValidationError):
            journal_draft.submit("alice").reject("bob", "  ")

    def test_rejected_voucher_returns_to_draft_on_edit(self, journal_draft):
        rejected = journal_draft.submit("alice").reject("bob", "wrong account")
        edited = rejected.edited(journal_draft, "alice")
        assert edited.posting_status is PostingStatus.DRAFT
        assert edited.rejection_reason is None

    def test_approved_voucher_cannot_be_edited(self, journal_draft):
        with pytest.raises(ProtectedStateError, match="reset its approval first"):
            _posted(journal_draft).ensure_editable()

    def test_approved_voucher_cannot_be_deleted(self, journal_draft):
        with pytest.raises(ProtectedStateError):
            _posted(journal_draft).ensure_deletable()

    def test_reset_returns_posted_to_pending(self, journal_draft):
        reset = _posted(journal_draft).reset_approval("bob")
        assert reset.posting_status is PostingStatus.PENDING
        assert reset.approval_status is ApprovalStatus.PENDING
        reset.ensure_editable()


class TestReversal:
    """Reversal creates a new linked voucher with every line swapped."""

    def test_reversal_swaps_lines(self, journal_draft):
        journal_draft.voucher_no = "JV-2025-00001"
        original, reversal = _posted(journal_draft).reverse("bob", "correction")
        assert original.is_reversed
        assert reversal.reversal_of == "JV-2025-00001"
        assert [(l.account_id, l.debit_amount, l.credit_amount) for l in reversal.lines] == [
            (1001, Decimal("0"), Decimal("500")),
            (4001, Decimal("500"), Decimal("0")),
        ]
        assert reversal.posting_status is PostingStatus.POSTED
        assert journal_draft.lines[0].debit_amount == Decimal("500")

    def test_payment_reversal_debits_payment_account(self, payment_draft):
        _, reversal = _posted(payment_draft).reverse("bob", "duplicate")
        assert reversal.lines[-1].account_id == 1100
        assert reversal.lines[-1].debit_amount == Decimal("300")
        assert reversal.total_debit() == reversal.total_credit()

    def test_reversal_needs_reason(self, journal_draft):
        with pytest.raises(VoucherValidationError):
            _posted(journal_draft).reverse("bob", "")

    def test_only_posted_vouchers_reverse(self, journal_draft):
        with pytest.raises(InvalidTransitionError):
            journal_draft.reverse("bob", "correction")

    def test_reversed_voucher_is_final(self, journal_draft):
        original, _ = _posted(journal_draft).reverse("bob", "correction")
        with pytest.raises(ProtectedStateError):
            original.reverse("bob", "again")
        with pytest.raises(ProtectedStateError):
            original.reset_approval("bob")

    def test_reversal_voucher_is_final(self, journal_draft):
        journal_draft.voucher_no = "JV-2025-00001"
        _, reversal = _posted(journal_draft).reverse("bob", "correction")
        with pytest.raises(ProtectedStateError, match="reverses JV-2025-00001"):
            reversal.reset_approval("bob")
        with pytest.raises(ProtectedStateError, match="cannot be deleted"):
            reversal.ensure_deletable()

    def test_payment_reversal_keeps_supplier(self, payment_draft):
        _, reversal = _posted(payment_draft).reverse("bob", "duplicate")
        assert reversal.supplier_id == 55


class TestLeaseRevenueRules:

    def test_batch_accounts_fill_missing_line_accounts(self):
        validator = LeaseRevenuePostingValidator()
        tx = SelectedLeaseTransaction(1, LeaseTransactionType.INVOICE, Decimal("100"))
        result = validator.validate(date(2025, 6, 30), 1, 2025, [tx], debit_account_id=1200, credit_account_id=4100)
        assert result.is_valid

    def test_same_debit_and_credit_account(self):
        validator = LeaseRevenuePostingValidator()
        tx = SelectedLeaseTransaction(1, LeaseTransactionType.INVOICE, Decimal("100"), 1200, 1200)
        messages = validator.validate(date(2025, 6, 30), 1, 2025, [tx]).messages
        assert messages == ["Transaction 1: Debit and credit accounts cannot be the same"]

    def test_empty_batch(self):
        messages = LeaseRevenuePostingValidator().validate(None, None, None, []).messages
        assert "No transactions selected for posting" in messages
        assert "Posting date is required" in messages

    def test_reversed_status_maps_to_posted(self):
        posting = LeaseRevenuePosting.from_store({"PostingID": 4, "PostingStatus": "Reversed"})
        assert posting.is_reversed
        assert posting.posting_status is PostingStatus.POSTED

    def test_decided_posting_cannot_be_decided_again(self):
        posting = LeaseRevenuePosting(posting_id=4, approval_status=ApprovalStatus.APPROVED)
        with pytest.raises(InvalidTransitionError):
            posting.ensure_decidable()


class TestStoreResponse:

    def test_tables_and_extras_are_split(self):
        response = StoreResponse.from_payload({
            "success": True,
            "message": "ok",
            "table2": [{"Line_No": 1}],
            "table1": [{"VoucherNo": "JV-2025-00001"}],
            "VoucherNo": "JV-2025-00001",
        })
        assert response.table(1) == [{"VoucherNo": "JV-2025-00001"}]
        assert response.table(2) == [{"Line_No": 1}]
        assert response.table(3) == []
        assert response.extras == {"VoucherNo": "JV-2025-00001"}

    def test_rows_prefer_data(self):
        response = StoreResponse(success=True, data=[{"a": 1}], tables=[[{"b": 2}]])
        assert response.rows() == [{"a": 1}]
        assert replace(response, data=None).rows() == [{"b": 2}]

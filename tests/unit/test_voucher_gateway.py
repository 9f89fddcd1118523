"""
Unit tests - Voucher gateway against the local SQL ledger store.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from voucher_ledger.application.gateway import VoucherLedgerGateway
from voucher_ledger.domain.services import ILedgerStore, StoreResponse
from voucher_ledger.domain.value_objects import (
    ApprovalAction,
    ApprovalStatus,
    JournalMode,
    PaymentMode,
    PostingStatus,
    VoucherFilters,
    VoucherLine,
    VoucherMode,
    VoucherType,
)
from voucher_ledger.infrastructure.attachments import Base64AttachmentEncoder


class RecordingStore(ILedgerStore):
    """Passes calls through and remembers the modes used."""

    def __init__(self, inner: ILedgerStore):
        self.inner = inner
        self.modes: list[int] = []

    def execute(self, mode: int, parameters: dict, action_by: str | None = None) -> StoreResponse:
        self.modes.append(int(mode))
        return self.inner.execute(mode, parameters, action_by)


class CannedStore(ILedgerStore):
    """Answers every call with the same response."""

    def __init__(self, response: StoreResponse):
        self.response = response

    def execute(self, mode: int, parameters: dict, action_by: str | None = None) -> StoreResponse:
        return self.response


class FailingStore(ILedgerStore):
    def __init__(self, message: str | None = "Fiscal year is closed"):
        self.message = message

    def execute(self, mode: int, parameters: dict, action_by: str | None = None) -> StoreResponse:
        return StoreResponse(success=False, message=self.message)


@pytest.fixture
def recording(journal_store) -> RecordingStore:
    return RecordingStore(journal_store)


@pytest.fixture
def gateway(recording) -> VoucherLedgerGateway:
    return VoucherLedgerGateway(recording, VoucherType.JOURNAL, encoder=Base64AttachmentEncoder())


def _create(gateway, draft, ctx) -> str:
    result = gateway.create(draft, ctx)
    assert result.success, result.message
    return result.data["voucher_no"]


def _posted(gateway, draft, ctx) -> str:
    voucher_no = _create(gateway, draft, ctx)
    assert gateway.submit_for_approval(voucher_no, ctx)
    assert gateway.approve_or_reject(voucher_no, ApprovalAction.APPROVE, "ok", ctx)
    return voucher_no


class TestCreate:

    def test_create_assigns_sequential_numbers(self, gateway, journal_draft, ctx):
        """JV-YYYY-NNNNN per company and fiscal year."""
        assert _create(gateway, journal_draft, ctx) == "JV-2025-00001"
        assert _create(gateway, journal_draft, ctx) == "JV-2025-00002"

    def test_created_voucher_is_draft(self, gateway, journal_draft, ctx):
        voucher_no = _create(gateway, journal_draft, ctx)
        voucher = gateway.get(voucher_no, ctx).data
        assert voucher.posting_status is PostingStatus.DRAFT
        assert voucher.created_by == "alice"
        assert [line.account_id for line in voucher.lines] == [1001, 4001]

    def test_unbalanced_voucher_never_reaches_store(self, gateway, recording, journal_draft, ctx):
        """Dr 500 / Cr 499: one balance error, zero store calls."""
        journal_draft.lines[1] = VoucherLine.credit(4001, Decimal("499"))
        result = gateway.create(journal_draft, ctx)
        assert not result.success
        assert result.error_kind == "validation"
        assert len(result.errors) == 1
        assert recording.modes == []

    def test_wrong_voucher_type_is_refused(self, gateway, payment_draft, ctx):
        result = gateway.create(payment_draft, ctx)
        assert not result.success
        assert result.errors[0].field == "voucher_type"

    def test_duplicate_number_is_refused_by_store(self, gateway, journal_draft, ctx):
        voucher_no = _create(gateway, journal_draft, ctx)
        result = gateway.create(replace(journal_draft, voucher_no=voucher_no), ctx)
        assert not result.success
        assert result.error_kind == "remote"
        assert "already exists" in result.message


class TestApprovalWorkflow:

    def test_submit_then_approve_posts(self, gateway, journal_draft, ctx):
        voucher_no = _create(gateway, journal_draft, ctx)
        submitted = gateway.submit_for_approval(voucher_no, ctx)
        assert submitted.data["posting_status"] == "Pending"
        approved = gateway.approve_or_reject(voucher_no, ApprovalAction.APPROVE, "looks right", ctx)
        assert approved.data["posting_status"] == "Posted"
        voucher = gateway.get(voucher_no, ctx).data
        assert voucher.approval_status is ApprovalStatus.APPROVED
        assert voucher.approved_by == "alice"
        assert voucher.approval_comments == "looks right"

    def test_reject_without_reason_fails(self, gateway, journal_draft, ctx):
        """The voucher stays pending."""
        voucher_no = _create(gateway, journal_draft, ctx)
        gateway.submit_for_approval(voucher_no, ctx)
        result = gateway.approve_or_reject(voucher_no, ApprovalAction.REJECT, "   ", ctx)
        assert not result.success
        assert result.error_kind == "validation"
        assert gateway.get(voucher_no, ctx).data.posting_status is PostingStatus.PENDING

    def test_rejected_voucher_can_be_fixed_and_resubmitted(self, gateway, journal_draft, ctx):
        voucher_no = _create(gateway, journal_draft, ctx)
        gateway.submit_for_approval(voucher_no, ctx)
        assert gateway.approve_or_reject(voucher_no, ApprovalAction.REJECT, "wrong account", ctx)
        assert gateway.get(voucher_no, ctx).data.rejection_reason == "wrong account"

        fixed = replace(journal_draft, narration="Corrected")
        assert gateway.update(voucher_no, fixed, ctx)
        voucher = gateway.get(voucher_no, ctx).data
        assert voucher.posting_status is PostingStatus.DRAFT
        assert voucher.narration == "Corrected"
        assert gateway.submit_for_approval(voucher_no, ctx)

    def test_submit_without_approval_posts_directly(self, gateway, journal_draft, ctx):
        journal_draft.requires_approval = False
        voucher_no = _create(gateway, journal_draft, ctx)
        result = gateway.submit_for_approval(voucher_no, ctx)
        assert result.data["posting_status"] == "Posted"

    def test_approved_voucher_is_protected(self, gateway, journal_draft, ctx):
        """Update and delete are refused until the approval is reset."""
        voucher_no = _posted(gateway, journal_draft, ctx)
        deleted = gateway.delete(voucher_no, ctx)
        assert not deleted.success
        assert deleted.error_kind == "protected"
        updated = gateway.update(voucher_no, journal_draft, ctx)
        assert updated.error_kind == "protected"

        assert gateway.reset_approval(voucher_no, ctx).data["posting_status"] == "Pending"
        assert gateway.update(voucher_no, replace(journal_draft, narration="Edited"), ctx)
        assert gateway.delete(voucher_no, ctx)
        assert gateway.get(voucher_no, ctx).error_kind == "not_found"

    def test_protection_wins_over_invalid_draft(self, gateway, recording, journal_draft, ctx):
        voucher_no = _posted(gateway, journal_draft, ctx)
        unbalanced = replace(journal_draft, lines=[VoucherLine.debit(1001, Decimal("500"))])
        result = gateway.update(voucher_no, unbalanced, ctx)
        assert result.error_kind == "protected"
        assert int(VoucherMode.UPDATE) not in recording.modes

    def test_approval_time_is_utc(self, gateway, journal_draft, ctx):
        voucher = gateway.get(_posted(gateway, journal_draft, ctx), ctx).data
        assert voucher.approved_on.tzinfo is not None
        assert voucher.approved_on.utcoffset().total_seconds() == 0

    def test_bulk_approve_reports_each_voucher(self, gateway, journal_draft, ctx):
        """Five vouchers, one still draft: four succeed, one fails."""
        voucher_nos = [_create(gateway, journal_draft, ctx) for _ in range(5)]
        for voucher_no in voucher_nos[:4]:
            gateway.submit_for_approval(voucher_no, ctx)

        result = gateway.bulk_approve(voucher_nos, ApprovalAction.APPROVE, None, ctx)
        assert result.success_count == 4
        assert result.failure_count == 1
        assert result.failed[0].key == voucher_nos[4]
        assert "Draft" in result.failed[0].message

    def test_pending_approvals(self, gateway, journal_draft, ctx):
        first = _create(gateway, journal_draft, ctx)
        _create(gateway, journal_draft, ctx)
        gateway.submit_for_approval(first, ctx)
        rows = gateway.pending_approvals(company_id=1).data
        assert [row["VoucherNo"] for row in rows] == [first]


class TestReversal:

    def test_reverse_creates_linked_voucher(self, gateway, journal_draft, ctx):
        voucher_no = _posted(gateway, journal_draft, ctx)
        result = gateway.reverse(voucher_no, "correction", ctx)
        assert result.success, result.message
        reversal_no = result.data["reversal_voucher_no"]

        original = gateway.get(voucher_no, ctx).data
        reversal = gateway.get(reversal_no, ctx).data
        assert original.is_reversed
        assert original.reversed_by == reversal_no
        assert original.lines[0].debit_amount == Decimal("500")
        assert reversal.reversal_of == voucher_no
        assert reversal.posting_status is PostingStatus.POSTED
        assert reversal.lines[0].credit_amount == Decimal("500")
        assert reversal.lines[1].debit_amount == Decimal("500")

    def test_reverse_needs_reason(self, gateway, recording, journal_draft, ctx):
        voucher_no = _posted(gateway, journal_draft, ctx)
        calls = len(recording.modes)
        result = gateway.reverse(voucher_no, "", ctx)
        assert result.error_kind == "validation"
        assert len(recording.modes) == calls

    def test_reverse_twice_is_protected(self, gateway, journal_draft, ctx):
        voucher_no = _posted(gateway, journal_draft, ctx)
        gateway.reverse(voucher_no, "correction", ctx)
        assert gateway.reverse(voucher_no, "again", ctx).error_kind == "protected"
        assert gateway.reset_approval(voucher_no, ctx).error_kind == "protected"

    def test_reversal_voucher_is_protected(self, gateway, journal_draft, ctx):
        voucher_no = _posted(gateway, journal_draft, ctx)
        reversal_no = gateway.reverse(voucher_no, "correction", ctx).data["reversal_voucher_no"]

        assert gateway.reset_approval(reversal_no, ctx).error_kind == "protected"
        assert gateway.delete(reversal_no, ctx).error_kind == "protected"
        assert gateway.get(voucher_no, ctx).data.is_reversed
        assert gateway.get(reversal_no, ctx).data.posting_status is PostingStatus.POSTED
        assert gateway.account_balance(1001).data == 0

    def test_draft_cannot_be_reversed(self, gateway, journal_draft, ctx):
        voucher_no = _create(gateway, journal_draft, ctx)
        assert gateway.reverse(voucher_no, "correction", ctx).error_kind == "validation"


class TestReports:

    def test_trial_balance_covers_journal_and_payment(
        self, gateway, payment_gateway, journal_draft, payment_draft, ctx
    ):
        _posted(gateway, journal_draft, ctx)
        _posted(payment_gateway, payment_draft, ctx)
        _create(gateway, journal_draft, ctx)

        data = gateway.trial_balance(company_id=1).data
        assert data["is_balanced"]
        assert data["total_debit"] == data["total_credit"] == 800
        by_account = {row["AccountID"]: row for row in data["accounts"]}
        assert by_account[1100]["TotalCredit"] == 300
        assert by_account[6100]["TotalDebit"] == 200

    def test_reversal_nets_to_zero(self, gateway, journal_draft, ctx):
        voucher_no = _posted(gateway, journal_draft, ctx)
        gateway.reverse(voucher_no, "correction", ctx)
        assert gateway.account_balance(1001).data == 0
        assert gateway.trial_balance(company_id=1).data["is_balanced"]

    def test_account_balance(self, payment_gateway, payment_draft, ctx):
        _posted(payment_gateway, payment_draft, ctx)
        assert payment_gateway.account_balance(1100).data == -300
        assert payment_gateway.account_balance(6200).data == 100

    def test_next_number_and_exists(self, gateway, journal_draft, ctx):
        voucher_no = _create(gateway, journal_draft, ctx)
        assert gateway.voucher_number_exists(voucher_no, 1).data is True
        assert gateway.voucher_number_exists("JV-2025-09999", 1).data is False
        assert gateway.next_voucher_number(1, 2025, journal_draft.transaction_date).data == "JV-2025-00002"

    def test_list_and_search(self, gateway, journal_draft, ctx):
        first = _create(gateway, journal_draft, ctx)
        _create(gateway, replace(journal_draft, narration="Utilities"), ctx)
        gateway.submit_for_approval(first, ctx)

        pending = gateway.list_vouchers(VoucherFilters(company_id=1, status=PostingStatus.PENDING)).data
        assert [row["VoucherNo"] for row in pending] == [first]
        found = gateway.search(VoucherFilters(company_id=1, search_text="Utilities")).data
        assert len(found) == 1

    def test_summary_report(self, gateway, journal_draft, ctx):
        _create(gateway, journal_draft, ctx)
        _posted(gateway, journal_draft, ctx)
        rows = {row["PostingStatus"]: row for row in gateway.summary_report(company_id=1).data}
        assert rows["Draft"]["VoucherCount"] == 1
        assert rows["Posted"]["TotalAmount"] == 500


    def test_trial_balance_totals_are_decimal(self):
        store = CannedStore(StoreResponse(success=True, data=[
            {"AccountID": 1001, "TotalDebit": "100.10", "TotalCredit": "0"},
            {"AccountID": 4001, "TotalDebit": None, "TotalCredit": 100.1},
        ]))
        data = VoucherLedgerGateway(store, VoucherType.JOURNAL).trial_balance().data
        assert data["total_debit"] == data["total_credit"] == Decimal("100.10")
        assert isinstance(data["total_credit"], Decimal)
        assert data["is_balanced"]

    def test_trial_balance_prefers_store_totals(self):
        store = CannedStore(StoreResponse(success=True, data=[], extras={"TotalDebit": 0.1, "TotalCredit": "0.30"}))
        data = VoucherLedgerGateway(store, VoucherType.JOURNAL).trial_balance().data
        assert data["total_debit"] == Decimal("0.1")
        assert not data["is_balanced"]

    def test_trial_balance_is_journal_mode_19(self, gateway, recording):
        gateway.trial_balance(company_id=1)
        assert recording.modes == [19]

    def test_payment_endpoint_has_no_trial_balance(self, payment_store):
        recording = RecordingStore(payment_store)
        result = VoucherLedgerGateway(recording, VoucherType.PAYMENT).trial_balance(company_id=1)
        assert result.error_kind == "validation"
        assert recording.modes == []


class TestSuppliers:

    def test_payment_reduces_outstanding_balance(self, payment_gateway, payment_draft, ctx):
        _posted(payment_gateway, payment_draft, ctx)
        data = payment_gateway.supplier_outstanding_balance(55).data
        assert data["supplier_id"] == 55
        assert data["outstanding_balance"] == Decimal("-300")
        assert payment_gateway.supplier_outstanding_balance(56).data["outstanding_balance"] == 0

    def test_reversal_restores_balance(self, payment_gateway, payment_draft, ctx):
        voucher_no = _posted(payment_gateway, payment_draft, ctx)
        payment_gateway.reverse(voucher_no, "duplicate", ctx)
        assert payment_gateway.supplier_outstanding_balance(55).data["outstanding_balance"] == 0

    def test_balance_date_excludes_later_payments(self, payment_gateway, payment_draft, ctx):
        _posted(payment_gateway, payment_draft, ctx)
        earlier = payment_gateway.supplier_outstanding_balance(55, date(2025, 6, 1)).data
        assert earlier["outstanding_balance"] == 0
        assert earlier["balance_date"] == date(2025, 6, 1)

    def test_unposted_payment_is_not_counted(self, payment_gateway, payment_draft, ctx):
        _create(payment_gateway, payment_draft, ctx)
        assert payment_gateway.supplier_outstanding_balance(55).data["outstanding_balance"] == 0

    def test_payment_history(self, payment_gateway, payment_draft, ctx):
        voucher_no = _posted(payment_gateway, payment_draft, ctx)
        rows = payment_gateway.supplier_payment_history(55).data
        assert [row["VoucherNo"] for row in rows] == [voucher_no]
        assert payment_gateway.supplier_payment_history(55, date_to=date(2025, 6, 1)).data == []

    def test_supplier_is_required(self, payment_gateway):
        result = payment_gateway.supplier_outstanding_balance(0)
        assert result.error_kind == "validation"
        assert result.errors[0].field == "SupplierID"

    def test_payment_modes(self, payment_store):
        recording = RecordingStore(payment_store)
        gateway = VoucherLedgerGateway(recording, VoucherType.PAYMENT)
        gateway.supplier_outstanding_balance(55)
        gateway.supplier_payment_history(55)
        assert recording.modes == [19, 20]

    def test_journal_endpoint_has_no_supplier_queries(self, gateway, recording):
        assert gateway.supplier_outstanding_balance(55).error_kind == "validation"
        assert gateway.supplier_payment_history(55).error_kind == "validation"
        assert recording.modes == []


class TestAttachments:

    def test_add_list_update_delete(self, gateway, journal_draft, ctx):
        voucher_no = _create(gateway, journal_draft, ctx)
        posting_id = gateway.get(voucher_no, ctx).data.posting_id
        attachment = gateway.encode_attachment("invoice.pdf", b"%PDF-1.4 test")
        assert attachment.content_type == "application/pdf"

        added = gateway.add_attachment(posting_id, attachment, ctx)
        attachment_id = added.data["attachment_id"]
        assert attachment_id

        assert gateway.update_attachment(attachment_id, replace(attachment, description="June invoice"), ctx)
        listed = gateway.attachments(posting_id).data
        assert [a.description for a in listed] == ["June invoice"]
        assert Base64AttachmentEncoder.decode(listed[0]) == b"%PDF-1.4 test"

        assert gateway.delete_attachment(attachment_id, ctx)
        assert gateway.attachments(posting_id).data == []

    def test_attachment_requires_posting(self, gateway, ctx):
        attachment = gateway.encode_attachment("note.txt", b"hello")
        assert gateway.add_attachment(0, attachment, ctx).error_kind == "validation"


class TestStoreFailures:

    def test_store_failure_becomes_remote_error(self, journal_draft, ctx):
        gateway = VoucherLedgerGateway(FailingStore(), VoucherType.JOURNAL)
        result = gateway.create(journal_draft, ctx)
        assert not result.success
        assert result.error_kind == "remote"
        assert result.message == "Fiscal year is closed"

    def test_missing_message_gets_default(self, journal_draft, ctx):
        gateway = VoucherLedgerGateway(FailingStore(message=None), VoucherType.JOURNAL)
        assert gateway.create(journal_draft, ctx).message == "Failed to create journal voucher"

    def test_unsupported_mode(self, journal_store):
        response = journal_store.execute(20, {})
        assert not response.success

    def test_mode_numbers(self):
        assert VoucherMode.PENDING_APPROVALS == 21
        assert VoucherMode.RESET_APPROVAL == 22
        assert VoucherMode.ATTACHMENTS_BY_POSTING == 18

    def test_modes_19_and_20_depend_on_endpoint(self):
        assert JournalMode.TRIAL_BALANCE == 19
        assert PaymentMode.SUPPLIER_BALANCE == 19
        assert PaymentMode.SUPPLIER_PAYMENTS == 20
        assert 19 not in {int(m) for m in VoucherMode}

    def test_stores_route_modes_by_endpoint(self, journal_store, payment_store):
        assert "TotalDebit" in journal_store.execute(19, {}).extras
        assert "SupplierBalance" in payment_store.execute(19, {"SupplierID": 55}).extras
        assert payment_store.execute(20, {"SupplierID": 55}).success

"""
Infrastructure - Local SQL store for lease revenue postings.

Every selected lease invoice or receipt becomes its own two-line voucher
(Dr receivable / Cr revenue) with voucher type `LeaseRevenue`.
"""

import json
import logging
from datetime import date, datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from voucher_ledger.domain.entities import LeaseRevenuePosting
from voucher_ledger.domain.exceptions import ProtectedStateError, VoucherNotFoundError, VoucherValidationError
from voucher_ledger.domain.services import StoreResponse
from voucher_ledger.domain.value_objects import (
    ApprovalAction,
    ApprovalStatus,
    FieldError,
    LeaseRevenueMode,
    LeaseTransactionType,
    PostingStatus,
    TransactionType,
)
from voucher_ledger.infrastructure.database.models import LeaseTransaction, LedgerVoucher, LedgerVoucherLine
from voucher_ledger.infrastructure.ledger_store.sql import SqlStoreBase, _date, _dec, _iso

logger = logging.getLogger(__name__)

LEASE_REVENUE_TYPE = "LeaseRevenue"
LEASE_REVENUE_PREFIX = "LR"


class SqlLeaseRevenueStore(SqlStoreBase):

    name = "lease revenue store"

    def __init__(self, session_factory: sessionmaker):
        super().__init__(session_factory)
        self.handlers = {
            LeaseRevenueMode.GET_UNPOSTED: self._unposted,
            LeaseRevenueMode.GET_POSTED: self._posted,
            LeaseRevenueMode.POST_SELECTED: self._post_selected,
            LeaseRevenueMode.REVERSE: self._reverse,
            LeaseRevenueMode.TRANSACTION_DETAILS: self._details,
            LeaseRevenueMode.POSTING_SUMMARY: self._summary,
            LeaseRevenueMode.APPROVE_REJECT: self._approve_reject,
            LeaseRevenueMode.PENDING_APPROVALS: self._pending,
            LeaseRevenueMode.RESET_APPROVAL: self._reset,
        }

    def _post_selected(self, db: Session, p: dict, actor: str) -> StoreResponse:
        selected = json.loads(p.get("SelectedTransactionsJSON") or "[]")
        posting_date = _date(p.get("PostingDate")) or date.today()
        requires_approval = bool(p.get("RequiresApproval", True))
        results, total = [], _dec(0)

        for item in selected:
            tx = db.get(LeaseTransaction, item.get("TransactionID")) if item.get("TransactionID") else None
            debit_account = item.get("DebitAccountID") or p.get("DebitAccountID")
            credit_account = item.get("CreditAccountID") or p.get("CreditAccountID")
            amount = _dec(item.get("PostingAmount"))
            problem = None
            if tx is None or tx.transaction_type != item.get("TransactionType"):
                problem = "Transaction not found"
            elif tx.is_posted:
                problem = "Transaction already posted"
            elif amount <= 0:
                problem = "Valid posting amount is required"
            elif not debit_account or not credit_account or debit_account == credit_account:
                problem = "Debit and credit accounts must be set and differ"
            if problem:
                logger.warning(f"Lease transaction {item.get('TransactionID')} not posted: {problem}")
                results.append({"TransactionID": item.get("TransactionID"), "Success": False, "Message": problem})
                continue

            row = LedgerVoucher(
                voucher_no=self._next_number(
                    db, LEASE_REVENUE_PREFIX, p.get("CompanyID"), p.get("FiscalYearID"), posting_date
                ),
                voucher_type=LEASE_REVENUE_TYPE,
                company_id=p.get("CompanyID"),
                fiscal_year_id=p.get("FiscalYearID"),
                currency_id=p.get("CurrencyID"),
                exchange_rate=_dec(p.get("ExchangeRate") or 1),
                transaction_date=posting_date,
                posting_date=posting_date,
                total_amount=amount,
                narration=p.get("Narration") or f"Lease revenue - {tx.transaction_type} {tx.transaction_no}",
                reference_no=p.get("ReferenceNo"),
                posting_status=PostingStatus.POSTED.value,
                approval_status=(ApprovalStatus.PENDING if requires_approval else ApprovalStatus.APPROVED).value,
                requires_approval=requires_approval,
                approved_by=None if requires_approval else actor,
                approved_on=None if requires_approval else datetime.now(timezone.utc),
                lease_transaction_id=tx.id,
                created_by=actor,
                updated_by=actor,
            )
            row.lines = [
                LedgerVoucherLine(
                    line_no=1, account_id=debit_account, debit_amount=amount,
                    transaction_type=TransactionType.DEBIT.value, customer_id=tx.customer_id,
                ),
                LedgerVoucherLine(
                    line_no=2, account_id=credit_account, credit_amount=amount,
                    transaction_type=TransactionType.CREDIT.value, customer_id=tx.customer_id,
                ),
            ]
            tx.is_posted = True
            db.add(row)
            db.flush()
            self._audit(db, "POST", row, p, actor)
            total += amount
            results.append({
                "TransactionID": tx.id,
                "PostingID": row.id,
                "VoucherNo": row.voucher_no,
                "Success": True,
                "Message": "Posted",
            })

        posted = sum(1 for r in results if r["Success"])
        failed = len(results) - posted
        extras = {"PostedCount": posted, "FailedCount": failed, "TotalAmount": float(total)}
        if not posted:
            return StoreResponse(success=False, message="No transactions were posted", data=results, extras=extras)
        return StoreResponse(
            success=True,
            message=f"{posted} transaction(s) posted successfully",
            data=results,
            extras=extras,
        )

    def _approve_reject(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._posting_row(db, p.get("PostingID"))
        self._posting(db, row).ensure_decidable()
        action = ApprovalAction(p.get("ApprovalAction"))
        if action is ApprovalAction.APPROVE:
            row.approval_status = ApprovalStatus.APPROVED.value
            row.approved_by = actor
            row.approved_on = datetime.now(timezone.utc)
            row.approval_comments = p.get("ApprovalComments")
        else:
            reason = (p.get("RejectionReason") or "").strip()
            if not reason:
                raise VoucherValidationError([FieldError("RejectionReason", "Rejection reason is required")])
            row.approval_status = ApprovalStatus.REJECTED.value
            row.posting_status = PostingStatus.REJECTED.value
            row.rejection_reason = reason
            # A rejected posting no longer holds its transaction; it can be selected again.
            tx = self._lease_transaction(db, row)
            if tx is not None:
                tx.is_posted = False
        row.updated_by = actor
        row.updated_at = datetime.now(timezone.utc)
        self._audit(db, action.value.upper(), row, p, actor)
        verb = "approved" if action is ApprovalAction.APPROVE else "rejected"
        return StoreResponse(success=True, message=f"Posting {verb} successfully")

    def _reset(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._posting_row(db, p.get("PostingID"))
        self._posting(db, row).ensure_resettable()
        if row.posting_status == PostingStatus.REJECTED.value:
            tx = self._lease_transaction(db, row)
            if tx is not None:
                if tx.is_posted:
                    raise ProtectedStateError(
                        f"Lease transaction {tx.transaction_no} has been posted again; {row.voucher_no} cannot be reset"
                    )
                tx.is_posted = True
        row.posting_status = PostingStatus.POSTED.value
        row.approval_status = ApprovalStatus.PENDING.value
        row.approved_by = None
        row.approved_on = None
        row.approval_comments = None
        row.rejection_reason = None
        row.updated_by = actor
        row.updated_at = datetime.now(timezone.utc)
        self._audit(db, "RESET_APPROVAL", row, p, actor)
        return StoreResponse(success=True, message="Approval status reset successfully")

    def _reverse(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._posting_row(db, p.get("PostingID"))
        reason = p.get("ReversalReason")
        self._posting(db, row).ensure_reversible(reason)

        today = date.today()
        reversal = LedgerVoucher(
            voucher_no=self._next_number(db, LEASE_REVENUE_PREFIX, row.company_id, row.fiscal_year_id, today),
            voucher_type=LEASE_REVENUE_TYPE,
            company_id=row.company_id,
            fiscal_year_id=row.fiscal_year_id,
            currency_id=row.currency_id,
            exchange_rate=row.exchange_rate,
            transaction_date=today,
            posting_date=today,
            total_amount=row.total_amount,
            narration=f"Reversal of {row.voucher_no}: {reason.strip()}",
            posting_status=PostingStatus.POSTED.value,
            approval_status=ApprovalStatus.APPROVED.value,
            requires_approval=False,
            approved_by=actor,
            approved_on=datetime.now(timezone.utc),
            reversal_of=row.voucher_no,
            reversal_reason=reason.strip(),
            lease_transaction_id=row.lease_transaction_id,
            created_by=actor,
            updated_by=actor,
        )
        reversal.lines = [
            LedgerVoucherLine(
                line_no=line.line_no,
                account_id=line.account_id,
                debit_amount=line.credit_amount,
                credit_amount=line.debit_amount,
                transaction_type=(
                    TransactionType.CREDIT if line.transaction_type == TransactionType.DEBIT.value
                    else TransactionType.DEBIT
                ).value,
                description=line.description,
                customer_id=line.customer_id,
            )
            for line in row.lines
        ]
        db.add(reversal)

        row.is_reversed = True
        row.reversed_by = reversal.voucher_no
        row.reversal_reason = reason.strip()
        row.updated_by = actor
        row.updated_at = datetime.now(timezone.utc)
        tx = self._lease_transaction(db, row)
        if tx is not None:
            tx.is_posted = False
        db.flush()
        self._audit(db, "REVERSE", row, p, actor)
        return StoreResponse(
            success=True,
            message="Transaction reversed successfully",
            extras={"ReversalVoucherNo": reversal.voucher_no},
        )

    # Queries

    def _unposted(self, db: Session, p: dict, actor: str) -> StoreResponse:
        query = db.query(LeaseTransaction)
        if p.get("ShowUnpostedOnly", True):
            query = query.filter(LeaseTransaction.is_posted == False)  # noqa: E712
        for column, key in (
            (LeaseTransaction.company_id, "CompanyID"),
            (LeaseTransaction.fiscal_year_id, "FiscalYearID"),
            (LeaseTransaction.property_id, "PropertyID"),
            (LeaseTransaction.unit_id, "UnitID"),
            (LeaseTransaction.customer_id, "CustomerID"),
            (LeaseTransaction.contract_id, "ContractID"),
        ):
            if p.get(key):
                query = query.filter(column == p[key])
        if p.get("PeriodFromDate"):
            query = query.filter(LeaseTransaction.transaction_date >= _date(p["PeriodFromDate"]))
        if p.get("PeriodToDate"):
            query = query.filter(LeaseTransaction.transaction_date <= _date(p["PeriodToDate"]))
        rows = query.order_by(LeaseTransaction.transaction_date, LeaseTransaction.id).all()
        return StoreResponse(success=True, data=[_transaction(tx) for tx in rows])

    def _posted(self, db: Session, p: dict, actor: str) -> StoreResponse:
        query = self._postings_query(db, p)
        if p.get("PostingID"):
            query = query.filter(LedgerVoucher.id == p["PostingID"])
        if p.get("FilterApprovalStatus"):
            query = query.filter(LedgerVoucher.approval_status == p["FilterApprovalStatus"])
        rows = query.order_by(LedgerVoucher.posting_date.desc(), LedgerVoucher.id.desc()).all()
        return StoreResponse(success=True, data=[self._posting_dict(db, row) for row in rows])

    def _pending(self, db: Session, p: dict, actor: str) -> StoreResponse:
        rows = self._postings_query(db, p).filter(
            LedgerVoucher.approval_status == ApprovalStatus.PENDING.value,
            LedgerVoucher.requires_approval == True,  # noqa: E712
            LedgerVoucher.is_reversed == False,  # noqa: E712
        ).all()
        return StoreResponse(success=True, data=[self._posting_dict(db, row) for row in rows])

    def _summary(self, db: Session, p: dict, actor: str) -> StoreResponse:
        query = self._postings_query(db, p)
        if p.get("FilterApprovalStatus"):
            query = query.filter(LedgerVoucher.approval_status == p["FilterApprovalStatus"])
        grouped = query.with_entities(
            LedgerVoucher.approval_status,
            func.count(LedgerVoucher.id),
            func.sum(LedgerVoucher.total_amount),
        ).group_by(LedgerVoucher.approval_status).all()
        data = [
            {"ApprovalStatus": status, "PostingCount": count, "TotalAmount": float(total or 0)}
            for status, count, total in grouped
        ]
        return StoreResponse(success=True, data=data)

    def _details(self, db: Session, p: dict, actor: str) -> StoreResponse:
        tx_type = LeaseTransactionType(p.get("TransactionType"))
        key = "LeaseInvoiceID" if tx_type is LeaseTransactionType.INVOICE else "LeaseReceiptID"
        tx = db.get(LeaseTransaction, p.get(key)) if p.get(key) else None
        if tx is None or tx.transaction_type != tx_type.value:
            return StoreResponse(success=True, data=[])
        details = _transaction(tx)
        posting = db.query(LedgerVoucher).filter(
            LedgerVoucher.lease_transaction_id == tx.id,
            LedgerVoucher.reversal_of.is_(None),
            LedgerVoucher.is_reversed == False,  # noqa: E712
            LedgerVoucher.posting_status != PostingStatus.REJECTED.value,
        ).order_by(LedgerVoucher.id.desc()).first()
        details.update({
            "PostingID": posting.id if posting else None,
            "VoucherNo": posting.voucher_no if posting else None,
            "ApprovalStatus": posting.approval_status if posting else None,
        })
        return StoreResponse(success=True, data=[details])

    # Lookups

    def _postings_query(self, db: Session, p: dict):
        query = db.query(LedgerVoucher).filter(
            LedgerVoucher.voucher_type == LEASE_REVENUE_TYPE,
            LedgerVoucher.reversal_of.is_(None),
        )
        if p.get("CompanyID"):
            query = query.filter(LedgerVoucher.company_id == p["CompanyID"])
        if p.get("FiscalYearID"):
            query = query.filter(LedgerVoucher.fiscal_year_id == p["FiscalYearID"])
        if p.get("PostingFromDate"):
            query = query.filter(LedgerVoucher.posting_date >= _date(p["PostingFromDate"]))
        if p.get("PostingToDate"):
            query = query.filter(LedgerVoucher.posting_date <= _date(p["PostingToDate"]))
        return query

    def _lease_transaction(self, db: Session, row: LedgerVoucher) -> LeaseTransaction | None:
        return db.get(LeaseTransaction, row.lease_transaction_id) if row.lease_transaction_id else None

    def _posting_row(self, db: Session, posting_id: int | None) -> LedgerVoucher:
        row = db.get(LedgerVoucher, posting_id) if posting_id else None
        if row is None or row.voucher_type != LEASE_REVENUE_TYPE:
            raise VoucherNotFoundError(str(posting_id), noun="Lease revenue posting")
        return row

    def _posting(self, db: Session, row: LedgerVoucher) -> LeaseRevenuePosting:
        return LeaseRevenuePosting.from_store(self._posting_dict(db, row))

    def _posting_dict(self, db: Session, row: LedgerVoucher) -> dict:
        tx = db.get(LeaseTransaction, row.lease_transaction_id) if row.lease_transaction_id else None
        return {
            "PostingID": row.id,
            "VoucherNo": row.voucher_no,
            "PostingDate": _iso(row.posting_date),
            "TransactionType": tx.transaction_type if tx else None,
            "TransactionID": tx.id if tx else None,
            "TransactionNo": tx.transaction_no if tx else None,
            "CustomerID": tx.customer_id if tx else None,
            "DebitAmount": float(row.total_amount or 0),
            "CreditAmount": float(row.total_amount or 0),
            "PostingStatus": row.posting_status,
            "ApprovalStatus": row.approval_status,
            "RequiresApproval": row.requires_approval,
            "IsReversed": row.is_reversed,
            "ReversedByVoucherNo": row.reversed_by,
            "ReversalReason": row.reversal_reason,
            "ApprovedBy": row.approved_by,
            "RejectionReason": row.rejection_reason,
            "CompanyID": row.company_id,
            "Narration": row.narration,
        }


def _transaction(tx: LeaseTransaction) -> dict:
    return {
        "TransactionID": tx.id,
        "TransactionType": tx.transaction_type,
        "TransactionNo": tx.transaction_no,
        "TransactionDate": _iso(tx.transaction_date),
        "CompanyID": tx.company_id,
        "FiscalYearID": tx.fiscal_year_id,
        "PropertyID": tx.property_id,
        "UnitID": tx.unit_id,
        "CustomerID": tx.customer_id,
        "ContractID": tx.contract_id,
        "Amount": float(tx.amount or 0),
        "IsPosted": tx.is_posted,
    }

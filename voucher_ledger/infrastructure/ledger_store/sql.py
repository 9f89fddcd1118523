"""
Infrastructure - Local SQL ledger store.

Honours the same numeric-mode contract as the production stored procedures so
the gateways can run against SQLite or PostgreSQL in development and tests.
State rules are delegated to the domain entities; this module only persists.
"""

import json
import logging
from collections.abc import Callable, Iterator
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from voucher_ledger.domain.entities import Voucher
from voucher_ledger.domain.exceptions import VoucherError, VoucherNotFoundError, VoucherValidationError
from voucher_ledger.domain.services import ILedgerStore, StoreResponse
from voucher_ledger.domain.value_objects import (
    BALANCE_TOLERANCE,
    ZERO,
    ApprovalAction,
    ApprovalStatus,
    JournalMode,
    PaymentMode,
    PostingStatus,
    VoucherMode,
    VoucherType,
)
from voucher_ledger.infrastructure.database.models import (
    AuditLog,
    LedgerVoucher,
    LedgerVoucherLine,
    PostingAttachment,
)

logger = logging.getLogger(__name__)

VOUCHER_PREFIXES = {VoucherType.JOURNAL: "JV", VoucherType.PAYMENT: "PV"}

Handler = Callable[[Session, dict, str], StoreResponse]


class SqlStoreBase(ILedgerStore):
    """Mode dispatch, one transaction per call, audit trail."""

    name = "ledger store"

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.handlers: dict[int, Handler] = {}

    def execute(self, mode: int, parameters: dict, action_by: str | None = None) -> StoreResponse:
        handler = self.handlers.get(int(mode))
        if handler is None:
            return StoreResponse(success=False, message=f"Unsupported mode {mode} for {self.name}")
        actor = action_by or parameters.get("CurrentUserName") or "system"
        with self.session_factory() as db:
            try:
                response = handler(db, parameters, actor)
                db.commit()
                return response
            except VoucherError as exc:
                db.rollback()
                logger.warning(f"{self.name}: mode {mode} refused: {exc.message}")
                return StoreResponse(success=False, message=exc.message)
            except (SQLAlchemyError, ValueError, InvalidOperation) as exc:
                db.rollback()
                logger.error(f"{self.name}: mode {mode} failed: {exc}", exc_info=True)
                return StoreResponse(success=False, message="An error occurred while processing the request")

    def _audit(self, db: Session, action: str, row: LedgerVoucher, params: dict, actor: str) -> None:
        db.add(AuditLog(
            company_id=row.company_id,
            user_id=params.get("CurrentUserID"),
            user_name=params.get("CurrentUserName") or actor,
            action=action,
            entity_type=row.voucher_type,
            entity_id=row.voucher_no,
            new_value=json.dumps({
                "PostingStatus": row.posting_status,
                "ApprovalStatus": row.approval_status,
                "IsReversed": row.is_reversed,
            }),
        ))

    def _next_number(
        self, db: Session, prefix: str, company_id: int, fiscal_year_id: int, on_date: date | None
    ) -> str:
        """PREFIX-YYYY-NNNNN, sequential per company, fiscal year and prefix."""
        stem = f"{prefix}-{(on_date or date.today()).year}-"
        numbers = db.query(LedgerVoucher.voucher_no).filter(
            LedgerVoucher.company_id == company_id,
            LedgerVoucher.fiscal_year_id == fiscal_year_id,
            LedgerVoucher.voucher_no.like(f"{stem}%"),
        ).all()
        last = 0
        for (voucher_no,) in numbers:
            suffix = voucher_no[len(stem):]
            if suffix.isdigit():
                last = max(last, int(suffix))
        return f"{stem}{last + 1:05d}"

    def _number_taken(
        self, db: Session, voucher_no: str, company_id: int | None, posting_id: int | None = None
    ) -> bool:
        query = db.query(LedgerVoucher).filter(LedgerVoucher.voucher_no == voucher_no)
        if company_id:
            query = query.filter(LedgerVoucher.company_id == company_id)
        if posting_id:
            query = query.filter(LedgerVoucher.id != posting_id)
        return query.count() > 0

    def _posted_entries(
        self,
        db: Session,
        company_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        account_id: int | None = None,
    ) -> Iterator[tuple[int, Decimal, Decimal]]:
        """(account_id, debit, credit) for every ledger line of every posted voucher."""
        query = db.query(LedgerVoucher).options(selectinload(LedgerVoucher.lines)).filter(
            LedgerVoucher.posting_status == PostingStatus.POSTED.value
        )
        if company_id:
            query = query.filter(LedgerVoucher.company_id == company_id)
        if date_from:
            query = query.filter(LedgerVoucher.transaction_date >= date_from)
        if date_to:
            query = query.filter(LedgerVoucher.transaction_date <= date_to)
        for row in query.all():
            for line in row.lines:
                if account_id is None or line.account_id == account_id:
                    yield line.account_id, line.debit_amount or ZERO, line.credit_amount or ZERO
            # Payment lines are debit-only; the payment account carries the credit.
            if row.voucher_type == VoucherType.PAYMENT.value and row.payment_account_id:
                if account_id is None or row.payment_account_id == account_id:
                    yield row.payment_account_id, ZERO, row.total_amount or ZERO


class SqlLedgerStore(SqlStoreBase):
    """Journal or payment voucher endpoint backed by SQLModel tables."""

    def __init__(self, session_factory: sessionmaker, voucher_type: VoucherType):
        super().__init__(session_factory)
        self.voucher_type = voucher_type
        self.prefix = VOUCHER_PREFIXES[voucher_type]
        self.name = f"{voucher_type.value.lower()} voucher store"
        self.handlers = {
            VoucherMode.CREATE: self._create,
            VoucherMode.UPDATE: self._update,
            VoucherMode.LIST: self._list,
            VoucherMode.GET: self._get,
            VoucherMode.DELETE: self._delete,
            VoucherMode.SEARCH: self._list,
            VoucherMode.APPROVE_REJECT: self._approve_reject,
            VoucherMode.REVERSE: self._reverse,
            VoucherMode.GET_FOR_EDIT: self._get,
            VoucherMode.SUMMARY_REPORT: self._summary,
            VoucherMode.NUMBER_EXISTS: self._number_exists,
            VoucherMode.NEXT_NUMBER: self._next_voucher_number,
            VoucherMode.ACCOUNT_BALANCE: self._account_balance,
            VoucherMode.SUBMIT: self._submit,
            VoucherMode.ADD_ATTACHMENT: self._add_attachment,
            VoucherMode.UPDATE_ATTACHMENT: self._update_attachment,
            VoucherMode.DELETE_ATTACHMENT: self._delete_attachment,
            VoucherMode.ATTACHMENTS_BY_POSTING: self._attachments,
            VoucherMode.PENDING_APPROVALS: self._pending,
            VoucherMode.RESET_APPROVAL: self._reset,
        }
        if voucher_type is VoucherType.JOURNAL:
            self.handlers[JournalMode.TRIAL_BALANCE] = self._trial_balance
        else:
            self.handlers[PaymentMode.SUPPLIER_BALANCE] = self._supplier_balance
            self.handlers[PaymentMode.SUPPLIER_PAYMENTS] = self._supplier_payments

    @property
    def noun(self) -> str:
        return f"{self.voucher_type.value} voucher"

    # Mutations

    def _create(self, db: Session, p: dict, actor: str) -> StoreResponse:
        company_id = p.get("CompanyID")
        fiscal_year_id = p.get("FiscalYearID")
        header = _header_fields(p)
        voucher_no = p.get("VoucherNo") or self._next_number(
            db, self.prefix, company_id, fiscal_year_id, header["transaction_date"]
        )
        if self._number_taken(db, voucher_no, company_id):
            raise VoucherValidationError(f"Voucher number {voucher_no} already exists")

        row = LedgerVoucher(
            voucher_no=voucher_no,
            voucher_type=self.voucher_type.value,
            posting_status=PostingStatus.DRAFT.value,
            approval_status=ApprovalStatus.PENDING.value,
            created_by=actor,
            updated_by=actor,
            **header,
        )
        row.lines = _lines_from_json(p.get("VoucherLinesJSON"))
        row.attachments = _attachments_from_json(p.get("AttachmentsJSON"), actor)
        self._ensure_balanced(row)
        db.add(row)
        db.flush()
        self._audit(db, "CREATE", row, p, actor)
        return StoreResponse(
            success=True,
            message=f"{self.noun} created successfully",
            extras={"VoucherNo": row.voucher_no, "PostingID": row.id},
        )

    def _update(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row(db, p)
        edited = self._entity(row).edited(self._entity(row), actor)
        for name, value in _header_fields(p).items():
            setattr(row, name, value)
        row.lines = _lines_from_json(p.get("VoucherLinesJSON"))
        row.attachments.extend(_attachments_from_json(p.get("AttachmentsJSON"), actor))
        _apply_state(row, edited)
        self._ensure_balanced(row)
        self._audit(db, "UPDATE", row, p, actor)
        return StoreResponse(
            success=True, message=f"{self.noun} updated successfully", extras={"VoucherNo": row.voucher_no}
        )

    def _delete(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row(db, p)
        self._entity(row).ensure_deletable()
        self._audit(db, "DELETE", row, p, actor)
        db.delete(row)
        return StoreResponse(success=True, message=f"{self.noun} deleted successfully")

    def _submit(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row(db, p)
        _apply_state(row, self._entity(row).submit(actor))
        self._audit(db, "SUBMIT", row, p, actor)
        if row.posting_status == PostingStatus.POSTED.value:
            message = f"{self.noun} posted successfully"
        else:
            message = f"{self.noun} submitted for approval successfully"
        return StoreResponse(success=True, message=message, extras={"PostingStatus": row.posting_status})

    def _approve_reject(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row(db, p)
        action = ApprovalAction(p.get("ApprovalAction"))
        voucher = self._entity(row)
        if action is ApprovalAction.APPROVE:
            decided = voucher.approve(actor, p.get("ApprovalComments"))
        else:
            decided = voucher.reject(actor, p.get("RejectionReason") or p.get("ApprovalComments"))
        _apply_state(row, decided)
        self._audit(db, action.value.upper(), row, p, actor)
        verb = "approved" if action is ApprovalAction.APPROVE else "rejected"
        return StoreResponse(success=True, message=f"{self.noun} {verb} successfully")

    def _reset(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row(db, p)
        _apply_state(row, self._entity(row).reset_approval(actor))
        self._audit(db, "RESET_APPROVAL", row, p, actor)
        return StoreResponse(success=True, message=f"{self.noun} approval status reset successfully")

    def _reverse(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row(db, p)
        original, reversal = self._entity(row).reverse(actor, p.get("ReversalReason"))
        reversal_no = self._next_number(db, self.prefix, row.company_id, row.fiscal_year_id, reversal.transaction_date)

        reversal_row = LedgerVoucher(
            voucher_no=reversal_no,
            voucher_type=self.voucher_type.value,
            company_id=row.company_id,
            fiscal_year_id=row.fiscal_year_id,
            currency_id=row.currency_id,
            exchange_rate=row.exchange_rate,
            transaction_date=reversal.transaction_date,
            posting_date=reversal.posting_date,
            total_amount=reversal.total_amount,
            narration=reversal.narration,
            posting_status=reversal.posting_status.value,
            approval_status=reversal.approval_status.value,
            requires_approval=False,
            approved_by=actor,
            approved_on=reversal.approved_on,
            reversal_of=row.voucher_no,
            reversal_reason=reversal.reversal_reason,
            payment_type=row.payment_type,
            supplier_id=row.supplier_id,
            created_by=actor,
            updated_by=actor,
        )
        if p.get("ReversalLinesJSON"):
            reversal_row.lines = _lines_from_json(p["ReversalLinesJSON"])
        else:
            reversal_row.lines = [_line_row(line.to_store()) for line in reversal.lines]
        db.add(reversal_row)

        _apply_state(row, original)
        row.reversed_by = reversal_no
        db.flush()
        self._audit(db, "REVERSE", row, p, actor)
        self._audit(db, "CREATE", reversal_row, p, actor)
        return StoreResponse(
            success=True,
            message=f"{self.noun} reversed successfully",
            extras={"ReversalVoucherNo": reversal_no, "PostingID": reversal_row.id},
        )

    # Queries

    def _get(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row(db, p, required=False)
        if row is None:
            return StoreResponse(success=True, message=f"{self.noun} not found", tables=[[], [], []])
        return StoreResponse(
            success=True,
            tables=[
                [_header(row)],
                [_line(line) for line in sorted(row.lines, key=lambda x: x.line_no)],
                [_attachment(a) for a in row.attachments],
            ],
        )

    def _list(self, db: Session, p: dict, actor: str) -> StoreResponse:
        query = db.query(LedgerVoucher).filter(LedgerVoucher.voucher_type == self.voucher_type.value)
        if p.get("FilterCompanyID"):
            query = query.filter(LedgerVoucher.company_id == p["FilterCompanyID"])
        if p.get("FilterFiscalYearID"):
            query = query.filter(LedgerVoucher.fiscal_year_id == p["FilterFiscalYearID"])
        if p.get("FilterStatus"):
            query = query.filter(LedgerVoucher.posting_status == p["FilterStatus"])
        if p.get("FilterSupplierID"):
            query = query.filter(LedgerVoucher.supplier_id == p["FilterSupplierID"])
        if p.get("FilterAccountID"):
            with_account = db.query(LedgerVoucherLine.voucher_id).filter(
                LedgerVoucherLine.account_id == p["FilterAccountID"]
            )
            query = query.filter(LedgerVoucher.id.in_(with_account))
        if p.get("FilterDateFrom"):
            query = query.filter(LedgerVoucher.transaction_date >= _date(p["FilterDateFrom"]))
        if p.get("FilterDateTo"):
            query = query.filter(LedgerVoucher.transaction_date <= _date(p["FilterDateTo"]))
        if p.get("SearchText"):
            pattern = f"%{p['SearchText']}%"
            query = query.filter(
                LedgerVoucher.voucher_no.like(pattern) | LedgerVoucher.narration.like(pattern)
            )
        rows = query.order_by(LedgerVoucher.transaction_date.desc(), LedgerVoucher.id.desc()).all()
        return StoreResponse(success=True, data=[_header(row) for row in rows])

    def _pending(self, db: Session, p: dict, actor: str) -> StoreResponse:
        query = db.query(LedgerVoucher).filter(
            LedgerVoucher.voucher_type == self.voucher_type.value,
            LedgerVoucher.posting_status == PostingStatus.PENDING.value,
        )
        if p.get("CompanyID"):
            query = query.filter(LedgerVoucher.company_id == p["CompanyID"])
        if p.get("FiscalYearID"):
            query = query.filter(LedgerVoucher.fiscal_year_id == p["FiscalYearID"])
        rows = query.order_by(LedgerVoucher.transaction_date).all()
        return StoreResponse(success=True, data=[_header(row) for row in rows])

    def _summary(self, db: Session, p: dict, actor: str) -> StoreResponse:
        query = db.query(
            LedgerVoucher.posting_status,
            func.count(LedgerVoucher.id),
            func.sum(LedgerVoucher.total_amount),
        ).filter(LedgerVoucher.voucher_type == self.voucher_type.value)
        if p.get("CompanyID"):
            query = query.filter(LedgerVoucher.company_id == p["CompanyID"])
        if p.get("FiscalYearID"):
            query = query.filter(LedgerVoucher.fiscal_year_id == p["FiscalYearID"])
        data = [
            {"PostingStatus": status, "VoucherCount": count, "TotalAmount": float(total or 0)}
            for status, count, total in query.group_by(LedgerVoucher.posting_status).all()
        ]
        return StoreResponse(success=True, data=data)

    def _number_exists(self, db: Session, p: dict, actor: str) -> StoreResponse:
        exists = self._number_taken(db, p.get("VoucherNo"), p.get("CompanyID"), p.get("PostingID"))
        # Status 0 means "exists" for callers written against the stored procedures.
        return StoreResponse(success=True, extras={"Exists": exists, "Status": 0 if exists else 1})

    def _next_voucher_number(self, db: Session, p: dict, actor: str) -> StoreResponse:
        number = self._next_number(
            db, self.prefix, p.get("CompanyID"), p.get("FiscalYearID"), _date(p.get("TransactionDate"))
        )
        return StoreResponse(success=True, extras={"NextVoucherNo": number})

    def _account_balance(self, db: Session, p: dict, actor: str) -> StoreResponse:
        balance = ZERO
        entries = self._posted_entries(db, date_to=_date(p.get("BalanceDate")), account_id=p.get("AccountID"))
        for _, debit, credit in entries:
            balance += debit - credit
        return StoreResponse(success=True, extras={"AccountBalance": float(balance)})

    def _trial_balance(self, db: Session, p: dict, actor: str) -> StoreResponse:
        totals: dict[int, list[Decimal]] = {}
        entries = self._posted_entries(
            db, company_id=p.get("CompanyID"), date_from=_date(p.get("DateFrom")), date_to=_date(p.get("DateTo"))
        )
        for account_id, debit, credit in entries:
            bucket = totals.setdefault(account_id, [ZERO, ZERO])
            bucket[0] += debit
            bucket[1] += credit
        rows = [
            {
                "AccountID": account_id,
                "TotalDebit": float(debit),
                "TotalCredit": float(credit),
                "Balance": float(debit - credit),
            }
            for account_id, (debit, credit) in sorted(totals.items())
        ]
        total_debit = sum((d for d, _ in totals.values()), ZERO)
        total_credit = sum((c for _, c in totals.values()), ZERO)
        return StoreResponse(
            success=True,
            data=rows,
            extras={
                "TotalDebit": float(total_debit),
                "TotalCredit": float(total_credit),
                "IsBalanced": abs(total_debit - total_credit) <= BALANCE_TOLERANCE,
            },
        )

    def _supplier_balance(self, db: Session, p: dict, actor: str) -> StoreResponse:
        """
        What is still owed to a supplier as of BalanceDate.
        Credits minus debits on posted lines tagged with the supplier, less the
        supplier's posted payments (a payment reversal adds its amount back).
        """
        supplier_id = p.get("SupplierID")
        query = db.query(LedgerVoucher).options(selectinload(LedgerVoucher.lines)).filter(
            LedgerVoucher.posting_status == PostingStatus.POSTED.value
        )
        if p.get("BalanceDate"):
            query = query.filter(LedgerVoucher.transaction_date <= _date(p["BalanceDate"]))
        balance = ZERO
        for row in query.all():
            if row.voucher_type == VoucherType.PAYMENT.value and row.supplier_id == supplier_id:
                amount = row.total_amount or ZERO
                balance += amount if row.reversal_of else -amount
                continue
            for line in row.lines:
                if line.supplier_id == supplier_id:
                    balance += (line.credit_amount or ZERO) - (line.debit_amount or ZERO)
        return StoreResponse(success=True, extras={"SupplierID": supplier_id, "SupplierBalance": float(balance)})

    def _supplier_payments(self, db: Session, p: dict, actor: str) -> StoreResponse:
        query = db.query(LedgerVoucher).filter(
            LedgerVoucher.voucher_type == VoucherType.PAYMENT.value,
            LedgerVoucher.supplier_id == p.get("SupplierID"),
        )
        if p.get("FilterDateFrom"):
            query = query.filter(LedgerVoucher.transaction_date >= _date(p["FilterDateFrom"]))
        if p.get("FilterDateTo"):
            query = query.filter(LedgerVoucher.transaction_date <= _date(p["FilterDateTo"]))
        rows = query.order_by(LedgerVoucher.transaction_date.desc(), LedgerVoucher.id.desc()).all()
        return StoreResponse(success=True, data=[_header(row) for row in rows])

    # Attachments

    def _add_attachment(self, db: Session, p: dict, actor: str) -> StoreResponse:
        row = self._row_by_posting_id(db, p.get("PostingID"))
        attachment = _attachment_row(p, actor)
        row.attachments.append(attachment)
        db.flush()
        return StoreResponse(
            success=True, message="Attachment added successfully", extras={"PostingAttachmentID": attachment.id}
        )

    def _update_attachment(self, db: Session, p: dict, actor: str) -> StoreResponse:
        attachment = self._attachment(db, p.get("PostingAttachmentID"))
        for column, key in (
            ("document_name", "DocumentName"),
            ("description", "DocumentDescription"),
            ("doc_type_id", "DocTypeID"),
            ("file_content", "FileContent"),
            ("content_type", "FileContentType"),
            ("file_size", "FileSize"),
        ):
            if p.get(key) is not None:
                setattr(attachment, column, p[key])
        return StoreResponse(success=True, message="Attachment updated successfully")

    def _delete_attachment(self, db: Session, p: dict, actor: str) -> StoreResponse:
        db.delete(self._attachment(db, p.get("PostingAttachmentID")))
        return StoreResponse(success=True, message="Attachment deleted successfully")

    def _attachments(self, db: Session, p: dict, actor: str) -> StoreResponse:
        rows = db.query(PostingAttachment).filter(PostingAttachment.voucher_id == p.get("PostingID")).all()
        return StoreResponse(success=True, data=[_attachment(a) for a in rows])

    # Lookups

    def _row(self, db: Session, p: dict, required: bool = True) -> LedgerVoucher | None:
        voucher_no = p.get("VoucherNo")
        query = db.query(LedgerVoucher).filter(
            LedgerVoucher.voucher_type == self.voucher_type.value,
            LedgerVoucher.voucher_no == voucher_no,
        )
        if p.get("CompanyID"):
            query = query.filter(LedgerVoucher.company_id == p["CompanyID"])
        row = query.first()
        if row is None and required:
            raise VoucherNotFoundError(voucher_no, noun=self.noun)
        return row

    def _row_by_posting_id(self, db: Session, posting_id: int | None) -> LedgerVoucher:
        row = db.get(LedgerVoucher, posting_id) if posting_id else None
        if row is None or row.voucher_type != self.voucher_type.value:
            raise VoucherNotFoundError(str(posting_id), noun=self.noun)
        return row

    def _attachment(self, db: Session, attachment_id: int | None) -> PostingAttachment:
        attachment = db.get(PostingAttachment, attachment_id) if attachment_id else None
        if attachment is None:
            raise VoucherNotFoundError(str(attachment_id), noun="Attachment")
        return attachment

    def _entity(self, row: LedgerVoucher) -> Voucher:
        return Voucher.from_store(self.voucher_type, _header(row), [_line(line) for line in row.lines])

    def _ensure_balanced(self, row: LedgerVoucher) -> None:
        voucher = self._entity(row)
        if abs(voucher.difference()) > BALANCE_TOLERANCE:
            raise VoucherValidationError("Total debits must equal total credits")


def _header_fields(p: dict) -> dict:
    return {
        "company_id": p.get("CompanyID"),
        "fiscal_year_id": p.get("FiscalYearID"),
        "currency_id": p.get("CurrencyID"),
        "exchange_rate": _dec(p.get("ExchangeRate") or 1),
        "transaction_date": _date(p.get("TransactionDate")),
        "posting_date": _date(p.get("PostingDate")) or _date(p.get("TransactionDate")),
        "total_amount": _dec(p.get("TotalAmount")),
        "narration": p.get("Narration") or "",
        "requires_approval": bool(p.get("RequiresApproval", True)),
        "payment_type": p.get("PaymentType"),
        "payment_account_id": p.get("PaymentAccountID"),
        "supplier_id": p.get("SupplierID"),
        "bank_id": p.get("BankID"),
        "cheque_no": p.get("ChequeNo"),
        "cheque_date": _date(p.get("ChequeDate")),
        "transaction_reference": p.get("TransactionReference"),
    }


def _apply_state(row: LedgerVoucher, voucher: Voucher) -> None:
    row.posting_status = voucher.posting_status.value
    row.approval_status = voucher.approval_status.value
    row.approved_by = voucher.approved_by
    row.approved_on = voucher.approved_on
    row.approval_comments = voucher.approval_comments
    row.rejection_reason = voucher.rejection_reason
    row.is_reversed = voucher.is_reversed
    row.reversal_reason = voucher.reversal_reason
    row.updated_by = voucher.updated_by
    row.updated_at = voucher.updated_on or datetime.now(timezone.utc)


def _header(row: LedgerVoucher) -> dict:
    return {
        "PostingID": row.id,
        "VoucherNo": row.voucher_no,
        "VoucherType": row.voucher_type,
        "TransactionDate": _iso(row.transaction_date),
        "PostingDate": _iso(row.posting_date),
        "CompanyID": row.company_id,
        "FiscalYearID": row.fiscal_year_id,
        "CurrencyID": row.currency_id,
        "ExchangeRate": float(row.exchange_rate or 1),
        "TotalAmount": float(row.total_amount or 0),
        "Narration": row.narration,
        "PostingStatus": row.posting_status,
        "ApprovalStatus": row.approval_status,
        "RequiresApproval": row.requires_approval,
        "ApprovedBy": row.approved_by,
        "ApprovedOn": _iso(row.approved_on),
        "ApprovalComments": row.approval_comments,
        "RejectionReason": row.rejection_reason,
        "IsReversed": row.is_reversed,
        "ReversalOfVoucherNo": row.reversal_of,
        "ReversedByVoucherNo": row.reversed_by,
        "ReversalReason": row.reversal_reason,
        "PaymentType": row.payment_type,
        "PaymentAccountID": row.payment_account_id,
        "SupplierID": row.supplier_id,
        "BankID": row.bank_id,
        "ChequeNo": row.cheque_no,
        "ChequeDate": _iso(row.cheque_date),
        "TransactionReference": row.transaction_reference,
        "CreatedBy": row.created_by,
        "CreatedOn": _iso(row.created_at),
        "UpdatedBy": row.updated_by,
        "UpdatedOn": _iso(row.updated_at),
    }


def _line(row: LedgerVoucherLine) -> dict:
    return {
        "Line_No": row.line_no,
        "AccountID": row.account_id,
        "DebitAmount": float(row.debit_amount or 0),
        "CreditAmount": float(row.credit_amount or 0),
        "TransactionType": row.transaction_type,
        "Description": row.description,
        "CostCenter1ID": row.cost_center_id,
        "CustomerID": row.customer_id,
        "SupplierID": row.supplier_id,
    }


def _attachment(row: PostingAttachment) -> dict:
    return {
        "PostingAttachmentID": row.id,
        "PostingID": row.voucher_id,
        "DocTypeID": row.doc_type_id,
        "DocumentName": row.document_name,
        "FileContent": row.file_content,
        "FileContentType": row.content_type,
        "FileSize": row.file_size,
        "DocumentDescription": row.description,
    }


def _line_row(item: dict, line_no: int | None = None) -> LedgerVoucherLine:
    return LedgerVoucherLine(
        line_no=item.get("Line_No") or line_no or 1,
        account_id=item.get("AccountID"),
        debit_amount=_dec(item.get("DebitAmount")),
        credit_amount=_dec(item.get("CreditAmount")),
        transaction_type=item.get("TransactionType"),
        description=item.get("Description"),
        cost_center_id=item.get("CostCenter1ID"),
        customer_id=item.get("CustomerID"),
        supplier_id=item.get("SupplierID"),
    )


def _lines_from_json(raw: str | None) -> list[LedgerVoucherLine]:
    items = json.loads(raw) if raw else []
    return [_line_row(item, idx) for idx, item in enumerate(items, start=1)]


def _attachment_row(item: dict, actor: str) -> PostingAttachment:
    return PostingAttachment(
        doc_type_id=item.get("DocTypeID"),
        document_name=item.get("DocumentName") or "",
        file_content=item.get("FileContent") or "",
        content_type=item.get("FileContentType") or "application/octet-stream",
        file_size=int(item.get("FileSize") or 0),
        description=item.get("DocumentDescription"),
        created_by=actor,
    )


def _attachments_from_json(raw: str | None, actor: str) -> list[PostingAttachment]:
    items = json.loads(raw) if raw else []
    return [_attachment_row(item, actor) for item in items]


def _dec(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    return Decimal(str(value))


def _date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _iso(value) -> str | None:
    return value.isoformat() if value else None

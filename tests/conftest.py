"""
Pytest configuration and fixtures.
"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from voucher_ledger.api.dependencies import Gateways
from voucher_ledger.application.gateway import VoucherLedgerGateway
from voucher_ledger.application.lease_revenue import LeaseRevenuePostingGateway
from voucher_ledger.core.config import Settings
from voucher_ledger.domain.entities import Voucher
from voucher_ledger.domain.value_objects import PaymentType, SessionContext, VoucherLine, VoucherType
from voucher_ledger.infrastructure.attachments import Base64AttachmentEncoder
from voucher_ledger.infrastructure.database import build_engine, build_session_factory, init_db
from voucher_ledger.infrastructure.database.models import LeaseTransaction
from voucher_ledger.infrastructure.ledger_store import SqlLeaseRevenueStore, SqlLedgerStore
from voucher_ledger.main import create_app


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def journal_store(session_factory) -> SqlLedgerStore:
    return SqlLedgerStore(session_factory, VoucherType.JOURNAL)


@pytest.fixture
def payment_store(session_factory) -> SqlLedgerStore:
    return SqlLedgerStore(session_factory, VoucherType.PAYMENT)


@pytest.fixture
def lease_store(session_factory) -> SqlLeaseRevenueStore:
    return SqlLeaseRevenueStore(session_factory)


@pytest.fixture
def journal_gateway(journal_store) -> VoucherLedgerGateway:
    return VoucherLedgerGateway(journal_store, VoucherType.JOURNAL, encoder=Base64AttachmentEncoder())


@pytest.fixture
def payment_gateway(payment_store) -> VoucherLedgerGateway:
    return VoucherLedgerGateway(payment_store, VoucherType.PAYMENT, encoder=Base64AttachmentEncoder())


@pytest.fixture
def lease_gateway(lease_store) -> LeaseRevenuePostingGateway:
    return LeaseRevenuePostingGateway(lease_store)


@pytest.fixture
def ctx() -> SessionContext:
    return SessionContext(user_id=7, user_name="alice", company_id=1, role="ACC_MGR")


@pytest.fixture
def journal_draft() -> Voucher:
    """JV 1001 Dr 500 / 4001 Cr 500."""
    return Voucher(
        voucher_type=VoucherType.JOURNAL,
        transaction_date=date(2025, 6, 30),
        company_id=1,
        fiscal_year_id=2025,
        currency_id=1,
        narration="June rent accrual",
        lines=[
            VoucherLine.debit(1001, Decimal("500"), "Rent receivable"),
            VoucherLine.credit(4001, Decimal("500"), "Rent income"),
        ],
    )


@pytest.fixture
def payment_draft() -> Voucher:
    """Cheque payment of 300 from bank account 1100 to two expense lines."""
    return Voucher(
        voucher_type=VoucherType.PAYMENT,
        transaction_date=date(2025, 6, 15),
        company_id=1,
        fiscal_year_id=2025,
        currency_id=1,
        total_amount=Decimal("300"),
        narration="Maintenance contractor",
        payment_type=PaymentType.CHEQUE,
        payment_account_id=1100,
        supplier_id=55,
        bank_id=3,
        cheque_no="000123",
        cheque_date=date(2025, 6, 15),
        lines=[
            VoucherLine.debit(6100, Decimal("200"), "Plumbing"),
            VoucherLine.debit(6200, Decimal("100"), "Electrical"),
        ],
    )


@pytest.fixture
def lease_transactions(session_factory) -> list[int]:
    """Two unposted invoices and one receipt for company 1."""
    rows = [
        LeaseTransaction(
            transaction_type="Invoice", transaction_no="INV-001", company_id=1, fiscal_year_id=2025,
            property_id=10, unit_id=101, customer_id=900, contract_id=77,
            transaction_date=date(2025, 6, 1), amount=Decimal("1500"),
        ),
        LeaseTransaction(
            transaction_type="Invoice", transaction_no="INV-002", company_id=1, fiscal_year_id=2025,
            property_id=10, unit_id=102, customer_id=901, contract_id=78,
            transaction_date=date(2025, 6, 1), amount=Decimal("1200"),
        ),
        LeaseTransaction(
            transaction_type="Receipt", transaction_no="RCT-001", company_id=1, fiscal_year_id=2025,
            property_id=10, unit_id=101, customer_id=900, contract_id=77,
            transaction_date=date(2025, 6, 5), amount=Decimal("1500"),
        ),
    ]
    with session_factory() as db:
        db.add_all(rows)
        db.commit()
        return [row.id for row in rows]


@pytest.fixture
def client(journal_gateway, payment_gateway, lease_gateway):
    app = create_app(
        Settings(store_backend="sql", database_url="sqlite://", log_level="WARNING"),
        gateways=Gateways(journal=journal_gateway, payment=payment_gateway, lease_revenue=lease_gateway),
    )
    with TestClient(app) as test_client:
        yield test_client

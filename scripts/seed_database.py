#!/usr/bin/env python3
"""
Database Seeding Script - Voucher Ledger Gateway
Seeds lease transactions and a posted demo journal for local testing.
"""

import csv
import os
from datetime import date
from decimal import Decimal

SEED_DIR = os.getenv("SEED_DIR", "./data/seed")

DEFAULT_LEASE_TRANSACTIONS = [
    {"transaction_type": "Invoice", "transaction_no": "INV-0001", "property_id": "10", "unit_id": "101",
     "customer_id": "900", "contract_id": "77", "transaction_date": "2025-06-01", "amount": "1500"},
    {"transaction_type": "Invoice", "transaction_no": "INV-0002", "property_id": "10", "unit_id": "102",
     "customer_id": "901", "contract_id": "78", "transaction_date": "2025-06-01", "amount": "1200"},
    {"transaction_type": "Receipt", "transaction_no": "RCT-0001", "property_id": "10", "unit_id": "101",
     "customer_id": "900", "contract_id": "77", "transaction_date": "2025-06-05", "amount": "1500"},
]


def read_csv(filepath: str) -> list[dict]:
    """Rows of a CSV file, or an empty list when it does not exist."""
    if not os.path.exists(filepath):
        return []
    with open(filepath, "r", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def _int(value: str | None) -> int | None:
    return int(value) if value else None


def main():
    """Main function."""
    print("=" * 60)
    print("Database Seeding - Voucher Ledger Gateway")
    print("=" * 60)

    from voucher_ledger.application.gateway import VoucherLedgerGateway
    from voucher_ledger.core.config import Settings
    from voucher_ledger.domain.entities import Voucher
    from voucher_ledger.domain.value_objects import ApprovalAction, SessionContext, VoucherLine, VoucherType
    from voucher_ledger.infrastructure.database import build_engine, build_session_factory, init_db
    from voucher_ledger.infrastructure.database.models import LeaseTransaction
    from voucher_ledger.infrastructure.ledger_store import SqlLedgerStore

    settings = Settings.from_env()
    engine = build_engine(settings.database_url)
    init_db(engine)
    session_factory = build_session_factory(engine)
    company_id, fiscal_year_id = 1, 2025

    db = session_factory()
    try:
        rows = read_csv(os.path.join(SEED_DIR, "lease_transactions.csv")) or DEFAULT_LEASE_TRANSACTIONS
        print(f"\n📦 Seeding {len(rows)} lease transactions...")
        for row in rows:
            exists = db.query(LeaseTransaction).filter(
                LeaseTransaction.company_id == company_id,
                LeaseTransaction.transaction_no == row["transaction_no"],
            ).first()
            if exists:
                continue
            db.add(LeaseTransaction(
                transaction_type=row["transaction_type"],
                transaction_no=row["transaction_no"],
                company_id=company_id,
                fiscal_year_id=fiscal_year_id,
                property_id=_int(row.get("property_id")),
                unit_id=_int(row.get("unit_id")),
                customer_id=_int(row.get("customer_id")),
                contract_id=_int(row.get("contract_id")),
                transaction_date=date.fromisoformat(row["transaction_date"]),
                amount=Decimal(row.get("amount") or "0"),
            ))
        db.commit()
        print(f"✓ Seeded {len(rows)} lease transactions")
    except Exception as e:
        print(f"\n❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()

    ctx = SessionContext(user_id=1, user_name="seed", company_id=company_id, role="ADMIN")
    gateway = VoucherLedgerGateway(SqlLedgerStore(session_factory, VoucherType.JOURNAL), VoucherType.JOURNAL)
    demo = Voucher(
        voucher_type=VoucherType.JOURNAL,
        transaction_date=date(2025, 6, 30),
        company_id=company_id,
        fiscal_year_id=fiscal_year_id,
        currency_id=1,
        narration="Opening rent accrual",
        lines=[
            VoucherLine.debit(1001, Decimal("500"), "Rent receivable"),
            VoucherLine.credit(4001, Decimal("500"), "Rent income"),
        ],
    )

    print("\n📦 Creating demo journal voucher...")
    created = gateway.create(demo, ctx)
    if not created:
        raise SystemExit(f"❌ Error: {created.message}")
    voucher_no = created.data["voucher_no"]
    gateway.submit_for_approval(voucher_no, ctx)
    gateway.approve_or_reject(voucher_no, ApprovalAction.APPROVE, "Seed data", ctx)
    print(f"✓ Posted {voucher_no}")

    # Validate
    print("\n=== Validating Seed Data ===")
    trial = gateway.trial_balance(company_id=company_id).data
    if trial["is_balanced"]:
        print(f"✓ Trial balance OK: Debit={trial['total_debit']}, Credit={trial['total_credit']}")
    else:
        print(f"⚠️ Trial balance out of balance: Debit={trial['total_debit']}, Credit={trial['total_credit']}")

    print("\n" + "=" * 60)
    print("Seeding completed successfully!")
    print(f"Company ID: {company_id}")
    print("=" * 60)


if __name__ == "__main__":
    main()

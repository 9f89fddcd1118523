"""Ledger store implementations: remote HTTP API and local SQL tables."""

from voucher_ledger.infrastructure.ledger_store.http import (
    JOURNAL_VOUCHER_ENDPOINT,
    LEASE_REVENUE_POSTING_ENDPOINT,
    PAYMENT_VOUCHER_ENDPOINT,
    HttpLedgerStore,
)
from voucher_ledger.infrastructure.ledger_store.sql import SqlLedgerStore
from voucher_ledger.infrastructure.ledger_store.sql_lease import SqlLeaseRevenueStore

"""Infrastructure layer."""

from voucher_ledger.infrastructure.attachments import Base64AttachmentEncoder
from voucher_ledger.infrastructure.database import build_engine, build_session_factory, init_db
from voucher_ledger.infrastructure.ledger_store import (
    HttpLedgerStore,
    SqlLeaseRevenueStore,
    SqlLedgerStore,
)

"""Application layer - Gateways, results and DTOs."""

from voucher_ledger.application.gateway import VoucherLedgerGateway
from voucher_ledger.application.lease_revenue import LeaseRevenuePostingGateway
from voucher_ledger.application.results import BulkItemResult, BulkResult, OperationResult

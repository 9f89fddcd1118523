"""Domain layer - Pure Python business logic."""

from voucher_ledger.domain.entities import LeaseRevenuePosting, Voucher
from voucher_ledger.domain.exceptions import (
    InvalidTransitionError,
    ProtectedStateError,
    RemoteStoreError,
    VoucherError,
    VoucherNotFoundError,
    VoucherValidationError,
)
from voucher_ledger.domain.services import (
    IAttachmentEncoder,
    ILedgerStore,
    LeaseRevenuePostingValidator,
    StoreResponse,
    VoucherValidator,
)
from voucher_ledger.domain.value_objects import (
    ApprovalAction,
    ApprovalStatus,
    Attachment,
    FieldError,
    JournalMode,
    LeaseRevenueFilters,
    LeaseRevenueMode,
    LeaseRevenuePostingRequest,
    LeaseTransactionType,
    PaymentMode,
    PaymentType,
    PostingStatus,
    SelectedLeaseTransaction,
    SessionContext,
    TransactionType,
    ValidationResult,
    VoucherFilters,
    VoucherLine,
    VoucherMode,
    VoucherType,
)

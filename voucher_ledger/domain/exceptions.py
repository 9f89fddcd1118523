"""
Domain exceptions - invariant and state-machine violations.
"""

from collections.abc import Iterable

from .value_objects import FieldError


class VoucherError(Exception):
    """Base class for all gateway errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class VoucherValidationError(VoucherError):
    """Locally detectable problem: missing field, imbalance, bad line."""

    kind = "validation"

    def __init__(self, errors: Iterable[FieldError] | str):
        if isinstance(errors, str):
            errors = [FieldError("voucher", errors)]
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors))


class InvalidTransitionError(VoucherValidationError):
    """Operation not legal from the voucher's current posting state."""

    def __init__(self, voucher_no: str, operation: str, current: str, expected: Iterable[str]):
        expected = list(expected)
        self.voucher_no = voucher_no
        self.current = current
        self.expected = expected
        super().__init__([
            FieldError(
                "PostingStatus",
                f"Cannot {operation} voucher {voucher_no} in status '{current}'; "
                f"expected {' or '.join(expected)}",
            )
        ])


class ProtectedStateError(VoucherError):
    """Operation attempted against an approved, posted or reversed voucher."""

    kind = "protected"


class VoucherNotFoundError(VoucherError):

    kind = "not_found"

    def __init__(self, voucher_no: str, noun: str = "Voucher"):
        self.voucher_no = voucher_no
        super().__init__(f"{noun} {voucher_no} not found")


class RemoteStoreError(VoucherError):
    """Ledger store returned a failure or the transport failed."""

    kind = "remote"

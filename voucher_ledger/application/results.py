"""
Typed outcomes returned by the gateways instead of raised faults.
"""

from dataclasses import dataclass, field

from voucher_ledger.domain.exceptions import VoucherError, VoucherValidationError
from voucher_ledger.domain.value_objects import FieldError


@dataclass
class OperationResult:
    success: bool
    message: str = ""
    errors: list[FieldError] = field(default_factory=list)
    error_kind: str | None = None
    data: object = None

    @classmethod
    def ok(cls, message: str, data: object = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, exc: VoucherError) -> "OperationResult":
        errors = list(exc.errors) if isinstance(exc, VoucherValidationError) else []
        return cls(success=False, message=exc.message, errors=errors, error_kind=exc.kind)

    def __bool__(self) -> bool:
        return self.success


@dataclass
class BulkItemResult:
    key: str
    success: bool
    message: str


@dataclass
class BulkResult:
    """Per-item outcome of N independent calls; one failure never undoes the others."""
    items: list[BulkItemResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for item in self.items if not item.success)

    @property
    def failed(self) -> list[BulkItemResult]:
        return [item for item in self.items if not item.success]

    def summary(self) -> str:
        return f"{self.success_count} succeeded, {self.failure_count} failed"

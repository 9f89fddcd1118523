"""
Shared plumbing for gateways that speak the numeric-mode ledger store contract.
"""

import logging
from collections.abc import Callable
from enum import IntEnum

from voucher_ledger.application.results import OperationResult
from voucher_ledger.domain.exceptions import RemoteStoreError, VoucherError
from voucher_ledger.domain.services import ILedgerStore, StoreResponse
from voucher_ledger.domain.value_objects import SessionContext

logger = logging.getLogger(__name__)


class StoreGateway:
    """One store endpoint; subclasses name what they manage via `noun`."""

    noun = "Ledger entry"

    def __init__(self, store: ILedgerStore):
        self.store = store

    def _call(
        self,
        mode: IntEnum,
        parameters: dict,
        ctx: SessionContext | None,
        failure_message: str,
    ) -> StoreResponse:
        response = self.store.execute(int(mode), parameters, ctx.user_name if ctx else None)
        if not response.success:
            raise RemoteStoreError(response.message or failure_message)
        return response

    def _query(self, mode: IntEnum, parameters: dict, name: str) -> OperationResult:
        def op() -> OperationResult:
            response = self._call(mode, parameters, None, f"Failed to load {self.noun.lower()} {name}")
            return OperationResult.ok(response.message or "", response.rows())

        return self._run(name, "-", op)

    def _run(self, operation: str, key: str, op: Callable[[], OperationResult]) -> OperationResult:
        logger.info(f"{self.noun}: attempting {operation} on {key}")
        try:
            result = op()
        except RemoteStoreError as exc:
            logger.error(f"{self.noun}: {operation} on {key} failed in ledger store: {exc.message}")
            return OperationResult.failed(exc)
        except VoucherError as exc:
            logger.warning(f"{self.noun}: {operation} on {key} refused: {exc.message}")
            return OperationResult.failed(exc)
        logger.info(f"{self.noun}: {operation} on {key} succeeded")
        return result

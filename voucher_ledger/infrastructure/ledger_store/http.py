"""
Infrastructure - HTTP client for the stored-procedure backed ledger API.
"""

import logging

import requests

from voucher_ledger.domain.services import ILedgerStore, StoreResponse

logger = logging.getLogger(__name__)

JOURNAL_VOUCHER_ENDPOINT = "/Master/JournalVoucher"
PAYMENT_VOUCHER_ENDPOINT = "/Master/PaymentVoucher"
LEASE_REVENUE_POSTING_ENDPOINT = "/Master/LeaseRevenuePosting"

GENERIC_FAILURE = "An error occurred"


class HttpLedgerStore(ILedgerStore):
    """
    POSTs `{mode, actionBy, parameters}` to one endpoint.
    Transport errors and non-2xx replies come back as a failed StoreResponse; no retries.
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str,
        token: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.url = f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def execute(self, mode: int, parameters: dict, action_by: str | None = None) -> StoreResponse:
        body = {"mode": int(mode), "actionBy": action_by or "", "parameters": parameters}
        try:
            response = self.session.post(self.url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error(f"Ledger store request to {self.url} (mode {mode}) failed: {exc}", exc_info=True)
            return StoreResponse(success=False, message=GENERIC_FAILURE)

        payload = _json_body(response)
        if not response.ok:
            logger.error(f"Ledger store {self.url} (mode {mode}) returned HTTP {response.status_code}")
            message = payload.get("message") if payload else None
            return StoreResponse(success=False, message=message or GENERIC_FAILURE)
        if payload is None:
            logger.error(f"Ledger store {self.url} (mode {mode}) returned a non-JSON body")
            return StoreResponse(success=False, message=GENERIC_FAILURE)

        result = StoreResponse.from_payload(payload)
        if not result.success and not result.message:
            result.message = GENERIC_FAILURE
        return result


def _json_body(response: requests.Response) -> dict | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None

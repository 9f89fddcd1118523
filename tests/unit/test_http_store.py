"""
Unit tests - HTTP ledger store: request shape and failure normalization.
"""

import pytest
import requests

from voucher_ledger.application.gateway import VoucherLedgerGateway
from voucher_ledger.domain.value_objects import VoucherMode, VoucherType
from voucher_ledger.infrastructure.ledger_store import JOURNAL_VOUCHER_ENDPOINT, HttpLedgerStore
from voucher_ledger.infrastructure.ledger_store.http import GENERIC_FAILURE


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text_only: bool = False):
        self.status_code = status_code
        self.payload = payload
        self.text_only = text_only

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self.text_only:
            raise ValueError("not json")
        return self.payload


class FakeSession:
    """Records posted bodies; replies with a canned response or raises."""

    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None):
        self.headers: dict = {}
        self.response = response or FakeResponse(payload={"success": True})
        self.error = error
        self.calls: list[dict] = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def _store(session: FakeSession, token: str | None = None) -> HttpLedgerStore:
    return HttpLedgerStore("https://ledger.example/api/", JOURNAL_VOUCHER_ENDPOINT, token=token, session=session)


class TestRequestShape:

    def test_body_carries_mode_actor_and_parameters(self):
        session = FakeSession()
        _store(session).execute(VoucherMode.SUBMIT, {"VoucherNo": "JV-2025-00001"}, "alice")
        call = session.calls[0]
        assert call["url"] == "https://ledger.example/api/Master/JournalVoucher"
        assert call["json"] == {"mode": 14, "actionBy": "alice", "parameters": {"VoucherNo": "JV-2025-00001"}}
        assert call["timeout"] == 30.0

    def test_bearer_token(self):
        session = FakeSession()
        _store(session, token="secret")
        assert session.headers["Authorization"] == "Bearer secret"

    def test_no_token_no_header(self):
        session = FakeSession()
        _store(session)
        assert "Authorization" not in session.headers


class TestResponses:

    def test_tables_and_extras(self):
        payload = {
            "success": True,
            "message": "",
            "table1": [{"VoucherNo": "JV-2025-00001", "PostingStatus": "Draft"}],
            "table2": [],
            "NextVoucherNo": "JV-2025-00002",
        }
        response = _store(FakeSession(FakeResponse(payload=payload))).execute(VoucherMode.GET, {})
        assert response.success
        assert response.table(1)[0]["VoucherNo"] == "JV-2025-00001"
        assert response.extras["NextVoucherNo"] == "JV-2025-00002"

    def test_transport_error(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        response = _store(session).execute(VoucherMode.LIST, {})
        assert not response.success
        assert response.message == GENERIC_FAILURE

    def test_http_error_keeps_server_message(self):
        session = FakeSession(FakeResponse(500, {"success": False, "message": "Deadlock victim"}))
        response = _store(session).execute(VoucherMode.CREATE, {})
        assert not response.success
        assert response.message == "Deadlock victim"

    def test_http_error_without_body(self):
        session = FakeSession(FakeResponse(502, text_only=True))
        assert _store(session).execute(VoucherMode.CREATE, {}).message == GENERIC_FAILURE

    def test_non_json_success_body(self):
        session = FakeSession(FakeResponse(200, text_only=True))
        response = _store(session).execute(VoucherMode.LIST, {})
        assert not response.success

    def test_failed_payload_without_message(self):
        session = FakeSession(FakeResponse(payload={"success": False}))
        assert _store(session).execute(VoucherMode.LIST, {}).message == GENERIC_FAILURE


class TestGatewayOverHttp:

    @pytest.fixture
    def session(self) -> FakeSession:
        return FakeSession()

    def test_legacy_exists_status(self, session):
        """Stores that only answer Status 0 still report the number as taken."""
        session.response = FakeResponse(payload={"success": True, "Status": 0})
        gateway = VoucherLedgerGateway(_store(session), VoucherType.JOURNAL)
        assert gateway.voucher_number_exists("JV-2025-00001", 1).data is True

    def test_not_found_when_header_table_empty(self, session, ctx):
        session.response = FakeResponse(payload={"success": True, "table1": []})
        gateway = VoucherLedgerGateway(_store(session), VoucherType.JOURNAL)
        assert gateway.get("JV-2025-00404", ctx).error_kind == "not_found"

    def test_store_message_surfaces(self, session, journal_draft, ctx):
        session.response = FakeResponse(payload={"success": False, "message": "Fiscal period is locked"})
        gateway = VoucherLedgerGateway(_store(session), VoucherType.JOURNAL)
        result = gateway.create(journal_draft, ctx)
        assert result.error_kind == "remote"
        assert result.message == "Fiscal period is locked"
        sent = session.calls[0]["json"]
        assert sent["mode"] == 1
        assert sent["parameters"]["CurrentUserName"] == "alice"
        assert "VoucherLinesJSON" in sent["parameters"]

# Overview: Pytest coverage for LINE due-date reminders.

import httpx
import pytest

from pawnledger.models import ContractActionLog, Customer
from pawnledger.services import notification_service
from pawnledger.services.notification_service import NotificationError


class _Reply:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text

    @property
    def is_success(self):
        return 200 <= self.status_code < 300


@pytest.fixture
def line_token(app):
    app.config["LINE_CHANNEL_ACCESS_TOKEN"] = "test-token"
    yield "test-token"
    app.config["LINE_CHANNEL_ACCESS_TOKEN"] = None


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        return _Reply(200)

    monkeypatch.setattr(notification_service.httpx, "post", fake_post)
    return calls


def _link_line(db_session, contract, user_id="Uabc"):
    customer = db_session.get(Customer, contract.customer_id)
    customer.line_user_id = user_id
    db_session.commit()


class TestPush:
    def test_not_configured(self, app):
        with pytest.raises(NotificationError):
            notification_service.push_line_message("U1", "hello")

    def test_payload_and_auth_header(self, app, line_token, sent):
        notification_service.push_line_message("U1", "hello")

        (call,) = sent
        assert call["url"] == app.config["LINE_PUSH_URL"]
        assert call["headers"]["Authorization"] == "Bearer test-token"
        assert call["json"] == {"to": "U1", "messages": [{"type": "text", "text": "hello"}]}

    def test_rejected_reply(self, app, line_token, monkeypatch):
        monkeypatch.setattr(notification_service.httpx, "post", lambda *a, **kw: _Reply(401, "bad token"))
        with pytest.raises(NotificationError, match="401"):
            notification_service.push_line_message("U1", "hello")

    def test_transport_error(self, app, line_token, monkeypatch):
        def boom(*a, **kw):
            raise httpx.ConnectError("unreachable")

        monkeypatch.setattr(notification_service.httpx, "post", boom)
        with pytest.raises(NotificationError):
            notification_service.push_line_message("U1", "hello")


class TestNotifyRoute:
    def test_not_configured_is_400(self, client, db_session, make_contract):
        contract = make_contract()
        _link_line(db_session, contract)
        assert client.post(f"/api/contracts/{contract.id}/notify-line").status_code == 400

    def test_customer_without_line(self, client, db_session, make_contract, line_token):
        contract = make_contract()
        assert client.post(f"/api/contracts/{contract.id}/notify-line").status_code == 400

    def test_reminder_sent_and_logged(self, client, db_session, make_contract, line_token, sent):
        contract = make_contract(principal=6000)
        _link_line(db_session, contract)

        resp = client.post(f"/api/contracts/{contract.id}/notify-line")

        assert resp.status_code == 200
        assert resp.get_json()["log"]["action"] == "NOTIFY_CUSTOMER_LINE"
        (call,) = sent
        assert call["json"]["to"] == "Uabc"
        assert contract.code in call["json"]["messages"][0]["text"]
        assert "6,000.00" in call["json"]["messages"][0]["text"]
        assert db_session.query(ContractActionLog).filter_by(action="NOTIFY_CUSTOMER_LINE").count() == 1

    def test_provider_failure_is_500(self, client, db_session, make_contract, line_token, monkeypatch):
        monkeypatch.setattr(notification_service.httpx, "post", lambda *a, **kw: _Reply(500, "down"))
        contract = make_contract()
        _link_line(db_session, contract)

        resp = client.post(f"/api/contracts/{contract.id}/notify-line")

        assert resp.status_code == 500
        assert resp.get_json()["message"] == "Failed to send LINE message"
        assert db_session.query(ContractActionLog).filter_by(action="NOTIFY_CUSTOMER_LINE").count() == 0

    def test_missing_contract(self, client, db_session, line_token):
        assert client.post("/api/contracts/999/notify-line").status_code == 404

# Overview: Pytest coverage for the monthly cashbook and manual entries.

from decimal import Decimal

import pytest

from pawnledger.models import CashbookEntry
from pawnledger.services import contract_service, ledger_service
from pawnledger.time_utils import utcnow
from pawnledger.validation import ValidationError


def _this_month():
    now = utcnow()
    return f"{now.year:04d}-{now.month:02d}"


class TestMonthView:
    def test_summary_totals(self, client, db_session, make_contract):
        contract = make_contract(principal=6000, term_days=15)
        contract_service.redeem_contract(contract.id)
        ledger_service.create_manual_entry({"type": "OUT", "category": "general", "amount": 120, "description": "Electricity"})

        resp = client.get(f"/api/cashbook?month={_this_month()}")

        assert resp.status_code == 200
        data = resp.get_json()
        assert [e["category"] for e in data["entries"]] == ["DEPOSIT_PRINCIPAL_OUT", "REDEEM", "GENERAL"]
        assert data["summary"] == {
            "total_in": 6000.0,
            "total_out": 5670.0,
            "net_cash": 330.0,
            "total_profit": 450.0,
            "principal_out": 5550.0,
            "principal_in": 6000.0,
        }

    def test_cut_principal_counts_as_principal_in(self, client, db_session, make_contract):
        contract = make_contract(principal=6000, term_days=15)
        contract_service.cut_principal(contract.id, {"cut_amount": 1000})

        now = utcnow()
        summary = client.get(f"/api/cashbook?year={now.year}&month={now.month}").get_json()["summary"]
        assert summary["principal_in"] == 1000.0
        assert summary["total_profit"] == 75.0

    def test_other_month_is_empty(self, client, db_session, make_contract):
        make_contract()
        data = client.get("/api/cashbook?month=2001-01").get_json()
        assert (data["year"], data["month"]) == (2001, 1)
        assert data["entries"] == []
        assert data["summary"]["total_out"] == 0

    @pytest.mark.parametrize("year, month", [(None, None), ("abc", "3"), ("2025", "13")])
    def test_invalid_period_falls_back_to_now(self, year, month):
        now = utcnow()
        assert ledger_service.resolve_month(year, month) == (now.year, now.month)


class TestManualEntry:
    def test_create_route(self, client, db_session):
        resp = client.post("/api/cashbook", json={
            "type": "in",
            "category": "Other_Income",
            "amount": "1,250.50",
            "profit": 1250.5,
            "description": "Sold old display case",
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["type"] == "IN"
        assert data["category"] == "OTHER_INCOME"
        assert data["amount"] == 1250.5

    def test_bad_direction(self, client, db_session):
        resp = client.post("/api/cashbook", json={"type": "SIDEWAYS", "category": "GENERAL", "amount": 10})
        assert resp.status_code == 400
        assert db_session.query(CashbookEntry).count() == 0

    def test_unknown_field_rejected(self, db_session):
        with pytest.raises(ValidationError):
            ledger_service.create_manual_entry({"type": "IN", "category": "GENERAL", "amount": 10, "contract_id": 1})

    def test_negative_amount_rejected(self, db_session):
        with pytest.raises(ValidationError):
            ledger_service.append_cashbook_entry(type="OUT", category="GENERAL", amount=Decimal("-1"))

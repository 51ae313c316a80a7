# Overview: Pytest coverage for the deposit contract lifecycle.

"""
Contract Lifecycle Tests

ACTIVE -> RENEWED | REDEEMED | FORFEITED

Covers the cash side of each transition (ledger lines and their profit),
the ACTIVE-only guard, forfeit replay, and that a failing side write does
not undo the primary change.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from pawnledger.models import CashbookEntry, Contract, ContractActionLog, Customer, InventoryItem, LedgerCategory
from pawnledger.services import contract_service, ledger_service
from pawnledger.services.fee_service import calculate_fee
from pawnledger.time_utils import utcnow
from pawnledger.validation import NotFoundError, ValidationError


def _entries(db_session, category=None):
    query = db_session.query(CashbookEntry)
    if category:
        query = query.filter_by(category=category)
    return query.order_by(CashbookEntry.id.asc()).all()


def _logs(db_session, contract_id, action=None):
    query = db_session.query(ContractActionLog).filter_by(contract_id=contract_id)
    if action:
        query = query.filter_by(action=action)
    return query.all()


class TestCreateContract:
    def test_create_books_net_payout(self, db_session, make_contract):
        """6000 for 15 days: fee 450, customer receives 5550."""
        contract = make_contract(principal=6000, term_days=15)

        assert contract.status == "ACTIVE"
        assert contract.fee_config == {"doc_fee": 200, "storage_fee": 150, "care_fee": 100, "total": 450}
        assert contract.due_date - contract.start_date == timedelta(days=15)
        assert contract.code == f"DEP-{utcnow().year}-001"

        entries = _entries(db_session)
        assert len(entries) == 1
        assert entries[0].type == "OUT"
        assert entries[0].category == LedgerCategory.DEPOSIT_PRINCIPAL_OUT
        assert entries[0].amount == Decimal("5550.00")
        assert entries[0].contract_id == contract.id

        assert len(_logs(db_session, contract.id, "NEW_CONTRACT")) == 1

    def test_codes_are_sequential(self, db_session, make_contract):
        first = make_contract()
        second = make_contract()
        year = utcnow().year
        assert (first.code, second.code) == (f"DEP-{year}-001", f"DEP-{year}-002")

    def test_given_fee_breakdown_is_kept(self, db_session, make_contract):
        contract = make_contract(principal=1000, fee_breakdown={"docFee": 50, "storageFee": 20, "careFee": 10})
        assert contract.fee_config["total"] == 80
        assert _entries(db_session)[0].amount == Decimal("920.00")

    def test_zero_net_receive_writes_no_ledger_line(self, db_session, make_contract):
        contract = make_contract(principal=40, fee_breakdown={"doc_fee": 50})
        assert _entries(db_session) == []
        assert len(_logs(db_session, contract.id, "NEW_CONTRACT")) == 1

    def test_id_card_required(self, db_session):
        with pytest.raises(ValidationError):
            contract_service.create_contract({"customer": {"name": "x"}, "financial": {"principal": 1000}})

    def test_principal_required(self, db_session):
        with pytest.raises(ValidationError):
            contract_service.create_contract({"customer": {"id_card": "1"}, "financial": {}})

    def test_repeat_id_card_updates_customer(self, db_session, make_contract):
        first = make_contract(id_card="3100000000001", name="Old Name", phone="0800000000")
        second = make_contract(id_card="3100000000001", name="New Name")

        assert first.customer_id == second.customer_id
        customers = db_session.query(Customer).all()
        assert len(customers) == 1
        assert customers[0].name == "New Name"
        assert customers[0].phone == "0800000000"

    def test_ledger_failure_keeps_contract(self, db_session, monkeypatch):
        """The contract is committed before its ledger line; a failing second step is swallowed."""
        def boom(**kwargs):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setattr(contract_service, "append_cashbook_entry", boom)

        contract = contract_service.create_contract({
            "customer": {"name": "A", "id_card": "1234567890123"},
            "financial": {"principal": 6000, "term_days": 15},
        })

        assert db_session.get(Contract, contract.id).status == "ACTIVE"
        assert _entries(db_session) == []
        assert _logs(db_session, contract.id) == []

    def test_create_route(self, client, db_session):
        resp = client.post("/api/contracts", json={
            "customer": {"name": "Malee", "id_card": "1100000000099", "phone": "0812345678"},
            "asset": {"model_name": "MacBook Air M2", "serial": "C02XYZ", "storage_code": "A-004"},
            "financial": {"principal": 6000, "term_days": 7},
            "images": ["https://example.test/1.jpg"],
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["principal"] == 6000.0
        assert data["security_deposit"] == 6000.0
        assert data["fee_config"]["total"] == 230
        assert data["asset"]["storage_code"] == "A-004"
        assert data["images"] == ["https://example.test/1.jpg"]
        assert data["customer"]["name"] == "Malee"

    def test_create_route_missing_id_card(self, client, db_session):
        resp = client.post("/api/contracts", json={"financial": {"principal": 1000}})
        assert resp.status_code == 400
        assert "id_card" in resp.get_json()["message"]


class TestRenew:
    def test_renew_opens_successor(self, db_session, make_contract):
        contract = make_contract(principal=6000, term_days=15)
        old_due = contract.due_date

        renewed = contract_service.renew_contract(contract.id, {})

        assert db_session.get(Contract, contract.id).status == "RENEWED"
        assert renewed.status == "ACTIVE"
        assert renewed.previous_contract_id == contract.id
        assert renewed.start_date == old_due
        assert renewed.due_date == old_due + timedelta(days=15)
        assert renewed.principal == Decimal("6000.00")

        fees = _entries(db_session, LedgerCategory.RENEW_FEE)
        assert len(fees) == 1
        assert fees[0].type == "IN"
        assert fees[0].amount == Decimal("450.00")
        assert fees[0].profit == Decimal("450.00")
        assert len(_logs(db_session, renewed.id, "RENEW_CONTRACT")) == 1

    def test_renew_with_new_term(self, db_session, make_contract):
        contract = make_contract(principal=6000, term_days=15)
        renewed = contract_service.renew_contract(contract.id, {"term_days": 30})
        assert renewed.term_days == 30
        assert renewed.due_date - renewed.start_date == timedelta(days=30)

    def test_renew_zero_fee_writes_no_fee_line(self, db_session, make_contract):
        contract = make_contract(principal=1000, fee_breakdown={"doc_fee": 0, "storage_fee": 0, "care_fee": 0})
        contract_service.renew_contract(contract.id, {})
        assert _entries(db_session, LedgerCategory.RENEW_FEE) == []

    def test_renew_ledger_failure_is_swallowed(self, db_session, make_contract, monkeypatch):
        contract = make_contract(principal=6000)

        def boom(**kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ledger_service, "append_cashbook_entry", boom)
        renewed = contract_service.renew_contract(contract.id, {})

        assert db_session.get(Contract, contract.id).status == "RENEWED"
        assert db_session.get(Contract, renewed.id).status == "ACTIVE"
        assert _entries(db_session, LedgerCategory.RENEW_FEE) == []
        assert len(_logs(db_session, renewed.id, "RENEW_CONTRACT")) == 1

    def test_renew_twice_rejected(self, db_session, make_contract):
        contract = make_contract()
        contract_service.renew_contract(contract.id, {})
        with pytest.raises(ValidationError) as exc:
            contract_service.renew_contract(contract.id, {})
        assert exc.value.details == {"status": "RENEWED"}


class TestRedeem:
    def test_redeem_books_principal_and_fee_profit(self, db_session, make_contract):
        contract = make_contract(principal=6000, term_days=15)

        redeemed = contract_service.redeem_contract(contract.id, {})

        assert redeemed.status == "REDEEMED"
        lines = _entries(db_session, LedgerCategory.REDEEM)
        assert len(lines) == 1
        assert lines[0].type == "IN"
        assert lines[0].amount == Decimal("6000.00")
        assert lines[0].profit == Decimal("450.00")

    def test_redeem_with_paid_total(self, db_session, make_contract):
        contract = make_contract(principal=6000)
        contract_service.redeem_contract(contract.id, {"paid_total": 6500})
        assert _entries(db_session, LedgerCategory.REDEEM)[0].amount == Decimal("6500.00")

    def test_redeem_route_rejects_non_numeric_paid_total(self, client, db_session, make_contract):
        contract = make_contract()
        resp = client.post(f"/api/contracts/{contract.id}/redeem", json={"paid_total": "lots"})
        assert resp.status_code == 400
        assert db_session.get(Contract, contract.id).status == "ACTIVE"

    def test_redeem_route_twice(self, client, db_session, make_contract):
        contract = make_contract()
        assert client.post(f"/api/contracts/{contract.id}/redeem", json={}).status_code == 200

        resp = client.post(f"/api/contracts/{contract.id}/redeem", json={})
        assert resp.status_code == 400
        assert resp.get_json()["status"] == "REDEEMED"


class TestCutPrincipal:
    def test_cut_amount_recognizes_share_of_fee(self, db_session, make_contract):
        """Cut 2000 of 6000 with fee 450: profit 150, principal 4000."""
        contract = make_contract(principal=6000, term_days=15)

        updated = contract_service.cut_principal(contract.id, {"cut_amount": 2000})

        assert updated.principal == Decimal("4000.00")
        assert updated.status == "ACTIVE"
        lines = _entries(db_session, LedgerCategory.CUT_PRINCIPAL)
        assert len(lines) == 1
        assert lines[0].amount == Decimal("2000.00")
        assert lines[0].profit == Decimal("150.00")
        assert len(_logs(db_session, contract.id, "CUT_PRINCIPAL")) == 1

    def test_new_principal(self, db_session, make_contract):
        contract = make_contract(principal=6000)
        updated = contract_service.cut_principal(contract.id, {"new_principal": "5000"})
        assert updated.principal == Decimal("5000.00")
        assert _entries(db_session, LedgerCategory.CUT_PRINCIPAL)[0].profit == Decimal("75.00")

    def test_cut_is_clamped_to_principal(self, db_session, make_contract):
        contract = make_contract(principal=6000)
        updated = contract_service.cut_principal(contract.id, {"cut_amount": 10000})
        assert updated.principal == 0
        assert _entries(db_session, LedgerCategory.CUT_PRINCIPAL)[0].amount == Decimal("6000.00")

    @pytest.mark.parametrize("payload", [{}, {"cut_amount": "abc"}, {"cut_amount": 0}, {"new_principal": 6000}])
    def test_invalid_cuts(self, client, db_session, make_contract, payload):
        contract = make_contract(principal=6000)
        resp = client.post(f"/api/contracts/{contract.id}/cut-principal", json=payload)
        assert resp.status_code == 400
        assert db_session.get(Contract, contract.id).principal == Decimal("6000.00")


class TestForfeit:
    def test_forfeit_moves_asset_to_stock(self, db_session, make_contract):
        contract = make_contract(principal=6000, model_name="iPhone 13 128GB", storage_code="A-002")

        forfeited, item = contract_service.forfeit_contract(contract.id)

        assert forfeited.status == "FORFEITED"
        assert item.name == "iPhone 13 128GB"
        assert item.source_type == "FORFEIT"
        assert item.source_contract_id == contract.id
        assert item.source_contract_code == contract.code
        assert item.cost == Decimal("6000.00")
        assert (item.quantity, item.quantity_available, item.quantity_sold) == (1, 1, 0)
        assert item.storage_location == "A-002"
        assert len(_logs(db_session, contract.id, "FORFEIT")) == 1

    def test_forfeit_without_model_name(self, db_session, make_contract):
        contract = make_contract(model_name=None)
        _, item = contract_service.forfeit_contract(contract.id)
        assert item.name == f"Asset from contract {contract.code}"

    def test_forfeit_replay_is_idempotent(self, db_session, make_contract):
        contract = make_contract()
        _, first = contract_service.forfeit_contract(contract.id)
        _, second = contract_service.forfeit_contract(contract.id)

        assert first.id == second.id
        assert db_session.query(InventoryItem).count() == 1
        assert len(_logs(db_session, contract.id, "FORFEIT")) == 1

    def test_forfeit_redeemed_contract_rejected(self, db_session, make_contract):
        contract = make_contract()
        contract_service.redeem_contract(contract.id, {})
        with pytest.raises(ValidationError):
            contract_service.forfeit_contract(contract.id)
        assert db_session.query(InventoryItem).count() == 0

    def test_forfeit_route(self, client, db_session, make_contract):
        contract = make_contract()
        resp = client.post(f"/api/contracts/{contract.id}/forfeit")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["contract"]["status"] == "FORFEITED"
        assert data["inventory_item"]["source_type"] == "FORFEIT"


class TestQueries:
    def test_missing_contract(self, client, db_session):
        assert client.get("/api/contracts/9999").status_code == 404
        with pytest.raises(NotFoundError):
            contract_service.get_contract(9999)

    def test_list_filters_by_status(self, client, db_session, make_contract):
        a = make_contract()
        make_contract()
        contract_service.redeem_contract(a.id, {})

        active = client.get("/api/contracts?status=ACTIVE").get_json()
        assert len(active) == 1
        assert len(client.get("/api/contracts").get_json()) == 2

    def test_fee_quote(self, client, db_session):
        resp = client.get("/api/contracts/fee-quote?principal=6000&term_days=7")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["total"] == 230
        assert (data["doc_fee"], data["storage_fee"], data["care_fee"]) == (102, 76, 52)

    @pytest.mark.parametrize("raw, term_days", [("0", 1), ("-3", 1), ("abc", 15), ("30", 30)])
    def test_fee_quote_reports_term_used(self, client, db_session, raw, term_days):
        data = client.get(f"/api/contracts/fee-quote?principal=6000&term_days={raw}").get_json()
        assert data["term_days"] == term_days
        assert data["total"] == calculate_fee(6000, term_days).total

    def test_next_storage_code(self, client, db_session, make_contract):
        assert client.get("/api/contracts/next-storage-code").get_json() == {"storage_code": "A-001"}

        make_contract(storage_code="A-001")
        make_contract(storage_code="A-007")
        make_contract(storage_code="B-050")
        assert client.get("/api/contracts/next-storage-code").get_json() == {"storage_code": "A-008"}

# Overview: Pytest coverage for consignment intake and commission sales.

from decimal import Decimal

import pytest

from pawnledger.models import CashbookEntry, ConsignmentContract, Customer, InventoryItem, LedgerCategory
from pawnledger.services import consignment_service
from pawnledger.time_utils import utcnow
from pawnledger.validation import ValidationError


def _lines(db_session):
    return {e.category: e for e in db_session.query(CashbookEntry).all()}


class TestCreateConsignment:
    def test_creates_item_and_contract(self, db_session, make_consignment):
        con = make_consignment(net_to_seller=1000, target_price=1200, quantity=2)

        year = utcnow().year
        assert con.code == f"CONS-{year}-00001"
        assert con.status == "ACTIVE"

        item = db_session.get(InventoryItem, con.inventory_item_id)
        assert item.code == f"INV-{year}-0001"
        assert item.source_type == "CONSIGNMENT"
        assert item.consignment_contract_id == con.id
        assert (item.quantity, item.quantity_available) == (2, 2)

        seller = db_session.get(Customer, con.seller_customer_id)
        assert seller.phone == "0811111111"
        assert db_session.query(CashbookEntry).count() == 0

    def test_advance_is_paid_out(self, db_session, make_consignment):
        con = make_consignment(advance_amount=300)
        line = _lines(db_session)[LedgerCategory.CONSIGNMENT_ADVANCE_OUT]
        assert line.type == "OUT"
        assert line.amount == Decimal("300.00")
        assert line.inventory_item_id == con.inventory_item_id

    @pytest.mark.parametrize("missing", ["seller_name", "item_name"])
    def test_required_fields(self, db_session, missing):
        payload = {"seller_name": "A", "item_name": "B", "net_to_seller": 100}
        payload[missing] = ""
        with pytest.raises(ValidationError):
            consignment_service.create_consignment(payload)
        assert db_session.query(ConsignmentContract).count() == 0
        assert db_session.query(InventoryItem).count() == 0

    def test_create_route(self, client, db_session):
        resp = client.post("/api/consignments", json={
            "seller_name": "Nok",
            "seller_id_card": "1500000000001",
            "item_name": "Apple Watch S8",
            "net_to_seller": 4000,
            "target_price": 5200,
            "photos": ["a.jpg", "b.jpg"],
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["photos"] == ["a.jpg", "b.jpg"]
        assert data["inventory_item"]["source_type"] == "CONSIGNMENT"

    def test_create_route_phone_only_seller(self, client, db_session):
        resp = client.post("/api/consignments", json={
            "seller_name": "Ton",
            "seller_phone": "0855555555",
            "item_name": "iPad Air",
            "net_to_seller": 6000,
        })
        assert resp.status_code == 201
        seller = db_session.get(Customer, resp.get_json()["seller_customer_id"])
        assert (seller.name, seller.phone) == ("Ton", "0855555555")


class TestSellConsignment:
    def test_commission_and_vat(self, db_session, make_consignment):
        """net 1000, sold at 1200: commission 200, VAT 14."""
        con = make_consignment(net_to_seller=1000, target_price=1200)

        sale = consignment_service.sell_consignment(con.id, {"sale_price": 1200, "quantity": 1})

        assert sale.gross_sale == Decimal("1200.00")
        assert sale.seller_payout == Decimal("1000.00")
        assert sale.commission_fee == Decimal("200.00")
        assert sale.vat_on_commission == Decimal("14.00")
        assert sale.consignment.status == "SOLD"
        assert sale.item.quantity_available == 0
        assert sale.item.gross_profit == Decimal("200.00")

        lines = _lines(db_session)
        assert lines[LedgerCategory.CONSIGNMENT_SALE_IN].amount == Decimal("1200.00")
        assert lines[LedgerCategory.CONSIGNMENT_SALE_IN].type == "IN"
        assert lines[LedgerCategory.CONSIGNMENT_PAYOUT_OUT].amount == Decimal("1000.00")
        assert lines[LedgerCategory.CONSIGNMENT_PAYOUT_OUT].type == "OUT"
        assert lines[LedgerCategory.CONSIGNMENT_COMMISSION_FEE].profit == Decimal("200.00")
        assert "qty 1" in lines[LedgerCategory.CONSIGNMENT_SALE_IN].description

    def test_below_seller_payout_rejected(self, client, db_session, make_consignment):
        con = make_consignment(net_to_seller=1000, target_price=1200)

        resp = client.post(f"/api/consignments/{con.id}/sell", json={"sale_price": 900})

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "PRICE_TOO_LOW"
        assert body["min_sale_price"] == 1000.0
        assert "min_sale_price" in body["message"]
        assert db_session.query(CashbookEntry).count() == 0
        assert db_session.get(ConsignmentContract, con.id).status == "ACTIVE"

    def test_partial_sale_keeps_contract_open(self, db_session, make_consignment):
        con = make_consignment(net_to_seller=500, quantity=3)

        sale = consignment_service.sell_consignment(con.id, {"sale_price": 700, "quantity": 2})

        assert sale.commission_fee == Decimal("400.00")
        assert sale.consignment.status == "ACTIVE"
        assert sale.item.quantity_available == 1
        assert sale.item.quantity_sold == 2
        assert "qty 2" in _lines(db_session)[LedgerCategory.CONSIGNMENT_SALE_IN].description

        final = consignment_service.sell_consignment(con.id, {"sale_price": 600, "quantity": 1})
        assert final.consignment.status == "SOLD"
        assert final.item.gross_profit == Decimal("500.00")

    def test_quantity_exceeds_stock(self, client, db_session, make_consignment):
        con = make_consignment(quantity=1)
        resp = client.post(f"/api/consignments/{con.id}/sell", json={"sale_price": 2000, "quantity": 2})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "QTY_EXCEED"
        assert body["available"] == 1

    def test_sale_price_required(self, db_session, make_consignment):
        con = make_consignment()
        with pytest.raises(ValidationError):
            consignment_service.sell_consignment(con.id, {"sale_price": 0})

    def test_buyer_is_linked(self, db_session, make_consignment):
        con = make_consignment(net_to_seller=100)
        sale = consignment_service.sell_consignment(con.id, {
            "sale_price": 150,
            "buyer_name": "Buyer",
            "buyer_phone": "0899999999",
        })
        buyer = db_session.get(Customer, sale.item.buyer_customer_id)
        assert buyer.name == "Buyer"
        assert sale.item.buyer_phone == "0899999999"

    def test_missing_consignment(self, client, db_session):
        assert client.post("/api/consignments/999/sell", json={"sale_price": 100}).status_code == 404


class TestListConsignments:
    def test_only_open_by_default(self, client, db_session, make_consignment):
        sold = make_consignment(net_to_seller=100)
        make_consignment(net_to_seller=100, item_name="iPad")
        consignment_service.sell_consignment(sold.id, {"sale_price": 100})

        assert len(client.get("/api/consignments").get_json()) == 1
        assert len(client.get("/api/consignments?only_open=0").get_json()) == 2

"""
Pytest fixtures for pawnledger backend tests.

Provides a throwaway SQLite database, the test client and helpers that
create contracts, consignments and stock through the services.
"""

import os
import tempfile

import pytest

from pawnledger import create_app
from pawnledger.extensions import db
from pawnledger.services import consignment_service, contract_service, inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    fd, path = tempfile.mkstemp(suffix=".sqlite3")
    os.close(fd)

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{path}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LINE_CHANNEL_ACCESS_TOKEN': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()

    os.remove(path)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    yield db.session

    db.session.rollback()


@pytest.fixture
def make_contract(db_session):
    """Create a deposit contract through the service (defaults: 6000 for 15 days)."""
    counter = {"n": 0}

    def _make(principal=6000, term_days=15, id_card=None, **extra):
        counter["n"] += 1
        payload = {
            "customer": {
                "name": extra.pop("name", f"Customer {counter['n']}"),
                "id_card": id_card or f"110000000{counter['n']:04d}",
                "phone": extra.pop("phone", None),
                "line_id": extra.pop("line_id", None),
            },
            "asset": {
                "model_name": extra.pop("model_name", "iPhone 13 128GB"),
                "serial": extra.pop("serial", f"SN{counter['n']:05d}"),
                "storage_code": extra.pop("storage_code", None),
            },
            "financial": {"principal": principal, "term_days": term_days},
        }
        if "fee_breakdown" in extra:
            payload["financial"]["fee_breakdown"] = extra.pop("fee_breakdown")
        return contract_service.create_contract(payload)

    return _make


@pytest.fixture
def make_consignment(db_session):
    def _make(net_to_seller=900, quantity=1, advance_amount=0, **extra):
        payload = {
            "seller_name": extra.pop("seller_name", "Somchai"),
            "seller_phone": extra.pop("seller_phone", "0811111111"),
            "item_name": extra.pop("item_name", "AirPods Pro"),
            "net_to_seller": net_to_seller,
            "target_price": extra.pop("target_price", 1200),
            "advance_amount": advance_amount,
            "quantity": quantity,
        }
        payload.update(extra)
        return consignment_service.create_consignment(payload)

    return _make


@pytest.fixture
def make_stock(db_session):
    def _make(name="Galaxy S22", quantity=1, unit_price=500, **extra):
        payload = {"name": name, "quantity": quantity, "unit_price": unit_price}
        payload.update(extra)
        return inventory_service.intake_item(payload)

    return _make

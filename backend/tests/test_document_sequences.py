# Overview: Pytest coverage for running document numbers and storage slot previews.

import pytest

from pawnledger.models import DocumentSequence
from pawnledger.services.document_service import (
    DocumentSequenceError,
    next_document_code,
    next_sequence_number,
    next_storage_code,
)


class TestSequences:
    def test_numbers_are_consecutive(self, db_session):
        numbers = [next_sequence_number(document_type="DEPOSIT", period="2025") for _ in range(3)]
        db_session.commit()

        assert numbers == [1, 2, 3]
        row = db_session.query(DocumentSequence).one()
        assert row.next_number == 4

    def test_periods_are_independent(self, db_session):
        assert next_sequence_number(document_type="DEPOSIT", period="2024") == 1
        assert next_sequence_number(document_type="DEPOSIT", period="2025") == 1
        assert next_sequence_number(document_type="INVENTORY", period="2025") == 1
        assert next_sequence_number(document_type="DEPOSIT", period="2024") == 2

    def test_rollback_releases_number(self, db_session):
        next_sequence_number(document_type="DEPOSIT", period="2025")
        db_session.commit()
        next_sequence_number(document_type="DEPOSIT", period="2025")
        db_session.rollback()

        assert next_sequence_number(document_type="DEPOSIT", period="2025") == 2

    def test_document_type_required(self, db_session):
        with pytest.raises(DocumentSequenceError):
            next_sequence_number(document_type="")


class TestDocumentCodes:
    @pytest.mark.parametrize("document_type, expected", [
        ("DEPOSIT", "DEP-2025-001"),
        ("CONSIGNMENT", "CONS-2025-00001"),
        ("INVENTORY", "INV-2025-0001"),
    ])
    def test_formats(self, db_session, document_type, expected):
        assert next_document_code(document_type, year=2025) == expected

    def test_padding_grows_past_width(self, db_session):
        db_session.add(DocumentSequence(document_type="DEPOSIT", period="2025", next_number=1000))
        db_session.commit()
        assert next_document_code("DEPOSIT", year=2025) == "DEP-2025-1000"

    def test_unknown_type(self, db_session):
        with pytest.raises(DocumentSequenceError):
            next_document_code("INVOICE", year=2025)


class TestStorageCode:
    def test_empty_store(self, db_session):
        assert next_storage_code() == "A-001"

    def test_highest_a_code_wins(self, db_session, make_contract):
        make_contract(storage_code="A-002")
        make_contract(storage_code="a-010")
        make_contract(storage_code="B-500")
        make_contract(storage_code="shelf 3")

        assert next_storage_code() == "A-011"

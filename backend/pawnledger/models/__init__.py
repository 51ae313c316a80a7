from .customers import Customer
from .contracts import Contract, ContractImage, ContractActionLog
from .inventory import InventoryItem
from .consignments import ConsignmentContract
from .ledger import CashbookEntry, LedgerCategory
from .sequences import DocumentSequence
from .auth import AccessPin

__all__ = [
    'Customer',
    'Contract', 'ContractImage', 'ContractActionLog',
    'InventoryItem',
    'ConsignmentContract',
    'CashbookEntry', 'LedgerCategory',
    'DocumentSequence',
    'AccessPin',
]

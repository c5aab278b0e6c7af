from .catalog import Product, StockMovement
from .people import User, Customer
from .ledger import (
    Transaction,
    TransactionLine,
    RefundRecord,
    DocumentSequence,
    TRANSACTION_STATUS_COMPLETED,
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
    TRANSACTION_STATUS_REFUNDED,
)

__all__ = [
    'Product', 'StockMovement',
    'User', 'Customer',
    'Transaction', 'TransactionLine', 'RefundRecord', 'DocumentSequence',
    'TRANSACTION_STATUS_COMPLETED', 'TRANSACTION_STATUS_PARTIALLY_REFUNDED', 'TRANSACTION_STATUS_REFUNDED',
]

"""
Stockwatch Models.

Core models for the stock pipeline:
- Product: Stocked item and its current quantity
- StockTransaction: Immutable ledger of quantity changes
- Anomaly: Detected irregularity awaiting triage
"""

from stockwatch.models.anomaly import Anomaly
from stockwatch.models.enums import (
    AnomalyType,
    DetectionPass,
    MutationState,
    Severity,
    TransactionType,
)
from stockwatch.models.product import Product
from stockwatch.models.transaction import StockTransaction

__all__ = [
    'TransactionType',
    'AnomalyType',
    'Severity',
    'DetectionPass',
    'MutationState',
    'Product',
    'StockTransaction',
    'Anomaly',
]

"""
Stock services — one class per pipeline stage.

    from stockwatch.services import StockLedger, TransactionRecorder, MutationOrchestrator
"""

from stockwatch.services.catalog import ProductCatalog
from stockwatch.services.detection import DetectionTrigger
from stockwatch.services.ledger import StockLedger
from stockwatch.services.orchestrator import MutationOrchestrator
from stockwatch.services.recorder import TransactionRecorder
from stockwatch.services.triage import AnomalyRegistry

__all__ = [
    'StockLedger',
    'TransactionRecorder',
    'MutationOrchestrator',
    'DetectionTrigger',
    'AnomalyRegistry',
    'ProductCatalog',
]

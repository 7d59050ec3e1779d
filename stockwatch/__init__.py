"""
Django Stockwatch — stock ledger with anomaly detection.

Usage:
    from stockwatch import inventory, StockwatchError

    outcome = inventory.sell(product.pk, 3, reason='Counter sale')
    outcome.transaction.new_quantity
    inventory.list_anomalies(resolved=False)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'inventory':
        from stockwatch.service import Inventory
        return Inventory
    elif name == 'StockwatchError':
        from stockwatch.exceptions import StockwatchError
        return StockwatchError
    elif name == 'Product':
        from stockwatch.models.product import Product
        return Product
    elif name == 'StockTransaction':
        from stockwatch.models.transaction import StockTransaction
        return StockTransaction
    elif name == 'Anomaly':
        from stockwatch.models.anomaly import Anomaly
        return Anomaly
    elif name == 'TransactionType':
        from stockwatch.models.enums import TransactionType
        return TransactionType
    elif name == 'AnomalyType':
        from stockwatch.models.enums import AnomalyType
        return AnomalyType
    elif name == 'Severity':
        from stockwatch.models.enums import Severity
        return Severity
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'inventory',
    'StockwatchError',
    'Product',
    'StockTransaction',
    'Anomaly',
    'TransactionType',
    'AnomalyType',
    'Severity',
]

__version__ = '0.1.0'

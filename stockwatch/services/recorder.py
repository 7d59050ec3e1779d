"""
Transaction recorder — append-only history of stock changes.
"""

import logging
from datetime import datetime

from django.db.models import Q

from stockwatch.exceptions import ValidationError
from stockwatch.models.transaction import StockTransaction
from stockwatch.services.ledger import coerce_type

logger = logging.getLogger('stockwatch')


def actor_label(actor) -> str:
    """Identity string stored on a transaction ('' = unattributed)."""
    if actor is None:
        return ''
    if isinstance(actor, str):
        return actor
    get_username = getattr(actor, 'get_username', None)
    if callable(get_username):
        return get_username()
    return str(actor)


class TransactionRecorder:
    """Creates and reads StockTransaction rows."""

    @classmethod
    def record(cls, product_id: int, type, previous_quantity: int, new_quantity: int,
               reason: str = '', actor=None) -> StockTransaction:
        """
        Append one transaction for an already-applied ledger change.

        Raises:
            ValidationError: If a required field is missing or malformed
        """
        tx_type = coerce_type(type)
        for field, value in (('previous_quantity', previous_quantity),
                             ('new_quantity', new_quantity)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError('INVALID_FIELD', field=field, value=value)

        tx = StockTransaction.objects.create(
            product_id=product_id,
            type=tx_type,
            quantity=new_quantity - previous_quantity,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reason=reason or '',
            actor=actor_label(actor),
        )
        logger.info(
            "transaction.recorded",
            extra={
                "transaction_id": tx.pk,
                "product_id": product_id,
                "type": tx_type.value,
                "quantity": tx.quantity,
            },
        )
        return tx

    @classmethod
    def list(cls, product_id: int | None = None, type=None,
             since: datetime | None = None, until: datetime | None = None,
             search: str | None = None, limit: int | None = None):
        """Transactions matching the filters, newest first."""
        qs = StockTransaction.objects.select_related('product')

        if product_id is not None:
            qs = qs.filter(product_id=product_id)
        if type:
            qs = qs.filter(type=coerce_type(type))
        if since is not None:
            qs = qs.filter(created_at__gte=since)
        if until is not None:
            qs = qs.filter(created_at__lte=until)
        if search:
            qs = qs.filter(
                Q(reason__icontains=search) | Q(product__name__icontains=search)
            )

        qs = qs.order_by('-created_at', '-id')
        if limit is not None:
            qs = qs[:limit]
        return qs

    @classmethod
    def history(cls, product_id: int):
        """All transactions of a product in commit order."""
        return StockTransaction.objects.for_product(product_id).in_commit_order()

    @classmethod
    def replay(cls, product_id: int, start_quantity: int) -> int:
        """Quantity reconstructed from start_quantity by applying every delta in order."""
        quantity = start_quantity
        for delta in cls.history(product_id).values_list('quantity', flat=True):
            quantity += delta
        return quantity

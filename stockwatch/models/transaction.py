"""
StockTransaction model — immutable ledger of quantity changes.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockwatch.models.enums import TransactionType


class StockTransactionQuerySet(models.QuerySet):
    """QuerySet that refuses bulk rewrites of the ledger."""

    def update(self, **kwargs):
        raise ValueError(
            "Transactions are immutable. "
            "To correct stock, record a compensating adjustment."
        )

    def delete(self):
        raise ValueError(
            "Transactions are append-only and cannot be deleted."
        )

    def for_product(self, product_id):
        return self.filter(product_id=product_id)

    def in_commit_order(self):
        return self.order_by('created_at', 'id')


class StockTransaction(models.Model):
    """
    Immutable record of one quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new transactions (usually an adjustment)
    - new_quantity = previous_quantity + quantity
    """

    product = models.ForeignKey(
        'stockwatch.Product',
        on_delete=models.PROTECT,
        related_name='transactions',
        verbose_name=_('Product'),
    )
    type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        verbose_name=_('Type'),
    )
    quantity = models.IntegerField(
        verbose_name=_('Change'),
        help_text=_('Positive = stock in, negative = stock out'),
    )
    previous_quantity = models.PositiveIntegerField(verbose_name=_('Previous quantity'))
    new_quantity = models.PositiveIntegerField(verbose_name=_('New quantity'))

    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))
    actor = models.CharField(
        max_length=150,
        blank=True,
        default='',
        verbose_name=_('Actor'),
        help_text=_('Who performed the change. Empty = unattributed.'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Date/time'))

    objects = StockTransactionQuerySet.as_manager()

    class Meta:
        verbose_name = _('Transaction')
        verbose_name_plural = _('Transactions')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['product', 'created_at'], name='stockwatch_tx_product_created'),
            models.Index(fields=['type'], name='stockwatch_tx_type'),
        ]

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk:
            raise ValueError(
                "Transactions are immutable. "
                "To correct stock, record a compensating adjustment."
            )

        if self.new_quantity != self.previous_quantity + self.quantity:
            raise ValueError(
                f"new_quantity ({self.new_quantity}) must equal "
                f"previous_quantity ({self.previous_quantity}) + quantity ({self.quantity})"
            )

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — transactions are append-only."""
        raise ValueError(
            "Transactions are append-only and cannot be deleted."
        )

    def __str__(self) -> str:
        signal = '+' if self.quantity > 0 else ''
        return f"{self.type} {signal}{self.quantity} ({self.previous_quantity} → {self.new_quantity})"

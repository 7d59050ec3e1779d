"""
Product model — what is sold, with its current stock level.
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class ProductQuerySet(models.QuerySet):
    """Custom QuerySet for Product with convenience filters."""

    def production(self):
        """Everything except scenario harness fixtures."""
        return self.filter(is_fixture=False)

    def low_stock(self):
        """Products at or below their minimum stock."""
        return self.filter(quantity__lte=F('minimum_stock'))

    def search(self, term):
        """Case-insensitive match on name or category."""
        return self.filter(Q(name__icontains=term) | Q(category__icontains=term))


class Product(models.Model):
    """
    A stocked product.

    `quantity` is written only by the stock ledger. Everything else is
    plain catalog data editable through ProductCatalog.
    """

    name = models.CharField(max_length=200, verbose_name=_('Name'))
    category = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Category'))

    quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Quantity'),
        help_text=_('Changed only through stock transactions.'),
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_('Price'),
    )
    minimum_stock = models.PositiveIntegerField(
        default=10,
        verbose_name=_('Minimum stock'),
        help_text=_('Low stock is flagged at or below this quantity.'),
    )
    expiry_date = models.DateField(null=True, blank=True, verbose_name=_('Expiry date'))

    # Set only by the scenario harness
    is_fixture = models.BooleanField(default=False, editable=False, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        verbose_name = _('Product')
        verbose_name_plural = _('Products')
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name='stockwatch_product_quantity_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(price__gte=0),
                name='stockwatch_product_price_non_negative',
            ),
        ]

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.minimum_stock

    def __str__(self) -> str:
        return self.name

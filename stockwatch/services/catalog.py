"""
Product catalog — product persistence outside the stock ledger.

Creating a product sets its opening quantity; afterwards quantity only
changes through the mutation pipeline.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import ProtectedError

from stockwatch.conf import stockwatch_settings
from stockwatch.exceptions import NotFoundError, ValidationError
from stockwatch.models.product import Product

logger = logging.getLogger('stockwatch')

EDITABLE_FIELDS = ('name', 'category', 'price', 'minimum_stock', 'expiry_date')


class ProductCatalog:
    """CRUD for products."""

    @classmethod
    def get_product(cls, product_id: int) -> Product:
        try:
            return Product.objects.get(pk=product_id)
        except Product.DoesNotExist:
            raise NotFoundError('PRODUCT_NOT_FOUND', product_id=product_id)

    @classmethod
    def list_products(cls, search: str | None = None, category: str | None = None,
                      low_stock: bool | None = None, include_fixtures: bool = False):
        """List products with filters."""
        qs = Product.objects.all()

        if not include_fixtures:
            qs = qs.production()
        if search:
            qs = qs.search(search)
        if category:
            qs = qs.filter(category__iexact=category)
        if low_stock:
            qs = qs.low_stock()

        return qs

    @classmethod
    def create_product(cls, name: str, quantity: int = 0, price=Decimal('0'),
                       minimum_stock: int | None = None, category: str = '',
                       expiry_date=None) -> Product:
        """
        Create a product with an opening quantity.

        Raises:
            ValidationError('INVALID_FIELD'): On missing name, negative
                quantity/price/minimum_stock or non-numeric price
        """
        if minimum_stock is None:
            minimum_stock = stockwatch_settings.DEFAULT_MINIMUM_STOCK

        product = Product(
            name=name,
            category=category,
            quantity=quantity,
            price=cls._price(price),
            minimum_stock=minimum_stock,
            expiry_date=expiry_date,
        )
        cls._validate(product)
        product.save()

        logger.info(
            "product.created",
            extra={"product_id": product.pk, "product_name": product.name, "quantity": product.quantity},
        )
        return product

    @classmethod
    def update_product(cls, product_id: int, **fields) -> Product:
        """
        Update catalog fields.

        Raises:
            ValidationError('QUANTITY_NOT_EDITABLE'): If quantity is passed
            ValidationError('INVALID_FIELD'): On unknown or invalid fields
            NotFoundError('PRODUCT_NOT_FOUND'): If the product doesn't exist
        """
        if 'quantity' in fields:
            raise ValidationError('QUANTITY_NOT_EDITABLE', product_id=product_id)

        unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError('INVALID_FIELD', fields=unknown)

        with transaction.atomic():
            try:
                product = Product.objects.select_for_update().get(pk=product_id)
            except Product.DoesNotExist:
                raise NotFoundError('PRODUCT_NOT_FOUND', product_id=product_id)

            if 'price' in fields:
                fields['price'] = cls._price(fields['price'])
            for name, value in fields.items():
                setattr(product, name, value)

            cls._validate(product)
            product.save(update_fields=[*fields, 'updated_at'])

        return product

    @classmethod
    def delete_product(cls, product_id: int) -> None:
        """
        Delete a product that never had stock transactions.

        Raises:
            ValidationError('PRODUCT_HAS_HISTORY'): If transactions or
                anomalies reference it
            NotFoundError('PRODUCT_NOT_FOUND'): If the product doesn't exist
        """
        product = cls.get_product(product_id)
        try:
            product.delete()
        except ProtectedError:
            raise ValidationError('PRODUCT_HAS_HISTORY', product_id=product_id)

        logger.info("product.deleted", extra={"product_id": product_id})

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _price(cls, value) -> Decimal:
        try:
            return Decimal(str(value))
        except InvalidOperation:
            raise ValidationError('INVALID_FIELD', field='price', value=value)

    @classmethod
    def _validate(cls, product: Product) -> None:
        for field in ('quantity', 'minimum_stock'):
            value = getattr(product, field)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError('INVALID_FIELD', field=field, value=value)
        try:
            product.full_clean(exclude=['quantity', 'minimum_stock'])
        except DjangoValidationError as exc:
            raise ValidationError('INVALID_FIELD', errors=exc.message_dict)

"""
Tests for ProductCatalog.
"""

from decimal import Decimal

import pytest

from stockwatch.exceptions import NotFoundError, ValidationError
from stockwatch.models import Product
from stockwatch.services.catalog import ProductCatalog
from stockwatch.services.ledger import StockLedger
from stockwatch.services.recorder import TransactionRecorder


pytestmark = pytest.mark.django_db


class TestCreate:

    def test_create_with_defaults(self):
        product = ProductCatalog.create_product('Croissant')

        assert product.quantity == 0
        assert product.minimum_stock == 10
        assert product.price == Decimal('0')
        assert product.is_fixture is False

    def test_price_from_string(self):
        product = ProductCatalog.create_product('Croissant', price='4.25')

        assert product.price == Decimal('4.25')

    @pytest.mark.parametrize('fields', [
        {'quantity': -1},
        {'minimum_stock': -5},
        {'price': '-1'},
        {'price': 'free'},
    ])
    def test_invalid_fields(self, fields):
        with pytest.raises(ValidationError) as exc:
            ProductCatalog.create_product('Croissant', **fields)

        assert exc.value.code == 'INVALID_FIELD'
        assert Product.objects.count() == 0

    def test_name_required(self):
        with pytest.raises(ValidationError):
            ProductCatalog.create_product('')


class TestUpdate:

    def test_update_catalog_fields(self, product):
        updated = ProductCatalog.update_product(product.pk, name='Decaf Beans', minimum_stock=20)

        assert updated.name == 'Decaf Beans'
        assert updated.minimum_stock == 20

    def test_quantity_not_editable(self, product):
        with pytest.raises(ValidationError) as exc:
            ProductCatalog.update_product(product.pk, quantity=500)

        assert exc.value.code == 'QUANTITY_NOT_EDITABLE'
        assert StockLedger.quantity(product.pk) == 100

    def test_unknown_field(self, product):
        with pytest.raises(ValidationError) as exc:
            ProductCatalog.update_product(product.pk, colour='red')

        assert exc.value.code == 'INVALID_FIELD'

    def test_unknown_product(self, db):
        with pytest.raises(NotFoundError):
            ProductCatalog.update_product(404, name='Ghost')


class TestDelete:

    def test_delete_without_history(self, product):
        ProductCatalog.delete_product(product.pk)

        assert not Product.objects.filter(pk=product.pk).exists()

    def test_delete_with_history_rejected(self, product):
        TransactionRecorder.record(product.pk, 'sale', 100, 99)

        with pytest.raises(ValidationError) as exc:
            ProductCatalog.delete_product(product.pk)

        assert exc.value.code == 'PRODUCT_HAS_HISTORY'
        assert Product.objects.filter(pk=product.pk).exists()


class TestList:

    def test_filters(self, product, scarce_product):
        assert list(ProductCatalog.list_products(search='espresso')) == [product]
        assert list(ProductCatalog.list_products(category='dairy')) == [scarce_product]
        assert list(ProductCatalog.list_products(low_stock=True)) == [scarce_product]

    def test_fixtures_hidden_by_default(self, product):
        fixture = Product.objects.create(name='Test Product - X', quantity=1, is_fixture=True)

        assert fixture not in ProductCatalog.list_products()
        assert fixture in ProductCatalog.list_products(include_fixtures=True)

"""
Test suite for the catalog module
Tests: Product CRUD, validation, filters, product list cache, protected delete
"""
from decimal import Decimal
from unittest import mock
from django.shortcuts import get_object_or_404
from rest_framework import status
from distribuidora.core.test_utils import TestDataFactory, APITestCase
from distribuidora.core.models import AuditLog
from distribuidora.inventory.models import StockMovement
from distribuidora.pos.services import place_order
from .models import Product


class ProductTests(APITestCase):
    """Test product endpoints"""

    def test_create_product(self):
        data = {
            'name': 'Galão 20L',
            'type': 'water',
            'price_full': '25.00',
            'price_refill': '12.50',
            'stock_full': 8,
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.price_refill, Decimal('12.50'))
        self.assertEqual(product.stock_empty, 0)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Product').exists())

    def test_create_product_rejects_empty_name(self):
        data = {'name': '   ', 'price_full': '1.00', 'price_refill': '1.00'}
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_create_product_rejects_negative_values(self):
        data = {'name': 'Botijão P13', 'type': 'gas', 'price_full': '-1.00',
                'price_refill': '90.00', 'stock_full': -2}
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price_full', response.data)
        self.assertIn('stock_full', response.data)

    def test_create_product_rejects_unknown_type(self):
        data = {'name': 'Lenha', 'type': 'wood', 'price_full': '1.00', 'price_refill': '1.00'}
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_products_ordered_by_name(self):
        TestDataFactory.create_product(name='Galao 20L')
        TestDataFactory.create_product(name='Carvao 5kg', type='coal')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Carvao 5kg', 'Galao 20L'])

    def test_list_products_type_filter(self):
        TestDataFactory.create_product(name='Carvão 5kg', type='coal')
        TestDataFactory.create_product(name='Botijão P13', type='gas')
        response = self.client.get('/api/v1/products/?type=gas')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Botijão P13')

    def test_list_products_search(self):
        TestDataFactory.create_product(name='Galão 20L')
        TestDataFactory.create_product(name='Botijão P13', type='gas')
        response = self.client.get('/api/v1/products/?search=galão')
        self.assertEqual(len(response.data), 1)

    def test_list_products_max_stock_filter(self):
        TestDataFactory.create_product(name='Galao 20L', stock_full=2)
        TestDataFactory.create_product(name='Carvao 5kg', type='coal', stock_full=20)
        response = self.client.get('/api/v1/products/?max_stock=5')
        self.assertEqual([p['name'] for p in response.data], ['Galao 20L'])

    def test_list_products_invalid_type_filter(self):
        response = self.client.get('/api/v1/products/?type=wood')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_reflects_updates(self):
        """Cached list must not survive a product change"""
        product = TestDataFactory.create_product(name='Galão 20L', stock_full=5)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data[0]['stock_full'], 5)

        response = self.client.patch(f'/api/v1/products/{product.id}/', {'stock_full': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data[0]['stock_full'], 2)

    def test_put_without_stock_keeps_stock(self):
        product = TestDataFactory.create_product(name='Galão 20L', stock_full=7, stock_empty=3)
        data = {'name': 'Galão 20L Cristal', 'type': 'water', 'price_full': '11.00', 'price_refill': '6.00'}
        response = self.client.put(f'/api/v1/products/{product.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.name, 'Galão 20L Cristal')
        self.assertEqual(product.stock_full, 7)
        self.assertEqual(product.stock_empty, 3)

    def test_rename_does_not_undo_concurrent_sale(self):
        product = TestDataFactory.create_product(name='Galão 20L', stock_full=5)

        def fetch_then_sell(*args, **kwargs):
            fetched = get_object_or_404(*args, **kwargs)
            # another terminal sells while this request holds a stale copy
            place_order([{'product_id': fetched.id, 'quantity': 2, 'unit_price': '10.00'}])
            return fetched

        with mock.patch('distribuidora.catalog.views.get_object_or_404', side_effect=fetch_then_sell):
            response = self.client.patch(f'/api/v1/products/{product.id}/', {'name': 'Galão 20L Cristal'},
                                         format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.name, 'Galão 20L Cristal')
        sold = sum(StockMovement.objects.filter(product=product, movement_type=StockMovement.OUT)
                   .values_list('quantity', flat=True))
        self.assertGreater(sold, 0)
        self.assertEqual(product.stock_full, 5 - sold)

    def test_get_missing_product(self):
        response = self.client.get('/api/v1/products/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_product(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.id).exists())

    def test_delete_product_with_orders_is_refused(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_order(self.user, [(product, 1, False)])
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Product.objects.filter(pk=product.id).exists())

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

"""
Test suite for the inventory module
Tests: Stock in/out/adjust services and endpoints, movement listing
"""
from django.test import TestCase
from rest_framework import status
from distribuidora.core.test_utils import TestDataFactory, APITestCase
from .exceptions import InsufficientStock, InvalidQuantity
from .models import StockMovement
from . import services


class StockServiceTests(TestCase):
    """Test the stock mutation services directly"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(stock_full=5)

    def test_stock_in(self):
        movement = services.stock_in(self.product, 3, user=self.user)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 8)
        self.assertEqual(movement.movement_type, StockMovement.IN)
        self.assertEqual(movement.quantity, 3)
        self.assertEqual(movement.created_by, self.user)

    def test_stock_in_accepts_product_id(self):
        services.stock_in(self.product.id, 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 6)

    def test_stock_in_rejects_non_positive(self):
        for quantity in (0, -1):
            with self.assertRaises(InvalidQuantity):
                services.stock_in(self.product, quantity)
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_stock_out_up_to_available(self):
        services.stock_out(self.product, 5)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 0)
        self.assertEqual(StockMovement.objects.get().movement_type, StockMovement.OUT)

    def test_stock_out_beyond_available(self):
        with self.assertRaises(InsufficientStock) as ctx:
            services.stock_out(self.product, 6)
        shortage = ctx.exception.shortages[0]
        self.assertEqual((shortage.product_id, shortage.requested, shortage.available), (self.product.id, 6, 5))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 5)
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_stock_adjust_signed(self):
        services.stock_adjust(self.product, -2)
        services.stock_adjust(self.product, 4)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 7)
        self.assertEqual(
            sorted(StockMovement.objects.values_list('quantity', flat=True)),
            [-2, 4]
        )

    def test_stock_adjust_rejects_zero(self):
        with self.assertRaises(InvalidQuantity):
            services.stock_adjust(self.product, 0)

    def test_stock_adjust_cannot_go_negative(self):
        with self.assertRaises(InsufficientStock):
            services.stock_adjust(self.product, -6)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 5)

    def test_signed_quantity(self):
        movement = services.stock_out(self.product, 2)
        self.assertEqual(movement.signed_quantity, -2)


class StockApiTests(APITestCase):
    """Test stock endpoints"""

    def setUp(self):
        super().setUp()
        self.product = TestDataFactory.create_product(name='Botijão P13', type='gas', stock_full=4)

    def test_stock_in_endpoint(self):
        response = self.client.post('/api/v1/stock/in/', {'product_id': self.product.id, 'quantity': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['movement_type'], 'IN')
        self.assertEqual(response.data['product_name'], 'Botijão P13')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 10)

    def test_stock_in_invalidates_product_list(self):
        self.client.get('/api/v1/products/')
        self.client.post('/api/v1/stock/in/', {'product_id': self.product.id, 'quantity': 1}, format='json')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data[0]['stock_full'], 5)

    def test_stock_out_insufficient(self):
        response = self.client.post('/api/v1/stock/out/', {'product_id': self.product.id, 'quantity': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['insufficient'],
                         [{'product_id': self.product.id, 'requested': 5, 'available': 4}])

    def test_stock_in_rejects_zero(self):
        response = self.client.post('/api/v1/stock/in/', {'product_id': self.product.id, 'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stock_adjust_negative(self):
        response = self.client.post('/api/v1/stock/adjust/', {'product_id': self.product.id, 'quantity': -1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['quantity'], -1)

    def test_unknown_product(self):
        response = self.client.post('/api/v1/stock/in/', {'product_id': 999999, 'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_movements_newest_first_and_filtered(self):
        other = TestDataFactory.create_product(stock_full=1)
        services.stock_in(self.product, 1)
        services.stock_out(self.product, 2)
        services.stock_in(other, 1)

        response = self.client.get(f'/api/v1/stock/movements/?product_id={self.product.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['movement_type'] for m in response.data], ['OUT', 'IN'])

        response = self.client.get('/api/v1/stock/movements/')
        self.assertEqual(len(response.data), 3)

    def test_movements_filter_by_type_and_invalid_product_id(self):
        services.stock_in(self.product, 1)
        services.stock_adjust(self.product, -1)
        response = self.client.get('/api/v1/stock/movements/?movement_type=ADJUST')
        self.assertEqual([m['quantity'] for m in response.data], [-1])

        response = self.client.get('/api/v1/stock/movements/?product_id=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

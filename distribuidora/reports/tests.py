"""
Test suite for the reports module
Tests: Dashboard sales totals, critical stock, top products, active customers
"""
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from rest_framework import status
from distribuidora.core.test_utils import TestDataFactory, APITestCase


class DashboardTests(APITestCase):
    """Test the dashboard endpoint"""

    def test_empty_dashboard(self):
        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sales_today'], '0.00')
        self.assertEqual(response.data['sales_month'], '0.00')
        self.assertEqual(response.data['critical_stock'], [])
        self.assertEqual(response.data['top_products'], [])
        self.assertEqual(response.data['active_customers'], 0)

    def test_sales_and_active_customers(self):
        water = TestDataFactory.create_product(name='Galão 20L', price_full=Decimal('10.00'), stock_full=50)
        gas = TestDataFactory.create_product(name='Botijão P13', type='gas', price_full=Decimal('120.00'),
                                             stock_full=50)
        maria = TestDataFactory.create_customer(name='Maria')
        TestDataFactory.create_order(self.user, [(water, 3, False)], customer=maria)
        TestDataFactory.create_order(self.user, [(water, 1, False)], customer=maria)
        TestDataFactory.create_order(self.user, [(gas, 1, False)])

        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.data['sales_today'], '160.00')
        self.assertEqual(response.data['sales_month'], '160.00')
        self.assertEqual(response.data['active_customers'], 1)
        self.assertEqual(response.data['top_products'][0], {
            'product_id': water.id,
            'product_name': 'Galão 20L',
            'total_quantity': 4,
            'total_revenue': '40.00',
        })
        self.assertEqual(response.data['top_products'][1]['product_id'], gas.id)

    def test_old_orders_leave_today_and_top_products(self):
        water = TestDataFactory.create_product(stock_full=50)
        order = TestDataFactory.create_order(self.user, [(water, 2, False)])
        order.created_at = timezone.now() - timedelta(days=40)
        order.save(update_fields=['created_at'])

        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.data['sales_today'], '0.00')
        self.assertEqual(response.data['top_products'], [])

    def test_top_products_limited_to_five(self):
        for i in range(7):
            product = TestDataFactory.create_product(name=f'Produto {i}', stock_full=50)
            TestDataFactory.create_order(self.user, [(product, i + 1, False)])
        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(len(response.data['top_products']), 5)
        self.assertEqual(response.data['top_products'][0]['product_name'], 'Produto 6')

    def test_critical_stock_default_threshold(self):
        TestDataFactory.create_product(name='Carvão 5kg', type='coal', stock_full=10)
        TestDataFactory.create_product(name='Galão 20L', stock_full=11)
        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.data['critical_stock_threshold'], 10)
        self.assertEqual([p['name'] for p in response.data['critical_stock']], ['Carvão 5kg'])

    def test_critical_stock_threshold_from_settings(self):
        TestDataFactory.create_setting('critical_stock_threshold', '3')
        TestDataFactory.create_product(name='A', stock_full=2)
        TestDataFactory.create_product(name='B', stock_full=5)
        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.data['critical_stock_threshold'], 3)
        self.assertEqual([p['name'] for p in response.data['critical_stock']], ['A'])

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

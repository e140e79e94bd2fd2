"""
Test suite for the client package
Tests: ApiClient against the live URLconf, Session persistence, CheckoutSession
(confirm-then-update, local and server-side stock refusal, transport failure)
"""
import json
import os
import tempfile
from decimal import Decimal
from pathlib import Path
from unittest import mock

import requests
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from rest_framework.test import RequestsClient

from distribuidora.core.test_utils import TestDataFactory
from distribuidora.inventory.models import StockMovement
from distribuidora.pos.models import Order
from .api import ApiClient, ApiError, InsufficientStockError
from .checkout import CheckoutSession, REASON_EMPTY, REASON_INSUFFICIENT_STOCK, REASON_IN_PROGRESS
from .session import Session, SESSION_FILE_ENV

BASE_URL = 'http://testserver/api/v1'


class ClientTestCase(TestCase):
    """Logged-in ApiClient talking to the test server in-process"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(username='caixa1', password='senha123')
        self.api = ApiClient(BASE_URL, session=RequestsClient())
        self.api.login('caixa1', 'senha123')


class ApiClientTests(ClientTestCase):

    def test_login_and_me(self):
        self.assertIsNotNone(self.api.access_token)
        self.assertEqual(self.api.me()['username'], 'caixa1')

    def test_bad_credentials(self):
        api = ApiClient(BASE_URL, session=RequestsClient())
        with self.assertRaises(ApiError) as ctx:
            api.login('caixa1', 'errada')
        self.assertEqual(ctx.exception.status, 401)

    def test_not_found_raises(self):
        with self.assertRaises(ApiError) as ctx:
            self.api.get_product(424242)
        self.assertEqual(ctx.exception.status, 404)

    def test_expired_access_token_is_refreshed(self):
        self.api.access_token = 'garbage'
        self.assertEqual(self.api.me()['username'], 'caixa1')
        self.assertNotEqual(self.api.access_token, 'garbage')

    def test_transport_failure(self):
        with mock.patch.object(self.api.session, 'request', side_effect=requests.ConnectionError('down')):
            with self.assertRaises(ApiError) as ctx:
                self.api.list_products()
        self.assertIsNone(ctx.exception.status)

    def test_customer_and_stock_operations(self):
        customer = self.api.create_customer({'name': 'Maria', 'phone': '11987654321'})
        self.assertEqual(self.api.search_customers_by_phone('8765')[0]['id'], customer['id'])

        product = TestDataFactory.create_product(stock_full=2)
        self.api.stock_in(product.id, 5)
        self.api.stock_adjust(product.id, -1)
        self.assertEqual(self.api.get_product(product.id)['stock_full'], 6)
        self.assertEqual([m['movement_type'] for m in self.api.list_stock_movements(product.id)], ['ADJUST', 'IN'])

    def test_receipt_is_html(self):
        product = TestDataFactory.create_product(name='Galão 20L')
        order = TestDataFactory.create_order(self.user, [(product, 1, True)])
        html = self.api.generate_receipt(order.id)
        self.assertIn('Galão 20L (com casco)', html)

    def test_dashboard_amounts_are_decimals(self):
        self.assertEqual(self.api.dashboard()['sales_today'], Decimal('0.00'))

    def test_logout_drops_tokens(self):
        self.api.logout()
        self.assertIsNone(self.api.access_token)
        self.assertIsNone(self.api.refresh_token)


class CheckoutSessionTests(ClientTestCase):

    def setUp(self):
        super().setUp()
        self.product = TestDataFactory.create_product(name='Galão 20L', price_full=Decimal('10.00'),
                                                      price_refill=Decimal('5.00'), stock_full=3)
        self.checkout = CheckoutSession(self.api)
        products = {p.id: p for p in self.checkout.load_products()}
        self.snapshot = products[self.product.id]

    def test_empty_cart(self):
        self.checkout.cart.add_placeholder()
        result = self.checkout.checkout()
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, REASON_EMPTY)

    def test_reentrant_checkout_is_refused(self):
        self.checkout.cart.add_item(self.snapshot, 1)
        self.checkout.submitting = True
        result = self.checkout.checkout()
        self.assertEqual(result.reason, REASON_IN_PROGRESS)
        self.assertFalse(Order.objects.exists())

    def test_successful_checkout_clears_cart(self):
        customer = TestDataFactory.create_customer(name='Maria')
        self.checkout.select_customer(customer.id)
        self.checkout.cart.add_item(self.snapshot, 3, returned_container=True)

        result = self.checkout.checkout()

        self.assertTrue(result.ok)
        self.assertEqual(result.total, Decimal('15.00'))
        self.assertTrue(self.checkout.cart.is_empty)
        self.assertIsNone(self.checkout.customer_id)
        self.assertFalse(self.checkout.submitting)
        order = Order.objects.get(pk=result.order_id)
        self.assertEqual(order.customer, customer)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 0)
        self.assertEqual(self.product.stock_empty, 3)
        self.assertEqual(StockMovement.objects.filter(movement_type='OUT').count(), 1)

    def test_local_shortage_keeps_cart(self):
        self.checkout.cart.add_item(self.snapshot, 4)
        result = self.checkout.checkout()
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, REASON_INSUFFICIENT_STOCK)
        self.assertEqual([(s.product_id, s.requested, s.available) for s in result.insufficient],
                         [(self.product.id, 4, 3)])
        self.assertEqual(self.checkout.cart.total_quantity(), 4)
        self.assertFalse(Order.objects.exists())

    def test_server_shortage_after_stale_snapshot(self):
        self.checkout.cart.add_item(self.snapshot, 3)
        # another terminal sold one unit after our snapshot was taken
        TestDataFactory.create_order(self.user, [(self.product, 1, False)])
        self.product.stock_full = 2
        self.product.save()

        with mock.patch.object(CheckoutSession, 'stock_snapshot', return_value={self.product.id: 3}):
            result = self.checkout.checkout()

        self.assertFalse(result.ok)
        self.assertEqual(result.reason, REASON_INSUFFICIENT_STOCK)
        self.assertEqual(result.insufficient[0].available, 2)
        self.assertEqual(self.checkout.cart.total_quantity(), 3)
        self.assertEqual(Order.objects.count(), 1)

    def test_transport_failure_keeps_cart_and_stock(self):
        self.checkout.cart.add_item(self.snapshot, 2)
        with mock.patch.object(self.api, 'create_order', side_effect=ApiError(None, {'error': 'connection reset'})):
            with self.assertRaises(ApiError):
                self.checkout.checkout()

        self.assertFalse(self.checkout.submitting)
        self.assertEqual(self.checkout.cart.total_quantity(), 2)
        self.assertEqual(self.checkout.cart.get_total(), Decimal('20.00'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 3)
        self.assertFalse(Order.objects.exists())

    def test_insufficient_stock_error_carries_shortages(self):
        payload = {'customer_id': None, 'items': [
            {'product_id': self.product.id, 'quantity': 9, 'returned_container': False, 'unit_price': '10.00'}
        ]}
        with self.assertRaises(InsufficientStockError) as ctx:
            self.api.create_order(payload)
        self.assertEqual(ctx.exception.status, 409)
        self.assertEqual(ctx.exception.shortages[0].requested, 9)


class SessionTests(SimpleTestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.path = Path(self.tmpdir.name) / 'nested' / 'session.json'

    def test_save_load_clear(self):
        session = Session(self.path)
        self.assertFalse(session.load())

        session.update_from_login({'access': 'a1', 'refresh': 'r1',
                                   'user': {'id': 1, 'username': 'admin', 'role': 'admin'}})
        self.assertTrue(self.path.exists())

        restored = Session(self.path)
        self.assertTrue(restored.load())
        self.assertTrue(restored.is_admin)
        self.assertEqual(restored.refresh_token, 'r1')

        restored.clear()
        self.assertFalse(self.path.exists())
        self.assertFalse(restored.is_authenticated)
        restored.clear()

    def test_unreadable_file_is_ignored(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text('{not json', encoding='utf-8')
        self.assertFalse(Session(self.path).load())

    def test_env_override(self):
        with mock.patch.dict(os.environ, {SESSION_FILE_ENV: str(self.path)}):
            self.assertEqual(Session().path, self.path)

    def test_attach_and_sync(self):
        session = Session(self.path)
        session.update_from_login({'access': 'a1', 'refresh': 'r1', 'user': {'id': 2, 'role': 'operator'}})
        api = session.attach(ApiClient(BASE_URL, session=mock.Mock()))
        self.assertEqual(api.access_token, 'a1')

        api.access_token = 'a2'
        session.sync_from(api)
        self.assertEqual(json.loads(self.path.read_text(encoding='utf-8'))['access'], 'a2')

"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from distribuidora.core.models import Setting
from distribuidora.catalog.models import Product
from distribuidora.parties.models import Customer
from distribuidora.pos.models import Order, OrderItem
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, password='testpass123', role='operator', is_active=True):
        """Create a test user (operator by default)"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        return User.objects.create_user(
            username=username,
            password=password,
            role=role,
            is_active=is_active
        )

    @staticmethod
    def create_admin(username=None, password='testpass123'):
        """Create a test user with the admin role"""
        return TestDataFactory.create_user(username=username, password=password, role='admin')

    @staticmethod
    def create_product(name=None, type='water', price_full=None, price_refill=None,
                       stock_full=10, stock_empty=0):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if price_full is None:
            price_full = Decimal('10.00')
        if price_refill is None:
            price_refill = Decimal('5.00')
        return Product.objects.create(
            name=name,
            type=type,
            price_full=price_full,
            price_refill=price_refill,
            stock_full=stock_full,
            stock_empty=stock_empty
        )

    @staticmethod
    def create_customer(name=None, phone=None, address=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'9{random.randint(10000000, 99999999)}'
        return Customer.objects.create(
            name=name,
            phone=phone,
            address=address or f'Rua {name}, 100'
        )

    @staticmethod
    def create_order(user, items, customer=None):
        """
        Create an order row directly, bypassing stock checks.

        items: list of (product, quantity, returned_container) tuples; the unit
        price is taken from the product the way the cart resolves it.
        """
        order = Order.objects.create(customer=customer, created_by=user, total=Decimal('0.00'))
        total = Decimal('0.00')
        for product, quantity, returned_container in items:
            unit_price = product.price_refill if returned_container else product.price_full
            OrderItem.objects.create(
                order=order,
                product=product,
                quantity=quantity,
                returned_container=returned_container,
                unit_price=unit_price
            )
            total += unit_price * quantity
        order.total = total
        order.save(update_fields=['total'])
        return order

    @staticmethod
    def create_setting(key, value, description=None):
        """Create or replace a setting row"""
        setting, _ = Setting.objects.update_or_create(
            key=key,
            defaults={'value': value, 'description': description or ''}
        )
        return setting


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()


class APITestCase(TestCase):
    """TestCase with a fresh cache and an authenticated operator client"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def as_admin(self):
        self.client.authenticate_user(self.admin)
        return self.client

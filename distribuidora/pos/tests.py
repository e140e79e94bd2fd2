"""
Test suite for the POS module
Tests: Price resolution, Cart aggregate, Stock reconciliation, Order placement,
Order endpoints (list, detail, timestamp correction, delete), Receipts
"""
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.test import SimpleTestCase, TestCase
from rest_framework import status

from distribuidora.catalog.models import Product
from distribuidora.core.models import AuditLog
from distribuidora.core.test_utils import TestDataFactory, APITestCase
from distribuidora.inventory.models import StockMovement
from .cart import Cart, LineItem, ProductSnapshot
from .exceptions import DuplicateProduct, EmptyOrder, InsufficientStock, InvalidQuantity, UnknownProduct
from .models import Order, OrderItem
from .pricing import resolve_unit_price, to_money
from .reconciliation import validate_for_checkout
from .services import place_order


def snapshot(id=1, price_full='10.00', price_refill='5.00', stock_full=3, name='Água 20L'):
    return ProductSnapshot(id=id, name=name, price_full=Decimal(price_full),
                           price_refill=Decimal(price_refill), stock_full=stock_full, type='water')


class PricingTests(SimpleTestCase):
    """Test unit price resolution"""

    def test_full_price_without_returned_container(self):
        line = LineItem(product=snapshot(), quantity=1)
        self.assertEqual(resolve_unit_price(line), Decimal('10.00'))

    def test_refill_price_with_returned_container(self):
        line = LineItem(product=snapshot(), quantity=1, returned_container=True)
        self.assertEqual(resolve_unit_price(line), Decimal('5.00'))

    def test_custom_price_wins_over_container_flag(self):
        for returned in (False, True):
            line = LineItem(product=snapshot(), returned_container=returned, custom_price=Decimal('7.25'))
            self.assertEqual(resolve_unit_price(line), Decimal('7.25'))

    def test_custom_price_zero_is_kept(self):
        line = LineItem(product=snapshot(), returned_container=True, custom_price=Decimal('0'))
        self.assertEqual(resolve_unit_price(line), Decimal('0.00'))

    def test_custom_price_is_returned_as_stored(self):
        line = LineItem(product=snapshot(), custom_price=Decimal('1.005'))
        self.assertEqual(str(resolve_unit_price(line)), '1.005')

    def test_to_money(self):
        self.assertEqual(to_money('12.5'), Decimal('12.50'))
        self.assertEqual(to_money(0.1), Decimal('0.10'))
        self.assertEqual(to_money(Decimal('2.345')), Decimal('2.35'))


class CartTests(SimpleTestCase):
    """Test the cart aggregate"""

    def setUp(self):
        self.cart = Cart()
        self.water = snapshot(id=1)
        self.gas = snapshot(id=2, price_full='120.00', price_refill='95.00', name='Botijão P13')

    def test_add_new_item(self):
        line = self.cart.add_item(self.water)
        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(line.quantity, 1)
        self.assertFalse(line.returned_container)

    def test_add_same_product_merges(self):
        self.cart.add_item(self.water, 2)
        self.cart.add_item(self.water, 3, returned_container=True)
        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.items[0].quantity, 5)
        self.assertFalse(self.cart.items[0].returned_container)

    def test_remove_item(self):
        self.cart.add_item(self.water)
        self.cart.remove_item(self.water.id)
        self.assertTrue(self.cart.is_empty)

    def test_remove_absent_item_is_noop(self):
        self.cart.add_item(self.water)
        self.cart.remove_item(999)
        self.assertEqual(len(self.cart.items), 1)

    def test_update_quantity_zero_or_negative_removes(self):
        for quantity in (0, -5):
            self.cart.add_item(self.water, 2)
            self.cart.update_quantity(self.water.id, quantity)
            self.assertIsNone(self.cart.get_line(self.water.id))
            self.assertEqual(len(self.cart.items), 0)

    def test_update_quantity_has_no_upper_bound(self):
        self.cart.add_item(self.water)
        self.cart.update_quantity(self.water.id, 500)
        self.assertEqual(self.cart.get_line(self.water.id).quantity, 500)

    def test_custom_price_set_and_clear(self):
        self.cart.add_item(self.water, 2)
        self.cart.update_custom_price(self.water.id, Decimal('8.00'))
        self.assertEqual(self.cart.get_total(), Decimal('16.00'))
        self.cart.update_custom_price(self.water.id, None)
        self.assertEqual(self.cart.get_total(), Decimal('20.00'))

    def test_toggle_returned_container(self):
        self.cart.add_item(self.water)
        self.cart.toggle_returned_container(self.water.id)
        line = self.cart.get_line(self.water.id)
        self.assertTrue(line.returned_container)
        self.assertEqual(self.cart.get_item_price(line), Decimal('5.00'))
        self.cart.toggle_returned_container(self.water.id)
        self.assertEqual(self.cart.get_item_price(line), Decimal('10.00'))

    def test_total_sums_lines_and_skips_placeholders(self):
        self.assertEqual(self.cart.get_total(), Decimal('0.00'))
        self.cart.add_item(self.water, 2, returned_container=True)
        self.cart.add_item(self.gas, 1)
        self.cart.add_placeholder()
        expected = sum(self.cart.get_item_price(line) * line.quantity
                       for line in self.cart.items if line.product is not None)
        self.assertEqual(self.cart.get_total(), expected)
        self.assertEqual(self.cart.get_total(), Decimal('130.00'))
        self.assertEqual(self.cart.total_quantity(), 3)

    def test_add_fills_first_placeholder(self):
        self.cart.add_placeholder()
        self.cart.add_item(self.gas, 2)
        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.items[0].product, self.gas)

    def test_assign_product_to_placeholder_merges_with_existing_line(self):
        self.cart.add_item(self.water, 2)
        self.cart.add_placeholder()
        self.cart.assign_product(1, self.water)
        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.items[0].quantity, 3)

    def test_payload_captures_prices_and_skips_placeholders(self):
        self.cart.add_item(self.water, 2, returned_container=True)
        self.cart.add_item(self.gas, 1)
        self.cart.update_custom_price(self.gas.id, '100')
        self.cart.add_placeholder()
        payload = self.cart.to_order_payload(customer_id=7)
        self.assertEqual(payload, {
            'customer_id': 7,
            'items': [
                {'product_id': 1, 'quantity': 2, 'returned_container': True, 'unit_price': '5.00'},
                {'product_id': 2, 'quantity': 1, 'returned_container': False, 'unit_price': '100.00'},
            ],
        })

    def test_clear(self):
        self.cart.add_item(self.water)
        self.cart.add_item(self.gas)
        self.cart.clear()
        self.assertEqual(self.cart.items, ())
        self.assertEqual(self.cart.get_total(), Decimal('0.00'))

    def test_snapshot_from_api_dict(self):
        product = ProductSnapshot.from_dict({
            'id': 3, 'name': 'Carvão 5kg', 'type': 'coal', 'price_full': '25.90',
            'price_refill': '25.90', 'stock_full': 12, 'stock_empty': 0,
        })
        self.assertEqual(product.price_full, Decimal('25.90'))
        self.assertEqual(product.stock_full, 12)


class ReconciliationTests(SimpleTestCase):
    """Test stock validation before checkout"""

    def test_exact_stock_passes_one_more_fails(self):
        product = snapshot(stock_full=3)
        report = validate_for_checkout([LineItem(product=product, quantity=3)], {1: 3})
        self.assertTrue(report.ok)

        report = validate_for_checkout([LineItem(product=product, quantity=4)], {1: 3})
        self.assertFalse(report.ok)
        self.assertEqual([s.product_id for s in report.insufficient], [1])
        self.assertEqual(report.insufficient[0].requested, 4)
        self.assertEqual(report.insufficient[0].available, 3)

    def test_placeholders_and_non_positive_lines_are_ignored(self):
        lines = [LineItem(), LineItem(product=snapshot(), quantity=0)]
        self.assertTrue(validate_for_checkout(lines, {}).ok)

    def test_missing_product_counts_as_no_stock(self):
        report = validate_for_checkout([LineItem(product=snapshot(id=9), quantity=1)], {1: 10})
        self.assertEqual(report.as_payload(), [{'product_id': 9, 'requested': 1, 'available': 0}])

    def test_quantities_for_same_product_are_summed(self):
        lines = [LineItem(product=snapshot(), quantity=2), LineItem(product=snapshot(), quantity=2)]
        report = validate_for_checkout(lines, {1: 3})
        self.assertFalse(report.ok)
        self.assertEqual(report.insufficient[0].requested, 4)


class PlaceOrderTests(TestCase):
    """Test the server-side order commit"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(price_full=Decimal('10.00'), price_refill=Decimal('5.00'),
                                                      stock_full=3, stock_empty=0)

    def item(self, quantity, returned_container=False, unit_price='10.00', product=None):
        return {
            'product_id': (product or self.product).id,
            'quantity': quantity,
            'returned_container': returned_container,
            'unit_price': Decimal(unit_price),
        }

    def test_scenario_from_cart_to_committed_order(self):
        cart = Cart()
        cart.add_item(ProductSnapshot.from_model(self.product), quantity=2, returned_container=True)
        line = cart.get_line(self.product.id)
        self.assertEqual(cart.get_item_price(line), Decimal('5.00'))
        self.assertEqual(cart.get_item_price(line) * line.quantity, Decimal('10.00'))
        self.assertEqual(cart.get_total(), Decimal('10.00'))

        cart.update_quantity(self.product.id, 4)
        report = validate_for_checkout(cart.checkout_lines(), {self.product.id: self.product.stock_full})
        self.assertEqual([s.product_id for s in report.insufficient], [self.product.id])

        cart.update_quantity(self.product.id, 3)
        report = validate_for_checkout(cart.checkout_lines(), {self.product.id: self.product.stock_full})
        self.assertTrue(report.ok)

        order = place_order(cart.to_order_payload()['items'], user=self.user)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 0)
        self.assertEqual(order.total, Decimal('15.00'))
        movement = StockMovement.objects.get(product=self.product)
        self.assertEqual(movement.movement_type, StockMovement.OUT)
        self.assertEqual(movement.quantity, 3)

    def test_returned_container_increments_empty_stock(self):
        place_order([self.item(2, returned_container=True, unit_price='5.00')])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 1)
        self.assertEqual(self.product.stock_empty, 2)

    def test_unit_price_is_stored_as_sent(self):
        order = place_order([self.item(1, unit_price='7.50')])
        self.product.price_full = Decimal('99.00')
        self.product.save()
        item = OrderItem.objects.get(order=order)
        self.assertEqual(item.unit_price, Decimal('7.50'))
        self.assertEqual(order.total, Decimal('7.50'))

    def test_insufficient_stock_writes_nothing(self):
        with self.assertRaises(InsufficientStock) as ctx:
            place_order([self.item(4)])
        self.assertEqual(ctx.exception.as_payload(),
                         [{'product_id': self.product.id, 'requested': 4, 'available': 3}])
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_one_short_product_refuses_whole_order(self):
        other = TestDataFactory.create_product(stock_full=10)
        with self.assertRaises(InsufficientStock):
            place_order([self.item(1, product=other), self.item(5)])
        other.refresh_from_db()
        self.assertEqual(other.stock_full, 10)
        self.assertEqual(Order.objects.count(), 0)

    def test_same_product_on_two_lines_is_refused(self):
        with self.assertRaises(DuplicateProduct) as ctx:
            place_order([self.item(1), self.item(1, returned_container=True, unit_price='5.00')])
        self.assertEqual(ctx.exception.product_ids, [self.product.id])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 3)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_empty_order(self):
        with self.assertRaises(EmptyOrder):
            place_order([])

    def test_invalid_quantity(self):
        with self.assertRaises(InvalidQuantity):
            place_order([self.item(0)])

    def test_unknown_product(self):
        with self.assertRaises(UnknownProduct):
            place_order([{'product_id': 424242, 'quantity': 1, 'unit_price': '1.00'}])

    def test_failure_midway_rolls_back(self):
        other = TestDataFactory.create_product(stock_full=10)
        with mock.patch('distribuidora.pos.services.apply_sale', side_effect=[None, RuntimeError('disk full')]):
            with self.assertRaises(RuntimeError):
                place_order([self.item(1, product=other), self.item(1)])
        self.product.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.product.stock_full, 3)
        self.assertEqual(other.stock_full, 10)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)


class OrderApiTests(APITestCase):
    """Test order endpoints"""

    def setUp(self):
        super().setUp()
        self.product = TestDataFactory.create_product(name='Galão 20L', price_full=Decimal('10.00'),
                                                      price_refill=Decimal('5.00'), stock_full=3)
        self.customer = TestDataFactory.create_customer(name='Maria')

    def order_payload(self, quantity=1, returned_container=False, unit_price='10.00', customer_id=None):
        return {
            'customer_id': customer_id,
            'items': [{'product_id': self.product.id, 'quantity': quantity,
                       'returned_container': returned_container, 'unit_price': unit_price}],
        }

    def test_create_order(self):
        payload = self.order_payload(quantity=2, returned_container=True, unit_price='5.00',
                                     customer_id=self.customer.id)
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total'], '10.00')
        self.assertEqual(response.data['customer_name'], 'Maria')
        self.assertEqual(response.data['items'][0]['product_name'], 'Galão 20L')
        self.assertTrue(AuditLog.objects.filter(action='order_create').exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 1)

    def test_create_order_insufficient_stock(self):
        response = self.client.post('/api/v1/orders/', self.order_payload(quantity=4), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['insufficient'],
                         [{'product_id': self.product.id, 'requested': 4, 'available': 3}])
        self.assertEqual(Order.objects.count(), 0)

    def test_create_order_with_repeated_product(self):
        payload = self.order_payload()
        payload['items'].append(dict(payload['items'][0]))
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(StockMovement.objects.exists())

    def test_create_order_without_items(self):
        response = self.client.post('/api/v1/orders/', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_order_unknown_customer(self):
        response = self.client.post('/api/v1/orders/', self.order_payload(customer_id=999999), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_order_unknown_product(self):
        payload = {'items': [{'product_id': 999999, 'quantity': 1, 'unit_price': '1.00'}]}
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_orders_newest_first(self):
        first = TestDataFactory.create_order(self.user, [(self.product, 1, False)])
        second = TestDataFactory.create_order(self.user, [(self.product, 1, True)], customer=self.customer)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [second.id, first.id])
        self.assertEqual(response.data[0]['customer_name'], 'Maria')
        self.assertIsNone(response.data[1]['customer_name'])

    def test_orders_by_customer(self):
        TestDataFactory.create_order(self.user, [(self.product, 1, False)])
        mine = TestDataFactory.create_order(self.user, [(self.product, 1, False)], customer=self.customer)
        response = self.client.get(f'/api/v1/customers/{self.customer.id}/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [mine.id])

    def test_get_order_with_items(self):
        order = TestDataFactory.create_order(self.user, [(self.product, 2, True)])
        response = self.client.get(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item = response.data['items'][0]
        self.assertEqual(item['unit_price'], '5.00')
        self.assertEqual(item['subtotal'], '10.00')
        self.assertTrue(item['returned_container'])

    def test_operator_cannot_correct_timestamp(self):
        order = TestDataFactory.create_order(self.user, [(self.product, 1, False)])
        response = self.client.patch(f'/api/v1/orders/{order.id}/', {'created_at': '2024-01-02T10:00:00Z'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_corrects_timestamp(self):
        order = TestDataFactory.create_order(self.user, [(self.product, 1, False)])
        response = self.as_admin().patch(f'/api/v1/orders/{order.id}/', {'created_at': '2024-01-02T10:00:00Z'},
                                         format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertEqual(order.created_at, datetime(2024, 1, 2, 10, 0, tzinfo=dt_timezone.utc))
        self.assertTrue(AuditLog.objects.filter(action='order_update', object_id=str(order.id)).exists())

    def test_admin_cannot_change_total(self):
        order = TestDataFactory.create_order(self.user, [(self.product, 1, False)])
        response = self.as_admin().patch(f'/api/v1/orders/{order.id}/', {'total': '0.01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        order.refresh_from_db()
        self.assertEqual(order.total, Decimal('10.00'))

    def test_delete_order_is_admin_only_and_does_not_restock(self):
        self.client.post('/api/v1/orders/', self.order_payload(quantity=2), format='json')
        order = Order.objects.get()

        response = self.client.delete(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.as_admin().delete(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_full, 1)

    def test_receipt(self):
        TestDataFactory.create_setting('company_name', 'Distribuidora Boa Água')
        order = TestDataFactory.create_order(self.user, [(self.product, 2, True)])
        response = self.client.get(f'/api/v1/orders/{order.id}/receipt/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response['Content-Type'].startswith('text/html'))
        html = response.content.decode('utf-8')
        self.assertIn('Distribuidora Boa Água', html)
        self.assertIn('Galão 20L (com casco)', html)
        self.assertIn('Consumidor Final', html)
        self.assertIn(f'Pedido #{order.id}', html)

    def test_receipt_with_customer(self):
        order = TestDataFactory.create_order(self.user, [(self.product, 1, False)], customer=self.customer)
        html = self.client.get(f'/api/v1/orders/{order.id}/receipt/').content.decode('utf-8')
        self.assertIn('Maria', html)
        self.assertNotIn('Consumidor Final', html)
        self.assertNotIn('(com casco)', html)

    def test_product_referenced_by_order_survives_delete_attempt(self):
        TestDataFactory.create_order(self.user, [(self.product, 1, False)])
        response = self.client.delete(f'/api/v1/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Product.objects.filter(pk=self.product.id).exists())

"""
Test suite for the parties module
Tests: Customer CRUD, phone search, admin-only delete
"""
from rest_framework import status
from distribuidora.core.test_utils import TestDataFactory, APITestCase
from .models import Customer


class CustomerTests(APITestCase):
    """Test customer endpoints"""

    def test_create_customer(self):
        data = {'name': 'Maria Souza', 'phone': '11988887777', 'address': 'Rua A, 10'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Customer.objects.get(pk=response.data['id']).phone, '11988887777')

    def test_create_customer_requires_name(self):
        response = self.client.post('/api/v1/customers/', {'name': '', 'phone': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_customers(self):
        TestDataFactory.create_customer(name='Bruno')
        TestDataFactory.create_customer(name='Ana')
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Ana', 'Bruno'])

    def test_search_by_phone(self):
        TestDataFactory.create_customer(name='Ana', phone='11911112222')
        TestDataFactory.create_customer(name='Bruno', phone='21933334444')
        response = self.client.get('/api/v1/customers/search/?phone=1111')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Ana')

    def test_search_without_phone(self):
        response = self.client.get('/api/v1/customers/search/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_customer(self):
        customer = TestDataFactory.create_customer(name='Ana')
        response = self.client.patch(f'/api/v1/customers/{customer.id}/', {'notes': 'Entrega à tarde'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.notes, 'Entrega à tarde')

    def test_operator_cannot_delete_customer(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Customer.objects.filter(pk=customer.id).exists())

    def test_admin_can_delete_customer(self):
        customer = TestDataFactory.create_customer()
        response = self.as_admin().delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Customer.objects.filter(pk=customer.id).exists())

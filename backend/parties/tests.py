"""
Test suite for the parties module
Tests: customer and supplier endpoints
"""
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Customer, Supplier


class PartyAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        TestDataFactory.create_worker(self.user, self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.client.use_tenant(company=self.company)

    def test_create_customer_in_current_company(self):
        response = self.client.post('/api/v1/customers/', {'name': 'Ana Ruiz', 'phone': '5550001'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Customer.objects.get(pk=response.data['id']).company, self.company)

    def test_customer_list_is_scoped_and_searchable(self):
        TestDataFactory.create_customer(self.company, name='Ana Ruiz')
        TestDataFactory.create_customer(self.company, name='Luis Gomez')
        TestDataFactory.create_customer(TestDataFactory.create_company(), name='Ana Other')

        response = self.client.get('/api/v1/customers/?search=ana')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Ana Ruiz'])

    def test_inactive_suppliers_are_hidden(self):
        TestDataFactory.create_supplier(self.company, name='Active Supplies')
        hidden = TestDataFactory.create_supplier(self.company, name='Gone Supplies')
        Supplier.objects.filter(pk=hidden.pk).update(is_active=False)

        response = self.client.get('/api/v1/suppliers/')
        self.assertEqual([row['name'] for row in response.data], ['Active Supplies'])

    def test_company_header_required(self):
        self.client.use_tenant()
        response = self.client.get('/api/v1/suppliers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

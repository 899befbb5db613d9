"""
Test suite for the catalog module
Tests: product endpoints
"""
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Product


class ProductAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        TestDataFactory.create_worker(self.user, self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.client.use_tenant(company=self.company)

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', {'name': 'Coffee Beans', 'sku': 'CB-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.company, self.company)
        self.assertTrue(product.track_inventory)

    def test_sku_unique_per_company(self):
        TestDataFactory.create_product(self.company, sku='CB-1')
        response = self.client.post('/api/v1/products/', {'name': 'Copy', 'sku': 'CB-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sku', response.data)

        # Another company may reuse the SKU
        TestDataFactory.create_product(TestDataFactory.create_company(), sku='CB-2')
        response = self.client.post('/api/v1/products/', {'name': 'Tea', 'sku': 'CB-2'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_paginated_and_scoped(self):
        TestDataFactory.create_product(self.company, name='Coffee Beans')
        TestDataFactory.create_product(TestDataFactory.create_company(), name='Coffee Elsewhere')
        response = self.client.get('/api/v1/products/?search=coffee')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Coffee Beans')

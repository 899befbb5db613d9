"""
Test suite for the purchasing module
Tests: purchase model, status flow, stock on receipt, purchase endpoints
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.exceptions import InvalidStatusTransition, UnknownStatus
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import Stock, StockMovement
from backend.locations.models import Worker
from backend.purchasing.models import Purchase
from backend.purchasing.serializers import PurchaseSerializer
from backend.purchasing.services import advance_purchase, revert_purchase, transition_purchase
from backend.purchasing.status import PurchaseStatus, is_editable, affects_stock


class PurchaseModelTests(TestCase):
    """Test Purchase and PurchaseItem model methods"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        self.product = TestDataFactory.create_product(self.company)

    def test_purchase_number_generated(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        self.assertTrue(purchase.purchase_number.startswith('PUR'))
        self.assertEqual(str(purchase), purchase.purchase_number)

    def test_new_purchase_is_draft(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        self.assertEqual(purchase.status, PurchaseStatus.DRAFT)

    def test_total(self):
        other = TestDataFactory.create_product(self.company)
        purchase = TestDataFactory.create_purchase(
            self.user, self.location,
            items=[(self.product, '2', '10.50'), (other, '1.5', '4.00')]
        )
        self.assertEqual(purchase.get_total(), Decimal('27.00'))

    def test_empty_purchase_total(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        self.assertEqual(purchase.get_total(), Decimal('0'))

    def test_status_helpers(self):
        self.assertTrue(is_editable('draft'))
        self.assertFalse(is_editable(PurchaseStatus.ORDERED))
        self.assertTrue(affects_stock('received'))
        self.assertFalse(affects_stock('in_transit'))


class PurchaseFlowTests(TestCase):
    """Status changes and their stock effects"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        self.product = TestDataFactory.create_product(self.company)
        self.purchase = TestDataFactory.create_purchase(
            self.user, self.location, items=[(self.product, '5', '3.00')]
        )

    def _stock(self):
        stock = Stock.objects.filter(product=self.product, location=self.location).first()
        return stock.quantity if stock else Decimal('0')

    def test_advance_through_flow(self):
        purchase = advance_purchase(self.purchase, self.user)
        self.assertEqual(purchase.status, PurchaseStatus.ORDERED)
        purchase = advance_purchase(purchase, self.user)
        self.assertEqual(purchase.status, PurchaseStatus.IN_TRANSIT)
        self.assertEqual(self._stock(), Decimal('0'))

        purchase = advance_purchase(purchase, self.user)
        self.assertEqual(purchase.status, PurchaseStatus.RECEIVED)
        self.assertIsNotNone(purchase.received_at)
        self.assertEqual(self._stock(), Decimal('5'))
        self.assertEqual(StockMovement.objects.filter(reason=StockMovement.REASON_PURCHASE).count(), 1)

    def test_received_is_final(self):
        for _ in range(3):
            self.purchase = advance_purchase(self.purchase, self.user)
        with self.assertRaises(InvalidStatusTransition):
            advance_purchase(self.purchase, self.user)
        with self.assertRaises(InvalidStatusTransition):
            revert_purchase(self.purchase, self.user)
        self.assertEqual(self._stock(), Decimal('5'))

    def test_revert_steps_back(self):
        purchase = advance_purchase(advance_purchase(self.purchase, self.user), self.user)
        purchase = revert_purchase(purchase, self.user)
        self.assertEqual(purchase.status, PurchaseStatus.ORDERED)
        purchase = revert_purchase(purchase, self.user)
        self.assertEqual(purchase.status, PurchaseStatus.DRAFT)

    def test_cannot_revert_draft(self):
        with self.assertRaises(InvalidStatusTransition):
            revert_purchase(self.purchase, self.user)

    def test_cannot_skip_steps(self):
        with self.assertRaises(InvalidStatusTransition):
            transition_purchase(self.purchase, 'received', self.user)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, PurchaseStatus.DRAFT)
        self.assertEqual(self._stock(), Decimal('0'))

    def test_unknown_status(self):
        with self.assertRaises(UnknownStatus):
            transition_purchase(self.purchase, 'shipped', self.user)

    def test_direct_status_write_is_checked(self):
        self.purchase.status = PurchaseStatus.RECEIVED
        with self.assertRaises(InvalidStatusTransition):
            self.purchase.save()

    def test_transition_is_audited(self):
        advance_purchase(self.purchase, self.user)
        log = AuditLog.objects.get(action='status_change', model_name='Purchase')
        self.assertEqual(log.changes, {'from': 'draft', 'to': 'ordered'})
        self.assertEqual(log.object_reference, self.purchase.purchase_number)

    def test_edit_through_stale_copy_keeps_received_status(self):
        stale = Purchase.objects.get(pk=self.purchase.pk)
        purchase = self.purchase
        for _ in range(3):
            purchase = advance_purchase(purchase, self.user)
        self.assertEqual(self._stock(), Decimal('5'))

        serializer = PurchaseSerializer(stale, data={'notes': 'x'}, partial=True, context={'company': self.company})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        serializer.save()

        purchase = Purchase.objects.get(pk=self.purchase.pk)
        self.assertEqual(purchase.status, PurchaseStatus.RECEIVED)
        self.assertIsNotNone(purchase.received_at)
        self.assertEqual(purchase.notes, 'x')
        self.assertEqual(self._stock(), Decimal('5'))


class PurchaseAPITests(TestCase):
    """Purchase endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        TestDataFactory.create_worker(self.user, self.company, role=Worker.ROLE_STAFF)
        self.supplier = TestDataFactory.create_supplier(self.company)
        self.product = TestDataFactory.create_product(self.company)

        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.client.use_tenant(company=self.company, location=self.location)

    def _payload(self, **overrides):
        data = {
            'supplier': self.supplier.pk,
            'bill_number': 'INV-100',
            'items': [{'product': self.product.pk, 'quantity': '4', 'unit_cost': '2.50'}],
        }
        data.update(overrides)
        return data

    def _create(self):
        response = self.client.post('/api/v1/purchases/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_create_purchase(self):
        data = self._create()
        self.assertEqual(data['status'], 'draft')
        self.assertEqual(data['location'], self.location.pk)
        self.assertEqual(Decimal(data['total']), Decimal('10'))
        self.assertEqual(data['allowed_transitions'], ['ordered'])
        self.assertEqual(data['status_icon'], '📝')

    def test_create_requires_location_header(self):
        self.client.use_tenant(company=self.company)
        response = self.client.post('/api/v1/purchases/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Purchase.objects.exists())

    def test_create_requires_items(self):
        response = self.client.post('/api/v1/purchases/', self._payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supplier_from_other_company_rejected(self):
        foreign = TestDataFactory.create_supplier(TestDataFactory.create_company())
        response = self.client.post('/api/v1/purchases/', self._payload(supplier=foreign.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('supplier', response.data)

    def test_advance_to_received_adds_stock_once(self):
        data = self._create()
        url = f"/api/v1/purchases/{data['id']}/advance/"
        for expected in ('ordered', 'in_transit', 'received'):
            response = self.client.post(url)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['status'], expected)

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

        stock = Stock.objects.get(product=self.product, location=self.location)
        self.assertEqual(stock.quantity, Decimal('4'))

    def test_revert_received_is_unprocessable(self):
        data = self._create()
        purchase = Purchase.objects.get(pk=data['id'])
        for _ in range(3):
            purchase = advance_purchase(purchase, self.user)
        response = self.client.post(f"/api/v1/purchases/{data['id']}/revert/")
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertIn('error', response.data)

    def test_transition_endpoint(self):
        data = self._create()
        url = f"/api/v1/purchases/{data['id']}/transition/"
        response = self.client.post(url, {'status': 'ordered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['allowed_transitions'], ['draft', 'in_transit'])

        response = self.client.post(url, {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

        response = self.client.post(url, {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_draft(self):
        data = self._create()
        response = self.client.patch(
            f"/api/v1/purchases/{data['id']}/",
            {'notes': 'Call before delivery', 'items': [{'product': self.product.pk, 'quantity': '6', 'unit_cost': '2.00'}]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Call before delivery')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(Decimal(response.data['items'][0]['quantity']), Decimal('6'))

    def test_patch_status_is_rejected(self):
        data = self._create()
        response = self.client.patch(f"/api/v1/purchases/{data['id']}/", {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Purchase.objects.get(pk=data['id']).status, PurchaseStatus.DRAFT)

    def test_patch_or_delete_non_draft_is_unprocessable(self):
        data = self._create()
        advance_purchase(Purchase.objects.get(pk=data['id']), self.user)
        response = self.client.patch(f"/api/v1/purchases/{data['id']}/", {'notes': 'late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        response = self.client.delete(f"/api/v1/purchases/{data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_delete_draft(self):
        data = self._create()
        response = self.client.delete(f"/api/v1/purchases/{data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Purchase.objects.filter(pk=data['id']).exists())

    def test_list_is_scoped_to_company(self):
        self._create()
        other_location = TestDataFactory.create_location()
        foreign = TestDataFactory.create_purchase(self.user, other_location)

        response = self.client.get('/api/v1/purchases/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(f'/api/v1/purchases/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_status_filter(self):
        self._create()
        response = self.client.get('/api/v1/purchases/?status=draft')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/purchases/?status=received')
        self.assertEqual(response.data['count'], 0)
        response = self.client.get('/api/v1/purchases/?status=unknown')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_id_filters(self):
        self._create()
        response = self.client.get(f'/api/v1/purchases/?supplier={self.supplier.pk}&location={self.location.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        for query in ('supplier=abc', 'location=abc', 'supplier=0'):
            with self.subTest(query=query):
                response = self.client.get(f'/api/v1/purchases/?{query}')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn('error', response.data)

    def test_status_info(self):
        response = self.client.get('/api/v1/purchases/status-info/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([option['value'] for option in response.data], ['draft', 'ordered', 'in_transit', 'received'])
        self.assertEqual(response.data[-1]['allowed_transitions'], [])

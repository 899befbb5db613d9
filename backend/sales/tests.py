"""
Test suite for the sales module
Tests: sale model, status flow and stock, sale endpoints
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.exceptions import InsufficientStock, InvalidStatusTransition
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import StockMovement
from backend.inventory.services import get_available_quantity
from backend.locations.models import Worker
from .models import Sale
from .serializers import SaleSerializer
from .services import advance_sale, revert_sale, cancel_sale, transition_sale
from .status import SaleStatus, active


class SaleModelTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        self.product = TestDataFactory.create_product(self.company)

    def test_sale_number_generated(self):
        sale = TestDataFactory.create_sale(self.user, self.location)
        self.assertTrue(sale.sale_number.startswith('SAL'))
        self.assertEqual(sale.status, SaleStatus.DRAFT)

    def test_change_amount_for_cash(self):
        sale = TestDataFactory.create_sale(self.user, self.location, items=[(self.product, '3', '4.00')])
        sale.payment_method = Sale.PAYMENT_CASH
        sale.received_amount = Decimal('20.00')
        self.assertEqual(sale.get_total(), Decimal('12'))
        self.assertEqual(sale.get_change_amount(), Decimal('8'))

    def test_no_change_amount_for_card(self):
        sale = TestDataFactory.create_sale(self.user, self.location, items=[(self.product, '1', '4.00')])
        sale.payment_method = Sale.PAYMENT_CARD
        sale.received_amount = Decimal('5.00')
        self.assertIsNone(sale.get_change_amount())

    def test_active_statuses(self):
        self.assertNotIn(SaleStatus.CANCELLED, active())
        self.assertEqual(len(active()), 3)


class SaleFlowTests(TestCase):
    """Closing takes stock, reopening gives it back"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        self.product = TestDataFactory.create_product(self.company)
        TestDataFactory.create_stock(self.product, self.location, 10)
        self.sale = TestDataFactory.create_sale(self.user, self.location, items=[(self.product, '3', '5.00')])

    def _stock(self):
        return get_available_quantity(self.product, self.location)

    def test_close_takes_stock(self):
        sale = advance_sale(self.sale, self.user)
        self.assertEqual(sale.status, SaleStatus.PROCESSED)
        self.assertEqual(self._stock(), Decimal('10'))

        sale = advance_sale(sale, self.user)
        self.assertEqual(sale.status, SaleStatus.CLOSED)
        self.assertIsNotNone(sale.closed_at)
        self.assertEqual(self._stock(), Decimal('7'))

    def test_reopen_returns_stock(self):
        sale = advance_sale(advance_sale(self.sale, self.user), self.user)
        sale = revert_sale(sale, self.user)
        self.assertEqual(sale.status, SaleStatus.PROCESSED)
        self.assertIsNone(sale.closed_at)
        self.assertEqual(self._stock(), Decimal('10'))
        reasons = list(StockMovement.objects.order_by('id').values_list('reason', flat=True))
        self.assertEqual(reasons, [StockMovement.REASON_SALE, StockMovement.REASON_SALE_REVERT])

    def test_insufficient_stock_rolls_back(self):
        other = TestDataFactory.create_product(self.company)
        TestDataFactory.create_stock(other, self.location, 1)
        sale = TestDataFactory.create_sale(
            self.user, self.location, items=[(self.product, '2', '1.00'), (other, '2', '1.00')]
        )
        sale = advance_sale(sale, self.user)
        with self.assertRaises(InsufficientStock):
            advance_sale(sale, self.user)
        sale.refresh_from_db()
        self.assertEqual(sale.status, SaleStatus.PROCESSED)
        self.assertIsNone(sale.closed_at)
        self.assertEqual(self._stock(), Decimal('10'))
        self.assertEqual(get_available_quantity(other, self.location), Decimal('1'))
        self.assertFalse(StockMovement.objects.exists())

    def test_cancel_from_draft_and_processed(self):
        sale = cancel_sale(self.sale, self.user)
        self.assertEqual(sale.status, SaleStatus.CANCELLED)
        self.assertIsNotNone(sale.cancelled_at)

        other = advance_sale(TestDataFactory.create_sale(self.user, self.location), self.user)
        self.assertEqual(cancel_sale(other, self.user).status, SaleStatus.CANCELLED)

    def test_closed_sale_cannot_be_cancelled(self):
        sale = advance_sale(advance_sale(self.sale, self.user), self.user)
        with self.assertRaises(InvalidStatusTransition):
            cancel_sale(sale, self.user)
        self.assertEqual(self._stock(), Decimal('7'))

    def test_nothing_leaves_cancelled(self):
        sale = cancel_sale(self.sale, self.user)
        for target in (SaleStatus.DRAFT, SaleStatus.PROCESSED, SaleStatus.CLOSED):
            with self.subTest(target=target):
                with self.assertRaises(InvalidStatusTransition):
                    transition_sale(sale, target, self.user)
        with self.assertRaises(InvalidStatusTransition):
            advance_sale(sale, self.user)
        with self.assertRaises(InvalidStatusTransition):
            revert_sale(sale, self.user)

    def test_draft_cannot_close_directly(self):
        with self.assertRaises(InvalidStatusTransition):
            transition_sale(self.sale, SaleStatus.CLOSED, self.user)
        self.assertEqual(self._stock(), Decimal('10'))

    def test_edit_through_stale_copy_keeps_closed_status(self):
        stale = Sale.objects.get(pk=self.sale.pk)
        advance_sale(advance_sale(self.sale, self.user), self.user)
        self.assertEqual(self._stock(), Decimal('7'))

        serializer = SaleSerializer(stale, data={'notes': 'x'}, partial=True, context={'company': self.company})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        serializer.save()

        sale = Sale.objects.get(pk=self.sale.pk)
        self.assertEqual(sale.status, SaleStatus.CLOSED)
        self.assertIsNotNone(sale.closed_at)
        self.assertEqual(sale.notes, 'x')
        self.assertEqual(self._stock(), Decimal('7'))

    def test_stale_save_of_other_fields_keeps_status(self):
        stale = Sale.objects.get(pk=self.sale.pk)
        cancel_sale(self.sale, self.user)
        stale.notes = 'late note'
        stale.save()
        sale = Sale.objects.get(pk=self.sale.pk)
        self.assertEqual(sale.status, SaleStatus.CANCELLED)
        self.assertIsNotNone(sale.cancelled_at)
        self.assertEqual(sale.notes, 'late note')


class SaleAPITests(TestCase):
    """Sale endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        TestDataFactory.create_worker(self.user, self.company, role=Worker.ROLE_STAFF)
        self.customer = TestDataFactory.create_customer(self.company)
        self.product = TestDataFactory.create_product(self.company)
        TestDataFactory.create_stock(self.product, self.location, 5)

        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.client.use_tenant(company=self.company, location=self.location)

    def _payload(self, **overrides):
        data = {
            'customer': self.customer.pk,
            'payment_method': 'cash',
            'received_amount': '50.00',
            'items': [{'product': self.product.pk, 'quantity': '2', 'unit_price': '12.50'}],
        }
        data.update(overrides)
        return data

    def _create(self, **overrides):
        response = self.client.post('/api/v1/sales/', self._payload(**overrides), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_create_sale(self):
        data = self._create()
        self.assertEqual(data['status'], 'draft')
        self.assertEqual(data['status_color'], 'gray')
        self.assertEqual(data['allowed_transitions'], ['processed', 'cancelled'])
        self.assertEqual(Decimal(data['total']), Decimal('25'))
        self.assertEqual(Decimal(data['change_amount']), Decimal('25'))

    def test_create_requires_location(self):
        self.client.use_tenant(company=self.company)
        response = self.client.post('/api/v1/sales/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customer_from_other_company_rejected(self):
        foreign = TestDataFactory.create_customer(TestDataFactory.create_company())
        response = self.client.post('/api/v1/sales/', self._payload(customer=foreign.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_close_through_api(self):
        data = self._create()
        url = f"/api/v1/sales/{data['id']}/advance/"
        self.assertEqual(self.client.post(url).data['status'], 'processed')
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'closed')
        self.assertEqual(response.data['status_color'], 'green')
        self.assertEqual(get_available_quantity(self.product, self.location), Decimal('3'))

    def test_close_without_stock_is_unprocessable(self):
        data = self._create(items=[{'product': self.product.pk, 'quantity': '6', 'unit_price': '1.00'}])
        url = f"/api/v1/sales/{data['id']}/transition/"
        self.client.post(url, {'status': 'processed'}, format='json')
        response = self.client.post(url, {'status': 'closed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data['product'], self.product.pk)
        self.assertEqual(Decimal(response.data['available']), Decimal('5'))
        self.assertEqual(Decimal(response.data['requested']), Decimal('6'))
        self.assertEqual(Sale.objects.get(pk=data['id']).status, SaleStatus.PROCESSED)
        self.assertEqual(get_available_quantity(self.product, self.location), Decimal('5'))

    def test_revert_closed_through_api(self):
        data = self._create()
        sale = Sale.objects.get(pk=data['id'])
        advance_sale(advance_sale(sale, self.user), self.user)
        response = self.client.post(f"/api/v1/sales/{data['id']}/revert/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'processed')
        self.assertEqual(get_available_quantity(self.product, self.location), Decimal('5'))

    def test_cancel_endpoint(self):
        data = self._create()
        response = self.client.post(f"/api/v1/sales/{data['id']}/cancel/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(response.data['allowed_transitions'], [])

        response = self.client.post(f"/api/v1/sales/{data['id']}/advance/")
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_unknown_status_is_bad_request(self):
        data = self._create()
        response = self.client.post(f"/api/v1/sales/{data['id']}/transition/", {'status': 'refunded'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_only_while_draft(self):
        data = self._create()
        response = self.client.patch(f"/api/v1/sales/{data['id']}/", {'notes': 'Gift wrap'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Gift wrap')

        response = self.client.patch(f"/api/v1/sales/{data['id']}/", {'status': 'closed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        advance_sale(Sale.objects.get(pk=data['id']), self.user)
        response = self.client.patch(f"/api/v1/sales/{data['id']}/", {'notes': 'Too late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        response = self.client.delete(f"/api/v1/sales/{data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_active_filter(self):
        kept = self._create()
        dropped = self._create()
        cancel_sale(Sale.objects.get(pk=dropped['id']), self.user)

        response = self.client.get('/api/v1/sales/?status=active')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['results']], [kept['id']])

        response = self.client.get('/api/v1/sales/?status=cancelled')
        self.assertEqual([row['id'] for row in response.data['results']], [dropped['id']])

        response = self.client.get('/api/v1/sales/?status=nope')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_malformed_id_filters_are_bad_request(self):
        for query in ('location=abc', 'customer=abc', 'location=-4'):
            with self.subTest(query=query):
                response = self.client.get(f'/api/v1/sales/?{query}')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn('error', response.data)

        response = self.client.get(f'/api/v1/sales/?location={self.location.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_other_company_sale_not_found(self):
        foreign = TestDataFactory.create_sale(self.user, TestDataFactory.create_location())
        response = self.client.get(f'/api/v1/sales/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_info(self):
        response = self.client.get('/api/v1/sales/status-info/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        colors = {option['value']: option['color'] for option in response.data}
        self.assertEqual(colors, {'draft': 'gray', 'processed': 'blue', 'closed': 'green', 'cancelled': 'red'})

"""
Test suite for the inventory module
Tests: stock bookkeeping, transfer workflow, transfer endpoints
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.exceptions import InsufficientStock, InvalidStatusTransition
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.locations.models import Worker
from .models import Stock, StockMovement, InventoryTransfer
from .serializers import InventoryTransferSerializer
from .services import (
    add_stock, remove_stock, get_available_quantity,
    approve_transfer, reject_transfer, ship_transfer, receive_transfer, cancel_transfer, transition_transfer
)
from .status import TransferStatus


def quantity_at(product, location):
    return get_available_quantity(product, location)


class StockServiceTests(TestCase):
    """add_stock / remove_stock keep Stock and StockMovement in step"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        self.product = TestDataFactory.create_product(self.company)
        self.reference = TestDataFactory.create_purchase(self.user, self.location)

    def test_add_stock_creates_row_and_movement(self):
        add_stock(self.product, self.location, '5', StockMovement.REASON_PURCHASE, self.reference, self.user)
        self.assertEqual(quantity_at(self.product, self.location), Decimal('5'))
        movement = StockMovement.objects.get(product=self.product)
        self.assertEqual(movement.quantity, Decimal('5'))
        self.assertEqual(movement.balance_after, Decimal('5'))
        self.assertEqual(movement.reference_type, 'purchase')
        self.assertEqual(movement.reference_id, self.reference.pk)

    def test_remove_stock(self):
        TestDataFactory.create_stock(self.product, self.location, 8)
        remove_stock(self.product, self.location, 3, StockMovement.REASON_SALE, self.reference, self.user)
        self.assertEqual(quantity_at(self.product, self.location), Decimal('5'))
        self.assertEqual(StockMovement.objects.get(product=self.product).quantity, Decimal('-3'))

    def test_remove_more_than_available_raises(self):
        TestDataFactory.create_stock(self.product, self.location, 2)
        with self.assertRaises(InsufficientStock) as ctx:
            remove_stock(self.product, self.location, 3, StockMovement.REASON_SALE, self.reference, self.user)
        self.assertEqual(ctx.exception.available, Decimal('2'))
        self.assertEqual(ctx.exception.requested, Decimal('3'))
        self.assertEqual(quantity_at(self.product, self.location), Decimal('2'))
        self.assertFalse(StockMovement.objects.exists())

    def test_untracked_products_are_skipped(self):
        service = TestDataFactory.create_product(self.company, track_inventory=False)
        self.assertIsNone(remove_stock(service, self.location, 4, StockMovement.REASON_SALE, self.reference))
        self.assertIsNone(add_stock(service, self.location, 4, StockMovement.REASON_PURCHASE, self.reference))
        self.assertFalse(Stock.objects.filter(product=service).exists())

    def test_zero_quantity_is_a_no_op(self):
        self.assertIsNone(add_stock(self.product, self.location, 0, StockMovement.REASON_PURCHASE, self.reference))
        self.assertFalse(StockMovement.objects.exists())


class TransferWorkflowTests(TestCase):
    """Status changes and stock effects of the transfer actions"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.company = TestDataFactory.create_company()
        self.origin = TestDataFactory.create_location(company=self.company, name='Origin')
        self.destination = TestDataFactory.create_location(company=self.company, name='Destination')
        self.product = TestDataFactory.create_product(self.company)
        TestDataFactory.create_stock(self.product, self.origin, 10)
        self.transfer = TestDataFactory.create_transfer(self.user, self.origin, self.destination, items=[(self.product, 4)])

    def test_full_flow_moves_stock(self):
        transfer = approve_transfer(self.transfer, self.user)
        self.assertEqual(transfer.status, TransferStatus.APPROVED)
        self.assertEqual(transfer.approved_by, self.user)
        self.assertEqual(quantity_at(self.product, self.origin), Decimal('10'))

        transfer = ship_transfer(transfer, self.user)
        self.assertEqual(transfer.status, TransferStatus.IN_TRANSIT)
        self.assertEqual(quantity_at(self.product, self.origin), Decimal('6'))
        self.assertEqual(quantity_at(self.product, self.destination), Decimal('0'))

        transfer = receive_transfer(transfer, self.user)
        self.assertEqual(transfer.status, TransferStatus.COMPLETED)
        self.assertIsNotNone(transfer.received_at)
        self.assertEqual(quantity_at(self.product, self.destination), Decimal('4'))
        self.assertEqual(StockMovement.objects.filter(reference_type='inventorytransfer').count(), 2)

    def test_partial_ship_and_receive(self):
        item = self.transfer.items.get()
        transfer = approve_transfer(self.transfer, self.user)
        transfer = ship_transfer(transfer, self.user, shipped={str(item.pk): '3'})
        transfer = receive_transfer(transfer, self.user, received={item.pk: '2'})
        item.refresh_from_db()
        self.assertEqual(item.quantity_shipped, Decimal('3'))
        self.assertEqual(item.quantity_received, Decimal('2'))
        self.assertEqual(quantity_at(self.product, self.origin), Decimal('7'))
        self.assertEqual(quantity_at(self.product, self.destination), Decimal('2'))

    def test_ship_more_than_requested_rejected(self):
        item = self.transfer.items.get()
        transfer = approve_transfer(self.transfer, self.user)
        with self.assertRaises(ValueError):
            ship_transfer(transfer, self.user, shipped={item.pk: '5'})
        transfer.refresh_from_db()
        self.assertEqual(transfer.status, TransferStatus.APPROVED)

    def test_ship_without_stock_rolls_back(self):
        TestDataFactory.create_stock(self.product, self.origin, 1)
        transfer = approve_transfer(self.transfer, self.user)
        with self.assertRaises(InsufficientStock):
            ship_transfer(transfer, self.user)
        transfer.refresh_from_db()
        self.assertEqual(transfer.status, TransferStatus.APPROVED)
        self.assertIsNone(transfer.items.get().quantity_shipped)
        self.assertEqual(quantity_at(self.product, self.origin), Decimal('1'))

    def test_cancel_in_transit_returns_stock(self):
        transfer = ship_transfer(approve_transfer(self.transfer, self.user), self.user)
        self.assertEqual(quantity_at(self.product, self.origin), Decimal('6'))
        transfer = cancel_transfer(transfer, self.user, 'Truck broke down')
        self.assertEqual(transfer.status, TransferStatus.CANCELLED)
        self.assertEqual(transfer.cancellation_reason, 'Truck broke down')
        self.assertEqual(quantity_at(self.product, self.origin), Decimal('10'))

    def test_cancel_pending_touches_no_stock(self):
        cancel_transfer(self.transfer, self.user)
        self.assertFalse(StockMovement.objects.exists())

    def test_reject_is_final(self):
        transfer = reject_transfer(self.transfer, self.user, 'Not needed')
        self.assertEqual(transfer.status, TransferStatus.REJECTED)
        self.assertEqual(transfer.rejection_reason, 'Not needed')
        with self.assertRaises(InvalidStatusTransition):
            approve_transfer(transfer, self.user)
        with self.assertRaises(InvalidStatusTransition):
            cancel_transfer(transfer, self.user)

    def test_completed_cannot_be_cancelled(self):
        transfer = receive_transfer(ship_transfer(approve_transfer(self.transfer, self.user), self.user), self.user)
        with self.assertRaises(InvalidStatusTransition):
            cancel_transfer(transfer, self.user)
        self.assertEqual(quantity_at(self.product, self.destination), Decimal('4'))

    def test_cannot_skip_approval(self):
        with self.assertRaises(InvalidStatusTransition):
            ship_transfer(self.transfer, self.user)

    def test_transition_dispatch(self):
        transfer = transition_transfer(self.transfer, 'approved', self.user)
        self.assertEqual(transfer.status, TransferStatus.APPROVED)
        with self.assertRaises(InvalidStatusTransition):
            transition_transfer(transfer, 'pending', self.user)

    def test_status_change_is_audited(self):
        from backend.core.models import AuditLog
        approve_transfer(self.transfer, self.user)
        log = AuditLog.objects.get(action='status_change', model_name='InventoryTransfer')
        self.assertEqual(log.changes, {'from': 'pending', 'to': 'approved'})
        self.assertEqual(log.company_id, self.company.pk)

    def test_edit_through_stale_copy_keeps_approval(self):
        stale = InventoryTransfer.objects.get(pk=self.transfer.pk)
        approve_transfer(self.transfer, self.user)

        serializer = InventoryTransferSerializer(stale, data={'notes': 'x'}, partial=True, context={'company': self.company})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        serializer.save()

        transfer = InventoryTransfer.objects.get(pk=self.transfer.pk)
        self.assertEqual(transfer.status, TransferStatus.APPROVED)
        self.assertEqual(transfer.approved_by, self.user)
        self.assertIsNotNone(transfer.approved_at)
        self.assertEqual(transfer.notes, 'x')

    def test_stale_save_after_shipping_keeps_stock_state(self):
        transfer = approve_transfer(self.transfer, self.user)
        stale = InventoryTransfer.objects.get(pk=transfer.pk)
        ship_transfer(transfer, self.user)
        stale.notes = 'late note'
        stale.save()

        transfer = InventoryTransfer.objects.get(pk=self.transfer.pk)
        self.assertEqual(transfer.status, TransferStatus.IN_TRANSIT)
        self.assertIsNotNone(transfer.shipped_at)
        self.assertEqual(quantity_at(self.product, self.origin), Decimal('6'))


class TransferAPITests(TestCase):
    """Inventory transfer endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.origin = TestDataFactory.create_location(company=self.company, name='Origin')
        self.destination = TestDataFactory.create_location(company=self.company, name='Destination')
        self.product = TestDataFactory.create_product(self.company)
        TestDataFactory.create_stock(self.product, self.origin, 10)

        self.manager = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user()
        TestDataFactory.create_worker(self.manager, self.company, role=Worker.ROLE_MANAGER)
        TestDataFactory.create_worker(self.staff, self.company, role=Worker.ROLE_STAFF)

        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)
        self.client.use_tenant(company=self.company)

    def _payload(self, **overrides):
        data = {
            'from_location': self.origin.pk,
            'to_location': self.destination.pk,
            'notes': 'Restock',
            'items': [{'product': self.product.pk, 'quantity_requested': '4'}],
        }
        data.update(overrides)
        return data

    def _create(self):
        response = self.client.post('/api/v1/inventory-transfers/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_create_transfer(self):
        data = self._create()
        self.assertEqual(data['status'], 'pending')
        self.assertEqual(data['allowed_transitions'], ['approved', 'rejected', 'cancelled'])
        self.assertEqual(len(data['items']), 1)
        self.assertTrue(data['transfer_number'].startswith('TRF'))
        self.assertEqual(InventoryTransfer.objects.get(pk=data['id']).requested_by, self.staff)

    def test_same_location_rejected(self):
        response = self.client.post(
            '/api/v1/inventory-transfers/', self._payload(to_location=self.origin.pk), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('to_location', response.data)

    def test_items_required(self):
        response = self.client.post('/api/v1/inventory-transfers/', self._payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_foreign_location_rejected(self):
        foreign = TestDataFactory.create_location()
        response = self.client.post(
            '/api/v1/inventory-transfers/', self._payload(to_location=foreign.pk), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_cannot_be_written_on_create(self):
        response = self.client.post(
            '/api/v1/inventory-transfers/', self._payload(status='completed'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')

    def test_staff_cannot_approve(self):
        data = self._create()
        response = self.client.post(f"/api/v1/inventory-transfers/{data['id']}/approve/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post(
            f"/api/v1/inventory-transfers/{data['id']}/transition/", {'status': 'approved'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_approves_then_staff_ships_and_receives(self):
        data = self._create()
        self.client.authenticate_user(self.manager)
        response = self.client.post(f"/api/v1/inventory-transfers/{data['id']}/approve/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')

        self.client.authenticate_user(self.staff)
        response = self.client.post(f"/api/v1/inventory-transfers/{data['id']}/ship/", {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'in_transit')

        response = self.client.post(
            f"/api/v1/inventory-transfers/{data['id']}/transition/", {'status': 'completed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(quantity_at(self.product, self.destination), Decimal('4'))

    def test_illegal_transition_is_unprocessable(self):
        data = self._create()
        response = self.client.post(f"/api/v1/inventory-transfers/{data['id']}/receive/", {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertIn('error', response.data)

    def test_unknown_status_is_bad_request(self):
        data = self._create()
        response = self.client.post(
            f"/api/v1/inventory-transfers/{data['id']}/transition/", {'status': 'teleported'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_only_while_pending(self):
        data = self._create()
        response = self.client.patch(
            f"/api/v1/inventory-transfers/{data['id']}/", {'notes': 'Urgent'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Urgent')

        transfer = InventoryTransfer.objects.get(pk=data['id'])
        approve_transfer(transfer, self.manager)
        response = self.client.patch(
            f"/api/v1/inventory-transfers/{data['id']}/", {'notes': 'Too late'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_delete_cancels(self):
        data = self._create()
        response = self.client.delete(f"/api/v1/inventory-transfers/{data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertTrue(InventoryTransfer.objects.filter(pk=data['id']).exists())

    def test_list_filters(self):
        data = self._create()
        response = self.client.get('/api/v1/inventory-transfers/?status=pending')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], data['id'])

        response = self.client.get('/api/v1/inventory-transfers/?status=completed')
        self.assertEqual(response.data['count'], 0)

        response = self.client.get('/api/v1/inventory-transfers/?status=bogus')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(f'/api/v1/inventory-transfers/?location={self.destination.pk}')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/inventory-transfers/?location=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_other_company_transfer_not_found(self):
        other_company = TestDataFactory.create_company()
        a = TestDataFactory.create_location(company=other_company)
        b = TestDataFactory.create_location(company=other_company)
        foreign = TestDataFactory.create_transfer(self.staff, a, b)
        response = self.client.get(f'/api/v1/inventory-transfers/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_info(self):
        response = self.client.get('/api/v1/inventory-transfers/status-info/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        values = [option['value'] for option in response.data]
        self.assertEqual(values, ['pending', 'approved', 'rejected', 'in_transit', 'completed', 'cancelled'])

    def test_stock_list_requires_location(self):
        response = self.client.get('/api/v1/stock/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.use_tenant(company=self.company, location=self.origin)
        response = self.client.get('/api/v1/stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(Decimal(response.data['results'][0]['quantity']), Decimal('10'))

"""
Test suite for the core module
Tests: status machines, status-tracked documents, query parameter parsing, audit logging, auth endpoints
"""
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework.request import Request
from rest_framework.test import APIRequestFactory

from backend.core.exceptions import UnknownStatus, InvalidStatusTransition
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log, generate_document_number, query_param_id
from backend.inventory.status import TransferStatus, transfer_status_machine, can_edit, can_cancel
from backend.locations.models import Worker
from backend.purchasing.models import Purchase
from backend.purchasing.status import PurchaseStatus, purchase_status_machine, is_editable, affects_stock
from backend.sales.status import SaleStatus, sale_status_machine, active

MACHINES = [purchase_status_machine, sale_status_machine, transfer_status_machine]


class StatusMachineTests(SimpleTestCase):
    """Rules shared by every document lifecycle"""

    def test_no_self_transitions(self):
        for machine in MACHINES:
            for status_value in machine.status_class:
                with self.subTest(machine=machine, status=status_value):
                    self.assertFalse(machine.can_transition(status_value, status_value))

    def test_only_closed_sale_leaves_a_terminal_looking_state(self):
        """Statuses outside the happy path's end have no exits, except a closed sale"""
        self.assertTrue(purchase_status_machine.is_terminal(PurchaseStatus.RECEIVED))
        self.assertTrue(sale_status_machine.is_terminal(SaleStatus.CANCELLED))
        for terminal in (TransferStatus.REJECTED, TransferStatus.COMPLETED, TransferStatus.CANCELLED):
            self.assertTrue(transfer_status_machine.is_terminal(terminal))
        self.assertEqual(sale_status_machine.allowed_targets(SaleStatus.CLOSED), [SaleStatus.PROCESSED])

    def test_coerce_accepts_strings_and_members(self):
        self.assertIs(purchase_status_machine.coerce('ordered'), PurchaseStatus.ORDERED)
        self.assertIs(purchase_status_machine.coerce(PurchaseStatus.ORDERED), PurchaseStatus.ORDERED)

    def test_unknown_status_fails_fast(self):
        with self.assertRaises(UnknownStatus):
            purchase_status_machine.coerce('shipped')
        with self.assertRaises(ValueError):
            sale_status_machine.can_transition('draft', 'paid')

    def test_ensure_transition_raises_with_both_statuses(self):
        with self.assertRaises(InvalidStatusTransition) as ctx:
            purchase_status_machine.ensure_transition('draft', 'in_transit')
        self.assertEqual(ctx.exception.current, PurchaseStatus.DRAFT)
        self.assertEqual(ctx.exception.target, PurchaseStatus.IN_TRANSIT)

    def test_initial_status(self):
        self.assertEqual(purchase_status_machine.initial, PurchaseStatus.DRAFT)
        self.assertEqual(sale_status_machine.initial, SaleStatus.DRAFT)
        self.assertEqual(transfer_status_machine.initial, TransferStatus.PENDING)

    def test_options_include_display_tables_and_transitions(self):
        options = purchase_status_machine.options(description={PurchaseStatus.DRAFT: 'Editable'})
        self.assertEqual([option['value'] for option in options], ['draft', 'ordered', 'in_transit', 'received'])
        self.assertEqual(options[0]['label'], 'Draft')
        self.assertEqual(options[0]['description'], 'Editable')
        self.assertIsNone(options[1]['description'])
        self.assertEqual(options[0]['allowed_transitions'], ['ordered'])
        self.assertEqual(options[3]['allowed_transitions'], [])

    def test_advance_past_end_raises(self):
        with self.assertRaises(InvalidStatusTransition):
            purchase_status_machine.advance_target(PurchaseStatus.RECEIVED)
        with self.assertRaises(InvalidStatusTransition):
            purchase_status_machine.revert_target(PurchaseStatus.DRAFT)


class PurchaseStatusMachineTests(SimpleTestCase):

    def test_navigation_round_trips(self):
        machine = purchase_status_machine
        self.assertEqual(machine.next(machine.previous(PurchaseStatus.ORDERED)), PurchaseStatus.ORDERED)
        self.assertEqual(machine.previous(machine.next(PurchaseStatus.ORDERED)), PurchaseStatus.ORDERED)
        self.assertIsNone(machine.next(PurchaseStatus.RECEIVED))
        self.assertIsNone(machine.previous(PurchaseStatus.DRAFT))

    def test_happy_path_is_legal_step_by_step(self):
        path = [PurchaseStatus.DRAFT, PurchaseStatus.ORDERED, PurchaseStatus.IN_TRANSIT, PurchaseStatus.RECEIVED]
        for current, target in zip(path, path[1:]):
            self.assertTrue(purchase_status_machine.can_transition(current, target))

    def test_no_skipping(self):
        self.assertFalse(purchase_status_machine.can_transition('draft', 'in_transit'))
        self.assertFalse(purchase_status_machine.can_transition('draft', 'received'))
        self.assertFalse(purchase_status_machine.can_transition('ordered', 'received'))

    def test_nothing_leaves_received(self):
        for target in PurchaseStatus:
            self.assertFalse(purchase_status_machine.can_transition(PurchaseStatus.RECEIVED, target))

    def test_backward_steps(self):
        self.assertTrue(purchase_status_machine.can_transition('ordered', 'draft'))
        self.assertTrue(purchase_status_machine.can_transition('in_transit', 'ordered'))

    def test_editable_and_stock_flags(self):
        self.assertEqual([s for s in PurchaseStatus if is_editable(s)], [PurchaseStatus.DRAFT])
        self.assertEqual([s for s in PurchaseStatus if affects_stock(s)], [PurchaseStatus.RECEIVED])


class SaleStatusMachineTests(SimpleTestCase):

    def test_transitions(self):
        machine = sale_status_machine
        self.assertTrue(machine.can_transition('draft', 'processed'))
        self.assertTrue(machine.can_transition('draft', 'cancelled'))
        self.assertTrue(machine.can_transition('processed', 'closed'))
        self.assertTrue(machine.can_transition('processed', 'draft'))
        self.assertTrue(machine.can_transition('processed', 'cancelled'))
        self.assertTrue(machine.can_transition('closed', 'processed'))
        self.assertFalse(machine.can_transition('draft', 'closed'))
        self.assertFalse(machine.can_transition('closed', 'cancelled'))

    def test_nothing_leaves_cancelled(self):
        for target in SaleStatus:
            self.assertFalse(sale_status_machine.can_transition(SaleStatus.CANCELLED, target))

    def test_navigation_ignores_cancellation(self):
        self.assertEqual(sale_status_machine.next(SaleStatus.PROCESSED), SaleStatus.CLOSED)
        self.assertEqual(sale_status_machine.previous(SaleStatus.CLOSED), SaleStatus.PROCESSED)
        self.assertIsNone(sale_status_machine.next(SaleStatus.CANCELLED))
        self.assertIsNone(sale_status_machine.previous(SaleStatus.CANCELLED))

    def test_active_excludes_cancelled(self):
        self.assertNotIn(SaleStatus.CANCELLED, active())
        self.assertEqual(len(active()), 3)


class TransferStatusMachineTests(SimpleTestCase):

    def test_rejection_is_terminal(self):
        self.assertTrue(transfer_status_machine.can_transition('pending', 'rejected'))
        self.assertFalse(transfer_status_machine.can_transition('rejected', 'pending'))
        self.assertTrue(transfer_status_machine.is_terminal('rejected'))

    def test_edit_and_cancel_flags(self):
        self.assertEqual([s for s in TransferStatus if can_edit(s)], [TransferStatus.PENDING])
        self.assertEqual(
            [s for s in TransferStatus if can_cancel(s)],
            [TransferStatus.PENDING, TransferStatus.APPROVED, TransferStatus.IN_TRANSIT]
        )

    def test_navigation_follows_happy_path(self):
        self.assertEqual(transfer_status_machine.next(TransferStatus.APPROVED), TransferStatus.IN_TRANSIT)
        self.assertIsNone(transfer_status_machine.next(TransferStatus.REJECTED))
        self.assertIsNone(transfer_status_machine.previous(TransferStatus.CANCELLED))


class StatusTrackedModelTests(TestCase):
    """Documents refuse status writes their machine does not allow"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.location = TestDataFactory.create_location()

    def test_document_must_be_created_in_initial_status(self):
        with self.assertRaises(InvalidStatusTransition):
            Purchase.objects.create(
                company=self.location.company,
                location=self.location,
                status=PurchaseStatus.ORDERED,
                created_by=self.user
            )
        self.assertFalse(Purchase.objects.exists())

    def test_direct_assignment_of_illegal_status_is_refused(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        purchase.status = PurchaseStatus.RECEIVED
        with self.assertRaises(InvalidStatusTransition):
            purchase.save()
        purchase.refresh_from_db()
        self.assertEqual(purchase.status, PurchaseStatus.DRAFT)

    def test_legal_change_is_saved(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        purchase.status = PurchaseStatus.ORDERED
        purchase.save()
        reloaded = Purchase.objects.get(pk=purchase.pk)
        self.assertEqual(reloaded.status, PurchaseStatus.ORDERED)
        reloaded.status = PurchaseStatus.RECEIVED
        with self.assertRaises(InvalidStatusTransition):
            reloaded.save()

    def test_unknown_status_value_is_refused(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        purchase.status = 'lost'
        with self.assertRaises(UnknownStatus):
            purchase.save()

    def test_document_number_is_generated(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        self.assertTrue(purchase.purchase_number.startswith('PUR-'))
        self.assertTrue(generate_document_number('TRF').startswith('TRF-'))

    def test_stale_copy_does_not_write_status_back(self):
        purchase = TestDataFactory.create_purchase(self.user, self.location)
        stale = Purchase.objects.get(pk=purchase.pk)
        purchase.status = PurchaseStatus.ORDERED
        purchase.save()

        stale.bill_number = 'INV-7'
        stale.save()
        reloaded = Purchase.objects.get(pk=purchase.pk)
        self.assertEqual(reloaded.status, PurchaseStatus.ORDERED)
        self.assertEqual(reloaded.bill_number, 'INV-7')


class QueryParamIdTests(SimpleTestCase):
    """Integer ids from list filter parameters"""

    def _request(self, **params):
        return Request(APIRequestFactory().get('/', params))

    def test_absent_or_blank_is_none(self):
        self.assertIsNone(query_param_id(self._request(), 'location'))
        self.assertIsNone(query_param_id(self._request(location=''), 'location'))

    def test_valid_id(self):
        self.assertEqual(query_param_id(self._request(location='12'), 'location'), 12)

    def test_malformed_ids_raise(self):
        for raw in ('abc', '0', '-3', '1.5'):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    query_param_id(self._request(location=raw), 'location')


class AuditLogTests(TestCase):

    def test_create_audit_log(self):
        user = TestDataFactory.create_user()
        log = create_audit_log(
            user=user,
            action='status_change',
            model_name='Purchase',
            object_id=5,
            object_reference='PUR-1',
            company_id=3,
            changes={'from': 'draft', 'to': 'ordered'}
        )
        self.assertIsNotNone(log)
        self.assertEqual(log.object_id, '5')
        self.assertEqual(log.company_id, 3)
        self.assertEqual(log.user, user)

    def test_missing_fields_skip_logging(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Purchase'))
        self.assertEqual(AuditLog.objects.count(), 0)


class AuthAPITests(TestCase):
    """Login, refresh and the current user endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='alice', password='secret-pass-123')
        self.company = TestDataFactory.create_company(name='Acme')
        TestDataFactory.create_worker(self.user, self.company, role=Worker.ROLE_MANAGER)
        self.client = AuthenticatedAPIClient()

    def test_login_and_refresh(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'alice', 'password': 'secret-pass-123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        refresh = self.client.post('/api/v1/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(refresh.status_code, status.HTTP_200_OK)
        self.assertIn('access', refresh.data)

    def test_login_with_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'alice', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_lists_companies_and_roles(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'alice')
        self.assertEqual(len(response.data['companies']), 1)
        self.assertEqual(response.data['companies'][0]['company']['name'], 'Acme')
        self.assertEqual(response.data['companies'][0]['role'], Worker.ROLE_MANAGER)

    def test_audit_logs_are_scoped_to_current_company(self):
        other = TestDataFactory.create_company()
        create_audit_log(user=self.user, action='create', model_name='Sale', object_id=1, company_id=self.company.pk)
        create_audit_log(user=self.user, action='create', model_name='Sale', object_id=2, company_id=other.pk)
        self.client.authenticate_user(self.user)
        self.client.use_tenant(company=self.company)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['object_id'], '1')

    def test_audit_logs_require_tenant(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

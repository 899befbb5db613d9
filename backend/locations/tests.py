"""
Test suite for the locations module
Tests: tenant context, tenant middleware, permissions, location endpoints
"""
import threading

from django.test import SimpleTestCase, TestCase, RequestFactory
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.locations.context import current_company, current_location, current_company_id, current_location_id
from backend.locations.middleware import SetCurrentCompanyMiddleware, SetCurrentLocationMiddleware
from backend.locations.models import Location, Worker
from backend.locations.permissions import (
    IsCompanyMember, can_view_location, can_update_location, can_delete_location
)


class FakeCompany:
    def __init__(self, pk, name):
        self.pk = pk
        self.name = name


class TenantContextTests(SimpleTestCase):

    def tearDown(self):
        current_company.clear()
        current_location.clear()

    def test_set_and_read(self):
        current_company.set(FakeCompany(7, 'Acme'))
        self.assertEqual(current_company.id(), 7)
        self.assertEqual(current_company_id(), 7)
        self.assertEqual(current_company.name(), 'Acme')
        self.assertTrue(current_company.exists())

    def test_clear(self):
        current_company.set(FakeCompany(7, 'Acme'))
        current_company.clear()
        self.assertIsNone(current_company.get())
        self.assertIsNone(current_company.id())
        self.assertIsNone(current_company.name())
        self.assertFalse(current_company.exists())

    def test_clear_when_unset(self):
        current_location.clear()
        self.assertIsNone(current_location_id())

    def test_last_write_wins(self):
        current_company.set(FakeCompany(1, 'First'))
        current_company.set(FakeCompany(2, 'Second'))
        self.assertEqual(current_company.id(), 2)

    def test_slots_are_independent(self):
        current_company.set(FakeCompany(1, 'Acme'))
        self.assertIsNone(current_location.get())

    def test_threads_do_not_share_context(self):
        current_company.set(FakeCompany(1, 'Main'))
        seen = {}

        def worker():
            seen['before'] = current_company.id()
            current_company.set(FakeCompany(2, 'Thread'))
            seen['after'] = current_company.id()

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        self.assertIsNone(seen['before'])
        self.assertEqual(seen['after'], 2)
        self.assertEqual(current_company.id(), 1)


class TenantMiddlewareTests(TestCase):
    """Middleware resolves headers and always clears the context afterwards"""

    def setUp(self):
        self.factory = RequestFactory()
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        self.seen = {}

    def _view(self, request):
        self.seen['company'] = current_company.id()
        self.seen['location'] = current_location.id()
        return 'response'

    def _run(self, **headers):
        request = self.factory.get('/', **headers)
        middleware = SetCurrentCompanyMiddleware(SetCurrentLocationMiddleware(self._view))
        response = middleware(request)
        return request, response

    def test_headers_set_context_for_the_request_only(self):
        request, response = self._run(HTTP_X_COMPANY_ID=str(self.company.pk), HTTP_X_LOCATION_ID=str(self.location.pk))
        self.assertEqual(response, 'response')
        self.assertEqual(self.seen, {'company': self.company.pk, 'location': self.location.pk})
        self.assertEqual(request.company.pk, self.company.pk)
        self.assertEqual(request.location.pk, self.location.pk)
        self.assertIsNone(current_company.get())
        self.assertIsNone(current_location.get())

    def test_missing_headers_leave_context_unset(self):
        self._run()
        self.assertEqual(self.seen, {'company': None, 'location': None})

    def test_malformed_header_is_ignored(self):
        with self.assertLogs('backend.locations', level='WARNING'):
            self._run(HTTP_X_COMPANY_ID='abc')
        self.assertIsNone(self.seen['company'])

    def test_unknown_or_inactive_company_is_ignored(self):
        inactive = TestDataFactory.create_company(is_active=False)
        self._run(HTTP_X_COMPANY_ID=str(inactive.pk))
        self.assertIsNone(self.seen['company'])
        self._run(HTTP_X_COMPANY_ID='999999')
        self.assertIsNone(self.seen['company'])

    def test_location_of_another_company_is_ignored(self):
        foreign = TestDataFactory.create_location()
        with self.assertLogs('backend.locations', level='WARNING'):
            self._run(HTTP_X_COMPANY_ID=str(self.company.pk), HTTP_X_LOCATION_ID=str(foreign.pk))
        self.assertEqual(self.seen['company'], self.company.pk)
        self.assertIsNone(self.seen['location'])

    def test_context_cleared_when_view_raises(self):
        def failing_view(request):
            raise RuntimeError('boom')

        middleware = SetCurrentCompanyMiddleware(SetCurrentLocationMiddleware(failing_view))
        request = self.factory.get('/', HTTP_X_COMPANY_ID=str(self.company.pk))
        with self.assertRaises(RuntimeError):
            middleware(request)
        self.assertIsNone(current_company.get())

    def test_deactivated_company_is_not_served_from_cache(self):
        self._run(HTTP_X_COMPANY_ID=str(self.company.pk))
        self.assertEqual(self.seen['company'], self.company.pk)
        self.company.is_active = False
        self.company.save()
        self._run(HTTP_X_COMPANY_ID=str(self.company.pk))
        self.assertIsNone(self.seen['company'])


class TenantPermissionTests(TestCase):

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company)
        self.admin = TestDataFactory.create_user()
        self.manager = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user()
        self.outsider = TestDataFactory.create_user()
        TestDataFactory.create_worker(self.admin, self.company, role=Worker.ROLE_ADMIN)
        TestDataFactory.create_worker(self.manager, self.company, role=Worker.ROLE_MANAGER)
        TestDataFactory.create_worker(self.staff, self.company, role=Worker.ROLE_STAFF)

    def tearDown(self):
        current_company.clear()

    def test_no_tenant_means_deny(self):
        request = RequestFactory().get('/')
        request.user = self.admin
        self.assertFalse(IsCompanyMember().has_permission(request, None))

    def test_member_allowed_outsider_denied(self):
        current_company.set(self.company)
        request = RequestFactory().get('/')
        request.user = self.staff
        self.assertTrue(IsCompanyMember().has_permission(request, None))
        request.user = self.outsider
        self.assertFalse(IsCompanyMember().has_permission(request, None))

    def test_location_policy(self):
        for user, view, update, delete in [
            (self.admin, True, True, True),
            (self.manager, True, True, False),
            (self.staff, True, False, False),
            (self.outsider, False, False, False),
        ]:
            with self.subTest(user=user.username):
                self.assertEqual(can_view_location(user, self.location), view)
                self.assertEqual(can_update_location(user, self.location), update)
                self.assertEqual(can_delete_location(user, self.location), delete)

    def test_inactive_worker_is_not_a_member(self):
        Worker.objects.filter(user=self.staff).update(is_active=False)
        self.assertFalse(can_view_location(self.staff, self.location))


class LocationAPITests(TestCase):
    """Tenant-scoped location endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.location = TestDataFactory.create_location(company=self.company, name='Main Store')
        self.admin = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user()
        TestDataFactory.create_worker(self.admin, self.company, role=Worker.ROLE_ADMIN)
        TestDataFactory.create_worker(self.staff, self.company, role=Worker.ROLE_STAFF)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.client.use_tenant(company=self.company)

    def test_request_without_tenant_header_is_denied(self):
        self.client.use_tenant()
        response = self.client.get('/api/v1/locations/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_is_scoped_to_current_company(self):
        TestDataFactory.create_location(name='Elsewhere')
        response = self.client.get('/api/v1/locations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['name'] for item in response.data], ['Main Store'])

    def test_context_endpoint(self):
        self.client.use_tenant(company=self.company, location=self.location)
        response = self.client.get('/api/v1/context/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company']['id'], self.company.pk)
        self.assertEqual(response.data['location']['id'], self.location.pk)
        self.assertEqual(response.data['role'], Worker.ROLE_ADMIN)

    def test_companies_endpoint_needs_no_tenant(self):
        self.client.use_tenant()
        response = self.client.get('/api/v1/companies/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_create_location(self):
        response = self.client.post('/api/v1/locations/', {'name': 'Warehouse'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Location.objects.get(pk=response.data['id']).company, self.company)

    def test_staff_cannot_create_or_update(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/locations/', {'name': 'Warehouse'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.patch(f'/api/v1/locations/{self.location.pk}/', {'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_location_of_other_company_is_not_found(self):
        foreign = TestDataFactory.create_location()
        response = self.client.get(f'/api/v1/locations/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_location(self):
        spare = TestDataFactory.create_location(company=self.company)
        response = self.client.delete(f'/api/v1/locations/{spare.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Location.objects.filter(pk=spare.pk).exists())

    def test_delete_location_with_documents_conflicts(self):
        TestDataFactory.create_purchase(self.admin, self.location)
        response = self.client.delete(f'/api/v1/locations/{self.location.pk}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Location.objects.filter(pk=self.location.pk).exists())

"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.locations.models import Company, Location, Worker
from backend.catalog.models import Product
from backend.parties.models import Customer, Supplier
from backend.purchasing.models import Purchase, PurchaseItem
from backend.sales.models import Sale, SaleItem
from backend.inventory.models import Stock, InventoryTransfer, InventoryTransferItem
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
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )
        return user

    @staticmethod
    def create_company(name=None, is_active=True):
        """Create a test company"""
        if not name:
            name = f'Company_{TestDataFactory.random_string(6)}'
        return Company.objects.create(
            name=name,
            business_name=f'{name} Ltd',
            tax_id=TestDataFactory.random_string(10).upper(),
            is_active=is_active
        )

    @staticmethod
    def create_location(company=None, name=None, is_active=True):
        """Create a test location"""
        if not company:
            company = TestDataFactory.create_company()
        if not name:
            name = f'Location_{TestDataFactory.random_string(6)}'
        return Location.objects.create(
            company=company,
            name=name,
            address=f'Test Address {name}',
            phone='1234567890',
            is_active=is_active
        )

    @staticmethod
    def create_worker(user, company, role=Worker.ROLE_STAFF, locations=None, is_active=True):
        """Make ``user`` a worker of ``company``"""
        worker = Worker.objects.create(user=user, company=company, role=role, is_active=is_active)
        if locations:
            worker.locations.set(locations)
        return worker

    @staticmethod
    def create_product(company, name=None, sku=None, track_inventory=True):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        return Product.objects.create(
            company=company,
            name=name,
            sku=sku,
            track_inventory=track_inventory,
            low_stock_threshold=10
        )

    @staticmethod
    def create_stock(product, location, quantity):
        """Set the on-hand quantity of a product at a location"""
        stock, _created = Stock.objects.update_or_create(
            product=product,
            location=location,
            defaults={'quantity': Decimal(quantity)}
        )
        return stock

    @staticmethod
    def create_customer(company, name=None, phone=None, email=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'9{random.randint(100000000, 999999999)}'
        if not email:
            email = f"{name.lower().replace(' ', '.')}@test.com"
        return Customer.objects.create(company=company, name=name, phone=phone, email=email)

    @staticmethod
    def create_supplier(company, name=None, phone=None, email=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'9{random.randint(100000000, 999999999)}'
        if not email:
            email = f"{name.lower().replace(' ', '.')}@test.com"
        return Supplier.objects.create(company=company, name=name, phone=phone, email=email)

    @staticmethod
    def create_purchase(user, location, supplier=None, items=None):
        """
        Create a draft purchase at ``location``.

        ``items`` is a list of ``(product, quantity, unit_cost)`` tuples.
        """
        if not supplier:
            supplier = TestDataFactory.create_supplier(location.company)
        purchase = Purchase.objects.create(
            company=location.company,
            location=location,
            supplier=supplier,
            created_by=user
        )
        for product, quantity, unit_cost in items or []:
            PurchaseItem.objects.create(
                purchase=purchase,
                product=product,
                quantity=Decimal(quantity),
                unit_cost=Decimal(unit_cost)
            )
        return purchase

    @staticmethod
    def create_sale(user, location, customer=None, items=None):
        """
        Create a draft sale at ``location``.

        ``items`` is a list of ``(product, quantity, unit_price)`` tuples.
        """
        sale = Sale.objects.create(
            company=location.company,
            location=location,
            customer=customer,
            created_by=user
        )
        for product, quantity, unit_price in items or []:
            SaleItem.objects.create(
                sale=sale,
                product=product,
                quantity=Decimal(quantity),
                unit_price=Decimal(unit_price)
            )
        return sale

    @staticmethod
    def create_transfer(user, from_location, to_location, items=None):
        """
        Create a pending transfer between two locations of one company.

        ``items`` is a list of ``(product, quantity_requested)`` tuples.
        """
        transfer = InventoryTransfer.objects.create(
            company=from_location.company,
            from_location=from_location,
            to_location=to_location,
            requested_by=user
        )
        for product, quantity in items or []:
            InventoryTransferItem.objects.create(
                transfer=transfer,
                product=product,
                quantity_requested=Decimal(quantity)
            )
        return transfer


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication and tenant header helpers"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._auth_headers = {}
        self._tenant_headers = {}

    def _apply(self):
        self.credentials(**self._auth_headers, **self._tenant_headers)

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self._auth_headers = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        self._apply()
        return self

    def use_tenant(self, company=None, location=None):
        """Send X-Company-ID / X-Location-ID on every following request"""
        self._tenant_headers = {}
        if company is not None:
            self._tenant_headers['HTTP_X_COMPANY_ID'] = str(company.pk)
        if location is not None:
            self._tenant_headers['HTTP_X_LOCATION_ID'] = str(location.pk)
        self._apply()
        return self

    def logout(self):
        """Remove authentication and tenant headers"""
        self._auth_headers = {}
        self._tenant_headers = {}
        self.credentials()

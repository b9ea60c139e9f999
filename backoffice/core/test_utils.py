"""
Test utilities and factories for creating test data
"""
import random
import string
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backoffice.approvals.models import ProductRequest, ProductRequestDetails, SalesRequest, SalesRequestItem
from backoffice.catalog.models import LongSetProduct, LongSetProductPart, Product
from backoffice.core.utils import next_document_number
from backoffice.khata.models import ApprovalStatus, Karigar, Vyapari
from backoffice.notifications.models import Notification
from backoffice.sales.models import Transaction

User = get_user_model()

CLOUDINARY_IMAGE = 'https://res.cloudinary.com/demo/image/upload/v1748228777/jewelry-inventory/{name}.png'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def cloudinary_url(name=None):
        """A delivery URL inside the configured Cloudinary folder"""
        return CLOUDINARY_IMAGE.format(name=name or TestDataFactory.random_string(8).lower())

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='user', is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_admin(username=None, **kwargs):
        """Create a user holding the admin role"""
        if not username:
            username = f'admin_{TestDataFactory.random_string(6)}'
        return TestDataFactory.create_user(username=username, role='admin', **kwargs)

    @staticmethod
    def create_product(name=None, sku=None, price=Decimal('500.00'), stock=10, category='Necklace',
                       material='Gold', image_url=None, supplier=None, cost_price=None, low_stock_threshold=10):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        return Product.objects.create(
            name=name,
            sku=sku,
            price=price,
            cost_price=cost_price,
            stock=stock,
            category=category,
            material=material,
            image_url=image_url if image_url is not None else TestDataFactory.cloudinary_url(),
            supplier=supplier,
            low_stock_threshold=low_stock_threshold,
        )

    @staticmethod
    def create_long_set(name=None, parts=None, **kwargs):
        """Create a long set product with ``parts`` given as dicts"""
        product = TestDataFactory.create_product(name=name, **kwargs)
        long_set = LongSetProduct.objects.create(product=product)
        for position, part in enumerate(parts or [{'part_name': 'Pendant'}]):
            LongSetProductPart.objects.create(long_set_product=long_set, position=position, **part)
        return product

    @staticmethod
    def create_vyapari(name=None, approved=True, created_by=None):
        """Create a test trader"""
        if not name:
            name = f'Vyapari_{TestDataFactory.random_string(6)}'
        return Vyapari.objects.create(
            name=name,
            phone='9876543210',
            approval_status=ApprovalStatus.APPROVED if approved else ApprovalStatus.PENDING,
            created_by=created_by,
        )

    @staticmethod
    def create_karigar(name=None, approved=True, created_by=None):
        """Create a test artisan"""
        if not name:
            name = f'Karigar_{TestDataFactory.random_string(6)}'
        return Karigar.objects.create(
            name=name,
            phone='9876501234',
            specialization='Kundan',
            approval_status=ApprovalStatus.APPROVED if approved else ApprovalStatus.PENDING,
            created_by=created_by,
        )

    @staticmethod
    def create_product_request(requester, request_type='add', product=None, is_long_set=False, **details):
        """Create a pending product request with the given proposed details"""
        product_request = ProductRequest.objects.create(
            request_id=next_document_number('PR'),
            request_type=request_type,
            product=product,
            is_long_set=is_long_set,
            requester=requester,
        )
        if request_type != 'delete':
            ProductRequestDetails.objects.create(request=product_request, **details)
        return product_request

    @staticmethod
    def create_sales_request(requester, items, customer='Walk-in Customer', vyapari=None):
        """Create a pending sales request; ``items`` is a list of (product, quantity)"""
        sales_request = SalesRequest.objects.create(
            request_id=next_document_number('PR'),
            customer=customer,
            vyapari=vyapari,
            requester=requester,
        )
        total = Decimal('0.00')
        for product, quantity in items:
            line = SalesRequestItem.objects.create(
                sales_request=sales_request,
                product=product,
                product_name=product.name,
                sku=product.sku,
                category=product.category,
                material=product.material,
                image_url=product.image_url,
                quantity=quantity,
                price=product.price,
            )
            total += line.total
        sales_request.total_value = total
        sales_request.save()
        return sales_request

    @staticmethod
    def create_transaction(total_amount, items=None, created_at=None, bill_type=None, customer='Customer'):
        """Create a completed sale, optionally back-dated"""
        transaction = Transaction.objects.create(
            order_id=f'ORD-{TestDataFactory.random_string(10)}',
            customer=customer,
            total_amount=Decimal(str(total_amount)),
            items=items if items is not None else [],
            bill_type=bill_type,
        )
        if created_at is not None:
            # auto_now_add ignores values passed to create()
            Transaction.objects.filter(pk=transaction.pk).update(created_at=created_at)
            transaction.refresh_from_db()
        return transaction

    @staticmethod
    def create_notification(user, title='Test', message='Test message', notification_type='status_update',
                            is_read=False, age=None):
        notification = Notification.objects.create(
            user=user,
            title=title,
            message=message,
            type=notification_type,
            is_read=is_read,
        )
        if age is not None:
            Notification.objects.filter(pk=notification.pk).update(created_at=timezone.now() - age)
            notification.refresh_from_db()
        return notification

    @staticmethod
    def minutes(count):
        return timedelta(minutes=count)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()

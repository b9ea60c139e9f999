"""
Test suite for the request workflow
Tests: product and sales request submission, admin decisions, stock guards,
ledger side effects, image cleanup and permissions
"""
from decimal import Decimal
from unittest.mock import patch

from django.conf import settings
from django.test import TestCase
from rest_framework import status

from backoffice.approvals import services
from backoffice.approvals.models import ProductRequest, SalesRequest
from backoffice.catalog.models import LongSetProduct, Product
from backoffice.core.exceptions import InsufficientStock, RequestAlreadyDecided, RequestNotFound
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.khata.ledger import party_balance
from backoffice.khata.models import ApprovalStatus, KarigarTransaction, VyapariTransaction
from backoffice.notifications.models import Notification
from backoffice.sales.models import Bill, Transaction


class SalesRequestSubmissionTests(TestCase):
    """Test creating sales requests through the API"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.product = TestDataFactory.create_product(price=Decimal('500.00'), stock=10)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_submit_sales_request(self):
        """Test a submitted request snapshots its lines and notifies admins"""
        data = {
            'customer': 'Asha Traders',
            'items': [{'product_id': self.product.id, 'quantity': 2}],
        }
        response = self.client.post('/api/v1/sales-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], ApprovalStatus.PENDING)
        self.assertEqual(Decimal(response.data['total_value']), Decimal('1000.00'))
        self.assertTrue(response.data['request_id'].startswith('PR-'))
        self.assertEqual(response.data['items'][0]['product_name'], self.product.name)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertTrue(
            Notification.objects.filter(user=self.admin, type='sales_request').exists()
        )

    def test_submit_more_than_stock(self):
        """Test requesting more than the available stock is refused at submission"""
        data = {
            'customer': 'Asha Traders',
            'items': [{'product_id': self.product.id, 'quantity': 11}],
        }
        response = self.client.post('/api/v1/sales-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'insufficient_stock')
        self.assertFalse(SalesRequest.objects.exists())

    def test_submit_unknown_product(self):
        """Test a line referencing a missing product returns 404"""
        data = {'customer': 'Asha Traders', 'items': [{'product_id': 99999, 'quantity': 1}]}
        response = self.client.post('/api/v1/sales-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_submit_without_items(self):
        response = self.client.post('/api/v1/sales-requests/', {'customer': 'X', 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_users_only_see_their_own_requests(self):
        """Test the list is scoped to the requester for non-admins"""
        other = TestDataFactory.create_user()
        TestDataFactory.create_sales_request(other, [(self.product, 1)])
        mine = TestDataFactory.create_sales_request(self.user, [(self.product, 1)])

        response = self.client.get('/api/v1/sales-requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [mine.id])

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/sales-requests/')
        self.assertEqual(len(response.data), 2)

    def test_unauthenticated_submission(self):
        self.client.logout()
        response = self.client.post('/api/v1/sales-requests/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class SalesRequestDecisionTests(TestCase):
    """Test approving and rejecting sales requests"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.product = TestDataFactory.create_product(price=Decimal('500.00'), stock=10, category='Necklace')
        self.sales_request = TestDataFactory.create_sales_request(
            self.user, [(self.product, 2)], customer='Meera Jewels'
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.url = f'/api/v1/sales-requests/{self.sales_request.id}/'

    def test_approve_with_gst_bill(self):
        """Test approval takes stock, records the sale and raises a GST bill"""
        response = self.client.put(self.url, {'status': 'Approved', 'bill_type': 'GST'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ApprovalStatus.APPROVED)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

        sale = Transaction.objects.get(order_id=self.sales_request.request_id)
        self.assertEqual(sale.total_amount, Decimal('1000.00'))
        self.assertEqual(sale.bill_type, 'GST')
        self.assertEqual(sale.items[0]['quantity'], 2)
        self.assertEqual(sale.approved_by, self.admin)

        bill = Bill.objects.get()
        self.assertEqual(bill.taxable_amount, Decimal('1000.00'))
        self.assertEqual(bill.cgst, Decimal('90.00'))
        self.assertEqual(bill.sgst, Decimal('90.00'))
        self.assertEqual(bill.igst, Decimal('0.00'))
        self.assertEqual(bill.total_amount, Decimal('1180.00'))
        self.assertEqual(bill.source_reference, self.sales_request.request_id)
        self.assertEqual(response.data['bill']['bill_number'], bill.bill_number)

        notification = Notification.objects.get(user=self.user)
        self.assertEqual(notification.type, 'request_approved')
        self.assertEqual(notification.title, 'Sales Request Approved')
        self.assertTrue(AuditLog.objects.filter(action='stock_sale', object_reference=self.sales_request.request_id).exists())

    def test_approve_without_bill(self):
        response = self.client.put(self.url, {'status': 'Approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['bill'])
        self.assertFalse(Bill.objects.exists())
        self.assertEqual(Transaction.objects.count(), 1)

    def test_non_gst_bill_has_no_tax(self):
        self.client.put(self.url, {'status': 'Approved', 'bill_type': 'Non-GST'}, format='json')
        bill = Bill.objects.get()
        self.assertFalse(bill.is_taxable)
        self.assertEqual(bill.total_amount, Decimal('1000.00'))

    def test_second_decision_conflicts(self):
        """Test a request can only be decided once"""
        first = self.client.put(self.url, {'status': 'Approved'}, format='json')
        self.assertEqual(first.status_code, status.HTTP_200_OK)
        second = self.client.put(self.url, {'status': 'Approved'}, format='json')
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data['code'], 'already_decided')

        self.assertEqual(Transaction.objects.count(), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

    def test_overlapping_approvals_apply_once(self):
        """Test a second approval arriving mid-way through the first loses the status swap"""
        other_admin = TestDataFactory.create_admin()
        take_stock = services._decrement_stock
        conflicts = []

        def second_admin_arrives(sales_request):
            # Both admins loaded the request while it was still Pending
            try:
                services.decide_sales_request(sales_request.pk, ApprovalStatus.APPROVED, other_admin)
            except RequestAlreadyDecided as e:
                conflicts.append(e)
            return take_stock(sales_request)

        with patch('backoffice.approvals.services._decrement_stock', side_effect=second_admin_arrives):
            services.decide_sales_request(self.sales_request.pk, ApprovalStatus.APPROVED, self.admin)

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(Transaction.objects.filter(order_id=self.sales_request.request_id).count(), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)
        self.sales_request.refresh_from_db()
        self.assertEqual(self.sales_request.decided_by, self.admin)

    def test_stale_pending_read_cannot_claim(self):
        """Test the status swap ignores a caller's earlier view of the request"""
        stale = SalesRequest.objects.get(pk=self.sales_request.pk)
        self.assertEqual(stale.status, ApprovalStatus.PENDING)
        services.decide_sales_request(self.sales_request.pk, ApprovalStatus.APPROVED, self.admin)

        with self.assertRaises(RequestAlreadyDecided):
            services.decide_sales_request(stale.pk, ApprovalStatus.APPROVED, self.admin)
        self.assertEqual(Transaction.objects.count(), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

    def test_reject_after_approve_conflicts(self):
        self.client.put(self.url, {'status': 'Approved'}, format='json')
        response = self.client.put(self.url, {'status': 'Rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.sales_request.refresh_from_db()
        self.assertEqual(self.sales_request.status, ApprovalStatus.APPROVED)

    def test_reject_leaves_stock(self):
        """Test rejection changes nothing but the status"""
        response = self.client.put(self.url, {'status': 'Rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(Transaction.objects.exists())
        notification = Notification.objects.get(user=self.user)
        self.assertEqual(notification.type, 'request_rejected')
        self.assertIn('has been rejected', notification.message)

    def test_insufficient_stock_rolls_back(self):
        """Test stock that fell below the request leaves the request Pending"""
        Product.objects.filter(pk=self.product.pk).update(stock=1)
        response = self.client.put(self.url, {'status': 'Approved', 'bill_type': 'GST'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'insufficient_stock')

        self.sales_request.refresh_from_db()
        self.assertEqual(self.sales_request.status, ApprovalStatus.PENDING)
        self.assertIsNone(self.sales_request.decided_by)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 1)
        self.assertFalse(Transaction.objects.exists())
        self.assertFalse(Bill.objects.exists())

    def test_multi_line_stock_is_all_or_nothing(self):
        """Test a failing second line leaves the first line's stock untouched"""
        scarce = TestDataFactory.create_product(stock=5)
        sales_request = TestDataFactory.create_sales_request(self.user, [(self.product, 3), (scarce, 4)])
        Product.objects.filter(pk=scarce.pk).update(stock=2)

        with self.assertRaises(InsufficientStock):
            services.decide_sales_request(sales_request.pk, ApprovalStatus.APPROVED, self.admin)

        self.product.refresh_from_db()
        scarce.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertEqual(scarce.stock, 2)

    def test_deleted_product_blocks_approval(self):
        Product.objects.filter(pk=self.product.pk).delete()
        with self.assertRaises(InsufficientStock):
            services.decide_sales_request(self.sales_request.pk, ApprovalStatus.APPROVED, self.admin)

    def test_unknown_request(self):
        with self.assertRaises(RequestNotFound):
            services.decide_sales_request(99999, ApprovalStatus.APPROVED, self.admin)
        response = self.client.put('/api/v1/sales-requests/99999/', {'status': 'Approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_decision(self):
        response = self.client.put(self.url, {'status': 'Pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_cannot_decide(self):
        """Test non-admins get 403 and nothing changes"""
        self.client.authenticate_user(self.user)
        response = self.client.put(self.url, {'status': 'Approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.sales_request.refresh_from_db()
        self.assertEqual(self.sales_request.status, ApprovalStatus.PENDING)

    def test_bill_details_are_applied(self):
        data = {
            'status': 'Approved',
            'bill_type': 'GST',
            'bill_details': {
                'customer_gstin': '27aapfu0939f1zv',
                'customer_state': 'Maharashtra',
                'cgst_percentage': '0',
                'sgst_percentage': '0',
                'igst_percentage': '3',
                'supply_date_time': '2026-03-01T10:30:00+05:30',
            },
        }
        response = self.client.put(self.url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        bill = Bill.objects.get()
        self.assertEqual(bill.customer_gstin, '27AAPFU0939F1ZV')
        self.assertEqual(bill.igst, Decimal('30.00'))
        self.assertEqual(bill.cgst, Decimal('0.00'))
        self.assertEqual(bill.total_amount, Decimal('1030.00'))
        self.assertEqual(bill.time_of_supply, '10:30')
        self.assertEqual(bill.meta['igst_percentage'], 3.0)


class SalesLedgerTests(TestCase):
    """Test ledger entries posted by sales approvals"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.product = TestDataFactory.create_product(price=Decimal('500.00'), stock=10)

    def test_trader_is_debited(self):
        """Test a sale to an approved trader posts -total_value"""
        vyapari = TestDataFactory.create_vyapari()
        sales_request = TestDataFactory.create_sales_request(self.user, [(self.product, 2)], vyapari=vyapari)

        services.decide_sales_request(sales_request.pk, ApprovalStatus.APPROVED, self.admin)

        entry = VyapariTransaction.objects.get(vyapari=vyapari)
        self.assertEqual(entry.amount, Decimal('-1000.00'))
        self.assertEqual(entry.approval_status, ApprovalStatus.APPROVED)
        balance = party_balance(vyapari)
        self.assertEqual(balance['balance'], Decimal('-1000.00'))
        self.assertEqual(balance['party_owes'], Decimal('1000.00'))

    def test_unapproved_trader_is_skipped(self):
        """Test the sale still completes when the trader is not approved"""
        vyapari = TestDataFactory.create_vyapari(approved=False)
        sales_request = TestDataFactory.create_sales_request(self.user, [(self.product, 1)], vyapari=vyapari)

        with self.assertLogs('backoffice.approvals.services', level='WARNING'):
            services.decide_sales_request(sales_request.pk, ApprovalStatus.APPROVED, self.admin)

        self.assertTrue(Transaction.objects.filter(order_id=sales_request.request_id).exists())
        self.assertFalse(VyapariTransaction.objects.exists())

    def test_ledger_failure_does_not_undo_sale(self):
        """Test a failing ledger write is logged and the sale stands"""
        vyapari = TestDataFactory.create_vyapari()
        sales_request = TestDataFactory.create_sales_request(self.user, [(self.product, 1)], vyapari=vyapari)

        with patch('backoffice.approvals.services.record_transaction', side_effect=RuntimeError('db down')):
            with self.assertLogs('backoffice.approvals.services', level='ERROR'):
                services.decide_sales_request(sales_request.pk, ApprovalStatus.APPROVED, self.admin)

        sales_request.refresh_from_db()
        self.assertEqual(sales_request.status, ApprovalStatus.APPROVED)
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertFalse(VyapariTransaction.objects.exists())

    def test_notification_failure_does_not_undo_sale(self):
        sales_request = TestDataFactory.create_sales_request(self.user, [(self.product, 1)])
        with patch('backoffice.notifications.dispatcher.prune_notifications', side_effect=RuntimeError('boom')):
            services.decide_sales_request(sales_request.pk, ApprovalStatus.APPROVED, self.admin)
        self.assertFalse(Notification.objects.filter(user=self.user).exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 9)


class ProductRequestSubmissionTests(TestCase):
    """Test creating product requests"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_add_request_uses_placeholder_image(self):
        data = {
            'request_type': 'add',
            'details': {'name': 'Temple Necklace', 'sku': 'TN-001', 'price': '15000.00', 'stock': 3},
        }
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], ApprovalStatus.PENDING)
        self.assertEqual(response.data['details']['image_url'], settings.PLACEHOLDER_IMAGE_URL)
        self.assertFalse(response.data['admin_action'])
        self.assertFalse(Product.objects.exists())

        notification = Notification.objects.get(user=self.admin)
        self.assertEqual(notification.title, 'New Product Add Request')
        self.assertEqual(notification.type, 'product_request')

    def test_add_request_missing_fields(self):
        data = {'request_type': 'add', 'details': {'name': 'No SKU'}}
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_sku_refused(self):
        """Test SKUs taken by products or pending add requests are refused"""
        TestDataFactory.create_product(sku='DUP-1')
        data = {'request_type': 'add', 'details': {'name': 'Copy', 'sku': 'dup-1', 'price': '10'}}
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        TestDataFactory.create_product_request(self.user, name='Pending', sku='PEND-1', price=Decimal('10'))
        data['details']['sku'] = 'PEND-1'
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sku_claimed_by_pending_edit_refused(self):
        """Test a SKU proposed by another product's pending edit is refused"""
        first = TestDataFactory.create_product()
        second = TestDataFactory.create_product()
        TestDataFactory.create_product_request(self.user, request_type='edit', product=first, sku='NEW-1')

        data = {'request_type': 'edit', 'product_id': second.id, 'details': {'sku': 'new-1'}}
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        # The same product may revise its own pending proposal
        data['product_id'] = first.id
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_edit_request_keeps_current_image(self):
        product = TestDataFactory.create_product()
        data = {'request_type': 'edit', 'product_id': product.id, 'details': {'price': '750.00'}}
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['details']['image_url'], product.image_url)

    def test_edit_request_needs_product(self):
        data = {'request_type': 'edit', 'product_id': 99999, 'details': {'price': '1'}}
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_request_still_pending(self):
        """Test admin submissions wait for approval and do not notify the submitter"""
        other_admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)
        data = {'request_type': 'add', 'details': {'name': 'Kada', 'sku': 'KD-1', 'price': '900'}}
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], ApprovalStatus.PENDING)
        self.assertTrue(response.data['admin_action'])
        self.assertFalse(Notification.objects.filter(user=self.admin).exists())
        self.assertTrue(Notification.objects.filter(user=other_admin).exists())

    def test_long_set_needs_parts(self):
        data = {
            'request_type': 'add',
            'is_long_set': True,
            'details': {'name': 'Rani Haar', 'sku': 'RH-1', 'price': '50000'},
        }
        response = self.client.post('/api/v1/product-requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_multipart_payload_with_json_fields(self):
        """Test nested payloads sent as JSON strings in a form are decoded"""
        data = {
            'request_type': 'add',
            'details': '{"name": "Jhumka", "sku": "JH-1", "price": "2500"}',
        }
        response = self.client.post('/api/v1/product-requests/', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['details']['sku'], 'JH-1')


class ProductRequestDecisionTests(TestCase):
    """Test approving and rejecting product requests"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_approve_add_creates_product(self):
        product_request = TestDataFactory.create_product_request(
            self.user, name='Choker', sku='CH-1', price=Decimal('8000.00'), stock=4,
            category='Necklace', image_url=settings.PLACEHOLDER_IMAGE_URL,
        )
        response = self.client.put(
            f'/api/v1/product-requests/{product_request.id}/', {'status': 'Approved'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product = Product.objects.get(sku='CH-1')
        self.assertEqual(product.stock, 4)
        self.assertEqual(product.created_by, self.user)
        self.assertEqual(response.data['product'], product.id)

        notification = Notification.objects.get(user=self.user)
        self.assertEqual(notification.title, 'Product Request Approved')
        self.assertIn('has been added to inventory', notification.message)

    def test_approve_add_uses_saved_low_stock_threshold(self):
        response = self.client.post('/api/v1/settings/low-stock-threshold/', {'threshold': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product_request = TestDataFactory.create_product_request(
            self.user, name='Nath', sku='NT-1', price=Decimal('700.00'), stock=5,
            image_url=settings.PLACEHOLDER_IMAGE_URL,
        )
        services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)

        product = Product.objects.get(sku='NT-1')
        self.assertEqual(product.low_stock_threshold, 3)
        self.assertFalse(product.is_low_stock)

    def test_approve_add_with_taken_sku_conflicts(self):
        """Test a SKU taken after submission stops the approval and keeps the request pending"""
        product_request = TestDataFactory.create_product_request(
            self.user, name='Tikka', sku='TK-1', price=Decimal('300.00'),
            image_url=settings.PLACEHOLDER_IMAGE_URL,
        )
        TestDataFactory.create_product(sku='tk-1')
        response = self.client.put(
            f'/api/v1/product-requests/{product_request.id}/', {'status': 'Approved'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'duplicate_sku')
        product_request.refresh_from_db()
        self.assertEqual(product_request.status, ApprovalStatus.PENDING)
        self.assertEqual(Product.objects.count(), 1)

    def test_competing_sku_edits_second_conflicts(self):
        """Test two edits proposing one SKU: the first wins, the second is refused"""
        first = TestDataFactory.create_product()
        second = TestDataFactory.create_product()
        first_request = TestDataFactory.create_product_request(
            self.user, request_type='edit', product=first, sku='NEW-1', image_url=first.image_url,
        )
        second_request = TestDataFactory.create_product_request(
            self.user, request_type='edit', product=second, sku='NEW-1', image_url=second.image_url,
        )
        services.decide_product_request(first_request.pk, ApprovalStatus.APPROVED, self.admin)

        response = self.client.put(
            f'/api/v1/product-requests/{second_request.id}/', {'status': 'Approved'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'duplicate_sku')
        second.refresh_from_db()
        self.assertNotEqual(second.sku, 'NEW-1')
        second_request.refresh_from_db()
        self.assertEqual(second_request.status, ApprovalStatus.PENDING)

    def test_approve_add_credits_supplier_karigar(self):
        """Test new stock from an approved artisan supplier is credited to them"""
        karigar = TestDataFactory.create_karigar(name='Ramesh Soni')
        product_request = TestDataFactory.create_product_request(
            self.user, name='Bangle', sku='BG-1', price=Decimal('1200.00'),
            cost_price=Decimal('1000.00'), stock=3, supplier='ramesh soni',
        )
        services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)

        entry = KarigarTransaction.objects.get(karigar=karigar)
        self.assertEqual(entry.amount, Decimal('3000.00'))
        self.assertEqual(entry.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(party_balance(karigar)['shop_owes'], Decimal('3000.00'))

    def test_approve_long_set_add(self):
        karigar = TestDataFactory.create_karigar()
        parts = [
            {'part_name': 'Pendant', 'cost_price': '2000', 'karigar_id': karigar.id},
            {'part_name': 'Chain', 'cost_price': '500', 'karigar_id': None},
        ]
        product_request = TestDataFactory.create_product_request(
            self.user, is_long_set=True, name='Long Set', sku='LS-1', price=Decimal('9000'),
            stock=2, long_set_parts=parts,
        )
        services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)

        product = Product.objects.get(sku='LS-1')
        long_set = LongSetProduct.objects.get(product=product)
        self.assertEqual([part.part_name for part in long_set.parts.all()], ['Pendant', 'Chain'])
        entry = KarigarTransaction.objects.get(karigar=karigar)
        self.assertEqual(entry.amount, Decimal('4000.00'))

    def test_approve_edit_merges_fields(self):
        product = TestDataFactory.create_product(price=Decimal('500.00'), stock=5)
        product_request = TestDataFactory.create_product_request(
            self.user, request_type='edit', product=product, price=Decimal('650.00'),
            image_url=product.image_url,
        )
        with patch('cloudinary.uploader.destroy') as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)
        destroy.assert_not_called()
        product.refresh_from_db()
        self.assertEqual(product.price, Decimal('650.00'))
        self.assertEqual(product.stock, 5)

    def test_approve_edit_replaces_image(self):
        """Test the superseded image is deleted once the edit commits"""
        product = TestDataFactory.create_product(image_url=TestDataFactory.cloudinary_url('old'))
        new_image = TestDataFactory.cloudinary_url('new')
        product_request = TestDataFactory.create_product_request(
            self.user, request_type='edit', product=product, image_url=new_image,
        )
        with patch('cloudinary.uploader.destroy', return_value={'result': 'ok'}) as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)
        destroy.assert_called_once_with('jewelry-inventory/old')
        product.refresh_from_db()
        self.assertEqual(product.image_url, new_image)

    def test_approve_edit_stock_adjustment_credits_supplier(self):
        karigar = TestDataFactory.create_karigar(name='Suresh')
        product = TestDataFactory.create_product(stock=5, cost_price=Decimal('200.00'), supplier='Suresh')
        product_request = TestDataFactory.create_product_request(
            self.user, request_type='edit', product=product, stock=8, stock_adjustment=3,
            supplier='Suresh', image_url=product.image_url,
        )
        services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)
        entry = KarigarTransaction.objects.get(karigar=karigar)
        self.assertEqual(entry.amount, Decimal('600.00'))

    def test_approve_delete_removes_product(self):
        product = TestDataFactory.create_product(image_url=TestDataFactory.cloudinary_url('gone'))
        product_request = TestDataFactory.create_product_request(self.user, request_type='delete', product=product)
        with patch('cloudinary.uploader.destroy', return_value={'result': 'ok'}) as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())
        destroy.assert_called_once_with('jewelry-inventory/gone')
        product_request.refresh_from_db()
        self.assertEqual(product_request.status, ApprovalStatus.APPROVED)

    def test_reject_add_deletes_uploaded_image(self):
        """Test a rejected add request removes the image it uploaded"""
        product_request = TestDataFactory.create_product_request(
            self.user, name='Ring', sku='RG-1', price=Decimal('100'),
            image_url=TestDataFactory.cloudinary_url('ring'),
        )
        with patch('cloudinary.uploader.destroy', return_value={'result': 'ok'}) as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                services.decide_product_request(product_request.pk, ApprovalStatus.REJECTED, self.admin)
        destroy.assert_called_once_with('jewelry-inventory/ring')
        self.assertFalse(Product.objects.exists())

    def test_reject_add_keeps_placeholder(self):
        product_request = TestDataFactory.create_product_request(
            self.user, name='Ring', sku='RG-2', price=Decimal('100'),
            image_url=settings.PLACEHOLDER_IMAGE_URL,
        )
        with patch('cloudinary.uploader.destroy') as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                services.decide_product_request(product_request.pk, ApprovalStatus.REJECTED, self.admin)
        destroy.assert_not_called()

    def test_reject_edit_keeps_live_image(self):
        """Test rejecting an edit that kept the image does not delete it"""
        product = TestDataFactory.create_product()
        product_request = TestDataFactory.create_product_request(
            self.user, request_type='edit', product=product, price=Decimal('1'),
            image_url=product.image_url,
        )
        with patch('cloudinary.uploader.destroy') as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                services.decide_product_request(product_request.pk, ApprovalStatus.REJECTED, self.admin)
        destroy.assert_not_called()
        product.refresh_from_db()
        self.assertEqual(product.price, Decimal('500.00'))

    def test_reject_edit_with_placeholder_image(self):
        """Test rejecting an edit that proposed the placeholder never deletes anything"""
        product = TestDataFactory.create_product(image_url=TestDataFactory.cloudinary_url('live'))
        product_request = TestDataFactory.create_product_request(
            self.user, request_type='edit', product=product, price=Decimal('2'),
            image_url=settings.PLACEHOLDER_IMAGE_URL,
        )
        with patch('cloudinary.uploader.destroy') as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                services.decide_product_request(product_request.pk, ApprovalStatus.REJECTED, self.admin)
        destroy.assert_not_called()
        product.refresh_from_db()
        self.assertEqual(product.image_url, TestDataFactory.cloudinary_url('live'))

    def test_rejected_request_cannot_be_approved(self):
        product_request = TestDataFactory.create_product_request(
            self.user, name='Ring', sku='RG-3', price=Decimal('100'),
            image_url=settings.PLACEHOLDER_IMAGE_URL,
        )
        services.decide_product_request(product_request.pk, ApprovalStatus.REJECTED, self.admin)
        with self.assertRaises(RequestAlreadyDecided):
            services.decide_product_request(product_request.pk, ApprovalStatus.APPROVED, self.admin)
        self.assertFalse(Product.objects.exists())

    def test_user_cannot_decide_or_purge(self):
        product_request = TestDataFactory.create_product_request(
            self.user, name='Ring', sku='RG-4', price=Decimal('100'),
        )
        self.client.authenticate_user(self.user)
        response = self.client.put(
            f'/api/v1/product-requests/{product_request.id}/', {'status': 'Approved'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete('/api/v1/product-requests/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(ProductRequest.objects.exists())

    def test_purge_requests(self):
        """Test purging deletes request images not used by any product"""
        product = TestDataFactory.create_product()
        TestDataFactory.create_product_request(
            self.user, request_type='edit', product=product, image_url=product.image_url,
        )
        TestDataFactory.create_product_request(
            self.user, name='Orphan', sku='OR-1', price=Decimal('1'),
            image_url=TestDataFactory.cloudinary_url('orphan'),
        )
        with patch('cloudinary.uploader.destroy', return_value={'result': 'ok'}) as destroy:
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.delete('/api/v1/product-requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(ProductRequest.objects.exists())
        destroy.assert_called_once_with('jewelry-inventory/orphan')
        self.assertTrue(Product.objects.filter(pk=product.pk).exists())

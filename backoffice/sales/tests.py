"""
Test suite for sales, bills and analytics
Tests: GST computation, bill endpoints, completed-sales listing and the
analytics windows
"""
from datetime import datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.test import TestCase
from rest_framework import status

from backoffice.core.models import DocumentSequence
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import shop_now, shop_timezone
from backoffice.sales.analytics import percent_change, resolve_window, sales_analytics
from backoffice.sales.billing import (
    BillDetails, BillLine, GstRates, build_bill, compute_tax, create_bill, money,
)
from backoffice.sales.models import Bill


def shop_time(*args):
    return datetime(*args, tzinfo=shop_timezone())


class BillingTests(TestCase):
    """Test tax computation and bill assembly"""

    def test_default_gst_rates(self):
        tax = compute_tax(Decimal('1000'), GstRates(), True)
        self.assertEqual(tax.cgst, Decimal('90.00'))
        self.assertEqual(tax.sgst, Decimal('90.00'))
        self.assertEqual(tax.igst, Decimal('0.00'))
        self.assertEqual(tax.total_amount, Decimal('1180.00'))

    def test_not_taxable(self):
        tax = compute_tax(Decimal('1000'), GstRates(), False)
        self.assertEqual(tax.total_tax, Decimal('0.00'))
        self.assertEqual(tax.total_amount, Decimal('1000.00'))

    def test_rounding(self):
        tax = compute_tax(Decimal('333.33'), GstRates(cgst=Decimal('1.5'), sgst=Decimal('1.5')), True)
        self.assertEqual(tax.cgst, Decimal('5.00'))
        self.assertEqual(money('2.345'), Decimal('2.35'))

    def test_non_gst_ignores_is_taxable(self):
        details = BillDetails(is_taxable=True)
        self.assertFalse(details.taxable_for('Non-GST'))
        self.assertTrue(details.taxable_for('GST'))
        self.assertFalse(BillDetails(is_taxable=False).taxable_for('GST'))

    def test_build_bill_sums_lines(self):
        lines = [
            BillLine(name='Ring', quantity=2, price=Decimal('250.00')),
            BillLine(name='Chain', quantity=1, price=Decimal('500.00')),
        ]
        bill = build_bill('GST', 'Walk-in', lines, BillDetails())
        self.assertIsNone(bill.pk)
        self.assertEqual(bill.taxable_amount, Decimal('1000.00'))
        self.assertEqual(bill.total_amount, Decimal('1180.00'))
        self.assertEqual(len(bill.items['lines']), 2)
        self.assertEqual(bill.items['_meta']['hsn_code'], '7113')

    def test_unknown_bill_type(self):
        with self.assertRaises(ValueError):
            build_bill('VAT', 'Walk-in', [], BillDetails())

    def test_bill_numbers_are_sequential(self):
        first = create_bill('GST', 'A', [BillLine(name='X', quantity=1, price=Decimal('1'))], BillDetails())
        second = create_bill('Non-GST', 'B', [BillLine(name='Y', quantity=1, price=Decimal('1'))], BillDetails())
        year = shop_now().year
        self.assertEqual(first.bill_number, f'BILL-{year}-0001')
        self.assertEqual(second.bill_number, f'BILL-{year}-0002')


class BillAPITests(TestCase):
    """Test the bill endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.payload = {
            'bill_type': 'GST',
            'customer_name': 'Kavya Sharma',
            'items': [{'name': 'Gold Ring', 'quantity': 2, 'price': '500.00'}],
            'bill_details': {'customer_state': 'Rajasthan'},
        }

    def test_create_bill(self):
        response = self.client.post('/api/v1/bills/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('1180.00'))
        self.assertTrue(response.data['bill_number'].startswith('BILL-'))
        self.assertEqual(response.data['lines'][0]['name'], 'Gold Ring')

    def test_preview_bill_is_not_saved(self):
        """Test a preview returns the computed bill without saving or numbering it"""
        self.payload['is_fake_bill'] = True
        response = self.client.post('/api/v1/bills/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('1180.00'))
        self.assertIsNone(response.data['id'])
        self.assertFalse(Bill.objects.exists())
        self.assertFalse(DocumentSequence.objects.filter(prefix='BILL').exists())

    def test_invalid_gstin(self):
        self.payload['bill_details']['customer_gstin'] = 'SHORT'
        response = self.client.post('/api/v1/bills/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_recomputes_tax(self):
        """Test editing GST rates recomputes tax from the stored taxable amount"""
        bill = create_bill('GST', 'Kavya', [BillLine(name='Ring', quantity=1, price=Decimal('1000'))], BillDetails())
        data = {'cgst_percentage': '0', 'sgst_percentage': '0', 'igst_percentage': '3', 'customer_name': 'Kavya S'}
        response = self.client.put(f'/api/v1/bills/{bill.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        bill.refresh_from_db()
        self.assertEqual(bill.customer_name, 'Kavya S')
        self.assertEqual(bill.igst, Decimal('30.00'))
        self.assertEqual(bill.cgst, Decimal('0.00'))
        self.assertEqual(bill.total_amount, Decimal('1030.00'))
        self.assertEqual(bill.taxable_amount, Decimal('1000.00'))
        self.assertEqual(bill.updated_by, self.user)

    def test_update_keeps_unspecified_rates(self):
        bill = create_bill('GST', 'Kavya', [BillLine(name='Ring', quantity=1, price=Decimal('1000'))], BillDetails())
        response = self.client.put(f'/api/v1/bills/{bill.id}/', {'vehicle_no': 'RJ14AB1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        bill.refresh_from_db()
        self.assertEqual(bill.vehicle_no, 'RJ14AB1234')
        self.assertEqual(bill.total_amount, Decimal('1180.00'))

    def test_update_marks_not_taxable(self):
        bill = create_bill('GST', 'Kavya', [BillLine(name='Ring', quantity=1, price=Decimal('1000'))], BillDetails())
        self.client.put(f'/api/v1/bills/{bill.id}/', {'is_taxable': False}, format='json')
        bill.refresh_from_db()
        self.assertFalse(bill.is_taxable)
        self.assertEqual(bill.total_amount, Decimal('1000.00'))

    def test_delete_bill(self):
        bill = create_bill('GST', 'Kavya', [BillLine(name='Ring', quantity=1, price=Decimal('1'))], BillDetails())
        response = self.client.delete(f'/api/v1/bills/{bill.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Bill.objects.exists())

    def test_list_hides_bills_past_retention(self):
        recent = create_bill('GST', 'Recent', [BillLine(name='R', quantity=1, price=Decimal('1'))], BillDetails())
        old = create_bill('GST', 'Old', [BillLine(name='O', quantity=1, price=Decimal('1'))], BillDetails())
        Bill.objects.filter(pk=old.pk).update(date=shop_now().date() - relativedelta(months=3))

        response = self.client.get('/api/v1/bills/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], recent.id)

        response = self.client.get('/api/v1/bills/', {'search': 'Recent', 'bill_type': 'GST'})
        self.assertEqual(response.data['count'], 1)

    def test_purge_old_bills(self):
        """Test purging is admin only and removes bills past retention"""
        keep = create_bill('GST', 'Keep', [BillLine(name='K', quantity=1, price=Decimal('1'))], BillDetails())
        old = create_bill('GST', 'Old', [BillLine(name='O', quantity=1, price=Decimal('1'))], BillDetails())
        Bill.objects.filter(pk=old.pk).update(date=shop_now().date() - relativedelta(months=6))

        response = self.client.delete('/api/v1/bills/purge/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.delete('/api/v1/bills/purge/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], 1)
        self.assertEqual(list(Bill.objects.values_list('id', flat=True)), [keep.id])

    def test_unauthenticated(self):
        self.client.logout()
        response = self.client.get('/api/v1/bills/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TransactionAPITests(TestCase):
    """Test completed-sales listing"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_recent_sales_limited_to_five(self):
        for index in range(7):
            TestDataFactory.create_transaction(100 + index)
        response = self.client.get('/api/v1/sales/recent/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 5)

    def test_transaction_filters(self):
        TestDataFactory.create_transaction(1000, bill_type='GST', customer='Anita')
        TestDataFactory.create_transaction(200, bill_type='Non-GST', customer='Bharat')

        response = self.client.get('/api/v1/sales/transactions/', {'bill_type': 'GST'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['customer'], 'Anita')

        response = self.client.get('/api/v1/sales/transactions/', {'search': 'bhar'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/sales/transactions/', {'min_amount': '500'})
        self.assertEqual(response.data['count'], 1)

    def test_pagination_envelope(self):
        for index in range(3):
            TestDataFactory.create_transaction(10 * (index + 1))
        response = self.client.get('/api/v1/sales/transactions/', {'limit': 2})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)
        self.assertIsNone(response.data['previous'])

        response = self.client.get('/api/v1/sales/transactions/', {'page': 'x'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SalesAnalyticsTests(TestCase):
    """Test analytics windows, buckets and KPIs"""

    def setUp(self):
        # A Thursday afternoon in shop time
        self.now = shop_time(2026, 5, 14, 15, 30)

    def sale(self, amount, moment, items=None, bill_type=None):
        return TestDataFactory.create_transaction(amount, items=items, created_at=moment, bill_type=bill_type)

    def test_month_without_sales(self):
        """Test an empty month view still has twelve zero buckets"""
        result = sales_analytics(timeframe='Month', now=self.now)
        self.assertEqual(len(result['salesTrend']), 12)
        self.assertTrue(all(bucket['value'] == 0 for bucket in result['salesTrend']))
        self.assertEqual(result['salesTrend'][0]['name'], 'Jun')
        self.assertEqual(result['salesTrend'][-1]['name'], 'May')
        self.assertEqual(result['metrics']['totalRevenue'], 0.0)
        self.assertEqual(result['metrics']['revenueChange'], 0.0)
        self.assertEqual(result['topProducts'], [])

    def test_bucket_counts(self):
        today = sales_analytics(timeframe='Today', now=self.now)['salesTrend']
        self.assertEqual(len(today), 24)
        self.assertEqual(today[0]['name'], '00:00')
        self.assertEqual(today[-1]['name'], '23:00')

        week = sales_analytics(timeframe='Week', now=self.now)['salesTrend']
        self.assertEqual([bucket['name'] for bucket in week], ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat'])

        year = sales_analytics(timeframe='Year', now=self.now)['salesTrend']
        self.assertEqual([bucket['name'] for bucket in year], ['2024', '2025', '2026'])

    def test_windows(self):
        window = resolve_window('Week', now=self.now)
        self.assertEqual(window.start, shop_time(2026, 5, 10))
        self.assertEqual(window.end, shop_time(2026, 5, 17))
        self.assertEqual(window.previous_start, shop_time(2026, 5, 3))

        window = resolve_window('Month', now=self.now)
        self.assertEqual(window.start, shop_time(2025, 6, 1))
        self.assertEqual(window.end, shop_time(2026, 6, 1))
        self.assertEqual(window.previous_start, shop_time(2024, 6, 1))

    def test_custom_range_end_date_is_inclusive(self):
        window = resolve_window(start='2026-05-01', end='2026-05-03')
        self.assertEqual(window.end, shop_time(2026, 5, 4))
        self.assertEqual(window.granularity, 'day')
        result = sales_analytics(start='2026-05-01', end='2026-05-03')
        self.assertEqual([bucket['name'] for bucket in result['salesTrend']], ['May 01', 'May 02', 'May 03'])

    def test_custom_range_starting_mid_hour(self):
        """Test buckets start at the window start, not at the hour before it"""
        self.sale(400, shop_time(2026, 5, 1, 10, 45))
        self.sale(600, shop_time(2026, 5, 2, 10, 29))
        result = sales_analytics(start='2026-05-01T10:30:00+05:30', end='2026-05-02T10:30:00+05:30')
        trend = result['salesTrend']
        self.assertEqual(len(trend), 24)
        self.assertEqual(trend[0]['name'], '10:30')
        self.assertEqual(trend[0]['value'], 400.0)
        self.assertEqual(trend[-1]['name'], '09:30')
        self.assertEqual(trend[-1]['value'], 600.0)
        self.assertEqual(result['metrics']['totalRevenue'], 1000.0)

    def test_invalid_input(self):
        with self.assertRaises(ValueError):
            resolve_window('Decade')
        with self.assertRaises(ValueError):
            resolve_window(start='2026-05-01')
        with self.assertRaises(ValueError):
            resolve_window(start='2026-05-03', end='2026-05-01')
        with self.assertRaises(ValueError):
            sales_analytics(timeframe='Month', bill_type='VAT', now=self.now)

    def test_revenue_is_conserved(self):
        """Test every sale in the window lands in exactly one bucket"""
        self.sale(1000, shop_time(2026, 5, 14, 9, 15))
        self.sale(250, shop_time(2026, 1, 2, 0, 5))
        self.sale(750, shop_time(2025, 6, 1, 0, 0))
        self.sale(999, shop_time(2025, 5, 31, 23, 59))

        result = sales_analytics(timeframe='Month', now=self.now)
        trend_total = sum(bucket['value'] for bucket in result['salesTrend'])
        self.assertEqual(result['metrics']['totalRevenue'], 2000.0)
        self.assertEqual(trend_total, 2000.0)
        self.assertEqual(sum(bucket['orders'] for bucket in result['salesTrend']), 3)
        self.assertEqual(result['salesTrend'][0]['value'], 750.0)

    def test_previous_period_change(self):
        self.sale(150, shop_time(2026, 5, 14, 10, 0))
        self.sale(100, shop_time(2026, 5, 13, 10, 0))
        result = sales_analytics(timeframe='Today', now=self.now)
        metrics = result['metrics']
        self.assertEqual(metrics['totalOrders'], 1)
        self.assertEqual(metrics['revenueChange'], 50.0)
        self.assertEqual(metrics['previousPeriodComparison']['revenue'], 50.0)
        self.assertEqual(result['salesTrend'][10]['value'], 150.0)

    def test_top_products_and_categories(self):
        items = [
            {'product_id': 1, 'product_name': 'Ring', 'category': 'Rings', 'quantity': 2, 'total': '600.00'},
            {'product_id': 2, 'product_name': 'Anklet', 'category': None, 'quantity': 1, 'price': '400.00'},
        ]
        self.sale(1000, shop_time(2026, 5, 12, 11, 0), items=items, bill_type='GST')
        self.sale(300, shop_time(2026, 5, 12, 12, 0), bill_type='Non-GST')

        result = sales_analytics(timeframe='Week', now=self.now, bill_type='GST')
        self.assertEqual(result['metrics']['totalRevenue'], 1000.0)
        self.assertEqual(result['topProducts'][0]['name'], 'Ring')
        self.assertEqual(result['topProducts'][0]['revenue'], 600.0)
        categories = {row['category']: row for row in result['revenueByCategory']}
        self.assertEqual(categories['Uncategorized']['revenue'], 400.0)
        self.assertEqual(categories['Rings']['percentage'], 60.0)

        everything = sales_analytics(timeframe='Week', now=self.now, bill_type='all')
        self.assertEqual(everything['metrics']['totalOrders'], 2)

    def test_percent_change(self):
        self.assertEqual(percent_change(Decimal('10'), Decimal('0')), 0.0)
        self.assertEqual(percent_change(5, 10), -50.0)

    def test_endpoint(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/sales/analytics/', {'timeframe': 'Year'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['salesTrend']), 3)
        response = client.get('/api/v1/sales/analytics/', {'timeframe': 'Decade'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.get('/api/v1/sales/analytics/', {'timeframe': 'Week', 'billType': 'VAT'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

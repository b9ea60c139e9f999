"""
Test suite for the khata ledger
Tests: party approval, signed transactions, payments, balances, entry
decisions, force delete and analytics
"""
from datetime import datetime, timedelta
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import PermissionDenied, ValidationError

from backoffice.core.exceptions import EntryAlreadyDecided, PartyNotApproved
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import shop_timezone
from backoffice.khata import ledger
from backoffice.khata.analytics import khata_analytics
from backoffice.khata.models import (
    ApprovalStatus, Karigar, Vyapari, VyapariPayment, VyapariTransaction,
)


class LedgerServiceTests(TestCase):
    """Test the ledger service directly"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.book = ledger.get_book('vyapari')
        self.vyapari = TestDataFactory.create_vyapari()

    def test_party_created_by_user_is_pending(self):
        party = ledger.create_party(self.book, self.user, name='Gupta Jewellers')
        self.assertEqual(party.approval_status, ApprovalStatus.PENDING)
        self.assertFalse(party.is_approved)

    def test_party_created_by_admin_is_approved(self):
        party = ledger.create_party(self.book, self.admin, name='Gupta Jewellers')
        self.assertTrue(party.is_approved)
        self.assertEqual(party.approved_by, self.admin)

    def test_transaction_needs_approved_party(self):
        """Test entries against unapproved parties are refused"""
        pending = TestDataFactory.create_vyapari(approved=False)
        with self.assertRaises(PartyNotApproved):
            ledger.record_transaction(self.book, pending, Decimal('100'), 'Gold bought', self.admin)
        with self.assertRaises(PartyNotApproved):
            ledger.record_transaction(self.book, None, Decimal('100'), 'Gold bought', self.admin)
        self.assertFalse(VyapariTransaction.objects.exists())

    def test_transaction_ids_follow_sequence(self):
        first = ledger.record_transaction(self.book, self.vyapari, Decimal('100'), 'First', self.admin)
        second = ledger.record_transaction(self.book, self.vyapari, Decimal('50'), 'Second', self.admin)
        self.assertRegex(first.transaction_id, r'^VT-\d{4}-0001$')
        self.assertRegex(second.transaction_id, r'^VT-\d{4}-0002$')

    def test_balance_sign_convention(self):
        """Test positive entries are owed by the shop and negative by the party"""
        ledger.record_transaction(self.book, self.vyapari, Decimal('-1000'), 'Sale on credit', self.admin)
        balance = ledger.party_balance(self.vyapari)
        self.assertEqual(balance['balance'], Decimal('-1000.00'))
        self.assertEqual(balance['party_owes'], Decimal('1000.00'))
        self.assertEqual(balance['shop_owes'], Decimal('0.00'))

        ledger.record_transaction(self.book, self.vyapari, Decimal('1500'), 'Old gold received', self.admin)
        balance = ledger.party_balance(self.vyapari)
        self.assertEqual(balance['balance'], Decimal('500.00'))
        self.assertEqual(balance['shop_owes'], Decimal('500.00'))

        ledger.record_payment(self.book, self.vyapari, Decimal('200'), 'cash', self.admin)
        balance = ledger.party_balance(self.vyapari)
        self.assertEqual(balance['total_payments'], Decimal('200.00'))
        self.assertEqual(balance['balance'], Decimal('300.00'))

    def test_pending_entries_are_not_in_balance(self):
        """Test only approved entries count; pending ones are reported apart"""
        ledger.record_transaction(self.book, self.vyapari, Decimal('400'), 'Pending entry', self.user)
        ledger.record_payment(self.book, self.vyapari, Decimal('100'), 'upi', self.user)
        balance = ledger.party_balance(self.vyapari)
        self.assertEqual(balance['balance'], Decimal('0.00'))
        self.assertEqual(balance['pending_transactions'], Decimal('400.00'))
        self.assertEqual(balance['pending_payments'], Decimal('100.00'))

    def test_zero_amount_refused(self):
        with self.assertRaises(ValidationError):
            ledger.record_transaction(self.book, self.vyapari, Decimal('0'), 'Nothing', self.admin)

    def test_decide_entry_once(self):
        entry = ledger.record_transaction(self.book, self.vyapari, Decimal('400'), 'Pending entry', self.user)
        decided = ledger.decide_entry(self.book, VyapariTransaction, entry.pk, ApprovalStatus.APPROVED, self.admin)
        self.assertEqual(decided.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(ledger.party_balance(self.vyapari)['balance'], Decimal('400.00'))
        with self.assertRaises(EntryAlreadyDecided):
            ledger.decide_entry(self.book, VyapariTransaction, entry.pk, ApprovalStatus.REJECTED, self.admin)

    def test_rejected_payment_is_not_in_balance(self):
        payment = ledger.record_payment(self.book, self.vyapari, Decimal('100'), 'cash', self.user)
        ledger.decide_entry(self.book, VyapariPayment, payment.pk, ApprovalStatus.REJECTED, self.admin)
        balance = ledger.party_balance(self.vyapari)
        self.assertEqual(balance['total_payments'], Decimal('0.00'))
        self.assertEqual(balance['pending_payments'], Decimal('0.00'))

    def test_user_cannot_decide(self):
        entry = ledger.record_transaction(self.book, self.vyapari, Decimal('400'), 'Pending entry', self.user)
        with self.assertRaises(PermissionDenied):
            ledger.decide_entry(self.book, VyapariTransaction, entry.pk, ApprovalStatus.APPROVED, self.user)

    def test_rejected_party_is_deactivated(self):
        pending = TestDataFactory.create_vyapari(approved=False)
        party = ledger.decide_party(self.book, pending.pk, ApprovalStatus.REJECTED, self.admin)
        self.assertEqual(party.approval_status, ApprovalStatus.REJECTED)
        self.assertEqual(party.status, 'Inactive')

    def test_force_delete_removes_history(self):
        ledger.record_transaction(self.book, self.vyapari, Decimal('100'), 'Entry', self.admin)
        ledger.record_payment(self.book, self.vyapari, Decimal('50'), 'cash', self.admin)
        deleted = ledger.force_delete_party(self.book, self.vyapari, self.admin)
        self.assertEqual(deleted, {'transactions': 1, 'payments': 1})
        self.assertFalse(Vyapari.objects.filter(pk=self.vyapari.pk).exists())
        self.assertFalse(VyapariPayment.objects.exists())

    def test_find_approved_karigar(self):
        karigar = TestDataFactory.create_karigar(name='Mohan Lal')
        TestDataFactory.create_karigar(name='Pending Lal', approved=False)
        self.assertEqual(ledger.find_approved_karigar('  mohan lal '), karigar)
        self.assertIsNone(ledger.find_approved_karigar('Pending Lal'))
        self.assertIsNone(ledger.find_approved_karigar(''))


class KhataAPITests(TestCase):
    """Test the khata endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_approve_karigar(self):
        response = self.client.post(
            '/api/v1/khata/karigars/', {'name': 'Rakesh', 'specialization': 'Polki'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['approval_status'], ApprovalStatus.PENDING)
        karigar_id = response.data['id']

        # Pending parties are hidden from regular users
        response = self.client.get('/api/v1/khata/karigars/')
        self.assertEqual(response.data, [])

        response = self.client.put(f'/api/v1/khata/karigars/{karigar_id}/approve/', {'status': 'Approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/v1/khata/karigars/{karigar_id}/approve/', {'status': 'Approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Karigar.objects.get(pk=karigar_id).is_approved)

        response = self.client.put(f'/api/v1/khata/karigars/{karigar_id}/approve/', {'status': 'Rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_transaction_for_unapproved_party(self):
        vyapari = TestDataFactory.create_vyapari(approved=False)
        response = self.client.post(
            f'/api/v1/khata/vyaparis/{vyapari.id}/transactions/',
            {'description': 'Advance', 'amount': '500'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_user_entry_waits_for_admin(self):
        """Test an entry recorded by a user is pending until an admin approves it"""
        vyapari = TestDataFactory.create_vyapari()
        response = self.client.post(
            f'/api/v1/khata/vyaparis/{vyapari.id}/transactions/',
            {'description': 'Paid the trader', 'amount': '750.00'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['approval_status'], ApprovalStatus.PENDING)
        entry_id = response.data['id']

        response = self.client.get(f'/api/v1/khata/vyaparis/{vyapari.id}/balance/')
        self.assertEqual(response.data['balance'], 0.0)
        self.assertEqual(response.data['pending_transactions'], 750.0)

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/khata/vyaparis/transactions/pending/')
        self.assertEqual([row['id'] for row in response.data], [entry_id])
        response = self.client.put(
            f'/api/v1/khata/vyaparis/transactions/{entry_id}/approve/', {'status': 'Approved'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/v1/khata/vyaparis/{vyapari.id}/balance/')
        self.assertEqual(response.data['balance'], 750.0)

    def test_payment_requires_valid_mode(self):
        karigar = TestDataFactory.create_karigar()
        response = self.client.post(
            f'/api/v1/khata/karigars/{karigar.id}/payments/',
            {'amount': '100', 'payment_mode': 'barter'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            f'/api/v1/khata/karigars/{karigar.id}/payments/',
            {'amount': '100', 'payment_mode': 'upi', 'reference_number': 'UTR123'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['payment_id'], r'^KP-\d{4}-\d{4}$')

    def test_only_admin_changes_status(self):
        vyapari = TestDataFactory.create_vyapari()
        response = self.client.put(f'/api/v1/khata/vyaparis/{vyapari.id}/', {'status': 'Inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.put(f'/api/v1/khata/vyaparis/{vyapari.id}/', {'phone': '9000000000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['phone'], '9000000000')

    def test_force_delete_is_admin_only(self):
        vyapari = TestDataFactory.create_vyapari()
        response = self.client.delete(f'/api/v1/khata/vyaparis/{vyapari.id}/force-delete/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/khata/vyaparis/{vyapari.id}/force-delete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Vyapari.objects.exists())


class KhataAnalyticsTests(TestCase):
    """Test khata dashboard aggregates"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.user = TestDataFactory.create_user()
        self.karigar = TestDataFactory.create_karigar(name='Analytics Karigar')
        self.vyapari = TestDataFactory.create_vyapari()

    def test_shape_and_totals(self):
        book = ledger.get_book('karigar')
        ledger.record_transaction(book, self.karigar, Decimal('3000'), 'Stock received', self.admin)
        ledger.record_transaction(book, self.karigar, Decimal('-500'), 'Gold advance', self.admin)
        ledger.record_transaction(book, self.karigar, Decimal('200'), 'Pending work', self.user)
        ledger.record_payment(book, self.karigar, Decimal('1000'), 'cash', self.admin)

        result = khata_analytics(days=7, analytics_type='karigar')
        self.assertIsNone(result['vyapari'])
        self.assertEqual(result['timeRange']['days'], 7)

        karigar = result['karigar']
        self.assertEqual(karigar['totalParties'], 1)
        self.assertEqual(karigar['totalTransactions'], 3)
        self.assertEqual(karigar['pendingTransactions'], 1)
        self.assertEqual(karigar['resolvedTransactions'], 2)
        self.assertEqual(karigar['amountWeOwe'], 3000.0)
        self.assertEqual(karigar['amountOwedToUs'], 500.0)
        self.assertEqual(karigar['pendingTransactionAmount'], 200.0)
        self.assertEqual(karigar['totalTransactionAmount'], 2500.0)
        self.assertEqual(karigar['totalPaymentAmount'], 1000.0)
        self.assertEqual(karigar['topParties'][0]['name'], 'Analytics Karigar')
        # days back plus today
        self.assertEqual(len(karigar['transactionChart']), 8)
        self.assertEqual(sum(point['count'] for point in karigar['transactionChart']), 3)

    def test_rejected_entries_do_not_count(self):
        """Test a rejected entry moves no money figure, as in the party balance"""
        book = ledger.get_book('vyapari')
        entry = ledger.record_transaction(book, self.vyapari, Decimal('5000'), 'Disputed lot', self.user)
        ledger.decide_entry(book, VyapariTransaction, entry.pk, ApprovalStatus.REJECTED, self.admin)
        self.assertEqual(ledger.party_balance(self.vyapari)['balance'], Decimal('0.00'))

        vyapari = khata_analytics(days=7, analytics_type='vyapari')['vyapari']
        self.assertEqual(vyapari['rejectedTransactions'], 1)
        self.assertEqual(vyapari['amountWeOwe'], 0.0)
        self.assertEqual(vyapari['totalTransactionAmount'], 0.0)
        self.assertEqual(vyapari['topParties'], [])
        self.assertEqual(sum(point['count'] for point in vyapari['transactionChart']), 0)

    def test_window_excludes_old_entries(self):
        book = ledger.get_book('vyapari')
        entry = ledger.record_transaction(book, self.vyapari, Decimal('100'), 'Old entry', self.admin)
        old = datetime.now(shop_timezone()) - timedelta(days=40)
        VyapariTransaction.objects.filter(pk=entry.pk).update(created_at=old)

        result = khata_analytics(days=30, analytics_type='vyapari')
        self.assertIsNone(result['karigar'])
        self.assertEqual(result['vyapari']['totalTransactions'], 0)
        self.assertEqual(result['vyapari']['transactionChart'][-1]['totalAmount'], 0.0)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            khata_analytics(days=7, analytics_type='everyone')
        with self.assertRaises(ValueError):
            khata_analytics(days=-1)

    def test_endpoint(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        response = client.get('/api/v1/khata/analytics/', {'days': 30})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('karigar', response.data)
        self.assertIn('vyapari', response.data)
        response = client.get('/api/v1/khata/analytics/', {'days': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.get('/api/v1/khata/analytics/', {'type': 'nobody'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

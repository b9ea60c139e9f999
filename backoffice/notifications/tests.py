"""
Test suite for notifications
Tests: dispatching, retention pruning and ownership of the notification feed
"""
from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework import status

from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.notifications.dispatcher import notify_admins, notify_user, prune_notifications
from backoffice.notifications.models import Notification


class DispatcherTests(TestCase):
    """Test the notification dispatcher"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.superuser = TestDataFactory.create_user(is_superuser=True)

    def test_notify_admins_reaches_every_admin(self):
        created = notify_admins('New Sales Request', 'Something happened', 'sales_request')
        self.assertEqual(len(created), 2)
        self.assertEqual(
            set(Notification.objects.values_list('user_id', flat=True)),
            {self.admin.id, self.superuser.id}
        )

    def test_notify_admins_excludes_actor(self):
        notify_admins('New Product Add Request', 'By an admin', 'product_request', exclude=self.admin)
        self.assertFalse(Notification.objects.filter(user=self.admin).exists())
        self.assertTrue(Notification.objects.filter(user=self.superuser).exists())

    def test_inactive_admin_is_skipped(self):
        self.superuser.is_active = False
        self.superuser.save()
        notify_admins('Title', 'Message', 'sales_request')
        self.assertEqual(list(Notification.objects.values_list('user_id', flat=True)), [self.admin.id])

    def test_notify_user_without_recipient(self):
        self.assertIsNone(notify_user(None, 'Title', 'Message', 'status_update'))
        self.assertFalse(Notification.objects.exists())

    @override_settings(NOTIFICATION_RETENTION=3)
    def test_only_latest_are_kept(self):
        """Test each user keeps only the newest notifications"""
        for index in range(5):
            notify_user(self.user, f'Update {index}', 'Message', 'status_update')
        titles = list(Notification.objects.filter(user=self.user).values_list('title', flat=True))
        self.assertEqual(titles, ['Update 4', 'Update 3', 'Update 2'])

    def test_prune_leaves_other_users_alone(self):
        for _ in range(4):
            TestDataFactory.create_notification(self.user)
        TestDataFactory.create_notification(self.admin)
        deleted = prune_notifications(self.user, keep=1)
        self.assertEqual(deleted, 3)
        self.assertEqual(Notification.objects.filter(user=self.user).count(), 1)
        self.assertEqual(Notification.objects.filter(user=self.admin).count(), 1)

    def test_failure_is_logged_not_raised(self):
        with patch('backoffice.notifications.dispatcher.prune_notifications', side_effect=RuntimeError('db')):
            with self.assertLogs('backoffice.notifications.dispatcher', level='ERROR'):
                created = notify_admins('Title', 'Message', 'sales_request')
        self.assertEqual(created, [])
        self.assertFalse(Notification.objects.exists())


class NotificationAPITests(TestCase):
    """Test the caller's own notification feed"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.mine = TestDataFactory.create_notification(self.user, title='Mine')
        self.theirs = TestDataFactory.create_notification(self.other, title='Theirs')

    def test_list_only_own(self):
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['title'] for row in response.data], ['Mine'])

    def test_list_unread_only(self):
        TestDataFactory.create_notification(self.user, title='Read', is_read=True)
        response = self.client.get('/api/v1/notifications/', {'unread': 'true'})
        self.assertEqual([row['title'] for row in response.data], ['Mine'])

    def test_mark_read(self):
        response = self.client.put('/api/v1/notifications/', {'id': self.mine.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.mine.refresh_from_db()
        self.assertTrue(self.mine.is_read)

        response = self.client.get('/api/v1/notifications/unread-count/')
        self.assertEqual(response.data['unread'], 0)

    def test_cannot_touch_others(self):
        """Test another user's notification is reported as not found"""
        response = self.client.put('/api/v1/notifications/', {'id': self.theirs.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete('/api/v1/notifications/', {'id': self.theirs.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Notification.objects.filter(pk=self.theirs.pk).exists())

    def test_mark_all_read(self):
        TestDataFactory.create_notification(self.user, title='Second')
        response = self.client.put('/api/v1/notifications/', {'all': True}, format='json')
        self.assertEqual(response.data['updated'], 2)
        self.assertFalse(Notification.objects.filter(user=self.other, is_read=True).exists())

    def test_delete_all(self):
        response = self.client.delete('/api/v1/notifications/', {'delete_all': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], 1)
        self.assertFalse(Notification.objects.filter(user=self.user).exists())
        self.assertTrue(Notification.objects.filter(user=self.other).exists())

    def test_update_needs_target(self):
        response = self.client.put('/api/v1/notifications/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unauthenticated(self):
        self.client.logout()
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

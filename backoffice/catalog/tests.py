"""
Test suite for the catalog
Tests: product listing and filters, low stock, long sets, the threshold
setting and the media helpers
"""
from decimal import Decimal
from unittest.mock import patch

from django.conf import settings
from django.test import TestCase, override_settings
from rest_framework import status

from backoffice.approvals.models import ProductRequest
from backoffice.catalog import media
from backoffice.catalog.models import Product
from backoffice.core.models import AuditLog, Setting
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.khata.models import ApprovalStatus


class ProductAPITests(TestCase):
    """Test read access to products"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.ring = TestDataFactory.create_product(
            name='Gold Ring Classic', sku='GR-001', price=Decimal('12000'), stock=3, category='Ring'
        )
        self.chain = TestDataFactory.create_product(
            name='Silver Chain', sku='SC-001', price=Decimal('1500'), stock=40, category='Chain', material='Silver'
        )

    def test_list_products(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertIn('total_pages', response.data)

    def test_multi_word_search(self):
        response = self.client.get('/api/v1/products/', {'search': 'classic gold'})
        self.assertEqual([row['sku'] for row in response.data['results']], ['GR-001'])

    def test_filters(self):
        response = self.client.get('/api/v1/products/', {'material': 'silver'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/products/', {'min_price': '5000'})
        self.assertEqual(response.data['results'][0]['sku'], 'GR-001')
        response = self.client.get('/api/v1/products/', {'low_stock': 'true'})
        self.assertEqual([row['sku'] for row in response.data['results']], ['GR-001'])

    def test_low_stock_endpoint(self):
        response = self.client.get('/api/v1/products/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['sku'] for row in response.data], ['GR-001'])
        self.assertTrue(response.data[0]['is_low_stock'])

    def test_product_detail(self):
        response = self.client.get(f'/api/v1/products/{self.ring.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_long_set'])
        self.assertEqual(response.data['parts'], [])
        response = self.client.get('/api/v1/products/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_products_are_read_only(self):
        """Test products can only change through requests"""
        response = self.client.post('/api/v1/products/', {'name': 'Direct'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_unauthenticated(self):
        self.client.logout()
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class LongSetAPITests(TestCase):
    """Test long set endpoints, which submit requests instead of writing"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.karigar = TestDataFactory.create_karigar()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_submits_request(self):
        data = {
            'details': {'name': 'Bridal Set', 'sku': 'BS-001', 'price': '85000', 'stock': 1},
            'parts': [
                {'part_name': 'Necklace', 'cost_price': '40000', 'karigar_id': self.karigar.id},
                {'part_name': 'Earrings', 'cost_price': '10000'},
            ],
        }
        response = self.client.post('/api/v1/products/long-set/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['request']['status'], ApprovalStatus.PENDING)
        self.assertTrue(response.data['request']['is_long_set'])
        self.assertEqual(len(response.data['request']['details']['long_set_parts']), 2)
        self.assertFalse(Product.objects.exists())

    def test_unknown_karigar_refused(self):
        data = {
            'details': {'name': 'Bridal Set', 'sku': 'BS-002', 'price': '85000'},
            'parts': [{'part_name': 'Necklace', 'karigar_id': 99999}],
        }
        response = self.client.post('/api/v1/products/long-set/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_and_delete_request(self):
        product = TestDataFactory.create_long_set(
            parts=[{'part_name': 'Pendant', 'cost_price': Decimal('500'), 'karigar': self.karigar}]
        )
        response = self.client.get(f'/api/v1/products/long-set/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_long_set'])
        self.assertEqual(response.data['parts'][0]['karigar_name'], self.karigar.name)

        response = self.client.delete(f'/api/v1/products/long-set/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product_request = ProductRequest.objects.get()
        self.assertEqual(product_request.request_type, ProductRequest.TYPE_DELETE)
        self.assertTrue(product_request.is_long_set)
        self.assertTrue(Product.objects.filter(pk=product.pk).exists())

    def test_regular_product_is_not_a_long_set(self):
        product = TestDataFactory.create_product()
        response = self.client.get(f'/api/v1/products/long-set/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class LowStockThresholdTests(TestCase):
    """Test the shop-wide low stock threshold"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        TestDataFactory.create_product(stock=4)
        TestDataFactory.create_product(stock=12)

    def test_default_threshold(self):
        response = self.client.get('/api/v1/settings/low-stock-threshold/')
        self.assertEqual(response.data['threshold'], settings.DEFAULT_LOW_STOCK_THRESHOLD)

    def test_set_threshold(self):
        response = self.client.post('/api/v1/settings/low-stock-threshold/', {'threshold': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['products_updated'], 2)
        self.assertEqual(set(Product.objects.values_list('low_stock_threshold', flat=True)), {3})
        self.assertEqual(Setting.objects.get(key='low_stock_threshold').value, '3')
        self.assertTrue(AuditLog.objects.filter(action='setting_change').exists())

        response = self.client.get('/api/v1/settings/low-stock-threshold/')
        self.assertEqual(response.data['threshold'], 3)

    def test_user_cannot_set_threshold(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/settings/low-stock-threshold/', {'threshold': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_negative_threshold(self):
        response = self.client.post('/api/v1/settings/low-stock-threshold/', {'threshold': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class MediaTests(TestCase):
    """Test the Cloudinary helpers"""

    def test_public_id_from_url(self):
        url = 'https://res.cloudinary.com/demo/image/upload/v1748228777/jewelry-inventory/abc.png'
        self.assertEqual(media.public_id_from_url(url), 'jewelry-inventory/abc')
        self.assertIsNone(media.public_id_from_url('https://example.com/abc.png'))
        self.assertIsNone(media.public_id_from_url(None))

    def test_placeholder_is_never_deleted(self):
        with patch('cloudinary.uploader.destroy') as destroy:
            self.assertFalse(media.delete_image(settings.PLACEHOLDER_IMAGE_URL))
            self.assertFalse(media.delete_image(''))
        destroy.assert_not_called()

    def test_delete_failure_is_swallowed(self):
        url = TestDataFactory.cloudinary_url('broken')
        with patch('cloudinary.uploader.destroy', side_effect=RuntimeError('network')):
            self.assertFalse(media.delete_image(url))

    def test_upload_without_configuration_uses_placeholder(self):
        with override_settings(CLOUDINARY_CLOUD_NAME='', CLOUDINARY_API_KEY='', CLOUDINARY_API_SECRET=''):
            with patch('cloudinary.uploader.upload') as upload:
                self.assertEqual(media.upload_image(b'fake'), settings.PLACEHOLDER_IMAGE_URL)
        upload.assert_not_called()

    @override_settings(CLOUDINARY_CLOUD_NAME='demo', CLOUDINARY_API_KEY='key', CLOUDINARY_API_SECRET='secret')
    def test_upload_failure_uses_placeholder(self):
        with patch('cloudinary.uploader.upload', side_effect=RuntimeError('timeout')):
            self.assertEqual(media.upload_image(b'fake'), settings.PLACEHOLDER_IMAGE_URL)

    @override_settings(CLOUDINARY_CLOUD_NAME='demo', CLOUDINARY_API_KEY='key', CLOUDINARY_API_SECRET='secret')
    def test_upload_returns_secure_url(self):
        secure_url = TestDataFactory.cloudinary_url('uploaded')
        with patch('cloudinary.uploader.upload', return_value={'secure_url': secure_url, 'public_id': 'x'}):
            self.assertEqual(media.upload_image(b'fake'), secure_url)

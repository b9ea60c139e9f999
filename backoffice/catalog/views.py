import logging

from django.db import transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.approvals import services
from backoffice.approvals.models import ProductRequest
from backoffice.approvals.serializers import ProductRequestCreateSerializer, ProductRequestSerializer
from backoffice.approvals.views import request_payload
from backoffice.core.models import Setting
from backoffice.core.permissions import require
from backoffice.core.utils import create_audit_log, paginated_response
from .filters import ProductFilter
from .models import Product
from .serializers import LowStockThresholdSerializer, ProductSerializer
from .utils import LOW_STOCK_SETTING, current_low_stock_threshold

logger = logging.getLogger(__name__)


def _products():
    return Product.objects.select_related('long_set', 'created_by')


# Product views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_list(request):
    """List products; products are created and changed through product requests"""
    filterset = ProductFilter(request.query_params, queryset=_products())
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs.order_by('-updated_at', '-created_at'), ProductSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    product = get_object_or_404(_products(), pk=pk)
    return Response(ProductSerializer(product).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def low_stock_products(request):
    """Products at or below their low-stock threshold, lowest stock first"""
    products = _products().filter(stock__lte=F('low_stock_threshold')).order_by('stock', 'name')
    return Response(ProductSerializer(products, many=True).data)


# Long set views
def _long_set_payload(request, request_type):
    payload = request_payload(request)
    parts = payload.pop('parts', None)
    if parts is not None and payload.get('long_set_parts') is None:
        payload['long_set_parts'] = parts
    payload['request_type'] = request_type
    payload['is_long_set'] = True
    return payload


def _submit_long_set_request(request, request_type, product=None):
    payload = _long_set_payload(request, request_type)
    if product is not None:
        payload['product_id'] = product.pk
    serializer = ProductRequestCreateSerializer(data=payload)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    product_request = services.submit_product_request(
        request.user,
        request_type,
        product=data.get('product'),
        details=data.get('details'),
        image=data.get('image'),
        is_long_set=True,
        long_set_parts=data.get('long_set_parts'),
    )
    return Response(
        {
            'message': f"Long set product {request_type} request submitted for approval",
            'request': ProductRequestSerializer(product_request).data,
        },
        status=status.HTTP_201_CREATED
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def long_set_create(request):
    """Submit a new long set product (with its parts) for approval"""
    return _submit_long_set_request(request, ProductRequest.TYPE_ADD)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def long_set_detail(request, pk):
    """
    GET returns the long set with its parts. PUT and DELETE submit edit and
    delete requests; the product itself changes only when an admin approves.
    """
    product = get_object_or_404(_products().filter(long_set__isnull=False), pk=pk)
    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    if request.method == 'PUT':
        return _submit_long_set_request(request, ProductRequest.TYPE_EDIT, product=product)
    return _submit_long_set_request(request, ProductRequest.TYPE_DELETE, product=product)


# Settings views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def low_stock_threshold(request):
    """Read or set (admin) the low-stock threshold applied to every product"""
    if request.method == 'GET':
        return Response({'threshold': current_low_stock_threshold()})

    require(request.user, 'settings.manage')
    serializer = LowStockThresholdSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    threshold = serializer.validated_data['threshold']
    previous = current_low_stock_threshold()

    with transaction.atomic():
        updated = Product.objects.update(low_stock_threshold=threshold)
        Setting.objects.update_or_create(
            key=LOW_STOCK_SETTING,
            defaults={'value': str(threshold), 'description': 'Low stock threshold applied to all products'},
        )

    create_audit_log(
        request=request,
        action='setting_change',
        model_name='Setting',
        object_id=LOW_STOCK_SETTING,
        changes={'before': previous, 'after': threshold, 'products_updated': updated},
    )
    logger.info(f"Low stock threshold set to {threshold} by {request.user.username} ({updated} products)")
    return Response({
        'message': 'Low stock threshold updated successfully',
        'threshold': threshold,
        'products_updated': updated,
    })

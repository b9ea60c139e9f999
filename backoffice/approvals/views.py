import json
import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.catalog.models import Product
from backoffice.core.permissions import is_admin_user, require
from backoffice.khata.models import Vyapari
from backoffice.sales.serializers import BillSerializer
from . import services
from .models import ProductRequest, SalesRequest
from .serializers import (
    ProductDecisionSerializer, ProductRequestCreateSerializer, ProductRequestSerializer,
    SalesDecisionSerializer, SalesRequestCreateSerializer, SalesRequestSerializer,
)

logger = logging.getLogger(__name__)

# Multipart forms carry nested payloads as JSON strings
JSON_FORM_FIELDS = ('details', 'long_set_parts', 'parts', 'items', 'bill_details')


def request_payload(request):
    """request.data as a plain dict, with JSON-encoded form fields decoded"""
    data = request.data
    if hasattr(data, 'dict'):
        data = data.dict()
    else:
        data = dict(data)
    for name in JSON_FORM_FIELDS:
        value = data.get(name)
        if isinstance(value, str):
            try:
                data[name] = json.loads(value) if value.strip() else None
            except ValueError:
                pass
    return data


def _visible(queryset, user):
    """Admins see every request; other users only their own"""
    if is_admin_user(user):
        return queryset
    return queryset.filter(requester=user)


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_request_list_create(request):
    """List product requests, submit a new one, or purge them all (admin)"""
    if request.method == 'GET':
        queryset = _visible(
            ProductRequest.objects.select_related('product', 'details', 'requester', 'decided_by'),
            request.user,
        )
        request_status = request.query_params.get('status')
        if request_status:
            queryset = queryset.filter(status=request_status)
        request_type = request.query_params.get('request_type')
        if request_type:
            queryset = queryset.filter(request_type=request_type)
        return Response(ProductRequestSerializer(queryset.order_by('-created_at'), many=True).data)

    if request.method == 'DELETE':
        deleted = services.purge_product_requests(request.user, request=request)
        return Response({'message': 'All product requests deleted', 'deleted': deleted})

    serializer = ProductRequestCreateSerializer(data=request_payload(request))
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    product_request = services.submit_product_request(
        request.user,
        data['request_type'],
        product=data.get('product'),
        details=data.get('details'),
        image=data.get('image'),
        is_long_set=data.get('is_long_set', False),
        long_set_parts=data.get('long_set_parts'),
    )
    return Response(ProductRequestSerializer(product_request).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def product_request_detail(request, pk):
    """Retrieve a product request or decide it (admin)"""
    if request.method == 'GET':
        product_request = get_object_or_404(
            _visible(ProductRequest.objects.select_related('product', 'details', 'requester'), request.user),
            pk=pk,
        )
        return Response(ProductRequestSerializer(product_request).data)

    require(request.user, 'requests.decide')
    serializer = ProductDecisionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    product_request = services.decide_product_request(
        pk, serializer.validated_data['status'], request.user, request=request
    )
    return Response(ProductRequestSerializer(product_request).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sales_request_list_create(request):
    """List sales requests or submit a new one"""
    if request.method == 'GET':
        queryset = _visible(
            SalesRequest.objects.select_related('vyapari', 'requester', 'decided_by').prefetch_related('items'),
            request.user,
        )
        request_status = request.query_params.get('status')
        if request_status:
            queryset = queryset.filter(status=request_status)
        return Response(SalesRequestSerializer(queryset.order_by('-created_at'), many=True).data)

    serializer = SalesRequestCreateSerializer(data=request_payload(request))
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    product_ids = [item['product_id'] for item in data['items']]
    products = Product.objects.in_bulk(product_ids)
    missing = sorted(set(product_ids) - set(products))
    if missing:
        return Response(
            {'error': f"Products not found: {', '.join(str(pk) for pk in missing)}"},
            status=status.HTTP_404_NOT_FOUND
        )

    items = [
        {'product': products[item['product_id']], 'quantity': item['quantity'], 'price': item.get('price')}
        for item in data['items']
    ]
    vyapari = Vyapari.objects.filter(pk=data['vyapari_id']).first() if data.get('vyapari_id') else None
    sales_request = services.submit_sales_request(request.user, data['customer'], items, vyapari=vyapari)
    return Response(SalesRequestSerializer(sales_request).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def sales_request_detail(request, pk):
    """Retrieve a sales request or decide it (admin), optionally raising a bill"""
    if request.method == 'GET':
        sales_request = get_object_or_404(
            _visible(SalesRequest.objects.select_related('vyapari', 'requester'), request.user),
            pk=pk,
        )
        return Response(SalesRequestSerializer(sales_request).data)

    require(request.user, 'requests.decide')
    serializer = SalesDecisionSerializer(data=request_payload(request))
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    sales_request, bill = services.decide_sales_request(
        pk,
        data['status'],
        request.user,
        bill_type=data.get('bill_type'),
        bill_details=data.get('bill_details'),
        request=request,
    )
    response_data = SalesRequestSerializer(sales_request).data
    response_data['bill'] = BillSerializer(bill).data if bill else None
    return Response(response_data)

import logging

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.permissions import IsAdminRole
from backoffice.core.utils import create_audit_log, paginated_response, shop_now
from .analytics import sales_analytics
from .billing import BillDetails, BillLine, build_bill, create_bill, recompute_bill
from .filters import BillFilter, TransactionFilter
from .models import Bill, Transaction
from .serializers import (
    BillCreateSerializer, BillSerializer, BillUpdateSerializer, TransactionSerializer,
)

logger = logging.getLogger(__name__)


def _retention_cutoff():
    """First day still inside the bill retention window"""
    return shop_now().date() - relativedelta(months=settings.BILL_RETENTION_MONTHS)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def bill_list_create(request):
    """List recent bills or raise a bill directly"""
    if request.method == 'GET':
        queryset = Bill.objects.filter(date__gte=_retention_cutoff()).select_related('created_by')
        filterset = BillFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return paginated_response(request, filterset.qs.order_by('-date', '-created_at'), BillSerializer)

    serializer = BillCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    details = BillDetails.from_validated(data.get('bill_details'))
    lines = [
        BillLine(
            name=line['name'],
            quantity=line['quantity'],
            price=line['price'],
            product_id=line.get('product_id'),
            sku=line.get('sku'),
            hsn_code=details.hsn_code,
        )
        for line in data['items']
    ]

    if data['is_fake_bill']:
        # Preview only: nothing is persisted and no number is consumed
        bill = build_bill(data['bill_type'], data['customer_name'], lines, details, user=request.user)
        return Response(BillSerializer(bill).data)

    bill = create_bill(data['bill_type'], data['customer_name'], lines, details, user=request.user)
    create_audit_log(
        request=request,
        action='bill_create',
        model_name='Bill',
        object_id=bill.pk,
        object_name=bill.customer_name,
        object_reference=bill.bill_number,
        changes={'total_amount': str(bill.total_amount), 'bill_type': bill.bill_type},
    )
    return Response(BillSerializer(bill).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def bill_detail(request, pk):
    """Retrieve, edit the metadata of, or delete a bill"""
    bill = get_object_or_404(Bill.objects.select_related('created_by'), pk=pk)

    if request.method == 'GET':
        return Response(BillSerializer(bill).data)

    if request.method == 'DELETE':
        bill_number = bill.bill_number
        bill.delete()
        logger.info(f"Bill {bill_number} deleted by {request.user.username}")
        create_audit_log(
            request=request,
            action='delete',
            model_name='Bill',
            object_id=pk,
            object_reference=bill_number,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = BillUpdateSerializer(data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    changes = dict(serializer.validated_data)
    customer_name = changes.pop('customer_name', None)

    before = {'total_amount': str(bill.total_amount), 'is_taxable': bill.is_taxable}
    recompute_bill(bill, BillDetails.from_bill(bill, **changes))
    if customer_name:
        bill.customer_name = customer_name
    bill.updated_by = request.user
    bill.save()

    create_audit_log(
        request=request,
        action='bill_update',
        model_name='Bill',
        object_id=bill.pk,
        object_name=bill.customer_name,
        object_reference=bill.bill_number,
        changes={'before': before, 'after': {'total_amount': str(bill.total_amount), 'is_taxable': bill.is_taxable}},
    )
    return Response(BillSerializer(bill).data)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def bill_purge(request):
    """Delete every bill older than the retention window"""
    cutoff = _retention_cutoff()
    with transaction.atomic():
        deleted, _ = Bill.objects.filter(date__lt=cutoff).delete()
    logger.info(f"Purged {deleted} bills dated before {cutoff} (requested by {request.user.username})")
    create_audit_log(
        request=request,
        action='bill_purge',
        model_name='Bill',
        object_id='*',
        changes={'deleted': deleted, 'before': cutoff.isoformat()},
    )
    return Response({'message': f"{deleted} bills deleted", 'deleted': deleted, 'before': cutoff.isoformat()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def recent_sales(request):
    """The five most recent completed sales"""
    transactions = Transaction.objects.select_related('user', 'approved_by').order_by('-created_at')[:5]
    return Response(TransactionSerializer(transactions, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_list(request):
    queryset = Transaction.objects.select_related('user', 'approved_by')
    filterset = TransactionFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs.order_by('-created_at'), TransactionSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    transaction_obj = get_object_or_404(Transaction.objects.select_related('user', 'approved_by'), pk=pk)
    return Response(TransactionSerializer(transaction_obj).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def analytics(request):
    """Revenue KPIs, trend buckets, top products and category split"""
    params = request.query_params
    try:
        result = sales_analytics(
            timeframe=params.get('timeframe'),
            start=params.get('start'),
            end=params.get('end'),
            bill_type=params.get('billType'),
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Error fetching sales analytics: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while generating sales analytics'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return Response(result)

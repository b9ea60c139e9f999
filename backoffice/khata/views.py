import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.permissions import IsAdminRole, is_admin_user
from . import ledger
from .analytics import khata_analytics, ANALYTICS_TYPES
from .models import ApprovalStatus
from .serializers import (
    BOOK_SERIALIZERS, DecisionSerializer, PartyStatusSerializer,
    TransactionInputSerializer, PaymentInputSerializer,
)

logger = logging.getLogger(__name__)


def _visible_parties(book, user):
    """Admins see every party; other users only approved, active ones"""
    queryset = book.party_model.objects.select_related('created_by', 'approved_by')
    if not is_admin_user(user):
        queryset = queryset.filter(approval_status=ApprovalStatus.APPROVED, status='Active')
    return queryset


def _visible_entries(queryset, user):
    if is_admin_user(user):
        return queryset
    return queryset.filter(Q(approval_status=ApprovalStatus.APPROVED) | Q(created_by=user))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def party_list_create(request, book):
    """List parties of a ledger book or create a new one"""
    book = ledger.get_book(book)
    party_serializer_class = BOOK_SERIALIZERS[book.kind][0]

    if request.method == 'GET':
        parties = _visible_parties(book, request.user)
        search = request.query_params.get('search')
        if search:
            parties = parties.filter(Q(name__icontains=search) | Q(phone__icontains=search))
        approval = request.query_params.get('approval_status')
        if approval:
            parties = parties.filter(approval_status=approval)
        return Response(party_serializer_class(parties.order_by('name'), many=True).data)

    serializer = party_serializer_class(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    party = ledger.create_party(book, request.user, **serializer.validated_data)
    return Response(party_serializer_class(party).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def party_pending(request, book):
    """Parties waiting for admin approval"""
    book = ledger.get_book(book)
    parties = book.party_model.objects.filter(approval_status=ApprovalStatus.PENDING).order_by('-created_at')
    return Response(BOOK_SERIALIZERS[book.kind][0](parties, many=True).data)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def party_detail(request, book, pk):
    """Retrieve or update a party; only admins may change its active status"""
    book = ledger.get_book(book)
    party_serializer_class = BOOK_SERIALIZERS[book.kind][0]

    if request.method == 'GET':
        party = get_object_or_404(_visible_parties(book, request.user), pk=pk)
        return Response(party_serializer_class(party).data)

    party = get_object_or_404(book.party_model, pk=pk)
    new_status = None
    if 'status' in request.data:
        if not is_admin_user(request.user):
            return Response({'error': 'Only admins can change the status'}, status=status.HTTP_403_FORBIDDEN)
        status_serializer = PartyStatusSerializer(data=request.data)
        if not status_serializer.is_valid():
            return Response(status_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        new_status = status_serializer.validated_data['status']

    serializer = party_serializer_class(party, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if new_status:
        party = serializer.save(status=new_status)
    else:
        party = serializer.save()
    return Response(party_serializer_class(party).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def party_decide(request, book, pk):
    """Approve or reject a pending party"""
    book = ledger.get_book(book)
    get_object_or_404(book.party_model, pk=pk)
    serializer = DecisionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    party = ledger.decide_party(book, pk, serializer.validated_data['status'], request.user, request=request)
    return Response(BOOK_SERIALIZERS[book.kind][0](party).data)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def party_force_delete(request, book, pk):
    """Delete a party together with its whole ledger history"""
    book = ledger.get_book(book)
    party = get_object_or_404(book.party_model, pk=pk)
    deleted = ledger.force_delete_party(book, party, request.user)
    return Response({
        'message': f"{book.label} and all related records deleted successfully",
        'deleted': deleted,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def party_balance(request, book, pk):
    """Running balance for a party (positive: the shop owes the party)"""
    book = ledger.get_book(book)
    party = get_object_or_404(_visible_parties(book, request.user), pk=pk)
    balance = ledger.party_balance(party)
    return Response({key: (float(value) if key not in ('party_id', 'name') else value) for key, value in balance.items()})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def party_transactions(request, book, pk):
    """List or record ledger transactions for a party"""
    book = ledger.get_book(book)
    transaction_serializer_class = BOOK_SERIALIZERS[book.kind][1]

    if request.method == 'GET':
        party = get_object_or_404(_visible_parties(book, request.user), pk=pk)
        entries = _visible_entries(party.transactions.select_related('created_by', 'approved_by'), request.user)
        return Response(transaction_serializer_class(entries.order_by('-created_at'), many=True).data)

    party = book.party_model.objects.filter(pk=pk).first()
    serializer = TransactionInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    entry = ledger.record_transaction(
        book, party,
        amount=data['amount'],
        description=data['description'],
        user=request.user,
        items=data.get('items'),
    )
    return Response(transaction_serializer_class(entry).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def party_payments(request, book, pk):
    """List or record payments made to a party"""
    book = ledger.get_book(book)
    payment_serializer_class = BOOK_SERIALIZERS[book.kind][2]

    if request.method == 'GET':
        party = get_object_or_404(_visible_parties(book, request.user), pk=pk)
        entries = _visible_entries(party.payments.select_related('created_by', 'approved_by'), request.user)
        return Response(payment_serializer_class(entries.order_by('-created_at'), many=True).data)

    party = book.party_model.objects.filter(pk=pk).first()
    serializer = PaymentInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    payment = ledger.record_payment(
        book, party,
        amount=data['amount'],
        payment_mode=data['payment_mode'],
        user=request.user,
        reference_number=data.get('reference_number'),
        notes=data.get('notes'),
    )
    return Response(payment_serializer_class(payment).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def pending_transactions(request, book):
    book = ledger.get_book(book)
    entries = book.transaction_model.objects.filter(
        approval_status=ApprovalStatus.PENDING
    ).select_related(book.party_field, 'created_by').order_by('-created_at')
    return Response(BOOK_SERIALIZERS[book.kind][1](entries, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def pending_payments(request, book):
    book = ledger.get_book(book)
    entries = book.payment_model.objects.filter(
        approval_status=ApprovalStatus.PENDING
    ).select_related(book.party_field, 'created_by').order_by('-created_at')
    return Response(BOOK_SERIALIZERS[book.kind][2](entries, many=True).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def transaction_decide(request, book, pk):
    """Approve or reject a pending ledger transaction"""
    book = ledger.get_book(book)
    get_object_or_404(book.transaction_model, pk=pk)
    serializer = DecisionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    entry = ledger.decide_entry(book, book.transaction_model, pk, serializer.validated_data['status'],
                                request.user, request=request)
    return Response(BOOK_SERIALIZERS[book.kind][1](entry).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def payment_decide(request, book, pk):
    """Approve or reject a pending payment"""
    book = ledger.get_book(book)
    get_object_or_404(book.payment_model, pk=pk)
    serializer = DecisionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    entry = ledger.decide_entry(book, book.payment_model, pk, serializer.validated_data['status'],
                                request.user, request=request)
    return Response(BOOK_SERIALIZERS[book.kind][2](entry).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def analytics(request):
    """Khata KPIs and per-day chart series"""
    try:
        days = int(request.query_params.get('days', 30))
    except (TypeError, ValueError):
        return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    analytics_type = request.query_params.get('type', 'all')
    if analytics_type not in ANALYTICS_TYPES or days < 0:
        return Response(
            {'error': f"type must be one of {', '.join(ANALYTICS_TYPES)} and days must not be negative"},
            status=status.HTTP_400_BAD_REQUEST
        )

    try:
        logger.info(f"User {request.user.username} requested khata analytics (days={days}, type={analytics_type})")
        return Response(khata_analytics(days=days, analytics_type=analytics_type))
    except Exception as e:
        logger.error(f"Error in khata analytics: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while generating khata analytics'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

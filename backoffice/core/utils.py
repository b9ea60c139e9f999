"""Utility functions for audit logging, document numbers and shop-local time"""
import logging
from zoneinfo import ZoneInfo

from django.conf import settings
from django.core.paginator import Paginator
from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response

from .models import AuditLog, DocumentSequence

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (request_approve, bill_create, ledger_approve, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object
        object_reference: Reference identifier (e.g., request id, bill number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        # Savepoint so a failed insert cannot poison an enclosing transaction
        with transaction.atomic():
            return AuditLog.objects.create(
                user=audit_user if audit_user and audit_user.is_authenticated else None,
                action=action,
                model_name=model_name,
                object_id=str(object_id),
                object_name=object_name,
                object_reference=object_reference,
                changes=changes or {},
                ip_address=get_client_ip(request) if request else None
            )
    except Exception as e:
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def shop_timezone():
    """Timezone the shop reports in (India Standard Time by default)"""
    return ZoneInfo(settings.SHOP_TIME_ZONE)


def shop_now():
    return timezone.localtime(timezone.now(), shop_timezone())


def next_document_number(prefix, year=None):
    """
    Allocate the next number in the (prefix, year) sequence.

    The sequence row is locked for the duration of the increment, so two
    concurrent callers can never receive the same number.

    Returns:
        A string like "BILL-2025-0007". The counter is zero-padded to four
        digits and keeps growing past 9999.
    """
    if year is None:
        year = shop_now().year
    with transaction.atomic():
        sequence, _ = DocumentSequence.objects.select_for_update().get_or_create(
            prefix=prefix, year=year
        )
        sequence.last_value += 1
        sequence.save(update_fields=['last_value', 'updated_at'])
    return f"{prefix}-{year}-{sequence.last_value:04d}"


def paginated_response(request, queryset, serializer_class, default_limit=50):
    """Page a queryset with ?page=&limit= and wrap it in the list envelope"""
    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', default_limit))
    except (TypeError, ValueError):
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    limit = max(1, min(limit, 500))

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True, context={'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })

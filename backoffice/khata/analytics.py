"""Khata dashboard aggregates over a trailing window of days"""
import logging
from datetime import datetime, time, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.db.models import Count, F, Sum
from django.db.models.functions import TruncDate

from backoffice.core.utils import shop_now, shop_timezone
from .ledger import BOOKS
from .models import ApprovalStatus

logger = logging.getLogger(__name__)

ANALYTICS_TYPES = ('karigar', 'vyapari', 'all')


def _total(queryset):
    return float(queryset.aggregate(total=Sum('amount'))['total'] or Decimal('0.00'))


def _daily_series(queryset, start_date, end_date, tz):
    """One point per calendar day in [start_date, end_date], zero-filled"""
    rows = queryset.annotate(
        day=TruncDate('created_at', tzinfo=tz)
    ).values('day').annotate(
        total=Sum('amount'),
        count=Count('id'),
    ).order_by('day')
    by_day = {row['day']: row for row in rows}

    series = []
    day = start_date
    while day <= end_date:
        row = by_day.get(day)
        series.append({
            'date': day.isoformat(),
            'totalAmount': float(row['total']) if row else 0.0,
            'count': row['count'] if row else 0,
        })
        day += timedelta(days=1)
    return series


def _book_summary(book, window, month_window, start_date, end_date, tz):
    party = book.party_field
    transactions = book.transaction_model.objects.filter(created_at__gte=window[0], created_at__lt=window[1])
    payments = book.payment_model.objects.filter(created_at__gte=window[0], created_at__lt=window[1])
    month_transactions = book.transaction_model.objects.filter(created_at__gte=month_window[0], created_at__lt=month_window[1])
    month_payments = book.payment_model.objects.filter(created_at__gte=month_window[0], created_at__lt=month_window[1])

    recent_transactions = transactions.select_related(party).order_by('-created_at')[:10]
    recent_payments = payments.select_related(party).order_by('-created_at')[:10]

    pending = transactions.filter(approval_status=ApprovalStatus.PENDING)
    resolved = transactions.filter(approval_status=ApprovalStatus.APPROVED)
    rejected = transactions.filter(approval_status=ApprovalStatus.REJECTED)
    approved_payments = payments.filter(approval_status=ApprovalStatus.APPROVED)
    live_transactions = transactions.exclude(approval_status=ApprovalStatus.REJECTED)
    live_payments = payments.exclude(approval_status=ApprovalStatus.REJECTED)

    # Money figures count approved entries only, matching party balances
    top_parties = resolved.values(party).annotate(
        name=F(f'{party}__name'),
        total=Sum('amount'),
    ).order_by('-total')[:5]

    return {
        'totalParties': book.party_model.objects.filter(approval_status=ApprovalStatus.APPROVED).count(),
        'recentTransactions': [
            {
                'id': t.pk,
                'transactionId': t.transaction_id,
                'partyName': getattr(t, party).name,
                'description': t.description,
                'amount': float(t.amount),
                'approvalStatus': t.approval_status,
                'createdAt': t.created_at.astimezone(tz).strftime('%b %d, %Y'),
            }
            for t in recent_transactions
        ],
        'recentPayments': [
            {
                'id': p.pk,
                'paymentId': p.payment_id,
                'partyName': getattr(p, party).name,
                'description': p.notes or f"Payment: {p.payment_id}",
                'amount': float(p.amount),
                'approvalStatus': p.approval_status,
                'createdAt': p.created_at.astimezone(tz).strftime('%b %d, %Y'),
            }
            for p in recent_payments
        ],
        'totalTransactionAmount': _total(resolved),
        'totalPaymentAmount': _total(approved_payments),
        'monthlyTransactionCount': month_transactions.count(),
        'monthlyPaymentCount': month_payments.count(),
        'totalTransactions': transactions.count(),
        'totalPayments': payments.count(),
        'pendingTransactions': pending.count(),
        'pendingTransactionAmount': _total(pending),
        'resolvedTransactions': resolved.count(),
        'resolvedTransactionAmount': _total(resolved),
        'rejectedTransactions': rejected.count(),
        'amountWeOwe': _total(resolved.filter(amount__gt=0)),
        'amountOwedToUs': abs(_total(resolved.filter(amount__lt=0))),
        'topParties': [
            {'id': row[party], 'name': row['name'] or 'Unknown', 'totalAmount': float(row['total'] or 0)}
            for row in top_parties
        ],
        'transactionChart': _daily_series(live_transactions, start_date, end_date, tz),
        'paymentChart': _daily_series(live_payments, start_date, end_date, tz),
    }


def khata_analytics(days=30, analytics_type='all', now=None):
    """
    Ledger KPIs for the last ``days`` days (inclusive of today) in shop time.

    Returns {'karigar': {...} | None, 'vyapari': {...} | None, 'timeRange': {...}}.
    """
    if analytics_type not in ANALYTICS_TYPES:
        raise ValueError(f"type must be one of {', '.join(ANALYTICS_TYPES)}")
    if days < 0:
        raise ValueError("days must not be negative")

    tz = shop_timezone()
    now = now.astimezone(tz) if now else shop_now()
    end_date = now.date()
    start_date = end_date - timedelta(days=days)
    window = (
        datetime.combine(start_date, time.min, tzinfo=tz),
        datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz),
    )
    month_start = datetime.combine(end_date.replace(day=1), time.min, tzinfo=tz)
    month_window = (month_start, month_start + relativedelta(months=1))

    result = {
        'karigar': None,
        'vyapari': None,
        'timeRange': {
            'start': start_date.isoformat(),
            'end': end_date.isoformat(),
            'days': days,
        },
    }
    for kind, book in BOOKS.items():
        if analytics_type in (kind, 'all'):
            result[kind] = _book_summary(book, window, month_window, start_date, end_date, tz)
    logger.debug(f"Khata analytics computed for type={analytics_type} days={days}")
    return result

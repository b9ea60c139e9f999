"""
Sales analytics: KPIs and a fixed-shape revenue trend for a time window.

Windows are resolved in shop time (IST). Every window has a previous period
of the same length immediately before it, used for the percentage changes.
"""
import logging
from bisect import bisect_right
from collections import namedtuple
from datetime import datetime, time, timedelta
from decimal import Decimal

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from backoffice.core.utils import shop_now, shop_timezone
from .billing import BILL_TYPES
from .models import Transaction

logger = logging.getLogger(__name__)

TIMEFRAMES = ('Today', 'Week', 'Month', 'Year')
UNCATEGORIZED = 'Uncategorized'
TOP_PRODUCTS_LIMIT = 5

Window = namedtuple('Window', ['start', 'end', 'previous_start', 'previous_end', 'granularity', 'timeframe'])

STEPS = {
    'hour': relativedelta(hours=1),
    'day': relativedelta(days=1),
    'month': relativedelta(months=1),
    'year': relativedelta(years=1),
}

DISPLAY_FORMATS = {
    'hour': '%b %d, %Y %H:%M',
    'day': '%b %d, %Y',
    'month': '%b %Y',
    'year': '%Y',
}


def _midnight(day, tz):
    return datetime.combine(day, time.min, tzinfo=tz)


def truncate(moment, granularity):
    """Start of the bucket containing ``moment``"""
    if granularity == 'hour':
        return moment.replace(minute=0, second=0, microsecond=0)
    if granularity == 'day':
        return moment.replace(hour=0, minute=0, second=0, microsecond=0)
    if granularity == 'month':
        return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return moment.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def _parse_bound(value, tz, is_end=False):
    try:
        parsed = isoparse(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    # A bare date as the end bound covers that whole day
    if is_end and len(value.strip()) == 10:
        parsed += timedelta(days=1)
    return parsed.astimezone(tz)


def custom_granularity(start, end):
    span = end - start
    if span <= timedelta(days=1):
        return 'hour'
    if span <= timedelta(days=31):
        return 'day'
    return 'month'


def resolve_window(timeframe=None, start=None, end=None, now=None):
    """
    Resolve a named timeframe or an explicit ``start``/``end`` pair to a
    half-open [start, end) window in shop time.
    """
    tz = shop_timezone()
    now = now.astimezone(tz) if now else shop_now()

    if start or end:
        if not (start and end):
            raise ValueError("Both start and end are required for a custom range")
        window_start = _parse_bound(start, tz)
        window_end = _parse_bound(end, tz, is_end=True)
        if window_end <= window_start:
            raise ValueError("end must be after start")
        span = window_end - window_start
        return Window(window_start, window_end, window_start - span, window_start,
                      custom_granularity(window_start, window_end), None)

    timeframe = timeframe or 'Today'
    if timeframe not in TIMEFRAMES:
        raise ValueError(f"timeframe must be one of {', '.join(TIMEFRAMES)}")

    today = _midnight(now.date(), tz)
    if timeframe == 'Today':
        return Window(today, today + timedelta(days=1), today - timedelta(days=1), today, 'hour', timeframe)
    if timeframe == 'Week':
        # Weeks start on Sunday
        week_start = today - timedelta(days=(now.weekday() + 1) % 7)
        return Window(week_start, week_start + timedelta(days=7),
                      week_start - timedelta(days=7), week_start, 'day', timeframe)
    if timeframe == 'Month':
        # Twelve calendar months ending with the current one
        month_start = truncate(today, 'month') - relativedelta(months=11)
        month_end = truncate(today, 'month') + relativedelta(months=1)
        return Window(month_start, month_end, month_start - relativedelta(months=12), month_start,
                      'month', timeframe)
    # Year: the current calendar year and the two before it
    year_start = truncate(today, 'year') - relativedelta(years=2)
    year_end = truncate(today, 'year') + relativedelta(years=1)
    return Window(year_start, year_end, year_start - relativedelta(years=3), year_start, 'year', timeframe)


def _bucket_name(moment, window):
    if window.granularity == 'hour':
        return moment.strftime('%H:%M')
    if window.granularity == 'day':
        return moment.strftime('%a' if window.timeframe == 'Week' else '%b %d')
    if window.granularity == 'month':
        return moment.strftime('%b' if window.timeframe == 'Month' else '%b %Y')
    return moment.strftime('%Y')


def trend_skeleton(window):
    """
    Zero-valued buckets covering the window, keyed by bucket start. Buckets
    are stepped from the window start, so a custom range starting mid-hour
    gets buckets starting mid-hour and none before the window.
    """
    buckets = {}
    step = STEPS[window.granularity]
    count = 0
    cursor = window.start
    while cursor < window.end:
        buckets[cursor] = {
            'name': _bucket_name(cursor, window),
            'value': Decimal('0.00'),
            'orders': 0,
            'timestamp': cursor.strftime(DISPLAY_FORMATS[window.granularity]),
        }
        count += 1
        cursor = window.start + step * count
    return buckets


def percent_change(current, previous):
    if not previous:
        return 0.0
    return float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100)


def _transactions(start, end, bill_type):
    queryset = Transaction.objects.filter(created_at__gte=start, created_at__lt=end)
    if bill_type:
        queryset = queryset.filter(bill_type=bill_type)
    return queryset


def _item_total(item):
    if item.get('total') is not None:
        return Decimal(str(item['total']))
    return Decimal(str(item.get('price') or 0)) * int(item.get('quantity') or 0)


def sales_analytics(timeframe=None, start=None, end=None, bill_type=None, now=None):
    """
    Returns {'metrics', 'salesTrend', 'topProducts', 'revenueByCategory'}.

    Raises ValueError for an unknown timeframe, bill type or a malformed range.
    """
    if bill_type in ('', 'all', 'All'):
        bill_type = None
    if bill_type and bill_type not in BILL_TYPES:
        raise ValueError(f"billType must be one of {', '.join(BILL_TYPES)}")

    tz = shop_timezone()
    window = resolve_window(timeframe, start, end, now=now)
    transactions = list(_transactions(window.start, window.end, bill_type))
    previous = list(_transactions(window.previous_start, window.previous_end, bill_type))

    total_revenue = sum((t.total_amount for t in transactions), Decimal('0.00'))
    total_orders = len(transactions)
    avg_order_value = total_revenue / total_orders if total_orders else Decimal('0.00')

    previous_revenue = sum((t.total_amount for t in previous), Decimal('0.00'))
    previous_orders = len(previous)
    previous_avg = previous_revenue / previous_orders if previous_orders else Decimal('0.00')

    revenue_change = percent_change(total_revenue, previous_revenue)
    orders_change = percent_change(total_orders, previous_orders)
    avg_order_change = percent_change(avg_order_value, previous_avg)

    buckets = trend_skeleton(window)
    bucket_starts = list(buckets)
    products = {}
    categories = {}
    for sale in transactions:
        index = bisect_right(bucket_starts, sale.created_at.astimezone(tz)) - 1
        if index >= 0:
            bucket = buckets[bucket_starts[index]]
            bucket['value'] += sale.total_amount
            bucket['orders'] += 1

        for item in sale.items or []:
            total = _item_total(item)
            key = item.get('product_id') or item.get('product_name')
            product = products.setdefault(key, {
                'productId': item.get('product_id'),
                'name': item.get('product_name') or 'Unknown',
                'category': item.get('category') or UNCATEGORIZED,
                'quantity': 0,
                'revenue': Decimal('0.00'),
            })
            product['quantity'] += int(item.get('quantity') or 0)
            product['revenue'] += total

            category = item.get('category') or UNCATEGORIZED
            categories[category] = categories.get(category, Decimal('0.00')) + total

    top_products = sorted(products.values(), key=lambda p: p['revenue'], reverse=True)[:TOP_PRODUCTS_LIMIT]
    for product in top_products:
        product['revenue'] = float(product['revenue'])

    revenue_by_category = [
        {
            'category': category,
            'revenue': float(revenue),
            'percentage': float(revenue / total_revenue * 100) if total_revenue else 0.0,
        }
        for category, revenue in sorted(categories.items(), key=lambda entry: entry[1], reverse=True)
    ]

    sales_trend = [
        {
            'name': bucket['name'],
            'value': float(bucket['value']),
            'orders': bucket['orders'],
            'timestamp': bucket['timestamp'],
        }
        for bucket in buckets.values()
    ]

    logger.debug(
        f"Sales analytics {window.timeframe or 'custom'} {window.start.isoformat()}..{window.end.isoformat()}: "
        f"{total_orders} orders, {len(sales_trend)} buckets"
    )
    return {
        'metrics': {
            'totalRevenue': float(total_revenue),
            'totalOrders': total_orders,
            'avgOrderValue': float(avg_order_value),
            'revenueChange': revenue_change,
            'ordersChange': orders_change,
            'avgOrderChange': avg_order_change,
            'previousPeriodComparison': {
                'revenue': revenue_change,
                'sales': orders_change,
                'avgOrder': avg_order_change,
                'orders': orders_change,
            },
        },
        'salesTrend': sales_trend,
        'topProducts': top_products,
        'revenueByCategory': revenue_by_category,
    }

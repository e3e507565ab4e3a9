from datetime import timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from core.serializers import as_number, stock_item_to_dict
from .aggregation import local_date

DATE_FILTERS = ('today', 'week', 'month')
PAYMENT_FILTERS = ('all', 'cash', 'qr')


def date_range(date_filter, now=None) -> Tuple[Optional[object], Optional[object]]:
    """Inclusive (start, end) of the current day, week (Sunday to Saturday) or month.

    Unknown filters mean no bound at all.
    """
    now = timezone.localtime(now or timezone.now())
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_filter == 'today':
        start = midnight
        end = start + timedelta(days=1)
    elif date_filter == 'week':
        start = midnight - timedelta(days=(now.weekday() + 1) % 7)
        end = start + timedelta(days=7)
    elif date_filter == 'month':
        start = midnight.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1)
    else:
        return None, None
    return start, end - timedelta(microseconds=1)


def filter_bills(bills: Iterable, start=None, end=None, payment_filter='all') -> List:
    out = []
    for bill in bills:
        if start is not None and bill.created_at < start:
            continue
        if end is not None and bill.created_at > end:
            continue
        if payment_filter in ('cash', 'qr') and bill.payment_method != payment_filter:
            continue
        out.append(bill)
    return out


def _top_items_by_revenue(bills, limit):
    revenue = {}
    for bill in bills:
        for line in bill.items.all():
            entry = revenue.setdefault(line.item_id, {'name': line.name, 'revenue': Decimal('0')})
            entry['revenue'] += line.line_total
    top = sorted(revenue.values(), key=lambda e: e['revenue'], reverse=True)[:limit]
    return [{'name': e['name'], 'revenue': as_number(e['revenue'])} for e in top]


def sales_report(bills: Iterable, date_filter='week', payment_filter='all', now=None) -> dict:
    start, end = date_range(date_filter, now)
    selected = filter_bills(bills, start, end, payment_filter)

    total_sales = sum((b.total_amount for b in selected), Decimal('0'))
    total_profit = sum((b.total_profit for b in selected), Decimal('0'))
    total_bills = len(selected)
    avg_bill_value = (total_sales / total_bills) if total_bills else Decimal('0')

    if date_filter == 'today':
        buckets = {f'{h:02d}:00': Decimal('0') for h in range(24)}
        for b in selected:
            buckets[f'{timezone.localtime(b.created_at).hour:02d}:00'] += b.total_amount
    else:
        buckets = {}
        for b in sorted(selected, key=lambda b: b.created_at):
            key = local_date(b.created_at).isoformat()
            buckets[key] = buckets.get(key, Decimal('0')) + b.total_amount

    by_method = {'cash': Decimal('0'), 'qr': Decimal('0')}
    for b in selected:
        by_method[b.payment_method] = by_method.get(b.payment_method, Decimal('0')) + b.total_amount
    payment_breakdown = [
        {'name': label, 'value': as_number(by_method[key])}
        for key, label in (('cash', 'Cash'), ('qr', 'QR'))
        if by_method[key] > 0
    ]

    return {
        'dateFilter': date_filter,
        'paymentFilter': payment_filter,
        'metrics': {
            'totalSales': as_number(total_sales),
            'totalProfit': as_number(total_profit),
            'totalBills': total_bills,
            'avgBillValue': as_number(Decimal(avg_bill_value).quantize(Decimal('0.01'))),
        },
        'salesOverTime': [{'name': k, 'sales': as_number(v)} for k, v in buckets.items()],
        'paymentBreakdown': payment_breakdown,
        'topItems': _top_items_by_revenue(selected, settings.STORE_TOP_ITEMS_LIMIT),
    }


def home_summary(bills: Iterable, stock_items: Iterable, now=None) -> dict:
    """Today's hourly sales, best sellers and items running out."""
    now = timezone.localtime(now or timezone.now())
    today = now.date()

    by_hour = [Decimal('0')] * 24
    for b in bills:
        created = timezone.localtime(b.created_at)
        if created.date() == today:
            by_hour[created.hour] += b.total_amount

    stock_items = list(stock_items)
    top = sorted(stock_items, key=lambda s: s.sales_count, reverse=True)[:settings.STORE_TOP_ITEMS_LIMIT]
    low = [s for s in stock_items if s.is_out_of_stock or s.is_low_stock]

    return {
        'date': today.isoformat(),
        'totalSales': as_number(sum(by_hour, Decimal('0'))),
        'salesByHour': [{'hour': str(h), 'sales': as_number(v)} for h, v in enumerate(by_hour)],
        'topItems': [stock_item_to_dict(s) for s in top],
        'lowStockItems': [stock_item_to_dict(s) for s in low],
    }

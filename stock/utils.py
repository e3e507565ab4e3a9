from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db.models import Q

STOCK_STATUSES = ('all', 'inStock', 'lowStock', 'outOfStock')


def _parse_price(value):
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return None


def filter_stock(qs, q='', status='all', price_type='mrp', min_price=None, max_price=None):
    """Narrow a stock queryset by search text, stock status and a price window.

    ``q`` matches name or category; ``price_type`` selects whether the bounds
    apply to the MRP or to the buying price. Unparsable bounds are ignored.
    """
    q = (q or '').strip()
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(category__icontains=q))

    low = settings.STORE_LOW_STOCK_THRESHOLD
    if status == 'inStock':
        qs = qs.filter(quantity__gt=low)
    elif status == 'lowStock':
        qs = qs.filter(quantity__gt=0, quantity__lte=low)
    elif status == 'outOfStock':
        qs = qs.filter(quantity=0)

    price_field = 'buying_price' if price_type == 'buying' else 'mrp'
    lo = _parse_price(min_price)
    hi = _parse_price(max_price)
    if lo is not None:
        qs = qs.filter(**{f'{price_field}__gte': lo})
    if hi is not None:
        qs = qs.filter(**{f'{price_field}__lte': hi})
    return qs

from datetime import date, timedelta

from django.contrib.auth.decorators import login_required
from django.http import Http404, JsonResponse
from django.utils import timezone

from core.http import json_error
from core.repository import get_repository
from .aggregation import daily_profits, profit_for_day
from .reports import DATE_FILTERS, PAYMENT_FILTERS, home_summary, sales_report


@login_required
def profit_view(request):
    """Daily profit history, newest first, plus today's and yesterday's totals."""
    days = daily_profits(get_repository(request).get_bills())
    today = timezone.localdate()
    return JsonResponse({
        'today': profit_for_day(days, today).as_dict(),
        'yesterday': profit_for_day(days, today - timedelta(days=1)).as_dict(),
        'days': [d.as_dict() for d in days],
    })


@login_required
def profit_day_view(request, day):
    try:
        wanted = date.fromisoformat(day)
    except ValueError:
        raise Http404('Invalid date')
    days = daily_profits(get_repository(request).get_bills())
    summary = profit_for_day(days, wanted)
    payload = summary.as_dict()
    payload['items'] = [it.as_dict() for it in summary.items_by_profit()]
    return JsonResponse(payload)


@login_required
def reports_view(request):
    date_filter = request.GET.get('filter', 'week')
    payment_filter = request.GET.get('payment', 'all')
    if date_filter not in DATE_FILTERS:
        return json_error(f'filter must be one of {", ".join(DATE_FILTERS)}')
    if payment_filter not in PAYMENT_FILTERS:
        return json_error(f'payment must be one of {", ".join(PAYMENT_FILTERS)}')
    bills = get_repository(request).get_bills()
    return JsonResponse(sales_report(bills, date_filter, payment_filter))


@login_required
def home_view(request):
    repo = get_repository(request)
    start = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
    bills = repo.get_bills_between(start, timezone.now() + timedelta(days=1))
    return JsonResponse(home_summary(bills, repo.get_stock_items()))

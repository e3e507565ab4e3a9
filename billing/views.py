import json

from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from core.backup import export_data, export_filename
from core.http import json_error, request_data
from core.repository import get_repository
from core.serializers import as_number, bill_to_dict
from . import cart as cart_ops
from .models import Bill
from .utils import cart_totals, commit_bill


def _cart_payload(cart):
    lines = cart_ops.cart_lines(cart)
    total_amount, total_profit = cart_totals(lines)
    return {
        'items': [
            {**line, 'mrp': as_number(line['mrp']), 'profit': as_number(line['profit'])}
            for line in lines
        ],
        'totalAmount': as_number(total_amount),
        'totalProfit': as_number(total_profit),
    }


def _parse_quantity(value, default=1):
    if value is None or value == '':
        return default
    # JSON bodies may carry booleans or floats; only whole numbers are quantities
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(value)
        return int(value)
    return int(value)


@login_required
def cart_view(request):
    return JsonResponse(_cart_payload(cart_ops.get_cart(request)))


@login_required
@require_POST
def add_to_cart_view(request, item_id):
    stock_item = get_object_or_404(get_repository(request).stock_queryset(), pk=item_id)
    try:
        qty = _parse_quantity(request_data(request).get('quantity'))
    except (TypeError, ValueError):
        return json_error('Quantity must be a whole number.')

    cart = cart_ops.get_cart(request)
    try:
        cart_ops.add_item(cart, stock_item, qty)
    except ValueError as e:
        return json_error(str(e))
    cart_ops.save_cart(request, cart)
    return JsonResponse(_cart_payload(cart))


@login_required
@require_POST
def remove_from_cart_view(request, item_id):
    cart = cart_ops.get_cart(request)
    if not cart_ops.remove_item(cart, item_id):
        return json_error('Item not in cart.', status=404)
    cart_ops.save_cart(request, cart)
    return JsonResponse(_cart_payload(cart))


@login_required
@require_POST
def update_cart_view(request):
    """Set line quantities from ``qty_<item id>`` fields; zero or less drops the line."""
    data = request_data(request)
    repo = get_repository(request)
    cart = cart_ops.get_cart(request)
    stock = repo.stock_items_by_id(cart.keys())
    errors = {}
    for key in list(cart.keys()):
        qty_str = data.get(f'qty_{key}')
        if qty_str is None:
            continue
        try:
            qty = _parse_quantity(qty_str, default=0)
        except (TypeError, ValueError):
            errors[key] = 'Quantity must be a whole number.'
            continue
        stock_item = stock.get(key)
        if stock_item is None:
            # sold-out or deleted item: only removal makes sense
            if qty <= 0:
                cart_ops.remove_item(cart, key)
            else:
                errors[key] = 'Item is no longer in stock.'
            continue
        try:
            cart_ops.set_quantity(cart, stock_item, qty)
        except ValueError as e:
            errors[key] = str(e)
    cart_ops.save_cart(request, cart)
    payload = _cart_payload(cart)
    if errors:
        return JsonResponse({**payload, 'errors': errors}, status=400)
    return JsonResponse(payload)


@login_required
@require_POST
def checkout_view(request):
    cart = cart_ops.get_cart(request)
    if not cart:
        return json_error('Your cart is empty.')
    payment_method = request_data(request).get('payment_method')
    try:
        bill = commit_bill(request.user, cart, payment_method)
    except ValueError as e:
        return json_error(str(e))
    cart_ops.clear_cart(request)
    return JsonResponse(bill_to_dict(bill), status=201)


@login_required
def bill_list_view(request):
    qs = get_repository(request).bill_queryset().order_by('-created_at')
    payment = request.GET.get('payment')
    if payment in (Bill.CASH, Bill.QR):
        qs = qs.filter(payment_method=payment)
    page_obj = Paginator(qs, 25).get_page(request.GET.get('page'))
    return JsonResponse({
        'count': page_obj.paginator.count,
        'page': page_obj.number,
        'numPages': page_obj.paginator.num_pages,
        'bills': [bill_to_dict(b) for b in page_obj.object_list],
    })


@login_required
def bill_detail_view(request, pk):
    bill = get_object_or_404(get_repository(request).bill_queryset(), pk=pk)
    return JsonResponse(bill_to_dict(bill))


@login_required
def export_view(request):
    data = export_data(get_repository(request))
    response = HttpResponse(json.dumps(data, indent=2, ensure_ascii=False), content_type='application/json')
    response['Content-Disposition'] = f'attachment; filename="{export_filename()}"'
    return response

import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from core.http import form_errors, json_error, request_data
from core.repository import get_repository
from core.serializers import stock_item_to_dict
from .forms import StockItemForm, stock_item_initial
from .utils import STOCK_STATUSES, filter_stock

logger = logging.getLogger(__name__)

# wire names accepted alongside the form field names
FIELD_ALIASES = {
    'buyingPrice': 'buying_price',
    'imageUrl': 'image_url',
}


def _form_data(data):
    return {FIELD_ALIASES.get(k, k): v for k, v in data.items()}


@login_required
def stock_list_view(request):
    repo = get_repository(request)
    if request.method == 'POST':
        form = StockItemForm(_form_data(request_data(request)))
        if not form.is_valid():
            return json_error('Please correct the errors below.', errors=form_errors(form))
        item = repo.add_stock_item(**{f: form.cleaned_data[f] for f in StockItemForm.Meta.fields})
        logger.info('Stock item %s added for %s', item.name, request.user)
        return JsonResponse(stock_item_to_dict(item), status=201)

    status = request.GET.get('status', 'all')
    if status not in STOCK_STATUSES:
        return json_error(f'status must be one of {", ".join(STOCK_STATUSES)}')
    qs = filter_stock(
        repo.stock_queryset().order_by('name'),
        q=request.GET.get('q', ''),
        status=status,
        price_type=request.GET.get('price_type', 'mrp'),
        min_price=request.GET.get('min_price'),
        max_price=request.GET.get('max_price'),
    )
    items = [stock_item_to_dict(item) for item in qs]
    return JsonResponse({'count': len(items), 'items': items})


@login_required
@require_POST
def stock_bulk_create_view(request):
    rows = request_data(request).get('items')
    if not isinstance(rows, list) or not rows:
        return json_error('Send a non-empty "items" list.')

    cleaned = []
    errors = {}
    for index, row in enumerate(rows):
        form = StockItemForm(_form_data(row) if isinstance(row, dict) else {})
        if form.is_valid():
            cleaned.append({f: form.cleaned_data[f] for f in StockItemForm.Meta.fields})
        else:
            errors[index] = form_errors(form)
    if errors:
        return json_error('Some rows are invalid; nothing was added.', errors=errors)

    created = get_repository(request).add_stock_items(cleaned)
    logger.info('Bulk added %d stock items for %s', len(created), request.user)
    return JsonResponse({'count': len(created), 'items': [stock_item_to_dict(i) for i in created]}, status=201)


@login_required
def stock_detail_view(request, pk):
    repo = get_repository(request)
    item = get_object_or_404(repo.stock_queryset(), pk=pk)
    if request.method == 'POST':
        posted = _form_data(request_data(request))
        data = stock_item_initial(item)
        # a changed price re-derives the other price instead of clashing with the stored one
        if 'mrp' in posted and 'profit' not in posted:
            data.pop('profit')
        elif ('profit' in posted or 'buying_price' in posted) and 'mrp' not in posted:
            data.pop('mrp')
        data.update(posted)
        form = StockItemForm(data, instance=item)
        if not form.is_valid():
            return json_error('Please correct the errors below.', errors=form_errors(form))
        item = form.save(commit=False)
        repo.update_stock_item(item)
        logger.info('Stock item %s updated for %s', item.name, request.user)
    return JsonResponse(stock_item_to_dict(item))


@login_required
@require_POST
def stock_delete_view(request, pk):
    repo = get_repository(request)
    item = get_object_or_404(repo.stock_queryset(), pk=pk)
    name = item.name
    repo.delete_stock_item(item.pk)
    logger.info('Stock item %s deleted for %s', name, request.user)
    return JsonResponse({'deleted': str(pk), 'name': name})

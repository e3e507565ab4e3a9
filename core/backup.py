"""JSON backup of one shopkeeper's stock and bills.

The document is ``{user, stock, bills, exportedAt}`` with stock items and
bills in their camelCase wire form (``createdAt`` in epoch milliseconds).
Importing it back is meant for manual reconciliation: stock rows are
upserted by id and unknown bills are inserted as they are, without
replaying their stock decrements.
"""
import json
import logging
import os
import uuid
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, InvalidOperation
from typing import Tuple

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from billing.models import Bill, BillItem
from stock.models import StockItem
from .repository import ShopRepository, parse_uuid
from .serializers import bill_to_dict, stock_item_to_dict

logger = logging.getLogger(__name__)

IMPORT_NAMESPACE = uuid.UUID('6f0b7c1e-3a52-4c4e-9a57-2b1d8e7f4a10')


class BackupError(ValueError):
    pass


def export_data(repo: ShopRepository, now=None) -> dict:
    now = now or timezone.now()
    data = {
        'user': repo.user.get_username(),
        'stock': [stock_item_to_dict(item) for item in repo.get_stock_items()],
        'bills': [bill_to_dict(bill) for bill in repo.get_bills()],
        'exportedAt': now.isoformat(),
    }
    logger.info('Exported %d stock items and %d bills for %s',
                len(data['stock']), len(data['bills']), data['user'])
    return data


def export_filename(now=None) -> str:
    return f'inventory_backup_{timezone.localdate(now or timezone.now()).isoformat()}.json'


def write_backup(data: dict, path: str) -> None:
    tmp = path + '.tmp'
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    with open(tmp, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)


def read_backup(path: str) -> dict:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except ValueError as exc:
        raise BackupError(f'{path} is not valid JSON: {exc}') from exc


MAX_MONEY = Decimal('10') ** 10  # Decimal(12, 2) columns


def _decimal(value, field) -> Decimal:
    if isinstance(value, bool):
        raise BackupError(f'Invalid number for {field}: {value!r}')
    try:
        number = Decimal(str(value if value is not None else 0))
    except InvalidOperation as exc:
        raise BackupError(f'Invalid number for {field}: {value!r}') from exc
    if not number.is_finite() or abs(number) >= MAX_MONEY:
        raise BackupError(f'Invalid number for {field}: {value!r}')
    return number


def _count(value, field) -> int:
    """A non-negative whole number; missing or empty counts as 0."""
    if value is None or value == '':
        return 0
    if isinstance(value, bool):
        raise BackupError(f'Invalid count for {field}: {value!r}')
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise BackupError(f'Invalid count for {field}: {value!r}') from exc
    if not number.is_finite() or number != number.to_integral_value() or number < 0:
        raise BackupError(f'Invalid count for {field}: {value!r}')
    return int(number)


def _created_at(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
        except (ValueError, OverflowError, OSError) as exc:
            raise BackupError(f'Invalid createdAt: {value!r}') from exc
    if isinstance(value, str):
        dt = parse_datetime(value)
        if dt is not None:
            return dt if timezone.is_aware(dt) else timezone.make_aware(dt)
    raise BackupError(f'Invalid createdAt: {value!r}')


def _local_id(model, user, raw_id) -> uuid.UUID:
    """Primary key to store ``raw_id`` under for ``user``.

    Ids that are not UUIDs, or that another user already owns, are mapped
    to a UUID derived from the user and the raw id, so re-importing the same
    document lands on the same rows.
    """
    pk = parse_uuid(raw_id)
    if pk is not None and not model.objects.filter(pk=pk).exclude(owner=user).exists():
        return pk
    return uuid.uuid5(IMPORT_NAMESPACE, f'{model._meta.label}:{user.pk}:{raw_id}')


def import_data(repo: ShopRepository, data, replace=False) -> Tuple[int, int]:
    """Load a backup document into ``repo``; returns (stock rows written, bills added)."""
    if not isinstance(data, dict):
        raise BackupError('Backup document must be a JSON object')
    stock_rows = data.get('stock', [])
    bill_rows = data.get('bills', [])
    if not isinstance(stock_rows, list) or not isinstance(bill_rows, list):
        raise BackupError('"stock" and "bills" must be lists')

    user = repo.user
    stock_count = 0
    bill_count = 0
    try:
        with transaction.atomic():
            if replace:
                repo.clear()

            id_map = {}
            for row in stock_rows:
                raw_id = str(row['id'])
                pk = _local_id(StockItem, user, raw_id)
                id_map[raw_id] = str(pk)
                StockItem.objects.update_or_create(
                    pk=pk,
                    owner=user,
                    defaults={
                        'name': row['name'],
                        'category': row.get('category') or '',
                        'buying_price': _decimal(row.get('buyingPrice'), 'buyingPrice'),
                        'profit': _decimal(row.get('profit'), 'profit'),
                        'mrp': _decimal(row.get('mrp'), 'mrp'),
                        'image_url': row.get('imageUrl') or '',
                        'sales_count': _count(row.get('salesCount'), 'salesCount'),
                        'quantity': _count(row.get('quantity'), 'quantity'),
                    },
                )
                stock_count += 1

            for row in bill_rows:
                pk = _local_id(Bill, user, str(row['id']))
                if Bill.objects.filter(pk=pk).exists():
                    continue
                payment_method = row.get('paymentMethod')
                if payment_method not in (Bill.CASH, Bill.QR):
                    raise BackupError(f'Invalid paymentMethod: {payment_method!r}')
                raw_lines = row.get('items') or []
                lines = [
                    BillItem(
                        item_id=id_map.get(str(line['itemId']), str(line['itemId'])),
                        name=line['name'],
                        mrp=_decimal(line.get('mrp'), 'mrp'),
                        quantity=_count(line['quantity'], 'quantity'),
                        profit=_decimal(line.get('profit'), 'profit'),
                    )
                    for line in raw_lines
                ]
                if 'totalAmount' in row and 'totalProfit' in row:
                    total_amount = _decimal(row['totalAmount'], 'totalAmount')
                    total_profit = _decimal(row['totalProfit'], 'totalProfit')
                else:
                    total_amount = sum((l.line_total for l in lines), Decimal('0'))
                    total_profit = sum((l.line_profit for l in lines), Decimal('0'))
                bill = Bill(
                    id=pk,
                    total_amount=total_amount,
                    total_profit=total_profit,
                    created_at=_created_at(row.get('createdAt')),
                    payment_method=payment_method,
                )
                repo.save_bill(bill, lines)
                bill_count += 1
    except BackupError:
        raise
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise BackupError(f'Malformed backup row: missing or invalid {exc}') from exc

    logger.info('Imported %d stock items and %d bills for %s (replace=%s)',
                stock_count, bill_count, user.get_username(), replace)
    return stock_count, bill_count

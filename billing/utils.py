import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

from django.db import transaction
from django.utils import timezone

from core.repository import ShopRepository
from .models import Bill, BillItem

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _lines(cart):
    # session carts are dicts keyed by item id; plain lists are accepted too
    if hasattr(cart, 'values'):
        return list(cart.values())
    return list(cart)


def cart_totals(lines: Iterable[dict]) -> Tuple[Decimal, Decimal]:
    """(total_amount, total_profit) of cart lines.

    Unit prices are rounded to cents before multiplying, the same way bill
    lines store them, so the totals always equal the sum of the lines.
    """
    total_amount = Decimal('0')
    total_profit = Decimal('0')
    for line in lines:
        qty = int(line['quantity'])
        total_amount += _money(line['mrp']) * qty
        total_profit += _money(line['profit']) * qty
    return total_amount, total_profit


def commit_bill(user, cart, payment_method, created_at=None) -> Bill:
    """Turn a cart into a stored bill and reflect the sale on the user's stock.

    Every sold line decrements the stock item's quantity (never below zero;
    overselling is allowed and clamps) and adds to its sales count. Lines
    whose item no longer exists are kept on the bill and leave stock alone.
    The bill and the stock changes are written in one transaction.
    """
    if not cart:
        raise ValueError('Cart is empty')
    if payment_method not in (Bill.CASH, Bill.QR):
        raise ValueError(f'Unknown payment method: {payment_method!r}')

    lines = _lines(cart)
    repo = ShopRepository(user)

    with transaction.atomic():
        items = [
            BillItem(
                item_id=str(line['itemId']),
                name=line['name'],
                mrp=_money(line['mrp']),
                quantity=int(line['quantity']),
                profit=_money(line['profit']),
            )
            for line in lines
        ]
        total_amount = sum((it.line_total for it in items), Decimal('0'))
        total_profit = sum((it.line_profit for it in items), Decimal('0'))
        bill = Bill(
            total_amount=total_amount,
            total_profit=total_profit,
            created_at=created_at or timezone.now(),
            payment_method=payment_method,
        )
        repo.save_bill(bill, items)

        stock = repo.stock_items_by_id([it.item_id for it in items], for_update=True)
        touched = {}
        for it in items:
            stock_item = stock.get(it.item_id)
            if stock_item is None:
                continue
            stock_item.sales_count += it.quantity
            remaining = stock_item.quantity - it.quantity
            if remaining < 0:
                logger.warning('Oversold %s by %d on bill %s; quantity clamped to 0',
                               stock_item.name, -remaining, bill.id)
                remaining = 0
            stock_item.quantity = remaining
            touched[it.item_id] = stock_item
        for stock_item in touched.values():
            repo.update_stock_item(stock_item)

    logger.info('Bill %s committed for %s: %d lines, amount %s, profit %s, %s',
                bill.id, user, len(items), total_amount, total_profit, payment_method)
    return bill

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

from django.utils import timezone

from core.serializers import as_number

CASH = 'cash'


@dataclass
class ProfitDetailItem:
    name: str
    quantity: int = 0
    total_profit: Decimal = Decimal('0')
    cash_profit: Decimal = Decimal('0')
    qr_profit: Decimal = Decimal('0')

    def as_dict(self) -> dict:
        return {
            'name': self.name,
            'quantity': self.quantity,
            'totalProfit': as_number(self.total_profit),
            'cashProfit': as_number(self.cash_profit),
            'qrProfit': as_number(self.qr_profit),
        }


@dataclass
class DailyProfit:
    date: str  # YYYY-MM-DD
    total_profit: Decimal = Decimal('0')
    cash_profit: Decimal = Decimal('0')
    qr_profit: Decimal = Decimal('0')
    items: List[ProfitDetailItem] = field(default_factory=list)

    def items_by_profit(self) -> List[ProfitDetailItem]:
        return sorted(self.items, key=lambda it: it.total_profit, reverse=True)

    def as_dict(self) -> dict:
        return {
            'date': self.date,
            'totalProfit': as_number(self.total_profit),
            'cashProfit': as_number(self.cash_profit),
            'qrProfit': as_number(self.qr_profit),
            'items': [it.as_dict() for it in self.items],
        }


def local_date(dt) -> date:
    """Calendar date of ``dt`` in the current time zone."""
    if timezone.is_aware(dt):
        dt = timezone.localtime(dt)
    return dt.date()


def daily_profits(bills: Iterable) -> List[DailyProfit]:
    """Group bills by local calendar day into profit summaries, newest day first.

    Each day carries its total profit split by payment method, plus one
    detail record per sold item (first-encounter order) whose quantity and
    profit are summed over every bill of that day.
    """
    days: Dict[str, DailyProfit] = {}
    day_items: Dict[str, Dict[str, ProfitDetailItem]] = {}

    for bill in bills:
        key = local_date(bill.created_at).isoformat()
        day = days.get(key)
        if day is None:
            day = days[key] = DailyProfit(date=key)
            day_items[key] = {}
        is_cash = bill.payment_method == CASH

        day.total_profit += bill.total_profit
        if is_cash:
            day.cash_profit += bill.total_profit
        else:
            day.qr_profit += bill.total_profit

        items = day_items[key]
        for line in bill.items.all():
            detail = items.get(line.item_id)
            if detail is None:
                detail = items[line.item_id] = ProfitDetailItem(name=line.name)
                day.items.append(detail)
            line_profit = line.line_profit
            detail.quantity += line.quantity
            detail.total_profit += line_profit
            if is_cash:
                detail.cash_profit += line_profit
            else:
                detail.qr_profit += line_profit

    return sorted(days.values(), key=lambda d: d.date, reverse=True)


def profit_for_day(days: Iterable[DailyProfit], day: date) -> DailyProfit:
    """The summary for ``day``, or an empty one when nothing was sold."""
    key = day.isoformat()
    for d in days:
        if d.date == key:
            return d
    return DailyProfit(date=key)

import uuid
from typing import Dict, Iterable, List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from billing.models import Bill, BillItem
from stock.models import StockItem


def parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


class ShopRepository:
    """Stock and bill storage of one shopkeeper.

    Every query is filtered by ``owner`` so that two users never see each
    other's rows; callers never touch the managers directly.
    """

    def __init__(self, user):
        self.user = user

    # -------------------------
    # Stock
    # -------------------------
    def stock_queryset(self):
        return StockItem.objects.filter(owner=self.user)

    def get_stock_items(self) -> List[StockItem]:
        return list(self.stock_queryset().order_by('name'))

    def get_stock_item(self, item_id) -> StockItem:
        pk = parse_uuid(item_id)
        if pk is None:
            raise StockItem.DoesNotExist(f'Stock item {item_id!r} not found')
        return self.stock_queryset().get(pk=pk)

    def stock_items_by_id(self, item_ids: Iterable, for_update=False) -> Dict[str, StockItem]:
        pks = [pk for pk in (parse_uuid(i) for i in item_ids) if pk is not None]
        qs = self.stock_queryset().filter(pk__in=pks)
        if for_update:
            qs = qs.select_for_update()
        return {str(item.pk): item for item in qs}

    def add_stock_item(self, **fields) -> StockItem:
        fields['sales_count'] = 0
        return StockItem.objects.create(owner=self.user, **fields)

    def add_stock_items(self, rows: Iterable[dict]) -> List[StockItem]:
        with transaction.atomic():
            return [self.add_stock_item(**row) for row in rows]

    def update_stock_item(self, item: StockItem) -> None:
        if item.owner_id != self.user.pk:
            return
        item.save()

    def delete_stock_item(self, item_id) -> None:
        pk = parse_uuid(item_id)
        if pk is not None:
            self.stock_queryset().filter(pk=pk).delete()

    # -------------------------
    # Bills
    # -------------------------
    def bill_queryset(self):
        return Bill.objects.filter(owner=self.user).prefetch_related('items')

    def get_bills(self) -> List[Bill]:
        return list(self.bill_queryset().order_by('-created_at'))

    def get_bills_between(self, start, end) -> List[Bill]:
        return list(self.bill_queryset().filter(created_at__gte=start, created_at__lte=end).order_by('-created_at'))

    def get_bill(self, bill_id) -> Bill:
        pk = parse_uuid(bill_id)
        if pk is None:
            raise Bill.DoesNotExist(f'Bill {bill_id!r} not found')
        return self.bill_queryset().get(pk=pk)

    def bill_id_taken(self, bill_id) -> bool:
        """True when any user already stores a bill under this primary key."""
        pk = parse_uuid(bill_id)
        return pk is not None and Bill.objects.filter(pk=pk).exists()

    def save_bill(self, bill: Bill, lines: List[BillItem]) -> Bill:
        bill.owner = self.user
        with transaction.atomic():
            bill.save(force_insert=True)
            for line in lines:
                line.bill = bill
            BillItem.objects.bulk_create(lines)
        return bill

    def clear(self) -> None:
        with transaction.atomic():
            Bill.objects.filter(owner=self.user).delete()
            self.stock_queryset().delete()


def get_repository(request) -> ShopRepository:
    return ShopRepository(request.user)


def repository_for_username(username) -> ShopRepository:
    """Repository of the user called ``username``; raises the user model's DoesNotExist."""
    return ShopRepository(get_user_model().objects.get(username=username))

import random
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from billing.models import Bill
from billing.utils import commit_bill
from core.repository import ShopRepository

SAMPLE_STOCK = [
    {'name': 'Organic Apples', 'category': 'Fruits', 'buying_price': Decimal('80'), 'profit': Decimal('20'), 'mrp': Decimal('100'), 'image_url': 'https://picsum.photos/seed/apples/200', 'quantity': 50},
    {'name': 'Whole Wheat Bread', 'category': 'Bakery', 'buying_price': Decimal('30'), 'profit': Decimal('10'), 'mrp': Decimal('40'), 'image_url': 'https://picsum.photos/seed/bread/200', 'quantity': 30},
    {'name': 'Almond Milk', 'category': 'Dairy', 'buying_price': Decimal('150'), 'profit': Decimal('50'), 'mrp': Decimal('200'), 'image_url': 'https://picsum.photos/seed/milk/200', 'quantity': 20},
    {'name': 'Avocado', 'category': 'Vegetables', 'buying_price': Decimal('40'), 'profit': Decimal('15'), 'mrp': Decimal('55'), 'image_url': 'https://picsum.photos/seed/avocado/200', 'quantity': 1},
    {'name': 'Quinoa', 'category': 'Grains', 'buying_price': Decimal('200'), 'profit': Decimal('70'), 'mrp': Decimal('270'), 'image_url': 'https://picsum.photos/seed/quinoa/200', 'quantity': 15},
    {'name': 'Dark Chocolate', 'category': 'Snacks', 'buying_price': Decimal('120'), 'profit': Decimal('40'), 'mrp': Decimal('160'), 'image_url': 'https://picsum.photos/seed/chocolate/200', 'quantity': 0},
]


def seed_sample_data(user, bills=0, rng=None):
    """Give ``user`` the demo catalogue (only when they have no stock yet) and ``bills`` random past sales.

    Returns (stock items created, bills created).
    """
    rng = rng or random.Random()
    repo = ShopRepository(user)

    created = []
    if not repo.stock_queryset().exists():
        created = repo.add_stock_items(dict(row) for row in SAMPLE_STOCK)

    stock = repo.get_stock_items()
    if not stock:
        return len(created), 0

    now = timezone.now()
    for _ in range(bills):
        cart = {}
        for item in rng.sample(stock, k=min(len(stock), rng.randint(1, 3))):
            cart[str(item.id)] = {
                'itemId': str(item.id),
                'name': item.name,
                'mrp': str(item.mrp),
                'quantity': 1,
                'profit': str(item.profit),
            }
        created_at = now - timedelta(milliseconds=rng.randint(0, 5 * 24 * 60 * 60 * 1000))
        commit_bill(user, cart, rng.choice([Bill.CASH, Bill.QR]), created_at=created_at)
    return len(created), bills

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models


class StockItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='stock_items')
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=128, blank=True)
    buying_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    # profit per unit; mrp is kept equal to buying_price + profit by the input forms
    profit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    mrp = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    image_url = models.TextField(blank=True)
    sales_count = models.PositiveIntegerField(default=0)
    quantity = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity == 0

    @property
    def is_low_stock(self) -> bool:
        return 0 < self.quantity <= settings.STORE_LOW_STOCK_THRESHOLD

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class Bill(models.Model):
    CASH = 'cash'
    QR = 'qr'

    PAYMENT_METHOD_CHOICES = [
        (CASH, 'Cash'),
        (QR, 'QR'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bills')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total_profit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    # not auto_now_add: imported and seeded bills carry their own time
    created_at = models.DateTimeField(default=timezone.now)
    payment_method = models.CharField(max_length=8, choices=PAYMENT_METHOD_CHOICES)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Bill {self.id} - Rs {self.total_amount} ({self.payment_method})"


class BillItem(models.Model):
    """A line of a bill: the stock item's name and prices copied at the time of sale."""
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name='items')
    item_id = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    mrp = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    profit = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.name} ({self.quantity})"

    @property
    def line_total(self) -> Decimal:
        return self.mrp * self.quantity

    @property
    def line_profit(self) -> Decimal:
        return self.profit * self.quantity

from django.contrib import admin
from .models import StockItem


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'owner', 'buying_price', 'profit', 'mrp', 'quantity', 'sales_count')
    list_filter = ('category', 'owner')
    search_fields = ('name', 'category')

from django.contrib import admin
from .models import Bill, BillItem


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0
    can_delete = False
    readonly_fields = ('item_id', 'name', 'mrp', 'quantity', 'profit')


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ('id', 'owner', 'created_at', 'payment_method', 'total_amount', 'total_profit')
    list_filter = ('payment_method', 'owner')
    date_hierarchy = 'created_at'
    inlines = [BillItemInline]

    # bills are immutable once created
    def has_change_permission(self, request, obj=None):
        return False

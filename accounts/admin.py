from django.contrib import admin
from .models import ShopProfile


@admin.register(ShopProfile)
class ShopProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'onboarded', 'created_at')
    list_filter = ('onboarded',)
    search_fields = ('user__username',)

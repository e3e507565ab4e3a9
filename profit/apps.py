from django.apps import AppConfig


class ProfitConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'profit'
    verbose_name = 'Profit & Reports'

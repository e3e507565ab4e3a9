from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('accounts/', include('accounts.urls')),
    path('stock/', include('stock.urls')),
    path('billing/', include('billing.urls')),
    path('profit/', include('profit.urls')),
    path('', RedirectView.as_view(pattern_name='profit:home', permanent=False)),
]

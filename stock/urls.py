from django.urls import path
from . import views

app_name = 'stock'

urlpatterns = [
    path('', views.stock_list_view, name='stock_list'),
    path('bulk/', views.stock_bulk_create_view, name='stock_bulk_create'),
    path('<uuid:pk>/', views.stock_detail_view, name='stock_detail'),
    path('<uuid:pk>/delete/', views.stock_delete_view, name='stock_delete'),
]

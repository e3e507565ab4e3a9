from django.urls import path
from . import views

app_name = 'billing'

urlpatterns = [
    path('', views.bill_list_view, name='bill_list'),
    path('<uuid:pk>/', views.bill_detail_view, name='bill_detail'),
    path('export/', views.export_view, name='export'),

    path('cart/', views.cart_view, name='cart_view'),
    path('cart/add/<uuid:item_id>/', views.add_to_cart_view, name='add_to_cart'),
    path('cart/remove/<uuid:item_id>/', views.remove_from_cart_view, name='remove_from_cart'),
    path('cart/update/', views.update_cart_view, name='update_cart'),
    path('checkout/', views.checkout_view, name='checkout'),
]

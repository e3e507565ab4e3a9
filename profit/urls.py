from django.urls import path
from . import views

app_name = 'profit'

urlpatterns = [
    path('', views.profit_view, name='profit_view'),
    path('reports/', views.reports_view, name='reports'),
    path('home/', views.home_view, name='home'),
    path('<str:day>/', views.profit_day_view, name='profit_day'),
]

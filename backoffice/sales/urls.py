from django.urls import path
from . import views

urlpatterns = [
    path('bills/', views.bill_list_create, name='bill-list-create'),
    path('bills/purge/', views.bill_purge, name='bill-purge'),
    path('bills/<int:pk>/', views.bill_detail, name='bill-detail'),
    path('sales/recent/', views.recent_sales, name='sales-recent'),
    path('sales/transactions/', views.transaction_list, name='sales-transaction-list'),
    path('sales/transactions/<int:pk>/', views.transaction_detail, name='sales-transaction-detail'),
    path('sales/analytics/', views.analytics, name='sales-analytics'),
]

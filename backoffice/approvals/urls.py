from django.urls import path
from . import views

urlpatterns = [
    path('product-requests/', views.product_request_list_create, name='product-request-list-create'),
    path('product-requests/<int:pk>/', views.product_request_detail, name='product-request-detail'),
    path('sales-requests/', views.sales_request_list_create, name='sales-request-list-create'),
    path('sales-requests/<int:pk>/', views.sales_request_detail, name='sales-request-detail'),
]

from django.urls import path
from . import views

urlpatterns = [
    path('products/', views.product_list, name='product-list'),
    path('products/low-stock/', views.low_stock_products, name='product-low-stock'),
    path('products/long-set/', views.long_set_create, name='long-set-create'),
    path('products/long-set/<int:pk>/', views.long_set_detail, name='long-set-detail'),
    path('products/<int:pk>/', views.product_detail, name='product-detail'),
    path('settings/low-stock-threshold/', views.low_stock_threshold, name='low-stock-threshold'),
]

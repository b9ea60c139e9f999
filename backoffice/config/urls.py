"""
URL configuration for the back-office API.

Every app mounts its function views under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Jewel Back Office Admin Panel"
admin.site.site_title = "Jewel Back Office Admin Portal"
admin.site.index_title = "Welcome to the Jewel Back Office"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.catalog.urls')),
    path('api/v1/', include('backoffice.approvals.urls')),
    path('api/v1/', include('backoffice.sales.urls')),
    path('api/v1/', include('backoffice.khata.urls')),
    path('api/v1/', include('backoffice.notifications.urls')),
]

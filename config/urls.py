from django.contrib import admin
from django.urls import path, include

from core.views import HealthCheckView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/users/', include('users.urls')),
    path('api/v1/donations/', include('donations.urls')),
    path('api/v1/feedback/', include('feedback.urls')),
    path('api/v1/notifications/', include('notifications.urls')),
    path("api/health/", HealthCheckView.as_view(), name="health-check"),
]

"""
Root URL configuration for Care Desk.

Pages, forms and navigation live in the frontend; this project only serves the API.
"""
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    return JsonResponse({"status": "healthy"})


urlpatterns = [
    path('api/', include('app.urls')),
    path('health', health_check),
]

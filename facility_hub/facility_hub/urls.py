"""
URL configuration for facility_hub project.

The public API lives under /api/ (see facilities.urls); the Django admin
doubles as the back office for imports and rating maintenance.
"""

from django.conf import settings
from django.contrib import admin
from django.http import JsonResponse
from django.shortcuts import redirect
from django.urls import include, path


def health_check(request):
    """Simple health check endpoint."""
    return JsonResponse({"status": "ok"})


def home_redirect(request):
    """Redirect root URL to admin interface."""
    return redirect("/admin/")


urlpatterns = [
    path("", home_redirect, name="home"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health"),
    path("api/", include("facilities.urls")),
    path("api/auth/", include("rest_framework.urls", namespace="rest_framework")),
]

# Debug toolbar is only installed by the local settings module
if settings.DEBUG and "debug_toolbar" in settings.INSTALLED_APPS:
    urlpatterns = [
        path("__debug__/", include("debug_toolbar.urls")),
    ] + urlpatterns

"""
URL configuration for facilities app API endpoints.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    FacilityImportView,
    FacilityViewSet,
    RecalculateRatingsView,
    ReviewViewSet,
)

router = DefaultRouter()
router.register(r"facilities", FacilityViewSet, basename="facility")
router.register(r"reviews", ReviewViewSet, basename="review")

app_name = "facilities"

urlpatterns = [
    path("", include(router.urls)),
    path(
        "admin/import/facilities/<str:fmt>/",
        FacilityImportView.as_view(),
        name="facility-import",
    ),
    path(
        "admin/facilities/recalculate-ratings/",
        RecalculateRatingsView.as_view(),
        name="recalculate-ratings",
    ),
]

"""
Admin configuration for the facilities app.
"""

import logging
from typing import Any, List, Optional, Tuple

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest

from .models import Facility, Review
from .services import DjangoFacilityRepository, RatingAggregator

logger = logging.getLogger(__name__)


def _aggregator() -> RatingAggregator:
    return RatingAggregator(DjangoFacilityRepository())


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    """
    Admin interface for Facility model.

    Search functionality:
    - Internal ID: Use exact ID number (e.g., "123")
    - Name / address: Use partial text search (e.g., "park")

    Filters available:
    - Type: Filter by sport type
    - District: Filter by district

    Facilities are created by the importer and are read-only here; only
    the cached ratings can be recomputed.
    """

    list_display = (
        "id",
        "name",
        "type",
        "district",
        "average_rating",
        "review_count_display",
    )
    search_fields = ("name", "address")
    list_filter = ("type", "district")
    ordering = ("name",)
    list_per_page = 50

    search_help_text = (
        "Search by: Internal ID (exact match), or facility name / address "
        "(partial match). Examples: '123' for ID, 'park' for name."
    )

    preserve_filters = True
    list_display_links = ("id", "name")

    fieldsets = (
        (
            "Basic Information",
            {"fields": ("name", "type", "district", "description")},
        ),
        ("Location", {"fields": ("address", "latitude", "longitude")}),
        (
            "Details",
            {
                "fields": (
                    "open_time",
                    "close_time",
                    "contact_phone",
                    "image_url",
                    "courts",
                    "amenities",
                    "age_restriction",
                    "gender_suitability",
                ),
                "classes": ("collapse",),
            },
        ),
        (
            "Ratings",
            {
                "fields": ("average_rating", "total_reviews", "created_at"),
                "description": "Ratings are recomputed from reviews",
            },
        ),
    )

    actions = ["recompute_cached_ratings"]

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    def get_readonly_fields(
        self, request: HttpRequest, obj: Optional[Facility] = None
    ) -> List[str]:
        return [field for _, options in self.fieldsets for field in options["fields"]]

    def get_search_results(
        self, request: HttpRequest, queryset: QuerySet[Facility], search_term: str
    ) -> Tuple[QuerySet[Facility], bool]:
        """
        Add exact ID matches for numeric search terms.
        """
        results, may_have_duplicates = super().get_search_results(
            request, queryset, search_term
        )

        term = search_term.strip()
        if term.isdigit():
            results |= queryset.filter(pk=int(term))

        return results, may_have_duplicates

    def recompute_cached_ratings(
        self, request: HttpRequest, queryset: QuerySet[Facility]
    ) -> None:
        """
        Admin action to recompute cached ratings from reviews.
        """
        result = _aggregator().refresh_caches(queryset.values_list("pk", flat=True))

        if result.updated > 0:
            self.message_user(
                request,
                f"Successfully recomputed cached ratings for {result.updated} facilities.",
            )

        if result.failed > 0:
            self.message_user(
                request,
                f"Encountered errors while processing {result.failed} facilities. "
                f"Check logs for details.",
                level=messages.ERROR,
            )

    recompute_cached_ratings.short_description = "Recompute cached ratings"

    def review_count_display(self, obj: Facility) -> str:
        """
        Display the number of reviews for this facility in the admin list.
        """
        if not obj.has_reviews:
            return "No reviews"

        count = obj.total_reviews
        if count == 1:
            return "1 review"
        else:
            return f"{count} reviews"

    review_count_display.short_description = "Reviews"
    review_count_display.admin_order_field = "total_reviews"


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """
    Admin interface for Review model. Saving or deleting a review refreshes
    the cached rating of its facility.
    """

    list_display = ("id", "facility", "rating", "created_at")
    list_filter = ("rating",)
    search_fields = ("facility__name",)
    list_select_related = ("facility",)
    raw_id_fields = ("facility",)

    def save_model(
        self, request: HttpRequest, obj: Review, form: Any, change: bool
    ) -> None:
        previous_facility_id = None
        if change and "facility" in form.changed_data:
            previous_facility_id = form.initial.get("facility")

        super().save_model(request, obj, form, change)

        aggregator = _aggregator()
        aggregator.refresh_cache(obj.facility_id)
        if previous_facility_id and previous_facility_id != obj.facility_id:
            aggregator.refresh_cache(previous_facility_id)

        logger.info(f"Saved review {obj.id} for facility {obj.facility_id} via admin")

    def delete_model(self, request: HttpRequest, obj: Review) -> None:
        facility_id = obj.facility_id
        super().delete_model(request, obj)
        _aggregator().refresh_cache(facility_id)

    def delete_queryset(self, request: HttpRequest, queryset: QuerySet[Review]) -> None:
        facility_ids = set(queryset.values_list("facility_id", flat=True))
        super().delete_queryset(request, queryset)
        _aggregator().refresh_caches(facility_ids)

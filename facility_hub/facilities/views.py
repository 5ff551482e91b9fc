"""
DRF views for the facilities app.
"""

import logging

from django.db.models import QuerySet
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .choices import DISTRICTS, FACILITY_TYPES
from .models import Facility, Review
from .serializers import FacilitySerializer, RecomputeRequestSerializer, ReviewSerializer
from .services import (
    DjangoFacilityRepository,
    FacilityImporter,
    FacilityNotFound,
    MalformedInput,
    RatingAggregator,
    RecomputeResult,
    StoreUnavailable,
)
from .services.config import get_import_setting

logger = logging.getLogger(__name__)


def _store_unavailable_response(error: StoreUnavailable) -> Response:
    return Response(
        {"message": "Facility store is unavailable, try again later", "detail": str(error)},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


class FacilityViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for Facility model providing list and retrieve operations.

    Supports filtering by:
    - type: Sport type (?type=tennis)
    - district: District (?district=central)
    - min_rating: Minimum cached average rating (?min_rating=4)
    """

    serializer_class = FacilitySerializer

    filter_backends = [filters.OrderingFilter]
    ordering_fields = ["name", "type", "district", "average_rating", "id"]
    ordering = ["name"]

    def get_queryset(self) -> QuerySet[Facility]:
        queryset = Facility.objects.all()
        return self._apply_filters(queryset)

    def _apply_filters(self, queryset: QuerySet[Facility]) -> QuerySet[Facility]:
        """
        Apply custom filters based on query parameters.
        """
        params = self.request.query_params

        type_param = params.get("type")
        if type_param and type_param in FACILITY_TYPES:
            queryset = queryset.filter(type=type_param)

        district_param = params.get("district")
        if district_param and district_param in DISTRICTS:
            queryset = queryset.filter(district=district_param)

        min_rating = params.get("min_rating")
        if min_rating:
            try:
                queryset = queryset.filter(average_rating__gte=float(min_rating))
            except (ValueError, TypeError):
                pass  # Ignore invalid rating values

        return queryset

    @action(detail=True, methods=["get"])
    def rating(self, request: Request, pk=None) -> Response:
        """
        Get the live average rating and review count of a facility.
        """
        facility = self.get_object()
        try:
            summary = RatingAggregator(DjangoFacilityRepository()).compute_rating(
                facility.pk
            )
        except StoreUnavailable as e:
            return _store_unavailable_response(e)

        return Response({"rating": summary.rating, "count": summary.count})


class ReviewViewSet(viewsets.ModelViewSet):
    """
    CRUD for reviews. Every write refreshes the facility's cached rating.
    """

    queryset = Review.objects.select_related("facility")
    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get_aggregator(self) -> RatingAggregator:
        return RatingAggregator(DjangoFacilityRepository())

    def perform_create(self, serializer: ReviewSerializer) -> None:
        review = serializer.save()
        self.get_aggregator().refresh_cache(review.facility_id)

    def perform_update(self, serializer: ReviewSerializer) -> None:
        previous_facility_id = serializer.instance.facility_id
        review = serializer.save()

        aggregator = self.get_aggregator()
        aggregator.refresh_cache(review.facility_id)
        if previous_facility_id != review.facility_id:
            aggregator.refresh_cache(previous_facility_id)

    def perform_destroy(self, instance: Review) -> None:
        facility_id = instance.facility_id
        instance.delete()
        self.get_aggregator().refresh_cache(facility_id)


class FacilityImportView(APIView):
    """
    Import facilities from a request body.

    POST /api/admin/import/facilities/<format>/ where format is json,
    geojson or csv. The raw body is handed to the matching format adapter.
    """

    permission_classes = [permissions.IsAdminUser]

    def post(self, request: Request, fmt: str = "json") -> Response:
        raw = request.body

        max_bytes = get_import_setting("MAX_PAYLOAD_BYTES")
        if len(raw) > max_bytes:
            return Response(
                {"message": f"Payload exceeds {max_bytes} bytes"},
                status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )

        importer = FacilityImporter(DjangoFacilityRepository())
        try:
            outcome = importer.import_from_format(fmt, raw)
        except MalformedInput as e:
            logger.warning(f"Rejected {fmt} facility import: {e}")
            return Response({"message": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except StoreUnavailable as e:
            return _store_unavailable_response(e)

        return Response(
            {
                "message": f"Successfully imported {outcome.imported_count} facilities",
                **outcome.as_response(),
            },
            status=status.HTTP_200_OK,
        )


class RecalculateRatingsView(APIView):
    """
    Recalculate cached facility ratings.

    Without a body every facility is recomputed from one grouped
    aggregation; with {"facility_ids": [...]} only those facilities are.
    """

    permission_classes = [permissions.IsAdminUser]

    def post(self, request: Request) -> Response:
        serializer = RecomputeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        facility_ids = serializer.validated_data.get("facility_ids")

        aggregator = RatingAggregator(DjangoFacilityRepository())
        try:
            if facility_ids:
                if len(facility_ids) == 1:
                    aggregator.refresh_cache(facility_ids[0])
                    result = RecomputeResult(1, 0)
                else:
                    result = aggregator.refresh_caches(facility_ids)
            else:
                result = aggregator.refresh_all_caches()
        except FacilityNotFound as e:
            return Response({"message": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except StoreUnavailable as e:
            return _store_unavailable_response(e)

        updated, failed = result
        return Response(
            {
                "message": "Successfully recalculated facility ratings",
                "updated": updated,
                "failed": failed,
            }
        )

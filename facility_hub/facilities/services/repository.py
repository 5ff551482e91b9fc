"""
Persistence collaborator for the facility pipeline.

The import coordinator and the rating aggregator only talk to storage
through FacilityRepository. DjangoFacilityRepository implements it on the
Django ORM and translates driver errors into the pipeline's exceptions.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, NamedTuple, Optional

from django.db import (
    DEFAULT_DB_ALIAS,
    IntegrityError,
    InterfaceError,
    OperationalError,
    transaction,
)
from django.db.models import Count, Q, Sum

from ..models import Facility, Review
from .exceptions import DuplicateSkipped, FacilityNotFound, StoreUnavailable
from .normalizers import mean_rating
from .schemas import FacilityPayload

logger = logging.getLogger(__name__)


class RatingSummary(NamedTuple):
    """Average rating (None without reviews) and review count."""

    rating: Optional[Decimal]
    count: int


class FacilityRepository(ABC):
    """
    Storage operations used by facility import and rating aggregation.
    """

    @abstractmethod
    def find_facility(
        self, name: str, latitude: Decimal, longitude: Decimal
    ) -> Optional[Facility]:
        """Return the facility with exactly this name and location, if any."""

    @abstractmethod
    def insert_facility(self, payload: FacilityPayload) -> Facility:
        """
        Insert a validated facility and return it with its identifier.

        Raises:
            DuplicateSkipped: If the storage uniqueness constraint fires
        """

    @abstractmethod
    def count_reviews(self, facility_id: int) -> int:
        """Number of reviews for a facility."""

    @abstractmethod
    def average_review_rating(self, facility_id: int) -> Optional[Decimal]:
        """Mean review rating rounded to one digit, None without reviews."""

    @abstractmethod
    def update_facility_aggregate(
        self, facility_id: int, rating: Optional[Decimal], count: int
    ) -> None:
        """
        Write the cached aggregate pair of one facility.

        Raises:
            FacilityNotFound: If the facility does not exist
        """

    @abstractmethod
    def bulk_recompute_aggregates(self) -> Dict[int, RatingSummary]:
        """
        Compute aggregates for every facility in one grouped statement.

        Covers facilities with reviews, plus facilities whose cached pair
        still claims reviews that no longer exist (reported as None/0).
        """


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """
    Re-raise connection-level database errors as StoreUnavailable.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Store unavailable during {operation}: {e}")
        raise StoreUnavailable(f"Store unavailable during {operation}: {e}") from e


class DjangoFacilityRepository(FacilityRepository):
    """
    FacilityRepository backed by the Django ORM.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self.using = using

    def _facilities(self):
        return Facility.objects.using(self.using)

    def _reviews(self):
        return Review.objects.using(self.using)

    def find_facility(
        self, name: str, latitude: Decimal, longitude: Decimal
    ) -> Optional[Facility]:
        with translate_store_errors("find_facility"):
            return (
                self._facilities()
                .filter(name=name, latitude=latitude, longitude=longitude)
                .first()
            )

    def insert_facility(self, payload: FacilityPayload) -> Facility:
        with translate_store_errors("insert_facility"):
            try:
                # Savepoint keeps an enclosing transaction usable after a conflict
                with transaction.atomic(using=self.using):
                    facility = self._facilities().create(**payload.model_dump())
            except IntegrityError as e:
                if self.find_facility(*payload.identity_key) is not None:
                    raise DuplicateSkipped(
                        f"Facility '{payload.name}' already exists at "
                        f"{payload.latitude},{payload.longitude}"
                    ) from e
                raise

        logger.info(f"Imported facility: {facility.name} (ID: {facility.id})")
        return facility

    def count_reviews(self, facility_id: int) -> int:
        with translate_store_errors("count_reviews"):
            return self._reviews().filter(facility_id=facility_id).count()

    def average_review_rating(self, facility_id: int) -> Optional[Decimal]:
        with translate_store_errors("average_review_rating"):
            result = self._reviews().filter(facility_id=facility_id).aggregate(
                total=Sum("rating"), count=Count("id")
            )
        return mean_rating(result["total"], result["count"])

    def update_facility_aggregate(
        self, facility_id: int, rating: Optional[Decimal], count: int
    ) -> None:
        with translate_store_errors("update_facility_aggregate"):
            updated = self._facilities().filter(pk=facility_id).update(
                average_rating=rating, total_reviews=count
            )

        if not updated:
            raise FacilityNotFound(facility_id)

    def bulk_recompute_aggregates(self) -> Dict[int, RatingSummary]:
        with translate_store_errors("bulk_recompute_aggregates"):
            rows = (
                self._reviews()
                .order_by()  # Drop Meta ordering so GROUP BY stays on facility_id
                .values("facility_id")
                .annotate(total=Sum("rating"), count=Count("id"))
            )
            summaries = {
                row["facility_id"]: RatingSummary(
                    mean_rating(row["total"], row["count"]), row["count"]
                )
                for row in rows
            }

            stale_ids = (
                self._facilities()
                .filter(Q(total_reviews__gt=0) | Q(average_rating__isnull=False))
                .filter(reviews__isnull=True)
                .values_list("pk", flat=True)
            )
            for facility_id in stale_ids:
                summaries[facility_id] = RatingSummary(None, 0)

        logger.debug(f"Computed rating aggregates for {len(summaries)} facilities")
        return summaries

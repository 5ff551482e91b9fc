"""
Rating aggregation for facilities.

Keeps each facility's cached (average_rating, total_reviews) pair in line
with its reviews, either for one facility after a review changes or for the
whole table on demand.
"""

import logging
from typing import Iterable, NamedTuple

from .exceptions import FacilityIngestError
from .repository import FacilityRepository, RatingSummary

logger = logging.getLogger(__name__)


class RecomputeResult(NamedTuple):
    """Outcome of a bulk recompute."""

    updated: int
    failed: int


class RatingAggregator:
    """
    Computes and caches facility rating aggregates.

    Stateless apart from the repository it is given.
    """

    def __init__(self, repository: FacilityRepository) -> None:
        self.repository = repository

    def compute_rating(self, facility_id: int) -> RatingSummary:
        """
        Calculate the average rating and review count for a facility.

        Returns:
            RatingSummary(None, 0) without reviews, otherwise the mean
            rounded to one fractional digit and the review count
        """
        count = self.repository.count_reviews(facility_id)
        if count == 0:
            return RatingSummary(None, 0)

        rating = self.repository.average_review_rating(facility_id)
        return RatingSummary(rating, count)

    def refresh_cache(self, facility_id: int) -> RatingSummary:
        """
        Recompute a facility's rating and store it on the facility.

        Raises:
            StoreUnavailable: If the store cannot be reached
            FacilityNotFound: If the facility does not exist
        """
        summary = self.compute_rating(facility_id)
        self.repository.update_facility_aggregate(
            facility_id, summary.rating, summary.count
        )

        logger.info(
            f"Updated cached rating for facility {facility_id}: "
            f"{summary.rating} ({summary.count} reviews)"
        )
        return summary

    def refresh_caches(self, facility_ids: Iterable[int]) -> RecomputeResult:
        """
        Refresh several facilities one by one, continuing past failures.
        """
        updated = 0
        failed = 0

        for facility_id in facility_ids:
            try:
                self.refresh_cache(facility_id)
                updated += 1
            except FacilityIngestError as e:
                failed += 1
                logger.error(f"Error updating cached rating for facility {facility_id}: {e}")

        return RecomputeResult(updated, failed)

    def refresh_all_caches(self) -> RecomputeResult:
        """
        Recompute every facility's cached rating from one grouped aggregation.

        A failed write for one facility is logged and the remaining
        facilities are still processed.

        Raises:
            StoreUnavailable: If the grouped aggregation itself cannot run
        """
        summaries = self.repository.bulk_recompute_aggregates()

        updated = 0
        failed = 0

        for facility_id, summary in summaries.items():
            try:
                self.repository.update_facility_aggregate(
                    facility_id, summary.rating, summary.count
                )
                updated += 1
            except Exception as e:
                failed += 1
                logger.error(
                    f"Error updating cached rating for facility {facility_id}: {e}"
                )

        logger.info(
            f"Facility ratings recalculated: {updated} updated, {failed} failed"
        )
        return RecomputeResult(updated, failed)

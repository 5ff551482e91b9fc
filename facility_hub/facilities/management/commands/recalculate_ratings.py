"""
Management command to recalculate cached facility ratings.

Usage:
    python manage.py recalculate_ratings
    python manage.py recalculate_ratings --facility 12 --facility 40
"""

import logging

from django.core.management.base import BaseCommand, CommandError, CommandParser

from facilities.services import DjangoFacilityRepository, RatingAggregator, StoreUnavailable

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Recalculate cached average ratings and review counts from reviews"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--facility",
            action="append",
            type=int,
            dest="facility_ids",
            default=None,
            help="Only recalculate this facility (repeatable)",
        )

    def handle(self, *args, **options) -> None:
        aggregator = RatingAggregator(DjangoFacilityRepository())
        facility_ids = options["facility_ids"]

        try:
            if facility_ids:
                result = aggregator.refresh_caches(facility_ids)
            else:
                result = aggregator.refresh_all_caches()
        except StoreUnavailable as e:
            raise CommandError(f"Could not recalculate ratings: {e}")

        self.stdout.write(f"Facilities updated: {result.updated}")
        if result.failed:
            self.stdout.write(
                self.style.WARNING(
                    f"{result.failed} facilities could not be updated. Check logs for details."
                )
            )
        else:
            self.stdout.write(self.style.SUCCESS("All facility ratings recalculated successfully"))

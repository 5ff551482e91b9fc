"""
Duplicate detection for imported facilities.
"""

import logging

from .repository import FacilityRepository
from .schemas import FacilityPayload

logger = logging.getLogger(__name__)


class DeduplicationGate:
    """
    Checks whether a validated facility already exists in the store.

    Matching is exact on (name, latitude, longitude). Facilities whose
    coordinates differ by any amount after quantization are distinct.
    """

    def __init__(self, repository: FacilityRepository) -> None:
        self.repository = repository

    def is_duplicate(self, facility: FacilityPayload) -> bool:
        existing = self.repository.find_facility(*facility.identity_key)
        if existing is not None:
            logger.info(
                f"Skipping duplicate facility: {facility.name} "
                f"(matches ID {existing.id})"
            )
            return True
        return False

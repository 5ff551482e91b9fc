"""
Import coordinator for facility batches.

Drives candidates through validation, duplicate detection and persistence
one record at a time. A bad record never aborts the batch or rolls back
records that were already inserted.
"""

import logging
from typing import Any, Iterable, Optional

from .config import get_import_setting
from .dedup import DeduplicationGate
from .exceptions import DuplicateSkipped, StoreUnavailable, ValidationError
from .parsers import RawPayload, parse_payload
from .repository import FacilityRepository
from .schemas import ImportOutcome, RecordError, validate_facility

logger = logging.getLogger(__name__)


class FacilityImporter:
    """
    Imports facility candidates into a FacilityRepository.

    Usage:
        importer = FacilityImporter(DjangoFacilityRepository())
        outcome = importer.import_from_format("geojson", text)
    """

    def __init__(
        self,
        repository: FacilityRepository,
        gate: Optional[DeduplicationGate] = None,
    ) -> None:
        self.repository = repository
        self.gate = gate or DeduplicationGate(repository)

    def import_from_format(
        self, fmt: str, raw: RawPayload, dry_run: bool = False
    ) -> ImportOutcome:
        """
        Parse a raw payload and import its candidates.

        Args:
            fmt: Source format (json, geojson or csv)
            raw: Payload text, bytes, or decoded JSON
            dry_run: Validate and check duplicates without inserting

        Returns:
            ImportOutcome for the batch

        Raises:
            MalformedInput: If the payload shape is wrong (nothing is inserted)
            StoreUnavailable: If the store goes away mid-batch
        """
        logger.info(f"Importing facilities from {fmt} payload")
        parsed = parse_payload(fmt, raw)

        outcome = self.import_facilities(parsed.candidates, dry_run=dry_run, source=fmt)
        outcome.dropped_count = parsed.dropped_count
        return outcome

    def import_facilities(
        self,
        candidates: Iterable[Any],
        dry_run: bool = False,
        source: str = "payload",
    ) -> ImportOutcome:
        """
        Import already parsed candidates in input order.

        Args:
            candidates: Candidate records
            dry_run: Validate and check duplicates without inserting
            source: Source description for logging context

        Returns:
            ImportOutcome with imported, error and duplicate counts
        """
        outcome = ImportOutcome()
        max_details = get_import_setting("MAX_ERROR_DETAILS")

        for idx, candidate in enumerate(candidates):
            try:
                facility = validate_facility(candidate, f"{source}:record_{idx}")
                if self.gate.is_duplicate(facility):
                    outcome.skipped_duplicates += 1
                    continue

                if dry_run:
                    outcome.imported_count += 1
                    continue

                self.repository.insert_facility(facility)
                outcome.imported_count += 1

            except DuplicateSkipped as e:
                outcome.skipped_duplicates += 1
                logger.info(f"Record {idx}: {e}")

            except ValidationError as e:
                self._record_error(outcome, idx, e.field, e.message, max_details)

            except StoreUnavailable:
                logger.error(
                    f"Aborting import at record {idx}: store unavailable "
                    f"({outcome.imported_count} already imported)"
                )
                raise

            except Exception as e:
                name = candidate.get("name") if isinstance(candidate, dict) else None
                logger.error(f"Error importing facility {idx} ({name or 'unnamed'}): {e}")
                self._record_error(outcome, idx, None, str(e), max_details)

        logger.info(
            f"Import completed{' (dry run)' if dry_run else ''}: "
            f"{outcome.total_processed} records processed, "
            f"{outcome.imported_count} imported, {outcome.error_count} errors, "
            f"{outcome.skipped_duplicates} duplicates skipped"
        )
        return outcome

    @staticmethod
    def _record_error(
        outcome: ImportOutcome,
        index: int,
        field: Optional[str],
        message: str,
        max_details: int,
    ) -> None:
        outcome.error_count += 1
        if len(outcome.errors) < max_details:
            outcome.errors.append(RecordError(index=index, field=field, message=message))

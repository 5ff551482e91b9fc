"""
Management command to import facilities from JSON, GeoJSON or CSV files.

Usage:
    python manage.py import_facilities <path ...>
    python manage.py import_facilities data/*.csv --dry-run
    python manage.py import_facilities export.json --format geojson --verbose
"""

import glob
import logging
import time
from collections import Counter
from pathlib import Path
from typing import Iterator, List, Optional

from django.core.management.base import BaseCommand, CommandError, CommandParser

from facilities.services import (
    DjangoFacilityRepository,
    FacilityImporter,
    MalformedInput,
    StoreUnavailable,
)
from facilities.services.parsers import PARSERS

logger = logging.getLogger(__name__)

EXTENSION_FORMATS = {
    ".json": "json",
    ".geojson": "geojson",
    ".csv": "csv",
}


class Command(BaseCommand):
    """
    Management command to import facility data from files.
    """

    help = "Import facilities from JSON, GeoJSON or CSV files"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.totals = Counter()
        self.start_time = None
        self.dry_run = False
        self.stop_on_error = False
        self.verbose = False
        self.importer = None

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "paths",
            nargs="+",
            type=str,
            help="File paths, directory paths, or glob patterns to import",
        )

        parser.add_argument(
            "--format",
            choices=sorted(PARSERS),
            default=None,
            help="Source format; inferred from the file extension when omitted",
        )

        parser.add_argument(
            "--dry-run",
            action="store_true",
            default=False,
            help="Parse, validate and check duplicates only, do not save",
        )

        parser.add_argument(
            "--stop-on-error",
            action="store_true",
            default=False,
            help="Stop at the first file with malformed input or rejected records",
        )

        parser.add_argument(
            "--verbose",
            action="store_true",
            default=False,
            help="Enable verbose debug logging",
        )

    def handle(self, *args, **options) -> None:
        self.start_time = time.time()
        self.dry_run = options["dry_run"]
        self.stop_on_error = options["stop_on_error"]
        self.verbose = options["verbose"]
        self.importer = FacilityImporter(DjangoFacilityRepository())

        if self.verbose:
            logging.getLogger("facilities").setLevel(logging.DEBUG)
            self.stdout.write("Verbose logging enabled")

        if self.dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No data will be saved"))

        files_to_process = self._discover_files(options["paths"], options["format"])

        if not files_to_process:
            self.stdout.write(self.style.ERROR("No files found to process"))
            return

        self.stdout.write(f"Found {len(files_to_process)} files to process")

        for file_path in files_to_process:
            fmt = options["format"] or EXTENSION_FORMATS[file_path.suffix.lower()]
            try:
                self._process_file(file_path, fmt)
            except (MalformedInput, UnicodeDecodeError, OSError) as e:
                self._skip_file(file_path, e)
            except StoreUnavailable as e:
                self._print_summary()
                raise CommandError(f"Store unavailable while importing {file_path}: {e}")

        self._print_summary()

    def _skip_file(self, file_path: Path, error: Exception) -> None:
        """
        Count a file that could not be read or parsed, honouring --stop-on-error.
        """
        self.totals["files_skipped"] += 1
        logger.error(f"Could not import {file_path}: {error}")

        if self.stop_on_error:
            raise CommandError(f"Stopping on error: {file_path}: {error}")

        self.stdout.write(self.style.ERROR(f"Error processing {file_path}: {error}"))

    def _expand(self, path_str: str) -> Iterator[Path]:
        if any(char in path_str for char in "*?"):
            candidates = (Path(match) for match in sorted(glob.glob(path_str, recursive=True)))
        else:
            path = Path(path_str)
            if path.is_dir():
                candidates = sorted(path.rglob("*"))
            elif path.is_file():
                candidates = [path]
            else:
                self.stdout.write(self.style.WARNING(f"Path not found: {path_str}"))
                candidates = []

        return (candidate for candidate in candidates if candidate.is_file())

    def _discover_files(self, paths: List[str], fmt: Optional[str]) -> List[Path]:
        """
        Expand paths, directories and glob patterns into importable files.

        Without an explicit format, files whose extension maps to no adapter
        are skipped.
        """
        found = [file_path for path_str in paths for file_path in self._expand(path_str)]
        self.totals["files_seen"] += len(found)

        if fmt:
            return found

        supported = [path for path in found if path.suffix.lower() in EXTENSION_FORMATS]
        for path in set(found) - set(supported):
            logger.info(f"Skipping unsupported file type: {path}")
        self.totals["files_skipped"] += len(found) - len(supported)

        return supported

    def _process_file(self, file_path: Path, fmt: str) -> None:
        """
        Import a single file with the adapter for its format.
        """
        self.stdout.write(f"Processing: {file_path} ({fmt})")

        raw = file_path.read_text(encoding="utf-8-sig")
        outcome = self.importer.import_from_format(fmt, raw, dry_run=self.dry_run)

        self.totals.update(
            files_processed=1,
            imported=outcome.imported_count,
            duplicates=outcome.skipped_duplicates,
            dropped=outcome.dropped_count,
            errors=outcome.error_count,
        )

        if self.verbose:
            for error in outcome.errors:
                self.stdout.write(
                    f"  record {error.index}: {error.field or 'record'}: {error.message}"
                )

        if outcome.error_count and self.stop_on_error:
            self._print_summary()
            raise CommandError(
                f"Stopping on error: {outcome.error_count} invalid records in {file_path}"
            )

    def _print_summary(self) -> None:
        totals = self.totals
        rows = [
            ("Files", f"{totals['files_seen']} seen, {totals['files_processed']} processed, "
                      f"{totals['files_skipped']} skipped"),
            ("Would import" if self.dry_run else "Imported", totals["imported"]),
            ("Duplicates", totals["duplicates"]),
            ("Dropped", totals["dropped"]),
            ("Errors", totals["errors"]),
            ("Duration", f"{time.time() - self.start_time:.2f}s"),
        ]

        self.stdout.write(self.style.SUCCESS("\nFacility import summary"))
        for label, value in rows:
            self.stdout.write(f"  {label}: {value}")

        if self.dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN - No database changes made"))

        if totals["errors"]:
            self.stdout.write(
                self.style.WARNING(f"Finished with {totals['errors']} rejected records")
            )
        else:
            self.stdout.write(self.style.SUCCESS("Import completed successfully"))

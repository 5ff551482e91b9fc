"""
Tests for management command CLI functionality.
"""

import json
import tempfile
from decimal import Decimal
from io import StringIO
from pathlib import Path
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from facilities.models import Facility
from facilities.services import StoreUnavailable
from tests.factories import FacilityFactory

CSV_CONTENT = """name,type,district,address,latitude,longitude,courts
Po Kong Village Road Park,basketball,wong_tai_sin,Po Kong Village Road,22.3420,114.1950,2
Kwun Tong Swimming Pool,swimming,kwun_tong,Tsui Ping Road,22.3100,114.2250,
"""

BAD_CSV_CONTENT = """name,type,district,address,latitude,longitude
Good Park,soccer,north,Jockey Club Road,22.5000,114.1300
,curling,nowhere,,abc,
"""


class TestImportFacilitiesCommand(TestCase):
    """Test the import_facilities command."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def write(self, name, content):
        path = self.temp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_import_csv_file(self):
        path = self.write("facilities.csv", CSV_CONTENT)

        out = StringIO()
        call_command("import_facilities", str(path), stdout=out)

        self.assertEqual(Facility.objects.count(), 2)
        self.assertEqual(Facility.objects.get(name="Po Kong Village Road Park").courts, 2)

        output = out.getvalue()
        self.assertIn("Facility import summary", output)
        self.assertIn("Import completed successfully", output)

    def test_format_inferred_from_extension(self):
        self.write(
            "facilities.geojson",
            json.dumps(
                {
                    "type": "FeatureCollection",
                    "features": [
                        {
                            "type": "Feature",
                            "geometry": {"type": "Point", "coordinates": [114.17, 22.28]},
                            "properties": {"name": "Southorn Playground", "type": "soccer",
                                           "district": "wanchai"},
                        },
                        {"type": "Feature", "geometry": {"type": "MultiPoint", "coordinates": []}},
                    ],
                }
            ),
        )
        self.write(
            "facilities.json",
            json.dumps(
                [
                    {
                        "name": "Quarry Bay Park",
                        "type": "tennis",
                        "district": "eastern",
                        "address": "Quarry Bay",
                        "latitude": 22.2880,
                        "longitude": 114.2150,
                    }
                ]
            ),
        )
        self.write("notes.txt", "not a facility file")

        out = StringIO()
        call_command("import_facilities", str(self.temp_path), stdout=out)

        self.assertEqual(
            sorted(Facility.objects.values_list("name", flat=True)),
            ["Quarry Bay Park", "Southorn Playground"],
        )
        output = out.getvalue()
        self.assertIn("Found 2 files to process", output)
        self.assertIn("Dropped: 1", output)
        self.assertIn("Files: 3 seen, 2 processed, 1 skipped", output)

    def test_explicit_format_overrides_extension(self):
        path = self.write("export.txt", CSV_CONTENT)

        call_command("import_facilities", str(path), "--format", "csv", stdout=StringIO())

        self.assertEqual(Facility.objects.count(), 2)

    def test_dry_run_does_not_persist(self):
        """Test that --dry-run does not persist data to database."""
        path = self.write("facilities.csv", CSV_CONTENT)

        out = StringIO()
        call_command("import_facilities", str(path), "--dry-run", stdout=out)

        self.assertEqual(Facility.objects.count(), 0)

        output = out.getvalue()
        self.assertIn("DRY RUN", output)
        self.assertIn("No database changes made", output)
        self.assertIn("Would import: 2", output)

    def test_reimport_reports_duplicates(self):
        path = self.write("facilities.csv", CSV_CONTENT)
        call_command("import_facilities", str(path), stdout=StringIO())

        out = StringIO()
        call_command("import_facilities", str(path), stdout=out)

        self.assertEqual(Facility.objects.count(), 2)
        self.assertIn("Duplicates: 2", out.getvalue())

    def test_invalid_records_reported(self):
        path = self.write("facilities.csv", BAD_CSV_CONTENT)

        out = StringIO()
        call_command("import_facilities", str(path), "--verbose", stdout=out)

        self.assertEqual(Facility.objects.count(), 1)
        output = out.getvalue()
        self.assertIn("Verbose logging enabled", output)
        self.assertIn("Processing:", output)
        self.assertIn("record 1: name:", output)
        self.assertIn("Finished with 1 rejected records", output)

    def test_stop_on_error_aborts_on_bad_records(self):
        bad = self.write("a_bad.csv", BAD_CSV_CONTENT)
        good = self.write("b_good.csv", CSV_CONTENT)

        with self.assertRaises(CommandError):
            call_command(
                "import_facilities", str(bad), str(good), "--stop-on-error", stdout=StringIO()
            )

        # Valid rows before the failure stay, the second file is never read
        self.assertEqual(list(Facility.objects.values_list("name", flat=True)), ["Good Park"])

    def test_malformed_file_skipped(self):
        malformed = self.write("a_broken.json", '{"not": "an array"}')
        good = self.write("b_good.csv", CSV_CONTENT)

        out = StringIO()
        call_command("import_facilities", str(malformed), str(good), stdout=out)

        self.assertEqual(Facility.objects.count(), 2)
        self.assertIn(f"Error processing {malformed}", out.getvalue())

    def test_malformed_file_with_stop_on_error(self):
        malformed = self.write("broken.geojson", "[]")

        with self.assertRaises(CommandError):
            call_command("import_facilities", str(malformed), "--stop-on-error", stdout=StringIO())

    def test_undecodable_file_skipped(self):
        undecodable = self.temp_path / "a_latin1.csv"
        undecodable.write_bytes(b"name,type\n\xff\xfe\x00Caf\xe9 Park,tennis\n")
        good = self.write("b_good.csv", CSV_CONTENT)

        out = StringIO()
        call_command("import_facilities", str(self.temp_path), stdout=out)

        self.assertEqual(Facility.objects.count(), 2)
        output = out.getvalue()
        self.assertIn(f"Error processing {undecodable}", output)
        self.assertIn("Files: 2 seen, 1 processed, 1 skipped", output)
        self.assertIn(f"Processing: {good}", output)

    def test_undecodable_file_with_stop_on_error(self):
        undecodable = self.temp_path / "latin1.csv"
        undecodable.write_bytes(b"name,type\n\xffCaf\xe9 Park,tennis\n")

        with self.assertRaises(CommandError):
            call_command(
                "import_facilities", str(undecodable), "--stop-on-error", stdout=StringIO()
            )

    def test_unreadable_file_skipped(self):
        unreadable = self.write("a_locked.json", "[]")
        good = self.write("b_good.csv", CSV_CONTENT)
        read_text = Path.read_text

        def failing_read_text(path, *args, **kwargs):
            if path == unreadable:
                raise PermissionError(13, "Permission denied", str(path))
            return read_text(path, *args, **kwargs)

        out = StringIO()
        with mock.patch.object(Path, "read_text", failing_read_text):
            call_command("import_facilities", str(unreadable), str(good), stdout=out)

        self.assertEqual(Facility.objects.count(), 2)
        self.assertIn(f"Error processing {unreadable}", out.getvalue())

    def test_glob_pattern_support(self):
        """Test that glob patterns work for file discovery."""
        for i in range(3):
            self.write(
                f"test_data_{i}.csv",
                "name,type,district,address,latitude,longitude\n"
                f"Glob Park {i},fitness,islands,Mui Wo,22.26{i},113.99\n",
            )

        out = StringIO()
        call_command("import_facilities", str(self.temp_path / "*.csv"), stdout=out)

        self.assertEqual(Facility.objects.count(), 3)
        self.assertIn("Found 3 files to process", out.getvalue())

    def test_store_unavailable(self):
        path = self.write("facilities.csv", CSV_CONTENT)

        with mock.patch(
            "facilities.services.repository.DjangoFacilityRepository.find_facility",
            side_effect=StoreUnavailable("connection refused"),
        ):
            with self.assertRaises(CommandError):
                call_command("import_facilities", str(path), stdout=StringIO())


class TestRecalculateRatingsCommand(TestCase):
    """Test the recalculate_ratings command."""

    def test_recalculate_all(self):
        facility = FacilityFactory(ratings=[3, 4, 5])
        stale = FacilityFactory(average_rating=Decimal("3.0"), total_reviews=4)

        out = StringIO()
        call_command("recalculate_ratings", stdout=out)

        facility.refresh_from_db()
        stale.refresh_from_db()
        self.assertEqual((facility.average_rating, facility.total_reviews), (Decimal("4.0"), 3))
        self.assertEqual((stale.average_rating, stale.total_reviews), (None, 0))

        output = out.getvalue()
        self.assertIn("Facilities updated: 2", output)
        self.assertIn("All facility ratings recalculated successfully", output)

    def test_recalculate_selected(self):
        first = FacilityFactory(ratings=[1])
        second = FacilityFactory(ratings=[2])

        out = StringIO()
        call_command("recalculate_ratings", "--facility", str(first.id), stdout=out)

        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.total_reviews, 1)
        self.assertEqual(second.total_reviews, 0)
        self.assertIn("Facilities updated: 1", out.getvalue())

    def test_missing_facility_reported(self):
        out = StringIO()
        call_command("recalculate_ratings", "--facility", "999999", stdout=out)

        self.assertIn("1 facilities could not be updated", out.getvalue())

    def test_store_unavailable(self):
        with mock.patch(
            "facilities.services.repository.DjangoFacilityRepository.bulk_recompute_aggregates",
            side_effect=StoreUnavailable("down"),
        ):
            with self.assertRaises(CommandError):
                call_command("recalculate_ratings", stdout=StringIO())

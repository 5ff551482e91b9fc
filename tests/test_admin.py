"""
Tests for Django admin functionality.
"""

from decimal import Decimal
from unittest import mock

from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase

from facilities.admin import FacilityAdmin, ReviewAdmin
from facilities.models import Facility, Review
from tests.factories import FacilityFactory, ReviewFactory

User = get_user_model()


class TestAdminSearchAndFilters(TestCase):
    """Test admin search and filter functionality."""

    def setUp(self):
        """Set up test data and admin."""
        self.factory = RequestFactory()
        self.site = AdminSite()
        self.admin = FacilityAdmin(Facility, self.site)

        self.court = FacilityFactory(
            name="Admin Test Tennis Court",
            type="tennis",
            district="central",
            address="Garden Road",
        )
        self.pool = FacilityFactory(
            name="Admin Test Pool",
            type="swimming",
            district="sha_tin",
            address="Yuen Wo Road",
        )
        self.other_court = FacilityFactory(
            name="Another Tennis Court",
            type="tennis",
            district="sha_tin",
            address="Upper Garden Road",
        )

        self.superuser = User.objects.create_superuser(
            username="admin", email="admin@test.com", password="testpass123"
        )

    def changelist_queryset(self, query):
        request = self.factory.get(f"/admin/facilities/facility/{query}")
        request.user = self.superuser

        changelist = self.admin.get_changelist_instance(request)
        return changelist.get_queryset(request)

    def test_admin_search_by_internal_id(self):
        """Test exact search by internal ID."""
        queryset = self.changelist_queryset(f"?q={self.court.id}")

        self.assertEqual(queryset.count(), 1)
        self.assertEqual(queryset.first().id, self.court.id)

    def test_admin_search_by_name_partial(self):
        queryset = self.changelist_queryset("?q=Tennis")

        names = sorted(facility.name for facility in queryset)
        self.assertEqual(names, ["Admin Test Tennis Court", "Another Tennis Court"])

    def test_admin_search_by_address(self):
        queryset = self.changelist_queryset("?q=Garden")

        self.assertEqual(queryset.count(), 2)

    def test_admin_type_filter(self):
        queryset = self.changelist_queryset("?type__exact=tennis")

        self.assertEqual(queryset.count(), 2)
        for facility in queryset:
            self.assertEqual(facility.type, "tennis")

    def test_admin_district_filter(self):
        queryset = self.changelist_queryset("?district__exact=sha_tin&type__exact=swimming")

        self.assertEqual(list(queryset), [self.pool])

    def test_review_count_display(self):
        self.assertEqual(self.admin.review_count_display(self.court), "No reviews")

        self.court.total_reviews = 1
        self.assertEqual(self.admin.review_count_display(self.court), "1 review")

        self.court.total_reviews = 12
        self.assertEqual(self.admin.review_count_display(self.court), "12 reviews")

    def test_facilities_cannot_be_added(self):
        request = self.factory.get("/admin/facilities/facility/add/")
        request.user = self.superuser

        self.assertFalse(self.admin.has_add_permission(request))

        self.client.force_login(self.superuser)
        response = self.client.get("/admin/facilities/facility/add/")
        self.assertEqual(response.status_code, 403)

    def test_facility_fields_are_read_only(self):
        request = self.factory.get(f"/admin/facilities/facility/{self.court.id}/change/")
        request.user = self.superuser

        readonly = self.admin.get_readonly_fields(request, self.court)
        for field in ("name", "type", "district", "address", "latitude", "longitude",
                      "courts", "average_rating", "total_reviews"):
            self.assertIn(field, readonly)

    def test_change_form_post_leaves_facility_untouched(self):
        self.client.force_login(self.superuser)

        self.client.post(
            f"/admin/facilities/facility/{self.court.id}/change/",
            {"name": "Renamed Court", "latitude": "1.0", "longitude": "1.0"},
        )

        self.court.refresh_from_db()
        self.assertEqual(self.court.name, "Admin Test Tennis Court")

    def test_recompute_cached_ratings_action(self):
        """Test the recompute admin action fixes stale caches."""
        facility = FacilityFactory(ratings=[4, 5, 3])
        Facility.objects.filter(id=facility.id).update(
            average_rating=Decimal("2.0"), total_reviews=7
        )

        request = self.factory.post("/admin/facilities/facility/")
        request.user = self.superuser

        with mock.patch.object(self.admin, "message_user") as message_user:
            self.admin.recompute_cached_ratings(
                request, Facility.objects.filter(id__in=[facility.id, self.pool.id])
            )

        facility.refresh_from_db()
        self.assertEqual(facility.average_rating, Decimal("4.0"))
        self.assertEqual(facility.total_reviews, 3)

        message_user.assert_called_once()
        self.assertIn("2 facilities", message_user.call_args[0][1])


class TestReviewAdmin(TestCase):
    """Test review admin keeps facility caches in line."""

    def setUp(self):
        self.factory = RequestFactory()
        self.admin = ReviewAdmin(Review, AdminSite())
        self.superuser = User.objects.create_superuser(
            username="admin", email="admin@test.com", password="testpass123"
        )
        self.request = self.factory.post("/admin/facilities/review/add/")
        self.request.user = self.superuser
        self.facility = FacilityFactory()

    def test_save_model_refreshes_cache(self):
        review = Review(facility=self.facility, rating=4)
        form = mock.Mock(changed_data=[], initial={})

        self.admin.save_model(self.request, review, form, change=False)

        self.facility.refresh_from_db()
        self.assertEqual(self.facility.average_rating, Decimal("4.0"))
        self.assertEqual(self.facility.total_reviews, 1)

    def test_save_model_moving_review_refreshes_both(self):
        other = FacilityFactory()
        review = ReviewFactory(facility=self.facility, rating=2)
        self.admin.save_model(self.request, review, mock.Mock(changed_data=[], initial={}), False)

        review.facility = other
        form = mock.Mock(changed_data=["facility"], initial={"facility": self.facility.id})
        self.admin.save_model(self.request, review, form, change=True)

        self.facility.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual((self.facility.average_rating, self.facility.total_reviews), (None, 0))
        self.assertEqual((other.average_rating, other.total_reviews), (Decimal("2.0"), 1))

    def test_delete_model_refreshes_cache(self):
        ReviewFactory(facility=self.facility, rating=5)
        review = ReviewFactory(facility=self.facility, rating=1)

        self.admin.delete_model(self.request, review)

        self.facility.refresh_from_db()
        self.assertEqual(self.facility.average_rating, Decimal("5.0"))
        self.assertEqual(self.facility.total_reviews, 1)

    def test_delete_queryset_refreshes_every_facility(self):
        other = FacilityFactory(ratings=[3])
        ReviewFactory(facility=self.facility, rating=5)

        self.admin.delete_queryset(self.request, Review.objects.all())

        for facility in (self.facility, other):
            facility.refresh_from_db()
            self.assertEqual((facility.average_rating, facility.total_reviews), (None, 0))

"""
Models for the facilities app.
"""

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .choices import DISTRICT_CHOICES, FACILITY_TYPE_CHOICES


class Facility(models.Model):
    """
    Sports facility with location, opening hours and a cached rating aggregate.

    ``average_rating`` and ``total_reviews`` are derived from the facility's
    reviews and written only by the rating aggregator.
    """

    id = models.AutoField(primary_key=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=32, choices=FACILITY_TYPE_CHOICES, db_index=True)
    district = models.CharField(max_length=32, choices=DISTRICT_CHOICES, db_index=True)
    address = models.CharField(max_length=500)
    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)
    open_time = models.TimeField(blank=True, null=True)
    close_time = models.TimeField(blank=True, null=True)
    contact_phone = models.CharField(max_length=64, blank=True, null=True)
    image_url = models.CharField(max_length=500, blank=True, null=True)
    courts = models.PositiveIntegerField(blank=True, null=True)
    amenities = models.JSONField(blank=True, null=True)  # List of strings or None
    age_restriction = models.CharField(max_length=64, blank=True, null=True)
    gender_suitability = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Cached rating aggregate
    average_rating = models.DecimalField(
        max_digits=3, decimal_places=1, blank=True, null=True, db_index=True
    )
    total_reviews = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name_plural = "facilities"
        constraints = [
            models.UniqueConstraint(
                fields=["name", "latitude", "longitude"],
                name="unique_facility_name_location",
            ),
        ]
        indexes = [
            models.Index(fields=["type", "district"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.district})"

    def clean(self) -> None:
        """
        Keep the cached aggregate pair consistent.
        """
        super().clean()

        if self.total_reviews == 0 and self.average_rating is not None:
            raise ValidationError(
                {"average_rating": "Average rating must be empty without reviews."}
            )

        if self.total_reviews and self.average_rating is None:
            raise ValidationError(
                {"average_rating": "Average rating is required when reviews exist."}
            )

        if self.amenities is not None:
            if not isinstance(self.amenities, list) or not all(
                isinstance(item, str) for item in self.amenities
            ):
                raise ValidationError(
                    {"amenities": "Amenities must be a list of strings or null."}
                )

    @property
    def has_reviews(self) -> bool:
        return self.total_reviews > 0


class Review(models.Model):
    """
    A user's rating of a facility.
    """

    facility = models.ForeignKey(
        Facility, on_delete=models.CASCADE, related_name="reviews"
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.rating}/5 for {self.facility_id}"

"""
DRF serializers for the facilities app.
"""

from rest_framework import serializers

from .models import Facility, Review


class FacilitySerializer(serializers.ModelSerializer):
    """
    Read-only serializer for Facility model.

    Facilities are created by the import pipeline, never through this
    serializer.
    """

    class Meta:
        model = Facility
        fields = [
            "id",
            "name",
            "description",
            "type",
            "district",
            "address",
            "latitude",
            "longitude",
            "open_time",
            "close_time",
            "contact_phone",
            "image_url",
            "courts",
            "amenities",
            "age_restriction",
            "gender_suitability",
            "average_rating",
            "total_reviews",
            "created_at",
        ]
        read_only_fields = fields  # All fields are read-only

    def to_representation(self, instance: Facility) -> dict:
        data = super().to_representation(instance)

        # Format coordinates as a nested object for convenience
        data["coordinates"] = {
            "latitude": instance.latitude,
            "longitude": instance.longitude,
        }

        return data


class ReviewSerializer(serializers.ModelSerializer):
    """
    Serializer for reviews. The cached rating of the facility is refreshed
    by the view after every write.
    """

    class Meta:
        model = Review
        fields = ["id", "facility", "rating", "comment", "created_at"]
        read_only_fields = ["id", "created_at"]


class RecomputeRequestSerializer(serializers.Serializer):
    """
    Optional body for the recalculate endpoint.
    """

    facility_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, allow_empty=False
    )

# tracking/serializers.py
import math

from rest_framework import serializers


class LocationReportSerializer(serializers.Serializer):
    """
    Incoming position report. Stop reports (isActive=false) carry no
    coordinates; anything they send for lat/lng is dropped.
    """
    trackId = serializers.CharField(max_length=64)
    lat = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    lng = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)
    speed = serializers.FloatField(required=False, allow_null=True)
    accuracy = serializers.FloatField(required=False, allow_null=True)
    heading = serializers.FloatField(required=False, allow_null=True)
    timestamp = serializers.DateTimeField(required=False, allow_null=True)
    isActive = serializers.BooleanField(default=True)

    def validate(self, attrs):
        if not attrs["isActive"]:
            attrs["lat"] = attrs["lng"] = None
            return attrs

        lat, lng = attrs.get("lat"), attrs.get("lng")
        if lat is None or lng is None:
            raise serializers.ValidationError("active reports need both lat and lng")
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise serializers.ValidationError("lat and lng must be finite numbers")
        if lat == 0 and lng == 0:
            raise serializers.ValidationError("(0, 0) is reserved for stop reports")
        return attrs


class TrackedUserSerializer(serializers.Serializer):
    trackId = serializers.CharField(max_length=64)
    color = serializers.CharField(max_length=32, required=False, allow_blank=True)
    displayName = serializers.CharField(max_length=64, required=False, allow_blank=True)


class TrackingSessionSerializer(serializers.Serializer):
    trackedUsers = TrackedUserSerializer(many=True)


def error_reason(errors):
    """Flatten serializer errors into one line, e.g. 'lat: Ensure this value ...'."""
    parts = []
    for field, messages in errors.items():
        if isinstance(messages, dict):
            parts.append(error_reason(messages))
            continue
        if isinstance(messages, list) and messages and isinstance(messages[0], dict):
            parts.extend(error_reason(m) for m in messages if m)
            continue
        text = " ".join(str(m) for m in messages)
        parts.append(text if field == "non_field_errors" else f"{field}: {text}")
    return "; ".join(parts)

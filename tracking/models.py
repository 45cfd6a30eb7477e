# tracking/models.py
from django.db import models
from django.utils import timezone


class Track(models.Model):
    """One location-sharing session and its latest accepted report."""

    track_id = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(default=timezone.now)

    # current location, superseded by every accepted report
    lat = models.FloatField(null=True, blank=True)
    lng = models.FloatField(null=True, blank=True)
    speed = models.FloatField(null=True, blank=True)
    accuracy = models.FloatField(null=True, blank=True)
    heading = models.FloatField(null=True, blank=True)
    timestamp = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=False)
    last_report_at = models.DateTimeField(null=True, blank=True)

    def as_report(self):
        return {
            "trackId": self.track_id,
            "lat": self.lat,
            "lng": self.lng,
            "speed": self.speed,
            "accuracy": self.accuracy,
            "heading": self.heading,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "isActive": self.is_active,
        }

    def __str__(self):
        return f"{self.track_id} ({'on' if self.is_active else 'off'})"


class PathPoint(models.Model):
    track_id = models.CharField(max_length=64, db_index=True)
    lat = models.FloatField()
    lng = models.FloatField()
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['timestamp']
        indexes = [
            models.Index(fields=['track_id', 'timestamp'], name='pathpoint_track_ts_idx'),
        ]

    def as_dict(self):
        return {"lat": self.lat, "lng": self.lng, "timestamp": self.timestamp.isoformat()}

    def __str__(self):
        return f"{self.track_id} @ {self.timestamp}"


class Subscription(models.Model):
    channel_name = models.CharField(max_length=255, db_index=True)
    track_id = models.CharField(max_length=64, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['channel_name', 'track_id'], name='unique_channel_track'),
        ]

    def __str__(self):
        return f"{self.channel_name} -> {self.track_id}"


class TrackingSession(models.Model):
    """Track ids a map viewer follows, restored when the page reloads."""

    session_id = models.CharField(max_length=128, unique=True)
    tracked_users = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.session_id} ({len(self.tracked_users)} tracked)"

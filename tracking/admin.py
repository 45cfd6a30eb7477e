# tracking/admin.py
from django.contrib import admin, messages

from .exceptions import LocationRejected, StorageFault
from .ingest import get_ingest
from .models import PathPoint, Subscription, Track, TrackingSession


@admin.register(Track)
class TrackAdmin(admin.ModelAdmin):
    list_display = ('track_id', 'is_active', 'lat', 'lng', 'timestamp', 'last_report_at')
    list_filter = ('is_active',)
    search_fields = ('track_id',)
    readonly_fields = ('created_at', 'last_report_at')
    actions = ['stop_sharing']

    @admin.action(description="Stop sharing location for selected tracks")
    def stop_sharing(self, request, queryset):
        ingest = get_ingest()
        stopped = 0
        for track in queryset.filter(is_active=True):
            try:
                ingest.submit_sync({"trackId": track.track_id, "isActive": False})
                stopped += 1
            except (LocationRejected, StorageFault) as exc:
                self.message_user(request, f"{track.track_id}: {exc}", level=messages.ERROR)
        self.message_user(request, f"Stopped {stopped} track(s).")


@admin.register(PathPoint)
class PathPointAdmin(admin.ModelAdmin):
    list_display = ('track_id', 'lat', 'lng', 'timestamp')
    search_fields = ('track_id',)
    readonly_fields = ('timestamp',)


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ('track_id', 'channel_name', 'created_at')
    search_fields = ('track_id', 'channel_name')


@admin.register(TrackingSession)
class TrackingSessionAdmin(admin.ModelAdmin):
    list_display = ('session_id', 'updated_at')
    search_fields = ('session_id',)

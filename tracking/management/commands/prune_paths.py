# tracking/management/commands/prune_paths.py
import csv
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from tracking import history
from tracking.exceptions import StorageFault
from tracking.models import PathPoint


class Command(BaseCommand):
    help = "Delete path points older than the retention horizon, optionally archiving them to CSV first"

    def add_arguments(self, parser):
        parser.add_argument("--hours", type=float, default=None,
                            help="Horizon in hours (default: TRACKING_PATH_HORIZON_HOURS)")
        parser.add_argument("--archive", metavar="PATH", default=None,
                            help="Write the pruned points to this CSV file before deleting them")

    def handle(self, *args, **options):
        hours = options.get("hours")
        if hours is None:
            hours = history.horizon_hours()
        if hours <= 0:
            raise CommandError("--hours must be positive")
        now = timezone.now()
        horizon = timedelta(hours=hours)

        archive = options.get("archive")
        if archive:
            qs = PathPoint.objects.filter(timestamp__lt=now - horizon).order_by("track_id", "timestamp")
            with open(archive, "w", newline="") as f:
                w = csv.writer(f)
                w.writerow(["track_id", "lat", "lng", "timestamp"])
                for p in qs.iterator():
                    w.writerow([p.track_id, p.lat, p.lng, p.timestamp.isoformat()])

        try:
            count = history.prune(horizon, now=now)
        except StorageFault as exc:
            raise CommandError(str(exc)) from exc

        if archive:
            self.stdout.write(f"Archived {count} points to {archive} and deleted them.")
        else:
            self.stdout.write(f"Deleted {count} points older than {hours:g}h.")

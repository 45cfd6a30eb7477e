# tracking/exceptions.py


class TrackingError(Exception):
    """Base class for relay errors."""


class LocationRejected(TrackingError):
    """A location report failed validation at the ingest boundary."""

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class TrackNotFound(TrackingError):
    def __init__(self, track_id):
        super().__init__(f"Track {track_id!r} has no reported location")
        self.track_id = track_id


class StorageFault(TrackingError):
    """The persistence layer failed; raised to the immediate caller."""


class TransportFailure(TrackingError):
    def __init__(self, channel_name, cause):
        super().__init__(f"delivery to {channel_name} failed: {cause!r}")
        self.channel_name = channel_name
        self.cause = cause


class SubscriptionError(TrackingError):
    pass


class HistoryError(TrackingError):
    pass

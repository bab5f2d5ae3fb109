"""Exception types raised at the decoding and CLI boundaries."""


class StrideTrackerError(Exception):
    """Base class for all stride_tracker errors."""


class RecordDecodeError(StrideTrackerError):
    """A persisted record could not be turned back into a domain object."""

    def __init__(self, record_type, field, message):
        self.record_type = record_type
        self.field = field
        super().__init__(f"{record_type}.{field}: {message}")


class MissingFieldError(RecordDecodeError):
    """A required field is absent from the payload."""

    def __init__(self, record_type, field):
        super().__init__(record_type, field, "field missing")


class MalformedFieldError(RecordDecodeError):
    """A field is present but has the wrong type or an out-of-range value."""


class ReplayError(StrideTrackerError):
    """A recorded session file is unreadable or empty."""

class PerformanceError(Exception):
    """Base error for grading, aggregation and report card composition."""


class MissingDataError(PerformanceError, LookupError):
    """A required entity (student, term, ...) was not supplied."""


class GradingScaleError(PerformanceError, ValueError):
    """The grading scale is malformed or does not cover a score."""


class InvalidRecordError(PerformanceError, ValueError):
    """An upstream record is missing required fields or has bad values."""

"""
Domain errors for sample grid generation, statistics extraction and export.

Every error carries a human readable message and the HTTP status code the
API layer should answer with.
"""


class SampleGridError(Exception):
    """Base class for recoverable sample grid errors."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidGeometry(SampleGridError):
    """Polygon has the wrong shape or too few vertices."""
    status_code = 400


class UnsupportedGeometryType(SampleGridError):
    """Geometry is not a Polygon."""
    status_code = 400


class InvalidSpacing(SampleGridError):
    """Grid spacing is not a positive number or produces too many candidates."""
    status_code = 400


class ExtractionPreconditionError(SampleGridError):
    """Extraction requested without points or without an active raster."""
    status_code = 409


class ExtractionFailed(SampleGridError):
    """Statistics service call failed (network, HTTP status or malformed body)."""
    status_code = 502

    def __init__(self, message: str, status_code: int = None, retryable: bool = False):
        super().__init__(message, status_code)
        self.retryable = retryable


class StaleStatistics(SampleGridError):
    """Statistics arrived for a point set that is no longer current."""
    status_code = 409


class NoData(SampleGridError):
    """Export requested before any statistics were extracted."""
    status_code = 404


class GridNotFound(SampleGridError):
    """No grid session exists for the given identifier."""
    status_code = 404

"""
Terrain pipeline exceptions.

Every failure raised by the pipeline derives from :class:`TerrainError` and
carries the HTTP status the request handler answers with.
"""


class TerrainError(Exception):
    """Base class for terrain pipeline failures."""

    status_code = 500

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(TerrainError):
    """Missing or malformed request parameters."""

    status_code = 400


class NotFoundError(TerrainError):
    """The geocoder returned no candidates for the query."""

    status_code = 404


class UpstreamError(TerrainError):
    """The geocoding or elevation service failed or returned malformed data."""

    status_code = 500


class EmptyDataError(TerrainError):
    """No valid elevation sample exists in the requested area."""

    status_code = 500

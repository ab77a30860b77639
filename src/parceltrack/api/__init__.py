"""API package."""

from parceltrack.api.routes import router, track_error_handler

__all__ = ["router", "track_error_handler"]

"""Services package."""

from parceltrack.services.registry import CarrierRegistry
from parceltrack.services.tracker import TrackerService

__all__ = ["CarrierRegistry", "TrackerService"]

"""Service for tracking parcels through the carrier registry."""

import logging

from parceltrack.carriers.base import Carrier
from parceltrack.config import Settings
from parceltrack.errors import NotFoundError
from parceltrack.models import TrackEvent, TrackInfo
from parceltrack.pagination import ArrayConnection, Connection
from parceltrack.services.registry import CarrierRegistry


class TrackerService:
    """Query-side facade over the carrier registry."""

    def __init__(
        self,
        registry: CarrierRegistry,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ):
        self.registry = registry
        self.settings = settings or registry.settings
        self.logger = logger or logging.getLogger("parceltrack.tracker")

    def get_carrier(self, carrier_id: str) -> Carrier:
        """Get a registered carrier, or raise NotFoundError."""
        carrier = self.registry.get(carrier_id)
        if carrier is None:
            raise NotFoundError("Carrier not found")
        return carrier

    def list_carriers(
        self,
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
    ) -> Connection[Carrier]:
        """Page through registered carriers in registration order."""
        return ArrayConnection(
            self.registry.carriers,
            first=first,
            after=after,
            last=last,
            before=before,
            limit=self.settings.max_page_size,
        ).connection()

    async def track(self, carrier_id: str, tracking_number: str) -> TrackInfo:
        """Fetch tracking information for a parcel from one carrier."""
        carrier = self.get_carrier(carrier_id)
        self.logger.info(
            "Tracking %s with %s",
            tracking_number,
            carrier_id,
            extra={"carrier_id": carrier_id, "tracking_number": tracking_number},
        )
        return await carrier.track(tracking_number)

    def list_events(
        self,
        track_info: TrackInfo,
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
    ) -> Connection[TrackEvent]:
        """Page through a parcel's events in chronological order."""
        return ArrayConnection(
            track_info.events,
            first=first,
            after=after,
            last=last,
            before=before,
            limit=self.settings.max_page_size,
        ).connection()

"""Royal Mail tracking implementation."""

from pathlib import Path
from typing import Any, cast

from parceltrack.carriers.base import Carrier, CarrierConfig
from parceltrack.errors import BadRequestError, InternalError, NotFoundError
from parceltrack.models import Location, TrackEvent, TrackInfo


class RoyalMailConfig(CarrierConfig):
    endpoint: str = "https://api.royalmail.net"
    client_id: str | None = None
    client_secret: str | None = None


class RoyalMailCarrier(Carrier):
    """Royal Mail carrier adapter.

    Royal Mail's tracking page is JavaScript-heavy, so this talks to the
    mailpieces API behind it. The API returns events newest first.
    """

    metadata_path = Path(__file__).with_name("carrier.yaml")
    config_model = RoyalMailConfig

    async def fetch_track_info(self, tracking_number: str) -> TrackInfo:
        config = cast(RoyalMailConfig, self.config)

        headers = {"Accept": "application/json"}
        if config.client_id:
            headers["x-ibm-client-id"] = config.client_id
        if config.client_secret:
            headers["x-ibm-client-secret"] = config.client_secret

        response = await self.upstream_fetcher.fetch(
            "GET",
            f"{config.endpoint}/mailpieces/v2/summary",
            params={"mailPieceId": tracking_number},
            headers=headers,
        )

        if response.status_code == 400:
            raise BadRequestError()
        if response.status_code == 404:
            raise NotFoundError()
        if response.status_code != 200:
            self.logger.error(
                "Unexpected response status %s",
                response.status_code,
                extra={"carrier_id": self.carrier_id, "tracking_number": tracking_number},
            )
            raise InternalError()

        data = response.json()
        self.logger.debug(
            "Royal Mail response",
            extra={"carrier_id": self.carrier_id, "tracking_number": tracking_number, "payload": data},
        )
        return self._parse_api_response(data)

    def _parse_api_response(self, data: dict[str, Any]) -> TrackInfo:
        """Parse Royal Mail API response."""
        mailpieces = data.get("mailPieces") or []
        if not mailpieces:
            raise NotFoundError()

        mailpiece = mailpieces[0]
        summary = mailpiece.get("summary") or {}
        estimated_delivery = summary.get("estimatedDelivery") or {}

        events = [self._parse_event(event) for event in mailpiece.get("events") or []]
        events.reverse()

        return TrackInfo(
            events=events,
            sender=None,
            recipient=None,
            carrier_specific_data=self.specific_data(
                mailPieceId=mailpiece.get("mailPieceId"),
                statusCategory=summary.get("statusCategory"),
                statusDescription=summary.get("statusDescription"),
                estimatedDeliveryDate=estimated_delivery.get("date"),
            ),
        )

    def _parse_event(self, event: dict[str, Any]) -> TrackEvent:
        event_name = event.get("eventName")
        location_name = event.get("locationName")

        return TrackEvent(
            status=self.make_status(event_name, eventCode=event.get("eventCode")),
            time=self.parse_timestamp(event.get("eventDateTime")),
            location=Location(name=location_name) if location_name else None,
            contact=None,
            description=event_name,
        )

"""DHL tracking implementation, using the Shipment Tracking - Unified API."""

from pathlib import Path
from typing import Any, cast

from pydantic import model_validator

from parceltrack.carriers.base import Carrier, CarrierConfig
from parceltrack.errors import BadRequestError, InternalError, NotFoundError
from parceltrack.models import (
    ContactInfo,
    Location,
    TrackEvent,
    TrackEventStatus,
    TrackEventStatusCode,
    TrackInfo,
)


class DHLConfig(CarrierConfig):
    endpoint: str = "https://api-eu.dhl.com"
    api_key: str | None = None

    @model_validator(mode="after")
    def _require_api_key(self) -> "DHLConfig":
        if self.enabled and not self.api_key:
            raise ValueError("api_key is required when de.dhl is enabled")
        return self


class DHLCarrier(Carrier):
    """DHL carrier adapter.

    Requires an API key from the DHL developer portal, so it is disabled by
    default. Events are returned newest first.
    """

    metadata_path = Path(__file__).with_name("carrier.yaml")
    config_model = DHLConfig

    STATUS_CODES = {
        "pre-transit": TrackEventStatusCode.INFORMATION_RECEIVED,
        "transit": TrackEventStatusCode.IN_TRANSIT,
        "delivered": TrackEventStatusCode.DELIVERED,
        "failure": TrackEventStatusCode.EXCEPTION,
        "unknown": TrackEventStatusCode.UNKNOWN,
    }

    async def fetch_track_info(self, tracking_number: str) -> TrackInfo:
        config = cast(DHLConfig, self.config)

        response = await self.upstream_fetcher.fetch(
            "GET",
            f"{config.endpoint}/track/shipments",
            params={
                "trackingNumber": tracking_number,
                "language": "en",
                "offset": "0",
                "limit": "1",
            },
            headers={"Accept": "application/json", "DHL-API-Key": config.api_key},
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
            "DHL response",
            extra={"carrier_id": self.carrier_id, "tracking_number": tracking_number, "payload": data},
        )

        shipments = data.get("shipments") or []
        if not shipments:
            raise NotFoundError()
        return self._parse_shipment(shipments[0])

    def _parse_shipment(self, shipment: dict[str, Any]) -> TrackInfo:
        details = shipment.get("details") or {}
        events = [self._parse_event(event) for event in shipment.get("events") or []]
        events.reverse()

        return TrackInfo(
            events=events,
            sender=self._parse_contact(details.get("sender"), shipment.get("origin")),
            recipient=self._parse_contact(details.get("receiver"), shipment.get("destination")),
            carrier_specific_data=self.specific_data(
                service=shipment.get("service"),
                product=(details.get("product") or {}).get("productName"),
            ),
        )

    def _parse_event(self, event: dict[str, Any]) -> TrackEvent:
        description = event.get("description")
        return TrackEvent(
            status=self._parse_status(event),
            time=self.parse_timestamp(event.get("timestamp")),
            location=self._parse_location(event.get("location")),
            contact=None,
            description=description or event.get("status"),
        )

    def _parse_status(self, event: dict[str, Any]) -> TrackEventStatus:
        if event.get("status") is None:
            return self.make_status(event.get("description"))

        status_code = event.get("statusCode")
        code = self.STATUS_CODES.get(status_code)
        if code is None:
            self.logger.warning(
                "Unexpected statusCode %r",
                status_code,
                extra={"carrier_id": self.carrier_id},
            )
            code = TrackEventStatusCode.UNKNOWN

        return TrackEventStatus(
            code=code,
            name=event["status"],
            carrier_specific_data=self.specific_data(statusCode=status_code),
        )

    def _parse_location(self, place: dict[str, Any] | None) -> Location | None:
        if not place:
            return None
        address = place.get("address") or {}
        return Location(
            country_code=address.get("countryCode"),
            postal_code=address.get("postalCode"),
            name=address.get("addressLocality"),
        )

    def _parse_contact(
        self, party: dict[str, Any] | None, place: dict[str, Any] | None
    ) -> ContactInfo | None:
        if party is None:
            return None

        name = party.get("name") or ""
        organization = party.get("organizationName")
        if organization:
            name = f"{organization} - {name}" if name else organization

        return ContactInfo(
            name=name or None,
            location=self._parse_location(place),
            phone_number=None,
        )

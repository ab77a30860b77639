"""DPD UK tracking implementation."""

import re
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup, Tag

from parceltrack.carriers.base import Carrier
from parceltrack.errors import InternalError, NotFoundError
from parceltrack.models import ContactInfo, Location, TrackEvent, TrackInfo, parse_phone_number

UK_TIMEZONE = ZoneInfo("Europe/London")


class DPDCarrier(Carrier):
    """DPD UK carrier adapter.

    Scrapes the tracking page. The history table lists events newest first,
    with times in UK local time.
    """

    metadata_path = Path(__file__).with_name("carrier.yaml")

    TRACKING_URL = "https://www.dpd.co.uk/tracking/trackingSearch.do"

    async def fetch_track_info(self, tracking_number: str) -> TrackInfo:
        response = await self.upstream_fetcher.fetch(
            "GET",
            self.TRACKING_URL,
            params={"parcelCode": tracking_number},
            headers={"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"},
        )

        if response.status_code == 404:
            raise NotFoundError()
        if response.status_code != 200:
            self.logger.error(
                "Unexpected response status %s",
                response.status_code,
                extra={"carrier_id": self.carrier_id, "tracking_number": tracking_number},
            )
            raise InternalError()

        return self._parse_tracking_page(response.text, tracking_number)

    def _parse_tracking_page(self, html: str, tracking_number: str) -> TrackInfo:
        """Parse DPD tracking page HTML."""
        soup = BeautifulSoup(html, "lxml")

        history = soup.find("table", class_="parcel-history")
        if history is None:
            error_elem = soup.find(class_=re.compile(r"error|not-found", re.I))
            if error_elem is not None or "not found" in html.lower():
                raise NotFoundError()
            self.logger.error(
                "Tracking page has no parcel history",
                extra={"carrier_id": self.carrier_id, "tracking_number": tracking_number, "payload": html},
            )
            raise InternalError()

        events = [self._parse_event(row) for row in history.find_all("tr", class_="parcel-event")]
        events.reverse()

        return TrackInfo(
            events=events,
            sender=None,
            recipient=self._parse_recipient(soup),
            carrier_specific_data=self.specific_data(
                parcelCode=tracking_number,
                service=_text(soup.find(class_="parcel-service")),
            ),
        )

    def _parse_event(self, row: Tag) -> TrackEvent:
        description = _text(row.find(class_="event-description"))
        location_name = _text(row.find(class_="event-location"))

        return TrackEvent(
            status=self.make_status(description),
            time=self._parse_time(
                _text(row.find(class_="event-date")),
                _text(row.find(class_="event-time")),
            ),
            location=Location(name=location_name) if location_name else None,
            contact=self._parse_driver(row.find(class_="event-driver")),
            description=description,
        )

    def _parse_driver(self, cell: Tag | None) -> ContactInfo | None:
        if cell is None:
            return None
        name = _text(cell.find(class_="driver-name"))
        phone = _text(cell.find(class_="driver-phone"))
        if name is None and phone is None:
            return None
        return ContactInfo(
            name=name,
            location=None,
            phone_number=parse_phone_number(phone, region="GB"),
        )

    def _parse_recipient(self, soup: BeautifulSoup) -> ContactInfo | None:
        postcode = _text(soup.find(class_="delivery-postcode"))
        if postcode is None:
            return None
        return ContactInfo(location=Location(postal_code=postcode))

    def _parse_time(self, date_text: str | None, time_text: str | None) -> datetime | None:
        if date_text is None or time_text is None:
            self.logger.warning(
                "Event without date or time",
                extra={"carrier_id": self.carrier_id},
            )
            return None
        try:
            parsed = datetime.strptime(f"{date_text} {time_text}", "%d/%m/%Y %H:%M")
        except ValueError:
            self.logger.warning(
                "Unparseable event time %r %r",
                date_text,
                time_text,
                extra={"carrier_id": self.carrier_id},
            )
            return None
        return parsed.replace(tzinfo=UK_TIMEZONE)


def _text(element: Tag | None) -> str | None:
    if element is None:
        return None
    text = element.get_text(strip=True)
    return text or None

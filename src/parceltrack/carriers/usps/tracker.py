"""USPS tracking implementation, using the USPS v3 tracking API."""

import re
from datetime import datetime
from pathlib import Path
from typing import cast
from zoneinfo import ZoneInfo

from parceltrack.carriers.base import Carrier, CarrierConfig, OAuthCarrierConfig
from parceltrack.errors import BadRequestError, InternalError, NotFoundError
from parceltrack.models import TrackEvent, TrackInfo
from parceltrack.upstream import Fetcher, OAuthClientCredentialsFetcher

USPS_TIMEZONE = ZoneInfo("America/New_York")

# Summary strings carry their time in one of these layouts.
_MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)
_TIME_PATTERNS = [
    (
        re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4}), (\d{1,2}):(\d{2}) (am|pm)"),
        "%m/%d/%Y %I:%M %p",
        lambda m: f"{m[1]}/{m[2]}/{m[3]} {m[4]}:{m[5]} {m[6]}",
    ),
    (
        re.compile(rf"({_MONTHS}) (\d{{1,2}}), (\d{{4}}), (\d{{1,2}}):(\d{{2}}) (am|pm)"),
        "%B %d %Y %I:%M %p",
        lambda m: f"{m[1]} {m[2]} {m[3]} {m[4]}:{m[5]} {m[6]}",
    ),
    (
        re.compile(rf"(\d{{1,2}}):(\d{{2}}) (am|pm) on ({_MONTHS}) (\d{{1,2}}), (\d{{4}})"),
        "%B %d %Y %I:%M %p",
        lambda m: f"{m[4]} {m[5]} {m[6]} {m[1]}:{m[2]} {m[3]}",
    ),
]


class USPSConfig(OAuthCarrierConfig):
    endpoint: str = "https://api.usps.com"
    token_url: str = "https://api.usps.com/oauth2/v3/token"


class USPSCarrier(Carrier):
    """USPS carrier adapter.

    Needs USPS developer credentials, so it is disabled by default. Requests
    go through an OAuth client-credentials fetcher wrapped around the
    registry's fetcher.
    """

    metadata_path = Path(__file__).with_name("carrier.yaml")
    config_model = USPSConfig

    async def init(self, upstream_fetcher: Fetcher, config: CarrierConfig) -> None:
        await super().init(upstream_fetcher, config)
        config = cast(USPSConfig, config)
        self.upstream_fetcher = OAuthClientCredentialsFetcher(
            upstream_fetcher,
            token_url=config.token_url,
            client_id=config.client_id,
            client_secret=config.client_secret,
            logger=self.logger,
        )

    async def fetch_track_info(self, tracking_number: str) -> TrackInfo:
        config = cast(USPSConfig, self.config)

        response = await self.upstream_fetcher.fetch(
            "GET",
            f"{config.endpoint}/tracking/v3/tracking/{tracking_number}",
            params={"expand": "SUMMARY"},
            headers={"Accept": "application/json"},
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
            "USPS response",
            extra={"carrier_id": self.carrier_id, "tracking_number": tracking_number, "payload": data},
        )

        # DETAIL events lack usable times, so the SUMMARY strings are parsed.
        events = [self._parse_event(summary) for summary in data.get("eventSummaries") or []]
        events.reverse()

        return TrackInfo(
            events=events,
            sender=None,
            recipient=None,
            carrier_specific_data=self.specific_data(mailClass=data.get("mailClass")),
        )

    def _parse_event(self, summary: str) -> TrackEvent:
        status = self.make_status(summary)
        status.name = summary.split(",", 1)[0].strip()
        return TrackEvent(
            status=status,
            time=self._parse_time(summary),
            location=None,
            contact=None,
            description=summary,
        )

    def _parse_time(self, summary: str) -> datetime | None:
        for pattern, fmt, normalise in _TIME_PATTERNS:
            match = pattern.search(summary)
            if match is None:
                continue
            try:
                parsed = datetime.strptime(normalise(match), fmt)
            except ValueError:
                self.logger.warning(
                    "Unparseable time in summary %r",
                    summary,
                    extra={"carrier_id": self.carrier_id},
                )
                return None
            return parsed.replace(tzinfo=USPS_TIMEZONE)

        self.logger.warning("No time in summary %r", summary, extra={"carrier_id": self.carrier_id})
        return None

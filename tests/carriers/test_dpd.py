"""Tests for the DPD UK adapter."""

from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from parceltrack.carriers import CarrierAlias, CarrierConfig
from parceltrack.carriers.dpd.tracker import DPDCarrier
from parceltrack.errors import InternalError, NotFoundError
from parceltrack.models import MaskedPhoneNumber, PhoneNumber, TrackEventStatusCode

TRACKING_NUMBER = "15501234567890"

TRACKING_PAGE = """
<html><body>
<div class="parcel-service">DPD Next Day</div>
<div class="delivery-postcode">SW1A 1AA</div>
<table class="parcel-history">
  <tr class="parcel-event">
    <td class="event-date">02/03/2024</td><td class="event-time">11:05</td>
    <td class="event-location">London</td>
    <td class="event-description">Your parcel has been delivered</td>
  </tr>
  <tr class="parcel-event">
    <td class="event-date">02/03/2024</td><td class="event-time">08:30</td>
    <td class="event-location">London</td>
    <td class="event-description">Out for delivery</td>
    <td class="event-driver"><span class="driver-name">Sam</span><span class="driver-phone">07400 123456</span></td>
  </tr>
  <tr class="parcel-event">
    <td class="event-date">01/03/2024</td><td class="event-time">19:00</td>
    <td class="event-location">Hinckley</td>
    <td class="event-description">At the hub</td>
    <td class="event-driver"><span class="driver-phone">07700 9*****</span></td>
  </tr>
</table>
</body></html>
"""


@pytest.fixture
def dpd(mock_fetcher):
    async def build(handler):
        carrier = DPDCarrier()
        await carrier.init(mock_fetcher(handler, carrier.carrier_id), CarrierConfig())
        return carrier

    return build


class TestDPD:
    """Test DPD tracking page scraping."""

    async def test_parses_history(self, dpd):
        carrier = await dpd(lambda request: httpx.Response(200, text=TRACKING_PAGE))

        info = await carrier.track(TRACKING_NUMBER)

        assert [e.status.code for e in info.events] == [
            TrackEventStatusCode.IN_TRANSIT,
            TrackEventStatusCode.OUT_FOR_DELIVERY,
            TrackEventStatusCode.DELIVERED,
        ]
        assert info.events[0].location.name == "Hinckley"
        assert info.events[2].time == datetime(2024, 3, 2, 11, 5, tzinfo=ZoneInfo("Europe/London"))
        assert info.recipient.location.postal_code == "SW1A 1AA"
        assert info.carrier_specific_data == {
            "uk.dpd/raw/parcelCode": TRACKING_NUMBER,
            "uk.dpd/raw/service": "DPD Next Day",
        }

    async def test_driver_contact(self, dpd):
        carrier = await dpd(lambda request: httpx.Response(200, text=TRACKING_PAGE))

        info = await carrier.track(TRACKING_NUMBER)

        driver = info.events[1].contact
        assert driver.name == "Sam"
        assert driver.phone_number == PhoneNumber(number="+447400123456")
        assert isinstance(info.events[0].contact.phone_number, MaskedPhoneNumber)
        assert info.events[2].contact is None

    async def test_request(self, dpd):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text=TRACKING_PAGE)

        carrier = await dpd(handler)
        await carrier.track(TRACKING_NUMBER)

        assert seen[0].url.params["parcelCode"] == TRACKING_NUMBER

    async def test_not_found_page(self, dpd):
        page = '<html><body><div class="error-message">Parcel not found</div></body></html>'
        carrier = await dpd(lambda request: httpx.Response(200, text=page))

        with pytest.raises(NotFoundError):
            await carrier.track(TRACKING_NUMBER)

    async def test_unrecognised_page(self, dpd):
        carrier = await dpd(lambda request: httpx.Response(200, text="<html><body>Maintenance</body></html>"))

        with pytest.raises(InternalError):
            await carrier.track(TRACKING_NUMBER)

    @pytest.mark.parametrize("status, error", [(404, NotFoundError), (500, InternalError)])
    async def test_status_codes(self, dpd, status, error):
        carrier = await dpd(lambda request: httpx.Response(status))

        with pytest.raises(error):
            await carrier.track(TRACKING_NUMBER)


class TestDPDLocal:
    async def test_alias_uses_dpd_parsing(self, mock_fetcher):
        carrier = CarrierAlias("uk.dpdlocal", DPDCarrier(), name="DPD Local")
        await carrier.init(
            mock_fetcher(lambda request: httpx.Response(200, text=TRACKING_PAGE), "uk.dpdlocal"),
            CarrierConfig(),
        )

        info = await carrier.track(TRACKING_NUMBER)

        assert carrier.carrier_id == "uk.dpdlocal"
        assert len(info.events) == 3

"""Tests for base carrier functionality."""

import logging

import httpx
import pytest

from parceltrack.carriers import Carrier, CarrierAlias, CarrierConfig, CarrierMetadata
from parceltrack.errors import BadRequestError, InternalError, NotFoundError
from parceltrack.models import TrackEventStatusCode, TrackInfo


class StubCarrier(Carrier):
    """Carrier whose upstream behaviour is supplied by the test."""

    def __init__(self, behaviour=None, **kwargs):
        super().__init__(
            metadata=CarrierMetadata(
                id="test.carrier",
                name="Test Carrier",
                website="https://test.com",
                tracking_url_template="https://test.com/track/{tracking_number}",
                tracking_patterns=[{"regex": "^TEST[0-9]+$", "description": "Test format"}],
                status_mapping={
                    "item delivered": "DELIVERED",
                    "out for delivery": "OUT_FOR_DELIVERY",
                    "in transit": "IN_TRANSIT",
                    "broken": "NOT_A_STATUS",
                },
            ),
            **kwargs,
        )
        self.behaviour = behaviour
        self.calls: list[str] = []

    async def fetch_track_info(self, tracking_number):
        self.calls.append(tracking_number)
        if isinstance(self.behaviour, Exception):
            raise self.behaviour
        return self.behaviour or TrackInfo()


@pytest.fixture
async def carrier(mock_fetcher):
    stub = StubCarrier()
    await stub.init(mock_fetcher(lambda request: httpx.Response(200)), CarrierConfig())
    return stub


class TestStatusNormalisation:
    """Test status normalisation across carriers."""

    def test_substring_match(self):
        carrier = StubCarrier()

        assert carrier.normalise_status("Item Delivered") == TrackEventStatusCode.DELIVERED
        assert carrier.normalise_status("OUT FOR DELIVERY") == TrackEventStatusCode.OUT_FOR_DELIVERY
        assert carrier.normalise_status("in transit to hub") == TrackEventStatusCode.IN_TRANSIT

    def test_unknown_status(self, caplog):
        """Test that unknown statuses return UNKNOWN and are logged."""
        carrier = StubCarrier()

        with caplog.at_level(logging.WARNING):
            assert carrier.normalise_status("Something random") == TrackEventStatusCode.UNKNOWN
        assert "Something random" in caplog.text

    def test_bad_mapping_value_is_skipped(self):
        assert StubCarrier().normalise_status("broken") == TrackEventStatusCode.UNKNOWN

    def test_make_status_keeps_label(self):
        status = StubCarrier().make_status("Item delivered", eventCode="EVDAV", depot=None)

        assert status.code == TrackEventStatusCode.DELIVERED
        assert status.name == "Item delivered"
        assert status.carrier_specific_data == {"test.carrier/raw/eventCode": "EVDAV"}


class TestTrackingNumbers:
    def test_matches_ignoring_case_and_space(self):
        assert StubCarrier().matches_tracking_number(" test123 ")

    def test_tracking_url(self):
        assert StubCarrier().get_tracking_url("TEST1") == "https://test.com/track/TEST1"

    async def test_invalid_tracking_number_rejected_before_fetch(self, carrier):
        with pytest.raises(BadRequestError):
            await carrier.track("NOPE")
        with pytest.raises(BadRequestError):
            await carrier.track("   ")
        assert carrier.calls == []

    async def test_tracking_number_is_stripped(self, carrier):
        await carrier.track("  TEST42 ")
        assert carrier.calls == ["TEST42"]

    async def test_tracking_number_is_upper_cased(self, carrier):
        await carrier.track("test42")
        assert carrier.calls == ["TEST42"]


class TestTimestamps:
    def test_offset_required(self):
        carrier = StubCarrier()

        assert carrier.parse_timestamp("2024-03-01T10:15:00Z").utcoffset().total_seconds() == 0
        assert carrier.parse_timestamp("2024-03-01T10:15:00+01:00") is not None
        assert carrier.parse_timestamp("2024-03-01T10:15:00") is None
        assert carrier.parse_timestamp("yesterday") is None
        assert carrier.parse_timestamp(None) is None


class TestTrackBoundary:
    """Only taxonomy errors cross the carrier boundary."""

    async def test_taxonomy_errors_propagate(self, carrier):
        carrier.behaviour = NotFoundError("No such parcel")

        with pytest.raises(NotFoundError, match="No such parcel"):
            await carrier.track("TEST1")

    async def test_unexpected_errors_become_internal(self, carrier, caplog):
        carrier.behaviour = KeyError("mailPieces")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(InternalError) as exc_info:
                await carrier.track("TEST1")

        assert exc_info.value.message == InternalError.default_message
        assert exc_info.value.__cause__ is None
        assert "Unexpected error while tracking" in caplog.text

    async def test_not_initialized(self):
        with pytest.raises(InternalError):
            await StubCarrier().track("TEST1")

    async def test_init_twice(self, carrier, mock_fetcher):
        with pytest.raises(RuntimeError):
            await carrier.init(mock_fetcher(lambda request: httpx.Response(200)), CarrierConfig())

    async def test_init_rejects_wrong_config_type(self, mock_fetcher):
        class StrictConfig(CarrierConfig):
            pass

        stub = StubCarrier()
        stub.config_model = StrictConfig

        with pytest.raises(TypeError):
            await stub.init(mock_fetcher(lambda request: httpx.Response(200)), CarrierConfig())
        assert not stub.is_initialized

    def test_logger_is_child_of_injected_logger(self):
        parent = logging.getLogger("tests.carriers")
        assert StubCarrier(logger=parent).logger.name == "tests.carriers.test.carrier"


class TestCarrierAlias:
    """Test aliases forward to their backend under their own identity."""

    async def test_alias_forwards(self, mock_fetcher):
        backend = StubCarrier(behaviour=TrackInfo(carrier_specific_data={"test.carrier/raw/x": 1}))
        alias = CarrierAlias("test.alias", backend, name="Alias Carrier")
        await alias.init(mock_fetcher(lambda request: httpx.Response(200)), CarrierConfig())

        result = await alias.track("TEST9")

        assert alias.carrier_id == "test.alias"
        assert alias.name == "Alias Carrier"
        assert alias.metadata.website == backend.metadata.website
        assert backend.is_initialized
        assert backend.calls == ["TEST9"]
        assert result.carrier_specific_data == {"test.carrier/raw/x": 1}

    async def test_alias_validates_with_backend_patterns(self, mock_fetcher):
        alias = CarrierAlias("test.alias", StubCarrier())
        await alias.init(mock_fetcher(lambda request: httpx.Response(200)), CarrierConfig())

        with pytest.raises(BadRequestError):
            await alias.track("12345")

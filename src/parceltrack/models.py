"""Normalised tracking models every carrier adapter produces."""

from enum import Enum
from typing import Annotated, Literal

import phonenumbers
from pydantic import AfterValidator, AwareDatetime, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TrackEventStatusCode(str, Enum):
    """Normalised event status across all carriers."""

    UNKNOWN = "UNKNOWN"
    INFORMATION_RECEIVED = "INFORMATION_RECEIVED"  # Label created, not yet with carrier
    AT_PICKUP = "AT_PICKUP"  # Collected from the sender
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"  # With local driver
    ATTEMPT_FAIL = "ATTEMPT_FAIL"
    DELIVERED = "DELIVERED"
    AVAILABLE_FOR_PICKUP = "AVAILABLE_FOR_PICKUP"  # Waiting at a depot or locker
    EXCEPTION = "EXCEPTION"


def carrier_specific_key(carrier_id: str, field: str) -> str:
    """Build a namespaced key for a carrier-native field."""
    return f"{carrier_id}/raw/{field}"


def _check_namespaced(data: dict[str, str | int | float]) -> dict[str, str | int | float]:
    for key in data:
        carrier_id, sep, rest = key.partition("/")
        if not carrier_id or not sep or not rest:
            raise ValueError(f"carrier specific data key {key!r} is not namespaced by carrier id")
    return data


CarrierSpecificData = Annotated[dict[str, str | int | float], AfterValidator(_check_namespaced)]


class TrackModel(BaseModel):
    """Base class for all tracking models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Location(TrackModel):
    """A place as far as the carrier reports it; missing parts stay None."""

    country_code: str | None = None  # ISO 3166-1 alpha-2
    postal_code: str | None = None
    name: str | None = None
    carrier_specific_data: CarrierSpecificData = Field(default_factory=dict)


class PhoneNumber(TrackModel):
    """A fully structured phone number in E.164 form."""

    type: Literal["phone"] = "phone"
    number: str = Field(pattern=r"^\+[1-9][0-9]{6,14}$")


class MaskedPhoneNumber(TrackModel):
    """A phone number the upstream redacted; not parseable."""

    type: Literal["masked"] = "masked"
    masked_phone_number: str


class ContactInfo(TrackModel):
    name: str | None = None
    location: Location | None = None
    phone_number: Annotated[PhoneNumber | MaskedPhoneNumber, Field(discriminator="type")] | None = None
    carrier_specific_data: CarrierSpecificData = Field(default_factory=dict)


class TrackEventStatus(TrackModel):
    """Status of one event.

    ``code`` is the value to branch on; ``name`` keeps the carrier's own label
    for display.
    """

    code: TrackEventStatusCode = TrackEventStatusCode.UNKNOWN
    name: str | None = None
    carrier_specific_data: CarrierSpecificData = Field(default_factory=dict)


class TrackEvent(TrackModel):
    status: TrackEventStatus
    time: AwareDatetime | None = None
    location: Location | None = None
    contact: ContactInfo | None = None
    description: str | None = None
    carrier_specific_data: CarrierSpecificData = Field(default_factory=dict)


class TrackInfo(TrackModel):
    """Tracking result for one shipment.

    Events are in chronological (ascending) order. There is no stored current
    status: the last event is the current state.
    """

    events: list[TrackEvent] = Field(default_factory=list)
    sender: ContactInfo | None = None
    recipient: ContactInfo | None = None
    carrier_specific_data: CarrierSpecificData = Field(default_factory=dict)

    def last_event(self) -> TrackEvent | None:
        """Latest delivered event if there is one, otherwise the last event."""
        for event in reversed(self.events):
            if event.status.code == TrackEventStatusCode.DELIVERED:
                return event
        return self.events[-1] if self.events else None


def parse_phone_number(
    raw: str | None, region: str | None = None
) -> PhoneNumber | MaskedPhoneNumber | None:
    """Convert a carrier phone string into the tagged phone number union.

    ``region`` is the ISO 3166-1 alpha-2 code used for numbers written in
    national form. Redacted input, and anything libphonenumber cannot parse
    into a valid number, becomes a MaskedPhoneNumber holding the original text.
    """
    if raw is None or not raw.strip():
        return None

    text = raw.strip()
    if "*" in text or "x" in text.lower():
        return MaskedPhoneNumber(masked_phone_number=text)

    try:
        parsed = phonenumbers.parse(text, region)
    except phonenumbers.NumberParseException:
        return MaskedPhoneNumber(masked_phone_number=text)

    if not phonenumbers.is_valid_number(parsed):
        return MaskedPhoneNumber(masked_phone_number=text)

    return PhoneNumber(number=phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164))

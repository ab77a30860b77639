"""Base classes for carrier adapters."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

import yaml
from pydantic import BaseModel, ConfigDict, model_validator

from parceltrack.errors import BadRequestError, InternalError, TrackError
from parceltrack.models import (
    TrackEventStatus,
    TrackEventStatusCode,
    TrackInfo,
    carrier_specific_key,
)
from parceltrack.upstream import Fetcher


@dataclass(frozen=True)
class CarrierMetadata:
    """Static carrier description loaded from carrier.yaml."""

    id: str
    name: str
    website: str
    tracking_url_template: str = ""
    tracking_patterns: list[dict[str, str]] = field(default_factory=list)
    status_mapping: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "CarrierMetadata":
        """Load carrier metadata from a YAML file."""
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls(
            id=data["id"],
            name=data["name"],
            website=data["website"],
            tracking_url_template=data.get("tracking_url_template", ""),
            tracking_patterns=data.get("tracking_patterns", []),
            status_mapping=data.get("status_mapping", {}),
        )


class CarrierConfig(BaseModel):
    """Runtime configuration for a carrier, from the registry config file."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True


class OAuthCarrierConfig(CarrierConfig):
    """Config for carriers authenticating with OAuth2 client credentials."""

    client_id: str | None = None
    client_secret: str | None = None

    @model_validator(mode="after")
    def _require_credentials(self) -> "OAuthCarrierConfig":
        if self.enabled and not (self.client_id and self.client_secret):
            raise ValueError("client_id and client_secret are required when enabled")
        return self


class Carrier(ABC):
    """Abstract base class for carrier adapters.

    To create a new carrier adapter:
    1. Create a package in /carriers/ for the carrier
    2. Add a carrier.yaml with its metadata and status mapping
    3. Create a tracker.py that subclasses Carrier
    4. Implement fetch_track_info, raising only BadRequestError,
       NotFoundError or InternalError for expected failures
    5. Add it to builtin_carriers() in services/registry.py
    """

    metadata_path: ClassVar[Path | None] = None
    config_model: type[CarrierConfig] = CarrierConfig

    def __init__(
        self,
        metadata: CarrierMetadata | None = None,
        logger: logging.Logger | None = None,
    ):
        if metadata is None:
            if self.metadata_path is None:
                raise TypeError(f"{type(self).__name__} has no metadata_path")
            metadata = CarrierMetadata.from_yaml(self.metadata_path)
        self.metadata = metadata
        parent = logger or logging.getLogger("parceltrack.carriers")
        self.logger = parent.getChild(metadata.id)
        self.upstream_fetcher: Fetcher | None = None
        self.config: CarrierConfig | None = None
        self._compiled_patterns: list[tuple[re.Pattern[str], str]] = []
        self._compile_patterns()

    @property
    def carrier_id(self) -> str:
        return self.metadata.id

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_initialized(self) -> bool:
        return self.upstream_fetcher is not None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.carrier_id}>"

    def _compile_patterns(self) -> None:
        """Pre-compile tracking number regex patterns."""
        for pattern in self.metadata.tracking_patterns:
            compiled = re.compile(pattern["regex"])
            self._compiled_patterns.append((compiled, pattern.get("description", "")))

    async def init(self, upstream_fetcher: Fetcher, config: CarrierConfig) -> None:
        """Bind the carrier to its fetcher and config. Called once by the registry."""
        if self.is_initialized:
            raise RuntimeError(f"{self.carrier_id} is already initialized")
        if not isinstance(config, self.config_model):
            raise TypeError(
                f"{self.carrier_id} expects {self.config_model.__name__}, got {type(config).__name__}"
            )
        self.upstream_fetcher = upstream_fetcher
        self.config = config

    def matches_tracking_number(self, tracking_number: str) -> bool:
        """Check if a tracking number matches this carrier's patterns."""
        normalised = tracking_number.strip().upper()
        return any(pattern.match(normalised) for pattern, _ in self._compiled_patterns)

    def validate_tracking_number(self, tracking_number: str) -> None:
        """Reject tracking numbers that cannot belong to this carrier."""
        if not tracking_number:
            raise BadRequestError("Tracking number is empty")
        if self._compiled_patterns and not self.matches_tracking_number(tracking_number):
            raise BadRequestError(f"Invalid tracking number for {self.name}")

    def get_tracking_url(self, tracking_number: str) -> str:
        """Get the URL to track a parcel on the carrier's website."""
        return self.metadata.tracking_url_template.format(tracking_number=tracking_number)

    def normalise_status(self, carrier_status: str | None) -> TrackEventStatusCode:
        """Convert carrier status text to a TrackEventStatusCode.

        Patterns in status_mapping are tried in order as case-insensitive
        substrings. Unmapped text gives UNKNOWN and a warning.
        """
        if carrier_status is None:
            self.logger.warning("Missing carrier status", extra={"carrier_id": self.carrier_id})
            return TrackEventStatusCode.UNKNOWN

        carrier_status_lower = carrier_status.lower().strip()
        for pattern, code in self.metadata.status_mapping.items():
            if pattern.lower() in carrier_status_lower:
                try:
                    return TrackEventStatusCode(code)
                except ValueError:
                    self.logger.error(
                        "Invalid status code %r in status mapping",
                        code,
                        extra={"carrier_id": self.carrier_id},
                    )
                    continue

        self.logger.warning(
            "Unexpected carrier status %r",
            carrier_status,
            extra={"carrier_id": self.carrier_id},
        )
        return TrackEventStatusCode.UNKNOWN

    def make_status(self, carrier_status: str | None, **fields: Any) -> TrackEventStatus:
        """Build a TrackEventStatus keeping the carrier's label as its name."""
        return TrackEventStatus(
            code=self.normalise_status(carrier_status),
            name=carrier_status,
            carrier_specific_data=self.specific_data(**fields),
        )

    def specific_data(self, **fields: Any) -> dict[str, str | int | float]:
        """Namespace carrier-native fields under this carrier's id.

        None values are dropped.
        """
        return {
            carrier_specific_key(self.carrier_id, key): value
            for key, value in fields.items()
            if value is not None
        }

    def parse_timestamp(self, value: str | None) -> datetime | None:
        """Parse an ISO 8601 timestamp; missing or offset-less values give None."""
        if not value:
            return None
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            self.logger.warning("Unparseable timestamp %r", value, extra={"carrier_id": self.carrier_id})
            return None
        if parsed.tzinfo is None:
            self.logger.warning("Timestamp %r has no UTC offset", value, extra={"carrier_id": self.carrier_id})
            return None
        return parsed

    async def track(self, tracking_number: str) -> TrackInfo:
        """Track a parcel.

        BadRequestError and NotFoundError propagate unchanged. Any other
        failure is logged here and re-raised as a bare InternalError.
        """
        tracking_number = tracking_number.strip().upper()
        self.validate_tracking_number(tracking_number)
        context = {"carrier_id": self.carrier_id, "tracking_number": tracking_number}

        try:
            if not self.is_initialized:
                raise RuntimeError(f"{self.carrier_id} is not initialized")
            return await self.fetch_track_info(tracking_number)
        except TrackError as e:
            if isinstance(e, InternalError):
                self.logger.error("Tracking failed: %s", e.message, extra=context)
            raise
        except Exception:
            self.logger.exception("Unexpected error while tracking", extra=context)
            raise InternalError() from None

    @abstractmethod
    async def fetch_track_info(self, tracking_number: str) -> TrackInfo:
        """Fetch tracking information from the upstream.

        This method must be implemented by each carrier adapter. Use
        self.upstream_fetcher for all network access.

        Args:
            tracking_number: The validated tracking number to look up.

        Returns:
            TrackInfo with events in chronological order.
        """

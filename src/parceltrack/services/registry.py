"""Service for building and gating carrier adapters."""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import ValidationError

from parceltrack.carriers.alias import CarrierAlias
from parceltrack.carriers.base import Carrier, CarrierConfig
from parceltrack.carriers.dhl.tracker import DHLCarrier
from parceltrack.carriers.dpd.tracker import DPDCarrier
from parceltrack.carriers.royal_mail.tracker import RoyalMailCarrier
from parceltrack.carriers.usps.tracker import USPSCarrier
from parceltrack.config import Settings
from parceltrack.errors import RegistryConfigError, RegistryError
from parceltrack.upstream import Fetcher, UpstreamFetcher

# Carriers that need paid or registered credentials start disabled.
DEFAULT_CONFIG: dict[str, dict[str, dict[str, Any]]] = {
    "carriers": {
        "de.dhl": {"enabled": False},
        "us.usps": {"enabled": False},
    },
}


def builtin_carriers(logger: logging.Logger | None = None) -> list[Carrier]:
    """Construct the built-in carriers in registration order."""
    return [
        RoyalMailCarrier(logger=logger),
        DPDCarrier(logger=logger),
        CarrierAlias("uk.dpdlocal", DPDCarrier(logger=logger), name="DPD Local", logger=logger),
        DHLCarrier(logger=logger),
        USPSCarrier(logger=logger),
    ]


class CarrierRegistry:
    """Builds, configures and gates the carrier adapters at startup.

    After init() the registry is read-only and can be shared between
    concurrent requests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        carrier_factory: Callable[[logging.Logger], Iterable[Carrier]] = builtin_carriers,
        logger: logging.Logger | None = None,
    ):
        self.settings = settings or Settings()
        self.logger = logger or logging.getLogger("parceltrack.registry")
        self.carrier_logger = self.logger.getChild("carriers")
        self._carrier_factory = carrier_factory
        self._client = client
        self._owns_client = client is None
        self._carriers: dict[str, Carrier] = {}
        self._config: dict[str, dict[str, Any]] = {}
        self._initialized = False

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.settings.user_agent},
                follow_redirects=True,
                timeout=self.settings.http_timeout,
            )
        return self._client

    async def init(self) -> None:
        """Load config, then initialise and register each enabled carrier in order."""
        if self._initialized:
            raise RegistryError("Carrier registry is already initialized")
        self._initialized = True

        self._config = self.load_config()
        candidates = list(self._carrier_factory(self.carrier_logger))

        seen: set[str] = set()
        for carrier in candidates:
            if carrier.carrier_id in seen:
                raise RegistryError(f"Duplicate carrier id: {carrier.carrier_id}")
            seen.add(carrier.carrier_id)

        unknown = sorted(set(self._config) - seen)
        if unknown:
            raise RegistryConfigError(f"Unknown carriers in config: {', '.join(unknown)}")

        # Validate every carrier's config before initialising any of them.
        resolved = [(carrier, self.resolve_config(carrier)) for carrier in candidates]

        for carrier, config in resolved:
            if not config.enabled:
                self.logger.info("Skipping %s: disabled", carrier.carrier_id)
                continue
            await self._register(carrier, config)

        self.logger.info("Loaded %d carriers", len(self._carriers))

    def load_config(self) -> dict[str, dict[str, Any]]:
        """Read the optional YAML config file; returns the per-carrier mapping."""
        config_path = self.settings.carrier_registry_config_file
        if config_path is None:
            return {}
        return self._read_config_file(Path(config_path))

    def _read_config_file(self, config_path: Path) -> dict[str, dict[str, Any]]:
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise RegistryConfigError(f"Cannot read carrier config {config_path}: {e}") from e
        except yaml.YAMLError as e:
            raise RegistryConfigError(f"Cannot parse carrier config {config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict) or set(data) - {"carriers"}:
            raise RegistryConfigError(f"{config_path}: expected a mapping with a 'carriers' key")

        carriers = data.get("carriers") or {}
        if not isinstance(carriers, dict):
            raise RegistryConfigError(f"{config_path}: 'carriers' must be a mapping")
        for carrier_id, carrier_config in carriers.items():
            if carrier_config is not None and not isinstance(carrier_config, dict):
                raise RegistryConfigError(f"{config_path}: config for {carrier_id} must be a mapping")

        self.logger.info("Loaded carrier config from %s", config_path)
        return {carrier_id: carrier_config or {} for carrier_id, carrier_config in carriers.items()}

    def resolve_config(self, carrier: Carrier) -> CarrierConfig:
        """Merge explicit config over built-in defaults and validate it."""
        defaults = DEFAULT_CONFIG["carriers"].get(carrier.carrier_id, {})
        explicit = self._config.get(carrier.carrier_id, {})
        try:
            return carrier.config_model.model_validate({**defaults, **explicit})
        except ValidationError as e:
            raise RegistryConfigError(f"Invalid config for {carrier.carrier_id}: {e}") from e

    def create_upstream_fetcher(self, carrier: Carrier) -> Fetcher:
        return UpstreamFetcher(
            carrier.carrier_id,
            self.client,
            logger=self.logger.getChild("upstream").getChild(carrier.carrier_id),
        )

    async def _register(self, carrier: Carrier, config: CarrierConfig) -> None:
        try:
            await carrier.init(self.create_upstream_fetcher(carrier), config)
        except Exception as e:
            raise RegistryError(f"Failed to initialize {carrier.carrier_id}: {e}") from e

        self._carriers[carrier.carrier_id] = carrier
        self.logger.info("Loaded carrier: %s (%s)", carrier.name, carrier.carrier_id)

    def get(self, carrier_id: str) -> Carrier | None:
        """Get a carrier by ID."""
        return self._carriers.get(carrier_id)

    @property
    def carriers(self) -> list[Carrier]:
        """Registered carriers in registration order."""
        return list(self._carriers.values())

    def detect(self, tracking_number: str) -> list[Carrier]:
        """Carriers whose tracking number patterns match, in registration order."""
        return [
            carrier
            for carrier in self._carriers.values()
            if carrier.matches_tracking_number(tracking_number)
        ]

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

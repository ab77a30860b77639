"""Carrier aliases for brands that share another carrier's backend."""

import logging
from dataclasses import replace

from parceltrack.carriers.base import Carrier, CarrierConfig
from parceltrack.models import TrackInfo
from parceltrack.upstream import Fetcher


class CarrierAlias(Carrier):
    """Republishes a carrier under another id without changing its behaviour.

    The alias owns its backend instance: the backend is initialised with the
    alias's fetcher and config, and track calls are forwarded to it.
    """

    def __init__(
        self,
        alias_id: str,
        backend: Carrier,
        name: str | None = None,
        logger: logging.Logger | None = None,
    ):
        metadata = replace(backend.metadata, id=alias_id, name=name or backend.name)
        super().__init__(metadata=metadata, logger=logger)
        self.backend = backend
        self.config_model = backend.config_model

    async def init(self, upstream_fetcher: Fetcher, config: CarrierConfig) -> None:
        await self.backend.init(upstream_fetcher, config)
        await super().init(upstream_fetcher, config)

    async def fetch_track_info(self, tracking_number: str) -> TrackInfo:
        return await self.backend.fetch_track_info(tracking_number)

"""Carrier adapters package."""

from parceltrack.carriers.alias import CarrierAlias
from parceltrack.carriers.base import Carrier, CarrierConfig, CarrierMetadata, OAuthCarrierConfig

__all__ = ["Carrier", "CarrierAlias", "CarrierConfig", "CarrierMetadata", "OAuthCarrierConfig"]

"""Parcel tracking aggregator: one answer shape across many carriers."""

__version__ = "0.1.0"

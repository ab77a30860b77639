"""USPS carrier."""

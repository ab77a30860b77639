"""DHL carrier."""

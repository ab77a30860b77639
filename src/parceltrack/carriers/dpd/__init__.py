"""DPD UK carrier."""

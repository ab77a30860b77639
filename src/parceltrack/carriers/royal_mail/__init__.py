"""Royal Mail carrier."""

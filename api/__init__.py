"""HTTP service for md2gdocs."""

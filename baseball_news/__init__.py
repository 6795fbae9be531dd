"""Baseball news pipeline: listing scrapers, batched article generation, storage and API."""
